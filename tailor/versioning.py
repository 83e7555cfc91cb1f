"""Version name validation and version code encoding.

A version name is ``major.minor.build``. The derived version code packs
the three components into one integer:

    100000000 + major * 10000 + minor * 100 + build

The packing is only collision-free while minor and build stay below 100
and major below 10000. Components are not range-checked.
"""

from __future__ import annotations

VERSION_CODE_BASE = 100000000


class VersionFormatError(ValueError):
    """Raised when a version name is not three dot-separated numbers."""


def parse_version(version_name: str) -> tuple[int, int, int]:
    """Split a version name into its three numeric components.

    Raises:
        VersionFormatError: If the name contains anything other than ASCII
            digits and dots, or does not have exactly three components.
    """
    for char in version_name:
        if char != "." and char not in "0123456789":
            raise VersionFormatError(
                f"Invalid version {version_name!r}: only digits and '.' are allowed"
            )

    parts = version_name.split(".")
    if len(parts) != 3 or not all(parts):
        raise VersionFormatError(
            f"Invalid version {version_name!r}: expected the form x.y.z"
        )

    major, minor, build = (int(part) for part in parts)
    return major, minor, build


def version_code(version_name: str) -> str:
    """Encode a version name as a decimal version code string.

    >>> version_code("1.2.3")
    '100010203'
    """
    major, minor, build = parse_version(version_name)
    return str(VERSION_CODE_BASE + major * 10000 + minor * 100 + build)
