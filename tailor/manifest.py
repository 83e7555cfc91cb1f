"""In-place edits of files produced by ``apktool d``.

- AndroidManifest.xml: overwrite ``value`` attributes of the
  application's ``meta-data`` entries.
- res/values/strings.xml: overwrite the text of ``string`` resources.
- apktool.yml: rewrite the ``versionCode`` / ``versionName`` lines.

Each function reads its file completely, applies every edit in memory and
writes the file back once. Comments and processing instructions inside
the root element survive the round trip; those outside it are dropped.
The well-known Android namespace prefixes are kept; any other prefix is
written back under an ElementTree-generated name (``ns0``, ...), which
names the same namespace.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Iterable

from tailor.progress import LINE_END, ProgressCallback, null_progress
from tailor.versioning import parse_version, version_code

MANIFEST_FILE = "AndroidManifest.xml"
APKTOOL_YML_FILE = "apktool.yml"
STRINGS_FILE = Path("res") / "values" / "strings.xml"

VERSION_CODE_KEY = "versionCode"
VERSION_NAME_KEY = "versionName"

# Prefixes apktool emits in decoded resources
ANDROID_NAMESPACES = {
    "android": "http://schemas.android.com/apk/res/android",
    "app": "http://schemas.android.com/apk/res-auto",
    "tools": "http://schemas.android.com/tools",
    "dist": "http://schemas.android.com/apk/distribution",
}

for _prefix, _uri in ANDROID_NAMESPACES.items():
    ET.register_namespace(_prefix, _uri)


class ManifestError(ValueError):
    """Raised when a decoded XML file does not have the expected structure."""


def update_manifest(
    app_dir: Path,
    meta_data: Iterable[tuple[str, str]],
    progress: ProgressCallback = null_progress,
) -> int:
    """Set the ``value`` of every ``meta-data`` element matching each name.

    All elements sharing a requested name are updated, not just the
    first. Elements whose name is not requested are left untouched.

    Args:
        app_dir: Directory produced by ``apktool d``.
        meta_data: ``(name, value)`` pairs, applied in order.
        progress: Receives one line per updated attribute.

    Returns:
        Number of attributes updated.

    Raises:
        ManifestError: If the manifest has no ``application`` element.
        ET.ParseError: If the manifest is not well-formed.
        OSError: If the file cannot be read or written.
    """
    manifest_path = app_dir / MANIFEST_FILE
    tree = _parse(manifest_path)

    application = tree.getroot().find("application")
    if application is None:
        raise ManifestError(f"No <application> element in {manifest_path}")

    entries = application.findall("meta-data")
    updated = 0
    for name, value in meta_data:
        for element in entries:
            name_key = _attribute_key(element, "name")
            if name_key is None or element.get(name_key) != name:
                continue
            value_key = _attribute_key(element, "value") or _sibling_key(name_key, "value")
            element.set(value_key, value)
            updated += 1
            progress(f"Updated {MANIFEST_FILE} meta-data name={name} value={value}{LINE_END}")

    tree.write(manifest_path, encoding="utf-8", xml_declaration=True)
    progress(f"Updated {MANIFEST_FILE}{LINE_END}")
    return updated


def update_strings(
    app_dir: Path,
    strings: Iterable[tuple[str, str]],
    progress: ProgressCallback = null_progress,
) -> int:
    """Replace the text of ``<string name=...>`` resources in strings.xml.

    Returns:
        Number of string elements updated.
    """
    strings_path = app_dir / STRINGS_FILE
    tree = _parse(strings_path)

    elements = tree.getroot().findall("string")
    updated = 0
    for name, value in strings:
        for element in elements:
            if element.get("name") != name:
                continue
            for child in list(element):
                element.remove(child)
            element.text = value
            updated += 1
            progress(f"Updated {STRINGS_FILE.name} string name={name} value={value}{LINE_END}")

    tree.write(strings_path, encoding="utf-8", xml_declaration=True)
    progress(f"Updated {STRINGS_FILE.name}{LINE_END}")
    return updated


def update_apktool_yml(
    app_dir: Path,
    version_name: str,
    progress: ProgressCallback = null_progress,
) -> int:
    """Rewrite the version lines of apktool.yml.

    Any line containing ``versionCode`` becomes
    ``  versionCode: '<code>'``; otherwise any line containing
    ``versionName`` becomes ``  versionName: '<name>'``. Matching is plain
    substring containment, so comments mentioning either key are rewritten
    too. Other lines, including their line endings, are kept as they are.

    Raises:
        VersionFormatError: Before the file is read, if ``version_name``
            is malformed.

    Returns:
        Number of lines rewritten.
    """
    parse_version(version_name)
    code = version_code(version_name)

    yml_path = app_dir / APKTOOL_YML_FILE
    with yml_path.open(encoding="utf-8", newline="") as handle:
        lines = handle.readlines()

    output: list[str] = []
    rewritten = 0
    for line in lines:
        body = line.rstrip("\r\n")
        ending = line[len(body):]
        if VERSION_CODE_KEY in body:
            body = f"  {VERSION_CODE_KEY}: '{code}'"
        elif VERSION_NAME_KEY in body:
            body = f"  {VERSION_NAME_KEY}: '{version_name}'"
        else:
            output.append(line)
            continue
        rewritten += 1
        progress(f"Updated {APKTOOL_YML_FILE} {body}{LINE_END}")
        output.append(body + ending)

    with yml_path.open("w", encoding="utf-8", newline="") as handle:
        handle.write("".join(output))
    progress(f"Updated {APKTOOL_YML_FILE}{LINE_END}")
    return rewritten


def _parse(path: Path) -> ET.ElementTree:
    """Parse an XML file, keeping comments and processing instructions."""
    builder = ET.TreeBuilder(insert_comments=True, insert_pis=True)
    return ET.parse(path, parser=ET.XMLParser(target=builder))


def _attribute_key(element: ET.Element, local_name: str) -> str | None:
    """Find an attribute by local name, ignoring any namespace."""
    for key in element.attrib:
        if key == local_name or key.endswith("}" + local_name):
            return key
    return None


def _sibling_key(key: str, local_name: str) -> str:
    """Same namespace as ``key``, different local name."""
    if key.startswith("{"):
        return key[: key.index("}") + 1] + local_name
    return local_name
