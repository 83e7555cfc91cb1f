"""File tree helpers: resource overlay, recursive delete, file copy.

The overlay has copy-into-existing-skeleton semantics. It walks the
source tree and only ever overwrites files that already exist at the
mirrored destination path; it never creates files or directories.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Iterator


def iter_overlay(
    source: Path,
    destination: Path,
    hidden_prefix: str = ".",
) -> Iterator[tuple[Path, Path]]:
    """Yield ``(source_file, destination_file)`` pairs to overwrite.

    Entries whose name starts with ``hidden_prefix`` are skipped at every
    depth. A source file is only paired when its mirrored destination
    already exists, so a missing destination directory silently prunes
    that branch.

    Args:
        source: Replacement tree (or a single file).
        destination: Existing tree to overwrite into.
        hidden_prefix: Name prefix marking entries to ignore.
    """
    if not source.exists():
        return

    stack: list[tuple[Path, Path]] = [(source, destination)]
    while stack:
        src, dst = stack.pop()
        if src.is_dir():
            children = sorted(
                (child for child in src.iterdir()
                 if not child.name.startswith(hidden_prefix)),
                reverse=True,
            )
            for child in children:
                stack.append((child, dst / child.name))
        elif dst.exists():
            yield src, dst


def copy_file(source: Path, destination: Path) -> None:
    """Overwrite ``destination`` with the bytes of ``source``."""
    shutil.copyfile(source, destination)


def delete_tree(path: Path) -> None:
    """Delete a file, or a directory and everything below it.

    Children are removed before their parent. Symlinks are removed, never
    followed. A path that does not exist is left alone.
    """
    if not path.exists() and not path.is_symlink():
        return

    # (path, expanded): directories are pushed twice, the second time for rmdir
    stack: list[tuple[Path, bool]] = [(path, False)]
    while stack:
        current, expanded = stack.pop()
        if current.is_symlink() or not current.is_dir():
            current.unlink()
        elif expanded:
            current.rmdir()
        else:
            stack.append((current, True))
            stack.extend((child, False) for child in current.iterdir())
