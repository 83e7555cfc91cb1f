"""Command facade over the APK customization steps.

Every step is an independent call that returns True on success and
False on failure. Failures are printed to stderr with their traceback
and never raised, with one exception: a malformed version name raises
``VersionFormatError`` to the caller. Sequencing the steps is left to
the caller (see ``tailor.pipeline``).

Steps that invoke external tools succeed whenever the tool could be
started and its output drained, regardless of its exit status. The
status of the last tool run is available as ``last_returncode``.
"""

from __future__ import annotations

import subprocess
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Iterable

from tailor import manifest, resources
from tailor.manifest import ManifestError
from tailor.progress import LINE_END, ProgressCallback, null_progress
from tailor.runner import CommandRunner, error_console
from tailor.tools import (
    ToolConfig,
    build_command,
    decode_command,
    sign_command,
    zipalign_command,
)
from tailor.versioning import version_code

# Failures converted to a False return at the step boundary
STEP_ERRORS = (
    OSError,
    subprocess.SubprocessError,
    ET.ParseError,
    ManifestError,
    UnicodeError,
)


class Command:
    """APK customization steps bound to a tool configuration.

    Args:
        progress: Receives narration lines. Defaults to discarding them.
        tools: External tool locations. Defaults to ``ToolConfig()``.
    """

    def __init__(
        self,
        progress: ProgressCallback | None = None,
        tools: ToolConfig | None = None,
    ) -> None:
        self.progress: ProgressCallback = progress or null_progress
        self.tools: ToolConfig = tools or ToolConfig()
        self.runner: CommandRunner = CommandRunner(self.progress)

    @property
    def last_returncode(self) -> int | None:
        """Exit status of the most recent tool run, if it started."""
        return self.runner.last_returncode

    # ── External tools ───────────────────────────────────────

    def decode_apk(self, apk_path: Path, out_dir: Path) -> bool:
        """Unpack ``apk_path`` into ``out_dir`` with apktool."""
        return self.runner.run(
            decode_command(self.tools, str(apk_path), str(out_dir))
        )

    def build_apk(self, src_dir: Path, out_apk: Path) -> bool:
        """Repack a decoded directory into ``out_apk`` with apktool."""
        return self.runner.run(
            build_command(self.tools, str(src_dir), str(out_apk))
        )

    def sign_apk(
        self, keystore: Path, apk_path: Path, alias: str, password: str
    ) -> bool:
        """Sign in place with jarsigner. Works offline."""
        return self.runner.run(
            sign_command(
                self.tools, str(keystore), str(apk_path), alias, password
            )
        )

    def sign_apk_with_timestamp(
        self, keystore: Path, apk_path: Path, alias: str, password: str
    ) -> bool:
        """Sign in place with jarsigner, timestamped by the configured TSA.

        Needs network access and blocks until the authority answers.
        """
        return self.runner.run(
            sign_command(
                self.tools, str(keystore), str(apk_path), alias, password,
                timestamp=True,
            )
        )

    def zipalign(self, apk_path: Path, out_apk: Path) -> bool:
        """Write a 4-byte aligned copy of ``apk_path`` to ``out_apk``."""
        return self.runner.run(
            zipalign_command(self.tools, str(apk_path), str(out_apk))
        )

    # ── File edits ───────────────────────────────────────────

    def replace_resource(self, source: Path, app_dir: Path) -> bool:
        """Overwrite files in ``app_dir`` with their counterparts in ``source``.

        Only files that already exist in ``app_dir`` are replaced. Returns
        False if any single copy failed; the remaining files are still
        copied.
        """
        ok = True
        try:
            for src, dst in resources.iter_overlay(
                source, app_dir, self.tools.hidden_prefix
            ):
                self.progress(f"Copying [{src}] -> [{dst}]{LINE_END}")
                ok = self.copy_file(src, dst) and ok
        except STEP_ERRORS:
            error_console.print_exception()
            return False
        return ok

    def update_manifest(
        self, app_dir: Path, meta_data: Iterable[tuple[str, str]]
    ) -> bool:
        """Patch application meta-data values in AndroidManifest.xml."""
        try:
            manifest.update_manifest(app_dir, meta_data, self.progress)
        except STEP_ERRORS:
            error_console.print_exception()
            return False
        return True

    def update_strings(
        self, app_dir: Path, strings: Iterable[tuple[str, str]]
    ) -> bool:
        """Patch string resources in res/values/strings.xml."""
        strings = list(strings)
        if not strings:
            return True
        try:
            manifest.update_strings(app_dir, strings, self.progress)
        except STEP_ERRORS:
            error_console.print_exception()
            return False
        return True

    def update_version_file(self, app_dir: Path, version_name: str) -> bool:
        """Rewrite versionCode/versionName in apktool.yml.

        Raises:
            VersionFormatError: If ``version_name`` is malformed.
        """
        try:
            manifest.update_apktool_yml(app_dir, version_name, self.progress)
        except STEP_ERRORS:
            error_console.print_exception()
            return False
        return True

    def version_code(self, version_name: str) -> str:
        """Encode ``major.minor.build`` as a version code string."""
        return version_code(version_name)

    def delete_tree(self, path: Path) -> bool:
        """Delete a file or a whole directory tree."""
        try:
            resources.delete_tree(path)
        except OSError:
            error_console.print_exception()
            return False
        return True

    def copy_file(self, source: Path, destination: Path) -> bool:
        """Copy the bytes of ``source`` over ``destination``."""
        try:
            resources.copy_file(source, destination)
        except OSError:
            error_console.print_exception()
            return False
        return True
