"""apktailor CLI: Click-based command interface.

Provides one command per customization step plus a full pipeline:
- decode / build: apktool unpack and repack
- sign / align: jarsigner and zipalign
- replace-resources: overwrite existing files from a replacement tree
- patch-manifest / patch-strings / patch-version: in-place edits
- version-code: print the version code for a version name
- customize: run every step described by a YAML profile
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from tailor.command import Command
from tailor.pipeline import CustomizationPipeline
from tailor.versioning import VersionFormatError, version_code
from workbench.models import Profile, Settings, parse_assignment
from workbench.renderer import ProgressRenderer, print_pipeline_result

console = Console()

config_option = click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to YAML settings file.",
)
quiet_option = click.option("--quiet", is_flag=True, help="Don't echo tool output.")


@click.group()
@click.version_option(version="0.1.0", prog_name="apktailor")
def cli() -> None:
    """apktailor: rebrand and re-version Android APKs.

    Decodes an APK with apktool, patches manifest meta-data, strings and
    version, overlays replacement resources, then rebuilds, signs and
    aligns the result.
    """


@cli.command()
@click.argument("apk", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("out_dir", type=click.Path(file_okay=False, path_type=Path))
@config_option
@quiet_option
def decode(apk: Path, out_dir: Path, config_path: Path | None, quiet: bool) -> None:
    """Unpack APK into OUT_DIR with apktool."""
    command = _make_command(config_path, quiet)
    console.print(f"[cyan]Decoding {apk.name}...[/cyan]")
    _finish(command, command.decode_apk(apk, out_dir), f"Decoded into {out_dir}")


@cli.command()
@click.argument("src_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("out_apk", type=click.Path(dir_okay=False, path_type=Path))
@config_option
@quiet_option
def build(src_dir: Path, out_apk: Path, config_path: Path | None, quiet: bool) -> None:
    """Repack the decoded SRC_DIR into OUT_APK with apktool."""
    command = _make_command(config_path, quiet)
    console.print(f"[cyan]Building {out_apk.name}...[/cyan]")
    _finish(command, command.build_apk(src_dir, out_apk), f"Built {out_apk}")


@cli.command()
@click.argument("apk", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--keystore", type=click.Path(exists=True, dir_okay=False, path_type=Path), required=True, help="Keystore file.")
@click.option("--alias", required=True, help="Key alias in the keystore.")
@click.option("--password", prompt=True, hide_input=True, help="Keystore password.")
@click.option("--timestamp", is_flag=True, help="Timestamp the signature (needs network access).")
@config_option
@quiet_option
def sign(
    apk: Path,
    keystore: Path,
    alias: str,
    password: str,
    timestamp: bool,
    config_path: Path | None,
    quiet: bool,
) -> None:
    """Sign APK in place with jarsigner."""
    command = _make_command(config_path, quiet)
    console.print(f"[cyan]Signing {apk.name}...[/cyan]")
    if timestamp:
        ok = command.sign_apk_with_timestamp(keystore, apk, alias, password)
    else:
        ok = command.sign_apk(keystore, apk, alias, password)
    _finish(command, ok, f"Signed {apk}")


@cli.command()
@click.argument("apk", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("out_apk", type=click.Path(dir_okay=False, path_type=Path))
@config_option
@quiet_option
def align(apk: Path, out_apk: Path, config_path: Path | None, quiet: bool) -> None:
    """Write a zipaligned copy of APK to OUT_APK."""
    command = _make_command(config_path, quiet)
    console.print(f"[cyan]Aligning {apk.name}...[/cyan]")
    _finish(command, command.zipalign(apk, out_apk), f"Aligned {out_apk}")


@cli.command("replace-resources")
@click.argument("src_dir", type=click.Path(path_type=Path))
@click.argument("app_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@config_option
@quiet_option
def replace_resources(src_dir: Path, app_dir: Path, config_path: Path | None, quiet: bool) -> None:
    """Overwrite files in APP_DIR with same-named files from SRC_DIR.

    Only files that already exist in APP_DIR are replaced; nothing new is
    created.
    """
    command = _make_command(config_path, quiet)
    _finish(command, command.replace_resource(src_dir, app_dir), "Resources replaced")


@cli.command("patch-manifest")
@click.argument("app_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("-m", "--meta-data", "assignments", multiple=True, required=True, help="NAME=VALUE, repeatable.")
@config_option
@quiet_option
def patch_manifest(
    app_dir: Path,
    assignments: tuple[str, ...],
    config_path: Path | None,
    quiet: bool,
) -> None:
    """Set application meta-data values in APP_DIR/AndroidManifest.xml."""
    pairs = _parse_assignments(assignments)
    command = _make_command(config_path, quiet)
    _finish(command, command.update_manifest(app_dir, pairs), "Manifest patched")


@cli.command("patch-strings")
@click.argument("app_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("-s", "--string", "assignments", multiple=True, required=True, help="NAME=VALUE, repeatable.")
@config_option
@quiet_option
def patch_strings(
    app_dir: Path,
    assignments: tuple[str, ...],
    config_path: Path | None,
    quiet: bool,
) -> None:
    """Set string resources in APP_DIR/res/values/strings.xml."""
    pairs = _parse_assignments(assignments)
    command = _make_command(config_path, quiet)
    _finish(command, command.update_strings(app_dir, pairs), "Strings patched")


@cli.command("patch-version")
@click.argument("app_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("version")
@config_option
@quiet_option
def patch_version(app_dir: Path, version: str, config_path: Path | None, quiet: bool) -> None:
    """Set versionName to VERSION (x.y.z) and versionCode accordingly."""
    command = _make_command(config_path, quiet)
    ok = _guard_version(lambda: command.update_version_file(app_dir, version))
    _finish(command, ok, f"Version set to {version}")


@cli.command("version-code")
@click.argument("version")
def version_code_cmd(version: str) -> None:
    """Print the version code for VERSION (x.y.z)."""
    click.echo(_guard_version(lambda: version_code(version)))


@cli.command()
@click.argument("profile_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@config_option
@quiet_option
def customize(profile_path: Path, config_path: Path | None, quiet: bool) -> None:
    """Run the full customization described by PROFILE_PATH (YAML)."""
    try:
        profile = Profile.from_yaml(profile_path)
    except ValidationError as exc:
        console.print(f"[red]Invalid profile {profile_path}:[/red]\n{escape(str(exc))}")
        sys.exit(1)

    if profile.tools is not None and config_path is not None:
        console.print(
            f"[yellow]Profile {escape(str(profile_path))} has its own tools section; "
            f"ignoring --config {escape(str(config_path))}.[/yellow]"
        )
    tools = profile.tools or _load_settings(config_path).tools
    renderer = ProgressRenderer(console=console, quiet=quiet)
    pipeline = CustomizationPipeline.create(profile.to_job(), progress=renderer, tools=tools)

    console.print(f"[cyan]Customizing {profile.apk.name}...[/cyan]")
    result = pipeline.run()
    print_pipeline_result(result, console=console)

    if not result.succeeded:
        sys.exit(1)


# ── Helper functions ─────────────────────────────────────────

def _load_settings(config_path: Path | None) -> Settings:
    """Load settings from a file or use defaults."""
    if config_path is not None:
        return Settings.from_yaml(config_path)
    return Settings.default()


def _make_command(config_path: Path | None, quiet: bool) -> Command:
    settings = _load_settings(config_path)
    renderer = ProgressRenderer(console=console, quiet=quiet)
    return Command(progress=renderer, tools=settings.tools)


def _parse_assignments(assignments: tuple[str, ...]) -> list[tuple[str, str]]:
    try:
        return [parse_assignment(text) for text in assignments]
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc


def _guard_version(action: Callable[[], object]) -> object:
    """Run ``action``, exiting with an error on a malformed version."""
    try:
        return action()
    except VersionFormatError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        sys.exit(1)


def _finish(command: Command, ok: bool, message: str) -> None:
    """Report a step outcome and exit non-zero on failure."""
    returncode = command.last_returncode
    if returncode not in (None, 0):
        console.print(
            f"[yellow]Tool exited with status {returncode}; "
            "check its output above.[/yellow]"
        )
    if not ok:
        console.print("[red]Step failed.[/red]")
        sys.exit(1)
    console.print(f"[green]{message}[/green]")


if __name__ == "__main__":
    cli()
