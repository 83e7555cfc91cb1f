"""Argument templates for the external APK tools.

apktool decodes and rebuilds, jarsigner signs (optionally against a
timestamp authority, which needs network access) and zipalign pads
archive entries to 4-byte boundaries. None of the tools is checked for
before use; a missing executable surfaces as a launch failure in the
runner.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# Timestamp authority used for timestamped signatures
DEFAULT_TSA_URL = "https://timestamp.geotrust.com/tsa"

# apktool ships as a jar expected in the working directory
DEFAULT_APKTOOL = ["java", "-jar", "apktool.jar"]

SIGNATURE_ALGORITHM = "SHA1withRSA"
DIGEST_ALGORITHM = "SHA1"
ALIGNMENT = "4"


class ToolConfig(BaseModel):
    """Locations of the external tools and their fixed settings."""

    apktool: list[str] = Field(default_factory=lambda: list(DEFAULT_APKTOOL))
    jarsigner: str = "jarsigner"
    zipalign: str = "zipalign"
    tsa_url: str = DEFAULT_TSA_URL
    hidden_prefix: str = "."


def decode_command(tools: ToolConfig, apk_path: str, out_dir: str) -> list[str]:
    """apktool d -f <apk> -o <out_dir>"""
    return [*tools.apktool, "d", "-f", apk_path, "-o", out_dir]


def build_command(tools: ToolConfig, src_dir: str, out_apk: str) -> list[str]:
    """apktool b <src_dir> -o <out_apk>"""
    return [*tools.apktool, "b", src_dir, "-o", out_apk]


def sign_command(
    tools: ToolConfig,
    keystore: str,
    apk_path: str,
    alias: str,
    password: str,
    timestamp: bool = False,
) -> list[str]:
    """Build a jarsigner invocation, with or without a timestamp authority."""
    command = [tools.jarsigner, "-verbose", "-sigalg", SIGNATURE_ALGORITHM]
    if timestamp:
        command += ["-tsa", tools.tsa_url]
    command += [
        "-digestalg", DIGEST_ALGORITHM,
        "-keystore", keystore,
        apk_path,
        alias,
        "-storepass", password,
    ]
    return command


def zipalign_command(tools: ToolConfig, apk_path: str, out_apk: str) -> list[str]:
    """zipalign -f -v 4 <apk> <out_apk>"""
    return [tools.zipalign, "-f", "-v", ALIGNMENT, apk_path, out_apk]
