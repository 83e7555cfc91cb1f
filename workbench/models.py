"""Pydantic models for apktailor configuration.

- MetaData / StringEntry: name/value edits requested by the operator
- SigningConfig: keystore credentials
- Settings: tool configuration loaded from YAML
- Profile: a complete customization job loaded from YAML
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from tailor.pipeline import CustomizationJob, SigningJob
from tailor.tools import ToolConfig
from tailor.versioning import parse_version

# Default settings file, relative to the project root
DEFAULT_SETTINGS_PATH = Path(__file__).parent.parent / "config" / "default.yaml"


class MetaData(BaseModel):
    """A ``<meta-data android:name=... android:value=...>`` entry to set."""

    name: str
    value: str

    @field_validator("value", mode="before")
    @classmethod
    def coerce_scalar(cls, value: Any) -> Any:
        # YAML turns bare numbers and booleans into non-strings
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return str(value)
        return value

    def as_pair(self) -> tuple[str, str]:
        return self.name, self.value


class StringEntry(MetaData):
    """A ``<string name=...>`` resource whose text should be replaced."""


class SigningConfig(BaseModel):
    """Keystore credentials for jarsigner."""

    keystore: Path
    alias: str
    password: str
    timestamp: bool = False


def _load_yaml(path: Path) -> dict[str, Any]:
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    return raw or {}


class Settings(BaseModel):
    """Top-level tool settings loaded from YAML.

    Sections:
    - tools: external tool locations and fixed tool options
    """

    tools: ToolConfig = Field(default_factory=ToolConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> Settings:
        """Load settings from a YAML file.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            yaml.YAMLError: If the YAML is malformed.
        """
        return cls.model_validate(_load_yaml(path))

    @classmethod
    def default(cls) -> Settings:
        """Load config/default.yaml, or built-in defaults if it is missing."""
        if DEFAULT_SETTINGS_PATH.exists():
            return cls.from_yaml(DEFAULT_SETTINGS_PATH)
        return cls()


class Profile(BaseModel):
    """A customization job: which APK, what to change, where to write it.

    Relative paths in a profile file are resolved against the directory
    containing the file.
    """

    apk: Path
    output_apk: Path
    work_dir: Path | None = None
    resources: Path | None = None
    meta_data: list[MetaData] = Field(default_factory=list)
    strings: list[StringEntry] = Field(default_factory=list)
    version: str | None = None
    signing: SigningConfig | None = None
    align: bool = True
    keep_work_dir: bool = False
    tools: ToolConfig | None = None

    @field_validator("version", mode="before")
    @classmethod
    def check_version(cls, value: Any) -> Any:
        if value is None:
            return value
        value = str(value)
        parse_version(value)
        return value

    @classmethod
    def from_yaml(cls, path: Path) -> Profile:
        """Load a profile, resolving relative paths against its directory."""
        profile = cls.model_validate(_load_yaml(path))
        return profile.resolved(path.parent)

    def resolved(self, base: Path) -> Profile:
        """Return a copy with every relative path made relative to ``base``."""

        def resolve(value: Path | None) -> Path | None:
            if value is None or value.is_absolute():
                return value
            return base / value

        update: dict[str, Any] = {
            "apk": resolve(self.apk),
            "output_apk": resolve(self.output_apk),
            "work_dir": resolve(self.work_dir),
            "resources": resolve(self.resources),
        }
        if self.signing is not None:
            update["signing"] = self.signing.model_copy(
                update={"keystore": resolve(self.signing.keystore)}
            )
        return self.model_copy(update=update)

    def effective_work_dir(self) -> Path:
        """Work directory, defaulting to ``<apk stem>`` next to the output."""
        if self.work_dir is not None:
            return self.work_dir
        return self.output_apk.with_name(self.apk.stem)

    def to_job(self) -> CustomizationJob:
        """Convert to the pipeline's job description."""
        signing = None
        if self.signing is not None:
            signing = SigningJob(
                keystore=self.signing.keystore,
                alias=self.signing.alias,
                password=self.signing.password,
                timestamp=self.signing.timestamp,
            )
        return CustomizationJob(
            apk=self.apk,
            work_dir=self.effective_work_dir(),
            output_apk=self.output_apk,
            resources=self.resources,
            meta_data=[entry.as_pair() for entry in self.meta_data],
            strings=[entry.as_pair() for entry in self.strings],
            version=self.version,
            signing=signing,
            align=self.align,
            keep_work_dir=self.keep_work_dir,
        )


def parse_assignment(text: str) -> tuple[str, str]:
    """Split ``NAME=VALUE`` at the first '='.

    Raises:
        ValueError: If there is no '=' or the name is empty.
    """
    name, sep, value = text.partition("=")
    if not sep or not name:
        raise ValueError(f"Expected NAME=VALUE, got {text!r}")
    return name, value
