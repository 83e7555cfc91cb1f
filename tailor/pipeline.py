"""End-to-end APK customization pipeline.

Sequences the independent ``Command`` steps for one customization job:

1. Decode the APK with apktool
2. Overlay replacement resources onto the decoded tree
3. Patch manifest meta-data
4. Patch string resources
5. Patch the version in apktool.yml
6. Rebuild the APK
7. Sign it with jarsigner
8. Align it with zipalign (or copy it) into the output path
9. Remove the intermediate files

A step only runs when the job asks for it, and the first failing step
stops the run. Signing precedes alignment because jarsigner rewrites
the archive and would undo the padding.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from tailor.command import Command
from tailor.tools import ToolConfig
from tailor.versioning import parse_version


@dataclass
class SigningJob:
    """Keystore credentials for the signing step."""

    keystore: Path
    alias: str
    password: str
    timestamp: bool = False


@dataclass
class CustomizationJob:
    """Everything one pipeline run needs to know."""

    apk: Path
    work_dir: Path
    output_apk: Path
    resources: Path | None = None
    meta_data: list[tuple[str, str]] = field(default_factory=list)
    strings: list[tuple[str, str]] = field(default_factory=list)
    version: str | None = None
    signing: SigningJob | None = None
    align: bool = True
    keep_work_dir: bool = False

    @property
    def unsigned_apk(self) -> Path:
        """Intermediate APK written by the rebuild step."""
        return self.work_dir.with_name(self.work_dir.name + ".unsigned.apk")


@dataclass
class StepResult:
    """Outcome of a single pipeline step."""

    name: str
    passed: bool


@dataclass
class PipelineResult:
    """Outcome of a pipeline run, in step order."""

    output_apk: Path
    steps: list[StepResult] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return all(step.passed for step in self.steps)

    @property
    def failed_step(self) -> str | None:
        for step in self.steps:
            if not step.passed:
                return step.name
        return None


class CustomizationPipeline:
    """Runs a ``CustomizationJob`` through a ``Command``.

    Args:
        command: Step implementation, carrying the progress callback.
        job: What to customize.
    """

    def __init__(self, command: Command, job: CustomizationJob) -> None:
        self.command: Command = command
        self.job: CustomizationJob = job

    @classmethod
    def create(
        cls,
        job: CustomizationJob,
        progress: Callable[[str], None] | None = None,
        tools: ToolConfig | None = None,
    ) -> CustomizationPipeline:
        """Build a pipeline with a fresh ``Command``."""
        return cls(Command(progress=progress, tools=tools), job)

    def run(self) -> PipelineResult:
        """Execute every requested step, stopping at the first failure.

        Raises:
            VersionFormatError: If the job's version is malformed. Raised
                before any step runs.
        """
        job = self.job
        if job.version is not None:
            parse_version(job.version)

        result = PipelineResult(output_apk=job.output_apk)

        for name, step in self._steps():
            passed = step()
            result.steps.append(StepResult(name=name, passed=passed))
            if not passed:
                break

        return result

    def _steps(self) -> list[tuple[str, Callable[[], bool]]]:
        """List the steps this job needs, in execution order."""
        command = self.command
        job = self.job
        steps: list[tuple[str, Callable[[], bool]]] = [
            ("decode", lambda: command.decode_apk(job.apk, job.work_dir)),
        ]

        if job.resources is not None:
            steps.append((
                "replace-resources",
                lambda: command.replace_resource(job.resources, job.work_dir),
            ))
        if job.meta_data:
            steps.append((
                "patch-manifest",
                lambda: command.update_manifest(job.work_dir, job.meta_data),
            ))
        if job.strings:
            steps.append((
                "patch-strings",
                lambda: command.update_strings(job.work_dir, job.strings),
            ))
        if job.version is not None:
            steps.append((
                "patch-version",
                lambda: command.update_version_file(job.work_dir, job.version),
            ))

        steps.append((
            "build",
            lambda: command.build_apk(job.work_dir, job.unsigned_apk),
        ))

        signing = job.signing
        if signing is not None:
            steps.append(("sign", lambda: self._sign(signing)))

        if job.align:
            steps.append((
                "align",
                lambda: command.zipalign(job.unsigned_apk, job.output_apk),
            ))
        else:
            steps.append((
                "copy",
                lambda: command.copy_file(job.unsigned_apk, job.output_apk),
            ))

        if not job.keep_work_dir:
            steps.append(("cleanup", self._cleanup))

        return steps

    def _sign(self, signing: SigningJob) -> bool:
        if signing.timestamp:
            return self.command.sign_apk_with_timestamp(
                signing.keystore, self.job.unsigned_apk,
                signing.alias, signing.password,
            )
        return self.command.sign_apk(
            signing.keystore, self.job.unsigned_apk,
            signing.alias, signing.password,
        )

    def _cleanup(self) -> bool:
        deleted_dir = self.command.delete_tree(self.job.work_dir)
        deleted_apk = self.command.delete_tree(self.job.unsigned_apk)
        return deleted_dir and deleted_apk
