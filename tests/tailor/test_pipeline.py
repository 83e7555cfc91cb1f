"""Tests for the customization pipeline: step order, skipped steps, short-circuit."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from tailor.command import Command
from tailor.pipeline import CustomizationJob, CustomizationPipeline, SigningJob
from tailor.versioning import VersionFormatError


class FakeCommand(Command):
    """Records step calls; any method named in ``failing`` returns False."""

    def __init__(self, failing: tuple[str, ...] = ()) -> None:
        super().__init__()
        self.failing = failing
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    def _call(self, name: str, *args: Any) -> bool:
        self.calls.append((name, args))
        return name not in self.failing

    def decode_apk(self, *args: Any) -> bool:
        return self._call("decode_apk", *args)

    def replace_resource(self, *args: Any) -> bool:
        return self._call("replace_resource", *args)

    def update_manifest(self, *args: Any) -> bool:
        return self._call("update_manifest", *args)

    def update_strings(self, *args: Any) -> bool:
        return self._call("update_strings", *args)

    def update_version_file(self, *args: Any) -> bool:
        return self._call("update_version_file", *args)

    def build_apk(self, *args: Any) -> bool:
        return self._call("build_apk", *args)

    def sign_apk(self, *args: Any) -> bool:
        return self._call("sign_apk", *args)

    def sign_apk_with_timestamp(self, *args: Any) -> bool:
        return self._call("sign_apk_with_timestamp", *args)

    def zipalign(self, *args: Any) -> bool:
        return self._call("zipalign", *args)

    def copy_file(self, *args: Any) -> bool:
        return self._call("copy_file", *args)

    def delete_tree(self, *args: Any) -> bool:
        return self._call("delete_tree", *args)

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.calls]


def _job(tmp_path: Path, **overrides: Any) -> CustomizationJob:
    fields: dict[str, Any] = {
        "apk": tmp_path / "app.apk",
        "work_dir": tmp_path / "app",
        "output_apk": tmp_path / "app-custom.apk",
    }
    fields.update(overrides)
    return CustomizationJob(**fields)


def _full_job(tmp_path: Path, **overrides: Any) -> CustomizationJob:
    fields: dict[str, Any] = {
        "resources": tmp_path / "overlay",
        "meta_data": [("CHANNEL", "store")],
        "strings": [("app_name", "Branded")],
        "version": "1.2.3",
        "signing": SigningJob(keystore=tmp_path / "k.ks", alias="key0", password="pw"),
    }
    fields.update(overrides)
    return _job(tmp_path, **fields)


class TestPipelineOrdering:
    """Test which steps run and in what order."""

    def test_minimal_job(self, tmp_path: Path) -> None:
        command = FakeCommand()
        result = CustomizationPipeline(command, _job(tmp_path)).run()

        assert result.succeeded
        assert [s.name for s in result.steps] == ["decode", "build", "align", "cleanup"]
        assert command.names == [
            "decode_apk", "build_apk", "zipalign", "delete_tree", "delete_tree",
        ]

    def test_full_job(self, tmp_path: Path) -> None:
        command = FakeCommand()
        job = _full_job(tmp_path)
        result = CustomizationPipeline(command, job).run()

        assert result.succeeded
        assert [s.name for s in result.steps] == [
            "decode", "replace-resources", "patch-manifest", "patch-strings",
            "patch-version", "build", "sign", "align", "cleanup",
        ]
        assert command.calls[0] == ("decode_apk", (job.apk, job.work_dir))
        assert ("build_apk", (job.work_dir, job.unsigned_apk)) in command.calls
        assert ("sign_apk", (job.signing.keystore, job.unsigned_apk, "key0", "pw")) in command.calls
        assert ("zipalign", (job.unsigned_apk, job.output_apk)) in command.calls

    def test_timestamped_signing(self, tmp_path: Path) -> None:
        command = FakeCommand()
        signing = SigningJob(keystore=tmp_path / "k.ks", alias="a", password="p", timestamp=True)
        CustomizationPipeline(command, _job(tmp_path, signing=signing)).run()

        assert "sign_apk_with_timestamp" in command.names
        assert "sign_apk" not in command.names

    def test_no_align_copies(self, tmp_path: Path) -> None:
        command = FakeCommand()
        job = _job(tmp_path, align=False)
        CustomizationPipeline(command, job).run()

        assert "zipalign" not in command.names
        assert ("copy_file", (job.unsigned_apk, job.output_apk)) in command.calls

    def test_keep_work_dir(self, tmp_path: Path) -> None:
        command = FakeCommand()
        CustomizationPipeline(command, _job(tmp_path, keep_work_dir=True)).run()

        assert "delete_tree" not in command.names

    def test_unsigned_apk_next_to_work_dir(self, tmp_path: Path) -> None:
        job = _job(tmp_path)
        assert job.unsigned_apk == tmp_path / "app.unsigned.apk"


class TestPipelineShortCircuit:
    """Test that the first failing step stops the run."""

    @pytest.mark.parametrize(
        ("failing", "step"),
        [
            ("decode_apk", "decode"),
            ("update_manifest", "patch-manifest"),
            ("build_apk", "build"),
            ("sign_apk", "sign"),
        ],
    )
    def test_stops_at_failure(self, tmp_path: Path, failing: str, step: str) -> None:
        command = FakeCommand(failing=(failing,))
        result = CustomizationPipeline(command, _full_job(tmp_path)).run()

        assert not result.succeeded
        assert result.failed_step == step
        assert result.steps[-1].name == step
        assert command.names[-1] == failing

    def test_bad_version_raises_before_any_step(self, tmp_path: Path) -> None:
        command = FakeCommand()
        pipeline = CustomizationPipeline(command, _full_job(tmp_path, version="1.2"))

        with pytest.raises(VersionFormatError):
            pipeline.run()
        assert command.calls == []


class TestPipelineEndToEnd:
    """Run the real file steps with a scripted stand-in for the external tools."""

    def test_edits_reach_the_build(self, tmp_path: Path) -> None:
        work = tmp_path / "app"
        (work / "res").mkdir(parents=True)
        (work / "AndroidManifest.xml").write_text(
            '<manifest><application><meta-data name="CHANNEL" value="dev"/></application></manifest>',
            encoding="utf-8",
        )
        (work / "apktool.yml").write_text("  versionCode: '1'\n  versionName: 0.0.1\n", encoding="utf-8")
        (work / "res" / "icon.png").write_bytes(b"old")
        overlay = tmp_path / "overlay" / "res"
        overlay.mkdir(parents=True)
        (overlay / "icon.png").write_bytes(b"new")

        class ToolStub(Command):
            """File steps are real; tool steps only check the decoded tree."""

            def decode_apk(self, apk: Path, out_dir: Path) -> bool:
                return out_dir.is_dir()

            def build_apk(self, src_dir: Path, out_apk: Path) -> bool:
                out_apk.write_bytes((src_dir / "res" / "icon.png").read_bytes())
                return True

        job = _job(
            tmp_path,
            resources=tmp_path / "overlay",
            meta_data=[("CHANNEL", "store")],
            version="3.0.1",
            align=False,
            keep_work_dir=True,
        )
        result = CustomizationPipeline(ToolStub(), job).run()

        assert result.succeeded
        assert job.output_apk.read_bytes() == b"new"
        assert 'value="store"' in (work / "AndroidManifest.xml").read_text(encoding="utf-8")
        assert "  versionCode: '100030001'" in (work / "apktool.yml").read_text(encoding="utf-8")
