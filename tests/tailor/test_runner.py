"""Tests for the subprocess runner: output streaming, exit status, serialization."""

from __future__ import annotations

import sys
import threading
from pathlib import Path

from tailor.runner import CommandRunner


def _python(code: str) -> list[str]:
    return [sys.executable, "-c", code]


class TestCommandRunner:
    """Test CommandRunner.run."""

    def test_streams_lines_to_progress(self) -> None:
        lines: list[str] = []
        runner = CommandRunner(lines.append)

        ok = runner.run(_python("print('one'); print('two')"))

        assert ok is True
        assert lines == ["one\n", "two\n"]
        assert runner.last_returncode == 0

    def test_stderr_merged_into_output(self) -> None:
        lines: list[str] = []
        runner = CommandRunner(lines.append)

        runner.run(_python(
            "import sys; print('out', flush=True); "
            "print('err', file=sys.stderr, flush=True)"
        ))

        assert lines == ["out\n", "err\n"]

    def test_nonzero_exit_still_succeeds(self) -> None:
        """A tool that starts and exits with an error counts as a successful run."""
        lines: list[str] = []
        runner = CommandRunner(lines.append)

        ok = runner.run(_python("import sys; print('boom'); sys.exit(3)"))

        assert ok is True
        assert lines == ["boom\n"]
        assert runner.last_returncode == 3

    def test_launch_failure_returns_false(self, tmp_path: Path) -> None:
        runner = CommandRunner()
        ok = runner.run([str(tmp_path / "no-such-tool"), "--version"])

        assert ok is False
        assert runner.last_returncode is None

    def test_no_callback_is_fine(self) -> None:
        assert CommandRunner().run(_python("print('ignored')")) is True

    def test_crlf_output_normalized(self) -> None:
        lines: list[str] = []
        runner = CommandRunner(lines.append)

        runner.run(_python("import sys; sys.stdout.write('a\\r\\nb\\r\\n')"))

        assert lines == ["a\n", "b\n"]

    def test_runs_are_serialized(self) -> None:
        """Output of concurrent runs never interleaves."""
        lines: list[str] = []
        runner = CommandRunner(lines.append)
        script = (
            "import sys, time; tag = sys.argv[1]; "
            "print(tag + '-start', flush=True); time.sleep(0.3); "
            "print(tag + '-end', flush=True)"
        )

        threads = [
            threading.Thread(target=runner.run, args=(_python(script) + [tag],))
            for tag in ("a", "b")
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(lines) == 4
        first = lines[0].split("-")[0]
        second = "b" if first == "a" else "a"
        assert lines == [
            f"{first}-start\n", f"{first}-end\n",
            f"{second}-start\n", f"{second}-end\n",
        ]
