"""Synchronous subprocess runner shared by all tool-invoking operations.

The child's stderr is merged into stdout and every line is forwarded to
the progress callback as it arrives. Only one child runs at a time per
runner; concurrent callers block until the previous run's output has
been fully drained.

The child's exit status is recorded in ``last_returncode`` but does not
affect the result: a run succeeds whenever the process could be started
and its output read to the end.
"""

from __future__ import annotations

import subprocess
import threading
from typing import Sequence

from rich.console import Console

from tailor.progress import LINE_END, ProgressCallback, null_progress

# Diagnostics (tracebacks of caught failures) go to stderr
error_console = Console(stderr=True)


class CommandRunner:
    """Runs external tools one at a time, streaming output to a callback.

    Args:
        progress: Receives each output line, suffixed with a line end.
    """

    def __init__(self, progress: ProgressCallback | None = None) -> None:
        self.progress: ProgressCallback = progress or null_progress
        self.last_returncode: int | None = None
        self._lock = threading.Lock()

    def run(self, command: Sequence[str]) -> bool:
        """Run ``command`` to completion.

        Returns:
            True if the process started and its output was read to
            end-of-stream, False on launch or read failure.
        """
        with self._lock:
            self.last_returncode = None
            try:
                with subprocess.Popen(
                    list(command),
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    stdin=subprocess.DEVNULL,
                    text=True,
                    errors="replace",
                ) as process:
                    try:
                        for line in process.stdout:  # type: ignore[union-attr]
                            self.progress(line.rstrip("\r\n") + LINE_END)
                    except BaseException:
                        process.kill()
                        raise
                # Popen.__exit__ closes the pipe and waits for the child
                self.last_returncode = process.returncode
            except (OSError, subprocess.SubprocessError):
                error_console.print_exception()
                return False
            return True
