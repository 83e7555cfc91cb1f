"""Rich-based rendering for apktailor.

Provides the progress callback the CLI hands to ``Command`` and the
summary table printed after a pipeline run.
"""

from __future__ import annotations

from collections import deque

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from tailor.pipeline import PipelineResult

# Step outcome → (label, style)
STEP_STATUS: dict[bool, tuple[str, str]] = {
    True: ("PASS", "green"),
    False: ("FAIL", "red bold"),
}


class ProgressRenderer:
    """Progress callback that prints narration lines to a Rich console.

    Tool output is printed dimmed; lines produced by apktailor itself
    (copies, patches) are highlighted. Every line is counted and the most
    recent ``history`` lines are kept so a caller can inspect them.

    Args:
        console: Rich Console instance for output.
        quiet: Count and keep lines without printing them.
        history: Number of recent lines to keep.
    """

    # Narration lines written by tailor itself rather than a child tool
    OWN_PREFIXES = ("Copying [", "Updated ")

    def __init__(
        self,
        console: Console | None = None,
        quiet: bool = False,
        history: int = 200,
    ) -> None:
        self.console: Console = console or Console()
        self.quiet: bool = quiet
        self.count: int = 0
        self.lines: deque[str] = deque(maxlen=history)

    def __call__(self, message: str) -> None:
        line = message.rstrip("\r\n")
        self.count += 1
        self.lines.append(line)
        if self.quiet:
            return
        style = "cyan" if line.startswith(self.OWN_PREFIXES) else "dim"
        self.console.print(Text(line, style=style))


def print_pipeline_result(result: PipelineResult, console: Console | None = None) -> None:
    """Print a per-step table and an overall verdict panel.

    Args:
        result: Completed pipeline run.
        console: Optional Rich Console instance.
    """
    console = console or Console()

    table = Table(title="Customization Steps", expand=True)
    table.add_column("#", justify="right", style="dim", width=3)
    table.add_column("Step", style="cyan")
    table.add_column("Result", width=6, no_wrap=True)

    for index, step in enumerate(result.steps, start=1):
        label, style = STEP_STATUS[step.passed]
        table.add_row(str(index), step.name, Text(label, style=style))

    console.print()
    console.print(table)

    if result.succeeded:
        body = f"[green bold]Customized APK: {result.output_apk}[/green bold]"
        border = "green"
    else:
        body = f"[red bold]Stopped at step '{result.failed_step}'[/red bold]"
        border = "red"
    console.print(Panel(body, title="Result", border_style=border))
