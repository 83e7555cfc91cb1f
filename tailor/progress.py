"""Progress narration for customization operations.

Every operation narrates what it does (subprocess output, copied files,
patched attributes) as human-readable lines. Consumers pass a callable
that receives one line per call; nothing is buffered and the return
value is ignored.
"""

from __future__ import annotations

from typing import Callable

ProgressCallback = Callable[[str], None]

# Appended to every narration line
LINE_END = "\n"


def null_progress(message: str) -> None:
    """Discard a narration line. Used when no callback is supplied."""
