from __future__ import annotations

import sys
from typing import Any, Optional, TextIO

from .base import (
    Reporter,
    TaskRecord,
    TaskStatus,
    format_stats,
    get_verbosity,
)

ICONS = {
    TaskStatus.SUCCESS: "✔",
    TaskStatus.FAILED: "✖",
}

# (label, ANSI colour) per message level
_LEVELS = {
    "info": ("INFO", "32"),
    "warning": ("WARN", "33"),
    "error": ("ERROR", "31"),
}


class PlainReporter(Reporter):
    """Line-oriented stderr reporter; colour only when the stream is a TTY."""

    def __init__(
        self, stream: Optional[TextIO] = None, use_color: bool | None = None
    ):
        super().__init__()
        self.stream = stream or sys.stderr
        if use_color is None:
            use_color = getattr(self.stream, "isatty", lambda: False)()
        self.use_color = use_color

    def _line(self, label: str, colour: str, message: str) -> None:
        if self.use_color:
            label = f"\x1b[{colour}m{label}\x1b[0m"
        self.stream.write(f"{label}: {message}\n")

    def advance(
        self, task_id: str, step: int = 1, **meta: Any
    ) -> Optional[TaskRecord]:
        rec = super().advance(task_id, step, **meta)
        if rec is not None:
            item = meta.get("current_item") or f"stream#{rec.completed}"
            self.stream.write(f"   · {rec.name}: {item} ({rec.counter})\n")
        return rec

    def end_task(
        self,
        task_id: str,
        status: TaskStatus = TaskStatus.SUCCESS,
        **final_meta: Any,
    ) -> Optional[TaskRecord]:
        rec = super().end_task(task_id, status, **final_meta)
        if rec is not None:
            counter = f" {rec.counter}" if rec.total is not None else ""
            self.stream.write(
                f" {ICONS.get(status, '?')} {rec.name}{counter}"
                f" ({rec.duration:.2f}s){format_stats(rec.meta)}\n"
            )
        return rec

    def status(self, message: str, **fields: Any) -> None:
        self._line(*_LEVELS["info"], message)

    def verbose(self, message: str, *, level: int = 1, **fields: Any) -> None:
        if get_verbosity() >= level:
            self._line(f"VERB{level}", "36", message)

    def warning(self, message: str, **fields: Any) -> None:
        self._line(*_LEVELS["warning"], message)

    def error(self, message: str, **fields: Any) -> None:
        self._line(*_LEVELS["error"], message)
