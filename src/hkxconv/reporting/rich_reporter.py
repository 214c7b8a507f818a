from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from .base import (
    Reporter,
    TaskRecord,
    TaskStatus,
    format_stats,
    get_verbosity,
)

_STATUS_ICON = {
    TaskStatus.SUCCESS: "[green]✔[/]",
    TaskStatus.FAILED: "[red]✖[/]",
}


class RichReporter(Reporter):
    """Console reporter with a progress bar per multi-stream task.

    Set ``HKXCONV_PROGRESS_TRANSIENT=1`` to clear bars on completion and print
    the completion lines afterwards.
    """

    def __init__(self, console: Console | None = None):
        super().__init__()
        self.console = console or Console(
            stderr=True, highlight=False, soft_wrap=False
        )
        self._transient = os.getenv(
            "HKXCONV_PROGRESS_TRANSIENT", "0"
        ).lower() in ("1", "true", "yes")
        self.progress: Progress | None = None
        self._bars: Dict[str, TaskID] = {}
        self._completions: List[str] = []

    def _ensure_progress(self) -> Progress:
        if self.progress is None:
            self.progress = Progress(
                SpinnerColumn(spinner_name="dots"),
                TextColumn("{task.description}", justify="left"),
                BarColumn(bar_width=None),
                TextColumn("{task.completed}/{task.total}"),
                TimeElapsedColumn(),
                transient=self._transient,
                console=self.console,
                expand=True,
            )
            self.progress.start()
        return self.progress

    # Tasks
    def start_task(
        self, task_id: str, name: str, total: int | None = None, **meta: Any
    ) -> Optional[TaskRecord]:
        rec = super().start_task(task_id, name, total, **meta)
        # Tasks without a known total are plain headers, not progress bars.
        if total is None:
            self.console.rule(escape(name))
        else:
            progress = self._ensure_progress()
            self._bars[task_id] = progress.add_task(escape(name), total=total)
        return rec

    def advance(
        self, task_id: str, step: int = 1, **meta: Any
    ) -> Optional[TaskRecord]:
        rec = super().advance(task_id, step, **meta)
        bar = self._bars.get(task_id)
        if rec is not None and bar is not None and self.progress is not None:
            item = meta.get("current_item")
            label = f"{rec.name} ↳ {item}" if item else rec.name
            self.progress.update(
                bar, completed=rec.completed, description=escape(label)
            )
        return rec

    def end_task(
        self,
        task_id: str,
        status: TaskStatus = TaskStatus.SUCCESS,
        **final_meta: Any,
    ) -> Optional[TaskRecord]:
        rec = super().end_task(task_id, status, **final_meta)
        if rec is None:
            return None
        bar = self._bars.pop(task_id, None)
        if bar is not None and self.progress is not None:
            self.progress.update(
                bar, completed=rec.total, description=escape(rec.name)
            )
        counter = f" {rec.counter}" if rec.total is not None else ""
        line = (
            f"{_STATUS_ICON.get(status, '')} {escape(rec.name)}{counter}"
            f" ({rec.duration:.2f}s){escape(format_stats(rec.meta))}"
        )
        if self._transient and self.progress is not None:
            self._completions.append(line)
        else:
            self.console.print(line)
        if not self._bars:
            self.flush()
        return rec

    # Messages
    def status(self, message: str, **fields: Any) -> None:
        self.console.print(f"[green]INFO[/]: {escape(message)}")

    def verbose(self, message: str, *, level: int = 1, **fields: Any) -> None:
        if get_verbosity() >= level:
            self.console.print(f"[cyan]VERB{level}[/]: {escape(message)}")

    def warning(self, message: str, **fields: Any) -> None:
        self.console.print(f"[yellow]WARN[/]: {escape(message)}")

    def error(self, message: str, **fields: Any) -> None:
        self.console.print(f"[bold red]ERROR[/]: {escape(message)}")

    def flush(self) -> None:
        if self.progress is None:
            return
        try:
            self.progress.stop()
        finally:
            self.progress = None
            if self._completions:
                self.console.print("\n".join(self._completions))
                self._completions.clear()
