"""Reporter base class and process-wide reporting state.

A reporter sees two kinds of traffic: the lifecycle of conversion tasks
(start, one ``advance`` per stream, end) and one-line messages (status,
verbose, warning, error). The base class does the task bookkeeping and drops
every message, so a bare subclass is already a silent reporter; backends
override the hooks they render.
"""

from __future__ import annotations

import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, Optional

__all__ = [
    "TaskStatus",
    "TaskRecord",
    "Reporter",
    "SilentReporter",
    "set_reporter",
    "get_reporter",
    "set_verbosity",
    "get_verbosity",
    "task",
    "STAT_KEYS",
    "format_stats",
]

# Task metadata echoed on completion lines, in display order.
STAT_KEYS = ("kind", "streams", "roots", "bytes")


class TaskStatus(Enum):
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(slots=True)
class TaskRecord:
    task_id: str
    name: str
    total: Optional[int] = None
    completed: int = 0
    status: TaskStatus = TaskStatus.RUNNING
    started: float = field(default_factory=time.monotonic)
    finished: Optional[float] = None
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration(self) -> float:
        if self.finished is None:
            return 0.0
        return self.finished - self.started

    @property
    def counter(self) -> str:
        """``completed/total`` with ``?`` for an open-ended task."""
        total = "?" if self.total is None else self.total
        return f"{self.completed}/{total}"


def format_stats(meta: Dict[str, Any]) -> str:
    stats = [f"{key}={meta[key]}" for key in STAT_KEYS if key in meta]
    return f" [{' '.join(stats)}]" if stats else ""


class Reporter:
    def __init__(self) -> None:
        self._tasks: Dict[str, TaskRecord] = {}

    # Task bookkeeping; backends call super() and render the record.
    def start_task(
        self, task_id: str, name: str, total: int | None = None, **meta: Any
    ) -> Optional[TaskRecord]:
        rec = TaskRecord(task_id, name, total, meta=meta)
        self._tasks[task_id] = rec
        return rec

    def advance(
        self, task_id: str, step: int = 1, **meta: Any
    ) -> Optional[TaskRecord]:
        rec = self._tasks.get(task_id)
        if rec is not None:
            rec.completed += step
            rec.meta.update(meta)
        return rec

    def end_task(
        self,
        task_id: str,
        status: TaskStatus = TaskStatus.SUCCESS,
        **final_meta: Any,
    ) -> Optional[TaskRecord]:
        rec = self._tasks.pop(task_id, None)
        if rec is not None:
            rec.status = status
            rec.finished = time.monotonic()
            rec.meta.update(final_meta)
        return rec

    # Messages
    def status(self, message: str, **fields: Any) -> None:
        pass

    def verbose(self, message: str, *, level: int = 1, **fields: Any) -> None:
        pass

    def warning(self, message: str, **fields: Any) -> None:
        self.status(message, **fields)

    def error(self, message: str, **fields: Any) -> None:
        pass

    def flush(self) -> None:
        pass


class SilentReporter(Reporter):
    """``--reporter silent``: keeps task records, prints nothing."""


@dataclass
class _ReportingState:
    reporter: Optional[Reporter] = None
    verbosity: int = 0  # -v count from the CLI


_STATE = _ReportingState()


def set_verbosity(level: int) -> None:
    _STATE.verbosity = max(0, level)


def get_verbosity() -> int:
    return _STATE.verbosity


def set_reporter(rep: Reporter) -> None:
    _STATE.reporter = rep


def get_reporter() -> Reporter:
    if _STATE.reporter is None:
        from .plain import PlainReporter  # plain imports this module

        _STATE.reporter = PlainReporter(stream=sys.stderr)
    return _STATE.reporter


@contextmanager
def task(
    task_id: str, name: str, total: int | None = None, **meta: Any
) -> Iterator[Reporter]:
    """Run a block as a reported task; an exception marks it FAILED."""
    rep = get_reporter()
    rep.start_task(task_id, name, total, **meta)
    try:
        yield rep
    except Exception:
        rep.end_task(task_id, TaskStatus.FAILED)
        raise
    rep.end_task(task_id, TaskStatus.SUCCESS)
