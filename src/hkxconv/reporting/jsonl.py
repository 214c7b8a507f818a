from __future__ import annotations

import json
import sys
from typing import Any, Dict, Optional, TextIO

from .base import Reporter, TaskRecord, TaskStatus, get_verbosity

# Status messages starting with one of these prefixes also emit a structured
# ``summary`` event parsed from their ``key=value`` tokens.
SUMMARY_PREFIXES: Dict[str, str] = {
    "decode summary": "decode",
    "encode summary": "encode",
    "convert summary": "convert",
    "inspect summary": "inspect",
}


def _summary_fields(message: str) -> Dict[str, str]:
    _, _, tail = message.partition(":")
    return dict(
        token.split("=", 1) for token in tail.split() if "=" in token
    )


class JsonLinesReporter(Reporter):
    """One JSON object per line on stdout, for scripts driving the CLI."""

    def __init__(self, stream: Optional[TextIO] = None):
        super().__init__()
        self.stream = stream or sys.stdout

    def _emit(self, event: str, payload: Dict[str, Any]) -> None:
        record = {"event": event, **payload}
        line = json.dumps(record, sort_keys=True, default=str)
        self.stream.write(line + "\n")

    def start_task(
        self, task_id: str, name: str, total: int | None = None, **meta: Any
    ) -> Optional[TaskRecord]:
        rec = super().start_task(task_id, name, total, **meta)
        self._emit(
            "task_start", {"id": task_id, "name": name, "total": total, **meta}
        )
        return rec

    def advance(
        self, task_id: str, step: int = 1, **meta: Any
    ) -> Optional[TaskRecord]:
        rec = super().advance(task_id, step, **meta)
        if rec is not None:
            self._emit(
                "task_progress",
                {"id": task_id, "completed": rec.completed, **meta},
            )
        return rec

    def end_task(
        self,
        task_id: str,
        status: TaskStatus = TaskStatus.SUCCESS,
        **final_meta: Any,
    ) -> Optional[TaskRecord]:
        rec = super().end_task(task_id, status, **final_meta)
        if rec is not None:
            self._emit(
                "task_end",
                {
                    "id": task_id,
                    "status": status.value,
                    "completed": rec.completed,
                    "total": rec.total,
                    "duration_seconds": rec.duration,
                    **rec.meta,
                },
            )
        return rec

    def status(self, message: str, **fields: Any) -> None:
        lower = message.lower()
        for prefix, summary_type in SUMMARY_PREFIXES.items():
            if lower.startswith(prefix):
                self._emit(
                    "summary",
                    {
                        "summary_type": summary_type,
                        "level": "info",
                        "raw": message,
                        **_summary_fields(message),
                        **fields,
                    },
                )
                break
        self._emit("status", {"message": message, "level": "info", **fields})

    def verbose(self, message: str, *, level: int = 1, **fields: Any) -> None:
        if get_verbosity() >= level:
            self._emit(
                "status",
                {
                    "message": message,
                    "level": f"verbose{level}",
                    "vlevel": level,
                    **fields,
                },
            )

    def warning(self, message: str, **fields: Any) -> None:
        self._emit(
            "status", {"message": message, "level": "warning", **fields}
        )

    def error(self, message: str, **fields: Any) -> None:
        self._emit("status", {"message": message, "level": "error", **fields})
