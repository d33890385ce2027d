from __future__ import annotations

import json
import sys
import time
from typing import Any, Dict

from .base import Reporter, TaskStatus, TaskRecord, get_verbosity


class JsonLinesReporter(Reporter):
    """One JSON object per line on stdout.

    Task events carry the task ``id`` and its ``completed``/``total``
    counters; progress events name the ``property`` that was just handled.
    """

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout
        self._tasks: Dict[str, TaskRecord] = {}

    def _emit(self, event: str, **payload: Any) -> None:
        payload["event"] = event
        self.stream.write(json.dumps(payload, sort_keys=True, default=str) + "\n")

    def _task_event(self, event: str, rec: TaskRecord, **extra: Any) -> None:
        self._emit(
            event,
            id=rec.task_id,
            completed=rec.completed,
            total=rec.total,
            **extra,
        )

    def start_task(
        self, task_id: str, name: str, total: int | None = None, **meta: Any
    ) -> None:
        rec = TaskRecord(task_id, name, total, meta=meta)
        self._tasks[task_id] = rec
        self._task_event("task_start", rec, name=name, **meta)

    def advance(self, task_id: str, step: int = 1, **meta: Any) -> None:
        rec = self._tasks.get(task_id)
        if rec is None:
            return
        rec.completed += step
        self._task_event("task_progress", rec, property=meta.get("current_item"))

    def end_task(
        self,
        task_id: str,
        status: TaskStatus = TaskStatus.SUCCESS,
        **final_meta: Any,
    ) -> None:
        rec = self._tasks.pop(task_id, None)
        if rec is None:
            return
        rec.status = status
        rec.end_time = time.time()
        rec.meta.update(final_meta)
        self._task_event(
            "task_end",
            rec,
            status=status.name.lower(),
            duration_seconds=round(rec.duration, 6),
            **rec.meta,
        )

    def status(self, message: str, **fields: Any) -> None:
        self._emit("status", level="info", message=message, **fields)

    def verbose(self, message: str, *, level: int = 1, **fields: Any) -> None:
        if get_verbosity() >= level:
            self._emit("status", level=f"verbose{level}", message=message, **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._emit("status", level="warning", message=message, **fields)

    def error(self, message: str, **fields: Any) -> None:
        self._emit("status", level="error", message=message, **fields)

    def section(self, title: str) -> None:
        self._emit("section", title=title)

    def flush(self) -> None:
        self.stream.flush()
