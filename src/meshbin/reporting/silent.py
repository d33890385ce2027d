from __future__ import annotations

from typing import Any

from .base import Reporter


class SilentReporter(Reporter):
    """Drops every event. Selected by ``-r silent`` and used in tests."""

    def _discard(self, *args: Any, **kwargs: Any) -> None:
        return None

    start_task = advance = end_task = _discard
    status = warning = error = section = _discard
