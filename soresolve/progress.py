"""Progress tracking for per-soname resolution."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

import structlog

log = structlog.get_logger("soresolve.progress")


@dataclass
class SonameProgress:
    soname: str
    status: str = "pending"  # "pending" | "running" | "completed" | "failed" | "skipped"
    start_time: float | None = None
    end_time: float | None = None
    detail: str = ""
    error: str | None = None

    @property
    def duration(self) -> float | None:
        if self.start_time and self.end_time:
            return round(self.end_time - self.start_time, 2)
        return None

    @property
    def finished(self) -> bool:
        return self.status in ("completed", "failed", "skipped")


class ProgressTracker:
    """Track progress of resolution workers.

    Safe to update from several threads. Callbacks run on the updating thread
    and must not raise; errors are logged and ignored.
    """

    def __init__(self, total: int = 0) -> None:
        self.total = total
        self.entries: list[SonameProgress] = []
        self._by_name: dict[str, SonameProgress] = {}
        self._lock = threading.Lock()
        self.callbacks: list[Callable[[SonameProgress], None]] = []

    def start(self, soname: str) -> None:
        p = SonameProgress(soname=soname, status="running", start_time=time.monotonic())
        with self._lock:
            self.entries.append(p)
            self._by_name[soname] = p
        self._notify(p)

    def complete(self, soname: str, detail: str = "") -> None:
        p = self._finish(soname, "completed")
        if p:
            p.detail = detail
            self._notify(p)

    def fail(self, soname: str, error: str) -> None:
        p = self._finish(soname, "failed")
        if p:
            p.error = error
            self._notify(p)

    def skip(self, soname: str, reason: str) -> None:
        p = SonameProgress(soname=soname, status="skipped", detail=reason)
        with self._lock:
            self.entries.append(p)
            self._by_name[soname] = p
        self._notify(p)

    @property
    def done(self) -> int:
        with self._lock:
            return sum(1 for p in self.entries if p.finished)

    def get_summary(self) -> dict[str, Any]:
        with self._lock:
            entries = list(self.entries)
        return {
            "total": self.total,
            "done": sum(1 for p in entries if p.finished),
            "sonames": [
                {
                    "soname": p.soname,
                    "status": p.status,
                    "duration": p.duration,
                    "detail": p.detail,
                    "error": p.error,
                }
                for p in entries
            ],
        }

    def _finish(self, soname: str, status: str) -> SonameProgress | None:
        with self._lock:
            p = self._by_name.get(soname)
            if p:
                p.status = status
                p.end_time = time.monotonic()
            return p

    def _notify(self, p: SonameProgress) -> None:
        for cb in self.callbacks:
            try:
                cb(p)
            except Exception:
                log.debug("progress.callback_error", soname=p.soname, exc_info=True)
