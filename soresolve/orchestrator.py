"""Resolution orchestrator — concurrent query -> rank pipeline over all sonames."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor, as_completed

import structlog

from soresolve.exceptions import IndexUnavailable
from soresolve.index.base import PackageIndex
from soresolve.models.resolution import Resolution, ResolutionMap
from soresolve.progress import ProgressTracker, SonameProgress
from soresolve.ranker import CandidateRanker

log = structlog.get_logger("soresolve.orchestrator")

_DEFAULT_MAX_WORKERS = 8


class ResolutionOrchestrator:
    """
    Drive query (index) -> rank (ranker) for every soname on a bounded pool.

    Each worker finishes one soname before taking the next. Completed
    resolutions are published to the ResolutionMap from the collecting
    thread, once per soname.

    IndexUnavailable (or any unexpected worker error) aborts the run: sonames
    that have not started are skipped, in-flight ones finish, everything
    already resolved is dropped and the error is re-raised.
    """

    def __init__(
        self,
        index: PackageIndex,
        ranker: CandidateRanker,
        max_workers: int | None = None,
        progress_callbacks: list[Callable[[SonameProgress], None]] | None = None,
    ) -> None:
        if max_workers is not None and max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self.index = index
        self.ranker = ranker
        self.max_workers = max_workers
        self.progress_callbacks = list(progress_callbacks or [])
        self.progress = ProgressTracker()

    def _new_progress(self, total: int) -> ProgressTracker:
        """Create a fresh ProgressTracker for each resolve call."""
        tracker = ProgressTracker(total=total)
        tracker.callbacks.extend(self.progress_callbacks)
        return tracker

    def resolve(self, sonames: Iterable[str]) -> ResolutionMap:
        ordered = list(dict.fromkeys(sonames))
        progress = self._new_progress(len(ordered))
        self.progress = progress  # expose last run's progress for callers
        resolutions = ResolutionMap(ordered)

        if not ordered:
            return resolutions.freeze()

        workers = min(self.max_workers or _DEFAULT_MAX_WORKERS, len(ordered))
        stop = threading.Event()
        fatal: BaseException | None = None

        log.info("orchestrator.start", sonames=len(ordered), workers=workers, index=self.index.name)
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="soresolve")
        try:
            futures: dict[Future, str] = {
                executor.submit(self._resolve_one, soname, stop, progress): soname
                for soname in ordered
            }
            for future in as_completed(futures):
                if future.cancelled():
                    continue
                try:
                    resolution = future.result()
                except Exception as e:
                    if fatal is None:
                        fatal = e
                        stop.set()
                        for pending in futures:
                            pending.cancel()
                    else:
                        log.debug("orchestrator.secondary_error", soname=futures[future], exc_info=True)
                    continue
                if resolution is not None and fatal is None:
                    resolutions.record(resolution)
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

        if fatal is not None:
            log.error(
                "orchestrator.fatal",
                error=str(fatal),
                kind=type(fatal).__name__,
                discarded=len(resolutions),
            )
            raise fatal

        log.info(
            "orchestrator.done",
            resolved=len(resolutions.resolved()),
            unresolved=len(resolutions.unresolved()),
        )
        return resolutions.freeze()

    def _resolve_one(
        self,
        soname: str,
        stop: threading.Event,
        progress: ProgressTracker,
    ) -> Resolution | None:
        if stop.is_set():
            progress.skip(soname, "run aborted")
            return None

        progress.start(soname)
        try:
            candidates = self.index.query(soname)
            resolution = self.ranker.resolve(soname, candidates)
        except IndexUnavailable as e:
            progress.fail(soname, str(e))
            raise
        except Exception as e:
            log.error("orchestrator.worker_error", soname=soname, exc_info=True)
            progress.fail(soname, str(e))
            raise

        detail = (
            f"{resolution.chosen.package_id} ({resolution.method})"
            if resolution.chosen
            else resolution.status.value
        )
        progress.complete(soname, detail=detail)
        return resolution
