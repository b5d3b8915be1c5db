"""LibraryResolver facade — scan, resolve, emit and report in one call.

Usage::

    resolver = LibraryResolver(NixLocateIndex(), chooser=PromptChooser())
    report = resolver.wrap(WrapRequest(binary="./game", args=["--windowed"]))
    for soname in report.unresolved:
        ...
"""

from __future__ import annotations

import errno
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from soresolve.console import Chooser
from soresolve.emitter import EnvironmentEmitter, default_wrapper_path
from soresolve.exceptions import BinaryIOError
from soresolve.index.base import PackageIndex
from soresolve.models.report import ResolutionReport
from soresolve.models.resolution import ResolutionMap
from soresolve.orchestrator import ResolutionOrchestrator
from soresolve.progress import SonameProgress
from soresolve.ranker import CandidateRanker
from soresolve.scanner import BinaryScanner

log = structlog.get_logger("soresolve.api")

MODES = ("ld-path", "fhs")


def _check_target(target: Path, binary: Path) -> None:
    """Refuse a wrapper path that is (or links to) the binary itself."""
    same = target.resolve() == binary.resolve()
    if not same and target.exists() and binary.exists():
        same = os.path.samefile(target, binary)
    if same:
        raise BinaryIOError(
            errno.EEXIST,
            f"Wrapper path {target} is the binary itself; choose another with -o/--output",
        )


@dataclass
class WrapRequest:
    """Input for a full wrap run."""

    binary: str
    args: list[str] = field(default_factory=list)
    extra_sonames: list[str] = field(default_factory=list)
    pinned_packages: list[str] = field(default_factory=list)
    output: str | None = None
    mode: str = "ld-path"


class LibraryResolver:
    """Coordinate scanner + orchestrator + emitter.

    Fatal errors (FormatError, BinaryIOError, IndexUnavailable) propagate
    before anything is written; per-soname failures end up in the report.
    """

    def __init__(
        self,
        index: PackageIndex,
        chooser: Chooser | None = None,
        scanner: BinaryScanner | None = None,
        emitter: EnvironmentEmitter | None = None,
        max_workers: int | None = None,
        progress_callbacks: list[Callable[[SonameProgress], None]] | None = None,
    ) -> None:
        self.index = index
        self.chooser = chooser
        self.scanner = scanner or BinaryScanner()
        self.emitter = emitter or EnvironmentEmitter()
        self.max_workers = max_workers
        self.progress_callbacks = list(progress_callbacks or [])
        self.orchestrator: ResolutionOrchestrator | None = None

    def resolve(
        self,
        sonames: list[str],
        pinned_packages: list[str] | None = None,
    ) -> ResolutionMap:
        """Resolve an explicit soname list (no scan, nothing written)."""
        ranker = CandidateRanker(self.chooser, pinned_packages or [])
        self.orchestrator = ResolutionOrchestrator(
            self.index,
            ranker,
            max_workers=self.max_workers,
            progress_callbacks=self.progress_callbacks,
        )
        return self.orchestrator.resolve(sonames)

    def wrap(self, request: WrapRequest) -> ResolutionReport:
        if request.mode not in MODES:
            raise ValueError(f"Unknown mode {request.mode!r}, expected one of {MODES}")

        target = Path(request.output) if request.output else default_wrapper_path(request.binary)
        _check_target(target, Path(request.binary))

        sonames = self.scanner.scan(request.binary, request.extra_sonames)
        resolutions = self.resolve(sonames, request.pinned_packages)

        env = self.emitter.build_environment(resolutions, request.binary, request.args)
        unresolved = [r.soname for r in resolutions.unresolved()]
        packages = sorted(
            {r.chosen.package_id for r in resolutions.resolved()} | set(request.pinned_packages)
        )

        if request.mode == "fhs":
            script = self.emitter.render_fhs_script(request.binary, packages, request.args)
        else:
            script = self.emitter.render_script(env, unresolved)

        written = self.emitter.write_script(script, target)

        if unresolved:
            log.warning("api.unresolved", binary=request.binary, sonames=unresolved)

        return ResolutionReport(
            binary=env.binary,
            resolutions=list(resolutions.values()),
            environment=env,
            wrapper_path=str(written),
            mode=request.mode,
            packages=packages,
        )
