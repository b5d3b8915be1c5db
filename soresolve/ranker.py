"""Candidate ranking and disambiguation for a single soname."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import structlog

from soresolve.console import Chooser, DecliningChooser, ExclusiveChooser
from soresolve.models.resolution import Candidate, Resolution, ResolutionStatus

log = structlog.get_logger("soresolve.ranker")

MATCH_EXACT = 2
MATCH_PARTIAL = 1
MATCH_NONE = 0


def match_quality(soname: str, file_name: str) -> int:
    """How well a provided file name matches the requested soname."""
    if file_name == soname:
        return MATCH_EXACT
    if file_name.startswith(soname) or soname.startswith(file_name):
        return MATCH_PARTIAL
    # vendor-prefixed copies, e.g. compat-libfoo.so.1
    if file_name.endswith(soname):
        return MATCH_PARTIAL
    return MATCH_NONE


class CandidateRanker:
    """
    Reduce one soname's candidates to a Resolution.

    Score (higher wins): (pinned package, basename match quality, -len(package_id)).
    Candidates are ordered by score, then by (package_id, store_path,
    provided_file_path) so the order is total and independent of how the
    index happened to return them. Only candidates sharing the top score are
    considered tied; ties go to the chooser, whose calls are serialized.

    No index or filesystem access happens here.
    """

    def __init__(
        self,
        chooser: Chooser | None = None,
        pinned_packages: Iterable[str] = (),
    ) -> None:
        chooser = chooser or DecliningChooser()
        self.chooser = chooser if isinstance(chooser, ExclusiveChooser) else ExclusiveChooser(chooser)
        self.pinned = frozenset(pinned_packages)

    def score(self, soname: str, cand: Candidate) -> tuple[int, int, int]:
        return (
            int(cand.package_id in self.pinned),
            match_quality(soname, cand.file_name),
            -len(cand.package_id),
        )

    def rank(self, soname: str, candidates: Sequence[Candidate]) -> list[Candidate]:
        """Best-first total order."""
        return sorted(
            candidates,
            key=lambda c: (
                tuple(-x for x in self.score(soname, c)),
                c.package_id,
                c.store_path,
                c.provided_file_path,
            ),
        )

    def resolve(self, soname: str, candidates: Sequence[Candidate]) -> Resolution:
        if not candidates:
            log.info("ranker.no_provider", soname=soname)
            return Resolution(soname=soname, chosen=None, status=ResolutionStatus.UNRESOLVED)

        if len(candidates) == 1:
            return Resolution(
                soname=soname,
                chosen=candidates[0],
                status=ResolutionStatus.RESOLVED,
                method="single",
            )

        ranked = self.rank(soname, candidates)
        top_score = self.score(soname, ranked[0])
        tied = [c for c in ranked if self.score(soname, c) == top_score]

        if len(tied) == 1:
            winner = ranked[0]
            runner_up = self.score(soname, ranked[1])
            method = "pinned" if top_score[0] > runner_up[0] else "scored"
            log.debug("ranker.auto_selected", soname=soname, package=winner.package_id, method=method)
            return Resolution(
                soname=soname,
                chosen=winner,
                rejected=tuple(ranked[1:]),
                status=ResolutionStatus.RESOLVED,
                method=method,
            )

        answer = self.chooser.choose(soname, tied)
        if answer is None:
            log.info("ranker.selection_declined", soname=soname, tied=len(tied))
            return Resolution(
                soname=soname,
                chosen=None,
                rejected=tuple(ranked),
                status=ResolutionStatus.DECLINED,
            )
        if not isinstance(answer, int) or not 0 <= answer < len(tied):
            raise ValueError(
                f"Chooser returned {answer!r} for {soname}, expected 0..{len(tied) - 1} or None"
            )

        winner = tied[answer]
        return Resolution(
            soname=soname,
            chosen=winner,
            rejected=tuple(c for c in ranked if c is not winner),
            status=ResolutionStatus.RESOLVED,
            method="interactive",
        )
