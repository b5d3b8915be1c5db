"""Report response schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from soresolve.models.report import ResolutionReport
from soresolve.models.resolution import Candidate, Resolution


class CandidateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    package_id: str
    store_path: str
    provided_file_path: str
    file_path: str

    @classmethod
    def from_candidate(cls, cand: Candidate) -> CandidateOut:
        return cls.model_validate(cand)


class SonameOutcome(BaseModel):
    soname: str
    status: str
    method: str | None = None
    chosen: CandidateOut | None = None
    rejected: list[CandidateOut] = []

    @classmethod
    def from_resolution(cls, resolution: Resolution) -> SonameOutcome:
        return cls(
            soname=resolution.soname,
            status=resolution.status.value,
            method=resolution.method,
            chosen=CandidateOut.from_candidate(resolution.chosen) if resolution.chosen else None,
            rejected=[CandidateOut.from_candidate(c) for c in resolution.rejected],
        )


class ReportOut(BaseModel):
    binary: str
    mode: str
    wrapper_path: str | None
    library_dirs: list[str]
    packages: list[str]
    unresolved: list[str]
    complete: bool
    sonames: list[SonameOutcome]

    @classmethod
    def from_report(cls, report: ResolutionReport) -> ReportOut:
        return cls(
            binary=report.binary,
            mode=report.mode,
            wrapper_path=report.wrapper_path,
            library_dirs=list(report.environment.library_dirs) if report.environment else [],
            packages=report.packages,
            unresolved=report.unresolved,
            complete=report.complete,
            sonames=[SonameOutcome.from_resolution(r) for r in report.resolutions],
        )
