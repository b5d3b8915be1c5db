"""Data models for candidates, resolutions and the run report."""

from soresolve.models.report import ResolutionReport
from soresolve.models.resolution import (
    Candidate,
    Resolution,
    ResolutionMap,
    ResolutionStatus,
    RuntimeEnvironment,
)

__all__ = [
    "Candidate",
    "Resolution",
    "ResolutionMap",
    "ResolutionReport",
    "ResolutionStatus",
    "RuntimeEnvironment",
]
