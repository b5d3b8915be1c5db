"""JSON schemas for machine-readable output."""

from soresolve.schemas.report import CandidateOut, ReportOut, SonameOutcome

__all__ = ["CandidateOut", "ReportOut", "SonameOutcome"]
