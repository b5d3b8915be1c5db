"""soresolve: resolve missing shared libraries of a binary against a Nix package index."""

__version__ = "0.1.0"

from soresolve.api import LibraryResolver, WrapRequest
from soresolve.emitter import EnvironmentEmitter
from soresolve.exceptions import (
    AmbiguousSelectionDeclined,
    BinaryIOError,
    FormatError,
    IndexUnavailable,
    ResolverError,
    UnresolvedDependency,
)
from soresolve.index import ListingIndex, NixLocateIndex, PackageIndex
from soresolve.models import (
    Candidate,
    Resolution,
    ResolutionMap,
    ResolutionReport,
    ResolutionStatus,
    RuntimeEnvironment,
)
from soresolve.orchestrator import ResolutionOrchestrator
from soresolve.ranker import CandidateRanker
from soresolve.scanner import BinaryScanner

__all__ = [
    "AmbiguousSelectionDeclined",
    "BinaryIOError",
    "BinaryScanner",
    "Candidate",
    "CandidateRanker",
    "EnvironmentEmitter",
    "FormatError",
    "IndexUnavailable",
    "LibraryResolver",
    "ListingIndex",
    "NixLocateIndex",
    "PackageIndex",
    "Resolution",
    "ResolutionMap",
    "ResolutionOrchestrator",
    "ResolutionReport",
    "ResolutionStatus",
    "ResolverError",
    "RuntimeEnvironment",
    "UnresolvedDependency",
    "WrapRequest",
]
