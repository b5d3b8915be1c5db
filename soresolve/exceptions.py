"""Custom exceptions for soresolve."""

from __future__ import annotations


class ResolverError(Exception):
    """Base exception for all resolver errors."""


class FormatError(ResolverError):
    """Raised when a file is not a recognized (ELF) binary."""


class BinaryIOError(ResolverError, OSError):
    """Raised when a binary or output file cannot be read or written."""


class IndexUnavailable(ResolverError):
    """Raised when the package index cannot be reached or opened."""


class UnresolvedDependency(ResolverError):
    """Raised when a run is required to resolve every soname but some stayed open."""

    def __init__(self, sonames: list[str]):
        self.sonames = sonames
        super().__init__(
            f"{len(sonames)} shared librar{'y' if len(sonames) == 1 else 'ies'} "
            f"left unresolved: {', '.join(sonames)}"
        )


class AmbiguousSelectionDeclined(UnresolvedDependency):
    """Raised when every open soname stayed open because a prompt was declined."""
