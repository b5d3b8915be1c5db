"""Package index clients — soname -> candidate providers."""

from soresolve.index.base import PackageIndex, dedupe_candidates, parse_locate_line
from soresolve.index.listing import ListingIndex
from soresolve.index.nix_locate import NixLocateIndex

__all__ = [
    "ListingIndex",
    "NixLocateIndex",
    "PackageIndex",
    "dedupe_candidates",
    "parse_locate_line",
]
