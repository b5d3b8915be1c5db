"""Index client interface and shared candidate handling."""

from __future__ import annotations

from abc import ABC, abstractmethod

import structlog

from soresolve.models.resolution import Candidate

log = structlog.get_logger("soresolve.index")

# /nix/store/<hash>-<name> is three components deep
_STORE_ROOT_DEPTH = 4


class PackageIndex(ABC):
    """Read-only query interface over a package index.

    Implementations must be safe to call from several threads at once and
    raise IndexUnavailable when the backing index cannot be used. An empty
    result is a valid answer.
    """

    name: str = "index"

    def query(self, soname: str) -> list[Candidate]:
        candidates = dedupe_candidates(soname, self._lookup(soname))
        log.debug("index.query_done", index=self.name, soname=soname, candidates=len(candidates))
        return candidates

    @abstractmethod
    def _lookup(self, soname: str) -> list[Candidate]:
        """Return raw candidates, duplicates allowed."""
        ...


def dedupe_candidates(soname: str, candidates: list[Candidate]) -> list[Candidate]:
    """Keep one candidate per (package_id, store_path).

    The first reported file wins its slot unless a later file from the same
    package output matches the soname exactly and the first one does not.
    """
    slots: dict[tuple[str, str], Candidate] = {}
    for cand in candidates:
        current = slots.get(cand.key)
        if current is None:
            slots[cand.key] = cand
        elif current.file_name != soname and cand.file_name == soname:
            slots[cand.key] = cand
    return list(slots.values())


def parse_locate_line(line: str) -> Candidate | None:
    """Parse one ``nix-locate`` output line.

    Format: ``<attr> <size> <type> <absolute path>``, e.g.
    ``zlib.out   108,152 r /nix/store/<hash>-zlib-1.3/lib/libz.so.1``.
    Returns None for lines that do not have that shape.
    """
    parts = line.strip().split(None, 3)
    if len(parts) != 4:
        return None
    attr, _size, _ftype, path = parts
    attr = attr.strip("()")
    segments = path.split("/")
    if not attr or not path.startswith("/") or len(segments) <= _STORE_ROOT_DEPTH:
        return None
    return Candidate(
        package_id=attr,
        store_path="/".join(segments[:_STORE_ROOT_DEPTH]),
        provided_file_path="/" + "/".join(segments[_STORE_ROOT_DEPTH:]),
    )
