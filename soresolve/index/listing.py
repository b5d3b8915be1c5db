"""Index client over a saved nix-locate listing."""

from __future__ import annotations

import os
import threading
from bisect import bisect_left
from collections import defaultdict
from pathlib import Path

import structlog

from soresolve.exceptions import IndexUnavailable
from soresolve.index.base import PackageIndex, parse_locate_line
from soresolve.models.resolution import Candidate

log = structlog.get_logger("soresolve.index")


class ListingIndex(PackageIndex):
    """Answer queries from a file of ``nix-locate`` output lines.

    A query for ``libfoo.so.1`` returns files named exactly ``libfoo.so.1``
    plus versioned variants such as ``libfoo.so.1.2.3``. The file is read once,
    on first query; afterwards the table is never mutated.
    """

    name = "listing"

    def __init__(self, path: str | os.PathLike) -> None:
        self.path = Path(path)
        self._by_name: dict[str, list[Candidate]] | None = None
        self._names: list[str] = []
        self._load_lock = threading.Lock()

    def _table(self) -> dict[str, list[Candidate]]:
        with self._load_lock:
            if self._by_name is None:
                self._by_name = self._load()
                self._names = sorted(self._by_name)
            return self._by_name

    def _load(self) -> dict[str, list[Candidate]]:
        try:
            text = self.path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise IndexUnavailable(f"Cannot read index listing {self.path}: {e}") from e

        table: dict[str, list[Candidate]] = defaultdict(list)
        skipped = 0
        for line in text.splitlines():
            if not line.strip() or line.lstrip().startswith("#"):
                continue
            cand = parse_locate_line(line)
            if cand is None:
                skipped += 1
                continue
            table[cand.file_name].append(cand)
        log.info("index.listing_loaded", path=str(self.path), files=len(table), skipped=skipped)
        return dict(table)

    def _lookup(self, soname: str) -> list[Candidate]:
        table = self._table()
        found = list(table.get(soname, []))
        prefix = soname + "."
        # names sharing a prefix are contiguous in sorted order
        i = bisect_left(self._names, prefix)
        while i < len(self._names) and self._names[i].startswith(prefix):
            found.extend(table[self._names[i]])
            i += 1
        return found
