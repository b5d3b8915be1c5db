"""Data models for candidates and per-soname resolutions."""

from __future__ import annotations

import posixpath
import threading
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class Candidate:
    """
    One packaged file that could satisfy a soname.

    store_path is the package output root in the store; provided_file_path is
    the matching file relative to that root (a leading slash is tolerated).
    """

    package_id: str
    store_path: str
    provided_file_path: str

    @property
    def file_path(self) -> str:
        return posixpath.join(self.store_path, self.provided_file_path.lstrip("/"))

    @property
    def file_name(self) -> str:
        return posixpath.basename(self.provided_file_path)

    @property
    def library_dir(self) -> str:
        return posixpath.dirname(self.file_path)

    @property
    def key(self) -> tuple[str, str]:
        return (self.package_id, self.store_path)

    def describe(self) -> str:
        return f"{self.package_id} {self.file_path}"


class ResolutionStatus(Enum):
    """Outcome of resolving one soname."""

    RESOLVED = "resolved"
    UNRESOLVED = "unresolved"  # index has no provider
    DECLINED = "declined"  # ambiguous, prompt declined


@dataclass(frozen=True)
class Resolution:
    soname: str
    chosen: Candidate | None
    rejected: tuple[Candidate, ...] = ()
    status: ResolutionStatus = ResolutionStatus.UNRESOLVED
    method: str | None = None  # "single" | "scored" | "pinned" | "interactive"

    @property
    def resolved(self) -> bool:
        return self.chosen is not None


class ResolutionMap(Mapping[str, Resolution]):
    """Soname -> Resolution, written exactly once per soname.

    Iteration follows the order sonames were announced (constructor argument),
    then the order of first record for sonames that were not announced.
    """

    def __init__(self, sonames: Iterable[str] = ()) -> None:
        self._order: list[str] = list(dict.fromkeys(sonames))
        self._known: set[str] = set(self._order)
        self._entries: dict[str, Resolution] = {}
        self._lock = threading.Lock()
        self._frozen = False

    def record(self, resolution: Resolution) -> None:
        with self._lock:
            if self._frozen:
                raise RuntimeError("ResolutionMap is frozen")
            if resolution.soname in self._entries:
                raise KeyError(f"Resolution for {resolution.soname!r} already recorded")
            self._entries[resolution.soname] = resolution
            if resolution.soname not in self._known:
                self._known.add(resolution.soname)
                self._order.append(resolution.soname)

    def freeze(self) -> ResolutionMap:
        with self._lock:
            self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __getitem__(self, soname: str) -> Resolution:
        return self._entries[soname]

    def __iter__(self) -> Iterator[str]:
        return (s for s in list(self._order) if s in self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def resolved(self) -> list[Resolution]:
        return [r for r in self.values() if r.resolved]

    def unresolved(self) -> list[Resolution]:
        return [r for r in self.values() if not r.resolved]


@dataclass(frozen=True)
class RuntimeEnvironment:
    """Library directories to inject plus the invocation to preserve."""

    binary: str
    library_dirs: tuple[str, ...] = ()
    args: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_directories(
        cls, binary: str, directories: Iterable[str], args: Iterable[str] = ()
    ) -> RuntimeEnvironment:
        return cls(
            binary=binary,
            library_dirs=tuple(dict.fromkeys(d for d in directories if d)),
            args=tuple(args),
        )

    @property
    def library_path(self) -> str | None:
        """Value for LD_LIBRARY_PATH, or None to leave the system default."""
        if not self.library_dirs:
            return None
        return ":".join(self.library_dirs)
