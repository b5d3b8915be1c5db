"""Shared pytest fixtures for soresolve tests — no Nix installation needed."""

from __future__ import annotations

import threading
import time
from collections.abc import Sequence

import pytest

from soresolve.exceptions import IndexUnavailable
from soresolve.index.base import PackageIndex
from soresolve.models.resolution import Candidate


def make_candidate(
    package_id: str,
    file_name: str,
    store_name: str | None = None,
    subdir: str = "lib",
) -> Candidate:
    """Candidate living at /nix/store/0000-<store_name>/<subdir>/<file_name>."""
    store_name = store_name or package_id.split(".")[0]
    return Candidate(
        package_id=package_id,
        store_path=f"/nix/store/0000-{store_name}",
        provided_file_path=f"/{subdir}/{file_name}",
    )


class FakeIndex(PackageIndex):
    """In-memory index. ``fail_on`` sonames raise IndexUnavailable."""

    name = "fake"

    def __init__(
        self,
        table: dict[str, list[Candidate]] | None = None,
        fail_on: Sequence[str] = (),
        delay: float = 0.0,
    ) -> None:
        self.table = table or {}
        self.fail_on = set(fail_on)
        self.delay = delay
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def _lookup(self, soname: str) -> list[Candidate]:
        with self._lock:
            self.calls.append(soname)
        if self.delay:
            time.sleep(self.delay)
        if soname in self.fail_on:
            raise IndexUnavailable(f"index gone while looking up {soname}")
        return list(self.table.get(soname, []))


class RecordingChooser:
    """Returns scripted answers and records every prompt."""

    def __init__(self, answer: int | None = 0, hold: float = 0.0) -> None:
        self.answer = answer
        self.hold = hold
        self.calls: list[tuple[str, list[Candidate]]] = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def choose(self, soname: str, options: Sequence[Candidate]) -> int | None:
        with self._lock:
            self.calls.append((soname, list(options)))
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        if self.hold:
            time.sleep(self.hold)
        with self._lock:
            self.active -= 1
        return self.answer


class StubScanner:
    """Stands in for BinaryScanner; returns a fixed soname list."""

    def __init__(self, sonames: list[str]) -> None:
        self.sonames = sonames

    def scan(self, binary_path, extra_sonames=None) -> list[str]:
        result = list(self.sonames)
        for soname in extra_sonames or []:
            if soname not in result:
                result.append(soname)
        return result


@pytest.fixture
def chooser():
    return RecordingChooser(answer=0)


@pytest.fixture
def fake_binary(tmp_path):
    """A file standing in for the binary to wrap (never parsed: scanner is stubbed)."""
    binary = tmp_path / "app" / "game"
    binary.parent.mkdir()
    binary.write_bytes(b"\x7fELF" + b"\0" * 60)
    binary.chmod(0o755)
    return binary


@pytest.fixture
def listing_file(tmp_path):
    """A saved nix-locate listing with one unique and one tied provider."""
    path = tmp_path / "listing.txt"
    path.write_text(
        "zlib.out                 108,152 r /nix/store/aaaa-zlib-1.3/lib/libz.so.1\n"
        "foo.out                   20,480 s /nix/store/bbbb-foo-1.0/lib/libfoo.so.1\n"
        "bar.out                   30,000 r /nix/store/cccc-bar-2.0/lib/libbar.so.2\n"
        "baz.out                   30,000 r /nix/store/dddd-baz-2.1/lib/libbar.so.2\n"
        "# comment lines are ignored\n"
        "garbage\n"
    )
    return path
