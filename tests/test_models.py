"""Tests for candidate / resolution data models."""

from __future__ import annotations

import threading

import pytest

from conftest import make_candidate
from soresolve.exceptions import AmbiguousSelectionDeclined, UnresolvedDependency
from soresolve.models import (
    Candidate,
    Resolution,
    ResolutionMap,
    ResolutionReport,
    ResolutionStatus,
    RuntimeEnvironment,
)


class TestCandidate:
    def test_derived_paths(self):
        cand = Candidate("zlib.out", "/nix/store/aaaa-zlib-1.3", "/lib/libz.so.1")
        assert cand.file_path == "/nix/store/aaaa-zlib-1.3/lib/libz.so.1"
        assert cand.file_name == "libz.so.1"
        assert cand.library_dir == "/nix/store/aaaa-zlib-1.3/lib"
        assert cand.key == ("zlib.out", "/nix/store/aaaa-zlib-1.3")

    def test_relative_provided_path(self):
        cand = Candidate("zlib.out", "/nix/store/aaaa-zlib-1.3", "lib/libz.so.1")
        assert cand.file_path == "/nix/store/aaaa-zlib-1.3/lib/libz.so.1"

    def test_describe(self):
        cand = make_candidate("zlib.out", "libz.so.1")
        assert cand.describe().startswith("zlib.out /nix/store/")


class TestResolutionMap:
    def test_write_once(self):
        rmap = ResolutionMap(["libz.so.1"])
        rmap.record(Resolution("libz.so.1", None))
        with pytest.raises(KeyError, match="already recorded"):
            rmap.record(Resolution("libz.so.1", None))

    def test_iteration_follows_announced_order(self):
        rmap = ResolutionMap(["a.so", "b.so", "c.so"])
        for soname in ("c.so", "a.so", "b.so"):
            rmap.record(Resolution(soname, None))
        assert list(rmap) == ["a.so", "b.so", "c.so"]

    def test_unannounced_appended(self):
        rmap = ResolutionMap(["a.so"])
        rmap.record(Resolution("z.so", None))
        rmap.record(Resolution("a.so", None))
        assert list(rmap) == ["a.so", "z.so"]

    def test_pending_entries_not_iterated(self):
        rmap = ResolutionMap(["a.so", "b.so"])
        rmap.record(Resolution("b.so", None))
        assert list(rmap) == ["b.so"]
        assert len(rmap) == 1

    def test_frozen_rejects_writes(self):
        rmap = ResolutionMap().freeze()
        assert rmap.frozen
        with pytest.raises(RuntimeError):
            rmap.record(Resolution("a.so", None))

    def test_resolved_and_unresolved(self):
        cand = make_candidate("zlib.out", "libz.so.1")
        rmap = ResolutionMap(["libz.so.1", "libx.so"])
        rmap.record(Resolution("libz.so.1", cand, status=ResolutionStatus.RESOLVED))
        rmap.record(Resolution("libx.so", None))
        assert [r.soname for r in rmap.resolved()] == ["libz.so.1"]
        assert [r.soname for r in rmap.unresolved()] == ["libx.so"]

    def test_concurrent_records_keep_every_entry(self):
        sonames = [f"lib{i}.so" for i in range(200)]
        rmap = ResolutionMap(sonames)
        threads = [
            threading.Thread(target=rmap.record, args=(Resolution(s, None),)) for s in sonames
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert list(rmap) == sonames


class TestRuntimeEnvironment:
    def test_dedup_preserves_first_seen_order(self):
        env = RuntimeEnvironment.from_directories("/bin/app", ["/A", "/B", "/A"])
        assert env.library_dirs == ("/A", "/B")
        assert env.library_path == "/A:/B"

    def test_empty_means_system_default(self):
        env = RuntimeEnvironment.from_directories("/bin/app", [])
        assert env.library_dirs == ()
        assert env.library_path is None

    def test_args_preserved(self):
        env = RuntimeEnvironment.from_directories("/bin/app", [], ["--x", "two words"])
        assert env.args == ("--x", "two words")


class TestResolutionReport:
    def _report(self, *statuses: ResolutionStatus) -> ResolutionReport:
        cand = make_candidate("zlib.out", "libz.so.1")
        resolutions = [
            Resolution(
                f"lib{i}.so",
                cand if status is ResolutionStatus.RESOLVED else None,
                status=status,
            )
            for i, status in enumerate(statuses)
        ]
        return ResolutionReport(binary="/bin/app", resolutions=resolutions)

    def test_complete(self):
        report = self._report(ResolutionStatus.RESOLVED)
        assert report.complete
        report.raise_for_unresolved()

    def test_unresolved_raises(self):
        report = self._report(ResolutionStatus.RESOLVED, ResolutionStatus.UNRESOLVED)
        assert report.unresolved == ["lib1.so"]
        with pytest.raises(UnresolvedDependency) as exc:
            report.raise_for_unresolved()
        assert exc.value.sonames == ["lib1.so"]
        assert not isinstance(exc.value, AmbiguousSelectionDeclined)

    def test_only_declined_raises_declined(self):
        report = self._report(ResolutionStatus.DECLINED)
        assert report.declined == ["lib0.so"]
        with pytest.raises(AmbiguousSelectionDeclined):
            report.raise_for_unresolved()
