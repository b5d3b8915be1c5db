"""nix-locate backed index client."""

from __future__ import annotations

import os
import subprocess

import structlog

from soresolve.exceptions import IndexUnavailable
from soresolve.index.base import PackageIndex, parse_locate_line
from soresolve.models.resolution import Candidate

log = structlog.get_logger("soresolve.index")

# regular files, symlinks, executables
_FILE_TYPES = ("r", "s", "x")


class NixLocateIndex(PackageIndex):
    """Query a nix-index database through the ``nix-locate`` executable.

    Every query is a separate subprocess, so concurrent calls share nothing
    but this object's immutable settings.
    """

    name = "nix-locate"

    def __init__(
        self,
        executable: str = "nix-locate",
        database: str | None = None,
        timeout: float = 120.0,
        top_level: bool = True,
    ) -> None:
        self.executable = executable
        self.database = database or os.environ.get("NIX_INDEX_DATABASE") or None
        self.timeout = timeout
        self.top_level = top_level

    def command(self, soname: str) -> list[str]:
        cmd = [self.executable]
        if self.database:
            cmd += ["--db", self.database]
        if self.top_level:
            cmd.append("--top-level")
        for ftype in _FILE_TYPES:
            cmd += ["--type", ftype]
        cmd += ["--whole-name", soname]
        return cmd

    def _lookup(self, soname: str) -> list[Candidate]:
        cmd = self.command(soname)
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except FileNotFoundError as e:
            raise IndexUnavailable(f"{self.executable} not found; is nix-index installed?") from e
        except subprocess.TimeoutExpired as e:
            raise IndexUnavailable(
                f"{self.executable} timed out after {self.timeout}s looking up {soname}"
            ) from e
        except OSError as e:
            raise IndexUnavailable(f"Failed to run {self.executable}: {e}") from e

        if result.returncode != 0:
            raise IndexUnavailable(
                f"{self.executable} exited with code {result.returncode}: "
                f"{result.stderr.strip()[-500:]}"
            )

        candidates: list[Candidate] = []
        for line in result.stdout.splitlines():
            if not line.strip():
                continue
            cand = parse_locate_line(line)
            if cand is None:
                log.warning("index.unparsed_line", index=self.name, line=line)
                continue
            candidates.append(cand)
        return candidates
