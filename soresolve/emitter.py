"""Environment emitter — runtime environment and wrapper scripts."""

from __future__ import annotations

import os
import shlex
from collections.abc import Iterable
from pathlib import Path

import structlog

from soresolve.exceptions import BinaryIOError
from soresolve.models.resolution import ResolutionMap, RuntimeEnvironment

log = structlog.get_logger("soresolve.emitter")

DEFAULT_WRAPPER_NAME = "run-with-nix"

_SHEBANG = "#!/usr/bin/env bash"
_NIX_BUILD_FHS = "nix-build --no-out-link -E"


def _nix_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("${", "\\${")
    return f'"{escaped}"'


def default_wrapper_path(binary: str | os.PathLike) -> Path:
    return Path(binary).with_name(DEFAULT_WRAPPER_NAME)


class EnvironmentEmitter:
    """Turn a finished ResolutionMap into a runnable wrapper script."""

    def build_environment(
        self,
        resolutions: ResolutionMap,
        binary: str | os.PathLike,
        args: Iterable[str] = (),
    ) -> RuntimeEnvironment:
        """Library directories of every chosen candidate, first-seen order."""
        if not resolutions.frozen:
            raise ValueError("ResolutionMap must be complete (frozen) before emitting")
        directories = [r.chosen.library_dir for r in resolutions.values() if r.chosen is not None]
        return RuntimeEnvironment.from_directories(
            str(Path(binary).resolve()), directories, args
        )

    def render_script(
        self,
        env: RuntimeEnvironment,
        unresolved: Iterable[str] = (),
    ) -> str:
        lines = [_SHEBANG, f"# Generated by soresolve for {env.binary}"]
        missing = list(unresolved)
        if missing:
            lines.append(f"# unresolved: {' '.join(missing)}")
        lines.append("")
        if env.library_path is not None:
            lines.append(f"export LD_LIBRARY_PATH={shlex.quote(env.library_path)}")
        lines.append(self._exec_line(shlex.quote(env.binary), env.args))
        return "\n".join(lines) + "\n"

    def render_fhs_expression(self, binary: str, packages: Iterable[str]) -> str:
        pkgs = sorted(set(packages))
        body = "\n      ".join(pkgs)
        return (
            "with import <nixpkgs> {};\n"
            "  buildFHSUserEnv {\n"
            '    name = "fhs";\n'
            "    targetPkgs = p: with p; [\n"
            f"      {body}\n"
            "    ];\n"
            f"    runScript = {_nix_string(binary)};\n"
            "  }"
        )

    def render_fhs_script(
        self,
        binary: str | os.PathLike,
        packages: Iterable[str],
        args: Iterable[str] = (),
    ) -> str:
        """Wrapper that builds an FHS user env with ``packages`` and runs the binary in it."""
        binary_path = str(Path(binary).resolve())
        expression = self.render_fhs_expression(binary_path, packages)
        target = f'"$({_NIX_BUILD_FHS} {shlex.quote(expression)})/bin/fhs"'
        return "\n".join(
            [
                _SHEBANG,
                f"# Generated by soresolve for {binary_path}",
                "",
                self._exec_line(target, tuple(args)),
            ]
        ) + "\n"

    def write_script(self, script: str, target: str | os.PathLike) -> Path:
        """Write ``script`` to ``target`` and make it executable (0o755)."""
        path = Path(target)
        try:
            path.write_text(script)
            path.chmod(0o755)
        except OSError as e:
            raise BinaryIOError(e.errno, f"Cannot write wrapper {path}: {e.strerror}") from e
        log.info("emitter.wrapper_written", path=str(path), size=len(script))
        return path

    @staticmethod
    def _exec_line(target: str, args: tuple[str, ...]) -> str:
        parts = ["exec", target, *(shlex.quote(a) for a in args), '"$@"']
        return " ".join(parts)
