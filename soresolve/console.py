"""Interactive candidate selection and the exclusive console."""

from __future__ import annotations

import threading
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

import click
import structlog

from soresolve.models.resolution import Candidate

log = structlog.get_logger("soresolve.console")

# Held while anything writes an interactive prompt or a progress line
CONSOLE_LOCK = threading.RLock()


@runtime_checkable
class Chooser(Protocol):
    """Pick one of ``options`` for ``soname``; None means the user declined."""

    def choose(self, soname: str, options: Sequence[Candidate]) -> int | None: ...


class ExclusiveChooser:
    """Serialize another chooser behind a lock so prompts never interleave."""

    def __init__(self, inner: Chooser, lock: threading.RLock | None = None) -> None:
        self.inner = inner
        self.lock = lock if lock is not None else CONSOLE_LOCK

    def choose(self, soname: str, options: Sequence[Candidate]) -> int | None:
        with self.lock:
            return self.inner.choose(soname, options)


class PromptChooser:
    """Ask on the terminal. ``0`` declines, Enter takes the first option."""

    def choose(self, soname: str, options: Sequence[Candidate]) -> int | None:
        click.echo()
        click.echo(f"Pick provider for {click.style(soname, fg='red', bold=True)}:")
        for i, cand in enumerate(options, start=1):
            click.echo(f"  {i}) {cand.package_id}  {cand.file_path}")
        answer = click.prompt(
            "Selection (0 to skip)",
            type=click.IntRange(0, len(options)),
            default=1,
        )
        if answer == 0:
            log.info("console.declined", soname=soname)
            return None
        return answer - 1


class FirstChoiceChooser:
    """Non-interactive: take the first (best ranked) option."""

    def choose(self, soname: str, options: Sequence[Candidate]) -> int | None:
        log.info(
            "console.auto_choice",
            soname=soname,
            package=options[0].package_id if options else None,
        )
        return 0 if options else None


class DecliningChooser:
    """Never picks; ties stay unresolved."""

    def choose(self, soname: str, options: Sequence[Candidate]) -> int | None:
        return None
