"""CLI entry point: soresolve.

Subcommands:
    soresolve wrap ./binary [ARGS]...   # resolve missing libraries, write run-with-nix
    soresolve scan ./binary             # list missing sonames only
    soresolve locate libfoo.so.1        # show ranked providers for one soname
"""

from __future__ import annotations

import json
import os
import sys

import click

from soresolve.api import MODES, LibraryResolver, WrapRequest
from soresolve.console import (
    CONSOLE_LOCK,
    DecliningChooser,
    FirstChoiceChooser,
    PromptChooser,
)
from soresolve.core.logging import setup_logging
from soresolve.exceptions import ResolverError, UnresolvedDependency
from soresolve.index.base import PackageIndex
from soresolve.index.listing import ListingIndex
from soresolve.index.nix_locate import NixLocateIndex
from soresolve.models.report import ResolutionReport
from soresolve.progress import SonameProgress
from soresolve.ranker import CandidateRanker
from soresolve.scanner import BinaryScanner

# Defaults (overridable via env vars)
_DEFAULT_JOBS = int(os.environ.get("SORESOLVE_JOBS", "8"))
_DEFAULT_NIX_LOCATE = os.environ.get("SORESOLVE_NIX_LOCATE", "nix-locate")
_DEFAULT_INDEX_TIMEOUT = float(os.environ.get("SORESOLVE_INDEX_TIMEOUT", "120"))
_DEFAULT_NIX_INDEX_DB = os.environ.get("NIX_INDEX_DATABASE")

_STATUS_ICONS = {
    "resolved": "+",
    "unresolved": "!",
    "declined": "?",
}


def _build_index(
    index_file: str | None,
    database: str | None,
    nix_locate: str,
    timeout: float,
) -> PackageIndex:
    """A saved listing wins over the live nix-locate index."""
    if index_file:
        return ListingIndex(index_file)
    return NixLocateIndex(executable=nix_locate, database=database, timeout=timeout)


def _progress_printer(resolver: LibraryResolver):
    """Print one line per finished soname, never while a prompt is open."""
    seen = {"done": 0}

    def _print(p: SonameProgress) -> None:
        if not p.finished:
            return
        total = resolver.orchestrator.progress.total if resolver.orchestrator else 0
        with CONSOLE_LOCK:
            seen["done"] += 1
            outcome = p.detail or p.error or p.status
            click.echo(f"[{seen['done']}/{total or '?'}] {p.soname}: {outcome}", err=True)

    return _print


def _print_report(report: ResolutionReport) -> None:
    if report.wrapper_path:
        click.echo(f"Wrapper written to {report.wrapper_path} (mode: {report.mode})")
    click.echo(f"\nResolution report for {report.binary}:")
    if not report.resolutions:
        click.echo("  no missing shared libraries")
    for r in report.resolutions:
        icon = _STATUS_ICONS.get(r.status.value, "?")
        if r.chosen:
            click.echo(f"  [{icon}] {r.soname}  {r.chosen.package_id}  {r.chosen.library_dir}")
        else:
            click.echo(f"  [{icon}] {r.soname}  {r.status.value}")
    if report.unresolved:
        click.echo(f"\nUnresolved ({len(report.unresolved)}):")
        for soname in report.unresolved:
            click.echo(f"  {soname}")
        click.echo("The binary may still fail to load these at startup.")


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
def main(verbose: bool) -> None:
    """soresolve: find Nix packages for a binary's missing shared libraries."""
    setup_logging("DEBUG" if verbose else None)


@main.command("wrap", context_settings={"ignore_unknown_options": True})
@click.argument("binary", type=click.Path(dir_okay=False))
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.option("-l", "--lib", "libs", multiple=True, help="Additional soname to resolve")
@click.option("-p", "--pkg", "pkgs", multiple=True, help="Package to prefer and propagate")
@click.option("-o", "--output", default=None, help="Wrapper path (default: run-with-nix next to BINARY)")
@click.option("-j", "--jobs", type=click.IntRange(min=1), default=_DEFAULT_JOBS, help="Parallel lookups")
@click.option("--mode", type=click.Choice(MODES), default="ld-path", help="Wrapper flavour")
@click.option("--index-file", default=None, help="Saved nix-locate listing to use instead of nix-locate")
@click.option("--db", "database", default=_DEFAULT_NIX_INDEX_DB, help="nix-index database directory")
@click.option("--nix-locate", "nix_locate", default=_DEFAULT_NIX_LOCATE, help="nix-locate executable")
@click.option("--non-interactive", is_flag=True, help="Take the first ranked provider on ties")
@click.option("--no-prompt", is_flag=True, help="Leave ties unresolved instead of asking")
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON")
@click.option("--strict", is_flag=True, help="Exit with status 2 if anything stays unresolved")
def wrap(
    binary: str,
    args: tuple[str, ...],
    libs: tuple[str, ...],
    pkgs: tuple[str, ...],
    output: str | None,
    jobs: int,
    mode: str,
    index_file: str | None,
    database: str | None,
    nix_locate: str,
    non_interactive: bool,
    no_prompt: bool,
    as_json: bool,
    strict: bool,
) -> None:
    """Resolve BINARY's missing libraries and write a wrapper running it with ARGS."""
    if no_prompt:
        chooser = DecliningChooser()
    elif non_interactive:
        chooser = FirstChoiceChooser()
    else:
        chooser = PromptChooser()

    index = _build_index(index_file, database, nix_locate, _DEFAULT_INDEX_TIMEOUT)
    resolver = LibraryResolver(index, chooser=chooser, max_workers=jobs)
    resolver.progress_callbacks.append(_progress_printer(resolver))
    request = WrapRequest(
        binary=binary,
        args=list(args),
        extra_sonames=sorted(set(libs)),
        pinned_packages=sorted(set(pkgs)),
        output=output,
        mode=mode,
    )

    try:
        report = resolver.wrap(request)
    except ResolverError as e:
        click.echo(f"Error: {e}", err=True)
        click.echo("No wrapper was written.", err=True)
        sys.exit(1)

    if as_json:
        from soresolve.schemas.report import ReportOut

        click.echo(ReportOut.from_report(report).model_dump_json(indent=2))
    else:
        _print_report(report)

    if strict:
        try:
            report.raise_for_unresolved()
        except UnresolvedDependency as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(2)


@main.command("scan")
@click.argument("binary", type=click.Path(dir_okay=False))
@click.option("--all", "show_all", is_flag=True, help="List every DT_NEEDED entry, not just missing ones")
@click.option("--json", "as_json", is_flag=True, help="Print as JSON")
def scan(binary: str, show_all: bool, as_json: bool) -> None:
    """List the shared libraries BINARY needs that this system cannot provide."""
    scanner = BinaryScanner()
    try:
        sonames = scanner.needed(binary) if show_all else scanner.scan(binary)
    except ResolverError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(sonames, indent=2))
        return
    if not sonames:
        click.echo("No missing shared libraries." if not show_all else "No DT_NEEDED entries.")
        return
    for soname in sonames:
        click.echo(soname)


@main.command("locate")
@click.argument("soname")
@click.option("-p", "--pkg", "pkgs", multiple=True, help="Package to prefer")
@click.option("--index-file", default=None, help="Saved nix-locate listing to use instead of nix-locate")
@click.option("--db", "database", default=_DEFAULT_NIX_INDEX_DB, help="nix-index database directory")
@click.option("--nix-locate", "nix_locate", default=_DEFAULT_NIX_LOCATE, help="nix-locate executable")
def locate(
    soname: str,
    pkgs: tuple[str, ...],
    index_file: str | None,
    database: str | None,
    nix_locate: str,
) -> None:
    """Show the ranked providers of SONAME."""
    index = _build_index(index_file, database, nix_locate, _DEFAULT_INDEX_TIMEOUT)
    ranker = CandidateRanker(pinned_packages=pkgs)
    try:
        candidates = index.query(soname)
    except ResolverError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not candidates:
        click.echo(f"No provider found for {soname}")
        return

    ranked = ranker.rank(soname, candidates)
    top = ranker.score(soname, ranked[0])
    for cand in ranked:
        marker = "*" if ranker.score(soname, cand) == top else " "
        click.echo(f" {marker} {cand.package_id:30s} {cand.file_path}")


if __name__ == "__main__":
    main()
