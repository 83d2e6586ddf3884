"""csindex CLI application with Typer."""

import logging
import sys
from pathlib import Path
from typing import Annotated

import typer

from csindex import __version__
from csindex.app import IndexRunResult
from csindex.app.ports import IndexStats
from csindex.bootstrap import bootstrap_application
from csindex.config import IndexerConfig, get_settings, resolve_index_file
from csindex.errors import CsindexError, IndexNotFoundError
from csindex.utils.profiling import cpu_profile

USAGE = """\
usage: csindex [-d indexfile|indexdir] [-reset] [-verbose] [-ft=ext1|ext2] path [path...]
usage: csindex [-d indexfile] -list | -stats
usage: csindex -reset

The index is the file named by -d (a directory means <dir>/.csearchindex),
else ./.csearchindex, else the nearest .csearchindex in a parent directory,
else $CSEARCHINDEX, else $HOME/.csearchindex.

Without paths, every previously indexed path is indexed again. With -reset
and no paths the index is deleted; with paths it is rebuilt from scratch.
"""

LOG_FORMAT = "%(asctime)s %(message)s"
LOG_DATE_FORMAT = "%Y/%m/%d %H:%M:%S"

app = typer.Typer(
    name="csindex",
    help="Build and incrementally update a source-code search index",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"csindex version {__version__}")
        raise typer.Exit()


def configure_logging(level: str) -> None:
    """Send progress lines to stderr in the classic cindex layout."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
    package_logger = logging.getLogger("csindex")
    package_logger.handlers[:] = [handler]
    package_logger.setLevel(level.upper())


def _report(result: IndexRunResult) -> None:
    if result.wiped:
        typer.secho(f"Removed index {result.master}", fg=typer.colors.YELLOW)
        return

    pruned = sum(report.pruned_directories for report in result.reports)
    errors = sum(report.errors for report in result.reports)
    action = "Merged" if result.merged else "Built"
    typer.secho(
        f"{action} {result.master}: {result.files_indexed} files indexed "
        f"from {len(result.roots)} paths",
        fg=typer.colors.GREEN,
    )
    if result.files_rejected or pruned:
        typer.echo(
            f"  {result.files_rejected} files refused, {pruned} directories pruned"
        )
    if errors:
        typer.secho(f"  {errors} entries could not be read", fg=typer.colors.YELLOW)


def _print_stats(stats: IndexStats) -> None:
    typer.echo(f"Index: {stats.path}")
    typer.echo(f"Paths: {stats.roots}")
    typer.echo(f"Files: {stats.files}")
    typer.echo(f"Bytes: {stats.total_bytes}")
    typer.echo(f"Substring search: {'trigram' if stats.fts else 'unavailable'}")


@app.command()
def main(
    paths: Annotated[
        list[str] | None,
        typer.Argument(help="Directories or files to index", show_default=False),
    ] = None,
    index_file: Annotated[
        Path | None,
        typer.Option("-d", "--index", help="Index file, or a directory holding .csearchindex"),
    ] = None,
    list_paths: Annotated[
        bool,
        typer.Option("-list", "--list", help="List indexed paths and exit"),
    ] = False,
    show_stats: Annotated[
        bool,
        typer.Option("-stats", "--stats", help="Print index statistics and exit"),
    ] = False,
    reset: Annotated[
        bool,
        typer.Option("-reset", "--reset", help="Discard the existing index"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("-verbose", "--verbose", help="Report every file the indexer refuses"),
    ] = False,
    file_types: Annotated[
        str | None,
        typer.Option(
            "-ft",
            "--file-types",
            help="Pipe-separated extensions to index (default: CSINDEX_FILE_TYPES or c|cpp|...)",
        ),
    ] = None,
    cpuprofile: Annotated[
        Path | None,
        typer.Option("-cpuprofile", "--cpuprofile", help="Write a CPU profile to this file"),
    ] = None,
    version: Annotated[
        bool | None,
        typer.Option("--version", callback=version_callback, is_eager=True),
    ] = None,
) -> None:
    """Index source trees for code search."""
    args = paths or []
    switches = (list_paths, show_stats, reset, verbose)
    values = (index_file, cpuprofile, file_types)
    if not args and not any(switches) and all(value is None for value in values):
        typer.echo(USAGE, err=True, nl=False)
        raise typer.Exit(code=2)

    settings = get_settings()
    configure_logging(settings.log_level)

    wipe = reset and not args
    try:
        index_path = resolve_index_file(
            index_file, settings=settings, for_write=not (list_paths or show_stats or wipe)
        )
        config = IndexerConfig.from_settings(
            settings,
            index_path=index_path,
            reset=reset,
            verbose=True if verbose else None,
            file_types=file_types,
        )
        container = bootstrap_application(config, settings)

        if list_paths:
            for root in container.index_service.list_roots():
                typer.echo(root)
            return

        if show_stats:
            stats = container.index_service.stats()
            if stats is None:
                raise IndexNotFoundError(index_path)
            _print_stats(stats)
            return

        with cpu_profile(cpuprofile):
            result = container.index_service.run(args)
    except CsindexError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    _report(result)


if __name__ == "__main__":
    app()
