"""CLI entry point for the company enrichment tool."""

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import datetime
from typing import AsyncIterator, Callable

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from company_enrichment.cache.store import ResponseCache
from company_enrichment.config import Config, load_config
from company_enrichment.input.reader import build_identifiers, parse_names, read_input_file
from company_enrichment.models import Phase, RunSnapshot, error_entries
from company_enrichment.output.export import columns_for, flatten_entries, write_csv
from company_enrichment.pipeline import EnrichmentPipeline
from company_enrichment.scheduler import EnrichmentScheduler, RunMode

console = Console()

MODES = [m.value for m in RunMode]


def _setup_logging(verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False, show_time=False)],
    )


async def _drive(
    stream: AsyncIterator[RunSnapshot],
    label: str,
) -> RunSnapshot:
    """Consume a snapshot stream while rendering a progress bar."""
    last = RunSnapshot()
    with Progress(
        SpinnerColumn(),
        TextColumn("[bold]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        TextColumn("[dim]{task.fields[current]}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task(label, total=None, current="")
        async for snapshot in stream:
            last = snapshot
            state = snapshot.progress
            progress.update(
                task,
                total=state.total or None,
                completed=state.completed,
                current=state.currently_processing or "",
            )
    return last


def _run_stages(
    pipeline: EnrichmentPipeline,
    first_stage: Callable[[EnrichmentScheduler], AsyncIterator[RunSnapshot]],
    label: str,
    enhance: bool,
) -> RunSnapshot:
    async def go() -> RunSnapshot:
        try:
            scheduler = pipeline.scheduler
            stream = first_stage(scheduler)
            if enhance:
                stream = scheduler.then_enhance(stream)
            return await _drive(stream, label)
        finally:
            await pipeline.close()

    return asyncio.run(go())


def _report(final: RunSnapshot, mode: str, output: str | None, errors_only: bool) -> None:
    entries = error_entries(final.entries) if errors_only else final.entries

    if final.error:
        console.print(f"[red]Run failed: {final.error}[/red]")

    table = Table(show_lines=False)
    columns = [c for c in columns_for(mode) if c != "source_urls"]
    for column in columns:
        table.add_column(column.replace("_", " ").title(), overflow="fold")
    for row in flatten_entries(entries, mode):
        style = "red" if row["status"] == "error" else None
        table.add_row(*(row[c] for c in columns), style=style)
    if entries:
        console.print(table)

    ok = sum(1 for e in final.entries if e.ok)
    failed = len(final.entries) - ok
    console.print(
        f"\n[bold]Companies: {len(final.entries)}[/bold]  "
        f"[green]{ok} ok[/green] / [red]{failed} errors[/red]"
    )

    if output and entries:
        path = write_csv(entries, output, mode)
        console.print(f"[bold]CSV: {path}[/bold]")


def _check_answer_api(config: Config, mock: bool, needed: bool) -> None:
    if needed and not mock and not config.perplexity_api_key:
        console.print("[red]PERPLEXITY_API_KEY is not set (use --mock to run without it)[/red]")
        sys.exit(1)


@click.group()
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose debug logging",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Enrich company names with homepage, contact, location and leadership facts."""
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config"] = load_config()


def _common_options(func):
    func = click.option("--output", "-o", default=None, help="Write results to this CSV file")(func)
    func = click.option("--errors-only", is_flag=True, help="Only show and export failed rows")(func)
    func = click.option("--no-cache", is_flag=True, help="Bypass the page response cache")(func)
    func = click.option(
        "--concurrency", "-c", default=None, type=click.IntRange(min=1),
        help="Max companies in flight (default: min(4, CPUs))",
    )(func)
    return func


@main.command()
@click.argument("input_file", required=False, type=click.Path(exists=True))
@click.option("--names", "-n", default=None, help="Comma or newline separated company names")
@click.option(
    "--mode", "-m",
    type=click.Choice(MODES, case_sensitive=False),
    default=RunMode.SEARCH.value,
    show_default=True,
    help="Which collaborators to use per company",
)
@click.option("--enhance", is_flag=True, help="Add CEO and co-founders in a second pass")
@click.option("--mock", is_flag=True, help="Use the offline mock answer API")
@_common_options
@click.pass_context
def run(
    ctx: click.Context,
    input_file: str | None,
    names: str | None,
    mode: str,
    enhance: bool,
    mock: bool,
    output: str | None,
    errors_only: bool,
    no_cache: bool,
    concurrency: int | None,
) -> None:
    """Enrich companies from a CSV/Excel/text file or a --names list.

    Example: enrich run companies.csv --mode combined --enhance -o results.csv
    """
    config: Config = ctx.obj["config"]
    if concurrency:
        config.concurrency = concurrency

    try:
        if input_file:
            identifiers = read_input_file(input_file, max_rows=config.max_input_rows)
        else:
            identifiers = build_identifiers(parse_names(names or ""), max_rows=config.max_input_rows)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Input error: {e}[/red]")
        sys.exit(1)

    if not identifiers:
        console.print("[red]No company names given. Pass a file or --names.[/red]")
        sys.exit(1)

    _check_answer_api(config, mock, needed=mode != RunMode.DETAILS.value or enhance)
    console.print(f"Loaded {len(identifiers)} companies, mode [bold]{mode}[/bold]\n")

    pipeline = EnrichmentPipeline(config, mock=mock, use_cache=not no_cache)
    final = _run_stages(
        pipeline,
        lambda s: s.run(identifiers, RunMode(mode)),
        "Enriching",
        enhance,
    )
    _report(final, "full" if enhance else mode, output, errors_only)
    if final.progress.phase == Phase.FAILED:
        sys.exit(1)


@main.command()
@click.option("--limit", "-l", default=20, show_default=True, type=click.IntRange(min=1), help="Max companies to list")
@click.option("--no-details", is_flag=True, help="Only list names and profile URLs")
@click.option("--enhance", is_flag=True, help="Add CEO and co-founders in a second pass")
@click.option("--mock", is_flag=True, help="Use the offline mock answer API for --enhance")
@_common_options
@click.pass_context
def directory(
    ctx: click.Context,
    limit: int,
    no_details: bool,
    enhance: bool,
    mock: bool,
    output: str | None,
    errors_only: bool,
    no_cache: bool,
    concurrency: int | None,
) -> None:
    """List wealth managers from the directory and fetch their profiles."""
    config: Config = ctx.obj["config"]
    if concurrency:
        config.concurrency = concurrency
    _check_answer_api(config, mock, needed=enhance)

    if not output:
        output = f"directory_{datetime.now().strftime('%Y-%m-%d')}.csv"

    pipeline = EnrichmentPipeline(config, mock=mock, use_cache=not no_cache)
    final = _run_stages(
        pipeline,
        lambda s: s.run_directory(limit, details=not no_details),
        "Directory",
        enhance,
    )
    _report(final, "full" if enhance else "details", output, errors_only)
    if final.progress.phase == Phase.FAILED:
        sys.exit(1)


@main.command()
@click.option("--clear", is_flag=True, help="Delete every cached page")
@click.pass_context
def cache(ctx: click.Context, clear: bool) -> None:
    """Show or clear the page response cache."""
    config: Config = ctx.obj["config"]
    store = ResponseCache(config.cache_db_path, ttl_seconds=config.cache_ttl_seconds)
    try:
        if clear:
            store.clear()
            console.print("[green]Cache cleared.[/green]")
        stats = store.stats()
        console.print(
            f"[dim]Cache {config.cache_db_path}: {stats.get('count', 0)} pages "
            f"(oldest {stats.get('oldest') or '-'}, TTL {config.cache_ttl_seconds}s)[/dim]"
        )
    finally:
        store.close()


@main.command()
@click.option("--host", default=None, help="Bind address (default: WEB_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: WEB_PORT)")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Start the HTTP API."""
    import uvicorn

    config: Config = ctx.obj["config"]
    uvicorn.run(
        "company_enrichment.web.app:app",
        host=host or config.web_host,
        port=port or config.web_port,
    )


if __name__ == "__main__":
    main()
