"""CLI interface for snaxel-query."""

import asyncio
from typing import Any

import typer

from .config import settings
from .engine import QueryEngine
from .exceptions import SnaxelQueryError
from .models import AggregateResult, ResultRecord, SourceFailure, SourceOutcome
from .observability.logging import setup_structured_logging
from .retry import backoff_delays
from .sources import SOURCE_NAMES
from .summary import summarize
from .utils import save_query_result

app = typer.Typer(help="Query web, image, video, news and book search engines through a headless browser")

SNIPPET_WIDTH = 100


def build_engine() -> QueryEngine:
    """Create the engine used by CLI commands."""
    return QueryEngine.from_settings(settings)


@app.callback()
def main() -> None:
    setup_structured_logging(settings.output.logging_level)


def _format_meta(meta: dict[str, Any]) -> str:
    return " • ".join(f"{key}: {value}" for key, value in meta.items() if key != "position")


def _print_result(index: int, result: ResultRecord) -> None:
    typer.secho(f"{index}. {result.title}", bold=True)
    typer.secho(f"   {result.url}", fg=typer.colors.BLUE)
    if result.snippet:
        typer.echo(f"   {result.snippet[:SNIPPET_WIDTH]}")
    meta = _format_meta(result.meta)
    if meta:
        typer.secho(f"   {meta}", fg=typer.colors.MAGENTA)
    typer.echo("")


def print_outcome(name: str, outcome: SourceOutcome) -> None:
    """Print one source's results in human-readable form."""
    typer.secho(f"\n━━━ {name.upper()} RESULTS ━━━\n", fg=typer.colors.CYAN, bold=True)

    if isinstance(outcome, SourceFailure):
        typer.secho(f"Error: {outcome.reason}", fg=typer.colors.YELLOW)
        return

    if not outcome.results:
        typer.secho("No results found", fg=typer.colors.YELLOW)
        return

    for i, result in enumerate(outcome.results, start=1):
        _print_result(i, result)


@app.command()
def search(
    query: str = typer.Argument(..., help="Search query"),
    web: bool = typer.Option(False, "--web", help="Search web results only"),
    images: bool = typer.Option(False, "--images", help="Search images only"),
    videos: bool = typer.Option(False, "--videos", help="Search videos only"),
    news: bool = typer.Option(False, "--news", help="Search news only"),
    books: bool = typer.Option(False, "--books", help="Search books only"),
    all_sources: bool = typer.Option(False, "--all", help="Search all sources (default)"),
    limit: int = typer.Option(10, "--limit", "-l", min=0, help="Limit results per source"),
    json_output: bool = typer.Option(False, "--json", help="Output raw JSON"),
    summary_only: bool = typer.Option(False, "--summary", help="Show summary only"),
    save: bool = typer.Option(False, "--save", "-s", help="Save results as JSON to the results directory"),
) -> None:
    """Search one or more sources for QUERY."""
    selected = [name for name, flag in zip(SOURCE_NAMES, (web, images, videos, news, books), strict=True) if flag]
    search_all = all_sources or not selected
    machine_output = json_output or summary_only

    if not query.strip():
        typer.secho("Error: Please provide a search query", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=1)

    if not machine_output:
        typer.secho(f'🔍 Searching for: "{query}"\n', fg=typer.colors.GREEN, bold=True)

    async def _search() -> None:
        engine = build_engine()
        try:
            if search_all:
                aggregate = await engine.query_all_sources(query, {"limit": limit})
                _emit_aggregate(aggregate, json_output, summary_only)
                if save:
                    path = save_query_result(aggregate, query, prefix="all", results_dir=settings.get_results_dir())
                    typer.echo(f"Saved to: {path}", err=True)
            else:
                for name in selected:
                    outcome = await engine.get_results(name, query, {"limit": limit})
                    if json_output:
                        typer.echo(outcome.model_dump_json(indent=2))
                    else:
                        print_outcome(name, outcome)
                    if save:
                        path = save_query_result(outcome, query, prefix=name, results_dir=settings.get_results_dir())
                        typer.echo(f"Saved to: {path}", err=True)
        finally:
            await engine.close()

    try:
        asyncio.run(_search())
    except SnaxelQueryError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=1) from e

    if not machine_output:
        typer.secho("✓ Search completed\n", fg=typer.colors.GREEN)


def _emit_aggregate(aggregate: AggregateResult, json_output: bool, summary_only: bool) -> None:
    if json_output:
        typer.echo(aggregate.model_dump_json(indent=2))
    elif summary_only:
        typer.echo(summarize(aggregate).model_dump_json(indent=2))
    else:
        for name, outcome in aggregate.by_source.items():
            print_outcome(name, outcome)


@app.command()
def config() -> None:
    """Show current configuration."""
    fanout = settings.fanout
    print(f"Headless: {settings.browser.headless}")
    print(f"Proxy: {settings.browser.proxy_server or '(none)'}")
    print(f"Page Timeout: {settings.browser.timeout}s")
    print(f"Blocked Resources: {', '.join(settings.browser.block_resources) or '(none)'}")
    print(f"Concurrency: {fanout.concurrency}")
    print(f"Max Retries: {fanout.max_retries}")
    print(f"Retry Delay: {fanout.retry_delay}s")
    print(f"Max Retry Delay: {fanout.max_retry_delay if fanout.max_retry_delay is not None else '(unbounded)'}")
    schedule = backoff_delays(fanout.max_retries, fanout.retry_delay, fanout.max_retry_delay)
    print(f"Backoff Schedule: {', '.join(f'{d:g}s' for d in schedule) or '(no retries)'}")
    print(f"Sources: {', '.join(SOURCE_NAMES)}")


if __name__ == "__main__":
    app()
