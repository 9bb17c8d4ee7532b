"""authorscout CLI application using Typer."""

import asyncio
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from authorscout import __version__
from authorscout.config import settings
from authorscout.core.crawl import (
    CrawlConfig,
    CrawlOrchestrator,
    CrawlState,
    JsonFileStateStore,
    PlaywrightPageSource,
    ResultFinalizer,
    RunLock,
    ScrapeResult,
)
from authorscout.core.crawl.models import Progress as CrawlProgress
from authorscout.utils.exceptions import (
    BrowserInitializationError,
    CrawlInProgressError,
    StateError,
)
from authorscout.utils.logging import configure_logging

app = typer.Typer(
    name="authorscout",
    help="authorscout - incremental author discovery crawler",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    """Display version and exit."""
    if value:
        console.print(f"[bold cyan]authorscout[/bold cyan] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """authorscout - incremental author discovery crawler."""
    configure_logging(settings.log_level, settings.environment)


def _store() -> JsonFileStateStore:
    return JsonFileStateStore(settings.state_file)


def _lock() -> RunLock:
    return RunLock(settings.state_file.with_suffix(".lock"))


def _load_state(store: JsonFileStateStore) -> CrawlState:
    try:
        return CrawlState.from_snapshot(store.load(), sample_cap=settings.sample_article_cap)
    except StateError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        console.print("\n[yellow]Hint:[/yellow] Run 'authorscout reset' to start fresh")
        raise typer.Exit(code=1) from None


def _authors_table(result: ScrapeResult, limit: int | None = None) -> Table:
    authors = result.authors[:limit] if limit else result.authors
    table = Table(title=f"Authors ({result.stats.total_authors} total)")
    table.add_column("Handle", style="dim", no_wrap=True)
    table.add_column("Name", style="cyan", max_width=30)
    table.add_column("Keywords", style="white", max_width=40)
    table.add_column("Twitter", justify="center")
    table.add_column("LinkedIn", justify="center")
    table.add_column("GitHub", justify="center")
    table.add_column("Website", justify="center")
    table.add_column("Articles", justify="right")

    def mark(value: str | None) -> str:
        return "[green]yes[/green]" if value else "[dim]-[/dim]"

    for author in authors:
        table.add_row(
            author.handle,
            author.name,
            ", ".join(author.matched_keywords),
            mark(author.twitter),
            mark(author.linkedin),
            mark(author.github),
            mark(author.website),
            str(author.article_count),
        )
    return table


@app.command()
def crawl(
    reset: Annotated[
        bool,
        typer.Option("--reset", help="Discard stored crawl state before starting"),
    ] = False,
    sitemaps: Annotated[
        int | None,
        typer.Option("--sitemaps", "-s", help="Number of sub-sitemaps to enumerate"),
    ] = None,
    max_per_sitemap: Annotated[
        int | None,
        typer.Option("--max-per-sitemap", help="Maximum new articles taken from one sitemap"),
    ] = None,
    no_search: Annotated[
        bool,
        typer.Option("--no-search", help="Skip keyword search sources"),
    ] = False,
    no_tags: Annotated[
        bool,
        typer.Option("--no-tags", help="Skip tag listing sources"),
    ] = False,
    no_sitemaps: Annotated[
        bool,
        typer.Option("--no-sitemaps", help="Skip sitemap sources"),
    ] = False,
    headless: Annotated[
        bool,
        typer.Option("--headless/--headed", help="Run Chromium without a window"),
    ] = settings.headless,
) -> None:
    """
    Crawl the configured sources and update the author list.

    Repeated runs continue from the stored state: pages and profiles
    already processed are skipped.

    Examples:
        authorscout crawl
        authorscout crawl --no-sitemaps
        authorscout crawl --reset --sitemaps 3 --max-per-sitemap 50
    """
    config = CrawlConfig.from_settings(settings)
    config.include_search = not no_search
    config.include_tags = not no_tags
    config.include_sitemaps = not no_sitemaps
    if sitemaps is not None:
        config.sitemaps_to_check = sitemaps
    if max_per_sitemap is not None:
        config.max_refs_per_sitemap = max_per_sitemap

    page_source = PlaywrightPageSource(
        headless=headless,
        user_agent=settings.user_agent,
        timeout_ms=settings.navigation_timeout_ms,
        scroll_delay_seconds=settings.scroll_delay_seconds,
    )
    orchestrator = CrawlOrchestrator(config=config, store=_store(), page_source=page_source)

    console.print(
        Panel.fit(
            "[bold cyan]authorscout[/bold cyan] - Author Crawl\n"
            f"Version {__version__}",
            border_style="cyan",
        )
    )
    console.print("\n[bold]Configuration:[/bold]")
    console.print(f"  Site: {config.base_url}")
    console.print(f"  State: {settings.state_file}")
    console.print(f"  Keywords: {len(config.keywords) if config.include_search else 0}")
    console.print(f"  Tags: {len(config.tags) if config.include_tags else 0}")
    console.print(
        f"  Sitemaps: {config.sitemaps_to_check if config.include_sitemaps else 0}"
        f" (max {config.max_refs_per_sitemap} articles each)"
    )
    console.print()

    try:
        with _lock(), Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Starting...", total=None)

            def on_progress(update: CrawlProgress) -> None:
                progress.update(
                    task,
                    description=f"{update.phase.value}: {update.message[:60]}",
                    completed=update.current,
                    total=update.total or None,
                )

            result = asyncio.run(orchestrator.run(reset=reset, on_progress=on_progress))

    except CrawlInProgressError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from None

    except BrowserInitializationError as e:
        console.print("\n[bold red]Browser failed to start:[/bold red]")
        console.print(f"  {e}")
        console.print(
            "\n[yellow]Hint:[/yellow] Run 'playwright install chromium'. "
            "Progress made so far has been saved."
        )
        raise typer.Exit(code=1) from None

    except StateError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        console.print("\n[yellow]Hint:[/yellow] Run 'authorscout reset' to start fresh")
        raise typer.Exit(code=1) from None

    except KeyboardInterrupt:
        console.print("\n\n[yellow]Crawl cancelled by user (Ctrl+C). Progress saved.[/yellow]")
        raise typer.Exit(code=130) from None

    console.print("\n", _authors_table(result, limit=25), "\n")
    stats = result.stats
    console.print(
        Panel.fit(
            f"[bold green]Crawl Complete![/bold green]\n\n"
            f"Authors: {stats.total_authors} ({stats.new_authors_this_run} new)\n"
            f"Articles collected this run: {stats.articles_processed}\n"
            f"With Twitter/X: {stats.with_twitter}  LinkedIn: {stats.with_linkedin}  "
            f"GitHub: {stats.with_github}  Website: {stats.with_website}\n"
            f"Time: {stats.processing_time_ms / 1000:.1f}s",
            title="Success",
            border_style="green",
        )
    )


@app.command()
def status() -> None:
    """Show stored crawl progress and run history."""
    store = _store()
    state = _load_state(store)
    history = store.history()

    table = Table(title="Crawl State")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("State file", str(settings.state_file))
    table.add_row("Authors", str(len(state.authors)))
    table.add_row("Seen slugs", str(len(state.seen_slugs)))
    table.add_row("Processed URLs", str(len(state.processed_urls)))
    table.add_row("Processed profiles", str(len(state.processed_profiles)))
    table.add_row("Pending profiles", str(len(state.pending_profiles())))
    table.add_row("Runs", str(len(history)))
    if history:
        last = history[-1]
        table.add_row("Last run", last.finished_at.strftime("%Y-%m-%d %H:%M:%S"))
        table.add_row("Last run new authors", str(last.new_authors))
    table.add_row("Run in progress", "yes" if _lock().path.exists() else "no")

    console.print("\n", table, "\n")


@app.command()
def results(
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the full result as JSON"),
    ] = False,
) -> None:
    """Show the authors accumulated so far."""
    state = _load_state(_store())
    result = ResultFinalizer().finalize(state)

    if as_json:
        typer.echo(result.to_json())
        return

    if not result.authors:
        console.print("\n[yellow]No authors yet[/yellow]\n")
        console.print("[dim]Run 'authorscout crawl' to collect authors[/dim]\n")
        return

    console.print("\n", _authors_table(result), "\n")


@app.command()
def reset(
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation"),
    ] = False,
) -> None:
    """Delete the stored crawl state and run history."""
    if not yes:
        typer.confirm("Delete all stored crawl state?", abort=True)

    try:
        with _lock():
            _store().clear()
    except CrawlInProgressError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from None

    console.print("[green]Crawl state cleared[/green]")


if __name__ == "__main__":
    app()
