"""SiteChat CLI application using Typer."""

import asyncio
import json
import sys
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from sitechat import __version__
from sitechat.config import settings
from sitechat.core.chat.answer_engine import answer
from sitechat.core.ingestion.scan_service import ScanOptions
from sitechat.core.ingestion.web_scraping.browser_pool import BrowserPool
from sitechat.core.ingestion.web_scraping.crawl_scheduler import CrawlResult, CrawlScheduler
from sitechat.core.ingestion.web_scraping.page_fetcher import PageFetcher
from sitechat.core.ingestion.web_scraping.url_utils import validate_site_url
from sitechat.utils.logging import configure_logging

app = typer.Typer(
    name="sitechat",
    help="SiteChat - crawl websites and answer questions about them",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    """Display version and exit."""
    if value:
        console.print(f"[bold cyan]SiteChat[/bold cyan] version {__version__}")
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
    """SiteChat - crawl websites and answer questions about them."""
    # stdout is reserved for command output
    configure_logging(
        log_level=settings.log_level, environment=settings.environment, stream=sys.stderr
    )


def validate_url_argument(url: str) -> str:
    """
    Validate a website URL argument.

    Raises:
        typer.Exit: If the URL is not an absolute http(s) URL
    """
    valid_url = validate_site_url(url)
    if valid_url is None:
        console.print(f"\n[bold red]Invalid website URL:[/bold red] {url}")
        console.print("  Expected: http://... or https://...")
        raise typer.Exit(code=1)
    return valid_url


async def run_crawl(url: str, max_pages: int, render: bool) -> CrawlResult:
    """Crawl a website without touching the database."""
    options = ScanOptions.from_settings(settings)
    options.crawl.max_pages = max_pages
    options.crawl.render_seed = render

    browser_pool = (
        BrowserPool(
            max_contexts=1,
            headless=settings.browser_headless,
            user_agent=settings.user_agent,
        )
        if render
        else None
    )
    try:
        async with PageFetcher(options.fetch, browser_pool=browser_pool) as fetcher:
            scheduler = CrawlScheduler(url, fetcher, config=options.crawl)
            return await scheduler.run()
    finally:
        if browser_pool is not None:
            await browser_pool.close()


MaxPagesOption = Annotated[
    int,
    typer.Option("--max-pages", "-n", min=1, help="Maximum number of pages to visit"),
]
RenderOption = Annotated[
    bool,
    typer.Option("--render/--no-render", help="Render the first page in a headless browser"),
]


@app.command()
def crawl(
    url: Annotated[str, typer.Argument(help="Website URL to crawl")],
    max_pages: MaxPagesOption = settings.crawl_max_pages,
    render: RenderOption = settings.render_seed_page,
    as_json: Annotated[
        bool, typer.Option("--json", help="Print the records as JSON")
    ] = False,
) -> None:
    """
    Crawl a website and print the pages it produced.

    Examples:
        sitechat crawl https://example.com
        sitechat crawl https://example.com --max-pages 5 --no-render --json
    """
    url = validate_url_argument(url)

    try:
        result = asyncio.run(run_crawl(url, max_pages, render))
    except KeyboardInterrupt:
        console.print("\n\n[yellow]Crawl cancelled by user (Ctrl+C)[/yellow]")
        raise typer.Exit(code=130) from None

    if as_json:
        typer.echo(json.dumps([record.model_dump() for record in result.records], indent=2))
        raise typer.Exit(code=0 if result.succeeded else 1)

    table = Table(title=f"Pages from {url}")
    table.add_column("#", justify="right", style="dim")
    table.add_column("URL", style="cyan")
    table.add_column("Title")
    table.add_column("Characters", justify="right")
    for i, record in enumerate(result.records, start=1):
        table.add_row(str(i), record.url, record.title, str(len(record.content)))
    console.print(table)

    console.print(
        f"\nVisited {len(result.visited)} page(s), "
        f"recorded {len(result.records)}, failed {len(result.failures)}"
        + (" [yellow](time budget exhausted)[/yellow]" if result.timed_out else "")
    )
    for failed_url, reason in result.failures.items():
        console.print(f"  [red]✗[/red] {failed_url}: {reason}")

    if not result.succeeded:
        console.print("\n[bold red]No content could be extracted[/bold red]")
        raise typer.Exit(code=1)


@app.command()
def ask(
    url: Annotated[str, typer.Argument(help="Website URL to crawl")],
    question: Annotated[str, typer.Argument(help="Question to answer from the site's content")],
    max_pages: MaxPagesOption = settings.crawl_max_pages,
    render: RenderOption = settings.render_seed_page,
) -> None:
    """
    Crawl a website, then answer a question from its content.

    Example:
        sitechat ask https://example.com "What are your opening hours?"
    """
    url = validate_url_argument(url)

    with console.status(f"Crawling {url}..."):
        result = asyncio.run(run_crawl(url, max_pages, render))

    reply = answer(question, result.records)
    console.print(
        Panel(
            reply,
            title=f"Answer ({len(result.records)} page(s) searched)",
            border_style="green" if result.succeeded else "yellow",
        )
    )


@app.command("init-db")
def init_db_command() -> None:
    """Create the database tables."""
    from sitechat.db.session import close_db, init_db

    async def run() -> None:
        try:
            await init_db()
        finally:
            await close_db()

    try:
        asyncio.run(run())
    except Exception as e:
        console.print("\n[bold red]Database initialization failed:[/bold red]")
        console.print(f"  {type(e).__name__}: {e}")
        console.print("\n[yellow]Hint:[/yellow] Verify DATABASE_URL and that the database is running")
        raise typer.Exit(code=1) from None

    console.print(f"[green]✓[/green] Tables created in {settings.database_url.split('@')[-1]}")


@app.command()
def serve(
    host: Annotated[str, typer.Option("--host", help="Bind address")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", "-p", help="Bind port")] = 5008,
    reload: Annotated[bool, typer.Option("--reload", help="Reload on code changes")] = False,
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("sitechat.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
