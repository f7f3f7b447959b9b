"""Command-line interface for the scanner."""

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .checks import default_registry
from .config import settings
from .crawler import HeadlessRenderer, PageFetcher
from .errors import ValidationError
from .models import ScanDetail, ScanStatus
from .orchestrator import ScanOrchestrator
from .queue import JobQueue
from .service import ScanService
from .storage import InMemoryScanStore, ReportWriter
from .utils import setup_logging

app = typer.Typer(
    name="gpteo-scanner",
    help="Score websites for SEO and AI discoverability.",
    no_args_is_help=True,
)
console = Console()

CLI_OWNER = "cli"


async def _run_scan(
    domain: str,
    urls: list[str],
    mode: str,
    render_js: bool,
    output_dir: Path | None,
) -> tuple[ScanDetail, Path | None]:
    registry = default_registry()
    store = InMemoryScanStore()
    render_js = render_js or settings.render_javascript
    fetcher = PageFetcher(renderer=HeadlessRenderer() if render_js else None)
    orchestrator = ScanOrchestrator(store, registry, fetcher=fetcher)
    queue = JobQueue(store, orchestrator)
    service = ScanService(store, queue, registry)

    try:
        scan_id = await service.submit_scan(CLI_OWNER, domain, urls, mode)
        await queue.join()
        detail = await service.get_scan(CLI_OWNER, scan_id)
    finally:
        await queue.stop()

    report_path = None
    if output_dir is not None and detail.scan.status == ScanStatus.COMPLETED:
        report_path = await ReportWriter(output_dir).write(detail)

    return detail, report_path


@app.command()
def scan(
    domain: str = typer.Argument(..., help="Domain being scanned, e.g. example.com"),
    urls: list[str] = typer.Argument(..., help="Seed URLs to evaluate (1-10)"),
    mode: str = typer.Option("quick", "--mode", "-m", help="quick, standard or deep"),
    output_dir: Path = typer.Option(None, "--output", "-o", help="Write JSON and text reports here"),
    render_js: bool = typer.Option(False, "--render-js", help="Render pages in a headless browser"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Scan seed URLs of a domain and print scores and critical issues."""
    setup_logging(verbose)

    console.print(Panel.fit(
        f"[bold blue]GPTeo Scanner[/bold blue]\n"
        f"Domain: [green]{domain}[/green]\n"
        f"Mode: {mode} | URLs: {len(urls)}",
        title="Starting Scan",
    ))

    try:
        detail, report_path = asyncio.run(_run_scan(domain, urls, mode, render_js, output_dir))
    except ValidationError as e:
        console.print(f"[red]Invalid request: {e}[/red]")
        raise typer.Exit(2)
    except KeyboardInterrupt:
        console.print("\n[yellow]Scan cancelled by user[/yellow]")
        raise typer.Exit(1)

    _display_results(detail, report_path)

    if detail.scan.status != ScanStatus.COMPLETED:
        raise typer.Exit(1)


def _score_style(score: float | None) -> str:
    if score is None:
        return "dim"
    return "green" if score >= 80 else "yellow" if score >= 50 else "red"


def _display_results(detail: ScanDetail, report_path: Path | None) -> None:
    """Display scan results in formatted tables."""
    scan = detail.scan
    console.print()

    if scan.status != ScanStatus.COMPLETED:
        console.print(f"[red]Scan {scan.status.value}[/red]")
        if scan.error_message:
            console.print(f"  Error: {scan.error_message}")
        return

    table = Table(title="Scan Summary", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    for label, score in (("SEO Score", scan.seo_score), ("GPTeo Score", scan.gpteo_score)):
        style = _score_style(score)
        table.add_row(label, f"[{style}]{score if score is not None else 'n/a'}[/{style}]")

    summary = detail.summary
    if summary:
        table.add_row("Pages", str(summary.total_pages))
        table.add_row("Findings", str(summary.total_findings))
        table.add_row("Passed", str(summary.pass_count))
        table.add_row("Warnings", str(summary.warning_count))
        table.add_row("Failed", str(summary.fail_count))
    table.add_row("Checks Version", scan.checks_version or "")

    console.print(table)

    if scan.score_breakdown:
        breakdown = Table(title="Score Breakdown", show_header=True)
        breakdown.add_column("Category", style="cyan")
        breakdown.add_column("Group")
        breakdown.add_column("Score", justify="right")
        for category, groups in scan.score_breakdown.items():
            for group, score in groups.items():
                style = _score_style(score)
                breakdown.add_row(category, group, f"[{style}]{score:.1f}[/{style}]")
        console.print(breakdown)

    pages = Table(title="Pages", show_header=True)
    pages.add_column("URL", style="cyan")
    pages.add_column("Type")
    pages.add_column("Status")
    pages.add_column("Findings", justify="right")
    for page in detail.pages:
        status = str(page.status_code) if page.status_code else "-"
        if page.error:
            status = f"[red]{page.error.message}[/red]"
        pages.add_row(page.url, page.type.value, status, str(len(page.findings)))
    console.print(pages)

    if summary and summary.critical_issues:
        console.print("\n[bold red]Critical Issues:[/bold red]")
        for issue in summary.critical_issues:
            console.print(
                f"  • [{issue.severity.value}] {issue.check_key} "
                f"({issue.affected_pages} page{'s' if issue.affected_pages != 1 else ''})"
            )
            console.print(f"    {issue.message}")

    if report_path:
        console.print(Panel.fit(
            f"Report: [bold green]{report_path}[/bold green]",
            title="Output Location",
        ))


@app.command()
def checks() -> None:
    """List the built-in checks."""
    registry = default_registry()

    table = Table(title=f"Checks Registry v{registry.version}", show_header=True)
    table.add_column("Key", style="cyan")
    table.add_column("Category")
    table.add_column("Severity")
    table.add_column("Weight", justify="right")
    table.add_column("Rule")
    table.add_column("Page Types")

    for check in registry.all():
        page_types = ", ".join(sorted(t.value for t in check.page_types)) or "all"
        table.add_row(
            check.key,
            check.category.value,
            check.severity.value,
            str(check.weight),
            check.rule.kind,
            page_types,
        )

    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__
    console.print(f"GPTeo Scanner version {__version__}")


if __name__ == "__main__":
    app()
