# /citeforge/cli.py
"""
Command-line front end: open a PDF, locate a quoted citation, show where it landed.
"""
import argparse
import asyncio
import os
import sys
from pathlib import Path

from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table, box

from .config import console
from .models import JumpOutcome, JumpResult
from .observability import get_logger
from .pdf_surface import PdfRenderSurface
from .viewer import CitationViewer, ViewerSettings

logger = get_logger(__name__)

# No viewport to settle or ring to show in a terminal.
CLI_SETTINGS = ViewerSettings(scroll_settle_delay_s=0.0, focus_ring_duration_s=0.0)


def display_welcome_banner():
    console.print(Panel(
        "[bold magenta]citeforge - Citation Locator[/bold magenta]",
        subtitle="[cyan]Exact, prefix, anchor and word matching[/cyan]",
        expand=False
    ))


def _resolve_pdf_path(raw_input: str) -> tuple[Path | None, str | None]:
    """Normalizes and validates a user-provided PDF path."""
    cleaned = str(raw_input or "").strip().strip('"').strip("'")
    if not cleaned:
        return None, "Error: Empty path provided."
    try:
        resolved = Path(cleaned).expanduser().resolve(strict=True)
    except FileNotFoundError:
        return None, f"Error: File not found at '{cleaned}'"
    except OSError as exc:
        return None, f"Error: Invalid path '{cleaned}' ({exc})"

    if not resolved.is_file():
        return None, f"Error: Path is not a regular file: '{resolved}'"
    if resolved.suffix.lower() != ".pdf":
        return None, f"Error: Not a PDF file: '{resolved.name}'"
    return resolved, None


def render_result(result: JumpResult):
    table = Table(title="Citation lookup", box=box.SIMPLE_HEAVY, show_header=False)
    table.add_column("field", style="bold cyan")
    table.add_column("value")
    outcome_style = "green" if result.outcome is JumpOutcome.FOUND else "yellow"
    table.add_row("Outcome", f"[{outcome_style}]{result.outcome.value}[/{outcome_style}]")
    table.add_row("Page", str(result.page) if result.page is not None else "-")
    table.add_row("Pages scanned", str(result.pages_scanned))
    if result.match is not None:
        table.add_row("Strategy", result.match.strategy.value)
        table.add_row("Searched for", result.match.search_text)
        table.add_row("Matched text", result.match.matched_text)
    if result.error is not None:
        table.add_row("Reason", str(result.error))
    console.print(table)


async def _open_document(viewer: CitationViewer, surface: PdfRenderSurface):
    viewer.load_document(surface)
    with console.status("[bold cyan]Extracting page text...[/bold cyan]", spinner="dots"):
        surface.render_all()
        await viewer.wait_for_extraction()
    extracted = sum(1 for item in viewer.get_page_texts() if item["text"])
    console.print(f"[green]Loaded {surface.title} ({surface.page_count} pages, {extracted} with text)[/green]")


def _export(surface: PdfRenderSurface, export_path: str | None):
    if not export_path:
        return
    added = surface.export_highlighted(export_path)
    console.print(f"[dim]Wrote {added} highlight annotation(s) to {export_path}[/dim]")


async def run(pdf_path: Path, quote: str | None, page: int | None, export_path: str | None) -> int:
    viewer = CitationViewer(settings=CLI_SETTINGS)
    surface = PdfRenderSurface(pdf_path)
    try:
        await _open_document(viewer, surface)
        if quote:
            result = await viewer.locate(page=page, quote=quote)
            render_result(result)
            _export(surface, export_path)
            return 0 if result.outcome is JumpOutcome.FOUND else 1

        console.print("\n[bold green]Lookup session started.[/bold green] [italic]Type 'exit' to quit.[/italic]")
        while True:
            entered = Prompt.ask("[bold cyan]Quote to locate[/bold cyan]")
            if entered.strip().lower() == "exit":
                break
            if not entered.strip():
                continue
            render_result(await viewer.locate(quote=entered))
            _export(surface, export_path)
        return 0
    finally:
        viewer.close()
        surface.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="citeforge", description="Locate a quoted citation inside a PDF.")
    parser.add_argument("pdf", help="path to the PDF document")
    parser.add_argument("quote", nargs="?", help="quote to locate; omit for an interactive session")
    parser.add_argument("--page", type=int, default=None, help="page the citation claims (advisory)")
    parser.add_argument("--export", default=None, help="write a copy of the PDF with the highlight annotated")
    return parser


def main(argv: list[str] | None = None):
    """Main application entry point."""
    args = build_parser().parse_args(argv)
    display_welcome_banner()
    pdf_path, error_message = _resolve_pdf_path(args.pdf)
    if pdf_path is None:
        console.print(f"[bold red]{error_message}[/bold red]")
        sys.exit(2)
    try:
        code = asyncio.run(run(pdf_path, args.quote, args.page, args.export))
    except KeyboardInterrupt:
        code = 130
    except (RuntimeError, ValueError, OSError) as exc:
        logger.error("cli_failed", error=str(exc), pdf=os.fspath(pdf_path))
        console.print(f"[bold red]Error: {exc}[/bold red]")
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
