"""
forge: command-line entry point.

    forge roll 2d6+3
    forge lookup "What is the armor class of a chain shirt?"
    forge ingest --directory data/files
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from app.core.config import LOG_LEVEL, LOOKUP_TEXT_WIDTH, PDF_DIR_NAME
from app.dice import roll

logger = logging.getLogger(__name__)

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)


def cmd_roll(args: argparse.Namespace) -> int:
    console.print(f"[cyan]Rolling [bold]{escape(args.dice)}[/bold]...[/cyan]")
    try:
        result = roll(args.dice)
    except ValueError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        console.print('[yellow]Please use valid dice notation like "2d6" or "1d20+5"[/yellow]')
        return 1
    console.print(f"Rolls: [{', '.join(str(r) for r in result.rolls)}]", style="yellow", markup=False)
    console.print(f"[green]Total: [bold]{result.total}[/bold][/green]")
    return 0


async def _lookup(query: str, debug: bool) -> None:
    from app.agent.graph import build_agent
    from app.render.console import render

    agent = build_agent()
    await render(agent.stream_ask(query), column_width=LOOKUP_TEXT_WIDTH, debug_mode=debug)


def cmd_lookup(args: argparse.Namespace) -> int:
    console.print(f"[cyan]Looking up: [bold]{escape(args.query)}[/bold][/cyan]")
    console.print("[yellow]Searching for information...[/yellow]")
    try:
        asyncio.run(_lookup(args.query, args.debug))
    except Exception as e:
        logger.exception("lookup failed")
        err_console.print(f"[red]Error during lookup: {escape(str(e))}[/red]")
        return 1
    return 0


def cmd_ingest(args: argparse.Namespace) -> int:
    from app.services.ingestion_service import ingest_directory

    try:
        report = ingest_directory(Path(args.directory), reset=args.reset)
    except Exception as e:
        logger.exception("ingest failed")
        err_console.print(f"[red]Error during import: {escape(str(e))}[/red]")
        return 1
    console.print(
        f"[green]Found {report.files_found} PDF files, stored {report.chunks_stored} chunks.[/green]"
    )
    if report.failed:
        console.print(f"[yellow]Failed: {escape(', '.join(report.failed))}[/yellow]")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="forge", description="AI-powered D&D assistant")
    parser.add_argument("--version", action="version", version="%(prog)s 1.0.0")
    sub = parser.add_subparsers(dest="command")

    p_roll = sub.add_parser("roll", help="Roll dice (e.g., 2d6, 1d20)")
    p_roll.add_argument("dice", help="Dice notation (e.g., 2d6, 1d20+5)")
    p_roll.set_defaults(func=cmd_roll)

    p_lookup = sub.add_parser("lookup", help="Look up D&D rules or information")
    p_lookup.add_argument("query", help="What to look up")
    p_lookup.add_argument("--debug", action="store_true", help="Print every raw stream event")
    p_lookup.set_defaults(func=cmd_lookup)

    p_ingest = sub.add_parser("ingest", help="Import rulebook PDFs into the knowledge base")
    p_ingest.add_argument("--directory", default=PDF_DIR_NAME, help="Folder containing PDF files")
    p_ingest.add_argument("--reset", action="store_true", help="Drop the collection before importing")
    p_ingest.set_defaults(func=cmd_ingest)
    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=LOG_LEVEL)
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        console.print("[bold green]Welcome to DungeonForge - Your AI-powered D&D assistant![/bold green]")
        console.print("[yellow]Type [cyan]forge --help[/cyan] to see available commands.[/yellow]")
        return 0
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
