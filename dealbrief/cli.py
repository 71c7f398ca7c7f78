"""CLI entry point for the DealBrief OSINT spider."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from dealbrief.config import load_config
from dealbrief.errors import InputValidationError, MissingCredentialsError
from dealbrief.models import Payload
from dealbrief.pipeline import ResearchPipeline

console = Console(force_terminal=True, stderr=True)


def _summary_table(payload: Payload) -> Table:
    table = Table(title=f"{payload.company} ({payload.domain})")
    table.add_column("Section")
    table.add_column("Bullets", justify="right")
    table.add_column("Summary", overflow="fold")
    for section in payload.sections:
        table.add_row(section.name.value, str(len(section.bullets)), section.summary)
    return table


@click.command()
@click.argument("company")
@click.argument("domain")
@click.option(
    "--owner",
    "owners",
    multiple=True,
    help="Owner or key person name — repeatable",
)
@click.option(
    "--output", "-o",
    default=None,
    type=click.Path(dir_okay=False),
    help="Write the payload JSON to this file (default: stdout)",
)
@click.option(
    "--budget",
    default=None,
    type=float,
    help="Total run budget in seconds (default: 600)",
)
@click.option(
    "--max-queries",
    default=None,
    type=int,
    help="Maximum search queries (default: 150)",
)
@click.option(
    "--max-targets",
    default=None,
    type=int,
    help="Maximum scrape targets (default: 40)",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose debug logging",
)
def main(
    company: str,
    domain: str,
    owners: tuple[str, ...],
    output: str | None,
    budget: float | None,
    max_queries: int | None,
    max_targets: int | None,
    verbose: bool,
) -> None:
    """Research COMPANY (at DOMAIN) and produce a due-diligence brief.

    Example: dealbrief "Acme Widgets Inc" acme.com --owner "Jane Doe" -o acme.json
    """
    log_level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False, show_time=False)],
    )

    try:
        config = load_config()
    except MissingCredentialsError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    # Apply CLI overrides
    if budget is not None:
        config.limits.run_budget_seconds = budget
    if max_queries is not None:
        config.limits.max_search_queries = max_queries
    if max_targets is not None:
        config.limits.max_scrape_targets = max_targets

    raw = {"company_name": company, "domain": domain, "owner_names": list(owners) or None}

    async def _run() -> Payload:
        pipeline = ResearchPipeline(config)
        try:
            return await pipeline.run(raw)
        finally:
            await pipeline.close()

    try:
        payload = asyncio.run(_run())
    except InputValidationError as e:
        console.print(f"[red]Input error: {e}[/red]")
        for err in e.errors:
            loc = ".".join(str(p) for p in err.get("loc", ()))
            console.print(f"  [red]{loc}: {err.get('msg')}[/red]")
        sys.exit(1)

    data = payload.model_dump_json(by_alias=True, indent=2)
    if output:
        Path(output).write_text(data, encoding="utf-8")
    else:
        click.echo(data)

    console.print(_summary_table(payload))
    console.print(f"\n[bold]Executive summary:[/bold] {payload.summary}")
    console.print(
        f"  Citations: {len(payload.citations)}  "
        f"Files for review: {len(payload.files_for_manual_review)}  "
        f"Queries: {payload.stats.query_count}  "
        f"Cost: ${payload.cost.total:.4f}  "
        f"Time: {payload.stats.wall_time_seconds}s"
    )
    if output:
        console.print(f"\n[bold]Payload written to {output}[/bold]")


if __name__ == "__main__":
    main()
