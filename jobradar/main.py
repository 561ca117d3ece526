"""Command-line entry point for JobRadar."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .config import Settings, load_settings
from .db import get_admin_client
from .evaluator_agent import GeminiReranker, Reranker
from .llm import create_client
from .models import JobRecord, SearchOutcome
from .pipeline import process_search, run_search
from .progress import PipelineStage
from .search_provider import get_providers

console = Console()

STAGE_DESCRIPTIONS: dict[PipelineStage, str] = {
    PipelineStage.FETCHING: "Fetching jobs from all sources...",
    PipelineStage.FILTERING: "Filtering and scoring...",
    PipelineStage.SCORING: "Re-ranking top matches...",
    PipelineStage.PERSISTING: "Saving results...",
    PipelineStage.COMPLETED: "[green]✓[/green] Search completed",
}


class RichProgressReporter:
    """Shows the current pipeline stage as a spinner line."""

    def __init__(self, progress: Progress) -> None:
        self._progress = progress
        self._task = progress.add_task("Queued...", total=None)

    def report(self, stage: PipelineStage, message: str | None = None) -> None:
        if stage is PipelineStage.ERROR:
            description = f"[red]✗[/red] Search failed: {message}"
        else:
            description = STAGE_DESCRIPTIONS.get(stage, stage.value)
        self._progress.update(self._task, description=description)


def build_reranker(settings: Settings) -> Reranker | None:
    """Gemini re-ranker, or None when no API key is configured."""
    if not settings.google_api_key:
        console.print("[yellow]GOOGLE_API_KEY not set, keeping heuristic order.[/yellow]")
        return None
    client = create_client(settings.google_api_key, timeout_s=settings.rerank_timeout)
    return GeminiReranker(client, settings.gemini_model)


def _format_score(job: JobRecord) -> str:
    score = job.display_score
    marker = "*" if job.semantic_score is not None else ""
    if score >= 80:
        return f"[bold green]{score}{marker}[/bold green]"
    if score >= 50:
        return f"[yellow]{score}{marker}[/yellow]"
    return f"[red]{score}{marker}[/red]"


def display_results(outcome: SearchOutcome, limit: int) -> None:
    """Display the ranked jobs in a table."""
    if not outcome.jobs:
        console.print("[yellow]No matching jobs found.[/yellow]")
        return

    table = Table(
        title=f"🎯 Job Matches ({len(outcome.jobs)} ranked, {outcome.raw_count} fetched)",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("#", justify="right", style="dim", width=3)
    table.add_column("Score", justify="center", width=6)
    table.add_column("Title", style="white", max_width=35)
    table.add_column("Company", style="green", max_width=20)
    table.add_column("Location", style="yellow", max_width=18)
    table.add_column("Source", style="cyan", max_width=16)
    table.add_column("Contract", max_width=11)

    for job in outcome.jobs[:limit]:
        table.add_row(
            str(job.rank),
            _format_score(job),
            job.title[:35],
            job.company_name[:20],
            job.location[:18],
            job.source,
            job.contract_label or "-",
        )

    console.print(table)
    console.print("[dim]* semantic score[/dim]")

    reranked = [job for job in outcome.jobs if job.justification]
    if reranked:
        console.print("\n[bold]📝 Top Match Details:[/bold]")
        for job in reranked[:3]:
            console.print(f"\n[bold cyan]{job.rank}. {job.title}[/bold cyan] at [green]{job.company_name}[/green]")
            console.print(f"   Score: {job.display_score}/100")
            console.print(f"   Why: {job.justification}")
            if job.job_url:
                console.print(f"   Link: {job.job_url}")


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the JobRadar CLI."""
    parser = argparse.ArgumentParser(
        description="JobRadar: multi-source job search ranked against a candidate profile",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  jobradar profile.json
  jobradar profile.json --no-rerank --limit 50
  jobradar --search-id 5b0c6c1e-...
        """,
    )
    parser.add_argument(
        "profile_path",
        type=Path,
        nargs="?",
        help="JSON file with the candidate profile (target_roles, skills, location, ...)",
    )
    parser.add_argument("--search-id", help="Process a stored search from Supabase instead of a local profile")
    parser.add_argument("--no-rerank", action="store_true", help="Skip the semantic re-ranking step")
    parser.add_argument(
        "--limit", "-n",
        type=int,
        default=25,
        help="Number of results to display (default: 25)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)
    if bool(args.profile_path) == bool(args.search_id):
        parser.error("pass either a profile file or --search-id")

    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    console.print()
    console.print(Panel.fit("[bold blue]JobRadar[/bold blue]\n[dim]Ranked job search across sources[/dim]"))
    console.print()

    try:
        settings = load_settings()
        providers = get_providers(settings)
        reranker = None if args.no_rerank else build_reranker(settings)

        if args.search_id:
            outcome = process_search(
                get_admin_client(), args.search_id, providers, reranker=reranker, settings=settings
            )
        else:
            profile_data = json.loads(args.profile_path.read_text(encoding="utf-8"))
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
            ) as progress:
                outcome = run_search(
                    profile_data,
                    providers,
                    reranker=reranker,
                    reporter=RichProgressReporter(progress),
                    settings=settings,
                )
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        return 130
    except (OSError, ValueError, LookupError) as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    if outcome.status == "error":
        console.print(f"[red]Search failed:[/red] {outcome.error_message}")
        return 1

    display_results(outcome, args.limit)
    return 0


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
