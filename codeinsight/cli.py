"""CLI entry point for codeinsight."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path

import typer
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from codeinsight.activity import log_analysis_run, read_activity_log
from codeinsight.analysis.aggregator import EventAggregator
from codeinsight.analysis.errors import StoreUnavailable
from codeinsight.analysis.models import AnalysisOutcome, CodingEvent
from codeinsight.analysis.provider import AnthropicLanguageModel, InsightProvider
from codeinsight.analysis.service import AnalysisService
from codeinsight.config import Config
from codeinsight.storage.db import get_connection
from codeinsight.storage.repository import Repository

app = typer.Typer(help="Analyze coding-practice activity and recommend improvements.")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[
            RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)
        ],
    )


def _open_repo(db_path: str | None, config: Config, must_exist: bool = True) -> Repository:
    db = Path(db_path) if db_path else config.db_path
    if must_exist and not db.exists():
        rprint(f"[red]Database not found at {db}. Run 'codeinsight ingest' first.[/red]")
        raise typer.Exit(1)
    return Repository(get_connection(db))


def _build_service(repo: Repository, config: Config, heuristic_only: bool) -> AnalysisService:
    provider = None
    if not heuristic_only and config.ai_configured:
        provider = InsightProvider(AnthropicLanguageModel.from_config(config), config)
    return AnalysisService(EventAggregator(repo), provider, repo)


def _print_outcome(outcome: AnalysisOutcome) -> None:
    if not outcome.ok:
        color = "yellow" if outcome.status == "rejected" else "red"
        rprint(f"[{color}]Analysis {outcome.status}: {outcome.reason}[/{color}]")
        return

    record = outcome.record
    rprint(f"[green bold]Analysis #{record.id} for {record.user_id}[/green bold]")
    rprint(f"  Source:       {record.ai_model_used} (confidence {record.formatted_confidence})")
    rprint(f"  Approach:     {record.formatted_rating}")
    rprint(f"  Code quality: {record.quality_score:.1f}/5.0")
    rprint(
        f"  Activity:     {record.total_problems} problems, {record.total_runs} runs, "
        f"{record.total_submits} submits over {record.period_days} days"
    )
    rprint(f"\n[bold]Summary:[/bold] {outcome.summary}")
    rprint(f"\n[bold]Strengths:[/bold] {record.strengths}")
    rprint(f"[bold]Weaknesses:[/bold] {record.weaknesses}")
    rprint("\n[bold]Recommendations:[/bold]")
    for item in outcome.recommendations:
        rprint(f"  - {item}")
    if record.suggestions.next_steps:
        rprint("\n[bold]Next steps:[/bold]")
        for item in record.suggestions.next_steps:
            rprint(f"  - {item}")
    rprint(f"\n[dim]Timeline: {record.suggestions.timeline}[/dim]")


@app.command()
def ingest(
    path: Path = typer.Argument(help="JSON Lines file with one coding event per line"),
    db_path: str = typer.Option(None, help="Database file path"),
) -> None:
    """Load coding events into the database."""
    if not path.exists():
        rprint(f"[red]File not found: {path}[/red]")
        raise typer.Exit(1)

    events: list[CodingEvent] = []
    skipped = 0
    for line_no, line in enumerate(path.read_text().splitlines(), 1):
        if not line.strip():
            continue
        try:
            events.append(CodingEvent.from_dict(json.loads(line)))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            rprint(f"[yellow]Skipping line {line_no}: {e}[/yellow]")
            skipped += 1

    config = Config.load()
    repo = _open_repo(db_path, config, must_exist=False)
    try:
        count = repo.save_events(events)
    except StoreUnavailable as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(1)
    finally:
        repo.close()

    rprint(f"Loaded [bold]{count}[/bold] events ({skipped} skipped)")


@app.command()
def analyze(
    user_id: str = typer.Argument(help="User to analyze"),
    period_days: int = typer.Option(30, "--period-days", "-p", help="Days of activity to analyze"),
    format: str = typer.Option("text", "--format", "-f", help="Output format: text or json"),
    heuristic_only: bool = typer.Option(False, help="Skip the language model"),
    db_path: str = typer.Option(None, help="Database file path"),
) -> None:
    """Analyze a user's coding patterns."""
    config = Config.load()
    if format != "json" and not heuristic_only:
        for issue in config.validate():
            rprint(f"[yellow]Config: {issue}[/yellow]")

    repo = _open_repo(db_path, config)
    service = _build_service(repo, config, heuristic_only)

    started = time.monotonic()
    try:
        outcome = service.analyze(user_id, period_days)
    finally:
        repo.close()
    duration_ms = int((time.monotonic() - started) * 1000)

    log_analysis_run(
        user_id=user_id,
        period_days=period_days,
        status=outcome.status,
        ai_model_used=outcome.record.ai_model_used if outcome.record else None,
        analysis_confidence=outcome.record.analysis_confidence if outcome.record else None,
        reason=outcome.reason,
        duration_ms=duration_ms,
    )

    if format == "json":
        typer.echo(outcome.to_json())
    else:
        _print_outcome(outcome)

    if not outcome.ok:
        raise typer.Exit(1)


@app.command()
def history(
    user_id: str = typer.Argument(help="User whose analyses to list"),
    limit: int = typer.Option(10, help="Max number of analyses"),
    db_path: str = typer.Option(None, help="Database file path"),
) -> None:
    """List stored analyses for a user, most recent first."""
    config = Config.load()
    repo = _open_repo(db_path, config)
    try:
        records = repo.get_analyses(user_id, limit=limit)
    finally:
        repo.close()

    if not records:
        rprint(f"[yellow]No analyses found for {user_id}.[/yellow]")
        return

    table = Table(title=f"Analyses for {user_id}")
    table.add_column("ID", justify="right")
    table.add_column("Date")
    table.add_column("Period")
    table.add_column("Approach")
    table.add_column("Quality")
    table.add_column("Source")
    for record in records:
        table.add_row(
            str(record.id),
            record.analysis_date.isoformat(),
            f"{record.period_days}d",
            record.formatted_rating,
            f"{record.quality_score:.1f}",
            f"{record.ai_model_used} ({record.formatted_confidence})",
        )
    rprint(table)


@app.command()
def stats(
    user_id: str = typer.Argument(None, help="Show per-user averages instead"),
    db_path: str = typer.Option(None, help="Database file path"),
) -> None:
    """Show statistics about stored events and analyses."""
    config = Config.load()
    repo = _open_repo(db_path, config)
    try:
        if user_id:
            s = repo.get_user_stats(user_id)
            rprint(f"[bold]Analysis statistics for {user_id}:[/bold]")
            rprint(f"  Analyses:            {s['analysis_count']}")
            if s["analysis_count"]:
                rprint(f"  Avg approach rating: {s['avg_approach_rating']:.2f}")
                rprint(f"  Avg quality score:   {s['avg_quality_score']:.2f}")
        else:
            s = repo.get_stats()
            rprint("[bold]codeinsight statistics:[/bold]")
            rprint(f"  Coding events:      {s['total_events']}")
            rprint(f"  Users:              {s['total_users']}")
            rprint(f"  Analyses:           {s['total_analyses']}")
            rprint(f"  AI analyses:        {s['ai_analyses']}")
            rprint(f"  Heuristic analyses: {s['heuristic_analyses']}")
    finally:
        repo.close()


@app.command()
def health() -> None:
    """Check whether the language model is configured and reachable."""
    config = Config.load()
    if not config.ai_configured:
        rprint("[yellow]Language model not configured; analyses use heuristics only.[/yellow]")
        raise typer.Exit(1)

    provider = InsightProvider(AnthropicLanguageModel.from_config(config), config)
    if provider.is_healthy():
        rprint(f"[green]Language model reachable ({config.model})[/green]")
    else:
        rprint("[red]Language model unreachable; analyses will fall back to heuristics.[/red]")
        raise typer.Exit(1)


@app.command()
def activity(
    limit: int = typer.Option(20, help="Max number of entries"),
    status: str = typer.Option(None, help="Filter by status: success, rejected, failed"),
) -> None:
    """Show recent analysis runs."""
    entries = read_activity_log(limit=limit, status=status)
    if not entries:
        rprint("[yellow]No analysis activity recorded yet.[/yellow]")
        return

    for entry in entries:
        line = (
            f"{entry['timestamp'][:19]}  {entry['user_id']}  {entry['period_days']}d  "
            f"{entry['status']}  {entry['duration_ms']}ms"
        )
        if entry.get("ai_model_used"):
            line += f"  {entry['ai_model_used']}"
        if entry.get("reason"):
            line += f"  ({entry['reason']})"
        rprint(line)


if __name__ == "__main__":
    app()
