#!/usr/bin/env python3
"""CLI for running and inspecting BJJ video curation.

Usage:
    # Run a manual curation pass (worker process, live progress)
    bjj-curator --run

    # Show run and library statistics
    bjj-curator --stats

    # Show recent runs
    bjj-curator --history 20

    # Show sources on cooldown, and clear one
    bjj-curator --cooldowns
    bjj-curator --clear-cooldown "gordon ryan"
"""

import argparse
import asyncio
import sys

from rich.console import Console
from rich.table import Table

from bjj_curator.models.curation_run import RunType
from bjj_curator.services.curation_worker import WorkerSupervisor
from bjj_curator.services.errors import RunNotEligibleError
from bjj_curator.services.exhaustion_tracker import ExhaustionTracker
from bjj_curator.services.progress_feed import ProgressFeed
from bjj_curator.services.quota_ledger import QuotaLedger
from bjj_curator.services.reference_data import ReferenceData
from bjj_curator.services.run_orchestrator import RunOrchestrator
from bjj_curator.services.run_store import RunStore
from bjj_curator.services.video_library import VideoLibrary
from bjj_curator.utils.config import load_config, validate_config
from bjj_curator.utils.database import Database
from bjj_curator.utils.logging import setup_logging

console = Console()

SEVERITY_STYLES = {"success": "green", "warning": "yellow", "error": "red"}


async def print_progress(run_id: str, message: dict) -> None:
    """Progress feed broadcaster that writes to the console."""
    if message.get("type") != "progress":
        return
    style = SEVERITY_STYLES.get(message.get("severity"), "white")
    console.print(f"{message.get('icon', '')} [{style}]{message.get('message', '')}[/{style}]")


async def run_curation(database: Database, config: dict) -> bool:
    """Start a manual run and stream its progress until it closes."""
    store = RunStore(database)
    ledger = QuotaLedger(database, config["daily_quota_limit"], config["quota_timezone"])
    orchestrator = RunOrchestrator(store, config, quota_ledger=ledger, library=VideoLibrary(database))
    supervisor = WorkerSupervisor(
        config,
        on_finished=orchestrator.complete,
        progress_feed=ProgressFeed(broadcaster=print_progress),
    )
    orchestrator.launcher = supervisor.launch

    try:
        run_id = await orchestrator.start(RunType.MANUAL)
    except RunNotEligibleError as e:
        console.print(f"[yellow]⚠ Run not started: {e.reason}[/yellow]")
        return False

    console.print(f"\n[bold blue]Curation run {run_id}[/bold blue]")
    try:
        await supervisor.wait(run_id)
    except asyncio.CancelledError:
        await supervisor.shutdown()
        raise

    run = await store.get_run(run_id)
    if run.error_message:
        console.print(f"[red]✗ Run failed: {run.error_message}[/red]")
        return False

    console.print(
        f"[green]✓ Added {run.videos_added} of {run.videos_analyzed} analyzed "
        f"({run.acceptance_rate or 0:.1f}%, {run.guardrail_status})[/green]"
    )
    console.print(f"[dim]Quota used: {run.quota_used} units[/dim]")
    return True


async def show_stats(database: Database, config: dict) -> None:
    """Display run, library and quota statistics."""
    stats = await RunStore(database).aggregate_stats()
    library = VideoLibrary(database)
    usage = await QuotaLedger(database, config["daily_quota_limit"], config["quota_timezone"]).usage()

    table = Table(title="Curation Statistics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Runs", f"{stats['total_runs']} ({stats['completed_runs']} completed, {stats['failed_runs']} failed)")
    table.add_row("Videos Analyzed", str(stats["videos_analyzed"]))
    table.add_row("Videos Added", str(stats["videos_added"]))
    table.add_row("Approval Rate", f"{stats['approval_rate']:.2f}%")
    table.add_row("Library Size", str(await library.count()))
    table.add_row("Quota Today", f"{usage.units_used}/{usage.units_limit} ({usage.percent_used}%)")
    console.print(table)

    breakdown = await library.technique_breakdown(limit=15)
    if breakdown:
        techniques = Table(title="Top Techniques")
        techniques.add_column("Technique", style="cyan")
        techniques.add_column("Videos", justify="right", style="green")
        techniques.add_column("Active", justify="right")
        techniques.add_column("Avg Score", justify="right")
        for row in breakdown:
            techniques.add_row(row["technique"], str(row["videos"]), str(row["active"]), str(row["avg_score"]))
        console.print(techniques)


async def show_history(database: Database, limit: int) -> None:
    runs = await RunStore(database).list_runs(limit=limit)
    if not runs:
        console.print("[dim]No curation runs yet[/dim]")
        return

    table = Table(title="Recent Curation Runs")
    table.add_column("Started", style="dim")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Analyzed", justify="right")
    table.add_column("Added", justify="right", style="green")
    table.add_column("Rate", justify="right")
    table.add_column("Quota", justify="right")

    for run in runs:
        status_style = {"completed": "green", "failed": "red"}.get(run.status.value, "yellow")
        table.add_row(
            (run.started_at or run.created_at)[:19],
            run.run_type.value,
            f"[{status_style}]{run.status.value}[/{status_style}]",
            str(run.videos_analyzed),
            str(run.videos_added),
            f"{run.acceptance_rate:.1f}%" if run.acceptance_rate is not None else "-",
            str(run.quota_used),
        )
    console.print(table)


async def show_cooldowns(database: Database, config: dict) -> None:
    tracker = ExhaustionTracker(database, config["exhaustion_trigger_count"], config["exhaustion_cooldown_days"])
    states = await tracker.list_states()
    if not states:
        console.print("[dim]No exhausted sources[/dim]")
        return

    table = Table(title="Source Exhaustion")
    table.add_column("Source", style="cyan")
    table.add_column("Empty Searches", justify="right")
    table.add_column("Cooldown Until")

    now = tracker.clock()
    for state in states:
        until = state.cooldown_until[:19] if state.is_cooling_down(now) else "-"
        table.add_row(state.display_name, str(state.consecutive_empty), until)
    console.print(table)


async def clear_cooldown(database: Database, config: dict, source: str) -> None:
    tracker = ExhaustionTracker(database, config["exhaustion_trigger_count"], config["exhaustion_cooldown_days"])
    cleared = await tracker.clear(None if source == "all" else source)
    if cleared:
        console.print(f"[green]✓ Cleared {cleared} source(s)[/green]")
    else:
        console.print(f"[yellow]⚠ No exhaustion state for '{source}'[/yellow]")


async def seed_reference(database: Database) -> None:
    instructors, nodes = await ReferenceData(database).seed_defaults()
    console.print(f"[green]✓ Seeded {instructors} instructors and {nodes} taxonomy nodes[/green]")


async def _dispatch(args: argparse.Namespace, config: dict) -> bool:
    async with Database(config["database_path"]) as database:
        if args.run:
            return await run_curation(database, config)
        if args.stats:
            await show_stats(database, config)
        elif args.history:
            await show_history(database, args.history)
        elif args.cooldowns:
            await show_cooldowns(database, config)
        elif args.clear_cooldown:
            await clear_cooldown(database, config, args.clear_cooldown)
        elif args.seed:
            await seed_reference(database)
    return True


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Curate BJJ instructional videos into the library",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Run a manual curation pass
    bjj-curator --run

    # Show statistics and the last 20 runs
    bjj-curator --stats
    bjj-curator --history 20

    # Clear every cooldown
    bjj-curator --clear-cooldown all
        """,
    )

    parser.add_argument("--run", action="store_true", help="Run a manual curation pass")
    parser.add_argument("--stats", action="store_true", help="Show run, library and quota statistics")
    parser.add_argument("--history", type=int, metavar="N", help="Show the N most recent runs")
    parser.add_argument("--cooldowns", action="store_true", help="Show source exhaustion state")
    parser.add_argument(
        "--clear-cooldown",
        type=str,
        metavar="SOURCE",
        help="Clear exhaustion state for a source ('all' clears every source)",
    )
    parser.add_argument("--seed", action="store_true", help="Seed default instructors and taxonomy")
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    if not any([args.run, args.stats, args.history, args.cooldowns, args.clear_cooldown, args.seed]):
        parser.print_help()
        sys.exit(1)

    config = load_config()
    setup_logging("DEBUG" if args.verbose else config.get("log_level", "INFO"), config.get("log_json", False))

    if args.run:
        errors = validate_config(config)
        if errors:
            for error in errors:
                console.print(f"[red]Error: {error}[/red]")
            console.print("[dim]Set the missing values in your .env file[/dim]")
            sys.exit(1)

    ok = asyncio.run(_dispatch(args, config))
    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
