"""
Operator CLI for donor profile scrape jobs.

Usage:
    # Create the scraping tables
    donor-pipeline init-db

    # Store the registry login (password is prompted)
    donor-pipeline set-credentials ops@example.com

    # Track donor ids for full scrapes
    donor-pipeline add-ids 12345 67890
    donor-pipeline add-ids --file donors.txt
    donor-pipeline remove-ids 12345
    donor-pipeline reactivate 12345

    # Scrape explicit ids, or every active tracked id
    donor-pipeline run --donor-id 12345 --donor-id 67890
    donor-pipeline run --full --headed

    # Inspect jobs
    donor-pipeline jobs
    donor-pipeline status <job_id>
    donor-pipeline results <job_id> --status failed
"""

import argparse
import getpass
import os
import signal
import sys
import threading
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from donor_pipeline.collectors.donor_profile import DonorProfileCollector
from donor_pipeline.collectors.inventory import InventoryCollector
from donor_pipeline.collectors.orchestrator import ScrapeJobOrchestrator, start_scrape_job
from donor_pipeline.collectors.session import XytexSession
from donor_pipeline.config import ScrapingOptions
from donor_pipeline.db import (
    CredentialRepository,
    DonorListRepository,
    DonorRecordRepository,
    ScrapeJobRepository,
    ScrapeResultRepository,
    check_connection,
    ensure_schema,
)
from donor_pipeline.models.scrape_job import JobCounters, JobStatus, ScrapeStatus
from donor_pipeline.services import change_detector, donor_health
from donor_pipeline.utils.logger import PipelineLogger, configure_global_logging

console = Console()


def read_id_file(path: Path) -> list[str]:
    """One donor id per line; blank lines and '#' comments are ignored."""
    ids = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.split("#", 1)[0].strip()
        if line:
            ids.append(line)
    return ids


def _collect_ids(args: argparse.Namespace) -> list[str]:
    ids = list(getattr(args, "donor_ids", None) or [])
    if getattr(args, "file", None):
        ids.extend(read_id_file(Path(args.file)))
    return ids


def _status_style(status: str) -> str:
    return {
        JobStatus.COMPLETED.value: "green",
        JobStatus.FAILED.value: "red",
        JobStatus.RUNNING.value: "yellow",
    }.get(status, "white")


# ─── Commands ─────────────────────────────────────────────────────────────


def cmd_init_db(args: argparse.Namespace) -> int:
    if not check_connection():
        console.print("[red]Cannot connect to the database. Check DONOR_DB_* settings.[/red]")
        return 1
    tables = ensure_schema()
    console.print(f"[green]Schema ready:[/green] {', '.join(tables)}")
    return 0


def cmd_set_credentials(args: argparse.Namespace) -> int:
    password = os.environ.get("SCRAPER_PASSWORD") or getpass.getpass("Registry password: ")
    if not password:
        console.print("[red]Password must not be empty[/red]")
        return 1
    credential_id = CredentialRepository().set_credentials(args.email, password)
    console.print(f"Active credentials replaced (id {credential_id})")
    return 0


def cmd_add_ids(args: argparse.Namespace) -> int:
    ids = _collect_ids(args)
    if not ids:
        console.print("[yellow]No donor ids given[/yellow]")
        return 1
    added = DonorListRepository().add_donor_ids(ids, notes=args.notes)
    console.print(f"Added {added} donor id(s), {len(set(ids)) - added} already listed")
    return 0


def cmd_remove_ids(args: argparse.Namespace) -> int:
    repo = DonorListRepository()
    for donor_id in args.donor_ids:
        repo.remove(donor_id)
    console.print(f"Removed {len(args.donor_ids)} donor id(s)")
    return 0


def cmd_reactivate(args: argparse.Namespace) -> int:
    repo = DonorListRepository()
    missing = [d for d in args.donor_ids if donor_health.reactivate(repo, d) is None]
    for donor_id in missing:
        console.print(f"[yellow]Donor {donor_id} is not in the donor list[/yellow]")
    console.print(f"Reactivated {len(args.donor_ids) - len(missing)} donor id(s)")
    return 1 if missing else 0


def cmd_run(args: argparse.Namespace) -> int:
    options = ScrapingOptions.from_env()
    if args.headed:
        options.headless = False
    if args.delay is not None:
        options.delay_between_requests = args.delay

    job_store = ScrapeJobRepository()
    donor_list = DonorListRepository()
    try:
        job_id = start_scrape_job(
            job_store,
            donor_list,
            donor_ids=_collect_ids(args),
            full=args.full,
            created_by=args.created_by,
        )
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return 1

    job = job_store.get_job(job_id)
    logger = PipelineLogger(
        log_level=args.log_level,
        log_file=f"scrape_{job_id}.log",
        phase=f"job:{job_id[:8]}",
    )
    configure_global_logging(args.log_level, phase=f"job:{job_id[:8]}")

    cancel_event = threading.Event()
    signal.signal(signal.SIGTERM, lambda signum, frame: cancel_event.set())

    def show_progress(counters: JobCounters) -> None:
        logger.info(
            f"Progress {counters.processed}/{job.total_donors}",
            succeeded=counters.succeeded,
            failed=counters.failed,
        )

    session = XytexSession(CredentialRepository(), options, logger)
    collector = DonorProfileCollector(session, options, inventory=InventoryCollector(session, options))
    orchestrator = ScrapeJobOrchestrator(
        session=session,
        collector=collector,
        record_sink=DonorRecordRepository(base_url=options.base_url),
        result_sink=ScrapeResultRepository(),
        job_store=job_store,
        donor_list=donor_list,
        options=options,
        logger=logger,
        cancel_event=cancel_event,
        on_progress=show_progress,
    )
    try:
        orchestrator.run(job_id, job.donor_ids)
    except KeyboardInterrupt:
        console.print(f"[yellow]Interrupted, job {job_id} marked failed[/yellow]")
        return 130

    summary = logger.get_error_summary()
    if summary["total_errors"]:
        console.print(f"[yellow]{summary['total_errors']} error(s) logged, see the job log[/yellow]")
    return _print_job(job_store, job_id)


def _print_job(job_store: ScrapeJobRepository, job_id: str) -> int:
    job = job_store.get_job(job_id)
    if job is None:
        console.print(f"[red]Job {job_id} not found[/red]")
        return 1

    table = Table(title=f"Scrape job {job.id}", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    style = _status_style(job.status.value)
    table.add_row("Status", f"[{style}]{job.status.value}[/{style}]")
    table.add_row("Type", job.job_type.value)
    table.add_row("Progress", f"{job.counters.processed}/{job.total_donors}")
    table.add_row("Succeeded", str(job.counters.succeeded))
    table.add_row("Failed", str(job.counters.failed))
    table.add_row("Created by", job.created_by or "-")
    table.add_row("Started", str(job.started_at or "-"))
    table.add_row("Completed", str(job.completed_at or "-"))
    if job.error_message:
        table.add_row("Error", f"[red]{job.error_message}[/red]")
    console.print(table)
    return 0 if job.status != JobStatus.FAILED else 1


def cmd_status(args: argparse.Namespace) -> int:
    return _print_job(ScrapeJobRepository(), args.job_id)


def cmd_jobs(args: argparse.Namespace) -> int:
    jobs = ScrapeJobRepository().list_jobs(limit=args.limit)
    if not jobs:
        console.print("[yellow]No scrape jobs yet[/yellow]")
        return 0

    table = Table(title="Scrape jobs")
    table.add_column("Job ID")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Progress", justify="right")
    table.add_column("OK", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Created")
    for job in jobs:
        style = _status_style(job.status.value)
        table.add_row(
            job.id,
            job.job_type.value,
            f"[{style}]{job.status.value}[/{style}]",
            f"{job.counters.processed}/{job.total_donors}",
            str(job.counters.succeeded),
            str(job.counters.failed),
            str(job.created_at or "-"),
        )
    console.print(table)
    return 0


def _describe_changes(changes: Optional[dict]) -> str:
    if not changes:
        return "-"
    if change_detector.is_initial(changes):
        return "initial"
    return ", ".join(changes)


def cmd_results(args: argparse.Namespace) -> int:
    results = ScrapeResultRepository().search(
        job_id=args.job_id,
        status=ScrapeStatus(args.status) if args.status else None,
        search=args.search,
        limit=args.limit,
    )
    if not results:
        console.print("[yellow]No results[/yellow]")
        return 0

    table = Table(title=f"Results for job {args.job_id}")
    table.add_column("Donor")
    table.add_column("Status")
    table.add_column("Changes")
    table.add_column("Banner / Error", overflow="fold")
    for result in results:
        style = "green" if result.succeeded else "red"
        table.add_row(
            result.donor_id,
            f"[{style}]{result.status.value}[/{style}]",
            _describe_changes(result.changes_detected),
            result.error_message or result.banner_message or "",
        )
    console.print(table)
    return 0


# ─── Entry point ──────────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="donor-pipeline", description="Donor profile scrape jobs")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    init_parser = subparsers.add_parser("init-db", help="Create the scraping tables")
    init_parser.set_defaults(func=cmd_init_db)

    creds_parser = subparsers.add_parser("set-credentials", help="Replace the active registry login")
    creds_parser.add_argument("email", help="Login email")
    creds_parser.set_defaults(func=cmd_set_credentials)

    add_parser = subparsers.add_parser("add-ids", help="Add donor ids to the tracked list")
    add_parser.add_argument("donor_ids", nargs="*", help="Donor ids")
    add_parser.add_argument("--file", help="File with one donor id per line")
    add_parser.add_argument("--notes", help="Note stored with the new ids")
    add_parser.set_defaults(func=cmd_add_ids)

    remove_parser = subparsers.add_parser("remove-ids", help="Stop tracking donor ids")
    remove_parser.add_argument("donor_ids", nargs="+", help="Donor ids")
    remove_parser.set_defaults(func=cmd_remove_ids)

    reactivate_parser = subparsers.add_parser("reactivate", help="Re-enable donors deactivated after failures")
    reactivate_parser.add_argument("donor_ids", nargs="+", help="Donor ids")
    reactivate_parser.set_defaults(func=cmd_reactivate)

    run_parser = subparsers.add_parser("run", help="Create and run a scrape job")
    run_parser.add_argument("--donor-id", dest="donor_ids", action="append", help="Donor id (repeatable)")
    run_parser.add_argument("--file", help="File with one donor id per line")
    run_parser.add_argument("--full", action="store_true", help="Scrape every active tracked donor")
    run_parser.add_argument("--headed", action="store_true", help="Show the browser window")
    run_parser.add_argument("--delay", type=float, help="Seconds between donors (overrides SCRAPER_DELAY_SECONDS)")
    run_parser.add_argument("--created-by", default=os.environ.get("USER"), help="Operator name stored on the job")
    run_parser.add_argument("--log-level", default="INFO", help="DEBUG, INFO, WARNING or ERROR")
    run_parser.set_defaults(func=cmd_run)

    jobs_parser = subparsers.add_parser("jobs", help="List recent jobs")
    jobs_parser.add_argument("--limit", type=int, default=20)
    jobs_parser.set_defaults(func=cmd_jobs)

    status_parser = subparsers.add_parser("status", help="Show one job's status and counters")
    status_parser.add_argument("job_id")
    status_parser.set_defaults(func=cmd_status)

    results_parser = subparsers.add_parser("results", help="Show per-donor results of a job")
    results_parser.add_argument("job_id")
    results_parser.add_argument("--status", choices=[s.value for s in ScrapeStatus])
    results_parser.add_argument("--search", help="Donor id or banner substring")
    results_parser.add_argument("--limit", type=int, default=500)
    results_parser.set_defaults(func=cmd_results)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 1
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
