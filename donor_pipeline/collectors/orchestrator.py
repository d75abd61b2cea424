"""
Scrape job orchestrator - runs one job over an ordered list of donor ids.

Job lifecycle: pending -> running -> completed | failed

- completed: every donor was attempted, whatever the per-donor outcome
- failed: the session could not be set up (browser, credentials, login),
  the session was lost for good between donors, or the job was cancelled

Per-donor errors never fail the job. They are caught at the donor boundary,
logged with donor id, URL and timing, and recorded as a failed result.
"""

import threading
import time
from datetime import datetime
from typing import Any, Callable, Optional

from donor_pipeline.collectors.base import BaseCollector
from donor_pipeline.config import ScrapingOptions
from donor_pipeline.db.interfaces import DonorListStore, JobStore, RecordSink, ResultSink
from donor_pipeline.errors import ScrapeSetupError
from donor_pipeline.models.scrape_job import (
    JobCounters,
    JobStatus,
    JobType,
    ScrapeResult,
    ScrapeStatus,
)
from donor_pipeline.services import change_detector, donor_health
from donor_pipeline.utils.logger import PipelineLogger
from donor_pipeline.utils.rate_limiter import RequestPacer

SITE_NAME = "xytex"

ProgressCallback = Callable[[JobCounters], None]


def start_scrape_job(
    job_store: JobStore,
    donor_list: DonorListStore,
    donor_ids: Optional[list[str]] = None,
    full: bool = False,
    created_by: Optional[str] = None,
) -> str:
    """
    Create a pending job.

    Args:
        job_store: Where the job row is created
        donor_list: Source of ids for a full scrape
        donor_ids: Explicit ids for an incremental scrape (deduplicated, order kept)
        full: Scrape every active donor in the list instead of donor_ids
        created_by: Operator identifier stored on the job

    Returns:
        The new job id

    Raises:
        ValueError: no donor ids were selected
    """
    if full:
        ids = donor_list.list_donor_ids(active_only=True)
    else:
        ids = list(dict.fromkeys(d.strip() for d in donor_ids or [] if d and d.strip()))

    if not ids:
        raise ValueError("Either full must be set or donor_ids must contain at least one id")

    job_type = JobType.FULL if full else JobType.INCREMENTAL
    return job_store.create_job(ids, job_type=job_type, created_by=created_by)


class ScrapeJobOrchestrator:
    """
    Drive one browser session through a job's donors, sequentially.

    Args:
        session: XytexSession; initialized, logged in and torn down here
        collector: Per-donor collector (normally DonorProfileCollector)
        record_sink: Upserts the derived donor record
        result_sink: Appends per-donor results; also supplies the previous snapshot
        job_store: Job status and counters
        donor_list: Per-donor health (failure counts, active flag)
        options: Scraping options (pacing delay, URLs)
        logger: Job logger
        pacer: Spacing between donors
        cancel_event: When set, the job stops before the next donor
        on_progress: Called with a counters copy after every donor
    """

    def __init__(
        self,
        session,
        collector: BaseCollector,
        record_sink: RecordSink,
        result_sink: ResultSink,
        job_store: JobStore,
        donor_list: DonorListStore,
        options: Optional[ScrapingOptions] = None,
        logger: Optional[PipelineLogger] = None,
        pacer: Optional[RequestPacer] = None,
        cancel_event: Optional[threading.Event] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.session = session
        self.collector = collector
        self.record_sink = record_sink
        self.result_sink = result_sink
        self.job_store = job_store
        self.donor_list = donor_list
        self.options = options or ScrapingOptions()
        self.logger = logger or PipelineLogger("donor_pipeline.orchestrator")
        self.pacer = pacer or RequestPacer()
        self.cancel_event = cancel_event
        self.on_progress = on_progress

    def run(self, job_id: str, donor_ids: list[str]) -> JobCounters:
        """
        Run the job to a terminal state.

        Returns:
            Final counters. The job row carries the terminal status.
        """
        counters = JobCounters()
        status, error = JobStatus.COMPLETED, None
        started = time.monotonic()

        self.logger.log_job_start(job_id, len(donor_ids))
        try:
            self.job_store.set_job_status(job_id, JobStatus.RUNNING)
            self.session.initialize()
            for donor_id in donor_ids:
                if self.cancel_event is not None and self.cancel_event.is_set():
                    status = JobStatus.FAILED
                    error = f"Cancelled after {counters.processed} of {len(donor_ids)} donors"
                    self.logger.warning("Scrape job cancelled", job_id=job_id, processed=counters.processed)
                    break

                # No-op unless the session was never or is no longer authenticated
                self.session.ensure_logged_in()
                self.pacer.wait(SITE_NAME, self.options.delay_between_requests)

                counters.record(self._process_donor(job_id, donor_id))
                self._report_progress(job_id, counters)
        except ScrapeSetupError as e:
            status, error = JobStatus.FAILED, str(e)
            self.logger.error("Scrape job setup failed", exception=e, job_id=job_id)
        except Exception as e:
            status, error = JobStatus.FAILED, f"Unexpected error: {e}"
            self.logger.error("Scrape job aborted", exception=e, job_id=job_id)
        except BaseException:
            # KeyboardInterrupt and SystemExit still leave a terminal job row
            status = JobStatus.FAILED
            error = f"Interrupted after {counters.processed} of {len(donor_ids)} donors"
            self.logger.warning("Scrape job interrupted", job_id=job_id, processed=counters.processed)
            raise
        finally:
            self.session.teardown()
            self.job_store.set_job_status(job_id, status, error)
            self.logger.log_job_complete(
                job_id,
                status.value,
                counters.succeeded,
                counters.failed,
                time.monotonic() - started,
            )
        return counters

    # ─── Per-donor boundary ─────────────────────────────────────────────

    def _process_donor(self, job_id: str, donor_id: str) -> bool:
        """Scrape one donor and record the outcome. Never raises."""
        url = self.options.profile_url(donor_id)
        previous = self._previous_snapshot(donor_id)

        try:
            with self.logger.time_donor(donor_id, "profile scrape", url=url):
                profile = self.collector.collect(donor_id)
        except Exception as e:
            self._append_result(
                ScrapeResult(
                    job_id=job_id,
                    donor_id=donor_id,
                    status=ScrapeStatus.FAILED,
                    error_message=str(e) or type(e).__name__,
                    scraped_at=datetime.now(),
                )
            )
            self._update_health(donor_id, success=False)
            return False

        changes = change_detector.diff(previous, profile)
        if changes and not change_detector.is_initial(changes):
            self.logger.info("Changes detected", donor_id=donor_id, fields=",".join(changes))

        persist_error = None
        try:
            self.record_sink.upsert_subject_record(donor_id, profile)
        except Exception as e:
            # The result row still keeps the scraped data
            persist_error = f"Donor record not saved: {e}"
            self.logger.error("Failed to save donor record", exception=e, donor_id=donor_id)

        self._append_result(
            ScrapeResult(
                job_id=job_id,
                donor_id=donor_id,
                status=ScrapeStatus.SUCCESS,
                scraped_data=profile.model_dump(mode="json"),
                changes_detected=changes,
                error_message=persist_error,
                banner_message=profile.banner_message,
                document_id=profile.document_id,
                profile_current_date=profile.profile_current_date,
                scraped_at=datetime.now(),
            )
        )
        self._update_health(donor_id, success=True)
        return True

    def _previous_snapshot(self, donor_id: str) -> Optional[dict[str, Any]]:
        try:
            return self.result_sink.get_latest_success(donor_id)
        except Exception as e:
            self.logger.warning(f"Could not load previous snapshot: {e}", donor_id=donor_id)
            return None

    def _append_result(self, result: ScrapeResult) -> None:
        try:
            self.result_sink.append_result(result)
        except Exception as e:
            self.logger.error("Failed to write scrape result", exception=e, donor_id=result.donor_id)

    def _update_health(self, donor_id: str, success: bool) -> None:
        try:
            donor_health.record_attempt(self.donor_list, donor_id, success, logger=self.logger)
        except Exception as e:
            self.logger.error("Failed to update donor health", exception=e, donor_id=donor_id)

    def _report_progress(self, job_id: str, counters: JobCounters) -> None:
        try:
            self.job_store.update_job_progress(job_id, counters.copy())
        except Exception as e:
            self.logger.error("Failed to update job progress", exception=e, job_id=job_id)
        if self.on_progress is not None:
            try:
                self.on_progress(counters.copy())
            except Exception as e:
                self.logger.error("Progress callback failed", exception=e, job_id=job_id)
