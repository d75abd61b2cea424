"""
Logging infrastructure for the donor extraction pipeline.

Provides:
- Aligned console/file output with millisecond timestamps
- key=value structured suffixes on every message
- Warning and error tracking for the end-of-job summary
- Per-donor timing context manager
"""

import logging
import sys
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S,%f"


class MillisecondsFormatter(logging.Formatter):
    """Formatter that renders %f as three-digit milliseconds."""

    def formatTime(self, record, datefmt=None):  # noqa: N802 - must match parent class method name
        ct = datetime.fromtimestamp(record.created)
        if datefmt and "%f" in datefmt:
            s = ct.strftime(datefmt.replace(",%f", ""))
            return s + f",{int(record.msecs):03d}"
        elif datefmt:
            return ct.strftime(datefmt)
        return ct.strftime("%Y-%m-%d %H:%M:%S") + f",{int(record.msecs):03d}"


def _format_string(phase: Optional[str]) -> str:
    if phase:
        return f"%(asctime)s | %(levelname)-8s | {phase} | %(filename)s:%(lineno)d | %(message)s"
    return "%(asctime)s | %(levelname)-8s | %(filename)s:%(lineno)d | %(message)s"


def _with_context(message: str, kwargs: dict) -> str:
    if not kwargs:
        return message
    formatted_data = " ".join(f"{k}={v}" for k, v in kwargs.items())
    return f"{message} [{formatted_data}]"


class PipelineLogger:
    """
    Centralized logger for scrape jobs with structured output.
    """

    def __init__(
        self,
        name: str = "donor_pipeline",
        log_level: str = "INFO",
        log_file: Optional[str] = None,
        log_dir: Optional[Path] = None,
        phase: Optional[str] = None,
    ):
        """
        Initialize the pipeline logger.

        Args:
            name: Logger name
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
            log_file: Optional log file name
            log_dir: Directory for log files (defaults to the data dir's logs/)
            phase: Optional label shown in every line (e.g., "job:42")
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, log_level.upper()))
        self.phase = phase
        self.logger.propagate = False

        if self.logger.handlers:
            self.logger.handlers.clear()

        formatter = MillisecondsFormatter(_format_string(phase), datefmt=LOG_DATE_FORMAT)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, log_level.upper()))
        console_handler.setFormatter(formatter)
        self.logger.addHandler(console_handler)

        if log_file:
            if log_dir is None:
                from donor_pipeline.config import get_log_dir

                log_dir = get_log_dir()

            log_dir.mkdir(parents=True, exist_ok=True)
            log_path = log_dir / log_file

            file_handler = logging.FileHandler(log_path)
            file_handler.setLevel(logging.DEBUG)  # Log everything to file
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)

            self.info(f"Logging to file: {log_path}")

        # Track problems for summary reporting
        self.errors = []
        self.warnings = []

    def debug(self, message: str, **kwargs):
        """Log debug message with optional structured data."""
        self.logger.debug(_with_context(message, kwargs), stacklevel=2)

    def info(self, message: str, **kwargs):
        """Log info message with optional structured data."""
        self.logger.info(_with_context(message, kwargs), stacklevel=2)

    def warning(self, message: str, **kwargs):
        """Log warning message and track for reporting."""
        message = _with_context(message, kwargs)
        self.logger.warning(message, stacklevel=2)
        self.warnings.append(
            {
                "message": message,
                "timestamp": datetime.now().isoformat(),
                "data": kwargs,
            }
        )

    def error(self, message: str, exception: Optional[Exception] = None, **kwargs):
        """Log error message and track for reporting."""
        if exception:
            message = f"{message} | Exception: {exception}"
        message = _with_context(message, kwargs)

        self.logger.error(message, exc_info=exception is not None, stacklevel=2)
        self.errors.append(
            {
                "message": message,
                "exception": str(exception) if exception else None,
                "timestamp": datetime.now().isoformat(),
                "data": kwargs,
            }
        )

    def log_job_start(self, job_id: str, num_donors: int):
        """Log start of a scrape job."""
        self.info("=" * 60)
        self.info(f"Scrape job started - processing {num_donors} donors", job_id=job_id, num_donors=num_donors)
        self.info("=" * 60)

    def log_job_complete(
        self,
        job_id: str,
        status: str,
        succeeded: int,
        failed: int,
        duration_seconds: float,
    ):
        """Log end of a scrape job."""
        self.info("=" * 60)
        self.info(
            "Scrape job finished",
            job_id=job_id,
            status=status,
            succeeded=succeeded,
            failed=failed,
            total=succeeded + failed,
            duration_seconds=round(duration_seconds, 2),
        )
        self.info("=" * 60)

    @contextmanager
    def time_donor(self, donor_id: str, operation: str, url: Optional[str] = None):
        """
        Context manager to time and log a single donor operation.

        Failures are logged with donor id, URL and elapsed time, then re-raised.

        Usage:
            with logger.time_donor("12345", "profile scrape", url=url):
                ...
        """
        start_time = datetime.now()
        self.debug(f"Starting {operation}", donor_id=donor_id, url=url)

        try:
            yield
        except Exception as e:
            duration = (datetime.now() - start_time).total_seconds()
            self.error(
                f"Failed {operation}",
                exception=e,
                donor_id=donor_id,
                url=url,
                duration_seconds=round(duration, 2),
            )
            raise

        duration = (datetime.now() - start_time).total_seconds()
        self.info(
            f"Completed {operation}",
            donor_id=donor_id,
            duration_seconds=round(duration, 2),
        )

    def get_error_summary(self) -> dict:
        """Get summary of errors and warnings for reporting."""
        return {
            "total_errors": len(self.errors),
            "total_warnings": len(self.warnings),
            "errors": self.errors,
            "warnings": self.warnings,
        }


def configure_global_logging(log_level: str = "INFO", phase: Optional[str] = None):
    """
    Route root and library loggers through the pipeline format.

    Parser modules log through logging.getLogger(__name__), so this makes their
    output line up with PipelineLogger output.

    Args:
        log_level: Logging level to apply globally (DEBUG, INFO, WARNING, ERROR)
        phase: Optional label shown in every line
    """
    formatter = MillisecondsFormatter(_format_string(phase), datefmt=LOG_DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))
    root_logger.handlers.clear()

    root_handler = logging.StreamHandler(sys.stdout)
    root_handler.setLevel(getattr(logging, log_level.upper()))
    root_handler.setFormatter(formatter)
    root_logger.addHandler(root_handler)

    # Playwright and pymysql are chatty at DEBUG
    for lib_name in ["playwright", "pymysql", "asyncio"]:
        lib_logger = logging.getLogger(lib_name)
        lib_logger.handlers.clear()
        lib_logger.propagate = True
        lib_logger.setLevel(max(getattr(logging, log_level.upper()), logging.INFO))
