"""Shared utilities: logging, request pacing, text helpers."""

from .logger import PipelineLogger, configure_global_logging
from .rate_limiter import RequestPacer

__all__ = ["PipelineLogger", "RequestPacer", "configure_global_logging"]
