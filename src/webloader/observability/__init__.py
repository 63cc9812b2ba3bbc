"""Observability - logging and reporting."""

from .logger import LogContext, configure_from_config, configure_logging, get_context
from .reporter import LoadReport, ReportGenerator

__all__ = [
    "configure_logging",
    "configure_from_config",
    "get_context",
    "LogContext",
    "LoadReport",
    "ReportGenerator",
]
