"""Configuration, request construction and error types."""

from image_report.core.config import ReportConfig, validate
from image_report.core.exceptions import (
    ApplicationError,
    ConfigurationError,
    ReportError,
    SessionStateError,
    StreamFailure,
    TransportError,
)
from image_report.core.outcome import Completed, Failed, SessionOutcome
from image_report.core.request import ConnectionTarget, build_url_headers

__all__ = [
    "ApplicationError",
    "Completed",
    "ConfigurationError",
    "ConnectionTarget",
    "Failed",
    "ReportConfig",
    "ReportError",
    "SessionOutcome",
    "SessionStateError",
    "StreamFailure",
    "TransportError",
    "build_url_headers",
    "validate",
]
