"""Exception hierarchy for image-report.

All errors raised by the client derive from ReportError. Stream failures carry
an error descriptor (``type`` and optional ``status``) matching what the report
service sends in its ``error`` events, so connection problems and application
errors can be classified the same way.
"""

from typing import Optional


class ReportError(Exception):
    """Base error for the image-report client"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(ReportError):
    """Required configuration is missing or malformed"""


class SessionStateError(ReportError):
    """A streaming session was driven through an invalid state transition"""


class StreamFailure(ReportError):
    """A streaming session ended in failure.

    Attributes:
        type: Error category reported for the failure (``"error"`` for
            every failure the service or transport produces).
        status: Optional HTTP-like status code.
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        type: str = "error",
    ):
        self.type = type
        self.status = status
        super().__init__(message)

    def __str__(self) -> str:
        if self.status is not None:
            return f"{self.message} (type={self.type}, status={self.status})"
        return f"{self.message} (type={self.type})"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}({self.message!r}, "
            f"status={self.status!r}, type={self.type!r})"
        )


class TransportError(StreamFailure):
    """Connection could not be established or was interrupted"""


class ApplicationError(StreamFailure):
    """The report service sent an ``error`` event"""
