"""Session outcome types.

A streaming session settles exactly once into one of two outcomes:
- Completed: the service sent its ``end`` event
- Failed: the service sent an ``error`` event or the transport broke

Outcomes are plain values. ``unwrap`` turns a Failed outcome back into the
exception it carries, which is how the session runner propagates failures.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from image_report.core.exceptions import StreamFailure


class SessionOutcome(ABC):
    """Terminal result of a streaming session."""

    @abstractmethod
    def is_completed(self) -> bool:
        """Return True if the session reached its end event."""
        pass

    @abstractmethod
    def is_failed(self) -> bool:
        """Return True if the session ended in failure."""
        pass

    @abstractmethod
    def unwrap(self) -> Optional[str]:
        """Return the end marker, or raise the carried failure.

        Raises:
            StreamFailure: If this is a Failed outcome.
        """
        pass


class Completed(SessionOutcome):
    """The session received an ``end`` event."""

    def __init__(self, marker: Optional[str] = None):
        """Initialize Completed with the end event payload.

        Args:
            marker: Payload of the end event, if the service sent one.
        """
        self.marker = marker

    def is_completed(self) -> bool:
        return True

    def is_failed(self) -> bool:
        return False

    def unwrap(self) -> Optional[str]:
        return self.marker

    def __repr__(self) -> str:
        return f"Completed({self.marker!r})"

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Completed):
            return False
        return self.marker == other.marker

    def __hash__(self) -> int:
        return hash(("Completed", self.marker))


class Failed(SessionOutcome):
    """The session ended with an error event or a transport failure."""

    def __init__(self, error: StreamFailure):
        """Initialize Failed with the failure that ended the session.

        Args:
            error: TransportError or ApplicationError describing the failure.
        """
        self.error = error

    def is_completed(self) -> bool:
        return False

    def is_failed(self) -> bool:
        return True

    def unwrap(self) -> Optional[str]:
        raise self.error

    def __repr__(self) -> str:
        return f"Failed({self.error!r})"

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Failed):
            return False
        return self.error is other.error

    def __hash__(self) -> int:
        return hash(("Failed", id(self.error)))
