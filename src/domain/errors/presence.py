"""Presence errors raised at the chat roster boundary."""

from __future__ import annotations

from src.domain.exceptions import QueueEngineError


class PresenceUnavailableError(QueueEngineError):
    """Raised when the live chat roster could not be fetched.

    Selection and listing operations translate this error into an
    explicit "unavailable" result; no queue mutation happens.

    Attributes:
        reason: Description of the failure (timeout, transport error).
    """

    def __init__(self, reason: str) -> None:
        """Initialize presence error.

        Args:
            reason: Description of the failure.
        """
        self.reason = reason
        super().__init__(f"Chat presence is unavailable: {reason}")
