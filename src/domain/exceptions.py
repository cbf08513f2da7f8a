"""Base exception classes for the level queue domain layer."""


class QueueEngineError(Exception):
    """Base exception for all domain errors.

    All domain-specific exceptions MUST inherit from this class.
    This enables consistent error handling across the application.

    Validation problems (invalid codes, duplicate submissions, a full
    queue) are NOT raised; they are reported as user-facing text.
    """

    def __init__(self, message: str = "") -> None:
        """Initialize the exception with an optional message.

        Args:
            message: Human-readable error description.
        """
        super().__init__(message)
