"""Error types raised by the tracker core."""


class TrackerError(Exception):
    """Base class for tracker errors."""


class ValidationError(TrackerError):
    """Input is missing or malformed."""


class NotFoundError(TrackerError):
    """A ledger, entry or food does not exist."""


class ConflictError(TrackerError):
    """A concurrent write or duplicate key was detected."""


class AdapterError(TrackerError):
    """A food source failed to answer."""

    def __init__(self, source_name: str, message: str) -> None:
        super().__init__(f"{source_name}: {message}")
        self.source_name = source_name
