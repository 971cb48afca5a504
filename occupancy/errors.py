"""Exceptions raised by the section board."""


class OccupancyError(Exception):
    """Base class for all board errors."""


class ValidationError(OccupancyError, ValueError):
    """Raised when input is rejected before any remote call is made."""


class NotFoundError(OccupancyError, LookupError):
    """Raised when a referenced warehouse or section does not exist."""


class RemoteError(OccupancyError):
    """Raised when a call to the persistence service fails."""


class PartialBatchError(RemoteError):
    """Raised when a later step of a multi-step write failed.

    ``committed`` lists the steps that already reached the remote store so
    callers can tell what is left behind.
    """

    def __init__(self, message: str, committed: tuple[str, ...] = ()):
        super().__init__(message)
        self.committed = committed
