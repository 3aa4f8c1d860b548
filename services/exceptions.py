class SyncError(Exception):
    """Base class for every failure raised by the sheet reconciliation engine."""
    status_code = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(SyncError):
    """Raised when a request is malformed (bad grid URL, missing key field)."""
    status_code = 400


class NotFoundError(SyncError):
    """Raised when a spreadsheet, tab, warehouse or locker does not exist."""
    status_code = 404


class ConflictError(SyncError):
    """Raised when a grid tab is already bound to a different warehouse."""
    status_code = 409


class TransientAPIError(SyncError):
    """Raised on rate limits or network failures from an external API."""
    status_code = 503


class DeadlineExceeded(TransientAPIError):
    """Raised when the caller-supplied deadline passes before a network call."""
    status_code = 504


class PartialRowError(SyncError):
    """Recorded (never raised out of a sync) when a single row fails to persist."""

    def __init__(self, message, position=None):
        super().__init__(message)
        self.position = position
