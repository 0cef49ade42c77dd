"""
Exception types raised by the reservation core.
"""


class ReservationError(Exception):
    """Base class for everything the core raises on purpose."""


class ValidationError(ReservationError):
    """Malformed date/time, bad menu name, or an action not allowed in the current state."""


class NotFoundError(ReservationError):
    pass


class AuthorizationError(ReservationError):
    """Caller does not own the reservation, or lacks the admin role."""


class ConflictError(ReservationError):
    """Another menu is already reserved on that day."""


class DayClosedError(ConflictError):
    """The day is a holiday."""


class StorageError(ReservationError):
    """Downstream storage failure."""
