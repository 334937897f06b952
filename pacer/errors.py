"""
Pacer error taxonomy.

Progression errors (NotFound, InvalidRoomOrKey, InvalidTransition) propagate to
the caller; the HTTP layer maps them to status codes. Delivery and insert
contention errors are recorded or absorbed by the scheduling sweeps.
"""


class PacerError(Exception):
    """Base class for errors raised by the pacer core."""

    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class NotFound(PacerError):
    """A referenced course, module, lesson or progress record does not exist."""

    status_code = 404


class InvalidRoomOrKey(PacerError, ValueError):
    """A malformed identity: room name, daily slot time, time zone."""

    status_code = 400


class InvalidTransition(PacerError, ValueError):
    """A teaching-state move the state machine refuses."""

    status_code = 409


class TransientDeliveryFailure(PacerError):
    """The delivery channel failed or timed out for one notification."""

    status_code = 502


class StoreContention(PacerError):
    """Duplicate-key violation on insert; benign under racing generator runs."""

    status_code = 409
