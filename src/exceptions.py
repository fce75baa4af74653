from typing import Any, Dict, List


class TrainBookingError(Exception):
    """Base class for errors that map onto a client-facing HTTP status"""

    def __init__(self, message: str, status_code: int) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    @property
    def detail(self) -> Any:
        return self.message


class BookingValidationError(TrainBookingError):
    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(message, 422)

    @property
    def detail(self) -> List[Dict[str, Any]]:
        return [{"loc": ["body", self.field], "msg": self.message, "type": "value_error"}]


class NotFoundError(TrainBookingError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 404)


class CapacityExceededError(TrainBookingError):
    def __init__(self, requested: int, available: int) -> None:
        self.requested = requested
        self.available = available
        super().__init__(
            f"Not enough seats available: requested {requested}, available {max(available, 0)}",
            409,
        )


class AlreadyCancelledError(TrainBookingError):
    def __init__(self, message: str = "Booking already cancelled") -> None:
        super().__init__(message, 400)


class ConflictError(TrainBookingError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 409)


class ForbiddenError(TrainBookingError):
    def __init__(self, message: str = "Not enough permissions") -> None:
        super().__init__(message, 403)


class TransientPersistenceError(TrainBookingError):
    """Lock timeout or reference collision that outlived its retries"""

    def __init__(self, message: str) -> None:
        super().__init__(message, 503)
