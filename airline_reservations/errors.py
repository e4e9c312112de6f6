from __future__ import annotations


class ReservationError(Exception):
    pass


class ValidationError(ReservationError):
    pass


class SeatOutOfRangeError(ValidationError):
    pass


class AisleSeatError(ValidationError):
    pass


class NotFoundError(ValidationError):
    pass


class AuthenticationError(ValidationError):
    pass


class BookingError(ReservationError):
    pass


class StorageError(ReservationError):
    pass
