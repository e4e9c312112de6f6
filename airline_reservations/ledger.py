from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from loguru import logger

from .catalog import Flight, FlightCatalog
from .config import DEFAULT_FARE
from .errors import BookingError, NotFoundError, ValidationError
from .models import Reservation, dump_rows, load_rows, next_id
from .payments import PaymentStrategy
from .storage import Storage, load_text, save_text
from .waitlist import WaitingLists


RESERVATIONS_KEY = "reservations.txt"
PROMOTION_PAYMENT = "Waitlist promotion"


@dataclass(frozen=True)
class Cancellation:
    cancelled: Reservation
    promoted: Optional[Reservation] = None


class ReservationLedger:
    """
    Passenger-to-seat bindings. Every booking, cancellation and promotion goes
    through the flight's seat map so the grid and the ledger never disagree.
    """

    def __init__(
        self,
        storage: Storage,
        catalog: FlightCatalog,
        waitlists: WaitingLists,
        *,
        fare: float = DEFAULT_FARE,
    ):
        self.storage = storage
        self.catalog = catalog
        self.waitlists = waitlists
        self.fare = fare
        self.reservations: dict[str, Reservation] = {}
        # Every id loaded or issued this session, so deleted ids are not handed out again.
        self._issued: set[str] = set()

    def load(self) -> None:
        self.reservations.clear()
        self._issued.clear()
        for r in load_rows(Reservation, load_text(self.storage, RESERVATIONS_KEY), source=RESERVATIONS_KEY):
            if r.reservation_id in self.reservations:
                logger.warning("Skipping duplicate reservation {}", r.reservation_id)
                continue
            self.reservations[r.reservation_id] = r
            self._issued.add(r.reservation_id)

    def save(self) -> None:
        save_text(self.storage, RESERVATIONS_KEY, dump_rows(self.reservations.values()))

    def get(self, reservation_id: str) -> Reservation:
        reservation = self.reservations.get((reservation_id or "").strip())
        if reservation is None:
            raise NotFoundError(f"reservation not found: {reservation_id}")
        return reservation

    def for_user(self, username: str) -> list[Reservation]:
        return [r for r in self.reservations.values() if r.username == username]

    def for_flight(self, flight_id: str) -> list[Reservation]:
        return [r for r in self.reservations.values() if r.flight_id == flight_id]

    def _prepare(self, flight: Flight, username: str, passenger_name: str, seat: Optional[str], payment: str) -> Reservation:
        seat_map = flight.seat_map
        if seat_map.is_fully_booked():
            raise BookingError(f"flight {flight.flight_id} is fully booked")
        label = seat if seat is not None else seat_map.first_available()
        if label is None:
            raise BookingError(f"flight {flight.flight_id} is fully booked")
        if not seat_map.is_available(label):
            raise BookingError(f"seat {label.strip().upper()} is not available; please choose another seat")
        target = seat_map.decode(label)
        normalized = seat_map.encode(target.row, target.col)
        if any(r.seat == normalized for r in self.for_flight(flight.flight_id)):
            raise BookingError(f"seat {normalized} is already reserved; please choose another seat")
        return Reservation.parse(
            reservation_id=next_id("RES", self._issued),
            passenger_name=passenger_name,
            flight_id=flight.flight_id,
            airline=flight.info.airline,
            destination=flight.info.destination,
            seat=normalized,
            username=username,
            payment=payment,
        )

    def _commit(self, flight: Flight, reservation: Reservation) -> Reservation:
        flight.seat_map.book(reservation.seat)
        self.reservations[reservation.reservation_id] = reservation
        self._issued.add(reservation.reservation_id)
        return reservation

    def book(
        self,
        flight_id: str,
        username: str,
        passenger_name: str,
        *,
        seat: Optional[str] = None,
        payment: Optional[PaymentStrategy] = None,
        amount: Optional[float] = None,
    ) -> Reservation:
        """
        Book ``seat`` (or the first open seat) on a flight. The seat and the
        passenger details are validated before any payment is taken, and a
        declined payment leaves the seat map untouched.
        """
        flight = self.catalog.get(flight_id)
        reservation = self._prepare(
            flight, username, passenger_name, seat, payment.details() if payment is not None else ""
        )
        if payment is not None and not payment.process(self.fare if amount is None else amount):
            raise BookingError("payment was declined; booking not completed")
        self._commit(flight, reservation)
        logger.info(
            "Booked seat {} on flight {} for {} ({})",
            reservation.seat,
            flight.flight_id,
            reservation.passenger_name,
            reservation.reservation_id,
        )
        return reservation

    def promote(self, flight_id: str, *, seat: Optional[str] = None) -> Reservation:
        flight = self.catalog.get(flight_id)
        if flight.seat_map.is_fully_booked():
            raise BookingError(f"flight {flight.flight_id} is fully booked; cannot promote a passenger")
        waiting_list = self.waitlists.get(flight.flight_id)
        entry = waiting_list.peek() if waiting_list is not None else None
        if waiting_list is None or entry is None:
            raise ValidationError(f"no passengers in the waiting list for flight {flight.flight_id}")

        reservation = self._prepare(flight, entry.username, entry.passenger_name, seat, PROMOTION_PAYMENT)
        self._commit(flight, reservation)
        waiting_list.pop()
        logger.info(
            "Promoted {} from the waiting list into seat {} on flight {} ({})",
            entry.username,
            reservation.seat,
            flight.flight_id,
            reservation.reservation_id,
        )
        return reservation

    def cancel(self, reservation_id: str, *, username: Optional[str] = None, promote: bool = False) -> Cancellation:
        """
        Cancel a reservation and free its seat. With ``username`` the
        reservation must belong to that user. With ``promote`` the head of the
        flight's waiting list is moved into the freed seat.
        """
        reservation = self.get(reservation_id)
        if username is not None and reservation.username != username:
            raise NotFoundError(f"reservation not found: {reservation_id}")

        flight = self.catalog.flights.get(reservation.flight_id)
        if flight is not None:
            flight.seat_map.cancel(reservation.seat)
        else:
            logger.warning(
                "Reservation {} refers to unknown flight {}; removing it without freeing a seat",
                reservation.reservation_id,
                reservation.flight_id,
            )
        del self.reservations[reservation.reservation_id]
        logger.info(
            "Cancelled reservation {} (seat {} on flight {})",
            reservation.reservation_id,
            reservation.seat,
            reservation.flight_id,
        )

        promoted = None
        if promote and flight is not None:
            waiting_list = self.waitlists.get(flight.flight_id)
            if waiting_list is not None and not waiting_list.is_empty():
                promoted = self.promote(flight.flight_id, seat=reservation.seat)
        return Cancellation(cancelled=reservation, promoted=promoted)

    def drop_flight(self, flight_id: str) -> list[Reservation]:
        """Forget every reservation on a flight that is being deleted. Seats are left alone."""
        dropped = self.for_flight(flight_id)
        for r in dropped:
            del self.reservations[r.reservation_id]
        return dropped
