from __future__ import annotations

from loguru import logger

from .accounts import AccountStore
from .catalog import Flight, FlightCatalog
from .config import DEFAULT_BCRYPT_ROUNDS, DEFAULT_FARE, Settings
from .errors import BookingError, NotFoundError, ReservationError
from .ledger import ReservationLedger
from .models import Account, WaitingEntry
from .seatmap import Seat
from .storage import FileStorage, Storage
from .waitlist import WaitingLists


class AppContext:
    """
    Owns every collection the application works on (flights, reservations,
    waiting lists, accounts) and their load/save lifecycle. Operations that
    span several collections live here too.
    """

    def __init__(
        self,
        storage: Storage,
        *,
        fare: float = DEFAULT_FARE,
        bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS,
    ):
        self.storage = storage
        self.catalog = FlightCatalog(storage)
        self.waitlists = WaitingLists(storage)
        self.ledger = ReservationLedger(storage, self.catalog, self.waitlists, fare=fare)
        self.accounts = AccountStore(storage, bcrypt_rounds=bcrypt_rounds)

    @classmethod
    def from_settings(cls, settings: Settings) -> "AppContext":
        return cls(FileStorage(settings.data_dir), fare=settings.fare, bcrypt_rounds=settings.bcrypt_rounds)

    def load(self) -> "AppContext":
        self.catalog.load()
        self.accounts.load()
        self.ledger.load()
        self.waitlists.load(self.catalog.flights)
        self._reconcile()
        return self

    def save(self) -> None:
        self.catalog.save()
        self.ledger.save()
        self.waitlists.save()
        self.accounts.save()

    def _reconcile(self) -> None:
        """
        Make every seat grid agree with the reservations on its flight. Files
        are saved one by one, so an interrupted save can leave a grid that
        shows a reserved seat as free.
        """
        for r in self.ledger.reservations.values():
            if r.flight_id not in self.catalog.flights:
                logger.warning("Reservation {} refers to unknown flight {}", r.reservation_id, r.flight_id)

        for flight in self.catalog.list():
            held = self.ledger.for_flight(flight.flight_id)
            if not held:
                continue
            seat_map = flight.seat_map
            if seat_map.rebuilt:
                logger.warning(
                    "Flight {}: seat grid was rebuilt; re-booking {} reserved seats", flight.flight_id, len(held)
                )

            holders: dict[Seat, str] = {}
            for r in held:
                try:
                    seat = seat_map.decode(r.seat)
                    if seat in holders:
                        logger.warning(
                            "Flight {}: seat {} is held by both {} and {}",
                            flight.flight_id,
                            r.seat,
                            holders[seat],
                            r.reservation_id,
                        )
                        continue
                    holders[seat] = r.reservation_id
                    if not seat_map.is_available(seat):
                        continue
                    seat_map.book(seat)
                except ReservationError as e:
                    logger.warning(
                        "Flight {}: could not re-book seat {} for reservation {}: {}",
                        flight.flight_id,
                        r.seat,
                        r.reservation_id,
                        e,
                    )
                    continue
                if seat_map.rebuilt:
                    logger.info("Flight {}: re-booked seat {} for {}", flight.flight_id, r.seat, r.reservation_id)
                else:
                    logger.warning(
                        "Flight {}: seat {} was free in the seat grid but is held by {}; marked it booked",
                        flight.flight_id,
                        r.seat,
                        r.reservation_id,
                    )

    def join_waitlist(self, flight_id: str, username: str, passenger_name: str) -> WaitingEntry:
        flight = self.catalog.get(flight_id)
        if not flight.seat_map.is_fully_booked():
            raise BookingError(f"flight {flight.flight_id} still has seats available; book one instead")
        entry = self.waitlists.for_flight(flight.flight_id).add(username, passenger_name)
        logger.info("Added {} to the waiting list for flight {}", entry.username, flight.flight_id)
        return entry

    def delete_flight(self, flight_id: str) -> Flight:
        flight = self.catalog.get(flight_id)
        dropped = self.ledger.drop_flight(flight.flight_id)
        self.waitlists.drop(flight.flight_id)
        self.catalog.delete(flight.flight_id)
        if dropped:
            logger.info("Removed {} reservations with flight {}", len(dropped), flight.flight_id)
        return flight

    def delete_customer(self, username: str) -> Account:
        account = self.accounts.get(username)
        if account.is_admin:
            raise NotFoundError(f"customer account not found: {username}")
        for r in self.ledger.for_user(account.username):
            self.ledger.cancel(r.reservation_id)
        self.waitlists.remove_user_everywhere(account.username)
        return self.accounts.delete_customer(account.username)

    def change_capacity(self, flight_id: str, capacity: int) -> Flight:
        flight = self.catalog.get(flight_id)
        held = self.ledger.for_flight(flight.flight_id)
        if held:
            raise BookingError(
                f"flight {flight.flight_id} has {len(held)} reservations; "
                "changing capacity would discard their seats"
            )
        return self.catalog.change_capacity(flight.flight_id, capacity)
