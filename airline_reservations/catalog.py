from __future__ import annotations

from typing import Optional

from loguru import logger

from .errors import NotFoundError, ValidationError
from .models import DEFAULT_FLIGHT_STATUS, FlightInfo, dump_rows, load_rows, next_id
from .seatmap import SeatMap
from .storage import Storage, load_text, save_text


FLIGHTS_KEY = "flights.txt"
SEATMAP_DIR = "seatmaps"
EDITABLE_FIELDS = frozenset({"airline", "plane_id", "destination", "departure_time", "arrival_time", "status"})


def seat_map_key(flight_id: str) -> str:
    return f"{SEATMAP_DIR}/{flight_id}.txt"


class Flight:
    """
    Flight metadata plus the flight's seat map. The seat map is the source of
    truth for ``available_seats``; ``info.available_seats`` is only refreshed
    when a record is produced for storage.
    """

    def __init__(self, info: FlightInfo, seat_map: SeatMap):
        self.info = info
        self.seat_map = seat_map

    @property
    def flight_id(self) -> str:
        return self.info.flight_id

    @property
    def available_seats(self) -> int:
        return self.seat_map.available_seats

    def record(self) -> FlightInfo:
        return self.info.model_copy(update={"available_seats": self.seat_map.available_seats})

    def __repr__(self) -> str:
        return f"Flight({self.flight_id!r}, {self.available_seats}/{self.info.capacity} available)"


class FlightCatalog:
    def __init__(self, storage: Storage):
        self.storage = storage
        self.flights: dict[str, Flight] = {}
        # Every id loaded or issued this session, so deleted ids are not handed out again.
        self._issued: set[str] = set()
        # Seat-grid keys of deleted flights, removed on the next save.
        self._dropped: set[str] = set()

    def load(self) -> None:
        self.flights.clear()
        self._dropped.clear()
        self._issued.clear()
        infos = load_rows(FlightInfo, load_text(self.storage, FLIGHTS_KEY), source=FLIGHTS_KEY)
        for info in infos:
            if info.flight_id in self.flights:
                logger.warning("Skipping duplicate flight record {}", info.flight_id)
                continue
            seat_map = SeatMap.deserialize(info.capacity, load_text(self.storage, seat_map_key(info.flight_id)))
            if seat_map.available_seats != info.available_seats:
                logger.warning(
                    "Flight {}: record lists {} available seats but the seat grid has {}; using the seat grid",
                    info.flight_id,
                    info.available_seats,
                    seat_map.available_seats,
                )
            self.flights[info.flight_id] = Flight(info, seat_map)
            self._issued.add(info.flight_id)
        logger.debug("Loaded {} flights", len(self.flights))

    def save(self) -> None:
        save_text(self.storage, FLIGHTS_KEY, dump_rows(f.record() for f in self.flights.values()))
        for flight in self.flights.values():
            save_text(self.storage, seat_map_key(flight.flight_id), flight.seat_map.serialize())
        for key in sorted(self._dropped):
            self.storage.delete(key)
        self._dropped.clear()

    def create(
        self,
        *,
        airline: str,
        plane_id: str,
        capacity: int,
        destination: str,
        departure_time: str,
        arrival_time: str,
    ) -> Flight:
        flight_id = next_id("FL", self._issued)
        info = FlightInfo.parse(
            flight_id=flight_id,
            airline=airline,
            plane_id=plane_id,
            capacity=capacity,
            available_seats=capacity,
            destination=destination,
            departure_time=departure_time,
            arrival_time=arrival_time,
            status=DEFAULT_FLIGHT_STATUS,
        )
        flight = Flight(info, SeatMap(info.capacity))
        self.flights[flight_id] = flight
        self._issued.add(flight_id)
        layout = flight.seat_map.layout
        logger.info(
            "Created flight {} ({} seats, {} rows x {} columns)",
            flight_id,
            info.capacity,
            flight.seat_map.rows,
            layout.total_columns,
        )
        return flight

    def get(self, flight_id: str) -> Flight:
        flight = self.flights.get((flight_id or "").strip())
        if flight is None:
            raise NotFoundError(f"flight not found: {flight_id}")
        return flight

    def list(self) -> list[Flight]:
        return list(self.flights.values())

    def search(self, destination: str) -> list[Flight]:
        needle = (destination or "").strip().lower()
        return [f for f in self.flights.values() if needle in f.info.destination.lower()]

    def by_airline(self, airline: str) -> list[Flight]:
        name = (airline or "").strip()
        return [f for f in self.flights.values() if f.info.airline == name]

    def update(self, flight_id: str, **changes: Optional[str]) -> Flight:
        """Edit flight metadata. ``None`` or blank values keep the current value."""
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"cannot edit flight fields: {', '.join(sorted(unknown))}")
        flight = self.get(flight_id)
        updates = {k: v for k, v in changes.items() if v is not None and v.strip()}
        if updates:
            flight.info = FlightInfo.parse(**{**flight.record().model_dump(), **updates})
            logger.info("Updated flight {}: {}", flight.flight_id, ", ".join(sorted(updates)))
        return flight

    def change_capacity(self, flight_id: str, capacity: int) -> Flight:
        flight = self.get(flight_id)
        info = FlightInfo.parse(**{**flight.info.model_dump(), "capacity": capacity, "available_seats": capacity})
        flight.seat_map.resize(info.capacity)
        flight.info = info
        logger.warning(
            "Flight {} re-derived for {} seats; all seat occupancy was discarded", flight.flight_id, info.capacity
        )
        return flight

    def delete(self, flight_id: str) -> Flight:
        flight = self.get(flight_id)
        del self.flights[flight.flight_id]
        self._dropped.add(seat_map_key(flight.flight_id))
        logger.info("Deleted flight {}", flight.flight_id)
        return flight
