from __future__ import annotations

import string
from typing import TYPE_CHECKING, Iterable, Optional, Sequence

if TYPE_CHECKING:
    from .catalog import Flight
    from .models import Account, Reservation
    from .seatmap import SeatMap
    from .waitlist import WaitingList


CELL_WIDTH = 4
LEGEND = "Legend: O - Available, X - Occupied, | - Aisle"


def _cell(text: Optional[object], width: int) -> str:
    if text is None:
        return "".ljust(width)
    t = str(text)
    if len(t) > width - 1:
        t = t[: max(0, width - 2)] + "…"
    return t.ljust(width)


def render_seat_map(seat_map: SeatMap) -> str:
    layout = seat_map.layout
    letters = iter(string.ascii_uppercase)

    header = " " * CELL_WIDTH
    for c in range(layout.total_columns):
        header += " " * CELL_WIDTH if layout.is_aisle(c) else next(letters).ljust(CELL_WIDTH)
    lines = [header.rstrip()]

    for r, row in enumerate(seat_map.grid):
        line = f"{r + 1:>2}".ljust(CELL_WIDTH)
        for c, occupied in enumerate(row):
            if layout.is_aisle(c):
                symbol = "|"
            else:
                symbol = "X" if occupied else "O"
            line += symbol.ljust(CELL_WIDTH)
        lines.append(line.rstrip())

    lines.append("")
    lines.append(LEGEND)
    return "\n".join(lines)


def _table(headers: Sequence[str], widths: Sequence[int], rows: Iterable[Sequence[object]]) -> str:
    lines = ["".join(_cell(h, w) for h, w in zip(headers, widths)).rstrip()]
    lines.append("-" * sum(widths))
    for row in rows:
        lines.append("".join(_cell(v, w) for v, w in zip(row, widths)).rstrip())
    return "\n".join(lines)


def render_flight_summary(flight: Flight) -> str:
    info = flight.info
    return "\n".join(
        [
            f"Seat Map for Flight {info.flight_id} ({info.airline}):",
            f"Destination: {info.destination}",
            f"Available Seats: {flight.available_seats} out of {info.capacity}",
        ]
    )


def render_flights(flights: Sequence[Flight]) -> str:
    if not flights:
        return "No flights available."
    return _table(
        ["Flight ID", "Airline", "Destination", "Departure", "Arrival", "Seats", "Status"],
        [10, 18, 26, 26, 26, 8, 12],
        (
            (
                f.info.flight_id,
                f.info.airline,
                f.info.destination,
                f.info.departure_time,
                f.info.arrival_time,
                f.available_seats,
                f.info.status,
            )
            for f in flights
        ),
    )


def render_reservations(reservations: Sequence[Reservation]) -> str:
    if not reservations:
        return "No reservations found."
    return _table(
        ["Reservation ID", "Passenger", "Flight", "Airline", "Destination", "Seat", "Status"],
        [16, 24, 10, 18, 26, 6, 12],
        (
            (r.reservation_id, r.passenger_name, r.flight_id, r.airline, r.destination, r.seat, r.status)
            for r in reservations
        ),
    )


def render_waiting_list(waiting_list: WaitingList) -> str:
    title = f"Waiting List for Flight {waiting_list.flight_id}:"
    if waiting_list.is_empty():
        return f"{title}\nNo passengers in the waiting list."
    table = _table(
        ["No.", "Passenger Name", "Username"],
        [5, 24, 20],
        ((i, e.passenger_name, e.username) for i, e in enumerate(waiting_list, start=1)),
    )
    return f"{title}\n{table}"


def render_accounts(accounts: Sequence[Account]) -> str:
    if not accounts:
        return "No customer accounts found."
    return _table(["Username", "Name"], [20, 30], ((a.username, a.name) for a in accounts))
