from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional, Union

from loguru import logger

from .errors import AisleSeatError, BookingError, SeatOutOfRangeError, ValidationError
from .render import render_seat_map


@dataclass(frozen=True)
class Seat:
    row: int
    col: int


@dataclass(frozen=True)
class Layout:
    seats_per_side: int
    total_columns: int
    aisles: tuple[int, ...]

    @property
    def seats_per_row(self) -> int:
        return self.total_columns - len(self.aisles)

    def is_aisle(self, col: int) -> bool:
        return col in self.aisles

    def seat_columns(self) -> list[int]:
        return [c for c in range(self.total_columns) if c not in self.aisles]


SMALL_CABIN = Layout(seats_per_side=2, total_columns=5, aisles=(2,))
MEDIUM_CABIN = Layout(seats_per_side=3, total_columns=7, aisles=(3,))
LARGE_CABIN = Layout(seats_per_side=5, total_columns=11, aisles=(3, 8))

# Largest single-aircraft cabin we accept; bounds the grid allocation.
MAX_CAPACITY = 1000


def derive_layout(capacity: int) -> Layout:
    """
    Pick the cabin configuration for a capacity: 2-2 below 60 seats, 3-3 below
    150, and 3-4-3 (two aisles) from 150 up.
    """
    _check_capacity(capacity)
    if capacity < 60:
        return SMALL_CABIN
    if capacity < 150:
        return MEDIUM_CABIN
    return LARGE_CABIN


def build_grid(capacity: int, layout: Layout) -> list[list[bool]]:
    """
    Lay ``capacity`` open seats out row by row. Aisles start occupied, and the
    unused tail of a partial last row is pre-booked so it can never be sold.
    """
    full_rows, remainder = divmod(capacity, layout.seats_per_row)
    total_rows = full_rows + (1 if remainder > 0 else 0)
    seat_columns = layout.seat_columns()

    grid: list[list[bool]] = []
    for r in range(total_rows):
        row = [layout.is_aisle(c) for c in range(layout.total_columns)]
        if r == total_rows - 1 and remainder > 0:
            seats_left = remainder
            for c in seat_columns:
                if seats_left > 0:
                    seats_left -= 1
                else:
                    row[c] = True
        grid.append(row)

    # Open cells must equal capacity exactly; close any surplus from the back.
    excess = sum(1 for row in grid for c in seat_columns if not row[c]) - capacity
    for r in range(len(grid) - 1, -1, -1):
        for c in reversed(seat_columns):
            if excess <= 0:
                return grid
            if not grid[r][c]:
                grid[r][c] = True
                excess -= 1
    return grid


def parse_grid(text: str) -> list[list[bool]]:
    grid: list[list[bool]] = []
    for line_no, line in enumerate(text.splitlines(), start=1):
        tokens = [t.strip() for t in line.split(",") if t.strip()]
        if not tokens:
            continue
        row: list[bool] = []
        for token in tokens:
            if token not in ("0", "1"):
                raise ValidationError(f"line {line_no}: invalid seat cell {token!r}")
            row.append(token == "1")
        grid.append(row)
    return grid


def _check_capacity(capacity: int) -> None:
    if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity <= 0:
        raise ValidationError(f"capacity must be a positive integer, got {capacity!r}")
    if capacity > MAX_CAPACITY:
        raise ValidationError(f"capacity must be at most {MAX_CAPACITY}, got {capacity}")


SeatRef = Union[str, Seat]


class SeatMap:
    """
    Occupancy grid for one flight's cabin.

    A ``True`` cell cannot be booked: it is an aisle, a booked seat, or a seat
    the aircraft does not have (a "phantom" left over from a partial last row).
    ``available_seats`` always equals the number of open seat cells.
    """

    def __init__(self, capacity: int, grid: Optional[list[list[bool]]] = None):
        self.rebuilt = False
        self._initialize(capacity, grid)

    def _initialize(self, capacity: int, grid: Optional[list[list[bool]]]) -> None:
        _check_capacity(capacity)
        layout = derive_layout(capacity)
        fresh = build_grid(capacity, layout)
        seat_columns = layout.seat_columns()
        phantoms = frozenset(
            Seat(r, c) for r, row in enumerate(fresh) for c in seat_columns if row[c]
        )

        if grid is None:
            grid = fresh
        else:
            if len(grid) != len(fresh) or any(len(row) != layout.total_columns for row in grid):
                raise ValidationError(
                    f"seat grid dimensions do not match capacity {capacity}: "
                    f"expected {len(fresh)} rows x {layout.total_columns} columns"
                )
            grid = [list(row) for row in grid]
            for row in grid:
                for c in layout.aisles:
                    row[c] = True
            for seat in phantoms:
                grid[seat.row][seat.col] = True

        self.capacity = capacity
        self.layout = layout
        self.grid = grid
        self._phantoms = phantoms
        self.available_seats = sum(1 for row in grid for c in seat_columns if not row[c])

    @property
    def rows(self) -> int:
        return len(self.grid)

    @property
    def seats_per_side(self) -> int:
        return self.layout.seats_per_side

    @property
    def total_columns(self) -> int:
        return self.layout.total_columns

    @property
    def booked_count(self) -> int:
        return self.capacity - self.available_seats

    def iter_seats(self) -> Iterator[Seat]:
        """Real seats in row-major order, skipping aisles and phantoms."""
        for r in range(self.rows):
            for c in self.layout.seat_columns():
                seat = Seat(r, c)
                if seat not in self._phantoms:
                    yield seat

    def decode(self, label: str) -> Seat:
        """Parse a label such as ``"14C"`` into grid indices, skipping aisle columns."""
        text = (label or "").strip().upper()
        if len(text) < 2:
            raise ValidationError(f"invalid seat label: {label!r}")
        prefix, letter = text[:-1], text[-1]
        if not (prefix.isascii() and prefix.isdigit()) or int(prefix) < 1:
            raise ValidationError(f"invalid row number in seat label: {label!r}")
        if not ("A" <= letter <= "Z"):
            raise ValidationError(f"invalid column letter in seat label: {label!r}")

        col = ord(letter) - ord("A")
        for aisle in self.layout.aisles:
            if col >= aisle:
                col += 1
        return Seat(int(prefix) - 1, col)

    def encode(self, row: int, col: int) -> str:
        self._check_bounds(row, col)
        if self.layout.is_aisle(col):
            raise AisleSeatError(f"column {col} is an aisle")
        offset = col - sum(1 for aisle in self.layout.aisles if aisle < col)
        return f"{row + 1}{chr(ord('A') + offset)}"

    def _check_bounds(self, row: int, col: int) -> None:
        if not (0 <= row < self.rows and 0 <= col < self.total_columns):
            raise SeatOutOfRangeError(f"seat out of range: row={row}, col={col}")

    def _resolve(self, seat: SeatRef) -> Seat:
        if isinstance(seat, str):
            target = self.decode(seat)
            if not (0 <= target.row < self.rows and 0 <= target.col < self.total_columns):
                raise SeatOutOfRangeError(f"seat {seat.strip().upper()} is out of range")
        else:
            target = seat
            self._check_bounds(target.row, target.col)
        if self.layout.is_aisle(target.col):
            raise AisleSeatError("cannot use an aisle as a seat")
        return target

    def is_available(self, seat: SeatRef) -> bool:
        target = self._resolve(seat)
        return not self.grid[target.row][target.col]

    def book(self, seat: SeatRef) -> str:
        target = self._resolve(seat)
        label = self.encode(target.row, target.col)
        if self.grid[target.row][target.col]:
            raise BookingError(f"seat {label} is not available")
        self.grid[target.row][target.col] = True
        self.available_seats -= 1
        return label

    def cancel(self, seat: SeatRef) -> str:
        target = self._resolve(seat)
        label = self.encode(target.row, target.col)
        if target in self._phantoms:
            raise BookingError(f"seat {label} does not exist on this aircraft")
        if not self.grid[target.row][target.col]:
            raise BookingError(f"seat {label} is already available")
        self.grid[target.row][target.col] = False
        self.available_seats += 1
        return label

    def first_available(self) -> Optional[str]:
        for seat in self.iter_seats():
            if not self.grid[seat.row][seat.col]:
                return self.encode(seat.row, seat.col)
        return None

    def is_fully_booked(self) -> bool:
        return self.available_seats == 0

    def resize(self, capacity: int) -> None:
        """Re-derive the cabin for a new capacity. All occupancy is discarded."""
        self._initialize(capacity, None)

    def render(self) -> str:
        return render_seat_map(self)

    def serialize(self) -> str:
        return "".join(",".join("1" if cell else "0" for cell in row) + "\n" for row in self.grid)

    @classmethod
    def deserialize(cls, capacity: int, text: Optional[str]) -> "SeatMap":
        """
        Restore a grid written by :meth:`serialize`.

        A missing, blank, malformed or mis-shaped grid cannot be trusted, so a
        fresh layout is derived instead and ``rebuilt`` is set on the result.
        Any occupancy the lost grid held is gone at that point.
        """
        _check_capacity(capacity)
        if text is None or not text.strip():
            logger.warning("No stored seat grid; deriving a fresh layout for capacity {}", capacity)
            return cls._fresh(capacity)
        try:
            return cls(capacity, parse_grid(text))
        except ValidationError as e:
            logger.warning("Discarding stored seat grid ({}); deriving a fresh layout for capacity {}", e, capacity)
            return cls._fresh(capacity)

    @classmethod
    def _fresh(cls, capacity: int) -> "SeatMap":
        seat_map = cls(capacity)
        seat_map.rebuilt = True
        return seat_map
