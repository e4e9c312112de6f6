from __future__ import annotations

import csv
import io
from enum import Enum
from typing import Iterable, Optional, TypeVar

import pydantic
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import ValidationError
from .seatmap import MAX_CAPACITY


DEFAULT_FLIGHT_STATUS = "On Time"
ID_FLOOR = 10000


class Role(str, Enum):
    admin = "admin"
    customer = "customer"


class ReservationStatus(str, Enum):
    confirmed = "Confirmed"


def _describe(error: pydantic.ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "record"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


R = TypeVar("R", bound="Record")


class Record(BaseModel):
    """
    A persisted record. Field order is the column order of its delimited line.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    @classmethod
    def parse(cls: type[R], **data: object) -> R:
        try:
            return cls(**data)
        except pydantic.ValidationError as e:
            raise ValidationError(f"invalid {cls.__name__.lower()}: {_describe(e)}") from e

    def to_row(self) -> list[str]:
        return [str(v) for v in self.model_dump(mode="json").values()]

    @classmethod
    def from_row(cls: type[R], row: list[str]) -> R:
        names = list(cls.model_fields)
        required = [n for n, f in cls.model_fields.items() if f.is_required()]
        if len(row) < len(required):
            raise ValidationError(f"expected at least {len(required)} fields, got {len(row)}")
        return cls.parse(**dict(zip(names, row)))


class FlightInfo(Record):
    # Also used in storage keys.
    flight_id: str = Field(min_length=1, pattern=r"^[A-Za-z0-9_-]+$")
    airline: str = Field(min_length=1)
    plane_id: str = Field(min_length=1)
    capacity: int = Field(gt=0, le=MAX_CAPACITY)
    available_seats: int = Field(ge=0, le=MAX_CAPACITY)
    destination: str = Field(min_length=1)
    departure_time: str = Field(min_length=1)
    arrival_time: str = Field(min_length=1)
    status: str = Field(default=DEFAULT_FLIGHT_STATUS, min_length=1)


class Reservation(Record):
    reservation_id: str = Field(min_length=1)
    passenger_name: str = Field(min_length=1)
    flight_id: str = Field(min_length=1)
    airline: str = Field(min_length=1)
    destination: str = Field(min_length=1)
    seat: str = Field(min_length=2)
    status: ReservationStatus = ReservationStatus.confirmed
    username: str = Field(min_length=1)
    payment: str = ""

    @field_validator("seat")
    @classmethod
    def _upper_seat(cls, v: str) -> str:
        return v.upper()


class Account(Record):
    username: str = Field(min_length=1)
    password_hash: str = Field(min_length=1)
    name: str = Field(min_length=1)
    role: Role = Role.customer

    @field_validator("username")
    @classmethod
    def _no_inner_whitespace(cls, v: str) -> str:
        if any(ch.isspace() for ch in v):
            raise ValueError("username must not contain whitespace")
        return v

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin


class WaitingEntry(Record):
    username: str = Field(min_length=1)
    passenger_name: str = Field(min_length=1)


def dump_rows(records: Iterable[Record]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    for record in records:
        writer.writerow(record.to_row())
    return buf.getvalue()


def load_rows(cls: type[R], text: Optional[str], *, source: str) -> list[R]:
    """Parse delimited lines into records, skipping (and logging) bad ones."""
    if not text:
        return []
    records: list[R] = []
    reader = csv.reader(io.StringIO(text))
    for row in reader:
        if not any(cell.strip() for cell in row):
            continue
        try:
            records.append(cls.from_row(row))
        except ValidationError as e:
            logger.warning("Skipping malformed line {} in {}: {}", reader.line_num, source, e)
    return records


def next_id(prefix: str, existing: Iterable[Optional[str]]) -> str:
    """Next ``prefix`` + number, one above the highest already issued."""
    highest = ID_FLOOR
    for ident in existing:
        if not ident or not ident.startswith(prefix):
            continue
        suffix = ident[len(prefix):]
        if suffix.isascii() and suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{prefix}{highest + 1}"
