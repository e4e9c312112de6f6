from __future__ import annotations

from collections import deque
from typing import Iterable, Iterator, Optional

from loguru import logger

from .errors import ValidationError
from .models import WaitingEntry, dump_rows, load_rows
from .storage import Storage, load_text, save_text


WAITLIST_DIR = "waitinglists"


def waitlist_key(flight_id: str) -> str:
    return f"{WAITLIST_DIR}/{flight_id}.txt"


class WaitingList:
    """
    First-come, first-served queue of passengers waiting for a seat on one
    flight. A username can be queued at most once per flight.
    """

    def __init__(self, flight_id: str, entries: Iterable[WaitingEntry] = ()):
        self.flight_id = flight_id
        self._queue: deque[WaitingEntry] = deque()
        for entry in entries:
            self._append(entry)

    def _append(self, entry: WaitingEntry) -> WaitingEntry:
        if entry.username in self:
            raise ValidationError(f"{entry.username} is already on the waiting list for flight {self.flight_id}")
        self._queue.append(entry)
        return entry

    def add(self, username: str, passenger_name: str) -> WaitingEntry:
        return self._append(WaitingEntry.parse(username=username, passenger_name=passenger_name))

    def remove(self, username: str) -> bool:
        for entry in self._queue:
            if entry.username == username:
                self._queue.remove(entry)
                return True
        return False

    def peek(self) -> Optional[WaitingEntry]:
        return self._queue[0] if self._queue else None

    def pop(self) -> WaitingEntry:
        if not self._queue:
            raise ValidationError(f"no passengers in the waiting list for flight {self.flight_id}")
        return self._queue.popleft()

    def is_empty(self) -> bool:
        return not self._queue

    def __contains__(self, username: object) -> bool:
        return any(entry.username == username for entry in self._queue)

    def __len__(self) -> int:
        return len(self._queue)

    def __iter__(self) -> Iterator[WaitingEntry]:
        return iter(list(self._queue))


class WaitingLists:
    def __init__(self, storage: Storage):
        self.storage = storage
        self.lists: dict[str, WaitingList] = {}
        self._dropped: set[str] = set()

    def for_flight(self, flight_id: str) -> WaitingList:
        if flight_id not in self.lists:
            self.lists[flight_id] = WaitingList(flight_id)
        return self.lists[flight_id]

    def get(self, flight_id: str) -> Optional[WaitingList]:
        return self.lists.get(flight_id)

    def drop(self, flight_id: str) -> None:
        self.lists.pop(flight_id, None)
        self._dropped.add(flight_id)

    def remove_user_everywhere(self, username: str) -> list[str]:
        return [flight_id for flight_id, wl in self.lists.items() if wl.remove(username)]

    def load(self, flight_ids: Iterable[str]) -> None:
        self.lists.clear()
        self._dropped.clear()
        for flight_id in flight_ids:
            key = waitlist_key(flight_id)
            waiting_list = WaitingList(flight_id)
            for entry in load_rows(WaitingEntry, load_text(self.storage, key), source=key):
                try:
                    waiting_list._append(entry)
                except ValidationError as e:
                    logger.warning("Skipping waiting list entry in {}: {}", key, e)
            self.lists[flight_id] = waiting_list

    def save(self) -> None:
        for flight_id, waiting_list in self.lists.items():
            save_text(self.storage, waitlist_key(flight_id), dump_rows(waiting_list))
        for flight_id in sorted(self._dropped - set(self.lists)):
            self.storage.delete(waitlist_key(flight_id))
        self._dropped.clear()
