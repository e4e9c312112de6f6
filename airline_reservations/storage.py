from __future__ import annotations

import os
from pathlib import Path, PurePosixPath
from typing import Optional, Protocol

from loguru import logger

from .errors import StorageError


class Storage(Protocol):
    def load(self, key: str) -> Optional[bytes]: ...

    def save(self, key: str, data: bytes) -> None: ...

    def delete(self, key: str) -> bool: ...

    def exists(self, key: str) -> bool: ...


def _check_key(key: str) -> PurePosixPath:
    p = PurePosixPath(key)
    if not key or p.is_absolute() or ".." in p.parts:
        raise StorageError(f"illegal storage key: {key!r}")
    return p


class FileStorage:
    """
    Keys are relative paths under ``root``. Saving empty data removes the file.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root.joinpath(*_check_key(key).parts)

    def load(self, key: str) -> Optional[bytes]:
        p = self._path(key)
        if not p.exists():
            return None
        try:
            data = p.read_bytes()
        except OSError as e:
            raise StorageError(f"failed to read {p}: {e}") from e
        logger.debug("Loaded {} bytes from {}", len(data), p)
        return data

    def save(self, key: str, data: bytes) -> None:
        p = self._path(key)
        if not data:
            self.delete(key)
            return
        tmp = p.with_name(p.name + ".tmp")
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(data)
            os.replace(tmp, p)
        except OSError as e:
            raise StorageError(f"failed to write {p}: {e}") from e
        logger.debug("Saved {} bytes to {}", len(data), p)

    def delete(self, key: str) -> bool:
        p = self._path(key)
        try:
            p.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"failed to delete {p}: {e}") from e
        logger.debug("Deleted {}", p)
        return True

    def exists(self, key: str) -> bool:
        return self._path(key).exists()


class MemoryStorage:
    def __init__(self, data: Optional[dict[str, bytes]] = None):
        self.data: dict[str, bytes] = dict(data or {})

    def load(self, key: str) -> Optional[bytes]:
        _check_key(key)
        return self.data.get(key)

    def save(self, key: str, data: bytes) -> None:
        _check_key(key)
        if not data:
            self.delete(key)
            return
        self.data[key] = bytes(data)

    def delete(self, key: str) -> bool:
        _check_key(key)
        return self.data.pop(key, None) is not None

    def exists(self, key: str) -> bool:
        _check_key(key)
        return key in self.data


def load_text(storage: Storage, key: str) -> Optional[str]:
    data = storage.load(key)
    if data is None:
        return None
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise StorageError(f"{key} is not valid UTF-8: {e}") from e


def save_text(storage: Storage, key: str, text: str) -> None:
    storage.save(key, text.encode("utf-8"))
