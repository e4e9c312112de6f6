from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

from .errors import ValidationError


DEFAULT_FARE = 500.00
DEFAULT_BCRYPT_ROUNDS = 12
LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    log_level: str = "WARNING"
    log_file: Optional[Path] = None
    fare: float = DEFAULT_FARE
    bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS

    def override(self, **changes: object) -> "Settings":
        """Return a copy with the non-``None`` values in ``changes`` applied."""
        values = {k: v for k, v in changes.items() if v is not None}
        if "data_dir" in values:
            values["data_dir"] = Path(values["data_dir"])  # type: ignore[arg-type]
        if "log_level" in values:
            values["log_level"] = _log_level(str(values["log_level"]))
        return replace(self, **values)


def _log_level(raw: str) -> str:
    level = raw.strip().upper()
    if level not in LOG_LEVELS:
        raise ValidationError(f"unknown log level {raw!r}; expected one of {', '.join(LOG_LEVELS)}")
    return level


def _number(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValidationError(f"{name} must be a number, got {raw!r}") from e


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ

    fare = _number(env, "AIRLINE_FARE", DEFAULT_FARE)
    if fare < 0:
        raise ValidationError("AIRLINE_FARE must not be negative")

    rounds = _number(env, "AIRLINE_BCRYPT_ROUNDS", DEFAULT_BCRYPT_ROUNDS)
    if rounds != int(rounds) or not 4 <= rounds <= 31:
        raise ValidationError("AIRLINE_BCRYPT_ROUNDS must be an integer between 4 and 31")

    log_file = env.get("AIRLINE_LOG_FILE")
    return Settings(
        data_dir=Path(env.get("AIRLINE_DATA_DIR") or Path.cwd() / "data"),
        log_level=_log_level(env.get("AIRLINE_LOG_LEVEL") or "WARNING"),
        log_file=Path(log_file) if log_file else None,
        fare=fare,
        bcrypt_rounds=int(rounds),
    )
