import logging
import math
import os
from dataclasses import dataclass
from typing import Optional

from cupscore.models import LeagueState
from cupscore.scoring import DEFAULT_TEAMS, STROKE_INDEX, InvalidInput, validate_stroke_index

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8000


@dataclass(frozen=True)
class Settings:
    database_url: str
    team_a: str
    team_b: str
    default_base_points_a: float
    default_base_points_b: float
    stroke_index: tuple[int, ...]
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    ssl_certfile: str | None = None
    ssl_keyfile: str | None = None

    @property
    def teams(self) -> tuple[str, str]:
        return self.team_a, self.team_b

    @property
    def default_league_state(self) -> LeagueState:
        return LeagueState(
            team_a_base_points=self.default_base_points_a,
            team_b_base_points=self.default_base_points_b,
        )


def _normalize_database_url(value: Optional[str]) -> str:
    if not value:
        return "postgresql://localhost:5432/cupscore"
    normalized = value.strip()
    if normalized.startswith("postgres://"):
        return "postgresql://" + normalized[len("postgres://"):]
    return normalized


def _base_points_from_env(key: str, default: float) -> float:
    value = os.getenv(key)
    if not value:
        return default
    try:
        points = float(value)
    except ValueError as exc:
        raise InvalidInput(f"{key} must be a number, got {value!r}", "base_points_number") from exc
    if not math.isfinite(points):
        raise InvalidInput(f"{key} must be finite, got {value!r}", "base_points_number")
    return points


def _port_from_env() -> int:
    for key in ("APP_PORT", "PORT"):
        value = os.getenv(key)
        if not value:
            continue
        if value.isdigit() and 0 < int(value) < 65536:
            return int(value)
        logger.warning("Ignoring %s=%s (not a TCP port)", key, value)
    return DEFAULT_PORT


def _parse_stroke_index(value: Optional[str]) -> tuple[int, ...]:
    if not value:
        return STROKE_INDEX
    try:
        table = [int(part) for part in value.replace(" ", "").split(",") if part]
    except ValueError as exc:
        raise InvalidInput(f"STROKE_INDEX must be comma-separated integers: {value!r}", "stroke_index_integers") from exc
    return validate_stroke_index(table)


def load_settings() -> Settings:
    team_a = os.getenv("TEAM_A_NAME", DEFAULT_TEAMS[0]).strip() or DEFAULT_TEAMS[0]
    team_b = os.getenv("TEAM_B_NAME", DEFAULT_TEAMS[1]).strip() or DEFAULT_TEAMS[1]
    if team_a == team_b:
        raise InvalidInput(f"team names must differ, both are {team_a!r}", "teams_distinct")
    return Settings(
        database_url=_normalize_database_url(os.getenv("DATABASE_URL")),
        team_a=team_a,
        team_b=team_b,
        default_base_points_a=_base_points_from_env("DEFAULT_BASE_POINTS_A", 2.0),
        default_base_points_b=_base_points_from_env("DEFAULT_BASE_POINTS_B", 0.0),
        stroke_index=_parse_stroke_index(os.getenv("STROKE_INDEX")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        host=os.getenv("APP_HOST", "0.0.0.0"),
        port=_port_from_env(),
        ssl_certfile=os.getenv("SSL_CERT_FILE") or None,
        ssl_keyfile=os.getenv("SSL_KEY_FILE") or None,
    )
