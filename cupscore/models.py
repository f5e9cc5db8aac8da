from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class HoleResult(str, Enum):
    A = "A"
    B = "B"
    ALL_SQUARE = "AS"
    PENDING = "PENDING"


class MatchState(str, Enum):
    UNSCHEDULED = "unscheduled"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


MATCH_STATE_LABELS = {
    MatchState.UNSCHEDULED: "Unscheduled",
    MatchState.SCHEDULED: "Not started",
    MatchState.IN_PROGRESS: "In progress",
    MatchState.COMPLETE: "Completed",
}


@dataclass(frozen=True)
class Player:
    id: int | None
    name: str
    team: str
    handicap: int


@dataclass(frozen=True)
class CourseHole:
    hole_number: int
    stroke_index: int


@dataclass(frozen=True)
class HoleScore:
    hole: int
    gross_a: int | None = None
    gross_b: int | None = None

    @property
    def recorded(self) -> bool:
        return self.gross_a is not None or self.gross_b is not None


@dataclass(frozen=True)
class Match:
    id: int | None
    player_a: Player | None = None
    player_b: Player | None = None
    counts: bool = True
    tee_time: str | None = None
    notes: str | None = None
    scores: tuple[HoleScore, ...] = ()

    @property
    def assigned(self) -> bool:
        return self.player_a is not None and self.player_b is not None

    @property
    def has_scores(self) -> bool:
        return any(score.recorded for score in self.scores)


@dataclass(frozen=True)
class LeagueState:
    team_a_base_points: float = 2.0
    team_b_base_points: float = 0.0


@dataclass(frozen=True)
class StrokeAllocation:
    hole_number: int
    stroke_index: int
    a_gets_stroke: bool = False
    b_gets_stroke: bool = False


@dataclass(frozen=True)
class ScorecardRow:
    hole_number: int
    stroke_index: int
    gross_a: int | None
    gross_b: int | None
    a_gets_stroke: bool
    b_gets_stroke: bool
    net_a: int | None
    net_b: int | None
    result: HoleResult
    margin: int


@dataclass(frozen=True)
class MatchPoints:
    points_a: float
    points_b: float
    holes_won_a: int = 0
    holes_won_b: int = 0
    holes_halved: int = 0

    @property
    def holes_played(self) -> int:
        return self.holes_won_a + self.holes_won_b + self.holes_halved

    @property
    def winner(self) -> str:
        if self.points_a > self.points_b:
            return "A"
        if self.points_b > self.points_a:
            return "B"
        return "T"


@dataclass(frozen=True)
class MatchSummary:
    match_id: int | None
    state: MatchState
    rows: tuple[ScorecardRow, ...]
    points: MatchPoints
    margin: int
    label: str
    counts: bool = True

    @property
    def holes_played(self) -> int:
        return self.points.holes_played


@dataclass(frozen=True)
class LeagueTotals:
    team_a: str
    team_b: str
    base_a: float
    base_b: float
    match_points_a: float = 0.0
    match_points_b: float = 0.0
    counted_matches: int = 0
    match_ids: tuple[int | None, ...] = field(default_factory=tuple)

    @property
    def total_a(self) -> float:
        return self.base_a + self.match_points_a

    @property
    def total_b(self) -> float:
        return self.base_b + self.match_points_b

    @property
    def leader(self) -> str | None:
        if self.total_a > self.total_b:
            return self.team_a
        if self.total_b > self.total_a:
            return self.team_b
        return None


def player_from_row(row: dict[str, Any] | None) -> Player | None:
    if not row:
        return None
    return Player(
        id=row.get("id"),
        name=row["name"],
        team=row["team"],
        handicap=row["handicap"],
    )


def hole_score_from_row(row: dict[str, Any]) -> HoleScore:
    return HoleScore(
        hole=row["hole"],
        gross_a=row.get("player_a_score"),
        gross_b=row.get("player_b_score"),
    )


def match_from_row(row: dict[str, Any], scores: list[dict] | None = None) -> Match:
    """Build an engine snapshot from a joined match row plus its score rows."""
    return Match(
        id=row.get("id"),
        player_a=player_from_row(row.get("player_a")),
        player_b=player_from_row(row.get("player_b")),
        counts=bool(row.get("counts", True)),
        tee_time=row.get("tee_time"),
        notes=row.get("notes"),
        scores=tuple(hole_score_from_row(entry) for entry in scores or []),
    )


def league_state_from_row(row: dict[str, Any] | None, default: LeagueState) -> LeagueState:
    if not row:
        return default
    return LeagueState(
        team_a_base_points=float(row["team_a_base_points"]),
        team_b_base_points=float(row["team_b_base_points"]),
    )
