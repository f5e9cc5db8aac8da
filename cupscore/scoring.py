"""Handicap stroke allocation and match-play scoring.

Everything here is pure: callers hand in snapshots of players, matches and
hole scores and get derived values back. Holes are always walked in
increasing hole order.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from cupscore.models import (
    CourseHole,
    HoleResult,
    HoleScore,
    LeagueTotals,
    Match,
    MatchPoints,
    MatchState,
    MatchSummary,
    Player,
    ScorecardRow,
    StrokeAllocation,
)

HOLE_COUNT = 18
# Stroke index per hole, holes 1..18 in order (1 = hardest).
STROKE_INDEX: tuple[int, ...] = tuple(range(1, HOLE_COUNT + 1))
DEFAULT_TEAMS: tuple[str, str] = ("Prince", "Bowman")


class ScoringError(Exception):
    def __init__(self, message: str, invariant: str) -> None:
        super().__init__(message)
        self.invariant = invariant


class InvalidInput(ScoringError):
    pass


class IncompleteMatch(ScoringError):
    pass


def validate_handicap(handicap: object, label: str = "handicap") -> int:
    if isinstance(handicap, bool) or not isinstance(handicap, int):
        raise InvalidInput(f"{label} must be an integer, got {handicap!r}", "handicap_integer")
    if handicap < 0:
        raise InvalidInput(f"{label} must be non-negative, got {handicap}", "handicap_non_negative")
    return handicap


def validate_stroke_index(stroke_index: Sequence[int]) -> tuple[int, ...]:
    table = tuple(stroke_index)
    if len(table) != HOLE_COUNT:
        raise InvalidInput(
            f"stroke index table needs {HOLE_COUNT} entries, got {len(table)}",
            "stroke_index_length",
        )
    if sorted(table) != list(range(1, HOLE_COUNT + 1)):
        raise InvalidInput(
            f"stroke index table must rank holes 1..{HOLE_COUNT} exactly once, got {list(table)}",
            "stroke_index_permutation",
        )
    return table


def course_holes(stroke_index: Sequence[int] = STROKE_INDEX) -> list[CourseHole]:
    table = validate_stroke_index(stroke_index)
    return [CourseHole(hole_number, index) for hole_number, index in enumerate(table, start=1)]


def validate_hole_number(hole: object) -> int:
    if isinstance(hole, bool) or not isinstance(hole, int) or not 1 <= hole <= HOLE_COUNT:
        raise InvalidInput(f"hole number must be 1..{HOLE_COUNT}, got {hole!r}", "hole_number_range")
    return hole


def validate_gross(gross: object, label: str = "gross score") -> int | None:
    if gross is None:
        return None
    if isinstance(gross, bool) or not isinstance(gross, int):
        raise InvalidInput(f"{label} must be an integer, got {gross!r}", "gross_integer")
    if gross < 0:
        raise InvalidInput(f"{label} must be non-negative, got {gross}", "gross_non_negative")
    return gross


def _score_map(scores: Iterable[HoleScore]) -> dict[int, HoleScore]:
    by_hole: dict[int, HoleScore] = {}
    for score in scores:
        hole = validate_hole_number(score.hole)
        if hole in by_hole:
            raise InvalidInput(f"hole {hole} has more than one score record", "hole_score_unique")
        validate_gross(score.gross_a, f"hole {hole} side A gross")
        validate_gross(score.gross_b, f"hole {hole} side B gross")
        by_hole[hole] = score
    return by_hole


def strokes_on_hole(
    handicap_a: int,
    handicap_b: int,
    stroke_index: Sequence[int] = STROKE_INDEX,
) -> list[StrokeAllocation]:
    """
    The higher handicap gets one stroke on every hole whose stroke index is
    within the handicap difference. Equal handicaps allocate nothing.
    """
    validate_handicap(handicap_a, "side A handicap")
    validate_handicap(handicap_b, "side B handicap")
    table = validate_stroke_index(stroke_index)
    diff = abs(handicap_a - handicap_b)
    allocation: list[StrokeAllocation] = []
    for hole_number, index in enumerate(table, start=1):
        receives = diff > 0 and index <= diff
        allocation.append(
            StrokeAllocation(
                hole_number=hole_number,
                stroke_index=index,
                a_gets_stroke=receives and handicap_a > handicap_b,
                b_gets_stroke=receives and handicap_b > handicap_a,
            )
        )
    return allocation


def net_score(gross: int | None, gets_stroke: bool) -> int | None:
    if gross is None:
        return None
    return gross - 1 if gets_stroke else gross


def net_hole_result(
    gross_a: int | None,
    gross_b: int | None,
    a_gets_stroke: bool = False,
    b_gets_stroke: bool = False,
) -> HoleResult:
    net_a = net_score(gross_a, a_gets_stroke)
    net_b = net_score(gross_b, b_gets_stroke)
    if net_a is None or net_b is None:
        return HoleResult.PENDING
    if net_a < net_b:
        return HoleResult.A
    if net_b < net_a:
        return HoleResult.B
    return HoleResult.ALL_SQUARE


def match_result(hole_results: Iterable[HoleResult]) -> MatchPoints:
    """Collapse hole outcomes into a 1 / 0.5 / 0 match point split.

    Pending holes are left out of the tally, so a round in progress yields a
    provisional result from the holes played so far.
    """
    won_a = won_b = halved = 0
    for result in hole_results:
        if result is HoleResult.A:
            won_a += 1
        elif result is HoleResult.B:
            won_b += 1
        elif result is HoleResult.ALL_SQUARE:
            halved += 1
    tally_a = won_a + halved * 0.5
    tally_b = won_b + halved * 0.5
    if tally_a > tally_b:
        points = (1.0, 0.0)
    elif tally_b > tally_a:
        points = (0.0, 1.0)
    else:
        points = (0.5, 0.5)
    return MatchPoints(
        points_a=points[0],
        points_b=points[1],
        holes_won_a=won_a,
        holes_won_b=won_b,
        holes_halved=halved,
    )


def scorecard(
    handicap_a: int,
    handicap_b: int,
    scores: Iterable[HoleScore],
    stroke_index: Sequence[int] = STROKE_INDEX,
) -> list[ScorecardRow]:
    hole_map = _score_map(scores)
    rows: list[ScorecardRow] = []
    margin = 0
    for allocation in strokes_on_hole(handicap_a, handicap_b, stroke_index):
        entry = hole_map.get(allocation.hole_number) or HoleScore(allocation.hole_number)
        result = net_hole_result(
            entry.gross_a,
            entry.gross_b,
            allocation.a_gets_stroke,
            allocation.b_gets_stroke,
        )
        if result is HoleResult.A:
            margin += 1
        elif result is HoleResult.B:
            margin -= 1
        rows.append(
            ScorecardRow(
                hole_number=allocation.hole_number,
                stroke_index=allocation.stroke_index,
                gross_a=entry.gross_a,
                gross_b=entry.gross_b,
                a_gets_stroke=allocation.a_gets_stroke,
                b_gets_stroke=allocation.b_gets_stroke,
                net_a=net_score(entry.gross_a, allocation.a_gets_stroke),
                net_b=net_score(entry.gross_b, allocation.b_gets_stroke),
                result=result,
                margin=margin,
            )
        )
    return rows


def describe_margin(margin: int, holes_played: int) -> str:
    if margin == 0:
        text = "All Square"
    else:
        text = f"{'A' if margin > 0 else 'B'} {abs(margin)} UP"
    if 0 < holes_played < HOLE_COUNT:
        text += f" thru {holes_played}"
    return text


def match_state(match: Match) -> MatchState:
    if not match.assigned:
        return MatchState.UNSCHEDULED
    played = sum(
        1
        for score in match.scores
        if score.gross_a is not None and score.gross_b is not None
    )
    if played >= HOLE_COUNT:
        return MatchState.COMPLETE
    if match.has_scores:
        return MatchState.IN_PROGRESS
    return MatchState.SCHEDULED


def _require_sides(match: Match) -> tuple[Player, Player]:
    if match.player_a is None or match.player_b is None:
        missing = "A" if match.player_a is None else "B"
        raise IncompleteMatch(
            f"match {match.id} has no player on side {missing}",
            "match_sides_assigned",
        )
    if match.player_a.id is not None and match.player_a.id == match.player_b.id:
        raise InvalidInput(
            f"match {match.id} seats player {match.player_a.id} on both sides",
            "match_sides_distinct",
        )
    return match.player_a, match.player_b


def summarize_match(match: Match, stroke_index: Sequence[int] = STROKE_INDEX) -> MatchSummary:
    player_a, player_b = _require_sides(match)
    rows = scorecard(player_a.handicap, player_b.handicap, match.scores, stroke_index)
    points = match_result(row.result for row in rows)
    margin = rows[-1].margin if rows else 0
    return MatchSummary(
        match_id=match.id,
        state=match_state(match),
        rows=tuple(rows),
        points=points,
        margin=margin,
        label=describe_margin(margin, points.holes_played),
        counts=match.counts,
    )


def side_teams(match: Match, teams: tuple[str, str] = DEFAULT_TEAMS) -> tuple[int, int]:
    """Return the team slot (0 or 1) of the player seated on each side."""
    slots = []
    for player in _require_sides(match):
        if player.team not in teams:
            raise InvalidInput(
                f"player {player.name!r} is on unknown team {player.team!r}",
                "player_team_known",
            )
        slots.append(teams.index(player.team))
    return slots[0], slots[1]


def league_totals(
    matches: Iterable[Match],
    base_team_a: float,
    base_team_b: float,
    teams: tuple[str, str] = DEFAULT_TEAMS,
    stroke_index: Sequence[int] = STROKE_INDEX,
) -> LeagueTotals:
    """Team points from counting matches with at least one recorded score.

    Raises ``IncompleteMatch`` for a qualifying match missing a player; callers
    that want such matches ignored must filter them out first.
    """
    earned = [0.0, 0.0]
    counted: list[int | None] = []
    for match in matches:
        if not match.counts or not match.has_scores:
            continue
        slot_a, slot_b = side_teams(match, teams)
        points = summarize_match(match, stroke_index).points
        earned[slot_a] += points.points_a
        earned[slot_b] += points.points_b
        counted.append(match.id)
    return LeagueTotals(
        team_a=teams[0],
        team_b=teams[1],
        base_a=base_team_a,
        base_b=base_team_b,
        match_points_a=earned[0],
        match_points_b=earned[1],
        counted_matches=len(counted),
        match_ids=tuple(counted),
    )
