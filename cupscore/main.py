import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from cupscore.db import (
    delete_player,
    ensure_schema,
    fetch_league_state,
    fetch_match,
    fetch_matches,
    fetch_player,
    fetch_players,
    fetch_scores,
    fetch_scores_by_match,
    insert_match,
    insert_player,
    update_league_state,
    update_match,
    update_player,
    upsert_score,
)
from cupscore.models import (
    MATCH_STATE_LABELS,
    LeagueTotals,
    Match,
    MatchState,
    MatchSummary,
    league_state_from_row,
    match_from_row,
)
from cupscore.scoring import (
    IncompleteMatch,
    InvalidInput,
    course_holes,
    league_totals,
    match_state,
    summarize_match,
    validate_hole_number,
)
from cupscore.settings import load_settings

logger = logging.getLogger(__name__)

app = FastAPI(title="cupscore")
settings = load_settings()


@app.on_event("startup")
def startup() -> None:
    ensure_schema(settings.database_url)


@app.exception_handler(InvalidInput)
async def invalid_input_handler(request: Request, exc: InvalidInput):
    return JSONResponse({"error": str(exc), "invariant": exc.invariant}, status_code=422)


@app.exception_handler(IncompleteMatch)
async def incomplete_match_handler(request: Request, exc: IncompleteMatch):
    return JSONResponse({"error": str(exc), "invariant": exc.invariant}, status_code=409)


def _invalid_payload(exc: ValidationError) -> JSONResponse:
    return JSONResponse({"error": "Invalid payload", "details": exc.errors(include_input=False)}, status_code=422)


def _check_team(team: str) -> None:
    if team not in settings.teams:
        raise InvalidInput(
            f"team must be one of {list(settings.teams)}, got {team!r}",
            "player_team_known",
        )


def _check_player_exists(player_id: int | None) -> None:
    if player_id is not None and not fetch_player(settings.database_url, player_id):
        raise HTTPException(status_code=404, detail=f"Player {player_id} not found")


def _check_distinct_sides(player_a_id: int | None, player_b_id: int | None) -> None:
    if player_a_id is not None and player_a_id == player_b_id:
        raise InvalidInput(
            f"player {player_a_id} cannot play both sides of a match",
            "match_sides_distinct",
        )


def _merge_hole(payload: "HoleScorePayload", existing: dict) -> tuple[int | None, int | None]:
    # Sides left out of the payload keep their stored gross; explicit null clears it.
    sides = []
    for key in ("player_a_score", "player_b_score"):
        if key in payload.model_fields_set:
            sides.append(getattr(payload, key))
        else:
            sides.append(existing.get(key))
    return sides[0], sides[1]


def _load_match(match_id: int) -> Match:
    row = fetch_match(settings.database_url, match_id)
    if not row:
        raise HTTPException(status_code=404, detail="Match not found")
    return match_from_row(row, fetch_scores(settings.database_url, match_id))


def _summary_payload(summary: MatchSummary) -> dict:
    return {
        "match_id": summary.match_id,
        "state": summary.state.value,
        "state_label": MATCH_STATE_LABELS[summary.state],
        "counts": summary.counts,
        "label": summary.label,
        "margin": summary.margin,
        "holes_played": summary.holes_played,
        "holes_won_a": summary.points.holes_won_a,
        "holes_won_b": summary.points.holes_won_b,
        "holes_halved": summary.points.holes_halved,
        "points_a": summary.points.points_a,
        "points_b": summary.points.points_b,
        "winner": summary.points.winner,
        "holes": [
            {
                "hole_number": row.hole_number,
                "stroke_index": row.stroke_index,
                "gross_a": row.gross_a,
                "gross_b": row.gross_b,
                "a_gets_stroke": row.a_gets_stroke,
                "b_gets_stroke": row.b_gets_stroke,
                "net_a": row.net_a,
                "net_b": row.net_b,
                "result": row.result.value,
                "margin": row.margin,
            }
            for row in summary.rows
        ],
    }


def _match_payload(row: dict, match: Match) -> dict:
    state = match_state(match)
    payload = {
        **row,
        "state": state.value,
        "state_label": MATCH_STATE_LABELS[state],
        "label": None,
        "points_a": None,
        "points_b": None,
    }
    if match.assigned:
        summary = summarize_match(match, settings.stroke_index)
        payload.update(
            {
                "label": summary.label,
                "points_a": summary.points.points_a,
                "points_b": summary.points.points_b,
            }
        )
    return payload


def _leaderboard_payload(totals: LeagueTotals, total_matches: int, completed_matches: int) -> dict:
    return {
        "teams": [
            {
                "team": totals.team_a,
                "base_points": totals.base_a,
                "match_points": totals.match_points_a,
                "total": totals.total_a,
            },
            {
                "team": totals.team_b,
                "base_points": totals.base_b,
                "match_points": totals.match_points_b,
                "total": totals.total_b,
            },
        ],
        "leader": totals.leader,
        "tied": totals.leader is None,
        "total_matches": total_matches,
        "scored_matches": totals.counted_matches,
        "completed_matches": completed_matches,
        "match_ids": list(totals.match_ids),
    }


class PlayerPayload(BaseModel):
    name: str = Field(min_length=1)
    team: str
    handicap: int = Field(default=0, ge=0)


class PlayerUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    team: str | None = None
    handicap: int | None = Field(default=None, ge=0)


class MatchPayload(BaseModel):
    player_a_id: int | None = None
    player_b_id: int | None = None
    counts: bool = True
    tee_time: str | None = None
    notes: str | None = None


class MatchUpdatePayload(BaseModel):
    player_a_id: int | None = None
    player_b_id: int | None = None
    counts: bool | None = None
    tee_time: str | None = None
    notes: str | None = None


class HoleScorePayload(BaseModel):
    player_a_score: int | None = Field(default=None, ge=0)
    player_b_score: int | None = Field(default=None, ge=0)


class HoleEntryPayload(HoleScorePayload):
    hole_number: int


class HolesPayload(BaseModel):
    holes: list[HoleEntryPayload]


class LeaguePayload(BaseModel):
    team_a_base_points: float = Field(allow_inf_nan=False)
    team_b_base_points: float = Field(allow_inf_nan=False)


@app.get("/api/course")
async def api_course():
    return {
        "holes": [
            {"hole_number": hole.hole_number, "stroke_index": hole.stroke_index}
            for hole in course_holes(settings.stroke_index)
        ]
    }


@app.get("/api/players")
async def api_players():
    return fetch_players(settings.database_url)


@app.post("/api/players", status_code=201)
async def api_create_player(request: Request):
    try:
        payload = PlayerPayload.model_validate(await request.json())
    except ValidationError as exc:
        return _invalid_payload(exc)
    _check_team(payload.team)
    return insert_player(settings.database_url, payload.name.strip(), payload.team, payload.handicap)


@app.put("/api/players/{player_id}")
async def api_update_player(player_id: int, request: Request):
    try:
        payload = PlayerUpdatePayload.model_validate(await request.json())
    except ValidationError as exc:
        return _invalid_payload(exc)
    updates = payload.model_dump(exclude_none=True)
    if "team" in updates:
        _check_team(updates["team"])
    player = update_player(settings.database_url, player_id, updates)
    if not player:
        raise HTTPException(status_code=404, detail="Player not found")
    return player


@app.delete("/api/players/{player_id}")
async def api_delete_player(player_id: int):
    if not delete_player(settings.database_url, player_id):
        raise HTTPException(status_code=404, detail="Player not found")
    return {"deleted": player_id}


@app.get("/api/matches")
async def api_matches():
    rows = fetch_matches(settings.database_url)
    scores = fetch_scores_by_match(settings.database_url)
    return [_match_payload(row, match_from_row(row, scores.get(row["id"]))) for row in rows]


@app.post("/api/matches", status_code=201)
async def api_create_match(request: Request):
    try:
        payload = MatchPayload.model_validate(await request.json())
    except ValidationError as exc:
        return _invalid_payload(exc)
    _check_distinct_sides(payload.player_a_id, payload.player_b_id)
    _check_player_exists(payload.player_a_id)
    _check_player_exists(payload.player_b_id)
    row = insert_match(
        settings.database_url,
        player_a_id=payload.player_a_id,
        player_b_id=payload.player_b_id,
        counts=payload.counts,
        tee_time=payload.tee_time,
        notes=payload.notes,
    )
    return _match_payload(row, match_from_row(row))


@app.get("/api/matches/{match_id}")
async def api_match(match_id: int):
    row = fetch_match(settings.database_url, match_id)
    if not row:
        raise HTTPException(status_code=404, detail="Match not found")
    return _match_payload(row, match_from_row(row, fetch_scores(settings.database_url, match_id)))


@app.patch("/api/matches/{match_id}")
async def api_update_match(match_id: int, request: Request):
    try:
        payload = MatchUpdatePayload.model_validate(await request.json())
    except ValidationError as exc:
        return _invalid_payload(exc)
    updates = payload.model_dump(exclude_unset=True)
    if updates.get("counts", False) is None:
        updates.pop("counts")
    if "player_a_id" in updates or "player_b_id" in updates:
        current = fetch_match(settings.database_url, match_id)
        if not current:
            raise HTTPException(status_code=404, detail="Match not found")
        _check_distinct_sides(
            updates.get("player_a_id", current["player_a_id"]),
            updates.get("player_b_id", current["player_b_id"]),
        )
    _check_player_exists(updates.get("player_a_id"))
    _check_player_exists(updates.get("player_b_id"))
    row = update_match(settings.database_url, match_id, updates)
    if not row:
        raise HTTPException(status_code=404, detail="Match not found")
    return _match_payload(row, match_from_row(row, fetch_scores(settings.database_url, match_id)))


@app.get("/api/matches/{match_id}/scorecard")
async def api_scorecard(match_id: int):
    match = _load_match(match_id)
    return _summary_payload(summarize_match(match, settings.stroke_index))


@app.put("/api/matches/{match_id}/holes/{hole}")
async def api_record_hole(match_id: int, hole: int, request: Request):
    try:
        payload = HoleScorePayload.model_validate(await request.json())
    except ValidationError as exc:
        return _invalid_payload(exc)
    validate_hole_number(hole)
    if not fetch_match(settings.database_url, match_id):
        raise HTTPException(status_code=404, detail="Match not found")
    existing = next(
        (entry for entry in fetch_scores(settings.database_url, match_id) if entry["hole"] == hole),
        {},
    )
    player_a_score, player_b_score = _merge_hole(payload, existing)
    return upsert_score(settings.database_url, match_id, hole, player_a_score, player_b_score)


@app.post("/api/matches/{match_id}/holes")
async def api_record_holes(match_id: int, request: Request):
    try:
        payload = HolesPayload.model_validate(await request.json())
    except ValidationError as exc:
        return _invalid_payload(exc)
    if not fetch_match(settings.database_url, match_id):
        raise HTTPException(status_code=404, detail="Match not found")
    seen: set[int] = set()
    for entry in payload.holes:
        validate_hole_number(entry.hole_number)
        if entry.hole_number in seen:
            raise InvalidInput(
                f"hole {entry.hole_number} appears more than once",
                "hole_score_unique",
            )
        seen.add(entry.hole_number)
    stored = {entry["hole"]: entry for entry in fetch_scores(settings.database_url, match_id)}
    saved = [
        upsert_score(
            settings.database_url,
            match_id,
            entry.hole_number,
            *_merge_hole(entry, stored.get(entry.hole_number, {})),
        )
        for entry in payload.holes
    ]
    return JSONResponse({"added": len(saved)})


@app.get("/api/league")
async def api_league():
    return fetch_league_state(
        settings.database_url,
        settings.default_base_points_a,
        settings.default_base_points_b,
    )


@app.put("/api/league")
async def api_update_league(request: Request):
    try:
        payload = LeaguePayload.model_validate(await request.json())
    except ValidationError as exc:
        return _invalid_payload(exc)
    return update_league_state(
        settings.database_url,
        payload.team_a_base_points,
        payload.team_b_base_points,
    )


@app.get("/api/leaderboard")
async def api_leaderboard():
    rows = fetch_matches(settings.database_url)
    scores = fetch_scores_by_match(settings.database_url)
    league = league_state_from_row(
        fetch_league_state(
            settings.database_url,
            settings.default_base_points_a,
            settings.default_base_points_b,
        ),
        settings.default_league_state,
    )
    matches = []
    for row in rows:
        match = match_from_row(row, scores.get(row["id"]))
        if not match.assigned:
            if match.counts and match.has_scores:
                logger.warning("Leaving match %s out of the leaderboard: a side is unassigned", match.id)
            continue
        matches.append(match)
    totals = league_totals(
        matches,
        league.team_a_base_points,
        league.team_b_base_points,
        teams=settings.teams,
        stroke_index=settings.stroke_index,
    )
    completed = sum(
        1 for match in matches if match.counts and match_state(match) is MatchState.COMPLETE
    )
    return _leaderboard_payload(
        totals,
        total_matches=sum(1 for row in rows if row["counts"]),
        completed_matches=completed,
    )
