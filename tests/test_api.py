from fastapi.testclient import TestClient

import cupscore.main as main

PRINCE = {"id": 1, "name": "Alex Prince", "team": "Prince", "handicap": 10}
BOWMAN = {"id": 2, "name": "Liam Bowman", "team": "Bowman", "handicap": 7}


def _match_row(match_id, player_a=PRINCE, player_b=BOWMAN, counts=True):
    return {
        "id": match_id,
        "counts": counts,
        "tee_time": None,
        "notes": None,
        "player_a_id": player_a["id"] if player_a else None,
        "player_b_id": player_b["id"] if player_b else None,
        "player_a": player_a,
        "player_b": player_b,
    }


def _score(match_id, hole, a, b):
    return {"id": hole, "match_id": match_id, "hole": hole, "player_a_score": a, "player_b_score": b}


def _client(monkeypatch) -> TestClient:
    monkeypatch.setattr(main, "ensure_schema", lambda *_: None)
    return TestClient(main.app)


def test_leaderboard_adds_base_points_and_skips_unassigned(monkeypatch):
    client = _client(monkeypatch)
    rows = [
        _match_row(1),
        _match_row(2, player_b=None),
        _match_row(3, counts=False),
    ]
    scores = {
        1: [_score(1, 1, 4, 6)],
        2: [_score(2, 1, 4, 5)],
        3: [_score(3, 1, 7, 3)],
    }
    monkeypatch.setattr(main, "fetch_matches", lambda *_: rows)
    monkeypatch.setattr(main, "fetch_scores_by_match", lambda *_: scores)
    monkeypatch.setattr(
        main,
        "fetch_league_state",
        lambda *_: {"team_a_base_points": 2.0, "team_b_base_points": 0.0},
    )

    response = client.get("/api/leaderboard")
    assert response.status_code == 200
    body = response.json()
    prince, bowman = body["teams"]
    assert prince == {"team": "Prince", "base_points": 2.0, "match_points": 1.0, "total": 3.0}
    assert bowman["total"] == 0.0
    assert body["leader"] == "Prince"
    assert body["tied"] is False
    assert body["total_matches"] == 2
    assert body["scored_matches"] == 1
    assert body["completed_matches"] == 0


def test_scorecard_applies_strokes(monkeypatch):
    client = _client(monkeypatch)
    monkeypatch.setattr(main, "fetch_match", lambda *_: _match_row(5))
    monkeypatch.setattr(main, "fetch_scores", lambda *_: [_score(5, 1, 5, 4)])

    response = client.get("/api/matches/5/scorecard")
    assert response.status_code == 200
    body = response.json()
    first = body["holes"][0]
    assert first["a_gets_stroke"] is True
    assert first["net_a"] == 4
    assert first["result"] == "AS"
    assert body["holes"][3]["a_gets_stroke"] is False
    assert body["holes"][1]["result"] == "PENDING"
    assert body["label"] == "All Square thru 1"
    assert body["state"] == "in_progress"


def test_scorecard_missing_match_is_404(monkeypatch):
    client = _client(monkeypatch)
    monkeypatch.setattr(main, "fetch_match", lambda *_: None)
    response = client.get("/api/matches/99/scorecard")
    assert response.status_code == 404


def test_scorecard_unassigned_match_is_409(monkeypatch):
    client = _client(monkeypatch)
    monkeypatch.setattr(main, "fetch_match", lambda *_: _match_row(6, player_a=None))
    monkeypatch.setattr(main, "fetch_scores", lambda *_: [])
    response = client.get("/api/matches/6/scorecard")
    assert response.status_code == 409
    assert response.json()["invariant"] == "match_sides_assigned"


def test_create_player_rejects_unknown_team(monkeypatch):
    client = _client(monkeypatch)
    monkeypatch.setattr(main, "insert_player", lambda *_args, **_kwargs: PRINCE)
    response = client.post("/api/players", json={"name": "Zed", "team": "Visitors", "handicap": 4})
    assert response.status_code == 422
    assert response.json()["invariant"] == "player_team_known"


def test_create_player_rejects_negative_handicap(monkeypatch):
    client = _client(monkeypatch)
    response = client.post("/api/players", json={"name": "Zed", "team": "Prince", "handicap": -2})
    assert response.status_code == 422
    assert response.json()["error"] == "Invalid payload"


def test_record_hole_keeps_the_other_side(monkeypatch):
    client = _client(monkeypatch)
    saved = {}

    def fake_upsert(_url, match_id, hole, a, b):
        saved.update({"match_id": match_id, "hole": hole, "a": a, "b": b})
        return _score(match_id, hole, a, b)

    monkeypatch.setattr(main, "fetch_match", lambda *_: _match_row(1))
    monkeypatch.setattr(main, "fetch_scores", lambda *_: [_score(1, 3, 4, None)])
    monkeypatch.setattr(main, "upsert_score", fake_upsert)

    response = client.put("/api/matches/1/holes/3", json={"player_b_score": 5})
    assert response.status_code == 200
    assert saved == {"match_id": 1, "hole": 3, "a": 4, "b": 5}

    client.put("/api/matches/1/holes/3", json={"player_a_score": None})
    assert saved["a"] is None


def test_record_hole_out_of_range(monkeypatch):
    client = _client(monkeypatch)
    monkeypatch.setattr(main, "fetch_match", lambda *_: _match_row(1))
    response = client.put("/api/matches/1/holes/19", json={"player_a_score": 4})
    assert response.status_code == 422
    assert response.json()["invariant"] == "hole_number_range"


def test_bulk_holes_reject_duplicates(monkeypatch):
    client = _client(monkeypatch)
    monkeypatch.setattr(main, "fetch_match", lambda *_: _match_row(1))
    monkeypatch.setattr(main, "upsert_score", lambda *_: None)
    payload = {
        "holes": [
            {"hole_number": 2, "player_a_score": 4, "player_b_score": 5},
            {"hole_number": 2, "player_a_score": 4, "player_b_score": 4},
        ]
    }
    response = client.post("/api/matches/1/holes", json=payload)
    assert response.status_code == 422
    assert response.json()["invariant"] == "hole_score_unique"


def test_toggle_counts(monkeypatch):
    client = _client(monkeypatch)
    captured = {}

    def fake_update(_url, match_id, updates):
        captured.update(updates)
        return _match_row(match_id, counts=updates["counts"])

    monkeypatch.setattr(main, "update_match", fake_update)
    monkeypatch.setattr(main, "fetch_scores", lambda *_: [])
    response = client.patch("/api/matches/4", json={"counts": False})
    assert response.status_code == 200
    assert captured == {"counts": False}
    assert response.json()["counts"] is False
    assert response.json()["state"] == "scheduled"


def test_course_lists_stroke_index(monkeypatch):
    client = _client(monkeypatch)
    response = client.get("/api/course")
    holes = response.json()["holes"]
    assert len(holes) == 18
    assert holes[0] == {"hole_number": 1, "stroke_index": main.settings.stroke_index[0]}


def test_bulk_holes_keep_sides_left_out(monkeypatch):
    client = _client(monkeypatch)
    saved = []
    monkeypatch.setattr(main, "fetch_match", lambda *_: _match_row(1))
    monkeypatch.setattr(main, "fetch_scores", lambda *_: [_score(1, 3, 4, 5)])
    monkeypatch.setattr(
        main,
        "upsert_score",
        lambda _url, match_id, hole, a, b: saved.append((hole, a, b)),
    )
    payload = {
        "holes": [
            {"hole_number": 3, "player_a_score": 3},
            {"hole_number": 4, "player_b_score": 6},
            {"hole_number": 5, "player_a_score": 4, "player_b_score": None},
        ]
    }
    response = client.post("/api/matches/1/holes", json=payload)
    assert response.status_code == 200
    assert saved == [(3, 3, 5), (4, None, 6), (5, 4, None)]


def test_leaderboard_counts_only_finished_rounds_as_completed(monkeypatch):
    client = _client(monkeypatch)
    full_round = [_score(1, hole, 4, 4) for hole in range(1, 19)]
    monkeypatch.setattr(main, "fetch_matches", lambda *_: [_match_row(1), _match_row(2)])
    monkeypatch.setattr(
        main,
        "fetch_scores_by_match",
        lambda *_: {1: full_round, 2: [_score(2, 1, 4, 4)]},
    )
    monkeypatch.setattr(
        main,
        "fetch_league_state",
        lambda *_: {"team_a_base_points": 0.0, "team_b_base_points": 0.0},
    )
    body = client.get("/api/leaderboard").json()
    assert body["scored_matches"] == 2
    assert body["completed_matches"] == 1


def test_create_match_rejects_same_player_twice(monkeypatch):
    client = _client(monkeypatch)
    monkeypatch.setattr(main, "fetch_player", lambda *_: PRINCE)
    monkeypatch.setattr(main, "insert_match", lambda *_args, **_kwargs: _match_row(1))
    response = client.post("/api/matches", json={"player_a_id": 1, "player_b_id": 1})
    assert response.status_code == 422
    assert response.json()["invariant"] == "match_sides_distinct"


def test_reseating_a_side_checks_the_other_seat(monkeypatch):
    client = _client(monkeypatch)
    monkeypatch.setattr(main, "fetch_match", lambda *_: _match_row(4))
    monkeypatch.setattr(main, "fetch_player", lambda *_: BOWMAN)
    monkeypatch.setattr(main, "update_match", lambda *_: _match_row(4))
    response = client.patch("/api/matches/4", json={"player_a_id": 2})
    assert response.status_code == 422
    assert response.json()["invariant"] == "match_sides_distinct"


def test_league_rejects_non_finite_base_points(monkeypatch):
    client = _client(monkeypatch)
    monkeypatch.setattr(main, "update_league_state", lambda *_: {})
    response = client.put(
        "/api/league",
        content='{"team_a_base_points": NaN, "team_b_base_points": 0}',
        headers={"content-type": "application/json"},
    )
    assert response.status_code == 422
    assert response.json()["error"] == "Invalid payload"
