import logging
from typing import Any, Optional

import psycopg

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = (
    """
    create table if not exists players (
        id serial primary key,
        name text not null,
        team text not null,
        handicap integer not null default 0 check (handicap >= 0),
        created_at timestamptz not null default now(),
        updated_at timestamptz not null default now()
    );
    """,
    """
    create table if not exists matches (
        id serial primary key,
        player_a_id integer references players(id) on delete set null,
        player_b_id integer references players(id) on delete set null,
        counts boolean not null default true,
        tee_time text,
        notes text,
        created_at timestamptz not null default now(),
        updated_at timestamptz not null default now()
    );
    """,
    """
    create table if not exists scores (
        id serial primary key,
        match_id integer not null references matches(id) on delete cascade,
        hole integer not null check (hole between 1 and 18),
        player_a_score integer check (player_a_score >= 0),
        player_b_score integer check (player_b_score >= 0),
        created_at timestamptz not null default now(),
        updated_at timestamptz not null default now(),
        unique (match_id, hole)
    );
    """,
    """
    create table if not exists league_state (
        id integer primary key default 1 check (id = 1),
        team_a_base_points double precision not null,
        team_b_base_points double precision not null,
        created_at timestamptz not null default now(),
        updated_at timestamptz not null default now()
    );
    """,
)

PLAYER_COLUMNS = "id, name, team, handicap"
MATCH_SELECT = """
    select
        m.id,
        m.counts,
        m.tee_time,
        m.notes,
        pa.id, pa.name, pa.team, pa.handicap,
        pb.id, pb.name, pb.team, pb.handicap
    from matches m
    left join players pa on pa.id = m.player_a_id
    left join players pb on pb.id = m.player_b_id
"""
SCORE_COLUMNS = "id, match_id, hole, player_a_score, player_b_score"


def ensure_schema(database_url: str) -> None:
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            for statement in SCHEMA_STATEMENTS:
                cur.execute(statement)


def _row_to_player(row: tuple) -> dict:
    return {
        "id": row[0],
        "name": row[1],
        "team": row[2],
        "handicap": row[3],
    }


def _row_to_match(row: tuple) -> dict:
    player_a = _row_to_player(row[4:8]) if row[4] is not None else None
    player_b = _row_to_player(row[8:12]) if row[8] is not None else None
    return {
        "id": row[0],
        "counts": row[1],
        "tee_time": row[2],
        "notes": row[3],
        "player_a_id": player_a["id"] if player_a else None,
        "player_b_id": player_b["id"] if player_b else None,
        "player_a": player_a,
        "player_b": player_b,
    }


def _row_to_score(row: tuple) -> dict:
    return {
        "id": row[0],
        "match_id": row[1],
        "hole": row[2],
        "player_a_score": row[3],
        "player_b_score": row[4],
    }


def fetch_players(database_url: str) -> list[dict]:
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            cur.execute(f"select {PLAYER_COLUMNS} from players order by name;")
            return [_row_to_player(row) for row in cur.fetchall()]


def fetch_player(database_url: str, player_id: int) -> Optional[dict]:
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            cur.execute(f"select {PLAYER_COLUMNS} from players where id = %s;", (player_id,))
            row = cur.fetchone()
            return _row_to_player(row) if row else None


def insert_player(database_url: str, name: str, team: str, handicap: int) -> dict:
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            cur.execute(
                f"""
                insert into players (name, team, handicap)
                values (%s, %s, %s)
                returning {PLAYER_COLUMNS};
                """,
                (name, team, handicap),
            )
            player = _row_to_player(cur.fetchone())
    logger.info("Created player %s (%s, handicap %s)", player["name"], team, handicap)
    return player


def update_player(database_url: str, player_id: int, updates: dict[str, Any]) -> Optional[dict]:
    fields = {key: value for key, value in updates.items() if key in ("name", "team", "handicap")}
    if not fields:
        return fetch_player(database_url, player_id)
    assignments = ", ".join(f"{key} = %s" for key in fields)
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            cur.execute(
                f"""
                update players
                set {assignments}, updated_at = now()
                where id = %s
                returning {PLAYER_COLUMNS};
                """,
                (*fields.values(), player_id),
            )
            row = cur.fetchone()
    if row:
        logger.info("Updated player %s: %s", player_id, sorted(fields))
    return _row_to_player(row) if row else None


def delete_player(database_url: str, player_id: int) -> bool:
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            cur.execute("delete from players where id = %s;", (player_id,))
            deleted = cur.rowcount > 0
    if deleted:
        logger.info("Deleted player %s", player_id)
    return deleted


def fetch_matches(database_url: str) -> list[dict]:
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            cur.execute(MATCH_SELECT + " order by m.created_at desc, m.id desc;")
            return [_row_to_match(row) for row in cur.fetchall()]


def fetch_match(database_url: str, match_id: int) -> Optional[dict]:
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            cur.execute(MATCH_SELECT + " where m.id = %s;", (match_id,))
            row = cur.fetchone()
            return _row_to_match(row) if row else None


def insert_match(
    database_url: str,
    player_a_id: int | None,
    player_b_id: int | None,
    counts: bool = True,
    tee_time: str | None = None,
    notes: str | None = None,
) -> Optional[dict]:
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                insert into matches (player_a_id, player_b_id, counts, tee_time, notes)
                values (%s, %s, %s, %s, %s)
                returning id;
                """,
                (player_a_id, player_b_id, counts, tee_time, notes),
            )
            match_id = cur.fetchone()[0]
    logger.info("Created match %s (%s vs %s, counts=%s)", match_id, player_a_id, player_b_id, counts)
    return fetch_match(database_url, match_id)


def update_match(database_url: str, match_id: int, updates: dict[str, Any]) -> Optional[dict]:
    allowed = ("player_a_id", "player_b_id", "counts", "tee_time", "notes")
    fields = {key: value for key, value in updates.items() if key in allowed}
    if fields:
        assignments = ", ".join(f"{key} = %s" for key in fields)
        with psycopg.connect(database_url) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"update matches set {assignments}, updated_at = now() where id = %s;",
                    (*fields.values(), match_id),
                )
                if cur.rowcount == 0:
                    return None
        logger.info("Updated match %s: %s", match_id, sorted(fields))
    return fetch_match(database_url, match_id)


def fetch_scores(database_url: str, match_id: int) -> list[dict]:
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            cur.execute(
                f"select {SCORE_COLUMNS} from scores where match_id = %s order by hole;",
                (match_id,),
            )
            return [_row_to_score(row) for row in cur.fetchall()]


def fetch_scores_by_match(database_url: str) -> dict[int, list[dict]]:
    grouped: dict[int, list[dict]] = {}
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            cur.execute(f"select {SCORE_COLUMNS} from scores order by match_id, hole;")
            for row in cur.fetchall():
                score = _row_to_score(row)
                grouped.setdefault(score["match_id"], []).append(score)
    return grouped


def upsert_score(
    database_url: str,
    match_id: int,
    hole: int,
    player_a_score: int | None,
    player_b_score: int | None,
) -> dict:
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            cur.execute(
                f"""
                insert into scores (match_id, hole, player_a_score, player_b_score)
                values (%s, %s, %s, %s)
                on conflict (match_id, hole) do update
                    set player_a_score = excluded.player_a_score,
                        player_b_score = excluded.player_b_score,
                        updated_at = now()
                returning {SCORE_COLUMNS};
                """,
                (match_id, hole, player_a_score, player_b_score),
            )
            score = _row_to_score(cur.fetchone())
    logger.info(
        "Recorded match %s hole %s: A=%s B=%s", match_id, hole, player_a_score, player_b_score
    )
    return score


def fetch_league_state(
    database_url: str,
    default_a: float = 2.0,
    default_b: float = 0.0,
) -> dict:
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                insert into league_state (id, team_a_base_points, team_b_base_points)
                values (1, %s, %s)
                on conflict (id) do nothing;
                """,
                (default_a, default_b),
            )
            cur.execute(
                "select team_a_base_points, team_b_base_points from league_state where id = 1;"
            )
            row = cur.fetchone()
            return {"team_a_base_points": row[0], "team_b_base_points": row[1]}


def update_league_state(database_url: str, team_a_base_points: float, team_b_base_points: float) -> dict:
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                insert into league_state (id, team_a_base_points, team_b_base_points)
                values (1, %s, %s)
                on conflict (id) do update
                    set team_a_base_points = excluded.team_a_base_points,
                        team_b_base_points = excluded.team_b_base_points,
                        updated_at = now()
                returning team_a_base_points, team_b_base_points;
                """,
                (team_a_base_points, team_b_base_points),
            )
            row = cur.fetchone()
    logger.info("Base points set to %s / %s", row[0], row[1])
    return {"team_a_base_points": row[0], "team_b_base_points": row[1]}
