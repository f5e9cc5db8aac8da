#!/usr/bin/env python3
"""Ensure the Postgres schema and league-state row exist, then echo the DDL."""

from cupscore.db import SCHEMA_STATEMENTS, ensure_schema, fetch_league_state
from cupscore.settings import load_settings


def main() -> None:
    settings = load_settings()
    ensure_schema(settings.database_url)
    state = fetch_league_state(
        settings.database_url,
        settings.default_base_points_a,
        settings.default_base_points_b,
    )
    print("Schema ensured.")
    print(f"Database url: {settings.database_url}")
    print(
        f"Base points: {settings.team_a} {state['team_a_base_points']}, "
        f"{settings.team_b} {state['team_b_base_points']}"
    )

    print("\nSchema DDL dump:")
    for statement in SCHEMA_STATEMENTS:
        print(statement.strip())


if __name__ == "__main__":
    main()
