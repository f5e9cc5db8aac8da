#!/usr/bin/env python3
"""Dump players, match summaries and team totals as JSON."""

import argparse
import json
import logging
from pathlib import Path

from cupscore.db import fetch_league_state, fetch_matches, fetch_players, fetch_scores_by_match
from cupscore.models import MATCH_STATE_LABELS, league_state_from_row, match_from_row
from cupscore.scoring import league_totals, match_state, summarize_match
from cupscore.settings import load_settings

logger = logging.getLogger(__name__)


def export_snapshot(include_friendlies: bool = True) -> dict:
    settings = load_settings()
    db_url = settings.database_url
    rows = fetch_matches(db_url)
    scores = fetch_scores_by_match(db_url)
    league = league_state_from_row(
        fetch_league_state(db_url, settings.default_base_points_a, settings.default_base_points_b),
        settings.default_league_state,
    )

    assigned = []
    match_entries = []
    for row in rows:
        match = match_from_row(row, scores.get(row["id"]))
        if not include_friendlies and not match.counts:
            continue
        entry = {
            "match_id": match.id,
            "player_a": row["player_a"],
            "player_b": row["player_b"],
            "counts": match.counts,
            "state": MATCH_STATE_LABELS[match_state(match)],
        }
        if match.assigned:
            assigned.append(match)
            summary = summarize_match(match, settings.stroke_index)
            entry.update(
                {
                    "label": summary.label,
                    "points_a": summary.points.points_a,
                    "points_b": summary.points.points_b,
                    "holes_played": summary.holes_played,
                }
            )
        else:
            logger.warning("Match %s has an unassigned side, no summary exported", match.id)
        match_entries.append(entry)

    totals = league_totals(
        assigned,
        league.team_a_base_points,
        league.team_b_base_points,
        teams=settings.teams,
        stroke_index=settings.stroke_index,
    )
    return {
        "players": fetch_players(db_url),
        "matches": match_entries,
        "totals": {
            totals.team_a: {
                "base": totals.base_a,
                "match_points": totals.match_points_a,
                "total": totals.total_a,
            },
            totals.team_b: {
                "base": totals.base_b,
                "match_points": totals.match_points_b,
                "total": totals.total_b,
            },
            "leader": totals.leader,
            "counted_matches": totals.counted_matches,
        },
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Dump the current leaderboard and match summaries.")
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        help="Path to write the JSON export (defaults to stdout).",
    )
    parser.add_argument(
        "--counting-only",
        action="store_true",
        help="Leave friendly matches out of the match list.",
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)

    snapshot = export_snapshot(include_friendlies=not args.counting_only)
    payload = json.dumps(snapshot, default=str, indent=2)

    if args.output:
        args.output.write_text(payload, encoding="utf-8")
        print(f"Snapshot saved to {args.output}")
    else:
        print(payload)


if __name__ == "__main__":
    main()
