"""
CycleSense Results Export

Exports standings and round-by-round results to CSV for facilitators.

Available exports:
    export_standings_csv(game, filepath)
        - One row per team: rank, NAV, change from the start, score totals

    export_round_history_csv(game, filepath)
        - One row per (round, team): cards, allocation, scores, NAV before/after

    standings_csv(game) / round_history_csv(game)
        - Same content returned as a string (used by the HTTP layer)

Usage:
    from cyclesense.export import export_standings_csv
    export_standings_csv(game, "output/standings.csv")
"""

from __future__ import annotations

import csv
import io
import os
from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from cyclesense.game import Game


STANDINGS_FIELDS = [
    "rank", "team", "current_nav", "nav_change", "pitch_total", "emotion_total",
]

ROUND_HISTORY_FIELDS = [
    "round", "phase", "color_card", "black_card", "team",
    "equity", "debt", "gold", "cash",
    "pitch_score", "emotion_score",
    "weighted_return", "weighted_modifier", "nav_before", "nav_after",
]


def _ensure_dir(filepath: str):
    """Create parent directory if it doesn't exist."""
    parent = os.path.dirname(filepath)
    if parent:
        os.makedirs(parent, exist_ok=True)


def _standings_rows(game: "Game") -> List[dict]:
    return [
        {
            "rank": row["rank"],
            "team": row["name"],
            "current_nav": row["current_nav"],
            "nav_change": row["nav_change"],
            "pitch_total": row["pitch_total"],
            "emotion_total": row["emotion_total"],
        }
        for row in game.leaderboard()
    ]


def _round_history_rows(game: "Game") -> List[dict]:
    rows = []
    for rnd in game.rounds.rounds():
        summary = game.round_summary(rnd.id)
        color = summary["color_card"]
        black = summary["black_card"]
        for alloc in summary["allocations"]:
            row = {
                "round": rnd.round_number,
                "phase": rnd.phase,
                "color_card": color["card_number"] if color else "",
                "black_card": black["card_number"] if black else "",
                "team": alloc["team_name"] or alloc["team_id"],
                "pitch_score": alloc["pitch_score"],
                "emotion_score": alloc["emotion_score"],
                "weighted_return": alloc["weighted_return"],
                "weighted_modifier": alloc["weighted_modifier"] or "",
                "nav_before": alloc["nav_before"],
                "nav_after": alloc["nav_after"],
            }
            row.update(alloc["allocation"])
            rows.append(row)
    return rows


def _write(f, fieldnames: List[str], rows: List[dict]):
    writer = csv.DictWriter(f, fieldnames=fieldnames)
    writer.writeheader()
    writer.writerows(rows)


# ──────────────────────────────────────────────
# FILE EXPORTS
# ──────────────────────────────────────────────

def export_standings_csv(game: "Game", filepath: str) -> str:
    """
    Export the current leaderboard to CSV.

    Columns: rank, team, current_nav, nav_change, pitch_total, emotion_total
    """
    _ensure_dir(filepath)
    with open(filepath, "w", newline="", encoding="utf-8") as f:
        _write(f, STANDINGS_FIELDS, _standings_rows(game))
    return filepath


def export_round_history_csv(game: "Game", filepath: str) -> str:
    """
    Export every recorded allocation, ordered by round then team.

    Columns: round, phase, color_card, black_card, team,
             equity, debt, gold, cash, pitch_score, emotion_score,
             weighted_return, weighted_modifier, nav_before, nav_after
    """
    _ensure_dir(filepath)
    with open(filepath, "w", newline="", encoding="utf-8") as f:
        _write(f, ROUND_HISTORY_FIELDS, _round_history_rows(game))
    return filepath


def export_game_full(game: "Game", output_dir: str) -> dict:
    """
    Export standings and round history to a directory.

    Returns dict of {export_name: filepath}.
    """
    os.makedirs(output_dir, exist_ok=True)
    return {
        "standings": export_standings_csv(game, os.path.join(output_dir, "standings.csv")),
        "round_history": export_round_history_csv(game, os.path.join(output_dir, "round_history.csv")),
    }


# ──────────────────────────────────────────────
# STRING EXPORTS
# ──────────────────────────────────────────────

def standings_csv(game: "Game") -> str:
    buf = io.StringIO()
    _write(buf, STANDINGS_FIELDS, _standings_rows(game))
    return buf.getvalue()


def round_history_csv(game: "Game") -> str:
    buf = io.StringIO()
    _write(buf, ROUND_HISTORY_FIELDS, _round_history_rows(game))
    return buf.getvalue()
