"""
CycleSense Game
================

The top-level operation surface.  A ``Game`` owns the card catalog, the
team ledger, the round lifecycle and the current ``GameSession``; callers
(the HTTP layer, tests, scripts) hold one instance instead of touching
module state.

Usage:
    game = Game(rng=random.Random(7))
    game.new_game("virtual", teams=["Alpha", "Beta"])
    draw = game.draw_event()
    rnd = game.start_round()
    game.submit_allocations(rnd.id, [...])
    game.finalize_round(rnd.id)
"""

import logging
import random
import uuid
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Union

from cyclesense.allocation import AssetVector
from cyclesense.cards import BlackCard, CardCatalog, ColorCard
from cyclesense.config import GAME_MODES, STARTING_NAV
from cyclesense.errors import NoActiveGameError, ValidationError
from cyclesense.ledger import Team, TeamLedger
from cyclesense.rounds import (
    AllocationSubmission,
    EventDraw,
    Round,
    RoundLifecycle,
    TeamAllocation,
)

_log = logging.getLogger("cyclesense.game")


@dataclass
class GameSession:
    mode: str
    current_round: int = 0
    is_active: bool = True
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "mode": self.mode,
            "current_round": self.current_round,
            "is_active": self.is_active,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "GameSession":
        return cls(
            id=d["id"],
            mode=d["mode"],
            current_round=d.get("current_round", 0),
            is_active=d.get("is_active", True),
        )


TeamSpec = Union[str, dict]


class Game:
    """One facilitator's game: session, roster, catalog and round history."""

    def __init__(self, rng: Optional[random.Random] = None, load_defaults: bool = True):
        self.catalog = CardCatalog()
        if load_defaults:
            self.catalog.load_default_deck()
        self.ledger = TeamLedger()
        self.rounds = RoundLifecycle(self.catalog, self.ledger, rng)
        self.session: Optional[GameSession] = None

    def require_session(self) -> GameSession:
        if self.session is None:
            raise NoActiveGameError()
        return self.session

    # ═══════════════════════════════════════════════════════════════
    # SESSION
    # ═══════════════════════════════════════════════════════════════

    def new_game(self, mode: str, teams: Optional[Iterable[TeamSpec]] = None) -> GameSession:
        """Start a fresh session.

        Round history is discarded.  If ``teams`` is given it replaces the
        roster (each entry a name or ``{"name", "initial_allocation"}``);
        otherwise the existing roster is kept and reset to the start.
        """
        if mode not in GAME_MODES:
            raise ValidationError(f"Unknown game mode '{mode}' (expected one of {', '.join(GAME_MODES)})")

        if teams is not None:
            roster = TeamLedger()
            for spec in teams:
                if isinstance(spec, str):
                    roster.add_team(spec)
                else:
                    roster.add_team(spec.get("name", ""), spec.get("initial_allocation"))
            self.ledger = roster
            self.rounds.ledger = roster
        else:
            self.ledger.reset_scores()

        self.rounds.reset()
        self.session = GameSession(mode=mode)
        _log.info(f"New {mode} game {self.session.id} with {len(self.ledger)} teams")
        return self.session

    def reset_game(self, keep_teams: bool = True, clear_catalog: bool = False):
        """Clear rounds and allocations.

        ``keep_teams`` leaves the roster in place at the starting NAV with
        zero totals; otherwise the roster and the session go too.
        ``clear_catalog`` also empties both card sets.
        """
        self.rounds.reset()
        if keep_teams:
            self.ledger.reset_scores()
            if self.session is not None:
                self.session.current_round = 0
        else:
            self.ledger.clear()
            self.session = None
        if clear_catalog:
            self.catalog.clear()
        _log.info(f"Game reset (keep_teams={keep_teams}, clear_catalog={clear_catalog})")

    # ═══════════════════════════════════════════════════════════════
    # ROUNDS
    # ═══════════════════════════════════════════════════════════════

    def draw_event(self, phase: Optional[str] = None, card_id: Optional[str] = None) -> EventDraw:
        session = self.require_session()
        return self.rounds.draw_event(session.mode, phase=phase, card_id=card_id)

    def draw_shock(self) -> BlackCard:
        self.require_session()
        return self.rounds.draw_shock()

    def start_round(self, card_id: Optional[str] = None) -> Round:
        return self.rounds.start_round(self.require_session(), card_id)

    def submit_allocations(
        self,
        round_id: str,
        submissions: Iterable[Union[AllocationSubmission, dict]],
    ) -> List[TeamAllocation]:
        self.require_session()
        return self.rounds.submit_allocations(round_id, submissions)

    def apply_shock(self, round_id: str, black_card_id: str) -> List[TeamAllocation]:
        self.require_session()
        return self.rounds.apply_shock(round_id, black_card_id)

    def finalize_round(self, round_id: str) -> Round:
        return self.rounds.finalize_round(round_id)

    def rollback_round(self, round_id: str):
        self.rounds.rollback_round(round_id, self.require_session())

    def current_round(self) -> Optional[Round]:
        return self.rounds.current_round()

    def round_summary(self, round_id: str) -> dict:
        """Round record with its cards and every team's result, by name."""
        rnd = self.rounds.get_round(round_id)
        color = self.catalog.find_color_card(rnd.color_card_id)
        black = self.catalog.find_black_card(rnd.black_card_id)
        results = []
        for alloc in self.rounds.allocations_for_round(rnd.id):
            team = self.ledger.find_team(alloc.team_id)
            row = alloc.to_dict()
            row["team_name"] = team.name if team else None
            results.append(row)
        results.sort(key=lambda r: r["team_name"] or "")
        return {
            "round": rnd.to_dict(),
            "color_card": color.to_dict() if color else None,
            "black_card": black.to_dict() if black else None,
            "allocations": results,
        }

    # ═══════════════════════════════════════════════════════════════
    # TEAMS
    # ═══════════════════════════════════════════════════════════════

    def add_team(self, name: str, initial_allocation: Union[AssetVector, dict, None] = None) -> Team:
        return self.ledger.add_team(name, initial_allocation)

    def update_team(
        self,
        team_id: str,
        name: Optional[str] = None,
        initial_allocation: Union[AssetVector, dict, None] = None,
    ) -> Team:
        return self.ledger.update_team(team_id, name=name, initial_allocation=initial_allocation)

    def remove_team(self, team_id: str) -> Team:
        return self.ledger.remove_team(team_id)

    def get_team(self, team_id: str) -> Team:
        return self.ledger.get_team(team_id)

    def teams(self) -> List[Team]:
        return self.ledger.teams()

    def reset_team_nav(self, team_id: str) -> Team:
        return self.ledger.reset_nav(team_id)

    def team_history(self, team_id: str) -> List[TeamAllocation]:
        self.ledger.get_team(team_id)
        return self.rounds.allocations_for_team(team_id)

    def leaderboard(self) -> List[dict]:
        board = []
        for rank, team in enumerate(self.ledger.standings(), start=1):
            board.append({
                "rank": rank,
                "team_id": team.id,
                "name": team.name,
                "current_nav": str(team.current_nav),
                "nav_change": str(team.current_nav - STARTING_NAV),
                "pitch_total": team.pitch_total,
                "emotion_total": team.emotion_total,
            })
        return board

    # ═══════════════════════════════════════════════════════════════
    # CARDS
    # ═══════════════════════════════════════════════════════════════

    def import_color_cards(self, text: str) -> List[ColorCard]:
        return self.catalog.import_color_cards(text)

    def import_black_cards(self, text: str) -> List[BlackCard]:
        return self.catalog.import_black_cards(text)

    # ═══════════════════════════════════════════════════════════════
    # SERIALIZATION
    # ═══════════════════════════════════════════════════════════════

    def state(self) -> dict:
        """Compact view for dashboards."""
        current = self.current_round()
        return {
            "session": self.session.to_dict() if self.session else None,
            "round_state": self.rounds.state.value,
            "current_round": current.to_dict() if current else None,
            "pending_draw": self.rounds.pending_draw.to_dict() if self.rounds.pending_draw else None,
            "team_count": len(self.ledger),
            "color_card_count": len(self.catalog.color_cards()),
            "black_card_count": len(self.catalog.black_cards()),
        }

    def to_dict(self) -> dict:
        return {
            "version": 1,
            "session": self.session.to_dict() if self.session else None,
            "catalog": self.catalog.to_dict(),
            "ledger": self.ledger.to_dict(),
            "rounds": self.rounds.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: dict, rng: Optional[random.Random] = None) -> "Game":
        game = cls(rng=rng, load_defaults=False)
        game.catalog = CardCatalog.from_dict(d.get("catalog", {}))
        game.ledger = TeamLedger.from_dict(d.get("ledger", {}))
        game.rounds = RoundLifecycle(game.catalog, game.ledger, rng)
        game.rounds.load_dict(d.get("rounds", {}))
        if d.get("session"):
            game.session = GameSession.from_dict(d["session"])
        return game
