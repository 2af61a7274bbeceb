"""
Team Ledger
============

Owns every team's running state: current NAV and cumulative pitch /
emotion totals.

Only the round lifecycle calls ``record_result``, ``revise_nav`` and
``restore``.  Presentation code reads teams and may call ``reset_nav``
for a mid-game correction, which leaves allocation history untouched.
"""

import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Union

from cyclesense.allocation import AssetVector, validate_allocation
from cyclesense.config import PROFILE_SETUP, STARTING_NAV
from cyclesense.errors import InvalidAllocationError, TeamNotFoundError

_log = logging.getLogger("cyclesense.ledger")


@dataclass
class Team:
    name: str
    current_nav: Decimal = STARTING_NAV
    pitch_total: int = 0
    emotion_total: int = 0
    initial_allocation: AssetVector = field(default_factory=AssetVector.default)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "current_nav": str(self.current_nav),
            "pitch_total": self.pitch_total,
            "emotion_total": self.emotion_total,
            "initial_allocation": self.initial_allocation.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Team":
        return cls(
            id=d["id"],
            name=d["name"],
            current_nav=Decimal(d.get("current_nav", str(STARTING_NAV))),
            pitch_total=d.get("pitch_total", 0),
            emotion_total=d.get("emotion_total", 0),
            initial_allocation=AssetVector.from_dict(d.get("initial_allocation", {})),
        )


class TeamLedger:
    """Roster of teams keyed by id, in registration order."""

    def __init__(self):
        self._teams: Dict[str, Team] = {}

    def __len__(self) -> int:
        return len(self._teams)

    def __contains__(self, team_id: str) -> bool:
        return team_id in self._teams

    # ── Roster ──

    def add_team(self, name: str, initial_allocation: Union[AssetVector, dict, None] = None) -> Team:
        name = (name or "").strip()
        if not name:
            raise ValueError("Team needs a name")
        allocation = AssetVector.coerce(initial_allocation)
        result = validate_allocation(allocation, PROFILE_SETUP)
        if not result.valid:
            raise InvalidAllocationError(result.violations, context=f"setup allocation for {name}")
        team = Team(name=name, initial_allocation=allocation)
        self._teams[team.id] = team
        _log.info(f"Registered team {name} ({team.id})")
        return team

    def update_team(
        self,
        team_id: str,
        name: Optional[str] = None,
        initial_allocation: Union[AssetVector, dict, None] = None,
    ) -> Team:
        """Rename a team or replace its setup allocation.

        NAV and score totals are left alone; only the round lifecycle
        moves those.
        """
        team = self.get_team(team_id)
        if name is not None:
            name = name.strip()
            if not name:
                raise ValueError("Team needs a name")
        if initial_allocation is not None:
            allocation = AssetVector.coerce(initial_allocation)
            result = validate_allocation(allocation, PROFILE_SETUP)
            if not result.valid:
                raise InvalidAllocationError(result.violations, context=f"setup allocation for {name or team.name}")
            team.initial_allocation = allocation
        if name is not None and name != team.name:
            _log.info(f"Renamed team {team.name} -> {name} ({team.id})")
            team.name = name
        return team

    def remove_team(self, team_id: str) -> Team:
        team = self.get_team(team_id)
        del self._teams[team_id]
        _log.info(f"Removed team {team.name} ({team_id})")
        return team

    def get_team(self, team_id: str) -> Team:
        team = self._teams.get(team_id)
        if team is None:
            raise TeamNotFoundError(team_id)
        return team

    def find_team(self, team_id: str) -> Optional[Team]:
        return self._teams.get(team_id)

    def teams(self) -> List[Team]:
        return list(self._teams.values())

    def team_ids(self) -> List[str]:
        return list(self._teams.keys())

    def clear(self):
        self._teams.clear()

    # ── Corrections ──

    def reset_nav(self, team_id: str) -> Team:
        """Put a team back on the starting NAV.  History is not touched."""
        team = self.get_team(team_id)
        _log.info(f"Reset NAV for {team.name}: {team.current_nav} -> {STARTING_NAV}")
        team.current_nav = STARTING_NAV
        return team

    def reset_scores(self):
        """Every team back to the starting NAV with zero totals."""
        for team in self._teams.values():
            team.current_nav = STARTING_NAV
            team.pitch_total = 0
            team.emotion_total = 0

    # ── Lifecycle-only mutators ──

    def record_result(self, team_id: str, nav_after: Decimal, pitch_score: int, emotion_score: int):
        team = self.get_team(team_id)
        team.current_nav = nav_after
        team.pitch_total += pitch_score
        team.emotion_total += emotion_score

    def revise_nav(self, team_id: str, nav: Decimal):
        self.get_team(team_id).current_nav = nav

    def restore(self, team_id: str, nav_before: Decimal, pitch_score: int, emotion_score: int) -> bool:
        """Undo one round's effect on a team.  Returns False if the team is gone."""
        team = self.find_team(team_id)
        if team is None:
            return False
        team.current_nav = nav_before
        team.pitch_total -= pitch_score
        team.emotion_total -= emotion_score
        return True

    # ── Reporting ──

    def standings(self) -> List[Team]:
        """Teams ranked by NAV (highest first), ties broken by name."""
        return sorted(self._teams.values(), key=lambda t: (-t.current_nav, t.name))

    def to_dict(self) -> dict:
        return {"teams": [t.to_dict() for t in self._teams.values()]}

    @classmethod
    def from_dict(cls, d: dict) -> "TeamLedger":
        ledger = cls()
        for t in d.get("teams", []):
            team = Team.from_dict(t)
            ledger._teams[team.id] = team
        return ledger
