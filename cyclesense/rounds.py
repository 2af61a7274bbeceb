"""
Round Lifecycle Manager
========================

Drives one round at a time through its states:

    AWAITING_EVENT ─draw─▶ EVENT_DRAWN ─start─▶ ALLOCATIONS_OPEN
        ─submit─▶ ALLOCATIONS_COMPLETE ─shock─▶ SHOCK_APPLIED
        ─finalize─▶ FINALIZED

The first two states belong to the manager (a pending draw, nothing
recorded).  A Round record exists from ALLOCATIONS_OPEN on and carries an
explicit ``RoundState``.  The shock step is optional and happens at most
once; the state machine rejects a second one.

Rollback deletes the latest round and its allocations and restores each
team from the allocation's own ``nav_before`` and scores.  There is no redo.

Batch submission is all-or-nothing: every team's submission is validated
in a pre-pass, results are computed, and only then is anything written.
"""

import logging
import random
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Union

from cyclesense import nav
from cyclesense.allocation import (
    DUPLICATE_SUBMISSION,
    MISSING_SUBMISSION,
    UNKNOWN_TEAM,
    AssetVector,
    Violation,
    validate_allocation,
    validate_scores,
)
from cyclesense.cards import BlackCard, CardCatalog, ColorCard
from cyclesense.config import MODE_VIRTUAL, PHASES, PROFILE_STRICT
from cyclesense.errors import (
    AllocationBatchError,
    IllegalTransitionError,
    NoCardsForPhaseError,
    PhaseRequiredError,
    RoundNotFoundError,
    UnknownPhaseError,
    ValidationError,
)
from cyclesense.ledger import TeamLedger

if TYPE_CHECKING:
    from cyclesense.game import GameSession

_log = logging.getLogger("cyclesense.rounds")


def _new_id() -> str:
    return str(uuid.uuid4())


# ═══════════════════════════════════════════════════════════════
# STATE
# ═══════════════════════════════════════════════════════════════

class RoundState(Enum):
    AWAITING_EVENT = "awaiting_event"
    EVENT_DRAWN = "event_drawn"
    ALLOCATIONS_OPEN = "allocations_open"
    ALLOCATIONS_COMPLETE = "allocations_complete"
    SHOCK_APPLIED = "shock_applied"
    FINALIZED = "finalized"


# action → states it may start from
_ALLOWED_FROM = {
    "submit allocations": (RoundState.ALLOCATIONS_OPEN,),
    "apply a shock": (RoundState.ALLOCATIONS_COMPLETE,),
    "finalize": (RoundState.ALLOCATIONS_COMPLETE, RoundState.SHOCK_APPLIED),
    "roll back": (
        RoundState.ALLOCATIONS_OPEN,
        RoundState.ALLOCATIONS_COMPLETE,
        RoundState.SHOCK_APPLIED,
        RoundState.FINALIZED,
    ),
}


# ═══════════════════════════════════════════════════════════════
# RECORDS
# ═══════════════════════════════════════════════════════════════

@dataclass
class EventDraw:
    """A drawn (not yet committed) market event."""
    phase: str
    card: ColorCard
    manual: bool = False

    def to_dict(self) -> dict:
        return {"phase": self.phase, "card": self.card.to_dict(), "manual": self.manual}


@dataclass
class Round:
    round_number: int
    phase: str
    color_card_id: str
    black_card_id: Optional[str] = None
    state: RoundState = RoundState.ALLOCATIONS_OPEN
    id: str = field(default_factory=_new_id)

    def require(self, action: str):
        allowed = _ALLOWED_FROM[action]
        if self.state not in allowed:
            raise IllegalTransitionError(action, self.state.value, [s.value for s in allowed])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "round_number": self.round_number,
            "phase": self.phase,
            "color_card_id": self.color_card_id,
            "black_card_id": self.black_card_id,
            "state": self.state.value,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Round":
        return cls(
            id=d["id"],
            round_number=d["round_number"],
            phase=d["phase"],
            color_card_id=d["color_card_id"],
            black_card_id=d.get("black_card_id"),
            state=RoundState(d.get("state", RoundState.FINALIZED.value)),
        )


@dataclass
class AllocationSubmission:
    """One team's input for a round."""
    team_id: str
    allocation: AssetVector
    pitch_score: int = 0
    emotion_score: int = 0

    @classmethod
    def coerce(cls, value: Union["AllocationSubmission", dict]) -> "AllocationSubmission":
        if isinstance(value, cls):
            return value
        return cls(
            team_id=value.get("team_id") or "",
            allocation=AssetVector.coerce(value.get("allocation")),
            pitch_score=value.get("pitch_score", 0),
            emotion_score=value.get("emotion_score", 0),
        )


@dataclass
class TeamAllocation:
    """Per-(team, round) result.  NAVs are stored at 2 places."""
    team_id: str
    round_id: str
    allocation: AssetVector
    pitch_score: int
    emotion_score: int
    weighted_return: Decimal
    nav_before: Decimal
    nav_after: Decimal
    weighted_modifier: Optional[Decimal] = None
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "team_id": self.team_id,
            "round_id": self.round_id,
            "allocation": self.allocation.to_dict(),
            "pitch_score": self.pitch_score,
            "emotion_score": self.emotion_score,
            "weighted_return": str(self.weighted_return),
            "weighted_modifier": None if self.weighted_modifier is None else str(self.weighted_modifier),
            "nav_before": str(self.nav_before),
            "nav_after": str(self.nav_after),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "TeamAllocation":
        def _opt(key):
            return None if d.get(key) is None else Decimal(d[key])

        return cls(
            id=d["id"],
            team_id=d["team_id"],
            round_id=d["round_id"],
            allocation=AssetVector.from_dict(d["allocation"]),
            pitch_score=d.get("pitch_score", 0),
            emotion_score=d.get("emotion_score", 0),
            weighted_return=Decimal(d.get("weighted_return", "0")),
            weighted_modifier=_opt("weighted_modifier"),
            nav_before=Decimal(d["nav_before"]),
            nav_after=Decimal(d["nav_after"]),
        )


# ═══════════════════════════════════════════════════════════════
# LIFECYCLE MANAGER
# ═══════════════════════════════════════════════════════════════

class RoundLifecycle:
    """Owns rounds and allocations; the only writer of team NAVs and totals."""

    def __init__(self, catalog: CardCatalog, ledger: TeamLedger,
                 rng: Optional[random.Random] = None):
        self.catalog = catalog
        self.ledger = ledger
        self.rng = rng or random.Random()
        self.pending_draw: Optional[EventDraw] = None
        self._rounds: Dict[str, Round] = {}
        self._allocations: Dict[str, TeamAllocation] = {}

    # ── Queries ──

    @property
    def state(self) -> RoundState:
        """State of the round in play, or of the next one if none is open."""
        latest = self.current_round()
        if latest is not None and latest.state != RoundState.FINALIZED:
            return latest.state
        if self.pending_draw is not None:
            return RoundState.EVENT_DRAWN
        return RoundState.AWAITING_EVENT

    def get_round(self, round_id: str) -> Round:
        rnd = self._rounds.get(round_id)
        if rnd is None:
            raise RoundNotFoundError(round_id)
        return rnd

    def rounds(self) -> List[Round]:
        return sorted(self._rounds.values(), key=lambda r: r.round_number)

    def current_round(self) -> Optional[Round]:
        if not self._rounds:
            return None
        return max(self._rounds.values(), key=lambda r: r.round_number)

    def allocations_for_round(self, round_id: str) -> List[TeamAllocation]:
        return [a for a in self._allocations.values() if a.round_id == round_id]

    def allocations_for_team(self, team_id: str) -> List[TeamAllocation]:
        numbers = {r.id: r.round_number for r in self._rounds.values()}
        allocations = [a for a in self._allocations.values() if a.team_id == team_id]
        return sorted(allocations, key=lambda a: numbers.get(a.round_id, 0))

    # ── AWAITING_EVENT → EVENT_DRAWN ──

    def draw_event(self, mode: str, phase: Optional[str] = None,
                   card_id: Optional[str] = None) -> EventDraw:
        """Pick the market event for the next round.

        ``card_id`` picks a card directly.  Otherwise a card is drawn at
        random from ``phase``; in virtual mode a missing phase is itself
        drawn at random.  Drawing again simply replaces the pending draw.
        """
        if card_id is not None:
            card = self.catalog.get_color_card(card_id)
            draw = EventDraw(phase=card.phase, card=card, manual=True)
        else:
            if phase is None:
                if mode != MODE_VIRTUAL:
                    raise PhaseRequiredError()
                phase = self.rng.choice(PHASES)
            if phase not in PHASES:
                raise UnknownPhaseError(phase)
            cards = self.catalog.color_cards(phase)
            if not cards:
                raise NoCardsForPhaseError(phase)
            draw = EventDraw(phase=phase, card=self.rng.choice(cards))

        self.pending_draw = draw
        _log.debug(f"Drew {draw.card.card_number} ({draw.phase})")
        return draw

    def draw_shock(self) -> BlackCard:
        """Random black card for virtual play.  Nothing is applied."""
        return self.catalog.random_black_card(self.rng)

    # ── EVENT_DRAWN → ALLOCATIONS_OPEN ──

    def start_round(self, session: "GameSession", card_id: Optional[str] = None) -> Round:
        """Record a new round for the pending draw (or an explicit card)."""
        if card_id is not None:
            card = self.catalog.get_color_card(card_id)
        elif self.pending_draw is not None:
            card = self.catalog.get_color_card(self.pending_draw.card.id)
        else:
            raise IllegalTransitionError(
                "start a round", RoundState.AWAITING_EVENT.value, [RoundState.EVENT_DRAWN.value],
            )

        latest = self.current_round()
        if latest is not None:
            if latest.state == RoundState.ALLOCATIONS_OPEN:
                raise IllegalTransitionError(
                    "start a new round", latest.state.value,
                    [s.value for s in _ALLOWED_FROM["finalize"]] + [RoundState.FINALIZED.value],
                )
            if latest.state != RoundState.FINALIZED:
                self.finalize_round(latest.id)

        rnd = Round(
            round_number=session.current_round + 1,
            phase=card.phase,
            color_card_id=card.id,
        )
        self._rounds[rnd.id] = rnd
        session.current_round = rnd.round_number
        session.is_active = True
        self.pending_draw = None
        _log.info(f"Round {rnd.round_number} started with {card.card_number} ({card.phase})")
        return rnd

    # ── ALLOCATIONS_OPEN → ALLOCATIONS_COMPLETE ──

    def _collect_failures(self, submissions: List[AllocationSubmission]) -> Dict[str, List[Violation]]:
        failures: Dict[str, List[Violation]] = {}
        seen = set()
        for sub in submissions:
            if sub.team_id not in self.ledger:
                failures.setdefault(sub.team_id, []).append(Violation(UNKNOWN_TEAM))
                continue
            if sub.team_id in seen:
                failures.setdefault(sub.team_id, []).append(Violation(DUPLICATE_SUBMISSION))
                continue
            seen.add(sub.team_id)
            problems = validate_allocation(sub.allocation, PROFILE_STRICT).violations
            problems += validate_scores(sub.pitch_score, sub.emotion_score)
            if problems:
                failures[sub.team_id] = problems

        for team_id in self.ledger.team_ids():
            if team_id not in seen and team_id not in failures:
                failures[team_id] = [Violation(MISSING_SUBMISSION)]
        return failures

    def submit_allocations(
        self,
        round_id: str,
        submissions: Iterable[Union[AllocationSubmission, dict]],
    ) -> List[TeamAllocation]:
        """Score every team for the round, or reject the whole batch."""
        rnd = self.get_round(round_id)
        rnd.require("submit allocations")
        card = self.catalog.get_color_card(rnd.color_card_id)
        submissions = [AllocationSubmission.coerce(s) for s in submissions]

        if len(self.ledger) == 0:
            raise ValidationError("No teams on the roster")

        failures = self._collect_failures(submissions)
        if failures:
            names = {t.id: t.name for t in self.ledger.teams()}
            raise AllocationBatchError(failures, names)

        results = []
        for sub in submissions:
            team = self.ledger.get_team(sub.team_id)
            wr = nav.weighted_return(sub.allocation, card.returns)
            nav_after = nav.apply_event_return(team.current_nav, wr, sub.pitch_score, sub.emotion_score)
            results.append(TeamAllocation(
                team_id=team.id,
                round_id=rnd.id,
                allocation=sub.allocation,
                pitch_score=sub.pitch_score,
                emotion_score=sub.emotion_score,
                weighted_return=nav.to_storage(wr),
                nav_before=team.current_nav,
                nav_after=nav.to_storage(nav_after),
            ))

        for alloc in results:
            self._allocations[alloc.id] = alloc
            self.ledger.record_result(alloc.team_id, alloc.nav_after,
                                      alloc.pitch_score, alloc.emotion_score)
        rnd.state = RoundState.ALLOCATIONS_COMPLETE
        _log.info(f"Round {rnd.round_number}: scored {len(results)} teams against {card.card_number}")
        return results

    # ── ALLOCATIONS_COMPLETE → SHOCK_APPLIED ──

    def apply_shock(self, round_id: str, black_card_id: str) -> List[TeamAllocation]:
        """Stack a black card on top of the round's market-event results."""
        rnd = self.get_round(round_id)
        rnd.require("apply a shock")
        card = self.catalog.get_black_card(black_card_id)
        allocations = self.allocations_for_round(rnd.id)

        revised = []
        for alloc in allocations:
            wm = nav.weighted_modifier(alloc.allocation, card.modifiers)
            revised.append((alloc, wm, nav.apply_shock_modifier(alloc.nav_after, wm)))

        for alloc, wm, shocked in revised:
            alloc.weighted_modifier = nav.to_storage(wm)
            alloc.nav_after = nav.to_storage(shocked)
            if alloc.team_id in self.ledger:
                self.ledger.revise_nav(alloc.team_id, alloc.nav_after)

        rnd.black_card_id = card.id
        rnd.state = RoundState.SHOCK_APPLIED
        _log.info(f"Round {rnd.round_number}: applied {card.card_number} to {len(allocations)} teams")
        return allocations

    # ── → FINALIZED ──

    def finalize_round(self, round_id: str) -> Round:
        rnd = self.get_round(round_id)
        rnd.require("finalize")
        rnd.state = RoundState.FINALIZED
        _log.debug(f"Round {rnd.round_number} finalized")
        return rnd

    # ── Rollback ──

    def rollback_round(self, round_id: str, session: "GameSession"):
        """Undo the latest round entirely."""
        rnd = self.get_round(round_id)
        rnd.require("roll back")
        latest = self.current_round()
        if latest is not None and latest.id != rnd.id:
            raise IllegalTransitionError(
                f"roll back round {rnd.round_number}",
                f"superseded by round {latest.round_number}",
                [f"round {latest.round_number}"],
            )

        allocations = self.allocations_for_round(rnd.id)
        for alloc in allocations:
            if not self.ledger.restore(alloc.team_id, alloc.nav_before,
                                       alloc.pitch_score, alloc.emotion_score):
                _log.debug(f"Team {alloc.team_id} no longer on roster; nothing to restore")
            del self._allocations[alloc.id]
        del self._rounds[rnd.id]

        remaining = self.current_round()
        session.current_round = remaining.round_number if remaining else 0
        _log.info(f"Rolled back round {rnd.round_number} ({len(allocations)} allocations)")

    # ── Housekeeping ──

    def reset(self):
        self.pending_draw = None
        self._rounds.clear()
        self._allocations.clear()

    def to_dict(self) -> dict:
        return {
            "rounds": [r.to_dict() for r in self.rounds()],
            "allocations": [a.to_dict() for a in self._allocations.values()],
        }

    def load_dict(self, d: dict):
        self.reset()
        for r in d.get("rounds", []):
            rnd = Round.from_dict(r)
            self._rounds[rnd.id] = rnd
        for a in d.get("allocations", []):
            alloc = TeamAllocation.from_dict(a)
            self._allocations[alloc.id] = alloc
