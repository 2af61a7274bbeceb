"""
CycleSense error taxonomy.

Every failure in the core is raised to the caller; nothing is logged and
swallowed.  The API layer maps these onto HTTP status codes:

  validation  → 400   (bad allocation batch, malformed import rows)
  lookup      → 404   (unknown team / round / card, empty phase;
                       a missing in-person phase is a 400)
  transition  → 400   (e.g. shocking a round twice)
  invariant   → 500   (programmer error inside the engine)
"""

from typing import Dict, List, Optional


class CycleSenseError(Exception):
    """Base class for every error raised by the scoring core."""

    kind = "error"
    http_status = 500

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": str(self)}


# ═══════════════════════════════════════════════════════════════
# VALIDATION
# ═══════════════════════════════════════════════════════════════

class ValidationError(CycleSenseError):
    kind = "validation"
    http_status = 400


class InvalidAllocationError(ValidationError):
    """A single allocation (e.g. a team's setup allocation) failed validation."""

    def __init__(self, violations: list, context: str = "allocation"):
        self.violations = list(violations)
        self.context = context
        detail = ", ".join(v.describe() for v in self.violations)
        super().__init__(f"Invalid {context}: {detail}")

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["violations"] = [v.to_dict() for v in self.violations]
        return d


class AllocationBatchError(ValidationError):
    """One or more teams' submissions were rejected; nothing was committed.

    ``failures`` maps team id → list of violations.  ``team_names`` lets
    callers render messages without another ledger lookup.
    """

    def __init__(self, failures: Dict[str, list], team_names: Optional[Dict[str, str]] = None):
        self.failures = failures
        self.team_names = team_names or {}
        parts = []
        for team_id, violations in failures.items():
            name = self.team_names.get(team_id, team_id)
            parts.append(f"{name}: " + ", ".join(v.describe() for v in violations))
        super().__init__("Allocation batch rejected (" + "; ".join(parts) + ")")

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["teams"] = [
            {
                "team_id": team_id,
                "team_name": self.team_names.get(team_id),
                "violations": [v.to_dict() for v in violations],
            }
            for team_id, violations in self.failures.items()
        ]
        return d


class UnknownPhaseError(ValidationError):
    def __init__(self, phase: str):
        self.phase = phase
        super().__init__(f"Unknown phase '{phase}'")


class CardImportError(ValidationError):
    """A tabular card import was rejected at ``line`` (1-based)."""

    def __init__(self, line: int, reason: str, field: Optional[str] = None):
        self.line = line
        self.reason = reason
        self.field = field
        super().__init__(f"Line {line}: {reason}")

    def to_dict(self) -> dict:
        d = super().to_dict()
        d.update({"line": self.line, "reason": self.reason, "field": self.field})
        return d


# ═══════════════════════════════════════════════════════════════
# LOOKUP
# ═══════════════════════════════════════════════════════════════

class LookupFailedError(CycleSenseError):
    kind = "lookup"
    http_status = 404


class TeamNotFoundError(LookupFailedError):
    def __init__(self, team_id: str):
        self.team_id = team_id
        super().__init__(f"Team '{team_id}' not found")


class RoundNotFoundError(LookupFailedError):
    def __init__(self, round_id: str):
        self.round_id = round_id
        super().__init__(f"Round '{round_id}' not found")


class CardNotFoundError(LookupFailedError):
    def __init__(self, card_id: str, card_type: str = "color"):
        self.card_id = card_id
        self.card_type = card_type
        super().__init__(f"{card_type.capitalize()} card '{card_id}' not found")


class NoCardsForPhaseError(LookupFailedError):
    """The drawn phase has no color cards.  Retry another phase or pick a card by hand."""

    def __init__(self, phase: str):
        self.phase = phase
        super().__init__(f"No cards found for {phase} phase")

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["phase"] = self.phase
        return d


class NoBlackCardsError(LookupFailedError):
    def __init__(self):
        super().__init__("No black cards available")


class PhaseRequiredError(LookupFailedError):
    http_status = 400

    def __init__(self):
        super().__init__("Phase is required in in-person mode")


class NoActiveGameError(LookupFailedError):
    def __init__(self):
        super().__init__("No game has been started")


# ═══════════════════════════════════════════════════════════════
# STATE MACHINE / INVARIANTS
# ═══════════════════════════════════════════════════════════════

class IllegalTransitionError(CycleSenseError):
    """A round operation was attempted from a state that does not allow it."""

    kind = "transition"
    http_status = 400

    def __init__(self, action: str, state: str, allowed: Optional[List[str]] = None):
        self.action = action
        self.state = state
        self.allowed = allowed or []
        msg = f"Cannot {action} while round is {state}"
        if self.allowed:
            msg += f" (allowed: {', '.join(self.allowed)})"
        super().__init__(msg)

    def to_dict(self) -> dict:
        d = super().to_dict()
        d.update({"action": self.action, "state": self.state, "allowed": self.allowed})
        return d


class AllocationInvariantError(CycleSenseError, ValueError):
    """The NAV engine was handed an allocation that does not total 100.

    Callers must run the validator first; the engine never normalizes.
    """

    kind = "invariant"
