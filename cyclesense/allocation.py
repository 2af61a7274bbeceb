"""
Asset vectors and the Allocation Validator
===========================================

An allocation splits a team's capital across the four asset classes as
whole-number percentages.  Two validation profiles exist:

  strict  : round submissions.  Sum == 100, equity/debt in [1,100],
            gold/cash in [1,25].
  setup   : initial team configuration.  Sum == 100, every asset in [0,100].

The validator only reports.  It never nudges values back into range, so a
caller can show each problem next to the field that caused it.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Dict, Iterator, List, Optional, Tuple, Union

from cyclesense.config import (
    ALLOCATION_BOUNDS,
    ALLOCATION_TOTAL,
    ASSETS,
    DEFAULT_ALLOCATION,
    NAV_PLACES,
    PROFILE_STRICT,
    SCORE_MAX,
    SCORE_MIN,
)


# ═══════════════════════════════════════════════════════════════
# VECTORS
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AssetVector:
    """Integer percentage per asset class."""
    equity: int = 0
    debt: int = 0
    gold: int = 0
    cash: int = 0

    @property
    def total(self) -> int:
        return self.equity + self.debt + self.gold + self.cash

    def items(self) -> Iterator[Tuple[str, int]]:
        for asset in ASSETS:
            yield asset, getattr(self, asset)

    def to_dict(self) -> dict:
        return {asset: value for asset, value in self.items()}

    @classmethod
    def from_dict(cls, d: dict) -> "AssetVector":
        return cls(**{asset: d.get(asset, 0) for asset in ASSETS})

    @classmethod
    def default(cls) -> "AssetVector":
        return cls.from_dict(DEFAULT_ALLOCATION)

    @classmethod
    def coerce(cls, value: Union["AssetVector", dict, None]) -> "AssetVector":
        if value is None:
            return cls.default()
        if isinstance(value, cls):
            return value
        return cls.from_dict(value)


def to_decimal(value) -> Decimal:
    """Parse a card value ("12.5", 12.5, Decimal) into a 2-place Decimal."""
    if isinstance(value, float):
        value = repr(value)
    try:
        dec = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f"'{value}' is not a valid number")
    if not dec.is_finite():
        raise ValueError(f"'{value}' is not a valid number")
    try:
        return dec.quantize(NAV_PLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"'{value}' is out of range")


@dataclass(frozen=True)
class ReturnVector:
    """Decimal percentage per asset class (card returns or shock modifiers)."""
    equity: Decimal = Decimal("0.00")
    debt: Decimal = Decimal("0.00")
    gold: Decimal = Decimal("0.00")
    cash: Decimal = Decimal("0.00")

    def items(self) -> Iterator[Tuple[str, Decimal]]:
        for asset in ASSETS:
            yield asset, getattr(self, asset)

    def to_dict(self) -> dict:
        # strings keep the fixed 2-digit scale through JSON
        return {asset: str(value) for asset, value in self.items()}

    @classmethod
    def from_dict(cls, d: dict) -> "ReturnVector":
        return cls(**{asset: to_decimal(d.get(asset, "0")) for asset in ASSETS})

    @classmethod
    def of(cls, equity, debt, gold, cash) -> "ReturnVector":
        return cls(
            equity=to_decimal(equity),
            debt=to_decimal(debt),
            gold=to_decimal(gold),
            cash=to_decimal(cash),
        )


# ═══════════════════════════════════════════════════════════════
# VIOLATIONS
# ═══════════════════════════════════════════════════════════════

SUM_MISMATCH = "sum_mismatch"
BELOW_MINIMUM = "below_minimum"
ABOVE_MAXIMUM = "above_maximum"
NOT_AN_INTEGER = "not_an_integer"
SCORE_OUT_OF_RANGE = "score_out_of_range"
MISSING_SUBMISSION = "missing_submission"
DUPLICATE_SUBMISSION = "duplicate_submission"
UNKNOWN_TEAM = "unknown_team"


@dataclass(frozen=True)
class Violation:
    """One rule broken by a submission.

    ``field`` names the asset or score involved (None for whole-vector
    problems such as a bad total).
    """
    kind: str
    field: Optional[str] = None
    value: Optional[int] = None
    limit: Optional[int] = None

    def describe(self) -> str:
        if self.kind == SUM_MISMATCH:
            return f"allocations must total {ALLOCATION_TOTAL}% (got {self.value}%)"
        if self.kind == BELOW_MINIMUM:
            return f"{self.field} {self.value}% is below the minimum of {self.limit}%"
        if self.kind == ABOVE_MAXIMUM:
            return f"{self.field} {self.value}% is above the maximum of {self.limit}%"
        if self.kind == NOT_AN_INTEGER:
            return f"{self.field} must be a whole percentage"
        if self.kind == SCORE_OUT_OF_RANGE:
            return f"{self.field} score {self.value} must be between {SCORE_MIN} and {SCORE_MAX}"
        if self.kind == MISSING_SUBMISSION:
            return "no allocation submitted"
        if self.kind == DUPLICATE_SUBMISSION:
            return "more than one allocation submitted"
        if self.kind == UNKNOWN_TEAM:
            return "team is not on the roster"
        return self.kind

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "field": self.field,
            "value": self.value,
            "limit": self.limit,
            "message": self.describe(),
        }


@dataclass
class ValidationResult:
    valid: bool
    violations: List[Violation] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.valid


# ═══════════════════════════════════════════════════════════════
# VALIDATOR
# ═══════════════════════════════════════════════════════════════

def _is_whole(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_allocation(
    vector: Union[AssetVector, dict],
    profile: str = PROFILE_STRICT,
) -> ValidationResult:
    """Check an allocation against a validation profile.

    Every broken rule is reported; an empty violation list means valid.
    """
    if profile not in ALLOCATION_BOUNDS:
        raise KeyError(f"Unknown validation profile '{profile}'")
    bounds = ALLOCATION_BOUNDS[profile]
    vector = AssetVector.coerce(vector)

    violations: List[Violation] = []
    all_whole = True
    for asset, value in vector.items():
        if not _is_whole(value):
            violations.append(Violation(NOT_AN_INTEGER, field=asset))
            all_whole = False
            continue
        lo, hi = bounds[asset]
        if value < lo:
            violations.append(Violation(BELOW_MINIMUM, field=asset, value=value, limit=lo))
        elif value > hi:
            violations.append(Violation(ABOVE_MAXIMUM, field=asset, value=value, limit=hi))

    if all_whole and vector.total != ALLOCATION_TOTAL:
        violations.insert(0, Violation(SUM_MISMATCH, value=vector.total, limit=ALLOCATION_TOTAL))

    return ValidationResult(valid=not violations, violations=violations)


def validate_scores(pitch_score, emotion_score) -> List[Violation]:
    """Pitch and emotion scores are whole numbers in [SCORE_MIN, SCORE_MAX]."""
    violations = []
    for name, value in (("pitch", pitch_score), ("emotion", emotion_score)):
        if not _is_whole(value) or not SCORE_MIN <= value <= SCORE_MAX:
            violations.append(Violation(
                SCORE_OUT_OF_RANGE, field=name,
                value=value if _is_whole(value) else None,
            ))
    return violations


def allocation_total_is_valid(vector: AssetVector) -> bool:
    return all(_is_whole(v) for _, v in vector.items()) and vector.total == ALLOCATION_TOTAL


def violations_by_asset(result: ValidationResult) -> Dict[str, List[Violation]]:
    """Group violations by asset for per-field form feedback."""
    grouped: Dict[str, List[Violation]] = {}
    for v in result.violations:
        grouped.setdefault(v.field or "total", []).append(v)
    return grouped
