"""
NAV Calculation Engine
=======================

Pure functions, no I/O.  All arithmetic is Decimal at full context
precision; rounding to 2 places happens only in ``to_storage`` when a
value is written into a record, never between the steps below.

  1. weighted_return      Σ (allocation[a] / 100) × returns[a]
  2. apply_event_return   nav × (1 + wr / 100) + pitch + emotion
  3. weighted_modifier    Σ (allocation[a] / 100) × modifiers[a]
  4. apply_shock_modifier nav × (1 + wm / 100)

Pitch and emotion are flat bonuses added after the multiplicative return.
Shocks are purely multiplicative.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from cyclesense.allocation import AssetVector, ReturnVector, allocation_total_is_valid
from cyclesense.config import NAV_PLACES
from cyclesense.errors import AllocationInvariantError

_HUNDRED = Decimal(100)
_ONE = Decimal(1)

Number = Union[Decimal, int, str]


def _dec(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # floats only reach here from careless callers; go through repr to
        # avoid binary expansion noise
        return Decimal(repr(value))
    return Decimal(value)


def _require_full_allocation(allocation: AssetVector):
    if not allocation_total_is_valid(allocation):
        raise AllocationInvariantError(
            f"Allocation must total 100% before NAV can be computed (got {allocation.total}%)"
        )


def _weighted_sum(allocation: AssetVector, vector: ReturnVector) -> Decimal:
    _require_full_allocation(allocation)
    total = Decimal(0)
    for asset, pct in allocation.items():
        total += Decimal(pct) / _HUNDRED * _dec(getattr(vector, asset))
    return total


# ═══════════════════════════════════════════════════════════════
# MARKET EVENT (COLOR CARD)
# ═══════════════════════════════════════════════════════════════

def weighted_return(allocation: AssetVector, returns: ReturnVector) -> Decimal:
    """Allocation-weighted return of a color card, in percent."""
    return _weighted_sum(allocation, returns)


def apply_event_return(
    nav_before: Number,
    weighted_return_pct: Number,
    pitch_score: int = 0,
    emotion_score: int = 0,
) -> Decimal:
    """NAV after the market event plus the flat qualitative bonuses."""
    nav = _dec(nav_before) * (_ONE + _dec(weighted_return_pct) / _HUNDRED)
    return nav + pitch_score + emotion_score


# ═══════════════════════════════════════════════════════════════
# SHOCK (BLACK CARD)
# ═══════════════════════════════════════════════════════════════

def weighted_modifier(allocation: AssetVector, modifiers: ReturnVector) -> Decimal:
    """Allocation-weighted shock modifier of a black card, in percent."""
    return _weighted_sum(allocation, modifiers)


def apply_shock_modifier(nav: Number, weighted_modifier_pct: Number) -> Decimal:
    """NAV after a shock.  A zero modifier returns ``nav`` unchanged."""
    nav = _dec(nav)
    modifier = _dec(weighted_modifier_pct)
    if modifier == 0:
        return nav
    return nav * (_ONE + modifier / _HUNDRED)


# ═══════════════════════════════════════════════════════════════
# STORAGE BOUNDARY
# ═══════════════════════════════════════════════════════════════

def to_storage(value: Number) -> Decimal:
    """Quantize to the stored 2-place scale (round half up)."""
    return _dec(value).quantize(NAV_PLACES, rounding=ROUND_HALF_UP)


def event_nav(
    nav_before: Number,
    allocation: AssetVector,
    returns: ReturnVector,
    pitch_score: int = 0,
    emotion_score: int = 0,
) -> Decimal:
    """Steps 1 + 2 in one call, unrounded."""
    wr = weighted_return(allocation, returns)
    return apply_event_return(nav_before, wr, pitch_score, emotion_score)


def shocked_nav(nav: Number, allocation: AssetVector, modifiers: ReturnVector) -> Decimal:
    """Steps 3 + 4 in one call, unrounded."""
    wm = weighted_modifier(allocation, modifiers)
    return apply_shock_modifier(nav, wm)
