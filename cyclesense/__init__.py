"""
CycleSense Scorer
"""

from .allocation import AssetVector, ReturnVector, ValidationResult, Violation, validate_allocation, validate_scores
from .nav import weighted_return, apply_event_return, weighted_modifier, apply_shock_modifier, to_storage
from .cards import ColorCard, BlackCard, CardCatalog, parse_color_cards, parse_black_cards, phase_for_card_number
from .ledger import Team, TeamLedger
from .rounds import RoundState, Round, TeamAllocation, AllocationSubmission, EventDraw, RoundLifecycle
from .game import Game, GameSession
from .errors import (
    CycleSenseError,
    ValidationError,
    InvalidAllocationError,
    AllocationBatchError,
    CardImportError,
    UnknownPhaseError,
    LookupFailedError,
    TeamNotFoundError,
    RoundNotFoundError,
    CardNotFoundError,
    NoCardsForPhaseError,
    NoBlackCardsError,
    PhaseRequiredError,
    NoActiveGameError,
    IllegalTransitionError,
    AllocationInvariantError,
)

__all__ = [
    "AssetVector",
    "ReturnVector",
    "ValidationResult",
    "Violation",
    "validate_allocation",
    "validate_scores",
    "weighted_return",
    "apply_event_return",
    "weighted_modifier",
    "apply_shock_modifier",
    "to_storage",
    "ColorCard",
    "BlackCard",
    "CardCatalog",
    "parse_color_cards",
    "parse_black_cards",
    "phase_for_card_number",
    "Team",
    "TeamLedger",
    "RoundState",
    "Round",
    "TeamAllocation",
    "AllocationSubmission",
    "EventDraw",
    "RoundLifecycle",
    "Game",
    "GameSession",
    "CycleSenseError",
    "ValidationError",
    "InvalidAllocationError",
    "AllocationBatchError",
    "CardImportError",
    "UnknownPhaseError",
    "LookupFailedError",
    "TeamNotFoundError",
    "RoundNotFoundError",
    "CardNotFoundError",
    "NoCardsForPhaseError",
    "NoBlackCardsError",
    "PhaseRequiredError",
    "NoActiveGameError",
    "IllegalTransitionError",
    "AllocationInvariantError",
]
