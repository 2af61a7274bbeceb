#!/usr/bin/env python3
"""
Allocation Validator Tests
===========================

Strict (round submission) and setup (team configuration) profiles, plus
the qualitative score range check.
"""

import pytest

from cyclesense.allocation import (
    ABOVE_MAXIMUM,
    BELOW_MINIMUM,
    NOT_AN_INTEGER,
    SCORE_OUT_OF_RANGE,
    SUM_MISMATCH,
    AssetVector,
    allocation_total_is_valid,
    validate_allocation,
    validate_scores,
    violations_by_asset,
)
from cyclesense.config import PROFILE_SETUP, PROFILE_STRICT


def _kinds(result):
    return [v.kind for v in result.violations]


# ═══════════════════════════════════════════════════════════════
# ASSET VECTOR
# ═══════════════════════════════════════════════════════════════

class TestAssetVector:
    def test_total(self):
        assert AssetVector(40, 30, 20, 10).total == 100

    def test_default_is_even_split(self):
        assert AssetVector.default().to_dict() == {"equity": 25, "debt": 25, "gold": 25, "cash": 25}

    def test_from_dict_fills_missing_assets_with_zero(self):
        vec = AssetVector.from_dict({"equity": 100})
        assert vec == AssetVector(100, 0, 0, 0)

    def test_coerce(self):
        vec = AssetVector(10, 20, 30, 40)
        assert AssetVector.coerce(vec) is vec
        assert AssetVector.coerce(None) == AssetVector.default()
        assert AssetVector.coerce({"equity": 70, "debt": 10, "gold": 10, "cash": 10}).equity == 70


# ═══════════════════════════════════════════════════════════════
# PROFILES
# ═══════════════════════════════════════════════════════════════

class TestValidateAllocation:
    def test_even_split_passes_strict(self):
        result = validate_allocation({"equity": 25, "debt": 25, "gold": 25, "cash": 25}, PROFILE_STRICT)
        assert result.valid
        assert result.violations == []
        assert bool(result)

    def test_zero_equity_fails_strict_but_passes_setup(self):
        vec = {"equity": 0, "debt": 50, "gold": 25, "cash": 25}
        strict = validate_allocation(vec, PROFILE_STRICT)
        assert not strict.valid
        assert _kinds(strict) == [BELOW_MINIMUM]
        assert strict.violations[0].field == "equity"
        assert strict.violations[0].limit == 1

        assert validate_allocation(vec, PROFILE_SETUP).valid

    def test_sum_110_fails_both_profiles(self):
        vec = {"equity": 30, "debt": 30, "gold": 30, "cash": 20}
        strict = validate_allocation(vec, PROFILE_STRICT)
        setup = validate_allocation(vec, PROFILE_SETUP)
        assert not strict.valid
        assert not setup.valid
        assert strict.violations[0].kind == SUM_MISMATCH
        assert strict.violations[0].value == 110
        assert _kinds(setup) == [SUM_MISMATCH]

    def test_strict_caps_gold_and_cash(self):
        result = validate_allocation(AssetVector(10, 10, 20, 60), PROFILE_STRICT)
        assert _kinds(result) == [ABOVE_MAXIMUM]
        assert result.violations[0].field == "cash"
        assert result.violations[0].limit == 25

    def test_setup_allows_large_cash(self):
        assert validate_allocation(AssetVector(10, 10, 20, 60), PROFILE_SETUP).valid

    def test_every_violation_is_reported(self):
        result = validate_allocation(AssetVector(0, 0, 50, 50), PROFILE_STRICT)
        assert sorted(_kinds(result)) == sorted([BELOW_MINIMUM, BELOW_MINIMUM, ABOVE_MAXIMUM, ABOVE_MAXIMUM])

    def test_non_integer_rejected_without_sum_check(self):
        result = validate_allocation({"equity": 39.5, "debt": 30.5, "gold": 20, "cash": 10}, PROFILE_STRICT)
        assert _kinds(result) == [NOT_AN_INTEGER, NOT_AN_INTEGER]
        assert {v.field for v in result.violations} == {"equity", "debt"}

    def test_validator_never_corrects_input(self):
        vec = AssetVector(0, 50, 25, 25)
        validate_allocation(vec, PROFILE_STRICT)
        assert vec == AssetVector(0, 50, 25, 25)

    def test_unknown_profile(self):
        with pytest.raises(KeyError):
            validate_allocation(AssetVector.default(), "lenient")

    def test_violations_by_asset(self):
        result = validate_allocation(AssetVector(0, 50, 30, 30), PROFILE_STRICT)
        grouped = violations_by_asset(result)
        assert set(grouped) == {"total", "equity", "gold", "cash"}

    def test_violation_messages(self):
        result = validate_allocation(AssetVector(30, 30, 30, 20), PROFILE_STRICT)
        messages = [v.describe() for v in result.violations]
        assert "allocations must total 100% (got 110%)" in messages
        assert "gold 30% is above the maximum of 25%" in messages


class TestAllocationTotal:
    def test_total_check(self):
        assert allocation_total_is_valid(AssetVector(40, 30, 20, 10))
        assert not allocation_total_is_valid(AssetVector(40, 30, 20, 0))


# ═══════════════════════════════════════════════════════════════
# QUALITATIVE SCORES
# ═══════════════════════════════════════════════════════════════

class TestValidateScores:
    def test_in_range(self):
        assert validate_scores(0, 5) == []
        assert validate_scores(3, 3) == []

    def test_out_of_range(self):
        violations = validate_scores(6, -1)
        assert [v.kind for v in violations] == [SCORE_OUT_OF_RANGE, SCORE_OUT_OF_RANGE]
        assert [v.field for v in violations] == ["pitch", "emotion"]

    def test_non_integer_score(self):
        violations = validate_scores(2.5, 1)
        assert len(violations) == 1
        assert violations[0].field == "pitch"
        assert violations[0].value is None
