#!/usr/bin/env python3
"""
NAV Calculation Engine Tests
=============================
"""

from decimal import Decimal

import pytest

from cyclesense.allocation import AssetVector, ReturnVector
from cyclesense.errors import AllocationInvariantError
from cyclesense.nav import (
    apply_event_return,
    apply_shock_modifier,
    event_nav,
    shocked_nav,
    to_storage,
    weighted_modifier,
    weighted_return,
)

G1_RETURNS = ReturnVector.of("15.00", "2.00", "-3.00", "1.00")
BC1_MODIFIERS = ReturnVector.of("-3.00", "-4.00", "2.00", "3.00")


class TestWeightedReturn:
    def test_balanced_growth_allocation(self):
        wr = weighted_return(AssetVector(40, 30, 20, 10), G1_RETURNS)
        assert wr == Decimal("6.10")

    def test_cash_heavy_allocation(self):
        wr = weighted_return(AssetVector(10, 10, 20, 60), G1_RETURNS)
        assert wr == Decimal("1.70")

    def test_all_in_one_asset(self):
        assert weighted_return(AssetVector(100, 0, 0, 0), G1_RETURNS) == Decimal("15")
        assert weighted_return(AssetVector(0, 0, 100, 0), G1_RETURNS) == Decimal("-3")

    def test_short_allocation_is_an_invariant_error(self):
        with pytest.raises(AllocationInvariantError):
            weighted_return(AssetVector(40, 30, 20, 0), G1_RETURNS)

    def test_invariant_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            weighted_modifier(AssetVector(50, 50, 50, 50), BC1_MODIFIERS)


class TestApplyEventReturn:
    def test_return_plus_pitch(self):
        nav = apply_event_return(Decimal("10.00"), Decimal("6.10"), pitch_score=3, emotion_score=0)
        assert to_storage(nav) == Decimal("13.61")

    def test_cash_heavy_no_bonus(self):
        nav = apply_event_return(Decimal("10.00"), Decimal("1.70"))
        assert to_storage(nav) == Decimal("10.17")

    def test_bonuses_are_flat(self):
        nav = apply_event_return(Decimal("20.00"), Decimal("0"), pitch_score=2, emotion_score=1)
        assert nav == Decimal("23.00")

    def test_negative_return(self):
        nav = apply_event_return(Decimal("10.00"), Decimal("-15"))
        assert nav == Decimal("8.50")

    def test_event_nav_combines_steps(self):
        nav = event_nav(Decimal("10.00"), AssetVector(40, 30, 20, 10), G1_RETURNS, 3, 0)
        assert to_storage(nav) == Decimal("13.61")


class TestShockModifier:
    def test_weighted_modifier(self):
        assert weighted_modifier(AssetVector(40, 30, 20, 10), BC1_MODIFIERS) == Decimal("-1.70")

    def test_shock_applied_to_nav(self):
        nav = apply_shock_modifier(Decimal("13.61"), Decimal("-1.70"))
        assert to_storage(nav) == Decimal("13.38")

    @pytest.mark.parametrize("nav", [Decimal("13.61"), Decimal("0.01"), Decimal("0"), Decimal("1234.56"), 7])
    def test_zero_modifier_is_identity(self, nav):
        assert apply_shock_modifier(nav, Decimal("0")) == nav

    def test_zero_modifier_card(self):
        zero = ReturnVector.of(0, 0, 0, 0)
        assert shocked_nav(Decimal("11.11"), AssetVector(25, 25, 25, 25), zero) == Decimal("11.11")


class TestStorageBoundary:
    def test_round_half_up(self):
        assert to_storage(Decimal("10.535")) == Decimal("10.54")
        assert to_storage(Decimal("2.675")) == Decimal("2.68")
        assert to_storage(Decimal("-1.005")) == Decimal("-1.01")

    def test_two_places(self):
        assert str(to_storage(Decimal("10"))) == "10.00"

    def test_float_input_goes_through_repr(self):
        assert to_storage(0.1 + 0.2) == Decimal("0.30")
