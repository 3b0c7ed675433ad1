"""
test_core_types.py - Unit tests for core data structures and pure functions

Tests:
- to_wad / format_ether: conversion, validation, edge cases
- Pure formulas: fee, price per share, collateral ratio
- AccountingSnapshot / ConsistencyReport: derived fields, truthiness
- Exceptions: hierarchy and carried fields
"""

import pytest
from decimal import Decimal

from strategy_ledger import (
    WAD, to_wad, format_ether,
    calculate_performance_fee, calculate_price_per_share,
    calculate_collateral_ratio, is_collateral_safe,
    AccountingSnapshot, ConsistencyReport, OperationRecord,
    StrategyError, InsufficientFunds, InsufficientDeployed, UnknownSelector,
    EMPTY_SUPPLY_SENTINEL,
)


class TestToWad:
    """Tests for token -> base unit conversion."""

    def test_int_tokens(self):
        assert to_wad(1) == WAD
        assert to_wad(100_000) == 100_000 * 10**18

    def test_string_tokens(self):
        assert to_wad("100000") == 100_000 * 10**18
        assert to_wad("0.5") == 5 * 10**17

    def test_decimal_tokens(self):
        assert to_wad(Decimal("1.000000000000000001")) == WAD + 1

    def test_float_goes_through_str(self):
        """0.1 must not pick up binary float noise."""
        assert to_wad(0.1) == 10**17

    def test_zero(self):
        assert to_wad(0) == 0

    def test_negative_raises(self):
        with pytest.raises(ValueError, match="non-negative"):
            to_wad(-1)
        with pytest.raises(ValueError, match="non-negative"):
            to_wad("-0.5")

    def test_too_many_decimals_raises(self):
        with pytest.raises(ValueError, match="decimals"):
            to_wad("0.0000000000000000001")

    def test_garbage_raises(self):
        with pytest.raises(ValueError, match="not a number"):
            to_wad("lots")

    def test_non_finite_raises(self):
        with pytest.raises(ValueError, match="finite"):
            to_wad("Infinity")

    def test_long_integral_string_is_exact(self):
        """Digit count is not limited by any Decimal context precision."""
        digits = "1" * 120
        assert to_wad(digits) == int(digits) * WAD
        assert to_wad(digits + ".5") == int(digits) * WAD + 5 * 10**17

    def test_trailing_zero_decimals_accepted(self):
        assert to_wad("1." + "0" * 30) == WAD

    def test_huge_exponent_raises_value_error(self):
        with pytest.raises(ValueError, match="too large"):
            to_wad("1e1000000")

    def test_tiny_exponent_raises_value_error(self):
        with pytest.raises(ValueError, match="decimals"):
            to_wad("1e-1000000")

    def test_zero_with_huge_exponent(self):
        assert to_wad("0e1000000") == 0

    def test_bool_rejected(self):
        with pytest.raises(ValueError):
            to_wad(True)


class TestFormatEther:
    """Tests for base unit -> token string rendering."""

    def test_whole_amount_keeps_one_decimal(self):
        assert format_ether(to_wad(100_000)) == "100000.0"

    def test_fractional(self):
        assert format_ether(to_wad("0.25")) == "0.25"

    def test_one_wei(self):
        assert format_ether(1) == "0.000000000000000001"

    def test_zero(self):
        assert format_ether(0) == "0.0"

    def test_negative(self):
        assert format_ether(-to_wad(30_000)) == "-30000.0"


class TestFormulas:
    """Tests for the pure calculation functions."""

    def test_performance_fee_one_percent(self):
        assert calculate_performance_fee(to_wad(100_000)) == to_wad(1_000)

    def test_performance_fee_custom_rate(self):
        assert calculate_performance_fee(to_wad(100_000), fee_rate_bps=250) == to_wad(2_500)

    def test_performance_fee_floors(self):
        assert calculate_performance_fee(99) == 0

    def test_price_per_share_at_par(self):
        assert calculate_price_per_share(to_wad(100), to_wad(900), to_wad(1_000)) == WAD

    def test_price_per_share_below_par(self):
        assert calculate_price_per_share(to_wad(100), to_wad(400), to_wad(1_000)) == WAD // 2

    def test_price_per_share_empty_supply(self):
        assert calculate_price_per_share(0, 0, 0) == EMPTY_SUPPLY_SENTINEL

    def test_collateral_ratio(self):
        assert calculate_collateral_ratio(to_wad(850_000), to_wad(1_000_000)) == 85

    def test_collateral_ratio_floors(self):
        assert calculate_collateral_ratio(to_wad(799_999), to_wad(1_000_000)) == 79

    def test_collateral_ratio_empty_supply(self):
        assert calculate_collateral_ratio(to_wad(5), 0) == EMPTY_SUPPLY_SENTINEL

    def test_safety_threshold_inclusive(self):
        assert is_collateral_safe(80)
        assert not is_collateral_safe(79)
        assert is_collateral_safe(50, threshold_percent=50)


class TestSnapshotAndReport:
    """Tests for AccountingSnapshot and ConsistencyReport."""

    def test_snapshot_totals(self):
        snap = AccountingSnapshot(deployed_amount=100, balance=850, total_supply=1_000)
        assert snap.accounted_total == 950
        assert snap.discrepancy == -50

    def test_snapshot_is_frozen(self):
        snap = AccountingSnapshot(1, 2, 3)
        with pytest.raises(AttributeError):
            snap.balance = 5

    def test_consistent_report_is_truthy(self):
        report = ConsistencyReport.of(AccountingSnapshot(100, 900, 1_000))
        assert report
        assert report.difference == 0
        assert report.direction == "none"

    def test_short_report(self):
        report = ConsistencyReport.of(AccountingSnapshot(100, 850, 1_000))
        assert not report
        assert report.difference == 50
        assert report.direction == "short"

    def test_over_report(self):
        report = ConsistencyReport.of(AccountingSnapshot(100, 900, 950))
        assert not report
        assert report.direction == "over"

    def test_operation_record_repr(self):
        snap = AccountingSnapshot(0, 0, 0)
        record = OperationRecord(0, "withdraw_vulnerable", to_wad(5), snap, snap, "0xabc")
        assert repr(record) == "#0 withdraw_vulnerable 5.0 -> 0xabc"


class TestExceptions:
    """Tests for the exception hierarchy."""

    def test_all_derive_from_strategy_error(self):
        assert issubclass(InsufficientFunds, StrategyError)
        assert issubclass(InsufficientDeployed, StrategyError)
        assert issubclass(UnknownSelector, StrategyError)

    def test_insufficient_funds_fields(self):
        err = InsufficientFunds(to_wad(2), to_wad(1))
        assert err.requested == to_wad(2)
        assert err.available == to_wad(1)
        assert "2.0" in str(err)

    def test_insufficient_deployed_fields(self):
        err = InsufficientDeployed(to_wad(10), 0)
        assert err.deployed == 0
        assert "deployed 0.0" in str(err)

    def test_unknown_selector_carries_supported(self):
        err = UnknownSelector("attack", "Z", ("A", "B"))
        assert err.supported == ("A", "B")
        assert '"Z"' in str(err)
