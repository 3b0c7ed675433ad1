"""
Consistency Conformance Tests

INVARIANT: outside an in-flight operation,
    deployed_amount + balance == total_supply

deploy() and withdraw_fixed() must preserve it for every sequence of valid
calls. withdraw_vulnerable() breaks it by exactly the amount withdrawn, and
every failed call leaves the state untouched.
"""

import pytest
from hypothesis import given, settings, note
from hypothesis import strategies as st

from strategy_ledger import (
    StrategyAccount, WithdrawMode,
    InsufficientFunds, InsufficientDeployed,
    WAD, calculate_performance_fee,
)


# =============================================================================
# STRATEGIES FOR PROPERTY-BASED TESTING
# =============================================================================

@st.composite
def base_units(draw, max_tokens=1_000_000):
    """Generate an amount in base units, including sub-token dust."""
    whole = draw(st.integers(min_value=0, max_value=max_tokens))
    dust = draw(st.integers(min_value=0, max_value=WAD - 1))
    return whole * WAD + dust


@st.composite
def operation_sequence(draw, max_ops: int = 20):
    """
    Generate a list of (kind, amount) operations.

    Amounts are unconstrained so that some calls fail; failed calls must
    not affect the invariant.
    """
    kinds = st.sampled_from(["deploy", "withdraw_fixed"])
    return draw(st.lists(st.tuples(kinds, base_units(max_tokens=400_000)), max_size=max_ops))


# =============================================================================
# CONSISTENCY PROPERTY TESTS
# =============================================================================

class TestConsistencyProperties:
    """Property-based tests for the consistency invariant."""

    @given(base_units(), st.lists(base_units(max_tokens=300_000), max_size=15))
    @settings(max_examples=100)
    def test_deploy_only_sequences_stay_consistent(self, supply, amounts):
        """
        PROPERTY: any sequence of deploy() calls keeps the books consistent
        after every call, successful or not.
        """
        account = StrategyAccount("prop", supply)
        for amount in amounts:
            try:
                account.deploy(amount)
            except InsufficientFunds:
                note(f"rejected deploy {amount}")
            assert account.check_consistency()
        assert account.deployed_amount + account.balance == supply

    @given(base_units(), operation_sequence())
    @settings(max_examples=100)
    def test_fixed_rule_stays_consistent(self, supply, ops):
        """
        PROPERTY: deploy() and withdraw_fixed() interleaved in any order
        preserve consistency; total supply only shrinks by what was withdrawn.
        """
        account = StrategyAccount("prop", supply, mode=WithdrawMode.FIXED)
        withdrawn = 0
        for kind, amount in ops:
            before = account.snapshot()
            try:
                if kind == "deploy":
                    account.deploy(amount)
                else:
                    account.withdraw_fixed(amount, "0xuser")
                    withdrawn += amount
            except (InsufficientFunds, InsufficientDeployed):
                assert account.snapshot() == before
            assert account.check_consistency()
            assert account.deployed_amount >= 0
            assert account.balance >= 0
        assert account.total_supply == supply - withdrawn
        assert not account.check_deployed_tracking().vulnerable

    @given(base_units(max_tokens=500_000), st.lists(base_units(max_tokens=50_000), min_size=1, max_size=10))
    @settings(max_examples=100)
    def test_vulnerable_rule_drifts_by_withdrawn_amount(self, deployed, amounts):
        """
        PROPERTY: after deploying D and withdrawing W on the vulnerable path,
        deployed_amount is still D and the books are short by exactly W.
        """
        supply = 1_000_000 * WAD
        account = StrategyAccount("prop", supply)
        account.deploy(deployed)
        withdrawn = 0
        for amount in amounts:
            try:
                account.withdraw_vulnerable(amount, "0xattacker")
                withdrawn += amount
            except InsufficientFunds:
                pass
        report = account.check_consistency()
        assert account.deployed_amount == deployed
        assert report.difference == withdrawn
        assert bool(report) == (withdrawn == 0)

    @given(base_units(max_tokens=500_000), base_units(max_tokens=500_000))
    @settings(max_examples=100)
    def test_stale_fee_overcharge(self, deployed, withdraw):
        """
        PROPERTY: the fee on the stale deployed amount exceeds the fee on the
        true deployed amount by the fee on the withdrawn amount (within one
        base unit of floor rounding).
        """
        supply = 1_000_000 * WAD
        account = StrategyAccount("prop", supply)
        account.deploy(deployed)
        withdraw = min(withdraw, deployed, account.balance)
        account.withdraw_vulnerable(withdraw, "0xattacker")

        stale = account.performance_fee().fee
        true = calculate_performance_fee(deployed - withdraw)
        overcharge = stale - true
        assert abs(overcharge - calculate_performance_fee(withdraw)) <= 1


class TestIdempotentFailure:
    """Over-withdrawal on the fixed path must fail cleanly, every time."""

    @pytest.mark.parametrize("attempts", [1, 2, 5])
    def test_repeated_over_withdrawal_raises(self, attempts):
        account = StrategyAccount("fail", 1_000_000 * WAD)
        account.deploy(100_000 * WAD)
        account.withdraw_fixed(100_000 * WAD, "0xuser")
        for _ in range(attempts):
            with pytest.raises(InsufficientDeployed):
                account.withdraw_fixed(50_000 * WAD, "0xuser")
        assert account.deployed_amount == 0
        assert account.total_supply == 900_000 * WAD
        assert account.check_consistency()
