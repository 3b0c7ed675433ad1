"""
strategy.py - Stateful bookkeeping for a leveraged yield strategy.

StrategyAccount is the only object that mutates accounting state. It tracks
three quantities (deployed amount, local balance, total supply) and offers two
alternative withdrawal rules:

    withdraw_vulnerable:  balance -= amount
                          (deployed amount is never decremented)
    withdraw_fixed:       deployed_amount -= amount; total_supply -= amount

Key responsibilities:
    - Validates every operation before mutating anything (failed calls leave
      state untouched)
    - Records every state change in operation_log
    - Exposes the consistency predicate and the metrics derived from the
      deployed amount (performance fee, price per share, collateral ratio)
"""

from __future__ import annotations
from collections import defaultdict
from typing import Dict, List, Optional

from .core import (
    # Types
    AccountingSnapshot, ConsistencyReport, FeeQuote, CollateralCheck,
    WithdrawReceipt, DeploymentCheck, OperationRecord, WithdrawMode,
    # Constants
    DEFAULT_FEE_RATE_BPS, SAFE_COLLATERAL_RATIO_PERCENT,
    # Exceptions
    InsufficientFunds, InsufficientDeployed,
    # Helpers
    require_amount, format_ether,
    calculate_performance_fee, calculate_price_per_share,
    calculate_collateral_ratio, is_collateral_safe,
)
from .narration import Sink


class StrategyAccount:
    """
    In-memory mock of a strategy's deployed-capital bookkeeping.

    Intended invariant: deployed_amount + balance == total_supply.
    The vulnerable withdrawal path breaks it; the fixed path preserves it.

    Thread Safety:
        Not thread-safe. Each scenario owns its own account.

    Example:
        account = StrategyAccount("demo", to_wad(1_000_000))
        account.deploy(to_wad(100_000))
        account.withdraw_vulnerable(to_wad(50_000), "0xAttacker")
        assert not account.check_consistency()
    """

    def __init__(
        self,
        name: str,
        initial_supply: int,
        mode: WithdrawMode = WithdrawMode.VULNERABLE,
        fee_rate_bps: int = DEFAULT_FEE_RATE_BPS,
        safe_ratio_percent: int = SAFE_COLLATERAL_RATIO_PERCENT,
        verbose: bool = False,
        sink: Sink = print,
    ):
        """
        Create an account with the whole initial mint held locally.

        Args:
            name: Identifier used in narration
            initial_supply: Initial mint in base units (balance == total_supply)
            mode: Default update rule used by withdraw()
            fee_rate_bps: Performance fee rate in basis points
            safe_ratio_percent: Collateral ratio threshold for the safety check
            verbose: Emit a narration line per operation through sink
            sink: Output callable (default: print)
        """
        require_amount(initial_supply, "initial_supply")
        self.name = name
        self.mode = mode
        self.fee_rate_bps = fee_rate_bps
        self.safe_ratio_percent = safe_ratio_percent
        self.verbose = verbose
        self.sink = sink

        self.deployed_amount: int = 0
        self.balance: int = initial_supply
        self.total_supply: int = initial_supply

        self.initial_supply: int = initial_supply
        self.deployed_baseline: int = 0
        self.extracted_amount: int = 0
        self.payouts: Dict[str, int] = defaultdict(int)
        self.operation_log: List[OperationRecord] = []

    # ========================================================================
    # READ-ONLY METHODS
    # ========================================================================

    def snapshot(self) -> AccountingSnapshot:
        return AccountingSnapshot(
            deployed_amount=self.deployed_amount,
            balance=self.balance,
            total_supply=self.total_supply,
        )

    def check_consistency(self) -> ConsistencyReport:
        """
        Check deployed_amount + balance == total_supply.

        Pure read. Returns a ConsistencyReport, truthy iff consistent.
        """
        report = ConsistencyReport.of(self.snapshot())
        if self.verbose:
            self._emit_consistency(report)
        return report

    def performance_fee(self) -> FeeQuote:
        """Fee charged on the tracked deployed amount (stale after buggy withdrawals)."""
        return FeeQuote(
            basis=self.deployed_amount,
            fee_rate_bps=self.fee_rate_bps,
            fee=calculate_performance_fee(self.deployed_amount, self.fee_rate_bps),
        )

    def price_per_share(self) -> int:
        """(deployed_amount + balance) * WAD / total_supply, or 0 with no supply."""
        return calculate_price_per_share(self.deployed_amount, self.balance, self.total_supply)

    def collateral_ratio_percent(self) -> int:
        """deployed_amount * 100 / total_supply, or 0 with no supply."""
        return calculate_collateral_ratio(self.deployed_amount, self.total_supply)

    def is_safe(self) -> bool:
        return is_collateral_safe(self.collateral_ratio_percent(), self.safe_ratio_percent)

    def check_liquidation_threshold(self) -> CollateralCheck:
        ratio = self.collateral_ratio_percent()
        check = CollateralCheck(
            deployed_amount=self.deployed_amount,
            total_supply=self.total_supply,
            ratio_percent=ratio,
            threshold_percent=self.safe_ratio_percent,
            safe=is_collateral_safe(ratio, self.safe_ratio_percent),
        )
        if self.verbose:
            verdict = "safe" if check.safe else "below threshold, liquidation should trigger"
            self.sink(f"   collateral ratio: {check.ratio_percent}% "
                      f"(threshold {check.threshold_percent}%): {verdict}")
        return check

    def check_deployed_tracking(self) -> DeploymentCheck:
        """
        Regression check for the missing decrement.

        After every withdrawal the deployed amount should equal the last
        deployed baseline minus everything extracted since. Any difference
        means withdrawals are not being subtracted and the same principal
        can be claimed again.
        """
        expected = self.deployed_baseline - self.extracted_amount
        difference = abs(self.deployed_amount - expected)
        return DeploymentCheck(
            baseline=self.deployed_baseline,
            deployed_amount=self.deployed_amount,
            extracted_amount=self.extracted_amount,
            expected_deployed=expected,
            vulnerable=difference != 0,
            difference=difference,
        )

    def total_paid_to(self, recipient: str) -> int:
        return self.payouts.get(recipient, 0)

    # ========================================================================
    # MUTATIONS
    # ========================================================================

    def deploy(self, amount: int) -> AccountingSnapshot:
        """
        Move amount from the local balance into the yield position.

        Raises:
            InsufficientFunds: If amount exceeds balance
        """
        require_amount(amount)
        if amount > self.balance:
            raise InsufficientFunds(amount, self.balance)

        before = self.snapshot()
        self.deployed_amount += amount
        self.balance -= amount
        self.deployed_baseline = self.deployed_amount
        after = self._record("deploy", amount, before)

        if self.verbose:
            self.sink(f"   deployed {format_ether(amount)}: "
                      f"deployedAmount={format_ether(self.deployed_amount)}, "
                      f"balance={format_ether(self.balance)}")
        return after

    def withdraw_vulnerable(self, amount: int, recipient: str) -> WithdrawReceipt:
        """
        Withdrawal with the missing decrement.

        Only balance is reduced; deployed_amount keeps reporting the original
        principal. Nothing checks amount against deployed_amount. The only
        limit is that balance is unsigned.

        Raises:
            InsufficientFunds: If amount exceeds balance
        """
        require_amount(amount)
        if amount > self.balance:
            raise InsufficientFunds(amount, self.balance)

        before = self.snapshot()
        self.balance -= amount
        return self._finish_withdraw(amount, recipient, WithdrawMode.VULNERABLE, before)

    def withdraw_fixed(self, amount: int, recipient: str) -> WithdrawReceipt:
        """
        Withdrawal paid straight out of the deployed position.

        deployed_amount and total_supply both drop by amount; balance is
        untouched because the funds never pass through the local balance.

        Raises:
            InsufficientDeployed: If amount exceeds deployed_amount
        """
        require_amount(amount)
        if amount > self.deployed_amount:
            raise InsufficientDeployed(amount, self.deployed_amount)

        before = self.snapshot()
        self.deployed_amount -= amount
        self.total_supply -= amount
        return self._finish_withdraw(amount, recipient, WithdrawMode.FIXED, before)

    def withdraw(self, amount: int, recipient: str, mode: Optional[WithdrawMode] = None) -> WithdrawReceipt:
        """Withdraw using the given mode, or the account's default mode."""
        mode = mode or self.mode
        if mode is WithdrawMode.FIXED:
            return self.withdraw_fixed(amount, recipient)
        return self.withdraw_vulnerable(amount, recipient)

    def restore(self, snapshot: AccountingSnapshot) -> None:
        """
        Reset the three quantities to a previous snapshot.

        Used to replay the same withdrawal on both update rules from an
        identical starting point. Clears extracted_amount and the per-recipient
        payouts, and sets the deployed baseline to the restored deployed
        amount. The operation log is kept.
        """
        before = self.snapshot()
        self.deployed_amount = require_amount(snapshot.deployed_amount, "deployed_amount")
        self.balance = require_amount(snapshot.balance, "balance")
        self.total_supply = require_amount(snapshot.total_supply, "total_supply")
        self.deployed_baseline = self.deployed_amount
        self.extracted_amount = 0
        self.payouts.clear()
        self._record("restore", 0, before)

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _finish_withdraw(self, amount: int, recipient: str, mode: WithdrawMode,
                         before: AccountingSnapshot) -> WithdrawReceipt:
        self.extracted_amount += amount
        self.payouts[recipient] += amount
        after = self._record(f"withdraw_{mode.value}", amount, before, recipient)

        if self.verbose:
            self.sink(f"   withdrew {format_ether(amount)} to {recipient} [{mode.value}]: "
                      f"deployedAmount={format_ether(self.deployed_amount)}, "
                      f"balance={format_ether(self.balance)}, "
                      f"totalSupply={format_ether(self.total_supply)}")
            if mode is WithdrawMode.VULNERABLE:
                self.sink("   deployedAmount was not decremented")

        return WithdrawReceipt(amount=amount, recipient=recipient, mode=mode, before=before, after=after)

    def _record(self, kind: str, amount: int, before: AccountingSnapshot,
                recipient: Optional[str] = None) -> AccountingSnapshot:
        after = self.snapshot()
        self.operation_log.append(OperationRecord(
            sequence=len(self.operation_log),
            kind=kind,
            amount=amount,
            before=before,
            after=after,
            recipient=recipient,
        ))
        return after

    def _emit_consistency(self, report: ConsistencyReport) -> None:
        snap = report.snapshot
        self.sink(f"   deployedAmount: {format_ether(snap.deployed_amount)}")
        self.sink(f"   balance: {format_ether(snap.balance)}")
        self.sink(f"   accounted total: {format_ether(snap.accounted_total)}")
        self.sink(f"   totalSupply: {format_ether(snap.total_supply)}")
        if report.consistent:
            self.sink("   state consistent")
            return
        self.sink(f"   STATE INCONSISTENT, difference: {format_ether(report.difference)}")
        if report.direction == "short":
            self.sink("   accounted total < totalSupply: funds left without the books being updated")
        else:
            self.sink("   accounted total > totalSupply: state update or calculation error")

    def __repr__(self) -> str:
        return (f"StrategyAccount({self.name!r}, mode={self.mode.value}, "
                f"deployed={format_ether(self.deployed_amount)}, "
                f"balance={format_ether(self.balance)}, "
                f"supply={format_ether(self.total_supply)})")
