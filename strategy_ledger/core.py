"""
Core types and pure functions for the strategy accounting model.

This module provides the foundational pieces used by StrategyAccount and the
scenario runner:
1. Constants: fixed-point scale, fee rate, liquidation threshold
2. Exceptions: StrategyError and domain-specific error types
3. Immutable data structures: AccountingSnapshot, ConsistencyReport, FeeQuote,
   CollateralCheck, WithdrawReceipt, DeploymentCheck, OperationRecord
4. Fixed-point helpers: to_wad, format_ether
5. Pure calculation functions: fee, price per share, collateral ratio

All quantities are unsigned integers in base units (18 decimal places).
Floats never enter the arithmetic; every formula here uses integer floor
division, matching uint256 semantics.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal, DecimalException, DefaultContext
from enum import Enum
from typing import Optional, Tuple, Union


# ============================================================================
# CONSTANTS
# ============================================================================

# Fixed-point scale: 1 token == 10**18 base units.
TOKEN_DECIMALS = 18
WAD = 10 ** TOKEN_DECIMALS

# Largest decimal exponent to_wad accepts (the default Decimal context Emax).
MAX_DECIMAL_EXPONENT = DefaultContext.Emax

# Performance fee charged against deployed capital (100 bps == 1%).
DEFAULT_FEE_RATE_BPS = 100
BPS_DENOMINATOR = 10_000

# Collateral ratio (percent) at or above which the position is considered safe.
SAFE_COLLATERAL_RATIO_PERCENT = 80

# Returned by price_per_share / collateral ratio when total supply is zero.
EMPTY_SUPPLY_SENTINEL = 0


# ============================================================================
# ENUMS
# ============================================================================

class WithdrawMode(Enum):
    """
    Which update rule a withdrawal applies.

    VULNERABLE: balance -= amount; deployed amount left stale.
    FIXED: deployed amount and total supply both decrease; balance untouched.
    """
    VULNERABLE = "vulnerable"
    FIXED = "fixed"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class StrategyError(Exception):
    """Base exception for all strategy accounting errors."""
    pass


class InsufficientFunds(StrategyError):
    """Raised when an operation would take more than the local balance holds."""

    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient balance: requested {format_ether(requested)}, "
            f"available {format_ether(available)}"
        )


class InsufficientDeployed(StrategyError):
    """Raised when a fixed withdrawal exceeds the tracked deployed amount."""

    def __init__(self, requested: int, deployed: int):
        self.requested = requested
        self.deployed = deployed
        super().__init__(
            f"Insufficient deployed amount: requested {format_ether(requested)}, "
            f"deployed {format_ether(deployed)}"
        )


class UnknownSelector(StrategyError):
    """Raised when a scenario or version name is not registered."""

    def __init__(self, kind: str, value: str, supported: Tuple[str, ...]):
        self.kind = kind
        self.value = value
        self.supported = supported
        super().__init__(f"Unsupported {kind} \"{value}\"")


# ============================================================================
# FIXED-POINT HELPERS
# ============================================================================

def to_wad(value: Union[int, str, Decimal, float]) -> int:
    """
    Convert a token amount to 18-decimal base units.

    Accepts int, str and Decimal exactly; floats are routed through str()
    first so that 0.1 becomes "0.1" rather than its binary expansion.
    The conversion works on the decimal digits directly, so no context
    precision applies.

    Raises:
        ValueError: If the value is negative, not a number, has more than
                    18 fractional digits, or its exponent is beyond Decimal's
                    default range.
    """
    if isinstance(value, bool):
        raise ValueError(f"Token amount must be numeric, got {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"Token amount must be non-negative, got {value}")
        return value * WAD
    try:
        amount = Decimal(str(value))
    except DecimalException:
        raise ValueError(f"Token amount is not a number: {value!r}") from None
    if not amount.is_finite():
        raise ValueError(f"Token amount must be finite, got {value!r}")
    if amount < 0:
        raise ValueError(f"Token amount must be non-negative, got {value!r}")

    if amount == 0:
        return 0
    if amount.adjusted() > MAX_DECIMAL_EXPONENT:
        raise ValueError(f"Token amount is too large: {value!r}")
    _, digits, exponent = amount.as_tuple()
    coefficient = int("".join(map(str, digits)))
    shift = exponent + TOKEN_DECIMALS
    if shift >= 0:
        return coefficient * 10 ** shift
    if -shift >= len(digits):
        raise ValueError(f"Token amount has more than {TOKEN_DECIMALS} decimals: {value!r}")
    whole, remainder = divmod(coefficient, 10 ** -shift)
    if remainder:
        raise ValueError(f"Token amount has more than {TOKEN_DECIMALS} decimals: {value!r}")
    return whole


def format_ether(amount: int) -> str:
    """
    Render base units as a decimal token string.

    Always keeps at least one fractional digit: format_ether(10**18) == "1.0".
    """
    sign = "-" if amount < 0 else ""
    whole, frac = divmod(abs(amount), WAD)
    frac_digits = str(frac).rjust(TOKEN_DECIMALS, "0").rstrip("0") or "0"
    return f"{sign}{whole}.{frac_digits}"


def require_amount(amount: int, name: str = "amount") -> int:
    """Validate that amount is a non-negative int in base units."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"{name} must be an int in base units, got {type(amount).__name__}")
    if amount < 0:
        raise ValueError(f"{name} must be non-negative, got {amount}")
    return amount


# ============================================================================
# PURE CALCULATION FUNCTIONS
# ============================================================================

def calculate_performance_fee(deployed_amount: int, fee_rate_bps: int = DEFAULT_FEE_RATE_BPS) -> int:
    """fee = deployed_amount * fee_rate_bps / 10000, floored."""
    return deployed_amount * fee_rate_bps // BPS_DENOMINATOR


def calculate_price_per_share(deployed_amount: int, balance: int, total_supply: int) -> int:
    """
    price = (deployed_amount + balance) * WAD / total_supply, floored.

    Returns EMPTY_SUPPLY_SENTINEL when total_supply is zero.
    """
    if total_supply == 0:
        return EMPTY_SUPPLY_SENTINEL
    return (deployed_amount + balance) * WAD // total_supply


def calculate_collateral_ratio(deployed_amount: int, total_supply: int) -> int:
    """
    ratio = deployed_amount * 100 / total_supply, floored to a whole percent.

    Returns EMPTY_SUPPLY_SENTINEL when total_supply is zero.
    """
    if total_supply == 0:
        return EMPTY_SUPPLY_SENTINEL
    return deployed_amount * 100 // total_supply


def is_collateral_safe(ratio_percent: int, threshold_percent: int = SAFE_COLLATERAL_RATIO_PERCENT) -> bool:
    return ratio_percent >= threshold_percent


# ============================================================================
# IMMUTABLE RESULT TYPES
# ============================================================================

@dataclass(frozen=True, slots=True)
class AccountingSnapshot:
    """
    Point-in-time copy of the three tracked quantities.

    Attributes:
        deployed_amount: Principal recorded as placed in the yield position.
        balance: Amount held locally, not deployed.
        total_supply: Total claim units outstanding.
    """
    deployed_amount: int
    balance: int
    total_supply: int

    @property
    def accounted_total(self) -> int:
        return self.deployed_amount + self.balance

    @property
    def discrepancy(self) -> int:
        """accounted_total - total_supply (zero when consistent)."""
        return self.accounted_total - self.total_supply

    def __repr__(self) -> str:
        return (f"Snapshot(deployed={format_ether(self.deployed_amount)}, "
                f"balance={format_ether(self.balance)}, "
                f"supply={format_ether(self.total_supply)})")


@dataclass(frozen=True, slots=True)
class ConsistencyReport:
    """
    Outcome of checking deployed_amount + balance == total_supply.

    Truthy iff the state is consistent, so it can be used directly in
    `assert account.check_consistency()`.

    Attributes:
        snapshot: State that was checked.
        consistent: Whether the invariant holds.
        difference: |accounted_total - total_supply|.
        direction: "none", "short" (accounted < supply: funds left without
                   the books noticing) or "over" (accounted > supply).
    """
    snapshot: AccountingSnapshot
    consistent: bool
    difference: int
    direction: str

    def __bool__(self) -> bool:
        return self.consistent

    @classmethod
    def of(cls, snapshot: AccountingSnapshot) -> 'ConsistencyReport':
        delta = snapshot.discrepancy
        if delta == 0:
            direction = "none"
        elif delta < 0:
            direction = "short"
        else:
            direction = "over"
        return cls(snapshot=snapshot, consistent=delta == 0, difference=abs(delta), direction=direction)


@dataclass(frozen=True, slots=True)
class FeeQuote:
    """Performance fee computed against a given deployed amount."""
    basis: int
    fee_rate_bps: int
    fee: int


@dataclass(frozen=True, slots=True)
class CollateralCheck:
    """Collateral ratio read and its comparison to the safety threshold."""
    deployed_amount: int
    total_supply: int
    ratio_percent: int
    threshold_percent: int
    safe: bool


@dataclass(frozen=True, slots=True)
class WithdrawReceipt:
    """
    Record of a single withdrawal.

    Attributes:
        amount: Base units sent to the recipient.
        recipient: Destination address.
        mode: Update rule that was applied.
        before: State before the withdrawal.
        after: State after the withdrawal.
    """
    amount: int
    recipient: str
    mode: WithdrawMode
    before: AccountingSnapshot
    after: AccountingSnapshot

    @property
    def deployed_delta(self) -> int:
        return self.after.deployed_amount - self.before.deployed_amount


@dataclass(frozen=True, slots=True)
class DeploymentCheck:
    """
    Regression check: does deployed_amount reflect what has been withdrawn?

    expected_deployed = baseline - extracted_amount; the account is
    vulnerable when the tracked deployed amount differs from it.
    """
    baseline: int
    deployed_amount: int
    extracted_amount: int
    expected_deployed: int
    vulnerable: bool
    difference: int


@dataclass(frozen=True, slots=True)
class OperationRecord:
    """Audit trail entry for one state-changing call on a StrategyAccount."""
    sequence: int
    kind: str
    amount: int
    before: AccountingSnapshot
    after: AccountingSnapshot
    recipient: Optional[str] = None

    def __repr__(self) -> str:
        target = f" -> {self.recipient}" if self.recipient else ""
        return f"#{self.sequence} {self.kind} {format_ether(self.amount)}{target}"
