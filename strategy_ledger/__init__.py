"""
strategy_ledger - Deployed-amount accounting simulation

An in-memory model of a leveraged yield strategy's bookkeeping, used to
demonstrate a withdrawal path that never decrements the tracked deployed
amount, and what that stale value does to fees, share price and the
liquidation safety check.

Usage:
    from strategy_ledger import StrategyAccount, to_wad

    account = StrategyAccount("demo", to_wad(1_000_000))
    account.deploy(to_wad(100_000))

    # Vulnerable path: deployed amount stays at 100_000
    account.withdraw_vulnerable(to_wad(50_000), "0xAttacker")
    assert not account.check_consistency()

    # Fixed path: deployed amount and total supply both shrink
    fixed = StrategyAccount("fixed", to_wad(1_000_000))
    fixed.deploy(to_wad(100_000))
    fixed.withdraw_fixed(to_wad(50_000), "0xUser")
    assert fixed.check_consistency()
"""

# Core types
from .core import (
    WithdrawMode,
    AccountingSnapshot,
    ConsistencyReport,
    FeeQuote,
    CollateralCheck,
    WithdrawReceipt,
    DeploymentCheck,
    OperationRecord,
    StrategyError,
    InsufficientFunds,
    InsufficientDeployed,
    UnknownSelector,
    WAD,
    TOKEN_DECIMALS,
    DEFAULT_FEE_RATE_BPS,
    BPS_DENOMINATOR,
    SAFE_COLLATERAL_RATIO_PERCENT,
    EMPTY_SUPPLY_SENTINEL,
    to_wad,
    format_ether,
    calculate_performance_fee,
    calculate_price_per_share,
    calculate_collateral_ratio,
    is_collateral_safe,
)

# Stateful account
from .strategy import StrategyAccount

# Output
from .narration import Narrator, CollectingSink, null_sink

# Scenarios
from .scenarios import (
    ScenarioConfig,
    DEFAULT_CONFIG,
    VersionProfile,
    VERSIONS,
    DEFAULT_VERSION,
    AttackProfile,
    ATTACKS,
    ALL_ATTACKS,
    DEFAULT_ATTACK,
    RepeatedWithdrawalResult,
    FeeInflationResult,
    LiquidationBypassResult,
    PocResult,
    RegressionResult,
    attack_repeated_withdrawal,
    attack_fee_inflation,
    attack_liquidation_bypass,
    attack_selectors,
    run_attacks,
    run_poc,
    run_regression,
    resolve_version,
)

__version__ = "1.0.0"
