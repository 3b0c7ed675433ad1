"""
scenarios.py - Narrated walkthroughs of the missing deployed-amount decrement.

Three attack scenarios show three consequences of the same defect:

    A. Repeated / excess withdrawal: the deployed amount never shrinks, so the
       same principal keeps looking withdrawable.
    B. Performance fee inflation: fees are charged on the stale deployed amount.
    C. Liquidation threshold bypass: the stale deployed amount keeps the
       collateral ratio above the safety threshold while the true ratio is
       below it.

Two further runners compare the two update rules:

    run_poc:        step-by-step demonstration of vulnerable vs fixed _withdraw
    run_regression: pass/fail check selected by contract version

Every scenario builds its own StrategyAccount; no state is shared between runs.
All output goes through a Narrator sink and every runner returns a result
object, so the outcome can be asserted without parsing text.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Dict, List, Tuple

from .core import (
    DeploymentCheck, WithdrawMode, UnknownSelector,
    DEFAULT_FEE_RATE_BPS, SAFE_COLLATERAL_RATIO_PERCENT,
    calculate_performance_fee, calculate_collateral_ratio, is_collateral_safe,
    format_ether, to_wad,
)
from .narration import Narrator, Sink
from .strategy import StrategyAccount


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass(frozen=True)
class ScenarioConfig:
    """Literal amounts for every scenario. Modify these to experiment."""
    initial_supply: int = to_wad(1_000_000)
    attacker: str = "0xAttacker123456789012345678901234567890"
    user: str = "0x1234567890123456789012345678901234567890"
    fee_rate_bps: int = DEFAULT_FEE_RATE_BPS
    safe_ratio_percent: int = SAFE_COLLATERAL_RATIO_PERCENT

    # Attack A
    repeat_deploy: int = to_wad(100_000)
    repeat_withdraw: int = to_wad(50_000)
    repeat_count: int = 3

    # Attack B
    fee_deploy: int = to_wad(100_000)
    fee_withdraw: int = to_wad(50_000)

    # Attack C (stale ratio 80% vs true ratio 76%)
    liquidation_deploy: int = to_wad(800_000)
    liquidation_withdraw: int = to_wad(150_000)

    # PoC walkthrough
    poc_deploy: int = to_wad(100_000)
    poc_withdraw: int = to_wad(50_000)

    # Regression check
    regression_deploy: int = to_wad(100_000)
    regression_withdrawals: Tuple[int, ...] = (to_wad(50_000), to_wad(30_000))


DEFAULT_CONFIG = ScenarioConfig()


@dataclass(frozen=True)
class VersionProfile:
    """Which withdraw rule a contract version ships."""
    mode: WithdrawMode
    description: str


VERSIONS: Dict[str, VersionProfile] = {
    "b-pre-mitigation": VersionProfile(WithdrawMode.VULNERABLE, "second audit round, pre-mitigation (contains the defect)"),
    "b-post-mitigation": VersionProfile(WithdrawMode.FIXED, "second audit round, post-mitigation (fixed)"),
    "latest": VersionProfile(WithdrawMode.FIXED, "latest release"),
}

DEFAULT_VERSION = "b-pre-mitigation"


def resolve_version(version: str) -> VersionProfile:
    """
    Raises:
        UnknownSelector: If version is not in VERSIONS
    """
    if version not in VERSIONS:
        raise UnknownSelector("version", version, tuple(VERSIONS))
    return VERSIONS[version]


# ============================================================================
# RESULT TYPES
# ============================================================================

def _percent(part: int, whole: int) -> Decimal:
    """part / whole as a percentage with one decimal place, floored."""
    if whole == 0:
        return Decimal("0.0")
    return Decimal(part * 1000 // whole) / Decimal(10)


@dataclass(frozen=True)
class RepeatedWithdrawalResult:
    attacker_total: int
    remaining_balance: int
    deployed_amount: int
    stolen_percent: Decimal
    consistency_after_each_step: Tuple[bool, ...]

    @property
    def over_withdrawn(self) -> int:
        """Amount taken beyond what the stale books still show as deployed."""
        return max(self.attacker_total - self.deployed_amount, 0)


@dataclass(frozen=True)
class FeeInflationResult:
    stale_deployed: int
    true_deployed: int
    stale_fee: int
    true_fee: int
    overcharge: int
    overcharge_percent: Decimal


@dataclass(frozen=True)
class LiquidationBypassResult:
    stale_ratio_percent: int
    true_ratio_percent: int
    stale_safe: bool
    true_safe: bool

    @property
    def bypassed(self) -> bool:
        """The safety check passes on stale state although the true state is unsafe."""
        return self.stale_safe and not self.true_safe


@dataclass(frozen=True)
class PocResult:
    version: str
    consistent_after_deploy: bool
    consistent_after_vulnerable: bool
    consistent_after_fixed: bool


@dataclass(frozen=True)
class RegressionResult:
    version: str
    mode: WithdrawMode
    check: DeploymentCheck
    steps: Tuple[DeploymentCheck, ...] = field(default_factory=tuple)

    @property
    def vulnerable(self) -> bool:
        return self.check.vulnerable


def _new_account(name: str, config: ScenarioConfig, mode: WithdrawMode, sink: Sink) -> StrategyAccount:
    return StrategyAccount(
        name,
        config.initial_supply,
        mode=mode,
        fee_rate_bps=config.fee_rate_bps,
        safe_ratio_percent=config.safe_ratio_percent,
        verbose=True,
        sink=sink,
    )


# ============================================================================
# ATTACK SCENARIOS
# ============================================================================

def attack_repeated_withdrawal(config: ScenarioConfig = DEFAULT_CONFIG, sink: Sink = print) -> RepeatedWithdrawalResult:
    """Attack A: withdraw the same principal again and again."""
    out = Narrator(sink)
    out.banner("Attack A: repeated / excess withdrawal")

    account = _new_account("attack-a", config, WithdrawMode.VULNERABLE, sink)

    out.step("Initial setup", f"deploy {format_ether(config.repeat_deploy)} tokens")
    account.deploy(config.repeat_deploy)
    account.check_consistency()

    flags: List[bool] = []
    for i in range(1, config.repeat_count + 1):
        out.divider()
        out.step(f"Withdrawal #{i}",
                 f"attacker calls withdraw({format_ether(config.repeat_withdraw)}, attacker)")
        if i > 1:
            out.line("   deployedAmount was never reduced, so the full principal still looks withdrawable")
        account.withdraw_vulnerable(config.repeat_withdraw, config.attacker)
        out.line(f"   attacker balance: {format_ether(account.total_paid_to(config.attacker))}")
        flags.append(bool(account.check_consistency()))

    attacker_total = account.total_paid_to(config.attacker)
    result = RepeatedWithdrawalResult(
        attacker_total=attacker_total,
        remaining_balance=account.balance,
        deployed_amount=account.deployed_amount,
        stolen_percent=_percent(attacker_total, config.initial_supply),
        consistency_after_each_step=tuple(flags),
    )

    out.line()
    out.banner("Result")
    out.line(f"attacker withdrew in total: {format_ether(result.attacker_total)} tokens")
    out.line(f"strategy balance left: {format_ether(result.remaining_balance)} tokens")
    out.line(f"deployedAmount still reports: {format_ether(result.deployed_amount)} tokens")
    out.line(f"share of initial supply taken: {result.stolen_percent}%")
    return result


def attack_fee_inflation(config: ScenarioConfig = DEFAULT_CONFIG, sink: Sink = print) -> FeeInflationResult:
    """Attack B: performance fee charged on a stale deployed amount."""
    out = Narrator(sink)
    out.banner("Attack B: performance fee manipulation")

    account = _new_account("attack-b", config, WithdrawMode.VULNERABLE, sink)

    out.step("Initial setup", f"deploy {format_ether(config.fee_deploy)} tokens")
    account.deploy(config.fee_deploy)
    account.check_consistency()

    out.divider()
    out.step("Withdrawal", f"attacker calls withdraw({format_ether(config.fee_withdraw)}, attacker)")
    account.withdraw_vulnerable(config.fee_withdraw, config.attacker)
    account.check_consistency()

    out.divider()
    out.step("Fee on tracked deployedAmount")
    stale = account.performance_fee()
    out.line(f"   basis: {format_ether(stale.basis)}")
    out.line(f"   fee: {format_ether(stale.fee)}")

    out.divider()
    out.step("Fee on true deployed amount")
    true_deployed = account.check_deployed_tracking().expected_deployed
    true_fee = calculate_performance_fee(true_deployed, config.fee_rate_bps)
    out.line(f"   basis: {format_ether(true_deployed)}")
    out.line(f"   fee: {format_ether(true_fee)}")

    overcharge = stale.fee - true_fee
    result = FeeInflationResult(
        stale_deployed=stale.basis,
        true_deployed=true_deployed,
        stale_fee=stale.fee,
        true_fee=true_fee,
        overcharge=overcharge,
        overcharge_percent=_percent(overcharge, true_fee),
    )
    out.line(f"\nfee overcharged: {format_ether(result.overcharge)} "
             f"({result.overcharge_percent}% of the correct fee)")
    return result


def attack_liquidation_bypass(config: ScenarioConfig = DEFAULT_CONFIG, sink: Sink = print) -> LiquidationBypassResult:
    """Attack C: stale deployed amount keeps the collateral ratio looking safe."""
    out = Narrator(sink)
    out.banner("Attack C: liquidation threshold manipulation")

    account = _new_account("attack-c", config, WithdrawMode.VULNERABLE, sink)

    out.step("Initial setup", f"deploy {format_ether(config.liquidation_deploy)} tokens")
    account.deploy(config.liquidation_deploy)
    account.check_consistency()
    account.check_liquidation_threshold()

    out.divider()
    out.step("Withdrawal", f"attacker calls withdraw({format_ether(config.liquidation_withdraw)}, attacker)")
    account.withdraw_vulnerable(config.liquidation_withdraw, config.attacker)
    account.check_consistency()

    out.divider()
    out.step("Threshold check on tracked deployedAmount")
    stale = account.check_liquidation_threshold()

    out.divider()
    out.step("Threshold check on true deployed amount")
    # the fixed rule lowers supply along with the deployed amount
    tracking = account.check_deployed_tracking()
    true_supply = account.total_supply - tracking.extracted_amount
    true_ratio = calculate_collateral_ratio(tracking.expected_deployed, true_supply)
    true_safe = is_collateral_safe(true_ratio, config.safe_ratio_percent)
    out.line(f"   true collateral ratio: {true_ratio}%")

    result = LiquidationBypassResult(
        stale_ratio_percent=stale.ratio_percent,
        true_ratio_percent=true_ratio,
        stale_safe=stale.safe,
        true_safe=true_safe,
    )
    if result.bypassed:
        out.line("   true ratio is below the threshold: liquidation should have triggered")
        out.line("   the protection never fired because the check read stale state")
    elif not true_safe:
        out.line("   both reads are below the threshold: liquidation triggers either way")
    else:
        out.line("   true ratio is still safe")
    return result


@dataclass(frozen=True)
class AttackProfile:
    name: str
    description: str
    runner: Callable[..., object]


ATTACKS: Dict[str, AttackProfile] = {
    "A": AttackProfile("repeated / excess withdrawal",
                       "reuse the never-decremented deployedAmount to withdraw again",
                       attack_repeated_withdrawal),
    "B": AttackProfile("performance fee manipulation",
                       "fees computed from the wrong deployedAmount",
                       attack_fee_inflation),
    "C": AttackProfile("liquidation threshold manipulation",
                       "wrong deployedAmount keeps the safety threshold satisfied",
                       attack_liquidation_bypass),
}

ALL_ATTACKS = "all"
DEFAULT_ATTACK = "A"


def attack_selectors() -> Tuple[str, ...]:
    return tuple(ATTACKS) + (ALL_ATTACKS,)


def run_attacks(selector: str, config: ScenarioConfig = DEFAULT_CONFIG, sink: Sink = print) -> Dict[str, object]:
    """
    Run one attack, or every attack in order for "all".

    Returns:
        Dict mapping attack key to that scenario's result object.

    Raises:
        UnknownSelector: If selector is neither an attack key nor "all"
    """
    if selector == ALL_ATTACKS:
        keys = list(ATTACKS)
    elif selector in ATTACKS:
        keys = [selector]
    else:
        raise UnknownSelector("attack", selector, attack_selectors())

    results = {}
    for i, key in enumerate(keys):
        if i > 0:
            sink("\n" + "=" * 80)
        results[key] = ATTACKS[key].runner(config, sink)
    return results


# ============================================================================
# POC WALKTHROUGH
# ============================================================================

VULNERABLE_WITHDRAW_SOURCE = [
    "function _withdraw(uint256 amount, address to) internal virtual override {",
    "    if (aaveV3().withdraw(_collateralToken, amount, to) != amount) revert InvalidWithdrawAmount();",
    "    // missing: _deployedAmount -= amount;",
    "}",
]

FIXED_WITHDRAW_SOURCE = [
    "function _withdraw(uint256 amount, address to) internal virtual override {",
    "    if (aaveV3().withdraw(_collateralToken, amount, to) != amount) revert InvalidWithdrawAmount();",
    "    _deployedAmount -= amount;",
    "}",
]


def run_poc(version: str = DEFAULT_VERSION, config: ScenarioConfig = DEFAULT_CONFIG, sink: Sink = print) -> PocResult:
    """
    Step-by-step comparison of the two _withdraw rules.

    The vulnerable and fixed withdrawals start from the same post-deploy
    snapshot, so the only difference between the two consistency checks is
    the update rule.
    """
    profile = resolve_version(version)
    out = Narrator(sink)
    out.banner("_withdraw deployedAmount PoC (step by step)")
    out.line(f"version: {version} ({profile.description})")

    out.step("0. Affected code",
             "file: StrategyLeverageAAVEv3.sol",
             "function: _withdraw(uint256 amount, address to)",
             "issue: _deployedAmount is never updated")
    out.section("vulnerable")
    out.code(VULNERABLE_WITHDRAW_SOURCE)
    out.section("fixed")
    out.code(FIXED_WITHDRAW_SOURCE)

    account = _new_account("poc", config, profile.mode, sink)

    out.divider()
    out.step("1. Baseline deploy",
             "purpose: establish a consistent starting state",
             f"deploy {format_ether(config.poc_deploy)} tokens")
    baseline = account.deploy(config.poc_deploy)
    after_deploy = bool(account.check_consistency())

    out.divider()
    out.step("2. Vulnerable _withdraw",
             f"withdraw {format_ether(config.poc_withdraw)} without touching deployedAmount")
    account.withdraw_vulnerable(config.poc_withdraw, config.user)
    after_vulnerable = bool(account.check_consistency())

    out.divider()
    out.step("3. Fixed _withdraw",
             "restore the baseline, then withdraw with deployedAmount updated")
    account.restore(baseline)
    account.withdraw_fixed(config.poc_withdraw, config.user)
    after_fixed = bool(account.check_consistency())

    return PocResult(
        version=version,
        consistent_after_deploy=after_deploy,
        consistent_after_vulnerable=after_vulnerable,
        consistent_after_fixed=after_fixed,
    )


# ============================================================================
# REGRESSION CHECK
# ============================================================================

def _emit_tracking(out: Narrator, check: DeploymentCheck) -> None:
    out.line(f"   baseline: {format_ether(check.baseline)}")
    out.line(f"   deployedAmount: {format_ether(check.deployed_amount)}")
    out.line(f"   extracted: {format_ether(check.extracted_amount)}")
    out.line(f"   expected deployedAmount: {format_ether(check.expected_deployed)}")
    if check.vulnerable:
        out.line(f"   DEFECT: deployedAmount off by {format_ether(check.difference)}; "
                 "the same amount can be withdrawn again")
    elif check.extracted_amount > 0:
        out.line("   ok: deployedAmount tracks withdrawals")
    else:
        out.line("   no withdrawals yet")


def run_regression(version: str = DEFAULT_VERSION, config: ScenarioConfig = DEFAULT_CONFIG, sink: Sink = print) -> RegressionResult:
    """
    Pass/fail check for the missing decrement on a given contract version.

    The version selects the withdraw rule. After the configured withdrawals
    the deployed amount must equal baseline - extracted; otherwise the run
    reports the defect.
    """
    profile = resolve_version(version)
    out = Narrator(sink)
    out.banner("deployedAmount regression check")
    out.line(f"version: {version} ({profile.description})")
    out.line(f"withdraw rule: {profile.mode.value}")

    account = _new_account("regression", config, profile.mode, sink)

    out.step("Step 1: initial deploy")
    account.deploy(config.regression_deploy)
    check = account.check_deployed_tracking()
    _emit_tracking(out, check)

    steps: List[DeploymentCheck] = []
    for i, amount in enumerate(config.regression_withdrawals, start=2):
        out.divider()
        out.step(f"Step {i}: withdraw {format_ether(amount)}")
        account.withdraw(amount, config.user)
        check = account.check_deployed_tracking()
        steps.append(check)
        _emit_tracking(out, check)

    result = RegressionResult(version=version, mode=profile.mode, check=check, steps=tuple(steps))

    out.line()
    out.banner("Regression result")
    if result.vulnerable:
        out.line("DEFECT FOUND: deployedAmount is not updated on withdraw")
        out.line(f"total extracted: {format_ether(check.extracted_amount)}")
        out.line(f"deployedAmount still: {format_ether(check.deployed_amount)}")
    else:
        out.line("no defect: deployedAmount is updated on withdraw")
    return result

