"""
conftest.py - Shared pytest fixtures for strategy_ledger tests

Provides common fixtures used across unit and functional tests:
- Fresh accounts (empty, deployed)
- Collecting sink for narration assertions
"""

import pytest

from strategy_ledger import StrategyAccount, WithdrawMode, CollectingSink

from tests.helpers import INITIAL_SUPPLY, tokens


@pytest.fixture
def account():
    """Account with 1,000,000 tokens minted and nothing deployed."""
    return StrategyAccount("test", INITIAL_SUPPLY)


@pytest.fixture
def deployed_account():
    """Account with 100,000 of 1,000,000 tokens deployed."""
    acct = StrategyAccount("test", INITIAL_SUPPLY)
    acct.deploy(tokens(100_000))
    return acct


@pytest.fixture
def fixed_account():
    """Deployed account whose default withdraw rule is FIXED."""
    acct = StrategyAccount("test-fixed", INITIAL_SUPPLY, mode=WithdrawMode.FIXED)
    acct.deploy(tokens(100_000))
    return acct


@pytest.fixture
def sink():
    return CollectingSink()
