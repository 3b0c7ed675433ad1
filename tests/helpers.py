"""
helpers.py - Shared constants for strategy_ledger tests
"""

from strategy_ledger import to_wad


INITIAL_SUPPLY = to_wad(1_000_000)
ATTACKER = "0xAttacker123456789012345678901234567890"
USER = "0x1234567890123456789012345678901234567890"


def tokens(amount) -> int:
    """Shorthand for to_wad in assertions."""
    return to_wad(amount)
