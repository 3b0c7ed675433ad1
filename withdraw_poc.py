#!/usr/bin/env python3
"""
withdraw_poc.py - _withdraw state inconsistency PoC (step by step)

StrategyLeverageAAVEv3._withdraw does not update _deployedAmount, leaving the
strategy's books inconsistent and skewing performance fee accounting. This
walkthrough runs the vulnerable and the fixed update rule from the same
starting state and checks deployedAmount + balance == totalSupply after each.

Run:
    python withdraw_poc.py --version b-pre-mitigation
    python withdraw_poc.py --version b-post-mitigation
    python withdraw_poc.py --version latest
"""

import sys

from strategy_ledger.cli import poc_main


if __name__ == "__main__":
    sys.exit(poc_main())
