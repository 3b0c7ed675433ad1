#!/usr/bin/env python3
"""
attack_demo.py - External attack surface of the missing deployedAmount update

Walks through three ways an attacker profits when _withdraw never decrements
the strategy's deployed amount:

  A: repeated / excess withdrawal (most direct, most dangerous)
  B: performance fee / pricePerShare manipulation (subtle, high impact)
  C: liquidation / lending threshold manipulation (indirect, chained risk)

Run:
    python attack_demo.py --attack A
    python attack_demo.py --attack B
    python attack_demo.py --attack C
    python attack_demo.py --attack all
"""

import sys

from strategy_ledger.cli import attack_main


if __name__ == "__main__":
    sys.exit(attack_main())
