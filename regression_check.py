#!/usr/bin/env python3
"""
regression_check.py - deployedAmount regression check

Focuses on whether the defect is present rather than on full state
consistency: after a series of withdrawals the tracked deployed amount must
equal the deployed baseline minus everything withdrawn.

Exit status: 0 when no defect is found, 1 when it is (or on error).

Run:
    python regression_check.py --version b-pre-mitigation    # exits 1
    python regression_check.py --version latest              # exits 0
"""

import sys

from strategy_ledger.cli import regression_main


if __name__ == "__main__":
    sys.exit(regression_main())
