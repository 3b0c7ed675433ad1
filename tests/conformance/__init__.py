"""
Conformance Test Suite

This suite defines the NORMATIVE accounting behavior of StrategyAccount.

The tests are organized by invariant:
1. test_consistency.py - deployed_amount + balance == total_supply under the
   fixed rule, and the exact size of the drift under the vulnerable rule

These tests use hypothesis for property-based testing.
"""
