"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the payment ledger.

The tests are organized by invariant:
1. test_conservation.py - Held funds equal deposits minus withdrawals minus fees
2. test_atomicity.py - A failed operation leaves no trace
3. test_idempotency.py - Duplicate execution handling
4. test_determinism.py - Same operations, same state; replay reproduces it
5. test_temporal.py - Logical clock, due dates, deadlines and clone_at

These tests use hypothesis for property-based testing.
"""
