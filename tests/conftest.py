"""
conftest.py - Shared pytest fixtures for payledger tests

Provides common fixtures used across unit, functional and conformance tests:
- Basic ledgers (empty, funded, custodial)
- Ledgers with an open escrow or subscription
"""

import pytest

from payledger import Ledger, PlatformConfig, InMemoryCustody

from tests.helpers import ADMIN, ALICE, BOB, CAROL, make_ledger


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def empty_ledger():
    """Fresh ledger with default fee rate (25 bps) and minimum payment (1000)."""
    return make_ledger()


@pytest.fixture
def funded_ledger(empty_ledger):
    """Ledger with alice holding 10,000 and bob 5,000."""
    empty_ledger.deposit(ALICE, 10_000)
    empty_ledger.deposit(BOB, 5_000)
    return empty_ledger


@pytest.fixture
def custody():
    """Custodian with external holdings for alice and bob."""
    return InMemoryCustody({ALICE: 50_000, BOB: 20_000})


@pytest.fixture
def custodial_ledger(custody):
    """Ledger wired to an in-memory custodian."""
    return Ledger("custodial", PlatformConfig(admin=ADMIN), custody=custody, verbose=False)


# =============================================================================
# ESCROW / SUBSCRIPTION FIXTURES
# =============================================================================

@pytest.fixture
def escrow_ledger():
    """
    Alice deposited 10,000 and escrowed 3,000 to bob with carol as arbiter.

    Fee is 7, so alice has 6,993 available and 3,007 locked. The escrow id
    is 1 and the deadline is now + 100.
    """
    ledger = make_ledger("escrow")
    ledger.deposit(ALICE, 10_000)
    ledger.create_escrow_payment(ALICE, BOB, 3_000, CAROL, ledger.current_time + 100, "escrow test")
    return ledger


@pytest.fixture
def subscription_ledger():
    """Alice deposited 20,000 and subscribed bob to 1,500 every 10 ticks (id 1)."""
    ledger = make_ledger("subscription")
    ledger.deposit(ALICE, 20_000)
    ledger.create_subscription(ALICE, BOB, 1_500, 10)
    return ledger
