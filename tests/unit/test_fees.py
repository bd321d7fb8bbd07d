"""
Tests for fees.py - Platform Fee Calculation

Tests:
- compute_fee floor semantics at the default rate
- zero rate, maximum rate and amounts near the uint64 ceiling
- validate_fee_rate cap
- Ledger.calculate_fee tracks the current rate
- Volume and retained-fee counters stay within uint64
"""

import pytest
from dataclasses import replace
from hypothesis import given, settings
from hypothesis import strategies as st

from payledger import (
    AccountBalance, Draft, PlatformConfig, PlatformState,
    compute_fee, compute_payment, validate_fee_rate, InvalidAmount,
    UINT64_MAX, MAX_FEE_RATE_BPS, DEFAULT_FEE_RATE_BPS,
)
from payledger.fees import record_settlement, retain_fee
from tests.fake_view import FakeView
from tests.helpers import ADMIN, ALICE, BOB, make_ledger


class TestComputeFee:
    """Tests for compute_fee."""

    def test_fee_on_minimum_amount_floors(self):
        """0.25% of 1000 is 2.5, floored to 2."""
        assert compute_fee(1000, 25) == 2

    def test_fee_on_ten_thousand(self):
        assert compute_fee(10_000, 25) == 25

    def test_fee_on_two_thousand(self):
        assert compute_fee(2_000, 25) == 5

    def test_fee_on_three_thousand(self):
        assert compute_fee(3_000, 25) == 7

    def test_zero_rate_is_free(self):
        assert compute_fee(123_456, 0) == 0

    def test_zero_amount(self):
        assert compute_fee(0, 25) == 0

    def test_max_rate(self):
        assert compute_fee(10_000, MAX_FEE_RATE_BPS) == 1_000

    def test_amount_at_uint64_ceiling(self):
        """No overflow: Python integers keep the exact product."""
        assert compute_fee(UINT64_MAX, DEFAULT_FEE_RATE_BPS) == UINT64_MAX * 25 // 10_000

    def test_rejects_negative_amount(self):
        with pytest.raises(InvalidAmount):
            compute_fee(-1, 25)

    def test_rejects_non_integer_amount(self):
        with pytest.raises(InvalidAmount):
            compute_fee(1000.0, 25)

    def test_rejects_bool(self):
        with pytest.raises(InvalidAmount):
            compute_fee(True, 25)

    @given(
        st.integers(min_value=0, max_value=UINT64_MAX),
        st.integers(min_value=0, max_value=MAX_FEE_RATE_BPS),
    )
    @settings(max_examples=200)
    def test_fee_is_floor_of_basis_points(self, amount, rate):
        """PROPERTY: fee == floor(amount * rate / 10000) and never exceeds 10%."""
        fee = compute_fee(amount, rate)
        assert fee == (amount * rate) // 10_000
        assert fee * 10_000 <= amount * rate < (fee + 1) * 10_000
        assert fee <= amount // 10 + 1


class TestValidateFeeRate:
    """Tests for validate_fee_rate."""

    def test_accepts_cap(self):
        assert validate_fee_rate(1000) == 1000

    def test_accepts_zero(self):
        assert validate_fee_rate(0) == 0

    def test_rejects_above_cap(self):
        with pytest.raises(InvalidAmount, match="exceeds cap"):
            validate_fee_rate(1001)


class TestLedgerCalculateFee:
    """Ledger.calculate_fee uses the rate in effect."""

    def test_default_rate(self):
        ledger = make_ledger()
        assert ledger.calculate_fee(10_000) == 25

    def test_after_rate_change(self):
        ledger = make_ledger()
        ledger.set_fee(ADMIN, 50)
        assert ledger.calculate_fee(10_000) == 50

    def test_calculate_fee_does_not_mutate(self):
        ledger = make_ledger()
        before = ledger.state_hash()
        ledger.calculate_fee(5_000)
        assert ledger.state_hash() == before
        assert ledger.sequence == 0


class TestAggregateCeilings:
    """Platform counters stay within uint64."""

    def _draft(self, **counters):
        platform = PlatformState.from_config(PlatformConfig(admin=ADMIN))
        return Draft(FakeView(
            balances={ALICE: AccountBalance(available=10_000)},
            platform=replace(platform, **counters),
        ))

    def test_record_settlement_volume_ceiling(self):
        draft = self._draft(total_volume=UINT64_MAX - 999)
        with pytest.raises(InvalidAmount, match="total_volume"):
            record_settlement(draft, 1_000, 2)
        assert draft.platform().total_volume == UINT64_MAX - 999

    def test_record_settlement_at_ceiling(self):
        draft = self._draft(total_volume=UINT64_MAX - 1_000)
        record_settlement(draft, 1_000, 2)
        assert draft.platform().total_volume == UINT64_MAX

    def test_retain_fee_ceiling(self):
        draft = self._draft(fees_retained=UINT64_MAX)
        with pytest.raises(InvalidAmount, match="fees_retained"):
            retain_fee(draft, 1)

    def test_payment_rejected_when_volume_would_overflow(self):
        platform = PlatformState.from_config(PlatformConfig(admin=ADMIN))
        view = FakeView(
            balances={ALICE: AccountBalance(available=10_000)},
            platform=replace(platform, total_volume=UINT64_MAX),
        )
        with pytest.raises(InvalidAmount, match="total_volume"):
            compute_payment(view, ALICE, BOB, 1_000)
