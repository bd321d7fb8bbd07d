"""
test_core_types.py - Unit tests for core data structures

Tests:
- Record defaults and immutability
- PlatformConfig validation
- Error codes
- require_uint
- StateChange.changed_fields
- PendingOperation intent ids
- Operation repr and to_pending
"""

import pytest
from dataclasses import FrozenInstanceError

from payledger import (
    AccountBalance, Payment, PaymentStatus, EscrowCondition, Subscription,
    PlatformConfig, PlatformState, Table, OperationType, OperationOrigin,
    StateChange, PendingOperation, Operation, CustodyTransfer, TransferDirection,
    Unauthorized, InsufficientBalance, PaymentNotFound, PaymentAlreadyCompleted,
    PaymentExpired, InvalidAmount, PaymentError, LedgerError,
    require_uint, ZERO_BALANCE, UINT64_MAX,
)
from payledger.core import _canonicalize, ordering_key


class TestRecords:
    """Tests for immutable record types."""

    def test_zero_balance(self):
        assert ZERO_BALANCE == AccountBalance(0, 0, 0, 0)

    def test_balance_is_frozen(self):
        bal = AccountBalance(available=10)
        with pytest.raises(FrozenInstanceError):
            bal.available = 20

    def test_payment_defaults(self):
        p = Payment("alice", "bob", 2000, 5, PaymentStatus.COMPLETED, created_at=0)
        assert p.expires_at is None
        assert p.memo is None
        assert p.escrow_conditions is None

    def test_subscription_defaults(self):
        s = Subscription("alice", "bob", 1500, 10, last_payment=0)
        assert s.active is True
        assert s.payments_made == 0

    def test_status_values(self):
        assert PaymentStatus.COMPLETED.value == "completed"
        assert PaymentStatus.ESCROWED.value == "escrowed"
        assert PaymentStatus.REFUNDED.value == "refunded"
        assert EscrowCondition.ARBITER_RELEASE.value == "arbiter-release"

    def test_platform_state_from_config(self):
        state = PlatformState.from_config(PlatformConfig(admin="owner", initial_time=7))
        assert state.admin == "owner"
        assert state.fee_rate_bps == 25
        assert state.min_payment_amount == 1000
        assert state.clock == 7
        assert state.payment_counter == 0
        assert state.total_volume == 0


class TestPlatformConfig:
    """PlatformConfig rejects invalid initialization values."""

    def test_defaults(self):
        config = PlatformConfig()
        assert config.admin == "admin"
        assert config.fee_rate_bps == 25
        assert config.min_payment_amount == 1000
        assert config.initial_time == 0

    def test_empty_admin_raises(self):
        with pytest.raises(ValueError, match="admin"):
            PlatformConfig(admin="  ")

    def test_missing_admin_raises(self):
        with pytest.raises(ValueError, match="admin"):
            PlatformConfig(admin=None)

    @pytest.mark.parametrize("admin", [7, 0, ("org", 1)])
    def test_non_string_admin_accepted(self, admin):
        assert PlatformConfig(admin=admin).admin == admin

    def test_fee_above_cap_raises(self):
        with pytest.raises(ValueError, match="fee_rate_bps"):
            PlatformConfig(fee_rate_bps=1001)

    def test_negative_min_payment_raises(self):
        with pytest.raises(InvalidAmount):
            PlatformConfig(min_payment_amount=-1)


class TestErrors:
    """Error taxonomy and codes."""

    @pytest.mark.parametrize("exc, code", [
        (Unauthorized, 100),
        (InsufficientBalance, 101),
        (PaymentNotFound, 102),
        (PaymentAlreadyCompleted, 103),
        (PaymentExpired, 104),
        (InvalidAmount, 105),
    ])
    def test_codes(self, exc, code):
        assert exc.code == code
        assert issubclass(exc, PaymentError)
        assert issubclass(exc, LedgerError)


class TestRequireUint:
    """Tests for require_uint."""

    def test_accepts_bounds(self):
        assert require_uint(0, "x") == 0
        assert require_uint(UINT64_MAX, "x") == UINT64_MAX

    def test_rejects_above_ceiling(self):
        with pytest.raises(InvalidAmount, match="uint64"):
            require_uint(UINT64_MAX + 1, "x")

    def test_rejects_negative(self):
        with pytest.raises(InvalidAmount):
            require_uint(-5, "x")

    @pytest.mark.parametrize("value", [1.0, "10", None, False])
    def test_rejects_non_int(self, value):
        with pytest.raises(InvalidAmount, match="integer"):
            require_uint(value, "x")


class TestStateChange:
    """Tests for StateChange.changed_fields."""

    def test_changed_fields_on_update(self):
        sc = StateChange(
            Table.BALANCES, "alice",
            old=AccountBalance(available=100),
            new=AccountBalance(available=40, locked=60),
        )
        assert sc.changed_fields() == {"available": (100, 40), "locked": (0, 60)}

    def test_changed_fields_on_insert(self):
        sc = StateChange(Table.BALANCES, "bob", old=None, new=AccountBalance(available=5))
        assert sc.changed_fields() == {"available": (None, 5), "locked": (None, 0),
                                       "total_sent": (None, 0), "total_received": (None, 0)}


class TestIntentId:
    """Tests for PendingOperation intent ids."""

    def _pending(self, sequence=0, available=100):
        return PendingOperation(
            changes=(StateChange(Table.BALANCES, "alice", None, AccountBalance(available=available)),),
            origin=OperationOrigin(OperationType.DEPOSIT, caller="alice"),
            timestamp=0,
            sequence=sequence,
            result=available,
            transfer=CustodyTransfer(TransferDirection.INTO_CUSTODY, "alice", available),
        )

    def test_intent_id_is_deterministic(self):
        assert self._pending().intent_id == self._pending().intent_id
        assert len(self._pending().intent_id) == 16

    def test_intent_id_depends_on_sequence(self):
        assert self._pending(sequence=0).intent_id != self._pending(sequence=1).intent_id

    def test_intent_id_depends_on_content(self):
        assert self._pending(available=100).intent_id != self._pending(available=101).intent_id

    def test_is_empty(self):
        empty = PendingOperation((), OperationOrigin(OperationType.SET_FEE, "owner"), 0, 0)
        assert empty.is_empty()
        assert not self._pending().is_empty()

    def test_canonicalize_sorts_dict_keys(self):
        assert _canonicalize({"b": 1, "a": 2}) == _canonicalize({"a": 2, "b": 1})

    def test_canonicalize_distinguishes_types(self):
        assert _canonicalize(1) != _canonicalize("1")
        assert _canonicalize(True) != _canonicalize(1)

    def test_ordering_key_mixes_ints_and_strings(self):
        keys = ["bob", 10, "alice", 2]
        assert sorted(keys, key=ordering_key) == [2, 10, "alice", "bob"]

    def test_ordering_key_keeps_bool_apart_from_int(self):
        assert ordering_key(True) != ordering_key(1)


class TestOperation:
    """Tests for executed Operation records."""

    def test_to_pending_round_trips_intent(self, funded_ledger):
        op = funded_ledger.operation_log[0]
        assert op.to_pending().intent_id == op.intent_id

    def test_repr_lists_changes(self, funded_ledger):
        text = repr(funded_ledger.operation_log[0])
        assert "Operation: exec:test:000000000000:0" in text
        assert "[balances:alice]" in text
        assert "available: None → 10000" in text
        assert "custody" in text
