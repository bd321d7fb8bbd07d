"""
Tests for draft.py - Copy-on-write working set

Tests:
- Reads fall through to the view until written
- changes() reports only real differences, in first-touch order
- allocate_id() uses the shared counter
- build() binds to the view's time and sequence
"""

import pytest
from dataclasses import replace

from payledger import (
    Draft, AccountBalance, PlatformConfig, PlatformState, Table,
    OperationOrigin, OperationType, InvalidAmount, UINT64_MAX, ZERO_BALANCE,
)
from tests.fake_view import FakeView


def _view(**kwargs):
    kwargs.setdefault("platform", PlatformState.from_config(PlatformConfig(admin="owner")))
    return FakeView(**kwargs)


class TestDraftReads:
    """Reads see the view, then the draft's own writes."""

    def test_absent_balance_reads_zero(self):
        draft = Draft(_view())
        assert draft.balance("nobody") == ZERO_BALANCE

    def test_reads_view_record(self):
        draft = Draft(_view(balances={"alice": AccountBalance(available=50)}))
        assert draft.balance("alice").available == 50

    def test_reads_own_write(self):
        view = _view(balances={"alice": AccountBalance(available=50)})
        draft = Draft(view)
        draft.put_balance("alice", AccountBalance(available=10))
        assert draft.balance("alice").available == 10
        # View untouched
        assert view.get_record(Table.BALANCES, "alice").available == 50

    def test_now_tracks_platform_clock(self):
        platform = PlatformState.from_config(PlatformConfig(admin="owner", initial_time=42))
        assert Draft(_view(platform=platform)).now == 42


class TestDraftChanges:
    """changes() materializes the overlay."""

    def test_no_writes_no_changes(self):
        assert Draft(_view()).changes() == ()

    def test_write_back_same_record_is_dropped(self):
        bal = AccountBalance(available=50)
        draft = Draft(_view(balances={"alice": bal}))
        draft.put_balance("alice", replace(bal))
        assert draft.changes() == ()

    def test_changes_keep_first_touch_order(self):
        draft = Draft(_view())
        draft.put_balance("bob", AccountBalance(available=1))
        draft.put_balance("alice", AccountBalance(available=2))
        draft.put_balance("bob", AccountBalance(available=3))
        keys = [sc.key for sc in draft.changes()]
        assert keys == ["bob", "alice"]

    def test_change_old_is_raw_view_record(self):
        draft = Draft(_view())
        draft.put_balance("carol", AccountBalance(available=5))
        (sc,) = draft.changes()
        assert sc.old is None
        assert sc.new == AccountBalance(available=5)


class TestAllocateId:
    """Ids come from the platform counter."""

    def test_ids_are_sequential(self):
        draft = Draft(_view())
        assert draft.allocate_id() == 1
        assert draft.allocate_id() == 2
        assert draft.platform().payment_counter == 2

    def test_exhausted_counter_raises(self):
        platform = replace(
            PlatformState.from_config(PlatformConfig(admin="owner")),
            payment_counter=UINT64_MAX,
        )
        with pytest.raises(InvalidAmount, match="exhausted"):
            Draft(_view(platform=platform)).allocate_id()


class TestBuild:
    """build() produces a bound PendingOperation."""

    def test_build_binds_sequence_and_time(self):
        platform = PlatformState.from_config(PlatformConfig(admin="owner", initial_time=9))
        draft = Draft(_view(platform=platform, sequence=4))
        draft.put_balance("alice", AccountBalance(available=1))
        pending = draft.build(OperationOrigin(OperationType.DEPOSIT, "alice"), result=1)
        assert pending.sequence == 4
        assert pending.timestamp == 9
        assert pending.result == 1
        assert len(pending.changes) == 1
