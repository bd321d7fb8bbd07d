"""
draft.py - Copy-on-write working set for building operations

A Draft overlays pending record writes on top of a read-only LedgerView.
Compute functions read through it (seeing their own earlier writes), then
call build() to turn the overlay into a PendingOperation. Nothing reaches
the ledger until Ledger.execute() applies the result, so a compute function
that raises part-way leaves no trace.
"""

from __future__ import annotations
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from .core import (
    LedgerView, Table, PLATFORM_KEY, UINT64_MAX, ZERO_BALANCE,
    AccountBalance, Payment, Escrow, Subscription, PlatformState,
    StateChange, PendingOperation, OperationOrigin, CustodyTransfer,
    InvalidAmount,
)


class Draft:
    """
    Pending record writes against a LedgerView.

    Example:
        draft = Draft(view)
        bal = draft.balance("alice")
        draft.put_balance("alice", replace(bal, available=bal.available + 100))
        pending = draft.build(OperationOrigin(OperationType.DEPOSIT, "alice"))
    """

    def __init__(self, view: LedgerView):
        self.view = view
        self._writes: Dict[Tuple[Table, Any], Any] = {}
        # First-touch order, so changes apply in the order they were made
        self._order: List[Tuple[Table, Any]] = []

    @property
    def now(self) -> int:
        return self.platform().clock

    def _read(self, table: Table, key: Any) -> Optional[Any]:
        if (table, key) in self._writes:
            return self._writes[(table, key)]
        return self.view.get_record(table, key)

    def _write(self, table: Table, key: Any, record: Any) -> None:
        if (table, key) not in self._writes:
            self._order.append((table, key))
        self._writes[(table, key)] = record

    # ------------------------------------------------------------------
    # Typed accessors
    # ------------------------------------------------------------------

    def balance(self, account: str) -> AccountBalance:
        """Balance for an account; an absent entry reads as all-zero."""
        record = self._read(Table.BALANCES, account)
        return record if record is not None else ZERO_BALANCE

    def put_balance(self, account: str, balance: AccountBalance) -> None:
        self._write(Table.BALANCES, account, balance)

    def payment(self, payment_id: int) -> Optional[Payment]:
        return self._read(Table.PAYMENTS, payment_id)

    def put_payment(self, payment_id: int, payment: Payment) -> None:
        self._write(Table.PAYMENTS, payment_id, payment)

    def escrow(self, payment_id: int) -> Optional[Escrow]:
        return self._read(Table.ESCROWS, payment_id)

    def put_escrow(self, payment_id: int, escrow: Escrow) -> None:
        self._write(Table.ESCROWS, payment_id, escrow)

    def subscription(self, subscription_id: int) -> Optional[Subscription]:
        return self._read(Table.SUBSCRIPTIONS, subscription_id)

    def put_subscription(self, subscription_id: int, subscription: Subscription) -> None:
        self._write(Table.SUBSCRIPTIONS, subscription_id, subscription)

    def platform(self) -> PlatformState:
        return self._read(Table.PLATFORM, PLATFORM_KEY)

    def put_platform(self, platform: PlatformState) -> None:
        self._write(Table.PLATFORM, PLATFORM_KEY, platform)

    def allocate_id(self) -> int:
        """
        Take the next id from the shared payment/subscription counter.

        Ids start at 1 and are never reused.
        """
        platform = self.platform()
        if platform.payment_counter >= UINT64_MAX:
            raise InvalidAmount("payment id space exhausted")
        new_id = platform.payment_counter + 1
        self.put_platform(replace(platform, payment_counter=new_id))
        return new_id

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def changes(self) -> Tuple[StateChange, ...]:
        """Collect writes that differ from the underlying view."""
        result = []
        for table, key in self._order:
            old = self.view.get_record(table, key)
            new = self._writes[(table, key)]
            if old != new:
                result.append(StateChange(table=table, key=key, old=old, new=new))
        return tuple(result)

    def build(
        self,
        origin: OperationOrigin,
        result: Any = None,
        transfer: Optional[CustodyTransfer] = None,
    ) -> PendingOperation:
        """
        Turn the overlay into a PendingOperation.

        Args:
            origin: Operation classification and caller
            result: Value the caller receives once the operation is applied
            transfer: Custody transfer to perform with the changes

        Returns:
            A PendingOperation bound to the view's current sequence
        """
        return PendingOperation(
            changes=self.changes(),
            origin=origin,
            timestamp=self.view.current_time,
            sequence=self.view.sequence,
            result=result,
            transfer=transfer,
        )
