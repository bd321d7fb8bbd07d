"""
balances.py - Account balance primitives, deposits and withdrawals

This module owns every change to an AccountBalance:
1. debit() / credit() - move spendable funds, updating lifetime counters
2. lock() / unlock() / consume_locked() - move funds in and out of `locked`
3. compute_deposit() / compute_withdraw() - custody boundary operations

The primitives act on a Draft and raise before writing anything, so an
operation that composes several of them either builds completely or not
at all.
"""

from __future__ import annotations
from dataclasses import replace
from typing import Optional

from .core import (
    LedgerView, PendingOperation, OperationOrigin, OperationType,
    CustodyTransfer, TransferDirection, UINT64_MAX,
    InsufficientBalance, InvalidAmount, InvariantViolation,
    require_uint,
)
from .draft import Draft


# ============================================================================
# PRIMITIVES
# ============================================================================

def debit(draft: Draft, account: str, amount: int, principal: Optional[int] = None) -> None:
    """
    Take spendable funds from an account.

    Args:
        draft: Working set to write to
        account: Account to debit
        amount: Amount removed from `available` (principal plus any fee)
        principal: Portion added to `total_sent` (defaults to amount)

    Raises:
        InsufficientBalance: If available < amount
    """
    bal = draft.balance(account)
    if bal.available < amount:
        raise InsufficientBalance(
            f"{account}: available {bal.available} < required {amount}"
        )
    sent = amount if principal is None else principal
    draft.put_balance(account, replace(
        bal,
        available=bal.available - amount,
        total_sent=require_uint(bal.total_sent + sent, "total_sent"),
    ))


def credit(draft: Draft, account: str, amount: int) -> None:
    """Add spendable funds to an account and count them as received."""
    bal = draft.balance(account)
    _check_ceiling(bal.available + amount, account)
    draft.put_balance(account, replace(
        bal,
        available=bal.available + amount,
        total_received=require_uint(bal.total_received + amount, "total_received"),
    ))


def lock(draft: Draft, account: str, amount: int) -> None:
    """
    Move funds from `available` to `locked`.

    Raises:
        InsufficientBalance: If available < amount
    """
    bal = draft.balance(account)
    if bal.available < amount:
        raise InsufficientBalance(
            f"{account}: available {bal.available} < lock amount {amount}"
        )
    draft.put_balance(account, replace(
        bal,
        available=bal.available - amount,
        locked=require_uint(bal.locked + amount, "locked"),
    ))


def unlock(draft: Draft, account: str, amount: int, restore: Optional[int] = None) -> None:
    """
    Release funds from `locked`, returning `restore` of them to `available`.

    Args:
        draft: Working set to write to
        account: Account holding the locked funds
        amount: Amount removed from `locked`
        restore: Amount added back to `available` (defaults to amount)

    Raises:
        InvariantViolation: If more is unlocked than is locked. Callers
            guarantee this cannot happen.
    """
    bal = draft.balance(account)
    if bal.locked < amount:
        raise InvariantViolation(
            f"{account}: unlocking {amount} but only {bal.locked} locked"
        )
    returned = amount if restore is None else restore
    draft.put_balance(account, replace(
        bal,
        available=bal.available + returned,
        locked=bal.locked - amount,
    ))


def consume_locked(draft: Draft, account: str, amount: int, principal: int) -> None:
    """
    Remove funds from `locked` without returning them to `available`.

    Used when an escrow settles: the principal is credited elsewhere and
    the fee leaves circulation. `principal` is added to `total_sent`.
    """
    bal = draft.balance(account)
    if bal.locked < amount:
        raise InvariantViolation(
            f"{account}: consuming {amount} but only {bal.locked} locked"
        )
    draft.put_balance(account, replace(
        bal,
        locked=bal.locked - amount,
        total_sent=require_uint(bal.total_sent + principal, "total_sent"),
    ))


def _check_ceiling(value: int, account: str) -> None:
    if value > UINT64_MAX:
        raise InvalidAmount(f"{account}: balance would exceed uint64 range")


def _require_positive(amount: int) -> int:
    require_uint(amount, "amount")
    if amount == 0:
        raise InvalidAmount("amount must be positive")
    return amount


# ============================================================================
# DEPOSIT / WITHDRAW
# ============================================================================

def compute_deposit(view: LedgerView, account: str, amount: int) -> PendingOperation:
    """
    Credit funds moved into custody to an account's available balance.

    The custody transfer is carried on the operation and performed by the
    ledger atomically with the balance change. Deposits do not count toward
    `total_received`.

    Args:
        view: Read-only ledger access
        account: Depositing account
        amount: Amount moved into custody (> 0)

    Returns:
        PendingOperation whose result is the deposited amount

    Raises:
        InvalidAmount: If amount is zero or not a uint64
    """
    _require_positive(amount)
    draft = Draft(view)
    bal = draft.balance(account)
    _check_ceiling(bal.available + amount, account)
    draft.put_balance(account, replace(bal, available=bal.available + amount))

    platform = draft.platform()
    draft.put_platform(replace(
        platform,
        total_deposited=require_uint(platform.total_deposited + amount, "total_deposited"),
    ))

    return draft.build(
        OperationOrigin(OperationType.DEPOSIT, caller=account),
        result=amount,
        transfer=CustodyTransfer(TransferDirection.INTO_CUSTODY, account, amount),
    )


def compute_withdraw(view: LedgerView, account: str, amount: int) -> PendingOperation:
    """
    Release available funds from custody back to the account holder.

    Raises:
        InvalidAmount: If amount is zero or not a uint64
        InsufficientBalance: If available < amount
    """
    _require_positive(amount)
    draft = Draft(view)
    bal = draft.balance(account)
    if bal.available < amount:
        raise InsufficientBalance(
            f"{account}: available {bal.available} < withdrawal {amount}"
        )
    draft.put_balance(account, replace(bal, available=bal.available - amount))

    platform = draft.platform()
    draft.put_platform(replace(
        platform,
        total_withdrawn=require_uint(platform.total_withdrawn + amount, "total_withdrawn"),
    ))

    return draft.build(
        OperationOrigin(OperationType.WITHDRAW, caller=account),
        result=amount,
        transfer=CustodyTransfer(TransferDirection.OUT_OF_CUSTODY, account, amount),
    )
