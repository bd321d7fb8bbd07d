"""
payments.py - Instant Payments

compute_payment() debits the sender principal plus fee, credits the
recipient the principal, and records a COMPLETED payment. The fee is not
credited to any account: it stays with the custodian.
"""

from __future__ import annotations
from typing import Optional

from .core import (
    LedgerView, PendingOperation, OperationOrigin, OperationType,
    Payment, PaymentStatus, PlatformState,
    InvalidAmount, require_uint,
)
from .balances import debit, credit
from .draft import Draft
from .fees import compute_fee, record_settlement


def validate_parties(sender: str, recipient: str) -> None:
    """
    Check that a payment moves funds between two different accounts.

    Raises:
        InvalidAmount: If sender and recipient are the same account.
    """
    if sender == recipient:
        raise InvalidAmount(f"sender and recipient must differ, got {sender!r} for both")


def validate_payment_amount(platform: PlatformState, amount: int) -> int:
    """
    Check a principal against the platform minimum.

    Raises:
        InvalidAmount: If amount is not a uint64, is zero, or is below
            the minimum payment amount.
    """
    require_uint(amount, "amount")
    if amount == 0 or amount < platform.min_payment_amount:
        raise InvalidAmount(
            f"amount {amount} below minimum payment {platform.min_payment_amount}"
        )
    return amount


def compute_payment(
    view: LedgerView,
    sender: str,
    recipient: str,
    amount: int,
    memo: Optional[str] = None,
) -> PendingOperation:
    """
    Transfer funds from sender to recipient immediately.

    Checks, in order: distinct parties, amount floor, then sender balance.

    Args:
        view: Read-only ledger access
        sender: Paying account (the caller)
        recipient: Receiving account
        amount: Principal, excluding fee
        memo: Optional free text stored on the payment

    Returns:
        PendingOperation whose result is the new payment id

    Raises:
        InvalidAmount: If sender == recipient, or amount is below the minimum payment
        InsufficientBalance: If sender's available < amount + fee

    Example:
        # rate 25 bps: alice pays 2000 + 5 fee, bob receives 2000
        payment_id = ledger.submit(
            compute_payment(ledger, "alice", "bob", 2000, "invoice 7")
        )
    """
    validate_parties(sender, recipient)
    draft = Draft(view)
    platform = draft.platform()
    validate_payment_amount(platform, amount)

    fee = compute_fee(amount, platform.fee_rate_bps)
    debit(draft, sender, amount + fee, principal=amount)
    credit(draft, recipient, amount)

    payment_id = draft.allocate_id()
    draft.put_payment(payment_id, Payment(
        sender=sender,
        recipient=recipient,
        amount=amount,
        fee=fee,
        status=PaymentStatus.COMPLETED,
        created_at=draft.now,
        memo=memo,
    ))
    record_settlement(draft, amount, fee)

    return draft.build(
        OperationOrigin(OperationType.CREATE_PAYMENT, caller=sender, reference=payment_id),
        result=payment_id,
    )
