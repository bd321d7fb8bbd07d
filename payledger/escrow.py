"""
escrow.py - Arbiter-Mediated Escrow

State machine over a payment id:

    ESCROWED --release-->          COMPLETED
    ESCROWED --emergency refund--> REFUNDED

Both targets are terminal. Functions:
1. compute_escrow_payment() - lock sender funds and open the escrow
2. compute_release() - settle to the recipient (arbiter, sender or recipient may call)
3. compute_emergency_refund() - admin-only return of the principal to the sender

The escrow's dispute_deadline is stored but does not gate release or
refund.
"""

from __future__ import annotations
from dataclasses import replace
from typing import Optional

from .core import (
    LedgerView, PendingOperation, OperationOrigin, OperationType,
    Payment, PaymentStatus, Escrow, EscrowCondition,
    PaymentNotFound, PaymentAlreadyCompleted, PaymentExpired, Unauthorized,
    require_uint,
)
from .balances import credit, lock, unlock, consume_locked
from .draft import Draft
from .fees import compute_fee, record_settlement, retain_fee
from .payments import validate_parties, validate_payment_amount


def compute_escrow_payment(
    view: LedgerView,
    sender: str,
    recipient: str,
    amount: int,
    arbiter: str,
    deadline: int,
    memo: Optional[str] = None,
) -> PendingOperation:
    """
    Lock principal plus fee from the sender and open an escrow.

    Checks, in order: distinct parties, amount floor, deadline strictly in
    the future, sender balance. Total volume is not touched until the
    escrow is released.

    Args:
        view: Read-only ledger access
        sender: Paying account (the caller)
        recipient: Account the escrow settles to
        amount: Principal, excluding fee
        arbiter: Third party allowed to release
        deadline: Logical time stored as expiry and dispute deadline
        memo: Optional free text stored on the payment

    Returns:
        PendingOperation whose result is the new payment id

    Raises:
        InvalidAmount: If sender == recipient, or amount is below the minimum payment
        PaymentExpired: If deadline <= current time
        InsufficientBalance: If sender's available < amount + fee
    """
    validate_parties(sender, recipient)
    draft = Draft(view)
    platform = draft.platform()
    validate_payment_amount(platform, amount)

    require_uint(deadline, "deadline")
    if deadline <= draft.now:
        raise PaymentExpired(f"deadline {deadline} is not after current time {draft.now}")

    fee = compute_fee(amount, platform.fee_rate_bps)
    lock(draft, sender, amount + fee)

    payment_id = draft.allocate_id()
    draft.put_payment(payment_id, Payment(
        sender=sender,
        recipient=recipient,
        amount=amount,
        fee=fee,
        status=PaymentStatus.ESCROWED,
        created_at=draft.now,
        expires_at=deadline,
        memo=memo,
        escrow_conditions=EscrowCondition.ARBITER_RELEASE,
    ))
    draft.put_escrow(payment_id, Escrow(
        arbiter=arbiter,
        released=False,
        dispute_deadline=deadline,
    ))

    return draft.build(
        OperationOrigin(OperationType.CREATE_ESCROW_PAYMENT, caller=sender, reference=payment_id),
        result=payment_id,
    )


def compute_release(view: LedgerView, caller: str, payment_id: int) -> PendingOperation:
    """
    Settle an escrow to its recipient.

    The recipient is credited the principal. The sender's locked
    principal plus fee is consumed, not returned, so the fee leaves
    circulation exactly as on the instant path.

    Raises:
        PaymentNotFound: If the payment or its escrow record is absent
        Unauthorized: If caller is not the arbiter, sender or recipient
        PaymentAlreadyCompleted: If the payment is not ESCROWED or already released
    """
    draft = Draft(view)
    payment = draft.payment(payment_id)
    escrow = draft.escrow(payment_id)
    if payment is None or escrow is None:
        raise PaymentNotFound(f"escrow {payment_id} not found")

    if caller not in (escrow.arbiter, payment.sender, payment.recipient):
        raise Unauthorized(f"{caller} may not release escrow {payment_id}")

    if payment.status != PaymentStatus.ESCROWED or escrow.released:
        raise PaymentAlreadyCompleted(f"escrow {payment_id} is {payment.status.value}")

    credit(draft, payment.recipient, payment.amount)
    consume_locked(draft, payment.sender, payment.amount + payment.fee, principal=payment.amount)

    draft.put_payment(payment_id, replace(payment, status=PaymentStatus.COMPLETED))
    draft.put_escrow(payment_id, replace(escrow, released=True))
    record_settlement(draft, payment.amount, payment.fee)

    return draft.build(
        OperationOrigin(OperationType.RELEASE_ESCROW, caller=caller, reference=payment_id),
        result=True,
    )


def compute_emergency_refund(view: LedgerView, caller: str, payment_id: int) -> PendingOperation:
    """
    Return an escrow's principal to the sender (admin only).

    The full locked amount (principal + fee) is unlocked but only the
    principal is restored to `available`; the fee is retained.

    Raises:
        Unauthorized: If caller is not the platform admin
        PaymentNotFound: If the payment or its escrow record is absent
        PaymentAlreadyCompleted: If the payment is not ESCROWED
    """
    draft = Draft(view)
    if caller != draft.platform().admin:
        raise Unauthorized(f"{caller} is not the platform admin")

    payment = draft.payment(payment_id)
    if payment is None:
        raise PaymentNotFound(f"payment {payment_id} not found")
    if payment.status != PaymentStatus.ESCROWED:
        raise PaymentAlreadyCompleted(f"payment {payment_id} is {payment.status.value}")
    if draft.escrow(payment_id) is None:
        raise PaymentNotFound(f"escrow {payment_id} not found")

    unlock(draft, payment.sender, payment.amount + payment.fee, restore=payment.amount)
    draft.put_payment(payment_id, replace(payment, status=PaymentStatus.REFUNDED))
    retain_fee(draft, payment.fee)

    return draft.build(
        OperationOrigin(OperationType.EMERGENCY_REFUND, caller=caller, reference=payment_id),
        result=True,
    )
