"""
subscriptions.py - Interval-Based Recurring Payments

A Subscription lets a payee collect `amount` from a payer once every
`interval` ticks of the logical clock. Nothing is reserved at creation;
each cycle is settled by compute_process_subscription() when due.

Pattern:
    Time T:       create (last_payment = T)
    Time T+i:     process -> payer debited amount + fee, payee credited amount,
                  last_payment = now
    Any time:     payer cancels (permanent)

There are no timers. Whether a cycle is due is a comparison against the
clock at the moment of the call; get_due_subscriptions() lists them.
"""

from __future__ import annotations
from dataclasses import replace
from typing import List, Optional

from .core import (
    LedgerView, PendingOperation, OperationOrigin, OperationType,
    Subscription, Table,
    InvalidAmount, PaymentNotFound, PaymentAlreadyCompleted, PaymentExpired,
    Unauthorized, require_uint,
)
from .balances import debit, credit
from .draft import Draft
from .fees import compute_fee, record_settlement
from .payments import validate_payment_amount


def is_due(subscription: Subscription, now: int) -> bool:
    """Return True if an active subscription's next cycle can be settled at `now`."""
    return subscription.active and now >= subscription.last_payment + subscription.interval


def compute_subscription(
    view: LedgerView,
    payer: str,
    payee: str,
    amount: int,
    interval: int,
) -> PendingOperation:
    """
    Create an active subscription. No funds move.

    Args:
        view: Read-only ledger access
        payer: Paying account (the caller)
        payee: Receiving account
        amount: Principal per cycle, excluding fee
        interval: Clock ticks between cycles (> 0)

    Returns:
        PendingOperation whose result is the new subscription id. Ids come
        from the same counter as payment ids.

    Raises:
        InvalidAmount: If amount is below the minimum payment or interval is zero
    """
    draft = Draft(view)
    validate_payment_amount(draft.platform(), amount)
    require_uint(interval, "interval")
    if interval == 0:
        raise InvalidAmount("interval must be positive")

    subscription_id = draft.allocate_id()
    draft.put_subscription(subscription_id, Subscription(
        payer=payer,
        payee=payee,
        amount=amount,
        interval=interval,
        last_payment=draft.now,
    ))

    return draft.build(
        OperationOrigin(OperationType.CREATE_SUBSCRIPTION, caller=payer, reference=subscription_id),
        result=subscription_id,
    )


def compute_process_subscription(
    view: LedgerView,
    subscription_id: int,
    caller: Optional[str] = None,
) -> PendingOperation:
    """
    Settle one due cycle of a subscription.

    Anyone may trigger a due cycle; `caller` is recorded on the operation
    but not checked.

    Raises:
        PaymentNotFound: If the subscription does not exist
        PaymentAlreadyCompleted: If the subscription was cancelled
        PaymentExpired: If current time < last_payment + interval (not yet due)
        InsufficientBalance: If payer's available < amount + fee
    """
    draft = Draft(view)
    subscription = draft.subscription(subscription_id)
    if subscription is None:
        raise PaymentNotFound(f"subscription {subscription_id} not found")
    if not subscription.active:
        raise PaymentAlreadyCompleted(f"subscription {subscription_id} is inactive")

    now = draft.now
    if now < subscription.last_payment + subscription.interval:
        raise PaymentExpired(
            f"subscription {subscription_id} not due until "
            f"{subscription.last_payment + subscription.interval} (now {now})"
        )

    fee = compute_fee(subscription.amount, draft.platform().fee_rate_bps)
    debit(draft, subscription.payer, subscription.amount + fee, principal=subscription.amount)
    credit(draft, subscription.payee, subscription.amount)

    draft.put_subscription(subscription_id, replace(
        subscription,
        last_payment=now,
        payments_made=require_uint(subscription.payments_made + 1, "payments_made"),
    ))
    record_settlement(draft, subscription.amount, fee)

    return draft.build(
        OperationOrigin(OperationType.PROCESS_SUBSCRIPTION, caller=caller, reference=subscription_id),
        result=True,
    )


def compute_cancel_subscription(view: LedgerView, caller: str, subscription_id: int) -> PendingOperation:
    """
    Deactivate a subscription permanently. Only the payer may cancel.

    Raises:
        PaymentNotFound: If the subscription does not exist
        Unauthorized: If caller is not the payer
        PaymentAlreadyCompleted: If already cancelled
    """
    draft = Draft(view)
    subscription = draft.subscription(subscription_id)
    if subscription is None:
        raise PaymentNotFound(f"subscription {subscription_id} not found")
    if caller != subscription.payer:
        raise Unauthorized(f"{caller} is not the payer of subscription {subscription_id}")
    if not subscription.active:
        raise PaymentAlreadyCompleted(f"subscription {subscription_id} is inactive")

    draft.put_subscription(subscription_id, replace(subscription, active=False))

    return draft.build(
        OperationOrigin(OperationType.CANCEL_SUBSCRIPTION, caller=caller, reference=subscription_id),
        result=True,
    )


def get_due_subscriptions(view: LedgerView) -> List[int]:
    """Return ids of active subscriptions whose next cycle is due now, in id order."""
    now = view.current_time
    return [
        sid for sid in view.list_keys(Table.SUBSCRIPTIONS)
        if is_due(view.get_record(Table.SUBSCRIPTIONS, sid), now)
    ]
