"""
admin.py - Privileged platform settings and the logical clock

Every function here checks the caller against the admin account recorded
in the platform state before anything else.
"""

from __future__ import annotations
from dataclasses import replace

from .core import (
    LedgerView, PendingOperation, OperationOrigin, OperationType, UINT64_MAX,
    InvalidAmount, Unauthorized, require_uint,
)
from .draft import Draft
from .fees import validate_fee_rate


def _require_admin(draft: Draft, caller: str) -> None:
    if caller != draft.platform().admin:
        raise Unauthorized(f"{caller} is not the platform admin")


def compute_set_fee(view: LedgerView, caller: str, fee_rate_bps: int) -> PendingOperation:
    """
    Change the platform fee rate.

    Raises:
        Unauthorized: If caller is not the admin
        InvalidAmount: If the rate exceeds 1000 basis points (10%)
    """
    draft = Draft(view)
    _require_admin(draft, caller)
    validate_fee_rate(fee_rate_bps)
    draft.put_platform(replace(draft.platform(), fee_rate_bps=fee_rate_bps))
    return draft.build(OperationOrigin(OperationType.SET_FEE, caller=caller), result=True)


def compute_set_min_payment(view: LedgerView, caller: str, min_payment_amount: int) -> PendingOperation:
    """
    Change the minimum principal accepted for payments and subscriptions.

    No upper bound is enforced.
    """
    draft = Draft(view)
    _require_admin(draft, caller)
    require_uint(min_payment_amount, "min_payment_amount")
    draft.put_platform(replace(draft.platform(), min_payment_amount=min_payment_amount))
    return draft.build(OperationOrigin(OperationType.SET_MIN_PAYMENT, caller=caller), result=True)


def compute_advance_clock(view: LedgerView, caller: str, delta: int) -> PendingOperation:
    """
    Move the logical clock forward by `delta` ticks.

    The clock only moves through this operation, so due-date and deadline
    checks are reproducible from the operation log.

    Returns:
        PendingOperation whose result is the new current time
    """
    draft = Draft(view)
    _require_admin(draft, caller)
    require_uint(delta, "delta")
    new_time = draft.now + delta
    if new_time > UINT64_MAX:
        raise InvalidAmount(f"clock would exceed uint64 range: {new_time}")
    draft.put_platform(replace(draft.platform(), clock=new_time))
    return draft.build(OperationOrigin(OperationType.ADVANCE_CLOCK, caller=caller), result=new_time)
