"""
fees.py - Platform Fee Calculation

The fee is a floor of amount * rate / 10000 using integer division, so
every re-execution on every host derives the same fee.
"""

from __future__ import annotations
from dataclasses import replace

from .core import BASIS_POINTS, MAX_FEE_RATE_BPS, InvalidAmount, require_uint
from .draft import Draft


def compute_fee(amount: int, fee_rate_bps: int) -> int:
    """
    Derive the platform fee for a principal amount.

    Args:
        amount: Principal amount (uint64)
        fee_rate_bps: Fee rate in basis points (25 = 0.25%)

    Returns:
        floor(amount * fee_rate_bps / 10000)

    Example:
        compute_fee(1000, 25)   # -> 2
        compute_fee(10000, 25)  # -> 25
    """
    require_uint(amount, "amount")
    require_uint(fee_rate_bps, "fee_rate_bps")
    return amount * fee_rate_bps // BASIS_POINTS


def validate_fee_rate(fee_rate_bps: int) -> int:
    """
    Check a proposed fee rate against the 10% cap.

    Raises:
        InvalidAmount: If the rate is not a uint64 or exceeds MAX_FEE_RATE_BPS.
    """
    require_uint(fee_rate_bps, "fee_rate_bps")
    if fee_rate_bps > MAX_FEE_RATE_BPS:
        raise InvalidAmount(
            f"fee rate {fee_rate_bps} exceeds cap of {MAX_FEE_RATE_BPS} basis points"
        )
    return fee_rate_bps


def record_settlement(draft: Draft, amount: int, fee: int) -> None:
    """Add a settled principal to total volume and its fee to the retained total."""
    platform = draft.platform()
    draft.put_platform(replace(
        platform,
        total_volume=require_uint(platform.total_volume + amount, "total_volume"),
        fees_retained=require_uint(platform.fees_retained + fee, "fees_retained"),
    ))


def retain_fee(draft: Draft, fee: int) -> None:
    """Account for a fee removed from circulation without a settlement."""
    platform = draft.platform()
    draft.put_platform(replace(
        platform,
        fees_retained=require_uint(platform.fees_retained + fee, "fees_retained"),
    ))
