"""
custody.py - Boundary to the native value-transfer primitive

Deposits and withdrawals move the settlement asset between an account
holder and the ledger's custodial account. The ledger calls a custodian
just before applying the matching balance change; if the custodian raises,
nothing is applied.
"""

from __future__ import annotations
from typing import Dict, Optional, Protocol, runtime_checkable

from .core import CustodyTransfer, TransferDirection, InsufficientBalance


@runtime_checkable
class Custodian(Protocol):
    """
    Native value-transfer primitive.

    Implementations raise InsufficientBalance when the transfer cannot be
    made and must not have moved anything in that case.
    """

    def transfer(self, transfer: CustodyTransfer) -> None:
        ...


class InMemoryCustody:
    """
    Custodian holding external funds in a dict.

    `holdings` is what each account holds outside the ledger; `reserve` is
    what the ledger holds in custody.

    Example:
        custody = InMemoryCustody({"alice": 50_000})
        ledger = Ledger("main", custody=custody)
        ledger.deposit("alice", 10_000)
        custody.holdings["alice"]  # 40_000
        custody.reserve            # 10_000
    """

    def __init__(self, holdings: Optional[Dict[str, int]] = None):
        self.holdings: Dict[str, int] = dict(holdings or {})
        self.reserve: int = 0

    def transfer(self, transfer: CustodyTransfer) -> None:
        if transfer.direction == TransferDirection.INTO_CUSTODY:
            held = self.holdings.get(transfer.account, 0)
            if held < transfer.amount:
                raise InsufficientBalance(
                    f"{transfer.account}: holds {held} outside custody, "
                    f"cannot deposit {transfer.amount}"
                )
            self.holdings[transfer.account] = held - transfer.amount
            self.reserve += transfer.amount
        else:
            if self.reserve < transfer.amount:
                raise InsufficientBalance(
                    f"custody reserve {self.reserve} < withdrawal {transfer.amount}"
                )
            self.reserve -= transfer.amount
            self.holdings[transfer.account] = (
                self.holdings.get(transfer.account, 0) + transfer.amount
            )
