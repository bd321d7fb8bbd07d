"""
Core types and pure functions for the payment ledger.

This module provides the foundational data structures and protocols:
1. Protocols: LedgerView for read-only ledger access
2. Immutable records: AccountBalance, Payment, Escrow, Subscription, PlatformState
3. Operation types: StateChange, PendingOperation, Operation, OperationOrigin
4. Exceptions: LedgerError and the payment error taxonomy
5. Validation helpers for uint64 amounts

All functions in this module are pure and operate on read-only views.
No function can mutate ledger state directly.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
import hashlib
from typing import (
    Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable,
)


# ============================================================================
# CONSTANTS
# ============================================================================

# Fee rates are expressed in basis points (parts per 10000).
BASIS_POINTS = 10000
DEFAULT_FEE_RATE_BPS = 25
MAX_FEE_RATE_BPS = 1000

DEFAULT_MIN_PAYMENT_AMOUNT = 1000

# All amounts, ids and times are unsigned 64-bit integers.
UINT64_MAX = 2 ** 64 - 1

DEFAULT_ADMIN = "admin"

# Key of the singleton platform record.
PLATFORM_KEY = "platform"


# ============================================================================
# ENUMS
# ============================================================================

class PaymentStatus(Enum):
    """
    Lifecycle status of a payment record.

    ESCROWED -> COMPLETED (release) and ESCROWED -> REFUNDED (emergency refund)
    are the only transitions. COMPLETED and REFUNDED are terminal.
    """
    COMPLETED = "completed"
    ESCROWED = "escrowed"
    REFUNDED = "refunded"


class EscrowCondition(Enum):
    """Release condition attached to an escrowed payment."""
    ARBITER_RELEASE = "arbiter-release"


class Table(Enum):
    """The five state tables owned by a ledger."""
    BALANCES = "balances"
    PAYMENTS = "payments"
    ESCROWS = "escrows"
    SUBSCRIPTIONS = "subscriptions"
    PLATFORM = "platform"


class OperationType(Enum):
    """Classification of a mutating operation, recorded on every log entry."""
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    CREATE_PAYMENT = "create_payment"
    CREATE_ESCROW_PAYMENT = "create_escrow_payment"
    RELEASE_ESCROW = "release_escrow"
    EMERGENCY_REFUND = "emergency_refund"
    CREATE_SUBSCRIPTION = "create_subscription"
    PROCESS_SUBSCRIPTION = "process_subscription"
    CANCEL_SUBSCRIPTION = "cancel_subscription"
    SET_FEE = "set_fee"
    SET_MIN_PAYMENT = "set_min_payment"
    ADVANCE_CLOCK = "advance_clock"


class TransferDirection(Enum):
    """Direction of a custody transfer relative to the ledger."""
    INTO_CUSTODY = "in"
    OUT_OF_CUSTODY = "out"


class ExecuteResult(Enum):
    """
    Outcome of an execution attempt.

    APPLIED: Operation was validated and applied to the ledger.
    ALREADY_APPLIED: Intent id was previously processed (idempotent behavior).
    REJECTED: Operation was built against a different sequence, or applying it
              would leave a negative available or locked balance.
    """
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"
    REJECTED = "rejected"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class InvariantViolation(LedgerError):
    """Raised when an internal invariant would be broken (a programming error)."""
    pass


class PaymentError(LedgerError):
    """
    Base class for business-rule failures surfaced to callers.

    None of these are transient: retrying the same operation against the
    same state fails the same way.
    """
    code: int = 0


class Unauthorized(PaymentError):
    """Caller lacks the required relationship to the record or platform."""
    code = 100


class InsufficientBalance(PaymentError):
    """Available funds are less than the required debit or lock amount."""
    code = 101


class PaymentNotFound(PaymentError):
    """Id does not resolve to an existing payment, escrow or subscription."""
    code = 102


class PaymentAlreadyCompleted(PaymentError):
    """Record is in a terminal or inapplicable state (also: subscription inactive)."""
    code = 103


class PaymentExpired(PaymentError):
    """Escrow deadline not in the future, or subscription not yet due."""
    code = 104


class InvalidAmount(PaymentError):
    """Amount, rate or interval is below minimum, above cap, or non-positive."""
    code = 105


# ============================================================================
# VALIDATION
# ============================================================================

def require_uint(value: Any, name: str) -> int:
    """
    Check that a value is a uint64.

    Raises:
        InvalidAmount: If value is not an int, is negative, or exceeds UINT64_MAX.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmount(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0 or value > UINT64_MAX:
        raise InvalidAmount(f"{name} out of uint64 range: {value}")
    return value


# ============================================================================
# RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class AccountBalance:
    """
    Funds held for one account.

    Attributes:
        available: Spendable funds.
        locked: Funds committed to open escrows.
        total_sent: Lifetime principal sent (never decreases).
        total_received: Lifetime principal received (never decreases).
    """
    available: int = 0
    locked: int = 0
    total_sent: int = 0
    total_received: int = 0


ZERO_BALANCE = AccountBalance()


@dataclass(frozen=True, slots=True)
class Payment:
    """
    A payment record. Created once, never deleted.

    `amount` is the principal and excludes `fee`.
    """
    sender: str
    recipient: str
    amount: int
    fee: int
    status: PaymentStatus
    created_at: int
    expires_at: Optional[int] = None
    memo: Optional[str] = None
    escrow_conditions: Optional[EscrowCondition] = None


@dataclass(frozen=True, slots=True)
class Escrow:
    """Arbiter metadata for an escrowed payment, keyed by the payment id."""
    arbiter: str
    released: bool
    dispute_deadline: int


@dataclass(frozen=True, slots=True)
class Subscription:
    """A recurring payment agreement between payer and payee."""
    payer: str
    payee: str
    amount: int
    interval: int
    last_payment: int
    active: bool = True
    payments_made: int = 0


@dataclass(frozen=True, slots=True)
class PlatformConfig:
    """
    Initialization values for a ledger.

    Attributes:
        admin: Account allowed to call privileged operations.
        fee_rate_bps: Initial fee rate in basis points (at most MAX_FEE_RATE_BPS).
        min_payment_amount: Initial minimum principal for payments and subscriptions.
        initial_time: Starting value of the logical clock.
    """
    admin: str = DEFAULT_ADMIN
    fee_rate_bps: int = DEFAULT_FEE_RATE_BPS
    min_payment_amount: int = DEFAULT_MIN_PAYMENT_AMOUNT
    initial_time: int = 0

    def __post_init__(self):
        if self.admin is None or (isinstance(self.admin, str) and not self.admin.strip()):
            raise ValueError("admin cannot be empty")
        require_uint(self.fee_rate_bps, "fee_rate_bps")
        if self.fee_rate_bps > MAX_FEE_RATE_BPS:
            raise ValueError(
                f"fee_rate_bps must be at most {MAX_FEE_RATE_BPS}, got {self.fee_rate_bps}"
            )
        require_uint(self.min_payment_amount, "min_payment_amount")
        require_uint(self.initial_time, "initial_time")


@dataclass(frozen=True, slots=True)
class PlatformState:
    """
    Singleton configuration-and-sequence record.

    Holds the mutable settings, the shared id counter for payments and
    subscriptions, the logical clock and the aggregate counters.
    """
    admin: str
    fee_rate_bps: int
    min_payment_amount: int
    clock: int = 0
    payment_counter: int = 0
    total_volume: int = 0
    total_deposited: int = 0
    total_withdrawn: int = 0
    fees_retained: int = 0

    @classmethod
    def from_config(cls, config: PlatformConfig) -> PlatformState:
        return cls(
            admin=config.admin,
            fee_rate_bps=config.fee_rate_bps,
            min_payment_amount=config.min_payment_amount,
            clock=config.initial_time,
        )


@dataclass(frozen=True, slots=True)
class PlatformStats:
    """Read-only aggregate view of the platform."""
    total_volume: int
    total_payments: int
    fee_rate_bps: int
    min_payment_amount: int
    current_time: int
    fees_retained: int


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class LedgerView(Protocol):
    """
    Read-only interface to ledger state.

    Compute functions accept a LedgerView to declare their read-only intent.
    The Ledger class implements this protocol; for testing, FakeView
    provides a standalone implementation.
    """

    @property
    def current_time(self) -> int:
        """Return the current logical time."""
        ...

    @property
    def sequence(self) -> int:
        """Return the sequence number the next applied operation will receive."""
        ...

    @property
    def platform(self) -> PlatformState:
        """Return the platform record."""
        ...

    def get_record(self, table: Table, key: Any) -> Optional[Any]:
        """Return the stored record, or None if absent. No defaults are applied."""
        ...

    def list_keys(self, table: Table) -> List[Any]:
        """Return the keys present in a table, sorted."""
        ...


# ============================================================================
# STATE CHANGES
# ============================================================================

@dataclass(frozen=True, slots=True)
class StateChange:
    """
    Record of a single table entry change.

    Stores complete before/after snapshots so the change can be replayed
    forward (apply `new`) or unwound (restore `old`). `old` is None when the
    entry did not exist.
    """
    table: Table
    key: Any
    old: Any
    new: Any

    def changed_fields(self) -> Dict[str, Tuple[Any, Any]]:
        """
        Compute fields that differ between old and new record.

        Returns:
            Dict mapping field name to (old_value, new_value) tuples.
        """
        names = type(self.new).__slots__ if self.new is not None else type(self.old).__slots__
        changes = {}
        for name in names:
            old_val = getattr(self.old, name, None) if self.old is not None else None
            new_val = getattr(self.new, name, None) if self.new is not None else None
            if old_val != new_val:
                changes[name] = (old_val, new_val)
        return changes


@dataclass(frozen=True, slots=True)
class CustodyTransfer:
    """Movement of the settlement asset across the ledger's custody boundary."""
    direction: TransferDirection
    account: str
    amount: int


@dataclass(frozen=True, slots=True)
class OperationOrigin:
    """
    Who asked for an operation and what it refers to.

    Attributes:
        op_type: Kind of operation.
        caller: Account asserted by the host for this call (None if anonymous).
        reference: Payment or subscription id the operation targets, if any.
    """
    op_type: OperationType
    caller: Optional[str] = None
    reference: Optional[int] = None

    def __repr__(self) -> str:
        parts = [self.op_type.value]
        if self.caller is not None:
            parts.append(f"caller={self.caller}")
        if self.reference is not None:
            parts.append(f"ref={self.reference}")
        return f"Origin({', '.join(parts)})"


# ============================================================================
# CANONICALIZATION
# ============================================================================

def _canonicalize(value: Any) -> str:
    """
    Produce a canonical string representation of a value for hashing.

    Records are serialized field by field in declaration order; dicts are
    sorted by key so insertion order never affects the result.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return f"N:{value}"
    if isinstance(value, str):
        return f"S:{value}"
    if isinstance(value, Enum):
        return f"E:{type(value).__name__}.{value.value}"
    if isinstance(value, dict):
        items = sorted(value.items(), key=lambda kv: _canonicalize(kv[0]))
        serialized = ",".join(f"{_canonicalize(k)}:{_canonicalize(v)}" for k, v in items)
        return f"{{{serialized}}}"
    if isinstance(value, (list, tuple)):
        serialized = ",".join(_canonicalize(item) for item in value)
        return f"[{serialized}]"
    if hasattr(value, "__slots__"):
        serialized = ",".join(
            f"{name}={_canonicalize(getattr(value, name))}" for name in type(value).__slots__
        )
        return f"{type(value).__name__}({serialized})"
    return f"R:{repr(value)}"


def ordering_key(value: Any) -> Tuple[int, int, str]:
    """
    Sort key giving a total order over table keys of any type.

    Integers sort numerically ahead of everything else; other keys sort by
    their canonical form, so string and integer account ids can share a table.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return (0, value, "")
    return (1, 0, _canonicalize(value))


def _compute_intent_id(
    changes: Tuple[StateChange, ...],
    origin: OperationOrigin,
    timestamp: int,
    sequence: int,
    transfer: Optional[CustodyTransfer],
) -> str:
    """
    Compute a deterministic content hash for an operation's intent.

    The sequence is part of the content: two otherwise identical deposits at
    different positions in the stream are different intents.
    """
    content_parts = [
        f"origin:{_canonicalize(origin)}",
        f"time:{timestamp}",
        f"seq:{sequence}",
        f"transfer:{_canonicalize(transfer)}",
    ]
    for sc in changes:
        content_parts.append(
            f"change:{sc.table.value}|{_canonicalize(sc.key)}|"
            f"{_canonicalize(sc.old)}|{_canonicalize(sc.new)}"
        )
    content = "|".join(content_parts)
    return hashlib.sha256(content.encode()).hexdigest()[:16]


# ============================================================================
# OPERATIONS
# ============================================================================

@dataclass(frozen=True, slots=True)
class PendingOperation:
    """
    An operation before execution - represents INTENT.

    Built by compute functions from a LedgerView and submitted to
    Ledger.execute(). Everything the operation does is materialized here:
    the table changes, the custody transfer and the value returned to the
    caller.

    Attributes:
        changes: Table entry changes, in application order
        origin: Who/what asked for this operation
        timestamp: Logical time when the operation was built
        sequence: Ledger sequence the operation was built against
        result: Value returned to the caller once applied (new id, amount, True)
        transfer: Custody transfer to perform atomically with the changes
        intent_id: Content-addressable hash of the operation (auto-computed)
    """
    changes: Tuple[StateChange, ...]
    origin: OperationOrigin
    timestamp: int
    sequence: int
    result: Any = None
    transfer: Optional[CustodyTransfer] = None
    intent_id: str = field(default="")

    def __post_init__(self):
        if not self.intent_id:
            computed_id = _compute_intent_id(
                self.changes, self.origin, self.timestamp, self.sequence, self.transfer
            )
            object.__setattr__(self, 'intent_id', computed_id)

    def is_empty(self) -> bool:
        """Return True if this operation changes nothing."""
        return not self.changes and self.transfer is None

    def __repr__(self) -> str:
        return f"PendingOperation({len(self.changes)} changes, {self.origin})"


@dataclass(frozen=True, slots=True)
class Operation:
    """
    An executed, immutable record of ledger state changes - represents FACT.

    Attributes:
        changes: Table entry changes that were applied
        origin: Who/what asked for this operation
        timestamp: Logical time when the operation was built and applied
        intent_id: Content hash from the PendingOperation (for idempotency)
        exec_id: Unique execution identifier (ledger + sequence + time)
        ledger_name: Name of the ledger that executed this
        sequence_number: Monotonic sequence within the ledger
        result: Value returned to the caller
        transfer: Custody transfer performed, if any
    """
    changes: Tuple[StateChange, ...]
    origin: OperationOrigin
    timestamp: int
    intent_id: str
    exec_id: str
    ledger_name: str
    sequence_number: int
    result: Any = None
    transfer: Optional[CustodyTransfer] = None

    def to_pending(self) -> PendingOperation:
        """Rebuild the PendingOperation this record was executed from."""
        return PendingOperation(
            changes=self.changes,
            origin=self.origin,
            timestamp=self.timestamp,
            sequence=self.sequence_number,
            result=self.result,
            transfer=self.transfer,
        )

    def __repr__(self) -> str:
        w = 100
        bar = "─" * w

        def pad(text: str) -> str:
            if len(text) > w:
                return text[:w-3] + "..."
            return text + " " * (w - len(text))

        lines = [
            "",
            f"┌{bar}┐",
            f"│{pad(' Operation: ' + self.exec_id)}│",
            f"├{bar}┤",
            f"│{pad('   intent_id : ' + self.intent_id)}│",
            f"│{pad('   timestamp : ' + str(self.timestamp))}│",
            f"│{pad('   sequence  : ' + str(self.sequence_number))}│",
            f"│{pad('   origin    : ' + repr(self.origin))}│",
            f"│{pad('   result    : ' + repr(self.result))}│",
        ]
        if self.transfer is not None:
            t = self.transfer
            lines.append(f"│{pad(f'   custody   : {t.direction.value} {t.amount} ({t.account})')}│")
        lines.append(f"├{bar}┤")
        lines.append(f"│{pad(' Changes (' + str(len(self.changes)) + '):')}│")
        for sc in self.changes:
            lines.append(f"│{pad('   [' + sc.table.value + ':' + str(sc.key) + ']')}│")
            for field_name, (old_val, new_val) in sc.changed_fields().items():
                lines.append(f"│{pad(f'      {field_name}: {old_val!r} → {new_val!r}')}│")
        lines.append(f"└{bar}┘")
        return "\n".join(lines)
