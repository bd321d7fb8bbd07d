"""
payledger - Deterministic Payment Ledger

Balances, instant payments, arbiter-mediated escrow and recurring
subscriptions over one balance pool, with atomic, replayable operations.

Usage:
    from payledger import Ledger, PlatformConfig

    ledger = Ledger("main", PlatformConfig(admin="owner"), verbose=False)
    ledger.deposit("alice", 10_000)

    # Instant payment (fee 5 at the default 25 bps)
    payment_id = ledger.create_payment("alice", "bob", 2_000, "invoice 7")

    # Escrow released by the arbiter
    escrow_id = ledger.create_escrow_payment(
        "alice", "bob", 3_000, arbiter="carol", deadline=ledger.current_time + 100
    )
    ledger.release_escrow("carol", escrow_id)

    # Subscription processed once due
    sub_id = ledger.create_subscription("alice", "bob", 1_500, interval=10)
    ledger.advance_clock("owner", 10)
    ledger.process_subscription(sub_id)
"""

# Core types
from .core import (
    LedgerView,
    AccountBalance,
    Payment,
    Escrow,
    Subscription,
    PlatformConfig,
    PlatformState,
    PlatformStats,
    PaymentStatus,
    EscrowCondition,
    Table,
    OperationType,
    TransferDirection,
    ExecuteResult,
    StateChange,
    CustodyTransfer,
    OperationOrigin,
    PendingOperation,
    Operation,
    LedgerError,
    InvariantViolation,
    PaymentError,
    Unauthorized,
    InsufficientBalance,
    PaymentNotFound,
    PaymentAlreadyCompleted,
    PaymentExpired,
    InvalidAmount,
    require_uint,
    ZERO_BALANCE,
    BASIS_POINTS,
    DEFAULT_FEE_RATE_BPS,
    MAX_FEE_RATE_BPS,
    DEFAULT_MIN_PAYMENT_AMOUNT,
    DEFAULT_ADMIN,
    UINT64_MAX,
)

# Ledger
from .ledger import Ledger

# Working set
from .draft import Draft

# Fees
from .fees import compute_fee, validate_fee_rate

# Balances
from .balances import (
    debit,
    credit,
    lock,
    unlock,
    consume_locked,
    compute_deposit,
    compute_withdraw,
)

# Payments
from .payments import compute_payment, validate_parties, validate_payment_amount

# Escrow
from .escrow import (
    compute_escrow_payment,
    compute_release,
    compute_emergency_refund,
)

# Subscriptions
from .subscriptions import (
    compute_subscription,
    compute_process_subscription,
    compute_cancel_subscription,
    get_due_subscriptions,
    is_due,
)

# Admin
from .admin import (
    compute_set_fee,
    compute_set_min_payment,
    compute_advance_clock,
)

# Custody
from .custody import Custodian, InMemoryCustody

__all__ = [
    # Core
    'LedgerView', 'AccountBalance', 'Payment', 'Escrow', 'Subscription',
    'PlatformConfig', 'PlatformState', 'PlatformStats',
    'PaymentStatus', 'EscrowCondition', 'Table', 'OperationType', 'TransferDirection',
    'ExecuteResult', 'StateChange', 'CustodyTransfer', 'OperationOrigin',
    'PendingOperation', 'Operation',
    'LedgerError', 'InvariantViolation', 'PaymentError', 'Unauthorized',
    'InsufficientBalance', 'PaymentNotFound', 'PaymentAlreadyCompleted',
    'PaymentExpired', 'InvalidAmount', 'require_uint',
    'ZERO_BALANCE', 'BASIS_POINTS', 'DEFAULT_FEE_RATE_BPS', 'MAX_FEE_RATE_BPS',
    'DEFAULT_MIN_PAYMENT_AMOUNT', 'DEFAULT_ADMIN', 'UINT64_MAX',
    # Ledger
    'Ledger', 'Draft',
    # Fees
    'compute_fee', 'validate_fee_rate',
    # Balances
    'debit', 'credit', 'lock', 'unlock', 'consume_locked',
    'compute_deposit', 'compute_withdraw',
    # Payments
    'compute_payment', 'validate_parties', 'validate_payment_amount',
    # Escrow
    'compute_escrow_payment', 'compute_release', 'compute_emergency_refund',
    # Subscriptions
    'compute_subscription', 'compute_process_subscription',
    'compute_cancel_subscription', 'get_due_subscriptions', 'is_due',
    # Admin
    'compute_set_fee', 'compute_set_min_payment', 'compute_advance_clock',
    # Custody
    'Custodian', 'InMemoryCustody',
]

__version__ = '1.0.0'
