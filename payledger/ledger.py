"""
ledger.py - Stateful Payment Ledger

The Ledger class is the central state manager for the payment system.
It is the only module that mutates state, ensuring controlled and auditable changes.

Key responsibilities:
    - Implements LedgerView protocol for safe read-only access by pure functions
    - Executes operations atomically (all changes apply or none do)
    - Owns the balances, payments, escrows and subscriptions tables and the
      platform record
    - Exposes the mutating surface (deposit, payments, escrow, subscriptions,
      admin) and the read-only query surface
    - Reconstructs state (clone, clone_at, replay) from the operation log
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Set, Tuple
import hashlib

from .core import (
    # Types
    Table, PLATFORM_KEY, ZERO_BALANCE,
    AccountBalance, Payment, Escrow, Subscription,
    PlatformConfig, PlatformState, PlatformStats,
    StateChange, PendingOperation, Operation, ExecuteResult,
    # Exceptions
    InvariantViolation,
    # Helper functions
    _canonicalize, ordering_key,
)
from .admin import compute_set_fee, compute_set_min_payment, compute_advance_clock
from .balances import compute_deposit, compute_withdraw
from .custody import Custodian
from .escrow import compute_escrow_payment, compute_release, compute_emergency_refund
from .fees import compute_fee
from .payments import compute_payment
from .subscriptions import (
    compute_subscription, compute_process_subscription, compute_cancel_subscription,
    get_due_subscriptions,
)


class Ledger:
    """
    Payment ledger with full validation and audit trail.

    Implements the LedgerView protocol, allowing the ledger to be passed to
    the compute functions, which only read from it.

    Design Principles:
        - Operations are built first, applied second: a compute function
          validates every precondition and materializes all changes into a
          PendingOperation; execute() applies them in one step.
        - Always logs: every applied operation is recorded in the operation
          log, enabling clone_at() and replay().

    Thread Safety:
        Not thread-safe. The host serializes operations; each thread should
        otherwise maintain its own Ledger instance.

    Example:
        ledger = Ledger("main", PlatformConfig(admin="owner"))
        ledger.deposit("alice", 10_000)
        payment_id = ledger.create_payment("alice", "bob", 2_000, "invoice 7")
        ledger.get_balance("alice").available   # 7995
    """

    def __init__(
        self,
        name: str,
        config: Optional[PlatformConfig] = None,
        custody: Optional[Custodian] = None,
        verbose: bool = True,
    ):
        """
        Create a ledger.

        Args:
            name: Ledger identifier
            config: Admin account, initial fee rate, minimum payment and clock
            custody: Native value-transfer primitive for deposits/withdrawals.
                     None means funds are already in custody when deposit is called.
            verbose: Print applied and rejected operations (default: True)
        """
        self.name = name
        self.config = config or PlatformConfig()
        self.custody = custody
        self.verbose = verbose
        self.tables: Dict[Table, Dict[Any, Any]] = {table: {} for table in Table}
        self.tables[Table.PLATFORM][PLATFORM_KEY] = PlatformState.from_config(self.config)
        self.seen_intent_ids: Set[str] = set()  # For idempotency (content-based)
        self.operation_log: List[Operation] = []
        # Monotonic sequence counter for execution ordering
        self._next_sequence: int = 0

    # ========================================================================
    # LedgerView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    @property
    def current_time(self) -> int:
        """Current logical time of the ledger."""
        return self.platform.clock

    @property
    def sequence(self) -> int:
        """Sequence number the next applied operation will receive."""
        return self._next_sequence

    @property
    def platform(self) -> PlatformState:
        return self.tables[Table.PLATFORM][PLATFORM_KEY]

    def get_record(self, table: Table, key: Any) -> Optional[Any]:
        return self.tables[table].get(key)

    def list_keys(self, table: Table) -> List[Any]:
        return sorted(self.tables[table].keys(), key=ordering_key)

    # ========================================================================
    # QUERIES
    # ========================================================================

    def get_balance(self, account: str) -> AccountBalance:
        """
        Get the balance of an account.

        Returns an all-zero AccountBalance for accounts that never transacted;
        no record is stored for them.
        """
        return self.tables[Table.BALANCES].get(account, ZERO_BALANCE)

    def get_payment(self, payment_id: int) -> Optional[Payment]:
        return self.tables[Table.PAYMENTS].get(payment_id)

    def get_escrow(self, payment_id: int) -> Optional[Escrow]:
        return self.tables[Table.ESCROWS].get(payment_id)

    def get_subscription(self, subscription_id: int) -> Optional[Subscription]:
        return self.tables[Table.SUBSCRIPTIONS].get(subscription_id)

    def get_platform_stats(self) -> PlatformStats:
        """Aggregate volume, id counter and current settings."""
        p = self.platform
        return PlatformStats(
            total_volume=p.total_volume,
            total_payments=p.payment_counter,
            fee_rate_bps=p.fee_rate_bps,
            min_payment_amount=p.min_payment_amount,
            current_time=p.clock,
            fees_retained=p.fees_retained,
        )

    def calculate_fee(self, amount: int) -> int:
        """Fee the current rate would charge on a hypothetical amount."""
        return compute_fee(amount, self.platform.fee_rate_bps)

    def list_accounts(self) -> List[str]:
        """Accounts that have ever held a balance record."""
        return self.list_keys(Table.BALANCES)

    def due_subscriptions(self) -> List[int]:
        """Ids of active subscriptions that can be processed now."""
        return get_due_subscriptions(self)

    def total_funds(self) -> int:
        """
        Sum of available and locked funds across all accounts.

        Accounts are sorted before summation so accumulation order is
        deterministic.
        """
        balances = self.tables[Table.BALANCES]
        return sum(
            balances[a].available + balances[a].locked
            for a in sorted(balances, key=ordering_key)
        )

    def verify_conservation(self) -> Dict[str, Any]:
        """
        Verify that no value was created or destroyed by internal transfers.

        Funds held for accounts must equal deposits minus withdrawals minus
        fees retained by the platform.

        Returns:
            Dict with keys:
            - 'valid': bool - True if the conservation law holds
            - 'held': int - Σ available + Σ locked
            - 'expected': int - deposited - withdrawn - fees retained
            - 'difference': int - held - expected

        Example:
            result = ledger.verify_conservation()
            assert result['valid'], f"Conservation violated: {result}"
        """
        p = self.platform
        held = self.total_funds()
        expected = p.total_deposited - p.total_withdrawn - p.fees_retained
        return {
            'valid': held == expected,
            'held': held,
            'expected': expected,
            'difference': held - expected,
        }

    def state_hash(self) -> str:
        """
        Canonical digest of all tables.

        Two ledgers that processed the same operations in the same order have
        the same hash, whatever their names or how they were built.
        """
        content = _canonicalize({
            table.value: self.tables[table] for table in Table
        })
        return hashlib.sha256(content.encode()).hexdigest()

    # ========================================================================
    # EXECUTION (Mutating)
    # ========================================================================

    def _generate_exec_id(self, sequence: int) -> str:
        """
        Generate a unique execution ID.

        Format: exec:{ledger_name}:{sequence:012d}:{logical_time}
        """
        return f"exec:{self.name}:{sequence:012d}:{self.current_time}"

    def execute(self, pending: PendingOperation) -> ExecuteResult:
        """
        Execute a PendingOperation atomically.

        All changes apply together or none do. Execution is idempotent: a
        pending operation with the same intent_id is not applied twice.

        Args:
            pending: PendingOperation to execute

        Returns:
            ExecuteResult.APPLIED if successful
            ExecuteResult.ALREADY_APPLIED if the operation was already executed
            ExecuteResult.REJECTED if validation failed

        Raises:
            InsufficientBalance: If the custodian refuses the transfer. Nothing
                is applied in that case.
        """
        if pending.is_empty():
            return ExecuteResult.APPLIED

        if pending.intent_id in self.seen_intent_ids:
            if self.verbose:
                print(f"⚠️  ALREADY_APPLIED: intent_id={pending.intent_id}")
            return ExecuteResult.ALREADY_APPLIED

        valid, reason = self._validate_pending(pending)
        if not valid:
            if self.verbose:
                print(f"✗ REJECTED: {reason}")
            return ExecuteResult.REJECTED

        # Custody moves before any table changes; a refusal leaves both untouched
        if pending.transfer is not None and self.custody is not None:
            self.custody.transfer(pending.transfer)

        sequence = self._next_sequence
        exec_id = self._generate_exec_id(sequence)
        self._apply_changes(pending.changes)
        self._next_sequence += 1

        op = Operation(
            changes=pending.changes,
            origin=pending.origin,
            timestamp=pending.timestamp,
            intent_id=pending.intent_id,
            exec_id=exec_id,
            ledger_name=self.name,
            sequence_number=sequence,
            result=pending.result,
            transfer=pending.transfer,
        )
        self.operation_log.append(op)
        self.seen_intent_ids.add(pending.intent_id)

        if self.verbose:
            print(repr(op))
            print(f"✓ APPLIED: {op.origin!r} -> {op.result!r}")
        return ExecuteResult.APPLIED

    def submit(self, pending: PendingOperation) -> Any:
        """
        Execute a PendingOperation and return its result to the caller.

        Raises:
            InvariantViolation: If the ledger rejects the operation. Operations
                built from this ledger's current state are never rejected.
        """
        result = self.execute(pending)
        if result == ExecuteResult.REJECTED:
            raise InvariantViolation(f"operation rejected: {pending!r}")
        return pending.result

    def _validate_pending(self, pending: PendingOperation) -> Tuple[bool, str]:
        """
        Validate a pending operation against current state.

        Checks performed:
        1. The operation was built against the current sequence
        2. Every change's old record matches the stored record
        3. No balance goes negative

        Returns:
            Tuple of (success: bool, reason: str)
        """
        if pending.sequence != self._next_sequence:
            return False, f"stale operation: built at sequence {pending.sequence}, ledger at {self._next_sequence}"

        for sc in pending.changes:
            current = self.tables[sc.table].get(sc.key)
            if current != sc.old:
                return False, f"stale record {sc.table.value}:{sc.key}"
            if sc.table == Table.BALANCES and sc.new is not None:
                if sc.new.available < 0 or sc.new.locked < 0:
                    return False, f"{sc.key}: negative balance {sc.new}"

        return True, ""

    def _apply_changes(self, changes: Tuple[StateChange, ...]) -> None:
        for sc in changes:
            self._store(sc.table, sc.key, sc.new)

    def _store(self, table: Table, key: Any, record: Any) -> None:
        if record is None:
            self.tables[table].pop(key, None)
        else:
            self.tables[table][key] = record

    # ========================================================================
    # MUTATING SURFACE
    # ========================================================================

    def deposit(self, account: str, amount: int) -> int:
        """Credit funds moved into custody. Returns the amount deposited."""
        return self.submit(compute_deposit(self, account, amount))

    def withdraw(self, account: str, amount: int) -> int:
        """Release available funds from custody. Returns the amount withdrawn."""
        return self.submit(compute_withdraw(self, account, amount))

    def create_payment(self, sender: str, recipient: str, amount: int, memo: Optional[str] = None) -> int:
        """Instant payment. Returns the new payment id."""
        return self.submit(compute_payment(self, sender, recipient, amount, memo))

    def create_escrow_payment(
        self,
        sender: str,
        recipient: str,
        amount: int,
        arbiter: str,
        deadline: int,
        memo: Optional[str] = None,
    ) -> int:
        """Lock funds in escrow. Returns the new payment id."""
        return self.submit(compute_escrow_payment(self, sender, recipient, amount, arbiter, deadline, memo))

    def release_escrow(self, caller: str, payment_id: int) -> bool:
        return self.submit(compute_release(self, caller, payment_id))

    def emergency_refund(self, caller: str, payment_id: int) -> bool:
        return self.submit(compute_emergency_refund(self, caller, payment_id))

    def create_subscription(self, payer: str, payee: str, amount: int, interval: int) -> int:
        """Create a recurring payment. Returns the new subscription id."""
        return self.submit(compute_subscription(self, payer, payee, amount, interval))

    def process_subscription(self, subscription_id: int, caller: Optional[str] = None) -> bool:
        return self.submit(compute_process_subscription(self, subscription_id, caller))

    def cancel_subscription(self, caller: str, subscription_id: int) -> bool:
        return self.submit(compute_cancel_subscription(self, caller, subscription_id))

    def set_fee(self, caller: str, fee_rate_bps: int) -> bool:
        return self.submit(compute_set_fee(self, caller, fee_rate_bps))

    def set_min_payment(self, caller: str, min_payment_amount: int) -> bool:
        return self.submit(compute_set_min_payment(self, caller, min_payment_amount))

    def advance_clock(self, caller: str, delta: int) -> int:
        """Advance the logical clock. Returns the new current time."""
        return self.submit(compute_advance_clock(self, caller, delta))

    # ========================================================================
    # STATE RECONSTRUCTION
    # ========================================================================

    def clone(self) -> Ledger:
        """
        Create an independent copy of this ledger.

        Records are immutable, so copying each table dict is a full copy.
        The clone has no custodian: it never moves real funds.

        Returns:
            A new Ledger instance with identical state
        """
        cloned = Ledger.__new__(Ledger)
        cloned.name = self.name
        cloned.config = self.config
        cloned.custody = None
        cloned.verbose = self.verbose
        cloned.tables = {table: dict(records) for table, records in self.tables.items()}
        cloned.seen_intent_ids = self.seen_intent_ids.copy()
        cloned.operation_log = list(self.operation_log)
        cloned._next_sequence = self._next_sequence
        return cloned

    def clone_at(self, sequence: int) -> Ledger:
        """
        Reconstruct the ledger as it was after its first `sequence` operations.

        Walks backward through later operations restoring each change's old
        record.

        Args:
            sequence: Number of operations to keep (0 = initial state)

        Returns:
            A new Ledger instance with the historical state

        Raises:
            ValueError: If sequence is negative or beyond the current sequence
        """
        if sequence < 0 or sequence > self._next_sequence:
            raise ValueError(
                f"sequence {sequence} outside 0..{self._next_sequence}"
            )

        cloned = self.clone()
        for op in reversed(self.operation_log):
            if op.sequence_number < sequence:
                break
            for sc in reversed(op.changes):
                cloned._store(sc.table, sc.key, sc.old)

        cloned.operation_log = [op for op in self.operation_log if op.sequence_number < sequence]
        cloned.seen_intent_ids = {op.intent_id for op in cloned.operation_log}
        cloned._next_sequence = sequence
        return cloned

    def replay(self) -> Ledger:
        """
        Create a new ledger by re-executing the operation log.

        The new ledger starts from the same PlatformConfig and has no
        custodian, so deposits and withdrawals are not sent to the native
        transfer primitive a second time.

        Returns:
            New Ledger instance with replayed state

        Raises:
            InvariantViolation: If any logged operation is rejected on replay
        """
        new_ledger = Ledger(
            name=f"{self.name}_replayed",
            config=self.config,
            custody=None,
            verbose=self.verbose,
        )
        for op in self.operation_log:
            result = new_ledger.execute(op.to_pending())
            if result != ExecuteResult.APPLIED:
                raise InvariantViolation(f"Replay failed at {op.exec_id}: {result.value}")
        return new_ledger
