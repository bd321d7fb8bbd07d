"""
examples.py - Usage Examples for the Payment Ledger

This module demonstrates the features of the payment ledger:
1. Deposits, withdrawals and instant payments
2. Escrow released by an arbiter, and an emergency refund
3. Subscriptions driven by the logical clock
4. Admin settings
5. Building and executing operations by hand (idempotency)
6. State reconstruction: clone, clone_at, replay
7. Custody boundary and the conservation check

Run this file directly to execute all examples:
    python examples.py
"""

from payledger import (
    Ledger, PlatformConfig, ExecuteResult, InMemoryCustody,
    compute_payment,
    PaymentError, PaymentExpired, Unauthorized,
)


ADMIN = "owner"


def example_instant_payments():
    """Example 1: Deposits and Instant Payments"""
    print("=" * 80)
    print("EXAMPLE 1: Deposits and Instant Payments")
    print("=" * 80 + "\n")

    ledger = Ledger("demo", PlatformConfig(admin=ADMIN), verbose=True)

    ledger.deposit("alice", 10_000)
    ledger.deposit("bob", 5_000)

    # 0.25% fee: alice pays 2000 + 5, bob receives 2000
    payment_id = ledger.create_payment("alice", "bob", 2_000, "invoice 7")
    payment = ledger.get_payment(payment_id)

    print(f"\nPayment {payment_id}: {payment.amount} + fee {payment.fee} ({payment.status.value})")
    print(f"  alice available: {ledger.get_balance('alice').available}")
    print(f"  bob available:   {ledger.get_balance('bob').available}")
    print(f"  total volume:    {ledger.get_platform_stats().total_volume}")

    ledger.withdraw("bob", 7_000)
    print(f"\nbob withdrew everything: {ledger.get_balance('bob')}")
    return ledger


def example_escrow():
    """Example 2: Escrow Release and Emergency Refund"""
    print("\n\n" + "=" * 80)
    print("EXAMPLE 2: Escrow")
    print("=" * 80 + "\n")

    ledger = Ledger("escrow", PlatformConfig(admin=ADMIN), verbose=False)
    ledger.deposit("alice", 10_000)

    deadline = ledger.current_time + 100
    first = ledger.create_escrow_payment("alice", "bob", 3_000, "carol", deadline, "website build")
    bal = ledger.get_balance("alice")
    print(f"Escrow {first} opened: alice available={bal.available} locked={bal.locked}")

    try:
        ledger.release_escrow("mallory", first)
    except Unauthorized as e:
        print(f"mallory cannot release: {e} (code {e.code})")

    ledger.release_escrow("carol", first)
    print(f"carol released escrow {first}: bob available={ledger.get_balance('bob').available}")

    second = ledger.create_escrow_payment("alice", "bob", 3_000, "carol", deadline)
    ledger.emergency_refund(ADMIN, second)
    bal = ledger.get_balance("alice")
    print(f"Escrow {second} refunded: alice available={bal.available} locked={bal.locked}")
    print(f"Fees retained: {ledger.get_platform_stats().fees_retained}")


def example_subscriptions():
    """Example 3: Subscriptions and the Logical Clock"""
    print("\n\n" + "=" * 80)
    print("EXAMPLE 3: Subscriptions")
    print("=" * 80 + "\n")

    ledger = Ledger("subs", PlatformConfig(admin=ADMIN), verbose=False)
    ledger.deposit("alice", 20_000)
    sub_id = ledger.create_subscription("alice", "bob", 1_500, interval=10)

    try:
        ledger.process_subscription(sub_id)
    except PaymentExpired as e:
        print(f"t={ledger.current_time}: not due yet ({e})")

    for _ in range(3):
        ledger.advance_clock(ADMIN, 10)
        print(f"t={ledger.current_time}: due={ledger.due_subscriptions()}")
        ledger.process_subscription(sub_id, caller="keeper")

    sub = ledger.get_subscription(sub_id)
    print(f"\nPayments made: {sub.payments_made}, last at t={sub.last_payment}")
    print(f"bob received: {ledger.get_balance('bob').total_received}")

    ledger.cancel_subscription("alice", sub_id)
    print(f"Cancelled: active={ledger.get_subscription(sub_id).active}")


def example_admin():
    """Example 4: Admin Settings"""
    print("\n\n" + "=" * 80)
    print("EXAMPLE 4: Admin Settings")
    print("=" * 80 + "\n")

    ledger = Ledger("admin", PlatformConfig(admin=ADMIN), verbose=False)
    print(f"fee on 10000 at 25 bps: {ledger.calculate_fee(10_000)}")
    ledger.set_fee(ADMIN, 100)
    print(f"fee on 10000 at 100 bps: {ledger.calculate_fee(10_000)}")

    for caller, rate in [("alice", 50), (ADMIN, 2_000)]:
        try:
            ledger.set_fee(caller, rate)
        except PaymentError as e:
            print(f"set_fee({caller}, {rate}) -> {type(e).__name__}: {e}")

    ledger.set_min_payment(ADMIN, 500)
    print(f"stats: {ledger.get_platform_stats()}")


def example_manual_execution():
    """Example 5: Building Operations by Hand"""
    print("\n\n" + "=" * 80)
    print("EXAMPLE 5: Pending Operations and Idempotency")
    print("=" * 80 + "\n")

    ledger = Ledger("manual", PlatformConfig(admin=ADMIN), verbose=False)
    ledger.deposit("alice", 10_000)

    pending = compute_payment(ledger, "alice", "bob", 1_000)
    print(f"Built {pending!r} intent_id={pending.intent_id}")
    print(f"  first execute:  {ledger.execute(pending).value}")
    print(f"  second execute: {ledger.execute(pending).value}")

    stale = compute_payment(ledger, "alice", "bob", 1_000)
    ledger.deposit("carol", 1_000)
    result = ledger.execute(stale)
    print(f"  stale execute:  {result.value}")
    assert result == ExecuteResult.REJECTED


def example_reconstruction():
    """Example 6: clone, clone_at and replay"""
    print("\n\n" + "=" * 80)
    print("EXAMPLE 6: State Reconstruction")
    print("=" * 80 + "\n")

    ledger = Ledger("history", PlatformConfig(admin=ADMIN), verbose=False)
    ledger.deposit("alice", 10_000)
    ledger.create_payment("alice", "bob", 2_000)
    ledger.create_payment("alice", "bob", 3_000)

    for seq in range(ledger.sequence + 1):
        past = ledger.clone_at(seq)
        print(f"after {seq} ops: alice={past.get_balance('alice').available} "
              f"bob={past.get_balance('bob').available}")

    replayed = ledger.replay()
    print(f"\nreplay matches: {replayed.state_hash() == ledger.state_hash()}")
    print(f"state hash: {ledger.state_hash()[:16]}...")


def example_custody():
    """Example 7: Custody and Conservation"""
    print("\n\n" + "=" * 80)
    print("EXAMPLE 7: Custody Boundary")
    print("=" * 80 + "\n")

    custody = InMemoryCustody({"alice": 25_000, "bob": 0})
    ledger = Ledger("custodial", PlatformConfig(admin=ADMIN), custody=custody, verbose=False)

    ledger.deposit("alice", 20_000)
    ledger.create_payment("alice", "bob", 8_000)
    ledger.withdraw("bob", 8_000)

    print(f"custody holdings: {custody.holdings}")
    print(f"custody reserve:  {custody.reserve}")
    print(f"conservation:     {ledger.verify_conservation()}")


def run_all_examples():
    """Run all examples in order."""
    example_instant_payments()
    example_escrow()
    example_subscriptions()
    example_admin()
    example_manual_execution()
    example_reconstruction()
    example_custody()

    print("\n" + "=" * 80)
    print("ALL EXAMPLES COMPLETED")
    print("=" * 80)


if __name__ == "__main__":
    run_all_examples()
