"""
helpers.py - Shared constants and comparison utilities for payledger tests
"""

from typing import Dict, Any

from payledger import Ledger, PlatformConfig, Table


ADMIN = "owner"
ALICE = "alice"
BOB = "bob"
CAROL = "carol"
MALLORY = "mallory"


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def make_ledger(name: str = "test", **config_kwargs) -> Ledger:
    """Quiet ledger whose admin is ADMIN."""
    config_kwargs.setdefault("admin", ADMIN)
    return Ledger(name, PlatformConfig(**config_kwargs), verbose=False)


def snapshot(ledger: Ledger) -> Dict[str, Any]:
    """Copy of every table plus the sequence, for before/after comparisons."""
    return {
        "tables": {table: dict(ledger.tables[table]) for table in Table},
        "sequence": ledger.sequence,
        "log_length": len(ledger.operation_log),
    }


def compare_ledger_states(ledger1: Ledger, ledger2: Ledger) -> dict:
    """Compare two ledger states table by table and return differences."""
    diffs = []
    for table in Table:
        records1 = ledger1.tables[table]
        records2 = ledger2.tables[table]
        for key in set(records1) | set(records2):
            if records1.get(key) != records2.get(key):
                diffs.append({
                    "table": table.value,
                    "key": key,
                    "ledger1": records1.get(key),
                    "ledger2": records2.get(key),
                })
    return {"equal": not diffs, "diffs": diffs}


