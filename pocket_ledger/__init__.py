"""
Pocket Ledger - Source Package

The derivation engine behind a personal finance tracker. Account balances,
period summaries and budget progress are computed from the transaction
ledger on every read; nothing derived is ever stored.

DESIGN PRINCIPLES:
1. The ledger is the only source of truth
2. Engine computations are pure and idempotent
3. Missing data degrades to a best-effort result, never an exception
4. Every mutation is auditable
5. Storage and reward collaborators are swappable
"""

__version__ = "1.0.0"
__author__ = "Pocket Ledger Team"
