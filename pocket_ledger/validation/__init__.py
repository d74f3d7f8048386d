"""
Validation Package

Pre-write checks for transactions. Findings are reported, never fixed.
"""

from pocket_ledger.validation.duplicates import (
    duplicate_warning,
    find_potential_duplicates,
    note_similarity,
    score_duplicate,
)
from pocket_ledger.validation.validator import TransactionValidator

__all__ = [
    "TransactionValidator",
    "duplicate_warning",
    "find_potential_duplicates",
    "note_similarity",
    "score_duplicate",
]
