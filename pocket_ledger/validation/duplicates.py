"""
Duplicate Transaction Detection

Scores how much a new transaction looks like entries already in the
ledger so the user can be warned before saving it twice.

Scoring (type must match, otherwise no score at all):
- amount:   exact 0.4, within 5% 0.2
- date:     same day 0.35, +/-1 day 0.2, +/-3 days 0.1
- note:     word overlap > 0.7 gives 0.25, > 0.4 gives 0.1
- category: same (case-insensitive) 0.1

A match needs at least two reasons and a score at or above the threshold.
"""

import re
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from pocket_ledger.models.ledger import ZERO, Transaction
from pocket_ledger.models.validation import DuplicateMatch


DEFAULT_THRESHOLD = 0.5
DEFAULT_LOOKBACK_DAYS = 30

_EXACT_AMOUNT = Decimal("0.01")
_CLOSE_AMOUNT_RATIO = Decimal("0.05")


def note_similarity(first: str, second: str) -> float:
    """Share of significant words (longer than 2 chars) the notes have in common."""
    a = first.lower().strip()
    b = second.lower().strip()
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0

    words_a = {w for w in re.split(r"\s+", a) if len(w) > 2}
    words_b = {w for w in re.split(r"\s+", b) if len(w) > 2}
    if not words_a or not words_b:
        return 0.0
    return len(words_a & words_b) / max(len(words_a), len(words_b))


def score_duplicate(candidate: Transaction, existing: Transaction) -> tuple[float, list[str]]:
    """Score one pair. Returns (0.0, []) when the types differ."""
    if candidate.type != existing.type:
        return 0.0, []

    score = 0.0
    reasons: list[str] = []

    difference = abs(candidate.amount - existing.amount)
    largest = max(candidate.amount, existing.amount)
    if difference < _EXACT_AMOUNT:
        score += 0.4
        reasons.append("Exact amount match")
    elif largest > ZERO and difference / largest < _CLOSE_AMOUNT_RATIO:
        score += 0.2
        reasons.append("Similar amount")

    days_apart = abs((candidate.date - existing.date).days)
    if days_apart == 0:
        score += 0.35
        reasons.append("Same date")
    elif days_apart <= 1:
        score += 0.2
        reasons.append("Adjacent date (+/-1 day)")
    elif days_apart <= 3:
        score += 0.1
        reasons.append("Close date (+/-3 days)")

    similarity = note_similarity(candidate.note, existing.note)
    if similarity > 0.7:
        score += 0.25
        reasons.append("Similar description")
    elif similarity > 0.4:
        score += 0.1
        reasons.append("Some description overlap")

    if candidate.category.lower() == existing.category.lower():
        score += 0.1
        reasons.append("Same category")

    return round(score, 4), reasons


def find_potential_duplicates(
    candidate: Transaction,
    existing: Iterable[Transaction],
    threshold: float = DEFAULT_THRESHOLD,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
    today: Optional[date] = None,
) -> list[DuplicateMatch]:
    """
    Existing entries that may be the same as `candidate`, best first.

    Only entries dated after `today - lookback_days` are compared, and the
    candidate is never compared with itself.
    """
    today = today or date.today()
    cutoff = today - timedelta(days=lookback_days)

    matches: list[DuplicateMatch] = []
    for transaction in existing:
        if transaction.id == candidate.id or transaction.date <= cutoff:
            continue
        score, reasons = score_duplicate(candidate, transaction)
        if score >= threshold and len(reasons) >= 2:
            matches.append(
                DuplicateMatch(
                    candidate_id=candidate.id,
                    existing=transaction,
                    confidence=min(1.0, score),
                    reasons=reasons,
                )
            )

    matches.sort(key=lambda match: match.confidence, reverse=True)
    return matches


def duplicate_warning(match: DuplicateMatch) -> str:
    """One-line warning for a duplicate match."""
    existing = match.existing
    return (
        f"Possible duplicate ({round(match.confidence * 100)}% match): "
        f"{existing.note} - {existing.amount:.2f} on {existing.date.strftime('%b %d')}"
    )
