"""
Currency Conversion Layer

Converts amounts between currencies using a rate table anchored to a base
currency (1 base = rate[code] units of code).

GUARANTEES:
- Converting a currency to itself returns the amount untouched
- A missing rate or empty table passes the amount through unchanged
- Nothing here raises or produces NaN

Every aggregation resolves a transaction's currency with
`resolve_transaction_currency`: transaction override, then the owning
account's currency, then the caller's base currency.

Conversions keep full Decimal precision. Rounding to cents happens when
an amount is persisted, not here.
"""

from decimal import Decimal
from typing import Iterable, Mapping, Optional, Sequence, Union

import structlog

from pocket_ledger.models.currency import ConvertedAmount, RateTable, clean_rates
from pocket_ledger.models.ledger import (
    ZERO,
    Account,
    TransactionTemplate,
    TransactionType,
    normalize_amount,
    round_money,
)


logger = structlog.get_logger(__name__)

RateSource = Union[RateTable, Mapping[str, Decimal], None]

__all__ = [
    "CurrencyConverter",
    "convert",
    "convert_with_status",
    "converted_totals",
    "resolve_transaction_currency",
    "round_money",
    "sum_by_category",
    "sum_converted",
]


def _rates_of(rate_table: RateSource) -> Mapping[str, Decimal]:
    if rate_table is None:
        return {}
    if isinstance(rate_table, RateTable):
        return rate_table.rates
    return clean_rates(rate_table)


def _positive_rate(rates: Mapping[str, Decimal], code: str) -> Optional[Decimal]:
    rate = rates.get(code)
    if rate is None or rate <= ZERO:
        return None
    return rate


def convert_with_status(
    amount: Decimal,
    from_currency: str,
    to_currency: str,
    rate_table: RateSource,
    rate_table_base: Optional[str] = None,
) -> ConvertedAmount:
    """
    Convert an amount and report whether a rate was available.

    Args:
        amount: Amount in `from_currency`
        from_currency: Source currency code
        to_currency: Target currency code
        rate_table: A RateTable or a plain code -> rate mapping
        rate_table_base: Base of the rates; defaults to the RateTable's own base

    Returns:
        ConvertedAmount; `conversion_available` is False on passthrough
    """
    amount = normalize_amount(amount)
    source = (from_currency or "").upper()
    target = (to_currency or "").upper()

    if source == target:
        return ConvertedAmount(
            amount=amount,
            original_amount=amount,
            original_currency=source,
            target_currency=target,
        )

    if rate_table_base is None and isinstance(rate_table, RateTable):
        rate_table_base = rate_table.base
    base = (rate_table_base or "").upper()
    rates = _rates_of(rate_table)

    from_rate = _positive_rate(rates, source)
    to_rate = _positive_rate(rates, target)

    converted: Optional[Decimal] = None
    if source == base and to_rate is not None:
        converted = amount * to_rate
    elif target == base and from_rate is not None:
        converted = amount / from_rate
    elif from_rate is not None and to_rate is not None:
        converted = amount / from_rate * to_rate

    if converted is None:
        logger.warning(
            "conversion_unavailable",
            from_currency=source,
            to_currency=target,
            rate_table_base=base or None,
        )
        return ConvertedAmount(
            amount=amount,
            original_amount=amount,
            original_currency=source,
            target_currency=target,
            conversion_available=False,
        )

    return ConvertedAmount(
        amount=converted,
        original_amount=amount,
        original_currency=source,
        target_currency=target,
    )


def convert(
    amount: Decimal,
    from_currency: str,
    to_currency: str,
    rate_table: RateSource,
    rate_table_base: Optional[str] = None,
) -> Decimal:
    """Convert an amount; the original amount is returned when no rate applies."""
    return convert_with_status(
        amount, from_currency, to_currency, rate_table, rate_table_base
    ).amount


def resolve_transaction_currency(
    transaction: TransactionTemplate,
    accounts: Union[Mapping[str, Account], Iterable[Account]],
    base_currency: str,
) -> str:
    """
    Effective currency of a transaction.

    Priority: explicit transaction currency > owning account's currency >
    base currency.
    """
    if transaction.currency:
        return transaction.currency

    if isinstance(accounts, Mapping):
        account = accounts.get(transaction.account_id)
    else:
        account = next((a for a in accounts if a.id == transaction.account_id), None)
    if account is not None and account.currency:
        return account.currency

    return base_currency.upper()


class CurrencyConverter:
    """
    Converts transaction amounts into the base currency.

    Binds the rate table, the account list and the base currency so the
    three-tier currency resolution is applied identically by every caller.
    Instances are callable on a transaction and can be handed to the
    budget tracker and the period summary builder.
    """

    def __init__(
        self,
        rate_table: Optional[RateTable],
        accounts: Iterable[Account],
        base_currency: str,
    ):
        self._rate_table = rate_table
        self._accounts = {account.id: account for account in accounts}
        self._base_currency = base_currency.upper()

    @property
    def base_currency(self) -> str:
        return self._base_currency

    def currency_of(self, transaction: TransactionTemplate) -> str:
        return resolve_transaction_currency(transaction, self._accounts, self._base_currency)

    def convert_transaction(self, transaction: TransactionTemplate) -> ConvertedAmount:
        source = self.currency_of(transaction)
        if source == self._base_currency:
            return ConvertedAmount(
                amount=transaction.amount,
                original_amount=transaction.amount,
                original_currency=source,
                target_currency=self._base_currency,
            )
        if self._rate_table is None or self._rate_table.is_empty:
            logger.warning(
                "conversion_unavailable",
                from_currency=source,
                to_currency=self._base_currency,
                reason="no_rate_table",
            )
            return ConvertedAmount(
                amount=transaction.amount,
                original_amount=transaction.amount,
                original_currency=source,
                target_currency=self._base_currency,
                conversion_available=False,
            )
        return convert_with_status(
            transaction.amount,
            source,
            self._base_currency,
            self._rate_table,
            self._rate_table.base,
        )

    def convert_amount(self, amount: Decimal, from_currency: Optional[str]) -> Decimal:
        """Convert a bare amount (e.g. an account balance) to the base currency."""
        if not from_currency:
            return normalize_amount(amount)
        return convert(
            amount,
            from_currency,
            self._base_currency,
            self._rate_table,
            self._rate_table.base if self._rate_table else None,
        )

    def __call__(self, transaction: TransactionTemplate) -> Decimal:
        return self.convert_transaction(transaction).amount


def sum_converted(
    transactions: Iterable[TransactionTemplate],
    converter: CurrencyConverter,
) -> Decimal:
    """Sum transaction magnitudes in the base currency."""
    return sum((converter(t) for t in transactions), ZERO)


def converted_totals(
    transactions: Iterable[TransactionTemplate],
    converter: CurrencyConverter,
) -> dict[str, Decimal]:
    """
    Income, expense and net in the base currency.

    Transfers do not affect income or expense.
    """
    income = ZERO
    expense = ZERO
    for transaction in transactions:
        if transaction.type == TransactionType.INCOME:
            income += converter(transaction)
        elif transaction.type == TransactionType.EXPENSE:
            expense += converter(transaction)
    return {"income": income, "expense": expense, "net": income - expense}


def sum_by_category(
    transactions: Sequence[TransactionTemplate],
    converter: CurrencyConverter,
) -> dict[str, Decimal]:
    """Converted totals keyed by category reference."""
    totals: dict[str, Decimal] = {}
    for transaction in transactions:
        totals[transaction.category] = totals.get(transaction.category, ZERO) + converter(transaction)
    return totals
