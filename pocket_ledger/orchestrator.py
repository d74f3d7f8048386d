"""
Main Orchestrator for Pocket Ledger

This module ties the pure engine to its collaborators and defines the
end-to-end flows:
1. Write (validate -> persist -> audit)
2. Read (load -> reconcile / summarize / track budgets)
3. Recurring (load -> materialize due rules -> persist atomically -> notify)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing derived is ever persisted; every read recomputes from a fresh load
- Multi-entity writes go through one atomic batch
- Reward notifications can fail without affecting the ledger
- Every write is audited

This is the "glue" that keeps the engine pure while the collaborators
around it do I/O.
"""

from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import AbstractSet, Awaitable, Callable, Optional, Sequence
from uuid import UUID

import structlog

from pocket_ledger.audit import AuditLogger, create_correlation_id
from pocket_ledger.config import EngineSettings, get_settings
from pocket_ledger.engine import budgets as budget_tracker
from pocket_ledger.engine.currency import CurrencyConverter
from pocket_ledger.engine.ledger import missing_account_ids, reconcile, total_balance
from pocket_ledger.engine.recurring import create_recurring, materialize, materialize_due
from pocket_ledger.engine.summary import scope_transactions, summarize
from pocket_ledger.models.currency import RateTable
from pocket_ledger.models.ledger import (
    Account,
    LedgerEntity,
    LedgerSnapshot,
    RecurrenceFrequency,
    RecurringTransaction,
    Transaction,
    TransactionTemplate,
)
from pocket_ledger.models.reports import BudgetEvaluation, BudgetProgress, PeriodSummary
from pocket_ledger.models.validation import ValidationResult
from pocket_ledger.services.rewards import NullRewardNotifier, RewardNotifier
from pocket_ledger.services.storage import (
    InMemoryLedgerStorage,
    JsonFileLedgerStorage,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)
from pocket_ledger.validation import TransactionValidator


logger = structlog.get_logger(__name__)


class LedgerService:
    """
    Orchestrates ledger reads and writes.

    Holds no ledger state of its own. Budget completion keys are owned by
    the caller: pass the persisted set into `evaluate_budgets` and store
    the set it returns.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        reward_notifier: Optional[RewardNotifier] = None,
        settings: Optional[EngineSettings] = None,
        validator: Optional[TransactionValidator] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger or AuditLogger()
        self._rewards = reward_notifier or NullRewardNotifier()
        self._settings = settings or get_settings().engine
        self._validator = validator or TransactionValidator(self._settings)

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _persist(
        self,
        operation: str,
        entities: Sequence[LedgerEntity],
        correlation_id: Optional[UUID],
    ) -> None:
        """Save one entity or an atomic batch, auditing storage failures."""
        try:
            if len(entities) == 1:
                await self._storage.save(entities[0])
            else:
                await self._storage.save_batch(entities)
        except StorageError as e:
            await self._audit_logger.log_storage_error(
                operation=operation,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

    async def _notify(
        self,
        reason: str,
        send: Callable[[], Awaitable[bool]],
        correlation_id: Optional[UUID],
    ) -> bool:
        """Forward an event to the reward collaborator; failures are only audited."""
        try:
            accepted = await send()
        except Exception as e:
            await self._audit_logger.log_reward_failed(
                reason=reason,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            return False

        if not accepted:
            await self._audit_logger.log_reward_failed(
                reason=reason,
                error_message="notification rejected",
                correlation_id=correlation_id,
            )
        return bool(accepted)

    def _converter(
        self,
        snapshot: LedgerSnapshot,
        rate_table: Optional[RateTable],
    ) -> Optional[CurrencyConverter]:
        if rate_table is None:
            return None
        if rate_table.is_stale(max_age_days=self._settings.rate_table_max_age_days):
            logger.warning(
                "rate_table_stale",
                as_of=rate_table.as_of.isoformat(),
                max_age_days=self._settings.rate_table_max_age_days,
            )
        return CurrencyConverter(rate_table, snapshot.accounts, self._settings.base_currency)

    # =========================================================================
    # READS
    # =========================================================================

    async def load_snapshot(self) -> LedgerSnapshot:
        return await self._storage.load_all()

    async def balances(self, correlation_id: Optional[UUID] = None) -> list[Account]:
        """
        Reconciled accounts, including synthesized legacy accounts.

        Legacy accounts are audited on every read so a dangling reference
        stays visible until it is cleaned up.
        """
        snapshot = await self.load_snapshot()
        for account_id in missing_account_ids(snapshot.accounts, snapshot.transactions):
            await self._audit_logger.log_legacy_account(account_id, correlation_id)

        return reconcile(
            snapshot.accounts,
            snapshot.transactions,
            self._settings.base_currency,
            self._settings.legacy_account_name,
        )

    async def total_balance(self, rate_table: Optional[RateTable] = None) -> Decimal:
        """Wallet total across accounts that count toward it, in the base currency."""
        snapshot = await self.load_snapshot()
        accounts = reconcile(
            snapshot.accounts,
            snapshot.transactions,
            self._settings.base_currency,
            self._settings.legacy_account_name,
        )
        converter = self._converter(snapshot, rate_table)
        return total_balance(accounts, converter.convert_amount if converter else None)

    async def period_summary(
        self,
        period_start: date,
        period_end: date,
        selected_account_id: Optional[str] = None,
        rate_table: Optional[RateTable] = None,
    ) -> PeriodSummary:
        """
        Summary for a window.

        Visible accounts are those neither archived nor excluded from totals.
        Without a selected account, entries that touch no visible account are
        left out of every figure, not only the opening seed.
        """
        snapshot = await self.load_snapshot()
        visible = [
            account.id for account in snapshot.accounts
            if not account.is_archived and not account.exclude_from_total
        ]
        return summarize(
            scope_transactions(snapshot.transactions, visible, selected_account_id),
            snapshot.accounts,
            visible,
            selected_account_id,
            period_start,
            period_end,
            self._converter(snapshot, rate_table),
        )

    async def budget_progress(
        self,
        today: Optional[date] = None,
        rate_table: Optional[RateTable] = None,
    ) -> list[BudgetProgress]:
        snapshot = await self.load_snapshot()
        converter = self._converter(snapshot, rate_table)
        return [
            budget_tracker.budget_progress(
                goal, snapshot.transactions, snapshot.categories, converter, today
            )
            for goal in snapshot.budgets
        ]

    # =========================================================================
    # WRITES
    # =========================================================================

    async def create_account(
        self,
        account: Account,
        opening_transaction: Optional[Transaction] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Account:
        """
        Persist a new account, optionally with its seeding transaction.

        The account and its seeding entry are written as one batch so
        neither can exist without the other.

        Raises:
            ValueError: If the seeding entry does not belong to the account
        """
        correlation_id = correlation_id or create_correlation_id()
        if opening_transaction is not None and opening_transaction.account_id != account.id:
            raise ValueError("Opening transaction must be recorded against the new account")

        entities: list[LedgerEntity] = [account.model_copy(update={"balance": account.initial_balance})]
        if opening_transaction is not None:
            entities.append(opening_transaction)
        await self._persist("create_account", entities, correlation_id)

        await self._audit_logger.log_account_created(
            account_id=account.id,
            name=account.name,
            initial_balance=str(account.initial_balance),
            correlation_id=correlation_id,
        )
        if opening_transaction is not None:
            await self._audit_logger.log_transaction_recorded(
                transaction_id=opening_transaction.id,
                transaction_type=opening_transaction.type.value,
                amount=str(opening_transaction.amount),
                correlation_id=correlation_id,
            )
        return entities[0]

    async def record_transaction(
        self,
        transaction: Transaction,
        force: bool = False,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[ValidationResult, bool]:
        """
        Validate and persist a transaction.

        Entries with error-level issues are not saved unless `force` is set.
        Warnings (duplicates, unresolved categories) never block a save.

        Returns:
            (validation_result, saved)
        """
        correlation_id = correlation_id or create_correlation_id()
        snapshot = await self.load_snapshot()
        result = self._validator.validate(transaction, snapshot, today=today)

        if result.has_errors and not force:
            logger.info(
                "transaction_rejected",
                transaction_id=transaction.id,
                error_count=result.error_count,
            )
            return result, False

        await self._persist("record_transaction", [transaction], correlation_id)
        await self._audit_logger.log_transaction_recorded(
            transaction_id=transaction.id,
            transaction_type=transaction.type.value,
            amount=str(transaction.amount),
            correlation_id=correlation_id,
        )
        return result, True

    async def delete_transaction(
        self,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Raises:
            NotFoundError: If no transaction has this id
        """
        correlation_id = correlation_id or create_correlation_id()
        snapshot = await self.load_snapshot()
        if not any(t.id == transaction_id for t in snapshot.transactions):
            raise NotFoundError(f"No transaction with id {transaction_id}")

        await self._storage.delete(transaction_id)
        await self._audit_logger.log_transaction_deleted(transaction_id, correlation_id)

    # =========================================================================
    # RECURRING
    # =========================================================================

    async def add_recurring(
        self,
        template: TransactionTemplate,
        frequency: RecurrenceFrequency,
        start_date: date,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> RecurringTransaction:
        """Create a recurring rule, skipping a start date that is already logged."""
        correlation_id = correlation_id or create_correlation_id()
        snapshot = await self.load_snapshot()
        created = create_recurring(template, frequency, start_date, snapshot.transactions, today)

        await self._persist("add_recurring", [created.recurring], correlation_id)
        if created.duplicate_of is not None:
            await self._audit_logger.log_recurring_duplicate_skipped(
                recurring_id=created.recurring.id,
                existing_transaction_id=created.duplicate_of.id,
                start_date=start_date.isoformat(),
                correlation_id=correlation_id,
            )
        await self._audit_logger.log_recurring_created(
            recurring_id=created.recurring.id,
            frequency=frequency.value,
            next_occurrence=created.recurring.next_occurrence.isoformat(),
            correlation_id=correlation_id,
        )
        return created.recurring

    async def _log_occurrence(
        self,
        transaction: Transaction,
        recurring_id: str,
        correlation_id: UUID,
    ) -> None:
        await self._audit_logger.log_recurring_materialized(
            recurring_id=recurring_id,
            transaction_id=transaction.id,
            occurrence=transaction.date.isoformat(),
            correlation_id=correlation_id,
        )
        await self._notify(
            "recurring_materialized",
            lambda: self._rewards.recurring_materialized(transaction),
            correlation_id,
        )

    async def log_recurring(
        self,
        recurring_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Manually log a rule's current occurrence and advance it.

        Works for inactive rules as well.

        Raises:
            NotFoundError: If no recurring rule has this id
        """
        correlation_id = correlation_id or create_correlation_id()
        snapshot = await self.load_snapshot()
        rule = next((r for r in snapshot.recurring if r.id == recurring_id), None)
        if rule is None:
            raise NotFoundError(f"No recurring rule with id {recurring_id}")

        transaction, advanced = materialize(rule)
        await self._persist("log_recurring", [transaction, advanced], correlation_id)
        await self._log_occurrence(transaction, rule.id, correlation_id)
        return transaction

    async def run_recurring(
        self,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        """
        Materialize every due occurrence of every active rule.

        All new entries and advanced rules are saved in one batch.
        """
        correlation_id = correlation_id or create_correlation_id()
        snapshot = await self.load_snapshot()
        run = materialize_due(snapshot.recurring, today, self._settings.max_recurring_catch_up)
        if not run.transactions:
            return []

        await self._persist("run_recurring", [*run.transactions, *run.recurring], correlation_id)

        for transaction in run.transactions:
            await self._log_occurrence(transaction, run.sources[transaction.id], correlation_id)

        logger.info("recurring_run_completed", created=len(run.transactions))
        return run.transactions

    # =========================================================================
    # BUDGETS
    # =========================================================================

    async def evaluate_budgets(
        self,
        completed_keys: AbstractSet[str] = frozenset(),
        today: Optional[date] = None,
        rate_table: Optional[RateTable] = None,
        correlation_id: Optional[UUID] = None,
    ) -> BudgetEvaluation:
        """
        Check every repeating goal and the daily budget, forwarding new
        completions to the reward collaborator.

        A key whose notification fails is left out of the returned set so
        the next evaluation of the same period tries again.
        """
        correlation_id = correlation_id or create_correlation_id()
        snapshot = await self.load_snapshot()
        evaluation = budget_tracker.evaluate_budgets(
            snapshot.budgets,
            snapshot.transactions,
            snapshot.categories,
            self._converter(snapshot, rate_table),
            completed_keys,
            today,
        )

        goals = {goal.id: goal for goal in snapshot.budgets}
        failed: set[str] = set()

        for completion in evaluation.rewardable:
            goal = goals[completion.goal_id]
            await self._audit_logger.log_budget_period_completed(
                goal_id=goal.id,
                goal_name=goal.name,
                period_key=completion.period_key,
                correlation_id=correlation_id,
            )
            delivered = await self._notify(
                "budget_period_completed",
                lambda goal=goal, key=completion.period_key: self._rewards.budget_period_completed(goal, key),
                correlation_id,
            )
            if not delivered:
                failed.add(completion.period_key)

        daily = evaluation.daily
        if daily is not None and daily.points_eligible:
            await self._audit_logger.log_daily_budget_succeeded(daily.day_key, correlation_id)
            delivered = await self._notify(
                "daily_budget_succeeded",
                lambda: self._rewards.daily_budget_succeeded(daily.day_key),
                correlation_id,
            )
            if not delivered:
                failed.add(daily.day_key)

        if failed:
            evaluation = evaluation.model_copy(
                update={"completed_period_keys": evaluation.completed_period_keys - failed}
            )
        return evaluation


def create_ledger_service(
    data_path: Optional[Path] = None,
    in_memory: bool = False,
    reward_notifier: Optional[RewardNotifier] = None,
) -> LedgerService:
    """
    Factory function to create a ready-to-use ledger service.

    Args:
        data_path: JSON document location; defaults to the configured path
        in_memory: Use volatile in-memory storage instead of a file
        reward_notifier: Reward collaborator; defaults to a no-op notifier

    Returns:
        LedgerService with local-only audit logging
    """
    settings = get_settings()
    storage: LedgerStorageInterface
    if in_memory:
        storage = InMemoryLedgerStorage()
    else:
        storage = JsonFileLedgerStorage(data_path, settings.storage)

    return LedgerService(
        storage=storage,
        audit_logger=AuditLogger(),
        reward_notifier=reward_notifier,
        settings=settings.engine,
    )
