"""
Audit Logger

DESIGN DECISION: Every ledger write and every anomaly the engine works
around is logged. This provides:
1. A trail of who changed the ledger and when
2. Visibility into legacy accounts and skipped duplicates
3. A record of reward notifications that failed

The audit logger:
- Is async so it composes with the storage collaborators
- Never raises: a failing audit store is logged and ignored
- Supports correlation IDs to tie related events together
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from pocket_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from pocket_ledger.services.storage import AuditStorageInterface


def configure_logging() -> None:
    """Configure structlog for JSON output with ISO timestamps."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit store, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("pocket_ledger.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Audit failures must not break the ledger flow
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_account_created(
        self,
        account_id: str,
        name: str,
        initial_balance: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.account_created(
            account_id=account_id,
            name=name,
            initial_balance=initial_balance,
            correlation_id=correlation_id,
        ))

    async def log_transaction_recorded(
        self,
        transaction_id: str,
        transaction_type: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_recorded(
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_transaction_deleted(
        self,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        ))

    async def log_legacy_account(
        self,
        account_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log that balances were rebuilt around a missing account."""
        await self.log(AuditEventBuilder.legacy_account_synthesized(
            account_id=account_id,
            correlation_id=correlation_id,
        ))

    async def log_recurring_created(
        self,
        recurring_id: str,
        frequency: str,
        next_occurrence: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.recurring_created(
            recurring_id=recurring_id,
            frequency=frequency,
            next_occurrence=next_occurrence,
            correlation_id=correlation_id,
        ))

    async def log_recurring_materialized(
        self,
        recurring_id: str,
        transaction_id: str,
        occurrence: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.recurring_materialized(
            recurring_id=recurring_id,
            transaction_id=transaction_id,
            occurrence=occurrence,
            correlation_id=correlation_id,
        ))

    async def log_recurring_duplicate_skipped(
        self,
        recurring_id: str,
        existing_transaction_id: str,
        start_date: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.recurring_duplicate_skipped(
            recurring_id=recurring_id,
            existing_transaction_id=existing_transaction_id,
            start_date=start_date,
            correlation_id=correlation_id,
        ))

    async def log_budget_period_completed(
        self,
        goal_id: str,
        goal_name: str,
        period_key: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.budget_period_completed(
            goal_id=goal_id,
            goal_name=goal_name,
            period_key=period_key,
            correlation_id=correlation_id,
        ))

    async def log_daily_budget_succeeded(
        self,
        day_key: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.daily_budget_succeeded(
            day_key=day_key,
            correlation_id=correlation_id,
        ))

    async def log_reward_failed(
        self,
        reason: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a reward notification that was rejected or raised."""
        await self.log(AuditEventBuilder.reward_notification_failed(
            reason=reason,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a caller action (e.g. one recurring run)
    and pass it through all subsequent operations.
    """
    return uuid4()
