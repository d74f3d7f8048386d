"""
Audit Models for Pocket Ledger

Every ledger mutation and every recovered anomaly is logged for audit
purposes. This provides:
1. Complete traceability of all writes
2. Debugging information when a balance looks wrong
3. Visibility into data the engine had to work around

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from pocket_ledger.models.ledger import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger writes
    ACCOUNT_CREATED = "account_created"
    TRANSACTION_RECORDED = "transaction_recorded"
    TRANSACTION_DELETED = "transaction_deleted"

    # Recovered anomalies
    LEGACY_ACCOUNT_SYNTHESIZED = "legacy_account_synthesized"

    # Recurring rules
    RECURRING_CREATED = "recurring_created"
    RECURRING_MATERIALIZED = "recurring_materialized"
    RECURRING_DUPLICATE_SKIPPED = "recurring_duplicate_skipped"

    # Budgets
    BUDGET_PERIOD_COMPLETED = "budget_period_completed"
    DAILY_BUDGET_SUCCEEDED = "daily_budget_succeeded"

    # Collaborators
    REWARD_NOTIFICATION_FAILED = "reward_notification_failed"
    STORAGE_ERROR = "storage_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'account', 'transaction', 'budget')"
    )
    entity_id: Optional[str] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one recurring run)"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None
    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_row(self) -> list:
        """
        Flatten to a single row for tabular audit storage.

        Columns:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_recorded(tx_id, "expense", "12.50")
        event = AuditEventBuilder.budget_period_completed(goal_id, name, key)
    """

    @staticmethod
    def account_created(
        account_id: str,
        name: str,
        initial_balance: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_CREATED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Account created: {name}",
            details={
                "name": name,
                "initial_balance": initial_balance,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_recorded(
        transaction_id: str,
        transaction_type: str,
        amount: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_RECORDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction recorded: {transaction_type} {amount}",
            details={
                "type": transaction_type,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction deleted",
            is_user_action=True,
        )

    @staticmethod
    def legacy_account_synthesized(
        account_id: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEGACY_ACCOUNT_SYNTHESIZED,
            severity=AuditSeverity.WARNING,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Transactions reference missing account {account_id}",
        )

    @staticmethod
    def recurring_created(
        recurring_id: str,
        frequency: str,
        next_occurrence: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_CREATED,
            entity_type="recurring",
            entity_id=recurring_id,
            correlation_id=correlation_id,
            description=f"Recurring {frequency} rule created, next on {next_occurrence}",
            details={
                "frequency": frequency,
                "next_occurrence": next_occurrence,
            },
            is_user_action=True,
        )

    @staticmethod
    def recurring_materialized(
        recurring_id: str,
        transaction_id: str,
        occurrence: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_MATERIALIZED,
            entity_type="recurring",
            entity_id=recurring_id,
            correlation_id=correlation_id,
            description=f"Recurring entry logged for {occurrence}",
            details={
                "transaction_id": transaction_id,
                "occurrence": occurrence,
            },
        )

    @staticmethod
    def recurring_duplicate_skipped(
        recurring_id: str,
        existing_transaction_id: str,
        start_date: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_DUPLICATE_SKIPPED,
            entity_type="recurring",
            entity_id=recurring_id,
            correlation_id=correlation_id,
            description=f"Start date {start_date} already logged; first occurrence skipped",
            details={
                "existing_transaction_id": existing_transaction_id,
                "start_date": start_date,
            },
        )

    @staticmethod
    def budget_period_completed(
        goal_id: str,
        goal_name: str,
        period_key: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_PERIOD_COMPLETED,
            entity_type="budget",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"Budget \"{goal_name}\" completed within target",
            details={
                "period_key": period_key,
            },
        )

    @staticmethod
    def daily_budget_succeeded(
        day_key: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DAILY_BUDGET_SUCCEEDED,
            entity_type="budget",
            correlation_id=correlation_id,
            description="Stayed under every budget today",
            details={
                "day_key": day_key,
            },
        )

    @staticmethod
    def reward_notification_failed(
        reason: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REWARD_NOTIFICATION_FAILED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Reward notification failed: {reason}",
            error_message=error_message,
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={
                "operation": operation,
            },
        )
