"""
Audit Models for the Finance Tracker

Every state-changing action is described by an ``AuditEvent``.
This gives:
1. Traceability of how a transaction got its category
2. Visibility into classifier fallbacks (soft vs hard)
3. A record of cascades triggered by taxonomy deletes

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Transactions
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"

    # Classification
    CLASSIFICATION_FALLBACK = "classification_fallback"
    CORRECTION_RECORDED = "correction_recorded"
    CLASSIFIER_UNCONFIGURED = "classifier_unconfigured"

    # Taxonomy
    CATEGORY_ADDED = "category_added"
    CATEGORY_UPDATED = "category_updated"
    CATEGORY_DELETED = "category_deleted"
    INCOME_SOURCE_ADDED = "income_source_added"
    INCOME_SOURCE_UPDATED = "income_source_updated"
    INCOME_SOURCE_DELETED = "income_source_deleted"

    # Planning
    BUDGET_SET = "budget_set"
    BUDGET_CLEARED = "budget_cleared"
    GOAL_ADDED = "goal_added"
    GOAL_CONTRIBUTED = "goal_contributed"
    GOAL_DELETED = "goal_deleted"

    # Insights
    INSIGHTS_GENERATED = "insights_generated"

    # System events
    SYSTEM_ERROR = "system_error"


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
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'category')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one form submission)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

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


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_created(txn, correlation_id)
        event = AuditEventBuilder.category_deleted(category_id, 3, 1)
    """

    @staticmethod
    def transaction_created(
        transaction_id: str,
        transaction_type: str,
        category_name: str,
        ai_confidence: Optional[float],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"{transaction_type.capitalize()} filed under {category_name}",
            details={
                "type": transaction_type,
                "category": category_name,
                "ai_confidence": ai_confidence,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_updated(
        transaction_id: str,
        correction_recorded: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction edited by user",
            details={"correction_recorded": correction_recorded},
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(transaction_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction deleted",
            is_user_action=True,
        )

    @staticmethod
    def classification_fallback(
        kind: str,
        confidence: float,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CLASSIFICATION_FALLBACK,
            severity=AuditSeverity.WARNING,
            entity_type="classification",
            correlation_id=correlation_id,
            description=f"Categorization fell back to Other ({kind})",
            details={
                "kind": kind,
                "confidence": confidence,
            },
            error_message=reason,
        )

    @staticmethod
    def classifier_unconfigured() -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CLASSIFIER_UNCONFIGURED,
            severity=AuditSeverity.WARNING,
            entity_type="classification",
            description="No Gemini API key, expenses are filed under Other",
        )

    @staticmethod
    def correction_recorded(
        description: str,
        category_id: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CORRECTION_RECORDED,
            entity_type="correction",
            entity_id=category_id,
            description="User corrected a suggested category",
            details={
                "description": description,
                "corrected_category_id": category_id,
            },
            is_user_action=True,
        )

    @staticmethod
    def taxonomy_changed(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        verb = event_type.value.rsplit("_", 1)[-1]
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.replace('_', ' ').capitalize()} {verb}",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def budget_changed(category_id: str, amount: str, cleared: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_CLEARED if cleared else AuditEventType.BUDGET_SET,
            entity_type="budget",
            entity_id=category_id,
            description="Budget cleared" if cleared else f"Budget set to {amount}",
            details={"amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def goal_changed(
        event_type: AuditEventType,
        goal_id: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="goal",
            entity_id=goal_id,
            description=event_type.value.replace("_", " ").capitalize(),
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def insights_generated(tip_count: int, used_model: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INSIGHTS_GENERATED,
            entity_type="insights",
            description=f"Generated {tip_count} insight(s)",
            details={"tip_count": tip_count, "used_model": used_model},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
