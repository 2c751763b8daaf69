"""
Audit Models for Stephly

Every write and every assistant decision is logged for audit purposes.
This provides:
1. Traceability of what the assistant did on the user's behalf
2. Debugging information when things go wrong
3. A history the user can inspect

Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Profile
    PROFILE_CREATED = "profile_created"
    PROFILE_UPDATED = "profile_updated"

    # Transactions
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_REJECTED = "transaction_rejected"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"

    # Budgets
    BUDGET_SET = "budget_set"
    BUDGET_DELETED = "budget_deleted"

    # Planned expenses
    TODO_ADDED = "todo_added"
    TODO_COMPLETED = "todo_completed"
    TODO_DELETED = "todo_deleted"

    # Assistant
    INTENT_DETECTED = "intent_detected"
    ACTION_EXECUTED = "action_executed"
    ACTION_FAILED = "action_failed"
    CHAT_RESPONDED = "chat_responded"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


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
    Every significant action creates one of these.
    """

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # What entity is this about, and whose
    uid: Optional[str] = None
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'budget', 'todo')"
    )
    entity_id: Optional[str] = None

    # Ties together the events of one chat turn or one form submission
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered directly by the user (vs. the assistant)?"
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
            "uid": self.uid,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, uid, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.uid or "",
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
        event = AuditEventBuilder.transaction_added(uid, txn_id, "expense", "12.50", ...)
        event = AuditEventBuilder.intent_detected(uid, "create_todo", correlation_id)
    """

    @staticmethod
    def profile_created(uid: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_CREATED,
            uid=uid,
            entity_type="user",
            entity_id=uid,
            description="User profile created",
            is_user_action=True,
        )

    @staticmethod
    def profile_updated(uid: str, fields: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_UPDATED,
            uid=uid,
            entity_type="user",
            entity_id=uid,
            description=f"Profile updated: {', '.join(fields) or 'no fields'}",
            details={"fields": fields},
            is_user_action=True,
        )

    @staticmethod
    def transaction_added(
        uid: str,
        transaction_id: str,
        transaction_type: str,
        amount: str,
        category: str,
        correlation_id: Optional[UUID] = None,
        by_assistant: bool = False,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            uid=uid,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"{transaction_type.capitalize()} added: {amount} ({category})",
            details={
                "type": transaction_type,
                "amount": amount,
                "category": category,
                "by_assistant": by_assistant,
            },
            is_user_action=not by_assistant,
        )

    @staticmethod
    def transaction_rejected(
        uid: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_REJECTED,
            severity=AuditSeverity.WARNING,
            uid=uid,
            entity_type="transaction",
            correlation_id=correlation_id,
            description=f"Transaction rejected with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def entity_changed(
        event_type: AuditEventType,
        uid: Optional[str],
        entity_type: str,
        entity_id: str,
        description: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            uid=uid,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=description,
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def todo_completed(
        uid: str,
        todo_id: str,
        transaction_id: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TODO_COMPLETED,
            uid=uid,
            entity_type="todo",
            entity_id=todo_id,
            correlation_id=correlation_id,
            description=f"Planned expense completed: {amount}",
            details={
                "transaction_id": transaction_id,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def intent_detected(
        uid: str,
        action_type: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INTENT_DETECTED,
            uid=uid,
            entity_type="chat",
            correlation_id=correlation_id,
            description=f"Intent detected: {action_type}",
            details={"action_type": action_type},
            is_user_action=True,
        )

    @staticmethod
    def action_executed(
        uid: str,
        action_type: str,
        success: bool,
        entity_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.ACTION_EXECUTED
                if success
                else AuditEventType.ACTION_FAILED
            ),
            severity=AuditSeverity.INFO if success else AuditSeverity.WARNING,
            uid=uid,
            entity_type="action",
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Assistant action {action_type} {'succeeded' if success else 'failed'}",
            details={"action_type": action_type, "success": success},
        )

    @staticmethod
    def chat_responded(
        uid: str,
        search_used: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHAT_RESPONDED,
            uid=uid,
            entity_type="chat",
            correlation_id=correlation_id,
            description="Assistant replied to chat message",
            details={"search_used": search_used},
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

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
