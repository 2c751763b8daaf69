"""
Audit Logger

Every write to a user's money data and every decision the assistant
makes on their behalf ends up here, twice:

1. As a structured JSON log line (structlog), for whoever runs the app
2. As an AuditEvent row in audit storage, for the user to look back on

A broken audit sheet must never cost the user a transaction, so
persistence failures are logged and swallowed. Events from one chat
turn share a correlation id.
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from stephly.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from stephly.services.storage import AuditStorageInterface


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


class AuditLogger:
    """
    Writes audit events to the local log and, when configured, to storage.

    Args:
        storage: Where events are persisted. None keeps them in the
                 local log only (handy in scripts and some tests).
    """

    def __init__(self, storage: Optional[AuditStorageInterface] = None):
        self._storage = storage
        self._logger = structlog.get_logger("stephly.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Record one event.

        Returns False only when storage rejected the write; the local
        log line is written regardless.
        """
        fields = event.to_log_dict()
        severity = event.severity.value
        if severity in ("error", "critical"):
            self._logger.error("audit_event", **fields)
        elif severity == "warning":
            self._logger.warning("audit_event", **fields)
        else:
            self._logger.info("audit_event", **fields)

        if self._storage is None:
            return True

        try:
            return await self._storage.append_event(event)
        except Exception as e:
            self._logger.error(
                "audit_storage_failed",
                event_id=str(event.event_id),
                event_type=event.event_type.value,
                error=str(e),
            )
            return False

    # -- profiles ------------------------------------------------------------

    async def log_profile_created(self, uid: str) -> None:
        await self.log(AuditEventBuilder.profile_created(uid))

    async def log_profile_updated(self, uid: str, fields: list[str]) -> None:
        await self.log(AuditEventBuilder.profile_updated(uid, fields))

    # -- money data ----------------------------------------------------------

    async def log_transaction_added(
        self,
        uid: str,
        transaction_id: str,
        transaction_type: str,
        amount: str,
        category: str,
        correlation_id: Optional[UUID] = None,
        by_assistant: bool = False,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_added(
            uid=uid,
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=amount,
            category=category,
            correlation_id=correlation_id,
            by_assistant=by_assistant,
        ))

    async def log_transaction_rejected(
        self,
        uid: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_rejected(uid, issues, correlation_id))

    async def log_entity_changed(
        self,
        event_type: AuditEventType,
        uid: Optional[str],
        entity_type: str,
        entity_id: str,
        description: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Budget, todo and transaction edits/deletes share one event shape."""
        await self.log(AuditEventBuilder.entity_changed(
            event_type=event_type,
            uid=uid,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_todo_completed(
        self,
        uid: str,
        todo_id: str,
        transaction_id: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.todo_completed(
            uid, todo_id, transaction_id, amount, correlation_id
        ))

    # -- assistant -----------------------------------------------------------

    async def log_intent_detected(
        self,
        uid: str,
        action_type: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.intent_detected(uid, action_type, correlation_id))

    async def log_action_executed(
        self,
        uid: str,
        action_type: str,
        success: bool,
        entity_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.action_executed(
            uid, action_type, success, entity_id, correlation_id
        ))

    async def log_chat_responded(
        self,
        uid: str,
        search_used: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.chat_responded(uid, search_used, correlation_id))

    # -- failures ------------------------------------------------------------

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.system_error(
            error_type, error_message, details, correlation_id
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Gemini, web search or the exchange rate API misbehaved."""
        await self.log(AuditEventBuilder.external_service_error(
            service, error_message, correlation_id
        ))


def create_correlation_id() -> UUID:
    """One per chat turn or form submission; pass it down to every write."""
    return uuid4()
