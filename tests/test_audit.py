"""Tests for AuditLogger."""

from uuid import uuid4

from stephly.audit import AuditLogger, create_correlation_id
from stephly.models.audit import AuditEventBuilder, AuditEventType, AuditSeverity
from stephly.services.storage import InMemoryAuditStorage

from conftest import UID, run


class FailingAuditStorage(InMemoryAuditStorage):
    async def append_event(self, event):
        raise ConnectionError("sheet unavailable")


class TestAuditLogger:

    def test_persists_event(self, audit_logger, audit_storage):
        assert run(audit_logger.log(AuditEventBuilder.profile_created(UID)))
        assert audit_storage.events[0].event_type == AuditEventType.PROFILE_CREATED

    def test_without_storage(self):
        logger = AuditLogger()
        assert run(logger.log(AuditEventBuilder.profile_created(UID))) is True

    def test_storage_failure_never_raises(self):
        logger = AuditLogger(FailingAuditStorage())
        assert run(logger.log(AuditEventBuilder.profile_created(UID))) is False
        # Helper methods swallow it too
        run(logger.log_error("boom", "it broke"))

    def test_error_event(self, audit_logger, audit_storage):
        correlation_id = create_correlation_id()
        run(audit_logger.log_error("ValueError", "bad value", {"field": "amount"}, correlation_id))
        event = audit_storage.events[0]
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "bad value"
        assert event.correlation_id == correlation_id

    def test_failed_action_is_a_warning(self, audit_logger, audit_storage):
        run(audit_logger.log_action_executed(UID, "create_todo", success=False))
        event = audit_storage.events[0]
        assert event.event_type == AuditEventType.ACTION_FAILED
        assert event.severity == AuditSeverity.WARNING

    def test_events_grouped_by_correlation_id(self, audit_logger, audit_storage):
        turn = create_correlation_id()
        run(audit_logger.log_intent_detected(UID, "add_transaction", correlation_id=turn))
        run(audit_logger.log_action_executed(UID, "add_transaction", True, "txn-1", correlation_id=turn))
        run(audit_logger.log_intent_detected(UID, "none", correlation_id=uuid4()))

        events = run(audit_storage.get_events_by_correlation_id(turn))
        assert [e.event_type for e in events] == [
            AuditEventType.INTENT_DETECTED,
            AuditEventType.ACTION_EXECUTED,
        ]

    def test_transaction_by_assistant(self, audit_logger, audit_storage):
        run(audit_logger.log_transaction_added(
            UID, "txn-1", "expense", "12.50", "Food", by_assistant=True,
        ))
        event = audit_storage.events[0]
        assert event.description == "Expense added: 12.50 (Food)"
        assert event.is_user_action is False
        assert run(audit_storage.get_events_by_entity("transaction", "txn-1")) == [event]

    def test_recent_events_limit(self, audit_logger, audit_storage):
        for _ in range(5):
            run(audit_logger.log_chat_responded(UID, search_used=False))
        assert len(run(audit_storage.get_recent_events(limit=3))) == 3
