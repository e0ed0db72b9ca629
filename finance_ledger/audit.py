"""
Audit sink.

Services queue audit events on the database session. The events
are only delivered after that session commits, so a rolled-back
operation never shows up in the audit trail. Delivery is
best-effort: a sink failure is logged and swallowed, it never
fails or undoes the domain operation that produced it.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from sqlalchemy import event
from sqlalchemy.orm import Session, sessionmaker

from finance_ledger.config import get_settings
from finance_ledger.models.audit_log import AuditLog

logger = logging.getLogger(__name__)

PENDING_KEY = "pending_audit_events"


@dataclass
class AuditEvent:
    """An event waiting on the session for its commit."""
    tenant_id: str
    action: str
    entity_type: str
    entity_id: str
    # the acting user travels as metadata["actor_id"]
    metadata: dict[str, Any] = field(default_factory=dict)


class AuditSink(Protocol):
    def record(
        self,
        tenant_id: str,
        action: str,
        entity_type: str,
        entity_id: str,
        metadata: dict[str, Any],
    ) -> None:
        ...


class LoggingAuditSink:
    """Writes each event as one structured log line."""

    def record(self, tenant_id, action, entity_type, entity_id, metadata) -> None:
        logger.info(
            "audit %s %s/%s tenant=%s %s",
            action,
            entity_type,
            entity_id,
            tenant_id,
            json.dumps(metadata, default=str, sort_keys=True),
        )


class DatabaseAuditSink:
    """
    Persists events to the audit_log table.

    Uses its own session so the write is independent of the
    (already committed) session that produced the event.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def record(self, tenant_id, action, entity_type, entity_id, metadata) -> None:
        details = dict(metadata)
        actor_id = details.pop("actor_id", None)
        session = self.session_factory()
        try:
            session.add(AuditLog(
                tenant_id=tenant_id,
                actor_id=actor_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                details=json.dumps(details, default=str, sort_keys=True),
            ))
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


def queue_audit_event(db: Session, sink: AuditSink, event: AuditEvent) -> None:
    """Attach an event to the session; it is delivered on commit."""
    db.info.setdefault(PENDING_KEY, []).append((sink, event))


@event.listens_for(Session, "after_commit")
def _deliver_pending_events(session: Session) -> None:
    pending = session.info.pop(PENDING_KEY, [])
    for sink, audit_event in pending:
        try:
            sink.record(
                audit_event.tenant_id,
                audit_event.action,
                audit_event.entity_type,
                audit_event.entity_id,
                audit_event.metadata,
            )
        except Exception:
            logger.exception(
                "Failed to record audit event %s for %s/%s",
                audit_event.action,
                audit_event.entity_type,
                audit_event.entity_id,
            )


@event.listens_for(Session, "after_rollback")
def _discard_pending_events(session: Session) -> None:
    session.info.pop(PENDING_KEY, None)


def get_audit_sink() -> AuditSink:
    """Build the sink selected by the AUDIT_SINK setting."""
    settings = get_settings()
    if settings.AUDIT_SINK == "database":
        from finance_ledger.models.base import SessionLocal
        return DatabaseAuditSink(SessionLocal)
    return LoggingAuditSink()
