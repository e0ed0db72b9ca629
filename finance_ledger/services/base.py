"""
Shared plumbing for tenant-scoped services.

Every service takes a database session plus the caller's request
context. The session is never committed here: the caller controls
the transaction boundary, so one service call is one atomic unit.
"""

from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from finance_ledger.audit import AuditEvent, AuditSink, get_audit_sink, queue_audit_event
from finance_ledger.context import (
    AllowAllAuthorizer,
    Authorizer,
    RequestContext,
    authorize,
)

# Tolerance for "balanced" and "zero difference" checks. Absorbs
# rounding only; it is not a business allowance.
BALANCE_EPSILON = Decimal("0.01")


def to_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class TenantScopedService:

    def __init__(
        self,
        db: Session,
        context: RequestContext,
        authorizer: Authorizer | None = None,
        audit: AuditSink | None = None,
    ):
        self.db = db
        self.context = context
        self.authorizer = authorizer or AllowAllAuthorizer()
        self.audit = audit or get_audit_sink()

    @property
    def tenant_id(self) -> str:
        return self.context.tenant_id

    @property
    def actor_id(self) -> str:
        return self.context.actor_id

    def _require_context(self) -> None:
        self.context.require()

    def _authorize(self, action: str, resource: str) -> None:
        authorize(self.authorizer, self.context, action, resource)

    def _audit(
        self,
        action: str,
        entity_type: str,
        entity_id,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        queue_audit_event(self.db, self.audit, AuditEvent(
            tenant_id=self.tenant_id,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            metadata={"actor_id": self.actor_id, **(metadata or {})},
        ))
