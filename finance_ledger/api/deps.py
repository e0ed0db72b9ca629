"""
Shared FastAPI dependencies.

Identity is established upstream; the gateway forwards the acting
user and the active tenant as headers.
"""

from fastapi import Header, HTTPException

from finance_ledger.context import RequestContext
from finance_ledger.errors import LedgerError


def get_request_context(
    x_actor_id: str | None = Header(default=None),
    x_tenant_id: str | None = Header(default=None),
) -> RequestContext:
    context = RequestContext(actor_id=x_actor_id, tenant_id=x_tenant_id)
    try:
        return context.require()
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
