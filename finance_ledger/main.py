"""
Finance Ledger, FastAPI application.

This is the entry point for the application.
All routers are registered here.
"""

import logging

from fastapi import FastAPI

from finance_ledger.config import get_settings
from finance_ledger.api.health import router as health_router
from finance_ledger.api.accounts import router as accounts_router
from finance_ledger.api.journal import router as journal_router
from finance_ledger.api.banking import router as banking_router
from finance_ledger.api.reconciliation import router as reconciliation_router
from finance_ledger.api.reports import router as reports_router

settings = get_settings()


def configure_logging() -> None:
    """Apply LOG_LEVEL to the root logger."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


configure_logging()

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Double-entry ledger and bank reconciliation service",
    debug=settings.DEBUG,
)

# Register routers
app.include_router(health_router)
app.include_router(accounts_router)
app.include_router(journal_router)
app.include_router(banking_router)
app.include_router(reconciliation_router)
app.include_router(reports_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("finance_ledger.main:app", host=settings.HOST, port=settings.PORT)
