"""
Health check endpoint.

Used by load balancers and monitoring to verify the service is
running and can reach its database. No tenant context needed.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from finance_ledger.config import get_settings
from finance_ledger.models.base import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """
    Return service health including database connectivity.

    A failed SELECT 1 reports the instance as degraded.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        db_status = "unhealthy"

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "service": "finance-ledger",
        "version": get_settings().APP_VERSION,
        "database": db_status,
    }
