"""
Health check endpoints for monitoring and orchestration.

- /health: liveness, always 200
- /health/db: database connectivity (skipped in in-memory mode)
- /health/payments: per-provider configuration report
"""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from paygate.api.dependencies import get_payment_facade, get_session
from paygate.application.use_cases.payment_facade import PaymentFacade

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check():
    return {"status": "ok", "service": "paygate"}


@router.get("/health/db")
async def health_check_db(session: AsyncSession | None = Depends(get_session)):
    """Returns 503 when the database does not answer ``SELECT 1``."""
    if session is None:
        return {"status": "healthy", "component": "database", "mode": "in_memory"}
    try:
        result = await session.execute(text("SELECT 1"))
        result.scalar()
        return {"status": "healthy", "component": "database"}
    except (SQLAlchemyError, OSError) as e:
        logger.error("Database health check failed", exc_info=e)
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "component": "database",
                "error": "Database connection failed",
            },
        )


@router.get("/health/payments")
async def health_check_payments(facade: PaymentFacade = Depends(get_payment_facade)):
    reports = facade.configuration_report()
    return {
        "status": "ok" if any(report.configured for report in reports) else "degraded",
        "available": facade.available_providers(),
        "providers": [asdict(report) for report in reports],
    }
