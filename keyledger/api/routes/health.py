from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import func, select, text

from keyledger.db.models.purchases import Purchase
from keyledger.db.session import SessionLocal

router = APIRouter(tags=["health"])
logger = structlog.get_logger(__name__)

DATABASE_UNAVAILABLE = {"status": "failed", "error": "database_unavailable"}
LEDGER_SCHEMA_MISSING = {"status": "failed", "error": "ledger_schema_unavailable"}


async def _check_database() -> dict[str, Any]:
    try:
        async with SessionLocal() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:
        logger.warning("health_database_check_failed", error_type=type(exc).__name__, error=str(exc))
        return dict(DATABASE_UNAVAILABLE)
    return {"status": "ok"}


async def _check_ledger() -> dict[str, Any]:
    """Ready only once migrations have created the ledger tables."""
    stmt = select(func.count()).select_from(Purchase).where(Purchase.status == "pending")
    try:
        async with SessionLocal() as session:
            pending = int((await session.execute(stmt)).scalar_one())
    except Exception as exc:
        logger.warning("health_ledger_check_failed", error_type=type(exc).__name__, error=str(exc))
        return dict(LEDGER_SCHEMA_MISSING)
    return {"status": "ok", "pending_purchases": pending}


def _report(checks: dict[str, dict[str, Any]], *, ok_label: str, failed_label: str) -> JSONResponse:
    is_ok = all(check.get("status") == "ok" for check in checks.values())
    return JSONResponse(
        status_code=status.HTTP_200_OK if is_ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": ok_label if is_ok else failed_label, "checks": checks},
    )


@router.get("/live")
async def live() -> dict[str, str]:
    return {"status": "live"}


@router.get("/health")
async def health() -> JSONResponse:
    return _report({"database": await _check_database()}, ok_label="ok", failed_label="degraded")


@router.get("/ready")
async def ready() -> JSONResponse:
    checks = {"database": await _check_database()}
    if checks["database"]["status"] == "ok":
        checks["ledger"] = await _check_ledger()
    return _report(checks, ok_label="ready", failed_label="not_ready")
