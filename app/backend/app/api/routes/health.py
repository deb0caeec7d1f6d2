"""Liveness and database readiness probes."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.db.dependencies import get_db_session

router = APIRouter()


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/health/ready")
def ready(db: Session = Depends(get_db_session)) -> dict[str, str]:
    """Round-trip to the ledger database before reporting ready."""

    db.execute(text("SELECT 1"))
    return {"status": "ready", "database": "ok"}
