"""Finance endpoints: project ledger, capital injections, payouts and company summary."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.db.dependencies import get_db_session
from app.models.entities import TransactionType
from app.services.equity_service import EquityService
from app.services.project_service import ProjectService, TransactionCreateData

router = APIRouter(tags=["finance"])


class TransactionCreatePayload(BaseModel):
    amount: Decimal = Field(gt=0)
    type: TransactionType
    transaction_date: date | None = Field(default=None, alias="date")
    category: str | None = Field(default=None, max_length=128)
    method: str | None = Field(default=None, max_length=64)
    description: str | None = Field(default=None, max_length=2000)


class CapitalInjectionPayload(BaseModel):
    partner_id: UUID
    # Positivity is checked by EquityService.inject_capital.
    amount: Decimal
    notes: str | None = Field(default=None, max_length=2000)


@router.get("/projects/{project_id}/transactions")
def list_transactions(project_id: UUID, db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = ProjectService(db)
    return {"items": [service.serialize_transaction(row) for row in service.list_transactions(project_id)]}


@router.post("/projects/{project_id}/transactions", status_code=201)
def create_transaction(
    project_id: UUID,
    payload: TransactionCreatePayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = ProjectService(db)
    row = service.create_transaction(
        project_id,
        TransactionCreateData(
            amount=payload.amount,
            type=payload.type,
            transaction_date=payload.transaction_date,
            category=payload.category,
            method=payload.method,
            description=payload.description,
        ),
    )
    return service.serialize_transaction(row)


@router.delete("/transactions/{transaction_id}", status_code=204)
def delete_transaction(transaction_id: UUID, db: Session = Depends(get_db_session)) -> Response:
    ProjectService(db).delete_transaction(transaction_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/finance/capital-injection", status_code=201)
def inject_capital(payload: CapitalInjectionPayload, db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = EquityService(db)
    injection = service.inject_capital(payload.partner_id, payload.amount, payload.notes)
    return service.serialize_injection(injection)


@router.get("/finance/capital-injections/{partner_id}")
def list_capital_injections(partner_id: UUID, db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = EquityService(db)
    return {"items": [service.serialize_injection(row) for row in service.list_capital_injections(partner_id)]}


@router.delete("/finance/capital-injections/{injection_id}", status_code=204)
def delete_capital_injection(injection_id: UUID, db: Session = Depends(get_db_session)) -> Response:
    EquityService(db).delete_capital_injection(injection_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/finance/company-summary")
def company_summary(db: Session = Depends(get_db_session)) -> dict[str, object]:
    return EquityService(db).company_summary()


@router.get("/payouts")
def list_payouts(db: Session = Depends(get_db_session)) -> dict[str, object]:
    return {"items": ProjectService(db).list_payouts()}
