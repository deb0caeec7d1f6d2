"""Partner directory endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.db.dependencies import get_db_session
from app.services.project_service import PartnerCreateData, ProjectService

router = APIRouter(prefix="/partners", tags=["partners"])


class PartnerCreatePayload(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    display_name: str = Field(min_length=1, max_length=255)


@router.get("")
def list_partners(db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = ProjectService(db)
    return {"items": [service.serialize_partner(partner, user) for partner, user in service.list_partners()]}


@router.post("", status_code=201)
def create_partner(payload: PartnerCreatePayload, db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = ProjectService(db)
    partner, user = service.create_partner(
        PartnerCreateData(email=payload.email, display_name=payload.display_name)
    )
    return service.serialize_partner(partner, user)
