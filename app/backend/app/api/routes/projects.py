"""Project, task and contribution endpoints."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.db.dependencies import get_db_session
from app.models.entities import ProjectStatus, TaskStatus
from app.services.contribution_service import ContributionService
from app.services.financial_sync_service import FinancialSyncService
from app.services.project_service import (
    UNSET,
    ProjectCreateData,
    ProjectService,
    TaskCreateData,
    TaskUpdateData,
)

router = APIRouter(tags=["projects"])


class ProjectCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    client_name: str | None = Field(default=None, max_length=255)
    total_value: Decimal = Field(default=Decimal("0"), ge=0)
    weights: dict[str, Decimal] = Field(default_factory=dict)
    status: ProjectStatus = ProjectStatus.ACTIVE
    project_lead_id: UUID | None = None
    tech_lead_id: UUID | None = None
    comms_lead_id: UUID | None = None
    qa_lead_id: UUID | None = None
    sales_owner_id: UUID | None = None


class TaskCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    category: str | None = Field(default=None, max_length=128)
    effort_weight: Decimal = Field(default=Decimal("1.0"), gt=0)
    assigned_partner_id: UUID | None = None
    status: TaskStatus = TaskStatus.BACKLOG
    completed_by_id: UUID | None = None


class TaskUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    category: str | None = Field(default=None, max_length=128)
    effort_weight: Decimal | None = Field(default=None, gt=0)
    assigned_partner_id: UUID | None = None
    status: TaskStatus | None = None
    completed_by_id: UUID | None = None


def _contributions_payload(percentages: dict[UUID, Decimal]) -> dict[str, object]:
    return {
        "items": [
            {"partner_id": str(partner_id), "percentage": str(percentage)}
            for partner_id, percentage in percentages.items()
        ],
        "total": str(sum(percentages.values(), Decimal("0"))),
    }


@router.get("/projects")
def list_projects(db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = ProjectService(db)
    return {"items": [service.serialize_project(row) for row in service.list_projects()]}


@router.post("/projects", status_code=201)
def create_project(payload: ProjectCreatePayload, db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = ProjectService(db)
    project = service.create_project(
        ProjectCreateData(
            name=payload.name,
            client_name=payload.client_name,
            total_value=payload.total_value,
            weights=payload.weights,
            status=payload.status,
            project_lead_id=payload.project_lead_id,
            tech_lead_id=payload.tech_lead_id,
            comms_lead_id=payload.comms_lead_id,
            qa_lead_id=payload.qa_lead_id,
            sales_owner_id=payload.sales_owner_id,
        )
    )
    return service.serialize_project(project)


@router.get("/projects/{project_id}")
def get_project(project_id: UUID, db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = ProjectService(db)
    return service.serialize_project(service.get_project(project_id))


@router.get("/projects/{project_id}/tasks")
def list_tasks(project_id: UUID, db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = ProjectService(db)
    return {"items": [service.serialize_task(row) for row in service.list_tasks(project_id)]}


@router.post("/projects/{project_id}/tasks", status_code=201)
def create_task(
    project_id: UUID,
    payload: TaskCreatePayload,
    x_actor_user_id: UUID | None = Header(default=None),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = ProjectService(db)
    task = service.create_task(
        project_id,
        TaskCreateData(
            name=payload.name,
            category=payload.category,
            effort_weight=payload.effort_weight,
            assigned_partner_id=payload.assigned_partner_id,
            status=payload.status,
            completed_by_id=payload.completed_by_id,
        ),
        actor_user_id=x_actor_user_id,
    )
    return service.serialize_task(task)


@router.patch("/projects/{project_id}/tasks/{task_id}")
def update_task(
    project_id: UUID,
    task_id: UUID,
    payload: TaskUpdatePayload,
    x_actor_user_id: UUID | None = Header(default=None),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = ProjectService(db)
    provided = payload.model_fields_set
    task = service.update_task(
        project_id,
        task_id,
        TaskUpdateData(
            name=payload.name,
            category=payload.category if "category" in provided else UNSET,
            effort_weight=payload.effort_weight,
            assigned_partner_id=payload.assigned_partner_id if "assigned_partner_id" in provided else UNSET,
            status=payload.status,
            completed_by_id=payload.completed_by_id,
        ),
        actor_user_id=x_actor_user_id,
    )
    return service.serialize_task(task)


@router.delete("/projects/{project_id}/tasks/{task_id}", status_code=204)
def delete_task(project_id: UUID, task_id: UUID, db: Session = Depends(get_db_session)) -> Response:
    ProjectService(db).delete_task(project_id, task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/projects/{project_id}/contributions")
def list_contributions(project_id: UUID, db: Session = Depends(get_db_session)) -> dict[str, object]:
    return _contributions_payload(ProjectService(db).list_contributions(project_id))


@router.post("/projects/{project_id}/contributions:recompute")
@router.post("/projects/{project_id}/contributions/recompute")
def recompute_contributions(project_id: UUID, db: Session = Depends(get_db_session)) -> dict[str, object]:
    return _contributions_payload(ContributionService(db).recompute_contributions(project_id))


@router.get("/projects/{project_id}/financials")
def get_financials(project_id: UUID, db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = FinancialSyncService(db)
    financial = service.get_financials(project_id)
    return {"financial": service.serialize_financial(financial) if financial is not None else None}


@router.post("/projects/{project_id}/financials:sync")
@router.post("/projects/{project_id}/financials/sync")
def sync_financials(project_id: UUID, db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = FinancialSyncService(db)
    return service.serialize_snapshot(service.sync_financials(project_id))


@router.post("/projects/{project_id}/finalize")
def finalize_project(project_id: UUID, db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = FinancialSyncService(db)
    payouts = service.finalize_project(project_id)
    return {
        "message": "Project finalized and payouts generated.",
        "payouts": [service.serialize_payout(row) for row in payouts],
    }
