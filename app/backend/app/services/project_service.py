"""Application service for partners, projects, tasks and the transaction ledger."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, DataValidationError, NotFoundError
from app.models.entities import (
    Partner,
    Payout,
    Project,
    ProjectStatus,
    Task,
    TaskStatus,
    Transaction,
    TransactionType,
    User,
)
from app.repositories.partnership_repository import PartnershipRepository
from app.services.contribution_service import ContributionService
from app.services.financial_sync_service import FinancialSyncService

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
Q2 = Decimal("0.01")
LEAD_FIELDS = ("project_lead_id", "tech_lead_id", "comms_lead_id", "qa_lead_id", "sales_owner_id")

# Sentinel for "field not supplied" in partial updates where None is meaningful.
UNSET = object()


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2, rounding=ROUND_HALF_UP)


@dataclass(slots=True)
class PartnerCreateData:
    email: str
    display_name: str


@dataclass(slots=True)
class ProjectCreateData:
    name: str
    total_value: Decimal = ZERO
    weights: dict[str, Decimal] = field(default_factory=dict)
    client_name: str | None = None
    status: ProjectStatus = ProjectStatus.ACTIVE
    project_lead_id: UUID | None = None
    tech_lead_id: UUID | None = None
    comms_lead_id: UUID | None = None
    qa_lead_id: UUID | None = None
    sales_owner_id: UUID | None = None


@dataclass(slots=True)
class TaskCreateData:
    name: str
    category: str | None = None
    effort_weight: Decimal = Decimal("1.0")
    assigned_partner_id: UUID | None = None
    status: TaskStatus = TaskStatus.BACKLOG
    completed_by_id: UUID | None = None


@dataclass(slots=True)
class TaskUpdateData:
    name: str | None = None
    category: object = UNSET
    effort_weight: Decimal | None = None
    assigned_partner_id: object = UNSET
    status: TaskStatus | None = None
    completed_by_id: UUID | None = None


@dataclass(slots=True)
class TransactionCreateData:
    amount: Decimal
    type: TransactionType
    transaction_date: date | None = None
    category: str | None = None
    method: str | None = None
    description: str | None = None


class ProjectService:
    """Lifecycle operations that feed the calculation engine.

    Every mutation of a project's tasks or ledger checks the lock flag and
    re-syncs the financial snapshot inside the same transaction.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PartnershipRepository(db)
        self.contributions = ContributionService(db, self.repo)
        self.financials = FinancialSyncService(db, self.repo)

    # ---------- Serialization ----------
    @staticmethod
    def serialize_partner(partner: Partner, user: User | None = None) -> dict[str, object]:
        return {
            "id": str(partner.id),
            "user_id": str(partner.user_id),
            "display_name": user.display_name if user is not None else None,
            "email": user.email if user is not None else None,
            "equity_percentage": str(partner.equity_percentage),
            "total_capital_contributed": str(partner.total_capital_contributed),
            "total_earnings": str(partner.total_earnings),
        }

    @staticmethod
    def serialize_project(project: Project) -> dict[str, object]:
        payload: dict[str, object] = {
            "id": str(project.id),
            "name": project.name,
            "client_name": project.client_name,
            "total_value": str(project.total_value),
            "weights": {category: str(weight) for category, weight in (project.weights or {}).items()},
            "status": project.status.value,
            "is_locked": project.is_locked,
            "net_profit": str(project.net_profit) if project.net_profit is not None else None,
        }
        for lead_field in LEAD_FIELDS:
            value = getattr(project, lead_field)
            payload[lead_field] = str(value) if value is not None else None
        return payload

    @staticmethod
    def serialize_task(task: Task) -> dict[str, object]:
        return {
            "id": str(task.id),
            "project_id": str(task.project_id),
            "name": task.name,
            "category": task.category,
            "effort_weight": str(task.effort_weight),
            "assigned_partner_id": str(task.assigned_partner_id) if task.assigned_partner_id else None,
            "status": task.status.value,
            "completed_by_id": str(task.completed_by_id) if task.completed_by_id else None,
            "completed_at": task.completed_at.isoformat() if task.completed_at else None,
        }

    @staticmethod
    def serialize_transaction(row: Transaction) -> dict[str, object]:
        return {
            "id": str(row.id),
            "project_id": str(row.project_id),
            "amount": str(row.amount),
            "type": row.type.value,
            "category": row.category,
            "method": row.method,
            "description": row.description,
            "date": row.transaction_date.isoformat(),
        }

    # ---------- Guards ----------
    def _get_project(self, project_id: UUID) -> Project:
        project = self.repo.get_project(project_id)
        if project is None:
            raise NotFoundError("Project not found.", entity_id=project_id)
        return project

    def _lock_project(self, project_id: UUID) -> Project:
        project = self.repo.get_project(project_id, for_update=True)
        if project is None:
            raise NotFoundError("Project not found.", entity_id=project_id)
        if project.is_locked:
            logger.warning("Rejected mutation of locked project %s", project_id)
            raise ConflictError("Project is finalized and locked.", entity_id=project_id)
        return project

    def _ensure_partner(self, partner_id: UUID | None) -> None:
        if partner_id is not None and self.repo.get_partner(partner_id) is None:
            raise DataValidationError("Assigned partner does not exist.", entity_id=partner_id)

    def _ensure_user(self, user_id: UUID | None) -> None:
        if user_id is not None and not self.repo.list_users_by_id({user_id}):
            raise DataValidationError("Completing user does not exist.", entity_id=user_id)

    @staticmethod
    def _ensure_effort(effort_weight: object) -> Decimal:
        # Stored as Numeric(10, 2); attribution must see the stored value.
        effort = _q2(Decimal(str(effort_weight)))
        if effort <= ZERO:
            raise DataValidationError(f"effort_weight must be positive at 0.01 precision (got {effort_weight}).")
        return effort

    # ---------- Partners ----------
    def list_partners(self) -> list[tuple[Partner, User | None]]:
        partners = self.repo.list_partners()
        users = self.repo.list_users_by_id({partner.user_id for partner in partners})
        return [(partner, users.get(partner.user_id)) for partner in partners]

    def create_partner(self, data: PartnerCreateData) -> tuple[Partner, User]:
        email = data.email.strip().lower()
        if self.repo.get_user_by_email(email) is not None:
            raise ConflictError("A user with this email already exists.", entity_id=email)

        try:
            user = self.repo.add_user(User(email=email, display_name=data.display_name.strip()))
            partner = self.repo.add_partner(
                Partner(
                    user_id=user.id,
                    equity_percentage=Decimal("0"),
                    total_capital_contributed=Decimal("0.00"),
                    total_earnings=Decimal("0.00"),
                )
            )
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError("A user with this email already exists.", entity_id=email) from exc

        self.db.refresh(partner)
        return partner, user

    # ---------- Projects ----------
    def list_projects(self) -> list[Project]:
        return self.repo.list_projects()

    def get_project(self, project_id: UUID) -> Project:
        return self._get_project(project_id)

    def create_project(self, data: ProjectCreateData) -> Project:
        weights: dict[str, str] = {}
        for category, weight in data.weights.items():
            weight = Decimal(str(weight))
            if weight < ZERO:
                raise DataValidationError(f"Weight for category '{category}' must not be negative.")
            weights[category.strip()] = str(weight)

        lead_ids = {getattr(data, lead_field) for lead_field in LEAD_FIELDS} - {None}
        missing = lead_ids - self.repo.existing_partner_ids(lead_ids)
        if missing:
            raise DataValidationError("Project leads must reference existing partners.", entity_id=next(iter(missing)))

        now = datetime.utcnow()
        project = Project(
            name=data.name.strip(),
            client_name=data.client_name.strip() if data.client_name else None,
            total_value=data.total_value,
            weights=weights,
            status=data.status,
            is_locked=False,
            created_at=now,
            updated_at=now,
            **{lead_field: getattr(data, lead_field) for lead_field in LEAD_FIELDS},
        )
        try:
            self.repo.add_project(project)
            # Leads are visible at 0% until the first recompute normalises them.
            self.repo.replace_contributions(project.id, {lead_id: Decimal("0.00") for lead_id in project.lead_ids})
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(project)
        logger.info("Created project %s with %d leads", project.id, len(project.lead_ids))
        return project

    def list_contributions(self, project_id: UUID) -> dict[UUID, Decimal]:
        self._get_project(project_id)
        return {row.partner_id: row.percentage for row in self.repo.list_contributions(project_id)}

    # ---------- Tasks ----------
    def list_tasks(self, project_id: UUID) -> list[Task]:
        self._get_project(project_id)
        return self.repo.list_tasks(project_id)

    def create_task(self, project_id: UUID, data: TaskCreateData, *, actor_user_id: UUID | None = None) -> Task:
        try:
            project = self._lock_project(project_id)
            self._ensure_partner(data.assigned_partner_id)
            now = datetime.utcnow()
            task = Task(
                project_id=project.id,
                name=data.name.strip(),
                category=data.category.strip() if data.category else None,
                effort_weight=self._ensure_effort(data.effort_weight),
                assigned_partner_id=data.assigned_partner_id,
                status=data.status,
                created_at=now,
                updated_at=now,
            )
            if data.status is TaskStatus.DONE:
                task.completed_by_id = data.completed_by_id or actor_user_id
                self._ensure_user(task.completed_by_id)
                task.completed_at = now
            self.repo.add_task(task)
            self.financials.sync_project(project)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError("Task conflicts with existing records.", entity_id=project_id) from exc
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(task)
        return task

    def update_task(
        self,
        project_id: UUID,
        task_id: UUID,
        data: TaskUpdateData,
        *,
        actor_user_id: UUID | None = None,
    ) -> Task:
        try:
            project = self._lock_project(project_id)
            task = self.repo.get_task(task_id)
            if task is None or task.project_id != project.id:
                raise NotFoundError("Task not found.", entity_id=task_id)

            if data.name is not None:
                task.name = data.name.strip()
            if data.category is not UNSET:
                task.category = data.category.strip() if data.category else None
            if data.effort_weight is not None:
                task.effort_weight = self._ensure_effort(data.effort_weight)
            if data.assigned_partner_id is not UNSET:
                self._ensure_partner(data.assigned_partner_id)
                task.assigned_partner_id = data.assigned_partner_id

            now = datetime.utcnow()
            if data.status is TaskStatus.DONE and task.status is not TaskStatus.DONE:
                task.completed_by_id = data.completed_by_id or actor_user_id
                self._ensure_user(task.completed_by_id)
                task.completed_at = now
            elif data.status is not None and data.status is not TaskStatus.DONE and task.status is TaskStatus.DONE:
                task.completed_by_id = None
                task.completed_at = None
            elif data.completed_by_id is not None and task.status is TaskStatus.DONE:
                self._ensure_user(data.completed_by_id)
                task.completed_by_id = data.completed_by_id
            if data.status is not None:
                task.status = data.status
            task.updated_at = now

            self.db.flush()
            self.financials.sync_project(project)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError("Task update conflicts with existing records.", entity_id=task_id) from exc
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(task)
        return task

    def delete_task(self, project_id: UUID, task_id: UUID) -> None:
        try:
            project = self._lock_project(project_id)
            task = self.repo.get_task(task_id)
            if task is None or task.project_id != project.id:
                raise NotFoundError("Task not found.", entity_id=task_id)
            self.repo.delete_task(task)
            self.financials.sync_project(project)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    # ---------- Transactions ----------
    def list_transactions(self, project_id: UUID) -> list[Transaction]:
        self._get_project(project_id)
        return self.repo.list_transactions(project_id)

    def create_transaction(self, project_id: UUID, data: TransactionCreateData) -> Transaction:
        amount = _q2(Decimal(str(data.amount)))
        if amount <= ZERO:
            raise DataValidationError(
                f"Transaction amount must be positive at cent precision (got {data.amount}).",
                entity_id=project_id,
            )

        try:
            project = self._lock_project(project_id)
            row = self.repo.add_transaction(
                Transaction(
                    project_id=project.id,
                    amount=amount,
                    type=data.type,
                    category=data.category,
                    method=data.method,
                    description=data.description,
                    transaction_date=data.transaction_date or date.today(),
                    created_at=datetime.utcnow(),
                )
            )
            self.financials.sync_project(project)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(row)
        return row

    def delete_transaction(self, transaction_id: UUID) -> None:
        try:
            row = self.repo.get_transaction(transaction_id)
            if row is None:
                raise NotFoundError("Transaction not found.", entity_id=transaction_id)
            project = self._lock_project(row.project_id)
            self.repo.delete_transaction(row)
            self.financials.sync_project(project)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    # ---------- Payouts ----------
    def list_payouts(self) -> list[dict[str, object]]:
        payouts: list[Payout] = self.repo.list_payouts()
        projects = {project.id: project for project in self.repo.list_projects()}
        partners = {partner.id: partner for partner in self.repo.list_partners()}
        users = self.repo.list_users_by_id({partner.user_id for partner in partners.values()})

        items: list[dict[str, object]] = []
        for payout in payouts:
            row = FinancialSyncService.serialize_payout(payout)
            project = projects.get(payout.project_id)
            partner = partners.get(payout.partner_id)
            user = users.get(partner.user_id) if partner is not None else None
            row["project_name"] = project.name if project is not None else None
            row["partner_name"] = user.display_name if user is not None else None
            items.append(row)
        return items
