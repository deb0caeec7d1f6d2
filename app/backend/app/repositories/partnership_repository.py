"""Repository helpers for partners, projects, ledgers and derived snapshots."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from app.models.entities import (
    CapitalInjection,
    Contribution,
    Financial,
    Partner,
    Payout,
    Project,
    Task,
    Transaction,
    TransactionType,
    User,
)


class PartnershipRepository:
    """Persistence operations used by the calculation engine and its callers."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Users and partners ----------
    def get_user_by_email(self, email: str) -> User | None:
        return self.db.scalar(select(User).where(User.email == email))

    def add_user(self, user: User) -> User:
        self.db.add(user)
        self.db.flush()
        return user

    def list_users_by_id(self, user_ids: set[UUID]) -> dict[UUID, User]:
        if not user_ids:
            return {}
        rows = self.db.scalars(select(User).where(User.id.in_(user_ids))).all()
        return {row.id: row for row in rows}

    def get_partner(self, partner_id: UUID) -> Partner | None:
        return self.db.scalar(select(Partner).where(Partner.id == partner_id))

    def list_partners(self, *, for_update: bool = False) -> list[Partner]:
        stmt = select(Partner).order_by(Partner.created_at.asc(), Partner.id.asc())
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.scalars(stmt).all()

    def partner_ids_by_user(self, user_ids: set[UUID]) -> dict[UUID, UUID]:
        if not user_ids:
            return {}
        rows = self.db.execute(select(Partner.user_id, Partner.id).where(Partner.user_id.in_(user_ids))).all()
        return {user_id: partner_id for user_id, partner_id in rows}

    def existing_partner_ids(self, partner_ids: set[UUID]) -> set[UUID]:
        if not partner_ids:
            return set()
        return set(self.db.scalars(select(Partner.id).where(Partner.id.in_(partner_ids))).all())

    def add_partner(self, partner: Partner) -> Partner:
        self.db.add(partner)
        self.db.flush()
        return partner

    # ---------- Projects ----------
    def get_project(self, project_id: UUID, *, for_update: bool = False) -> Project | None:
        stmt = select(Project).where(Project.id == project_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.scalar(stmt)

    def list_projects(self) -> list[Project]:
        return self.db.scalars(select(Project).order_by(Project.created_at.asc(), Project.name.asc())).all()

    def add_project(self, project: Project) -> Project:
        self.db.add(project)
        self.db.flush()
        return project

    # ---------- Tasks ----------
    def list_tasks(self, project_id: UUID) -> list[Task]:
        return self.db.scalars(
            select(Task)
            .where(Task.project_id == project_id)
            .order_by(Task.created_at.asc(), Task.id.asc())
        ).all()

    def get_task(self, task_id: UUID) -> Task | None:
        return self.db.scalar(select(Task).where(Task.id == task_id))

    def add_task(self, task: Task) -> Task:
        self.db.add(task)
        self.db.flush()
        return task

    def delete_task(self, task: Task) -> None:
        self.db.delete(task)
        self.db.flush()

    # ---------- Contributions ----------
    def list_contributions(self, project_id: UUID) -> list[Contribution]:
        return self.db.scalars(
            select(Contribution)
            .where(Contribution.project_id == project_id)
            .order_by(Contribution.sequence_no.asc())
        ).all()

    def replace_contributions(self, project_id: UUID, percentages: dict[UUID, Decimal]) -> list[Contribution]:
        """Delete every contribution row of the project, then insert the new set."""

        self.db.execute(delete(Contribution).where(Contribution.project_id == project_id))
        rows = [
            Contribution(
                project_id=project_id,
                partner_id=partner_id,
                percentage=percentage,
                sequence_no=position,
            )
            for position, (partner_id, percentage) in enumerate(percentages.items())
        ]
        self.db.add_all(rows)
        self.db.flush()
        return rows

    # ---------- Transactions ----------
    def list_transactions(self, project_id: UUID) -> list[Transaction]:
        return self.db.scalars(
            select(Transaction)
            .where(Transaction.project_id == project_id)
            .order_by(Transaction.transaction_date.desc(), Transaction.created_at.desc())
        ).all()

    def get_transaction(self, transaction_id: UUID) -> Transaction | None:
        return self.db.scalar(select(Transaction).where(Transaction.id == transaction_id))

    def add_transaction(self, transaction: Transaction) -> Transaction:
        self.db.add(transaction)
        self.db.flush()
        return transaction

    def delete_transaction(self, transaction: Transaction) -> None:
        self.db.delete(transaction)
        self.db.flush()

    def sum_transactions_by_type(self, project_id: UUID | None = None) -> dict[TransactionType, Decimal]:
        stmt = select(Transaction.type, func.coalesce(func.sum(Transaction.amount), 0)).group_by(Transaction.type)
        if project_id is not None:
            stmt = stmt.where(Transaction.project_id == project_id)
        totals = {TransactionType.INCOME: Decimal("0"), TransactionType.EXPENSE: Decimal("0")}
        for tx_type, amount in self.db.execute(stmt).all():
            totals[tx_type] = Decimal(str(amount))
        return totals

    # ---------- Financial snapshots ----------
    def get_financial(self, project_id: UUID) -> Financial | None:
        return self.db.scalar(select(Financial).where(Financial.project_id == project_id))

    def add_financial(self, financial: Financial) -> Financial:
        self.db.add(financial)
        self.db.flush()
        return financial

    # ---------- Capital injections ----------
    def get_capital_injection(self, injection_id: UUID) -> CapitalInjection | None:
        return self.db.scalar(select(CapitalInjection).where(CapitalInjection.id == injection_id))

    def list_capital_injections(self, partner_id: UUID) -> list[CapitalInjection]:
        return self.db.scalars(
            select(CapitalInjection)
            .where(CapitalInjection.partner_id == partner_id)
            .order_by(CapitalInjection.injected_at.desc())
        ).all()

    def add_capital_injection(self, injection: CapitalInjection) -> CapitalInjection:
        self.db.add(injection)
        self.db.flush()
        return injection

    def delete_capital_injection(self, injection: CapitalInjection) -> None:
        self.db.delete(injection)
        self.db.flush()

    # ---------- Payouts ----------
    def add_payouts(self, payouts: list[Payout]) -> list[Payout]:
        self.db.add_all(payouts)
        self.db.flush()
        return payouts

    def list_payouts(self, project_id: UUID | None = None) -> list[Payout]:
        stmt = select(Payout).order_by(Payout.created_at.desc(), Payout.id.asc())
        if project_id is not None:
            stmt = stmt.where(Payout.project_id == project_id)
        return self.db.scalars(stmt).all()
