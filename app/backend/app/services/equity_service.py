"""Company-wide equity recalculation driven by capital injections."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.errors import DataValidationError, NotFoundError
from app.models.entities import CapitalInjection, Partner, ProjectStatus, TransactionType
from app.repositories.partnership_repository import PartnershipRepository

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
Q2 = Decimal("0.01")
Q4 = Decimal("0.0001")


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2, rounding=ROUND_HALF_UP)


def _q4(value: Decimal) -> Decimal:
    return value.quantize(Q4, rounding=ROUND_HALF_UP)


def recalculate_equity(partners: Sequence[Partner]) -> Decimal:
    """Rewrite every partner's equity from relative capital; return total capital.

    With no capital at all the previous percentages are kept untouched.
    """

    total_capital = sum((partner.total_capital_contributed for partner in partners), ZERO)
    if total_capital > ZERO:
        for partner in partners:
            partner.equity_percentage = _q4(partner.total_capital_contributed / total_capital * HUNDRED)
    return total_capital


class EquityService:
    """Capital ledger operations. Each one locks and rewrites the full partner set."""

    def __init__(self, db: Session, repo: PartnershipRepository | None = None) -> None:
        self.db = db
        self.repo = repo or PartnershipRepository(db)

    @staticmethod
    def serialize_injection(injection: CapitalInjection) -> dict[str, object]:
        return {
            "id": str(injection.id),
            "partner_id": str(injection.partner_id),
            "amount": str(injection.amount),
            "equity_delta": str(injection.equity_delta),
            "post_equity": str(injection.post_equity),
            "notes": injection.notes,
            "date": injection.injected_at.isoformat(),
        }

    @staticmethod
    def _find(partners: Sequence[Partner], partner_id: UUID) -> Partner:
        for partner in partners:
            if partner.id == partner_id:
                return partner
        raise NotFoundError("Partner not found.", entity_id=partner_id)

    def inject_capital(self, partner_id: UUID, amount: Decimal, notes: str | None = None) -> CapitalInjection:
        amount = _q2(Decimal(str(amount)))
        if amount <= ZERO:
            raise DataValidationError(
                f"Capital injection amount must be positive at cent precision (got {amount}).",
                entity_id=partner_id,
            )

        try:
            partners = self.repo.list_partners(for_update=True)
            partner = self._find(partners, partner_id)
            prior_equity = partner.equity_percentage

            partner.total_capital_contributed = _q2(partner.total_capital_contributed + amount)
            total_capital = recalculate_equity(partners)

            injection = self.repo.add_capital_injection(
                CapitalInjection(
                    partner_id=partner.id,
                    amount=amount,
                    equity_delta=_q4(partner.equity_percentage - prior_equity),
                    post_equity=partner.equity_percentage,
                    notes=notes.strip() if notes else None,
                    injected_at=datetime.utcnow(),
                )
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Injected %s for partner %s; total capital now %s",
            amount,
            partner_id,
            total_capital,
        )
        return injection

    def delete_capital_injection(self, injection_id: UUID) -> None:
        try:
            partners = self.repo.list_partners(for_update=True)
            injection = self.repo.get_capital_injection(injection_id)
            if injection is None:
                raise NotFoundError("Capital injection not found.", entity_id=injection_id)

            partner = self._find(partners, injection.partner_id)
            partner.total_capital_contributed = max(ZERO, _q2(partner.total_capital_contributed - injection.amount))
            total_capital = recalculate_equity(partners)

            self.repo.delete_capital_injection(injection)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Deleted capital injection %s; total capital now %s", injection_id, total_capital)

    def list_capital_injections(self, partner_id: UUID) -> list[CapitalInjection]:
        if self.repo.get_partner(partner_id) is None:
            raise NotFoundError("Partner not found.", entity_id=partner_id)
        return self.repo.list_capital_injections(partner_id)

    def company_summary(self) -> dict[str, object]:
        totals = self.repo.sum_transactions_by_type()
        revenue = _q2(totals[TransactionType.INCOME])
        expenses = _q2(totals[TransactionType.EXPENSE])
        projects = self.repo.list_projects()
        partners = self.repo.list_partners()
        users = self.repo.list_users_by_id({partner.user_id for partner in partners})

        return {
            "financials": {
                "total_revenue": str(revenue),
                "total_expenses": str(expenses),
                "net_profit": str(revenue - expenses),
                "total_project_value": str(sum((project.total_value for project in projects), ZERO)),
            },
            "projects": {
                "total": len(projects),
                "active": sum(1 for project in projects if project.status is ProjectStatus.ACTIVE),
                "completed": sum(1 for project in projects if project.status is ProjectStatus.COMPLETED),
            },
            "equity": [
                {
                    "id": str(partner.id),
                    "name": users[partner.user_id].display_name if partner.user_id in users else None,
                    "equity": str(partner.equity_percentage),
                    "total_contributed": str(partner.total_capital_contributed),
                }
                for partner in partners
            ],
        }
