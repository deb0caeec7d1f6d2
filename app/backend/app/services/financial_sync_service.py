"""Project financial snapshot synchronisation and finalization."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.errors import ConflictError, NotFoundError
from app.models.entities import Financial, Payout, Project, TransactionType
from app.repositories.partnership_repository import PartnershipRepository
from app.services.contribution_service import ContributionService
from app.services.profit_sharing import (
    PartnerShareInput,
    ProfitDistribution,
    calculate_pools,
    calculate_profit_sharing,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
Q2 = Decimal("0.01")


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2, rounding=ROUND_HALF_UP)


def _money(value: Decimal | None) -> str | None:
    return str(value) if value is not None else None


@dataclass(slots=True)
class FinancialSnapshot:
    financial: Financial
    contributions: dict[UUID, Decimal]
    distribution: ProfitDistribution | None


class FinancialSyncService:
    """Runs contribution attribution and the profit split against a project's ledger."""

    def __init__(self, db: Session, repo: PartnershipRepository | None = None) -> None:
        self.db = db
        self.repo = repo or PartnershipRepository(db)
        self.contributions = ContributionService(db, self.repo)
        self.settings = get_settings()

    @staticmethod
    def serialize_financial(financial: Financial) -> dict[str, object]:
        return {
            "project_id": str(financial.project_id),
            "total_value": _money(financial.total_value),
            "actual_balance": _money(financial.actual_balance),
            "business_reserve": _money(financial.business_reserve),
            "religious_allocation": _money(financial.religious_allocation),
            "net_distributable": _money(financial.net_distributable),
            "base_pool": _money(financial.base_pool),
            "performance_pool": _money(financial.performance_pool),
            "updated_at": financial.updated_at.isoformat(),
        }

    @staticmethod
    def serialize_distribution(distribution: ProfitDistribution) -> dict[str, object]:
        return {
            "base_share_each": str(distribution.base_share_each),
            "partners": [
                {
                    "partner_id": str(row.partner_id),
                    "contribution_percent": str(row.contribution_percent),
                    "base_share": str(row.base_share),
                    "performance_share": str(row.performance_share),
                    "final_payout": str(row.final_payout),
                }
                for row in distribution.partners
            ],
        }

    def serialize_snapshot(self, snapshot: FinancialSnapshot) -> dict[str, object]:
        return {
            "financial": self.serialize_financial(snapshot.financial),
            "contributions": {
                str(partner_id): str(percentage) for partner_id, percentage in snapshot.contributions.items()
            },
            "distribution": (
                self.serialize_distribution(snapshot.distribution) if snapshot.distribution is not None else None
            ),
        }

    @staticmethod
    def serialize_payout(payout: Payout) -> dict[str, object]:
        return {
            "id": str(payout.id),
            "project_id": str(payout.project_id),
            "partner_id": str(payout.partner_id),
            "base_share": str(payout.base_share),
            "performance_share": str(payout.performance_share),
            "total_payout": str(payout.total_payout),
            "created_at": payout.created_at.isoformat(),
        }

    def project_balance(self, project_id: UUID) -> Decimal:
        """Realized income minus realized expenses; may be negative."""

        totals = self.repo.sum_transactions_by_type(project_id)
        return _q2(totals[TransactionType.INCOME] - totals[TransactionType.EXPENSE])

    def _share_inputs(self, percentages: dict[UUID, Decimal]) -> list[PartnerShareInput]:
        return [
            PartnerShareInput(partner_id=partner.id, contribution_percent=percentages.get(partner.id, ZERO))
            for partner in self.repo.list_partners()
        ]

    def sync_project(self, project: Project) -> FinancialSnapshot:
        """Recompute contributions and upsert the snapshot inside the caller's transaction."""

        percentages = self.contributions.compute(project)
        gpr = self.project_balance(project.id)

        financial = self.repo.get_financial(project.id)
        if financial is None:
            financial = self.repo.add_financial(Financial(project_id=project.id))
        financial.total_value = project.total_value
        financial.actual_balance = gpr
        financial.updated_at = datetime.utcnow()

        distribution: ProfitDistribution | None = None
        if percentages:
            pools = calculate_pools(gpr)
            financial.business_reserve = pools.business_reserve
            financial.religious_allocation = pools.religious_allocation
            financial.net_distributable = pools.net_distributable
            financial.base_pool = pools.base_pool
            financial.performance_pool = pools.performance_pool
            project.net_profit = pools.net_distributable
            if gpr >= ZERO:
                distribution = calculate_profit_sharing(
                    gpr,
                    self._share_inputs(percentages),
                    tolerance=Decimal(str(self.settings.contribution_sum_tolerance)),
                )
        else:
            financial.business_reserve = None
            financial.religious_allocation = None
            financial.net_distributable = None
            financial.base_pool = None
            financial.performance_pool = None

        self.db.flush()
        logger.info(
            "Synced financials for project %s: balance=%s contributors=%d",
            project.id,
            gpr,
            len(percentages),
        )
        return FinancialSnapshot(financial=financial, contributions=percentages, distribution=distribution)

    def sync_financials(self, project_id: UUID) -> FinancialSnapshot:
        try:
            project = self.contributions.load_unlocked_project(project_id)
            snapshot = self.sync_project(project)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return snapshot

    def get_financials(self, project_id: UUID) -> Financial | None:
        if self.repo.get_project(project_id) is None:
            raise NotFoundError("Project not found.", entity_id=project_id)
        return self.repo.get_financial(project_id)

    def finalize_project(self, project_id: UUID) -> list[Payout]:
        """Recompute one last time, lock the project and book payouts for every partner."""

        try:
            project = self.repo.get_project(project_id, for_update=True)
            if project is None:
                raise NotFoundError("Project not found.", entity_id=project_id)
            if project.is_locked:
                logger.warning("Rejected second finalize of project %s", project_id)
                raise ConflictError("Project is already finalized.", entity_id=project_id)

            snapshot = self.sync_project(project)
            distribution = calculate_profit_sharing(
                snapshot.financial.actual_balance,
                self._share_inputs(snapshot.contributions),
                tolerance=Decimal(str(self.settings.contribution_sum_tolerance)),
            )

            partners = {partner.id: partner for partner in self.repo.list_partners(for_update=True)}
            payouts = [
                Payout(
                    project_id=project.id,
                    partner_id=row.partner_id,
                    base_share=row.base_share,
                    performance_share=row.performance_share,
                    total_payout=row.final_payout,
                )
                for row in distribution.partners
            ]
            self.repo.add_payouts(payouts)
            for row in distribution.partners:
                partner = partners[row.partner_id]
                partner.total_earnings = _q2(partner.total_earnings + row.final_payout)

            project.is_locked = True
            project.updated_at = datetime.utcnow()
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError("Payouts for this project already exist.", entity_id=project_id) from exc
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Finalized project %s: %d payouts totalling %s",
            project_id,
            len(payouts),
            distribution.total_payout,
        )
        return payouts
