"""Weighted contribution attribution for a project's task effort."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.errors import ConflictError, NotFoundError
from app.models.entities import Project, Task, TaskStatus
from app.repositories.partnership_repository import PartnershipRepository

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
Q2 = Decimal("0.01")

# Bucket for tasks without a category; it never carries weight.
UNWEIGHTED_CATEGORY = "unweighted"


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2, rounding=ROUND_HALF_UP)


def _as_decimal(value: object) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(slots=True)
class CategoryEffort:
    total_effort: Decimal = ZERO
    partner_effort: dict[UUID, Decimal] = field(default_factory=dict)


def credited_partner_id(task: Task, partner_id_by_user: Mapping[UUID, UUID]) -> UUID | None:
    """Partner credited for a task.

    A finished task credits the partner profile of the user who completed it,
    falling back to the assignee when that user has no partner profile.
    """

    if task.status is TaskStatus.DONE and task.completed_by_id is not None:
        completer = partner_id_by_user.get(task.completed_by_id)
        if completer is not None:
            return completer
    return task.assigned_partner_id


def group_effort_by_category(
    tasks: Iterable[Task],
    partner_id_by_user: Mapping[UUID, UUID],
) -> dict[str, CategoryEffort]:
    categories: dict[str, CategoryEffort] = {}
    for task in tasks:
        bucket = categories.setdefault(task.category or UNWEIGHTED_CATEGORY, CategoryEffort())
        effort = _as_decimal(task.effort_weight)
        bucket.total_effort += effort

        partner_id = credited_partner_id(task, partner_id_by_user)
        if partner_id is not None:
            bucket.partner_effort[partner_id] = bucket.partner_effort.get(partner_id, ZERO) + effort
    return categories


def calculate_contributions(
    tasks: Iterable[Task],
    weights: Mapping[str, object],
    *,
    lead_ids: Iterable[UUID] = (),
    partner_id_by_user: Mapping[UUID, UUID] | None = None,
) -> dict[UUID, Decimal]:
    """Return partner id -> contribution percentage, summing to exactly 100.00.

    Each category's weight is shared among partners in proportion to the effort
    credited to them inside that category. Categories without effort leave their
    weight unallocated. Leads are always present, at 0 when they earned nothing.
    The raw figures are then rescaled to 100 and rounded to two decimals, with
    the rounding residual folded into the first entry.
    """

    categories = group_effort_by_category(tasks, partner_id_by_user or {})

    raw: dict[UUID, Decimal] = {}
    for category, bucket in categories.items():
        if bucket.total_effort <= ZERO:
            continue
        category_weight = ZERO if category == UNWEIGHTED_CATEGORY else _as_decimal(weights.get(category, 0))
        for partner_id, effort in bucket.partner_effort.items():
            raw[partner_id] = raw.get(partner_id, ZERO) + (effort / bucket.total_effort) * category_weight

    leads = list(dict.fromkeys(lead_ids))
    for lead_id in leads:
        raw.setdefault(lead_id, ZERO)

    raw_sum = sum(raw.values(), ZERO)
    if raw_sum > ZERO:
        result = {partner_id: _q2(value / raw_sum * HUNDRED) for partner_id, value in raw.items()}
    elif leads:
        equal_share = _q2(HUNDRED / len(leads))
        result = {partner_id: (equal_share if partner_id in leads else ZERO) for partner_id in raw}
    else:
        return {}

    return _absorb_rounding_residual(result)


def _absorb_rounding_residual(result: dict[UUID, Decimal]) -> dict[UUID, Decimal]:
    residual = HUNDRED - sum(result.values(), ZERO)
    if residual == ZERO:
        return result

    # First entry in attribution order that stays inside [0, 100] takes the residual.
    for partner_id, value in result.items():
        adjusted = value + residual
        if ZERO <= adjusted <= HUNDRED:
            result[partner_id] = adjusted
            break
    return result


class ContributionService:
    """Recomputes and atomically replaces a project's contribution rows."""

    def __init__(self, db: Session, repo: PartnershipRepository | None = None) -> None:
        self.db = db
        self.repo = repo or PartnershipRepository(db)

    def load_unlocked_project(self, project_id: UUID) -> Project:
        project = self.repo.get_project(project_id, for_update=True)
        if project is None:
            raise NotFoundError("Project not found.", entity_id=project_id)
        if project.is_locked:
            logger.warning("Rejected recompute of locked project %s", project_id)
            raise ConflictError("Project is finalized and locked.", entity_id=project_id)
        return project

    def compute(self, project: Project) -> dict[UUID, Decimal]:
        """Recompute and replace contributions inside the caller's transaction."""

        tasks = self.repo.list_tasks(project.id)
        completer_ids = {
            task.completed_by_id
            for task in tasks
            if task.status is TaskStatus.DONE and task.completed_by_id is not None
        }
        percentages = calculate_contributions(
            tasks,
            project.weights or {},
            lead_ids=project.lead_ids,
            partner_id_by_user=self.repo.partner_ids_by_user(completer_ids),
        )
        self.repo.replace_contributions(project.id, percentages)
        logger.info(
            "Recomputed contributions for project %s: %d partners from %d tasks",
            project.id,
            len(percentages),
            len(tasks),
        )
        return percentages

    def recompute_contributions(self, project_id: UUID) -> dict[UUID, Decimal]:
        try:
            project = self.load_unlocked_project(project_id)
            percentages = self.compute(project)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return percentages
