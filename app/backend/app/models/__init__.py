"""ORM model package."""

from app.models.entities import (
    CapitalInjection,
    Contribution,
    Financial,
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

__all__ = [
    "CapitalInjection",
    "Contribution",
    "Financial",
    "Partner",
    "Payout",
    "Project",
    "ProjectStatus",
    "Task",
    "TaskStatus",
    "Transaction",
    "TransactionType",
    "User",
]
