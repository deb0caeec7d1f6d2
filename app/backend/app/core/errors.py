"""Typed errors raised by the calculation engine and its services.

Every error is an ``HTTPException`` so the API layer renders it without
translation, while callers inside the engine can still catch by type.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import HTTPException


class EngineError(HTTPException):
    """Base class for engine failures. Carries the id of the offending entity."""

    http_status: int = 400

    def __init__(self, detail: str, *, entity_id: UUID | str | None = None) -> None:
        super().__init__(status_code=self.http_status, detail=detail)
        self.entity_id = entity_id

    def __str__(self) -> str:
        return str(self.detail)


class NotFoundError(EngineError):
    """Referenced project, partner, task, transaction or injection is missing."""

    http_status = 404


class DataValidationError(EngineError):
    """Input violates a calculation precondition; the operation is blocked."""

    http_status = 422

    def __init__(
        self,
        detail: str,
        *,
        entity_id: UUID | str | None = None,
        actual_sum: Decimal | None = None,
    ) -> None:
        super().__init__(detail, entity_id=entity_id)
        self.actual_sum = actual_sum


class ConflictError(EngineError):
    """Mutation or recompute attempted against a locked (finalized) project."""

    http_status = 409
