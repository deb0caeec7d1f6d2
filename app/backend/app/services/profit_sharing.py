"""Deterministic profit split: reserves, charity, base pool and performance pool."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from app.core.errors import DataValidationError

ZERO = Decimal("0")
HUNDRED = Decimal("100")
Q2 = Decimal("0.01")

BUSINESS_RESERVE_RATE = Decimal("0.10")
RELIGIOUS_ALLOCATION_RATE = Decimal("0.05")
BASE_POOL_RATE = Decimal("0.20")
PERFORMANCE_POOL_RATE = Decimal("0.80")

DEFAULT_SUM_TOLERANCE = Decimal("0.1")


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2, rounding=ROUND_HALF_UP)


@dataclass(frozen=True, slots=True)
class PartnerShareInput:
    partner_id: UUID
    contribution_percent: Decimal


@dataclass(frozen=True, slots=True)
class ProfitPools:
    gpr: Decimal
    business_reserve: Decimal
    religious_allocation: Decimal
    net_distributable: Decimal
    base_pool: Decimal
    performance_pool: Decimal


@dataclass(frozen=True, slots=True)
class PartnerShare:
    partner_id: UUID
    contribution_percent: Decimal
    base_share: Decimal
    performance_share: Decimal
    final_payout: Decimal


@dataclass(frozen=True, slots=True)
class ProfitDistribution:
    pools: ProfitPools
    base_share_each: Decimal
    partners: tuple[PartnerShare, ...]

    @property
    def total_payout(self) -> Decimal:
        return sum((row.final_payout for row in self.partners), ZERO)


def calculate_pools(gpr: Decimal) -> ProfitPools:
    """Split a balance into pools. Negative balances yield negative pools."""

    gpr = _q2(Decimal(str(gpr)))
    business_reserve = _q2(gpr * BUSINESS_RESERVE_RATE)
    religious_allocation = _q2(gpr * RELIGIOUS_ALLOCATION_RATE)
    net_distributable = _q2(gpr - business_reserve - religious_allocation)
    return ProfitPools(
        gpr=gpr,
        business_reserve=business_reserve,
        religious_allocation=religious_allocation,
        net_distributable=net_distributable,
        base_pool=_q2(net_distributable * BASE_POOL_RATE),
        performance_pool=_q2(net_distributable * PERFORMANCE_POOL_RATE),
    )


def calculate_profit_sharing(
    gpr: Decimal,
    partners: Sequence[PartnerShareInput],
    *,
    tolerance: Decimal = DEFAULT_SUM_TOLERANCE,
) -> ProfitDistribution:
    """Distribute a non-negative balance across every partner of the partnership.

    The base pool is shared equally by all listed partners, including those
    with no contribution on the project; the performance pool follows the
    contribution percentages, which must add up to 100 within ``tolerance``.
    """

    if gpr < ZERO:
        raise DataValidationError(f"Gross balance must not be negative (got {gpr}).")
    if not partners:
        raise DataValidationError("Profit sharing requires at least one partner.")

    contribution_sum = sum((Decimal(str(row.contribution_percent)) for row in partners), ZERO)
    if abs(contribution_sum - HUNDRED) > Decimal(str(tolerance)):
        raise DataValidationError(
            f"Contribution percentages must sum to 100 (got {contribution_sum}). "
            "Recompute contributions before distributing profit.",
            actual_sum=contribution_sum,
        )

    pools = calculate_pools(gpr)
    base_share_each = _q2(pools.base_pool / len(partners))

    shares: list[PartnerShare] = []
    for row in partners:
        percent = Decimal(str(row.contribution_percent))
        performance_share = _q2(pools.performance_pool * percent / HUNDRED)
        shares.append(
            PartnerShare(
                partner_id=row.partner_id,
                contribution_percent=percent,
                base_share=base_share_each,
                performance_share=performance_share,
                final_payout=_q2(base_share_each + performance_share),
            )
        )

    return ProfitDistribution(pools=pools, base_share_each=base_share_each, partners=tuple(shares))
