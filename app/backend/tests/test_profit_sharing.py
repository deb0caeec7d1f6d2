from __future__ import annotations

import uuid
from decimal import Decimal

import pytest

from app.core.errors import DataValidationError
from app.services.profit_sharing import PartnerShareInput, calculate_pools, calculate_profit_sharing


def _partners(*percentages: str) -> list[PartnerShareInput]:
    return [PartnerShareInput(partner_id=uuid.uuid4(), contribution_percent=Decimal(p)) for p in percentages]


def test_reference_split_for_three_partners() -> None:
    partners = _partners("70", "30", "0")

    result = calculate_profit_sharing(Decimal("24000"), partners)

    assert result.pools.business_reserve == Decimal("2400.00")
    assert result.pools.religious_allocation == Decimal("1200.00")
    assert result.pools.net_distributable == Decimal("20400.00")
    assert result.pools.base_pool == Decimal("4080.00")
    assert result.pools.performance_pool == Decimal("16320.00")
    assert result.base_share_each == Decimal("1360.00")

    by_id = {row.partner_id: row for row in result.partners}
    top, middle, idle = (by_id[p.partner_id] for p in partners)
    assert (top.performance_share, top.final_payout) == (Decimal("11424.00"), Decimal("12784.00"))
    assert (middle.performance_share, middle.final_payout) == (Decimal("4896.00"), Decimal("6256.00"))
    assert (idle.performance_share, idle.final_payout) == (Decimal("0.00"), Decimal("1360.00"))

    total = result.total_payout + result.pools.business_reserve + result.pools.religious_allocation
    assert total == Decimal("24000.00")


@pytest.mark.parametrize(
    ("gpr", "percentages"),
    [
        ("1000.01", ("33.34", "33.33", "33.33")),
        ("987654.32", ("12.5", "87.5")),
        ("0.07", ("100",)),
        ("55555.55", ("10", "20", "30", "40", "0", "0", "0")),
    ],
)
def test_money_is_conserved_within_rounding(gpr: str, percentages: tuple[str, ...]) -> None:
    partners = _partners(*percentages)

    result = calculate_profit_sharing(Decimal(gpr), partners)

    pools = result.pools
    performance_paid = sum((row.performance_share for row in result.partners), Decimal("0"))
    accounted = pools.business_reserve + pools.religious_allocation + performance_paid + pools.base_pool
    tolerance = Decimal("0.01") * (len(partners) + 2)
    assert abs(accounted - Decimal(gpr)) <= tolerance
    assert pools.business_reserve + pools.religious_allocation + pools.net_distributable == Decimal(gpr)


def test_repeated_runs_are_identical() -> None:
    partners = _partners("41.17", "58.83")

    assert calculate_profit_sharing(Decimal("1234.56"), partners) == calculate_profit_sharing(
        Decimal("1234.56"), partners
    )


def test_negative_balance_is_rejected() -> None:
    with pytest.raises(DataValidationError, match="must not be negative"):
        calculate_profit_sharing(Decimal("-0.01"), _partners("100"))


def test_empty_partner_list_is_rejected() -> None:
    with pytest.raises(DataValidationError, match="at least one partner"):
        calculate_profit_sharing(Decimal("100"), [])


def test_contribution_sum_must_be_close_to_hundred() -> None:
    with pytest.raises(DataValidationError) as exc_info:
        calculate_profit_sharing(Decimal("100"), _partners("60", "39.8"))

    assert exc_info.value.actual_sum == Decimal("99.8")
    assert "99.8" in str(exc_info.value)
    assert exc_info.value.status_code == 422


def test_contribution_sum_within_tolerance_is_accepted() -> None:
    result = calculate_profit_sharing(Decimal("100"), _partners("60", "39.95"))

    assert len(result.partners) == 2


def test_pools_follow_negative_balance() -> None:
    pools = calculate_pools(Decimal("-2000"))

    assert pools.business_reserve == Decimal("-200.00")
    assert pools.religious_allocation == Decimal("-100.00")
    assert pools.net_distributable == Decimal("-1700.00")
    assert pools.base_pool == Decimal("-340.00")
    assert pools.performance_pool == Decimal("-1360.00")
