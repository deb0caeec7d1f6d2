from __future__ import annotations

import uuid

from fastapi.testclient import TestClient


def _create_partner(client: TestClient, name: str) -> dict[str, str]:
    response = client.post("/api/v1/partners", json={"email": f"{name}@firm.test", "display_name": name.title()})
    assert response.status_code == 201
    return response.json()


def _create_project(client: TestClient, lead_id: str) -> str:
    response = client.post(
        "/api/v1/projects",
        json={
            "name": "Storefront",
            "client_name": "Acme",
            "total_value": "12000",
            "weights": {"dev": "70", "design": "30"},
            "project_lead_id": lead_id,
        },
    )
    assert response.status_code == 201
    body = response.json()
    assert body["is_locked"] is False
    assert body["weights"] == {"dev": "70", "design": "30"}
    return body["id"]


def test_partner_emails_are_unique(client: TestClient) -> None:
    _create_partner(client, "ann")

    duplicate = client.post("/api/v1/partners", json={"email": "ANN@firm.test", "display_name": "Ann Again"})

    assert duplicate.status_code == 409
    listing = client.get("/api/v1/partners").json()["items"]
    assert [row["display_name"] for row in listing] == ["Ann"]


def test_project_lifecycle_through_finalize(client: TestClient) -> None:
    ann = _create_partner(client, "ann")
    bob = _create_partner(client, "bob")
    project_id = _create_project(client, ann["id"])

    seeded = client.get(f"/api/v1/projects/{project_id}/contributions").json()
    assert seeded["items"] == [{"partner_id": ann["id"], "percentage": "0.00"}]

    for name, category, effort, owner in (
        ("Checkout", "dev", "3", ann["id"]),
        ("Catalog", "dev", "1", bob["id"]),
        ("Branding", "design", "1", bob["id"]),
    ):
        created = client.post(
            f"/api/v1/projects/{project_id}/tasks",
            json={"name": name, "category": category, "effort_weight": effort, "assigned_partner_id": owner},
        )
        assert created.status_code == 201

    contributions = client.get(f"/api/v1/projects/{project_id}/contributions").json()
    assert {row["partner_id"]: row["percentage"] for row in contributions["items"]} == {
        ann["id"]: "52.50",
        bob["id"]: "47.50",
    }
    assert contributions["total"] == "100.00"

    for tx_type, amount in (("INCOME", "10000"), ("EXPENSE", "2000")):
        booked = client.post(
            f"/api/v1/projects/{project_id}/transactions",
            json={"amount": amount, "type": tx_type, "date": "2026-04-01"},
        )
        assert booked.status_code == 201
        assert booked.json()["date"] == "2026-04-01"

    synced = client.post(f"/api/v1/projects/{project_id}/financials:sync")
    assert synced.status_code == 200
    financial = synced.json()["financial"]
    assert financial["actual_balance"] == "8000.00"
    assert financial["net_distributable"] == "6800.00"
    assert synced.json()["distribution"]["base_share_each"] == "680.00"

    finalized = client.post(f"/api/v1/projects/{project_id}/finalize")
    assert finalized.status_code == 200
    payouts = {row["partner_id"]: row["total_payout"] for row in finalized.json()["payouts"]}
    assert payouts == {ann["id"]: "3536.00", bob["id"]: "3264.00"}

    assert client.post(f"/api/v1/projects/{project_id}/finalize").status_code == 409
    late_task = client.post(f"/api/v1/projects/{project_id}/tasks", json={"name": "Late", "category": "dev"})
    assert late_task.status_code == 409
    assert client.post(f"/api/v1/projects/{project_id}/contributions:recompute").status_code == 409
    assert client.get(f"/api/v1/projects/{project_id}").json()["is_locked"] is True

    booked_payouts = client.get("/api/v1/payouts").json()["items"]
    assert {row["partner_name"] for row in booked_payouts} == {"Ann", "Bob"}
    assert {row["project_name"] for row in booked_payouts} == {"Storefront"}

    earnings = {row["id"]: row["total_earnings"] for row in client.get("/api/v1/partners").json()["items"]}
    assert earnings == {ann["id"]: "3536.00", bob["id"]: "3264.00"}


def test_task_completion_uses_actor_header(client: TestClient) -> None:
    ann = _create_partner(client, "ann")
    bob = _create_partner(client, "bob")
    project_id = _create_project(client, ann["id"])
    task = client.post(
        f"/api/v1/projects/{project_id}/tasks",
        json={"name": "Checkout", "category": "dev", "assigned_partner_id": ann["id"]},
    ).json()

    done = client.patch(
        f"/api/v1/projects/{project_id}/tasks/{task['id']}",
        json={"status": "DONE"},
        headers={"X-Actor-User-Id": bob["user_id"]},
    )

    assert done.status_code == 200
    assert done.json()["completed_by_id"] == bob["user_id"]
    assert done.json()["assigned_partner_id"] == ann["id"]
    contributions = client.get(f"/api/v1/projects/{project_id}/contributions").json()["items"]
    assert {row["partner_id"]: row["percentage"] for row in contributions} == {
        bob["id"]: "100.00",
        ann["id"]: "0.00",
    }

    unassigned = client.patch(
        f"/api/v1/projects/{project_id}/tasks/{task['id']}",
        json={"status": "REVIEW", "assigned_partner_id": None},
    )
    assert unassigned.status_code == 200
    assert unassigned.json()["assigned_partner_id"] is None
    assert unassigned.json()["completed_by_id"] is None

    deleted = client.delete(f"/api/v1/projects/{project_id}/tasks/{task['id']}")
    assert deleted.status_code == 204
    assert client.get(f"/api/v1/projects/{project_id}/tasks").json()["items"] == []


def test_validation_and_missing_resources(client: TestClient) -> None:
    ann = _create_partner(client, "ann")
    project_id = _create_project(client, ann["id"])
    missing = str(uuid.uuid4())

    assert client.get(f"/api/v1/projects/{missing}").status_code == 404
    assert client.post(f"/api/v1/projects/{missing}/financials:sync").status_code == 404
    assert client.delete(f"/api/v1/transactions/{missing}").status_code == 404
    assert client.delete(f"/api/v1/finance/capital-injections/{missing}").status_code == 404

    unknown_lead = client.post("/api/v1/projects", json={"name": "Ghost", "project_lead_id": missing})
    assert unknown_lead.status_code == 422

    zero_amount = client.post(
        f"/api/v1/projects/{project_id}/transactions", json={"amount": "0", "type": "INCOME"}
    )
    assert zero_amount.status_code == 422

    negative_capital = client.post(
        "/api/v1/finance/capital-injection", json={"partner_id": ann["id"], "amount": "-5"}
    )
    assert negative_capital.status_code == 422
    assert "must be positive" in negative_capital.json()["detail"]


def test_loss_making_project_cannot_be_finalized(client: TestClient) -> None:
    ann = _create_partner(client, "ann")
    project_id = _create_project(client, ann["id"])
    client.post(f"/api/v1/projects/{project_id}/transactions", json={"amount": "500", "type": "EXPENSE"})

    financials = client.get(f"/api/v1/projects/{project_id}/financials").json()["financial"]
    assert financials["actual_balance"] == "-500.00"
    assert financials["business_reserve"] == "-50.00"

    response = client.post(f"/api/v1/projects/{project_id}/finalize")

    assert response.status_code == 422
    assert client.get(f"/api/v1/projects/{project_id}").json()["is_locked"] is False


def test_capital_injections_drive_company_equity(client: TestClient) -> None:
    ann = _create_partner(client, "ann")
    bob = _create_partner(client, "bob")

    first = client.post("/api/v1/finance/capital-injection", json={"partner_id": ann["id"], "amount": "6000"})
    second = client.post(
        "/api/v1/finance/capital-injection",
        json={"partner_id": bob["id"], "amount": "2000", "notes": "laptop budget"},
    )
    assert first.status_code == 201
    assert second.status_code == 201
    assert second.json()["post_equity"] == "25.0000"

    summary = client.get("/api/v1/finance/company-summary").json()
    assert {row["name"]: row["equity"] for row in summary["equity"]} == {"Ann": "75.0000", "Bob": "25.0000"}

    history = client.get(f"/api/v1/finance/capital-injections/{bob['id']}").json()["items"]
    assert [row["notes"] for row in history] == ["laptop budget"]

    removed = client.delete(f"/api/v1/finance/capital-injections/{second.json()['id']}")
    assert removed.status_code == 204
    summary = client.get("/api/v1/finance/company-summary").json()
    assert {row["name"]: row["equity"] for row in summary["equity"]} == {"Ann": "100.0000", "Bob": "0.0000"}


def test_sub_cent_inputs_are_rejected_with_422(client: TestClient) -> None:
    ann = _create_partner(client, "ann")
    project_id = _create_project(client, ann["id"])

    tiny_capital = client.post(
        "/api/v1/finance/capital-injection", json={"partner_id": ann["id"], "amount": "0.004"}
    )
    tiny_income = client.post(
        f"/api/v1/projects/{project_id}/transactions", json={"amount": "0.004", "type": "INCOME"}
    )
    tiny_effort = client.post(
        f"/api/v1/projects/{project_id}/tasks", json={"name": "Tiny", "category": "dev", "effort_weight": "0.001"}
    )

    assert [tiny_capital.status_code, tiny_income.status_code, tiny_effort.status_code] == [422, 422, 422]
    assert client.get("/api/v1/finance/company-summary").json()["equity"][0]["total_contributed"] == "0.00"
