from fastapi.testclient import TestClient
from sqlalchemy import inspect

from app.core.config import get_settings
from app.db.session import engine, init_db


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_root_endpoint_names_service(client: TestClient) -> None:
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["service"] == get_settings().app_name
    assert response.json()["status"] == "running"


def test_readiness_checks_database(client: TestClient) -> None:
    response = client.get("/api/v1/health/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "ready", "database": "ok"}


def test_init_db_creates_ledger_tables() -> None:
    init_db()

    tables = set(inspect(engine).get_table_names())
    assert {"partners", "projects", "contributions", "financials", "capital_injections", "payouts"} <= tables
