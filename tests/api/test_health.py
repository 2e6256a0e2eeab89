from __future__ import annotations

from fastapi.testclient import TestClient

from certproof.api.dependencies import get_ledger
from certproof.core.config import SETTINGS
from certproof.core.errors import LedgerUnavailable
from certproof.main import app
from certproof.services.ledger import InMemoryLedger


class _UnreachableLedger(InMemoryLedger):
    async def ping(self) -> None:
        raise LedgerUnavailable("connection refused")


def test_health_reports_checks_and_ledger(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["checks"]["ledger"] == "ok"
    assert body["ledger"] == {
        "backend": SETTINGS.ledger_backend,
        "contract": SETTINGS.contract_address,
        "chain_id": SETTINGS.chain_id,
    }
    if SETTINGS.redis_url is None:
        assert body["checks"]["redis"] == "not_configured"
        assert body["status"] == "ok"


def test_health_is_degraded_when_ledger_unreachable(client: TestClient) -> None:
    app.dependency_overrides[get_ledger] = lambda: _UnreachableLedger()
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "degraded"
    assert resp.json()["checks"]["ledger"] == "degraded"


def test_ready_when_ledger_reachable(client: TestClient) -> None:
    assert client.get("/ready").status_code == 200


def test_not_ready_when_ledger_unreachable(client: TestClient) -> None:
    app.dependency_overrides[get_ledger] = lambda: _UnreachableLedger()
    assert client.get("/ready").status_code == 503


def test_metrics_endpoint_exposes_prometheus_text(client: TestClient) -> None:
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "http_requests_total" in resp.text
