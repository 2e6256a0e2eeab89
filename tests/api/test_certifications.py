from __future__ import annotations

from collections.abc import Iterator

import pytest
from eth_account.signers.local import LocalAccount
from fastapi.testclient import TestClient

from certproof.api.dependencies import get_ledger
from certproof.core.errors import LedgerUnavailable
from certproof.main import app
from certproof.models.course import Course
from certproof.services.ledger import InMemoryLedger
from tests.conftest import ONE_YEAR, FakeClock

OTHER = "0x" + "12" * 20


class _DownLedger(InMemoryLedger):
    async def get_course(self, token_id: int) -> Course:
        raise LedgerUnavailable("rpc unreachable")

    async def total_courses(self) -> int:
        raise LedgerUnavailable("rpc unreachable")


@pytest.fixture
def down_client(client: TestClient) -> Iterator[TestClient]:
    app.dependency_overrides[get_ledger] = lambda: _DownLedger()
    yield client


# ---- courses ----


def test_get_course_uses_camel_case(client: TestClient, course: Course) -> None:
    resp = client.get(f"/v1/courses/{course.token_id}")
    assert resp.status_code == 200
    assert resp.json() == {
        "tokenId": course.token_id,
        "courseCode": "REACT-101",
        "courseName": "React Developer Certification",
        "imageURI": "https://example.com/badges/react-101.png",
        "validityDuration": ONE_YEAR,
        "exists": True,
    }


def test_get_unknown_course_is_404(client: TestClient) -> None:
    resp = client.get("/v1/courses/8")
    assert resp.status_code == 404
    assert resp.json() == {"detail": "Certificate course not found"}


def test_get_course_rejects_zero_token(client: TestClient) -> None:
    assert client.get("/v1/courses/0").status_code == 422


def test_list_courses_in_token_order(client: TestClient, ledger: InMemoryLedger) -> None:
    for code in ("A-1", "B-1", "C-1"):
        ledger.create_course(code, code, f"ipfs://{code}", 10)
    resp = client.get("/v1/courses")
    assert resp.status_code == 200
    assert [c["courseCode"] for c in resp.json()] == ["A-1", "B-1", "C-1"]


def test_unreachable_ledger_is_503_with_retry_after(down_client: TestClient) -> None:
    resp = down_client.get("/v1/courses/1")
    assert resp.status_code == 503
    assert resp.headers["Retry-After"] == "5"
    assert resp.json() == {"detail": "Network error. Please try again."}


# ---- holder status ----


def test_holding_for_holder(
    client: TestClient, minted: Course, holder: LocalAccount, clock: FakeClock
) -> None:
    clock.advance(100)
    resp = client.get(f"/v1/courses/{minted.token_id}/holders/{holder.address}")
    assert resp.status_code == 200
    body = resp.json()
    assert body["balance"] == 1
    assert body["valid"] is True
    assert body["mintTimestamp"] == int(clock.now) - 100
    assert body["expiryTimestamp"] == body["mintTimestamp"] + ONE_YEAR
    assert body["secondsRemaining"] == ONE_YEAR - 100


def test_holding_after_expiry_has_nothing_remaining(
    client: TestClient, minted: Course, holder: LocalAccount, clock: FakeClock
) -> None:
    clock.advance(ONE_YEAR + 5)
    body = client.get(f"/v1/courses/{minted.token_id}/holders/{holder.address}").json()
    assert body["balance"] == 1
    assert body["valid"] is False
    assert body["secondsRemaining"] == 0


def test_holding_with_malformed_address_is_400(client: TestClient, minted: Course) -> None:
    resp = client.get(f"/v1/courses/{minted.token_id}/holders/0xnothex")
    assert resp.status_code == 400
    assert "holder" in resp.json()["detail"]


# ---- batch validity ----


def test_batch_validity_preserves_order(
    client: TestClient, minted: Course, holder: LocalAccount
) -> None:
    resp = client.post(
        f"/v1/courses/{minted.token_id}/validity",
        json={"holders": [OTHER, holder.address, holder.address.lower()]},
    )
    assert resp.status_code == 200
    assert resp.json() == {"tokenId": minted.token_id, "results": [False, True, True]}


def test_batch_validity_rejects_empty_list(client: TestClient, minted: Course) -> None:
    resp = client.post(f"/v1/courses/{minted.token_id}/validity", json={"holders": []})
    assert resp.status_code == 400


def test_batch_validity_unknown_course_is_404(client: TestClient) -> None:
    resp = client.post("/v1/courses/4/validity", json={"holders": [OTHER]})
    assert resp.status_code == 404


# ---- dashboard scan ----


def test_holder_certifications_lists_owned_only(
    client: TestClient, ledger: InMemoryLedger, holder: LocalAccount
) -> None:
    for code in ("A-1", "B-1", "C-1"):
        ledger.create_course(code, code, f"ipfs://{code}", ONE_YEAR)
    ledger.mint_certification(holder.address, 3)
    ledger.mint_certification(holder.address, 1)

    resp = client.get(f"/v1/holders/{holder.address}/certifications")
    assert resp.status_code == 200
    assert [h["tokenId"] for h in resp.json()] == [1, 3]


def test_holder_certifications_empty_for_stranger(
    client: TestClient, minted: Course, stranger: LocalAccount
) -> None:
    resp = client.get(f"/v1/holders/{stranger.address}/certifications")
    assert resp.status_code == 200
    assert resp.json() == []


def test_holder_certifications_unreachable_ledger(down_client: TestClient) -> None:
    resp = down_client.get(f"/v1/holders/{OTHER}/certifications")
    assert resp.status_code == 503
