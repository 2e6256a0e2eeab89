"""Demo: walk the challenge → sign → verify flow against the in-memory ledger.

Run with:
    LEDGER_BACKEND=memory python scripts/demo_verify_flow.py
"""

from __future__ import annotations

from eth_account import Account
from eth_account.messages import encode_defunct
from fastapi.testclient import TestClient

from certproof.main import app
from certproof.services.ledger import InMemoryLedger

# Well-known throwaway key; never fund it.
HOLDER_KEY = "0x" + "4c" * 32
STRANGER_KEY = "0x" + "7e" * 32


def _sign(key: str, message: str) -> str:
    return Account.sign_message(encode_defunct(text=message), private_key=key).signature.hex()


def main() -> None:
    client = TestClient(app)
    holder = Account.from_key(HOLDER_KEY)
    stranger = Account.from_key(STRANGER_KEY)

    # ── Seed data ───────────────────────────────────────────────────
    ledger = app.state.services.ledger
    if not isinstance(ledger, InMemoryLedger):
        raise SystemExit("demo needs LEDGER_BACKEND=memory")
    course = ledger.create_course(
        "DEMO-101", "Demo Certification", "https://example.com/demo.png", 31_536_000
    )
    ledger.mint_certification(holder.address, course.token_id)

    # ── Step 1: POST /verify/challenge ──────────────────────────────
    r = client.post("/verify/challenge", json={"tokenId": course.token_id})
    message = r.json()["message"]
    print(f"1. POST /verify/challenge  → {r.status_code}")
    print("   " + message.replace("\n", "\n   "))

    # ── Step 2: holder signs and verifies ───────────────────────────
    r = client.post(
        "/verify/ownership",
        json={
            "message": message,
            "signature": _sign(HOLDER_KEY, message),
            "address": holder.address,
            "tokenId": course.token_id,
        },
    )
    print(f"2. POST /verify/ownership  → {r.status_code}  {r.json()}")

    # ── Step 3: stranger replays the holder's address ───────────────
    r = client.post(
        "/verify/ownership",
        json={
            "message": message,
            "signature": _sign(STRANGER_KEY, message),
            "address": holder.address,
            "tokenId": course.token_id,
        },
    )
    print(f"3. forged claim            → {r.status_code}  {r.json()}")

    # ── Step 4: stranger signs for itself but holds nothing ─────────
    r = client.post(
        "/verify/ownership",
        json={
            "message": message,
            "signature": _sign(STRANGER_KEY, message),
            "address": stranger.address,
            "tokenId": course.token_id,
        },
    )
    print(f"4. non-holder              → {r.status_code}  {r.json()}")

    # ── Step 5: dashboard scan ──────────────────────────────────────
    r = client.get(f"/v1/holders/{holder.address}/certifications")
    print(f"5. GET certifications      → {r.status_code}  {r.json()}")


if __name__ == "__main__":
    main()
