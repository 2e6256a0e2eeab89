from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from fastapi.testclient import TestClient

from certproof.api.dependencies import get_clock, get_ledger
from certproof.core.config import SETTINGS
from certproof.main import app
from certproof.models.course import Course
from certproof.services.ledger import InMemoryLedger
from certproof.services.ownership import OwnershipDecisionEngine, VerifierConfig
from certproof.services.signature import SignatureVerifier

# Ensure repo root is on sys.path so `import certproof` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

CONTRACT = SETTINGS.contract_address
OTHER_CONTRACT = "0x" + "ab" * 20
ONE_YEAR = 31_536_000
START = 1_700_000_000.0

# Deterministic throwaway keys.
HOLDER_KEY = "0x" + "4c" * 32
STRANGER_KEY = "0x" + "7e" * 32


class FakeClock:
    """Settable stand-in for time.time shared by ledger and engine."""

    def __init__(self, now: float = START) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def sign(account: LocalAccount, message: str) -> str:
    """personal_sign *message* and return the 0x-prefixed hex signature."""
    signed = account.sign_message(encode_defunct(text=message))
    return "0x" + bytes(signed.signature).hex()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ledger(clock: FakeClock) -> InMemoryLedger:
    return InMemoryLedger(clock=clock)


@pytest.fixture
def course(ledger: InMemoryLedger) -> Course:
    return ledger.create_course(
        "REACT-101",
        "React Developer Certification",
        "https://example.com/badges/react-101.png",
        ONE_YEAR,
    )


@pytest.fixture
def holder() -> LocalAccount:
    return Account.from_key(HOLDER_KEY)


@pytest.fixture
def stranger() -> LocalAccount:
    return Account.from_key(STRANGER_KEY)


@pytest.fixture
def minted(ledger: InMemoryLedger, course: Course, holder: LocalAccount) -> Course:
    """The course, with one certification minted to ``holder``."""
    ledger.mint_certification(holder.address, course.token_id)
    return course


def make_engine(
    ledger, clock: FakeClock, *, ttl: int = 300, verifier: SignatureVerifier | None = None
) -> OwnershipDecisionEngine:
    return OwnershipDecisionEngine(
        ledger,
        verifier or SignatureVerifier(),
        VerifierConfig(contract_address=CONTRACT, challenge_ttl_seconds=ttl),
        clock=clock,
    )


@pytest.fixture
def engine(ledger: InMemoryLedger, clock: FakeClock) -> OwnershipDecisionEngine:
    return make_engine(ledger, clock)


@pytest.fixture
def client(ledger: InMemoryLedger, clock: FakeClock) -> Iterator[TestClient]:
    """TestClient wired to the per-test ledger and clock."""
    app.dependency_overrides[get_ledger] = lambda: ledger
    app.dependency_overrides[get_clock] = lambda: clock
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
