"""Process-wide service wiring.

Everything the request handlers need is built once from Settings at
startup and hung off ``app.state``; handlers receive it through the
dependencies in certproof.api.dependencies, which tests override.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from certproof.core.config import Settings
from certproof.db.redis import create_redis
from certproof.services.cache import create_course_cache
from certproof.services.ledger import InMemoryLedger, LedgerReader
from certproof.services.signature import SignatureVerifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Services:
    settings: Settings
    clock: Callable[[], float]
    redis: object | None
    ledger: LedgerReader
    signatures: SignatureVerifier


def seed_sample_courses(ledger: InMemoryLedger) -> None:
    """Seed a course for local development against the in-memory ledger."""
    ledger.create_course(
        "REACT-101",
        "React Developer Certification",
        "https://example.com/badges/react-101.png",
        31_536_000,
    )


def build_services(settings: Settings) -> Services:
    redis = create_redis(settings)

    if settings.ledger_backend == "web3":
        # Imported here so the memory backend never touches web3 at startup.
        from certproof.services.web3_ledger import (
            Web3ContractWalletChecker,
            Web3LedgerReader,
            create_web3,
        )

        w3 = create_web3(settings)
        ledger: LedgerReader = Web3LedgerReader(
            w3,
            settings.contract_address,
            cache=create_course_cache(redis),
            timeout_seconds=settings.ledger_timeout_seconds,
            cache_ttl_seconds=settings.course_cache_ttl_seconds,
            expected_chain_id=settings.chain_id,
        )
        signatures = SignatureVerifier(
            Web3ContractWalletChecker(w3, timeout_seconds=settings.ledger_timeout_seconds)
        )
    else:
        memory = InMemoryLedger(clock=time.time)
        if settings.is_dev:
            seed_sample_courses(memory)
        ledger = memory
        # No chain to ask, so ERC-1271 contract wallets cannot be verified.
        signatures = SignatureVerifier()

    logger.info(
        "Ledger backend=%s contract=%s contract_wallets=%s",
        settings.ledger_backend,
        settings.contract_address,
        "on" if signatures.supports_contract_wallets else "off",
    )
    return Services(
        settings=settings,
        clock=time.time,
        redis=redis,
        ledger=ledger,
        signatures=signatures,
    )
