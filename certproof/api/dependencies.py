from __future__ import annotations

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, Request

from certproof.core.config import Settings
from certproof.services.container import Services
from certproof.services.ledger import LedgerReader
from certproof.services.ownership import OwnershipDecisionEngine, VerifierConfig
from certproof.services.signature import SignatureVerifier


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_settings(services: Annotated[Services, Depends(get_services)]) -> Settings:
    return services.settings


def get_clock(services: Annotated[Services, Depends(get_services)]) -> Callable[[], float]:
    return services.clock


def get_ledger(services: Annotated[Services, Depends(get_services)]) -> LedgerReader:
    return services.ledger


def get_signature_verifier(
    services: Annotated[Services, Depends(get_services)],
) -> SignatureVerifier:
    return services.signatures


def get_engine(
    settings: Annotated[Settings, Depends(get_settings)],
    ledger: Annotated[LedgerReader, Depends(get_ledger)],
    signatures: Annotated[SignatureVerifier, Depends(get_signature_verifier)],
    clock: Annotated[Callable[[], float], Depends(get_clock)],
) -> OwnershipDecisionEngine:
    """A fresh engine per request; it holds no state of its own."""
    return OwnershipDecisionEngine(
        ledger,
        signatures,
        VerifierConfig(
            contract_address=settings.contract_address,
            challenge_ttl_seconds=settings.challenge_ttl_seconds,
        ),
        clock=clock,
    )
