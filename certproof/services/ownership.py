"""Certificate ownership verification.

Decides whether the wallet behind a signature holds a given certificate
token.  One attempt moves through

    IDLE ──submit──▶ VERIFYING ──▶ VERIFIED(address)
                               └─▶ FAILED(reason)

and the engine keeps nothing between attempts, so concurrent requests
never share state.

Inside VERIFYING the order is fixed:

  1. Inputs are checked (InvalidArgument on a caller bug).
  2. The challenge text is checked: when it parses, it must name the
     requested token and this service's contract; when a TTL is set it
     must parse and be fresh.
  3. The signature must come from the claimed address.
  4. balance_of(address, token) on the ledger must be positive.

Step 4 does not look at expiry: ownership ("received and
still holds a token") and currency ("not yet expired") are separate
questions.  ``run(..., require_current=True)`` asks the currency
question first, before the holder is prompted to sign.

Every exception is turned into a FAILED verdict here; nothing escapes to
the caller except asyncio.CancelledError, which abandons the attempt
with no side effects.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from certproof.core.errors import CourseNotFound, InvalidArgument, LedgerUnavailable
from certproof.core.metrics import CHALLENGES_ISSUED, VERIFICATION_VERDICTS
from certproof.core.validation import require_address, require_token_id, same_address
from certproof.models.verdict import FailureReason, VerificationState, Verdict
from certproof.services.challenge import generate_challenge, parse_challenge
from certproof.services.ledger import LedgerReader
from certproof.services.signature import SignatureVerifier

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Signer = Callable[[str], Awaitable[str | bytes]]

# Tolerated clock difference for challenges stamped "in the future".
CLOCK_SKEW_SECONDS = 60


@dataclass(frozen=True, slots=True)
class VerifierConfig:
    contract_address: str
    challenge_ttl_seconds: int = 300


class OwnershipDecisionEngine:
    def __init__(
        self,
        ledger: LedgerReader,
        signatures: SignatureVerifier,
        config: VerifierConfig,
        *,
        clock: Clock = time.time,
    ) -> None:
        self._ledger = ledger
        self._signatures = signatures
        self._config = config
        self._clock = clock

    def challenge(self, token_id: int, contract_address: str | None = None) -> str:
        message = generate_challenge(
            token_id,
            contract_address or self._config.contract_address,
            clock=self._clock,
        )
        CHALLENGES_ISSUED.inc()
        return message

    async def verify(
        self,
        message: str,
        signature: str | bytes,
        address: str,
        token_id: int,
    ) -> Verdict:
        context = {"token_id": token_id, "wallet_address": address}
        logger.debug(
            "verification %s -> %s",
            VerificationState.IDLE.value,
            VerificationState.VERIFYING.value,
            extra=context,
        )
        try:
            verdict = await self._decide(message, signature, address, token_id)
        except Exception as e:
            verdict = _failure_for(e, context)

        VERIFICATION_VERDICTS.labels(outcome=verdict.outcome).inc()
        logger.info(
            "verification %s outcome=%s",
            verdict.state.value,
            verdict.outcome,
            extra={**context, "outcome": verdict.outcome},
        )
        return verdict

    async def _decide(
        self,
        message: str,
        signature: str | bytes,
        address: str,
        token_id: int,
    ) -> Verdict:
        require_token_id(token_id)
        require_address(address)
        if not isinstance(message, str) or not message:
            raise InvalidArgument("message must be a non-empty string")
        if not signature:
            raise InvalidArgument("signature must not be empty")

        rejected = self._check_challenge(message, token_id)
        if rejected is not None:
            return rejected

        if not await self._signatures.verify(message, signature, address):
            return Verdict.failed(FailureReason.INVALID_SIGNATURE)

        balance = await self._ledger.balance_of(address, token_id)
        if balance > 0:
            return Verdict.verified(address)
        return Verdict.failed(FailureReason.NOT_OWNER)

    def _check_challenge(self, message: str, token_id: int) -> Verdict | None:
        fields = parse_challenge(message)
        ttl = self._config.challenge_ttl_seconds

        if fields is None:
            if ttl > 0:
                logger.info("Rejected message that is not a challenge")
                return Verdict.failed(FailureReason.INVALID_SIGNATURE)
            return None

        if fields.token_id != token_id or not same_address(
            fields.contract_address, self._config.contract_address
        ):
            logger.info(
                "Challenge bound to token=%s contract=%s, not this request",
                fields.token_id,
                fields.contract_address,
            )
            return Verdict.failed(FailureReason.INVALID_SIGNATURE)

        if ttl > 0:
            age_ms = int(self._clock() * 1000) - fields.issued_at_ms
            if age_ms > ttl * 1000 or age_ms < -CLOCK_SKEW_SECONDS * 1000:
                return Verdict.failed(FailureReason.CHALLENGE_EXPIRED)
        return None

    async def run(
        self,
        token_id: int,
        address: str,
        sign: Signer,
        *,
        require_current: bool = False,
    ) -> Verdict:
        """Drive one interactive attempt: challenge, signature, verdict.

        ``sign`` receives the challenge and returns the wallet's signature;
        it may wait on the user indefinitely and may be cancelled.  With
        ``require_current`` an expired or missing holding fails before the
        user is asked to sign.
        """
        context = {"token_id": token_id, "wallet_address": address}
        if require_current:
            try:
                rejected = await self._check_current(token_id, address)
            except Exception as e:
                rejected = _failure_for(e, context)
            if rejected is not None:
                VERIFICATION_VERDICTS.labels(outcome=rejected.outcome).inc()
                return rejected

        try:
            message = self.challenge(token_id)
        except InvalidArgument as e:
            return Verdict.failed(FailureReason.INVALID_ARGUMENT, str(e))

        try:
            signature = await sign(message)
        except Exception as e:
            # A wallet refusing to sign is a verdict; cancellation still propagates.
            failed = _failure_for(e, context)
            VERIFICATION_VERDICTS.labels(outcome=failed.outcome).inc()
            return failed
        return await self.verify(message, signature, address, token_id)

    async def _check_current(self, token_id: int, address: str) -> Verdict | None:
        if await self._ledger.is_valid(token_id, address):
            return None
        if await self._ledger.balance_of(address, token_id) == 0:
            return Verdict.failed(FailureReason.NOT_OWNER)
        return Verdict.failed(FailureReason.CERTIFICATION_EXPIRED)


def _failure_for(error: Exception, context: dict[str, object]) -> Verdict:
    if isinstance(error, InvalidArgument):
        return Verdict.failed(FailureReason.INVALID_ARGUMENT, str(error))
    if isinstance(error, CourseNotFound):
        return Verdict.failed(FailureReason.COURSE_NOT_FOUND)
    if isinstance(error, LedgerUnavailable):
        logger.warning("Ledger unavailable during verification: %s", error, extra=context)
        return Verdict.failed(FailureReason.NETWORK_ERROR)
    logger.error(
        "Unexpected error verifying ownership", exc_info=error, extra=context
    )
    return Verdict.failed(FailureReason.UNKNOWN, str(error) or None)
