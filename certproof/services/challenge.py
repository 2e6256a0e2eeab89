"""Challenge messages for ownership verification.

A challenge is the text a wallet signs to prove it controls an address.
It names the certificate token and the contract that minted it, so a
signature produced for one course or contract does not verify for
another, and it carries the issue time in milliseconds plus a random
nonce, so every challenge is textually unique.

The text is meant to be read by a human in a wallet's signing prompt;
``parse_challenge`` reads the same fields back so the verifier can check
the binding and the age of a submitted challenge.
"""

from __future__ import annotations

import re
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass

from certproof.core.validation import require_address, require_token_id

Clock = Callable[[], float]

DISCLAIMER = (
    "This signature will only be used to verify your ownership of this certificate."
)

_TEMPLATE = (
    "Prove ownership of certificate #{token_id} at contract {contract}\n"
    "\n"
    "Timestamp: {timestamp_ms}\n"
    "Nonce: {nonce}\n"
    "\n"
    "{disclaimer}"
)

_PATTERN = re.compile(
    r"\AProve ownership of certificate #(?P<token_id>[1-9][0-9]*) "
    r"at contract (?P<contract>0x[a-fA-F0-9]{40})\n"
    r"\n"
    r"Timestamp: (?P<timestamp_ms>[0-9]+)\n"
    r"(?:Nonce: (?P<nonce>[0-9a-f]+)\n)?"
    r"\n" + re.escape(DISCLAIMER) + r"\Z"
)


@dataclass(frozen=True, slots=True)
class ChallengeFields:
    token_id: int
    contract_address: str
    issued_at_ms: int
    nonce: str | None = None


def generate_challenge(
    token_id: int,
    contract_address: str,
    *,
    clock: Clock = time.time,
) -> str:
    """Build a fresh challenge for *token_id* at *contract_address*.

    Raises InvalidArgument for a non-positive token id or a malformed
    address.
    """
    require_token_id(token_id)
    require_address(contract_address, field="contractAddress")
    return _TEMPLATE.format(
        token_id=token_id,
        contract=contract_address,
        timestamp_ms=int(clock() * 1000),
        nonce=secrets.token_hex(8),
        disclaimer=DISCLAIMER,
    )


def parse_challenge(message: str) -> ChallengeFields | None:
    """Read the bound fields back out of a challenge, or None if *message*
    was not produced by generate_challenge (older nonce-less challenges
    are accepted)."""
    match = _PATTERN.match(message)
    if match is None:
        return None
    return ChallengeFields(
        token_id=int(match["token_id"]),
        contract_address=match["contract"],
        issued_at_ms=int(match["timestamp_ms"]),
        nonce=match["nonce"],
    )
