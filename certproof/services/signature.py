"""Wallet signature verification.

Two kinds of wallet sign challenges:

  Key-pair wallets (EOAs) sign with secp256k1.  The signature is checked
  by recovering the signer's address from the EIP-191 ``personal_sign``
  hash of the message and comparing it, case-insensitively, with the
  claimed address.

  Smart-contract wallets have no private key.  They answer ERC-1271
  ``isValidSignature(hash, signature)`` on-chain with the magic value
  ``0x1626ba7e`` when they accept a signature.  That check needs the
  chain, so it is delegated to a ContractWalletChecker; without one
  (the in-memory ledger) contract-wallet signatures are rejected.

Malformed input is not an error here: every shape of bad signature
yields False.  Only a failure to reach the chain during the ERC-1271
check escapes, as LedgerUnavailable.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from eth_account import Account
from eth_account.messages import defunct_hash_message, encode_defunct
from eth_keys.exceptions import BadSignature
from eth_keys.exceptions import ValidationError as KeyValidationError

from certproof.core.validation import is_address, same_address

logger = logging.getLogger(__name__)

EOA_SIGNATURE_LENGTH = 65


def decode_signature(signature: str | bytes) -> bytes | None:
    """Return the raw signature bytes, or None if *signature* is not hex."""
    if isinstance(signature, (bytes, bytearray)):
        return bytes(signature)
    if not isinstance(signature, str):
        return None
    text = signature[2:] if signature[:2].lower() == "0x" else signature
    if not text or len(text) % 2:
        return None
    try:
        return bytes.fromhex(text)
    except ValueError:
        return None


def recover_signer(message: str, signature: bytes) -> str | None:
    """Recover the EOA address that produced *signature* over *message*."""
    if len(signature) != EOA_SIGNATURE_LENGTH:
        return None
    try:
        return Account.recover_message(encode_defunct(text=message), signature=signature)
    except (ValueError, TypeError, BadSignature, KeyValidationError) as e:
        logger.debug("Signature recovery failed: %s", e)
        return None


@runtime_checkable
class ContractWalletChecker(Protocol):
    async def is_valid_signature(
        self, address: str, message_hash: bytes, signature: bytes
    ) -> bool:
        """ERC-1271 check.  False when *address* has no code or rejects.

        Raises LedgerUnavailable when the chain cannot be reached.
        """
        ...


class SignatureVerifier:
    def __init__(self, contract_wallets: ContractWalletChecker | None = None) -> None:
        self._contract_wallets = contract_wallets

    @property
    def supports_contract_wallets(self) -> bool:
        return self._contract_wallets is not None

    async def verify(
        self, message: str, signature: str | bytes, claimed_address: str
    ) -> bool:
        if not isinstance(message, str) or not is_address(claimed_address):
            return False
        raw = decode_signature(signature)
        if not raw:
            return False

        recovered = recover_signer(message, raw)
        if recovered is not None and same_address(recovered, claimed_address):
            return True

        if self._contract_wallets is None:
            return False

        # Not the EOA's key; the address may be a contract wallet.
        return await self._contract_wallets.is_valid_signature(
            claimed_address, bytes(defunct_hash_message(text=message)), raw
        )
