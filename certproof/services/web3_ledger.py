"""JSON-RPC implementation of LedgerReader using web3.py.

Every chain call goes through ``_timed``: it bounds the call with the
configured timeout, records latency and outcome in Prometheus, and turns
transport failures into LedgerUnavailable.  A revert is an answer from
the chain, not a transport failure, so ContractLogicError passes through
for the caller to interpret.  Empty output from a view call
(BadFunctionCallOutput) means nothing is deployed at the configured
address; the reader reports it as LedgerUnavailable.

``is_valid`` and ``is_valid_batch`` are evaluated by the contract itself,
so "now" is the block time of the node that answers, not this host's
clock.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Sequence
from typing import TypeVar

import aiohttp
from web3 import AsyncWeb3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError, Web3Exception

from certproof.core.config import Settings
from certproof.core.errors import CourseNotFound, LedgerUnavailable
from certproof.core.metrics import LEDGER_CALL_DURATION, LEDGER_CALLS
from certproof.core.validation import require_address, require_token_id
from certproof.models.course import Course
from certproof.services.abi import (
    ERC1271_ABI,
    ERC1271_MAGIC_VALUE,
    TRAINING_CERTIFICATION_ABI,
)
from certproof.services.cache import CourseCache
from certproof.services.ledger import require_holders

logger = logging.getLogger(__name__)

T = TypeVar("T")


def create_web3(settings: Settings) -> AsyncWeb3:
    return AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(settings.rpc_url))


async def _timed(operation: str, call: Awaitable[T], timeout: float) -> T:
    start = time.monotonic()
    try:
        result = await asyncio.wait_for(call, timeout=timeout)
    except (ContractLogicError, BadFunctionCallOutput):
        LEDGER_CALLS.labels(operation=operation, result="reverted").inc()
        raise
    except TimeoutError:
        LEDGER_CALLS.labels(operation=operation, result="unavailable").inc()
        logger.warning(
            "Ledger call timed out after %.1fs", timeout, extra={"operation": operation}
        )
        raise LedgerUnavailable(f"{operation} timed out after {timeout}s") from None
    except (aiohttp.ClientError, Web3Exception, OSError) as e:
        LEDGER_CALLS.labels(operation=operation, result="unavailable").inc()
        logger.warning("Ledger call failed: %s", e, extra={"operation": operation})
        raise LedgerUnavailable(f"{operation} failed: {e}") from e
    finally:
        LEDGER_CALL_DURATION.labels(operation=operation).observe(
            time.monotonic() - start
        )
    LEDGER_CALLS.labels(operation=operation, result="ok").inc()
    return result


class Web3LedgerReader:
    """Satisfies the LedgerReader protocol against a deployed contract."""

    def __init__(
        self,
        w3: AsyncWeb3,
        contract_address: str,
        *,
        cache: CourseCache,
        timeout_seconds: float,
        cache_ttl_seconds: int,
        expected_chain_id: int | None = None,
    ) -> None:
        self._w3 = w3
        self._address = AsyncWeb3.to_checksum_address(contract_address)
        self._contract = w3.eth.contract(
            address=self._address,
            abi=TRAINING_CERTIFICATION_ABI,
        )
        self._cache = cache
        self._timeout = timeout_seconds
        self._cache_ttl = cache_ttl_seconds
        self._expected_chain_id = expected_chain_id

    def _holder(self, holder: str) -> str:
        return AsyncWeb3.to_checksum_address(require_address(holder, field="holder"))

    async def _read(self, operation: str, call: Awaitable[T]) -> T:
        try:
            return await _timed(operation, call, self._timeout)
        except BadFunctionCallOutput as e:
            # Empty output from a view call: no contract deployed at the address.
            logger.error(
                "No certification contract answering at %s",
                self._address,
                extra={"operation": operation},
            )
            raise LedgerUnavailable(
                f"{operation}: no certification contract at {self._address}"
            ) from e

    async def get_course(self, token_id: int) -> Course:
        require_token_id(token_id)
        cached = await self._cache.get(token_id)
        if cached is not None:
            return cached

        try:
            raw = await self._read(
                "getCourse",
                self._contract.functions.getCourse(token_id).call(),
            )
        except ContractLogicError:
            raise CourseNotFound(token_id) from None

        code, name, image_uri, duration, exists = raw
        if not exists:
            raise CourseNotFound(token_id)
        course = Course(
            token_id=token_id,
            course_code=code,
            course_name=name,
            image_uri=image_uri,
            validity_duration=int(duration),
        )
        await self._cache.put(course, self._cache_ttl)
        return course

    async def total_courses(self) -> int:
        return int(
            await self._read(
                "getTotalCourses",
                self._contract.functions.getTotalCourses().call(),
            )
        )

    async def balance_of(self, holder: str, token_id: int) -> int:
        # ERC-1155 balanceOf answers 0 for unknown ids, so existence is
        # checked separately (usually a cache hit).
        account = self._holder(holder)
        await self.get_course(token_id)
        return int(
            await self._read(
                "balanceOf",
                self._contract.functions.balanceOf(account, token_id).call(),
            )
        )

    async def mint_timestamp(self, token_id: int, holder: str) -> int:
        require_token_id(token_id)
        return int(
            await self._read(
                "getMintTimestamp",
                self._contract.functions.getMintTimestamp(
                    token_id, self._holder(holder)
                ).call(),
            )
        )

    async def expiry_timestamp(self, token_id: int, holder: str) -> int:
        require_token_id(token_id)
        return int(
            await self._read(
                "getExpiryTimestamp",
                self._contract.functions.getExpiryTimestamp(
                    token_id, self._holder(holder)
                ).call(),
            )
        )

    async def is_valid(self, token_id: int, holder: str) -> bool:
        require_token_id(token_id)
        return bool(
            await self._read(
                "isValid",
                self._contract.functions.isValid(token_id, self._holder(holder)).call(),
            )
        )

    async def is_valid_batch(self, token_id: int, holders: Sequence[str]) -> list[bool]:
        require_token_id(token_id)
        accounts = [AsyncWeb3.to_checksum_address(h) for h in require_holders(holders)]
        results = await self._read(
            "isValidBatch",
            self._contract.functions.isValidBatch(token_id, accounts).call(),
        )
        if len(results) != len(accounts):
            raise LedgerUnavailable(
                f"isValidBatch returned {len(results)} results for {len(accounts)} holders"
            )
        return [bool(r) for r in results]

    async def chain_id(self) -> int:
        return int(await _timed("chainId", self._w3.eth.chain_id, self._timeout))

    async def ping(self) -> None:
        chain = await self.chain_id()
        if self._expected_chain_id is not None and chain != self._expected_chain_id:
            logger.error(
                "RPC endpoint is on chain %s, expected %s", chain, self._expected_chain_id
            )
            raise LedgerUnavailable(
                f"RPC endpoint is on chain {chain}, expected {self._expected_chain_id}"
            )
        # Fails with LedgerUnavailable when nothing is deployed at the address.
        await self.total_courses()

    async def aclose(self) -> None:
        await self._w3.provider.disconnect()


class Web3ContractWalletChecker:
    """ERC-1271 signature check for smart-contract wallets."""

    def __init__(self, w3: AsyncWeb3, *, timeout_seconds: float) -> None:
        self._w3 = w3
        self._timeout = timeout_seconds

    async def is_valid_signature(
        self, address: str, message_hash: bytes, signature: bytes
    ) -> bool:
        account = AsyncWeb3.to_checksum_address(address)
        code = await _timed("getCode", self._w3.eth.get_code(account), self._timeout)
        if not code:
            return False

        wallet = self._w3.eth.contract(address=account, abi=ERC1271_ABI)
        try:
            magic = await _timed(
                "isValidSignature",
                wallet.functions.isValidSignature(message_hash, signature).call(),
                self._timeout,
            )
        except (ContractLogicError, BadFunctionCallOutput):
            # Reverting or not implementing ERC-1271 both mean "not accepted".
            return False
        return bytes(magic) == ERC1271_MAGIC_VALUE
