"""Fan-out read queries over the ledger.

A dashboard asks "which certifications does this wallet hold?".  The
ledger has no reverse index, so the answer takes one balance read per
course.  Those reads fan out concurrently under a semaphore so latency
stays roughly flat as courses are added, without opening an unbounded
number of RPC requests at once.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

from certproof.core.errors import CourseNotFound
from certproof.core.validation import require_address
from certproof.models.course import Course, Holding
from certproof.services.ledger import LedgerReader


async def holding_for(ledger: LedgerReader, token_id: int, holder: str) -> Holding:
    """Full status of one holder in one course.

    Raises CourseNotFound for an unknown token id.
    """
    balance = await ledger.balance_of(holder, token_id)
    if balance == 0:
        return Holding(
            token_id=token_id,
            holder=holder,
            balance=0,
            mint_timestamp=0,
            expiry_timestamp=0,
            valid=False,
        )
    minted, expiry, valid = await asyncio.gather(
        ledger.mint_timestamp(token_id, holder),
        ledger.expiry_timestamp(token_id, holder),
        ledger.is_valid(token_id, holder),
    )
    return Holding(
        token_id=token_id,
        holder=holder,
        balance=balance,
        mint_timestamp=minted,
        expiry_timestamp=expiry,
        valid=valid,
    )


async def scan_holdings(
    ledger: LedgerReader,
    holder: str,
    token_ids: Iterable[int],
    *,
    max_concurrency: int = 8,
) -> list[Holding]:
    """Holdings with a positive balance, ordered by token id."""
    require_address(holder, field="holder")
    semaphore = asyncio.Semaphore(max_concurrency)

    async def _one(token_id: int) -> Holding:
        async with semaphore:
            return await holding_for(ledger, token_id, holder)

    results = await asyncio.gather(*(_one(t) for t in sorted(set(token_ids))))
    return [h for h in results if h.owned]


async def course_exists(ledger: LedgerReader, token_id: int) -> bool:
    try:
        await ledger.get_course(token_id)
    except CourseNotFound:
        return False
    return True


async def all_token_ids(ledger: LedgerReader) -> range:
    """Token ids are assigned sequentially from 1."""
    return range(1, await ledger.total_courses() + 1)


async def all_courses(
    ledger: LedgerReader, *, max_concurrency: int = 8
) -> list[Course]:
    semaphore = asyncio.Semaphore(max_concurrency)

    async def _one(token_id: int) -> Course:
        async with semaphore:
            return await ledger.get_course(token_id)

    return list(await asyncio.gather(*(_one(t) for t in await all_token_ids(ledger))))
