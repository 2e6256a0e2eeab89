"""Read access to the certification ledger.

The ledger is the deployed ERC-1155 certification contract: one token id
per course, a balance per holder, and the time of the holder's most
recent mint.  Expiry is never stored; it is always mint time plus the
course's current validity duration, and a holding is valid while the
balance is positive and the ledger's clock is before that expiry.

LedgerReader is the protocol the rest of the service codes against.
InMemoryLedger models the contract in-process (tests, local dev) and also
implements the admin write rules so fixtures can create courses and mint.
Web3LedgerReader (web3_ledger.py) reads a real deployment over JSON-RPC.

Error contract for every reader:
  - LedgerUnavailable  transport failure or timeout (retryable)
  - CourseNotFound     balance_of/get_course on an unknown token id
  - InvalidArgument    malformed address/token id, empty batch
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import replace
from typing import Protocol, runtime_checkable

from certproof.core.errors import CourseNotFound, InvalidArgument
from certproof.core.validation import ZERO_ADDRESS, require_address, require_token_id
from certproof.models.course import Course, Holding

Clock = Callable[[], float]

MAX_BATCH_MINT = 100


@runtime_checkable
class LedgerReader(Protocol):
    async def balance_of(self, holder: str, token_id: int) -> int: ...
    async def mint_timestamp(self, token_id: int, holder: str) -> int: ...
    async def expiry_timestamp(self, token_id: int, holder: str) -> int: ...
    async def is_valid(self, token_id: int, holder: str) -> bool: ...
    async def is_valid_batch(
        self, token_id: int, holders: Sequence[str]
    ) -> list[bool]: ...
    async def get_course(self, token_id: int) -> Course: ...
    async def total_courses(self) -> int: ...
    async def ping(self) -> None: ...
    async def aclose(self) -> None: ...


def require_holders(holders: Sequence[str]) -> list[str]:
    if isinstance(holders, str) or len(holders) == 0:
        raise InvalidArgument("Holders array cannot be empty")
    return [require_address(h, field="holders[]") for h in holders]


class InMemoryLedger:
    """In-process model of the certification contract.

    Holder addresses are keyed case-insensitively.  ``clock`` is the
    ledger's notion of "now" (block time on a real chain).
    """

    def __init__(self, clock: Clock = time.time) -> None:
        self._clock = clock
        self._courses: dict[int, Course] = {}
        self._codes: set[str] = set()
        self._balances: dict[tuple[int, str], int] = {}
        self._minted_at: dict[tuple[int, str], int] = {}

    def _now(self) -> int:
        return int(self._clock())

    # --- admin writes ---------------------------------------------------

    @staticmethod
    def _check_metadata(name: str, image_uri: str, validity_duration: int) -> None:
        if not name:
            raise InvalidArgument("Course name cannot be empty")
        if not image_uri:
            raise InvalidArgument("Image URI cannot be empty")
        if validity_duration <= 0:
            raise InvalidArgument("Validity duration must be greater than zero")

    def create_course(
        self,
        course_code: str,
        course_name: str,
        image_uri: str,
        validity_duration: int,
    ) -> Course:
        if not course_code:
            raise InvalidArgument("Course code cannot be empty")
        self._check_metadata(course_name, image_uri, validity_duration)
        if course_code in self._codes:
            raise InvalidArgument("Course code already exists")

        course = Course(
            token_id=len(self._courses) + 1,
            course_code=course_code,
            course_name=course_name,
            image_uri=image_uri,
            validity_duration=validity_duration,
        )
        self._courses[course.token_id] = course
        self._codes.add(course_code)
        return course

    def update_course(
        self,
        token_id: int,
        course_name: str,
        image_uri: str,
        validity_duration: int,
    ) -> Course:
        course = self._require_course(token_id)
        self._check_metadata(course_name, image_uri, validity_duration)
        updated = replace(
            course,
            course_name=course_name,
            image_uri=image_uri,
            validity_duration=validity_duration,
        )
        self._courses[token_id] = updated
        return updated

    def mint_certification(self, to: str, token_id: int) -> Holding:
        return self.batch_mint_certifications([to], token_id)[0]

    def batch_mint_certifications(
        self, recipients: Sequence[str], token_id: int
    ) -> list[Holding]:
        """Mint one token to each recipient, all or nothing.

        Re-minting to an existing holder adds to the balance and moves the
        mint timestamp forward, which extends the expiry.
        """
        if len(recipients) == 0:
            raise InvalidArgument("Recipients array cannot be empty")
        if len(recipients) > MAX_BATCH_MINT:
            raise InvalidArgument(
                f"Cannot mint to more than {MAX_BATCH_MINT} recipients at once"
            )
        course = self._require_course(token_id)
        for to in recipients:
            require_address(to, field="to")
            if to.lower() == ZERO_ADDRESS:
                raise InvalidArgument("Cannot mint to zero address")

        now = self._now()
        minted = []
        for to in recipients:
            key = (token_id, to.lower())
            self._balances[key] = self._balances.get(key, 0) + 1
            self._minted_at[key] = now
            minted.append(
                Holding(
                    token_id=token_id,
                    holder=to,
                    balance=self._balances[key],
                    mint_timestamp=now,
                    expiry_timestamp=now + course.validity_duration,
                    valid=True,
                )
            )
        return minted

    # --- reads ------------------------------------------------------------

    def _require_course(self, token_id: int) -> Course:
        require_token_id(token_id)
        course = self._courses.get(token_id)
        if course is None:
            raise CourseNotFound(token_id)
        return course

    async def get_course(self, token_id: int) -> Course:
        return self._require_course(token_id)

    async def total_courses(self) -> int:
        return len(self._courses)

    async def balance_of(self, holder: str, token_id: int) -> int:
        require_address(holder, field="holder")
        self._require_course(token_id)
        return self._balances.get((token_id, holder.lower()), 0)

    async def mint_timestamp(self, token_id: int, holder: str) -> int:
        require_token_id(token_id)
        require_address(holder, field="holder")
        return self._minted_at.get((token_id, holder.lower()), 0)

    async def expiry_timestamp(self, token_id: int, holder: str) -> int:
        minted = await self.mint_timestamp(token_id, holder)
        course = self._courses.get(token_id)
        if minted == 0 or course is None:
            return 0
        return minted + course.validity_duration

    async def is_valid(self, token_id: int, holder: str) -> bool:
        require_token_id(token_id)
        require_address(holder, field="holder")
        if self._balances.get((token_id, holder.lower()), 0) == 0:
            return False
        return self._now() < await self.expiry_timestamp(token_id, holder)

    async def is_valid_batch(self, token_id: int, holders: Sequence[str]) -> list[bool]:
        checked = require_holders(holders)
        return [await self.is_valid(token_id, h) for h in checked]

    async def ping(self) -> None:
        return None

    async def aclose(self) -> None:
        return None
