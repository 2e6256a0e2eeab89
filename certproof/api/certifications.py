"""Read-side certification endpoints.

Course metadata and holder status straight from the ledger:
- GET  /v1/courses                               every course, by token id
- GET  /v1/courses/{token_id}                    one course
- GET  /v1/courses/{token_id}/holders/{address}  one holder's status
- POST /v1/courses/{token_id}/validity           validity for many holders
- GET  /v1/holders/{address}/certifications      every course a wallet holds

Ledger errors are mapped by the app-level exception handlers in main.py
(404 unknown course, 400 malformed input, 503 ledger unreachable).
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, ConfigDict, Field

from certproof.api.dependencies import get_clock, get_ledger, get_settings
from certproof.core.config import Settings
from certproof.models.course import Course, Holding
from certproof.services.ledger import LedgerReader
from certproof.services.queries import (
    all_courses,
    all_token_ids,
    holding_for,
    scan_holdings,
)

router = APIRouter(prefix="/v1", tags=["certifications"])

TokenId = Annotated[int, Path(gt=0)]


class CourseOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token_id: int = Field(alias="tokenId")
    course_code: str = Field(alias="courseCode")
    course_name: str = Field(alias="courseName")
    image_uri: str = Field(alias="imageURI")
    validity_duration: int = Field(alias="validityDuration")
    exists: bool

    @staticmethod
    def of(course: Course) -> CourseOut:
        return CourseOut(
            token_id=course.token_id,
            course_code=course.course_code,
            course_name=course.course_name,
            image_uri=course.image_uri,
            validity_duration=course.validity_duration,
            exists=course.exists,
        )


class HoldingOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token_id: int = Field(alias="tokenId")
    holder: str
    balance: int
    mint_timestamp: int = Field(alias="mintTimestamp")
    expiry_timestamp: int = Field(alias="expiryTimestamp")
    valid: bool
    seconds_remaining: int = Field(alias="secondsRemaining")

    @staticmethod
    def of(holding: Holding, now: int) -> HoldingOut:
        remaining = holding.expiry_timestamp - now if holding.valid else 0
        return HoldingOut(
            token_id=holding.token_id,
            holder=holding.holder,
            balance=holding.balance,
            mint_timestamp=holding.mint_timestamp,
            expiry_timestamp=holding.expiry_timestamp,
            valid=holding.valid,
            seconds_remaining=max(remaining, 0),
        )


class ValidityIn(BaseModel):
    holders: list[str]


class ValidityOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token_id: int = Field(alias="tokenId")
    results: list[bool]


Ledger = Annotated[LedgerReader, Depends(get_ledger)]


@router.get("/courses", response_model=list[CourseOut])
async def list_courses(
    ledger: Ledger,
    settings: Annotated[Settings, Depends(get_settings)],
) -> list[CourseOut]:
    courses = await all_courses(ledger, max_concurrency=settings.ledger_max_concurrency)
    return [CourseOut.of(c) for c in courses]


@router.get("/courses/{token_id}", response_model=CourseOut)
async def get_course(token_id: TokenId, ledger: Ledger) -> CourseOut:
    return CourseOut.of(await ledger.get_course(token_id))


@router.get("/courses/{token_id}/holders/{address}", response_model=HoldingOut)
async def get_holding(
    token_id: TokenId,
    address: str,
    ledger: Ledger,
    clock: Annotated[Callable[[], float], Depends(get_clock)],
) -> HoldingOut:
    holding = await holding_for(ledger, token_id, address)
    return HoldingOut.of(holding, int(clock()))


@router.post("/courses/{token_id}/validity", response_model=ValidityOut)
async def check_validity(
    token_id: TokenId,
    body: ValidityIn,
    ledger: Ledger,
) -> ValidityOut:
    await ledger.get_course(token_id)
    results = await ledger.is_valid_batch(token_id, body.holders)
    return ValidityOut(token_id=token_id, results=results)


@router.get("/holders/{address}/certifications", response_model=list[HoldingOut])
async def list_holder_certifications(
    address: str,
    ledger: Ledger,
    settings: Annotated[Settings, Depends(get_settings)],
    clock: Annotated[Callable[[], float], Depends(get_clock)],
) -> list[HoldingOut]:
    holdings = await scan_holdings(
        ledger,
        address,
        await all_token_ids(ledger),
        max_concurrency=settings.ledger_max_concurrency,
    )
    now = int(clock())
    return [HoldingOut.of(h, now) for h in holdings]
