"""Ownership verification endpoints.

  POST /verify/challenge  → a fresh challenge for the wallet to sign
  POST /verify/ownership  → verdict for (message, signature, address, tokenId)

The ownership endpoint answers with a tagged body,
``{"success": true, "address": ...}`` or ``{"success": false, "error": ...}``,
and signals the failure category through the status code (401 bad or
stale signature, 403 not the owner, 404 unknown course, 400 malformed
input, 503 ledger unreachable).  Field values are checked by the
engine, so a malformed address, message or signature comes back in that
same tagged shape.  A missing field or a non-integer tokenId fails
request parsing first and gets FastAPI's 422 validation error instead.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from certproof.api.dependencies import get_engine
from certproof.core.errors import InvalidArgument
from certproof.services.ownership import OwnershipDecisionEngine

router = APIRouter(prefix="/verify", tags=["verify"])


class ChallengeIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token_id: int = Field(alias="tokenId")
    contract_address: str | None = Field(default=None, alias="contractAddress")


class ChallengeOut(BaseModel):
    message: str


class OwnershipIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    signature: str
    address: str
    token_id: int = Field(alias="tokenId")


class OwnershipOut(BaseModel):
    success: bool
    address: str | None = None
    error: str | None = None


@router.post("/challenge", response_model=ChallengeOut)
def create_challenge(
    body: ChallengeIn,
    engine: Annotated[OwnershipDecisionEngine, Depends(get_engine)],
) -> ChallengeOut:
    try:
        message = engine.challenge(body.token_id, body.contract_address)
    except InvalidArgument as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    return ChallengeOut(message=message)


@router.post(
    "/ownership",
    response_model=OwnershipOut,
    responses={
        401: {"model": OwnershipOut},
        403: {"model": OwnershipOut},
        404: {"model": OwnershipOut},
        503: {"model": OwnershipOut},
    },
)
async def verify_ownership(
    body: OwnershipIn,
    engine: Annotated[OwnershipDecisionEngine, Depends(get_engine)],
) -> JSONResponse:
    verdict = await engine.verify(body.message, body.signature, body.address, body.token_id)
    return JSONResponse(status_code=verdict.http_status, content=verdict.to_dict())
