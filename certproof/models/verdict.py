from __future__ import annotations

import enum
from dataclasses import dataclass


class VerificationState(enum.Enum):
    IDLE = "idle"
    VERIFYING = "verifying"
    VERIFIED = "verified"
    FAILED = "failed"


class FailureReason(enum.Enum):
    """Why a verification attempt failed.

    Each reason carries the message shown to the user and the HTTP status
    the verify endpoint answers with.  INVALID_ARGUMENT and UNKNOWN show
    the detail of the underlying failure instead of a fixed message.
    """

    INVALID_SIGNATURE = ("invalid_signature", "Invalid signature", 401)
    NOT_OWNER = ("not_owner", "You don't own this certificate", 403)
    NETWORK_ERROR = ("network_error", "Network error. Please try again.", 503)
    COURSE_NOT_FOUND = ("course_not_found", "Certificate course not found", 404)
    INVALID_ARGUMENT = ("invalid_argument", "Invalid request", 400)
    CHALLENGE_EXPIRED = (
        "challenge_expired",
        "Challenge expired. Please sign a new message.",
        401,
    )
    CERTIFICATION_EXPIRED = (
        "certification_expired",
        "This certificate has expired",
        403,
    )
    UNKNOWN = ("unknown", "Failed to verify ownership", 500)

    def __init__(self, code: str, message: str, http_status: int) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status

    @property
    def retryable(self) -> bool:
        return self is FailureReason.NETWORK_ERROR


@dataclass(frozen=True, slots=True)
class Verdict:
    """Terminal result of one verification attempt."""

    state: VerificationState
    address: str | None = None
    reason: FailureReason | None = None
    detail: str | None = None

    @staticmethod
    def verified(address: str) -> Verdict:
        return Verdict(state=VerificationState.VERIFIED, address=address)

    @staticmethod
    def failed(reason: FailureReason, detail: str | None = None) -> Verdict:
        return Verdict(state=VerificationState.FAILED, reason=reason, detail=detail)

    @property
    def success(self) -> bool:
        return self.state is VerificationState.VERIFIED

    @property
    def outcome(self) -> str:
        if self.reason is None:
            return "verified"
        return self.reason.code

    @property
    def error(self) -> str | None:
        if self.reason is None:
            return None
        if self.reason in (FailureReason.INVALID_ARGUMENT, FailureReason.UNKNOWN):
            return self.detail or self.reason.message
        return self.reason.message

    @property
    def http_status(self) -> int:
        return 200 if self.reason is None else self.reason.http_status

    def to_dict(self) -> dict[str, object]:
        if self.success:
            return {"success": True, "address": self.address}
        return {"success": False, "error": self.error}
