from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Course:
    """Certification category as recorded in the ledger, keyed by token id."""

    token_id: int
    course_code: str
    course_name: str
    image_uri: str
    validity_duration: int  # seconds, > 0
    exists: bool = True

    def to_dict(self) -> dict[str, object]:
        return {
            "tokenId": self.token_id,
            "courseCode": self.course_code,
            "courseName": self.course_name,
            "imageURI": self.image_uri,
            "validityDuration": self.validity_duration,
            "exists": self.exists,
        }

    @staticmethod
    def from_dict(data: dict) -> Course:
        return Course(
            token_id=int(data["tokenId"]),
            course_code=data["courseCode"],
            course_name=data["courseName"],
            image_uri=data["imageURI"],
            validity_duration=int(data["validityDuration"]),
            exists=bool(data.get("exists", True)),
        )


@dataclass(frozen=True, slots=True)
class Holding:
    """One holder's position in one course.

    expiry_timestamp is derived (mint + validity duration), never stored.
    Both timestamps are 0 when the holder never received the token.
    """

    token_id: int
    holder: str
    balance: int
    mint_timestamp: int
    expiry_timestamp: int
    valid: bool

    @property
    def owned(self) -> bool:
        return self.balance > 0
