"""Typed errors raised by the ledger, challenge and signature layers.

Callers branch on the exception class, never on the message text.  The
ownership engine turns each of these into a ``FailureReason``; the HTTP
layer turns the ones that escape a route into a status code.
"""

from __future__ import annotations


class CertProofError(Exception):
    """Base class for every domain error raised by certproof."""


class InvalidArgument(CertProofError):
    """Malformed input rejected before any ledger call.  Not retryable."""


class CourseNotFound(CertProofError):
    """The token id is unknown to the ledger.  Not retryable."""

    def __init__(self, token_id: int) -> None:
        super().__init__(f"course {token_id} does not exist")
        self.token_id = token_id


class LedgerUnavailable(CertProofError):
    """The ledger could not be reached or timed out.  Safe to retry."""
