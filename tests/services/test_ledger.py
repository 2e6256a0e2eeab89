"""Tests for the in-memory certification ledger."""

from __future__ import annotations

import asyncio

import pytest
from eth_account.signers.local import LocalAccount

from certproof.core.errors import CourseNotFound, InvalidArgument
from certproof.core.validation import ZERO_ADDRESS
from certproof.models.course import Course
from certproof.services.ledger import MAX_BATCH_MINT, InMemoryLedger, LedgerReader
from tests.conftest import ONE_YEAR, FakeClock

OTHER = "0x" + "12" * 20


def test_in_memory_ledger_satisfies_reader_protocol(ledger: InMemoryLedger) -> None:
    assert isinstance(ledger, LedgerReader)


# --- courses ---------------------------------------------------------------


def test_course_ids_are_sequential_from_one(ledger: InMemoryLedger) -> None:
    first = ledger.create_course("A-1", "A", "ipfs://a", 10)
    second = ledger.create_course("B-1", "B", "ipfs://b", 10)
    assert (first.token_id, second.token_id) == (1, 2)
    assert asyncio.run(ledger.total_courses()) == 2


def test_get_course_returns_metadata(ledger: InMemoryLedger, course: Course) -> None:
    fetched = asyncio.run(ledger.get_course(course.token_id))
    assert fetched.course_code == "REACT-101"
    assert fetched.validity_duration == ONE_YEAR
    assert fetched.exists


def test_get_unknown_course_raises(ledger: InMemoryLedger) -> None:
    with pytest.raises(CourseNotFound) as excinfo:
        asyncio.run(ledger.get_course(42))
    assert excinfo.value.token_id == 42


@pytest.mark.parametrize(
    ("code", "name", "image", "duration", "error"),
    [
        ("", "Name", "ipfs://x", 10, "Course code cannot be empty"),
        ("X-1", "", "ipfs://x", 10, "Course name cannot be empty"),
        ("X-1", "Name", "", 10, "Image URI cannot be empty"),
        ("X-1", "Name", "ipfs://x", 0, "Validity duration must be greater than zero"),
    ],
)
def test_create_course_rejects_incomplete_metadata(
    ledger: InMemoryLedger, code: str, name: str, image: str, duration: int, error: str
) -> None:
    with pytest.raises(InvalidArgument, match=error):
        ledger.create_course(code, name, image, duration)


def test_duplicate_course_code_is_rejected(ledger: InMemoryLedger, course: Course) -> None:
    with pytest.raises(InvalidArgument, match="Course code already exists"):
        ledger.create_course(course.course_code, "Again", "ipfs://again", 10)


def test_update_course_keeps_code(ledger: InMemoryLedger, course: Course) -> None:
    updated = ledger.update_course(course.token_id, "Renamed", "ipfs://new", 100)
    assert updated.course_code == course.course_code
    assert updated.course_name == "Renamed"
    assert asyncio.run(ledger.get_course(course.token_id)).validity_duration == 100


def test_update_unknown_course_raises(ledger: InMemoryLedger) -> None:
    with pytest.raises(CourseNotFound):
        ledger.update_course(9, "Name", "ipfs://x", 10)


# --- minting ---------------------------------------------------------------


def test_mint_sets_balance_and_timestamps(
    ledger: InMemoryLedger, course: Course, holder: LocalAccount, clock: FakeClock
) -> None:
    holding = ledger.mint_certification(holder.address, course.token_id)
    assert holding.balance == 1
    assert holding.mint_timestamp == int(clock.now)
    assert holding.expiry_timestamp == int(clock.now) + ONE_YEAR
    assert asyncio.run(ledger.balance_of(holder.address, course.token_id)) == 1


def test_balance_lookup_ignores_address_case(
    ledger: InMemoryLedger, minted: Course, holder: LocalAccount
) -> None:
    assert asyncio.run(ledger.balance_of(holder.address.lower(), minted.token_id)) == 1


def test_remint_adds_balance_and_moves_mint_time(
    ledger: InMemoryLedger, minted: Course, holder: LocalAccount, clock: FakeClock
) -> None:
    clock.advance(1000)
    holding = ledger.mint_certification(holder.address, minted.token_id)
    assert holding.balance == 2
    assert asyncio.run(ledger.mint_timestamp(minted.token_id, holder.address)) == int(
        clock.now
    )


def test_batch_mint_is_all_or_nothing(
    ledger: InMemoryLedger, course: Course, holder: LocalAccount
) -> None:
    with pytest.raises(InvalidArgument, match="Cannot mint to zero address"):
        ledger.batch_mint_certifications([holder.address, ZERO_ADDRESS], course.token_id)
    assert asyncio.run(ledger.balance_of(holder.address, course.token_id)) == 0


def test_batch_mint_limits(ledger: InMemoryLedger, course: Course) -> None:
    with pytest.raises(InvalidArgument, match="Recipients array cannot be empty"):
        ledger.batch_mint_certifications([], course.token_id)
    with pytest.raises(InvalidArgument, match="more than 100 recipients"):
        ledger.batch_mint_certifications([OTHER] * (MAX_BATCH_MINT + 1), course.token_id)


def test_mint_to_unknown_course_raises(ledger: InMemoryLedger, holder: LocalAccount) -> None:
    with pytest.raises(CourseNotFound):
        ledger.mint_certification(holder.address, 3)


# --- reads -----------------------------------------------------------------


def test_never_minted_holder_reads_zero(ledger: InMemoryLedger, course: Course) -> None:
    assert asyncio.run(ledger.balance_of(OTHER, course.token_id)) == 0
    assert asyncio.run(ledger.mint_timestamp(course.token_id, OTHER)) == 0
    assert asyncio.run(ledger.expiry_timestamp(course.token_id, OTHER)) == 0
    assert asyncio.run(ledger.is_valid(course.token_id, OTHER)) is False


def test_balance_of_unknown_course_raises(ledger: InMemoryLedger) -> None:
    with pytest.raises(CourseNotFound):
        asyncio.run(ledger.balance_of(OTHER, 1))


@pytest.mark.parametrize("address", ["0x1234", "", "not an address"])
def test_balance_of_rejects_malformed_address(
    ledger: InMemoryLedger, course: Course, address: str
) -> None:
    with pytest.raises(InvalidArgument, match="holder"):
        asyncio.run(ledger.balance_of(address, course.token_id))


def test_validity_window_is_half_open() -> None:
    clock = FakeClock(1000)
    ledger = InMemoryLedger(clock=clock)
    course = ledger.create_course("Y-1", "Year", "ipfs://y", ONE_YEAR)
    ledger.mint_certification(OTHER, course.token_id)

    assert asyncio.run(ledger.expiry_timestamp(course.token_id, OTHER)) == 31_537_000
    assert asyncio.run(ledger.is_valid(course.token_id, OTHER)) is True

    clock.now = 31_536_999
    assert asyncio.run(ledger.is_valid(course.token_id, OTHER)) is True

    clock.now = 31_537_000
    assert asyncio.run(ledger.is_valid(course.token_id, OTHER)) is False
    # Expired holdings are still owned.
    assert asyncio.run(ledger.balance_of(OTHER, course.token_id)) == 1


def test_expiry_follows_current_course_duration(
    ledger: InMemoryLedger, minted: Course, holder: LocalAccount, clock: FakeClock
) -> None:
    ledger.update_course(minted.token_id, minted.course_name, minted.image_uri, 60)
    expiry = asyncio.run(ledger.expiry_timestamp(minted.token_id, holder.address))
    assert expiry == int(clock.now) + 60


def test_is_valid_batch_preserves_order(
    ledger: InMemoryLedger, minted: Course, holder: LocalAccount
) -> None:
    results = asyncio.run(
        ledger.is_valid_batch(minted.token_id, [OTHER, holder.address, OTHER])
    )
    assert results == [False, True, False]


def test_is_valid_batch_rejects_empty_list(ledger: InMemoryLedger, course: Course) -> None:
    with pytest.raises(InvalidArgument, match="Holders array cannot be empty"):
        asyncio.run(ledger.is_valid_batch(course.token_id, []))
