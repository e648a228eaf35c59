"""Slot allocation state machine.

An identity is either unbooked or holds exactly one slot; both states are read
from the store rather than kept here. All mutation goes through the store's two
atomic primitives, ``claim_if_free`` and ``release_by_occupant``. ``reschedule``
chains them and is therefore only step-wise atomic: if the new claim loses a
race after the old slot was released, the identity ends up unbooked and the
result says so.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from src.db.sqlite_client import (
    Slot,
    claim_if_free,
    find_by_occupant,
    get_slot,
    list_free,
    release_by_occupant,
)

logger = logging.getLogger(__name__)


class BookOutcome(StrEnum):
    CONFIRMED = "confirmed"
    SLOT_TAKEN = "slot_taken"
    SLOT_UNKNOWN = "slot_unknown"
    ALREADY_BOOKED = "already_booked"


class RescheduleOutcome(StrEnum):
    RESCHEDULED = "rescheduled"
    NO_EXISTING_BOOKING = "no_existing_booking"
    NEW_SLOT_UNKNOWN = "new_slot_unknown"
    RELEASE_FAILED = "release_failed"
    NEW_SLOT_TAKEN = "new_slot_taken"


@dataclass(frozen=True)
class BookingResult:
    outcome: BookOutcome
    slot: Slot | None = None


@dataclass(frozen=True)
class RescheduleResult:
    """Outcome of a reschedule.

    ``previous`` is the slot held before the call. With ``NEW_SLOT_TAKEN`` it
    has already been released, so the caller must tell the user to book again.
    """

    outcome: RescheduleOutcome
    slot: Slot | None = None
    previous: Slot | None = None


def list_available(conn: Any, date: str) -> list[str]:
    return list_free(conn, date)


def book(conn: Any, phone: str, date: str, time: str) -> BookingResult:
    """Claim ``(date, time)`` for ``phone``.

    Routing between booking and rescheduling is the caller's concern, but the
    store refuses a second slot for one phone, so a phone that already holds a
    slot gets ``ALREADY_BOOKED`` with that slot. A failed claim changes nothing;
    follow-up reads tell the failure cases apart.
    """
    if claim_if_free(conn, date, time, phone):
        logger.info("Booked %s %s for %s", date, time, phone)
        return BookingResult(BookOutcome.CONFIRMED, Slot(date=date, time=time, phone=phone))
    if get_slot(conn, date, time) is None:
        return BookingResult(BookOutcome.SLOT_UNKNOWN)
    held = find_by_occupant(conn, phone)
    if held is not None:
        return BookingResult(BookOutcome.ALREADY_BOOKED, held)
    return BookingResult(BookOutcome.SLOT_TAKEN)


def reschedule(conn: Any, phone: str, new_date: str, new_time: str) -> RescheduleResult:
    current = find_by_occupant(conn, phone)
    if current is None:
        return RescheduleResult(RescheduleOutcome.NO_EXISTING_BOOKING)

    if get_slot(conn, new_date, new_time) is None:
        return RescheduleResult(RescheduleOutcome.NEW_SLOT_UNKNOWN, previous=current)

    if release_by_occupant(conn, phone) == 0:
        logger.warning("Release of %s %s for %s touched no rows", current.date, current.time, phone)
        return RescheduleResult(RescheduleOutcome.RELEASE_FAILED, previous=current)

    if not claim_if_free(conn, new_date, new_time, phone):
        logger.warning(
            "%s released %s %s but lost %s %s; now unbooked",
            phone,
            current.date,
            current.time,
            new_date,
            new_time,
        )
        return RescheduleResult(RescheduleOutcome.NEW_SLOT_TAKEN, previous=current)

    logger.info(
        "Rescheduled %s from %s %s to %s %s", phone, current.date, current.time, new_date, new_time
    )
    return RescheduleResult(
        RescheduleOutcome.RESCHEDULED,
        slot=Slot(date=new_date, time=new_time, phone=phone),
        previous=current,
    )
