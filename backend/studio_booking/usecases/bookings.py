import logging
from datetime import date
from typing import List, Optional, Tuple

from ..domain.calendar import CalendarPolicy
from ..domain.catalog import outside_sunday_window
from ..domain.errors import NotFoundError, ValidationError
from ..domain.occupancy import Occupancy, compute_occupancy
from ..domain.repositories import CatalogCache, OccupancyRepository, SlotTemplateRepository
from ..domain.services import SlotDaySnapshot, validate_admission
from ..domain.validation import validate_booking_guests, validate_contact
from ..models import OccupancyKind, OccupancyRecord, SlotTemplate

logger = logging.getLogger(__name__)


async def admit_booking(
    slot_repo: SlotTemplateRepository,
    occ_repo: OccupancyRepository,
    *,
    slot_id: int,
    day: date,
    guests: int,
    name: str,
    email: str,
    phone: str,
    policy: CalendarPolicy,
    cache: Optional[CatalogCache] = None,
) -> Tuple[OccupancyRecord, SlotTemplate, Occupancy]:
    """Validate a customer request and admit it against a locked, freshly read slot-day.

    Must run inside a transaction: the slot-day lock is held until commit so no
    concurrent admission can observe the pre-insert occupancy.
    """
    contact = validate_contact(name, email, phone)
    validate_booking_guests(guests)
    check = policy.require_available(day)

    slot = await slot_repo.get(slot_id)
    if slot is None or not slot.is_active:
        raise NotFoundError("Time slot not found")
    if slot.day_of_week != check.day_of_week:
        raise ValidationError(f"This time slot is not offered on {check.day_name}s", field="slot_id")
    if outside_sunday_window(slot):
        raise ValidationError("This time slot is not available", field="slot_id")

    await occ_repo.lock_slot_day(slot.id, day)
    records = await occ_repo.list_for_slot_day(slot.id, day)
    current = compute_occupancy(slot.max_capacity, records)
    snapshot = SlotDaySnapshot(slot_id=slot.id, capacity=slot.max_capacity, committed=current.committed)
    validate_admission(snapshot, guests=guests)

    booking = await occ_repo.create_booking(slot_id=slot.id, day=day, guests=guests, contact=contact)
    if cache is not None:
        cache.invalidate_slot_day(slot.id, day)
    logger.info("booking %s admitted: slot=%s date=%s guests=%s", booking.id, slot.id, day, guests)
    return booking, slot, compute_occupancy(slot.max_capacity, [*records, booking])


async def cancel_booking(
    occ_repo: OccupancyRepository,
    *,
    booking_id: int,
    cache: Optional[CatalogCache] = None,
) -> OccupancyRecord:
    booking = await occ_repo.get(booking_id)
    if booking is None or booking.kind != OccupancyKind.BOOKING:
        raise NotFoundError("Booking not found")
    await occ_repo.lock_slot_day(booking.slot_id, booking.date)
    deleted = await occ_repo.delete_ids([booking.id])
    if deleted == 0:
        raise NotFoundError("Booking not found")
    if cache is not None:
        cache.invalidate_slot_day(booking.slot_id, booking.date)
    logger.info("booking %s cancelled: slot=%s date=%s", booking.id, booking.slot_id, booking.date)
    return booking


async def list_bookings(occ_repo: OccupancyRepository, *, day: date) -> List[OccupancyRecord]:
    return await occ_repo.list_for_date(day, OccupancyKind.BOOKING)


async def get_booking(occ_repo: OccupancyRepository, *, booking_id: int) -> OccupancyRecord:
    booking = await occ_repo.get(booking_id)
    if booking is None or booking.kind != OccupancyKind.BOOKING:
        raise NotFoundError("Booking not found")
    return booking


async def find_bookings_by_email(occ_repo: OccupancyRepository, *, email: str) -> List[OccupancyRecord]:
    """Bookings made with ``email``, newest date first, then most recently created."""
    owner_id = email.strip().lower()
    if not owner_id:
        raise ValidationError("Email is required", field="email")
    return await occ_repo.list_bookings_by_owner(owner_id)
