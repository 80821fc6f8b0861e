"""Field-level validation for booking and block requests."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from .errors import ValidationError

MAX_GUESTS_PER_BOOKING = 6
MIN_GUESTS_PER_SLOT_BLOCK = 1
MAX_GUESTS_PER_SLOT_BLOCK = 20
MAX_SLOTS_PER_BLOCK_REQUEST = 10

_EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
_PHONE_RE = re.compile(r"\+?[\d\s\-()]+")
_REASON_RE = re.compile(r"[a-zA-ZáéíóúÁÉÍÓÚñÑüÜ0-9\s.,;:!?()\-]+")


@dataclass(frozen=True)
class CustomerContact:
    name: str
    email: str
    phone: str

    @property
    def owner_id(self) -> str:
        return self.email.lower()


def validate_contact(name: str | None, email: str | None, phone: str | None) -> CustomerContact:
    name = (name or "").strip()
    if len(name) < 2:
        raise ValidationError("Name must be at least 2 characters long", field="name")
    if len(name) > 100:
        raise ValidationError("Name cannot exceed 100 characters", field="name")

    email = (email or "").strip()
    if not _EMAIL_RE.fullmatch(email):
        raise ValidationError("Email address is not valid", field="email")
    if len(email) > 255:
        raise ValidationError("Email address cannot exceed 255 characters", field="email")

    phone = (phone or "").strip()
    if not _PHONE_RE.fullmatch(phone):
        raise ValidationError("Phone number is not valid", field="phone")
    if len(phone) > 20:
        raise ValidationError("Phone number cannot exceed 20 characters", field="phone")

    return CustomerContact(name=name, email=email, phone=phone)


def validate_booking_guests(guests: int) -> int:
    if isinstance(guests, bool) or not isinstance(guests, int):
        raise ValidationError("Guests must be a whole number", field="guests")
    if guests < 1:
        raise ValidationError("At least 1 guest is required", field="guests")
    if guests > MAX_GUESTS_PER_BOOKING:
        raise ValidationError(
            f"A booking cannot exceed {MAX_GUESTS_PER_BOOKING} guests", field="guests"
        )
    return guests


def validate_block_reason(reason: str | None) -> str:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A block reason is required", field="reason")
    if len(reason) < 5:
        raise ValidationError("The reason must be at least 5 characters long", field="reason")
    if len(reason) > 200:
        raise ValidationError("The reason cannot exceed 200 characters", field="reason")
    if not _REASON_RE.fullmatch(reason):
        raise ValidationError("The reason contains invalid characters", field="reason")
    return reason


def validate_guests_per_slot(value: int | None) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("Guests per slot must be a whole number", field="guests_per_slot")
    if not MIN_GUESTS_PER_SLOT_BLOCK <= value <= MAX_GUESTS_PER_SLOT_BLOCK:
        raise ValidationError(
            f"Guests per slot must be between {MIN_GUESTS_PER_SLOT_BLOCK} and {MAX_GUESTS_PER_SLOT_BLOCK}",
            field="guests_per_slot",
        )
    return value


def validate_slot_selection(slot_ids: Iterable[int]) -> list[int]:
    unique = sorted(set(slot_ids))
    if not unique:
        raise ValidationError("Select at least one time slot", field="slot_ids")
    if len(unique) > MAX_SLOTS_PER_BLOCK_REQUEST:
        raise ValidationError(
            f"No more than {MAX_SLOTS_PER_BLOCK_REQUEST} time slots can be blocked at once",
            field="slot_ids",
        )
    return unique
