"""Logical blocks: chunked admin-block rows treated as one aggregate."""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Mapping, Sequence

from ..models import PER_ROW_CAP, OccupancyKind, OccupancyRecord, SlotTemplate
from .errors import NotFoundError

FULL_DAY_LABEL = "Día completo - Bloqueo"
SLOT_LABEL = "Bloqueo"
FULL_DAY_SLOT = "all"

_CHUNK_SUFFIX_RE = re.compile(r"\s*\((?:Día completo - )?Bloqueo \d+/\d+\)$")


def split_into_chunks(total: int, per_row_cap: int = PER_ROW_CAP) -> list[int]:
    """Split ``total`` guests into row-sized chunks, largest first."""
    if total < 1:
        raise ValueError("total must be >= 1")
    if per_row_cap < 1:
        raise ValueError("per_row_cap must be >= 1")
    full, rest = divmod(total, per_row_cap)
    return [per_row_cap] * full + ([rest] if rest else [])


def chunk_reason(reason: str, index: int, count: int, *, full_day: bool) -> str:
    label = FULL_DAY_LABEL if full_day else SLOT_LABEL
    return f"{reason} ({label} {index}/{count})"


def base_reason(reason: str | None) -> str:
    return _CHUNK_SUFFIX_RE.sub("", reason or "")


@dataclass(frozen=True)
class LogicalBlockKey:
    """Grouping key of a logical block: owner + date (+ slot unless full day)."""

    date: date
    owner_id: str
    slot_id: int | None = None

    @property
    def is_full_day(self) -> bool:
        return self.slot_id is None

    def encode(self) -> str:
        slot = FULL_DAY_SLOT if self.slot_id is None else str(self.slot_id)
        return f"{self.date.isoformat()}:{slot}:{self.owner_id}"

    @classmethod
    def decode(cls, value: str) -> "LogicalBlockKey":
        parts = value.split(":", 2)
        if len(parts) != 3 or not parts[2]:
            raise NotFoundError(f"unknown block: {value}")
        raw_date, raw_slot, owner_id = parts
        try:
            day = date.fromisoformat(raw_date)
            slot_id = None if raw_slot == FULL_DAY_SLOT else int(raw_slot)
        except ValueError as exc:
            raise NotFoundError(f"unknown block: {value}") from exc
        return cls(date=day, owner_id=owner_id, slot_id=slot_id)

    def matches(self, record: OccupancyRecord) -> bool:
        return (
            record.kind == OccupancyKind.ADMIN_BLOCK
            and record.date == self.date
            and record.owner_id == self.owner_id
            and (self.slot_id is None or record.slot_id == self.slot_id)
        )


@dataclass(frozen=True)
class BlockSurvey:
    date: date
    admin_id: str
    rows_by_admin: Mapping[str, Sequence[OccupancyRecord]]
    blocked_slot_ids: frozenset[int]
    can_block_full_day: bool

    @property
    def has_blocks(self) -> bool:
        return bool(self.rows_by_admin)

    @property
    def other_admins(self) -> list[str]:
        return sorted(owner for owner in self.rows_by_admin if owner != self.admin_id)

    def slots_blocked_by(self, owner_id: str) -> set[int]:
        return {r.slot_id for r in self.rows_by_admin.get(owner_id, ())}

    def slot_owners(self) -> dict[int, set[str]]:
        owners: dict[int, set[str]] = defaultdict(set)
        for owner_id, rows in self.rows_by_admin.items():
            for row in rows:
                owners[row.slot_id].add(owner_id)
        return owners


def survey(day: date, admin_id: str, block_rows: Iterable[OccupancyRecord]) -> BlockSurvey:
    rows_by_admin: dict[str, list[OccupancyRecord]] = defaultdict(list)
    for row in block_rows:
        if row.kind != OccupancyKind.ADMIN_BLOCK or row.date != day:
            continue
        rows_by_admin[row.owner_id].append(row)
    blocked = frozenset(r.slot_id for rows in rows_by_admin.values() for r in rows)
    # A new full-day block is only allowed when nobody else holds a block that day.
    can_block_full_day = all(owner == admin_id for owner in rows_by_admin)
    return BlockSurvey(
        date=day,
        admin_id=admin_id,
        rows_by_admin=dict(rows_by_admin),
        blocked_slot_ids=blocked,
        can_block_full_day=can_block_full_day,
    )


@dataclass(frozen=True)
class FullDayStatus:
    date: date
    is_full_day: bool
    blocked_slot_ids: tuple[int, ...]
    total_active_slots: int
    blocked_by_admin: str | None


def detect_full_day(
    day: date, active_slots: Sequence[SlotTemplate], block_rows: Iterable[OccupancyRecord]
) -> FullDayStatus:
    rows = [r for r in block_rows if r.kind == OccupancyKind.ADMIN_BLOCK and r.date == day]
    active_ids = {s.id for s in active_slots}
    blocked_ids = {r.slot_id for r in rows} & active_ids
    owners = {r.owner_id for r in rows}
    return FullDayStatus(
        date=day,
        is_full_day=bool(active_ids) and blocked_ids == active_ids,
        blocked_slot_ids=tuple(sorted(blocked_ids)),
        total_active_slots=len(active_ids),
        blocked_by_admin=next(iter(owners)) if len(owners) == 1 else None,
    )


@dataclass(frozen=True)
class LogicalBlock:
    key: LogicalBlockKey
    slot_ids: tuple[int, ...]
    guests: int
    reason: str
    record_ids: tuple[int, ...]
    created_at: datetime | None = None
    guests_by_slot: Mapping[int, int] = field(default_factory=dict)

    @property
    def block_id(self) -> str:
        return self.key.encode()

    @property
    def date(self) -> date:
        return self.key.date

    @property
    def owner_id(self) -> str:
        return self.key.owner_id

    @property
    def is_full_day(self) -> bool:
        return self.key.is_full_day

    @property
    def chunk_count(self) -> int:
        return len(self.record_ids)


def aggregate_block(key: LogicalBlockKey, rows: Sequence[OccupancyRecord]) -> LogicalBlock:
    guests_by_slot: dict[int, int] = defaultdict(int)
    for row in rows:
        guests_by_slot[row.slot_id] += row.guests
    created = [r.created_at for r in rows if r.created_at is not None]
    return LogicalBlock(
        key=key,
        slot_ids=tuple(sorted(guests_by_slot)),
        guests=sum(guests_by_slot.values()),
        reason=base_reason(rows[0].reason),
        record_ids=tuple(sorted(r.id for r in rows)),
        created_at=min(created) if created else None,
        guests_by_slot=dict(guests_by_slot),
    )


def group_logical_blocks(
    block_rows: Iterable[OccupancyRecord],
    active_slot_ids_by_date: Mapping[date, Iterable[int]],
) -> list[LogicalBlock]:
    """Fold chunk rows into logical blocks.

    A date whose active slots are all blocked by a single administrator is
    reported as one full-day block; everything else groups by owner and slot.
    """
    by_date: dict[date, list[OccupancyRecord]] = defaultdict(list)
    for row in block_rows:
        if row.kind == OccupancyKind.ADMIN_BLOCK:
            by_date[row.date].append(row)

    blocks: list[LogicalBlock] = []
    for day in sorted(by_date, reverse=True):
        rows = by_date[day]
        owners = {r.owner_id for r in rows}
        active_ids = set(active_slot_ids_by_date.get(day, ()))
        blocked_ids = {r.slot_id for r in rows}
        if len(owners) == 1 and active_ids and active_ids <= blocked_ids:
            key = LogicalBlockKey(date=day, owner_id=next(iter(owners)))
            blocks.append(aggregate_block(key, rows))
            continue

        grouped: dict[tuple[str, int], list[OccupancyRecord]] = defaultdict(list)
        for row in rows:
            grouped[(row.owner_id, row.slot_id)].append(row)
        for (owner_id, slot_id), slot_rows in sorted(grouped.items(), key=lambda item: (item[0][1], item[0][0])):
            key = LogicalBlockKey(date=day, owner_id=owner_id, slot_id=slot_id)
            blocks.append(aggregate_block(key, slot_rows))
    return blocks
