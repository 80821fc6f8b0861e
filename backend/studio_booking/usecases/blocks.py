from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..domain.blocks import (
    BlockSurvey,
    FullDayStatus,
    LogicalBlock,
    LogicalBlockKey,
    aggregate_block,
    detect_full_day,
    group_logical_blocks,
    survey,
)
from ..domain.calendar import CalendarPolicy, day_of_week
from ..domain.catalog import outside_sunday_window
from ..domain.errors import CapacityError, ConflictError, NotFoundError, ValidationError
from ..domain.occupancy import compute_occupancy
from ..domain.repositories import CatalogCache, OccupancyRepository, SlotTemplateRepository
from ..domain.services import PlannedRow, plan_block_rows
from ..domain.validation import validate_block_reason, validate_guests_per_slot, validate_slot_selection
from ..models import OccupancyKind, OccupancyRecord, SlotTemplate
from .slots import bookable_slots_for_day, slots_for_day

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockResult:
    date: date
    admin_id: str
    full_day: bool
    created: List[OccupancyRecord] = field(default_factory=list)
    blocked_slot_ids: Tuple[int, ...] = ()
    skipped_slot_ids: Tuple[int, ...] = ()
    fully_booked_slot_ids: Tuple[int, ...] = ()

    @property
    def block_ids(self) -> List[str]:
        if self.full_day:
            return [LogicalBlockKey(date=self.date, owner_id=self.admin_id).encode()] if self.created else []
        return [
            LogicalBlockKey(date=self.date, owner_id=self.admin_id, slot_id=slot_id).encode()
            for slot_id in self.blocked_slot_ids
        ]


async def _lock_slot_days(occ_repo: OccupancyRepository, slot_ids: Iterable[int], day: date) -> None:
    # Ascending order so concurrent multi-slot requests cannot deadlock.
    for slot_id in sorted(set(slot_ids)):
        await occ_repo.lock_slot_day(slot_id, day)


def _records_by_slot(records: Sequence[OccupancyRecord]) -> Dict[int, List[OccupancyRecord]]:
    grouped: Dict[int, List[OccupancyRecord]] = defaultdict(list)
    for record in records:
        grouped[record.slot_id].append(record)
    return grouped


def _blocks_only(records: Sequence[OccupancyRecord]) -> List[OccupancyRecord]:
    return [r for r in records if r.kind == OccupancyKind.ADMIN_BLOCK]


async def survey_blocks(occ_repo: OccupancyRepository, *, day: date, admin_id: str) -> BlockSurvey:
    rows = await occ_repo.list_for_date(day, OccupancyKind.ADMIN_BLOCK)
    return survey(day, admin_id, rows)


async def detect_full_day_status(
    slot_repo: SlotTemplateRepository,
    occ_repo: OccupancyRepository,
    *,
    day: date,
    cache: Optional[CatalogCache] = None,
) -> FullDayStatus:
    slots = await bookable_slots_for_day(slot_repo, day_of_week=day_of_week(day), cache=cache)
    rows = await occ_repo.list_for_date(day, OccupancyKind.ADMIN_BLOCK)
    return detect_full_day(day, slots, rows)


async def block_full_day(
    slot_repo: SlotTemplateRepository,
    occ_repo: OccupancyRepository,
    *,
    day: date,
    reason: str,
    admin_id: str,
    policy: CalendarPolicy,
    cache: Optional[CatalogCache] = None,
) -> BlockResult:
    """Block the remaining capacity of every bookable slot on ``day``.

    Slots the same administrator already blocked are skipped, so repeating the
    call is a no-op. Any block by another administrator rejects the request.
    """
    reason = validate_block_reason(reason)
    check = policy.require_available(day)
    slots = await bookable_slots_for_day(slot_repo, day_of_week=check.day_of_week, cache=cache)
    if not slots:
        logger.warning("full-day block on %s: no active time slots", day)
        return BlockResult(date=day, admin_id=admin_id, full_day=True)

    await _lock_slot_days(occ_repo, (s.id for s in slots), day)
    records = await occ_repo.list_for_date(day)
    block_survey = survey(day, admin_id, _blocks_only(records))
    if not block_survey.can_block_full_day:
        others = block_survey.other_admins
        raise ConflictError(
            f"This day already has blocks by another administrator: {', '.join(others)}",
            admins=others,
            slot_ids=sorted(s for owner in others for s in block_survey.slots_blocked_by(owner)),
        )

    by_slot = _records_by_slot(records)
    planned: List[PlannedRow] = []
    blocked: List[int] = []
    skipped: List[int] = []
    fully_booked: List[int] = []
    for slot in slots:
        if slot.id in block_survey.blocked_slot_ids:
            skipped.append(slot.id)
            continue
        available = compute_occupancy(slot.max_capacity, by_slot.get(slot.id, [])).available
        if available == 0:
            fully_booked.append(slot.id)
            continue
        planned.extend(plan_block_rows(slot.id, available, reason, full_day=True))
        blocked.append(slot.id)

    created = await occ_repo.create_blocks(day=day, owner_id=admin_id, rows=planned) if planned else []
    _invalidate(cache, blocked, day)
    logger.info(
        "full-day block on %s by %s: %s rows over slots %s (skipped %s, fully booked %s)",
        day, admin_id, len(created), blocked, skipped, fully_booked,
    )
    return BlockResult(
        date=day,
        admin_id=admin_id,
        full_day=True,
        created=created,
        blocked_slot_ids=tuple(blocked),
        skipped_slot_ids=tuple(skipped),
        fully_booked_slot_ids=tuple(fully_booked),
    )


async def block_specific_slots(
    slot_repo: SlotTemplateRepository,
    occ_repo: OccupancyRepository,
    *,
    day: date,
    slot_ids: Sequence[int],
    reason: str,
    admin_id: str,
    policy: CalendarPolicy,
    guests_per_slot: Optional[int] = None,
    cache: Optional[CatalogCache] = None,
) -> BlockResult:
    reason = validate_block_reason(reason)
    requested_ids = validate_slot_selection(slot_ids)
    guests_per_slot = validate_guests_per_slot(guests_per_slot)
    check = policy.require_available(day)

    slots = await slot_repo.list_active_by_ids(requested_ids)
    found = {s.id: s for s in slots}
    missing = [sid for sid in requested_ids if sid not in found]
    if missing:
        raise NotFoundError(f"Unknown time slots: {', '.join(map(str, missing))}")
    wrong_day = [sid for sid in requested_ids if found[sid].day_of_week != check.day_of_week]
    if wrong_day:
        raise ValidationError(
            f"Time slots {', '.join(map(str, wrong_day))} are not offered on {check.day_name}s",
            field="slot_ids",
        )
    closed = [sid for sid in requested_ids if outside_sunday_window(found[sid])]
    if closed:
        raise ValidationError(
            f"Time slots {', '.join(map(str, closed))} fall outside Sunday opening hours",
            field="slot_ids",
        )

    await _lock_slot_days(occ_repo, requested_ids, day)
    records = await occ_repo.list_for_date(day)
    owners = survey(day, admin_id, _blocks_only(records)).slot_owners()

    conflicting: Dict[int, Set[str]] = {
        sid: owners[sid] - {admin_id} for sid in requested_ids if owners.get(sid, set()) - {admin_id}
    }
    if conflicting:
        admins = sorted({a for names in conflicting.values() for a in names})
        described = ", ".join(f"{sid} ({', '.join(sorted(names))})" for sid, names in sorted(conflicting.items()))
        raise ConflictError(
            f"Time slots already blocked by another administrator: {described}",
            admins=admins,
            slot_ids=sorted(conflicting),
        )

    by_slot = _records_by_slot(records)
    planned: List[PlannedRow] = []
    blocked: List[int] = []
    skipped: List[int] = []
    fully_booked: List[int] = []
    for sid in requested_ids:
        if admin_id in owners.get(sid, set()):
            skipped.append(sid)
            continue
        slot: SlotTemplate = found[sid]
        available = compute_occupancy(slot.max_capacity, by_slot.get(sid, [])).available
        if guests_per_slot is None:
            if available == 0:
                fully_booked.append(sid)
                continue
            amount = available
        else:
            if guests_per_slot > available:
                raise CapacityError(
                    f"Only {available} spots available to block in time slot {sid}",
                    available=available,
                    requested=guests_per_slot,
                    slot_id=sid,
                )
            amount = guests_per_slot
        planned.extend(plan_block_rows(sid, amount, reason, full_day=False))
        blocked.append(sid)

    created = await occ_repo.create_blocks(day=day, owner_id=admin_id, rows=planned) if planned else []
    _invalidate(cache, blocked, day)
    logger.info(
        "slot block on %s by %s: %s rows over slots %s (skipped %s, fully booked %s)",
        day, admin_id, len(created), blocked, skipped, fully_booked,
    )
    return BlockResult(
        date=day,
        admin_id=admin_id,
        full_day=False,
        created=created,
        blocked_slot_ids=tuple(blocked),
        skipped_slot_ids=tuple(skipped),
        fully_booked_slot_ids=tuple(fully_booked),
    )


async def remove_block(
    slot_repo: SlotTemplateRepository,
    occ_repo: OccupancyRepository,
    *,
    block_id: str,
    cache: Optional[CatalogCache] = None,
) -> LogicalBlock:
    """Delete every chunk row of one logical block.

    The slot-days are locked before the rows are read, so two removals of the
    same block cannot both succeed and chunks written concurrently by the owner
    are removed together with the rest.
    """
    key = LogicalBlockKey.decode(block_id)
    if key.is_full_day:
        slots = await slots_for_day(slot_repo, day_of_week=day_of_week(key.date), cache=cache)
        unlocked = await occ_repo.list_for_date(key.date, OccupancyKind.ADMIN_BLOCK)
        lock_ids = {s.id for s in slots} | {r.slot_id for r in unlocked if key.matches(r)}
    else:
        lock_ids = {key.slot_id}
    await _lock_slot_days(occ_repo, lock_ids, key.date)

    rows = [r for r in await occ_repo.list_for_date(key.date, OccupancyKind.ADMIN_BLOCK) if key.matches(r)]
    if not rows:
        raise NotFoundError(f"Block {block_id} not found")

    block = aggregate_block(key, rows)
    deleted = await occ_repo.delete_ids(list(block.record_ids))
    if deleted == 0:
        raise NotFoundError(f"Block {block_id} not found")
    _invalidate(cache, block.slot_ids, key.date)
    logger.info("block %s removed: %s rows, %s guests", block.block_id, deleted, block.guests)
    return block


async def list_blocks(
    slot_repo: SlotTemplateRepository,
    occ_repo: OccupancyRepository,
    *,
    from_date: Optional[date] = None,
    cache: Optional[CatalogCache] = None,
) -> List[LogicalBlock]:
    rows = await occ_repo.list_blocks(from_date)
    active_by_date: Dict[date, List[int]] = {}
    for day in {r.date for r in rows}:
        slots = await bookable_slots_for_day(slot_repo, day_of_week=day_of_week(day), cache=cache)
        active_by_date[day] = [s.id for s in slots]
    return group_logical_blocks(rows, active_by_date)


def _invalidate(cache: Optional[CatalogCache], slot_ids: Iterable[int], day: date) -> None:
    if cache is None:
        return
    for slot_id in slot_ids:
        cache.invalidate_slot_day(slot_id, day)
