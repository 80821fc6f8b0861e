from datetime import date

import pytest
from studio_booking.domain.blocks import (
    LogicalBlockKey,
    base_reason,
    chunk_reason,
    detect_full_day,
    group_logical_blocks,
    split_into_chunks,
    survey,
)
from studio_booking.domain.errors import NotFoundError
from studio_booking.models import OccupancyKind

DAY = date(2026, 10, 20)
BLOCK = OccupancyKind.ADMIN_BLOCK


@pytest.mark.parametrize(
    "total, expected",
    [(1, [1]), (6, [6]), (7, [6, 1]), (20, [6, 6, 6, 2])],
)
def test_split_into_chunks_respects_row_cap(total: int, expected: list[int]) -> None:
    chunks = split_into_chunks(total)
    assert chunks == expected
    assert sum(chunks) == total


def test_split_into_chunks_rejects_empty_total() -> None:
    with pytest.raises(ValueError):
        split_into_chunks(0)


def test_chunk_reason_labels() -> None:
    assert chunk_reason("Mantenimiento", 2, 4, full_day=True) == "Mantenimiento (Día completo - Bloqueo 2/4)"
    assert chunk_reason("Evento privado", 1, 1, full_day=False) == "Evento privado (Bloqueo 1/1)"
    assert base_reason("Mantenimiento (Día completo - Bloqueo 2/4)") == "Mantenimiento"
    assert base_reason("Evento privado (Bloqueo 1/1)") == "Evento privado"
    assert base_reason("Sin sufijo") == "Sin sufijo"


def test_block_key_encoding() -> None:
    full_day = LogicalBlockKey(date=DAY, owner_id="admin-a")
    single = LogicalBlockKey(date=DAY, owner_id="admin-a", slot_id=3)

    assert full_day.encode() == "2026-10-20:all:admin-a"
    assert single.encode() == "2026-10-20:3:admin-a"
    assert LogicalBlockKey.decode("2026-10-20:3:admin-a") == single
    # Owner ids may themselves contain colons.
    assert LogicalBlockKey.decode("2026-10-20:all:urn:admin:7").owner_id == "urn:admin:7"


@pytest.mark.parametrize("value", ["", "2026-10-20", "2026-10-20:x:admin", "not-a-date:all:admin", "2026-10-20:all:"])
def test_block_key_decode_rejects_garbage(value: str) -> None:
    with pytest.raises(NotFoundError):
        LogicalBlockKey.decode(value)


def test_block_key_matches_only_owner_rows(make_record) -> None:
    key = LogicalBlockKey(date=DAY, owner_id="admin-a", slot_id=1)
    assert key.matches(make_record(1, 1, DAY, 6, BLOCK, "admin-a", "Mantenimiento"))
    assert not key.matches(make_record(2, 2, DAY, 6, BLOCK, "admin-a", "Mantenimiento"))
    assert not key.matches(make_record(3, 1, DAY, 6, BLOCK, "admin-b", "Mantenimiento"))
    assert not key.matches(make_record(4, 1, DAY, 6, owner_id="admin-a"))


def test_survey_groups_rows_by_admin(make_record) -> None:
    rows = [
        make_record(1, 1, DAY, 6, BLOCK, "admin-a", "Mantenimiento"),
        make_record(2, 2, DAY, 6, BLOCK, "admin-b", "Mantenimiento"),
        make_record(3, 2, DAY, 2, BLOCK, "admin-b", "Mantenimiento"),
        make_record(4, 3, DAY, 2),
    ]
    result = survey(DAY, "admin-a", rows)

    assert result.has_blocks
    assert result.other_admins == ["admin-b"]
    assert result.slots_blocked_by("admin-b") == {2}
    assert result.blocked_slot_ids == frozenset({1, 2})
    assert not result.can_block_full_day
    assert result.slot_owners() == {1: {"admin-a"}, 2: {"admin-b"}}


def test_survey_with_only_own_blocks_allows_full_day(make_record) -> None:
    result = survey(DAY, "admin-a", [make_record(1, 1, DAY, 6, BLOCK, "admin-a", "Mantenimiento")])
    assert result.can_block_full_day
    assert result.other_admins == []
    assert not survey(DAY, "admin-a", []).has_blocks


def test_detect_full_day_counts_active_slots_only(make_record, studio_slots) -> None:
    active = [s for s in studio_slots if s.day_of_week == 2 and s.is_active]
    rows = [
        make_record(1, 1, DAY, 6, BLOCK, "admin-a", "Mantenimiento"),
        make_record(2, 2, DAY, 6, BLOCK, "admin-a", "Mantenimiento"),
        make_record(3, 4, DAY, 6, BLOCK, "admin-a", "Mantenimiento"),
    ]
    partial = detect_full_day(DAY, active, rows)
    assert not partial.is_full_day
    assert partial.blocked_slot_ids == (1, 2)
    assert partial.total_active_slots == 3

    rows.append(make_record(5, 3, DAY, 6, BLOCK, "admin-a", "Mantenimiento"))
    full = detect_full_day(DAY, active, rows)
    assert full.is_full_day
    assert full.blocked_by_admin == "admin-a"


def test_detect_full_day_with_no_slots_is_false() -> None:
    status = detect_full_day(DAY, [], [])
    assert not status.is_full_day
    assert status.blocked_by_admin is None


def test_group_logical_blocks_folds_full_day(make_record) -> None:
    other_day = date(2026, 10, 21)
    rows = [
        make_record(1, 1, DAY, 6, BLOCK, "admin-a", "Mantenimiento (Día completo - Bloqueo 1/1)"),
        make_record(2, 2, DAY, 6, BLOCK, "admin-a", "Mantenimiento (Día completo - Bloqueo 1/1)"),
        make_record(3, 3, DAY, 6, BLOCK, "admin-a", "Mantenimiento (Día completo - Bloqueo 1/2)"),
        make_record(4, 3, DAY, 6, BLOCK, "admin-a", "Mantenimiento (Día completo - Bloqueo 2/2)"),
        make_record(5, 5, other_day, 4, BLOCK, "admin-b", "Evento privado (Bloqueo 1/1)"),
        make_record(6, 5, other_day, 2),
    ]
    blocks = group_logical_blocks(rows, {DAY: [1, 2, 3], other_day: [5, 6]})

    assert [b.block_id for b in blocks] == ["2026-10-21:5:admin-b", "2026-10-20:all:admin-a"]
    full_day = blocks[1]
    assert full_day.is_full_day
    assert full_day.chunk_count == 4
    assert full_day.guests == 24
    assert full_day.guests_by_slot == {1: 6, 2: 6, 3: 12}
    assert full_day.reason == "Mantenimiento"
    assert blocks[0].reason == "Evento privado"
    assert blocks[0].record_ids == (5,)


def test_group_logical_blocks_splits_mixed_owners(make_record) -> None:
    rows = [
        make_record(1, 1, DAY, 6, BLOCK, "admin-a", "Mantenimiento (Bloqueo 1/1)"),
        make_record(2, 2, DAY, 6, BLOCK, "admin-b", "Mantenimiento (Bloqueo 1/1)"),
    ]
    blocks = group_logical_blocks(rows, {DAY: [1, 2]})
    assert [b.block_id for b in blocks] == ["2026-10-20:1:admin-a", "2026-10-20:2:admin-b"]
    assert not any(b.is_full_day for b in blocks)
