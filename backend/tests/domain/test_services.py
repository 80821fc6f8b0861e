import pytest
from studio_booking.domain.errors import CapacityError
from studio_booking.domain.services import PlannedRow, SlotDaySnapshot, plan_block_rows, validate_admission


def test_validate_admission_returns_remaining() -> None:
    snapshot = SlotDaySnapshot(slot_id=1, capacity=6, committed=2)
    assert validate_admission(snapshot, guests=4) == 0


def test_validate_admission_reports_shortfall() -> None:
    snapshot = SlotDaySnapshot(slot_id=1, capacity=6, committed=4)
    with pytest.raises(CapacityError) as excinfo:
        validate_admission(snapshot, guests=3)

    err = excinfo.value
    assert err.message == "Only 2 spots available"
    assert (err.available, err.requested, err.shortfall, err.slot_id) == (2, 3, 1, 1)


def test_validate_admission_singular_message() -> None:
    with pytest.raises(CapacityError, match="Only 1 spot available"):
        validate_admission(SlotDaySnapshot(slot_id=1, capacity=6, committed=5), guests=2)


def test_snapshot_available_never_negative() -> None:
    assert SlotDaySnapshot(slot_id=1, capacity=6, committed=9).available == 0


def test_plan_block_rows_chunks_with_positions() -> None:
    rows = plan_block_rows(3, 20, "Mantenimiento", full_day=True)
    assert [r.guests for r in rows] == [6, 6, 6, 2]
    assert rows[0] == PlannedRow(slot_id=3, guests=6, reason="Mantenimiento (Día completo - Bloqueo 1/4)")
    assert rows[-1].reason == "Mantenimiento (Día completo - Bloqueo 4/4)"


def test_plan_block_rows_single_chunk_for_specific_slot() -> None:
    assert plan_block_rows(1, 4, "Evento privado", full_day=False) == [
        PlannedRow(slot_id=1, guests=4, reason="Evento privado (Bloqueo 1/1)")
    ]
