import json
from datetime import date
from typing import Any, List

import pytest
from studio_booking.utils import audit_log
from studio_booking.utils.request_id import set_request_id


def test_emit_audit_log_outputs_json(monkeypatch) -> None:
    messages: List[str] = []

    class DummyLogger:
        def info(self, message: str) -> None:
            messages.append(message)

    dummy_logger = DummyLogger()
    monkeypatch.setattr(audit_log, "_audit_logger", dummy_logger)

    set_request_id("req-123")
    try:
        audit_log.emit_audit_log(
            action="block.created",
            initiator="admin",
            actor_id="admin-a",
            day=date(2026, 10, 20),
            slot_ids=[1, 2],
            guests=12,
            record_ids=[7, 8],
            extra={"full_day": False, "reason": "Mantenimiento del piso"},
        )
    finally:
        set_request_id(None)
    assert len(messages) == 1
    payload = json.loads(messages[0])
    assert payload["action"] == "block.created"
    assert payload["initiator"] == "admin"
    assert payload["request_id"] == "req-123"
    assert payload["date"] == "2026-10-20"
    assert payload["slot_ids"] == [1, 2]
    assert payload["full_day"] is False
    assert "block_id" not in payload
    assert "timestamp" in payload


def test_emit_audit_log_keeps_accents(monkeypatch) -> None:
    messages: List[str] = []

    class DummyLogger:
        def info(self, message: str) -> None:
            messages.append(message)

    monkeypatch.setattr(audit_log, "_audit_logger", DummyLogger())

    audit_log.emit_audit_log(
        action="block.removed",
        initiator="admin",
        actor_id="admin-a",
        day=None,
        block_id="2026-10-20:all:admin-a",
        message="Día completo",
    )
    assert "Día completo" in messages[0]


def test_emit_audit_log_raises_on_logger_failure(monkeypatch) -> None:
    class DummyLogger:
        def info(self, _: Any) -> None:
            raise ValueError("fail")

    dummy_logger = DummyLogger()
    monkeypatch.setattr(audit_log, "_audit_logger", dummy_logger)

    with pytest.raises(RuntimeError):
        audit_log.emit_audit_log(
            action="booking.rejected",
            initiator="customer",
            actor_id="ana@example.com",
            day=date(2026, 10, 20),
            slot_ids=[1],
            guests=3,
            message="Only 2 spots available",
        )
