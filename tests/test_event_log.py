"""Tests for the notification log — proves append-only, tamper-evident storage."""

import json
from pathlib import Path

import pytest

from streamledger.persistence.event_log import EventKind, EventLog, EventRecord


def _record(event_id: str = "EVT-00000001") -> EventRecord:
    return EventRecord.create(
        event_id=event_id,
        event_kind=EventKind.DEAL_CREATED,
        actor_id="buyer",
        payload={"deal_id": 1, "initial_deposit": 10},
        timestamp=42,
    )


class TestEventRecord:
    def test_hash_is_deterministic(self) -> None:
        assert _record().event_hash == _record().event_hash
        assert _record().event_hash.startswith("sha256:")

    def test_hash_covers_payload(self) -> None:
        other = EventRecord.create(
            event_id="EVT-00000001",
            event_kind=EventKind.DEAL_CREATED,
            actor_id="buyer",
            payload={"deal_id": 2, "initial_deposit": 10},
            timestamp=42,
        )
        assert other.event_hash != _record().event_hash


class TestEventLog:
    def test_emit_sequences_ids(self) -> None:
        log = EventLog()
        first = log.emit(EventKind.SUBSCRIBED, "b1", 5, amount=10)
        second = log.emit(EventKind.SUBSCRIBED, "b1", 6, amount=20)
        assert first.event_id == "EVT-00000001"
        assert second.event_id == "EVT-00000002"
        assert log.count == 2
        assert log.last_event == second

    def test_duplicate_rejected(self) -> None:
        log = EventLog()
        log.append(_record())
        with pytest.raises(ValueError, match="Duplicate"):
            log.append(_record())

    def test_filters(self) -> None:
        log = EventLog()
        log.emit(EventKind.DEAL_CREATED, "a", 1)
        log.emit(EventKind.SELLER_REGISTERED, "s", 5)
        log.emit(EventKind.DEAL_CREATED, "a", 9)
        assert len(log.events(EventKind.DEAL_CREATED)) == 2
        assert [e.timestamp for e in log.events_since(5)] == [5, 9]
        assert len(log.events_since(5, EventKind.DEAL_CREATED)) == 1

    def test_file_round_trip(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        log = EventLog(storage_path=path)
        log.emit(EventKind.DEAL_CREATED, "buyer", 1, deal_id=1)
        log.emit(EventKind.DEAL_CLAIMED, "seller", 2, deal_id=1, amount=50)

        reloaded = EventLog(storage_path=path)
        assert reloaded.count == 2
        assert reloaded.events() == log.events()
        # Numbering continues after reload
        assert reloaded.emit(EventKind.DEAL_DEPOSITED, "buyer", 3).event_id == "EVT-00000003"

    def test_tampered_file_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        log = EventLog(storage_path=path)
        log.emit(EventKind.DEAL_CLAIMED, "seller", 2, deal_id=1, amount=50)

        data = json.loads(path.read_text(encoding="utf-8"))
        data["payload"]["amount"] = 5_000
        path.write_text(json.dumps(data) + "\n", encoding="utf-8")

        with pytest.raises(ValueError, match="Integrity check failed"):
            EventLog(storage_path=path)
