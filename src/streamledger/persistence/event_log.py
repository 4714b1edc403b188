"""Append-only event log — the notifications emitted by both marketplaces.

Every committed state change produces one event. Events are immutable
once written and are never consumed by the ledgers themselves; they are
observational only. An operation that rolls back emits nothing.

The log can be mirrored to a JSONL file (one JSON object per line) and
loaded back. Reload is fail-closed: a record whose stored hash does not
match its canonical content, or a duplicate event ID, aborts the load.
"""

from __future__ import annotations

import enum
import hashlib
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional


class EventKind(str, enum.Enum):
    """Classification of marketplace notifications."""
    # Deal ledger
    DEAL_CREATED = "deal_created"
    SELLER_REGISTERED = "seller_registered"
    SELLER_RATE_SET = "seller_rate_set"
    DEAL_CLAIMED = "deal_claimed"
    DEAL_DEPOSITED = "deal_deposited"
    DEAL_WITHDRAWN = "deal_withdrawn"
    DEPOSIT_MOVED = "deposit_moved"
    # Offering ledger
    OFFERING_UPSERTED = "offering_upserted"
    SUBSCRIBED = "subscribed"
    OFFERING_CLAIMED = "offering_claimed"
    SUBSCRIPTION_WITHDRAWN = "subscription_withdrawn"


def _canonical_hash(
    event_id: str,
    event_kind: str,
    timestamp: int,
    actor_id: str,
    payload: dict[str, Any],
) -> str:
    canonical = json.dumps(
        {
            "event_id": event_id,
            "event_kind": event_kind,
            "timestamp": timestamp,
            "actor_id": actor_id,
            "payload": payload,
        },
        sort_keys=True,
        ensure_ascii=False,
    ).encode("utf-8")
    return f"sha256:{hashlib.sha256(canonical).hexdigest()}"


@dataclass(frozen=True)
class EventRecord:
    """A single immutable notification.

    ``timestamp`` is the clock sample of the operation that produced it.
    """
    event_id: str
    event_kind: EventKind
    timestamp: int
    actor_id: str
    payload: dict[str, Any]
    event_hash: str

    @staticmethod
    def create(
        event_id: str,
        event_kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        timestamp: int,
    ) -> EventRecord:
        """Create a new event record with computed hash."""
        return EventRecord(
            event_id=event_id,
            event_kind=event_kind,
            timestamp=timestamp,
            actor_id=actor_id,
            payload=payload,
            event_hash=_canonical_hash(
                event_id, event_kind.value, timestamp, actor_id, payload,
            ),
        )


class EventLog:
    """Append-only event log with optional JSONL mirroring."""

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._events: list[EventRecord] = []
        self._storage_path = storage_path
        self._event_ids: set[str] = set()

        if storage_path and storage_path.exists():
            self._load_from_file(storage_path)

    def append(self, event: EventRecord) -> None:
        """Append an event to the log.

        Raises ValueError if event_id is a duplicate.
        """
        if event.event_id in self._event_ids:
            raise ValueError(f"Duplicate event ID: {event.event_id}")

        self._events.append(event)
        self._event_ids.add(event.event_id)

        if self._storage_path:
            self._append_to_file(event)

    def emit(
        self,
        event_kind: EventKind,
        actor_id: str,
        timestamp: int,
        **payload: Any,
    ) -> EventRecord:
        """Create and append the next event in sequence."""
        event = EventRecord.create(
            event_id=f"EVT-{self.count + 1:08d}",
            event_kind=event_kind,
            actor_id=actor_id,
            payload=payload,
            timestamp=timestamp,
        )
        self.append(event)
        return event

    def events(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        """Return events, optionally filtered by kind."""
        if kind is None:
            return list(self._events)
        return [e for e in self._events if e.event_kind == kind]

    def events_since(
        self,
        since: int,
        kind: Optional[EventKind] = None,
    ) -> list[EventRecord]:
        """Return events at or after a clock value, optionally filtered by kind."""
        result = [e for e in self._events if e.timestamp >= since]
        if kind is not None:
            result = [e for e in result if e.event_kind == kind]
        return result

    @property
    def count(self) -> int:
        return len(self._events)

    @property
    def last_event(self) -> Optional[EventRecord]:
        return self._events[-1] if self._events else None

    def _append_to_file(self, event: EventRecord) -> None:
        record = {
            "event_id": event.event_id,
            "event_kind": event.event_kind.value,
            "timestamp": event.timestamp,
            "actor_id": event.actor_id,
            "payload": event.payload,
            "event_hash": event.event_hash,
        }
        with self._storage_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record, sort_keys=True, ensure_ascii=False) + "\n")

    def _load_from_file(self, path: Path) -> None:
        with path.open("r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                data = json.loads(line)

                event_id = data["event_id"]
                if event_id in self._event_ids:
                    raise ValueError(
                        f"Duplicate event ID on reload (line {line_num}): {event_id}"
                    )

                expected_hash = _canonical_hash(
                    event_id,
                    data["event_kind"],
                    data["timestamp"],
                    data["actor_id"],
                    data["payload"],
                )
                if data["event_hash"] != expected_hash:
                    raise ValueError(
                        f"Integrity check failed (line {line_num}): event {event_id} "
                        f"stored hash {data['event_hash']} != computed {expected_hash}"
                    )

                event = EventRecord(
                    event_id=event_id,
                    event_kind=EventKind(data["event_kind"]),
                    timestamp=data["timestamp"],
                    actor_id=data["actor_id"],
                    payload=data["payload"],
                    event_hash=data["event_hash"],
                )
                self._events.append(event)
                self._event_ids.add(event.event_id)
