#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Append-only event log consumed by external indexers.

Events emitted while an operation runs are buffered and only published when
the operation commits; a rolled-back operation publishes nothing.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import requests

from .logging_config import get_logger

logger = get_logger(__name__)

EventSink = Callable[["VaultEvent"], None]


def _jsonable(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return value


@dataclass(frozen=True)
class VaultEvent:
    """One state-transition notification."""

    index: int
    topic: str
    principal: str
    data: Dict[str, Any] = field(default_factory=dict)
    ledger: int = 0
    timestamp: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "topic": self.topic,
            "principal": self.principal,
            "data": {k: _jsonable(v) for k, v in self.data.items()},
            "ledger": self.ledger,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "VaultEvent":
        return cls(
            index=int(raw["index"]),
            topic=str(raw["topic"]),
            principal=str(raw["principal"]),
            data=dict(raw.get("data") or {}),
            ledger=int(raw.get("ledger", 0)),
            timestamp=int(raw.get("timestamp", 0)),
        )


class EventLog:
    """Committed events plus the pending buffer of the running operation."""

    def __init__(self) -> None:
        self._events: List[VaultEvent] = []
        self._pending: List[VaultEvent] = []
        self._sinks: List[EventSink] = []

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self):
        return iter(list(self._events))

    @property
    def events(self) -> List[VaultEvent]:
        return list(self._events)

    def add_sink(self, sink: EventSink) -> None:
        self._sinks.append(sink)

    def emit(self, topic: str, principal: str, ledger: int, timestamp: int, **data: Any) -> VaultEvent:
        event = VaultEvent(
            index=len(self._events) + len(self._pending),
            topic=topic,
            principal=principal,
            data=data,
            ledger=ledger,
            timestamp=timestamp,
        )
        self._pending.append(event)
        return event

    def discard_pending(self) -> None:
        self._pending.clear()

    def commit_pending(self) -> List[VaultEvent]:
        committed, self._pending = self._pending, []
        self._events.extend(committed)
        for event in committed:
            for sink in self._sinks:
                try:
                    sink(event)
                except Exception as exc:
                    # Delivery happens after commit; indexers can backfill from the log
                    logger.warning(
                        "event sink failed",
                        extra={"topic": event.topic, "index": event.index, "error": str(exc)},
                    )
        return committed

    def by_topic(self, topic: str) -> List[VaultEvent]:
        return [event for event in self._events if event.topic == topic]

    def save(self, path: Path) -> None:
        Path(path).write_text(json.dumps([e.to_dict() for e in self._events], indent=2))

    @classmethod
    def load(cls, path: Path) -> "EventLog":
        log = cls()
        path = Path(path)
        if path.exists():
            log._events = [VaultEvent.from_dict(raw) for raw in json.loads(path.read_text())]
        return log


class WebhookSink:
    """Post each committed event as JSON to an indexer endpoint."""

    def __init__(self, url: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def __call__(self, event: VaultEvent) -> None:
        resp = self.session.post(self.url, json=event.to_dict(), timeout=self.timeout)
        resp.raise_for_status()


def events_path_for(state_path: Path) -> Path:
    """Event log stored beside the state file: ``vault_state.json`` -> ``vault_state.events.json``."""
    state_path = Path(state_path)
    return state_path.with_name(f"{state_path.stem}.events.json")
