"""Domain events and the recorder mixin for aggregates that raise them.

An aggregate records events while a service mutates it; the repository
pulls them when the aggregate is saved (writing them to the outbox in
the same transaction) and the service publishes them once the
transaction has committed.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Tuple
from uuid import UUID

import uuid6


def _json_safe(value: Any) -> Any:
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _json_safe(item) for key, item in value.items()}
    return value


@dataclass(frozen=True)
class DomainEvent:
    aggregate_id: UUID
    event_id: UUID = field(default_factory=uuid6.uuid7)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def event_name(self) -> str:
        return type(self).__name__

    def to_payload(self) -> Dict[str, Any]:
        """Field values as JSON-compatible primitives, for the outbox row."""
        return {f.name: _json_safe(getattr(self, f.name)) for f in fields(self)}


class EventRecorder:
    """Collects events raised on an aggregate until they are pulled."""

    def _recorded(self) -> List[DomainEvent]:
        if "_recorded_events" not in self.__dict__:
            self.__dict__["_recorded_events"] = []
        return self.__dict__["_recorded_events"]

    def record_event(self, event: DomainEvent) -> None:
        self._recorded().append(event)

    @property
    def pending_events(self) -> Tuple[DomainEvent, ...]:
        return tuple(self._recorded())

    def pull_events(self) -> List[DomainEvent]:
        """Return the recorded events and forget them."""
        events = list(self._recorded())
        self._recorded().clear()
        return events
