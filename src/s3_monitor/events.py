# src/s3_monitor/events.py

"""Wraps raw notification records into schema-tagged event envelopes."""

from dataclasses import dataclass
from typing import Any, Iterable


@dataclass(frozen=True, slots=True)
class EventEnvelope:
    """A notification record tagged with the schema URI that describes it."""

    schema: str
    data: Any

    def to_self_describing_json(self) -> dict[str, Any]:
        return {"schema": self.schema, "data": self.data}


def to_envelope(schema: str, record: Any) -> EventEnvelope:
    return EventEnvelope(schema=schema, data=record)


def map_records(schema: str, records: Iterable[Any]) -> list[EventEnvelope]:
    """Returns one envelope per record, in input order."""
    return [to_envelope(schema, record) for record in records]
