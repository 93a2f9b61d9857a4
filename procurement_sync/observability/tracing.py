"""JSON-line events and spans for batch execution.

One trace id covers a whole batch (or a single retry); every ServiceNow
call inside it is timed by a span. Events are printed as one JSON object
per line so they can be shipped by any log collector.
"""

from __future__ import annotations

import json
import time
import uuid
from dataclasses import dataclass, field
from typing import Any


def new_trace_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Span:
    name: str
    trace_id: str = field(default_factory=new_trace_id)
    span_id: str = field(default_factory=lambda: uuid.uuid4().hex[:16])
    started_ns: int = field(default_factory=time.perf_counter_ns)
    ended_ns: int | None = None
    attributes: dict[str, Any] = field(default_factory=dict)

    def set(self, **attributes: Any) -> "Span":
        self.attributes.update(attributes)
        return self

    def end(self) -> None:
        if self.ended_ns is None:
            self.ended_ns = time.perf_counter_ns()

    def __enter__(self) -> "Span":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.end()

    @property
    def duration_ms(self) -> float | None:
        if self.ended_ns is None:
            return None
        return round((self.ended_ns - self.started_ns) / 1_000_000.0, 3)

    def as_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "span_id": self.span_id,
            "duration_ms": self.duration_ms,
            "attributes": self.attributes,
        }


def log_event(event: str, *, trace_id: str, span: Span | None = None, **fields: Any) -> None:
    record: dict[str, Any] = {"event": event, "trace_id": trace_id, **fields}
    if span is not None:
        record["span"] = span.as_dict()
    # default=str keeps datetimes and enums printable
    print(json.dumps(record, ensure_ascii=False, default=str))
