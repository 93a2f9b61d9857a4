"""Placeholder resolution for request bodies.

Request bodies reference records that do not exist yet through tokens of
the form ``{{<entity_type>.<field>}}``. Only ``sys_id`` references are
resolved; the identifier comes from the latest successful result recorded
for that entity type.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Iterable, Mapping

from procurement_sync.domain.requests import ExternalResult, Request, RequestStatus

RESOLVABLE_FIELD = "sys_id"

_TOKEN = re.compile(r"^\{\{([^{}.]+)\.([^{}.]+)\}\}$")


@dataclass(frozen=True)
class PlaceholderRef:
    entity_type: str
    field: str

    @property
    def token(self) -> str:
        return f"{{{{{self.entity_type}.{self.field}}}}}"


@lru_cache(maxsize=1024)
def parse_placeholder(value: str) -> PlaceholderRef | None:
    """Parse a string that is exactly one placeholder token, or return None."""
    match = _TOKEN.fullmatch(value)
    if match is None:
        return None
    return PlaceholderRef(entity_type=match.group(1), field=match.group(2))


def placeholder_for(value: Any) -> PlaceholderRef | None:
    if not isinstance(value, str):
        return None
    return parse_placeholder(value)


class CompletedResults:
    """Latest successful result per entity type (last write wins)."""

    def __init__(self) -> None:
        self._by_entity: dict[str, ExternalResult] = {}

    def record(self, entity_type: str, result: ExternalResult) -> None:
        # Results without an identifier never shadow an earlier usable one.
        if result.identifier:
            self._by_entity[entity_type] = result

    def identifier_for(self, entity_type: str) -> str | None:
        result = self._by_entity.get(entity_type)
        return result.identifier if result else None

    def seed(self, requests: Iterable[Request]) -> None:
        """Load results of requests that already succeeded, oldest first."""
        succeeded = [r for r in requests if r.status == RequestStatus.SUCCESS and r.response]
        succeeded.sort(key=lambda r: (r.executed_at is None, r.executed_at or r.created_at))
        for request in succeeded:
            self.record(request.entity_type, request.response.result)

    def __contains__(self, entity_type: object) -> bool:
        return entity_type in self._by_entity


def resolve_body(body: Mapping[str, Any], completed: CompletedResults) -> dict[str, Any]:
    """Return a copy of ``body`` with resolvable placeholders substituted.

    Unresolvable tokens are left as-is so they stay visible to the user.
    """
    resolved: dict[str, Any] = dict(body)
    for key, value in body.items():
        ref = placeholder_for(value)
        if ref is None or ref.field != RESOLVABLE_FIELD:
            continue
        identifier = completed.identifier_for(ref.entity_type)
        if identifier:
            resolved[key] = identifier
    return resolved


def unresolved_placeholders(body: Mapping[str, Any]) -> dict[str, PlaceholderRef]:
    """Map of field name -> placeholder still present in ``body``."""
    found: dict[str, PlaceholderRef] = {}
    for key, value in body.items():
        ref = placeholder_for(value)
        if ref is not None:
            found[key] = ref
    return found
