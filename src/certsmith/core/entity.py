"""Entity model: a table name plus typed attribute maps.

An :class:`Entity` describes a single row-level INSERT or UPDATE without
binding workflow code to a per-table struct.  Every attribute value must
be exactly one of four kinds: text, integer, timestamp or boolean.
Anything else is a programming error and raises
:class:`~certsmith.core.errors.EntityValueError` at construction time,
before any SQL is built.

Usage::

    entity = (
        EntityBuilder("domains")
        .text("domain_name", "example.com")
        .boolean("auto_renew", True)
        .timestamp("created_at", now)
        .build()
    )

    # or, from a plain mapping
    entity = new_entity("events", {"event_type": "created", "actor": "api"})
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Literal, Self

from certsmith.core.errors import EntityValueError

# Tables the unit of work is allowed to write to.
TABLES = frozenset({"domains", "alternative_domains", "certificates", "events"})

_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")

Kind = Literal["text", "integer", "timestamp", "boolean"]


def _frozen(d: dict | None = None) -> Mapping:
    return MappingProxyType(dict(d or {}))


@dataclass(frozen=True)
class Entity:
    """Immutable attribute bag for one row of *table*."""

    table: str
    text: Mapping[str, str] = field(default_factory=_frozen)
    integers: Mapping[str, int] = field(default_factory=_frozen)
    timestamps: Mapping[str, datetime] = field(default_factory=_frozen)
    booleans: Mapping[str, bool] = field(default_factory=_frozen)

    def columns(self) -> dict[str, Any]:
        """Return every attribute merged into one column -> value dict."""
        merged: dict[str, Any] = {}
        merged.update(self.text)
        merged.update(self.integers)
        merged.update(self.timestamps)
        merged.update(self.booleans)
        return merged

    def __len__(self) -> int:
        return len(self.text) + len(self.integers) + len(self.timestamps) + len(self.booleans)


def _kind_of(value: object) -> Kind | None:
    # bool is a subclass of int; check it first
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, str):
        return "text"
    if isinstance(value, datetime):
        return "timestamp"
    return None


class EntityBuilder:
    """Typed builder for :class:`Entity`.

    Each setter checks the value kind and raises
    :class:`EntityValueError` on mismatch.  Setting the same column
    twice keeps the last value.
    """

    def __init__(self, table: str) -> None:
        if table not in TABLES:
            raise EntityValueError(table, "<table>", table)
        self._table = table
        self._values: dict[str, tuple[Kind, Any]] = {}

    def _put(self, column: str, kind: Kind, value: object) -> Self:
        if not _IDENTIFIER.match(column):
            raise EntityValueError(self._table, column, column)
        if _kind_of(value) != kind:
            raise EntityValueError(self._table, column, value)
        self._values[column] = (kind, value)
        return self

    def text(self, column: str, value: str) -> Self:
        return self._put(column, "text", value)

    def integer(self, column: str, value: int) -> Self:
        return self._put(column, "integer", value)

    def timestamp(self, column: str, value: datetime) -> Self:
        return self._put(column, "timestamp", value)

    def boolean(self, column: str, value: bool) -> Self:
        return self._put(column, "boolean", value)

    def set(self, column: str, value: object) -> Self:
        """Set *column* dispatching on the runtime kind of *value*."""
        kind = _kind_of(value)
        if kind is None:
            raise EntityValueError(self._table, column, value)
        return self._put(column, kind, value)

    def build(self) -> Entity:
        buckets: dict[Kind, dict[str, Any]] = {
            "text": {},
            "integer": {},
            "timestamp": {},
            "boolean": {},
        }
        for column, (kind, value) in self._values.items():
            buckets[kind][column] = value
        return Entity(
            table=self._table,
            text=_frozen(buckets["text"]),
            integers=_frozen(buckets["integer"]),
            timestamps=_frozen(buckets["timestamp"]),
            booleans=_frozen(buckets["boolean"]),
        )


def new_entity(table: str, params: Mapping[str, object]) -> Entity:
    """Build an :class:`Entity` from a plain ``column -> value`` mapping.

    Raises
    ------
    EntityValueError
        If *table* is unknown or any value is not text, integer,
        timestamp or boolean (``None`` included).
    """
    builder = EntityBuilder(table)
    for column, value in params.items():
        builder.set(column, value)
    return builder.build()
