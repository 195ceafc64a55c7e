"""Synchronous queries over the record store.

Two operations are provided, both resolving the type first so undeclared
types fail with :class:`~amygdala.exceptions.UnknownTypeError`:

* :meth:`QueryEngine.find_all` -- every record matching an equality
  predicate (or every record when no query is given).
* :meth:`QueryEngine.find` -- the first record matching a predicate, or a
  direct identity lookup when the query is a bare value. An unscoped
  ``find`` (no query) returns ``None``.

A predicate is a mapping of attribute -> value. A record matches when it
has every attribute and each value is equal to the query's. Booleans are
compared strictly, so ``{"active": True}`` does not match ``active == 1``.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from amygdala.exceptions import InvalidQueryError
from amygdala.schema import SchemaRegistry
from amygdala.store import Record, RecordStore

_MISSING = object()


class QueryEngine:
    """Read-only query access to a :class:`RecordStore`.

    Example::

        engine = QueryEngine(registry, store)
        engine.find_all("users", {"active": True})
        engine.find("users", {"username": "amy82"})
        engine.find("users", "/api/v2/user/1/")
    """

    def __init__(self, registry: SchemaRegistry, store: RecordStore) -> None:
        self._registry = registry
        self._store = store

    def find_all(self, type_name: str, query: Optional[Mapping[str, Any]] = None) -> list[Record]:
        """Return every record of *type_name* matching *query*, in table order.

        Raises:
            UnknownTypeError: If *type_name* is not declared.
            InvalidQueryError: If *query* is neither ``None`` nor a mapping
                (checked only once the table holds records).
        """
        self._registry.resolve(type_name)
        table = self._store.records(type_name)
        if not table:
            return []
        if query is None:
            return list(table.values())
        if isinstance(query, Mapping):
            return [record for record in table.values() if matches(record, query)]
        raise InvalidQueryError(
            f"Invalid query for find_all: expected a mapping, got {type(query).__name__}"
        )

    def find(self, type_name: str, query: Any = None) -> Optional[Record]:
        """Return one record of *type_name*, or ``None``.

        Args:
            type_name: A declared type.
            query: A predicate mapping (first match wins), a bare identity
                value (direct lookup), or ``None`` (always ``None``).

        Raises:
            UnknownTypeError: If *type_name* is not declared.
            InvalidQueryError: If *query* is an unhashable non-mapping.
        """
        self._registry.resolve(type_name)
        table = self._store.records(type_name)
        if not table or query is None:
            return None
        if isinstance(query, Mapping):
            return next((r for r in table.values() if matches(r, query)), None)
        try:
            record = table.get(query)
        except TypeError:
            raise InvalidQueryError(
                f"Invalid query for find: {type(query).__name__} is neither a "
                "mapping nor an identity value"
            ) from None
        # Hash lookup conflates True with 1; hold it to the predicate rules.
        if record is None or not _equal(record.get(self._registry.identity_of(type_name)), query):
            return None
        return record


def matches(record: Mapping[str, Any], query: Mapping[str, Any]) -> bool:
    """Return ``True`` if *record* has every key of *query* with an equal value."""
    for key, expected in query.items():
        actual = record.get(key, _MISSING)
        if actual is _MISSING or not _equal(actual, expected):
            return False
    return True


def _equal(actual: Any, expected: Any) -> bool:
    # bool is an int subclass; keep True/1 and False/0 apart.
    if isinstance(actual, bool) or isinstance(expected, bool):
        return type(actual) is type(expected) and actual == expected
    return actual == expected
