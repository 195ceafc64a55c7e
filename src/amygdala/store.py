"""In-memory record store: type name -> identity -> record.

The store is the cache itself. It is written only by the
:class:`~amygdala.normalizer.Normalizer` (and :meth:`RecordStore.evict`)
and read by the :class:`~amygdala.query.QueryEngine`.

A write replaces whatever record already sits at that identity; there is no
field-level merge. Tables are created lazily on first write and iterate in
insertion order. Nothing expires: there is no TTL or eviction policy, only
explicit :meth:`RecordStore.evict` and :meth:`RecordStore.clear`.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Hashable, Mapping, Optional

logger = logging.getLogger(__name__)

Record = dict[str, Any]


class RecordStore:
    """Per-type, per-identity table of flat records.

    Example::

        store = RecordStore()
        store.write("users", "/users/1/", {"url": "/users/1/", "name": "Amy"})
        store.get("users", "/users/1/")["name"]   # "Amy"
        store.evict("users", "/users/1/")
    """

    def __init__(self) -> None:
        self._tables: dict[str, dict[Hashable, Record]] = {}

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._tables

    def table(self, type_name: str) -> dict[Hashable, Record]:
        """Return the writable table for *type_name*, creating it if needed."""
        if type_name not in self._tables:
            self._tables[type_name] = {}
        return self._tables[type_name]

    def records(self, type_name: str) -> Optional[Mapping[Hashable, Record]]:
        """Return a read-only view of the table, or ``None`` if it was never written."""
        table = self._tables.get(type_name)
        if table is None:
            return None
        return MappingProxyType(table)

    def get(self, type_name: str, identity: Hashable) -> Optional[Record]:
        """Return the record at *identity*, or ``None``."""
        table = self._tables.get(type_name)
        if table is None:
            return None
        return table.get(identity)

    def write(self, type_name: str, identity: Hashable, record: Record) -> None:
        """Store *record* at *identity*, replacing any previous record wholesale."""
        self.table(type_name)[identity] = record

    def evict(self, type_name: str, identity: Hashable) -> None:
        """Remove the record at *identity* if present.

        Does nothing when the record or the whole table is absent. Records of
        other types that reference *identity* are left as they are.
        """
        table = self._tables.get(type_name)
        if table is None:
            return
        if table.pop(identity, None) is not None:
            logger.debug("Evicted %s[%r]", type_name, identity)

    def clear(self, type_name: Optional[str] = None) -> None:
        """Drop one table, or every table when *type_name* is ``None``."""
        if type_name is None:
            self._tables.clear()
        else:
            self._tables.pop(type_name, None)

    def stats(self) -> dict[str, int]:
        """Return the number of records held per type."""
        return {name: len(table) for name, table in self._tables.items()}
