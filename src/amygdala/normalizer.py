"""Normalize nested API payloads into flat per-type records.

:meth:`Normalizer.ingest` takes a raw response payload for a type and
decomposes it into the :class:`~amygdala.store.RecordStore`:

1. Text payloads (``str``/``bytes``) are decoded as JSON.
2. The payload is coerced to a list of objects. A list is used as-is;
   anything else goes through the type's ``parse`` callable (when declared)
   and is wrapped in a list if it still is not one.
3. For each object, every declared relation holding embedded objects is
   ingested into the related type's table and replaced by the embedded
   objects' identities. The flattened record is then written at its own
   identity, replacing any previous record.

Relation handling is driven by the declared :class:`~amygdala.models.RelationKind`,
not by guessing at the value's shape: a to-many attribute is only touched
when it holds a list, and within it only mappings are treated as embedded
objects. Items that are already identities are kept, so ingesting an
already-normalized record changes nothing but the overwrite itself.

Recursion follows the payload, so cyclic schemas are fine; an unbounded
payload nesting depth would mean unbounded recursion, which is accepted.
There is no rollback: if a nested object is rejected, the records written
before it stay in the store.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Hashable, Mapping

from amygdala.exceptions import MalformedPayloadError
from amygdala.models import Relation, TypeConfig
from amygdala.schema import SchemaRegistry
from amygdala.store import Record, RecordStore

logger = logging.getLogger(__name__)


class Normalizer:
    """Writes payloads into a :class:`RecordStore` according to a :class:`SchemaRegistry`.

    Args:
        registry: Schema lookup for relations and identity attributes.
        store: The store mutated by :meth:`ingest`.

    Example::

        normalizer = Normalizer(registry, store)
        normalizer.ingest("users", {"url": "/u/1/", "team": {"url": "/t/1/"}})
        store.get("users", "/u/1/")["team"]   # "/t/1/"
    """

    def __init__(self, registry: SchemaRegistry, store: RecordStore) -> None:
        self._registry = registry
        self._store = store

    def ingest(self, type_name: str, payload: Any) -> None:
        """Normalize *payload* into the table for *type_name* and its related tables.

        Args:
            type_name: A declared type.
            payload: A decoded response body (mapping or list), or the raw
                JSON text of one. ``None`` (an empty response body) is
                ignored.

        Raises:
            UnknownTypeError: If *type_name* is not declared.
            MalformedPayloadError: If text cannot be decoded, or an object is
                not a mapping or has no usable identity.
        """
        config = self._registry.resolve(type_name)
        payload = _decode(payload)
        if payload is None:
            logger.debug("Nothing to ingest for %s", type_name)
            return

        objects = self._coerce(config, payload)
        logger.debug("Ingesting %d %s object(s)", len(objects), type_name)
        for obj in objects:
            self._ingest_object(config, obj)

    def _coerce(self, config: TypeConfig, payload: Any) -> list[Any]:
        """Turn *payload* into a list of objects, applying ``parse`` if needed."""
        if isinstance(payload, (list, tuple)):
            return list(payload)
        if config.parse is not None:
            payload = config.parse(payload)
            if isinstance(payload, (list, tuple)):
                return list(payload)
        return [payload]

    def _ingest_object(self, config: TypeConfig, obj: Any) -> Hashable:
        """Flatten one object's relations, store it, and return its identity."""
        if not isinstance(obj, Mapping):
            raise MalformedPayloadError(
                f"Expected a {config.name} object, got {type(obj).__name__}"
            )

        record: Record = dict(obj)
        identity = self._identity(config, record)

        for relation in config.to_many:
            self._flatten_many(record, relation)
        for relation in config.to_one:
            self._flatten_one(record, relation)

        self._store.write(config.name, identity, record)
        return identity

    def _flatten_many(self, record: Record, relation: Relation) -> None:
        value = record.get(relation.attribute)
        if not isinstance(value, (list, tuple)) or not value:
            return

        related = self._registry.resolve(relation.related_type)
        record[relation.attribute] = [
            self._ingest_object(related, item) if isinstance(item, Mapping) else item
            for item in value
        ]

    def _flatten_one(self, record: Record, relation: Relation) -> None:
        value = record.get(relation.attribute)
        if not isinstance(value, Mapping):
            return

        related = self._registry.resolve(relation.related_type)
        record[relation.attribute] = self._ingest_object(related, value)

    def _identity(self, config: TypeConfig, record: Record) -> Hashable:
        attribute = self._registry.identity_of(config.name)
        identity = record.get(attribute)
        if identity is None:
            raise MalformedPayloadError(
                f"{config.name} object is missing its identity attribute {attribute!r}"
            )
        try:
            hash(identity)
        except TypeError:
            raise MalformedPayloadError(
                f"{config.name}.{attribute} must be a hashable value, "
                f"got {type(identity).__name__}"
            ) from None
        return identity


def _decode(payload: Any) -> Any:
    """Decode a JSON text payload; pass structured payloads through."""
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedPayloadError(f"Response is not valid UTF-8: {exc}") from exc
    if isinstance(payload, str):
        try:
            return json.loads(payload)
        except json.JSONDecodeError as exc:
            raise MalformedPayloadError(f"Invalid JSON response: {exc}") from exc
    return payload
