"""The :class:`Amygdala` client: remote operations backed by a normalized cache.

Write and read operations (``get``, ``add``, ``update``, ``remove``) are
coroutines. Each resolves the type and validates its arguments before any
I/O, awaits the :class:`~amygdala.transport.Transport`, then updates the
store synchronously: the response is normalized into the store (or, for
``remove``, the identity is evicted). Transport errors propagate as-is and
leave the store untouched.

Queries (``find``, ``find_all``) are synchronous and read the store only.

Concurrent operations on the same identity are resolved by completion
order: whichever response is ingested last wins.

Example::

    async with Amygdala(schema) as cache:
        await cache.get("users", params={"team": 3})
        amy = cache.find("users", {"username": "amy82"})
        await cache.update("users", {**amy, "name": "Amy"})
"""

from __future__ import annotations

import json
import logging
from typing import Any, Hashable, Mapping, Optional, Union
from urllib.parse import quote

from amygdala.exceptions import MissingIdentityError
from amygdala.models import ClientConfig, Schema
from amygdala.normalizer import Normalizer
from amygdala.query import QueryEngine
from amygdala.schema import SchemaRegistry, join_url
from amygdala.store import Record, RecordStore
from amygdala.transport import HttpxTransport, Transport

logger = logging.getLogger(__name__)


class Amygdala:
    """Client-side cache for a resource-oriented API.

    Args:
        schema: A :class:`SchemaRegistry`, a built :class:`Schema`, or the
            declarative schema dict.
        config: Request settings. ``config.api_url`` overrides the schema's
            ``apiUrl`` and ``config.headers`` extend the schema's headers.
        transport: The transport to use. When omitted an
            :class:`HttpxTransport` is created and closed with the client.
        headers: Extra headers sent with every request (e.g. auth headers);
            these take precedence over config and schema headers.
    """

    def __init__(
        self,
        schema: Union[SchemaRegistry, Schema, Mapping[str, Any]],
        config: Optional[ClientConfig] = None,
        transport: Optional[Transport] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        self._registry = schema if isinstance(schema, SchemaRegistry) else SchemaRegistry(schema)
        self._config = config or ClientConfig()
        self._transport = transport or HttpxTransport(self._config)
        self._owns_transport = transport is None

        self._api_url = (
            self._config.api_url if self._config.api_url is not None else self._registry.api_url
        )
        self._headers = {**self._registry.headers, **self._config.headers, **(headers or {})}

        self._store = RecordStore()
        self._normalizer = Normalizer(self._registry, self._store)
        self._query = QueryEngine(self._registry, self._store)
        logger.debug("Amygdala created for %s with types %s", self._api_url, self._registry.type_names)

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> Amygdala:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_transport:
            await self._transport.aclose()

    @property
    def registry(self) -> SchemaRegistry:
        return self._registry

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def api_url(self) -> str:
        return self._api_url

    # ------------------------------------------------------------------ #
    # Remote operations
    # ------------------------------------------------------------------ #

    async def get(
        self,
        type_name: str,
        params: Optional[dict[str, Any]] = None,
        url: Optional[str] = None,
    ) -> None:
        """GET the type's location (or *url*) and ingest the response.

        Args:
            type_name: A declared type.
            params: Query-string parameters.
            url: Location override; relative paths are joined to ``api_url``.

        Raises:
            UnknownTypeError: Before any request, if the type is undeclared
                (or has no location and no override was given).
        """
        logger.debug("Amygdala.get %s params=%r url=%s", type_name, params, url)
        target = self._collection_url(type_name, url)
        response = await self._transport.request(
            "GET", target, params=params, headers=dict(self._headers)
        )
        self._normalizer.ingest(type_name, response)

    async def add(self, type_name: str, obj: Mapping[str, Any], url: Optional[str] = None) -> None:
        """POST *obj* as JSON to the type's location (or *url*) and ingest the response."""
        logger.debug("Amygdala.add %s %r url=%s", type_name, obj, url)
        target = self._collection_url(type_name, url)
        response = await self._transport.request(
            "POST", target, data=json.dumps(obj), headers=dict(self._headers)
        )
        self._normalizer.ingest(type_name, response)

    async def update(self, type_name: str, obj: Mapping[str, Any]) -> None:
        """PUT *obj* as JSON to its own location and ingest the response.

        Raises:
            UnknownTypeError: If the type is undeclared.
            MissingIdentityError: If *obj* lacks a usable identity value.
        """
        logger.debug("Amygdala.update %s %r", type_name, obj)
        identity = self._require_identity(type_name, obj)
        target = self._object_url(type_name, identity)
        response = await self._transport.request(
            "PUT", target, data=json.dumps(obj), headers=dict(self._headers)
        )
        self._normalizer.ingest(type_name, response)

    async def remove(self, type_name: str, obj: Mapping[str, Any]) -> None:
        """DELETE *obj* at its own location and evict it from the store.

        Records of other types that reference *obj* keep the dangling
        identity.

        Raises:
            UnknownTypeError: If the type is undeclared.
            MissingIdentityError: If *obj* lacks a usable identity value.
        """
        logger.debug("Amygdala.remove %s %r", type_name, obj)
        identity = self._require_identity(type_name, obj)
        target = self._object_url(type_name, identity)
        await self._transport.request("DELETE", target, headers=dict(self._headers))
        self._store.evict(type_name, identity)

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def find_all(self, type_name: str, query: Optional[Mapping[str, Any]] = None) -> list[Record]:
        """See :meth:`amygdala.query.QueryEngine.find_all`."""
        return self._query.find_all(type_name, query)

    def find(self, type_name: str, query: Any = None) -> Optional[Record]:
        """See :meth:`amygdala.query.QueryEngine.find`."""
        return self._query.find(type_name, query)

    def ingest(self, type_name: str, payload: Any) -> None:
        """Normalize a payload obtained elsewhere into the store."""
        self._normalizer.ingest(type_name, payload)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _collection_url(self, type_name: str, override: Optional[str]) -> str:
        if override:
            self._registry.resolve(type_name)
            return join_url(self._api_url, override)
        return self._registry.url_for(type_name, self._api_url)

    def _object_url(self, type_name: str, identity: Hashable) -> str:
        """Location of a single object.

        A path or absolute URL identity is the location itself; any other
        identity is appended to the type's collection URL.
        """
        if isinstance(identity, str) and (identity.startswith("/") or "://" in identity):
            return join_url(self._api_url, identity)
        collection = self._registry.url_for(type_name, self._api_url)
        suffix = "/" if collection.endswith("/") else ""
        return f"{collection.rstrip('/')}/{quote(str(identity), safe='')}{suffix}"

    def _require_identity(self, type_name: str, obj: Mapping[str, Any]) -> Hashable:
        attribute = self._registry.identity_of(type_name)
        identity = obj.get(attribute) if isinstance(obj, Mapping) else None
        if identity is None or identity == "":
            raise MissingIdentityError(
                f"Missing {attribute!r} attribute. The identity attribute is "
                f"required to update or remove a {type_name} object."
            )
        try:
            hash(identity)
        except TypeError:
            raise MissingIdentityError(
                f"{type_name}.{attribute} must be a hashable identity value, "
                f"got {type(identity).__name__}"
            ) from None
        return identity
