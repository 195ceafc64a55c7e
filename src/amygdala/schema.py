"""Schema registry: typed lookup over the declared resource types.

A schema is declared as a plain dict (usually loaded from JSON or YAML by
:func:`~amygdala.config.load_schema_file`) in the following shape::

    {
        "apiUrl": "https://api.example.com",
        "idAttribute": "url",
        "headers": {"X-Token": "abc"},
        "users": {"url": "/api/v2/user/", "foreignKey": {"team": "teams"}},
        "teams": {"url": "/api/v2/team/", "oneToMany": {"members": "members"}},
        "members": {"url": "/api/v2/member/"},
    }

Top-level keys other than ``apiUrl``, ``idAttribute`` and ``headers`` name
resource types. Relation maps (``oneToMany``/``toMany`` and
``foreignKey``/``toOne``) are converted to
:class:`~amygdala.models.Relation` variants once, by :func:`build_schema`,
so the normalizer never re-interprets the raw dict.

Relations may form cycles (``teams`` embeds ``users`` which embeds
``teams``); that is safe because normalization recursion follows the
payload, not the schema.
"""

from __future__ import annotations

from typing import Any, Mapping, Union

from pydantic import ValidationError

from amygdala.exceptions import SchemaError, UnknownTypeError
from amygdala.models import DEFAULT_ID_ATTRIBUTE, Relation, RelationKind, Schema, TypeConfig

_RESERVED_KEYS = frozenset({"apiUrl", "idAttribute", "headers"})

_RELATION_KEYS: dict[str, RelationKind] = {
    "oneToMany": RelationKind.TO_MANY,
    "toMany": RelationKind.TO_MANY,
    "foreignKey": RelationKind.TO_ONE,
    "toOne": RelationKind.TO_ONE,
}


def join_url(base: str, location: str) -> str:
    """Resolve *location* against *base*.

    Locations starting with ``/`` are appended to *base*; anything else
    (an absolute URL) is returned unchanged.

    Example::

        join_url("https://api.example.com/", "/users/")  # https://api.example.com/users/
        join_url("https://api.example.com", "https://other.example.com/x")
    """
    if location.startswith("/"):
        return base.rstrip("/") + location
    return location


def build_schema(data: Mapping[str, Any]) -> Schema:
    """Convert the declarative schema dict into an immutable :class:`Schema`.

    Args:
        data: The declarative schema (see module docstring).

    Returns:
        The typed schema with every relation resolved to a
        :class:`~amygdala.models.Relation`.

    Raises:
        SchemaError: If a type entry is not a mapping, a relation map is
            malformed, or a relation points at an undeclared type.
    """
    if not isinstance(data, Mapping):
        raise SchemaError(f"Schema must be a mapping (got {type(data).__name__})")

    types: dict[str, TypeConfig] = {}
    for name, entry in data.items():
        if name in _RESERVED_KEYS:
            continue
        if not isinstance(entry, Mapping):
            raise SchemaError(
                f"Schema entry for type {name!r} must be a mapping "
                f"(got {type(entry).__name__})"
            )
        types[name] = _build_type(name, entry)

    for config in types.values():
        for relation in config.relations:
            if relation.related_type not in types:
                raise SchemaError(
                    f"Relation {config.name}.{relation.attribute} points at "
                    f"undeclared type {relation.related_type!r}"
                )

    headers = data.get("headers") or {}
    if not isinstance(headers, Mapping):
        raise SchemaError("Schema 'headers' must be a mapping")

    try:
        return Schema(
            api_url=data.get("apiUrl") or "",
            id_attribute=data.get("idAttribute") or DEFAULT_ID_ATTRIBUTE,
            headers={str(k): str(v) for k, v in headers.items()},
            types=types,
        )
    except ValidationError as exc:
        raise SchemaError(f"Invalid schema: {exc}") from exc


def _build_type(name: str, entry: Mapping[str, Any]) -> TypeConfig:
    """Build one :class:`TypeConfig` from its declarative entry."""
    parse = entry.get("parse")
    if parse is not None and not callable(parse):
        raise SchemaError(f"{name}.parse must be callable")

    try:
        relations: list[Relation] = []
        for key, kind in _RELATION_KEYS.items():
            mapping = entry.get(key)
            if mapping is None:
                continue
            if not isinstance(mapping, Mapping):
                raise SchemaError(f"{name}.{key} must map attribute names to type names")
            for attribute, related_type in mapping.items():
                relations.append(
                    Relation(kind=kind, attribute=attribute, related_type=related_type)
                )

        return TypeConfig(
            name=name,
            url=entry.get("url"),
            id_attribute=entry.get("idAttribute"),
            relations=tuple(relations),
            parse=parse,
        )
    except ValidationError as exc:
        raise SchemaError(f"Invalid schema entry for type {name!r}: {exc}") from exc


class SchemaRegistry:
    """Read-only lookup over a :class:`~amygdala.models.Schema`.

    Args:
        schema: A built :class:`Schema`, or a declarative dict which is
            passed through :func:`build_schema`.

    Example::

        registry = SchemaRegistry({"apiUrl": "https://x", "users": {"url": "/users/"}})
        registry.resolve("users").url      # "/users/"
        registry.identity_of("users")      # "url"
        registry.url_for("users")          # "https://x/users/"
    """

    def __init__(self, schema: Union[Schema, Mapping[str, Any]]) -> None:
        if not isinstance(schema, Schema):
            schema = build_schema(schema)
        self._schema = schema

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SchemaRegistry:
        """Build a registry from the declarative dict format."""
        return cls(build_schema(data))

    @property
    def schema(self) -> Schema:
        return self._schema

    @property
    def api_url(self) -> str:
        return self._schema.api_url

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._schema.headers)

    @property
    def type_names(self) -> list[str]:
        """Declared type names, in declaration order."""
        return list(self._schema.types)

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._schema.types

    def resolve(self, type_name: str) -> TypeConfig:
        """Return the :class:`TypeConfig` for *type_name*.

        Raises:
            UnknownTypeError: If *type_name* is not declared.
        """
        try:
            return self._schema.types[type_name]
        except KeyError:
            raise UnknownTypeError(type_name, self.type_names) from None

    def identity_of(self, type_name: str) -> str:
        """Return the identity attribute for *type_name* (override or global default)."""
        return self.resolve(type_name).id_attribute or self._schema.id_attribute

    def url_for(self, type_name: str, api_url: str | None = None) -> str:
        """Return the absolute collection URL for *type_name*.

        Args:
            type_name: A declared type.
            api_url: Base URL override; defaults to the schema's ``apiUrl``.

        Raises:
            UnknownTypeError: If the type is undeclared or has no ``url``.
        """
        config = self.resolve(type_name)
        if not config.url:
            raise UnknownTypeError(type_name, [n for n, c in self._schema.types.items() if c.url])
        base = self._schema.api_url if api_url is None else api_url
        return join_url(base, config.url)
