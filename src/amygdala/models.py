"""Canonical Pydantic models shared across all amygdala modules.

The models fall into two groups:

**Schema models** -- the typed, immutable form of a declarative schema:
    :class:`RelationKind`, :class:`Relation`, :class:`TypeConfig` and
    :class:`Schema`. They are produced once by
    :func:`~amygdala.schema.build_schema` and never mutated afterwards.

**Configuration models** -- request settings for the transport:
    :class:`ClientConfig`.

All schema models are frozen, so a registry built from them can be shared
freely between clients.
"""

from __future__ import annotations

import enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_ID_ATTRIBUTE = "url"
"""Identity attribute used when neither the schema nor the type declares one."""


# --- Schema models ---


class RelationKind(str, enum.Enum):
    """The two relation shapes the normalizer understands."""

    TO_MANY = "to_many"
    TO_ONE = "to_one"


class Relation(BaseModel):
    """A relation declared on a type: ``attribute`` holds ``related_type`` objects.

    For :attr:`RelationKind.TO_MANY` the attribute holds a list of embedded
    objects (or identities once normalized); for :attr:`RelationKind.TO_ONE`
    it holds a single embedded object (or its identity).

    Example::

        Relation(kind=RelationKind.TO_ONE, attribute="team", related_type="teams")
    """

    model_config = ConfigDict(frozen=True)

    kind: RelationKind
    attribute: str
    related_type: str


class TypeConfig(BaseModel):
    """Per-type schema entry.

    ``url`` is the type's collection location, relative to
    :attr:`Schema.api_url` when it starts with ``/``. ``parse`` is an
    optional reshaping callable applied to non-list payloads before they are
    normalized (e.g. to unwrap ``{"results": [...]}`` envelopes).
    """

    model_config = ConfigDict(frozen=True)

    name: str
    url: Optional[str] = Field(default=None, description="Collection location")
    id_attribute: Optional[str] = Field(
        default=None, description="Per-type identity attribute override"
    )
    relations: tuple[Relation, ...] = ()
    parse: Optional[Callable[[Any], Any]] = Field(default=None, exclude=True)

    @property
    def to_many(self) -> tuple[Relation, ...]:
        """Relations of kind :attr:`RelationKind.TO_MANY`, in declaration order."""
        return tuple(r for r in self.relations if r.kind is RelationKind.TO_MANY)

    @property
    def to_one(self) -> tuple[Relation, ...]:
        """Relations of kind :attr:`RelationKind.TO_ONE`, in declaration order."""
        return tuple(r for r in self.relations if r.kind is RelationKind.TO_ONE)


class Schema(BaseModel):
    """The complete, immutable schema handed to a :class:`~amygdala.schema.SchemaRegistry`.

    See Also:
        :func:`~amygdala.schema.build_schema`: Build a ``Schema`` from the
        declarative dict format (``apiUrl``, ``idAttribute``, type entries).
    """

    model_config = ConfigDict(frozen=True)

    api_url: str = Field(default="", description="Base URL joined to relative locations")
    id_attribute: str = Field(default=DEFAULT_ID_ATTRIBUTE)
    headers: dict[str, str] = Field(
        default_factory=dict, description="Headers sent with every request"
    )
    types: dict[str, TypeConfig] = Field(default_factory=dict)


# --- Configuration models ---


class ClientConfig(BaseModel):
    """Request settings used by :class:`~amygdala.transport.HttpxTransport`.

    Resolved by :func:`~amygdala.config.resolve_config` from CLI flags,
    environment variables and the schema file.
    """

    api_url: Optional[str] = Field(
        default=None, description="Override for the schema's apiUrl"
    )
    headers: dict[str, str] = Field(default_factory=dict)
    timeout: float = Field(default=30, gt=0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
