"""amygdala -- a normalizing client-side cache for REST APIs.

Given a schema describing resource types and their relations, amygdala
fetches resources over HTTP, decomposes nested responses into flat per-type
tables keyed by an identity attribute, and answers synchronous queries over
the cached records.

Typical use::

    from amygdala import Amygdala

    schema = {
        "apiUrl": "https://api.example.com",
        "users": {"url": "/api/v2/user/", "foreignKey": {"team": "teams"}},
        "teams": {"url": "/api/v2/team/"},
    }

    async with Amygdala(schema) as cache:
        await cache.get("users")
        cache.find_all("users", {"active": True})

Modules:
    client: The :class:`Amygdala` facade (get/add/update/remove/find/find_all).
    schema: Schema registry and the declarative schema format.
    normalizer: Recursive relation flattening into the record store.
    store: The in-memory per-type record tables.
    query: Predicate and identity lookups.
    transport: httpx-backed asynchronous transport.
    config: Schema file loading and configuration precedence.
    exceptions: Exception hierarchy with exit-code mapping.
    app: Typer CLI (``amygdala types`` / ``amygdala fetch``).
"""

__version__ = "0.1.0"

from amygdala.client import Amygdala  # noqa: E402
from amygdala.exceptions import (  # noqa: E402
    AmygdalaError,
    InvalidQueryError,
    MalformedPayloadError,
    MissingIdentityError,
    UnknownTypeError,
)
from amygdala.schema import SchemaRegistry  # noqa: E402

__all__ = [
    "Amygdala",
    "AmygdalaError",
    "InvalidQueryError",
    "MalformedPayloadError",
    "MissingIdentityError",
    "SchemaRegistry",
    "UnknownTypeError",
    "__version__",
]
