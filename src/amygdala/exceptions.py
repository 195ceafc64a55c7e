"""Exception hierarchy for amygdala.

All exceptions inherit from :class:`AmygdalaError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`amygdala.exit_codes`.
Library callers catch the specific subclasses; the CLI entry point in
:func:`amygdala.app.main` catches ``AmygdalaError`` and exits with the
matching code.

Argument-validation errors (:class:`UnknownTypeError`,
:class:`InvalidQueryError`, :class:`MissingIdentityError`) are raised
before any I/O or store mutation. :class:`TransportError` subclasses are
raised by the transport and propagate through the client unchanged.

Subclass hierarchy::

    AmygdalaError (exit 1)
    +-- SchemaError             (exit 7)
    |   +-- UnknownTypeError    (exit 2)
    +-- InvalidQueryError       (exit 2)
    +-- MissingIdentityError    (exit 2)
    +-- MalformedPayloadError   (exit 8)
    +-- ConfigError             (exit 1)
    +-- TransportError          (exit 6)
        +-- AuthError           (exit 3)
        +-- NotFoundError       (exit 4)
        +-- ServerError         (exit 5)
        +-- ConnectionError_    (exit 6)
"""

from amygdala.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_MALFORMED_PAYLOAD,
    EXIT_NOT_FOUND,
    EXIT_SCHEMA_ERROR,
    EXIT_SERVER_ERROR,
)


class AmygdalaError(Exception):
    """Base exception for all amygdala errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class SchemaError(AmygdalaError):
    """Raised when a schema definition is invalid or cannot be loaded."""

    exit_code = EXIT_SCHEMA_ERROR


class UnknownTypeError(SchemaError):
    """Raised when a type name is not declared in the schema.

    Attributes:
        type_name: The rejected type name.
    """

    exit_code = EXIT_INVALID_USAGE

    def __init__(self, type_name: str, known: list[str] | None = None):
        self.type_name = type_name
        message = f"Invalid type {type_name!r}."
        if known is not None:
            message += " Acceptable types are: " + ", ".join(known)
        super().__init__(message)


class InvalidQueryError(AmygdalaError):
    """Raised when a query is neither ``None``, a mapping, nor an identity value."""

    exit_code = EXIT_INVALID_USAGE


class MissingIdentityError(AmygdalaError):
    """Raised when ``update``/``remove`` get an object without its identity attribute."""

    exit_code = EXIT_INVALID_USAGE


class MalformedPayloadError(AmygdalaError):
    """Raised when a response payload cannot be decoded or normalized."""

    exit_code = EXIT_MALFORMED_PAYLOAD


class ConfigError(AmygdalaError):
    """Raised for configuration problems (bad env values, malformed ``key=value`` pairs)."""

    exit_code = EXIT_GENERIC_FAILURE


class TransportError(AmygdalaError):
    """Base class for failures raised by a :class:`~amygdala.transport.Transport`."""

    exit_code = EXIT_CONNECTION_ERROR


class AuthError(TransportError):
    """Raised when the API returns HTTP 401 or 403."""

    exit_code = EXIT_AUTH_FAILURE


class NotFoundError(TransportError):
    """Raised when the API returns HTTP 404."""

    exit_code = EXIT_NOT_FOUND


class ServerError(TransportError):
    """Raised for any other HTTP error status (5xx and unmapped 4xx)."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(TransportError):
    """Raised when no usable response arrives (network, timeout, protocol or redirect failures).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR
