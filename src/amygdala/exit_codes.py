"""Numeric process exit codes used by the ``amygdala`` CLI.

Each constant maps to an error category and is referenced by the
corresponding :class:`~amygdala.exceptions.AmygdalaError` subclass.
Shell wrappers can inspect the exit code to tell failure classes apart
without parsing stderr.

Example::

    $ amygdala fetch schema.yaml users
    $ echo $?
    4   # EXIT_NOT_FOUND -- the type's location returned HTTP 404
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Invalid arguments: unknown type, bad query, or missing identity."""

EXIT_AUTH_FAILURE = 3
"""The remote API rejected the credentials (HTTP 401/403)."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The remote API returned an HTTP error other than 401/403/404."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_SCHEMA_ERROR = 7
"""The schema definition could not be loaded or is invalid."""

EXIT_MALFORMED_PAYLOAD = 8
"""A response payload could not be decoded or normalized."""
