"""Schema file loading and client configuration resolution.

* **Schema files** -- :func:`load_schema_file` reads the declarative schema
  from a JSON or YAML file. The format is chosen from the file extension
  and falls back to trying JSON, then YAML.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables and the schema file into a
  :class:`~amygdala.models.ClientConfig`. Highest wins::

      CLI flag  >  AMYGDALA_* env var  >  schema file  >  defaults

* **Pairs** -- :func:`parse_pairs` turns repeated ``key=value`` CLI options
  into a dict.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from pydantic import ValidationError

from amygdala.exceptions import ConfigError, SchemaError
from amygdala.models import ClientConfig

ENV_API_URL = "AMYGDALA_API_URL"
ENV_TIMEOUT = "AMYGDALA_TIMEOUT"
ENV_VERIFY_SSL = "AMYGDALA_VERIFY_SSL"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


# --- Schema files ---


def load_schema_file(path: str | Path) -> dict[str, Any]:
    """Load a declarative schema from a JSON or YAML file.

    Args:
        path: Path to a ``.json``, ``.yaml`` or ``.yml`` file. Other
            extensions are parsed by content.

    Returns:
        The schema dict, ready for :class:`~amygdala.schema.SchemaRegistry`.

    Raises:
        SchemaError: If the file is missing, empty, unreadable, or does not
            contain a JSON/YAML object.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise SchemaError(f"Schema file not found: {path}")

    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SchemaError(f"Failed to read schema file {path}: {exc}") from exc

    if not content.strip():
        raise SchemaError(f"Schema file is empty: {path}")

    suffix = file_path.suffix.lower()
    hint = ""
    if suffix == ".json":
        hint = "json"
    elif suffix in (".yaml", ".yml"):
        hint = "yaml"

    return _parse_content(content, hint=hint)


def _parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Parse content as JSON or YAML.

    Tries JSON first unless *hint* is ``"yaml"``; an explicit ``"json"``
    hint does not fall back to YAML.
    """
    json_error: Exception | None = None

    if hint != "yaml":
        try:
            result = json.loads(content)
        except json.JSONDecodeError as exc:
            if hint == "json":
                raise SchemaError(f"Invalid JSON: {exc}") from exc
            json_error = exc
        else:
            return _require_mapping(result)

    try:
        result = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        msg = "Failed to parse schema as JSON or YAML"
        if json_error:
            msg += f"\n  JSON error: {json_error}"
        msg += f"\n  YAML error: {exc}"
        raise SchemaError(msg) from exc
    return _require_mapping(result)


def _require_mapping(result: Any) -> dict[str, Any]:
    if not isinstance(result, dict):
        got = type(result).__name__ if result is not None else "empty document"
        raise SchemaError(f"Schema must be a JSON/YAML object (got {got})")
    return result


# --- Precedence resolution ---


def resolve_config(
    cli_api_url: Optional[str] = None,
    cli_headers: Optional[Mapping[str, str]] = None,
    schema_data: Optional[Mapping[str, Any]] = None,
) -> ClientConfig:
    """Resolve the effective :class:`ClientConfig`.

    Args:
        cli_api_url: ``--api-url`` flag value (highest precedence).
        cli_headers: ``--header`` values, merged over the schema's headers.
        schema_data: The declarative schema dict, consulted for ``apiUrl``
            and ``headers``.

    Raises:
        ConfigError: If an environment variable holds an invalid value.
    """
    schema_data = schema_data or {}

    api_url = cli_api_url or os.environ.get(ENV_API_URL) or schema_data.get("apiUrl")

    headers: dict[str, str] = {}
    schema_headers = schema_data.get("headers")
    if isinstance(schema_headers, Mapping):
        headers.update({str(k): str(v) for k, v in schema_headers.items()})
    headers.update(cli_headers or {})

    values: dict[str, Any] = {"api_url": api_url, "headers": headers}

    timeout = os.environ.get(ENV_TIMEOUT)
    if timeout:
        try:
            values["timeout"] = float(timeout)
        except ValueError:
            raise ConfigError(f"{ENV_TIMEOUT} must be a number, got {timeout!r}") from None

    verify = os.environ.get(ENV_VERIFY_SSL)
    if verify:
        values["verify_ssl"] = _parse_bool(ENV_VERIFY_SSL, verify)

    try:
        return ClientConfig(**values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid client configuration: {exc}") from exc


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean (true/false), got {value!r}")


# --- CLI pairs ---


def parse_pairs(
    pairs: Optional[list[str]],
    option: str = "option",
    coerce: bool = True,
) -> dict[str, Any]:
    """Parse ``key=value`` strings into a dict.

    With *coerce*, values that parse as JSON scalars (``true``, ``42``,
    ``null``) are converted; anything else is kept as the raw string.

    Example::

        parse_pairs(["active=true", "name=Amy"])   # {"active": True, "name": "Amy"}

    Raises:
        ConfigError: If a pair has no ``=`` or an empty key.
    """
    result: dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, raw = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ConfigError(f"Invalid {option} {pair!r}: expected key=value")
        result[key] = coerce_scalar(raw) if coerce else raw
    return result


def coerce_scalar(raw: str) -> Any:
    """Return *raw* as a JSON scalar (``42``, ``true``, ``null``) when it is one, else unchanged."""
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        return raw
    if isinstance(value, (dict, list)):
        return raw
    return value
