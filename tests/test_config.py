"""Tests for amygdala.config -- schema files, precedence, CLI pairs."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from amygdala.config import (
    ENV_API_URL,
    ENV_TIMEOUT,
    ENV_VERIFY_SSL,
    coerce_scalar,
    load_schema_file,
    parse_pairs,
    resolve_config,
)
from amygdala.exceptions import ConfigError, SchemaError


SCHEMA = {
    "apiUrl": "https://api.example.com",
    "headers": {"X-Api-Version": "2"},
    "users": {"url": "/api/v2/user/", "foreignKey": {"team": "teams"}},
    "teams": {"url": "/api/v2/team/"},
}

SCHEMA_YAML = """\
apiUrl: https://api.example.com
headers:
  X-Api-Version: "2"
users:
  url: /api/v2/user/
  foreignKey:
    team: teams
teams:
  url: /api/v2/team/
"""


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (ENV_API_URL, ENV_TIMEOUT, ENV_VERIFY_SSL):
        monkeypatch.delenv(name, raising=False)


def _write(path: Path, content: str) -> Path:
    path.write_text(content, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Schema files
# ---------------------------------------------------------------------------


class TestLoadSchemaFile:
    def test_json(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "schema.json", json.dumps(SCHEMA))
        assert load_schema_file(path) == SCHEMA

    def test_yaml(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "schema.yaml", SCHEMA_YAML)
        assert load_schema_file(path) == SCHEMA

    def test_yml_extension(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "schema.yml", SCHEMA_YAML)
        assert load_schema_file(str(path))["teams"] == {"url": "/api/v2/team/"}

    def test_unknown_extension_json_content(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "schema.txt", json.dumps(SCHEMA))
        assert load_schema_file(path) == SCHEMA

    def test_unknown_extension_yaml_content(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "schema", SCHEMA_YAML)
        assert load_schema_file(path) == SCHEMA

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SchemaError, match="not found"):
            load_schema_file(tmp_path / "nope.json")

    def test_empty_file(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "schema.json", "  \n")
        with pytest.raises(SchemaError, match="empty"):
            load_schema_file(path)

    def test_invalid_json_with_json_extension(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "schema.json", "apiUrl: x")
        with pytest.raises(SchemaError, match="Invalid JSON"):
            load_schema_file(path)

    def test_unparseable_reports_both_errors(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "schema.conf", "{users: [unclosed")
        with pytest.raises(SchemaError) as exc_info:
            load_schema_file(path)
        assert "JSON error" in str(exc_info.value)
        assert "YAML error" in str(exc_info.value)

    def test_top_level_list_rejected(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "schema.yaml", "- users\n- teams\n")
        with pytest.raises(SchemaError, match="got list"):
            load_schema_file(path)

    def test_exit_code(self, tmp_path: Path) -> None:
        with pytest.raises(SchemaError) as exc_info:
            load_schema_file(tmp_path / "nope.json")
        assert exc_info.value.exit_code == 7


# ---------------------------------------------------------------------------
# Precedence resolution
# ---------------------------------------------------------------------------


class TestResolveConfig:
    def test_defaults(self) -> None:
        config = resolve_config()
        assert config.api_url is None
        assert config.headers == {}
        assert config.timeout == 30
        assert config.verify_ssl is True

    def test_schema_values(self) -> None:
        config = resolve_config(schema_data=SCHEMA)
        assert config.api_url == "https://api.example.com"
        assert config.headers == {"X-Api-Version": "2"}

    def test_env_overrides_schema(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(ENV_API_URL, "https://staging.example.com")
        assert resolve_config(schema_data=SCHEMA).api_url == "https://staging.example.com"

    def test_cli_overrides_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(ENV_API_URL, "https://staging.example.com")
        config = resolve_config(cli_api_url="http://localhost:8000", schema_data=SCHEMA)
        assert config.api_url == "http://localhost:8000"

    def test_cli_headers_merge_over_schema(self) -> None:
        config = resolve_config(
            cli_headers={"X-Api-Version": "3", "Authorization": "Token t"},
            schema_data=SCHEMA,
        )
        assert config.headers == {"X-Api-Version": "3", "Authorization": "Token t"}

    def test_schema_header_values_stringified(self) -> None:
        config = resolve_config(schema_data={"headers": {"X-Api-Version": 2}})
        assert config.headers == {"X-Api-Version": "2"}

    def test_timeout_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(ENV_TIMEOUT, "2.5")
        assert resolve_config().timeout == 2.5

    @pytest.mark.parametrize("value", ["soon", "-1", "0"])
    def test_invalid_timeout(self, monkeypatch: pytest.MonkeyPatch, value: str) -> None:
        monkeypatch.setenv(ENV_TIMEOUT, value)
        with pytest.raises(ConfigError, match="AMYGDALA_TIMEOUT|timeout"):
            resolve_config()

    @pytest.mark.parametrize(
        "value, expected",
        [("false", False), ("0", False), ("No", False), ("true", True), ("on", True)],
    )
    def test_verify_ssl_from_env(
        self, monkeypatch: pytest.MonkeyPatch, value: str, expected: bool
    ) -> None:
        monkeypatch.setenv(ENV_VERIFY_SSL, value)
        assert resolve_config().verify_ssl is expected

    def test_invalid_verify_ssl(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(ENV_VERIFY_SSL, "maybe")
        with pytest.raises(ConfigError, match=ENV_VERIFY_SSL):
            resolve_config()


# ---------------------------------------------------------------------------
# CLI pairs
# ---------------------------------------------------------------------------


class TestParsePairs:
    def test_none(self) -> None:
        assert parse_pairs(None) == {}

    def test_coerces_scalars(self) -> None:
        result = parse_pairs(["active=true", "team=3", "name=Amy", "deleted=null"])
        assert result == {"active": True, "team": 3, "name": "Amy", "deleted": None}

    def test_without_coercion(self) -> None:
        assert parse_pairs(["X-Version=2"], coerce=False) == {"X-Version": "2"}

    def test_value_may_contain_equals(self) -> None:
        assert parse_pairs(["q=a=b"]) == {"q": "a=b"}

    def test_empty_value(self) -> None:
        assert parse_pairs(["name="]) == {"name": ""}

    def test_last_wins(self) -> None:
        assert parse_pairs(["team=1", "team=2"]) == {"team": 2}

    @pytest.mark.parametrize("pair", ["novalue", "=value", " =x"])
    def test_malformed(self, pair: str) -> None:
        with pytest.raises(ConfigError, match="expected key=value"):
            parse_pairs([pair], "filter")


class TestCoerceScalar:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("42", 42),
            ("1.5", 1.5),
            ("false", False),
            ("null", None),
            ('"quoted"', "quoted"),
            ("/api/v2/user/1/", "/api/v2/user/1/"),
            ("[1, 2]", "[1, 2]"),
            ('{"a": 1}', '{"a": 1}'),
        ],
    )
    def test_values(self, raw: str, expected: Any) -> None:
        assert coerce_scalar(raw) == expected
