"""Tests for ClauConfig."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from clau._errors import ConfigError
from clau.config import DEFAULT_TIMEOUT_SECS, ClauConfig, StreamFormat
from clau.types import ToolPermission


class TestClauConfig:
    """Defaults, validation and derived copies."""

    def test_defaults(self):
        config = ClauConfig()
        assert config.stream_format is StreamFormat.TEXT
        assert config.timeout_secs == DEFAULT_TIMEOUT_SECS
        assert config.binary == "claude"
        assert config.allowed_tools is None
        assert config.stream_buffer_size == 100

    def test_cli_path_wins_over_binary_name(self):
        assert ClauConfig(cli_path="/opt/claude", binary_name="other").binary == "/opt/claude"

    def test_tool_permissions_are_formatted(self):
        config = ClauConfig(allowed_tools=[ToolPermission.bash("ls"), ToolPermission.all(), "Read"])
        assert config.allowed_tools == ("bash:ls", "*", "Read")

    def test_is_frozen(self):
        config = ClauConfig()
        with pytest.raises(ValidationError):
            config.model = "other"  # type: ignore[misc]

    @pytest.mark.parametrize("field, value", [("max_tokens", 0), ("timeout_secs", -1), ("stream_buffer_size", 0)])
    def test_rejects_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            ClauConfig(**{field: value})

    def test_rejects_unknown_fields(self):
        with pytest.raises(ValidationError):
            ClauConfig(non_interactive=True)  # type: ignore[call-arg]

    def test_replace(self):
        config = ClauConfig(model="a", mcp_config_path=Path("/tmp/mcp.json"))
        updated = config.replace(stream_format="stream-json")
        assert updated.stream_format is StreamFormat.STREAM_JSON
        assert updated.model == "a"
        assert updated.mcp_config_path == Path("/tmp/mcp.json")
        assert config.stream_format is StreamFormat.TEXT

    def test_replace_invalid(self):
        with pytest.raises(ConfigError):
            ClauConfig().replace(max_tokens=-5)

    def test_timeout_can_be_disabled(self):
        assert ClauConfig(timeout_secs=None).timeout_secs is None


class TestStreamFormat:
    @pytest.mark.parametrize("value", ["stream-json", "stream_json", "STREAM_JSON", "streamjson"])
    def test_spellings(self, value):
        assert StreamFormat(value) is StreamFormat.STREAM_JSON

    def test_unknown(self):
        with pytest.raises(ValueError):
            StreamFormat("xml")


class TestFromEnv:
    """Environment configuration."""

    def test_reads_variables(self, monkeypatch):
        monkeypatch.setenv("CLAU_MODEL", "claude-sonnet-4")
        monkeypatch.setenv("CLAU_TIMEOUT_SECS", "12.5")
        monkeypatch.setenv("CLAU_CLI_PATH", "/opt/claude")
        monkeypatch.setenv("CLAU_OUTPUT_FORMAT", "json")

        config = ClauConfig.from_env()
        assert config.model == "claude-sonnet-4"
        assert config.timeout_secs == 12.5
        assert config.binary == "/opt/claude"
        assert config.stream_format is StreamFormat.JSON

    def test_alternate_format_spelling(self, monkeypatch):
        monkeypatch.setenv("CLAU_OUTPUT_FORMAT", "stream_json")
        assert ClauConfig.from_env().stream_format is StreamFormat.STREAM_JSON

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("CLAU_MODEL", "from-env")
        assert ClauConfig.from_env(model="explicit").model == "explicit"

    def test_invalid_value(self, monkeypatch):
        monkeypatch.setenv("CLAU_TIMEOUT_SECS", "soon")
        with pytest.raises(ConfigError):
            ClauConfig.from_env()

    def test_empty_environment(self, monkeypatch):
        for name in ("CLAU_MODEL", "CLAU_TIMEOUT_SECS", "CLAU_CLI_PATH", "CLAU_OUTPUT_FORMAT"):
            monkeypatch.delenv(name, raising=False)
        assert ClauConfig.from_env() == ClauConfig()
