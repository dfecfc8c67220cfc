"""Tests for pydantic-settings configuration groups."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from devrelay.config.settings import (
    GatewaySettings,
    GeocoderSettings,
    LoggingSettings,
    Settings,
    ToolSettings,
)


class TestGatewaySettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("PORT", raising=False)
        s = GatewaySettings()
        assert s.port == 3001
        assert s.host == "0.0.0.0"

    def test_port_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PORT", "8080")
        assert GatewaySettings().port == 8080

    def test_port_by_field_name(self) -> None:
        assert GatewaySettings(port=9000).port == 9000

    def test_port_out_of_range(self) -> None:
        with pytest.raises(ValidationError):
            GatewaySettings(port=70000)


class TestToolSettings:
    def test_defaults(self) -> None:
        s = ToolSettings()
        assert s.default_priority == "medium"
        assert s.strict_validation is False
        assert s.tasks_dir == Path("tasks")
        assert s.project_root == Path(".")
        assert s.search_root == Path(".")

    @pytest.mark.parametrize("var", ["TOOLS_TASKS_DIR", "TOOLS_PROJECT_ROOT", "TOOLS_SEARCH_ROOT"])
    def test_empty_path_disables(self, var: str, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(var, "")
        field = var.removeprefix("TOOLS_").lower()
        assert getattr(ToolSettings(), field) is None

    def test_path_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOOLS_SEARCH_ROOT", "/srv/checkout")
        assert ToolSettings().search_root == Path("/srv/checkout")

    def test_invalid_default_priority(self) -> None:
        with pytest.raises(ValidationError, match="TOOLS_DEFAULT_PRIORITY must be one of"):
            ToolSettings(default_priority="critical")

    def test_strict_validation_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOOLS_STRICT_VALIDATION", "true")
        assert ToolSettings().strict_validation is True


class TestLoggingSettings:
    def test_level_normalized(self) -> None:
        assert LoggingSettings(level="debug").level == "DEBUG"

    def test_invalid_level(self) -> None:
        with pytest.raises(ValidationError, match="LOG_LEVEL must be one of"):
            LoggingSettings(level="chatty")

    def test_json_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_JSON", "1")
        assert LoggingSettings().json_output is True


class TestRootSettings:
    def test_geocoder_disabled_by_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("GEOCODER_URL", raising=False)
        assert GeocoderSettings().url == ""
        assert Settings().geocoder.url == ""
