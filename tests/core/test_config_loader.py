"""Tests for loading application settings from YAML."""

# ruff: noqa: PLR2004

from __future__ import annotations

from pathlib import Path

import pytest

from greenline.core.config import BackendSettings, load_settings
from greenline.sql.binding import ParameterBinding
from greenline.sql.errors import MISSING_BACKEND_CONFIG, BackendConfigurationError


def test_load_settings_parses_sections(tmp_path: Path) -> None:
    config_path = tmp_path / "dev.yaml"
    config_path.write_text(
        """
backend:
  provider: Memory
  probe_table: orders
shim:
  parameter_binding: positional
  check_connection_on_startup: false
paths:
  query_logs_dir: /tmp/query-logs
server:
  port: 4000
  frontend_url: https://app.example.com
        """,
        encoding="utf-8",
    )

    settings = load_settings(config_path)

    assert settings.backend.provider == "memory"
    assert settings.backend.probe_table == "orders"
    assert settings.shim.parameter_binding is ParameterBinding.POSITIONAL
    assert settings.shim.check_connection_on_startup is False
    assert settings.paths is not None
    assert settings.paths.query_logs_dir == "/tmp/query-logs"
    assert settings.server.port == 4000
    assert settings.server.host == "127.0.0.1"
    assert settings.server.frontend_url == "https://app.example.com"


def test_load_settings_defaults_for_empty_file(tmp_path: Path) -> None:
    config_path = tmp_path / "empty.yaml"
    config_path.write_text("", encoding="utf-8")

    settings = load_settings(config_path)

    assert settings.backend.provider == "supabase"
    assert settings.backend.key_env == "SUPABASE_SERVICE_ROLE_KEY"
    assert settings.shim.parameter_binding is ParameterBinding.PLACEHOLDER
    assert settings.paths is None
    assert settings.server.port == 3001


def test_load_settings_rejects_unknown_provider(tmp_path: Path) -> None:
    config_path = tmp_path / "bad.yaml"
    config_path.write_text("backend:\n  provider: mysql\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Unknown backend provider 'mysql'"):
        load_settings(config_path)


def test_load_settings_rejects_unknown_binding(tmp_path: Path) -> None:
    config_path = tmp_path / "bad.yaml"
    config_path.write_text("shim:\n  parameter_binding: named\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Unknown parameter binding"):
        load_settings(config_path)


def test_credentials_prefer_service_role_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service-key")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon-key")

    assert BackendSettings().resolve_credentials() == ("https://project.supabase.co", "service-key")


def test_credentials_fall_back_to_anon_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co")
    monkeypatch.delenv("SUPABASE_SERVICE_ROLE_KEY", raising=False)
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon-key")

    assert BackendSettings().resolve_credentials()[1] == "anon-key"


def test_missing_credentials_raise(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service-key")

    with pytest.raises(BackendConfigurationError) as excinfo:
        BackendSettings().resolve_credentials()

    assert str(excinfo.value) == MISSING_BACKEND_CONFIG
