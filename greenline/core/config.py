"""Utilities for loading application settings from YAML configuration files."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from greenline.sql.binding import ParameterBinding
from greenline.sql.errors import MISSING_BACKEND_CONFIG, BackendConfigurationError

SUPPORTED_PROVIDERS = {"supabase", "memory"}


@dataclass(slots=True)
class BackendSettings:
    provider: str = "supabase"
    url_env: str = "SUPABASE_URL"
    key_env: str = "SUPABASE_SERVICE_ROLE_KEY"
    fallback_key_env: str | None = "SUPABASE_ANON_KEY"
    probe_table: str = "conversations"

    def resolve_credentials(self) -> tuple[str, str]:
        """Return ``(url, key)``; the service-role key wins over the fallback."""

        url = os.getenv(self.url_env, "").strip()
        key = os.getenv(self.key_env, "").strip()
        if not key and self.fallback_key_env:
            key = os.getenv(self.fallback_key_env, "").strip()
        if not url or not key:
            raise BackendConfigurationError(MISSING_BACKEND_CONFIG)
        return url, key


@dataclass(slots=True)
class ShimSettings:
    parameter_binding: ParameterBinding = ParameterBinding.PLACEHOLDER
    check_connection_on_startup: bool = True


@dataclass(slots=True)
class PathsSettings:
    query_logs_dir: str | None = None


@dataclass(slots=True)
class ServerSettings:
    host: str = "127.0.0.1"
    port: int = 3001
    frontend_url: str = "http://localhost:5173"


@dataclass(slots=True)
class Settings:
    backend: BackendSettings = field(default_factory=BackendSettings)
    shim: ShimSettings = field(default_factory=ShimSettings)
    paths: PathsSettings | None = None
    server: ServerSettings = field(default_factory=ServerSettings)


def _load_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def load_settings(path: str | Path) -> Settings:
    """Read configuration from *path* and return structured settings."""

    config_path = Path(path)
    raw = _load_yaml(config_path)

    backend_raw = raw.get("backend") or {}
    provider = str(backend_raw.get("provider", "supabase")).lower()
    if provider not in SUPPORTED_PROVIDERS:
        raise ValueError(
            f"Unknown backend provider '{provider}'. Expected one of: {', '.join(sorted(SUPPORTED_PROVIDERS))}"
        )
    fallback_key_env = backend_raw.get("fallback_key_env", "SUPABASE_ANON_KEY")
    backend = BackendSettings(
        provider=provider,
        url_env=str(backend_raw.get("url_env", "SUPABASE_URL")),
        key_env=str(backend_raw.get("key_env", "SUPABASE_SERVICE_ROLE_KEY")),
        fallback_key_env=str(fallback_key_env) if fallback_key_env else None,
        probe_table=str(backend_raw.get("probe_table", "conversations")),
    )

    shim_raw = raw.get("shim") or {}
    shim = ShimSettings(
        parameter_binding=ParameterBinding.parse(shim_raw.get("parameter_binding", "placeholder")),
        check_connection_on_startup=bool(shim_raw.get("check_connection_on_startup", True)),
    )

    paths_raw: dict[str, Any] | None = raw.get("paths")
    paths = None
    if paths_raw:
        query_logs_dir = paths_raw.get("query_logs_dir")
        paths = PathsSettings(query_logs_dir=str(query_logs_dir) if query_logs_dir else None)

    server_raw = raw.get("server") or {}
    server = ServerSettings(
        host=str(server_raw.get("host", "127.0.0.1")),
        port=int(server_raw.get("port", 3001)),
        frontend_url=str(server_raw.get("frontend_url", "http://localhost:5173")),
    )

    return Settings(backend=backend, shim=shim, paths=paths, server=server)
