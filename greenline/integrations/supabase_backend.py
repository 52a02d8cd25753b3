"""Supabase client construction for the hosted table backend."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from supabase import AsyncClientOptions, acreate_client

from greenline.core.config import BackendSettings

LOGGER = logging.getLogger(__name__)


def mask_secret(value: str | None, visible: int = 4) -> str:
    """Return *value* with everything but its last *visible* characters hidden."""

    if not value:
        return "undefined"
    return "***" + value[-visible:]


@dataclass(slots=True)
class SupabaseClientFactory:
    """Creates the process-wide supabase-py async client.

    Sessions are neither persisted nor refreshed: the server authenticates with
    a service-role (or anon) key, not an end-user session.
    """

    settings: BackendSettings

    async def create(self) -> Any:
        url, key = self.settings.resolve_credentials()
        LOGGER.info(
            "Connexion à Supabase (url=%s key=%s)",
            mask_secret(url, visible=10),
            mask_secret(key),
        )
        options = AsyncClientOptions(auto_refresh_token=False, persist_session=False)
        client = await acreate_client(url, key, options=options)
        LOGGER.info("Client Supabase initialisé avec succès")
        return client
