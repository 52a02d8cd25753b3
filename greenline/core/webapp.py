"""FastAPI surface exposing the SQL shim to the GreenLine Pro frontend."""

from __future__ import annotations

import argparse
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from greenline.core.config import Settings, load_settings
from greenline.core.dependencies import ShimDependencies, build_dependencies
from greenline.core.logging_utils import configure_logging, utc_now_iso
from greenline.sql.errors import BackendError, QueryError


LOGGER = logging.getLogger(__name__)


class QueryRequest(BaseModel):
    sql: str = Field(..., min_length=1)
    params: list[Any] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str
    probe_table: str
    error: str | None = None


def _truncate_for_log(value: str, limit: int = 200) -> str:
    text = " ".join(value.split())
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def _dependencies(request: Request) -> ShimDependencies:
    return request.app.state.dependencies


def create_app(
    config_path: str = "configs/dev.yaml",
    *,
    settings: Settings | None = None,
    backend: Any | None = None,
) -> FastAPI:
    """Build the application; *backend* overrides the configured table backend."""

    LOGGER.info("Initialising web application with config '%s'", config_path)
    if settings is None:
        settings = load_settings(config_path)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        dependencies = await build_dependencies(settings, backend=backend)
        app.state.dependencies = dependencies
        if settings.shim.check_connection_on_startup:
            try:
                await dependencies.shim.check_connection()
            except BackendError as exc:
                LOGGER.warning("Backend unreachable at startup: %s", exc.message)
        try:
            yield
        finally:
            await dependencies.shim.close()

    app = FastAPI(title="GreenLine Pro API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.server.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def index() -> dict[str, str]:
        return {
            "message": "API GreenLine Pro opérationnelle",
            "status": "actif",
            "timestamp": utc_now_iso(),
        }

    @app.get("/api/health", response_model=HealthResponse)
    async def healthcheck(request: Request) -> Any:
        shim = _dependencies(request).shim
        try:
            await shim.check_connection()
        except BackendError as exc:
            payload = HealthResponse(status="error", probe_table=shim.probe_table, error=exc.message)
            return JSONResponse(payload.model_dump(), status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
        return HealthResponse(status="ok", probe_table=shim.probe_table)

    @app.post("/api/query", response_model=None)
    async def run_query(payload: QueryRequest, request: Request) -> JSONResponse:
        LOGGER.info("Query requested: %s", _truncate_for_log(payload.sql))
        shim = _dependencies(request).shim
        try:
            result = await shim.query(payload.sql, payload.params)
        except BackendError as exc:
            return JSONResponse(jsonable_encoder(exc.to_dict()), status_code=status.HTTP_502_BAD_GATEWAY)
        except QueryError as exc:
            return JSONResponse(jsonable_encoder(exc.to_dict()), status_code=status.HTTP_400_BAD_REQUEST)
        return JSONResponse(jsonable_encoder(result.to_dict()))

    return app


def main() -> None:
    parser = argparse.ArgumentParser(description="Launch the GreenLine Pro API server")
    parser.add_argument("--config", default="configs/dev.yaml", help="Path to configuration file")
    parser.add_argument("--host", default=None, help="Interface to bind the server")
    parser.add_argument("--port", type=int, default=None, help="Port to bind the server")
    parser.add_argument("--debug", action="store_true", help="Log every SQL statement")
    args = parser.parse_args()

    configure_logging(debug=args.debug)
    settings = load_settings(args.config)
    app = create_app(config_path=args.config, settings=settings)

    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - defensive
        raise SystemExit("uvicorn must be installed to run the API server") from exc

    host = args.host or settings.server.host
    port = args.port or settings.server.port
    LOGGER.info("Starting uvicorn on %s:%s", host, port)
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
