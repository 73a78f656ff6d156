"""Application entry point for the hash-file API."""

from __future__ import annotations

import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.config_router import router as config_router
from api.dedup_router import router as dedup_router
from api.hash_router import router as hash_router
from api.verify_router import router as verify_router
from utils.application_state import install_container
from utils.config_loader import CONFIG_ENV_VAR, load_config, resolve_config_path
from utils.service_container import build_service_container

app = FastAPI(title="hash-file", version="0.3.0")


def _initialize_services(application: FastAPI) -> None:
    config_path = resolve_config_path(os.getenv(CONFIG_ENV_VAR))
    config_data = load_config(config_path)
    container = build_service_container(config_data, config_path=config_path)
    install_container(application, container)


_initialize_services(app)
app.include_router(hash_router)
app.include_router(verify_router)
app.include_router(dedup_router)
app.include_router(config_router)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/config", response_class=JSONResponse)
async def configuration_snapshot(request: Request) -> JSONResponse:
    """Expose the effective configuration for convenience tooling."""

    config = getattr(request.app.state, "config", None)
    if not isinstance(config, dict):
        config = load_config()
    return JSONResponse(config)


__all__ = ["app"]
