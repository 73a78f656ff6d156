"""Helpers for wiring the service container into a FastAPI application."""

from __future__ import annotations

import os
from typing import Any

from fastapi import FastAPI

from utils.config_loader import CONFIG_ENV_VAR
from utils.service_container import ServiceContainer


def _cancel_running_scan(candidate: Any) -> None:
    cancel = getattr(candidate, "cancel", None)
    if callable(cancel):
        cancel()


def install_container(app: FastAPI, container: ServiceContainer) -> None:
    """Attach *container* services to *app* and refresh global state."""

    state = app.state

    existing_dedup = getattr(state, "dedup_service", None)
    if existing_dedup is not None and existing_dedup is not container.dedup_service:
        _cancel_running_scan(existing_dedup)

    state.settings = container.settings
    state.dedup_service = container.dedup_service
    state.config = container.config
    state.config_path = str(container.config_path)
    state.container = container

    os.environ[CONFIG_ENV_VAR] = str(container.config_path)


__all__ = ["install_container"]
