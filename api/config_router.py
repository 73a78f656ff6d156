"""FastAPI router for reading and updating the hash-file configuration."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status

from utils.config_loader import (
    ConfigurationError,
    load_config,
    load_raw_config,
    merge_configs,
    resolve_config_path,
    save_config,
)
from utils.service_container import build_hashing_settings

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/api/config", tags=["config"])

_MISSING = object()


def _changed_keys(
    before: Mapping[str, Any], after: Mapping[str, Any], prefix: str = ""
) -> Iterator[tuple[str, Any, Any]]:
    """Yield ``(dotted_key, old, new)`` for every leaf that differs."""

    for key in sorted(set(before) | set(after), key=str):
        dotted = f"{prefix}{key}"
        old = before.get(key, _MISSING)
        new = after.get(key, _MISSING)
        if isinstance(old, Mapping) and isinstance(new, Mapping):
            yield from _changed_keys(old, new, f"{dotted}.")
        elif old != new:
            yield (
                dotted,
                None if old is _MISSING else old,
                None if new is _MISSING else new,
            )


def _load_error(exc: ValueError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=str(exc),
    )


def get_actor(request: Request) -> str:
    return request.headers.get("X-Actor", "api")


def get_config_path() -> Path:
    return resolve_config_path()


@router.get("", response_model=Dict[str, Any])
async def read_config(config_path: Path = Depends(get_config_path)) -> Dict[str, Any]:
    try:
        return load_config(config_path)
    except ValueError as exc:
        raise _load_error(exc) from exc


@router.put("", response_model=Dict[str, Any])
async def update_config(
    updates: Dict[str, Any] = Body(..., embed=False),
    config_path: Path = Depends(get_config_path),
    actor: str = Depends(get_actor),
) -> Dict[str, Any]:
    """Merge *updates* into the stored configuration after validating it.

    Settings that would stop a run (unknown algorithm, bad worker count)
    are rejected with 400 and nothing is written.
    """

    try:
        stored = load_raw_config(config_path)
        before = load_config(config_path)
    except ValueError as exc:
        raise _load_error(exc) from exc

    if not updates:
        return before

    candidate = dict(merge_configs(before, updates))
    try:
        build_hashing_settings(candidate)
    except ConfigurationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc

    save_config(merge_configs(stored, updates), config_path)

    for key, old, new in _changed_keys(before, candidate):
        LOGGER.info(
            "Configuration changed",
            extra={"key": key, "old_value": old, "new_value": new, "actor": actor},
        )
    return candidate


__all__ = ["router", "read_config", "update_config", "get_actor", "get_config_path"]
