"""FastAPI router for hashing explicit file lists."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from modules.batch import BatchResult
from utils.config_loader import ConfigurationError
from utils.hash_tools import Algorithm
from utils.service_container import HashingSettings

router = APIRouter(prefix="/api/hash", tags=["hash"])


class HashRequest(BaseModel):
    paths: list[str] = Field(default_factory=list)
    algorithm: str | None = None


class HashResultModel(BaseModel):
    path: str
    algorithm: str
    digest_hex: str | None = None
    byte_length: int = 0
    error: str | None = None
    error_detail: str | None = None
    missing: bool = False


class HashResponse(BaseModel):
    algorithm: str
    results: list[HashResultModel] = Field(default_factory=list)
    aborted: bool = False
    cancelled: bool = False
    counts: dict[str, int] = Field(default_factory=dict)
    total_bytes: int = 0


async def get_settings(request: Request) -> HashingSettings:
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Hashing settings not configured",
        )
    return settings


@router.post("", response_model=HashResponse)
async def hash_files(
    payload: HashRequest,
    settings: HashingSettings = Depends(get_settings),
) -> HashResponse:
    try:
        algorithm = Algorithm.parse(payload.algorithm) if payload.algorithm else None
        coordinator = settings.create_coordinator(algorithm=algorithm)
    except ConfigurationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc

    result: BatchResult = await run_in_threadpool(coordinator.run, payload.paths)
    return HashResponse(**result.to_dict())


__all__ = ["router", "hash_files", "get_settings"]
