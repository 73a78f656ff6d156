"""FastAPI router for verifying files against expected digests."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from api.hash_router import get_settings
from modules.verifier import VerificationReport
from utils.config_loader import ConfigurationError
from utils.hash_tools import Algorithm
from utils.service_container import HashingSettings

router = APIRouter(prefix="/api/verify", tags=["verify"])


class VerifyRequest(BaseModel):
    paths: list[str] = Field(default_factory=list)
    expected: str | None = None
    checksum_text: str | None = None
    base_dir: str | None = None
    algorithm: str | None = None


class VerificationOutcomeModel(BaseModel):
    path: str
    status: str
    expected: str | None = None
    actual: str | None = None
    algorithm: str | None = None
    reason: str | None = None
    line_number: int | None = None


class VerifyResponse(BaseModel):
    outcomes: list[VerificationOutcomeModel] = Field(default_factory=list)
    counts: dict[str, int] = Field(default_factory=dict)
    all_ok: bool
    exit_code: int


@router.post("", response_model=VerifyResponse)
async def verify(
    payload: VerifyRequest,
    settings: HashingSettings = Depends(get_settings),
) -> VerifyResponse:
    if payload.checksum_text is None and payload.expected is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide either 'expected' with 'paths' or 'checksum_text'",
        )

    try:
        algorithm = Algorithm.parse(payload.algorithm) if payload.algorithm else None
        verifier = settings.create_verifier(algorithm=algorithm)
        if payload.checksum_text is not None:
            report: VerificationReport = await run_in_threadpool(
                verifier.verify_text, payload.checksum_text, base_dir=payload.base_dir
            )
        else:
            report = await run_in_threadpool(
                verifier.verify_inline, payload.paths, payload.expected or ""
            )
    except ConfigurationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc

    return VerifyResponse(**report.to_dict())


__all__ = ["router", "verify"]
