"""Factory helpers for constructing application services consistently."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from modules.batch import BatchCoordinator, default_worker_count
from modules.dedup import DedupService
from modules.report import OUTPUT_FORMATS
from modules.verifier import Verifier
from utils.config_loader import (
    ConfigurationError,
    get_config_value,
    load_config,
    parse_bool,
    resolve_config_path,
)
from utils.hash_tools import Algorithm, validate_chunk_size
from utils.progress import ProgressSink


@dataclass(frozen=True, slots=True)
class HashingSettings:
    """Validated hashing options shared by every entry point."""

    algorithm: Algorithm
    workers: int
    chunk_size: int
    strict: bool = False
    base_dir: Optional[Path] = None
    output_format: str = "plain"

    def create_coordinator(
        self,
        *,
        algorithm: Algorithm | None = None,
        progress: Optional[ProgressSink] = None,
    ) -> BatchCoordinator:
        return BatchCoordinator(
            algorithm or self.algorithm,
            workers=self.workers,
            chunk_size=self.chunk_size,
            strict=self.strict,
            progress=progress,
        )

    def create_verifier(
        self,
        *,
        algorithm: Algorithm | None = None,
        progress: Optional[ProgressSink] = None,
    ) -> Verifier:
        return Verifier(
            algorithm=algorithm,
            workers=self.workers,
            chunk_size=self.chunk_size,
            progress=progress,
            base_dir=self.base_dir,
        )


def build_hashing_settings(config: dict[str, Any]) -> HashingSettings:
    """Validate the ``hashing``/``verify``/``output`` sections of *config*.

    Raises :class:`ConfigurationError` before any work is dispatched.
    """

    algorithm = Algorithm.parse(
        get_config_value("hashing", "algorithm", default="sha256", config=config)
    )

    workers_value = get_config_value("hashing", "workers", default=0, config=config)
    try:
        workers = int(workers_value or 0)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid worker count: {workers_value!r}") from exc
    if workers < 0:
        raise ConfigurationError("hashing.workers must be 0 (auto) or a positive integer")
    if workers == 0:
        workers = default_worker_count()

    chunk_size = validate_chunk_size(
        get_config_value("hashing", "chunk_size", default=1024 * 1024, config=config)
    )
    strict = parse_bool(get_config_value("hashing", "strict", default=False, config=config))

    base_dir_value = str(
        get_config_value("verify", "base_dir", default="", config=config) or ""
    ).strip()
    output_format = str(
        get_config_value("output", "format", default="plain", config=config) or "plain"
    ).strip().lower()
    if output_format not in OUTPUT_FORMATS:
        raise ConfigurationError(f"Unknown output format: {output_format}")

    return HashingSettings(
        algorithm=algorithm,
        workers=workers,
        chunk_size=chunk_size,
        strict=strict,
        base_dir=Path(base_dir_value).expanduser() if base_dir_value else None,
        output_format=output_format,
    )


@dataclass(slots=True)
class ServiceContainer:
    """Bundle of core services used across the application."""

    config: dict[str, Any]
    config_path: Path
    settings: HashingSettings
    dedup_service: DedupService


def build_service_container(
    config: dict[str, Any] | None = None,
    *,
    config_path: Path | str | None = None,
) -> ServiceContainer:
    """Construct application services from configuration.

    Shared by the FastAPI application and the command line so both apply
    the same validation and defaults.
    """

    if config_path is not None:
        resolved_path = Path(config_path)
    else:
        resolved_path = Path(resolve_config_path())

    config_data = config or load_config(resolved_path)
    settings = build_hashing_settings(config_data)

    source_dir = Path(
        str(get_config_value("dedup", "source_dir", default=".", config=config_data) or ".")
    )
    recursive = parse_bool(
        get_config_value("dedup", "recursive", default=True, config=config_data)
    )
    dedup_service = DedupService(
        source_dir,
        settings.algorithm,
        workers=settings.workers,
        chunk_size=settings.chunk_size,
        recursive=recursive,
    )

    return ServiceContainer(
        config=config_data,
        config_path=resolved_path,
        settings=settings,
        dedup_service=dedup_service,
    )


__all__ = [
    "HashingSettings",
    "ServiceContainer",
    "build_hashing_settings",
    "build_service_container",
]
