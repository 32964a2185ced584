"""Application configuration loaded from environment variables."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "gpu-lifetimes"
    debug: bool = False
    log_level: str = "INFO"

    # Identifier grammar
    serial_length: int = 13

    # Raw value parsing
    timestamp_formats: list[str] = [
        "%Y-%m-%d %H:%M:%S",
        "%Y-%m-%d %H:%M",
        "%m/%d/%Y %H:%M:%S",
        "%m/%d/%Y %H:%M",
        "%m/%d/%Y",
    ]
    null_tokens: list[str] = ["", "NA", "NaN", "NULL", "None", "-"]

    # Install batch split
    install_cutoff: datetime = datetime(2014, 1, 1, tzinfo=timezone.utc)

    # Reference data
    service_slots_path: str | None = None

    # Output tables
    null_marker: str = "NA"
    include_intervals_in_response: bool = False

    model_config = {"env_prefix": "GPULIFE_"}


settings = Settings()


@dataclass(frozen=True)
class PipelineConfig:
    """Values the reconciliation stages need, frozen at run start.

    Stages receive this object explicitly so no stage reads the global
    settings while running.
    """

    serial_length: int = 13
    timestamp_formats: tuple[str, ...] = ()
    null_tokens: frozenset[str] = field(default_factory=lambda: frozenset({"", "NA", "NaN", "NULL", "None", "-"}))
    install_cutoff: datetime = datetime(2014, 1, 1, tzinfo=timezone.utc)

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> "PipelineConfig":
        source = source or settings
        cutoff = source.install_cutoff
        if cutoff.tzinfo is None:
            cutoff = cutoff.replace(tzinfo=timezone.utc)
        return cls(
            serial_length=source.serial_length,
            timestamp_formats=tuple(source.timestamp_formats),
            null_tokens=frozenset(source.null_tokens),
            install_cutoff=cutoff,
        )
