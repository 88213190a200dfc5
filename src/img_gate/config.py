"""
Gate configuration.

`Thresholds` is the decision policy; `GateConfig` adds how the pipeline
runs (text timeout, OCR language, worker count, Laplacian padding).
Both read `IMG_GATE_*` environment variables through `from_env()`.
"""
from __future__ import annotations
import os
from typing import FrozenSet, Literal
from pydantic import BaseModel, ConfigDict, Field

MIB = 1024 * 1024
DEFAULT_MIME_TYPES = frozenset({"image/jpeg", "image/png"})


def _env_mime_types() -> FrozenSet[str]:
    raw = os.getenv("IMG_GATE_ALLOWED_MIME_TYPES")
    if not raw:
        return DEFAULT_MIME_TYPES
    return frozenset(t.strip().lower() for t in raw.split(",") if t.strip())


class Thresholds(BaseModel):
    model_config = ConfigDict(frozen=True)

    # no default: calibration differs per image domain (10 .. 100 seen in practice)
    sharpness_threshold: float = Field(ge=0.0)
    min_text_length: int = Field(default=5, ge=0)
    max_file_bytes: int = Field(default=MIB, gt=0)
    allowed_mime_types: FrozenSet[str] = DEFAULT_MIME_TYPES

    @classmethod
    def from_env(cls, **overrides) -> "Thresholds":
        values = {
            "min_text_length": int(os.getenv("IMG_GATE_MIN_TEXT_LENGTH", "5")),
            "max_file_bytes": int(os.getenv("IMG_GATE_MAX_FILE_BYTES", str(MIB))),
            "allowed_mime_types": _env_mime_types(),
        }
        if "IMG_GATE_SHARPNESS_THRESHOLD" in os.environ:
            values["sharpness_threshold"] = float(os.environ["IMG_GATE_SHARPNESS_THRESHOLD"])
        values.update(overrides)
        return cls.model_validate(values)


class GateConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    thresholds: Thresholds
    text_detection: bool = Field(
        default_factory=lambda: os.getenv("IMG_GATE_TEXT_DETECTION", "1") not in ("0", "false", "no")
    )
    language: str = Field(default_factory=lambda: os.getenv("IMG_GATE_OCR_LANGUAGE", "eng"))
    text_timeout_s: float = Field(
        default_factory=lambda: float(os.getenv("IMG_GATE_TEXT_TIMEOUT_S", "30")), gt=0.0, le=600.0
    )
    max_workers: int = Field(default=4, ge=2, le=32)
    padding: Literal["reflect", "zero"] = "reflect"

    @classmethod
    def from_env(cls, **overrides) -> "GateConfig":
        thresholds = overrides.pop("thresholds", None) or Thresholds.from_env()
        return cls(thresholds=thresholds, **overrides)
