from __future__ import annotations
from enum import Enum
from typing import List
from pydantic import BaseModel, ConfigDict, Field

# -------- input -------------------------------------------------------------
class FileMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    mime_type: str
    size_bytes: int = Field(ge=0)

# -------- text signal -------------------------------------------------------
class TextResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str = ""

    @property
    def length(self) -> int:
        # OCR engines pad output with newlines / form feeds
        return len(self.text.strip())

    @property
    def present(self) -> bool:
        return self.length > 0

# -------- verdict -----------------------------------------------------------
class Outcome(str, Enum):
    ACCEPT  = "accept"
    REJECT  = "reject"
    PENDING = "pending"

class RejectReason(str, Enum):
    BLURRY       = "blurry"
    UNCLEAR_TEXT = "unclear_text"

class QualityVerdict(BaseModel):
    model_config = ConfigDict(frozen=True)

    outcome: Outcome
    status_lines: List[str] = Field(default_factory=list)
    reject_reason: RejectReason | None = None
    sharpness: float
    text: str | None = None

    @property
    def accepted(self) -> bool:
        return self.outcome is Outcome.ACCEPT
