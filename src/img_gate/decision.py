"""
Decision policy: sharpness score + optional text signal -> QualityVerdict.

Status lines always come sharpness first, text second.
"""
from __future__ import annotations
from typing import List

from .config import Thresholds
from .errors import RecognitionError
from .models import Outcome, QualityVerdict, RejectReason, TextResult

SHARP_LINE     = "sharp and suitable"
BLURRY_LINE    = "image appears blurry"
READABLE_LINE  = "contains readable text"
UNCLEAR_LINE   = "contains text, but it might not be clear"
NO_TEXT_LINE   = "normal image, no text detected"


def decide(sharpness: float,
           text: TextResult | None,
           thresholds: Thresholds,
           *,
           text_error: RecognitionError | None = None,
           text_checked: bool = True) -> QualityVerdict:
    lines: List[str] = []
    reasons: List[RejectReason] = []

    if sharpness < thresholds.sharpness_threshold:
        reasons.append(RejectReason.BLURRY)
        lines.append(BLURRY_LINE)
    else:
        lines.append(SHARP_LINE)

    if text_error is not None:
        lines.append(text_error.status_line)
    elif text is not None and text.present:
        if text.length > thresholds.min_text_length:
            lines.append(READABLE_LINE)
        else:
            # short OCR output usually means the text itself is smeared
            reasons.append(RejectReason.UNCLEAR_TEXT)
            lines.append(UNCLEAR_LINE)
    elif text_checked:
        lines.append(NO_TEXT_LINE)

    return QualityVerdict(
        outcome=Outcome.REJECT if reasons else Outcome.ACCEPT,
        status_lines=lines,
        reject_reason=reasons[0] if reasons else None,
        sharpness=sharpness,
        text=text.text if text is not None else None,
    )
