"""
Cheap file-constraint checks, run before any pixel is decoded.
"""
from .config import Thresholds
from .errors import TooLarge, UnsupportedFormat
from .models import FileMeta


def validate(meta: FileMeta, thresholds: Thresholds) -> None:
    allowed = {t.lower() for t in thresholds.allowed_mime_types}
    if meta.mime_type.lower() not in allowed:
        raise UnsupportedFormat(meta.mime_type, allowed)
    if meta.size_bytes > thresholds.max_file_bytes:
        raise TooLarge(meta.size_bytes, thresholds.max_file_bytes)
