"""
Gate error kinds.  Each one maps to a single user-facing `status_line`.
"""
from typing import Iterable


class GateError(ValueError):
    status_line = "image could not be checked"


class UnsupportedFormat(GateError):
    def __init__(self, mime_type: str, allowed: Iterable[str]):
        self.mime_type = mime_type
        self.allowed = sorted(allowed)
        super().__init__(f"unsupported format {mime_type!r}")

    @property
    def status_line(self) -> str:
        return f"only {', '.join(self.allowed)} formats are allowed"


class TooLarge(GateError):
    def __init__(self, size_bytes: int, max_bytes: int):
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes
        super().__init__(f"{size_bytes} bytes exceeds limit of {max_bytes}")

    @property
    def status_line(self) -> str:
        return f"file size exceeds {self.max_bytes / (1024 * 1024):g}MB"


class DecodeError(GateError):
    status_line = "image could not be decoded"


class RecognitionError(GateError):
    status_line = "text readability could not be determined"


class AnalysisCancelled(GateError):
    status_line = "analysis superseded by a newer image"
