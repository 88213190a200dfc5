from __future__ import annotations

import io
import threading

import numpy as np
import pytest
from PIL import Image

from img_gate.config import GateConfig, Thresholds
from img_gate.models import FileMeta, TextResult
from img_gate.quality import SharpnessEngine
from img_gate.vision import TextRecognitionEngine


def encode(arr: np.ndarray, fmt: str = "PNG") -> bytes:
    buf = io.BytesIO()
    Image.fromarray(arr).save(buf, format=fmt)
    return buf.getvalue()


def checkerboard(size: int = 16) -> np.ndarray:
    yy, xx = np.indices((size, size))
    cells = ((yy + xx) % 2 * 255).astype(np.uint8)
    return np.stack([cells] * 3, axis=2)


def flat(size: int = 16, color=(120, 60, 30)) -> np.ndarray:
    return np.full((size, size, 3), color, dtype=np.uint8)


def png_meta(data: bytes) -> FileMeta:
    return FileMeta(mime_type="image/png", size_bytes=len(data))


class FakeTextEngine(TextRecognitionEngine):
    def __init__(self, text: str = "", error: Exception | None = None,
                 gate: threading.Event | None = None):
        self.text = text
        self.error = error
        self.gate = gate
        self.calls: list[str] = []

    def recognize(self, data: bytes, language: str = "eng") -> TextResult:
        self.calls.append(language)
        if self.gate is not None:
            self.gate.wait(5)
        if self.error is not None:
            raise self.error
        return TextResult(text=self.text)


class FixedSharpnessEngine(SharpnessEngine):
    def __init__(self, value: float, gate: threading.Event | None = None):
        self.value = value
        self.gate = gate
        self.calls = 0

    def sharpness(self, data: bytes) -> float:
        self.calls += 1
        if self.gate is not None:
            self.gate.wait(5)
        return self.value


@pytest.fixture
def thresholds() -> Thresholds:
    return Thresholds(sharpness_threshold=100.0)


@pytest.fixture
def config(thresholds) -> GateConfig:
    return GateConfig(thresholds=thresholds, text_detection=True,
                      language="eng", text_timeout_s=5.0)


@pytest.fixture
def sharp_png() -> bytes:
    return encode(checkerboard())


@pytest.fixture
def flat_png() -> bytes:
    return encode(flat())


@pytest.fixture
def release():
    """Events handed to blocking fakes; all are set on teardown."""
    events: list[threading.Event] = []

    def make() -> threading.Event:
        ev = threading.Event()
        events.append(ev)
        return ev

    yield make
    for ev in events:
        ev.set()


