"""
Text-recognition engines behind one small interface.

`engine.recognize(data, language)` returns a TextResult built from the
encoded image bytes, or raises RecognitionError when the engine fails.

    RekognitionTextEngine   Amazon Rekognition DetectText (LINE detections)
    TesseractTextEngine     local tesseract through pytesseract
"""
from __future__ import annotations
import io, logging
from abc import ABC, abstractmethod
from typing import Dict, List

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from PIL import Image, UnidentifiedImageError
import pytesseract

from .errors import RecognitionError
from .models import TextResult

log = logging.getLogger(__name__)

MIN_LINE_CONFIDENCE = 40.0


class TextRecognitionEngine(ABC):
    @abstractmethod
    def recognize(self, data: bytes, language: str = "eng") -> TextResult:
        ...


def _lines_from_detections(detections: List[Dict], min_conf: float) -> List[str]:
    return [d["DetectedText"] for d in detections
            if d.get("Type") == "LINE" and d.get("Confidence", 0.0) >= min_conf]


class RekognitionTextEngine(TextRecognitionEngine):
    """
    Rekognition has no language switch for DetectText; `language` is only
    logged.  The client is created lazily so constructing the engine never
    needs AWS credentials.  `timeout` (seconds, 0 = botocore default) bounds
    connect and read on that lazily built client.
    """

    def __init__(self, rek_client=None, min_confidence: float = MIN_LINE_CONFIDENCE,
                 timeout: float = 0):
        self._client = rek_client
        self.min_confidence = min_confidence
        self.timeout = timeout

    @property
    def client(self):
        if self._client is None:
            cfg = None
            if self.timeout:
                cfg = Config(connect_timeout=self.timeout, read_timeout=self.timeout,
                             retries={"max_attempts": 1})
            self._client = boto3.client("rekognition", config=cfg)
        return self._client

    def recognize(self, data: bytes, language: str = "eng") -> TextResult:
        try:
            resp = self.client.detect_text(Image={"Bytes": data})
        except (ClientError, BotoCoreError) as exc:
            raise RecognitionError(f"rekognition detect_text failed: {exc}") from exc

        lines = _lines_from_detections(resp.get("TextDetections", []), self.min_confidence)
        log.debug("rekognition text lines (%s): %s", language, lines)
        return TextResult(text="\n".join(lines))


class TesseractTextEngine(TextRecognitionEngine):
    # timeout 0 means no limit; QualityGate fills it from GateConfig.text_timeout_s
    def __init__(self, config: str = "", timeout: float = 0):
        self.config = config
        self.timeout = timeout

    def recognize(self, data: bytes, language: str = "eng") -> TextResult:
        try:
            with Image.open(io.BytesIO(data)) as pil:
                text = pytesseract.image_to_string(pil, lang=language,
                                                   config=self.config,
                                                   timeout=self.timeout)
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError,
                UnidentifiedImageError, Image.DecompressionBombError,
                RuntimeError, OSError) as exc:
            raise RecognitionError(f"tesseract failed: {exc}") from exc
        return TextResult(text=text)
