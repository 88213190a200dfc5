import boto3
import pytest
import pytesseract
from botocore.stub import Stubber
from PIL import Image

from img_gate.errors import RecognitionError
from img_gate.vision import RekognitionTextEngine, TesseractTextEngine


@pytest.fixture
def rek_client():
    return boto3.client("rekognition", region_name="us-east-1",
                        aws_access_key_id="testing", aws_secret_access_key="testing")


def test_rekognition_joins_confident_lines(rek_client, sharp_png: bytes) -> None:
    detections = [
        {"DetectedText": "TOTAL 12.50", "Type": "LINE", "Id": 0, "Confidence": 98.1},
        {"DetectedText": "TOTAL", "Type": "WORD", "Id": 1, "ParentId": 0, "Confidence": 98.1},
        {"DetectedText": "thank you", "Type": "LINE", "Id": 2, "Confidence": 91.0},
        {"DetectedText": "~~", "Type": "LINE", "Id": 3, "Confidence": 12.0},
    ]
    with Stubber(rek_client) as stub:
        stub.add_response("detect_text", {"TextDetections": detections},
                          {"Image": {"Bytes": sharp_png}})

        result = RekognitionTextEngine(rek_client).recognize(sharp_png)

    assert result.text == "TOTAL 12.50\nthank you"
    assert result.length == len("TOTAL 12.50\nthank you")


def test_rekognition_no_text(rek_client, sharp_png: bytes) -> None:
    with Stubber(rek_client) as stub:
        stub.add_response("detect_text", {"TextDetections": []})
        result = RekognitionTextEngine(rek_client).recognize(sharp_png)

    assert not result.present


def test_rekognition_client_error(rek_client, sharp_png: bytes) -> None:
    with Stubber(rek_client) as stub:
        stub.add_client_error("detect_text", service_error_code="InvalidImageFormatException")
        with pytest.raises(RecognitionError):
            RekognitionTextEngine(rek_client).recognize(sharp_png)


def test_tesseract_passes_language(monkeypatch, sharp_png: bytes) -> None:
    seen = {}

    def fake_image_to_string(image, lang=None, config="", timeout=0):
        seen["lang"] = lang
        seen["size"] = image.size
        return "Hello world\n\x0c"

    monkeypatch.setattr(pytesseract, "image_to_string", fake_image_to_string)

    result = TesseractTextEngine().recognize(sharp_png, language="deu")

    assert seen == {"lang": "deu", "size": (16, 16)}
    assert result.length == len("Hello world")


def test_tesseract_missing_binary(monkeypatch, sharp_png: bytes) -> None:
    def missing(*args, **kwargs):
        raise pytesseract.TesseractNotFoundError()

    monkeypatch.setattr(pytesseract, "image_to_string", missing)

    with pytest.raises(RecognitionError):
        TesseractTextEngine().recognize(sharp_png)


def test_tesseract_unreadable_bytes() -> None:
    with pytest.raises(RecognitionError):
        TesseractTextEngine().recognize(b"\x00\x01")


def test_tesseract_decompression_bomb(monkeypatch, sharp_png: bytes) -> None:
    def bomb(*args, **kwargs):
        raise Image.DecompressionBombError("too many pixels")

    monkeypatch.setattr(pytesseract, "image_to_string", bomb)

    with pytest.raises(RecognitionError):
        TesseractTextEngine().recognize(sharp_png)


def test_rekognition_lazy_client_gets_timeout(monkeypatch) -> None:
    seen = {}

    def fake_client(service, config=None):
        seen["service"] = service
        seen["config"] = config
        return object()

    monkeypatch.setattr(boto3, "client", fake_client)

    RekognitionTextEngine(timeout=7.5).client

    assert seen["service"] == "rekognition"
    assert seen["config"].read_timeout == 7.5
    assert seen["config"].connect_timeout == 7.5
