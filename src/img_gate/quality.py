"""
Sharpness scoring without OpenCV.

decode -> grayscale (unweighted RGB mean) -> 3x3 Laplacian -> population variance.

Border policy for the Laplacian is explicit:
    "reflect"  mirror around the edge sample (d c b | a b c d), which is what
               OpenCV's Laplacian does by default; flat images score exactly 0.
    "zero"     out-of-bounds neighbours are 0; flat images get a border response.
"""
from __future__ import annotations
import io
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal

import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import DecodeError

Padding = Literal["reflect", "zero"]

LAPLACIAN_KERNEL = np.array([[0,  1, 0],
                             [1, -4, 1],
                             [0,  1, 0]], dtype=np.int8)


@dataclass(frozen=True)
class RasterImage:
    pixels: np.ndarray      # (height, width, channels) uint8, read-only
    width: int
    height: int
    mode: str               # "RGB" | "RGBA"


def decode(data: bytes) -> RasterImage:
    try:
        with Image.open(io.BytesIO(data)) as pil:
            pil.load()
            has_alpha = pil.mode in ("RGBA", "LA", "PA") or "transparency" in pil.info
            mode = "RGBA" if has_alpha else "RGB"
            pil = pil.convert(mode)
    except (UnidentifiedImageError, Image.DecompressionBombError,
            OSError, SyntaxError, ValueError) as exc:
        raise DecodeError(f"cannot decode image: {exc}") from exc

    width, height = pil.size
    if width == 0 or height == 0:
        raise DecodeError(f"image has zero dimension ({width}x{height})")

    pixels = np.asarray(pil, dtype=np.uint8)
    pixels.setflags(write=False)
    return RasterImage(pixels=pixels, width=width, height=height, mode=mode)


def to_grayscale(img: RasterImage) -> np.ndarray:
    """Y = round((R + G + B) / 3); alpha is ignored.

    The fractional part of a sum over 3 is only ever 0, 1/3 or 2/3, so
    `(s + 1) // 3` is exact rounding with no float involved.
    """
    rgb_sum = img.pixels[..., :3].sum(axis=2, dtype=np.uint16)
    gray = ((rgb_sum + 1) // 3).astype(np.uint8)
    gray.setflags(write=False)
    return gray


def laplacian(gray: np.ndarray, padding: Padding = "reflect") -> np.ndarray:
    if gray.ndim != 2:
        raise ValueError(f"expected a 2-D grayscale buffer, got shape {gray.shape}")
    g = gray.astype(np.float64)
    if padding == "reflect":
        p = np.pad(g, 1, mode="reflect")
    elif padding == "zero":
        p = np.pad(g, 1, mode="constant", constant_values=0.0)
    else:
        raise ValueError(f"unknown padding {padding!r}")

    # kernel has only 5 non-zero taps; shifted sums beat a generic convolution
    return (p[:-2, 1:-1] + p[2:, 1:-1] +
            p[1:-1, :-2] + p[1:-1, 2:] -
            4.0 * g)


def score(edges: np.ndarray) -> float:
    if edges.size == 0:
        raise ValueError("cannot score an empty edge buffer")
    # ddof=0: population variance
    return max(float(np.var(edges, dtype=np.float64)), 0.0)


# -------- capability --------------------------------------------------------
class SharpnessEngine(ABC):
    @abstractmethod
    def sharpness(self, data: bytes) -> float:
        """Return the sharpness score of encoded image bytes; raise DecodeError."""


class LaplacianSharpnessEngine(SharpnessEngine):
    def __init__(self, padding: Padding = "reflect"):
        self.padding = padding

    def sharpness(self, data: bytes) -> float:
        img = decode(data)
        return score(laplacian(to_grayscale(img), self.padding))
