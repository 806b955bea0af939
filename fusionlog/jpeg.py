"""Decoding of JPEG-compressed colour frames."""

from __future__ import annotations

import io

import numpy as np
from PIL import Image


class JPEGDecodeError(ValueError):
    """Raised when bytes cannot be decoded as a JPEG image."""


def decode_jpeg(data: bytes) -> np.ndarray:
    """Decode JPEG bytes into a (height, width, 3) uint8 array.

    The channel order of the decoder's output is reversed, as the log
    format stores colour with red and blue exchanged.
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            if image.format != "JPEG":
                raise JPEGDecodeError(f"not a JPEG image: {image.format}")
            image.load()
            pixels = np.asarray(image.convert("RGB"), dtype=np.uint8)
    except JPEGDecodeError:
        raise
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
        raise JPEGDecodeError(f"JPEG decoding error: {exc}") from exc
    return np.ascontiguousarray(pixels[..., ::-1])