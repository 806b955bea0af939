"""Readers for recorded RGB-D logs and a writer for the same format.

A log file starts with the number of frames as a little-endian int32.
Each frame follows as an int64 timestamp, an int32 depth size, an int32
image size, the depth payload and the image payload. Depth is raw
uint16 or zlib-compressed; colour is raw 8-bit triples, JPEG, or absent.
"""

from __future__ import annotations

import io
import struct
import zlib
from abc import ABC, abstractmethod
from collections.abc import Iterable
from os import PathLike
from typing import Optional

import numpy as np
from PIL import Image

from .jpeg import decode_jpeg

_COUNT = struct.Struct("<i")
_FRAME_HEADER = struct.Struct("<qii")


class LogReader(ABC):
    """A source of depth and colour frames."""

    def __init__(
        self,
        path: str | PathLike,
        flip_colors: bool = False,
        width: int = 640,
        height: int = 480,
    ) -> None:
        self.path = path
        self.flip_colors = flip_colors
        self.width = width
        self.height = height
        self.num_pixels = width * height
        self.timestamp = 0
        self.depth: Optional[np.ndarray] = None
        self.rgb: Optional[np.ndarray] = None
        self.current_frame = 0

    @property
    @abstractmethod
    def num_frames(self) -> int:
        """The number of frames the source holds."""

    @abstractmethod
    def get_next(self) -> None:
        """Load the next frame into ``depth``, ``rgb`` and ``timestamp``."""

    @abstractmethod
    def has_more(self) -> bool:
        """Whether another frame can be read."""

    @abstractmethod
    def rewound(self) -> bool:
        """Whether the reader is back at its start."""

    @abstractmethod
    def rewind(self) -> None:
        """Return to the first frame."""

    @abstractmethod
    def get_back(self) -> None:
        """Step back one frame and load it."""

    @abstractmethod
    def fast_forward(self, frame: int) -> None:
        """Skip ahead until ``current_frame`` reaches ``frame``."""

    @abstractmethod
    def set_auto(self, value: bool) -> None:
        """Switch automatic exposure and white balance on or off."""

    @staticmethod
    def _swap_red_blue(rgb: np.ndarray) -> np.ndarray:
        return np.ascontiguousarray(rgb[..., [2, 1, 0]])


class RawLogReader(LogReader):
    """Read frames from a log file, with a stack of positions for stepping back."""

    def __init__(
        self,
        path: str | PathLike,
        flip_colors: bool = False,
        width: int = 640,
        height: int = 480,
    ) -> None:
        super().__init__(path, flip_colors, width, height)
        self.file_pointers: list[int] = []
        self._file = open(path, "rb")
        try:
            self._num_frames = self._read_count()
        except BaseException:
            self._file.close()
            raise

    @property
    def num_frames(self) -> int:
        return self._num_frames

    def _read_exact(self, size: int) -> bytes:
        data = self._file.read(size)
        if len(data) != size:
            raise EOFError(f"log truncated: wanted {size} bytes, got {len(data)}")
        return data

    def _read_count(self) -> int:
        (count,) = _COUNT.unpack(self._read_exact(_COUNT.size))
        return count

    def _read_record(self) -> tuple[bytes, bytes]:
        timestamp, depth_size, image_size = _FRAME_HEADER.unpack(
            self._read_exact(_FRAME_HEADER.size)
        )
        if depth_size < 0 or image_size < 0:
            raise ValueError("negative payload size in log")
        self.timestamp = timestamp
        depth = self._read_exact(depth_size)
        image = self._read_exact(image_size) if image_size > 0 else b""
        return depth, image

    def _decode_depth(self, payload: bytes) -> np.ndarray:
        expected = self.num_pixels * 2
        if len(payload) != expected:
            try:
                payload = zlib.decompress(payload)
            except zlib.error as exc:
                raise ValueError(f"cannot decompress depth: {exc}") from exc
            if len(payload) != expected:
                raise ValueError(
                    f"depth holds {len(payload)} bytes, expected {expected}"
                )
        return np.frombuffer(payload, dtype="<u2").reshape(self.height, self.width).copy()

    def _decode_image(self, payload: bytes) -> np.ndarray:
        shape = (self.height, self.width, 3)
        if len(payload) == self.num_pixels * 3:
            return np.frombuffer(payload, dtype=np.uint8).reshape(shape).copy()
        if payload:
            pixels = decode_jpeg(payload)
            if pixels.shape != shape:
                raise ValueError(f"image is {pixels.shape}, expected {shape}")
            return pixels
        return np.zeros(shape, dtype=np.uint8)

    def _get_core(self) -> None:
        depth, image = self._read_record()
        self.depth = self._decode_depth(depth)
        rgb = self._decode_image(image)
        self.rgb = self._swap_red_blue(rgb) if self.flip_colors else rgb
        self.current_frame += 1

    def get_next(self) -> None:
        self.file_pointers.append(self._file.tell())
        self._get_core()

    def get_back(self) -> None:
        if not self.file_pointers:
            raise IndexError("no earlier frame to step back to")
        self._file.seek(self.file_pointers.pop())
        self._get_core()

    def fast_forward(self, frame: int) -> None:
        while self.current_frame < frame and self.has_more():
            self.file_pointers.append(self._file.tell())
            self._read_record()
            self.current_frame += 1

    def has_more(self) -> bool:
        return self.current_frame + 1 < self._num_frames

    def rewound(self) -> bool:
        return not self.file_pointers

    def rewind(self) -> None:
        self.file_pointers.clear()
        self._file.seek(0)
        self._num_frames = self._read_count()
        self.current_frame = 0

    def set_auto(self, value: bool) -> None:
        """Recorded logs have no camera settings; nothing changes."""

    def close(self) -> None:
        """Close the underlying file."""
        self._file.close()

    def __enter__(self) -> RawLogReader:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _encode_depth(depth, width: int, height: int, compress: bool) -> bytes:
    array = np.asarray(depth)
    if array.shape != (height, width):
        raise ValueError(f"depth is {array.shape}, expected {(height, width)}")
    raw = array.astype("<u2").tobytes()
    if compress:
        packed = zlib.compress(raw)
        if len(packed) != len(raw):
            return packed
    return raw


def _encode_image(rgb, width: int, height: int, compress: bool) -> bytes:
    if rgb is None:
        return b""
    array = np.asarray(rgb)
    if array.shape != (height, width, 3):
        raise ValueError(f"image is {array.shape}, expected {(height, width, 3)}")
    array = array.astype(np.uint8)
    raw = array.tobytes()
    if compress:
        buffer = io.BytesIO()
        Image.fromarray(np.ascontiguousarray(array[..., ::-1]), "RGB").save(
            buffer, format="JPEG", quality=95
        )
        packed = buffer.getvalue()
        if len(packed) != len(raw):
            return packed
    return raw


def write_log(
    path: str | PathLike,
    frames: Iterable[tuple],
    width: int = 640,
    height: int = 480,
    compress: bool = False,
) -> int:
    """Write ``(timestamp, depth, rgb)`` frames to a log; return the count.

    ``rgb`` may be None for a frame without colour. With ``compress`` the
    depth is zlib-compressed and the colour stored as JPEG.
    """
    count = 0
    with open(path, "wb") as handle:
        handle.write(_COUNT.pack(0))
        for timestamp, depth, rgb in frames:
            depth_bytes = _encode_depth(depth, width, height, compress)
            image_bytes = _encode_image(rgb, width, height, compress)
            handle.write(_FRAME_HEADER.pack(timestamp, len(depth_bytes), len(image_bytes)))
            handle.write(depth_bytes)
            handle.write(image_bytes)
            count += 1
        handle.seek(0)
        handle.write(_COUNT.pack(count))
    return count