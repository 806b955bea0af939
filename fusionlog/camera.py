"""Camera interface and the ring of buffers that live frames pass through."""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from typing import Optional

from .sync import MutexValue

NUM_BUFFERS = 10


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _payload(data, size: int, kind: str) -> bytes:
    raw = memoryview(data).tobytes()
    if len(raw) != size:
        raise ValueError(f"{kind} frame holds {len(raw)} bytes, expected {size}")
    return raw


class FrameRing:
    """Ring buffers pairing each depth frame with the latest colour frame.

    Colour frames land in their own ring. A depth frame is stored with a
    copy of the most recent colour frame and only then becomes the latest
    frame; depth arriving before any colour is stored but not published.
    """

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.depth_size = width * height * 2
        self.rgb_size = width * height * 3
        self.latest_rgb_index: MutexValue[int] = MutexValue(-1)
        self.latest_depth_index: MutexValue[int] = MutexValue(-1)
        self.last_rgb_time = 0
        self.last_depth_time = 0
        self._rgb_buffers = [bytearray(self.rgb_size) for _ in range(NUM_BUFFERS)]
        self._rgb_times = [0] * NUM_BUFFERS
        self._depth_buffers = [bytearray(self.depth_size) for _ in range(NUM_BUFFERS)]
        self._paired_rgb = [bytearray(self.rgb_size) for _ in range(NUM_BUFFERS)]
        self._frame_times = [0] * NUM_BUFFERS
        self._lock = threading.Lock()

    def on_rgb_frame(self, data) -> None:
        """Store a colour frame of ``width * height * 3`` bytes."""
        raw = _payload(data, self.rgb_size, "colour")
        self.last_rgb_time = _now_ms()
        index = (self.latest_rgb_index.get() + 1) % NUM_BUFFERS
        with self._lock:
            self._rgb_buffers[index][:] = raw
            self._rgb_times[index] = self.last_rgb_time
        self.latest_rgb_index.increment()

    def on_depth_frame(self, data) -> None:
        """Store a depth frame of ``width * height * 2`` bytes."""
        raw = _payload(data, self.depth_size, "depth")
        self.last_depth_time = _now_ms()
        index = (self.latest_depth_index.get() + 1) % NUM_BUFFERS
        with self._lock:
            self._depth_buffers[index][:] = raw
            self._frame_times[index] = self.last_depth_time
        last_image = self.latest_rgb_index.get()
        if last_image == -1:
            return
        with self._lock:
            self._paired_rgb[index][:] = self._rgb_buffers[last_image % NUM_BUFFERS]
        self.latest_depth_index.increment()

    def latest_frame(self) -> Optional[tuple[bytes, bytes, int]]:
        """Return ``(depth, rgb, timestamp)`` of the newest frame, or None."""
        latest = self.latest_depth_index.get()
        if latest == -1:
            return None
        index = latest % NUM_BUFFERS
        with self._lock:
            return (
                bytes(self._depth_buffers[index]),
                bytes(self._paired_rgb[index]),
                self._frame_times[index],
            )


class CameraInterface(ABC):
    """A live RGB-D camera publishing frames through a ``FrameRing``."""

    NUM_BUFFERS = NUM_BUFFERS
    frames: FrameRing

    @abstractmethod
    def ok(self) -> bool:
        """Whether the camera started successfully."""

    @abstractmethod
    def error(self) -> str:
        """A description of what went wrong while starting."""

    @abstractmethod
    def set_auto_exposure(self, value: bool) -> None:
        """Switch automatic exposure on or off."""

    @abstractmethod
    def set_auto_white_balance(self, value: bool) -> None:
        """Switch automatic white balance on or off."""