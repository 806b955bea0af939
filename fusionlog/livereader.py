"""Frames read straight from a live camera."""

from __future__ import annotations

import logging
import time

import numpy as np

from .camera import CameraInterface
from .logreader import LogReader

logger = logging.getLogger(__name__)

_INT_MAX = 2**31 - 1


class LiveLogReader(LogReader):
    """Serve the newest frame a camera has published.

    A live source never runs out and cannot be rewound; the stepping
    operations of a recorded log do nothing here.
    """

    def __init__(
        self,
        camera: CameraInterface,
        flip_colors: bool = False,
        width: int = 640,
        height: int = 480,
        poll_interval: float = 0.033333,
    ) -> None:
        super().__init__("live", flip_colors, width, height)
        self.camera = camera
        self._last_frame_time = -1

        if not camera.ok():
            logger.error("creating live capture failed: %s", camera.error())
            return

        logger.info("live capture created, waiting for first frame")
        while camera.frames.latest_depth_index.get() == -1:
            time.sleep(poll_interval)
        logger.info("first frame received")

    @property
    def num_frames(self) -> int:
        return _INT_MAX

    def get_next(self) -> None:
        """Load the newest frame unless it is the one already loaded."""
        frame = self.camera.frames.latest_frame()
        if frame is None:
            raise RuntimeError("the camera has not published a frame")
        depth, rgb, frame_time = frame
        if frame_time == self._last_frame_time:
            return

        self._last_frame_time = frame_time
        self.timestamp = frame_time
        self.depth = (
            np.frombuffer(depth, dtype=np.uint16).reshape(self.height, self.width).copy()
        )
        pixels = np.frombuffer(rgb, dtype=np.uint8).reshape(self.height, self.width, 3).copy()
        self.rgb = self._swap_red_blue(pixels) if self.flip_colors else pixels

    def has_more(self) -> bool:
        return True

    def rewound(self) -> bool:
        return False

    def rewind(self) -> None:
        """A live source cannot be rewound; nothing changes."""

    def get_back(self) -> None:
        """A live source cannot step back; nothing changes."""

    def fast_forward(self, frame: int) -> None:
        """A live source cannot skip ahead; nothing changes."""

    def set_auto(self, value: bool) -> None:
        self.camera.set_auto_exposure(value)
        self.camera.set_auto_white_balance(value)