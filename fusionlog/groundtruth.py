"""Camera poses replayed from a ground-truth trajectory file."""

from __future__ import annotations

from collections.abc import Iterable
from os import PathLike

import numpy as np

# Poses in the file are stored in the iSAM basis; this undoes it.
_BASIS = np.array(
    [
        [0, 0, 1, 0],
        [-1, 0, 0, 0],
        [0, -1, 0, 0],
        [0, 0, 0, 1],
    ],
    dtype=np.float32,
)
_BASIS_INV = np.linalg.inv(_BASIS).astype(np.float32)


def pose_from_quaternion(x, y, z, qx, qy, qz, qw) -> np.ndarray:
    """Build a 4x4 rigid transform from a translation and a quaternion."""
    tx, ty, tz = 2 * qx, 2 * qy, 2 * qz
    twx, twy, twz = tx * qw, ty * qw, tz * qw
    txx, txy, txz = tx * qx, ty * qx, tz * qx
    tyy, tyz, tzz = ty * qy, tz * qy, tz * qz
    pose = np.identity(4, dtype=np.float32)
    pose[:3, :3] = [
        [1 - (tyy + tzz), txy - twz, txz + twy],
        [txy + twz, 1 - (txx + tzz), tyz - twx],
        [txz - twy, tyz + twx, 1 - (txx + tyy)],
    ]
    pose[:3, 3] = [x, y, z]
    return pose


def parse_trajectory(lines: Iterable[str]) -> dict[int, np.ndarray]:
    """Parse ``utime,x,y,z,qx,qy,qz,qw`` lines into poses keyed by time.

    Blank lines are skipped; a malformed line raises ValueError.
    """
    trajectory: dict[int, np.ndarray] = {}
    for number, line in enumerate(lines, start=1):
        text = line.strip()
        if not text:
            continue
        fields = text.split(",")
        if len(fields) != 8:
            raise ValueError(f"line {number}: expected 8 fields, got {len(fields)}")
        try:
            utime = int(fields[0])
            values = [float(field) for field in fields[1:]]
        except ValueError as exc:
            raise ValueError(f"line {number}: {exc}") from exc
        if utime < 0:
            raise ValueError(f"line {number}: negative timestamp")
        trajectory[utime] = pose_from_quaternion(*values)
    return trajectory


def covariance() -> np.ndarray:
    """The fixed 6x6 covariance reported for ground-truth poses."""
    return np.diag([0.1, 0.1, 0.1, 0.5, 0.5, 0.5])


class GroundTruthOdometry:
    """Serve poses from a trajectory file, one timestamp at a time."""

    def __init__(self, path: str | PathLike) -> None:
        with open(path, encoding="utf-8") as handle:
            self.trajectory = parse_trajectory(handle)
        self.last_utime = 0

    def get_transformation(self, timestamp: int) -> np.ndarray:
        """Return the pose for ``timestamp``; the first call yields identity."""
        pose = np.identity(4, dtype=np.float32)

        if self.last_utime != 0:
            if self.last_utime not in self.trajectory:
                self.last_utime = timestamp
                return pose
            if timestamp not in self.trajectory:
                raise KeyError(f"no pose for timestamp {timestamp}")
            pose = _BASIS_INV @ self.trajectory[timestamp] @ _BASIS
        else:
            if timestamp not in self.trajectory:
                raise KeyError(f"no pose for timestamp {timestamp}")
            self.trajectory[self.last_utime] = self.trajectory[timestamp]

        self.last_utime = timestamp
        return pose