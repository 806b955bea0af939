"""Run options taken from the command line and camera calibration files."""

from __future__ import annotations

import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from os import PathLike
from typing import Optional

import numpy as np

_INT_MAX = 2**31 - 1
# Frame times are predicted as unsigned shorts, which bounds the last frame.
_USHORT_MAX = 2**16 - 1

_SWITCHES = {
    "-icl": "iclnuim",
    "-f": "flip_colors",
    "-nso": "no_so3",
    "-o": "open_loop_requested",
    "-rl": "reloc",
    "-fs": "frameskip",
    "-q": "quiet",
    "-fo": "fast_odom",
    "-r": "rewind",
    "-ftf": "frame_to_frame_rgb",
    "-sc": "showcase",
}

_VALUES: dict[str, tuple[str, Callable[[str], object]]] = {
    "-cal": ("calibration_file", str),
    "-l": ("log_file", str),
    "-p": ("pose_file", str),
    "-c": ("confidence", float),
    "-d": ("depth", float),
    "-i": ("icp", float),
    "-ie": ("icp_err_thresh", float),
    "-cv": ("cov_thresh", float),
    "-pt": ("photo_thresh", float),
    "-ft": ("fern_thresh", float),
    "-t": ("time_delta", int),
    "-ic": ("icp_count_thresh", int),
    "-s": ("start", int),
    "-e": ("end", int),
}


@dataclass(frozen=True)
class Intrinsics:
    """Pinhole camera intrinsics."""

    fx: float = 528.0
    fy: float = 528.0
    cx: float = 320.0
    cy: float = 240.0

    def matrix(self) -> np.ndarray:
        """The 3x3 camera matrix."""
        return np.array(
            [[self.fx, 0.0, self.cx], [0.0, self.fy, self.cy], [0.0, 0.0, 1.0]],
            dtype=np.float32,
        )


@dataclass
class Options:
    """Everything the command line controls about a run."""

    iclnuim: bool = False
    calibration_file: str = ""
    log_file: str = ""
    pose_file: str = ""
    flip_colors: bool = False
    intrinsics: Intrinsics = field(default_factory=Intrinsics)
    width: int = 640
    height: int = 480

    confidence: float = 10.0
    depth: float = 3.0
    icp: float = 10.0
    icp_err_thresh: float = 5e-05
    cov_thresh: float = 1e-05
    photo_thresh: float = 115.0
    fern_thresh: float = 0.3095

    time_delta: int = 200
    icp_count_thresh: int = 40000
    start: int = 1
    end: int = _USHORT_MAX

    so3: bool = True
    open_loop: bool = False
    reloc: bool = False
    frameskip: bool = False
    quiet: bool = False
    fast_odom: bool = False
    rewind: bool = False
    frame_to_frame_rgb: bool = False
    showcase: bool = False

    @property
    def live(self) -> bool:
        """Whether frames come from a camera rather than a log file."""
        return not self.log_file

    @property
    def effective_time_delta(self) -> int:
        """The time window used for fusion; open loop makes it effectively unbounded."""
        return _INT_MAX // 2 if self.open_loop else self.time_delta


def load_calibration(path: str | PathLike) -> Intrinsics:
    """Read ``fx fy cx cy`` from the first line of a calibration file."""
    with open(path, encoding="utf-8") as handle:
        line = handle.readline()
    fields = line.split()
    if len(fields) < 4:
        raise ValueError(
            "calibration file should contain a single line with fx fy cx cy"
        )
    try:
        fx, fy, cx, cy = (float(value) for value in fields[:4])
    except ValueError as exc:
        raise ValueError(f"bad calibration value: {exc}") from exc
    return Intrinsics(fx, fy, cx, cy)


def parse_options(argv: Optional[Sequence[str]] = None) -> Options:
    """Build run options from command-line arguments.

    ``argv`` excludes the program name; unknown arguments are ignored.
    The first occurrence of an option wins.
    """
    args = list(sys.argv[1:] if argv is None else argv)
    switches: set[str] = set()
    values: dict[str, object] = {}

    position = 0
    while position < len(args):
        token = args[position]
        if token in _SWITCHES:
            switches.add(_SWITCHES[token])
        elif token in _VALUES:
            name, convert = _VALUES[token]
            if position + 1 >= len(args):
                raise ValueError(f"option {token} needs a value")
            raw = args[position + 1]
            if name not in values:
                try:
                    values[name] = convert(raw)
                except ValueError as exc:
                    raise ValueError(f"bad value for {token}: {raw!r}") from exc
            position += 1
        position += 1

    options = Options(**values)
    if options.calibration_file:
        options.intrinsics = load_calibration(options.calibration_file)

    options.iclnuim = "iclnuim" in switches
    options.flip_colors = "flip_colors" in switches
    options.so3 = "no_so3" not in switches
    options.open_loop = not options.pose_file and "open_loop_requested" in switches
    options.reloc = "reloc" in switches
    options.frameskip = "frameskip" in switches
    options.quiet = "quiet" in switches
    options.fast_odom = "fast_odom" in switches
    options.rewind = "rewind" in switches
    options.frame_to_frame_rgb = "frame_to_frame_rgb" in switches
    options.showcase = "showcase" in switches
    return options