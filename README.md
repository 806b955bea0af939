# fusionlog

`fusionlog` reads and writes RGB-D frame logs, buffers frames that arrive from a
live depth camera, turns ground-truth trajectory files into camera poses, and
parses the command-line options and calibration files of a dense reconstruction
run. Depth and colour frames come out as NumPy arrays.

## Modules

| Module | Contents |
| --- | --- |
| `fusionlog.logreader` | `LogReader` (abstract reader interface), `RawLogReader` (reads log files), `write_log` (writes them) |
| `fusionlog.livereader` | `LiveLogReader`, a `LogReader` that serves the newest frame of a live camera |
| `fusionlog.camera` | `CameraInterface` (abstract camera) and `FrameRing` (ring buffers pairing depth with colour) |
| `fusionlog.jpeg` | `decode_jpeg` and `JPEGDecodeError` |
| `fusionlog.groundtruth` | `GroundTruthOdometry`, `parse_trajectory`, `pose_from_quaternion`, `covariance` |
| `fusionlog.sync` | `MutexValue`, a lock-guarded value with wait and notify |
| `fusionlog.config` | `Options`, `Intrinsics`, `parse_options`, `load_calibration` |

## The log format

All integers are little-endian. A file starts with the number of frames as an
int32. Each frame then holds:

1. the timestamp, an int64;
2. the size of the depth block, an int32;
3. the size of the colour block, an int32;
4. the depth block: raw uint16 depth (`width * height * 2` bytes), or the same
   data zlib-compressed (any other size);
5. the colour block: raw 8-bit triples (`width * height * 3` bytes), a JPEG
   image (any other non-zero size), or nothing when the size is zero, in which
   case the frame is all zeros.

## Writing a log

```python
import numpy as np
from fusionlog.logreader import write_log

depth = np.zeros((480, 640), dtype=np.uint16)
rgb = np.zeros((480, 640, 3), dtype=np.uint8)
count = write_log("scene.klg", [(1000, depth, rgb), (2000, depth, None)], 640, 480, False)
```

`frames` is any iterable of `(timestamp, depth, rgb)`; `rgb` may be `None`.
With `compress=True` the depth is zlib-compressed and the colour stored as a
JPEG (quality 95). Arrays of the wrong shape raise `ValueError`. The return
value is the number of frames written, which is also stored in the header.

## Reading a log

```python
from fusionlog.logreader import RawLogReader

with RawLogReader("scene.klg", False, 640, 480) as reader:
    for _ in range(reader.num_frames):
        reader.get_next()
        print(reader.timestamp, reader.depth.shape, reader.rgb.shape)
```

After `get_next()` the reader holds `timestamp`, `depth` (a `(height, width)`
uint16 array) and `rgb` (a `(height, width, 3)` uint8 array), and
`current_frame` counts the frames read.

- `has_more()` is true while `current_frame + 1 < num_frames`, so a loop
  driven by it stops one frame before the end.
- `get_back()` returns to the position before the last read and loads that
  frame again; with nothing to go back to it raises `IndexError`.
- `fast_forward(frame)` skips frames without decoding them until
  `current_frame` reaches `frame` or `has_more()` turns false.
- `rewind()` returns to the first frame; `rewound()` is true when there is no
  position to step back to.
- `set_auto(value)` does nothing for a recorded log.
- Passing `True` as `flip_colors` swaps the red and blue channels of each
  colour frame.

A truncated file raises `EOFError`; undecodable depth raises `ValueError`;
a colour block that is not a valid JPEG raises `JPEGDecodeError`.

## JPEG frames

`decode_jpeg(data)` decodes JPEG bytes into a `(height, width, 3)` uint8 array
with the channel order reversed, matching how colour is stored in the log.
Anything that is not a decodable JPEG raises `JPEGDecodeError`, a subclass of
`ValueError`.

## Live cameras

A camera backend subclasses `CameraInterface`, implements `ok()`, `error()`,
`set_auto_exposure(value)` and `set_auto_white_balance(value)`, and provides a
`frames` attribute holding a `FrameRing(width, height)`. Its capture callbacks
call `frames.on_rgb_frame(data)` with `width * height * 3` bytes and
`frames.on_depth_frame(data)` with `width * height * 2` bytes; other sizes
raise `ValueError`. The ring keeps ten buffers. A depth frame is published
only once a colour frame has arrived, paired with a copy of the newest one.
`frames.latest_frame()` returns `(depth_bytes, rgb_bytes, timestamp_ms)` or
`None` before the first paired frame.

`LiveLogReader(camera, flip_colors, width, height, poll_interval)` presents
such a camera through the `LogReader` interface. If the camera is `ok()`, the
constructor waits, polling every `poll_interval` seconds, until the first frame
is published; otherwise it logs the camera's `error()`. `get_next()` loads the
newest frame unless its timestamp equals the one already loaded, and raises
`RuntimeError` if nothing has been published. `has_more()` is always true,
`num_frames` is 2**31 - 1, `rewound()` is false, `rewind()`, `get_back()` and
`fast_forward()` do nothing, and `set_auto(value)` sets both automatic exposure
and white balance on the camera.

## Shared values

`MutexValue(initial)` guards one value with a condition: `assign`, `get`,
`increment`, `assign_and_notify_all`, `notify_all`, `wait_for_signal(timeout)`
(raises `TimeoutError` when no signal comes in time) and `get_wait(wait)`,
which sleeps `wait` microseconds before reading.

## Ground-truth trajectories

A trajectory file has one pose per line, blank lines ignored:

```
utime,x,y,z,qx,qy,qz,qw
```

`parse_trajectory(lines)` returns a dict from timestamp to 4×4 float32 pose
and raises `ValueError` on malformed lines. `pose_from_quaternion` builds one
such pose. `GroundTruthOdometry(path)` loads a file; its
`get_transformation(timestamp)` returns the identity on the first call, and
afterwards the stored pose converted out of the file's axis convention. A
timestamp with no pose raises `KeyError`. `covariance()` returns the fixed
diagonal 6×6 matrix `[0.1, 0.1, 0.1, 0.5, 0.5, 0.5]`.

## Options and calibration

`parse_options(argv)` reads arguments (without the program name; `sys.argv[1:]`
when `argv` is `None`) into an `Options` dataclass. Unknown arguments are
ignored and the first occurrence of an option wins.

| Option | Field | Default |
| --- | --- | --- |
| `-l FILE` | `log_file` | `""` (live) |
| `-cal FILE` | `calibration_file` | `""` |
| `-p FILE` | `pose_file` | `""` |
| `-c` | `confidence` | 10.0 |
| `-d` | `depth` | 3.0 |
| `-i` | `icp` | 10.0 |
| `-ie` | `icp_err_thresh` | 5e-05 |
| `-cv` | `cov_thresh` | 1e-05 |
| `-pt` | `photo_thresh` | 115.0 |
| `-ft` | `fern_thresh` | 0.3095 |
| `-t` | `time_delta` | 200 |
| `-ic` | `icp_count_thresh` | 40000 |
| `-s` | `start` | 1 |
| `-e` | `end` | 65535 |

Switches: `-icl` (`iclnuim`), `-f` (`flip_colors`), `-nso` (turns `so3` off),
`-o` (`open_loop`, ignored when a pose file is given), `-rl` (`reloc`), `-fs`
(`frameskip`), `-q` (`quiet`), `-fo` (`fast_odom`), `-r` (`rewind`), `-ftf`
(`frame_to_frame_rgb`), `-sc` (`showcase`). A value option without a value, or
with a value that does not convert, raises `ValueError`.

`Options.live` is true without a log file; `Options.effective_time_delta` is
`(2**31 - 1) // 2` in open loop and `time_delta` otherwise. With `-cal`, the
intrinsics come from `load_calibration(path)`, which reads `fx fy cx cy` from
the file's first line; otherwise `Intrinsics()` is fx = fy = 528, cx = 320,
cy = 240. `Intrinsics.matrix()` gives the 3×3 camera matrix.

## What the package does not do

It has no command-line program, no viewer, and performs no reconstruction or
tracking: `Options` only records settings. It ships no camera drivers — live
capture needs a `CameraInterface` implementation supplied by the user.

## Requirements

Python 3.10 or later, NumPy and Pillow. Tests use pytest (`pip install .[test]`).