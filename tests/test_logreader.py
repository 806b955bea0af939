import struct

import numpy as np
import pytest

from fusionlog.logreader import LogReader, RawLogReader, write_log

W, H = 4, 3


def make_frames(count, width=W, height=H, with_rgb=True):
    frames = []
    for n in range(count):
        depth = (np.arange(width * height, dtype=np.uint16) + 100 * n).reshape(height, width)
        rgb = None
        if with_rgb:
            rgb = ((np.arange(width * height * 3) + 7 * n) % 256).astype(np.uint8)
            rgb = rgb.reshape(height, width, 3)
        frames.append((1000 + n, depth, rgb))
    return frames


@pytest.fixture
def log_path(tmp_path):
    path = tmp_path / "frames.klg"
    write_log(path, make_frames(3), W, H)
    return path


def test_header_holds_frame_count(tmp_path):
    path = tmp_path / "two.klg"
    assert write_log(path, make_frames(2), W, H) == 2
    data = path.read_bytes()
    assert struct.unpack("<i", data[:4])[0] == 2


def test_raw_round_trip(log_path):
    frames = make_frames(3)
    with RawLogReader(log_path, False, W, H) as reader:
        assert reader.num_frames == 3
        for timestamp, depth, rgb in frames[:2]:
            reader.get_next()
            assert reader.timestamp == timestamp
            np.testing.assert_array_equal(reader.depth, depth)
            np.testing.assert_array_equal(reader.rgb, rgb)


def test_compressed_depth_is_exact(tmp_path):
    path = tmp_path / "c.klg"
    frames = make_frames(2)
    write_log(path, frames, W, H, compress=True)
    with RawLogReader(path, False, W, H) as reader:
        reader.get_next()
        np.testing.assert_array_equal(reader.depth, frames[0][1])


def test_jpeg_colour_round_trip(tmp_path):
    path = tmp_path / "j.klg"
    depth = np.zeros((8, 8), dtype=np.uint16)
    rgb = np.zeros((8, 8, 3), dtype=np.uint8)
    rgb[...] = (200, 100, 50)
    write_log(path, [(5, depth, rgb)], 8, 8, compress=True)
    with RawLogReader(path, False, 8, 8) as reader:
        reader.get_next()
        diff = np.abs(reader.rgb.astype(int) - rgb.astype(int))
        assert diff.max() <= 4


def test_missing_colour_gives_black(tmp_path):
    path = tmp_path / "d.klg"
    write_log(path, make_frames(2, with_rgb=False), W, H)
    with RawLogReader(path, False, W, H) as reader:
        reader.get_next()
        assert reader.rgb.shape == (H, W, 3)
        assert not reader.rgb.any()


def test_flip_colors_swaps_red_and_blue(log_path):
    frames = make_frames(3)
    with RawLogReader(log_path, True, W, H) as reader:
        reader.get_next()
        original = frames[0][2]
        np.testing.assert_array_equal(reader.rgb[..., 0], original[..., 2])
        np.testing.assert_array_equal(reader.rgb[..., 2], original[..., 0])
        np.testing.assert_array_equal(reader.rgb[..., 1], original[..., 1])


def test_has_more_stops_before_last_frame(log_path):
    with RawLogReader(log_path, False, W, H) as reader:
        assert reader.has_more()
        reader.get_next()
        assert reader.has_more()
        reader.get_next()
        assert reader.current_frame == 2
        assert not reader.has_more()


def test_get_back_rereads_previous_position(log_path):
    frames = make_frames(3)
    with RawLogReader(log_path, False, W, H) as reader:
        reader.get_next()
        reader.get_next()
        reader.get_back()
        assert reader.timestamp == frames[1][0]
        reader.get_back()
        assert reader.timestamp == frames[0][0]
        assert reader.rewound()


def test_get_back_without_history_raises(log_path):
    with RawLogReader(log_path, False, W, H) as reader:
        with pytest.raises(IndexError):
            reader.get_back()


def test_fast_forward_skips_frames(log_path):
    frames = make_frames(3)
    with RawLogReader(log_path, False, W, H) as reader:
        reader.fast_forward(2)
        assert reader.current_frame == 2
        assert len(reader.file_pointers) == 2
        reader.get_next()
        assert reader.timestamp == frames[2][0]
        np.testing.assert_array_equal(reader.depth, frames[2][1])


def test_fast_forward_stops_at_end(log_path):
    with RawLogReader(log_path, False, W, H) as reader:
        reader.fast_forward(50)
        assert reader.current_frame == reader.num_frames - 1


def test_rewind_restarts(log_path):
    frames = make_frames(3)
    with RawLogReader(log_path, False, W, H) as reader:
        reader.get_next()
        reader.get_next()
        assert not reader.rewound()
        reader.rewind()
        assert reader.rewound()
        assert reader.current_frame == 0
        reader.get_next()
        assert reader.timestamp == frames[0][0]


def test_truncated_log_raises(tmp_path, log_path):
    cut = tmp_path / "cut.klg"
    cut.write_bytes(log_path.read_bytes()[:30])
    with RawLogReader(cut, False, W, H) as reader:
        with pytest.raises(EOFError):
            reader.get_next()


def test_corrupt_depth_raises(tmp_path):
    path = tmp_path / "bad.klg"
    payload = b"\x01\x02\x03"
    path.write_bytes(struct.pack("<i", 1) + struct.pack("<qii", 1, len(payload), 0) + payload)
    with RawLogReader(path, False, W, H) as reader:
        with pytest.raises(ValueError):
            reader.get_next()


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        RawLogReader(tmp_path / "absent.klg", False, W, H)


def test_wrong_depth_shape_rejected(tmp_path):
    bad = [(1, np.zeros((2, 2), dtype=np.uint16), None)]
    with pytest.raises(ValueError):
        write_log(tmp_path / "x.klg", bad, W, H)


def test_close_closes_file(log_path):
    reader = RawLogReader(log_path, False, W, H)
    with reader:
        pass
    with pytest.raises(ValueError):
        reader.get_next()


def test_base_class_is_abstract(log_path):
    with pytest.raises(TypeError):
        LogReader(log_path, False, W, H)