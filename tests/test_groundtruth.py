import math

import numpy as np
import pytest

from fusionlog.groundtruth import (
    GroundTruthOdometry,
    covariance,
    parse_trajectory,
    pose_from_quaternion,
)


def test_identity_quaternion_keeps_translation():
    pose = pose_from_quaternion(1.0, 2.0, 3.0, 0.0, 0.0, 0.0, 1.0)
    assert np.allclose(pose[:3, :3], np.identity(3))
    assert np.allclose(pose[:3, 3], [1.0, 2.0, 3.0])
    assert np.allclose(pose[3], [0, 0, 0, 1])


def test_quarter_turn_about_z():
    s = math.sqrt(0.5)
    pose = pose_from_quaternion(0.0, 0.0, 0.0, 0.0, 0.0, s, s)
    assert np.allclose(pose[:3, :3], [[0, -1, 0], [1, 0, 0], [0, 0, 1]], atol=1e-6)


def test_rotation_is_orthonormal():
    q = np.array([0.3, -0.4, 0.5, 0.6])
    q /= np.linalg.norm(q)
    pose = pose_from_quaternion(0.1, 0.2, 0.3, *q)
    rot = pose[:3, :3]
    assert np.allclose(rot @ rot.T, np.identity(3), atol=1e-5)
    assert np.linalg.det(rot) == pytest.approx(1.0, abs=1e-5)


def test_parse_trajectory_reads_lines_and_skips_blanks():
    lines = ["100,1,2,3,0,0,0,1\n", "\n", "200,4,5,6,0,0,0,1\n"]
    trajectory = parse_trajectory(lines)
    assert sorted(trajectory) == [100, 200]
    assert np.allclose(trajectory[200][:3, 3], [4, 5, 6])


def test_parse_trajectory_later_duplicate_wins():
    trajectory = parse_trajectory(["5,1,1,1,0,0,0,1", "5,2,2,2,0,0,0,1"])
    assert np.allclose(trajectory[5][:3, 3], [2, 2, 2])


@pytest.mark.parametrize(
    "line",
    ["100,1,2,3,0,0,0", "abc,1,2,3,0,0,0,1", "100,1,2,x,0,0,0,1"],
)
def test_parse_trajectory_rejects_malformed(line):
    with pytest.raises(ValueError):
        parse_trajectory([line])


def test_covariance_diagonal():
    cov = covariance()
    assert cov.shape == (6, 6)
    assert np.allclose(np.diag(cov), [0.1, 0.1, 0.1, 0.5, 0.5, 0.5])
    assert np.count_nonzero(cov) == 6


@pytest.fixture
def trajectory_file(tmp_path):
    path = tmp_path / "poses.txt"
    path.write_text("100,0,0,0,0,0,0,1\n200,1,2,3,0,0,0,1\n")
    return path


def test_first_call_returns_identity(trajectory_file):
    odometry = GroundTruthOdometry(trajectory_file)
    assert np.allclose(odometry.get_transformation(100), np.identity(4))
    assert odometry.last_utime == 100


def test_second_call_changes_basis(trajectory_file):
    odometry = GroundTruthOdometry(trajectory_file)
    odometry.get_transformation(100)
    pose = odometry.get_transformation(200)
    assert np.allclose(pose[:3, :3], np.identity(3))
    assert np.allclose(pose[:3, 3], [-2, -3, 1])
    assert np.linalg.norm(pose[:3, 3]) == pytest.approx(math.sqrt(14), rel=1e-5)


def test_missing_first_timestamp_raises(trajectory_file):
    odometry = GroundTruthOdometry(trajectory_file)
    with pytest.raises(KeyError):
        odometry.get_transformation(999)


def test_missing_later_timestamp_raises(trajectory_file):
    odometry = GroundTruthOdometry(trajectory_file)
    odometry.get_transformation(100)
    with pytest.raises(KeyError):
        odometry.get_transformation(999)


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        GroundTruthOdometry(tmp_path / "absent.txt")