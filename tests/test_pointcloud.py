import struct

import numpy as np
import pytest

from pointview.pointcloud import (
    PointCloud,
    PointCloudError,
    load_ply,
    load_point_cloud,
    load_pts,
    load_pts_bulk,
)

ROWS = [
    [1.0, 2.0, 3.0, 0.5, 0.25, 1.0, 0.0, 0.0, 1.0],
    [-4.5, 0.0, 7.25, 0.0, 1.0, 0.5, 1.0, 0.0, 0.0],
]


def _pts_text(rows, count=None, comments=()):
    lines = list(comments)
    lines.append(str(len(rows) if count is None else count))
    lines.extend(" ".join(str(v) for v in row) for row in rows)
    return "\n".join(lines) + "\n"


def _write(tmp_path, name, content):
    path = tmp_path / name
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content)
    return path


def _ply_bytes(vertices, declared=None, end_header=True):
    header = ["ply", "format binary_little_endian 1.0"]
    header.append(f"element vertex {len(vertices) if declared is None else declared}")
    header += ["property float x", "property float y", "property float z"]
    if end_header:
        header.append("end_header")
    body = b"".join(struct.pack("<6f4B", *v) for v in vertices)
    return ("\n".join(header) + "\n").encode() + body


def _assert_rows(cloud, rows):
    np.testing.assert_allclose(cloud.interleaved(), np.array(rows, dtype=np.float32))


def test_load_pts_round_trip(tmp_path):
    path = _write(tmp_path, "a.pts", _pts_text(ROWS))
    cloud = load_pts(path)
    assert len(cloud) == len(ROWS)
    _assert_rows(cloud, ROWS)


def test_load_pts_skips_leading_comments(tmp_path):
    path = _write(tmp_path, "a.pts", _pts_text(ROWS, comments=["// header", "//x"]))
    _assert_rows(load_pts(path), ROWS)


def test_load_pts_ignores_extra_values(tmp_path):
    text = _pts_text(ROWS, count=1)
    cloud = load_pts(_write(tmp_path, "a.pts", text))
    assert len(cloud) == 1
    _assert_rows(cloud, ROWS[:1])


def test_load_pts_bad_count_line(tmp_path):
    path = _write(tmp_path, "a.pts", "points\n1 2 3\n")
    with pytest.raises(PointCloudError, match="number of points"):
        load_pts(path)


def test_load_pts_too_few_values(tmp_path):
    path = _write(tmp_path, "a.pts", _pts_text(ROWS, count=3))
    with pytest.raises(PointCloudError, match="Failed to read point 2"):
        load_pts(path)


def test_load_pts_non_numeric_value(tmp_path):
    path = _write(tmp_path, "a.pts", "1\n1 2 3 x 0 0 0 0 1\n")
    with pytest.raises(PointCloudError, match="Failed to read point 0"):
        load_pts(path)


def test_load_pts_empty_file_gives_no_points(tmp_path):
    cloud = load_pts(_write(tmp_path, "a.pts", ""))
    assert len(cloud) == 0
    assert cloud.interleaved().shape == (0, 9)


def test_load_pts_missing_file(tmp_path):
    with pytest.raises(PointCloudError):
        load_pts(tmp_path / "missing.pts")


def test_bulk_matches_sequential(tmp_path):
    path = _write(tmp_path, "a.pts", _pts_text(ROWS, comments=["// c"]))
    np.testing.assert_array_equal(load_pts_bulk(path).interleaved(), load_pts(path).interleaved())


def test_bulk_requires_exact_value_count(tmp_path):
    path = _write(tmp_path, "a.pts", _pts_text(ROWS, count=1))
    with pytest.raises(PointCloudError, match="Expected 9 values, but got 18"):
        load_pts_bulk(path)


def test_load_ply_round_trip(tmp_path):
    vertices = [
        (1.0, 2.0, 3.0, 0.0, 1.0, 0.0, 255, 0, 255, 7),
        (-1.5, 0.5, 4.0, 1.0, 0.0, 0.0, 0, 255, 0, 2),
    ]
    cloud = load_ply(_write(tmp_path, "a.ply", _ply_bytes(vertices)))
    assert len(cloud) == 2
    np.testing.assert_allclose(cloud.positions, [v[0:3] for v in vertices])
    np.testing.assert_allclose(cloud.normals, [v[3:6] for v in vertices])
    np.testing.assert_allclose(cloud.colors, [[1.0, 0.0, 1.0], [0.0, 1.0, 0.0]])


def test_load_ply_colors_in_unit_range(tmp_path):
    vertices = [(0, 0, 0, 0, 0, 1, r, g, b, 0) for r, g, b in [(12, 100, 200), (3, 254, 77)]]
    cloud = load_ply(_write(tmp_path, "a.ply", _ply_bytes(vertices)))
    assert cloud.colors.min() >= 0.0
    assert cloud.colors.max() <= 1.0
    np.testing.assert_allclose(cloud.colors * 255.0, [v[6:9] for v in vertices], atol=1e-3)


def test_load_ply_missing_end_header(tmp_path):
    path = _write(tmp_path, "a.ply", _ply_bytes([], end_header=False))
    with pytest.raises(PointCloudError, match="end_header"):
        load_ply(path)


def test_load_ply_truncated_data(tmp_path):
    vertices = [(0, 0, 0, 0, 0, 1, 1, 2, 3, 0)]
    path = _write(tmp_path, "a.ply", _ply_bytes(vertices, declared=2))
    with pytest.raises(PointCloudError, match="binary PLY"):
        load_ply(path)


def test_load_point_cloud_dispatches_by_extension(tmp_path):
    pts = _write(tmp_path, "a.PTS", _pts_text(ROWS))
    _assert_rows(load_point_cloud(pts), ROWS)
    _assert_rows(load_point_cloud(pts, parallel=True), ROWS)
    ply = _write(tmp_path, "b.ply", _ply_bytes([(1, 2, 3, 0, 0, 1, 0, 0, 0, 0)]))
    np.testing.assert_allclose(load_point_cloud(ply).positions, [[1, 2, 3]])


def test_load_point_cloud_unsupported_extension(tmp_path):
    path = _write(tmp_path, "a.xyz", "0\n")
    with pytest.raises(PointCloudError, match="Unsupported file extension: .xyz"):
        load_point_cloud(path)


def test_load_point_cloud_missing_file(tmp_path):
    with pytest.raises(PointCloudError, match="File does not exist"):
        load_point_cloud(tmp_path / "nope.pts")


def test_point_cloud_rejects_mismatched_lengths():
    with pytest.raises(ValueError):
        PointCloud(np.zeros((2, 3)), np.zeros((1, 3)), np.zeros((2, 3)))


def test_interleaved_layout():
    cloud = PointCloud([[1, 2, 3]], [[4, 5, 6]], [[7, 8, 9]])
    data = cloud.interleaved()
    assert data.dtype == np.float32
    np.testing.assert_array_equal(data, [[1, 2, 3, 4, 5, 6, 7, 8, 9]])