"""Point cloud loading from text PTS files and binary PLY files."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import numpy as np

logger = logging.getLogger(__name__)

VALUES_PER_POINT = 9

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")

_PLY_VERTEX = np.dtype(
    [
        ("position", "<f4", (3,)),
        ("normal", "<f4", (3,)),
        ("color", "u1", (3,)),
        ("cls", "u1"),
    ]
)


class PointCloudError(Exception):
    """Raised when a point cloud file cannot be read."""


@dataclass
class PointCloud:
    """Positions, colours in [0, 1] and normals of a set of points, one row each."""

    positions: np.ndarray
    colors: np.ndarray
    normals: np.ndarray

    def __post_init__(self) -> None:
        self.positions = np.asarray(self.positions, dtype=np.float32).reshape(-1, 3)
        self.colors = np.asarray(self.colors, dtype=np.float32).reshape(-1, 3)
        self.normals = np.asarray(self.normals, dtype=np.float32).reshape(-1, 3)
        if not len(self.positions) == len(self.colors) == len(self.normals):
            raise ValueError("positions, colors and normals must have the same length")

    def __len__(self) -> int:
        return len(self.positions)

    def interleaved(self) -> np.ndarray:
        """Return an (N, 9) float32 array of position, colour and normal per point."""
        return np.ascontiguousarray(
            np.hstack([self.positions, self.colors, self.normals]), dtype=np.float32
        )

    @classmethod
    def _from_flat(cls, values: np.ndarray) -> PointCloud:
        rows = np.asarray(values, dtype=np.float32).reshape(-1, VALUES_PER_POINT)
        return cls(rows[:, 0:3], rows[:, 3:6], rows[:, 6:9])


def _read_text(path) -> str:
    try:
        return Path(path).read_text(encoding="latin-1")
    except OSError as exc:
        raise PointCloudError(f"Failed to open file: {path}") from exc


def _split_pts(path) -> tuple[int, str]:
    """Return the point count and the text that follows the count line."""
    lines = _read_text(path).splitlines(keepends=True)
    for index, line in enumerate(lines):
        if line.startswith("//"):
            continue
        match = _LEADING_INT.match(line)
        if match is None:
            raise PointCloudError(
                f"Failed to parse number of points from line: {line.rstrip()}"
            )
        count = int(match.group(1))
        if count < 0:
            raise PointCloudError(f"Negative number of points: {count}")
        return count, "".join(lines[index + 1:])
    return 0, ""


def _floats(tokens: list[str]) -> Iterator[float]:
    """Yield tokens as floats, stopping at the first one that is not a number."""
    for token in tokens:
        try:
            yield float(token)
        except ValueError:
            return


def load_pts(path) -> PointCloud:
    """Load a PTS file: a count line, then nine values per point.

    Lines starting with ``//`` before the count are skipped. Values beyond
    the declared count are ignored.
    """
    count, rest = _split_pts(path)
    needed = count * VALUES_PER_POINT
    values = list(_floats(rest.split()[:needed]))
    if len(values) < needed:
        raise PointCloudError(f"Failed to read point {len(values) // VALUES_PER_POINT}")
    cloud = PointCloud._from_flat(np.array(values, dtype=np.float32))
    logger.info("Loaded %d points from PTS file.", len(cloud))
    return cloud


def load_pts_bulk(path) -> PointCloud:
    """Load a PTS file by reading every value after the count at once.

    The number of values read must be exactly nine times the count.
    """
    count, rest = _split_pts(path)
    values = np.fromiter(_floats(rest.split()), dtype=np.float32)
    expected = count * VALUES_PER_POINT
    if values.size != expected:
        raise PointCloudError(f"Expected {expected} values, but got {values.size}")
    cloud = PointCloud._from_flat(values)
    logger.info("[Bulk] Loaded %d points.", len(cloud))
    return cloud


def _ply_vertex_count(line: str) -> int:
    tokens = line.split()
    if len(tokens) < 3:
        return 0
    match = _LEADING_INT.match(tokens[2])
    return int(match.group(1)) if match else 0


def load_ply(path) -> PointCloud:
    """Load a binary PLY file of 28-byte vertices.

    Each vertex holds little-endian float position and normal, then red,
    green, blue and a class byte.
    """
    try:
        handle = open(path, "rb")
    except OSError as exc:
        raise PointCloudError(f"Failed to open file: {path}") from exc
    with handle:
        count = 0
        header_ended = False
        for raw in iter(handle.readline, b""):
            line = raw.rstrip(b"\n").decode("latin-1")
            if "element vertex" in line:
                count = _ply_vertex_count(line)
            if line == "end_header":
                header_ended = True
                break
        if not header_ended:
            raise PointCloudError("'end_header' not found in file.")
        if count < 0:
            raise PointCloudError(f"Negative number of points: {count}")
        logger.info("[PLY] Number of points in PLY: %d", count)
        data = handle.read(count * _PLY_VERTEX.itemsize)
    if len(data) < count * _PLY_VERTEX.itemsize:
        raise PointCloudError("Error reading binary PLY data.")
    vertices = np.frombuffer(data, dtype=_PLY_VERTEX, count=count)
    cloud = PointCloud(
        positions=vertices["position"],
        colors=vertices["color"].astype(np.float32) / 255.0,
        normals=vertices["normal"],
    )
    logger.info("[PLY] Loaded %d points.", len(cloud))
    return cloud


def load_point_cloud(path, parallel=False) -> PointCloud:
    """Load a point cloud, choosing the reader by the file's extension.

    ``.pts`` files use the bulk reader when ``parallel`` is set.
    """
    file_path = Path(path)
    if not file_path.exists():
        raise PointCloudError(f"File does not exist: {path}")
    extension = file_path.suffix.lower()
    if extension == ".pts":
        return load_pts_bulk(file_path) if parallel else load_pts(file_path)
    if extension == ".ply":
        return load_ply(file_path)
    raise PointCloudError(f"Unsupported file extension: {extension}")