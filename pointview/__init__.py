"""Interactive point cloud viewer for PTS and binary PLY files, with loaders and a fly-through camera."""

__version__ = "0.1.0"
__all__ = ["__version__"]