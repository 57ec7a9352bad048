from pathlib import Path
from typing import Union

import numpy as np
import yaml

from obstacles_depth.models import CameraIntrinsics, DepthMap


def load_depth_npy(file_path: Union[str, Path]) -> DepthMap:
    """
    Load a depth map (millimetres) saved with np.save
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Depth map file not found: {file_path}")

    return DepthMap(np.load(file_path))


def load_depth_txt(file_path: Union[str, Path]) -> DepthMap:
    """
    Load a whitespace separated depth map, one image row per line
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Depth map file not found: {file_path}")

    depth = np.loadtxt(file_path, dtype=np.float64, ndmin=2)
    return DepthMap(depth)


def load_depth_map(file_path: Union[str, Path]) -> DepthMap:
    """Pick the loader from the file suffix."""
    file_path = Path(file_path)
    suffix = file_path.suffix.lower()
    if suffix == ".npy":
        return load_depth_npy(file_path)
    if suffix in (".txt", ".csv"):
        return load_depth_txt(file_path)
    raise ValueError(f"Unsupported depth map format: {file_path.suffix}")


def load_intrinsics_yaml(file_path: Union[str, Path]) -> CameraIntrinsics:
    """
    Read pinhole intrinsics from YAML with keys fx, fy, cx, cy and optionally
    width, height, distortion.
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Intrinsics file not found: {file_path}")

    with file_path.open("r", encoding="utf-8") as stream:
        data = yaml.safe_load(stream)
    if not isinstance(data, dict):
        raise ValueError(f"Expected YAML mapping at root of {file_path}")

    missing = [key for key in ("fx", "fy", "cx", "cy") if key not in data]
    if missing:
        raise ValueError(f"Intrinsics file {file_path} is missing {', '.join(missing)}")

    return CameraIntrinsics(
        fx=float(data["fx"]),
        fy=float(data["fy"]),
        cx=float(data["cx"]),
        cy=float(data["cy"]),
        width=int(data.get("width", 0)),
        height=int(data.get("height", 0)),
        distortion=tuple(float(v) for v in data.get("distortion", ()) or ()),
    )
