"""
Reading and writing level set data.

Plain text, raw binary and ParaView legacy VTK output (written through meshio)
of the nodal signed distance and extension velocity. All formats store values
in node order.
"""
from __future__ import annotations

import os
from typing import Optional

import meshio
import numpy as np

from level_set import LevelSet


def datapoint_filename(prefix: str, datapoint: int, ext: str,
                       output_directory: Optional[str] = None) -> str:
    """
    File name for one datapoint of a trajectory, e.g. ``level-set_0007.txt``.
    """
    name = f"{prefix}_{int(datapoint):04d}.{ext.lstrip('.')}"
    if output_directory:
        return os.path.join(output_directory, name)
    return name


def _check_size(values: np.ndarray, mesh, path: str) -> np.ndarray:
    if values.size != mesh.n_nodes:
        raise ValueError(
            f"{path} holds {values.size} values, mesh has {mesh.n_nodes} nodes"
        )
    return values


def save_level_set_txt(path: str, level_set: LevelSet, with_xy: bool = False) -> None:
    """
    Save the signed distance as plain text, one node per line.

    Parameters:
    - path: output filepath
    - level_set: the level set to save
    - with_xy: prefix every line with the node's x and y coordinates
    """
    if with_xy:
        data = np.column_stack([level_set.mesh.coordinates, level_set.signed_distance])
    else:
        data = level_set.signed_distance.reshape(-1, 1)
    np.savetxt(path, data, fmt="%.10f")


def load_level_set_txt(path: str, mesh, mask=None) -> LevelSet:
    """
    Load a level set written by save_level_set_txt (with or without x, y).
    """
    data = np.loadtxt(path, dtype=float, ndmin=2)
    values = _check_size(data[:, -1], mesh, path)
    return LevelSet(mesh, values, mask=mask)


def save_level_set_bin(path: str, level_set: LevelSet) -> None:
    """Save the signed distance as raw little-endian float64."""
    level_set.signed_distance.astype("<f8").tofile(path)


def load_level_set_bin(path: str, mesh, mask=None) -> LevelSet:
    """Load a level set written by save_level_set_bin."""
    values = _check_size(np.fromfile(path, dtype="<f8"), mesh, path)
    return LevelSet(mesh, values.astype(float), mask=mask)


def to_meshio(level_set: LevelSet, with_velocity: bool = False) -> meshio.Mesh:
    """
    Convert a level set to a meshio quad mesh with nodal point data.

    Points are the mesh nodes (z = 0) in node order; every grid cell becomes
    one quad with counter-clockwise corners.
    """
    mesh = level_set.mesh
    points = np.column_stack([mesh.coordinates, np.zeros(mesh.n_nodes)])

    idx = np.arange(mesh.n_nodes).reshape(mesh.ny, mesh.nx)
    quads = np.column_stack([
        idx[:-1, :-1].ravel(),
        idx[:-1, 1:].ravel(),
        idx[1:, 1:].ravel(),
        idx[1:, :-1].ravel(),
    ])
    cells = [("quad", quads)] if len(quads) else []

    point_data = {"level-set": np.asarray(level_set.signed_distance, dtype=float)}
    if with_velocity:
        point_data["velocity"] = np.asarray(level_set.velocity, dtype=float)

    return meshio.Mesh(points=points, cells=cells, point_data=point_data)


def save_level_set_vtk(path: str, level_set: LevelSet, with_velocity: bool = False) -> None:
    """
    Save the level set as a ParaView legacy VTK file.

    Parameters:
    - path: output .vtk filepath
    - level_set: the level set to save
    - with_velocity: also write the extension velocity as point data
    """
    to_meshio(level_set, with_velocity=with_velocity).write(path, file_format="vtk")
