"""
Checkpoint utilities for saving and restoring level sets.

This module provides lightweight, portable save/restore helpers that serialize
the state needed to rebuild a LevelSet later.

Design goals:
- Numpy-based, no pickling of runtime objects
- Save the fields (signed distance, velocity, mask) and the grid geometry
- Recreate a Mesh and LevelSet on load with identical dimensions and spacing
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import numpy as np

from level_set import LevelSet
from mesh import Mesh


@dataclass
class CheckpointMeta:
    nx: int
    ny: int
    dx: float
    dy: float
    # Optional run information (informational; not enforced during load)
    datapoint: Optional[int] = None
    reinitialised: Optional[bool] = None
    velocity_extended: Optional[bool] = None
    notes: Optional[str] = None
    extra: Optional[Dict[str, Any]] = None

    def to_json(self) -> str:
        return json.dumps(self.__dict__)

    @staticmethod
    def from_json(s: str) -> "CheckpointMeta":
        data = json.loads(s)
        return CheckpointMeta(**data)


def save_checkpoint(path: str, level_set: LevelSet,
                    meta: Optional[CheckpointMeta] = None) -> None:
    """
    Save a level set to a compressed NPZ file.

    Parameters:
    - path: output .npz filepath
    - level_set: the level set whose fields and grid are saved
    - meta: optional metadata about the run
    """
    mesh = level_set.mesh
    meta_obj = meta or CheckpointMeta(nx=mesh.nx, ny=mesh.ny, dx=mesh.dx, dy=mesh.dy)

    np.savez_compressed(
        path,
        signed_distance=np.asarray(level_set.signed_distance, dtype=float),
        velocity=np.asarray(level_set.velocity, dtype=float),
        mask=np.asarray(level_set.mask, dtype=bool),
        nx=np.int32(mesh.nx),
        ny=np.int32(mesh.ny),
        dx=np.float64(mesh.dx),
        dy=np.float64(mesh.dy),
        origin=np.array([mesh.x[0], mesh.y[0]], dtype=float),
        meta_json=meta_obj.to_json(),
    )


def load_checkpoint(path: str) -> Tuple[LevelSet, CheckpointMeta]:
    """
    Load a checkpoint and reconstruct the mesh and level set.

    Returns (level_set, meta)
    """
    with np.load(path, allow_pickle=False) as data:
        nx = int(data["nx"])
        ny = int(data["ny"])
        dx = float(data["dx"])
        dy = float(data["dy"])
        origin = tuple(float(v) for v in data["origin"]) if "origin" in data else (0.0, 0.0)

        signed_distance = np.array(data["signed_distance"], dtype=float)
        velocity = np.array(data["velocity"], dtype=float)
        mask = np.array(data["mask"], dtype=bool) if "mask" in data else None
        meta_json = data["meta_json"].item() if "meta_json" in data else ""

    meta = CheckpointMeta.from_json(meta_json) if meta_json else CheckpointMeta(nx=nx, ny=ny, dx=dx, dy=dy)

    mesh = Mesh(nx, ny, dx=dx, dy=dy, origin=origin)
    level_set = LevelSet(mesh, signed_distance, mask=mask)
    level_set.velocity = velocity
    return level_set, meta
