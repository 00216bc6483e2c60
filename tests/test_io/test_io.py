import os, sys
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import meshio
import numpy as np
import pytest

from checkpoint_utils import CheckpointMeta, load_checkpoint, save_checkpoint
from io_utils import (datapoint_filename, load_level_set_bin, load_level_set_txt,
                      save_level_set_bin, save_level_set_txt, save_level_set_vtk)
from level_set import LevelSet
from mesh import Mesh


@pytest.fixture
def level_set():
    mesh = Mesh(7, 5, dx=0.25, dy=0.5, origin=(-1.0, 0.5))
    ls = LevelSet.circle(mesh, -0.25, 1.5, 0.6)
    ls.extend_velocities(lambda x, y: 1.0 + x * y)
    return ls


def test_datapoint_filename(tmp_path):
    assert datapoint_filename("level-set", 7, "txt") == "level-set_0007.txt"
    assert datapoint_filename("velocity", 12, ".bin") == "velocity_0012.bin"
    assert datapoint_filename("level-set", 3, "vtk", str(tmp_path)) == \
        os.path.join(str(tmp_path), "level-set_0003.vtk")


def test_text_files(tmp_path, level_set):
    mesh = level_set.mesh

    plain = tmp_path / "plain.txt"
    save_level_set_txt(str(plain), level_set)
    assert len(plain.read_text().splitlines()) == mesh.n_nodes
    loaded = load_level_set_txt(str(plain), mesh)
    np.testing.assert_allclose(loaded.signed_distance, level_set.signed_distance, atol=1e-10)

    with_xy = tmp_path / "xy.txt"
    save_level_set_txt(str(with_xy), level_set, with_xy=True)
    data = np.loadtxt(str(with_xy))
    assert data.shape == (mesh.n_nodes, 3)
    np.testing.assert_allclose(data[:, :2], mesh.coordinates, atol=1e-10)
    loaded = load_level_set_txt(str(with_xy), mesh)
    np.testing.assert_allclose(loaded.signed_distance, level_set.signed_distance, atol=1e-10)


def test_binary_files(tmp_path, level_set):
    path = tmp_path / "level-set.bin"
    save_level_set_bin(str(path), level_set)

    assert path.stat().st_size == 8 * level_set.mesh.n_nodes
    loaded = load_level_set_bin(str(path), level_set.mesh)
    np.testing.assert_array_equal(loaded.signed_distance, level_set.signed_distance)


def test_loading_with_the_wrong_mesh(tmp_path, level_set):
    txt = tmp_path / "level-set.txt"
    binary = tmp_path / "level-set.bin"
    save_level_set_txt(str(txt), level_set)
    save_level_set_bin(str(binary), level_set)

    other = Mesh(4, 4)
    with pytest.raises(ValueError):
        load_level_set_txt(str(txt), other)
    with pytest.raises(ValueError):
        load_level_set_bin(str(binary), other)


def test_vtk_file(tmp_path, level_set):
    mesh = level_set.mesh
    path = tmp_path / "level-set.vtk"
    save_level_set_vtk(str(path), level_set, with_velocity=True)

    vtk_mesh = meshio.read(str(path))

    assert vtk_mesh.points.shape == (mesh.n_nodes, 3)
    np.testing.assert_allclose(vtk_mesh.points[:, :2], mesh.coordinates)
    np.testing.assert_array_equal(vtk_mesh.points[:, 2], 0.0)

    quads = vtk_mesh.cells_dict["quad"]
    assert quads.shape == ((mesh.nx - 1) * (mesh.ny - 1), 4)
    # First cell: nodes (0, 0), (1, 0), (1, 1), (0, 1)
    assert quads[0].tolist() == [0, 1, mesh.nx + 1, mesh.nx]

    np.testing.assert_allclose(np.ravel(vtk_mesh.point_data["level-set"]),
                               level_set.signed_distance)
    np.testing.assert_allclose(np.ravel(vtk_mesh.point_data["velocity"]),
                               level_set.velocity)


def test_vtk_file_without_velocity(tmp_path, level_set):
    path = tmp_path / "level-set.vtk"
    save_level_set_vtk(str(path), level_set)

    vtk_mesh = meshio.read(str(path))

    assert "velocity" not in vtk_mesh.point_data
    np.testing.assert_allclose(np.ravel(vtk_mesh.point_data["level-set"]),
                               level_set.signed_distance)


def test_checkpoint_round_trip(tmp_path):
    mesh = Mesh(6, 3, dx=1.0, origin=(2.0, -1.0))
    mask = mesh.X == 4.0
    level_set = LevelSet(mesh, mesh.X - 2.5, mask=mask)
    level_set.extend_velocities(np.full(mesh.shape, 0.3))
    # Nodes behind the masked column keep a NaN velocity
    assert np.any(np.isnan(level_set.velocity))

    meta = CheckpointMeta(nx=mesh.nx, ny=mesh.ny, dx=mesh.dx, dy=mesh.dy, datapoint=4,
                          reinitialised=True, velocity_extended=True, notes='masked column')
    path = tmp_path / "checkpoint.npz"
    save_checkpoint(str(path), level_set, meta)

    restored, restored_meta = load_checkpoint(str(path))

    assert restored.mesh.shape == mesh.shape
    assert restored.mesh.spacing == mesh.spacing
    np.testing.assert_allclose(restored.mesh.coordinates, mesh.coordinates)
    np.testing.assert_array_equal(restored.signed_distance, level_set.signed_distance)
    np.testing.assert_array_equal(restored.velocity, level_set.velocity)
    np.testing.assert_array_equal(restored.mask, level_set.mask)
    assert restored_meta == meta


def test_checkpoint_default_meta(tmp_path):
    mesh = Mesh.from_domain(5, 4, 1.0, 0.75)
    level_set = LevelSet.circle(mesh, 0.5, 0.4, 0.2)
    path = tmp_path / "checkpoint.npz"
    save_checkpoint(str(path), level_set)

    restored, meta = load_checkpoint(str(path))

    assert (meta.nx, meta.ny) == (5, 4)
    assert meta.dx == pytest.approx(0.25)
    assert meta.datapoint is None
    assert np.all(np.isnan(restored.velocity))
    # The restored level set can be marched straight away
    result = restored.reinitialise()
    assert result.n_unreached == 0
