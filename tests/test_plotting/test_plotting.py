import os, sys
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np

from level_set import LevelSet
from mesh import Mesh
from plotting_utils import plot_march_order, plot_signed_distance, plot_velocity
from reporting_utils import (print_completion, print_gradient_quality, print_march_summary,
                             print_mesh_overview, print_velocity_extension)


def make_level_set():
    mesh = Mesh.from_domain(31, 31, 1.0, 1.0)
    level_set = LevelSet.circle(mesh, 0.5, 0.5, 0.25, sharp=True)
    return mesh, level_set


def test_plots_are_written(tmp_path):
    mesh, level_set = make_level_set()
    result = level_set.extend_velocities(lambda x, y: np.cos(np.arctan2(y - 0.5, x - 0.5)))
    exact = np.sqrt((mesh.X - 0.5)**2 + (mesh.Y - 0.5)**2) - 0.25

    outputs = [
        (plot_signed_distance, (level_set, str(tmp_path / "sdf.png")), {'exact': exact}),
        (plot_velocity, (level_set, str(tmp_path / "velocity.png")), {}),
        (plot_march_order, (mesh, result, str(tmp_path / "order.png")), {}),
    ]
    for plot, args, kwargs in outputs:
        fig = plot(*args, **kwargs)
        plt.close(fig)
        assert os.path.getsize(args[-1]) > 0


def test_reports_print_summaries(capsys):
    mesh, level_set = make_level_set()
    result = level_set.reinitialise()

    print_mesh_overview("Sharp circle", mesh)
    print_march_summary(result, elapsed_time=0.5)
    print_gradient_quality(level_set.gradient_quality())
    level_set.extend_velocities(lambda x, y: 2.0)
    print_velocity_extension(level_set.velocity, expected=np.full(mesh.n_nodes, 2.0))
    print_completion("done")

    out = capsys.readouterr().out
    assert "Sharp circle" in out
    assert f"Grid: 31 x 31 = {mesh.n_nodes} nodes" in out
    assert f"Frozen nodes (total): {result.n_frozen}" in out
    assert "|∇φ| mean" in out
    assert f"Nodes with velocity: {mesh.n_nodes} of {mesh.n_nodes}" in out
    assert "Max error vs expected: 0.000000e+00" in out


def test_ellipse_comparison(tmp_path):
    from compare_initializations import build_cases, plot_cases

    mesh = Mesh.from_domain(61, 61, 1.0, 1.0)
    cases = build_cases(mesh)

    assert [name for name, _ in cases] == ["Implicit", "EDT", "FMM (mask)", "FMM (reinit)"]
    implicit = cases[0][1].gradient_quality()
    reinit = cases[3][1].gradient_quality()
    assert reinit['std'] < implicit['std']

    filename = str(tmp_path / "ellipse.png")
    plt.close(plot_cases(mesh, cases, filename=filename))
    assert os.path.getsize(filename) > 0
