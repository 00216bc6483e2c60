import os, sys, time
import numpy as np

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from level_set import LevelSet
from mesh import Mesh


def run_benchmark(sizes=(51, 101, 201), radius=0.25):
    for n in sizes:
        mesh = Mesh.from_domain(n, n, 1.0, 1.0)

        # Reinitialization of a sharp circle
        level_set = LevelSet.circle(mesh, 0.5, 0.5, radius, sharp=True)
        t0 = time.time()
        result = level_set.reinitialise()
        reinit_time = time.time() - t0

        # Velocity extension of cos(angle) on the boundary
        level_set = LevelSet.circle(mesh, 0.5, 0.5, radius)
        t1 = time.time()
        level_set.extend_velocities(lambda x, y: np.cos(np.arctan2(y - 0.5, x - 0.5)))
        velocity_time = time.time() - t1

        print(f"FMM benchmark nx=ny={n}: nodes={mesh.n_nodes}, frozen={result.n_frozen}, "
              f"reinit={reinit_time:.3f}s, velocity={velocity_time:.3f}s")


if __name__ == '__main__':
    run_benchmark()
