"""
Reporting utilities to consolidate repeated print statements across demos and tests.

Each helper prints a focused section. Keep arguments simple and flexible.
"""

from typing import Dict, Optional
import numpy as np


def banner(title: str) -> None:
    print("\n" + "=" * 80)
    print(title)
    print("=" * 80)


def sub_banner(title: str) -> None:
    print("\n" + "-" * 80)
    print(title)
    print("-" * 80)


def print_mesh_overview(title: str, mesh) -> None:
    banner(title)
    print(f"Grid: {mesh.nx} x {mesh.ny} = {mesh.n_nodes} nodes")
    print(f"Domain: [{mesh.x[0]}, {mesh.x[-1]}] x [{mesh.y[0]}, {mesh.y[-1]}]")
    print(f"Grid spacing: dx = {mesh.dx:.6f}, dy = {mesh.dy:.6f}")


def print_march_summary(result, elapsed_time: Optional[float] = None) -> None:
    sub_banner("Fast Marching Summary")
    print(f"  Boundary nodes (frozen at start): {result.n_boundary}")
    print(f"  Frozen nodes (total): {result.n_frozen}")
    print(f"  Unreached nodes: {result.n_unreached}")
    print(f"  Masked nodes: {result.n_masked}")
    if elapsed_time is not None:
        print(f"  March time: {elapsed_time:.4f} seconds")
        if result.n_frozen > 0:
            print(f"  Time per frozen node: {elapsed_time / result.n_frozen * 1e6:.2f} us")


def print_gradient_quality(stats: Dict[str, float], error: Optional[np.ndarray] = None) -> None:
    sub_banner("Signed Distance Quality")
    print(f"  Nodes in interface band: {stats['n_nodes']}")
    print(f"  |∇φ| mean:     {stats['mean']:.6f}")
    print(f"  |∇φ| std:      {stats['std']:.6f}")
    print(f"  Drift from 1:  {abs(stats['mean'] - 1.0):.6e}")
    print(f"  Max deviation: {stats['max_deviation']:.6e}")
    if error is not None:
        print("\n  Error vs analytical distance:")
        print(f"    Mean error: {np.mean(error):.6e}")
        print(f"    Max error:  {np.max(error):.6e}")


def print_velocity_extension(velocity: np.ndarray, expected: Optional[np.ndarray] = None) -> None:
    sub_banner("Velocity Extension")
    known = np.isfinite(velocity)
    print(f"  Nodes with velocity: {np.count_nonzero(known)} of {velocity.size}")
    if np.any(known):
        print(f"  Velocity range: [{np.min(velocity[known]):.6f}, {np.max(velocity[known]):.6f}]")
    if expected is not None and np.any(known):
        err = np.abs(velocity[known] - expected[known])
        print(f"  Max error vs expected: {np.max(err):.6e}")


def print_completion(message: str = "Completed successfully!") -> None:
    print("\n" + "=" * 80)
    print(message)
    print("=" * 80 + "\n")
