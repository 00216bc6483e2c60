"""
Plotting utilities for Fast Marching results.
"""

import numpy as np
import matplotlib.pyplot as plt

from fastmarch import NodeStatus


def plot_signed_distance(level_set, filename='signed_distance.png', exact=None):
    """
    Contour plot of the signed distance with its zero level set and |∇φ|.

    Parameters:
    -----------
    level_set : LevelSet
        The level set to plot
    filename : str
        Output filename
    exact : ndarray (ny, nx), optional
        Analytical signed distance; adds an error panel

    Returns:
    --------
    fig : matplotlib Figure
    """
    mesh = level_set.mesh
    phi = level_set.as_grid()
    n_panels = 3 if exact is not None else 2

    fig, axes = plt.subplots(1, n_panels, figsize=(5 * n_panels, 4.5))

    ax = axes[0]
    im = ax.contourf(mesh.X, mesh.Y, phi, levels=20, cmap='RdBu_r')
    ax.contour(mesh.X, mesh.Y, phi, levels=[0], colors='black', linewidths=2)
    ax.set_title('Signed distance φ')
    ax.set_aspect('equal')
    plt.colorbar(im, ax=ax)

    ax = axes[1]
    grad_mag = level_set.compute_gradient_magnitude()
    im = ax.contourf(mesh.X, mesh.Y, grad_mag, levels=np.linspace(0.9, 1.1, 21),
                     cmap='RdBu_r', extend='both')
    ax.contour(mesh.X, mesh.Y, phi, levels=[0], colors='black', linewidths=2)
    ax.set_title('|∇φ|')
    ax.set_aspect('equal')
    plt.colorbar(im, ax=ax, label='|∇φ|')

    if exact is not None:
        ax = axes[2]
        error = np.abs(phi - exact)
        im = ax.contourf(mesh.X, mesh.Y, error, levels=20, cmap='hot')
        ax.contour(mesh.X, mesh.Y, phi, levels=[0], colors='black', linewidths=2)
        ax.set_title(f'Error (max={np.max(error):.4e})')
        ax.set_aspect('equal')
        plt.colorbar(im, ax=ax, label='Error')

    plt.tight_layout()
    plt.savefig(filename, dpi=150, bbox_inches='tight')
    print(f"Saved: {filename}")
    return fig


def plot_velocity(level_set, filename='velocity_extension.png'):
    """
    Extended velocity with the zero level set overlaid. Unknown (NaN)
    velocities are left blank.
    """
    mesh = level_set.mesh
    phi = level_set.as_grid()
    velocity = np.ma.masked_invalid(level_set.as_grid(level_set.velocity))

    fig, ax = plt.subplots(figsize=(6, 5))
    im = ax.pcolormesh(mesh.X, mesh.Y, velocity, cmap='viridis', shading='auto')
    ax.contour(mesh.X, mesh.Y, phi, levels=[0], colors='white', linewidths=2)
    ax.set_title('Extension velocity')
    ax.set_xlabel('x')
    ax.set_ylabel('y')
    ax.set_aspect('equal')
    plt.colorbar(im, ax=ax, label='velocity')

    plt.tight_layout()
    plt.savefig(filename, dpi=150, bbox_inches='tight')
    print(f"Saved: {filename}")
    return fig


def plot_march_order(mesh, result, filename='march_order.png'):
    """
    Node status and freeze order of a march.

    Left: final status of every node. Right: rank in which each node was
    frozen (boundary nodes rank 0, unreached nodes blank).
    """
    status = mesh.as_grid(result.status)

    rank = np.full(mesh.n_nodes, np.nan)
    rank[result.boundary] = 0
    rank[result.freeze_order] = np.arange(1, len(result.freeze_order) + 1)
    rank = np.ma.masked_invalid(mesh.as_grid(rank))

    fig, axes = plt.subplots(1, 2, figsize=(11, 4.5))

    ax = axes[0]
    im = ax.pcolormesh(mesh.X, mesh.Y, status, cmap='tab10', vmin=0, vmax=9, shading='auto')
    ax.set_title('Node status')
    ax.set_aspect('equal')
    cbar = plt.colorbar(im, ax=ax, ticks=[s.value for s in NodeStatus])
    cbar.ax.set_yticklabels([s.name for s in NodeStatus])

    ax = axes[1]
    im = ax.pcolormesh(mesh.X, mesh.Y, rank, cmap='magma', shading='auto')
    ax.set_title('Freeze order')
    ax.set_aspect('equal')
    plt.colorbar(im, ax=ax, label='rank')

    plt.tight_layout()
    plt.savefig(filename, dpi=150, bbox_inches='tight')
    print(f"Saved: {filename}")
    return fig
