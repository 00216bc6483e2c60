"""
Structured 2D grid used by the Fast Marching solver.

Nodes are enumerated in C order of an (ny, nx) array, node k = i + j*nx for
column i and row j, so any (ny, nx) field flattened with ravel() is already
in node order.
"""

import numpy as np


class Mesh:
    """
    Uniform rectangular grid of nx * ny nodes.

    Each node has four neighbours stored as [x-1, x+1, y-1, y+1]. Neighbours
    that fall outside the grid point at the ``out_of_bounds`` sentinel, which
    equals the number of nodes.
    """

    def __init__(self, nx, ny, dx=1.0, dy=None, origin=(0.0, 0.0)):
        """
        Parameters:
        -----------
        nx : int
            Number of nodes in x-direction
        ny : int
            Number of nodes in y-direction
        dx : float, optional
            Grid spacing in x-direction (default: 1.0)
        dy : float, optional
            Grid spacing in y-direction. If None, uses dx (square cells)
        origin : tuple of float, optional
            Coordinates of node (0, 0)
        """
        if dy is None:
            dy = dx

        if int(nx) < 1 or int(ny) < 1:
            raise ValueError(f"grid must have at least one node per axis, got {nx} x {ny}")
        if not (dx > 0 and dy > 0):
            raise ValueError(f"grid spacing must be positive, got dx={dx}, dy={dy}")

        self.nx = int(nx)
        self.ny = int(ny)
        self.dx = float(dx)
        self.dy = float(dy)
        self.n_nodes = self.nx * self.ny
        self.out_of_bounds = self.n_nodes

        x0, y0 = origin
        self.x = x0 + self.dx * np.arange(self.nx)
        self.y = y0 + self.dy * np.arange(self.ny)
        self.X, self.Y = np.meshgrid(self.x, self.y)
        self.coordinates = np.column_stack([self.X.ravel(), self.Y.ravel()])

        self.neighbours = self._build_neighbours()

    @classmethod
    def from_domain(cls, nx, ny, Lx, Ly):
        """Build a mesh covering [0, Lx] x [0, Ly] with nx x ny nodes."""
        dx = Lx / (nx - 1) if nx > 1 else Lx
        dy = Ly / (ny - 1) if ny > 1 else Ly
        return cls(nx, ny, dx=dx, dy=dy)

    @property
    def shape(self):
        return (self.ny, self.nx)

    @property
    def spacing(self):
        return (self.dx, self.dy)

    def _build_neighbours(self):
        idx = np.arange(self.n_nodes).reshape(self.ny, self.nx)
        oob = self.out_of_bounds

        left = np.full_like(idx, oob)
        right = np.full_like(idx, oob)
        down = np.full_like(idx, oob)
        up = np.full_like(idx, oob)

        left[:, 1:] = idx[:, :-1]
        right[:, :-1] = idx[:, 1:]
        down[1:, :] = idx[:-1, :]
        up[:-1, :] = idx[1:, :]

        return np.column_stack([left.ravel(), right.ravel(), down.ravel(), up.ravel()])

    def node_index(self, i, j):
        """Node index of column i, row j."""
        if not (0 <= i < self.nx and 0 <= j < self.ny):
            raise IndexError(f"node ({i}, {j}) outside {self.nx} x {self.ny} grid")
        return i + j * self.nx

    def node_position(self, node):
        """(i, j) grid position of a node index."""
        return node % self.nx, node // self.nx

    def axis_neighbours(self, node, axis):
        """The two opposite neighbours of a node along axis 0 (x) or 1 (y)."""
        return self.neighbours[node, 2 * axis], self.neighbours[node, 2 * axis + 1]

    def as_grid(self, field):
        """Reshape a per-node field to (ny, nx)."""
        field = np.asarray(field)
        if field.size != self.n_nodes:
            raise ValueError(f"field has {field.size} values, mesh has {self.n_nodes} nodes")
        return field.reshape(self.ny, self.nx)

    def as_nodes(self, field):
        """Flatten an (ny, nx) field to node order."""
        field = np.asarray(field)
        if field.size != self.n_nodes:
            raise ValueError(f"field has {field.size} values, mesh has {self.n_nodes} nodes")
        return field.reshape(self.n_nodes)

    def __repr__(self):
        return f"Mesh(nx={self.nx}, ny={self.ny}, dx={self.dx}, dy={self.dy})"
