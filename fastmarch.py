#!/usr/bin/env python3
"""
Fast Marching Method for signed distance reinitialization and velocity extension.

This module implements the Fast Marching Method (FMM) for the Eikonal equation
F(x)|∇T(x)| = 1 on a structured grid. It is used two ways:

- Distance mode: rewrite a (possibly distorted) level set function as a true
  signed distance function, |∇φ| = 1, keeping the zero level set and the sign
  of every node.
- Velocity extension mode: additionally extend a velocity known at the
  interface outward so that it stays constant along ∇φ (∇φ·∇f = 0).

Nodes are frozen in non-decreasing order of |φ|. Each node is inserted into
the priority queue once; later improvements go through decrease-key on the
back-pointer returned by the heap.

References:
- Sethian, J.A. (1996). "A fast marching level set method for monotonically
  advancing fronts." Proceedings of the National Academy of Sciences.
- Adalsteinsson, D. and Sethian, J.A. (1999). "The fast construction of
  extension velocities in level set methods." J. Comput. Phys.
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from math import inf, isfinite, sqrt

import numpy as np

from heap import Heap
from mesh import Mesh

logger = logging.getLogger(__name__)


class NodeStatus(IntEnum):
    """State of a node during a march. Each node holds exactly one."""
    NONE = 0      # not yet reached
    TRIAL = 1     # queued with a provisional value
    FROZEN = 2    # final value
    MASKED = 3    # excluded from the march


@dataclass
class MarchResult:
    """
    Outcome of a single march.

    Attributes:
    -----------
    status : ndarray (n_nodes,) of int8
        Final NodeStatus of every node
    boundary : ndarray of int
        Nodes frozen during initialization (adjacent to the zero level set)
    freeze_order : ndarray of int
        Nodes frozen by the propagation loop, in the order they were frozen
    """
    status: np.ndarray
    boundary: np.ndarray
    freeze_order: np.ndarray

    @property
    def reached(self):
        return self.status == NodeStatus.FROZEN

    @property
    def n_boundary(self):
        return len(self.boundary)

    @property
    def n_frozen(self):
        return int(np.count_nonzero(self.status == NodeStatus.FROZEN))

    @property
    def n_unreached(self):
        return int(np.count_nonzero(self.status == NodeStatus.NONE))

    @property
    def n_masked(self):
        return int(np.count_nonzero(self.status == NodeStatus.MASKED))


class FastMarchingMethod:
    """
    Fast Marching solver bound to one mesh.

    All solver state lives on the instance and is reset by every march, so
    independent instances can run in separate threads.

    Parameters:
    -----------
    mesh : Mesh
        Structured grid supplying neighbours and spacing
    mask : ndarray of bool, optional
        Nodes to exclude from every march (node order or (ny, nx)). Masked
        nodes are never frozen or queued and keep their input values.
    is_test : bool, optional
        Verify the heap and the freeze order after every pop (debugging aid,
        default: False)
    """

    def __init__(self, mesh, mask=None, is_test=False):
        self.mesh = mesh
        self.is_test = is_test

        if mask is None:
            self.mask = np.zeros(mesh.n_nodes, dtype=bool)
        else:
            self.mask = mesh.as_nodes(np.asarray(mask, dtype=bool)).copy()

        self._neighbours = mesh.neighbours.tolist()
        self._spacing = mesh.spacing
        self._inv_h2 = tuple(1.0 / h**2 for h in mesh.spacing)

        # Per-run state, see _reset()
        self.status = None
        self.distance = None
        self.velocity = None
        self.signed_distance_copy = None
        self.velocity_copy = None
        self.heap = None
        self.heap_ptr = None
        self.boundary = []
        self.freeze_order = []
        self._finalise = self._skip_velocity

    def march(self, signed_distance):
        """
        Reinitialize a level set as a signed distance function, in place.

        Parameters:
        -----------
        signed_distance : ndarray
            One float per mesh node, node order or (ny, nx). Overwritten with
            the signed distance; unreachable and masked nodes keep their values.

        Returns:
        --------
        result : MarchResult
        """
        phi = self._check_field(signed_distance, "signed_distance")
        if not np.all(np.isfinite(phi)):
            raise ValueError("signed_distance contains non-finite values")

        self._reset(phi, None)
        self._run()

        signed_distance[...] = self._signed_output().reshape(signed_distance.shape)
        return self._result()

    def march_velocity(self, signed_distance, velocity):
        """
        Reinitialize a level set and extend a boundary velocity, in place.

        The velocity must be defined (finite) at every node adjacent to the
        zero level set; those values are kept fixed and extended to all other
        reachable nodes. Velocities of unreachable nodes are left untouched.

        Parameters:
        -----------
        signed_distance : ndarray
            One float per mesh node; overwritten as in march()
        velocity : ndarray
            One float per mesh node; overwritten with the extended velocity

        Returns:
        --------
        result : MarchResult

        Raises:
        -------
        ValueError
            If no velocity field is given or the velocity is undefined at a
            boundary node
        """
        if velocity is None:
            raise ValueError("velocity extension requires a velocity field")

        phi = self._check_field(signed_distance, "signed_distance")
        vel = self._check_field(velocity, "velocity")
        if not np.all(np.isfinite(phi)):
            raise ValueError("signed_distance contains non-finite values")

        self._reset(phi, vel)
        self._initialise_frozen()

        missing = [node for node in self.boundary if not isfinite(self.velocity[node])]
        if missing:
            raise ValueError(
                f"velocity is undefined at {len(missing)} of {len(self.boundary)} "
                f"boundary nodes (first: node {missing[0]})"
            )

        self._propagate()

        signed_distance[...] = self._signed_output().reshape(signed_distance.shape)
        velocity[...] = self._velocity_output().reshape(velocity.shape)
        return self._result()

    # ----------------- setup -----------------

    def _check_field(self, field, name):
        if not isinstance(field, np.ndarray):
            raise TypeError(f"{name} must be a numpy array, got {type(field).__name__}")
        if not np.issubdtype(field.dtype, np.floating):
            raise TypeError(f"{name} must have a floating point dtype, got {field.dtype}")
        if field.size != self.mesh.n_nodes:
            raise ValueError(
                f"{name} has {field.size} values, mesh has {self.mesh.n_nodes} nodes"
            )
        if not field.flags.writeable:
            raise ValueError(f"{name} is read-only")
        return np.array(field, dtype=float).reshape(self.mesh.n_nodes)

    def _reset(self, phi, vel):
        n = self.mesh.n_nodes

        self.signed_distance_copy = phi.tolist()
        self.distance = np.abs(phi).tolist()
        self.status = [NodeStatus.MASKED if m else NodeStatus.NONE for m in self.mask.tolist()]

        if vel is None:
            self.velocity_copy = None
            self.velocity = None
            self._finalise = self._skip_velocity
        else:
            self.velocity_copy = vel.tolist()
            self.velocity = vel.tolist()
            self._finalise = self._finalise_velocity

        self.heap = Heap(n)
        self.heap_ptr = [-1] * n
        self.boundary = []
        self.freeze_order = []

    def _run(self):
        self._initialise_frozen()
        self._propagate()

    def _propagate(self):
        self._initialise_trial()
        self._solve()

        n_unreached = sum(1 for s in self.status if s == NodeStatus.NONE)
        logger.debug("Froze %d nodes after the boundary", len(self.freeze_order))
        if n_unreached:
            logger.info("%d nodes are not connected to the zero level set", n_unreached)

    # ----------------- stages -----------------

    def _initialise_frozen(self):
        """
        Freeze the nodes adjacent to the zero level set.

        Along each axis the zero crossing between node i and neighbour j is
        placed by linear interpolation, d = h|φi|/|φi - φj|. The closest
        crossing per axis is kept and the axes are combined with the same
        rule as the quadratic update, T = 1/sqrt(Σ 1/d²).
        """
        phi = self.signed_distance_copy
        status = self.status
        neighbours = self._neighbours
        oob = self.mesh.out_of_bounds

        for node in range(self.mesh.n_nodes):
            if status[node] == NodeStatus.MASKED:
                continue

            value = phi[node]
            if value == 0.0:
                # Node lies on the interface
                self.distance[node] = 0.0
                status[node] = NodeStatus.FROZEN
                self.boundary.append(node)
                continue

            inv_d2 = 0.0
            for axis in (0, 1):
                h = self._spacing[axis]
                d_axis = inf
                for nb in neighbours[node][2 * axis:2 * axis + 2]:
                    if nb == oob or status[nb] == NodeStatus.MASKED:
                        continue
                    nb_value = phi[nb]
                    if value * nb_value < 0.0:
                        d = h * abs(value) / abs(value - nb_value)
                        if d < d_axis:
                            d_axis = d
                if d_axis < inf:
                    inv_d2 += 1.0 / (d_axis * d_axis)

            if inv_d2 > 0.0:
                self.distance[node] = 1.0 / sqrt(inv_d2)
                status[node] = NodeStatus.FROZEN
                self.boundary.append(node)

        logger.debug("Froze %d boundary nodes", len(self.boundary))

    def _initialise_trial(self):
        """Queue every unfrozen, unmasked neighbour of the boundary nodes."""
        status = self.status
        oob = self.mesh.out_of_bounds

        for node in self.boundary:
            for nb in self._neighbours[node]:
                if nb == oob or status[nb] != NodeStatus.NONE:
                    continue
                d = self._update_node(nb)
                self.distance[nb] = d
                status[nb] = NodeStatus.TRIAL
                self.heap_ptr[nb] = self.heap.push(nb, d)

        logger.debug("Initial trial set has %d nodes", len(self.heap))

    def _solve(self):
        """Freeze trial nodes in order of distance until the queue is empty."""
        status = self.status
        distance = self.distance
        heap = self.heap
        oob = self.mesh.out_of_bounds
        last_value = 0.0

        while not heap.empty:
            node, value = heap.pop()
            if self.is_test:
                if not heap.verify():
                    raise RuntimeError(f"heap ordering violated after popping node {node}")
                if value < last_value - 1e-12 * max(1.0, last_value):
                    raise RuntimeError(
                        f"node {node} frozen at {value} after a node at {last_value}"
                    )
                last_value = value

            status[node] = NodeStatus.FROZEN
            distance[node] = value
            self._finalise(node)
            self.freeze_order.append(node)

            for nb in self._neighbours[node]:
                if nb == oob:
                    continue
                nb_status = status[nb]
                if nb_status == NodeStatus.FROZEN or nb_status == NodeStatus.MASKED:
                    continue

                d = self._update_node(nb)
                if nb_status == NodeStatus.TRIAL:
                    # Monotone tightening only
                    if d < distance[nb]:
                        distance[nb] = d
                        heap.set(self.heap_ptr[nb], d)
                else:
                    distance[nb] = d
                    status[nb] = NodeStatus.TRIAL
                    self.heap_ptr[nb] = heap.push(nb, d)

    # ----------------- per-node update -----------------

    def _upwind_neighbour(self, node, axis):
        """Frozen neighbour along axis with the smaller distance, or -1."""
        best = -1
        best_value = inf
        oob = self.mesh.out_of_bounds
        for nb in self._neighbours[node][2 * axis:2 * axis + 2]:
            if nb != oob and self.status[nb] == NodeStatus.FROZEN:
                if self.distance[nb] < best_value:
                    best = nb
                    best_value = self.distance[nb]
        return best

    def _update_node(self, node):
        """
        Candidate distance at a node from its frozen neighbours.

        Solves Σ_axes (T - v_a)²/h_a² = 1 over the axes that have a frozen
        neighbour, v_a being the smaller frozen value on that axis.
        """
        a = b = c = 0.0
        n_axes = 0
        one_d = inf
        upwind_max = 0.0

        for axis in (0, 1):
            nb = self._upwind_neighbour(node, axis)
            if nb < 0:
                continue
            v = self.distance[nb]
            w = self._inv_h2[axis]
            a += w
            b += 2.0 * v * w
            c += v * v * w
            n_axes += 1
            one_d = min(one_d, v + self._spacing[axis])
            upwind_max = max(upwind_max, v)

        if n_axes < 2:
            # Single upwind axis (or none, which leaves the node unreachable)
            return one_d

        return self._solve_quadratic(a, b, c - 1.0, one_d, upwind_max)

    @staticmethod
    def _solve_quadratic(a, b, c, fallback, upwind_max):
        """
        Larger root of a*T² - b*T + c = 0.

        Parameters:
        -----------
        a, b, c : float
            Quadratic coefficients
        fallback : float
            One-dimensional estimate (smaller upwind value + h), returned when
            a vanishes, the discriminant is negative, or the root does not
            exceed the upwind values it was built from
        upwind_max : float
            Largest upwind value in the stencil
        """
        if a == 0.0:
            return fallback

        discriminant = b * b - 4.0 * a * c
        if discriminant < 0.0:
            return fallback

        root = (b + sqrt(discriminant)) / (2.0 * a)
        if root < upwind_max:
            return fallback
        return root

    def _skip_velocity(self, node):
        pass

    def _finalise_velocity(self, node):
        """
        Extension velocity at a just-frozen node.

        Weighted average of the upwind velocities with weights (T - v_a)/h_a²,
        the discrete form of ∇T·∇f = 0.
        """
        T = self.distance[node]
        velocity = self.velocity

        weights = []
        nearest = -1
        nearest_value = inf
        for axis in (0, 1):
            nb = self._upwind_neighbour(node, axis)
            if nb < 0:
                continue
            v = self.distance[nb]
            if v < nearest_value:
                nearest = nb
                nearest_value = v
            w = (T - v) * self._inv_h2[axis]
            if w > 0.0:
                weights.append((w, velocity[nb]))

        if not weights:
            velocity[node] = velocity[nearest]
            return

        # Written relative to the first velocity so a uniform field is reproduced exactly
        ref = weights[0][1]
        numerator = sum(w * (f - ref) for w, f in weights)
        denominator = sum(w for w, _ in weights)
        velocity[node] = ref + numerator / denominator

    # ----------------- output -----------------

    def _signed_output(self):
        phi0 = np.array(self.signed_distance_copy)
        frozen = np.array(self.status) == NodeStatus.FROZEN
        magnitude = np.array(self.distance)

        out = phi0.copy()
        out[frozen] = np.where(phi0[frozen] < 0.0, -magnitude[frozen], magnitude[frozen])
        return out

    def _velocity_output(self):
        out = np.array(self.velocity_copy)
        frozen = np.array(self.status) == NodeStatus.FROZEN
        out[frozen] = np.array(self.velocity)[frozen]
        return out

    def _result(self):
        return MarchResult(
            status=np.array(self.status, dtype=np.int8),
            boundary=np.array(self.boundary, dtype=int),
            freeze_order=np.array(self.freeze_order, dtype=int),
        )


def fast_marching_method(phi, dx, dy=None, mask=None):
    """
    Reinitialize a 2D level set as a signed distance function.

    Parameters
    ----------
    phi : ndarray (ny, nx)
        Level set function, negative inside, positive outside
    dx : float
        Grid spacing in x-direction
    dy : float, optional
        Grid spacing in y-direction. If None, uses dx (square cells)
    mask : ndarray (ny, nx) of bool, optional
        Nodes excluded from the march

    Returns
    -------
    phi_sdf : ndarray (ny, nx)
        Signed distance function with the sign of phi. Nodes that cannot be
        reached from the zero level set keep their input values.

    Examples
    --------
    >>> X, Y = np.meshgrid(np.linspace(0, 1, 101), np.linspace(0, 1, 101))
    >>> phi = ((X - 0.5)**2 + (Y - 0.5)**2) - 0.1**2   # not a distance
    >>> sdf = fast_marching_method(phi, dx=0.01)
    """
    phi_sdf = np.array(phi, dtype=float)
    ny, nx = phi_sdf.shape
    solver = FastMarchingMethod(Mesh(nx, ny, dx, dy), mask=mask)
    solver.march(phi_sdf)
    return phi_sdf


def fast_marching_from_mask(inside, dx, dy=None):
    """
    Signed distance function of the region marked True in a binary mask.

    The mask is turned into a step function (-1 inside, +1 outside) so the
    interface sits half way between the last inside and first outside node.

    Parameters
    ----------
    inside : ndarray (ny, nx) of bool
        True inside the region (negative distance)
    dx : float
        Grid spacing in x-direction
    dy : float, optional
        Grid spacing in y-direction. If None, uses dx (square cells)
    """
    phi = np.where(np.asarray(inside, dtype=bool), -1.0, 1.0)
    return fast_marching_method(phi, dx, dy)


def extend_velocity(phi, velocity, dx, dy=None, mask=None):
    """
    Reinitialize a 2D level set and extend a velocity away from its interface.

    Parameters
    ----------
    phi : ndarray (ny, nx)
        Level set function
    velocity : ndarray (ny, nx)
        Velocity, required at the nodes adjacent to the zero level set; other
        values are replaced by the extension
    dx : float
        Grid spacing in x-direction
    dy : float, optional
        Grid spacing in y-direction. If None, uses dx
    mask : ndarray (ny, nx) of bool, optional
        Nodes excluded from the march

    Returns
    -------
    phi_sdf, velocity_ext : ndarray (ny, nx)
    """
    phi_sdf = np.array(phi, dtype=float)
    velocity_ext = np.array(velocity, dtype=float)
    ny, nx = phi_sdf.shape
    solver = FastMarchingMethod(Mesh(nx, ny, dx, dy), mask=mask)
    solver.march_velocity(phi_sdf, velocity_ext)
    return phi_sdf, velocity_ext


if __name__ == '__main__':
    """
    Reinitialize a sharp circle, compare with the analytical solution and
    extend the cosine of the polar angle of the interface.
    """
    from level_set import LevelSet
    from plotting_utils import plot_march_order, plot_signed_distance, plot_velocity
    from reporting_utils import (print_completion, print_gradient_quality, print_march_summary,
                                 print_mesh_overview, print_velocity_extension)

    mesh = Mesh.from_domain(101, 101, 1.0, 1.0)
    r0 = 0.15
    cx, cy = 0.5, 0.5

    print_mesh_overview("Fast Marching Method: sharp circle", mesh)

    level_set = LevelSet.circle(mesh, cx, cy, r0, sharp=True)
    result = level_set.reinitialise()
    print_march_summary(result)

    phi_exact = np.sqrt((mesh.X - cx)**2 + (mesh.Y - cy)**2) - r0
    print_gradient_quality(level_set.gradient_quality(bandwidth=3),
                           error=np.abs(mesh.as_grid(level_set.signed_distance) - phi_exact))

    plot_signed_distance(level_set, filename='fastmarch_test.png', exact=phi_exact)

    # Extend cos(angle) of the interface outward; the exact extension is the
    # same function, which is constant along the radial distance gradient
    def cos_angle(x, y):
        return np.cos(np.arctan2(y - cy, x - cx))

    result = level_set.extend_velocities(cos_angle)
    print_velocity_extension(level_set.velocity,
                             expected=cos_angle(mesh.coordinates[:, 0], mesh.coordinates[:, 1]))

    plot_velocity(level_set, filename='fastmarch_velocity.png')
    plot_march_order(mesh, result, filename='fastmarch_order.png')
    print_completion()
