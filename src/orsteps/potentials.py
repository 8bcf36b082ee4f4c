"""
Method of potentials (MODI) for improving a transportation plan.

Allocations are grids of EpsilonValue. A cell is basic iff its allocation is
non-zero, so a cell holding a pure ε keeps a degenerate basis connected.

Potentials follow the convention ``v[j] = u[i] + c[i][j]`` on basic cells,
which gives reduced costs ``delta[i][j] = c[i][j] - (v[j] - u[i])``.
"""
import dataclasses
import logging
import math
from collections import deque
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

import numpy as np

from orsteps.epsilon import EPSILON, ZERO, EpsilonValue, toEpsilon
from orsteps.matrix import TOLERANCE, frozenArray, frozenGrid

logger = logging.getLogger(__name__)

MAX_POTENTIALS_ITERATIONS = 100

Cell = Tuple[int, int]


class PotentialsStatus(Enum):
    PIVOT = "pivot"
    OPTIMAL = "optimal"
    STUCK = "stuck"


@dataclass(frozen=True)
class PotentialsSnapshot:
    """One iteration of the method of potentials."""
    status: PotentialsStatus
    u: np.ndarray
    v: np.ndarray
    delta: np.ndarray
    basis: Tuple[Cell, ...]
    allocBefore: Tuple[Tuple[EpsilonValue, ...], ...]
    totalCostBefore: EpsilonValue
    entering: Optional[Cell] = None
    enteringDelta: Optional[float] = None
    cycle: Optional[Mapping[Cell, str]] = None     # read-only, in loop order
    theta: Optional[EpsilonValue] = None
    allocAfter: Optional[Tuple[Tuple[EpsilonValue, ...], ...]] = None
    totalCostAfter: Optional[EpsilonValue] = None
    disconnected: bool = False
    perturbedCells: Tuple[Cell, ...] = ()

    @property
    def isOptimal(self):
        return self.status is PotentialsStatus.OPTIMAL


def _cellValue(value):
    if isinstance(value, float) and math.isnan(value):
        return ZERO
    return toEpsilon(value)


def toEpsilonMatrix(alloc):
    """Coerce an allocation (numbers, strings, EpsilonValues; NaN means empty) to a grid."""
    return frozenGrid([_cellValue(x) for x in row] for row in np.asarray(alloc, dtype=object))


def stripEpsilon(alloc):
    """Drop the ε parts and return a float array of the real allocation."""
    return np.array([[toEpsilon(x).base for x in row] for row in alloc], dtype=float)


def basicCells(alloc):
    """Cells with a non-zero (possibly infinitesimal) allocation, row-major."""
    return tuple((i, j) for i, row in enumerate(alloc) for j, x in enumerate(row) if not x.isZero())


def totalCost(costs, alloc):
    costs = np.asarray(costs, dtype=float)
    return sum((alloc[i][j] * float(costs[i, j])
                for i in range(costs.shape[0]) for j in range(costs.shape[1])), ZERO)


def computePotentials(costs, basis):
    """
    Compute potentials u (rows) and v (columns) from the basic cells.

    Fixes u[0] = 0 and propagates breadth-first over the basis graph.
    Potentials the search cannot reach (disconnected basis) are set to 0.

    Returns:
        u, v, disconnected
    """
    m, n = costs.shape
    u = np.full(m, np.nan)
    v = np.full(n, np.nan)
    byRow = {i: [] for i in range(m)}
    byCol = {j: [] for j in range(n)}
    for i, j in basis:
        byRow[i].append(j)
        byCol[j].append(i)

    u[0] = 0.0
    queue = deque([("row", 0)])
    while queue:
        kind, k = queue.popleft()
        if kind == "row":
            for j in byRow[k]:
                if np.isnan(v[j]):
                    v[j] = u[k] + costs[k, j]
                    queue.append(("col", j))
        else:
            for i in byCol[k]:
                if np.isnan(u[i]):
                    u[i] = v[k] - costs[i, k]
                    queue.append(("row", i))

    disconnected = bool(np.isnan(u).any() or np.isnan(v).any())
    # fill any remaining NaNs with zeros (disconnected piece because of degeneracy)
    u = np.where(np.isnan(u), 0.0, u)
    v = np.where(np.isnan(v), 0.0, v)
    return u, v, disconnected


def computeDeltas(costs, u, v):
    """Reduced costs for all cells: delta_ij = c_ij - (v_j - u_i)."""
    return costs - (v.reshape(1, -1) - u.reshape(-1, 1))


def findEntering(delta, basis, tol=TOLERANCE):
    """Non-basic cell with the most negative reduced cost; first in row-major order on ties."""
    basisSet = set(basis)
    entering = None
    best = -tol
    m, n = delta.shape
    for i in range(m):
        for j in range(n):
            if (i, j) not in basisSet and delta[i, j] < best:
                best = delta[i, j]
                entering = (i, j)
    return entering, (float(best) if entering is not None else None)


def findCycle(start, basis):
    """
    Find the closed loop through the entering cell.

    Moves alternate between the start's column and a row, using only basic
    cells, until the path comes back to the start along a row. Returns the
    ordered list of cells (start first) or None.
    """
    cells = set(basis) | {start}
    byRow = {}
    byCol = {}
    for i, j in sorted(cells):
        byRow.setdefault(i, []).append(j)
        byCol.setdefault(j, []).append(i)

    path = [start]
    visited = {start}

    def extend(cell, alongColumn):
        i, j = cell
        if alongColumn:
            candidates = [(ii, j) for ii in byCol[j] if ii != i]
        else:
            candidates = [(i, jj) for jj in byRow[i] if jj != j]
        for nxt in candidates:
            if nxt == start and not alongColumn and len(path) >= 4:
                return True
            if nxt in visited:
                continue
            visited.add(nxt)
            path.append(nxt)
            if extend(nxt, not alongColumn):
                return True
            path.pop()
            visited.remove(nxt)
        return False

    if extend(start, True):
        return list(path)
    return None


def potentialsIteration(costs, alloc, tol=TOLERANCE):
    """
    Run one iteration of the method of potentials.

    Returns a PotentialsSnapshot. ``entering`` is None when the plan is
    optimal. A snapshot with ``entering`` set but no ``cycle`` means no loop
    could be built (status STUCK); callers should stop there.
    """
    costs = np.array(costs, dtype=float)
    grid = toEpsilonMatrix(alloc)
    basis = basicCells(grid)

    u, v, disconnected = computePotentials(costs, basis)
    if disconnected:
        logger.warning("basis graph is disconnected; unreached potentials set to 0")
    delta = computeDeltas(costs, u, v)
    costBefore = totalCost(costs, grid)

    common = dict(
        u=frozenArray(u),
        v=frozenArray(v),
        delta=frozenArray(delta),
        basis=basis,
        allocBefore=grid,
        totalCostBefore=costBefore,
        disconnected=disconnected,
    )

    entering, enteringDelta = findEntering(delta, basis, tol)
    if entering is None:
        logger.debug("plan is optimal, total cost %s", costBefore)
        return PotentialsSnapshot(status=PotentialsStatus.OPTIMAL, **common)

    path = findCycle(entering, basis)
    if path is None:
        logger.warning("no closed loop through entering cell %s", entering)
        return PotentialsSnapshot(status=PotentialsStatus.STUCK, entering=entering,
                                  enteringDelta=enteringDelta, **common)

    cycle = {cell: ("+" if k % 2 == 0 else "-") for k, cell in enumerate(path)}
    theta = min(grid[i][j] for (i, j), sign in cycle.items() if sign == "-")

    updated = [list(row) for row in grid]
    for (i, j), sign in cycle.items():
        if sign == "+":
            updated[i][j] = (updated[i][j] + theta).clamp(tol)
        else:
            updated[i][j] = (updated[i][j] - theta).clamp(tol)
    updated = frozenGrid(updated)
    costAfter = totalCost(costs, updated)

    logger.debug("entering %s (delta %g), theta %s, cost %s -> %s",
                 entering, enteringDelta, theta, costBefore, costAfter)
    return PotentialsSnapshot(
        status=PotentialsStatus.PIVOT,
        entering=entering,
        enteringDelta=enteringDelta,
        cycle=MappingProxyType(cycle),
        theta=theta,
        allocAfter=updated,
        totalCostAfter=costAfter,
        **common,
    )


def perturbDegenerate(costs, alloc):
    """
    Put ε into free cells until the basis has m + n - 1 cells.

    Cheapest free cells go first; a cell that would close a loop with the
    current basis is skipped, so the basis stays a forest.

    Returns:
        new allocation grid, tuple of cells that received ε
    """
    costs = np.asarray(costs, dtype=float)
    m, n = costs.shape
    grid = [list(row) for row in toEpsilonMatrix(alloc)]
    basis = basicCells(grid)
    needed = m + n - 1 - len(basis)
    if needed <= 0:
        return frozenGrid(grid), ()

    # union-find over row nodes 0..m-1 and column nodes m..m+n-1
    parent = list(range(m + n))

    def find(x):
        while parent[x] != x:
            parent[x] = parent[parent[x]]
            x = parent[x]
        return x

    for i, j in basis:
        parent[find(i)] = find(m + j)

    basisSet = set(basis)
    freeCells = sorted(((i, j) for i in range(m) for j in range(n) if (i, j) not in basisSet),
                       key=lambda cell: (costs[cell], cell))
    added = []
    for i, j in freeCells:
        if len(added) == needed:
            break
        a, b = find(i), find(m + j)
        if a == b:
            continue
        parent[a] = b
        grid[i][j] = grid[i][j] + EPSILON
        added.append((i, j))

    logger.debug("perturbed degenerate basis with ε at %s", added)
    return frozenGrid(grid), tuple(added)


def computePotentialsSteps(costs, alloc, maxIterations=MAX_POTENTIALS_ITERATIONS,
                           perturb=True, tol=TOLERANCE):
    """
    Repeat potentialsIteration until the plan is optimal or stuck.

    With perturb=True a degenerate basis is completed with ε cells before
    every iteration; the cells used are listed in the snapshot's
    ``perturbedCells``. Hitting maxIterations truncates the trace.
    """
    grid = toEpsilonMatrix(alloc)
    snapshots = []
    while len(snapshots) < maxIterations:
        perturbed = ()
        if perturb:
            grid, perturbed = perturbDegenerate(costs, grid)
        snapshot = potentialsIteration(costs, grid, tol=tol)
        if perturbed:
            snapshot = dataclasses.replace(snapshot, perturbedCells=perturbed)
        snapshots.append(snapshot)
        if snapshot.status is not PotentialsStatus.PIVOT:
            break
        grid = snapshot.allocAfter
    else:
        logger.warning("method of potentials stopped at the iteration ceiling (%d)", maxIterations)
    return snapshots
