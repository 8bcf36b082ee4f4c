"""
Vogel's approximation method, recorded step by step.

Every allocation is one VamStep. A step holds its own read-only copies of the
allocation, the remaining supplies/demands and the penalties that drove the
choice, so a viewer can jump to any position in the trace.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from orsteps.balance import balance
from orsteps.matrix import TOLERANCE, frozenArray, optionalTuple

logger = logging.getLogger(__name__)

MAX_VAM_ITERATIONS = 10_000


@dataclass(frozen=True)
class VamStep:
    stepIndex: int
    i: int
    j: int
    chosenBy: str                           # 'row' or 'col'
    chosenIdx: int
    placed: float
    penalty: float
    rowPenalties: Tuple[Optional[float], ...]
    colPenalties: Tuple[Optional[float], ...]
    alloc: np.ndarray
    penaltyUsed: np.ndarray                 # NaN where nothing was placed
    suppliesLeft: np.ndarray
    demandsLeft: np.ndarray
    totalCost: float

    @property
    def cell(self):
        return (self.i, self.j)


@dataclass
class _VamContext:
    """Working state of one run. Never exposed; steps get copies."""
    costs: np.ndarray
    supplies: np.ndarray
    demands: np.ndarray
    alloc: np.ndarray
    penaltyUsed: np.ndarray
    tol: float
    totalCost: float = 0.0

    def openRows(self):
        return [i for i in range(len(self.supplies)) if self.supplies[i] > self.tol]

    def openCols(self):
        return [j for j in range(len(self.demands)) if self.demands[j] > self.tol]


def _linePenalty(values):
    """Difference between the two smallest values; a single value is its own penalty."""
    if len(values) == 1:
        return values[0]
    lowest = sorted(values)
    return lowest[1] - lowest[0]


def _penalties(ctx, rows, cols):
    m, n = ctx.costs.shape
    rowPen = np.full(m, np.nan)
    colPen = np.full(n, np.nan)
    for i in rows:
        rowPen[i] = _linePenalty([ctx.costs[i, j] for j in cols])
    for j in cols:
        colPen[j] = _linePenalty([ctx.costs[i, j] for i in rows])
    return rowPen, colPen


def _chooseLine(ctx, rowPen, colPen, rows, cols):
    """
    Pick the row or column with the largest penalty.

    Ties go to the line whose cheapest available cell is cheapest; if that is
    still tied, rows win over columns and lower indices win.
    """
    candidates = []
    for i in rows:
        candidates.append((rowPen[i], "row", i, min(ctx.costs[i, j] for j in cols)))
    for j in cols:
        candidates.append((colPen[j], "col", j, min(ctx.costs[i, j] for i in rows)))

    best = max(c[0] for c in candidates)
    tied = [c for c in candidates if abs(c[0] - best) <= ctx.tol]
    cheapest = min(c[3] for c in tied)
    kind, idx = next((c[1], c[2]) for c in tied if abs(c[3] - cheapest) <= ctx.tol)
    return kind, idx, float(best)


def _chooseCell(ctx, kind, idx, rowPen, colPen, rows, cols):
    """Cheapest cell in the chosen line; equal costs are split by the crossing penalty."""
    if kind == "row":
        low = min(ctx.costs[idx, j] for j in cols)
        tied = [j for j in cols if abs(ctx.costs[idx, j] - low) <= ctx.tol]
        return idx, max(tied, key=lambda jj: colPen[jj])
    low = min(ctx.costs[i, idx] for i in rows)
    tied = [i for i in rows if abs(ctx.costs[i, idx] - low) <= ctx.tol]
    return max(tied, key=lambda ii: rowPen[ii]), idx


def computeVamSteps(costs, supplies, demands, maxIterations=MAX_VAM_ITERATIONS, tol=TOLERANCE):
    """
    Run Vogel's method and return one VamStep per allocation.

    Unbalanced input is balanced first, so steps may carry one dummy row or
    column. The trace stops when all supplies and demands are exhausted, or
    silently at maxIterations (a warning is logged).
    """
    problem = balance(costs, supplies, demands, tol=tol)
    m, n = problem.shape
    ctx = _VamContext(
        costs=np.array(problem.costs),
        supplies=np.array(problem.supplies),
        demands=np.array(problem.demands),
        alloc=np.zeros((m, n)),
        penaltyUsed=np.full((m, n), np.nan),
        tol=tol,
    )

    steps = []
    while len(steps) < maxIterations:
        rows, cols = ctx.openRows(), ctx.openCols()
        if not rows or not cols:
            break

        rowPen, colPen = _penalties(ctx, rows, cols)
        kind, idx, penalty = _chooseLine(ctx, rowPen, colPen, rows, cols)
        i, j = _chooseCell(ctx, kind, idx, rowPen, colPen, rows, cols)

        qty = min(ctx.supplies[i], ctx.demands[j])
        ctx.alloc[i, j] += qty
        ctx.penaltyUsed[i, j] = penalty
        ctx.supplies[i] -= qty
        ctx.demands[j] -= qty
        if ctx.supplies[i] <= tol:
            ctx.supplies[i] = 0.0
        if ctx.demands[j] <= tol:
            ctx.demands[j] = 0.0
        ctx.totalCost += qty * ctx.costs[i, j]

        steps.append(VamStep(
            stepIndex=len(steps) + 1,
            i=i, j=j,
            chosenBy=kind,
            chosenIdx=idx,
            placed=float(qty),
            penalty=penalty,
            rowPenalties=optionalTuple(rowPen),
            colPenalties=optionalTuple(colPen),
            alloc=frozenArray(ctx.alloc),
            penaltyUsed=frozenArray(ctx.penaltyUsed),
            suppliesLeft=frozenArray(ctx.supplies),
            demandsLeft=frozenArray(ctx.demands),
            totalCost=float(ctx.totalCost),
        ))
        logger.debug("VAM step %d: %s %d -> cell (%d, %d), placed %g, penalty %g",
                     len(steps), kind, idx, i, j, qty, penalty)
    else:
        if ctx.openRows() and ctx.openCols():
            logger.warning("VAM stopped at the iteration ceiling (%d steps)", maxIterations)

    return steps


def finalAllocation(steps):
    """Allocation after the last step, as a writable copy (None for an empty trace)."""
    if not steps:
        return None
    return np.array(steps[-1].alloc)
