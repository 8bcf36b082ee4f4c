import logging
from dataclasses import dataclass

import numpy as np

from orsteps.balance import balance
from orsteps.matrix import TOLERANCE, frozenArray

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NorthWestStep:
    stepIndex: int
    i: int
    j: int
    placed: float
    alloc: np.ndarray
    suppliesLeft: np.ndarray
    demandsLeft: np.ndarray
    totalCost: float

    @property
    def cell(self):
        return (self.i, self.j)


def computeNorthWestSteps(costs, supplies, demands, tol=TOLERANCE):
    """North-west corner method for the initial plan, one step per allocation."""
    problem = balance(costs, supplies, demands, tol=tol)
    m, n = problem.shape
    supplyRemaining = np.array(problem.supplies)
    demandRemaining = np.array(problem.demands)
    allocation = np.zeros((m, n))
    cost = 0.0

    steps = []
    i, j = 0, 0
    while i < m and j < n:
        if supplyRemaining[i] <= tol:
            i += 1
            continue
        if demandRemaining[j] <= tol:
            j += 1
            continue

        amount = min(supplyRemaining[i], demandRemaining[j])
        allocation[i, j] = amount
        supplyRemaining[i] -= amount
        demandRemaining[j] -= amount
        cost += amount * problem.costs[i, j]

        steps.append(NorthWestStep(
            stepIndex=len(steps) + 1,
            i=i, j=j,
            placed=float(amount),
            alloc=frozenArray(allocation),
            suppliesLeft=frozenArray(np.where(supplyRemaining <= tol, 0.0, supplyRemaining)),
            demandsLeft=frozenArray(np.where(demandRemaining <= tol, 0.0, demandRemaining)),
            totalCost=float(cost),
        ))
        logger.debug("north-west step %d: cell (%d, %d), placed %g", len(steps), i, j, amount)

        if supplyRemaining[i] <= tol:
            i += 1
        else:
            j += 1

    return steps
