"""
Pieces shared by both Hungarian variants: matrix reduction, the h-modification
of the reduced matrix, and the final solution step.
"""
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from orsteps.matrix import TOLERANCE, frozenArray

MAX_HUNGARIAN_ITERATIONS = 100


@dataclass(frozen=True)
class ReductionStep:
    axis: str               # 'columns' or 'rows'
    minima: np.ndarray
    matrix: np.ndarray      # after subtracting the minima


@dataclass(frozen=True)
class SolutionStep:
    assignment: Tuple[int, ...]     # assignment[i] = column of row i
    totalCost: float
    matrix: np.ndarray

    @property
    def pairs(self):
        return tuple(enumerate(self.assignment))


def reduceMatrix(costs):
    """
    Subtract column minimums, then row minimums.

    Returns:
        reduced matrix (writable), [column ReductionStep, row ReductionStep]
    """
    matrix = np.array(costs, dtype=float)
    colMin = matrix.min(axis=0)
    matrix = matrix - colMin.reshape(1, -1)
    steps = [ReductionStep("columns", frozenArray(colMin), frozenArray(matrix))]
    rowMin = matrix.min(axis=1)
    matrix = matrix - rowMin.reshape(-1, 1)
    steps.append(ReductionStep("rows", frozenArray(rowMin), frozenArray(matrix)))
    return matrix, steps


def isZeroCell(value, tol=TOLERANCE):
    return abs(value) <= tol


def applyModification(matrix, reducedRows, reducedCols, tol=TOLERANCE):
    """
    Subtract h from reducedRows x reducedCols and add it to the complementary
    rows x complementary columns, h being the minimum over the reduced block.

    Returns:
        new matrix, h
    """
    n = matrix.shape[0]
    rows = sorted(reducedRows)
    cols = sorted(reducedCols)
    otherRows = [i for i in range(n) if i not in reducedRows]
    otherCols = [j for j in range(matrix.shape[1]) if j not in reducedCols]

    h = float(matrix[np.ix_(rows, cols)].min())
    updated = matrix.copy()
    updated[np.ix_(rows, cols)] -= h
    if otherRows and otherCols:
        updated[np.ix_(otherRows, otherCols)] += h
    updated[np.abs(updated) <= tol] = 0.0
    return updated, h


def assignmentCost(costs, assignment):
    costs = np.asarray(costs, dtype=float)
    return float(sum(costs[i, j] for i, j in enumerate(assignment)))


def solutionStep(costs, assignment, matrix):
    assignment = tuple(int(j) for j in assignment)
    return SolutionStep(assignment, assignmentCost(costs, assignment), frozenArray(matrix))
