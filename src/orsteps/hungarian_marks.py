"""
Hungarian algorithm, marking formulation.

Zeros of the reduced matrix carry one of three marks: independent (part of
the current partial assignment), dependent (found while looking for a chain)
or none. Marked columns and rows ("+" lines) cover the independent zeros.

A0  mark every column holding an independent zero
A1  take an uncovered zero and either transfer the mark from its independent
    zero's column to its row, or start a chain
A2  flip marks along the chain; one more independent zero
A3  no uncovered zero: modify the matrix by h and go back to A1
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional, Set, Tuple

import numpy as np

from orsteps.assignment import (MAX_HUNGARIAN_ITERATIONS, applyModification, isZeroCell,
                                reduceMatrix, solutionStep)
from orsteps.matrix import TOLERANCE, frozenArray, frozenGrid

logger = logging.getLogger(__name__)

Cell = Tuple[int, int]


class Mark(Enum):
    NONE = ""
    INDEPENDENT = "*"
    DEPENDENT = "'"


class MarksPhase(Enum):
    REDUCE = "reduce"
    INDEPENDENT_ZEROS = "independent_zeros"
    MARK_COLUMNS = "A0"
    SEARCH = "A1"
    CHAIN = "A2"
    MODIFY = "A3"
    DONE = "done"


Marks = Tuple[Tuple[Mark, ...], ...]


@dataclass(frozen=True)
class IndependentZerosStep:
    marks: Marks
    matrix: np.ndarray

    @property
    def count(self):
        return sum(mark is Mark.INDEPENDENT for row in self.marks for mark in row)


@dataclass(frozen=True)
class MarkColumnsStep:
    markedCols: FrozenSet[int]
    marks: Marks


@dataclass(frozen=True)
class TransferStep:
    cell: Cell                  # the zero marked dependent
    releasedCol: int            # column that lost its mark
    markedRows: FrozenSet[int]
    markedCols: FrozenSet[int]
    marks: Marks


@dataclass(frozen=True)
class ChainStep:
    chain: Tuple[Cell, ...]     # starts at a dependent zero, alternates independent/dependent
    marks: Marks                # after flipping and clearing dependent marks
    independentCount: int


@dataclass(frozen=True)
class ModifyStep:
    h: float
    markedRows: FrozenSet[int]
    markedCols: FrozenSet[int]
    matrix: np.ndarray
    marks: Marks


@dataclass
class _MarksContext:
    costs: np.ndarray
    tol: float
    maxIterations: int
    matrix: Optional[np.ndarray] = None
    marks: List[List[Mark]] = field(default_factory=list)
    markedRows: Set[int] = field(default_factory=set)
    markedCols: Set[int] = field(default_factory=set)
    chainStart: Optional[Cell] = None
    iterations: int = 0

    @property
    def n(self):
        return self.costs.shape[0]

    def snapshotMarks(self):
        return frozenGrid(self.marks)

    def independentCol(self, i):
        return next((j for j in range(self.n) if self.marks[i][j] is Mark.INDEPENDENT), None)

    def independentRow(self, j):
        return next((i for i in range(self.n) if self.marks[i][j] is Mark.INDEPENDENT), None)

    def dependentCol(self, i):
        return next((j for j in range(self.n) if self.marks[i][j] is Mark.DEPENDENT), None)

    def independentCount(self):
        return sum(mark is Mark.INDEPENDENT for row in self.marks for mark in row)

    def tick(self):
        """Count one A2/A3 round; False once the ceiling is reached."""
        if self.iterations >= self.maxIterations:
            logger.warning("Hungarian (marks) stopped at the iteration ceiling (%d)", self.maxIterations)
            return False
        self.iterations += 1
        return True


def _reduce(ctx, steps):
    ctx.matrix, reductions = reduceMatrix(ctx.costs)
    steps.extend(reductions)
    return MarksPhase.INDEPENDENT_ZEROS


def _independentZeros(ctx, steps):
    n = ctx.n
    ctx.marks = [[Mark.NONE] * n for _ in range(n)]
    usedCols = set()
    for i in range(n):
        for j in range(n):
            if j not in usedCols and isZeroCell(ctx.matrix[i, j], ctx.tol):
                ctx.marks[i][j] = Mark.INDEPENDENT
                usedCols.add(j)
                break
    steps.append(IndependentZerosStep(ctx.snapshotMarks(), frozenArray(ctx.matrix)))
    return MarksPhase.MARK_COLUMNS


def _markColumns(ctx, steps):
    n = ctx.n
    if ctx.independentCount() == n:
        assignment = [ctx.independentCol(i) for i in range(n)]
        steps.append(solutionStep(ctx.costs, assignment, ctx.matrix))
        return MarksPhase.DONE

    for i in range(n):
        for j in range(n):
            if ctx.marks[i][j] is Mark.DEPENDENT:
                ctx.marks[i][j] = Mark.NONE
    ctx.markedRows = set()
    ctx.markedCols = {j for j in range(n) if ctx.independentRow(j) is not None}
    steps.append(MarkColumnsStep(frozenset(ctx.markedCols), ctx.snapshotMarks()))
    return MarksPhase.SEARCH


def _findUncoveredZero(ctx):
    n = ctx.n
    for j in range(n):
        if j in ctx.markedCols:
            continue
        for i in range(n):
            if i not in ctx.markedRows and isZeroCell(ctx.matrix[i, j], ctx.tol):
                return i, j
    return None


def _search(ctx, steps):
    cell = _findUncoveredZero(ctx)
    if cell is None:
        return MarksPhase.MODIFY if ctx.tick() else MarksPhase.DONE

    i, j = cell
    ctx.marks[i][j] = Mark.DEPENDENT
    k = ctx.independentCol(i)
    if k is None:
        ctx.chainStart = cell
        return MarksPhase.CHAIN if ctx.tick() else MarksPhase.DONE

    ctx.markedCols.discard(k)
    ctx.markedRows.add(i)
    steps.append(TransferStep(cell, k, frozenset(ctx.markedRows), frozenset(ctx.markedCols),
                              ctx.snapshotMarks()))
    logger.debug("dependent zero %s, mark moved from column %d to row %d", cell, k, i)
    return MarksPhase.SEARCH


def _chain(ctx, steps):
    chain = [ctx.chainStart]
    j = ctx.chainStart[1]
    while True:
        r = ctx.independentRow(j)
        if r is None:
            break
        chain.append((r, j))
        c = ctx.dependentCol(r)
        if c is None:
            break
        chain.append((r, c))
        j = c

    for i, j in chain:
        if ctx.marks[i][j] is Mark.DEPENDENT:
            ctx.marks[i][j] = Mark.INDEPENDENT
        else:
            ctx.marks[i][j] = Mark.DEPENDENT
    for row in ctx.marks:
        for j, mark in enumerate(row):
            if mark is Mark.DEPENDENT:
                row[j] = Mark.NONE
    ctx.chainStart = None

    steps.append(ChainStep(tuple(chain), ctx.snapshotMarks(), ctx.independentCount()))
    logger.debug("chain %s, %d independent zeros", chain, ctx.independentCount())
    return MarksPhase.MARK_COLUMNS


def _modify(ctx, steps):
    n = ctx.n
    unmarkedRows = [i for i in range(n) if i not in ctx.markedRows]
    unmarkedCols = [j for j in range(n) if j not in ctx.markedCols]
    ctx.matrix, h = applyModification(ctx.matrix, unmarkedRows, unmarkedCols, ctx.tol)
    steps.append(ModifyStep(h, frozenset(ctx.markedRows), frozenset(ctx.markedCols),
                            frozenArray(ctx.matrix), ctx.snapshotMarks()))
    logger.debug("no uncovered zero, modified matrix with h=%g", h)
    return MarksPhase.SEARCH


_HANDLERS = {
    MarksPhase.REDUCE: _reduce,
    MarksPhase.INDEPENDENT_ZEROS: _independentZeros,
    MarksPhase.MARK_COLUMNS: _markColumns,
    MarksPhase.SEARCH: _search,
    MarksPhase.CHAIN: _chain,
    MarksPhase.MODIFY: _modify,
}


def computeHungarianSteps(costs, maxIterations=MAX_HUNGARIAN_ITERATIONS, tol=TOLERANCE):
    """
    Solve the square assignment problem with independent/dependent zero marks.

    Returns the ordered list of steps, ending with a SolutionStep unless the
    iteration ceiling cut the trace short.
    """
    ctx = _MarksContext(costs=np.array(costs, dtype=float), tol=tol, maxIterations=maxIterations)
    steps = []
    phase = MarksPhase.REDUCE
    while phase is not MarksPhase.DONE:
        phase = _HANDLERS[phase](ctx, steps)
    return steps
