"""
Hungarian algorithm, bipartite-graph formulation.

Zeros of the reduced matrix are edges between row vertices and column
vertices. The matching is grown by breadth-first augmenting-path search; when
no path exists the labeled vertices give a cover and the matrix is modified.

The main loop is a state machine: each phase handler records its steps and
returns the next phase.
"""
import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

import numpy as np

from orsteps.assignment import (MAX_HUNGARIAN_ITERATIONS, applyModification, isZeroCell,
                                reduceMatrix, solutionStep)
from orsteps.matrix import TOLERANCE, frozenArray

logger = logging.getLogger(__name__)

Cell = Tuple[int, int]


class GraphPhase(Enum):
    REDUCE = "reduce"
    BUILD_GRAPH = "build_graph"
    INITIAL_MATCHING = "initial_matching"
    CHECK = "check"
    SEARCH = "search"
    AUGMENT = "augment"
    MODIFY = "modify"
    DONE = "done"


@dataclass(frozen=True)
class ZeroGraphStep:
    matrix: np.ndarray
    edges: Tuple[Cell, ...]         # zero cells, row-major
    matching: Tuple[Cell, ...]


@dataclass(frozen=True)
class MatchingStep:
    matching: Tuple[Cell, ...]
    matrix: np.ndarray


@dataclass(frozen=True)
class SearchStep:
    """
    Breadth-first labeling from an unmatched row.

    Labels map a vertex to ``(order, predecessor)``; the start row has
    predecessor None. Both label maps are read-only views. ``foundColumn`` is the unmatched column that ends an
    augmenting path, or None when the search is exhausted.
    """
    startRow: int
    rowLabels: Mapping[int, Tuple[int, Optional[int]]]
    colLabels: Mapping[int, Tuple[int, int]]
    foundColumn: Optional[int]
    matching: Tuple[Cell, ...]


@dataclass(frozen=True)
class AugmentStep:
    path: Tuple[Cell, ...]          # from the start row to the found column
    added: Tuple[Cell, ...]
    removed: Tuple[Cell, ...]
    matching: Tuple[Cell, ...]


@dataclass(frozen=True)
class ModifyStep:
    h: float
    labeledRows: Tuple[int, ...]    # X+
    labeledCols: Tuple[int, ...]    # Y+
    matrix: np.ndarray
    matching: Tuple[Cell, ...]


@dataclass
class _GraphContext:
    costs: np.ndarray
    tol: float
    maxIterations: int
    matrix: Optional[np.ndarray] = None
    matchRow: Dict[int, int] = field(default_factory=dict)
    matchCol: Dict[int, int] = field(default_factory=dict)
    matchingBuilt: bool = False
    search: Optional[SearchStep] = None
    iterations: int = 0

    @property
    def n(self):
        return self.costs.shape[0]

    def matching(self):
        return tuple(sorted(self.matchRow.items()))


def _reduce(ctx, steps):
    ctx.matrix, reductions = reduceMatrix(ctx.costs)
    steps.extend(reductions)
    return GraphPhase.BUILD_GRAPH


def _buildGraph(ctx, steps):
    n = ctx.n
    edges = tuple((i, j) for i in range(n) for j in range(n) if isZeroCell(ctx.matrix[i, j], ctx.tol))
    steps.append(ZeroGraphStep(frozenArray(ctx.matrix), edges, ctx.matching()))
    return GraphPhase.CHECK if ctx.matchingBuilt else GraphPhase.INITIAL_MATCHING


def _initialMatching(ctx, steps):
    # column-major scan, first unmatched zero row in each column
    n = ctx.n
    for j in range(n):
        for i in range(n):
            if i not in ctx.matchRow and isZeroCell(ctx.matrix[i, j], ctx.tol):
                ctx.matchRow[i] = j
                ctx.matchCol[j] = i
                break
    ctx.matchingBuilt = True
    steps.append(MatchingStep(ctx.matching(), frozenArray(ctx.matrix)))
    return GraphPhase.CHECK


def _check(ctx, steps):
    if len(ctx.matchRow) == ctx.n:
        assignment = [ctx.matchRow[i] for i in range(ctx.n)]
        steps.append(solutionStep(ctx.costs, assignment, ctx.matrix))
        return GraphPhase.DONE
    if ctx.iterations >= ctx.maxIterations:
        logger.warning("Hungarian (graph) stopped at the iteration ceiling (%d)", ctx.maxIterations)
        return GraphPhase.DONE
    ctx.iterations += 1
    return GraphPhase.SEARCH


def _search(ctx, steps):
    n = ctx.n
    start = min(i for i in range(n) if i not in ctx.matchRow)
    rowLabels = {start: (0, None)}
    colLabels = {}
    order = 0
    found = None
    queue = deque([start])
    while queue and found is None:
        i = queue.popleft()
        for j in range(n):
            if j in colLabels or ctx.matchRow.get(i) == j or not isZeroCell(ctx.matrix[i, j], ctx.tol):
                continue
            order += 1
            colLabels[j] = (order, i)
            if j not in ctx.matchCol:
                found = j
                break
            r = ctx.matchCol[j]
            if r not in rowLabels:
                order += 1
                rowLabels[r] = (order, j)
                queue.append(r)

    ctx.search = SearchStep(start, MappingProxyType(rowLabels), MappingProxyType(colLabels),
                            found, ctx.matching())
    steps.append(ctx.search)
    logger.debug("search from row %d: labeled rows %s, columns %s, found %s",
                 start, sorted(rowLabels), sorted(colLabels), found)
    return GraphPhase.AUGMENT if found is not None else GraphPhase.MODIFY


def _augment(ctx, steps):
    search = ctx.search
    added = []
    removed = []
    j = search.foundColumn
    while j is not None:
        i = search.colLabels[j][1]
        previous = search.rowLabels[i][1]
        added.append((i, j))
        if previous is not None:
            removed.append((i, previous))
        ctx.matchRow[i] = j
        ctx.matchCol[j] = i
        j = previous

    # path in walking order: start row first
    path = []
    for k in range(len(added) - 1, -1, -1):
        path.append(added[k])
        if k > 0:
            path.append(removed[k - 1])
    steps.append(AugmentStep(tuple(path), tuple(reversed(added)), tuple(reversed(removed)),
                             ctx.matching()))
    return GraphPhase.CHECK


def _modify(ctx, steps):
    search = ctx.search
    labeledRows = sorted(search.rowLabels)
    labeledCols = sorted(search.colLabels)
    uncoveredCols = [j for j in range(ctx.n) if j not in search.colLabels]
    ctx.matrix, h = applyModification(ctx.matrix, labeledRows, uncoveredCols, ctx.tol)
    steps.append(ModifyStep(h, tuple(labeledRows), tuple(labeledCols),
                            frozenArray(ctx.matrix), ctx.matching()))
    logger.debug("no augmenting path, modified matrix with h=%g", h)
    return GraphPhase.BUILD_GRAPH


_HANDLERS = {
    GraphPhase.REDUCE: _reduce,
    GraphPhase.BUILD_GRAPH: _buildGraph,
    GraphPhase.INITIAL_MATCHING: _initialMatching,
    GraphPhase.CHECK: _check,
    GraphPhase.SEARCH: _search,
    GraphPhase.AUGMENT: _augment,
    GraphPhase.MODIFY: _modify,
}


def computeHungarianGraphSteps(costs, maxIterations=MAX_HUNGARIAN_ITERATIONS, tol=TOLERANCE):
    """
    Solve the square assignment problem by maximum matching on the zero graph.

    Returns the ordered list of steps: two ReductionSteps, then ZeroGraphStep,
    MatchingStep, SearchStep, AugmentStep and ModifyStep records, and a final
    SolutionStep. A trace cut by maxIterations has no SolutionStep.
    """
    ctx = _GraphContext(costs=np.array(costs, dtype=float), tol=tol, maxIterations=maxIterations)
    steps = []
    phase = GraphPhase.REDUCE
    while phase is not GraphPhase.DONE:
        phase = _HANDLERS[phase](ctx, steps)
    return steps
