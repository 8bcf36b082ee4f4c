"""
Presentation helpers for step traces: a pandas DataFrame summary (one row per
step) and plain-text tables for the command line.

Human-facing descriptions number rows and columns from 1.
"""
import dataclasses
from enum import Enum
from numbers import Number

import numpy as np
import pandas as pd

from orsteps import hungarian_graph as graph
from orsteps import hungarian_marks as marks
from orsteps.assignment import ReductionStep, SolutionStep
from orsteps.epsilon import EpsilonValue, formatEpsilonValue
from orsteps.northwest import NorthWestStep
from orsteps.potentials import PotentialsSnapshot
from orsteps.vam import VamStep

_OMIT = object()


def _scalar(value):
    """Frame-friendly form of a step field, or _OMIT to leave the field out."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, EpsilonValue):
        return formatEpsilonValue(value)
    if isinstance(value, (bool, str, Number)) or value is None:
        return value
    if isinstance(value, tuple) and all(isinstance(x, (int, np.integer)) for x in value):
        return tuple(int(x) for x in value)
    if isinstance(value, frozenset):
        return tuple(sorted(value))
    return _OMIT


def traceToFrame(steps):
    """One row per step with its kind and every scalar or cell-like field; matrices are left out."""
    records = []
    for k, step in enumerate(steps):
        record = {"step": k, "kind": type(step).__name__}
        for f in dataclasses.fields(step):
            value = _scalar(getattr(step, f.name))
            if value is not _OMIT:
                record[f.name] = value
        records.append(record)
    return pd.DataFrame.from_records(records)


def _cellText(value):
    if value is None:
        return "-"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, EpsilonValue):
        return formatEpsilonValue(value)
    if isinstance(value, (float, np.floating)):
        if np.isnan(value):
            return "-"
        return formatEpsilonValue(EpsilonValue(float(value)))
    return str(value)


def formatMatrix(matrix, rowLabels=None, colLabels=None):
    """Render a 2D array or grid as an aligned text table."""
    cells = [[_cellText(x) for x in row] for row in matrix]
    nRows = len(cells)
    nCols = len(cells[0]) if nRows else 0
    rowLabels = list(rowLabels) if rowLabels is not None else [f"A{i + 1}" for i in range(nRows)]
    colLabels = list(colLabels) if colLabels is not None else [f"B{j + 1}" for j in range(nCols)]

    left = max([len(s) for s in rowLabels] + [1])
    width = max([len(s) for row in cells for s in row] + [len(s) for s in colLabels] + [1])
    lines = [" " * left + " | " + " ".join(f"{s:>{width}}" for s in colLabels)]
    lines.append("-" * len(lines[0]))
    for label, row in zip(rowLabels, cells):
        lines.append(f"{label:<{left}} | " + " ".join(f"{s:>{width}}" for s in row))
    return "\n".join(lines)


def _cell(cell):
    return f"({cell[0] + 1}, {cell[1] + 1})"


def describeStep(step):
    """One-line summary of any step record."""
    if isinstance(step, VamStep):
        line = "row" if step.chosenBy == "row" else "column"
        return (f"{line} {step.chosenIdx + 1} (penalty {step.penalty:g}) -> cell {_cell(step.cell)}, "
                f"placed {step.placed:g}, Z = {step.totalCost:g}")
    if isinstance(step, NorthWestStep):
        return f"cell {_cell(step.cell)}, placed {step.placed:g}, Z = {step.totalCost:g}"
    if isinstance(step, PotentialsSnapshot):
        if step.entering is None:
            return f"optimal, Z = {step.totalCostBefore}"
        if step.cycle is None:
            return f"entering {_cell(step.entering)} but no closed loop (stuck), Z = {step.totalCostBefore}"
        loop = " ".join(f"{sign}{_cell(c)}" for c, sign in step.cycle.items())
        return (f"entering {_cell(step.entering)} (delta {step.enteringDelta:g}), loop {loop}, "
                f"theta = {step.theta}, Z: {step.totalCostBefore} -> {step.totalCostAfter}")
    if isinstance(step, ReductionStep):
        minima = " ".join(_cellText(x) for x in step.minima)
        return f"subtract {step.axis} minima: {minima}"
    if isinstance(step, SolutionStep):
        pairs = ", ".join(f"{i + 1}->{j + 1}" for i, j in step.pairs)
        return f"assignment {pairs}, total cost {step.totalCost:g}"
    if isinstance(step, graph.ZeroGraphStep):
        return f"zero graph with {len(step.edges)} edges"
    if isinstance(step, graph.MatchingStep):
        return f"initial matching of size {len(step.matching)}"
    if isinstance(step, graph.SearchStep):
        found = "none" if step.foundColumn is None else str(step.foundColumn + 1)
        return (f"search from row {step.startRow + 1}: labeled rows {sorted(r + 1 for r in step.rowLabels)}, "
                f"columns {sorted(c + 1 for c in step.colLabels)}, free column {found}")
    if isinstance(step, graph.AugmentStep):
        path = " ".join(_cell(c) for c in step.path)
        return f"augment along {path}, matching size {len(step.matching)}"
    if isinstance(step, (graph.ModifyStep, marks.ModifyStep)):
        return f"modify matrix with h = {step.h:g}"
    if isinstance(step, marks.IndependentZerosStep):
        return f"{step.count} independent zeros"
    if isinstance(step, marks.MarkColumnsStep):
        return f"mark columns {sorted(j + 1 for j in step.markedCols)}"
    if isinstance(step, marks.TransferStep):
        return f"dependent zero {_cell(step.cell)}: column {step.releasedCol + 1} -> row {step.cell[0] + 1}"
    if isinstance(step, marks.ChainStep):
        chain = " ".join(_cell(c) for c in step.chain)
        return f"chain {chain}, {step.independentCount} independent zeros"
    return repr(step)
