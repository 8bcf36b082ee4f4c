import csv

import numpy as np
import pandas as pd


def _numericRows(filePath):
    """Non-empty CSV rows converted to floats; blank cells are skipped."""
    rows = []
    with open(filePath, 'r', newline='') as f:
        for lineNo, row in enumerate(csv.reader(f), start=1):
            cells = [cell.strip() for cell in row if cell.strip()]
            if not cells:
                continue
            try:
                rows.append([float(x) for x in cells])
            except ValueError as e:
                raise ValueError(f"{filePath}, line {lineNo}: non-numeric value in {row}") from e
    return rows


def readTransportCSV(filePath):
    """
    Read a transportation problem from CSV.

    Layout: supplies on the first row, demands on the second, then one row
    of costs per supplier.

    Returns:
        costs (m x n), supplies (m), demands (n) as numpy arrays
    """
    rows = _numericRows(filePath)
    if len(rows) < 3:
        raise ValueError(f"{filePath}: expected supplies, demands and cost rows, found {len(rows)} rows")

    supplies, demands, costRows = rows[0], rows[1], rows[2:]
    if len(costRows) != len(supplies):
        raise ValueError(
            f"{filePath}: {len(costRows)} cost rows for {len(supplies)} suppliers"
        )
    ragged = [r for r in costRows if len(r) != len(demands)]
    if ragged:
        raise ValueError(
            f"{filePath}: every cost row needs {len(demands)} values (one per consumer), got {ragged[0]}"
        )
    return np.array(costRows), np.array(supplies), np.array(demands)


def readAssignmentCSV(filePath):
    """
    Read a square assignment cost matrix (no header, one row per worker).

    Returns:
        costs (n x n) as a numpy array
    """
    try:
        df = pd.read_csv(filePath, header=None, skipinitialspace=True)
    except pd.errors.EmptyDataError as e:
        raise ValueError(f"{filePath}: file is empty") from e

    df = df.dropna(how='all').dropna(axis=1, how='all')
    try:
        costs = df.values.astype(float)
    except ValueError as e:
        raise ValueError(f"{filePath}: non-numeric data in cost matrix") from e

    if np.isnan(costs).any():
        raise ValueError(f"{filePath}: missing costs")
    rows, cols = costs.shape
    if rows == 0 or rows != cols:
        raise ValueError(f"{filePath}: assignment matrix must be square and non-empty, got {rows}x{cols}")
    return costs
