"""Helpers that give every step snapshot its own read-only copy of the data."""
import numpy as np

TOLERANCE = 1e-9


def frozenArray(values, dtype=float):
    """Copy values into a new numpy array that cannot be written to."""
    arr = np.array(values, dtype=dtype, copy=True)
    arr.setflags(write=False)
    return arr


def frozenGrid(rows):
    """Copy a nested sequence into a tuple of tuples."""
    return tuple(tuple(row) for row in rows)


def optionalTuple(values):
    """Tuple of floats where NaN / -inf / None become None."""
    out = []
    for x in values:
        if x is None or not np.isfinite(x):
            out.append(None)
        else:
            out.append(float(x))
    return tuple(out)

