import numpy as np
import pytest

from orsteps.balance import balance
from orsteps.vam import computeVamSteps, finalAllocation

COSTS = [
    [10, 7, 6, 8],
    [5, 6, 5, 4],
    [8, 7, 6, 7],
]
SUPPLIES = [31, 48, 38]
DEMANDS = [22, 34, 41, 20]

PROBLEMS = [
    (COSTS, SUPPLIES, DEMANDS),
    ([[8, 6, 10, 9], [9, 12, 13, 7], [14, 9, 16, 5]], [20, 30, 25], [10, 25, 15, 25]),
    ([[4, 6, 8, 13], [13, 11, 10, 8], [14, 4, 10, 13]], [70, 10, 90], [60, 40, 40, 20]),
    ([[3, 1, 7, 4], [2, 6, 5, 9], [8, 3, 3, 2]], [300, 400, 500], [250, 350, 400, 200]),
]


@pytest.fixture(scope="module")
def steps():
    return computeVamSteps(COSTS, SUPPLIES, DEMANDS)


def test_vam_regression_trace(steps):
    assert [s.cell for s in steps] == [(1, 3), (1, 0), (1, 2), (0, 2), (2, 1), (2, 2)]
    assert [s.placed for s in steps] == [20, 22, 6, 31, 34, 4]
    assert [s.chosenBy for s in steps] == ["col", "col", "row", "row", "col", "row"]
    assert [s.penalty for s in steps] == [3, 3, 1, 1, 7, 6]
    assert [s.totalCost for s in steps] == [80, 190, 220, 406, 644, 668]
    assert [s.stepIndex for s in steps] == [1, 2, 3, 4, 5, 6]


def test_vam_penalties(steps):
    assert steps[0].rowPenalties == (1, 1, 1)
    assert steps[0].colPenalties == (3, 1, 1, 3)
    # column 4 is exhausted after the first allocation
    assert steps[1].rowPenalties == (1, 0, 1)
    assert steps[1].colPenalties == (3, 1, 1, None)
    # a single remaining row makes the column penalty the cost itself
    assert steps[4].colPenalties == (None, 7, 6, None)


def test_vam_final_state(steps):
    last = steps[-1]
    assert np.allclose(last.suppliesLeft, 0)
    assert np.allclose(last.demandsLeft, 0)
    expected = np.array([
        [0, 0, 31, 0],
        [22, 0, 6, 20],
        [0, 34, 4, 0],
    ])
    assert np.allclose(last.alloc, expected)
    assert last.penaltyUsed[2, 1] == 7
    assert np.isnan(last.penaltyUsed[0, 0])


def test_steps_own_their_data(steps):
    first = steps[0]
    assert np.count_nonzero(first.alloc) == 1
    assert first.alloc is not steps[1].alloc
    assert not first.alloc.flags.writeable
    with pytest.raises(ValueError):
        first.alloc[0, 0] = 1
    # a writable copy for callers
    final = finalAllocation(steps)
    final[0, 0] = 99
    assert steps[-1].alloc[0, 0] == 0


@pytest.mark.parametrize("costs, supplies, demands", PROBLEMS)
def test_vam_conservation(costs, supplies, demands):
    problem = balance(costs, supplies, demands)
    steps = computeVamSteps(costs, supplies, demands)
    alloc = steps[-1].alloc

    assert alloc.shape == problem.shape
    assert np.allclose(alloc.sum(axis=1), problem.supplies)
    assert np.allclose(alloc.sum(axis=0), problem.demands)
    assert steps[-1].totalCost == pytest.approx(float(np.sum(alloc * problem.costs)))
    assert (alloc >= 0).all()


def test_vam_balances_surplus():
    steps = computeVamSteps([[4, 6, 8, 13], [13, 11, 10, 8], [14, 4, 10, 13]],
                            [70, 10, 90], [60, 40, 40, 20])
    alloc = steps[-1].alloc
    assert alloc.shape == (3, 5)
    # dummy consumer takes the surplus of 10
    assert alloc[:, 4].sum() == pytest.approx(10)


def test_vam_iteration_ceiling():
    steps = computeVamSteps(COSTS, SUPPLIES, DEMANDS, maxIterations=2)
    assert len(steps) == 2
    assert steps[-1].suppliesLeft.sum() > 0


def test_vam_is_deterministic(steps):
    again = computeVamSteps(COSTS, SUPPLIES, DEMANDS)
    assert [s.cell for s in again] == [s.cell for s in steps]
    assert all(np.array_equal(a.alloc, b.alloc) for a, b in zip(again, steps))


def test_vam_row_tie_goes_to_larger_column_penalty():
    # row 1 holds two cells of cost 1; column 2 carries the larger penalty
    costs = [
        [1, 1, 9],
        [1, 1.4, 9],
    ]
    first = computeVamSteps(costs, [5, 5], [3, 3, 4], tol=0.5)[0]

    assert (first.chosenBy, first.chosenIdx) == ("row", 0)
    assert first.colPenalties == pytest.approx((0, 0.4, 0))
    assert first.cell == (0, 1)


def test_vam_column_tie_goes_to_larger_row_penalty():
    # costs 1 and 1.4 in column 1 are equal within tol; row 2 carries the larger penalty
    costs = [
        [1, 1, 2],
        [1.4, 1.6, 2.8],
    ]
    first = computeVamSteps(costs, [5, 5], [3, 3, 4], tol=0.5)[0]

    assert (first.chosenBy, first.chosenIdx) == ("col", 0)
    assert first.rowPenalties == pytest.approx((0, 0.2))
    assert first.penalty == pytest.approx(0.8)
    assert first.cell == (1, 0)
