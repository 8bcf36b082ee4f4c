import numpy as np

from orsteps.epsilon import EPSILON, EpsilonValue
from orsteps.hungarian_marks import computeHungarianSteps
from orsteps.northwest import computeNorthWestSteps
from orsteps.potentials import computePotentialsSteps
from orsteps.report import describeStep, formatMatrix, traceToFrame
from orsteps.vam import computeVamSteps

COSTS = [
    [10, 7, 6, 8],
    [5, 6, 5, 4],
    [8, 7, 6, 7],
]
SUPPLIES = [31, 48, 38]
DEMANDS = [22, 34, 41, 20]


def test_trace_to_frame_vam():
    frame = traceToFrame(computeVamSteps(COSTS, SUPPLIES, DEMANDS))

    assert len(frame) == 6
    assert list(frame["kind"].unique()) == ["VamStep"]
    assert list(frame["totalCost"]) == [80, 190, 220, 406, 644, 668]
    assert list(frame["chosenBy"]) == ["col", "col", "row", "row", "col", "row"]
    # matrices and penalty vectors stay out of the frame
    assert "alloc" not in frame.columns
    assert "suppliesLeft" not in frame.columns


def test_trace_to_frame_potentials():
    alloc = computeNorthWestSteps(COSTS, SUPPLIES, DEMANDS)[-1].alloc
    frame = traceToFrame(computePotentialsSteps(COSTS, alloc))

    assert list(frame["status"]) == ["pivot", "pivot", "optimal"]
    assert frame["theta"].iloc[0] == "22"
    assert frame["totalCostBefore"].iloc[-1] == "668"
    assert frame["entering"].iloc[0] == (1, 0)


def test_trace_to_frame_mixed_kinds():
    frame = traceToFrame(computeHungarianSteps([[1, 2], [2, 1]]))

    assert frame["kind"].iloc[0] == "ReductionStep"
    assert frame["kind"].iloc[-1] == "SolutionStep"
    assert frame["totalCost"].iloc[-1] == 2
    assert list(frame["step"]) == list(range(len(frame)))


def test_describe_steps():
    vam = computeVamSteps(COSTS, SUPPLIES, DEMANDS)
    assert describeStep(vam[-1]) == "row 3 (penalty 6) -> cell (3, 3), placed 4, Z = 668"
    assert describeStep(vam[0]).startswith("column 4 (penalty 3) -> cell (2, 4)")

    corner = computeNorthWestSteps(COSTS, SUPPLIES, DEMANDS)
    assert describeStep(corner[0]) == "cell (1, 1), placed 22, Z = 220"

    snapshots = computePotentialsSteps(COSTS, corner[-1].alloc)
    assert describeStep(snapshots[-1]) == "optimal, Z = 668"
    assert "theta = 22" in describeStep(snapshots[0])
    assert "+(2, 1) -(1, 1) +(1, 2) -(2, 2)" in describeStep(snapshots[0])

    solution = computeHungarianSteps([[1, 2], [2, 1]])[-1]
    assert describeStep(solution) == "assignment 1->1, 2->2, total cost 2"


def test_format_matrix():
    text = formatMatrix(np.array([[1.0, np.nan], [2.5, 10.0]]))
    lines = text.splitlines()

    assert len(lines) == 4
    assert lines[0].split() == ["|", "B1", "B2"]
    assert lines[2].split() == ["A1", "|", "1", "-"]
    assert lines[3].split() == ["A2", "|", "2.5", "10"]


def test_format_matrix_epsilon_and_labels():
    text = formatMatrix([[EpsilonValue(10, 1), EPSILON]], rowLabels=["s"], colLabels=["x", "y"])
    lines = text.splitlines()

    assert lines[0].split() == ["|", "x", "y"]
    assert "10 + ε" in lines[2]
    assert lines[2].rstrip().endswith("ε")


def test_exported_values_keep_full_precision():
    assert "1234567.5" in formatMatrix([[1234567.5, EpsilonValue(3, 1e-05)]])
    assert "3 + 1e-05ε" in formatMatrix([[EpsilonValue(3, 1e-05)]])
