import logging
from dataclasses import dataclass

import numpy as np

from orsteps.matrix import TOLERANCE, frozenArray

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BalancedProblem:
    """
    A transportation problem whose total supply equals total demand.

    The original costs, supplies and demands are always a prefix of the
    balanced ones: at most one dummy supplier (row) or one dummy consumer
    (column) with zero costs is appended.
    """
    costs: np.ndarray
    supplies: np.ndarray
    demands: np.ndarray
    addedSupplier: bool = False
    addedConsumer: bool = False

    @property
    def shape(self):
        return self.costs.shape

    @property
    def wasBalanced(self):
        return not (self.addedSupplier or self.addedConsumer)


def balance(costs, supplies, demands, tol=TOLERANCE):
    """Balance supplies and demands by adding a dummy row or column with zero cost if necessary."""
    costs = np.array(costs, dtype=float)
    supplies = np.array(supplies, dtype=float)
    demands = np.array(demands, dtype=float)
    m, n = costs.shape

    totalSupply = float(supplies.sum())
    totalDemand = float(demands.sum())
    addedSupplier = addedConsumer = False

    if abs(totalSupply - totalDemand) <= tol:
        pass
    elif totalSupply > totalDemand:
        # add dummy demand (column)
        costs = np.hstack((costs, np.zeros((m, 1))))
        demands = np.append(demands, totalSupply - totalDemand)
        addedConsumer = True
        logger.debug("added dummy consumer with demand %g", totalSupply - totalDemand)
    else:
        # add dummy supply (row)
        costs = np.vstack((costs, np.zeros((1, n))))
        supplies = np.append(supplies, totalDemand - totalSupply)
        addedSupplier = True
        logger.debug("added dummy supplier with supply %g", totalDemand - totalSupply)

    return BalancedProblem(
        costs=frozenArray(costs),
        supplies=frozenArray(supplies),
        demands=frozenArray(demands),
        addedSupplier=addedSupplier,
        addedConsumer=addedConsumer,
    )
