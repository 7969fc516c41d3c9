import itertools
from typing import Any, List, Sequence

import numpy as np


def expand_grid(params: Sequence[Sequence[Any]]) -> np.ndarray:
    """
    Expand per-dimension value lists into every parameter combination.

    The first dimension varies fastest, so [[1, 2], [10, 20]] expands to
    (1, 10), (2, 10), (1, 20), (2, 20).

    Args:
        params: One sequence of values per grid dimension

    Returns:
        Array of shape (n_sets, n_dims), one row per parameter set
    """
    value_lists: List[List[Any]] = [list(values) for values in params]
    if not value_lists or any(len(values) == 0 for values in value_lists):
        raise ValueError("Every parameter dimension needs at least one value")

    # itertools.product varies the last dimension fastest
    combos = itertools.product(*reversed(value_lists))
    return np.array([tuple(reversed(combo)) for combo in combos])
