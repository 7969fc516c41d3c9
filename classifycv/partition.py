from typing import Any, Optional, Sequence

import numpy as np
from sklearn.model_selection import KFold, StratifiedKFold


def make_partition(classes: Sequence[Any], numfolds: int, stratified: bool = False,
                   random_state: Optional[int] = None) -> np.ndarray:
    """
    Assign every sample to a cross-validation fold.

    Parameters:
    -----------
    classes : array-like
        True class of each sample
    numfolds : int
        Number of folds. When equal to the number of samples every sample
        is its own fold (leave-one-out).
    stratified : bool
        Keep class proportions similar across folds
    random_state : int, optional
        Seed for the shuffled assignment

    Returns:
    --------
    np.ndarray of fold labels 1..numfolds, one per sample
    """
    classes = np.asarray(classes).ravel()
    n_samples = len(classes)
    numfolds = int(numfolds)

    if numfolds < 2:
        raise ValueError(f"numfolds must be at least 2, got {numfolds}")
    if numfolds > n_samples:
        raise ValueError(f"numfolds ({numfolds}) cannot exceed the number of samples ({n_samples})")

    if numfolds == n_samples:
        return np.arange(1, n_samples + 1)

    if stratified:
        splitter = StratifiedKFold(n_splits=numfolds, shuffle=True, random_state=random_state)
    else:
        splitter = KFold(n_splits=numfolds, shuffle=True, random_state=random_state)

    partition = np.zeros(n_samples, dtype=int)
    for fold_idx, (_, test_idx) in enumerate(splitter.split(np.zeros((n_samples, 1)), classes)):
        partition[test_idx] = fold_idx + 1
    return partition


def check_partition(partition: Sequence[Any], n_samples: int) -> np.ndarray:
    """Validate a user supplied partition and return it as a flat array."""
    partition = np.asarray(partition).ravel()
    if len(partition) != n_samples:
        raise ValueError(f"partition has {len(partition)} entries but there are {n_samples} samples")
    if len(np.unique(partition)) < 2:
        raise ValueError("partition must contain at least two folds")
    return partition
