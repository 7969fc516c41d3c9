import warnings
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

import numpy as np
from sklearn.feature_selection import f_classif, mutual_info_classif


def compute_mrmr_ranking(data: np.ndarray, classes: Sequence[Any],
                         redundancy_weight: float = 1.0,
                         random_state: Optional[int] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Compute mRMR (Minimum Redundancy Maximum Relevance) feature ranking.

    Algorithm:
    1. Relevance: mutual information between each feature and the class
    2. Greedy forward selection:
       - Start with the feature having the highest relevance
       - Score each remaining feature as relevance - redundancy_weight * redundancy,
         where redundancy is its mean absolute correlation with the features
         already selected
       - Select the best scoring feature and repeat until all are ranked

    Args:
        data: Feature matrix (n_samples, n_features)
        classes: True class of each sample
        redundancy_weight: Weight of the redundancy penalty
        random_state: Seed for the mutual information estimator

    Returns:
        ranked_indices: Feature indices ordered best to worst
        mrmr_scores: mRMR score of each feature at the time it was selected
    """
    data = np.asarray(data, dtype=float)
    n_features = data.shape[1]

    relevance = mutual_info_classif(data, np.asarray(classes).ravel(), random_state=random_state)

    with np.errstate(invalid='ignore', divide='ignore'):
        corr_matrix = np.abs(np.corrcoef(data, rowvar=False))
    corr_matrix = np.nan_to_num(np.atleast_2d(corr_matrix))
    np.fill_diagonal(corr_matrix, 0)

    first_idx = int(np.argmax(relevance))
    selected = [first_idx]
    scores = [relevance[first_idx]]
    remaining = np.ones(n_features, dtype=bool)
    remaining[first_idx] = False
    redundancy_sum = corr_matrix[:, first_idx].copy()

    while remaining.any():
        candidate_scores = relevance - redundancy_weight * redundancy_sum / len(selected)
        candidate_scores[~remaining] = -np.inf
        best_idx = int(np.argmax(candidate_scores))

        selected.append(best_idx)
        scores.append(candidate_scores[best_idx])
        remaining[best_idx] = False
        redundancy_sum += corr_matrix[:, best_idx]

    return np.array(selected), np.array(scores)


def mrmr_ranking(data, classes, random_state=None) -> np.ndarray:
    ranked_indices, _ = compute_mrmr_ranking(data, classes, random_state=random_state)
    return ranked_indices


def ftest_ranking(data, classes, random_state=None) -> np.ndarray:
    """Rank features by ANOVA F-score; constant features rank last."""
    with warnings.catch_warnings():
        warnings.simplefilter('ignore')
        f_scores, _ = f_classif(np.asarray(data, dtype=float), np.asarray(classes).ravel())
    f_scores = np.nan_to_num(f_scores, nan=0.0, posinf=np.finfo(float).max)
    return np.argsort(-f_scores, kind='stable')


def mi_ranking(data, classes, random_state=None) -> np.ndarray:
    """Rank features by mutual information with the class."""
    mi_scores = mutual_info_classif(np.asarray(data, dtype=float), np.asarray(classes).ravel(),
                                    random_state=random_state)
    return np.argsort(-mi_scores, kind='stable')


FEATURE_SELECTION_METHODS: Dict[str, Callable[..., np.ndarray]] = {
    'MRMR': mrmr_ranking,
    'FTEST': ftest_ranking,
    'MI': mi_ranking,
}


def rank_features(method: str, data: np.ndarray, classes: Sequence[Any],
                  random_state: Optional[int] = None) -> np.ndarray:
    """
    Order all features of a 2-D data matrix by importance.

    Returns:
        Permutation of range(n_features), most important feature first
    """
    data = np.asarray(data)
    if data.ndim != 2:
        raise ValueError(f"Feature ranking needs 2-D data, got shape {data.shape}")

    key = str(method).upper()
    if key not in FEATURE_SELECTION_METHODS:
        raise ValueError(f"Unknown feature selection method: {method}. "
                         f"Available methods: {', '.join(FEATURE_SELECTION_METHODS)}")
    return np.asarray(FEATURE_SELECTION_METHODS[key](data, classes, random_state=random_state), dtype=int)
