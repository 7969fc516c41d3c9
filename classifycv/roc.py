from dataclasses import dataclass
from typing import Any, Dict, Sequence

import numpy as np
from sklearn.metrics import auc, roc_curve


OPERATING_POINT_METHODS = ('perfcurve', 'youden', 'closest')


@dataclass
class RocResult:
    """ROC curve of a binary problem and its optimal operating point."""
    fpr: np.ndarray
    tpr: np.ndarray
    thresholds: np.ndarray
    roc_auc: float
    optimal_fpr: float
    optimal_tpr: float
    threshold: float
    method: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'fpr': self.fpr.tolist(),
            'tpr': self.tpr.tolist(),
            'thresholds': [float(t) if np.isfinite(t) else None for t in self.thresholds],
            'auc': float(self.roc_auc),
            'optimal_fpr': float(self.optimal_fpr),
            'optimal_tpr': float(self.optimal_tpr),
            'threshold': float(self.threshold) if np.isfinite(self.threshold) else None,
            'method': self.method,
        }


def roc_operating_point(classes: Sequence[Any], scores: Sequence[float], positive: Any,
                        method: str = 'perfcurve') -> RocResult:
    """
    Compute the ROC curve and pick the optimal decision threshold.

    Samples with score >= threshold are called positive.

    Parameters:
    -----------
    classes : array-like
        True class of each sample
    scores : array-like
        Score of each sample for the positive class
    positive : label
        The class treated as positive
    method : str
        'perfcurve': slide a line of slope N/P from the top-left corner until
            it touches the curve (maximises TPR - (N/P) * FPR, equal costs)
        'youden': maximise TPR - FPR
        'closest': point closest to (FPR, TPR) = (0, 1)

    Returns:
    --------
    RocResult; ties resolve to the highest threshold reaching the optimum
    """
    if method not in OPERATING_POINT_METHODS:
        raise ValueError(f"Unknown operating point rule: {method}. "
                         f"Available rules: {', '.join(OPERATING_POINT_METHODS)}")

    y_true = (np.asarray(classes).ravel() == positive).astype(int)
    scores = np.asarray(scores, dtype=float).ravel()
    n_pos = int(y_true.sum())
    n_neg = len(y_true) - n_pos
    if n_pos == 0 or n_neg == 0:
        raise ValueError("ROC analysis needs both positive and negative samples")

    fpr, tpr, thresholds = roc_curve(y_true, scores, drop_intermediate=False)

    if method == 'perfcurve':
        slope = n_neg / n_pos
        best_idx = int(np.argmax(tpr - slope * fpr))
    elif method == 'youden':
        best_idx = int(np.argmax(tpr - fpr))
    else:
        best_idx = int(np.argmin(np.hypot(fpr, 1.0 - tpr)))

    return RocResult(
        fpr=fpr,
        tpr=tpr,
        thresholds=thresholds,
        roc_auc=float(auc(fpr, tpr)),
        optimal_fpr=float(fpr[best_idx]),
        optimal_tpr=float(tpr[best_idx]),
        threshold=float(thresholds[best_idx]),
        method=method,
    )


def apply_threshold(scores: Sequence[float], threshold: float, negative: Any, positive: Any) -> np.ndarray:
    """Label scores >= threshold as positive and the rest as negative."""
    scores = np.asarray(scores, dtype=float).ravel()
    return np.where(scores >= threshold, positive, negative)
