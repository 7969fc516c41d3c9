from typing import Any, Dict, Sequence, Tuple

import numpy as np
from sklearn.metrics import accuracy_score, confusion_matrix, recall_score


def class_accuracies(classes: Sequence[Any], pred: Sequence[Any], class_labels: Sequence[Any]) -> np.ndarray:
    """Percentage of each class's samples predicted correctly, in class_labels order."""
    return 100.0 * recall_score(np.asarray(classes).ravel(), np.asarray(pred).ravel(),
                                labels=list(class_labels), average=None, zero_division=0)


def mean_class_accuracy(classes, pred, class_labels) -> float:
    return float(np.mean(class_accuracies(classes, pred, class_labels)))


def overall_accuracy(classes, pred) -> float:
    return 100.0 * accuracy_score(np.asarray(classes).ravel(), np.asarray(pred).ravel())


def sensitivity_specificity(classes: Sequence[Any], pred: Sequence[Any],
                            negative: Any, positive: Any) -> Tuple[float, float]:
    """
    Sensitivity and specificity in percent for a binary problem.

    Args:
        classes: True class of each sample
        pred: Predicted class of each sample
        negative: Label of the negative (normal) class
        positive: Label of the positive (disease) class

    Returns:
        (sensitivity, specificity); NaN where a class has no samples
    """
    cm = confusion_matrix(np.asarray(classes).ravel(), np.asarray(pred).ravel(),
                          labels=[negative, positive])
    tn, fp, fn, tp = cm.ravel()
    sensitivity = 100.0 * tp / (tp + fn) if (tp + fn) > 0 else float('nan')
    specificity = 100.0 * tn / (tn + fp) if (tn + fp) > 0 else float('nan')
    return float(sensitivity), float(specificity)


def calculate_metrics(classes, pred, class_labels) -> Dict[str, Any]:
    """Accuracy summary for a set of out-of-fold predictions."""
    accs = class_accuracies(classes, pred, class_labels)
    return {
        'acc': overall_accuracy(classes, pred),
        'accmean': float(np.mean(accs)),
        'class_accuracies': dict(zip(list(class_labels), accs.tolist())),
    }
