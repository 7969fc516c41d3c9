import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from sklearn.metrics import confusion_matrix

from .options import ClassifyOptions
from .roc import RocResult


PARAM_NAMES = ['n_features', 'complexity']


def _builtin(value: Any) -> Any:
    """Convert numpy scalars to plain Python values for JSON."""
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, float) and np.isnan(value):
        return None
    return value


def param_column_names(n_dims: int) -> List[str]:
    return [PARAM_NAMES[i] if i < len(PARAM_NAMES) else f'param_{i + 1}' for i in range(n_dims)]


@dataclass
class ClassificationResult:
    """
    Outcome of a cross-validated classification run.

    Accuracies, sensitivity and specificity are percentages. For binary
    problems the predictions have been re-thresholded at the optimal ROC
    operating point; sen and spe are NaN for multiclass problems.
    """
    acc: float
    accmean: float
    sen: float
    spe: float
    pred: np.ndarray
    scores: np.ndarray
    data: np.ndarray
    classes: np.ndarray
    classifier: str
    params: np.ndarray
    iparams: np.ndarray
    paccs: np.ndarray
    features: Optional[np.ndarray]
    partition: np.ndarray
    class_labels: np.ndarray
    class_accuracies: Dict[Any, float] = field(default_factory=dict)
    threshold: Optional[float] = None
    roc: Optional[RocResult] = None
    options: Optional[ClassifyOptions] = None

    @property
    def best_index(self) -> int:
        return int(np.argmax(self.paccs))

    @property
    def is_binary(self) -> bool:
        return len(self.class_labels) == 2

    def summary(self) -> Dict[str, Any]:
        """JSON-safe overview of the run."""
        summary = {
            'classifier': self.classifier,
            'n_samples': int(len(self.classes)),
            'n_classes': int(len(self.class_labels)),
            'n_folds': int(len(np.unique(self.partition))),
            'acc': _builtin(float(self.acc)),
            'accmean': _builtin(float(self.accmean)),
            'sen': _builtin(float(self.sen)),
            'spe': _builtin(float(self.spe)),
            'params': [_builtin(v) for v in self.params],
            'n_parameter_sets': int(len(self.paccs)),
            'best_parameter_index': self.best_index,
            'class_accuracies': {str(_builtin(k)): float(v) for k, v in self.class_accuracies.items()},
        }
        if self.roc is not None:
            summary['threshold'] = _builtin(self.threshold) if np.isfinite(self.threshold) else None
            summary['auc'] = float(self.roc.roc_auc)
            summary['operating_point'] = self.roc.method
        return summary

    def param_search_frame(self) -> pd.DataFrame:
        """Mean class accuracy of every parameter set of the grid search."""
        df = pd.DataFrame(self.iparams, columns=param_column_names(self.iparams.shape[1]))
        df['mean_class_accuracy'] = self.paccs
        df['best'] = False
        df.loc[self.best_index, 'best'] = True
        return df

    def predictions_frame(self) -> pd.DataFrame:
        """Out-of-fold prediction and scores for every sample."""
        df = pd.DataFrame({
            'fold': self.partition,
            'true': self.classes,
            'pred': self.pred,
        })
        for col, label in enumerate(self.class_labels):
            df[f'score_{label}'] = self.scores[:, col]
        return df

    def confusion_matrix(self) -> pd.DataFrame:
        cm = confusion_matrix(self.classes, self.pred, labels=list(self.class_labels))
        labels = [str(label) for label in self.class_labels]
        return pd.DataFrame(cm, index=pd.Index(labels, name='true'), columns=pd.Index(labels, name='pred'))

    def plot_roc(self, save_path: str = None, figsize: Tuple[int, int] = (6, 6)):
        """Plot the ROC curve with the chosen operating point."""
        if self.roc is None:
            print("No ROC curve available: ROC analysis is only run for binary problems")
            return None

        fig, ax = plt.subplots(figsize=figsize)
        ax.plot(self.roc.fpr, self.roc.tpr, linewidth=2, label=f'ROC (AUC={self.roc.roc_auc:.3f})')
        ax.plot(self.roc.optimal_fpr, self.roc.optimal_tpr, 'ro', markersize=8,
                label=f'Operating point ({self.roc.method})')
        ax.plot([0, 1], [0, 1], 'k--', alpha=0.5)
        ax.set_xlim([0, 1])
        ax.set_ylim([0, 1.02])
        ax.set_xlabel('False Positive Rate')
        ax.set_ylabel('True Positive Rate')
        ax.set_title(f'{self.classifier}: ROC (positive class {self.class_labels[1]})')
        ax.legend(loc='lower right')
        ax.grid(True, alpha=0.3)
        plt.tight_layout()

        if save_path:
            plt.savefig(save_path, dpi=300, bbox_inches='tight')
            print(f"ROC curve saved to: {save_path}")
        else:
            plt.show()
        return fig

    def plot_param_search(self, save_path: str = None, figsize: Tuple[int, int] = (8, 5)):
        """Plot mean class accuracy across the parameter grid."""
        df = self.param_search_frame()
        varying = [c for c in df.columns[:self.iparams.shape[1]] if df[c].nunique() > 1]

        fig, ax = plt.subplots(figsize=figsize)
        if len(varying) == 2:
            table = df.pivot_table(index=varying[0], columns=varying[1], values='mean_class_accuracy')
            sns.heatmap(table, annot=True, fmt='.1f', cmap='RdYlBu_r', ax=ax,
                        cbar_kws={'label': 'Mean class accuracy (%)'})
        elif len(varying) == 1:
            ax.plot(df[varying[0]], df['mean_class_accuracy'], 'o-', linewidth=2)
            ax.set_xlabel(varying[0])
            ax.set_ylabel('Mean class accuracy (%)')
            ax.grid(True, alpha=0.3)
        else:
            ax.plot(np.arange(1, len(df) + 1), df['mean_class_accuracy'], 'o-', linewidth=2)
            ax.set_xlabel('Parameter set')
            ax.set_ylabel('Mean class accuracy (%)')
            ax.grid(True, alpha=0.3)
        ax.set_title(f'{self.classifier}: Parameter Search')
        plt.tight_layout()

        if save_path:
            plt.savefig(save_path, dpi=300, bbox_inches='tight')
            print(f"Parameter search plot saved to: {save_path}")
        else:
            plt.show()
        return fig

    def plot_confusion_matrix(self, save_path: str = None, figsize: Tuple[int, int] = (6, 5)):
        cm = self.confusion_matrix()
        cm_normalized = cm.astype('float').div(cm.sum(axis=1), axis=0)

        fig, ax = plt.subplots(figsize=figsize)
        sns.heatmap(cm_normalized, annot=True, fmt='.2f', cmap='Blues', ax=ax)
        ax.set_xlabel('Predicted')
        ax.set_ylabel('True')
        ax.set_title(f'{self.classifier}: Confusion Matrix')
        plt.tight_layout()

        if save_path:
            plt.savefig(save_path, dpi=300, bbox_inches='tight')
            print(f"Confusion matrix saved to: {save_path}")
        else:
            plt.show()
        return fig

    def save(self, out_dir: str, plots: bool = True) -> Dict[str, str]:
        """
        Write the run artefacts to a directory.

        Returns:
            Mapping of artefact name to file path
        """
        os.makedirs(out_dir, exist_ok=True)
        paths = {
            'summary': os.path.join(out_dir, 'summary.json'),
            'param_search': os.path.join(out_dir, 'param_search.csv'),
            'predictions': os.path.join(out_dir, 'predictions.csv'),
            'confusion_matrix': os.path.join(out_dir, 'confusion_matrix.csv'),
        }

        with open(paths['summary'], 'w') as f:
            json.dump(self.summary(), f, indent=2)
        self.param_search_frame().to_csv(paths['param_search'], index=False)
        self.predictions_frame().to_csv(paths['predictions'], index=False)
        self.confusion_matrix().to_csv(paths['confusion_matrix'])

        if plots:
            paths['param_search_plot'] = os.path.join(out_dir, 'param_search.png')
            plt.close(self.plot_param_search(save_path=paths['param_search_plot']))
            paths['confusion_matrix_plot'] = os.path.join(out_dir, 'confusion_matrix.png')
            plt.close(self.plot_confusion_matrix(save_path=paths['confusion_matrix_plot']))
            if self.roc is not None:
                paths['roc_plot'] = os.path.join(out_dir, 'roc.png')
                plt.close(self.plot_roc(save_path=paths['roc_plot']))

        print(f"Results saved in: {out_dir}")
        return paths
