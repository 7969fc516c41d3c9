"""
Cross-validated classification of spectral and image data with a
parameter grid search, feature ranking and ROC operating-point selection.
"""

from .options import ClassifyOptions, load_options, resolve_options
from .grid import expand_grid
from .partition import make_partition
from .feature_selection import rank_features, FEATURE_SELECTION_METHODS
from .classifiers import create_backend, CLASSIFIERS
from .roc import roc_operating_point
from .driver import CrossValidatedClassifier, ClassificationResult, classifycv

__version__ = "0.1.0"

__all__ = [
    'ClassifyOptions',
    'load_options',
    'resolve_options',
    'expand_grid',
    'make_partition',
    'rank_features',
    'FEATURE_SELECTION_METHODS',
    'create_backend',
    'CLASSIFIERS',
    'roc_operating_point',
    'CrossValidatedClassifier',
    'ClassificationResult',
    'classifycv',
]
