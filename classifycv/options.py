import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import yaml

from .classifiers import CLASSIFIERS, RESAMPLING_METHODS
from .feature_selection import FEATURE_SELECTION_METHODS
from .roc import OPERATING_POINT_METHODS


# Classifiers whose second grid dimension is a complexity sweep by default
COMPLEXITY_CLASSIFIERS = ('BT', 'RF', 'NN')
# Classifiers that only handle flat feature vectors and switch to CNN on images
VECTOR_ONLY_CLASSIFIERS = ('SVM', 'BT', 'RF', 'NN')


@dataclass
class ClassifyOptions:
    """
    Settings for a cross-validated classification run.

    Parameters:
    -----------
    classifier : str
        Backend to use: 'SVM', 'LDA', 'RF', 'BT', 'NN' or 'CNN'
    numfolds : int
        Number of cross-validation folds. Equal to the number of samples
        means leave-one-out.
    partition : sequence, optional
        Custom fold label for every sample
    featureselection : str
        Feature ranking method ('MRMR', 'FTEST' or 'MI')
    features : sequence of int, optional
        Custom feature ranking, most important first (0-based)
    params : list, optional
        One list of values per grid dimension. The first dimension is always
        the number of features, the second usually the model complexity,
        e.g. [[50, 100, 200], [20]].
    hideprogress : bool
        Hide the parameter search progress bar
    operating_point : str
        Rule for the optimal ROC point of binary problems
    stratified : bool
        Stratify generated k-fold partitions by class
    resampling : str, optional
        Rebalance each training fold ('oversample', 'undersample',
        'smotetomek' or 'random')
    random_state : int, optional
        Seed for partitions, feature ranking and models
    cnn_epochs : int
        Training epochs for the CNN backend
    verbose : bool
        Print run status
    """
    classifier: str = 'SVM'
    numfolds: int = 8
    partition: Optional[Sequence[Any]] = None
    featureselection: str = 'MRMR'
    features: Optional[Sequence[int]] = None
    params: Optional[List[Any]] = None
    hideprogress: bool = False
    operating_point: str = 'perfcurve'
    stratified: bool = False
    resampling: Optional[str] = None
    random_state: Optional[int] = None
    cnn_epochs: int = 20
    verbose: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


def load_options(path: Union[str, Path], **overrides) -> ClassifyOptions:
    """
    Load options from a YAML file.

    Keyword overrides take precedence over values from the file; overrides
    that are None are ignored.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Options file not found: {path}")

    with open(path, 'r') as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Options file {path} must contain a mapping, got {type(raw).__name__}")

    raw.update({k: v for k, v in overrides.items() if v is not None})
    return make_options(raw)


def make_options(values: Optional[Dict[str, Any]] = None) -> ClassifyOptions:
    """Build ClassifyOptions from a plain dict, rejecting unknown keys."""
    values = dict(values or {})
    known = {f.name for f in dataclasses.fields(ClassifyOptions)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ValueError(f"Unknown option(s): {', '.join(unknown)}. "
                         f"Available options: {', '.join(sorted(known))}")
    return ClassifyOptions(**values)


def default_params(classifier: str, data_shape: Tuple[int, ...]) -> List[List[Any]]:
    """Default search grid for a classifier and data shape."""
    n_features = data_shape[1]
    if n_features > 31:
        increment = n_features // 19
        prange = [1, 2, 4, 8, 16, 32]
    else:
        increment = 1
        prange = list(range(1, n_features + 1))

    if classifier in COMPLEXITY_CLASSIFIERS:
        return [[n_features], prange]
    if len(data_shape) == 2:
        return [list(range(1, n_features + 1, increment))]
    return [[1]]


def _as_value_lists(params: Sequence[Any]) -> List[List[Any]]:
    value_lists = []
    for values in params:
        if np.isscalar(values):
            value_lists.append([values])
        else:
            values = list(np.asarray(values).ravel())
            if not values:
                raise ValueError("Parameter dimensions must not be empty")
            value_lists.append(values)
    if not value_lists:
        raise ValueError("params must contain at least the number of features")
    return value_lists


def resolve_options(data_shape: Tuple[int, ...], n_classes: int,
                    options: Optional[ClassifyOptions] = None) -> ClassifyOptions:
    """
    Validate options against the data and fill in defaults.

    Applies the classifier fallback rules (SVM is binary only, CNN needs
    images, vector classifiers switch to CNN for images) and builds the
    default parameter grid when none was given.

    Returns:
        A new ClassifyOptions; the input is left untouched.
    """
    options = options if options is not None else ClassifyOptions()
    is_image = len(data_shape) != 2

    classifier = str(options.classifier).upper()
    if classifier not in CLASSIFIERS:
        raise ValueError(f"Unknown classifier: {options.classifier}. "
                         f"Available classifiers: {', '.join(CLASSIFIERS)}")

    featureselection = str(options.featureselection).upper()
    if options.features is None and not is_image and featureselection not in FEATURE_SELECTION_METHODS:
        raise ValueError(f"Unknown feature selection method: {options.featureselection}. "
                         f"Available methods: {', '.join(FEATURE_SELECTION_METHODS)}")

    if options.operating_point not in OPERATING_POINT_METHODS:
        raise ValueError(f"Unknown operating point rule: {options.operating_point}. "
                         f"Available rules: {', '.join(OPERATING_POINT_METHODS)}")

    if options.resampling is not None and options.resampling not in RESAMPLING_METHODS:
        raise ValueError(f"Unknown resampling method: {options.resampling}. "
                         f"Available methods: {', '.join(RESAMPLING_METHODS)}")

    if classifier == 'SVM' and n_classes > 2:
        print("SVM does not support multiclass problems, using LDA instead.")
        classifier = 'LDA'
    if not is_image and classifier == 'CNN':
        print("CNN only supports image classification, using LDA instead.")
        classifier = 'LDA'
    if is_image and classifier in VECTOR_ONLY_CLASSIFIERS:
        print("Using CNN for image classification.")
        classifier = 'CNN'

    if options.params is None:
        params = default_params(classifier, data_shape)
    else:
        params = _as_value_lists(options.params)

    return dataclasses.replace(options, classifier=classifier,
                               featureselection=featureselection, params=params)
