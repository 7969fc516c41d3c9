import warnings
from typing import Any, Optional, Sequence, Tuple

import numpy as np
from imblearn.combine import SMOTETomek
from imblearn.over_sampling import SMOTE, RandomOverSampler
from imblearn.under_sampling import TomekLinks
from sklearn.discriminant_analysis import LinearDiscriminantAnalysis
from sklearn.dummy import DummyClassifier
from sklearn.ensemble import RandomForestClassifier
from sklearn.exceptions import ConvergenceWarning
from sklearn.neural_network import MLPClassifier
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import LabelEncoder, StandardScaler
from sklearn.svm import SVC
from xgboost import XGBClassifier


CLASSIFIERS = ('SVM', 'LDA', 'RF', 'BT', 'NN', 'CNN')
RESAMPLING_METHODS = ('oversample', 'undersample', 'smotetomek', 'random')

# Complexity used when the grid has no second dimension
DEFAULT_COMPLEXITY = {
    'SVM': 1.0,   # box constraint
    'RF': 100,    # trees
    'BT': 100,    # boosting rounds
    'NN': 10,     # hidden nodes
    'CNN': 16,    # filters in the first layer
}


def _complexity(name: str, params: Sequence[Any]):
    if len(params) > 1:
        return params[1]
    return DEFAULT_COMPLEXITY.get(name)


def create_model(name: str, params: Sequence[Any], random_state: Optional[int] = None,
                 cnn_epochs: int = 20):
    """Instantiate an unfitted estimator for a classifier name and parameter set."""
    complexity = _complexity(name, params)

    if name == 'SVM':
        return Pipeline([
            ('scaler', StandardScaler()),
            ('clf', SVC(kernel='linear', C=float(complexity))),
        ])
    elif name == 'LDA':
        return LinearDiscriminantAnalysis()
    elif name == 'RF':
        return RandomForestClassifier(n_estimators=int(complexity), random_state=random_state, n_jobs=-1)
    elif name == 'BT':
        return XGBClassifier(n_estimators=int(complexity), random_state=random_state, n_jobs=-1,
                             eval_metric='logloss', verbosity=0)
    elif name == 'NN':
        return Pipeline([
            ('scaler', StandardScaler()),
            ('clf', MLPClassifier(hidden_layer_sizes=(int(complexity),), max_iter=1000,
                                  random_state=random_state)),
        ])
    elif name == 'CNN':
        # torch is only needed for image data
        from .cnn import CNNClassifier
        return CNNClassifier(filters=int(complexity), epochs=cnn_epochs, random_state=random_state)
    else:
        raise ValueError(f"Unknown classifier: {name}. Available classifiers: {', '.join(CLASSIFIERS)}")


def resample_training_fold(X: np.ndarray, y: np.ndarray, method: str,
                           random_state: Optional[int] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Rebalance a training fold with imbalanced-learn.

    Image samples are flattened for resampling and restored afterwards.
    Folds with a single class, or a minority class too small for SMOTE,
    are returned unchanged.
    """
    _, counts = np.unique(y, return_counts=True)
    if len(counts) < 2:
        return X, y

    sample_shape = X.shape[1:]
    X_flat = X.reshape(len(X), -1)
    k_neighbors = min(5, int(counts.min()) - 1)

    if method == 'oversample':
        if k_neighbors < 1:
            return X, y
        sampler = SMOTE(k_neighbors=k_neighbors, random_state=random_state)
    elif method == 'undersample':
        sampler = TomekLinks()
    elif method == 'smotetomek':
        if k_neighbors < 1:
            return X, y
        sampler = SMOTETomek(smote=SMOTE(k_neighbors=k_neighbors, random_state=random_state),
                             random_state=random_state)
    elif method == 'random':
        sampler = RandomOverSampler(random_state=random_state)
    else:
        raise ValueError(f"Unknown resampling method: {method}. "
                         f"Available methods: {', '.join(RESAMPLING_METHODS)}")

    X_resampled, y_resampled = sampler.fit_resample(X_flat, y)
    return np.asarray(X_resampled).reshape((len(X_resampled),) + sample_shape), np.asarray(y_resampled)


class FoldClassifier:
    def __init__(self, name: str, params: Sequence[Any], class_labels: Sequence[Any],
                 random_state: Optional[int] = None, resampling: Optional[str] = None,
                 cnn_epochs: int = 20):
        """
        One classifier backend trained on a single cross-validation fold.

        Scores always have one column per class of the whole problem, in
        class_labels order, so folds whose training set lacks a class still
        line up. A training set holding a single class gives a constant model.

        Parameters:
        -----------
        name : str
            Backend name from CLASSIFIERS
        params : sequence
            Parameter set; params[1] is the complexity when present
        class_labels : sequence
            Sorted labels of every class in the problem
        """
        if name not in CLASSIFIERS:
            raise ValueError(f"Unknown classifier: {name}. Available classifiers: {', '.join(CLASSIFIERS)}")
        self.name = name
        self.params = list(params)
        self.class_labels = np.asarray(class_labels)
        # Global label encoder for consistency across folds
        self.label_encoder = LabelEncoder().fit(self.class_labels)
        self.random_state = random_state
        self.resampling = resampling
        self.cnn_epochs = cnn_epochs

    def _prepare(self, X) -> np.ndarray:
        X = np.asarray(X, dtype=float)
        if self.name == 'CNN':
            return X
        return X.reshape(len(X), -1)

    def fit(self, X, y) -> 'FoldClassifier':
        X = self._prepare(X)
        y = np.asarray(y).ravel()

        if self.resampling is not None:
            X, y = resample_training_fold(X, y, self.resampling, self.random_state)

        # Fold encoder maps the classes present in this training set to 0..k-1
        self.fold_encoder_ = LabelEncoder().fit(y)
        self.fold_labels_ = self.fold_encoder_.classes_
        self.columns_ = self.label_encoder.transform(self.fold_labels_)
        y_local = self.fold_encoder_.transform(y)

        if len(self.fold_labels_) < 2:
            self.constant_ = True
            self.model_ = DummyClassifier(strategy='most_frequent')
            self.model_.fit(X.reshape(len(X), -1), y_local)
            return self

        self.constant_ = False
        self.model_ = create_model(self.name, self.params, self.random_state, self.cnn_epochs)
        with warnings.catch_warnings():
            warnings.simplefilter('ignore', category=ConvergenceWarning)
            warnings.simplefilter('ignore', category=UserWarning)
            self.model_.fit(X, y_local)
        return self

    def _fold_scores(self, X: np.ndarray) -> np.ndarray:
        if self.constant_:
            return self.model_.predict_proba(X.reshape(len(X), -1))
        if self.name == 'SVM':
            decision = self.model_.decision_function(X)
            if decision.ndim == 1:
                return np.column_stack([-decision, decision])
            return decision
        return self.model_.predict_proba(X)

    def predict(self, X) -> Tuple[np.ndarray, np.ndarray]:
        """
        Predict held-out samples.

        Returns:
            pred: Class with the highest score for each sample
            scores: (n_samples, n_classes) scores in class_labels order
        """
        X = self._prepare(X)
        fold_scores = np.asarray(self._fold_scores(X), dtype=float)

        scores = np.zeros((len(X), len(self.class_labels)))
        scores[:, self.columns_] = fold_scores
        pred = self.label_encoder.inverse_transform(np.argmax(scores, axis=1))
        return pred, scores


def create_backend(name: str, params: Sequence[Any], class_labels: Sequence[Any],
                   random_state: Optional[int] = None, resampling: Optional[str] = None,
                   cnn_epochs: int = 20) -> FoldClassifier:
    """Create an unfitted fold classifier for the named backend."""
    return FoldClassifier(str(name).upper(), params, class_labels, random_state=random_state,
                          resampling=resampling, cnn_epochs=cnn_epochs)
