import warnings
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import numpy as np
from tqdm import tqdm

from .classifiers import create_backend
from .feature_selection import rank_features
from .grid import expand_grid
from .metrics import calculate_metrics, sensitivity_specificity
from .options import ClassifyOptions, make_options, resolve_options
from .partition import check_partition, make_partition
from .results import ClassificationResult
from .roc import apply_threshold, roc_operating_point


MIN_SAMPLES = 40


class CrossValidatedClassifier:
    def __init__(self, data, classes, options: Union[ClassifyOptions, Dict[str, Any], None] = None,
                 **overrides):
        """
        Cross-validated classification with a parameter grid search.

        Every parameter set of the grid is evaluated with the same fold
        partition; the set with the highest mean class accuracy is kept.
        Binary problems are then re-thresholded at the optimal ROC point.

        Parameters:
        -----------
        data : array-like
            One sample per row: (n_samples, n_features) spectra or
            (n_samples, H, W[, C]) images
        classes : array-like
            True class of each sample
        options : ClassifyOptions or dict, optional
            Run settings; keyword overrides are applied on top
        """
        self.data = np.asarray(data)
        self.classes = np.asarray(classes).ravel()
        self.n_samples = len(self.classes)

        if self.data.ndim < 2:
            raise ValueError(f"data must have one sample per row, got shape {self.data.shape}")
        if len(self.data) != self.n_samples:
            raise ValueError(f"data has {len(self.data)} samples but classes has {self.n_samples}")
        if self.n_samples < MIN_SAMPLES:
            warnings.warn(f"Not enough data for classification ({self.n_samples} samples, "
                          f"at least {MIN_SAMPLES} recommended)", UserWarning, stacklevel=2)

        self.class_labels = np.unique(self.classes)
        self.n_classes = len(self.class_labels)
        if self.n_classes < 2:
            raise ValueError("Classification needs at least two classes")

        if options is None:
            options = ClassifyOptions()
        elif isinstance(options, dict):
            options = make_options(options)
        if overrides:
            options = make_options({**options.to_dict(), **overrides})

        self.is_image = self.data.ndim != 2
        self.options = resolve_options(self.data.shape, self.n_classes, options)

        if self.options.verbose:
            print(f"Classifier: {self.options.classifier}")
            print(f"Samples: {self.n_samples}, classes: {dict(zip(*np.unique(self.classes, return_counts=True)))}")

    def determine_partition(self) -> np.ndarray:
        """Custom partition if given, else leave-one-out or random k-fold."""
        if self.options.partition is not None:
            return check_partition(self.options.partition, self.n_samples)
        return make_partition(self.classes, self.options.numfolds,
                              stratified=self.options.stratified,
                              random_state=self.options.random_state)

    def determine_features(self) -> Optional[np.ndarray]:
        """Custom feature ranking if given, else ranked on the whole data set."""
        if self.options.features is not None:
            features = np.asarray(self.options.features, dtype=int).ravel()
            n_features = self.data.shape[1]
            # images are always used whole, so the ranking is kept but not checked
            if not self.is_image and (features.min() < 0 or features.max() >= n_features):
                raise ValueError(f"features must be indices in [0, {n_features})")
            return features
        if self.is_image:
            return None
        if self.options.verbose:
            print(f"Ranking features with {self.options.featureselection}...")
        return rank_features(self.options.featureselection, self.data, self.classes,
                             random_state=self.options.random_state)

    def select_features(self, features: Optional[np.ndarray], n_features) -> np.ndarray:
        """Columns of the top n ranked features, kept in their original order."""
        if features is None or self.is_image:
            return self.data
        n_features = int(n_features)
        if n_features < 1 or n_features > len(features):
            raise ValueError(f"Cannot select {n_features} features from a ranking of {len(features)}")
        return self.data[:, np.sort(features[:n_features])]

    def cross_validate(self, fdata: np.ndarray, param_set: Sequence[Any],
                       partition: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Out-of-fold predictions for one parameter set.

        Returns:
            pred: Predicted class of every sample
            scores: (n_samples, n_classes) held-out scores in sample order
        """
        pred = np.empty(self.n_samples, dtype=self.class_labels.dtype)
        scores = np.zeros((self.n_samples, self.n_classes))

        for fold in np.unique(partition):
            test = partition == fold
            backend = create_backend(self.options.classifier, param_set, self.class_labels,
                                     random_state=self.options.random_state,
                                     resampling=self.options.resampling,
                                     cnn_epochs=self.options.cnn_epochs)
            backend.fit(fdata[~test], self.classes[~test])
            pred[test], scores[test] = backend.predict(fdata[test])

        return pred, scores

    def run(self) -> ClassificationResult:
        """Run the parameter search and return the best cross-validated result."""
        partition = self.determine_partition()
        features = self.determine_features()
        iparams = expand_grid(self.options.params)
        n_sets = len(iparams)

        hideprogress = self.options.hideprogress or n_sets == 1
        if self.options.verbose:
            print(f"Folds: {len(np.unique(partition))}, parameter sets: {n_sets}")

        paccs = np.zeros(n_sets)
        preds, scores = [], []
        progress = tqdm(range(n_sets), desc='Parameter Search', disable=hideprogress)
        for p in progress:
            param_set = iparams[p]
            fdata = self.select_features(features, param_set[0])
            pred_p, scores_p = self.cross_validate(fdata, param_set, partition)
            preds.append(pred_p)
            scores.append(scores_p)
            paccs[p] = calculate_metrics(self.classes, pred_p, self.class_labels)['accmean']
            progress.set_postfix(best=f"{paccs[:p + 1].max():.1f}%")

            if self.options.verbose:
                print(f"Parameter set {p + 1}/{n_sets} {list(param_set)}: "
                      f"mean class accuracy {paccs[p]:.2f}%")

        best = int(np.argmax(paccs))
        pred = preds[best]
        best_scores = scores[best]
        metrics = calculate_metrics(self.classes, pred, self.class_labels)

        sen = spe = float('nan')
        threshold = None
        roc = None
        if self.n_classes == 2:
            negative, positive = self.class_labels
            roc = roc_operating_point(self.classes, best_scores[:, 1], positive,
                                      method=self.options.operating_point)
            threshold = roc.threshold
            pred = apply_threshold(best_scores[:, 1], threshold, negative, positive).astype(self.class_labels.dtype)
            metrics = calculate_metrics(self.classes, pred, self.class_labels)
            sen, spe = sensitivity_specificity(self.classes, pred, negative, positive)

        if self.options.verbose:
            print(f"Best parameters: {list(iparams[best])}")
            print(f"Accuracy: {metrics['acc']:.2f}%, mean class accuracy: {metrics['accmean']:.2f}%")
            if roc is not None:
                print(f"Sensitivity: {sen:.2f}%, specificity: {spe:.2f}%, AUC: {roc.roc_auc:.4f}")

        return ClassificationResult(
            acc=metrics['acc'],
            accmean=metrics['accmean'],
            sen=sen,
            spe=spe,
            pred=pred,
            scores=best_scores,
            data=self.data,
            classes=self.classes,
            classifier=self.options.classifier,
            params=iparams[best],
            iparams=iparams,
            paccs=paccs,
            features=features,
            partition=partition,
            class_labels=self.class_labels,
            class_accuracies=metrics['class_accuracies'],
            threshold=threshold,
            roc=roc,
            options=self.options,
        )


def classifycv(data, classes, options: Union[ClassifyOptions, Dict[str, Any], None] = None,
               **overrides) -> ClassificationResult:
    """
    Cross-validated classification.

    Example:
        result = classifycv(spectra, labels, classifier='RF', params=[[50, 100], [20, 50]])
        print(result.acc, result.sen, result.spe, result.params)
    """
    return CrossValidatedClassifier(data, classes, options, **overrides).run()
