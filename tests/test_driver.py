import warnings

import numpy as np
import pytest

from classifycv import ClassifyOptions, CrossValidatedClassifier, classifycv
from classifycv.metrics import sensitivity_specificity


def _run(X, y, **options):
    options.setdefault('hideprogress', True)
    options.setdefault('random_state', 0)
    return classifycv(X, y, **options)


class TestBinary:
    def test_grid_search_outputs(self, binary_data):
        X, y = binary_data
        result = _run(X, y, classifier='LDA', numfolds=5, params=[[2, 5, 10]])

        assert result.classifier == 'LDA'
        assert result.iparams.shape == (3, 1)
        assert len(result.paccs) == 3
        np.testing.assert_array_equal(result.params, result.iparams[np.argmax(result.paccs)])
        assert sorted(result.features.tolist()) == list(range(10))
        assert result.scores.shape == (80, 2)
        assert set(result.pred) <= {0, 1}
        assert result.acc > 80
        assert np.isfinite(result.sen) and np.isfinite(result.spe)

    def test_predictions_follow_roc_threshold(self, binary_data):
        X, y = binary_data
        result = _run(X, y, classifier='LDA', numfolds=5, params=[[3]])

        assert result.threshold is not None
        expected = np.where(result.scores[:, 1] >= result.threshold, 1, 0)
        np.testing.assert_array_equal(result.pred, expected)

    def test_reported_metrics_match_predictions(self, binary_data):
        X, y = binary_data
        result = _run(X, y, classifier='LDA', numfolds=4, params=[[4]])

        assert result.acc == pytest.approx(100 * np.mean(result.pred == y))
        per_class = [100 * np.mean(result.pred[y == c] == c) for c in (0, 1)]
        assert result.accmean == pytest.approx(np.mean(per_class))
        sen, spe = sensitivity_specificity(y, result.pred, 0, 1)
        assert (result.sen, result.spe) == (pytest.approx(sen), pytest.approx(spe))
        assert result.class_accuracies[1] == pytest.approx(result.sen)

    def test_string_labels_use_larger_label_as_positive(self, binary_data):
        X, y = binary_data
        labels = np.where(y == 1, 'tumour', 'normal')
        result = _run(X, labels, classifier='LDA', numfolds=4, params=[[3]])

        np.testing.assert_array_equal(result.class_labels, ['normal', 'tumour'])
        assert set(result.pred) <= {'normal', 'tumour'}
        positives = result.scores[:, 1] >= result.threshold
        assert np.all(result.pred[positives] == 'tumour')

    def test_complexity_grid(self, binary_data):
        X, y = binary_data
        result = _run(X, y, classifier='RF', numfolds=4, params=[[5, 10], [5, 10]])
        assert result.iparams.shape == (4, 2)
        assert result.acc > 75

    def test_default_svm_run(self, binary_data):
        X, y = binary_data
        result = _run(X, y)
        assert result.classifier == 'SVM'
        assert len(result.paccs) == 10
        assert len(np.unique(result.partition)) == 8


class TestMulticlass:
    def test_svm_falls_back_and_has_no_roc(self, multiclass_data):
        X, y = multiclass_data
        result = _run(X, y, classifier='SVM', numfolds=5, params=[[4, 8]])

        assert result.classifier == 'LDA'
        assert np.isnan(result.sen) and np.isnan(result.spe)
        assert result.roc is None and result.threshold is None
        assert result.scores.shape == (90, 3)
        assert result.accmean == pytest.approx(result.paccs.max())

    def test_boosted_trees(self, multiclass_data):
        X, y = multiclass_data
        result = _run(X, y, classifier='BT', numfolds=3, params=[[8], [10]])
        assert result.classifier == 'BT'
        assert result.acc > 70


class TestPartitions:
    def test_leave_one_out(self, binary_data):
        X, y = binary_data
        X, y = X[:40], y[:40]
        result = _run(X, y, classifier='LDA', numfolds=40, params=[[3]])
        np.testing.assert_array_equal(result.partition, np.arange(1, 41))

    def test_custom_partition_is_used(self, binary_data):
        X, y = binary_data
        partition = np.tile([1, 2, 3, 4], 20)
        result = _run(X, y, classifier='LDA', partition=partition, params=[[3]])
        np.testing.assert_array_equal(result.partition, partition)

    def test_stratified_partition(self, binary_data):
        X, y = binary_data
        result = _run(X, y, classifier='LDA', numfolds=4, stratified=True, params=[[3]])
        for fold in np.unique(result.partition):
            assert set(y[result.partition == fold]) == {0, 1}


class TestFeatures:
    def test_custom_ranking_skips_feature_selection(self, binary_data):
        X, y = binary_data
        result = _run(X, y, classifier='LDA', numfolds=4, features=[3, 1, 7], params=[[1, 3]])
        np.testing.assert_array_equal(result.features, [3, 1, 7])

    def test_selecting_more_features_than_ranked_raises(self, binary_data):
        X, y = binary_data
        with pytest.raises(ValueError):
            _run(X, y, classifier='LDA', features=[0, 1], params=[[3]])

    def test_out_of_range_ranking_raises(self, binary_data):
        X, y = binary_data
        with pytest.raises(ValueError):
            _run(X, y, classifier='LDA', features=[0, 10], params=[[1]])

    def test_selected_columns_keep_original_order(self, binary_data):
        X, y = binary_data
        cv = CrossValidatedClassifier(X, y, classifier='LDA')
        selected = cv.select_features(np.array([7, 2, 5]), 2)
        np.testing.assert_array_equal(selected, X[:, [2, 7]])

    def test_ftest_ranking(self, binary_data):
        X, y = binary_data
        result = _run(X, y, classifier='LDA', numfolds=4, featureselection='FTEST', params=[[3]])
        assert sorted(result.features.tolist()) == list(range(10))


class TestImages:
    def test_cnn_run(self, image_data):
        pytest.importorskip("torch")
        images, classes = image_data
        result = _run(images, classes, classifier='RF', numfolds=4, cnn_epochs=2)

        assert result.classifier == 'CNN'
        assert result.features is None
        np.testing.assert_array_equal(result.iparams, [[1]])
        assert result.scores.shape == (40, 2)

    def test_lda_on_images(self, image_data):
        images, classes = image_data
        result = _run(images, classes, classifier='LDA', numfolds=4)
        assert result.classifier == 'LDA'
        assert result.acc > 80

    def test_custom_features_do_not_crop_images(self, image_data):
        images, classes = image_data
        baseline = _run(images, classes, classifier='LDA', numfolds=4, params=[[1]])
        result = _run(images, classes, classifier='LDA', numfolds=4, features=[0, 1], params=[[1]])

        assert result.acc > 80
        np.testing.assert_array_equal(result.pred, baseline.pred)

        cv = CrossValidatedClassifier(images, classes, classifier='LDA', features=[0, 1])
        assert cv.select_features(cv.determine_features(), 1).shape == images.shape


class TestInputs:
    def test_small_data_warns(self, binary_data):
        X, y = binary_data
        with pytest.warns(UserWarning, match='Not enough data'):
            _run(X[:30], y[:30], classifier='LDA', numfolds=3, params=[[3]])

    def test_no_warning_with_enough_data(self, binary_data):
        X, y = binary_data
        with warnings.catch_warnings():
            warnings.simplefilter('error', UserWarning)
            CrossValidatedClassifier(X, y, classifier='LDA')

    def test_length_mismatch_raises(self, binary_data):
        X, y = binary_data
        with pytest.raises(ValueError):
            CrossValidatedClassifier(X, y[:-1])

    def test_single_class_raises(self, binary_data):
        X, _ = binary_data
        with pytest.raises(ValueError):
            CrossValidatedClassifier(X, np.zeros(len(X)))

    def test_row_vector_classes_are_flattened(self, binary_data):
        X, y = binary_data
        cv = CrossValidatedClassifier(X, y.reshape(1, -1), classifier='LDA')
        assert cv.classes.shape == (80,)

    def test_options_object_dict_and_overrides(self, binary_data):
        X, y = binary_data
        cv = CrossValidatedClassifier(X, y, ClassifyOptions(classifier='RF'), numfolds=4)
        assert (cv.options.classifier, cv.options.numfolds) == ('RF', 4)
        cv = CrossValidatedClassifier(X, y, {'classifier': 'lda'})
        assert cv.options.classifier == 'LDA'

    def test_unknown_override_raises(self, binary_data):
        X, y = binary_data
        with pytest.raises(ValueError):
            CrossValidatedClassifier(X, y, folds=4)

    def test_verbose_prints_progress(self, binary_data, capsys):
        X, y = binary_data
        _run(X, y, classifier='LDA', numfolds=4, params=[[2, 3]], verbose=True)
        out = capsys.readouterr().out
        assert 'Parameter set 2/2' in out
        assert 'Sensitivity' in out


class TestParameterSelection:
    def test_ties_pick_the_first_parameter_set(self, binary_data):
        X, y = binary_data
        # LDA ignores the complexity dimension, so every set scores the same
        result = _run(X, y, classifier='LDA', numfolds=4, params=[[10], [1, 2, 3]])

        assert len(np.unique(result.paccs)) == 1
        np.testing.assert_array_equal(result.params, result.iparams[0])
        assert result.summary()['best_parameter_index'] == 0

    def test_single_parameter_set_hides_progress(self, binary_data, capsys):
        X, y = binary_data
        _run(X, y, classifier='LDA', numfolds=4, params=[[3]], hideprogress=False)
        assert 'Parameter Search' not in capsys.readouterr().err

    def test_progress_shown_for_several_parameter_sets(self, binary_data, capsys):
        X, y = binary_data
        _run(X, y, classifier='LDA', numfolds=4, params=[[2, 3]], hideprogress=False)
        assert 'Parameter Search' in capsys.readouterr().err
