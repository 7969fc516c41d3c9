import numpy as np
import pytest

torch = pytest.importorskip("torch")

from classifycv.classifiers import create_backend
from classifycv.cnn import CNNClassifier


def test_predict_proba_rows_sum_to_one(image_data):
    images, classes = image_data
    model = CNNClassifier(filters=4, epochs=3, random_state=0).fit(images, classes)
    proba = model.predict_proba(images)
    assert proba.shape == (len(images), 2)
    np.testing.assert_allclose(proba.sum(axis=1), 1.0, rtol=1e-5)


def test_channels_last_images(image_data):
    images, classes = image_data
    rgb = np.repeat(images[..., np.newaxis], 3, axis=3)
    model = CNNClassifier(filters=4, epochs=2, random_state=0).fit(rgb, classes)
    assert model.predict(rgb).shape == (len(rgb),)


@pytest.mark.slow
def test_learns_bright_square(image_data):
    images, classes = image_data
    model = CNNClassifier(filters=8, epochs=60, random_state=0).fit(images, classes)
    assert np.mean(model.predict(images) == classes) >= 0.9


def test_flat_data_raises():
    with pytest.raises(ValueError):
        CNNClassifier().fit(np.zeros((4, 10)), np.array([0, 1, 0, 1]))


def test_cnn_backend_keeps_image_shape(image_data):
    images, classes = image_data
    backend = create_backend('CNN', [1, 4], [0, 1], random_state=0, cnn_epochs=2)
    pred, scores = backend.fit(images, classes).predict(images[:5])
    assert scores.shape == (5, 2)
    assert set(pred) <= {0, 1}
