"""
Pytest configuration and shared fixtures for classifycv tests.
"""

import matplotlib
matplotlib.use("Agg")

import numpy as np
import pytest
from sklearn.datasets import make_classification


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


def pytest_addoption(parser):
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Run slow tests"
    )


def pytest_collection_modifyitems(config, items):
    """Skip slow tests by default unless --run-slow is passed."""
    if config.getoption("--run-slow"):
        return

    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture
def binary_data():
    """80 well separated samples, 10 features of which 3 informative."""
    X, y = make_classification(n_samples=80, n_features=10, n_informative=3, n_redundant=0,
                               n_classes=2, class_sep=2.5, flip_y=0.0, random_state=0)
    return X, y


@pytest.fixture
def multiclass_data():
    X, y = make_classification(n_samples=90, n_features=8, n_informative=4, n_redundant=0,
                               n_classes=3, n_clusters_per_class=1, class_sep=2.5,
                               flip_y=0.0, random_state=1)
    return X, y


@pytest.fixture
def image_data():
    """40 single channel 8x8 images; class 1 has a bright centre square."""
    rng = np.random.RandomState(0)
    images = rng.normal(0.0, 0.1, size=(40, 8, 8))
    classes = np.repeat([0, 1], 20)
    images[classes == 1, 2:6, 2:6] += 2.0
    return images, classes
