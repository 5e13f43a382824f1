"""Tests for sample weighting and dataset filters"""
from os.path import dirname, abspath
import sys

import numpy as np
import pytest

parent = dirname(dirname(abspath(__file__)))
sys.path.append(parent)

from explainability.core.model import Feature, Output, PredictionInput, PredictionOutput, Type  # noqa: E402
from explainability.lime.config import LimeConfig  # noqa: E402
from explainability.lime.encoder import EncodedSample  # noqa: E402
from explainability.lime.filters import IndependentSparseFeatureBalanceFilter, ProximityFilter  # noqa: E402
from explainability.lime.inputs import LimeInputs  # noqa: E402
from explainability.lime.weighting import SampleWeighter, compute_sample_weights  # noqa: E402

from conftest import make_lime_inputs  # noqa: E402


def _samples(rows):
    return [EncodedSample(np.array(row, dtype=float), 1.0) for row in rows]


def test_interpretable_weights_favour_samples_equal_to_target():
    features = [Feature.number("a", 1.0), Feature.number("b", 2.0)]
    weights = SampleWeighter.get_sample_weights_interpretable(features, _samples([[1, 1], [1, 0], [0, 0]]), 0.5)

    assert weights[0] == 1.0
    assert 1.0 > weights[1] > weights[2] > 0


def test_original_weights_use_distance_to_target():
    target = [Feature.number("a", 10.0), Feature.categorical("c", "x")]
    perturbed = [
        [Feature.number("a", 10.0), Feature.categorical("c", "x")],
        [Feature.number("a", 12.0), Feature.categorical("c", "x")],
        [Feature.number("a", 10.0), Feature.categorical("c", "y")],
    ]

    weights = SampleWeighter.get_sample_weights_original(target, perturbed, 0.5)

    assert weights[0] == 1.0
    assert 1.0 > weights[1] > weights[2] > 0


@pytest.mark.parametrize("filter_interpretable", [True, False])
def test_compute_sample_weights_are_positive_and_bounded(filter_interpretable):
    features = [Feature.number("x", 10.0), Feature.boolean("flag", True)]
    output = Output("y", Type.NUMBER, 1.0)
    lime_inputs = make_lime_inputs(features, output, 30, lambda f: 1.0 if f[0].value > 5 else 0.0)
    training_set = _samples([[1, 1]] * 30)
    config = LimeConfig(filter_interpretable=filter_interpretable)

    weights = compute_sample_weights(config, lime_inputs, features, training_set)

    assert len(weights) == 30
    assert np.all(weights > 0) and np.all(weights <= 1)


def test_original_weights_measure_all_target_features_after_selection():
    features = [Feature.number(f"f{i}", float(i + 1)) for i in range(5)]
    selected = features[:2]
    output = Output("y", Type.NUMBER, 1.0)
    # only the features left out by the selection differ from the target
    inputs = [PredictionInput(features[:4] + [Feature.number("f4", 6.0 + i)]) for i in range(6)]
    outputs = [Output("y", Type.NUMBER, float(i % 2)) for i in range(6)]
    lime_inputs = LimeInputs(True, features, output, inputs, [(True,) * 4 + (False,)] * 6,
                             [PredictionOutput([o]) for o in outputs], outputs)
    training_set = _samples([[1, 1]] * 6)

    weights = compute_sample_weights(LimeConfig(), lime_inputs, selected, training_set, features)

    assert np.all(weights < 1.0)
    assert np.all(weights > 0)
    assert np.all(compute_sample_weights(LimeConfig(), lime_inputs, selected, training_set) == 1.0)


def test_sparse_balance_penalizes_balanced_columns():
    training_set = _samples([[1, 1, 0], [1, 0, 0], [1, 1, 0], [1, 0, 1]])
    feature_weights = np.ones(3)

    IndependentSparseFeatureBalanceFilter().apply(feature_weights, [None] * 3, training_set)

    assert feature_weights.tolist() == [1.0, 0.5, 0.75]


@pytest.mark.parametrize("minimum,expected", [
    (3, [0, 2, 3]),
    (0.5, [0, 3]),
    (0, [0, 3]),
    (10, [0, 1, 2, 3]),
])
def test_proximity_filter_keeps_a_minimum(minimum, expected):
    training_set = _samples([[0], [1], [2], [3]])
    weights = np.array([0.9, 0.1, 0.5, 0.95])

    filtered, filtered_weights = ProximityFilter(0.83, minimum).apply(training_set, weights)

    assert [int(sample.features[0]) for sample in filtered] == expected
    assert filtered_weights.tolist() == weights[expected].tolist()


def test_proximity_filter_readmits_first_on_ties():
    training_set = _samples([[0], [1], [2]])
    filtered, _ = ProximityFilter(0.83, 1).apply(training_set, np.array([0.2, 0.2, 0.2]))

    assert [int(sample.features[0]) for sample in filtered] == [0]


def test_proximity_filter_does_not_mutate_inputs():
    training_set = _samples([[0], [1]])
    weights = np.array([0.1, 0.9])

    ProximityFilter(0.83, 1).apply(training_set, weights)

    assert len(training_set) == 2
    assert weights.tolist() == [0.1, 0.9]
