"""Tests for the dataset encoder"""
from os.path import dirname, abspath
import sys

import math

import pytest

parent = dirname(dirname(abspath(__file__)))
sys.path.append(parent)

from explainability.core.model import Feature, Output, PredictionInput, Type  # noqa: E402
from explainability.lime.config import EncodingParams  # noqa: E402
from explainability.lime.encoder import DatasetEncoder, output_to_label  # noqa: E402


@pytest.mark.parametrize("output,target,expected", [
    (Output("y", Type.NUMBER, 0.25), 1.0, 0.25),
    (Output("y", Type.CATEGORICAL, "cat"), "cat", 1.0),
    (Output("y", Type.CATEGORICAL, "dog"), "cat", 0.0),
    (Output("y", Type.BOOLEAN, True), True, 1.0),
    (Output("y", Type.CATEGORICAL, None), None, 1.0),
    (Output("y", Type.CATEGORICAL, None), "cat", 0.0),
])
def test_output_to_label(output, target, expected):
    assert output_to_label(output, target) == expected


def test_missing_number_output_is_nan():
    assert math.isnan(output_to_label(Output("y", Type.NUMBER, None), 1.0))


def test_numbers_cluster_around_the_target():
    target = Feature.number("x", 10.0)
    inputs = [PredictionInput([Feature.number("x", v)]) for v in [10.0, 10.5, 50.0, 0.0]]
    outputs = [Output("y", Type.NUMBER, v) for v in [1.0, 1.0, 1.0, 0.0]]
    encoder = DatasetEncoder(inputs, outputs, [target], Output("y", Type.NUMBER, 1.0), EncodingParams())

    training_set = encoder.get_encoded_training_set()

    assert [sample.features.tolist() for sample in training_set] == [[1.0], [1.0], [0.0], [0.0]]
    assert [sample.label for sample in training_set] == [1.0, 1.0, 1.0, 0.0]


def test_other_types_encode_equality():
    targets = [Feature.boolean("b", True), Feature.categorical("c", "red")]
    inputs = [PredictionInput([Feature.boolean("b", True), Feature.categorical("c", "blue")]),
              PredictionInput([Feature.boolean("b", False), Feature.categorical("c", "red")])]
    outputs = [Output("y", Type.CATEGORICAL, "no"), Output("y", Type.CATEGORICAL, "yes")]
    encoder = DatasetEncoder(inputs, outputs, targets, Output("y", Type.CATEGORICAL, "yes"), EncodingParams())

    training_set = encoder.get_encoded_training_set()

    assert [sample.features.tolist() for sample in training_set] == [[1.0, 0.0], [0.0, 1.0]]
    assert [sample.label for sample in training_set] == [0.0, 1.0]


def test_encodes_selected_features_of_nested_inputs():
    target = Feature.number("v_1", 2.0)
    inputs = [PredictionInput([Feature.vector("v", [1.0, 2.0])]),
              PredictionInput([Feature.vector("v", [1.0, 90.0])])]
    outputs = [Output("y", Type.NUMBER, 1.0), Output("y", Type.NUMBER, 0.0)]
    encoder = DatasetEncoder(inputs, outputs, [target], Output("y", Type.NUMBER, 1.0), EncodingParams())

    training_set = encoder.get_encoded_training_set()

    assert all(len(sample.features) == 1 for sample in training_set)
    assert [sample.features[0] for sample in training_set] == [1.0, 0.0]


def test_mismatched_lengths_are_rejected():
    with pytest.raises(AssertionError):
        DatasetEncoder([PredictionInput([Feature.number("x", 1.0)])], [], [Feature.number("x", 1.0)],
                       Output("y", Type.NUMBER, 1.0), EncodingParams())


def test_empty_dataset_encodes_to_nothing():
    encoder = DatasetEncoder([], [], [Feature.number("x", 1.0)], Output("y", Type.NUMBER, 1.0), EncodingParams())
    assert encoder.get_encoded_training_set() == []
