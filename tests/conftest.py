"""Shared fixtures for the explainer tests"""
from os.path import dirname, abspath
import sys

import pytest

parent = dirname(dirname(abspath(__file__)))
sys.path.append(parent)

from explainability.core.model import (Feature, Output, PerturbationContext, Prediction,  # noqa: E402
                                       PredictionInput, PredictionOutput, Type)
from explainability.core.providers import PredictionProvider  # noqa: E402
from explainability.lime.inputs import LimeInputs  # noqa: E402
from explainability.lime.perturbation_methods import perturb_features_with_preservation_mask  # noqa: E402


class RecordingProvider(PredictionProvider):
    """Applies ``output_fn`` to the first feature of every input and records each batch."""

    def __init__(self, output_fn, name="y", output_type=Type.NUMBER):
        self.output_fn = output_fn
        self.name = name
        self.output_type = output_type
        self.batches = []

    async def predict_async(self, inputs):
        self.batches.append(list(inputs))
        return [PredictionOutput([Output(self.name, self.output_type, self.output_fn(i.features[0].value))])
                for i in inputs]


def make_prediction(features, output):
    return Prediction(PredictionInput(features), PredictionOutput([output]))


def make_lime_inputs(features, output, n_samples, label_fn, seed=0, no_of_perturbations=1):
    """Perturbs ``features`` and labels every sample with ``label_fn(perturbed_features)``."""
    context = PerturbationContext(seed=seed, no_of_perturbations=no_of_perturbations)
    inputs, masks, outputs = [], [], []
    for _ in range(n_samples):
        perturbed, mask = perturb_features_with_preservation_mask(features, context)
        inputs.append(PredictionInput(perturbed))
        masks.append(mask)
        outputs.append(Output(output.name, output.type, label_fn(perturbed)))
    full_outputs = [PredictionOutput([o]) for o in outputs]
    classification = len({o.value for o in outputs}) == 2
    return LimeInputs(classification, list(features), output, inputs, masks, full_outputs, outputs)


@pytest.fixture
def threshold_model():
    """``f(x) = 1 if x > 5 else 0`` on the first feature."""
    return RecordingProvider(lambda x: 1.0 if x > 5 else 0.0)


@pytest.fixture
def constant_model():
    return RecordingProvider(lambda x: 1.0)


@pytest.fixture
def numeric_features():
    return [Feature.number(f"f{i}", float(i + 1)) for i in range(10)]
