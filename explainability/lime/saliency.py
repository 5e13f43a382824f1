"""Assembly of the fitted surrogate models into saliency results."""
import logging
import math
from typing import NamedTuple

import numpy as np

from explainability.core.model import (CounterfactualCandidate, FeatureImportance, Output, Saliency,
                                       SaliencyResults, SourceExplainer)
from explainability.core.utils import normalize_weights

logger = logging.getLogger(__name__)


class FittedOutput(NamedTuple):
    """The surrogate model fitted for one output."""
    output: Output
    features: list
    weights: np.ndarray
    feature_weights: np.ndarray
    loss: float


def build_saliency(fitted: FittedOutput, normalize: bool = False) -> Saliency:
    """Turns a fitted model into a saliency, empty when the fit loss is undefined.

    Each importance is the fitted weight (min-max normalized first if requested) times
    the feature's sparse balance multiplier.
    """
    if math.isnan(fitted.loss):
        logger.warning(f"Could not fit a linear model for output '{fitted.output.name}', "
                       f"returning an empty saliency")
        return Saliency(fitted.output, [])
    weights = np.asarray(fitted.weights, dtype=float)
    if normalize and weights.size > 0:
        weights = normalize_weights(weights)
    importances = [FeatureImportance(feature, float(weight * multiplier))
                   for feature, weight, multiplier in zip(fitted.features, weights, fitted.feature_weights)]
    return Saliency(fitted.output, importances)


def assemble(fitted_outputs: list, lime_inputs_list: list, config) -> SaliencyResults:
    """Collects one saliency per output name.

    When ``config.track_counterfactuals`` is set, the perturbed samples of the first
    output are returned as counterfactual candidates.
    """
    saliencies = {}
    for fitted in fitted_outputs:
        saliencies[fitted.output.name] = build_saliency(fitted, config.normalize_weights)
        logger.debug(f"Weights set for output {fitted.output.name}")

    counterfactuals = []
    if config.track_counterfactuals and lime_inputs_list:
        first = lime_inputs_list[0]
        for perturbed_input, perturbed_output, mask in zip(first.perturbed_inputs,
                                                           first.perturbed_outputs_full,
                                                           first.preservation_masks):
            counterfactuals.append(CounterfactualCandidate(perturbed_input, perturbed_output, mask))
    return SaliencyResults(saliencies, counterfactuals, SourceExplainer.LIME)
