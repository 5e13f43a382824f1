"""Proximity based weighting of the perturbed samples."""
import logging
import math

import numpy as np

from explainability.core.utils import exponential_smoothing_kernel, feature_distance, linearize_features

logger = logging.getLogger(__name__)


class SampleWeighter:
    """Weights samples by their proximity to the input being explained.

    Weights are ``sqrt(exp(-d^2 / w^2))``: always in ``(0, 1]``, equal to 1 for a
    sample identical to the target.
    """

    @staticmethod
    def get_sample_weights_interpretable(target_features: list, training_set: list, kernel_width: float) -> np.ndarray:
        """Weights samples by their distance to the all-ones vector in the encoded space.

        An encoded sample equal to ``1`` everywhere is indistinguishable from the target.
        """
        if not training_set:
            return np.array([])
        target = np.ones(len(target_features))
        encoded = np.vstack([sample.features for sample in training_set])
        distances = np.linalg.norm(encoded - target, axis=1)
        return exponential_smoothing_kernel(distances, kernel_width)

    @staticmethod
    def get_sample_weights_original(target_features: list, perturbed_feature_lists: list, kernel_width: float) -> np.ndarray:
        """Weights samples by their distance to the target in the linearized feature space.

        Args:
            target_features: The linearized features of the input to explain
            perturbed_feature_lists: The linearized features of each perturbed input
            kernel_width: Width of the proximity kernel
        Returns:
            weights: One weight per perturbed input
        """
        distances = []
        for features in perturbed_feature_lists:
            by_name = {f.name: f for f in features}
            coordinates = [feature_distance(by_name[t.name], t) if t.name in by_name else 1.0
                           for t in target_features]
            distances.append(float(np.linalg.norm(coordinates)))
        weights = exponential_smoothing_kernel(np.array(distances), kernel_width)
        logger.debug(f"Computed {len(weights)} sample weights in the original feature space")
        return weights


def compute_sample_weights(config, lime_inputs, features: list, training_set: list,
                           target_features: list = None) -> np.ndarray:
    """Weights the training samples of ``lime_inputs`` as configured.

    The kernel width is ``proximity_kernel_width * sqrt(len(features))``. Distances are
    measured in the encoded space of ``features`` when ``filter_interpretable`` is set,
    otherwise to the whole linearized target input.

    Args:
        config: The LIME configuration of the current attempt
        lime_inputs: The training data of the output being explained
        features: The (possibly selected) features the model is fitted on
        training_set: The samples encoded over ``features``
        target_features: All linearized target features, defaults to ``features``
    Returns:
        weights: One weight per sample
    """
    kernel_width = config.proximity_kernel_width * math.sqrt(len(features))
    if config.filter_interpretable:
        return SampleWeighter.get_sample_weights_interpretable(features, training_set, kernel_width)
    if target_features is None:
        target_features = features
    feature_lists = [linearize_features(i.features) for i in lime_inputs.perturbed_inputs]
    return SampleWeighter.get_sample_weights_original(target_features, feature_lists, kernel_width)
