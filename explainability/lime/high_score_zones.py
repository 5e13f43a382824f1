"""Detection of the numeric value ranges where the model scores highly.

Background inputs are scored by the model; numeric values taken by the best scoring
inputs define zones that bootstrapped feature distributions are biased towards.
"""
import logging

import numpy as np

from explainability.core.model import Type
from explainability.core.utils import add_to_dict_lists, linearize_features

logger = logging.getLogger(__name__)


class HighScoreNumericFeatureZones:
    """A union of intervals ``[center - tolerance, center + tolerance]``."""

    def __init__(self, centers, tolerance: float):
        self.centers = np.asarray(centers, dtype=float)
        self.tolerance = float(tolerance)

    def test(self, value) -> bool:
        if value is None or self.centers.size == 0:
            return False
        return bool(np.any(np.abs(self.centers - float(value)) <= self.tolerance))


async def get_high_score_feature_zones(data_distribution, model, features, max_samples: int) -> dict:
    """Finds high score zones for each numeric feature.

    Args:
        data_distribution: The background data
        model: The prediction provider used to score the background inputs
        features: The features of the input to explain, used to pick the numeric ones
        max_samples: Maximum number of background inputs to score
    Returns:
        zones: Map from numeric feature name to its ``HighScoreNumericFeatureZones``
    """
    inputs = data_distribution.get_all_samples()[:max_samples]
    if not inputs:
        return {}
    outputs = await model.predict_async(inputs)

    # score each input by the mean confidence of its outputs
    scores = np.array([np.mean([o.confidence for o in po.outputs]) if po.outputs else 0.0 for po in outputs])
    threshold = scores.mean()

    numeric_names = {f.name for f in linearize_features(features) if f.type == Type.NUMBER}
    high_score_values = {}
    for prediction_input, score in zip(inputs, scores):
        if score < threshold:
            continue
        for feature in linearize_features(prediction_input.features):
            if feature.name in numeric_names and feature.value is not None:
                add_to_dict_lists(feature.name, float(feature.value), high_score_values)

    zones = {}
    for name, values in high_score_values.items():
        values = np.asarray(values)
        zones[name] = HighScoreNumericFeatureZones(values, values.std() / 2)
    logger.debug(f"Found high score zones for {len(zones)} numeric features "
                 f"out of {len(inputs)} scored inputs")
    return zones
