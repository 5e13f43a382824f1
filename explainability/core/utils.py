"""Utility functions for feature manipulation and numeric helpers."""
import numpy as np

from explainability.core.model import Feature, Type

# smallest positive double, used to keep kernel weights strictly positive
MIN_WEIGHT = np.finfo(float).tiny


def add_to_dict_lists(key, value, dictionary):
    """Add a value to a list stored in a dictionary, creating the list if needed.

    Args:
        key: Dictionary key to store the value under
        value: Value to append to the list at the given key
        dictionary: Dictionary to modify (updated in place)
    """
    if key not in dictionary:
        dictionary[key] = [value]
    else:
        dictionary[key].append(value)


def _linearize_vector(feature: Feature) -> list[Feature]:
    if feature.value is None:
        return []
    return [Feature.number(f"{feature.name}_{i}", v) for i, v in enumerate(feature.value)]


def _linearize_composite(feature: Feature) -> list[Feature]:
    if feature.value is None:
        return []
    return linearize_features(feature.value)


_LINEARIZERS = {
    Type.VECTOR: _linearize_vector,
    Type.COMPOSITE: _linearize_composite,
}


def linearize_features(features) -> list[Feature]:
    """Flattens nested and vector features into a list of scalar features.

    Vectors become one ``NUMBER`` feature per element (named ``<name>_<index>``),
    composites are replaced by their (recursively linearized) children.
    """
    linearized = []
    for feature in features:
        linearizer = _LINEARIZERS.get(feature.type)
        if linearizer is None:
            linearized.append(feature)
        else:
            linearized.extend(linearizer(feature))
    return linearized


def exponential_smoothing_kernel(distance, width: float):
    """Proximity kernel ``sqrt(exp(-d^2 / w^2))``, never exactly zero."""
    distance = np.asarray(distance, dtype=float)
    weights = np.sqrt(np.exp(-(distance ** 2) / (width ** 2)))
    return np.maximum(weights, MIN_WEIGHT)


def gaussian_kernel(x, mu: float, sigma: float):
    """Unnormalised gaussian filter, equal to 1 at ``mu``."""
    x = np.asarray(x, dtype=float)
    return np.exp(-((x - mu) ** 2) / (2 * sigma ** 2))


def _number_distance(value, target) -> float:
    if value is None or target is None:
        return 0.0 if value is None and target is None else 1.0
    diff = abs(float(value) - float(target))
    if target != 0:
        diff /= abs(float(target))
    return diff


def _equality_distance(value, target) -> float:
    return 0.0 if value == target else 1.0


def feature_distance(feature: Feature, target: Feature) -> float:
    """Distance between a (perturbed) scalar feature and the corresponding target feature.

    Numbers contribute their difference relative to the target magnitude, everything
    else contributes 0 when equal and 1 otherwise.
    """
    if target.type == Type.NUMBER:
        return _number_distance(feature.value, target.value)
    return _equality_distance(feature.value, target.value)


def normalize_weights(weights: np.ndarray) -> np.ndarray:
    """Min-max normalizes weights into [0, 1], leaving constant arrays untouched."""
    weights = np.asarray(weights, dtype=float)
    if weights.size == 0:
        return weights.copy()
    max_w = weights.max()
    min_w = weights.min()
    if max_w == min_w:
        return weights.copy()
    return (weights - min_w) / (max_w - min_w)
