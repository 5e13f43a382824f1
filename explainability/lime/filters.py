"""Filters applied to the encoded dataset before fitting the linear model."""
import logging

import numpy as np

logger = logging.getLogger(__name__)


class IndependentSparseFeatureBalanceFilter:
    """Penalizes features whose sparse (0/1) encoding is evenly balanced.

    A column split half ones and half zeros carries little signal about the target, so
    its multiplier is halved; a column with a single value keeps its multiplier.
    Only the multipliers change, never the training data.
    """

    def apply(self, feature_weights: np.ndarray, features: list, training_set: list):
        """Scales ``feature_weights`` in place, one multiplier per feature."""
        if not training_set:
            return
        encoded = np.vstack([sample.features for sample in training_set])
        n_samples = encoded.shape[0]
        for i in range(len(features)):
            ones = int(np.count_nonzero(encoded[:, i] == 1.0))
            zeros = n_samples - ones
            balance = 2 * min(ones, zeros) / n_samples
            feature_weights[i] *= 1 - balance / 2
        logger.debug(f"Sparse balance multipliers: {feature_weights}")


class ProximityFilter:
    """Drops samples whose proximity weight is below a threshold.

    Args:
        proximity_threshold: Minimum weight a sample needs to be kept
        minimum: Minimum number of samples to keep; values below 1 are read as a
                 fraction of the dataset size
    """

    def __init__(self, proximity_threshold: float, minimum: float):
        self.proximity_threshold = proximity_threshold
        self.minimum = minimum

    def _minimum_size(self, dataset_size: int) -> int:
        if self.minimum < 1:
            minimum = int(np.ceil(self.minimum * dataset_size))
        else:
            minimum = int(self.minimum)
        return min(max(minimum, 1), dataset_size)

    def apply(self, training_set: list, sample_weights: np.ndarray):
        """Filters samples and weights in lockstep.

        When too few samples pass the threshold, the highest weighted excluded samples
        (earliest first on ties) are kept until the minimum size is reached.

        Returns:
            tuple: (filtered_training_set, filtered_sample_weights), in the original order
        """
        sample_weights = np.asarray(sample_weights, dtype=float)
        assert len(training_set) == len(sample_weights), \
            f"Got {len(training_set)} samples but {len(sample_weights)} weights"
        if not training_set:
            return list(training_set), sample_weights

        keep = sample_weights >= self.proximity_threshold
        missing = self._minimum_size(len(training_set)) - int(keep.sum())
        if missing > 0:
            excluded = np.flatnonzero(~keep)
            # stable sort on negated weights: highest weight first, earliest index on ties
            ranked = excluded[np.argsort(-sample_weights[excluded], kind="stable")]
            keep[ranked[:missing]] = True

        indexes = np.flatnonzero(keep)
        logger.debug(f"Proximity filter kept {len(indexes)} out of {len(training_set)} samples")
        return [training_set[i] for i in indexes], sample_weights[indexes]
