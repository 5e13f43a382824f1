"""Background data distributions used to inform perturbations."""
import logging
from typing import Optional

import numpy as np
import pandas as pd
from pandas.api import types as pd_types

from explainability.core.model import Feature, PerturbationContext, PredictionInput, Type
from explainability.core.utils import linearize_features

logger = logging.getLogger(__name__)


class FeatureDistribution:
    """Empirical distribution of the values observed for a single feature."""

    def __init__(self, feature: Feature, values):
        self.feature = feature
        self.values = list(values)

    def is_empty(self) -> bool:
        return len(self.values) == 0

    def sample(self, context: PerturbationContext):
        return self.values[context.next_int(len(self.values))]

    def sample_many(self, n: int, context: PerturbationContext) -> list:
        return [self.sample(context) for _ in range(n)]


class NumericFeatureDistribution(FeatureDistribution):
    """Distribution of a ``NUMBER`` feature, with summary statistics."""

    def __init__(self, feature: Feature, values):
        super().__init__(feature, [float(v) for v in values])
        self._array = np.asarray(self.values, dtype=float)

    @property
    def min(self) -> float:
        return float(self._array.min())

    @property
    def max(self) -> float:
        return float(self._array.max())

    @property
    def mean(self) -> float:
        return float(self._array.mean())

    @property
    def std(self) -> float:
        return float(self._array.std())


def _feature_distribution(feature: Feature, values) -> FeatureDistribution:
    if feature.type == Type.NUMBER:
        return NumericFeatureDistribution(feature, [v for v in values if v is not None])
    return FeatureDistribution(feature, values)


class DataDistribution:
    """A background dataset, given as a list of prediction inputs.

    Args:
        inputs: The observed inputs, all sharing the same feature layout
    """

    def __init__(self, inputs: Optional[list] = None):
        self.inputs = list(inputs) if inputs is not None else []

    def is_empty(self) -> bool:
        return len(self.inputs) == 0

    def get_all_samples(self) -> list[PredictionInput]:
        return list(self.inputs)

    def sample(self, n: int, context: PerturbationContext) -> list[PredictionInput]:
        """Samples ``n`` distinct inputs, or all of them (shuffled) if fewer are available."""
        order = context.permutation(len(self.inputs))
        return [self.inputs[i] for i in order[:n]]

    def feature_distributions(self) -> list[FeatureDistribution]:
        """Builds one distribution per linearized feature position."""
        if self.is_empty():
            return []
        linearized = [linearize_features(i.features) for i in self.inputs]
        distributions = []
        for position, feature in enumerate(linearized[0]):
            values = [features[position].value for features in linearized if position < len(features)]
            distributions.append(_feature_distribution(feature, values))
        return distributions

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame) -> "DataDistribution":
        """Creates a distribution from a dataframe, one row per input.

        Numeric columns become ``NUMBER`` features, boolean columns ``BOOLEAN`` features and
        anything else ``CATEGORICAL`` features whose domain is the set of observed values.
        """
        factories = {}
        for column in df.columns:
            if pd_types.is_bool_dtype(df[column]):
                factories[column] = lambda name, v: Feature.boolean(name, bool(v))
            elif pd_types.is_numeric_dtype(df[column]):
                factories[column] = lambda name, v: Feature.number(name, v.item() if hasattr(v, "item") else v)
            else:
                domain = tuple(df[column].dropna().unique().tolist())
                factories[column] = (lambda d: lambda name, v: Feature.categorical(name, v, d))(domain)

        inputs = []
        for _, row in df.iterrows():
            inputs.append(PredictionInput([factories[c](str(c), row[c]) for c in df.columns]))
        logger.debug(f"Built data distribution with {len(inputs)} inputs and {len(df.columns)} features")
        return cls(inputs)


def bootstrap_feature_distributions(data_distribution: DataDistribution,
                                    context: PerturbationContext,
                                    feature_distribution_size: int,
                                    draws: int,
                                    sampling_size: int,
                                    feature_zones: dict) -> dict[str, FeatureDistribution]:
    """Bootstraps new numeric feature distributions from a background distribution.

    For each numeric feature a pool of ``sampling_size`` observed values is drawn, keeping
    only values inside the feature's high score zones when any of them fall there; each
    bootstrapped value is then the mean of ``draws`` values resampled from the pool.

    Args:
        data_distribution: The background data
        context: Source of randomness
        feature_distribution_size: Number of values in each bootstrapped distribution
        draws: Number of pool values averaged into each bootstrapped value
        sampling_size: Size of the pool drawn from the observed values
        feature_zones: Map from feature name to its high score zones (may be empty)
    Returns:
        bootstrapped: Map from feature name to its bootstrapped distribution
    """
    bootstrapped = {}
    for distribution in data_distribution.feature_distributions():
        if not isinstance(distribution, NumericFeatureDistribution) or distribution.is_empty():
            continue
        name = distribution.feature.name
        pool = distribution.sample_many(sampling_size, context)
        zones = feature_zones.get(name)
        if zones is not None:
            in_zones = [v for v in pool if zones.test(v)]
            if in_zones:
                pool = in_zones
        values = []
        for _ in range(feature_distribution_size):
            drawn = [pool[context.next_int(len(pool))] for _ in range(draws)]
            values.append(float(np.mean(drawn)))
        bootstrapped[name] = NumericFeatureDistribution(distribution.feature, values)
    logger.debug(f"Bootstrapped {len(bootstrapped)} numeric feature distributions")
    return bootstrapped
