"""Perturbation methods generating synthetic neighbours of the input to explain.

Each feature type has its own perturbation method; the engine picks, for every
sample, which features to alter and records them in a preservation mask.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import torch

from explainability.core.distribution import bootstrap_feature_distributions
from explainability.core.model import Feature, PerturbationContext, PredictionInput, Type
from explainability.lime.high_score_zones import get_high_score_feature_zones

logger = logging.getLogger(__name__)


class BasePerturbation:
    """Base class for the perturbation of a single feature."""

    def perturb(self,
                feature: Feature,
                context: PerturbationContext,
                feature_distributions: Optional[dict] = None) -> Feature:
        """Returns a perturbed copy of ``feature``.

        This method should be overridden by subclasses to implement specific
        perturbation strategies (Gaussian noise, flips, etc.).

        Args:
            feature: The feature to perturb
            context: Source of randomness and perturbation parameters
            feature_distributions: Optional bootstrapped distributions, by feature name
        Returns:
            Feature: The perturbed feature
        """
        raise NotImplementedError("Subclasses must implement perturb")


def _numeric_scale(value: float, context: PerturbationContext) -> float:
    # the spread is relative to the magnitude of the value being perturbed
    if value == 0:
        return context.standard_deviation
    return abs(value) * context.standard_deviation


class NormalPerturbation(BasePerturbation):
    """Samples numbers from a normal distribution centred on the original value.

    If a bootstrapped distribution exists for the feature the value is drawn from it
    instead. Integer values stay integers.
    """

    def perturb(self, feature, context, feature_distributions=None):
        original = feature.value
        distribution = (feature_distributions or {}).get(feature.name)
        if distribution is not None and not distribution.is_empty():
            value = distribution.sample(context)
        else:
            center = float(original) if original is not None else 0.0
            value = center + context.next_gaussian() * _numeric_scale(center, context)
        if isinstance(original, int) and not isinstance(original, bool):
            value = int(round(value))
        return feature.with_value(value)


class FlipPerturbation(BasePerturbation):
    """Negates boolean features."""

    def perturb(self, feature, context, feature_distributions=None):
        if feature.value is None:
            return feature.with_value(context.next_double() < 0.5)
        return feature.with_value(not feature.value)


class CategoricalPerturbation(BasePerturbation):
    """Replaces a categorical value with a different value of its domain.

    Features without a domain (or whose domain has no alternative) lose their value.
    """

    def perturb(self, feature, context, feature_distributions=None):
        alternatives = [v for v in (feature.domain or ()) if v != feature.value]
        if not alternatives:
            return feature.with_value(None)
        return feature.with_value(alternatives[context.next_int(len(alternatives))])


class VectorPerturbation(BasePerturbation):
    """Gaussian perturbation of vector elements with random element selection.

    Each element is perturbed with probability ``flip_percentage``; at least one element
    is always changed.
    """

    def __init__(self, flip_percentage: float = 0.5):
        self.flip_percentage = flip_percentage

    def perturb(self, feature, context, feature_distributions=None):
        if not feature.value:
            return feature
        original = torch.tensor(feature.value, dtype=torch.float64)
        size = len(original)

        # Step 1: Gaussian noise scaled by each element's magnitude
        scale = torch.where(original != 0,
                            original.abs() * context.standard_deviation,
                            torch.full_like(original, context.standard_deviation))
        noise = context.normal(size, 1.0) * scale

        # Step 2: Random selection of the elements to alter
        selected = context.bernoulli(size, self.flip_percentage)
        if selected.sum() == 0:
            selected[context.next_int(size)] = 1.0

        perturbed = original + noise * selected
        return feature.with_value(perturbed.tolist())


class CompositePerturbation(BasePerturbation):
    """Perturbs one randomly chosen child of a composite feature."""

    def perturb(self, feature, context, feature_distributions=None):
        if not feature.value:
            return feature
        children = list(feature.value)
        index = context.next_int(len(children))
        children[index] = perturb_feature(children[index], context, feature_distributions)
        return feature.with_value(children)


class IdentityPerturbation(BasePerturbation):

    def perturb(self, feature, context, feature_distributions=None):
        return feature


PERTURBATION_METHODS = {
    Type.NUMBER: NormalPerturbation(),
    Type.BOOLEAN: FlipPerturbation(),
    Type.CATEGORICAL: CategoricalPerturbation(),
    Type.VECTOR: VectorPerturbation(),
    Type.COMPOSITE: CompositePerturbation(),
    Type.UNDEFINED: IdentityPerturbation(),
}


def perturb_feature(feature: Feature, context: PerturbationContext, feature_distributions=None) -> Feature:
    return PERTURBATION_METHODS[feature.type].perturb(feature, context, feature_distributions)


def perturb_features_with_preservation_mask(features: list[Feature],
                                            context: PerturbationContext,
                                            feature_distributions: Optional[dict] = None):
    """Perturbs ``no_of_perturbations`` randomly chosen features.

    Args:
        features: The features of the input to perturb
        context: Source of randomness, also gives the number of features to alter
        feature_distributions: Optional bootstrapped distributions, by feature name
    Returns:
        tuple: (perturbed_features, preservation_mask) where the mask is ``True`` for every
               feature that was left untouched
    """
    n_features = len(features)
    size = min(max(context.no_of_perturbations, 1), n_features)
    perturbed = list(features)
    preservation_mask = [True] * n_features
    for index in context.permutation(n_features)[:size]:
        perturbed[index] = perturb_feature(features[index], context, feature_distributions)
        preservation_mask[index] = False
    return perturbed, tuple(preservation_mask)


@dataclass(frozen=True)
class PerturbationBatch:
    """Perturbed inputs and, for each of them, which features were preserved."""
    inputs: list
    preservation_masks: list


class PerturbationEngine:
    """Generates the synthetic neighbourhood of the input to explain."""

    async def get_feature_distributions(self, features, config, model) -> dict:
        """Bootstraps numeric feature distributions from the configured data distribution.

        When high score feature zones are enabled the model is queried on up to
        ``config.bootstrap_inputs`` background inputs; failures of that call propagate.
        """
        data_distribution = config.data_distribution
        if data_distribution is None or data_distribution.is_empty():
            return {}
        size = config.no_of_samples
        max_inputs = config.bootstrap_inputs
        if config.high_score_feature_zones:
            feature_zones = await get_high_score_feature_zones(data_distribution, model, features, max_inputs)
        else:
            feature_zones = {}
        return bootstrap_feature_distributions(data_distribution, config.perturbation_context,
                                               2 * size, 1, min(size, max_inputs), feature_zones)

    async def generate(self, features: list[Feature], config, model) -> PerturbationBatch:
        """Produces ``config.no_of_samples`` perturbed inputs and their preservation masks.

        Args:
            features: The (original, not linearized) features of the input to explain
            config: The LIME configuration of the current attempt
            model: The prediction provider, only used to detect high score zones
        Returns:
            PerturbationBatch: The perturbed inputs with one preservation mask each
        """
        context = config.perturbation_context
        feature_distributions = await self.get_feature_distributions(features, config, model)

        inputs, masks = [], []
        for _ in range(config.no_of_samples):
            perturbed, mask = perturb_features_with_preservation_mask(features, context, feature_distributions)
            inputs.append(PredictionInput(perturbed))
            masks.append(mask)
        logger.debug(f"Generated {len(inputs)} perturbed inputs altering "
                     f"{context.no_of_perturbations} feature(s) each")
        return PerturbationBatch(inputs, masks)
