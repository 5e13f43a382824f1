"""LIME (Local Interpretable Model-agnostic Explanations) saliency explainer.

The explainer perturbs the input to explain, asks the model to predict the perturbed
inputs in one batch and, for every output, fits a weighted linear surrogate model on
the encoded perturbed dataset; the surrogate weights are the feature importances.

Differences with respect to the reference LIME library:
- numeric features are perturbed by sampling a normal distribution centred on the
  feature value (or a bootstrapped background distribution)
- numeric features are min-max scaled and clustered via a gaussian kernel
- when the perturbed dataset is not separable, sampling is adapted and retried
"""
import asyncio
import logging
import math
from collections import Counter
from dataclasses import dataclass
from enum import Enum

import numpy as np

from explainability.core.exceptions import DatasetNotSeparableError, EmptyInputError, LinearizationError
from explainability.core.model import Feature, Output, PerturbationContext, Prediction, SaliencyResults
from explainability.core.utils import linearize_features
from explainability.lime.config import LimeConfig
from explainability.lime.encoder import DatasetEncoder, output_to_label
from explainability.lime.feature_selection import select_features
from explainability.lime.filters import IndependentSparseFeatureBalanceFilter, ProximityFilter
from explainability.lime.inputs import LimeInputs
from explainability.lime.linear_model import fit_linear_model
from explainability.lime.perturbation_methods import PerturbationEngine
from explainability.lime.saliency import FittedOutput, assemble
from explainability.lime.weighting import compute_sample_weights

logger = logging.getLogger(__name__)


class AttemptState(Enum):
    """States of one explanation attempt."""
    ATTEMPT = "attempt"
    ACCEPTED = "accepted"
    INSEPARABLE = "inseparable"
    FAILED = "failed"


@dataclass(frozen=True)
class Attempt:
    """The configuration of one attempt together with the retry budget left after it."""
    config: LimeConfig
    retries_left: int
    number: int = 1

    @property
    def strict(self) -> bool:
        return self.retries_left > 0


def _class_of(output: Output, target_value):
    label = output_to_label(output, target_value)
    # missing numeric outputs all fall in one class
    return None if math.isnan(label) else label


def get_class_balance(perturbed_outputs: list, target_value) -> dict:
    """Counts the perturbed samples per (encoded) output class."""
    balance = Counter(_class_of(output, target_value) for output in perturbed_outputs)
    logger.debug(f"Raw samples per class: {dict(balance)}")
    return dict(balance)


class LimeExplainer:
    """Computes LIME saliencies for single predictions.

    Args:
        config: The explainer configuration, defaults to ``LimeConfig()``
        perturbation_engine: The perturbation engine generating the neighbourhood
    """

    def __init__(self, config: LimeConfig = None, perturbation_engine: PerturbationEngine = None):
        self.config = config if config is not None else LimeConfig()
        self.perturbation_engine = perturbation_engine if perturbation_engine is not None else PerturbationEngine()

    def explain(self, prediction: Prediction, model) -> SaliencyResults:
        """Blocking variant of ``explain_async``."""
        return asyncio.run(self.explain_async(prediction, model))

    async def explain_async(self, prediction: Prediction, model) -> SaliencyResults:
        """Explains ``prediction`` as produced by ``model``.

        Args:
            prediction: The input to explain together with the model output for it
            model: A ``PredictionProvider`` for the opaque model
        Returns:
            SaliencyResults: One saliency per output of the prediction
        Raises:
            EmptyInputError: If the prediction input has no features
            LinearizationError: If flattening the input features yields no feature
            DatasetNotSeparableError: If no attempt produced a usable dataset
        """
        original_input = prediction.input
        if original_input is None or not original_input.features:
            raise EmptyInputError()
        # transform a possibly complex / nested input into a flat list of features
        target_features = linearize_features(original_input.features)
        if not target_features:
            raise LinearizationError()
        actual_outputs = list(prediction.output.outputs)

        # every request owns its random generator
        execution_config = self.config.with_perturbation_context(self.config.perturbation_context.fresh())
        if execution_config.no_of_samples <= 0:
            no_of_samples = 2 ** len(target_features)
            logger.debug(f"Using 2^|features| samples ({no_of_samples})")
            execution_config = execution_config.with_samples(no_of_samples)

        attempt = Attempt(execution_config, execution_config.no_of_retries)
        return await self.explain_retry_cycle(model, original_input.features, target_features, actual_outputs, attempt)

    async def explain_retry_cycle(self, model, original_features, target_features, actual_outputs, attempt: Attempt):
        """Runs perturb, predict and fit attempts until one produces separable datasets.

        Each inseparable attempt either moves to a new attempt with adjusted sampling
        (while retries are left) or fails by raising ``DatasetNotSeparableError``.
        """
        state = AttemptState.ATTEMPT
        while state is AttemptState.ATTEMPT:
            config = attempt.config
            batch = await self.perturbation_engine.generate(original_features, config, model)
            perturbed_outputs = await model.predict_async(batch.inputs)
            if len(perturbed_outputs) != len(batch.inputs):
                raise ValueError(f"Model returned {len(perturbed_outputs)} outputs "
                                 f"for {len(batch.inputs)} inputs")
            try:
                lime_inputs_list = self.get_lime_inputs(target_features, actual_outputs, batch.inputs,
                                                        batch.preservation_masks, perturbed_outputs,
                                                        config, attempt.strict)
                state = AttemptState.ACCEPTED
            except DatasetNotSeparableError as error:
                state = AttemptState.INSEPARABLE if attempt.retries_left > 0 else AttemptState.FAILED
                if state is AttemptState.FAILED:
                    logger.warning(f"Giving up after {attempt.number} attempt(s): {error}")
                    raise
                logger.info(f"Attempt {attempt.number} produced an inseparable dataset, "
                            f"retrying ({attempt.retries_left} retries left): {error}")
                attempt = self.adjust(attempt, target_features)
                state = AttemptState.ATTEMPT

        logger.debug(f"Attempt {attempt.number} accepted with {attempt.config.no_of_samples} samples")
        return self.get_saliencies(target_features, actual_outputs, lime_inputs_list, attempt.config)

    def adjust(self, attempt: Attempt, target_features: list) -> Attempt:
        """Creates the next attempt, with more samples and larger perturbations if adapting."""
        config = attempt.config
        retries = attempt.retries_left
        if config.adapt_dataset_variance:
            context = self.get_new_perturbation_context(target_features, retries, config.perturbation_context)
            no_of_samples = config.no_of_samples + config.no_of_samples // retries
            config = config.with_samples(no_of_samples).with_perturbation_context(context)
            logger.info(f"Adapted dataset variance: {no_of_samples} samples, "
                        f"{context.no_of_perturbations} perturbations per sample")
        return Attempt(config, retries - 1, attempt.number + 1)

    @staticmethod
    def get_new_perturbation_context(target_features: list, retries: int,
                                     context: PerturbationContext) -> PerturbationContext:
        n_features = len(target_features)
        next_size = max(context.no_of_perturbations + 1, n_features // retries)
        # make sure to stay within the max no. of features boundaries
        next_size = max(min(n_features - 1, next_size), 1)
        return context.with_no_of_perturbations(next_size)

    def get_lime_inputs(self, target_features, actual_outputs, perturbed_inputs, preservation_masks,
                        perturbed_outputs, config, strict) -> list[LimeInputs]:
        return [self.prepare_inputs(perturbed_inputs, preservation_masks, perturbed_outputs, target_features,
                                    index, output, config, strict)
                for index, output in enumerate(actual_outputs)]

    def prepare_inputs(self, perturbed_inputs, preservation_masks, perturbed_outputs, target_features,
                       index: int, current_output: Output, config: LimeConfig, strict: bool) -> LimeInputs:
        """Checks that the dataset of one output is separable and bundles its training data.

        In strict mode the dataset needs at least two classes and a majority class share
        below ``separable_dataset_ratio``. Otherwise hardly separable datasets are accepted
        with a warning, but a single class dataset is still rejected.
        """
        if current_output.value is None:
            return LimeInputs(False, target_features, current_output, [], [], [], [])

        outputs = [po.outputs[index] for po in perturbed_outputs]
        class_balance = get_class_balance(outputs, current_output.value)
        majority = max(class_balance.values(), default=1)
        separation_ratio = majority / max(len(perturbed_inputs), 1)
        classification = len(class_balance) == 2

        separable = len(class_balance) > 1 and separation_ratio < config.separable_dataset_ratio
        if not separable:
            if strict or len(class_balance) < 2:
                raise DatasetNotSeparableError(current_output, class_balance)
            logger.warning(f"Using a hardly separable dataset for output '{current_output.name}' of type "
                           f"'{current_output.type.value}' with value '{current_output.value}' ({class_balance})")
        return LimeInputs(classification, target_features, current_output, list(perturbed_inputs),
                          list(preservation_masks), list(perturbed_outputs), outputs)

    def get_saliencies(self, target_features, actual_outputs, lime_inputs_list, config) -> SaliencyResults:
        fitted_outputs = [self.fit_output(target_features, lime_inputs, output, config)
                          for lime_inputs, output in zip(lime_inputs_list, actual_outputs)]
        return assemble(fitted_outputs, lime_inputs_list, config)

    def fit_output(self, target_features: list[Feature], lime_inputs: LimeInputs, output: Output,
                   config: LimeConfig) -> FittedOutput:
        """Fits the surrogate model of one output."""
        if not lime_inputs.perturbed_inputs:
            return FittedOutput(output, target_features, np.full(len(target_features), np.nan),
                                np.ones(len(target_features)), float("nan"))

        if config.feature_selection and len(target_features) > config.no_of_features:
            features = select_features(lime_inputs, target_features, output, config)
        else:
            features = target_features

        # encode the training data so that it can be fed into the linear model
        encoder = DatasetEncoder(lime_inputs.perturbed_inputs, lime_inputs.perturbed_outputs,
                                 features, output, config.encoding_params)
        training_set = encoder.get_encoded_training_set()

        # weight the training samples based on the proximity to the target input
        sample_weights = compute_sample_weights(config, lime_inputs, features, training_set, target_features)

        feature_weights = np.ones(len(features))
        if config.penalize_balance_sparse:
            IndependentSparseFeatureBalanceFilter().apply(feature_weights, features, training_set)

        if config.proximity_filter:
            proximity_filter = ProximityFilter(config.proximity_threshold, config.proximity_filtered_dataset_minimum)
            training_set, sample_weights = proximity_filter.apply(training_set, sample_weights)

        model, loss = fit_linear_model(training_set, sample_weights, len(features),
                                       lime_inputs.classification, config)
        logger.debug(f"Fitted output '{output.name}' with loss {loss}")
        return FittedOutput(output, features, model.weights, feature_weights, loss)
