"""Selection of the features used by the surrogate model.

With few features, selection is a greedy forward search that refits the model for
every candidate; with many features a single fit over all of them is done and the
features with the largest absolute weight are kept.
"""
import logging
import math

from explainability.core.model import FeatureImportance, Saliency
from explainability.lime.encoder import DatasetEncoder
from explainability.lime.filters import ProximityFilter
from explainability.lime.linear_model import fit_linear_model
from explainability.lime.weighting import compute_sample_weights

logger = logging.getLogger(__name__)

# up to this many features, selection is done by (exhaustive) forward selection
FORWARD_SELECTION_MAX_FEATURES = 6


def _encode(lime_inputs, features, target_output, config) -> list:
    encoder = DatasetEncoder(lime_inputs.perturbed_inputs, lime_inputs.perturbed_outputs,
                             features, target_output, config.encoding_params)
    return encoder.get_encoded_training_set()


def _proximity_filter(config) -> ProximityFilter:
    return ProximityFilter(config.proximity_threshold, config.proximity_filtered_dataset_minimum)


def _loss_key(loss: float) -> float:
    # an undefined loss ranks after every defined one
    return math.inf if math.isnan(loss) else loss


def highest_weights_selection(lime_inputs, target_features, target_output, config, training_set, sample_weights):
    """Fits once over all features and keeps the ``no_of_features`` largest ``|weight|``."""
    if config.proximity_filter:
        training_set, sample_weights = _proximity_filter(config).apply(training_set, sample_weights)
    model, loss = fit_linear_model(training_set, sample_weights, len(target_features),
                                   lime_inputs.classification, config)
    logger.debug(f"Feature selection loss: {loss}")
    importances = [FeatureImportance(f, float(w)) for f, w in zip(target_features, model.weights)]
    top_features = Saliency(target_output, importances).get_top_features(config.no_of_features)
    return [fi.feature for fi in top_features]


def forward_selection(lime_inputs, target_features, target_output, config, sample_weights):
    """Greedily adds, one round at a time, the candidate whose fit has the lowest loss.

    Ties are broken in favour of the candidate encountered first.
    """
    candidates = list(target_features)
    selected = []
    while len(selected) < config.no_of_features and candidates:
        scores = []
        for candidate in candidates:
            current_features = selected + [candidate]
            training_set = _encode(lime_inputs, current_features, target_output, config)
            weights = sample_weights
            if config.proximity_filter:
                training_set, weights = _proximity_filter(config).apply(training_set, sample_weights)
            _, loss = fit_linear_model(training_set, weights, len(current_features),
                                       lime_inputs.classification, config)
            scores.append((candidate, loss))

        best_feature, best_loss = min(scores, key=lambda score: _loss_key(score[1]))
        logger.debug(f"Forward selection picked '{best_feature.name}' with loss {best_loss}")
        candidates.remove(best_feature)
        selected.append(best_feature)
    return selected


def select_features(lime_inputs, target_features: list, target_output, config) -> list:
    """Reduces ``target_features`` to ``config.no_of_features`` features.

    Args:
        lime_inputs: The training data of the output being explained
        target_features: The linearized features of the input to explain
        target_output: The output being explained
        config: The LIME configuration of the current attempt
    Returns:
        selected: The selected features, in selection (or rank) order
    """
    training_set = _encode(lime_inputs, target_features, target_output, config)
    sample_weights = compute_sample_weights(config, lime_inputs, target_features, training_set)

    if len(target_features) > FORWARD_SELECTION_MAX_FEATURES:
        return highest_weights_selection(lime_inputs, target_features, target_output, config,
                                         training_set, sample_weights)
    return forward_selection(lime_inputs, target_features, target_output, config, sample_weights)
