"""Interpretable linear models fitted on the encoded perturbed dataset."""
import logging

import numpy as np
from sklearn.linear_model import Ridge

from explainability.core.model import PerturbationContext

logger = logging.getLogger(__name__)

RIDGE_ALPHA = 0.01
LEARNING_RATE = 0.01
LEARNING_RATE_DECAY = 0.01
MIN_EPOCHS = 15
MAX_EPOCHS = 1000
LOSS_TOLERANCE = 0.1


class LinearModel:
    """A local linear model, either a weighted perceptron or a weighted ridge regression.

    Both fitting procedures return a loss which is ``NaN`` when the dataset cannot
    support a fit (empty, single label, no weight, or numerical blow up); callers must
    then not use ``weights``.

    Args:
        n_features: Number of (encoded) features
        classification: Whether labels are two classes rather than a continuous target
        context: Random source for the perceptron weight initialization
    """

    def __init__(self, n_features: int, classification: bool, context: PerturbationContext):
        self.n_features = n_features
        self.classification = classification
        self.weights = context.normal(n_features, 1e-2).numpy()
        self.intercept = 0.0

    def _degenerate(self, reason: str) -> float:
        logger.debug(f"Degenerate linear model fit: {reason}")
        self.weights = np.full(self.n_features, np.nan)
        return float("nan")

    def _prepare(self, training_set: list, sample_weights):
        if not training_set:
            return None, "empty training set"
        x = np.vstack([sample.features for sample in training_set]).reshape(len(training_set), self.n_features)
        y = np.array([sample.label for sample in training_set], dtype=float)
        w = np.asarray(sample_weights, dtype=float)
        assert len(w) == len(y), f"Got {len(y)} samples but {len(w)} sample weights"
        if not np.all(np.isfinite(y)):
            return None, "non finite labels"
        if np.ptp(y) == 0:
            return None, "all labels are identical"
        if not np.all(np.isfinite(w)) or w.sum() <= 0:
            return None, "invalid sample weights"
        return (x, y, w / w.max()), None

    def _predict(self, sample: np.ndarray) -> float:
        linear_combination = self.intercept + float(np.dot(sample, self.weights))
        if self.classification:
            return 1.0 if linear_combination >= 0 else 0.0
        return linear_combination

    def fit(self, training_set: list, sample_weights) -> float:
        """Fits a weighted perceptron, returning its mean absolute training error."""
        prepared, reason = self._prepare(training_set, sample_weights)
        if prepared is None:
            return self._degenerate(reason)
        x, y, w = prepared
        if self.classification:
            y = (y == y.max()).astype(float)

        n_samples = len(y)
        learning_rate = LEARNING_RATE
        loss = 1.0
        epoch = 0
        while (loss > LOSS_TOLERANCE or epoch < MIN_EPOCHS) and epoch < MAX_EPOCHS:
            loss = 0.0
            for i in range(n_samples):
                diff = y[i] - self._predict(x[i])
                if diff != 0:
                    loss += abs(diff) / n_samples
                    update = learning_rate * diff * w[i]
                    self.weights = self.weights + update * x[i]
                    self.intercept += update
            if not np.all(np.isfinite(self.weights)) or not np.isfinite(self.intercept):
                return self._degenerate("perceptron weights diverged")
            learning_rate *= 1.0 / (1.0 + LEARNING_RATE_DECAY * epoch)
            epoch += 1
        logger.debug(f"Perceptron fit in {epoch} epochs with loss {loss}")
        return float(loss)

    def fit_wlrr(self, training_set: list, sample_weights) -> float:
        """Fits a weighted ridge regression.

        The loss is the weighted squared error, or the weighted misclassification rate
        (threshold halfway between the two labels) for classification.
        """
        prepared, reason = self._prepare(training_set, sample_weights)
        if prepared is None:
            return self._degenerate(reason)
        x, y, w = prepared

        regressor = Ridge(alpha=RIDGE_ALPHA, fit_intercept=True)
        regressor.fit(x, y, sample_weight=w)
        coefficients = np.asarray(regressor.coef_, dtype=float).reshape(-1)
        if not np.all(np.isfinite(coefficients)):
            return self._degenerate("non finite regression coefficients")
        self.weights = coefficients
        self.intercept = float(regressor.intercept_)

        predictions = regressor.predict(x)
        if self.classification:
            threshold = (y.min() + y.max()) / 2
            loss = np.average((predictions >= threshold) != (y >= threshold), weights=w)
        else:
            loss = np.average((y - predictions) ** 2, weights=w)
        logger.debug(f"Weighted ridge regression fit with loss {loss}")
        return float(loss)


def fit_linear_model(training_set: list, sample_weights, n_features: int, classification: bool, config):
    """Fits the linear model selected by ``config.use_wlr_linear_model``.

    Returns:
        tuple: (model, loss)
    """
    model = LinearModel(n_features, classification, config.perturbation_context)
    if config.use_wlr_linear_model:
        loss = model.fit_wlrr(training_set, sample_weights)
    else:
        loss = model.fit(training_set, sample_weights)
    return model, loss
