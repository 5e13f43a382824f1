"""Adapters exposing opaque models as batch prediction providers."""
import asyncio
import logging
from typing import Any, Callable, Optional

import numpy as np
import pandas as pd

from explainability.core.model import Output, PredictionOutput, Type
from explainability.core.utils import linearize_features

logger = logging.getLogger(__name__)


class PredictionProvider:
    """An opaque model that predicts batches of inputs asynchronously.

    Implementations must return exactly one ``PredictionOutput`` per input, in the
    same order as the inputs.
    """

    async def predict_async(self, inputs: list) -> list[PredictionOutput]:
        raise NotImplementedError("Subclasses must implement predict_async")


class FunctionPredictionProvider(PredictionProvider):
    """Wraps a synchronous ``list[PredictionInput] -> list[PredictionOutput]`` function.

    The function is called in a worker thread, off the event loop.
    """

    def __init__(self, predict_fn: Callable[[list], list]):
        self.predict_fn = predict_fn

    async def predict_async(self, inputs: list) -> list[PredictionOutput]:
        outputs = await asyncio.to_thread(self.predict_fn, inputs)
        return list(outputs)


class ModelPredictionProvider(PredictionProvider):
    """Exposes an sklearn-style estimator as a prediction provider.

    Inputs are linearized and turned into a dataframe whose columns are
    ``feature_names``. Estimators with ``predict_proba`` produce one ``NUMBER`` output
    per class carrying the class probability; otherwise ``predict`` produces a single
    output.

    Args:
        model: The estimator, exposing ``predict_proba`` or ``predict``
        feature_names: Column names expected by the estimator, in linearized feature order
        output_names: Names for the produced outputs (defaults to the estimator classes)
    """

    def __init__(self, model: Any, feature_names: list[str], output_names: Optional[list[str]] = None):
        self.model = model
        self.feature_names = list(feature_names)
        self.output_names = output_names

    def _to_frame(self, inputs: list) -> pd.DataFrame:
        rows = []
        for prediction_input in inputs:
            features = linearize_features(prediction_input.features)
            rows.append([f.value for f in features])
        return pd.DataFrame(rows, columns=self.feature_names)

    async def predict_async(self, inputs: list) -> list[PredictionOutput]:
        return await asyncio.to_thread(self.predict, inputs)

    def predict(self, inputs: list) -> list[PredictionOutput]:
        """Blocking batch prediction, run off the event loop by ``predict_async``."""
        frame = self._to_frame(inputs)
        logger.debug(f"Predicting a batch of {len(frame)} inputs with {type(self.model).__name__}")
        if hasattr(self.model, "predict_proba"):
            probabilities = np.asarray(self.model.predict_proba(frame))
            names = self.output_names or [str(c) for c in getattr(self.model, "classes_", range(probabilities.shape[1]))]
            return [PredictionOutput([Output(name, Type.NUMBER, float(p), float(p)) for name, p in zip(names, row)])
                    for row in probabilities]

        predictions = np.asarray(self.model.predict(frame))
        name = self.output_names[0] if self.output_names else "prediction"
        outputs = []
        for value in predictions:
            value = value.item() if hasattr(value, "item") else value
            output_type = Type.NUMBER if isinstance(value, (int, float)) and not isinstance(value, bool) else Type.CATEGORICAL
            outputs.append(PredictionOutput([Output(name, output_type, value)]))
        return outputs
