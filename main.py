#!/usr/bin/env python3
"""
Explains a single prediction of a pickled tabular model with LIME.

Pipeline: dataset row → perturbations → model batch prediction → surrogate linear model → saliency
"""
import asyncio
import os
import logging
import pickle

import pandas as pd

from config.settings import config
from explainability.core.distribution import DataDistribution
from explainability.core.model import Prediction
from explainability.core.providers import ModelPredictionProvider
from explainability.lime.config import LimeConfig
from explainability.lime.explainer import LimeExplainer

settings = config[os.getenv('APP_ENV', 'default')]

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
                    format='%(asctime)s %(levelname)s %(name)s: %(message)s')
logger = logging.getLogger(__name__)


def load_dataset_and_model():
    logger.info("Loading dataset and model...")
    dataset = pd.read_csv(settings.DATASET_PATH)
    with open(settings.MODEL_PATH, 'rb') as f:
        model = pickle.load(f)
    if settings.TARGET_COLUMN in dataset.columns:
        dataset = dataset.drop(columns=[settings.TARGET_COLUMN])
    return dataset, model


def explain_row(dataset, model, row_index):
    """Explains the model prediction for ``dataset.iloc[row_index]``.

    Args:
        dataset: Feature columns only, in the order the model expects
        model: An sklearn-style estimator
        row_index: Position of the row to explain
    Returns:
        SaliencyResults: One saliency per model output
    """
    distribution = DataDistribution.from_dataframe(dataset)
    provider = ModelPredictionProvider(model, list(dataset.columns))
    lime_config = LimeConfig.from_settings(settings, distribution)

    target_input = distribution.inputs[row_index]
    target_output = asyncio.run(provider.predict_async([target_input]))[0]
    return LimeExplainer(lime_config).explain(Prediction(target_input, target_output), provider)


if __name__ == "__main__":
    dataset, model = load_dataset_and_model()
    logger.info(f"Ready! Dataset: {len(dataset)} instances, Model: {type(model).__name__}")

    results = explain_row(dataset, model, settings.EXPLAIN_ROW)
    for output_name, saliency in results.saliencies.items():
        print(f"\nOutput '{output_name}' (value {saliency.output.value}):")
        top_features = saliency.get_top_features(settings.LIME_NO_OF_FEATURES)
        if not top_features:
            print("  no explanation could be fitted")
        for importance in top_features:
            print(f"  {importance.feature.name:<30} {importance.score:+.4f}")
