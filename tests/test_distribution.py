"""Tests for background data distributions and prediction providers"""
from os.path import dirname, abspath
import asyncio
import sys
import threading

import numpy as np
import pandas as pd
import pytest
from sklearn.linear_model import LinearRegression, LogisticRegression

parent = dirname(dirname(abspath(__file__)))
sys.path.append(parent)

from explainability.core.distribution import DataDistribution, bootstrap_feature_distributions  # noqa: E402
from explainability.core.model import (Feature, Output, PerturbationContext, PredictionInput,  # noqa: E402
                                       PredictionOutput, Type)
from explainability.core.providers import (FunctionPredictionProvider, ModelPredictionProvider,  # noqa: E402
                                           PredictionProvider)
from explainability.lime.high_score_zones import (HighScoreNumericFeatureZones,  # noqa: E402
                                                  get_high_score_feature_zones)


@pytest.fixture
def frame():
    return pd.DataFrame({
        "age": [25, 40, 61, 33],
        "smoker": [True, False, False, True],
        "city": ["Rome", "Oslo", "Rome", "Lima"],
    })


def test_from_dataframe_maps_column_types(frame):
    distribution = DataDistribution.from_dataframe(frame)

    assert len(distribution.inputs) == 4
    age, smoker, city = distribution.inputs[0].features
    assert (age.type, age.value) == (Type.NUMBER, 25)
    assert (smoker.type, smoker.value) == (Type.BOOLEAN, True)
    assert city.type == Type.CATEGORICAL
    assert set(city.domain) == {"Rome", "Oslo", "Lima"}


def test_feature_distributions_follow_linearized_positions(frame):
    distributions = DataDistribution.from_dataframe(frame).feature_distributions()

    assert [d.feature.name for d in distributions] == ["age", "smoker", "city"]
    assert distributions[0].min == 25 and distributions[0].max == 61


def test_sample_returns_distinct_inputs(frame):
    distribution = DataDistribution.from_dataframe(frame)
    sampled = distribution.sample(3, PerturbationContext(seed=0))

    assert len(sampled) == 3
    assert len(set(sampled)) == 3


def test_bootstrap_only_covers_numeric_features(frame):
    distribution = DataDistribution.from_dataframe(frame)

    bootstrapped = bootstrap_feature_distributions(distribution, PerturbationContext(seed=0), 50, 2, 4, {})

    assert set(bootstrapped) == {"age"}
    assert len(bootstrapped["age"].values) == 50
    assert 25 <= bootstrapped["age"].min <= bootstrapped["age"].max <= 61


def test_bootstrap_prefers_high_score_zones(frame):
    distribution = DataDistribution.from_dataframe(frame)
    zones = {"age": HighScoreNumericFeatureZones([61.0], 1.0)}

    bootstrapped = bootstrap_feature_distributions(distribution, PerturbationContext(seed=0), 20, 1, 40, zones)

    assert set(bootstrapped["age"].values) == {61.0}


def test_high_score_zones_keep_best_scoring_inputs():
    inputs = [PredictionInput([Feature.number("x", float(v))]) for v in [1, 2, 8, 9]]

    class ConfidentAboveFive(PredictionProvider):
        async def predict_async(self, batch):
            return [PredictionOutput([Output("y", Type.NUMBER, 1.0, 0.9 if i.features[0].value > 5 else 0.1)])
                    for i in batch]

    zones = asyncio.run(get_high_score_feature_zones(DataDistribution(inputs), ConfidentAboveFive(),
                                                     [Feature.number("x", 5.0)], 10))

    assert zones["x"].test(8.2)
    assert not zones["x"].test(1.0)


def test_model_provider_with_probabilities():
    x = pd.DataFrame({"a": [0.0, 1.0, 2.0, 3.0], "b": [1.0, 1.0, 0.0, 0.0]})
    model = LogisticRegression().fit(x, [0, 0, 1, 1])
    provider = ModelPredictionProvider(model, ["a", "b"])
    inputs = [PredictionInput([Feature.number("a", 0.0), Feature.number("b", 1.0)])]

    outputs = asyncio.run(provider.predict_async(inputs))

    assert [o.name for o in outputs[0].outputs] == ["0", "1"]
    assert sum(o.value for o in outputs[0].outputs) == pytest.approx(1.0)
    assert outputs[0].outputs[0].confidence == outputs[0].outputs[0].value


def test_model_provider_with_predictions():
    x = pd.DataFrame({"a": [0.0, 1.0, 2.0]})
    model = LinearRegression().fit(x, np.array([1.0, 3.0, 5.0]))
    provider = ModelPredictionProvider(model, ["a"], output_names=["score"])

    outputs = asyncio.run(provider.predict_async([PredictionInput([Feature.number("a", 4.0)])]))

    assert outputs[0].outputs[0].name == "score"
    assert outputs[0].outputs[0].type == Type.NUMBER
    assert outputs[0].outputs[0].value == pytest.approx(9.0)


def test_function_provider_predicts_off_the_event_loop():
    threads = []

    def predict(inputs):
        threads.append(threading.current_thread())
        return [PredictionOutput([Output("y", Type.NUMBER, 1.0)]) for _ in inputs]

    provider = FunctionPredictionProvider(predict)

    outputs = asyncio.run(provider.predict_async([PredictionInput([Feature.number("x", 1.0)])] * 3))

    assert len(outputs) == 3
    assert threads and threads[0] is not threading.main_thread()


def test_model_provider_predicts_off_the_event_loop():
    class Recording:
        def __init__(self):
            self.threads = []

        def predict(self, frame):
            self.threads.append(threading.current_thread())
            return np.zeros(len(frame))

    model = Recording()
    provider = ModelPredictionProvider(model, ["a"])

    asyncio.run(provider.predict_async([PredictionInput([Feature.number("a", 1.0)])]))

    assert model.threads[0] is not threading.main_thread()
