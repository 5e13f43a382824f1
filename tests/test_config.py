"""Tests for the LIME configuration"""
from os.path import dirname, abspath
import sys

import pytest

parent = dirname(dirname(abspath(__file__)))
sys.path.append(parent)

from config import settings  # noqa: E402
from explainability.core.distribution import DataDistribution  # noqa: E402
from explainability.core.model import PerturbationContext  # noqa: E402
from explainability.lime.config import LimeConfig  # noqa: E402


def test_defaults():
    config = LimeConfig()

    assert config.no_of_samples == 300
    assert config.no_of_retries == 3
    assert config.separable_dataset_ratio == 0.9
    assert config.proximity_threshold == pytest.approx(0.83)
    assert config.proximity_kernel_width == pytest.approx(0.5)
    assert config.encoding_params.cluster_threshold == pytest.approx(0.07)
    assert config.encoding_params.gaussian_filter_width == pytest.approx(0.07)
    assert config.normalize_weights is False
    assert config.use_wlr_linear_model is True
    assert config.data_distribution.is_empty()


@pytest.mark.parametrize("kwargs", [
    {"no_of_samples": -1},
    {"no_of_retries": 0},
    {"no_of_features": 0},
    {"separable_dataset_ratio": 0.0},
    {"separable_dataset_ratio": 1.5},
    {"proximity_kernel_width": 0.0},
    {"proximity_threshold": 1.2},
    {"proximity_filtered_dataset_minimum": -1},
    {"encoding_gaussian_filter_width": 0.0},
    {"bootstrap_inputs": 0},
])
def test_invalid_values_are_rejected(kwargs):
    with pytest.raises(ValueError):
        LimeConfig(**kwargs)


def test_updates_produce_new_configs():
    config = LimeConfig(no_of_samples=10)
    context = PerturbationContext(seed=1, no_of_perturbations=2)

    updated = config.with_samples(20).with_perturbation_context(context)

    assert config.no_of_samples == 10
    assert updated.no_of_samples == 20
    assert updated.perturbation_context.no_of_perturbations == 2
    with pytest.raises(AttributeError):
        config.no_of_samples = 5


def test_from_settings():
    distribution = DataDistribution()
    config = LimeConfig.from_settings(settings.config['testing'], distribution)

    assert config.no_of_samples == 100
    assert config.perturbation_context.seed == 0
    assert config.data_distribution is distribution


def test_from_settings_without_seed(monkeypatch):
    monkeypatch.setattr(settings.Config, "LIME_SEED", None)
    assert LimeConfig.from_settings(settings.Config).perturbation_context.seed is None
