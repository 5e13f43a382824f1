"""Data model shared by the explainers.

Features and outputs are tagged values: the ``Type`` tag decides how a value is
linearized, perturbed, encoded and compared, so the code that consumes them looks
functions up by tag instead of inspecting Python types at runtime.
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, NamedTuple, Optional

import torch


class Type(Enum):
    """The closed set of value tags a feature or output can carry."""
    NUMBER = "number"
    BOOLEAN = "boolean"
    CATEGORICAL = "categorical"
    VECTOR = "vector"
    COMPOSITE = "composite"
    UNDEFINED = "undefined"


@dataclass(frozen=True)
class Feature:
    """A named, typed input value.

    Equality only considers name, type and value; ``domain`` (the admissible values of
    a categorical feature) is metadata used when perturbing.
    """
    name: str
    type: Type
    value: Any
    domain: Optional[tuple] = field(default=None, compare=False)

    def __post_init__(self):
        # sequences are stored as tuples so that features stay hashable
        if self.type == Type.VECTOR and self.value is not None:
            object.__setattr__(self, "value", tuple(float(v) for v in self.value))
        elif self.type == Type.COMPOSITE and self.value is not None:
            object.__setattr__(self, "value", tuple(self.value))
        if self.domain is not None:
            object.__setattr__(self, "domain", tuple(self.domain))

    @classmethod
    def number(cls, name: str, value) -> "Feature":
        return cls(name, Type.NUMBER, value)

    @classmethod
    def boolean(cls, name: str, value: bool) -> "Feature":
        return cls(name, Type.BOOLEAN, value)

    @classmethod
    def categorical(cls, name: str, value, domain=None) -> "Feature":
        return cls(name, Type.CATEGORICAL, value, domain)

    @classmethod
    def vector(cls, name: str, values) -> "Feature":
        return cls(name, Type.VECTOR, values)

    @classmethod
    def composite(cls, name: str, features) -> "Feature":
        return cls(name, Type.COMPOSITE, features)

    def with_value(self, value) -> "Feature":
        """Returns a copy of this feature carrying a different value."""
        return replace(self, value=value)


@dataclass(frozen=True)
class Output:
    """One dimension of a model prediction."""
    name: str
    type: Type
    value: Any
    confidence: float = 1.0


@dataclass(frozen=True)
class PredictionInput:
    features: tuple

    def __post_init__(self):
        object.__setattr__(self, "features", tuple(self.features))


@dataclass(frozen=True)
class PredictionOutput:
    outputs: tuple

    def __post_init__(self):
        object.__setattr__(self, "outputs", tuple(self.outputs))


@dataclass(frozen=True)
class Prediction:
    """A model input together with the output the model produced for it."""
    input: PredictionInput
    output: PredictionOutput


@dataclass(frozen=True)
class FeatureImportance:
    feature: Feature
    score: float


@dataclass(frozen=True)
class Saliency:
    """Feature importance scores explaining one output."""
    output: Output
    per_feature_importance: tuple

    def __post_init__(self):
        object.__setattr__(self, "per_feature_importance", tuple(self.per_feature_importance))

    def get_top_features(self, n: int) -> list[FeatureImportance]:
        """Returns the ``n`` importances with the largest absolute score.

        Ties keep the original feature order.
        """
        ranked = sorted(self.per_feature_importance, key=lambda fi: abs(fi.score), reverse=True)
        return ranked[:n]


class SourceExplainer(Enum):
    LIME = "lime"


class CounterfactualCandidate(NamedTuple):
    """A perturbed sample kept as a byproduct of the explanation."""
    input: PredictionInput
    output: PredictionOutput
    preservation_mask: tuple


@dataclass(frozen=True)
class SaliencyResults:
    """The outcome of a saliency explanation, keyed by output name."""
    saliencies: dict
    available_counterfactuals: list = field(default_factory=list)
    source_explainer: SourceExplainer = SourceExplainer.LIME

    def get(self, output_name: str) -> Optional[Saliency]:
        return self.saliencies.get(output_name)


@dataclass(frozen=True)
class PerturbationContext:
    """Owns the random generator used by one explanation attempt.

    When a seed is given the generator is (re)seeded on construction, so copies made
    with ``with_no_of_perturbations`` restart the same random sequence. The context is
    not safe for concurrent use.

    Args:
        seed: Optional seed for reproducible explanations
        generator: The torch generator to draw from, a fresh one is created if missing
        no_of_perturbations: How many features are altered in each perturbed sample
        standard_deviation: Relative spread of numeric perturbations (scaled by |value|)
    """
    seed: Optional[int] = None
    generator: Optional[torch.Generator] = field(default=None, compare=False, repr=False)
    no_of_perturbations: int = 1
    standard_deviation: float = 1.0

    def __post_init__(self):
        generator = self.generator if self.generator is not None else torch.Generator()
        if self.seed is not None:
            generator.manual_seed(self.seed)
        elif self.generator is None:
            generator.seed()
        object.__setattr__(self, "generator", generator)

    def with_no_of_perturbations(self, no_of_perturbations: int) -> "PerturbationContext":
        return replace(self, no_of_perturbations=no_of_perturbations)

    def fresh(self) -> "PerturbationContext":
        """Returns a copy owning a new generator, seeded again when a seed is set."""
        return replace(self, generator=None)

    def next_gaussian(self) -> float:
        return torch.randn(1, generator=self.generator, dtype=torch.float64).item()

    def next_double(self) -> float:
        return torch.rand(1, generator=self.generator, dtype=torch.float64).item()

    def next_int(self, bound: int) -> int:
        return int(torch.randint(0, bound, (1,), generator=self.generator).item())

    def permutation(self, n: int) -> list[int]:
        return torch.randperm(n, generator=self.generator).tolist()

    def normal(self, size: int, std: float) -> torch.Tensor:
        return torch.randn(size, generator=self.generator, dtype=torch.float64) * std

    def bernoulli(self, size: int, probability: float) -> torch.Tensor:
        probabilities = torch.full((size,), probability, dtype=torch.float64)
        return torch.bernoulli(probabilities, generator=self.generator)
