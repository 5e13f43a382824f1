"""Configuration of the LIME explainer."""
from dataclasses import dataclass, field, replace

from explainability.core.distribution import DataDistribution
from explainability.core.model import PerturbationContext

DEFAULT_NO_OF_SAMPLES = 300
DEFAULT_NO_OF_RETRIES = 3
DEFAULT_NO_OF_FEATURES = 6
DEFAULT_SEPARABLE_DATASET_RATIO = 0.9
DEFAULT_PROXIMITY_KERNEL_WIDTH = 0.5
DEFAULT_PROXIMITY_THRESHOLD = 0.83
DEFAULT_PROXIMITY_FILTERED_DATASET_MINIMUM = 10
DEFAULT_ENCODING_CLUSTER_THRESHOLD = 0.07
DEFAULT_ENCODING_GAUSSIAN_FILTER_WIDTH = 0.07
DEFAULT_BOOTSTRAP_INPUTS = 100


@dataclass(frozen=True)
class EncodingParams:
    """Parameters of the numeric feature clustering done by the dataset encoder."""
    cluster_threshold: float = DEFAULT_ENCODING_CLUSTER_THRESHOLD
    gaussian_filter_width: float = DEFAULT_ENCODING_GAUSSIAN_FILTER_WIDTH


@dataclass(frozen=True)
class LimeConfig:
    """Immutable settings of one LIME explanation.

    "Updating" a config (e.g. when the explainer retries with more samples) always
    produces a new value via the ``with_*`` methods.

    Args:
        no_of_samples: Number of perturbed samples, ``0`` means ``2 ** number of features``
        no_of_retries: How many times to retry with adjusted sampling on inseparable datasets
        no_of_features: Number of features kept when feature selection is enabled
        separable_dataset_ratio: Maximum share of the majority class for a dataset to be separable
        proximity_kernel_width: Width of the proximity kernel (scaled by sqrt of the feature count)
        proximity_threshold: Minimum sample weight kept by the proximity filter
        proximity_filtered_dataset_minimum: Minimum samples kept by the proximity filter,
                                            as a count (>= 1) or a fraction of the dataset (< 1)
        encoding_cluster_threshold: Minimum gaussian similarity for a number to encode as 1
        encoding_gaussian_filter_width: Width of the gaussian filter used to encode numbers
        adapt_dataset_variance: Whether retries increase perturbation size and sample count
        penalize_balance_sparse: Whether to penalize features whose sparse encoding is balanced
        proximity_filter: Whether to drop samples far from the target input
        filter_interpretable: Whether to measure proximity in the encoded space
        feature_selection: Whether to select ``no_of_features`` features before fitting
        normalize_weights: Whether to min-max normalize the fitted weights
        use_wlr_linear_model: Whether to fit a weighted ridge regression instead of a perceptron
        track_counterfactuals: Whether to return the perturbed samples as counterfactual candidates
        high_score_feature_zones: Whether to bias numeric sampling towards high score zones
        bootstrap_inputs: Maximum number of background inputs used to bootstrap distributions
        perturbation_context: Random source and perturbation size
        data_distribution: Optional background data distribution
    """
    no_of_samples: int = DEFAULT_NO_OF_SAMPLES
    no_of_retries: int = DEFAULT_NO_OF_RETRIES
    no_of_features: int = DEFAULT_NO_OF_FEATURES
    separable_dataset_ratio: float = DEFAULT_SEPARABLE_DATASET_RATIO
    proximity_kernel_width: float = DEFAULT_PROXIMITY_KERNEL_WIDTH
    proximity_threshold: float = DEFAULT_PROXIMITY_THRESHOLD
    proximity_filtered_dataset_minimum: float = DEFAULT_PROXIMITY_FILTERED_DATASET_MINIMUM
    encoding_cluster_threshold: float = DEFAULT_ENCODING_CLUSTER_THRESHOLD
    encoding_gaussian_filter_width: float = DEFAULT_ENCODING_GAUSSIAN_FILTER_WIDTH
    adapt_dataset_variance: bool = True
    penalize_balance_sparse: bool = True
    proximity_filter: bool = False
    filter_interpretable: bool = False
    feature_selection: bool = True
    normalize_weights: bool = False
    use_wlr_linear_model: bool = True
    track_counterfactuals: bool = False
    high_score_feature_zones: bool = True
    bootstrap_inputs: int = DEFAULT_BOOTSTRAP_INPUTS
    perturbation_context: PerturbationContext = field(default_factory=PerturbationContext)
    data_distribution: DataDistribution = field(default_factory=DataDistribution, compare=False)

    def __post_init__(self):
        if self.no_of_samples < 0:
            raise ValueError(f"Number of samples must be >= 0, got {self.no_of_samples}")
        if self.no_of_retries <= 0:
            raise ValueError(f"Number of retries must be > 0, got {self.no_of_retries}")
        if self.no_of_features <= 0:
            raise ValueError(f"Number of features must be > 0, got {self.no_of_features}")
        if not 0 < self.separable_dataset_ratio <= 1:
            raise ValueError(f"Separable dataset ratio must be in (0, 1], got {self.separable_dataset_ratio}")
        if self.proximity_kernel_width <= 0:
            raise ValueError(f"Proximity kernel width must be > 0, got {self.proximity_kernel_width}")
        if not 0 <= self.proximity_threshold <= 1:
            raise ValueError(f"Proximity threshold must be in [0, 1], got {self.proximity_threshold}")
        if self.proximity_filtered_dataset_minimum < 0:
            raise ValueError("Proximity filtered dataset minimum must be >= 0, "
                             f"got {self.proximity_filtered_dataset_minimum}")
        if self.encoding_gaussian_filter_width <= 0:
            raise ValueError("Encoding gaussian filter width must be > 0, "
                             f"got {self.encoding_gaussian_filter_width}")
        if self.bootstrap_inputs <= 0:
            raise ValueError(f"Number of bootstrap inputs must be > 0, got {self.bootstrap_inputs}")

    @property
    def encoding_params(self) -> EncodingParams:
        return EncodingParams(self.encoding_cluster_threshold, self.encoding_gaussian_filter_width)

    def with_samples(self, no_of_samples: int) -> "LimeConfig":
        return replace(self, no_of_samples=no_of_samples)

    def with_perturbation_context(self, perturbation_context: PerturbationContext) -> "LimeConfig":
        return replace(self, perturbation_context=perturbation_context)

    def with_data_distribution(self, data_distribution: DataDistribution) -> "LimeConfig":
        return replace(self, data_distribution=data_distribution)

    @classmethod
    def from_settings(cls, settings, data_distribution: DataDistribution = None) -> "LimeConfig":
        """Builds a config from a settings class such as ``config.settings.Config``."""
        seed = int(settings.LIME_SEED) if settings.LIME_SEED not in (None, '') else None
        return cls(no_of_samples=settings.LIME_NO_OF_SAMPLES,
                   no_of_retries=settings.LIME_NO_OF_RETRIES,
                   no_of_features=settings.LIME_NO_OF_FEATURES,
                   separable_dataset_ratio=settings.LIME_SEPARABLE_DATASET_RATIO,
                   proximity_kernel_width=settings.LIME_PROXIMITY_KERNEL_WIDTH,
                   proximity_threshold=settings.LIME_PROXIMITY_THRESHOLD,
                   proximity_filtered_dataset_minimum=settings.LIME_PROXIMITY_FILTERED_DATASET_MINIMUM,
                   encoding_cluster_threshold=settings.LIME_ENCODING_CLUSTER_THRESHOLD,
                   encoding_gaussian_filter_width=settings.LIME_ENCODING_GAUSSIAN_FILTER_WIDTH,
                   adapt_dataset_variance=settings.LIME_ADAPT_DATASET_VARIANCE,
                   penalize_balance_sparse=settings.LIME_PENALIZE_BALANCE_SPARSE,
                   proximity_filter=settings.LIME_PROXIMITY_FILTER,
                   filter_interpretable=settings.LIME_FILTER_INTERPRETABLE,
                   feature_selection=settings.LIME_FEATURE_SELECTION,
                   normalize_weights=settings.LIME_NORMALIZE_WEIGHTS,
                   use_wlr_linear_model=settings.LIME_USE_WLR_MODEL,
                   track_counterfactuals=settings.LIME_TRACK_COUNTERFACTUALS,
                   high_score_feature_zones=settings.LIME_HIGH_SCORE_FEATURE_ZONES,
                   bootstrap_inputs=settings.LIME_BOOTSTRAP_INPUTS,
                   perturbation_context=PerturbationContext(seed=seed),
                   data_distribution=data_distribution or DataDistribution())
