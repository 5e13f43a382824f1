"""Encoding of perturbed inputs/outputs into a training set for the linear model.

Every feature is encoded as a 0/1 value telling whether the perturbed value is still
"the same" as the value in the input to explain. Numbers are first min-max scaled and
passed through a gaussian filter centred on the target value, so that values close
enough to the target cluster with it.
"""
import logging
from typing import NamedTuple

import numpy as np

from explainability.core.model import Output, Type
from explainability.core.utils import gaussian_kernel, linearize_features
from explainability.lime.config import EncodingParams

logger = logging.getLogger(__name__)


class EncodedSample(NamedTuple):
    features: np.ndarray
    label: float


def output_to_label(output: Output, target_value) -> float:
    """Maps a perturbed output to the label used for training.

    Numbers are used as they are; any other output is 1 when its value equals the
    target value (two missing values count as equal) and 0 otherwise.
    """
    if output.type == Type.NUMBER:
        return float(output.value) if output.value is not None else float("nan")
    null_values = output.value is None and target_value is None
    equality_check = output.value is not None and str(output.value) == str(target_value)
    return 1.0 if null_values or equality_check else 0.0


def _encode_numbers(target_value, values: list, params: EncodingParams) -> np.ndarray:
    if target_value is None:
        return np.array([1.0 if v is None else 0.0 for v in values])
    # include the target number in the feature scaling
    all_values = np.array([np.nan if v is None else float(v) for v in values] + [float(target_value)])
    present = all_values[~np.isnan(all_values)]
    min_v, max_v = present.min(), present.max()
    if max_v == min_v:
        scaled = np.where(np.isnan(all_values), np.nan, 0.0)
    else:
        scaled = (all_values - min_v) / (max_v - min_v)
    similarity = gaussian_kernel(scaled[:-1], scaled[-1], params.gaussian_filter_width)
    return np.where(similarity >= params.cluster_threshold, 1.0, 0.0)


def _encode_equality(target_value, values: list, params: EncodingParams) -> np.ndarray:
    return np.array([1.0 if v == target_value else 0.0 for v in values])


ENCODERS = {
    Type.NUMBER: _encode_numbers,
}


class DatasetEncoder:
    """Encodes perturbed samples with respect to a set of target features and a target output.

    Args:
        perturbed_inputs: The perturbed inputs (possibly nested, they get linearized)
        perturbed_outputs: The output being explained, for each perturbed input
        target_features: The linearized features to encode (possibly a selection)
        target_output: The output being explained, as predicted for the target input
        params: Numeric encoding parameters
    """

    def __init__(self, perturbed_inputs: list, perturbed_outputs: list, target_features: list,
                 target_output: Output, params: EncodingParams):
        assert len(perturbed_inputs) == len(perturbed_outputs), \
            f"Got {len(perturbed_inputs)} perturbed inputs but {len(perturbed_outputs)} outputs"
        self.perturbed_inputs = perturbed_inputs
        self.perturbed_outputs = perturbed_outputs
        self.target_features = list(target_features)
        self.target_output = target_output
        self.params = params

    def _columns(self) -> list[list]:
        linearized = []
        for perturbed_input in self.perturbed_inputs:
            by_name = {f.name: f.value for f in linearize_features(perturbed_input.features)}
            missing = [f.name for f in self.target_features if f.name not in by_name]
            assert not missing, f"Perturbed input is missing linearized features {missing}"
            linearized.append(by_name)
        return [[sample[f.name] for sample in linearized] for f in self.target_features]

    def get_encoded_training_set(self) -> list[EncodedSample]:
        """Builds one (feature vector, label) pair per perturbed sample."""
        if not self.perturbed_inputs:
            return []
        n_samples = len(self.perturbed_inputs)
        matrix = np.zeros((n_samples, len(self.target_features)))
        for j, (target_feature, values) in enumerate(zip(self.target_features, self._columns())):
            encode = ENCODERS.get(target_feature.type, _encode_equality)
            matrix[:, j] = encode(target_feature.value, values, self.params)

        target_value = self.target_output.value
        labels = [output_to_label(o, target_value) for o in self.perturbed_outputs]
        logger.debug(f"Encoded {n_samples} samples over {len(self.target_features)} features")
        return [EncodedSample(matrix[i], labels[i]) for i in range(n_samples)]
