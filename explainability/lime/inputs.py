"""Per-output training data of one LIME attempt."""
from dataclasses import dataclass

from explainability.core.model import Output


@dataclass(frozen=True)
class LimeInputs:
    """Everything needed to fit the surrogate model of one output.

    Args:
        classification: Whether the perturbed outputs form exactly two classes
        target_features: The linearized features of the input to explain
        target_output: The output to explain
        perturbed_inputs: The perturbed inputs of the attempt
        preservation_masks: Which features each perturbed input preserved
        perturbed_outputs_full: The full model prediction for each perturbed input
        perturbed_outputs: The output to explain, for each perturbed input
    """
    classification: bool
    target_features: list
    target_output: Output
    perturbed_inputs: list
    preservation_masks: list
    perturbed_outputs_full: list
    perturbed_outputs: list
