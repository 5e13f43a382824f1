"""Errors raised while computing local explanations."""


class LocalExplanationError(Exception):
    """Base class for failures of a local explanation request."""


class EmptyInputError(LocalExplanationError):
    """The prediction to explain has no input features."""

    def __init__(self, message: str = "cannot explain a prediction whose input is empty"):
        super().__init__(message)


class LinearizationError(LocalExplanationError):
    """Flattening the (possibly nested) input features produced no features."""

    def __init__(self, message: str = "input features linearization failed"):
        super().__init__(message)


class DatasetNotSeparableError(LocalExplanationError):
    """The perturbed dataset for an output cannot support a meaningful linear fit.

    Args:
        output: The output whose perturbed dataset is not separable
        class_balance: Mapping from encoded label to the number of samples with that label
    """

    def __init__(self, output, class_balance: dict):
        self.output = output
        self.class_balance = dict(class_balance)
        message = (f"Cannot separate dataset for output '{output.name}' of type '{output.type.value}' "
                   f"with value '{output.value}' (classes balance: {self.class_balance})")
        super().__init__(message)
