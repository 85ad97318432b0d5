class LassoError(ValueError):
    """Base class for errors raised by boston_lasso."""


class DatasetError(LassoError):
    """The input table does not have the expected schema."""


class CrossValidationError(LassoError):
    """Degenerate cross-validation input (bad fold count, mismatched rows)."""


class SchemaMismatchError(LassoError):
    """Prediction data does not match the training columns."""
