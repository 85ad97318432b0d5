from typing import Optional, Union

import numpy as np
import pandas as pd

from boston_lasso.cv import LAMBDA_MIN, CVLassoResult, Penalty
from boston_lasso.exceptions import LassoError, SchemaMismatchError
from boston_lasso.solver import LassoPath

Model = Union[CVLassoResult, LassoPath]


def check_schema(X: pd.DataFrame, feature_names, target_col: Optional[str] = "medv") -> pd.DataFrame:
    """Drop a same-named response column and require the training columns, in order."""
    if target_col is not None and target_col in X.columns:
        X = X.drop(columns=[target_col])

    cols = [str(c) for c in X.columns]
    expected = list(feature_names)
    if cols == expected:
        return X

    missing = [c for c in expected if c not in cols]
    extra = [c for c in cols if c not in expected]
    if missing or extra:
        raise SchemaMismatchError(f"Missing columns: {missing}; unexpected columns: {extra}")
    raise SchemaMismatchError(f"Column order {cols} does not match training order {expected}")


def predict(model: Model, X, s: Optional[Penalty] = None, target_col: Optional[str] = "medv") -> np.ndarray:
    """Predict the response for every row of ``X`` at penalty ``s``.

    ``s`` defaults to ``lambda.min`` for a cross-validated model; a bare
    ``LassoPath`` needs an explicit numeric penalty.
    """
    if isinstance(model, CVLassoResult):
        lam = model.resolve(LAMBDA_MIN if s is None else s)
        path = model.path
    else:
        if s is None or isinstance(s, str):
            raise LassoError("Predicting from a LassoPath needs a numeric penalty s")
        lam = float(s)
        path = model

    names = path.feature_names
    if isinstance(X, pd.Series):
        X = X.to_frame().T
    if isinstance(X, pd.DataFrame):
        if names is not None:
            X = check_schema(X, names, target_col=target_col)
        elif target_col is not None and target_col in X.columns:
            X = X.drop(columns=[target_col])

    X_arr = np.asarray(X, dtype=float)
    if X_arr.ndim == 1:
        X_arr = X_arr.reshape(1, -1)
    if X_arr.shape[1] != path.n_features:
        raise SchemaMismatchError(
            f"Expected {path.n_features} predictor columns, got {X_arr.shape[1]}"
        )

    missing = np.isnan(X_arr)
    if missing.any():
        cols = list(X.columns) if isinstance(X, pd.DataFrame) else list(range(X_arr.shape[1]))
        bad_cols = [str(cols[j]) for j in np.flatnonzero(missing.any(axis=0))]
        bad_rows = np.flatnonzero(missing.any(axis=1)).tolist()
        raise SchemaMismatchError(f"Missing values in columns {bad_cols} at rows {bad_rows}")

    coef = path.coef(lam)
    return X_arr @ coef[1:] + coef[0]
