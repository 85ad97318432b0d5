"""K-fold cross-validation over a shared LASSO penalty path."""
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from sklearn.model_selection import KFold

from boston_lasso.exceptions import CrossValidationError, LassoError
from boston_lasso.solver import (
    DEFAULT_MAX_ITER,
    DEFAULT_MIN_RATIO,
    DEFAULT_N_LAMBDA,
    DEFAULT_TOL,
    LassoPath,
    as_arrays,
    fit_path,
    lambda_sequence,
)

logger = logging.getLogger(__name__)

Penalty = Union[str, float]

LAMBDA_MIN = "lambda.min"
LAMBDA_1SE = "lambda.1se"


def assign_folds(n_obs: int, n_folds: int, seed: Optional[int] = None) -> np.ndarray:
    """Fold id (0..k-1) for every row, shuffled reproducibly from ``seed``."""
    fold_ids = np.empty(n_obs, dtype=int)
    kf = KFold(n_splits=n_folds, shuffle=True, random_state=seed)
    for fold, (_, test_idx) in enumerate(kf.split(np.zeros((n_obs, 1)))):
        fold_ids[test_idx] = fold
    return fold_ids


def _fold_error(X, y, train, test, lambdas, tol, max_iter) -> np.ndarray:
    path = fit_path(X[train], y[train], lambdas=lambdas, tol=tol, max_iter=max_iter)
    pred = X[test] @ path.beta_ + path.intercept_
    return np.mean((y[test][:, None] - pred) ** 2, axis=0)


@dataclass(frozen=True, eq=False)
class CVLassoResult:
    lambdas: np.ndarray
    cvm: np.ndarray
    cvsd: np.ndarray
    lambda_min: float
    lambda_1se: float
    path: LassoPath
    fold_ids: np.ndarray
    n_folds: int
    seed: Optional[int] = None

    @property
    def cvup(self) -> np.ndarray:
        return self.cvm + self.cvsd

    @property
    def cvlo(self) -> np.ndarray:
        return self.cvm - self.cvsd

    @property
    def index_min(self) -> int:
        return int(np.flatnonzero(self.lambdas == self.lambda_min)[0])

    @property
    def index_1se(self) -> int:
        return int(np.flatnonzero(self.lambdas == self.lambda_1se)[0])

    @property
    def feature_names(self) -> Optional[Tuple[str, ...]]:
        return self.path.feature_names

    def resolve(self, s: Penalty) -> float:
        if isinstance(s, str):
            key = s.replace("_", ".")
            if key == LAMBDA_MIN:
                return self.lambda_min
            if key == LAMBDA_1SE:
                return self.lambda_1se
            raise LassoError(f"Unknown penalty selector '{s}'; use 'lambda.min' or 'lambda.1se'")
        return float(s)

    def coef(self, s: Penalty = LAMBDA_1SE, **kwargs) -> np.ndarray:
        return self.path.coef(self.resolve(s), **kwargs)

    def nonzero_coef(self, s: Penalty = LAMBDA_1SE, **kwargs) -> Dict[str, float]:
        return self.path.nonzero_coef(self.resolve(s), **kwargs)

    def curve(self) -> pd.DataFrame:
        """Cross-validation error curve, one row per penalty."""
        return pd.DataFrame(
            {
                "lambda": self.lambdas,
                "cvm": self.cvm,
                "cvsd": self.cvsd,
                "cvup": self.cvup,
                "cvlo": self.cvlo,
                "nzero": self.path.df,
            }
        )


def select_lambdas(lambdas: np.ndarray, cvm: np.ndarray, cvsd: np.ndarray) -> Tuple[float, float]:
    """Return ``(lambda_min, lambda_1se)`` from a CV error curve.

    ``lambda_min`` minimizes ``cvm`` (ties go to the larger penalty).
    ``lambda_1se`` is the largest penalty whose ``cvm`` is within one
    standard error of that minimum.
    """
    cvmin = np.min(cvm)
    idmin = np.flatnonzero(cvm <= cvmin)
    lambda_min = float(np.max(lambdas[idmin]))
    i = int(np.flatnonzero(lambdas == lambda_min)[0])
    bound = cvm[i] + cvsd[i]
    lambda_1se = float(np.max(lambdas[cvm <= bound]))
    return lambda_min, lambda_1se


def cv_lasso(
    X,
    y,
    n_folds: int = 10,
    seed: Optional[int] = None,
    n_lambda: int = DEFAULT_N_LAMBDA,
    min_ratio: float = DEFAULT_MIN_RATIO,
    tol: float = DEFAULT_TOL,
    max_iter: int = DEFAULT_MAX_ITER,
    n_jobs: int = 1,
) -> CVLassoResult:
    """Cross-validate the LASSO and pick ``lambda_min`` / ``lambda_1se``.

    The penalty path is generated once on the full data and reused for
    every fold. Each fold is fit on the remaining rows and scored by mean
    squared error on its own rows. Fold errors are combined as a mean
    weighted by fold size, with a standard error of
    ``sqrt(weighted variance / (k - 1))``.

    Raises:
        CrossValidationError: row counts of X and y differ, ``n_folds < 2``,
            or there are not more rows than folds.
    """
    X_arr, y_arr, _ = as_arrays(X, y)
    n = X_arr.shape[0]

    if y_arr.shape[0] != n:
        raise CrossValidationError(f"X has {n} rows but y has {y_arr.shape[0]}")
    if n_folds < 2:
        raise CrossValidationError(f"n_folds must be at least 2, got {n_folds}")
    if n <= n_folds:
        raise CrossValidationError(f"Need more rows than folds: {n} rows, {n_folds} folds")

    full = fit_path(X, y_arr, n_lambda=n_lambda, min_ratio=min_ratio, tol=tol, max_iter=max_iter)
    lambdas = full.lambdas

    fold_ids = assign_folds(n, n_folds, seed)
    logger.info("Cross-validating %d penalties over %d folds (seed=%s)", lambdas.size, n_folds, seed)

    splits = [(np.flatnonzero(fold_ids != k), np.flatnonzero(fold_ids == k)) for k in range(n_folds)]
    errors = Parallel(n_jobs=n_jobs)(
        delayed(_fold_error)(X_arr, y_arr, train, test, lambdas, tol, max_iter)
        for train, test in splits
    )
    cvraw = np.vstack(errors)
    weights = np.array([test.size for _, test in splits], dtype=float)

    cvm = np.average(cvraw, axis=0, weights=weights)
    cvsd = np.sqrt(np.average((cvraw - cvm) ** 2, axis=0, weights=weights) / (n_folds - 1))

    lambda_min, lambda_1se = select_lambdas(lambdas, cvm, cvsd)
    logger.info("lambda_min=%.6g lambda_1se=%.6g", lambda_min, lambda_1se)

    return CVLassoResult(
        lambdas=lambdas,
        cvm=cvm,
        cvsd=cvsd,
        lambda_min=lambda_min,
        lambda_1se=lambda_1se,
        path=full,
        fold_ids=fold_ids,
        n_folds=n_folds,
        seed=seed,
    )
