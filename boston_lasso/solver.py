"""L1-penalized least squares over a geometric penalty path.

The objective for a given penalty ``lam`` is::

    (1 / 2n) * ||y - X @ beta - beta0||^2 + lam * ||beta||_1

Predictors are standardized to zero mean and unit (population) variance
before fitting and the coefficients are mapped back to the original scale
afterwards. The intercept is recovered from the column means and is never
penalized. Coordinate descent itself is delegated to scikit-learn.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.linear_model import Lasso, lasso_path
from sklearn.preprocessing import StandardScaler

from boston_lasso.exceptions import LassoError

logger = logging.getLogger(__name__)

INTERCEPT = "(Intercept)"

DEFAULT_N_LAMBDA = 100
DEFAULT_MIN_RATIO = 1e-4
DEFAULT_TOL = 1e-7
DEFAULT_MAX_ITER = 100000


def as_arrays(X, y=None) -> Tuple[np.ndarray, Optional[np.ndarray], Optional[Tuple[str, ...]]]:
    names = tuple(str(c) for c in X.columns) if isinstance(X, pd.DataFrame) else None
    X_arr = np.asarray(X, dtype=float)
    if X_arr.ndim != 2:
        raise LassoError(f"X must be 2-dimensional, got shape {X_arr.shape}")
    y_arr = None if y is None else np.asarray(y, dtype=float).ravel()
    return X_arr, y_arr, names


def _standardize(X: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    scaler = StandardScaler()
    Xs = scaler.fit_transform(X)
    return Xs, scaler.mean_, scaler.scale_


def lambda_max(X, y) -> float:
    """Smallest penalty at which every coefficient is zero."""
    X_arr, y_arr, _ = as_arrays(X, y)
    Xs, _, _ = _standardize(X_arr)
    yc = y_arr - y_arr.mean()
    return float(np.max(np.abs(Xs.T @ yc)) / X_arr.shape[0])


def lambda_sequence(
    X,
    y,
    n_lambda: int = DEFAULT_N_LAMBDA,
    min_ratio: float = DEFAULT_MIN_RATIO,
) -> np.ndarray:
    if n_lambda < 1:
        raise LassoError(f"n_lambda must be >= 1, got {n_lambda}")
    if not 0 < min_ratio < 1:
        raise LassoError(f"min_ratio must be in (0, 1), got {min_ratio}")
    lmax = lambda_max(X, y)
    if lmax <= 0:
        raise LassoError("Response is constant or uncorrelated with every predictor")
    return np.geomspace(lmax, lmax * min_ratio, num=n_lambda)


@dataclass(frozen=True, eq=False)
class LassoPath:
    """Coefficients of a LASSO fit at every point of a penalty path.

    ``coef_`` has shape ``(p + 1, n_lambda)``; row 0 is the intercept and
    column ``j`` belongs to ``lambdas[j]``. ``lambdas`` is strictly
    decreasing.
    """

    lambdas: np.ndarray
    coef_: np.ndarray
    dev_ratio: np.ndarray
    null_dev: float
    n_obs: int
    feature_names: Optional[Tuple[str, ...]] = None
    tol: float = DEFAULT_TOL
    max_iter: int = DEFAULT_MAX_ITER

    @property
    def n_features(self) -> int:
        return self.coef_.shape[0] - 1

    @property
    def intercept_(self) -> np.ndarray:
        return self.coef_[0]

    @property
    def beta_(self) -> np.ndarray:
        return self.coef_[1:]

    @property
    def df(self) -> np.ndarray:
        """Number of nonzero predictor coefficients at each lambda."""
        return np.count_nonzero(self.beta_, axis=0)

    def names(self) -> Tuple[str, ...]:
        if self.feature_names is not None:
            return self.feature_names
        return tuple(f"V{j + 1}" for j in range(self.n_features))

    def coef(self, s: float, exact: bool = False, X=None, y=None) -> np.ndarray:
        """Coefficient vector (intercept first) at penalty ``s``.

        Penalties on the path return that column. Anything else is linearly
        interpolated between the neighbouring path points, unless ``exact``
        is set, in which case the problem is re-solved at ``s`` on the
        training data ``X``/``y``.
        """
        s = float(s)
        if s < 0:
            raise LassoError(f"Penalty must be non-negative, got {s}")

        hit = np.flatnonzero(np.isclose(self.lambdas, s, rtol=1e-12, atol=0.0))
        if hit.size:
            return self.coef_[:, hit[0]].copy()

        if exact:
            if X is None or y is None:
                raise LassoError("exact=True needs the training X and y")
            return solve_at(X, y, s, tol=self.tol, max_iter=self.max_iter)

        lams = self.lambdas
        if s >= lams[0]:
            return self.coef_[:, 0].copy()
        if s <= lams[-1]:
            return self.coef_[:, -1].copy()

        # lams is decreasing: find i with lams[i] > s > lams[i + 1]
        i = int(np.searchsorted(-lams, -s)) - 1
        frac = (s - lams[i + 1]) / (lams[i] - lams[i + 1])
        return frac * self.coef_[:, i] + (1 - frac) * self.coef_[:, i + 1]

    def nonzero_coef(self, s: float, **kwargs) -> Dict[str, float]:
        """Sparse ``{name: weight}`` at ``s``; zero weights are left out."""
        vec = self.coef(s, **kwargs)
        out = {INTERCEPT: float(vec[0])}
        for name, w in zip(self.names(), vec[1:]):
            if w != 0:
                out[name] = float(w)
        return out

    def summary(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "Df": self.df,
                "%Dev": np.round(100 * self.dev_ratio, 2),
                "Lambda": self.lambdas,
            }
        )


def fit_path(
    X,
    y,
    lambdas: Optional[Sequence[float]] = None,
    n_lambda: int = DEFAULT_N_LAMBDA,
    min_ratio: float = DEFAULT_MIN_RATIO,
    tol: float = DEFAULT_TOL,
    max_iter: int = DEFAULT_MAX_ITER,
) -> LassoPath:
    """Fit the LASSO at every penalty of ``lambdas`` (generated when omitted)."""
    X_arr, y_arr, names = as_arrays(X, y)
    n, p = X_arr.shape
    if y_arr.shape[0] != n:
        raise LassoError(f"X has {n} rows but y has {y_arr.shape[0]}")

    if lambdas is None:
        lams = lambda_sequence(X_arr, y_arr, n_lambda=n_lambda, min_ratio=min_ratio)
    else:
        lams = np.unique(np.asarray(lambdas, dtype=float))[::-1]
        if lams.size == 0 or lams[-1] <= 0:
            raise LassoError("Penalty path must be non-empty and strictly positive")

    Xs, mean, scale = _standardize(X_arr)
    y_mean = y_arr.mean()
    yc = y_arr - y_mean

    _, coefs_std, _ = lasso_path(Xs, yc, alphas=lams, tol=tol, max_iter=max_iter)
    # every coefficient is exactly zero at or above lambda_max
    coefs_std[:, lams >= np.max(np.abs(Xs.T @ yc)) / n] = 0.0

    beta = coefs_std / scale[:, None]
    intercept = y_mean - mean @ beta
    coef = np.vstack([intercept, beta])

    resid = yc[:, None] - Xs @ coefs_std
    null_dev = float(yc @ yc)
    rss = np.einsum("ij,ij->j", resid, resid)
    dev_ratio = 1.0 - rss / null_dev if null_dev > 0 else np.zeros_like(rss)

    logger.debug("Fitted %d penalties on %d rows x %d predictors", lams.size, n, p)
    return LassoPath(
        lambdas=lams,
        coef_=coef,
        dev_ratio=dev_ratio,
        null_dev=null_dev,
        n_obs=n,
        feature_names=names,
        tol=tol,
        max_iter=max_iter,
    )


def solve_at(
    X,
    y,
    lam: float,
    tol: float = DEFAULT_TOL,
    max_iter: int = DEFAULT_MAX_ITER,
) -> np.ndarray:
    """Solve at a single penalty; returns intercept followed by coefficients."""
    if lam <= 0:
        raise LassoError(f"Penalty must be positive, got {lam}")

    X_arr, y_arr, _ = as_arrays(X, y)
    Xs, mean, scale = _standardize(X_arr)
    y_mean = y_arr.mean()

    model = Lasso(alpha=lam, fit_intercept=False, tol=tol, max_iter=max_iter)
    model.fit(Xs, y_arr - y_mean)

    beta = model.coef_ / scale
    return np.concatenate([[y_mean - mean @ beta], beta])
