import numpy as np
import pandas as pd
import pytest

from boston_lasso.data import BOSTON_COLUMNS, split_xy


def make_boston_like(n_rows=506, seed=0):
    """Offline stand-in for the housing table: same columns, same shape."""
    rng = np.random.default_rng(seed)
    predictors = BOSTON_COLUMNS[:-1]
    X = rng.normal(size=(n_rows, len(predictors)))
    X[:, predictors.index("chas")] = rng.integers(0, 2, size=n_rows)
    X[:, predictors.index("rad")] = rng.integers(1, 25, size=n_rows)

    beta = np.zeros(len(predictors))
    beta[predictors.index("rm")] = 4.0
    beta[predictors.index("lstat")] = -3.0
    beta[predictors.index("ptratio")] = -1.5
    beta[predictors.index("chas")] = 2.0
    beta[predictors.index("nox")] = -0.5

    medv = 22.5 + X @ beta + rng.normal(scale=2.0, size=n_rows)
    df = pd.DataFrame(X, columns=predictors)
    df["medv"] = medv
    return df


def make_orthogonal(n_rows=200, n_features=6, seed=1):
    """Design whose standardized columns are exactly orthogonal."""
    rng = np.random.default_rng(seed)
    A = rng.normal(size=(n_rows, n_features))
    A -= A.mean(axis=0)
    Q, _ = np.linalg.qr(A)
    X = Q * np.sqrt(n_rows) * np.arange(1, n_features + 1) + 10.0
    beta = np.linspace(3.0, 0.5, n_features)
    y = 5.0 + Q @ beta * np.sqrt(n_rows) + rng.normal(scale=0.5, size=n_rows)
    cols = [f"f{j}" for j in range(n_features)]
    return pd.DataFrame(X, columns=cols), pd.Series(y, name="target")


@pytest.fixture(scope="session")
def boston_df():
    return make_boston_like()


@pytest.fixture(scope="session")
def boston_xy(boston_df):
    return split_xy(boston_df, "medv")


@pytest.fixture(scope="session")
def orthogonal_xy():
    return make_orthogonal()


@pytest.fixture(scope="session")
def cv_model(boston_xy):
    from boston_lasso.cv import cv_lasso

    X, y = boston_xy
    return cv_lasso(X, y, n_folds=10, seed=42)
