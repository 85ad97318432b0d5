import logging
from typing import Optional, Tuple

import pandas as pd

from boston_lasso.exceptions import DatasetError

logger = logging.getLogger(__name__)

BOSTON_COLUMNS = [
    "crim",
    "zn",
    "indus",
    "chas",
    "nox",
    "rm",
    "age",
    "dis",
    "rad",
    "tax",
    "ptratio",
    "b",
    "lstat",
    "medv",
]

BOSTON_SHAPE = (506, 14)


def validate_dataset(
    df: pd.DataFrame,
    target_col: str = "medv",
    expect_shape: Optional[Tuple[int, int]] = None,
) -> pd.DataFrame:
    if target_col not in df.columns:
        raise DatasetError(
            f"Target column '{target_col}' not found. Available: {list(df.columns)}"
        )

    if expect_shape is not None and df.shape != tuple(expect_shape):
        raise DatasetError(f"Expected shape {tuple(expect_shape)}, got {df.shape}")

    non_numeric = [c for c in df.columns if not pd.api.types.is_numeric_dtype(df[c])]
    if non_numeric:
        raise DatasetError(f"Non-numeric columns: {non_numeric}")

    missing = df.columns[df.isna().any()].tolist()
    if missing:
        raise DatasetError(f"Missing values in columns: {missing}")

    return df


def load_dataset(
    path: str,
    target_col: str = "medv",
    expect_shape: Optional[Tuple[int, int]] = BOSTON_SHAPE,
) -> pd.DataFrame:
    """Read the housing table from a local path or URL and check its schema."""
    logger.info("Loading dataset from %s", path)
    df = pd.read_csv(path)
    df.columns = [str(c).strip().lower() for c in df.columns]
    validate_dataset(df, target_col=target_col, expect_shape=expect_shape)
    logger.info("Loaded %d rows x %d columns", *df.shape)
    return df


def split_xy(df: pd.DataFrame, target_col: str = "medv") -> Tuple[pd.DataFrame, pd.Series]:
    if target_col not in df.columns:
        raise DatasetError(
            f"Target column '{target_col}' not found. Available: {list(df.columns)}"
        )
    X = df.drop(columns=[target_col]).astype(float)
    y = df[target_col].astype(float)
    return X, y
