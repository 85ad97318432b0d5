import os
from dataclasses import dataclass, fields, replace
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

BOSTON_URL = "https://raw.githubusercontent.com/selva86/datasets/master/BostonHousing.csv"


def env_required(key: str) -> str:
    v = os.getenv(key)
    if not v:
        raise RuntimeError(f"Missing required env var: {key}")
    return v


def _env_flag(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Config:
    # Paths
    data_path: str = BOSTON_URL
    artifacts_dir: Path = Path("artifacts")
    model_path: Path = Path("artifacts/model.joblib")

    # Data
    target_col: str = "medv"

    # Cross-validation
    n_folds: int = 10
    seed: int = 42
    n_jobs: int = 1

    # Penalty path / solver
    n_lambda: int = 100
    lambda_min_ratio: float = 1e-4
    tol: float = 1e-7
    max_iter: int = 100000

    # Report
    n_preview_rows: int = 10

    # MLflow
    track: bool = False
    publish: bool = False
    experiment_name: str = "boston-lasso"
    registered_model_name: str = "boston-lasso-model"
    model_alias: str = "champion"
    output_field: str = "prediction"

    @classmethod
    def from_env(cls, **overrides) -> "Config":
        """Build a config from ``BOSTON_LASSO_*`` env vars (after loading ``.env``)."""
        load_dotenv(find_dotenv(usecwd=True))
        values = {}
        for f in fields(cls):
            raw = os.getenv(f"BOSTON_LASSO_{f.name.upper()}")
            if raw is None:
                continue
            default = getattr(cls, f.name)
            if isinstance(default, bool):
                values[f.name] = _env_flag(raw)
            elif isinstance(default, int):
                values[f.name] = int(raw)
            elif isinstance(default, float):
                values[f.name] = float(raw)
            elif isinstance(default, Path):
                values[f.name] = Path(raw)
            else:
                values[f.name] = raw
        values.update(overrides)
        cfg = replace(cls(), **values)
        if "model_path" not in values and "artifacts_dir" in values:
            cfg = replace(cfg, model_path=cfg.artifacts_dir / "model.joblib")
        return cfg
