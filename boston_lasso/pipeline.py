import logging
from dataclasses import dataclass
from typing import Optional

import joblib
import mlflow
import pandas as pd

from boston_lasso.config import Config, env_required
from boston_lasso.cv import LAMBDA_MIN, CVLassoResult, cv_lasso
from boston_lasso.data import load_dataset, split_xy
from boston_lasso.evaluate import regression_metrics
from boston_lasso.predict import predict
from boston_lasso.service import MlflowPublisher, PublishedService, make_scorer
from boston_lasso.solver import LassoPath, fit_path

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    cv: CVLassoResult
    path: LassoPath
    preview: pd.DataFrame
    metrics: dict
    published: Optional[PublishedService] = None


def fit(cfg: Config, df: pd.DataFrame) -> RunResult:
    """loader output -> cv fitter -> full-path fitter -> predictor."""
    X, y = split_xy(df, cfg.target_col)

    cv = cv_lasso(
        X,
        y,
        n_folds=cfg.n_folds,
        seed=cfg.seed,
        n_lambda=cfg.n_lambda,
        min_ratio=cfg.lambda_min_ratio,
        tol=cfg.tol,
        max_iter=cfg.max_iter,
        n_jobs=cfg.n_jobs,
    )
    path = fit_path(X, y, lambdas=cv.lambdas, tol=cfg.tol, max_iter=cfg.max_iter)

    y_hat = predict(cv, X, s=LAMBDA_MIN, target_col=cfg.target_col)
    metrics = regression_metrics(y, y_hat)

    head = df.head(cfg.n_preview_rows)
    preview = pd.DataFrame(
        {
            cfg.target_col: head[cfg.target_col].to_numpy(),
            cfg.output_field: predict(cv, head, s=LAMBDA_MIN, target_col=cfg.target_col),
        },
        index=head.index,
    )
    return RunResult(cv=cv, path=path, preview=preview, metrics=metrics)


def log_run(cfg: Config, result: RunResult):
    cv = result.cv
    mlflow.log_param("target_col", cfg.target_col)
    mlflow.log_param("n_folds", cfg.n_folds)
    mlflow.log_param("seed", cfg.seed)
    mlflow.log_param("n_lambda", cfg.n_lambda)
    mlflow.log_param("lambda_min_ratio", cfg.lambda_min_ratio)
    mlflow.log_metrics(
        {
            "lambda_min": cv.lambda_min,
            "lambda_1se": cv.lambda_1se,
            "cvm_min": float(cv.cvm[cv.index_min]),
            "cvm_1se": float(cv.cvm[cv.index_1se]),
            "nzero_min": int(cv.path.df[cv.index_min]),
            "nzero_1se": int(cv.path.df[cv.index_1se]),
        }
    )
    mlflow.log_metrics({f"train_{k}": v for k, v in result.metrics.items()})


def report(cfg: Config, result: RunResult):
    cv = result.cv
    print("Training complete.")
    print(f"lambda_min = {round(cv.lambda_min, 4)}")
    print(f"lambda_1se = {round(cv.lambda_1se, 4)}")
    print("\nCoefficients at lambda_min:")
    for name, w in cv.nonzero_coef(LAMBDA_MIN).items():
        print(f"  {name:<12} {w: .4f}")
    print("\nPath summary:")
    print(result.path.summary().head(10).to_string())
    print("\nIn-sample metrics:", result.metrics)
    print(f"\nPredictions on first {len(result.preview)} rows:")
    print(result.preview.round(4).to_string())
    print(f"Saved model locally to: {cfg.model_path}")


def run(cfg: Config, df: Optional[pd.DataFrame] = None) -> RunResult:
    cfg.artifacts_dir.mkdir(parents=True, exist_ok=True)
    cfg.model_path.parent.mkdir(parents=True, exist_ok=True)
    if df is None:
        df = load_dataset(cfg.data_path, target_col=cfg.target_col)

    if cfg.track or cfg.publish:
        mlflow.set_tracking_uri(env_required("MLFLOW_TRACKING_URI"))
        mlflow.set_experiment(cfg.experiment_name)
        logger.info("MLFLOW_TRACKING_URI = %s", mlflow.get_tracking_uri())

    if not cfg.track:
        result = fit(cfg, df)
        joblib.dump(result.cv, cfg.model_path)
        if cfg.publish:
            result.published = publish(cfg, result, df)
        return result

    with mlflow.start_run(run_name="cv_lasso"):
        result = fit(cfg, df)
        joblib.dump(result.cv, cfg.model_path)
        log_run(cfg, result)
        mlflow.log_artifact(str(cfg.model_path))
        if cfg.publish:
            result.published = publish(cfg, result, df)
    return result


def publish(cfg: Config, result: RunResult, df: pd.DataFrame) -> PublishedService:
    scorer = make_scorer(result.cv, s=LAMBDA_MIN, output_field=cfg.output_field, target_col=cfg.target_col)
    publisher = MlflowPublisher(alias=cfg.model_alias)
    example = df.drop(columns=[cfg.target_col]).head(5)
    return publisher.publish(cfg.registered_model_name, scorer, example)


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    cfg = Config.from_env()
    result = run(cfg)
    report(cfg, result)


if __name__ == "__main__":
    main()
