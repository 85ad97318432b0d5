"""Stateless scoring wrapper and the publishers that host it."""
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

import mlflow
import mlflow.pyfunc
import pandas as pd
from mlflow.models import infer_signature
from mlflow.tracking import MlflowClient

from boston_lasso.cv import LAMBDA_MIN, CVLassoResult, Penalty
from boston_lasso.predict import Model, predict

logger = logging.getLogger(__name__)

Rows = Union[pd.DataFrame, pd.Series, Mapping[str, float], Sequence[Mapping[str, float]]]
Scorer = Callable[[Rows], Dict[str, List[float]]]


def rows_to_frame(rows: Rows) -> pd.DataFrame:
    if isinstance(rows, pd.DataFrame):
        return rows
    if isinstance(rows, pd.Series):
        return rows.to_frame().T
    if isinstance(rows, Mapping):
        return pd.DataFrame([dict(rows)])
    return pd.DataFrame([dict(r) for r in rows])


def make_scorer(
    model: Model,
    s: Penalty = LAMBDA_MIN,
    output_field: str = "prediction",
    target_col: Optional[str] = "medv",
) -> Scorer:
    """Bind a fitted model into a request -> response function.

    The returned callable accepts rows of named predictor values (the
    response column may be present and is ignored) and returns
    ``{output_field: [one float per row]}``.
    """
    if isinstance(s, str) and isinstance(model, CVLassoResult):
        s = model.resolve(s)

    def score(rows: Rows) -> Dict[str, List[float]]:
        X = rows_to_frame(rows)
        y_hat = predict(model, X, s=s, target_col=target_col)
        return {output_field: [float(v) for v in y_hat]}

    return score


class LassoPyfuncModel(mlflow.pyfunc.PythonModel):
    """MLflow pyfunc adapter around a scorer."""

    def __init__(self, scorer: Scorer):
        self.scorer = scorer

    def predict(self, context, model_input, params=None):
        return pd.DataFrame(self.scorer(model_input))


@dataclass
class PublishedService:
    name: str
    version: Optional[str] = None
    model_uri: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


class ServicePublisher(ABC):
    """Something that can host a scorer under a name."""

    @abstractmethod
    def publish(self, name: str, scorer: Scorer, input_example: pd.DataFrame) -> PublishedService:
        raise NotImplementedError


def wait_ready(client: MlflowClient, name: str, version: str, timeout_s: int = 300):
    deadline = time.time() + timeout_s
    while time.time() < deadline:
        mv = client.get_model_version(name, version)
        if mv.status == "READY":
            return
        time.sleep(2)
    raise RuntimeError(f"Model version not READY after {timeout_s}s: {name} v{version}")


def latest_version(client: MlflowClient, name: str) -> str:
    versions = client.search_model_versions(f"name='{name}'")
    latest = max((int(v.version) for v in versions), default=None)
    if latest is None:
        raise RuntimeError(f"No versions found for model '{name}'")
    return str(latest)


class MlflowPublisher(ServicePublisher):
    """Log the scorer as a pyfunc model, register it and move an alias onto it."""

    def __init__(
        self,
        tracking_uri: Optional[str] = None,
        alias: Optional[str] = "champion",
        artifact_path: str = "model",
        ready_timeout_s: int = 300,
    ):
        self.tracking_uri = tracking_uri
        self.alias = alias
        self.artifact_path = artifact_path
        self.ready_timeout_s = ready_timeout_s

    def publish(self, name: str, scorer: Scorer, input_example: pd.DataFrame) -> PublishedService:
        if self.tracking_uri:
            mlflow.set_tracking_uri(self.tracking_uri)

        output_example = pd.DataFrame(scorer(input_example))
        signature = infer_signature(input_example, output_example)

        nested = mlflow.active_run() is not None
        with mlflow.start_run(run_name=f"publish_{name}", nested=nested):
            model_info = mlflow.pyfunc.log_model(
                artifact_path=self.artifact_path,
                python_model=LassoPyfuncModel(scorer),
                registered_model_name=name,
                signature=signature,
                input_example=input_example,
            )

        client = MlflowClient()
        version = getattr(model_info, "registered_model_version", None)
        version = str(version) if version is not None else latest_version(client, name)
        wait_ready(client, name, version, timeout_s=self.ready_timeout_s)

        if self.alias:
            client.set_registered_model_alias(name, self.alias, version)

        logger.info("Registered model %s v%s (alias=%s)", name, version, self.alias)
        return PublishedService(name=name, version=version, model_uri=f"models:/{name}/{version}")


class FastAPIPublisher(ServicePublisher):
    """Mount the scorer on a local FastAPI app; ``serve`` runs it with uvicorn."""

    def __init__(self, host: str = "127.0.0.1", port: int = 8000):
        self.host = host
        self.port = port
        self.app = None

    def publish(self, name: str, scorer: Scorer, input_example: pd.DataFrame) -> PublishedService:
        from boston_lasso.api import create_app

        self.app = create_app(scorer=scorer, title=name)
        logger.info("Mounted scorer %s on FastAPI app", name)
        return PublishedService(
            name=name,
            model_uri=f"http://{self.host}:{self.port}/predict",
            extra={"app": self.app},
        )

    def serve(self):
        import uvicorn

        if self.app is None:
            raise RuntimeError("Nothing published yet; call publish() first")
        uvicorn.run(self.app, host=self.host, port=self.port)
