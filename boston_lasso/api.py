from __future__ import annotations

import os
from typing import Dict, List, Optional

import joblib
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from boston_lasso.exceptions import SchemaMismatchError
from boston_lasso.service import Scorer, make_scorer


# ---- Config ----
MODEL_PATH = os.getenv("MODEL_PATH", "artifacts/model.joblib")
OUTPUT_FIELD = os.getenv("OUTPUT_FIELD", "prediction")


# ---- API schema ----
class PredictRequest(BaseModel):
    rows: List[Dict[str, float]] = Field(
        ..., min_length=1, description="Predictor values by column name, one dict per row"
    )


def create_app(
    scorer: Optional[Scorer] = None,
    model_path: str = MODEL_PATH,
    title: str = "Boston Housing LASSO",
) -> FastAPI:
    """Build the prediction app.

    With no ``scorer`` the model is loaded from ``model_path`` on first use.
    """
    app = FastAPI(title=title, version="0.1.0")
    state = {"scorer": scorer}

    def load_scorer() -> Scorer:
        if state["scorer"] is None:
            if not os.path.exists(model_path):
                raise FileNotFoundError(
                    f"Model file not found at '{model_path}'. "
                    f"Run training first to create it, or set MODEL_PATH env var."
                )
            state["scorer"] = make_scorer(joblib.load(model_path), output_field=OUTPUT_FIELD)
        return state["scorer"]

    @app.get("/health")
    def health():
        try:
            load_scorer()
            return {"status": "ok", "model_loaded": True}
        except Exception as e:
            return {"status": "error", "detail": str(e), "model_loaded": False}

    @app.post("/predict")
    def predict(req: PredictRequest):
        try:
            return load_scorer()(req.rows)
        except SchemaMismatchError as e:
            raise HTTPException(status_code=422, detail=str(e))
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "8000")))
