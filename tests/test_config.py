import dataclasses
from pathlib import Path

import pytest

from boston_lasso.config import BOSTON_URL, Config, env_required


def test_defaults():
    cfg = Config()
    assert cfg.data_path == BOSTON_URL
    assert cfg.target_col == "medv"
    assert cfg.n_folds == 10
    assert cfg.n_lambda == 100
    assert cfg.lambda_min_ratio == 1e-4
    assert cfg.track is False


def test_from_env_overrides(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("BOSTON_LASSO_N_FOLDS", "5")
    monkeypatch.setenv("BOSTON_LASSO_SEED", "123")
    monkeypatch.setenv("BOSTON_LASSO_LAMBDA_MIN_RATIO", "0.01")
    monkeypatch.setenv("BOSTON_LASSO_TRACK", "yes")
    monkeypatch.setenv("BOSTON_LASSO_ARTIFACTS_DIR", str(tmp_path / "out"))

    cfg = Config.from_env()
    assert cfg.n_folds == 5
    assert cfg.seed == 123
    assert cfg.lambda_min_ratio == 0.01
    assert cfg.track is True
    assert cfg.artifacts_dir == tmp_path / "out"
    assert cfg.model_path == tmp_path / "out" / "model.joblib"


def test_from_env_reads_dotenv(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("BOSTON_LASSO_TARGET_COL", raising=False)
    (tmp_path / ".env").write_text("BOSTON_LASSO_TARGET_COL=price\n")

    try:
        assert Config.from_env().target_col == "price"
    finally:
        monkeypatch.delenv("BOSTON_LASSO_TARGET_COL", raising=False)


def test_explicit_overrides_win(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("BOSTON_LASSO_N_FOLDS", "5")
    assert Config.from_env(n_folds=3).n_folds == 3


def test_config_is_frozen():
    with pytest.raises(dataclasses.FrozenInstanceError):
        Config().n_folds = 3


def test_env_required(monkeypatch):
    monkeypatch.setenv("SOME_KEY", "value")
    assert env_required("SOME_KEY") == "value"

    monkeypatch.delenv("SOME_KEY")
    with pytest.raises(RuntimeError) as err:
        env_required("SOME_KEY")
    assert "Missing required env var: SOME_KEY" in str(err.value)
