import numpy as np
import pytest

from boston_lasso.cv import assign_folds, cv_lasso, select_lambdas
from boston_lasso.exceptions import CrossValidationError, LassoError
from boston_lasso.solver import fit_path


def test_selected_lambdas_are_ordered(cv_model):
    assert isinstance(cv_model.lambda_min, float)
    assert isinstance(cv_model.lambda_1se, float)
    assert cv_model.lambda_1se >= cv_model.lambda_min > 0


def test_selected_lambdas_lie_on_path(cv_model):
    assert cv_model.lambda_min in cv_model.lambdas
    assert cv_model.lambda_1se in cv_model.lambdas
    assert cv_model.index_1se <= cv_model.index_min


def test_one_se_rule(cv_model):
    i = cv_model.index_min
    bound = cv_model.cvm[i] + cv_model.cvsd[i]

    assert cv_model.cvm[i] == cv_model.cvm.min()
    assert cv_model.cvm[cv_model.index_1se] <= bound
    # nothing more regularized than lambda_1se satisfies the bound
    assert np.all(cv_model.cvm[: cv_model.index_1se] > bound)


def test_full_path_coefficients_match_cv_fit(cv_model, boston_xy):
    X, y = boston_xy
    path = fit_path(X, y, lambdas=cv_model.lambdas)

    np.testing.assert_allclose(path.coef(cv_model.lambda_min), cv_model.coef("lambda.min"))
    np.testing.assert_allclose(path.coef(cv_model.lambda_1se), cv_model.coef("lambda_1se"))


def test_one_se_model_is_sparser(cv_model):
    nz_min = cv_model.nonzero_coef("lambda.min")
    nz_1se = cv_model.nonzero_coef("lambda.1se")

    assert "(Intercept)" in nz_min
    assert len(nz_1se) <= len(nz_min)
    assert {"rm", "lstat"} <= set(nz_1se)


def test_curve_table(cv_model):
    curve = cv_model.curve()

    assert list(curve.columns) == ["lambda", "cvm", "cvsd", "cvup", "cvlo", "nzero"]
    assert len(curve) == len(cv_model.lambdas)
    assert np.all(curve["cvsd"] >= 0)
    np.testing.assert_allclose(curve["cvup"] - curve["cvlo"], 2 * curve["cvsd"])


def test_folds_are_reproducible(boston_xy):
    X, y = boston_xy
    a = cv_lasso(X, y, n_folds=5, seed=7, n_lambda=20)
    b = cv_lasso(X, y, n_folds=5, seed=7, n_lambda=20)

    np.testing.assert_array_equal(a.fold_ids, b.fold_ids)
    np.testing.assert_array_equal(a.cvm, b.cvm)
    assert a.lambda_min == b.lambda_min
    assert a.lambda_1se == b.lambda_1se


def test_assign_folds_partitions_rows():
    ids = assign_folds(506, 10, seed=42)

    assert ids.shape == (506,)
    counts = np.bincount(ids)
    assert len(counts) == 10
    assert counts.min() >= 50 and counts.max() <= 51
    assert not np.array_equal(ids, assign_folds(506, 10, seed=43))


def test_parallel_folds_match_serial(boston_xy):
    X, y = boston_xy
    serial = cv_lasso(X, y, n_folds=4, seed=3, n_lambda=15, n_jobs=1)
    parallel = cv_lasso(X, y, n_folds=4, seed=3, n_lambda=15, n_jobs=2)

    np.testing.assert_allclose(serial.cvm, parallel.cvm)
    np.testing.assert_allclose(serial.cvsd, parallel.cvsd)
    assert serial.lambda_min == parallel.lambda_min


def test_row_mismatch_rejected(boston_xy):
    X, y = boston_xy
    with pytest.raises(CrossValidationError) as err:
        cv_lasso(X, y.iloc[:-3], n_folds=5)
    assert "rows" in str(err.value)


@pytest.mark.parametrize("n_folds", [0, 1])
def test_too_few_folds_rejected(boston_xy, n_folds):
    X, y = boston_xy
    with pytest.raises(CrossValidationError):
        cv_lasso(X, y, n_folds=n_folds)


@pytest.mark.parametrize("n_rows", [3, 5])
def test_not_enough_rows_rejected(boston_xy, n_rows):
    X, y = boston_xy
    with pytest.raises(CrossValidationError):
        cv_lasso(X.iloc[:n_rows], y.iloc[:n_rows], n_folds=5)


def test_errors_are_value_errors(boston_xy):
    X, y = boston_xy
    with pytest.raises(ValueError):
        cv_lasso(X, y, n_folds=1)


def test_unknown_selector(cv_model):
    with pytest.raises(LassoError):
        cv_model.coef("lambda.best")


def test_select_lambdas_one_se():
    lambdas = np.array([5.0, 4.0, 3.0, 2.0, 1.0])
    cvm = np.array([10.0, 6.0, 5.0, 4.5, 4.6])
    cvsd = np.array([1.0, 0.8, 0.6, 0.6, 0.5])

    assert select_lambdas(lambdas, cvm, cvsd) == (2.0, 3.0)


def test_select_lambdas_tie_goes_to_larger_lambda():
    lambdas = np.array([5.0, 4.0, 3.0, 2.0, 1.0])
    cvm = np.array([10.0, 4.0, 5.0, 4.0, 6.0])
    cvsd = np.zeros(5)

    assert select_lambdas(lambdas, cvm, cvsd) == (4.0, 4.0)
