from boston_lasso.cv import CVLassoResult, cv_lasso
from boston_lasso.predict import predict
from boston_lasso.service import make_scorer
from boston_lasso.solver import LassoPath, fit_path

__all__ = ["CVLassoResult", "LassoPath", "cv_lasso", "fit_path", "make_scorer", "predict"]
