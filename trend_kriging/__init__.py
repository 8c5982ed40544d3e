"""
Spatial interpolation of point observations by ordinary kriging of the
residuals from a trend surface. Provides empirical semivariogram estimation,
variogram model fitting and an ordinary kriging solver.
"""

from .fitting import FitResult, fit_variogram_model
from .kriging import KrigingResult, OrdinaryKriging, krige
from .observations import Observations, average_duplicates
from .pipeline import krige_residuals
from .semivariogram import (
    BinPolicy,
    EmpiricalSemivariogram,
    estimate_semivariogram,
)
from .trend import TrendSurface
from .utils import (
    DegenerateInputError,
    FittingFailureError,
    InsufficientDataError,
    KrigingError,
    NegativeVarianceWarning,
)
from .variogram import (
    ExponentialVariogram,
    GaussianVariogram,
    SphericalVariogram,
    Variogram,
)

__all__ = [
    "BinPolicy",
    "DegenerateInputError",
    "EmpiricalSemivariogram",
    "ExponentialVariogram",
    "FitResult",
    "FittingFailureError",
    "GaussianVariogram",
    "InsufficientDataError",
    "KrigingError",
    "KrigingResult",
    "NegativeVarianceWarning",
    "Observations",
    "OrdinaryKriging",
    "SphericalVariogram",
    "TrendSurface",
    "Variogram",
    "average_duplicates",
    "estimate_semivariogram",
    "fit_variogram_model",
    "krige",
    "krige_residuals",
]

__version__ = "0.1.0"
