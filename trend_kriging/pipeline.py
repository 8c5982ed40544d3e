"""
Residual Kriging
----------------

Trend-surface removal, semivariogram estimation, variogram fitting and
ordinary kriging of the residuals, with the trend added back at the targets.
"""

from collections.abc import Iterable
import logging
import numpy as np

from .constants import DEFAULT_BATCH_SIZE, DEFAULT_CONDITION_LIMIT
from .fitting import DEFAULT_FAMILIES, FitResult, fit_variogram_model
from .kriging import KrigingResult, krige
from .observations import Observations
from .semivariogram import BinPolicy, estimate_semivariogram
from .trend import TrendSurface


def krige_residuals(
    observations: Observations,
    targets: np.ndarray,
    trend_degree: int = 1,
    bin_policy: BinPolicy | None = None,
    candidate_families: Iterable[str] = DEFAULT_FAMILIES,
    weighted: bool = True,
    batch_size: int = DEFAULT_BATCH_SIZE,
    condition_limit: float = DEFAULT_CONDITION_LIMIT,
) -> tuple[KrigingResult, FitResult]:
    """
    Predict at target locations by kriging the residuals of a trend surface.

    1. Fit a polynomial trend surface of degree `trend_degree` by ordinary
       least-squares and compute the residuals.
    2. Estimate the empirical semivariogram of the residuals.
    3. Fit the candidate variogram families, selecting the best.
    4. Ordinary krige the residuals at the targets.
    5. Add the trend surface evaluated at the targets to the kriged residuals.

    The returned variances are the kriging variances of the residuals.

    Parameters
    ----------
    observations : Observations
        The raw observations.
    targets : numpy.ndarray
        Target locations, shape (T, 2).
    trend_degree : int
        Degree of the polynomial trend surface.
    bin_policy : BinPolicy | None
        Distance binning policy for the empirical semivariogram.
    candidate_families : Iterable[str]
        Variogram families to fit.
    weighted : bool
        Weight the variogram fit by the pair counts.
    batch_size : int
        Number of targets solved at once.
    condition_limit : float
        Largest accepted condition number of the kriging system.

    Returns
    -------
    result : KrigingResult
        Predictions (trend + kriged residual) and kriging variances.
    fit : FitResult
        The fitted variogram model of the residuals.
    """
    trend = TrendSurface(trend_degree)
    residuals = observations.with_values(
        trend.residuals(observations.coords, observations.values)
    )

    empirical = estimate_semivariogram(residuals, bin_policy)
    fit = fit_variogram_model(empirical, candidate_families, weighted)
    logging.info(f"Selected {fit.family} variogram model: {fit.model}")

    result = krige(
        residuals,
        fit.model,
        targets,
        batch_size=batch_size,
        condition_limit=condition_limit,
    )
    result.predictions = result.predictions + trend.predict(targets)
    return result, fit
