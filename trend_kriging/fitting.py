"""
Variogram Fitting
-----------------

Weighted nonlinear least-squares fitting of parametric variogram models to an
empirical semivariogram. Each candidate family is fitted and the family with
the lowest (weighted) residual sum of squares is selected.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
import logging
import math
import numpy as np
import polars as pl
from scipy.optimize import OptimizeWarning, curve_fit
from warnings import catch_warnings, simplefilter

from .constants import PLATEAU_FRACTION
from .semivariogram import EmpiricalSemivariogram
from .utils import FittingFailureError, InsufficientDataError
from .variogram import Variogram, get_variogram_class

DEFAULT_FAMILIES: tuple[str, ...] = ("exponential", "spherical", "gaussian")
N_PARAMS: int = 3
# Upper bounds on psill and effective range, as multiples of the largest
# empirical semivariance and lag respectively
PSILL_BOUND_FACTOR: float = 10.0
RANGE_BOUND_FACTOR: float = 10.0


@dataclass(frozen=True)
class FitResult:
    """
    Result of fitting variogram models to an empirical semivariogram.

    Parameters
    ----------
    model : Variogram
        The best fitting variogram model.
    sse : float
        The (weighted) residual sum of squares of the selected model against
        the empirical semivariogram.
    boundary_flag : int
        0: no parameter is at a bound.
        1: one parameter reached its lower bound.
        2: one parameter reached its upper bound.
        3: multiple parameters reached a bound.
    candidates : polars.DataFrame
        Summary of the fit of every candidate family, with columns "family",
        "nugget", "psill", "range", "sse", "valid" and "message".
    """

    model: Variogram
    sse: float
    boundary_flag: int = 0
    candidates: pl.DataFrame = field(default_factory=pl.DataFrame, repr=False)

    @property
    def family(self) -> str:
        """Name of the selected variogram family"""
        return self.model.family


def initial_guess(
    empirical: EmpiricalSemivariogram,
    effective_range_factor: float = 1.0,
) -> tuple[float, float, float]:
    """
    Initial nugget, psill and range values for a fit.

    * nugget: the empirical semivariance at the smallest lag.
    * psill: the empirical plateau (maximum semivariance) minus the nugget.
    * range: the first lag at which the empirical semivariance reaches 95% of
      its plateau, converted from an effective range to the range parameter
      of the family.

    Parameters
    ----------
    empirical : EmpiricalSemivariogram
        The empirical semivariogram.
    effective_range_factor : float
        Ratio of the effective range to the range parameter of the family.

    Returns
    -------
    nugget, psill, range : tuple[float, float, float]
    """
    gamma = empirical.semivariance
    plateau = float(gamma.max())
    nugget = float(gamma[0])
    psill = plateau - nugget
    if psill <= 0:
        psill = 0.5 * plateau if plateau > 0 else 1.0
    reached = np.flatnonzero(gamma >= PLATEAU_FRACTION * plateau)
    effective_range = float(empirical.lags[reached[0]])
    if effective_range <= 0:
        effective_range = float(empirical.lags[-1])
    return nugget, psill, effective_range / effective_range_factor


def _get_fit_score(params, lower, upper) -> int:
    fit_success: int = 0
    for param, lbound, ubound in zip(params, lower, upper):
        left_check = math.isclose(param, lbound, rel_tol=0.01, abs_tol=1e-10)
        right_check = math.isclose(param, ubound, rel_tol=0.01)
        if left_check:
            fit_success = 1 if fit_success == 0 else 3
        if right_check:
            fit_success = 2 if fit_success == 0 else 3
    return fit_success


def _fit_family(
    family: str,
    empirical: EmpiricalSemivariogram,
    weighted: bool,
) -> tuple[Variogram, float, int]:
    variogram_cls = get_variogram_class(family)
    factor = variogram_cls.effective_range_factor

    max_gamma = float(empirical.semivariance.max())
    max_lag = float(empirical.lags.max())
    scale = max(max_gamma, np.finfo(float).tiny)
    lower = np.array([0.0, 0.0, 1e-6 * max_lag / factor])
    upper = np.array(
        [
            scale,
            PSILL_BOUND_FACTOR * scale,
            RANGE_BOUND_FACTOR * max_lag / factor,
        ]
    )
    p0 = np.clip(initial_guess(empirical, factor), lower, upper)
    # Keep strictly inside the bounds
    p0 = lower + np.clip((p0 - lower) / (upper - lower), 0.01, 0.99) * (
        upper - lower
    )

    sigma = 1.0 / np.sqrt(empirical.n_pairs) if weighted else None
    with catch_warnings():
        simplefilter("ignore", OptimizeWarning)
        popt, _ = curve_fit(
            variogram_cls.model,
            empirical.lags,
            empirical.semivariance,
            p0=p0,
            sigma=sigma,
            bounds=(lower, upper),
        )
    nugget, psill, range_ = (float(p) for p in popt)

    resid = (
        variogram_cls.model(empirical.lags, nugget, psill, range_)
        - empirical.semivariance
    )
    weights = empirical.n_pairs if weighted else np.ones_like(resid)
    sse = float(np.sum(weights * np.power(resid, 2)))

    model = variogram_cls(psill=psill, nugget=nugget, range=range_)
    return model, sse, _get_fit_score(popt, lower, upper)


def fit_variogram_model(
    empirical: EmpiricalSemivariogram,
    candidate_families: Iterable[str] = DEFAULT_FAMILIES,
    weighted: bool = True,
) -> FitResult:
    """
    Fit variogram models to an empirical semivariogram, selecting the best
    fitting family.

    Each candidate family is fitted by nonlinear least-squares with
    `scipy.optimize.curve_fit`. If `weighted` is set then each empirical point
    is weighted by its pair count, so the objective is

    .. math::
        \\sum_k N_k (\\gamma(h_k) - \\hat{\\gamma}_k)^2

    A fit is only valid if it converges with a positive partial sill, since a
    model without spatial structure cannot be used as a covariance function
    for kriging. The valid model with the lowest objective is returned.

    Parameters
    ----------
    empirical : EmpiricalSemivariogram
        The empirical semivariogram, output of estimate_semivariogram.
    candidate_families : Iterable[str]
        Names of the variogram families to try. Any of "exponential",
        "spherical", "gaussian".
    weighted : bool
        Weight each empirical point by its pair count.

    Returns
    -------
    FitResult

    Raises
    ------
    InsufficientDataError
        If the empirical semivariogram has fewer points than model parameters.
    FittingFailureError
        If no candidate family produces a valid fit.
    """
    families = [f.lower() for f in candidate_families]
    if not families:
        raise ValueError("At least one candidate family is required")
    # Fail on unknown names before fitting anything
    for family in families:
        get_variogram_class(family)

    if len(empirical) < N_PARAMS:
        raise InsufficientDataError(
            f"At least {N_PARAMS} empirical semivariogram points are required "
            + f"to fit a variogram model, got {len(empirical)}"
        )

    max_gamma = float(empirical.semivariance.max())
    if max_gamma <= 0:
        raise FittingFailureError(
            "Empirical semivariance is 0 at all lags, there is no spatial "
            + "variation to model"
        )
    # Partial sills below this are treated as no spatial structure
    min_psill = 1e-8 * max_gamma

    rows: list[dict] = []
    best: tuple[Variogram, float, int] | None = None
    for family in families:
        try:
            model, sse, flag = _fit_family(family, empirical, weighted)
        except (RuntimeError, ValueError) as e:
            logging.warning(f"Fit of {family} variogram failed: {e}")
            rows.append(
                {
                    "family": family,
                    "nugget": None,
                    "psill": None,
                    "range": None,
                    "sse": None,
                    "valid": False,
                    "message": str(e),
                }
            )
            continue

        valid = model.psill > min_psill and model.range > 0  # type: ignore
        message = "ok" if valid else "non-positive partial sill"
        logging.info(
            f"Fitted {family} variogram: nugget={model.nugget:.4g}, "
            + f"psill={model.psill:.4g}, range={model.range:.4g}, "
            + f"sse={sse:.4g}, valid={valid}"
        )
        rows.append(
            {
                "family": family,
                "nugget": model.nugget,
                "psill": model.psill,
                "range": model.range,
                "sse": sse,
                "valid": valid,
                "message": message,
            }
        )
        if valid and (best is None or sse < best[1]):
            best = (model, sse, flag)

    candidates = pl.DataFrame(
        rows,
        schema={
            "family": pl.String,
            "nugget": pl.Float64,
            "psill": pl.Float64,
            "range": pl.Float64,
            "sse": pl.Float64,
            "valid": pl.Boolean,
            "message": pl.String,
        },
    )
    if best is None:
        raise FittingFailureError(
            "No candidate variogram family produced a valid fit: "
            + ", ".join(families)
        )

    model, sse, flag = best
    if flag:
        logging.warning(
            f"Selected {model.family} variogram has parameters at the fitting "
            + f"bounds (flag = {flag})"
        )
    return FitResult(
        model=model,
        sse=sse,
        boundary_flag=flag,
        candidates=candidates,
    )
