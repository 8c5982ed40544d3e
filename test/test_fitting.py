import pytest  # noqa: F401
import numpy as np

from trend_kriging.fitting import (
    FitResult,
    fit_variogram_model,
    initial_guess,
)
from trend_kriging.semivariogram import EmpiricalSemivariogram
from trend_kriging.utils import FittingFailureError, InsufficientDataError
from trend_kriging.variogram import (
    ExponentialVariogram,
    SphericalVariogram,
    Variogram,
)


def _synthetic(
    variogram: Variogram,
    lags: np.ndarray,
    n_pairs: int = 50,
) -> EmpiricalSemivariogram:
    return EmpiricalSemivariogram(
        lags=lags,
        semivariance=variogram.fit(lags),
        n_pairs=np.full(len(lags), n_pairs),
    )


def test_recover_exponential() -> None:
    truth = ExponentialVariogram(psill=1.0, nugget=0.2, range=2.0)
    empirical = _synthetic(truth, np.linspace(0.5, 10, 12))

    result = fit_variogram_model(empirical, ["exponential"])

    assert isinstance(result, FitResult)
    assert result.family == "exponential"
    assert result.model.nugget == pytest.approx(0.2, rel=1e-3)
    assert result.model.psill == pytest.approx(1.0, rel=1e-3)
    assert result.model.range == pytest.approx(2.0, rel=1e-3)
    assert result.sse == pytest.approx(0.0, abs=1e-5)
    return None


def test_select_spherical() -> None:
    truth = SphericalVariogram(psill=2.0, nugget=0.1, range=5.0)
    empirical = _synthetic(truth, np.linspace(0.5, 8, 16))

    result = fit_variogram_model(empirical)

    assert result.family == "spherical"
    assert result.model.range == pytest.approx(5.0, rel=1e-2)
    assert result.candidates.height == 3
    assert result.candidates["valid"].any()
    valid = result.candidates.filter(result.candidates["valid"])
    assert result.sse == valid["sse"].min()
    return None


@pytest.mark.parametrize("weighted", [True, False])
def test_weighting(weighted) -> None:
    np.random.seed(90210)
    truth = ExponentialVariogram(psill=1.0, nugget=0.1, range=1.5)
    lags = np.linspace(0.25, 6, 15)
    empirical = EmpiricalSemivariogram(
        lags=lags,
        semivariance=truth.fit(lags) + np.random.normal(0, 0.02, len(lags)),
        n_pairs=np.random.randint(5, 200, len(lags)),
    )

    result = fit_variogram_model(empirical, weighted=weighted)

    assert result.model.psill > 0
    assert result.model.sill == pytest.approx(1.1, rel=0.1)
    return None


def test_initial_guess() -> None:
    empirical = EmpiricalSemivariogram(
        lags=np.array([0.5, 1.0, 1.5]),
        semivariance=np.array([0.75, 1.25, 2.5]),
        n_pairs=np.array([4, 4, 2]),
    )
    nugget, psill, range_ = initial_guess(empirical, effective_range_factor=3)

    assert nugget == 0.75
    assert psill == 1.75
    assert range_ == pytest.approx(0.5)
    return None


def test_too_few_points() -> None:
    empirical = EmpiricalSemivariogram(
        lags=np.array([1.0, 2.0]),
        semivariance=np.array([0.5, 1.0]),
        n_pairs=np.array([3, 3]),
    )
    with pytest.raises(InsufficientDataError):
        fit_variogram_model(empirical)
    return None


def test_no_variation() -> None:
    empirical = EmpiricalSemivariogram(
        lags=np.array([1.0, 2.0, 3.0, 4.0]),
        semivariance=np.zeros(4),
        n_pairs=np.array([3, 3, 3, 3]),
    )
    with pytest.raises(FittingFailureError):
        fit_variogram_model(empirical)
    return None


def test_all_fits_fail(monkeypatch) -> None:
    def _fail(*args, **kwargs):
        raise RuntimeError("Optimal parameters not found")

    monkeypatch.setattr("trend_kriging.fitting.curve_fit", _fail)
    truth = ExponentialVariogram(psill=1.0, nugget=0.2, range=2.0)
    empirical = _synthetic(truth, np.linspace(0.5, 10, 12))

    with pytest.raises(FittingFailureError):
        fit_variogram_model(empirical)
    return None


@pytest.mark.parametrize("families", [[], ["exponential", "matern"]])
def test_bad_families(families) -> None:
    truth = ExponentialVariogram(psill=1.0, nugget=0.2, range=2.0)
    empirical = _synthetic(truth, np.linspace(0.5, 10, 12))
    with pytest.raises(ValueError):
        fit_variogram_model(empirical, families)
    return None
