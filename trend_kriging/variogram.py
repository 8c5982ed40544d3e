"""
Variograms
----------

Variogram classes for construction of spatial covariance structure from
distance matrices.

Each model is parameterised by a nugget, a partial sill (psill) and a range.
The semivariance is exactly 0 at zero separation, the nugget is the limit of
the semivariance as the separation tends to 0 from above. As a result the
covariance at zero separation is the total sill, nugget + psill.
"""

from dataclasses import dataclass
from abc import ABC, abstractmethod
from typing import ClassVar
import numpy as np
import xarray as xr

from .types import VariogramFamily


@dataclass(frozen=True)
class Variogram(ABC):
    """
    Generic Variogram Class - defines the abstract class

    Parameters
    ----------
    psill : float
        The partial sill, the variance contribution of the spatially
        structured component.
    nugget : float
        The semivariance as the separation tends to 0, representing
        measurement error or micro-scale variation.
    range : float | None
        The range parameter of the model.
    effective_range : float | None
        The separation at which the model reaches ~95% of the partial sill
        (the full partial sill for the spherical model). One of range and
        effective_range must be set, the other is computed from it.
    """

    psill: float
    nugget: float = 0.0
    range: float | None = None
    effective_range: float | None = None

    family: ClassVar[VariogramFamily]
    # effective_range = range * effective_range_factor
    effective_range_factor: ClassVar[float] = 1.0

    def __post_init__(self) -> None:
        if self.range is None and self.effective_range is None:
            raise ValueError(
                "One of range and effective_range must be specified"
            )
        if self.range is None and self.effective_range is not None:
            range_ = self.effective_range / self.effective_range_factor
            object.__setattr__(self, "range", range_)
        elif self.effective_range is None and self.range is not None:
            effective_range = self.range * self.effective_range_factor
            object.__setattr__(self, "effective_range", effective_range)
        if self.nugget < 0:
            raise ValueError(f"nugget must be non-negative, got {self.nugget}")
        if self.psill < 0:
            raise ValueError(f"psill must be non-negative, got {self.psill}")
        if self.range <= 0:  # type: ignore
            raise ValueError(f"range must be positive, got {self.range}")
        return None

    @property
    def sill(self) -> float:
        """Total sill, nugget + psill"""
        return self.nugget + self.psill

    @staticmethod
    @abstractmethod
    def model(
        h: np.ndarray,
        nugget: float,
        psill: float,
        range: float,
    ) -> np.ndarray:
        """
        Closed form of the semivariance for separations h > 0. Used directly
        as the objective function when fitting the model.
        """
        raise NotImplementedError("Not implemented for base Variogram class")

    def fit(
        self, distance_matrix: np.ndarray | xr.DataArray
    ) -> np.ndarray | xr.DataArray:
        """Fit the Variogram model to a distance matrix"""
        out = self.model(
            distance_matrix,
            self.nugget,
            self.psill,
            self.range,  # type: ignore
        )
        if isinstance(out, xr.DataArray):
            out = out.where(distance_matrix != 0, 0.0)
            out.name = "variogram"
            return out
        return np.where(np.asarray(distance_matrix) == 0, 0.0, out)

    def covariance(
        self, distance_matrix: np.ndarray | xr.DataArray
    ) -> np.ndarray | xr.DataArray:
        """Covariance implied by the model for a distance matrix"""
        return variogram_to_covariance(self.fit(distance_matrix), self.sill)

    def with_nugget(self, nugget: float) -> "Variogram":
        """Copy of the model with a different nugget, other values fixed"""
        return type(self)(psill=self.psill, nugget=nugget, range=self.range)


@dataclass(frozen=True)
class ExponentialVariogram(Variogram):
    """
    Exponential Model

    .. math::
        \\gamma(h) = nugget + psill (1 - e^{-h / range})

    The effective range is 3 * range.

    Parameters
    ----------
    psill : float
    nugget : float
    range : float | None
    effective_range : float | None
    """

    family: ClassVar[VariogramFamily] = "exponential"
    effective_range_factor: ClassVar[float] = 3.0

    @staticmethod
    def model(h, nugget, psill, range):  # noqa: D102
        return psill * (1.0 - np.exp(-(h / range))) + nugget


@dataclass(frozen=True)
class SphericalVariogram(Variogram):
    """
    Spherical Model

    .. math::
        \\gamma(h) = nugget + psill (1.5 h / range - 0.5 (h / range)^3)

    for h < range, and nugget + psill beyond the range. The range is the
    effective range.

    Parameters
    ----------
    psill : float
    nugget : float
    range : float | None
    effective_range : float | None
    """

    family: ClassVar[VariogramFamily] = "spherical"
    effective_range_factor: ClassVar[float] = 1.0

    @staticmethod
    def model(h, nugget, psill, range):  # noqa: D102
        h_scaled = np.minimum(h / range, 1.0)
        return psill * (1.5 * h_scaled - 0.5 * np.power(h_scaled, 3)) + nugget


@dataclass(frozen=True)
class GaussianVariogram(Variogram):
    """
    Gaussian Model

    .. math::
        \\gamma(h) = nugget + psill (1 - e^{-(h / range)^2})

    The effective range is sqrt(3) * range.

    Parameters
    ----------
    psill : float
    nugget : float
    range : float | None
    effective_range : float | None
    """

    family: ClassVar[VariogramFamily] = "gaussian"
    effective_range_factor: ClassVar[float] = float(np.sqrt(3.0))

    @staticmethod
    def model(h, nugget, psill, range):  # noqa: D102
        return (
            psill * (1.0 - np.exp(-(np.power(h, 2.0) / np.power(range, 2.0))))
            + nugget
        )


VARIOGRAM_FAMILIES: dict[str, type[Variogram]] = {
    "exponential": ExponentialVariogram,
    "spherical": SphericalVariogram,
    "gaussian": GaussianVariogram,
}


def get_variogram_class(family: str) -> type[Variogram]:
    """Look up a Variogram class by its family name"""
    try:
        return VARIOGRAM_FAMILIES[family.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown variogram family: {family}. "
            + f"Expected one of {list(VARIOGRAM_FAMILIES)}"
        ) from None


def variogram_to_covariance(
    variogram: np.ndarray | xr.DataArray,
    variance: np.ndarray | float,
) -> np.ndarray | xr.DataArray:
    """
    Convert a variogram matrix to a covariance matrix.

    This is given by:
        covariance = variance - variogram

    Parameters
    ----------
    variogram : numpy.ndarray | xarray.DataArray
        The variogram matrix, output of Variogram.fit.
    variance : numpy.ndarray | float
        The variance, the total sill of the variogram model.

    Returns
    -------
    cov : numpy.ndarray | xarray.DataArray
        The covariance matrix
    """
    cov = variance - variogram
    if isinstance(cov, xr.DataArray):
        cov.name = "covariance"
    return cov
