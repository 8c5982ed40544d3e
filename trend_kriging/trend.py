"""
Trend Surface
-------------

Adapter around a scikit-learn ordinary least-squares polynomial regression on
the coordinates, used to de-trend observations before estimating the
semivariogram and kriging the residuals.
"""

import logging
import numpy as np
from sklearn.linear_model import LinearRegression
from sklearn.pipeline import Pipeline, make_pipeline
from sklearn.preprocessing import PolynomialFeatures


class TrendSurface:
    """
    Polynomial trend surface in x and y fitted by ordinary least-squares.

    Parameters
    ----------
    degree : int
        Degree of the polynomial. 0 gives a constant mean, 1 a plane, 2 a
        quadratic surface.
    """

    def __init__(self, degree: int = 1) -> None:
        if degree < 0:
            raise ValueError(f"degree must be >= 0, got {degree}")
        self.degree = degree
        self.pipeline: Pipeline = make_pipeline(
            PolynomialFeatures(degree=degree, include_bias=False),
            LinearRegression(),
        )
        self._fitted = False
        return None

    def fit(self, coords: np.ndarray, values: np.ndarray) -> "TrendSurface":
        """Fit the trend surface to values at coordinates"""
        coords = np.asarray(coords, dtype=float)
        values = np.asarray(values, dtype=float)
        n_terms = (self.degree + 1) * (self.degree + 2) // 2
        if coords.shape[0] < n_terms:
            raise ValueError(
                f"A degree {self.degree} trend surface requires at least "
                + f"{n_terms} observations, got {coords.shape[0]}"
            )
        if self.degree == 0:
            # PolynomialFeatures cannot produce zero columns
            self._mean = float(values.mean())
        else:
            self.pipeline.fit(coords, values)
        self._fitted = True
        logging.info(f"Fitted degree {self.degree} trend surface")
        return self

    def predict(self, coords: np.ndarray) -> np.ndarray:
        """Evaluate the fitted trend surface at coordinates"""
        if not self._fitted:
            raise ValueError("Trend surface not fitted. Call fit() first.")
        coords = np.atleast_2d(np.asarray(coords, dtype=float))
        if self.degree == 0:
            return np.full(coords.shape[0], self._mean)
        return self.pipeline.predict(coords)

    def residuals(self, coords: np.ndarray, values: np.ndarray) -> np.ndarray:
        """Fit the trend surface and return values minus the fitted trend"""
        self.fit(coords, values)
        return np.asarray(values, dtype=float) - self.predict(coords)
