"""
Functions for performing Ordinary Kriging.

Best linear unbiased prediction with a constant but unknown mean, using the
covariance structure implied by a fitted variogram model.
"""

from dataclasses import dataclass, field
import logging
import numpy as np
import polars as pl
from scipy.linalg import lu_factor, lu_solve
from scipy.linalg.lapack import dgecon

from .constants import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_CONDITION_LIMIT,
    DUPLICATE_TOLERANCE,
)
from .distances import distance_matrix
from .observations import Observations
from .utils import (
    DegenerateInputError,
    InsufficientDataError,
    adjust_small_negative,
    batch_slices,
)
from .variogram import Variogram


@dataclass
class KrigingResult:
    """
    Container for kriging predictions.

    Attributes
    ----------
    predictions : numpy.ndarray
        Predicted value at each target location.
    variances : numpy.ndarray
        Kriging (prediction error) variance at each target location, all
        values are >= 0.
    weights : numpy.ndarray | None
        Kriging weights, shape (n_targets, n_observations). Only set if
        requested.
    lagrange : numpy.ndarray | None
        Lagrange multiplier for each target. Only set if weights are
        requested.
    """

    predictions: np.ndarray
    variances: np.ndarray
    weights: np.ndarray | None = field(default=None, repr=False)
    lagrange: np.ndarray | None = field(default=None, repr=False)

    def __len__(self) -> int:
        return len(self.predictions)

    def __repr__(self) -> str:
        return (
            f"KrigingResult(n_targets={len(self)}, "
            + f"mean_prediction={self.predictions.mean():.4f}, "
            + f"mean_variance={self.variances.mean():.4f})"
        )

    def to_frame(self, targets: np.ndarray) -> pl.DataFrame:
        """
        Table of target coordinates, predictions and variances.

        Parameters
        ----------
        targets : numpy.ndarray
            The target locations used to compute the result, shape (T, 2).

        Returns
        -------
        polars.DataFrame
            With columns "x", "y", "prediction" and "variance".
        """
        targets = np.asarray(targets, dtype=float)
        if targets.shape[0] != len(self):
            raise ValueError("Number of targets does not match the result")
        return pl.DataFrame(
            {
                "x": targets[:, 0],
                "y": targets[:, 1],
                "prediction": self.predictions,
                "variance": self.variances,
            }
        )


class OrdinaryKriging:
    r"""
    Class for OrdinaryKriging.

    For each target location p the weights :math:`\\lambda_p` and Lagrange
    multiplier :math:`\\mu_p` solve the system

    .. math::
        \\begin{pmatrix} C & 1 \\\\ 1^T & 0 \\end{pmatrix}
        \\begin{pmatrix} \\lambda_p \\\\ \\mu_p \\end{pmatrix}
        = \\begin{pmatrix} c_p \\\\ 1 \\end{pmatrix}

    Where :math:`C` is the covariance between observations and :math:`c_p`
    is the covariance between the observations and the target, both derived
    from the variogram model as sill - variogram. The Lagrange multiplier
    row constrains the weights to sum to 1, so the predictor is unbiased.

    The prediction is :math:`\\lambda_p^T z` and the kriging variance is
    :math:`\\sigma^2 - \\lambda_p^T c_p - \\mu_p`, with :math:`\\sigma^2` the
    total sill.

    The extended covariance matrix does not depend on the target, so it is
    LU-factorised once on construction and the factorisation is re-used for
    all targets. The matrix is never explicitly inverted. The covariances are
    divided by the sill before factorising, which leaves the weights unchanged
    and scales the Lagrange multiplier, so that the condition number checked
    against `condition_limit` (estimated from the LU factors) does not depend
    on the units of the observations.

    Parameters
    ----------
    observations : Observations
        The observations, or residuals from a trend model.
    model : Variogram
        The fitted variogram model.
    condition_limit : float
        Largest accepted condition number of the extended covariance matrix.

    Raises
    ------
    InsufficientDataError
        If there are no observations.
    DegenerateInputError
        If two observations share a location, or the extended covariance
        matrix is numerically singular.
    """

    method: str = "ordinary"

    def __init__(
        self,
        observations: Observations,
        model: Variogram,
        condition_limit: float = DEFAULT_CONDITION_LIMIT,
    ) -> None:
        if len(observations) < 1:
            raise InsufficientDataError("Kriging requires observations")
        self.observations = observations
        self.model = model
        self.condition_limit = condition_limit

        obs_dist = distance_matrix(observations.coords)
        self._check_duplicates(obs_dist)

        N = len(observations)
        self.covariance = np.asarray(model.covariance(obs_dist))
        # Sill-normalised, the condition number is independent of data units
        self._scale = model.sill if model.sill > 0 else 1.0
        # Add Lagrange multiplier
        extended = np.block(
            [
                [self.covariance / self._scale, np.ones((N, 1))],
                [np.ones((1, N)), 0],
            ]
        )
        self._lu_piv = lu_factor(extended)

        cond = _condition_estimate(extended, self._lu_piv[0])
        logging.debug(f"Extended covariance condition number: {cond:.3e}")
        if not np.isfinite(cond) or cond > condition_limit:
            raise DegenerateInputError(
                "Ordinary kriging system is numerically singular "
                + f"(condition number {cond:.3e} > {condition_limit:.3e}). "
                + "Check for near-duplicate observation locations or a "
                + "variogram model without a nugget."
            )
        return None

    def _check_duplicates(self, obs_dist: np.ndarray) -> None:
        N = obs_dist.shape[0]
        if N < 2:
            return None
        scale = float(obs_dist.max())
        tol = DUPLICATE_TOLERANCE * scale if scale > 0 else 0.0
        i, j = np.triu_indices(N, k=1)
        dup = obs_dist[i, j] <= tol
        if dup.any():
            first = int(np.flatnonzero(dup)[0])
            raise DegenerateInputError(
                f"{int(dup.sum())} pair(s) of observations share a location, "
                + f"first pair: ({i[first]}, {j[first]}) at "
                + f"{self.observations.coords[i[first]]}. "
                + "Average duplicate observations before kriging."
            )
        return None

    def get_kriging_weights(
        self,
        targets: np.ndarray,
    ) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Compute the Kriging weights and Lagrange multipliers for a set of
        target locations using the stored factorisation.

        Parameters
        ----------
        targets : numpy.ndarray
            Target locations, shape (T, 2).

        Returns
        -------
        weights : numpy.ndarray
            Kriging weights, shape (T, n).
        lagrange : numpy.ndarray
            Lagrange multipliers, shape (T,).
        obs_target_cov : numpy.ndarray
            Covariance between the observations and the targets, shape (n, T).
        """
        targets = _as_targets(targets)
        N = len(self.observations)
        obs_target_dist = distance_matrix(self.observations.coords, targets)
        obs_target_cov = np.asarray(self.model.covariance(obs_target_dist))

        rhs = np.concatenate(
            (obs_target_cov / self._scale, np.ones((1, targets.shape[0]))),
            axis=0,
        )
        solution = lu_solve(self._lu_piv, rhs)
        # Weights are unchanged by the normalisation, the multiplier scales
        lagrange = solution[N, :] * self._scale
        return solution[:N, :].T, lagrange, obs_target_cov

    def solve(
        self,
        targets: np.ndarray,
        batch_size: int = DEFAULT_BATCH_SIZE,
        return_weights: bool = False,
    ) -> KrigingResult:
        """
        Solves the ordinary Kriging problem at a set of target locations.

        Targets are processed in batches of `batch_size` locations, each batch
        only reads the shared factorisation of the extended covariance
        matrix.

        Parameters
        ----------
        targets : numpy.ndarray
            Target locations, shape (T, 2).
        batch_size : int
            Number of targets solved at once.
        return_weights : bool
            Include the kriging weights and Lagrange multipliers in the
            result.

        Returns
        -------
        KrigingResult
        """
        targets = _as_targets(targets)
        T = targets.shape[0]
        N = len(self.observations)
        values = self.observations.values

        predictions = np.empty(T)
        variances = np.empty(T)
        weights = np.empty((T, N)) if return_weights else None
        lagrange = np.empty(T) if return_weights else None

        for batch in batch_slices(T, batch_size):
            w, mu, obs_target_cov = self.get_kriging_weights(targets[batch])
            predictions[batch] = w @ values
            variances[batch] = (
                self.model.sill - np.einsum("tn,nt->t", w, obs_target_cov) - mu
            )
            if return_weights:
                weights[batch] = w  # type: ignore
                lagrange[batch] = mu  # type: ignore

        variances = adjust_small_negative(variances)
        logging.info(f"Ordinary Kriging complete for {T} target(s)")
        return KrigingResult(
            predictions=predictions,
            variances=variances,
            weights=weights,
            lagrange=lagrange,
        )


def _condition_estimate(mat: np.ndarray, lu: np.ndarray) -> float:
    """
    Estimate the 1-norm condition number of a matrix from its LU factors with
    LAPACK gecon, avoiding a second O(n^3) decomposition.
    """
    anorm = float(np.abs(mat).sum(axis=0).max())
    rcond, info = dgecon(lu, anorm, norm="1")
    if info != 0 or rcond <= 0:
        return np.inf
    return 1.0 / rcond


def _as_targets(targets: np.ndarray) -> np.ndarray:
    targets = np.atleast_2d(np.asarray(targets, dtype=float))
    if targets.ndim != 2 or targets.shape[1] != 2:
        raise ValueError(f"targets must have shape (T, 2), got {targets.shape}")
    return targets


def krige(
    observations: Observations,
    model: Variogram,
    targets: np.ndarray,
    batch_size: int = DEFAULT_BATCH_SIZE,
    return_weights: bool = False,
    condition_limit: float = DEFAULT_CONDITION_LIMIT,
) -> KrigingResult:
    """
    Perform Ordinary Kriging of observations at a set of target locations.

    Parameters
    ----------
    observations : Observations
        The observations, or residuals from a trend model.
    model : Variogram
        The fitted variogram model.
    targets : numpy.ndarray
        Target locations, shape (T, 2).
    batch_size : int
        Number of targets solved at once.
    return_weights : bool
        Include the kriging weights and Lagrange multipliers in the result.
    condition_limit : float
        Largest accepted condition number of the extended covariance matrix.

    Returns
    -------
    KrigingResult
        Predictions and non-negative kriging variances at each target.

    Raises
    ------
    DegenerateInputError
        If the kriging system is numerically singular.
    """
    return OrdinaryKriging(
        observations, model, condition_limit=condition_limit
    ).solve(targets, batch_size=batch_size, return_weights=return_weights)
