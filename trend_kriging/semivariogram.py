"""
Empirical Semivariogram
-----------------------

Estimation of the empirical (experimental) semivariogram of a set of point
observations by binning all unordered pairs of observations by their
separation distance.
"""

from dataclasses import dataclass, field, replace
import logging
import numpy as np
import polars as pl

from .constants import DEFAULT_CUTOFF_FRACTION, DEFAULT_N_BINS
from .distances import pairwise_distances
from .observations import Observations
from .utils import InsufficientDataError


@dataclass(frozen=True)
class BinPolicy:
    """
    Distance binning policy for the empirical semivariogram.

    The bin edges are determined by the first of the following that is set:

    1. `edges` - explicit, strictly increasing, bin edges.
    2. `bin_width` - bins of constant width from 0 up to the cut-off.
    3. `n_bins` - number of equal width bins from 0 up to the cut-off.

    The cut-off is `cutoff` if set, otherwise `cutoff_fraction` multiplied by
    the maximum pairwise distance. The default cut-off is a third of the
    maximum pairwise distance, pairs further apart than this are few and
    dominated by the edges of the domain. If no pair falls within a cut-off
    derived from `cutoff_fraction`, the maximum pairwise distance is used
    instead.

    Bins are closed on the left and open on the right, except for the last
    bin which is closed on both sides. Pairs outside of all bins are ignored.

    Parameters
    ----------
    n_bins : int
        Number of bins, used if neither `edges` nor `bin_width` is set.
    bin_width : float | None
        Width of each bin.
    edges : tuple[float, ...] | None
        Explicit bin edges.
    cutoff : float | None
        Maximum pair distance to consider.
    cutoff_fraction : float
        Fraction of the maximum pairwise distance used as the cut-off if
        `cutoff` is not set.
    """

    n_bins: int = DEFAULT_N_BINS
    bin_width: float | None = None
    edges: tuple[float, ...] | None = None
    cutoff: float | None = None
    cutoff_fraction: float = DEFAULT_CUTOFF_FRACTION

    def __post_init__(self) -> None:
        if self.edges is not None:
            edges = tuple(float(e) for e in self.edges)
            if len(edges) < 2:
                raise ValueError("edges must contain at least 2 values")
            if np.any(np.diff(edges) <= 0):
                raise ValueError("edges must be strictly increasing")
            if edges[0] < 0:
                raise ValueError("edges must be non-negative")
            object.__setattr__(self, "edges", edges)
        if self.n_bins < 1:
            raise ValueError(f"n_bins must be >= 1, got {self.n_bins}")
        if self.bin_width is not None and self.bin_width <= 0:
            raise ValueError(
                f"bin_width must be positive, got {self.bin_width}"
            )
        if self.cutoff is not None and self.cutoff <= 0:
            raise ValueError(f"cutoff must be positive, got {self.cutoff}")
        if not 0 < self.cutoff_fraction <= 1:
            raise ValueError(
                "cutoff_fraction must be in (0, 1], "
                + f"got {self.cutoff_fraction}"
            )
        return None

    @property
    def relative_cutoff(self) -> bool:
        """Bins are derived from `cutoff_fraction` of the maximum distance"""
        return self.edges is None and self.cutoff is None

    def get_edges(self, max_distance: float) -> np.ndarray:
        """
        Compute the bin edges for a set of pairs.

        Parameters
        ----------
        max_distance : float
            The maximum pairwise distance between observations.

        Returns
        -------
        edges : numpy.ndarray
            Strictly increasing bin edges.
        """
        if self.edges is not None:
            return np.asarray(self.edges)

        cutoff = self.cutoff or self.cutoff_fraction * max_distance
        if cutoff <= 0:
            raise InsufficientDataError(
                "Distance cut-off is 0, all observations are co-located"
            )
        if self.bin_width is not None:
            n_bins = max(int(np.ceil(cutoff / self.bin_width)), 1)
            return np.arange(n_bins + 1) * self.bin_width
        return np.linspace(0.0, cutoff, self.n_bins + 1)


@dataclass(frozen=True)
class EmpiricalSemivariogram:
    """
    Empirical semivariogram, one entry per non-empty distance bin.

    Parameters
    ----------
    lags : numpy.ndarray
        Average separation distance of the pairs in each bin.
    semivariance : numpy.ndarray
        Mean semivariance in each bin, half the mean squared difference.
    n_pairs : numpy.ndarray
        Number of pairs in each bin, all values are positive.
    """

    lags: np.ndarray = field(repr=False)
    semivariance: np.ndarray = field(repr=False)
    n_pairs: np.ndarray = field(repr=False)

    def __post_init__(self) -> None:
        if not (
            len(self.lags) == len(self.semivariance) == len(self.n_pairs)
        ):
            raise ValueError("lags, semivariance and n_pairs must align")
        if np.any(self.n_pairs <= 0):
            raise ValueError("All bins must contain at least one pair")
        return None

    def __len__(self) -> int:
        return len(self.lags)

    def __repr__(self) -> str:
        return (
            f"EmpiricalSemivariogram(n_bins={len(self)}, "
            + f"n_pairs={int(self.n_pairs.sum())})"
        )

    def to_frame(self) -> pl.DataFrame:
        """Convert to a polars DataFrame"""
        return pl.DataFrame(
            {
                "lag": self.lags,
                "semivariance": self.semivariance,
                "n_pairs": self.n_pairs,
            }
        )


def estimate_semivariogram(
    observations: Observations,
    bin_policy: BinPolicy | None = None,
) -> EmpiricalSemivariogram:
    """
    Estimate the empirical semivariogram of a set of observations.

    For every unordered pair of observations (i, j) the separation h_ij and
    the squared difference (z_i - z_j)^2 are computed. Pairs are assigned to
    distance bins and, for each non-empty bin, the semivariance is

    .. math::
        \\gamma = \\frac{1}{2 N} \\sum (z_i - z_j)^2

    where N is the number of pairs in the bin. Empty bins are omitted. If the
    policy cut-off is relative and leaves every bin empty, the bins are
    re-computed up to the maximum pairwise distance and a warning is logged.

    Parameters
    ----------
    observations : Observations
        The observations, typically the residuals from a trend model.
    bin_policy : BinPolicy | None
        The distance binning policy, defaults to BinPolicy().

    Returns
    -------
    EmpiricalSemivariogram

    Raises
    ------
    InsufficientDataError
        If there are fewer than 2 observations, or no pair falls in any bin.
    """
    n = len(observations)
    if n < 2:
        raise InsufficientDataError(
            f"At least 2 observations are required, got {n}"
        )
    bin_policy = bin_policy or BinPolicy()

    dist = pairwise_distances(observations.coords)
    # Same ordering as pdist, i < j
    i, j = np.triu_indices(n, k=1)
    sq_diff = np.power(observations.values[i] - observations.values[j], 2)

    edges = bin_policy.get_edges(float(dist.max()))
    logging.debug(f"Semivariogram bin edges: {edges}")
    counts, sq_sums, dist_sums = _bin_pairs(dist, sq_diff, edges)

    if not (counts > 0).any() and bin_policy.relative_cutoff:
        logging.warning(
            f"No observation pairs within the cut-off {edges[-1]:.4g}, "
            + "using the maximum pairwise distance"
        )
        edges = replace(bin_policy, cutoff_fraction=1.0).get_edges(
            float(dist.max())
        )
        counts, sq_sums, dist_sums = _bin_pairs(dist, sq_diff, edges)

    non_empty = counts > 0
    if not non_empty.any():
        raise InsufficientDataError(
            "No observation pairs fall within the distance bins "
            + f"[{edges[0]}, {edges[-1]}]"
        )

    counts = counts[non_empty]
    empirical = EmpiricalSemivariogram(
        lags=dist_sums[non_empty] / counts,
        semivariance=sq_sums[non_empty] / (2.0 * counts),
        n_pairs=counts,
    )
    logging.info(
        f"Estimated empirical semivariogram with {len(empirical)} bins from "
        + f"{int(counts.sum())} pairs"
    )
    return empirical


def _bin_pairs(
    dist: np.ndarray,
    sq_diff: np.ndarray,
    edges: np.ndarray,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    # np.histogram bins are [lo, hi) with the last bin [lo, hi]
    counts, _ = np.histogram(dist, bins=edges)
    sq_sums, _ = np.histogram(dist, bins=edges, weights=sq_diff)
    dist_sums, _ = np.histogram(dist, bins=edges, weights=dist)
    return counts, sq_sums, dist_sums
