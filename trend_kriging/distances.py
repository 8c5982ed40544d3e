"""
Functions for calculating distance matrices between observation positions and
between observations and target locations.
"""

import numpy as np
from scipy.spatial.distance import cdist, pdist


def pairwise_distances(coords: np.ndarray) -> np.ndarray:
    """
    Condensed vector of Euclidean distances between all unordered pairs of
    positions, ordered as scipy.spatial.distance.pdist.

    Parameters
    ----------
    coords : numpy.ndarray
        Positions, shape (n, 2).

    Returns
    -------
    dist : numpy.ndarray
        Distances for each pair (i, j) with i < j, length n * (n - 1) / 2.
    """
    return pdist(coords, metric="euclidean")


def distance_matrix(
    coords: np.ndarray,
    other: np.ndarray | None = None,
) -> np.ndarray:
    """
    Euclidean distance matrix between two sets of positions.

    Parameters
    ----------
    coords : numpy.ndarray
        Positions, shape (n, 2).
    other : numpy.ndarray | None
        Second set of positions, shape (m, 2). If not set, the square
        distance matrix between `coords` and itself is returned.

    Returns
    -------
    dist : numpy.ndarray
        Distance matrix of shape (n, m), or (n, n) if `other` is None. The
        diagonal of a square matrix is exactly 0.
    """
    # Coincident points must give a distance of exactly 0
    if other is None:
        return cdist(coords, coords, metric="euclidean")
    return cdist(coords, other, metric="euclidean")
