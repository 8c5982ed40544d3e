"""
Observations
------------

Container for spatially located scalar observations, and helpers for loading
them from a polars DataFrame and resolving duplicate locations.
"""

from dataclasses import dataclass, field
import logging
import numpy as np
import polars as pl

from .utils import check_cols


@dataclass(frozen=True)
class Observations:
    """
    A set of 2-d point observations.

    The coordinate and value arrays are copied and made read-only on
    construction.

    Parameters
    ----------
    coords : numpy.ndarray
        Observation positions, shape (n, 2) with columns x and y.
    values : numpy.ndarray
        Observed values, or residuals from a trend model, shape (n,).
    """

    coords: np.ndarray = field(repr=False)
    values: np.ndarray = field(repr=False)

    def __post_init__(self) -> None:
        coords = np.array(self.coords, dtype=float)
        values = np.array(self.values, dtype=float).ravel()
        if coords.ndim != 2 or coords.shape[1] != 2:
            raise ValueError(
                f"coords must have shape (n, 2), got {coords.shape}"
            )
        if coords.shape[0] != values.shape[0]:
            raise ValueError(
                f"Number of coordinates ({coords.shape[0]}) and values "
                + f"({values.shape[0]}) must match"
            )
        if not (np.all(np.isfinite(coords)) and np.all(np.isfinite(values))):
            raise ValueError("Observations must not contain NaN or inf")
        coords.flags.writeable = False
        values.flags.writeable = False
        # Frozen dataclass: bypass __setattr__ to store the copies
        object.__setattr__(self, "coords", coords)
        object.__setattr__(self, "values", values)
        return None

    def __len__(self) -> int:
        return self.values.shape[0]

    def __repr__(self) -> str:
        return f"Observations(n={len(self)})"

    @classmethod
    def from_frame(
        cls,
        df: pl.DataFrame,
        x: str = "x",
        y: str = "y",
        value: str = "value",
    ) -> "Observations":
        """
        Build Observations from a polars DataFrame.

        Parameters
        ----------
        df : polars.DataFrame
            Observational DataFrame containing positions and values.
        x : str
            Name of the column containing x positions.
        y : str
            Name of the column containing y positions.
        value : str
            Name of the column containing observed values.

        Returns
        -------
        Observations
        """
        check_cols(df, [x, y, value])
        if df.select([x, y, value]).null_count().sum_horizontal().item():
            raise ValueError("Observation columns must not contain nulls")
        coords = df.select([x, y]).to_numpy()
        return cls(coords, df.get_column(value).to_numpy())

    def to_frame(self, value: str = "value") -> pl.DataFrame:
        """Convert to a polars DataFrame with columns x, y and `value`"""
        return pl.DataFrame(
            {
                "x": self.coords[:, 0],
                "y": self.coords[:, 1],
                value: self.values,
            }
        )

    def with_values(self, values: np.ndarray) -> "Observations":
        """Copy of the observations at the same positions with new values"""
        return Observations(self.coords, values)


def average_duplicates(
    observations: Observations,
    decimals: int | None = None,
) -> Observations:
    """
    Average observations that share a location.

    Duplicate locations make the ordinary kriging system singular, points that
    contain more than 1 observation should be averaged.

    Parameters
    ----------
    observations : Observations
        The input observations.
    decimals : int | None
        Optionally round coordinates to this many decimal places before
        looking for duplicates, merging near-coincident locations.

    Returns
    -------
    Observations
        One observation per unique location, ordered by location.
    """
    coords = observations.coords
    if decimals is not None:
        coords = np.round(coords, decimals)
    unique_coords, inverse = np.unique(coords, axis=0, return_inverse=True)
    inverse = inverse.ravel()
    if unique_coords.shape[0] == len(observations):
        return observations

    counts = np.bincount(inverse)
    sums = np.bincount(inverse, weights=observations.values)
    logging.info(
        f"Averaged {len(observations) - unique_coords.shape[0]} duplicate "
        + "observation(s)"
    )
    return Observations(unique_coords, sums / counts)
