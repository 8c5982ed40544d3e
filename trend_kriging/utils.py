r"""Utility functions for `trend_kriging`"""

from collections.abc import Iterable
import inspect
from itertools import islice
import logging
import numpy as np
import polars as pl
from warnings import warn


class KrigingError(Exception):
    """Base error class for failures of the kriging pipeline"""

    pass


class InsufficientDataError(KrigingError):
    """
    Error class for too few observations, or a distance binning that leaves
    no non-empty bins.
    """

    pass


class FittingFailureError(KrigingError):
    """Error class for no candidate variogram family producing a valid fit"""

    pass


class DegenerateInputError(KrigingError):
    """
    Error class for a numerically singular or near-singular kriging system,
    typically caused by duplicate observation locations.
    """

    pass


class ColumnNotFoundError(Exception):
    """Error class for Column Not Being Found"""

    pass


class NegativeVarianceWarning(UserWarning):
    """Warning for negative kriging variances that have been set to 0"""

    pass


def adjust_small_negative(
    mat: np.ndarray,
    atol: float = 1e-8,
) -> np.ndarray:
    """
    Adjusts negative values in a vector of kriging variances to 0.

    Raises a NegativeVarianceWarning if any negative values are detected.
    Values that are negative beyond the tolerance are additionally logged
    as a warning since they indicate a poorly conditioned system rather than
    round-off.

    Parameters
    ----------
    mat : numpy.ndarray[float]
        Kriging variances.
    atol : float
        Absolute tolerance within which a negative value is treated as
        floating-point round-off.

    Returns
    -------
    numpy.ndarray[float]
        A copy of the input with negative values set to 0.
    """
    negative = mat < 0.0
    # Input may be a read-only view (e.g. from np.diag)
    ret = mat.copy()
    if negative.any():
        large = np.logical_and(negative, ~np.isclose(mat, 0, atol=atol))
        warn(
            f"{int(negative.sum())} negative kriging variance(s) detected. "
            + "Setting to 0.",
            NegativeVarianceWarning,
        )
        logging.debug(f"Negative variances: {mat[negative]}")
        if large.any():
            logging.warning(
                f"Minimum kriging variance {mat.min():.3e} exceeds round-off "
                + "tolerance, the kriging system may be poorly conditioned"
            )
        ret[negative] = 0.0
    return ret


def check_cols(
    df: pl.DataFrame,
    cols: list[str],
) -> None:
    """Check that all columns in a list of columns are in a DataFrame"""
    # Get name of function that is calling this
    calling_func = str(inspect.stack()[1][3])

    missing_cols = [c for c in cols if c not in df.columns]
    if missing_cols:
        raise ColumnNotFoundError(
            calling_func
            + ": DataFrame is missing required columns: "
            + ", ".join(missing_cols)
        )
    return None


def _get_logging_level(level: str) -> int:
    match level.lower():
        case "debug":
            level_i = 10
        case "info":
            level_i = 20
        case "warn" | "warning":
            level_i = 30
        case "error":
            level_i = 40
        case "critical":
            level_i = 50
        case _:
            raise ValueError(f"Unknown logging level: {level}")
    return level_i


def init_logging(
    file: str | None = None,
    level: str = "DEBUG",
) -> None:
    """
    Initialise the logger

    Parameters
    ----------
    file : str
        File to send log messages to. If set to None (default) then print log
        messages to STDout
    level : str
        Level of logging, one of: "debug", "info", "warn", "error", "critical".

    Returns
    -------
    None
    """
    level_i: int = _get_logging_level(level)

    logging.basicConfig(
        filename=file,
        filemode="a",
        encoding="utf-8",
        format="%(levelname)s at %(asctime)s : %(message)s",
        level=level_i,
        force=True,
    )
    logging.captureWarnings(True)
    return None


def batched(iterable: Iterable, n: int, *, strict: bool = False):
    """
    Implementation of itertools.batched for use if python version is < 3.12.

    Examples
    --------
    >>> list(batched("ABCDEFG", 3))
    [("A", "B", "C"), ("D", "E", "F"), ("G", )]
    """
    if n < 1:
        raise ValueError("'n' must be >= 1")
    iterator = iter(iterable)
    while batch := tuple(islice(iterator, n)):
        if strict and len(batch) != n:
            raise ValueError("batched(): incomplete batch")
        yield batch


def batch_slices(n: int, batch_size: int):
    """
    Yield slices covering range(n) in consecutive chunks of at most
    `batch_size` elements.
    """
    for batch in batched(range(n), batch_size):
        yield slice(batch[0], batch[-1] + 1)
