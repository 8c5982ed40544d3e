import logging
import os
import pytest  # noqa: F401
import numpy as np
import polars as pl
import warnings

from trend_kriging.utils import (
    ColumnNotFoundError,
    NegativeVarianceWarning,
    _get_logging_level,
    adjust_small_negative,
    batch_slices,
    batched,
    check_cols,
    init_logging,
)


def test_adjust_small_negative() -> None:
    variances = np.array([0.5, -1e-12, 0.0, -1e-3])
    with pytest.warns(NegativeVarianceWarning):
        out = adjust_small_negative(variances)

    assert np.array_equal(out, [0.5, 0.0, 0.0, 0.0])
    # Input is not modified
    assert variances[1] == -1e-12
    return None


def test_adjust_small_negative_no_warning() -> None:
    variances = np.array([0.5, 0.0, 1.0])
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        out = adjust_small_negative(variances)
    assert np.array_equal(out, variances)
    assert out is not variances
    return None


def test_check_cols() -> None:
    df = pl.DataFrame({"x": [1.0], "y": [2.0]})
    check_cols(df, ["x", "y"])
    with pytest.raises(ColumnNotFoundError):
        check_cols(df, ["x", "value"])
    return None


@pytest.mark.parametrize(
    "level, expected",
    [
        ("DEBUG", logging.DEBUG),
        ("info", logging.INFO),
        ("warn", logging.WARNING),
        ("warning", logging.WARNING),
        ("error", logging.ERROR),
        ("critical", logging.CRITICAL),
    ],
)
def test_logging_level(level, expected) -> None:
    assert _get_logging_level(level) == expected
    return None


def test_logging_level_unknown() -> None:
    with pytest.raises(ValueError):
        _get_logging_level("verbose")
    return None


def test_init_logging(tmp_path) -> None:
    path = os.path.join(tmp_path, "kriging.log")
    init_logging(file=path, level="info")
    logging.info("message for the log file")
    logging.debug("hidden")

    root = logging.getLogger()
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)
    logging.captureWarnings(False)

    with open(path, "r") as io:
        contents = io.read()
    assert "INFO" in contents
    assert "message for the log file" in contents
    assert "hidden" not in contents
    return None


def test_batched() -> None:
    assert list(batched("ABCDEFG", 3)) == [
        ("A", "B", "C"),
        ("D", "E", "F"),
        ("G",),
    ]
    with pytest.raises(ValueError):
        list(batched("ABCDEFG", 3, strict=True))
    with pytest.raises(ValueError):
        list(batched("ABC", 0))
    return None


@pytest.mark.parametrize("n, batch_size", [(10, 3), (10, 10), (10, 100)])
def test_batch_slices(n, batch_size) -> None:
    slices = list(batch_slices(n, batch_size))
    covered = np.concatenate([np.arange(n)[s] for s in slices])

    assert np.array_equal(covered, np.arange(n))
    assert all(s.stop - s.start <= batch_size for s in slices)
    return None
