import os
import pytest  # noqa: F401
import numpy as np
import polars as pl
import xarray as xr

from trend_kriging.io import (
    get_recurse,
    load_config,
    load_observations,
    write_grid,
    write_table,
)


def test_nested_dict() -> None:
    test_dict = {
        "nested": {"a": 4, "nested_2": {"a": 6, "b": 3}},
        "a": 2,
        "b": 9,
    }

    assert get_recurse(test_dict, "c") is None
    assert get_recurse(test_dict, "a") == 2
    assert get_recurse(test_dict, "nested", "a") == 4
    assert get_recurse(test_dict, "nested", "b") is None
    assert get_recurse(test_dict, "nested", "b", default="DEFAULT") == "DEFAULT"
    assert get_recurse(test_dict, "nested", "nested_2", "a") == 6
    assert get_recurse(test_dict, "a", "b", default=1) == 1
    return None


def test_load_config(tmp_path) -> None:
    path = os.path.join(tmp_path, "config.yaml")
    with open(path, "w") as io:
        io.write("semivariogram:\n  n_bins: 10\nfit:\n  weighted: false\n")

    config = load_config(path)

    assert get_recurse(config, "semivariogram", "n_bins") == 10
    assert get_recurse(config, "fit", "weighted") is False
    return None


def test_load_config_errors(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(os.path.join(tmp_path, "missing.yaml"))

    path = os.path.join(tmp_path, "list.yaml")
    with open(path, "w") as io:
        io.write("- 1\n- 2\n")
    with pytest.raises(ValueError):
        load_config(path)

    empty = os.path.join(tmp_path, "empty.yaml")
    open(empty, "w").close()
    assert load_config(empty) == {}
    return None


@pytest.mark.parametrize("ext", ["csv", "parquet"])
def test_table_round_trip(tmp_path, ext) -> None:
    df = pl.DataFrame(
        {
            "x": [0.0, 1.0],
            "y": [2.0, 3.0],
            "prediction": [4.0, 5.0],
            "variance": [0.1, 0.2],
        }
    )
    path = os.path.join(tmp_path, f"out.{ext}")

    write_table(df, path)
    loaded = load_observations(path)

    assert loaded.equals(df)
    return None


def test_write_table_unknown_format(tmp_path) -> None:
    df = pl.DataFrame({"x": [0.0]})
    path = os.path.join(tmp_path, "out.txt")
    with pytest.raises(ValueError):
        write_table(df, path, fmt="json")  # type: ignore
    return None


def test_load_observations_missing(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_observations(os.path.join(tmp_path, "missing.csv"))
    return None


def test_write_grid(tmp_path) -> None:
    prediction = np.arange(6, dtype=float).reshape(2, 3)
    ds = xr.Dataset(
        {
            "prediction": (("y", "x"), prediction),
            "variance": (("y", "x"), np.ones((2, 3))),
        },
        coords={"y": [0.0, 1.0], "x": [0.0, 1.0, 2.0]},
    )
    path = os.path.join(tmp_path, "out.nc")

    write_grid(ds, path)

    with xr.open_dataset(path) as loaded:
        assert np.array_equal(loaded["prediction"].values, ds["prediction"])
        assert loaded["variance"].dims == ("y", "x")
    return None
