import pytest  # noqa: F401
import numpy as np
import xarray as xr

from trend_kriging.grid import (
    assign_to_grid,
    grid_from_resolution,
    grid_to_targets,
    result_to_dataset,
)
from trend_kriging.kriging import KrigingResult


def new_grid() -> xr.DataArray:
    """Get a new grid for the test"""
    return grid_from_resolution(
        resolution=0.25,
        bounds=[(0.0, 1.0), (0.0, 2.0)],
        coord_names=["y", "x"],
    )


def test_grid_from_resolution() -> None:
    grid = new_grid()

    assert grid.dims == ("y", "x")
    assert grid.shape == (5, 9)
    assert np.allclose(grid.coords["y"].values, np.linspace(0, 1, 5))
    assert np.allclose(grid.coords["x"].values, np.linspace(0, 2, 9))
    return None


def test_grid_multiple_resolutions() -> None:
    grid = grid_from_resolution(
        resolution=[1.0, 0.5],
        bounds=[(0.0, 3.0), (0.0, 1.0)],
    )
    assert grid.shape == (4, 3)
    return None


def test_grid_invalid() -> None:
    with pytest.raises(ValueError):
        grid_from_resolution(resolution=0.0, bounds=[(0, 1), (0, 1)])
    with pytest.raises(ValueError):
        grid_from_resolution(resolution=[1.0], bounds=[(0, 1), (0, 1)])
    return None


def test_grid_to_targets() -> None:
    grid = new_grid()
    targets = grid_to_targets(grid)

    assert targets.shape == (45, 2)
    # x varies fastest
    assert np.allclose(targets[0], [0.0, 0.0])
    assert np.allclose(targets[1], [0.25, 0.0])
    assert np.allclose(targets[9], [0.0, 0.25])
    assert np.allclose(targets[-1], [2.0, 1.0])
    return None


def test_grid_to_targets_bad_coords() -> None:
    grid = new_grid()
    with pytest.raises(KeyError):
        grid_to_targets(grid, x_coord="longitude")
    return None


def test_assign_to_grid() -> None:
    grid = new_grid()
    targets = grid_to_targets(grid)
    values = targets[:, 0] + 10 * targets[:, 1]

    out = assign_to_grid(values, grid, name="field")

    assert out.name == "field"
    assert out.shape == grid.shape
    assert out.sel(y=0.5, x=1.5).item() == pytest.approx(6.5)
    assert out.sel(y=1.0, x=0.0).item() == pytest.approx(10.0)
    with pytest.raises(ValueError):
        assign_to_grid(values[:-1], grid)
    return None


def test_result_to_dataset() -> None:
    grid = new_grid()
    n = grid.size
    result = KrigingResult(
        predictions=np.arange(n, dtype=float),
        variances=np.ones(n),
    )
    ds = result_to_dataset(result, grid)

    assert set(ds.data_vars) == {"prediction", "variance"}
    assert ds["prediction"].shape == (5, 9)
    assert ds["prediction"].isel(y=1, x=0).item() == 9.0
    assert np.all(ds["variance"].values == 1.0)
    return None
