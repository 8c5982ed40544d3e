"""
Grid
----

Functions for creating target grids and mapping kriging results back onto a
grid.
"""

from collections.abc import Iterable
import numpy as np
import xarray as xr

from .kriging import KrigingResult


def grid_from_resolution(
    resolution: float | list[float],
    bounds: list[tuple[float, float]],
    coord_names: list[str] = ["y", "x"],
) -> xr.DataArray:
    """
    Generate a grid from a resolution value, or a list of resolutions for
    given boundaries and coordinate names.

    Note that all list inputs must have the same length, the ordering of values
    in the lists is assumed align.

    Parameters
    ----------
    resolution : float | list[float]
        Resolution of the grid. Can be a single resolution value that will be
        applied to all coordinates, or a list of values mapping a resolution
        value to each of the coordinates.
    bounds : list[tuple[float, float]]
        A list of bounds of the form `(lower_bound, upper_bound)` indicating
        the bounding box of the returned grid. Upper bounds are included if
        they lie on the grid.
    coord_names : list[str]
        List of coordinate names, by default ["y", "x"] so that rows of the
        grid run along y.

    Returns
    -------
    grid : xarray.DataArray:
        The grid defined by the resolution and bounding box.
    """
    if not isinstance(resolution, Iterable):
        resolution = [resolution for _ in range(len(bounds))]
    if len(resolution) != len(coord_names) or len(bounds) != len(coord_names):
        raise ValueError("Input lists must have the same length")
    if any(res <= 0 for res in resolution):
        raise ValueError("Resolution values must be positive")
    coords = {
        c_name: lbound
        + res * np.arange(int(np.floor((ubound - lbound) / res + 1e-9)) + 1)
        for c_name, (lbound, ubound), res in zip(
            coord_names, bounds, resolution
        )
    }
    grid = xr.DataArray(coords=xr.Coordinates(coords))
    return grid


def grid_to_targets(
    grid: xr.DataArray,
    x_coord: str = "x",
    y_coord: str = "y",
) -> np.ndarray:
    """
    Target locations for every point of a 2-d grid.

    Parameters
    ----------
    grid : xarray.DataArray
        A 2-d grid with x and y coordinates.
    x_coord : str
        Name of the x coordinate in the grid.
    y_coord : str
        Name of the y coordinate in the grid.

    Returns
    -------
    targets : numpy.ndarray
        Array of shape (T, 2) with columns x and y, ordered as the grid
        flattened in "C" (row-major) order.
    """
    _check_grid(grid, x_coord, y_coord)
    mesh = np.meshgrid(
        *(grid.coords[dim].values for dim in grid.dims), indexing="ij"
    )
    by_dim = dict(zip(grid.dims, (m.ravel(order="C") for m in mesh)))
    return np.column_stack([by_dim[x_coord], by_dim[y_coord]])


def assign_to_grid(
    values: np.ndarray,
    grid: xr.DataArray,
    name: str | None = None,
) -> xr.DataArray:
    """
    Assign a vector of values, ordered as the output of grid_to_targets, to a
    grid.

    Parameters
    ----------
    values : numpy.ndarray
        The values to map onto the output grid.
    grid : xarray.DataArray
        The grid used to define the output grid.
    name : str | None
        Optional name of the output DataArray.

    Returns
    -------
    out_grid : xarray.DataArray
        A new grid containing the values mapped onto the grid.
    """
    values = np.asarray(values)
    if values.size != grid.size:
        raise ValueError(
            f"Number of values ({values.size}) does not match the grid size "
            + f"({grid.size})"
        )
    return xr.DataArray(
        data=np.reshape(values, grid.shape, order="C"),
        coords=grid.coords,
        name=name,
    )


def result_to_dataset(
    result: KrigingResult,
    grid: xr.DataArray,
) -> xr.Dataset:
    """
    Convert a kriging result on the points of a grid into an xarray.Dataset
    with "prediction" and "variance" variables.
    """
    return xr.Dataset(
        {
            "prediction": assign_to_grid(result.predictions, grid),
            "variance": assign_to_grid(result.variances, grid),
        }
    )


def _check_grid(grid: xr.DataArray, x_coord: str, y_coord: str) -> None:
    if len(grid.dims) != 2:
        raise ValueError(
            "Input grid must have 2 dimensions - specifying x and y."
        )
    if x_coord not in grid.dims:
        raise KeyError(f"Cannot find x coordinate {x_coord} in the grid.")
    if y_coord not in grid.dims:
        raise KeyError(f"Cannot find y coordinate {y_coord} in the grid.")
    return None
