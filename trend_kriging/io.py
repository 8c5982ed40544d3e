"""
Functions for loading configuration and observations, and for writing
kriging output as a table or a netCDF grid.
"""

import logging
import os
from typing import Any
import polars as pl
import xarray as xr
import yaml

from .types import OutputFormat


def load_config(path: str) -> dict:
    """
    Load a yaml configuration file.

    Parameters
    ----------
    path : str
        Path to the yaml file.

    Returns
    -------
    config : dict
        The configuration, an empty file gives an empty dictionary.
    """
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Configuration file: {path} not found")
    with open(path, "r") as io:
        config = yaml.safe_load(io) or {}
    if not isinstance(config, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    logging.info(f"Loaded configuration from {path}")
    return config


def get_recurse(config: dict, *keys: str, default: Any = None) -> Any:
    """
    Get a value from a nested dictionary, returning a default value if any
    of the keys along the path is missing.

    Examples
    --------
    >>> get_recurse({"a": {"b": 1}}, "a", "b")
    1
    >>> get_recurse({"a": {"b": 1}}, "a", "c", default=2)
    2
    """
    value: Any = config
    for key in keys:
        if not isinstance(value, dict) or key not in value:
            return default
        value = value[key]
    return value


def load_observations(path: str, **kwargs) -> pl.DataFrame:
    """
    Load an observation table from a csv or parquet file into a polars
    DataFrame. Keyword arguments are passed to the polars reader.
    """
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Observation file: {path} not found")
    match os.path.splitext(path)[1].lower():
        case ".parquet":
            return pl.read_parquet(path, **kwargs)
        case _:
            return pl.read_csv(path, **kwargs)


def write_table(
    df: pl.DataFrame,
    path: str,
    fmt: OutputFormat | None = None,
) -> None:
    """
    Write a table of kriging results.

    Parameters
    ----------
    df : polars.DataFrame
        The table, typically the output of KrigingResult.to_frame.
    path : str
        Output file name.
    fmt : "csv" | "parquet" | None
        Output format. If not set, the format is taken from the file
        extension, defaulting to csv.
    """
    if fmt is None:
        fmt = "parquet" if path.lower().endswith(".parquet") else "csv"
    match fmt:
        case "csv":
            df.write_csv(path)
        case "parquet":
            df.write_parquet(path)
        case _:
            raise ValueError(f"Unknown output format: {fmt}")
    logging.info(f"Written {df.height} rows to {path}")
    return None


def write_grid(ds: xr.Dataset, path: str) -> None:
    """Write a gridded kriging result to a netCDF file"""
    ds.to_netcdf(path, engine="netcdf4")
    logging.info(f"Written gridded output to {path}")
    return None
