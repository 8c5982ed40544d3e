#!/usr/bin/env python
"""
Script to run residual Kriging from a yaml configuration file.

Removes a polynomial trend surface from point observations, fits a variogram
model to the residuals, ordinary Kriges the residuals onto a regular grid and
adds the trend back. Writes a table of (x, y, prediction, variance) and,
optionally, a netCDF grid.
"""

import argparse
import logging
import os

from trend_kriging.grid import (
    grid_from_resolution,
    grid_to_targets,
    result_to_dataset,
)
from trend_kriging.io import (
    get_recurse,
    load_config,
    load_observations,
    write_grid,
    write_table,
)
from trend_kriging.observations import Observations, average_duplicates
from trend_kriging.pipeline import krige_residuals
from trend_kriging.semivariogram import BinPolicy
from trend_kriging.utils import init_logging

parser = argparse.ArgumentParser()
parser.add_argument(
    "-config",
    dest="config",
    required=False,
    default=os.path.join(os.path.dirname(__file__), "config.yaml"),
    help="Path to yaml file containing configuration settings",
    type=str,
)
parser.add_argument(
    "-output",
    dest="output",
    required=False,
    help="Output table path, overrides the configuration value",
    type=str,
)


def _bin_policy(config: dict) -> BinPolicy:
    section = dict(get_recurse(config, "semivariogram", default={}) or {})
    if section.get("edges") is not None:
        section["edges"] = tuple(section["edges"])
    return BinPolicy(**section)


def main() -> None:  # noqa: D103
    args = parser.parse_args()
    config = load_config(args.config)

    init_logging(
        file=get_recurse(config, "logging", "file"),
        level=get_recurse(config, "logging", "level", default="info"),
    )

    obs_path: str | None = get_recurse(config, "observations", "path")
    if obs_path is None:
        raise ValueError("Configuration must set observations: path")
    df = load_observations(obs_path)
    observations = Observations.from_frame(
        df,
        x=get_recurse(config, "observations", "x", default="x"),
        y=get_recurse(config, "observations", "y", default="y"),
        value=get_recurse(config, "observations", "value", default="value"),
    )
    if get_recurse(config, "observations", "average_duplicates", default=True):
        observations = average_duplicates(observations)
    logging.info(f"Loaded {len(observations)} observations")

    bounds = get_recurse(config, "grid", "bounds")
    if bounds is None:
        x_min, y_min = observations.coords.min(axis=0)
        x_max, y_max = observations.coords.max(axis=0)
        bounds = [(y_min, y_max), (x_min, x_max)]
    grid = grid_from_resolution(
        resolution=get_recurse(config, "grid", "resolution", default=1.0),
        bounds=[tuple(b) for b in bounds],
        coord_names=["y", "x"],
    )
    targets = grid_to_targets(grid)
    logging.info(f"Initialised output grid with {len(targets)} points")

    result, fit = krige_residuals(
        observations,
        targets,
        trend_degree=get_recurse(config, "trend", "degree", default=1),
        bin_policy=_bin_policy(config),
        candidate_families=get_recurse(
            config,
            "fit",
            "families",
            default=["exponential", "spherical", "gaussian"],
        ),
        weighted=get_recurse(config, "fit", "weighted", default=True),
        batch_size=get_recurse(config, "kriging", "batch_size", default=1024),
        condition_limit=float(
            get_recurse(config, "kriging", "condition_limit", default=1e12)
        ),
    )
    logging.info(f"Variogram fits:\n{fit.candidates}")

    out_path = args.output or get_recurse(
        config, "output", "path", default="kriging_output.csv"
    )
    write_table(result.to_frame(targets), out_path)

    grid_path = get_recurse(config, "output", "grid_path")
    if grid_path is not None:
        write_grid(result_to_dataset(result, grid), grid_path)
    return None


if __name__ == "__main__":
    main()
