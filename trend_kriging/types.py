"""Types and Literals used by trend_kriging functions and methods."""

from typing import Literal

VariogramFamily = Literal["exponential", "spherical", "gaussian"]

OutputFormat = Literal["csv", "parquet"]
