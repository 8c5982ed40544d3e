"""Constants used by various functions and methods within the library"""

# Semivariogram binning defaults
DEFAULT_N_BINS: int = 15
# Conventional cut-off: one third of the maximum pairwise distance
DEFAULT_CUTOFF_FRACTION: float = 1.0 / 3.0

# Fraction of the empirical plateau used to pick the initial effective range
PLATEAU_FRACTION: float = 0.95

# Kriging
DEFAULT_BATCH_SIZE: int = 1024
DEFAULT_CONDITION_LIMIT: float = 1e12
# Relative separation below which two locations are treated as duplicates
DUPLICATE_TOLERANCE: float = 1e-12
