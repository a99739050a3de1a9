"""
Shanks Acceleration Library

Convergence acceleration for slowly converging series: the partial sums of a
series are fed into a sequence transformation that extrapolates their limit
from far fewer terms than plain summation needs.

This library provides:
- A catalog of series for elementary functions and numerical constants
- Wynn's epsilon and rho algorithms
- The iterated Shanks (Aitken) transform and its alternating-series variant
- Levin's t- and u-transforms and Richardson extrapolation
- Full-table or constant-memory operation
- numpy, torch and mpmath value types
"""

from .numeric import (
    Arithmetic,
    FloatArithmetic,
    TorchArithmetic,
    MPArithmetic,
    CompensatedSum,
    compensated_add,
    get_arithmetic,
)
from .core import (
    SeriesAccelerationError,
    InvalidIndex,
    OrderUnavailable,
    Degenerate,
    NoConvergence,
    AccelerationState,
    Estimate,
    AccelerationConfig,
    AccelerationTable,
    SeriesAcceleration,
)
from .series import Series, SequenceSeries, SERIES, get_series
from .algorithms import (
    EpsilonAlgorithm,
    ShanksTransform,
    ShanksTransformAlternating,
    LevinTransform,
    LevinUTransform,
    RhoWynnAlgorithm,
    RichardsonExtrapolation,
    ACCELERATORS,
    make_accelerator,
    accelerate,
    trace,
    terms_to_tolerance,
    compare_accelerators,
    BatchAccelerator,
)

__version__ = "1.0.0"
__author__ = "Shanks Acceleration Contributors"

__all__ = [
    "Arithmetic",
    "FloatArithmetic",
    "TorchArithmetic",
    "MPArithmetic",
    "CompensatedSum",
    "compensated_add",
    "get_arithmetic",
    "SeriesAccelerationError",
    "InvalidIndex",
    "OrderUnavailable",
    "Degenerate",
    "NoConvergence",
    "AccelerationState",
    "Estimate",
    "AccelerationConfig",
    "AccelerationTable",
    "SeriesAcceleration",
    "Series",
    "SequenceSeries",
    "SERIES",
    "get_series",
    "EpsilonAlgorithm",
    "ShanksTransform",
    "ShanksTransformAlternating",
    "LevinTransform",
    "LevinUTransform",
    "RhoWynnAlgorithm",
    "RichardsonExtrapolation",
    "ACCELERATORS",
    "make_accelerator",
    "accelerate",
    "trace",
    "terms_to_tolerance",
    "compare_accelerators",
    "BatchAccelerator",
]
