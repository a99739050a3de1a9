"""
Arithmetic backends and compensated summation.

Series and accelerators never touch a concrete number type directly. They go
through an ``Arithmetic`` object that wraps one value type (numpy floating
scalars, torch 0-d tensors or mpmath numbers) and supplies the handful of
operations the recurrences need, together with the machine epsilon used to
decide whether two values agree.

Partial sums are accumulated with Kahan compensated summation so that the
raw sequence fed into an accelerator carries as little rounding error as the
value type allows.
"""

import math
from fractions import Fraction
from typing import Tuple, Optional, Union, Any

import mpmath
import numpy as np
import torch


_PI_DIGITS = "3.14159265358979323846264338327950288419716939937510"


class Arithmetic:
    """
    Numeric contract shared by every backend.

    Subclasses implement conversion and the elementary operations; the
    tolerance logic and helpers built on top of them live here.
    """

    name = "abstract"

    # -- conversion -------------------------------------------------------

    def convert(self, value: Any):
        """Convert a Python number, Fraction or foreign value to this backend."""
        raise NotImplementedError

    def ratio(self, numerator: int, denominator: int):
        """Exact-as-possible value of ``numerator / denominator``."""
        return self.div(self.convert(numerator), self.convert(denominator))

    def to_mpmath(self, value, ctx):
        """Convert a backend value into an mpmath number of context ``ctx``."""
        raise NotImplementedError

    def from_mpmath(self, value):
        """Round an mpmath number into this backend."""
        raise NotImplementedError

    def to_float(self, value) -> float:
        """Python float view of a backend value (for reporting)."""
        return float(value)

    # -- constants --------------------------------------------------------

    @property
    def zero(self):
        return self.convert(0)

    @property
    def one(self):
        return self.convert(1)

    @property
    def epsilon(self):
        """Machine epsilon of the value type."""
        raise NotImplementedError

    @property
    def digits(self) -> int:
        """Number of significant decimal digits the value type carries."""
        raise NotImplementedError

    @property
    def default_tolerance(self):
        return self.mul(self.convert(64), self.epsilon)

    def pi(self):
        raise NotImplementedError

    # -- elementary operations -------------------------------------------

    def add(self, a, b):
        return a + b

    def sub(self, a, b):
        return a - b

    def mul(self, a, b):
        return a * b

    def div(self, a, b):
        return a / b

    def neg(self, a):
        return -a

    def power(self, a, n: int):
        return a ** n

    def abs(self, a):
        raise NotImplementedError

    def sqrt(self, a):
        raise NotImplementedError

    def sin(self, a):
        raise NotImplementedError

    def cos(self, a):
        raise NotImplementedError

    def is_finite(self, a) -> bool:
        raise NotImplementedError

    def compare(self, a, b) -> int:
        """Return -1, 0 or 1 as ``a`` is less than, equal to or greater than ``b``."""
        return int(bool(a > b)) - int(bool(a < b))

    def is_within_tolerance(self, a, b, tolerance=None) -> bool:
        """
        Check whether two values agree.

        The test is mixed absolute/relative:
        ``|a - b| <= tolerance * max(1, |a|, |b|)``.

        Args:
            a: First value
            b: Second value
            tolerance: Tolerance in backend or Python number form
                (default: ``default_tolerance``)

        Returns:
            True when the values are indistinguishable at that tolerance
        """
        if tolerance is None:
            tolerance = self.default_tolerance
        elif isinstance(tolerance, (int, float, Fraction)):
            tolerance = self.convert(tolerance)

        scale = self.one
        for magnitude in (self.abs(a), self.abs(b)):
            if self.compare(magnitude, scale) > 0:
                scale = magnitude

        difference = self.abs(self.sub(a, b))
        return self.compare(difference, self.mul(tolerance, scale)) <= 0

    def __repr__(self):
        return f"{self.__class__.__name__}({self.name})"


class FloatArithmetic(Arithmetic):
    """Backend over numpy floating scalars (float32, float64, longdouble)."""

    def __init__(self, dtype=np.float64):
        """
        Initialize numpy backend.

        Args:
            dtype: numpy floating type of the values
        """
        self.dtype = np.dtype(dtype).type
        if not issubclass(self.dtype, np.floating):
            raise ValueError(f"Unsupported dtype: {dtype}")
        self.finfo = np.finfo(self.dtype)
        self.name = np.dtype(self.dtype).name

    def convert(self, value):
        if isinstance(value, Fraction):
            return self.ratio(value.numerator, value.denominator)
        if isinstance(value, torch.Tensor):
            return self.dtype(value.item())
        if hasattr(value, "_mpf_"):
            return self.dtype(str(value))
        return self.dtype(value)

    def to_mpmath(self, value, ctx):
        if self.dtype is np.longdouble:
            return ctx.mpf(np.format_float_scientific(value, unique=True))
        return ctx.mpf(float(value))

    def from_mpmath(self, value):
        return self.dtype(str(value))

    @property
    def epsilon(self):
        return self.dtype(self.finfo.eps)

    @property
    def digits(self) -> int:
        return int(self.finfo.precision)

    def pi(self):
        return self.dtype(_PI_DIGITS)

    def abs(self, a):
        return np.abs(a)

    def sqrt(self, a):
        return np.sqrt(a)

    def sin(self, a):
        return np.sin(a)

    def cos(self, a):
        return np.cos(a)

    def is_finite(self, a) -> bool:
        return bool(np.isfinite(a))


class TorchArithmetic(Arithmetic):
    """Backend over torch 0-d tensors of a floating dtype."""

    def __init__(self, dtype=torch.float64, device=None):
        """
        Initialize torch backend.

        Args:
            dtype: Floating torch dtype of the values
            device: Device to place the tensors on
        """
        if not dtype.is_floating_point:
            raise ValueError(f"Unsupported dtype: {dtype}")
        self.dtype = dtype
        self.device = device or torch.device('cpu')
        self.finfo = torch.finfo(dtype)
        self.name = str(dtype).replace('torch.', '')

    def convert(self, value):
        if isinstance(value, torch.Tensor):
            return value.to(dtype=self.dtype, device=self.device)
        if isinstance(value, Fraction):
            return self.ratio(value.numerator, value.denominator)
        return torch.tensor(float(value), dtype=self.dtype, device=self.device)

    def to_mpmath(self, value, ctx):
        return ctx.mpf(value.item())

    def from_mpmath(self, value):
        return self.convert(float(value))

    def to_float(self, value) -> float:
        return value.item()

    @property
    def epsilon(self):
        return self.convert(self.finfo.eps)

    @property
    def digits(self) -> int:
        return int(-math.log10(self.finfo.eps))

    def pi(self):
        return self.convert(math.pi)

    def abs(self, a):
        return torch.abs(a)

    def sqrt(self, a):
        return torch.sqrt(a)

    def sin(self, a):
        return torch.sin(a)

    def cos(self, a):
        return torch.cos(a)

    def is_finite(self, a) -> bool:
        return bool(torch.isfinite(a))


class MPArithmetic(Arithmetic):
    """
    Arbitrary precision backend over mpmath.

    Each instance owns a private mpmath context so that its working precision
    is independent of the global ``mpmath.mp`` settings.
    """

    def __init__(self, dps: int = 30):
        """
        Initialize mpmath backend.

        Args:
            dps: Decimal digits of working precision
        """
        if dps < 1:
            raise ValueError(f"Precision must be positive, got {dps}")
        self.ctx = mpmath.mp.clone()
        self.ctx.dps = dps
        self.name = f"mpf[{dps}]"

    def convert(self, value):
        if isinstance(value, Fraction):
            return self.ctx.mpf(value.numerator) / value.denominator
        if isinstance(value, torch.Tensor):
            value = value.item()
        elif isinstance(value, np.floating):
            value = float(value)
        return self.ctx.mpf(value)

    def ratio(self, numerator: int, denominator: int):
        return self.ctx.mpf(numerator) / denominator

    def to_mpmath(self, value, ctx):
        return ctx.mpf(value)

    def from_mpmath(self, value):
        return self.ctx.mpf(value)

    @property
    def epsilon(self):
        return self.ctx.eps

    @property
    def digits(self) -> int:
        return int(self.ctx.dps)

    def pi(self):
        return +self.ctx.pi

    def abs(self, a):
        return abs(a)

    def sqrt(self, a):
        return self.ctx.sqrt(a)

    def sin(self, a):
        return self.ctx.sin(a)

    def cos(self, a):
        return self.ctx.cos(a)

    def is_finite(self, a) -> bool:
        return bool(self.ctx.isfinite(a))


def get_arithmetic(value_type: Union[str, Any, None] = None) -> Arithmetic:
    """
    Build a backend from a loose description.

    Args:
        value_type: ``None`` (float64), an ``Arithmetic`` instance, a numpy or
            torch dtype, or one of the strings ``'float32'``, ``'float64'``,
            ``'longdouble'``, ``'torch'``, ``'mpmath'``

    Returns:
        Arithmetic backend
    """
    if value_type is None:
        return FloatArithmetic()
    if isinstance(value_type, Arithmetic):
        return value_type
    if isinstance(value_type, torch.dtype):
        return TorchArithmetic(value_type)
    if isinstance(value_type, str):
        if value_type == 'torch':
            return TorchArithmetic()
        if value_type == 'mpmath':
            return MPArithmetic()
        if value_type.startswith('torch.'):
            return TorchArithmetic(getattr(torch, value_type[len('torch.'):]))
    try:
        return FloatArithmetic(value_type)
    except TypeError:
        raise ValueError(f"Unknown value type: {value_type}")


def compensated_add(total, value, compensation) -> Tuple[Any, Any]:
    """
    Single-step Kahan addition.

    Args:
        total: Running sum
        value: Value to add
        compensation: Current compensation term

    Returns:
        Tuple of (new_sum, new_compensation)
    """
    y = value - compensation
    t = total + y
    new_compensation = (t - total) - y
    return t, new_compensation


class CompensatedSum:
    """
    Kahan summation accumulator over an arithmetic backend.

    Attributes:
        total: The accumulated sum
        compensation: The compensation term tracking lost low-order bits
        count: Number of values added
    """

    def __init__(self, arithmetic: Optional[Arithmetic] = None):
        self.arithmetic = arithmetic or FloatArithmetic()
        self.reset()

    def add(self, value):
        """
        Add value with Kahan compensation.

        Args:
            value: Backend value (or Python number) to add
        """
        if isinstance(value, (int, float, Fraction)):
            value = self.arithmetic.convert(value)
        self.total, self.compensation = compensated_add(
            self.total, value, self.compensation
        )
        self.count += 1

    def get(self):
        """Get compensated sum."""
        return self.total

    def reset(self):
        """Reset the accumulator to zero."""
        self.total = self.arithmetic.zero
        self.compensation = self.arithmetic.zero
        self.count = 0
