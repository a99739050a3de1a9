"""
Series generators.

Each series maps a term index to its addend and partial sum for a fixed
argument ``x``. Series are stateless: the running sum lives in the generator
returned by ``accumulate()``, so one instance can feed any number of
accelerators.

Factorial-type series produce their terms by recurrence from the previous
term; the others evaluate a closed-form expression per index. Terms are
indexed from the first non-vanishing addend.

Reference values (``limit``) are computed with mpmath at a working precision
well above that of the series' backend.
"""

import itertools
import math
import numbers
from typing import Iterator, Optional, Sequence, Tuple

import mpmath

from .core import InvalidIndex
from .numeric import Arithmetic, CompensatedSum, get_arithmetic


class Series:
    """
    Base class for series generators.

    Subclasses implement ``_term(n)`` (closed form for the n-th addend) or
    override ``_terms()`` (recurrent generation), and ``_closed_form`` for
    the reference value.
    """

    alternating = False
    name = "series"

    def __init__(self, x=0, arithmetic: Optional[Arithmetic] = None):
        """
        Initialize series.

        Args:
            x: Argument of the function the series represents
            arithmetic: Value-type backend, or anything ``get_arithmetic``
                accepts (default: numpy float64)
        """
        self.arithmetic = get_arithmetic(arithmetic)
        self.x = self.arithmetic.convert(x)

    def term(self, n: int):
        """
        Get the n-th addend.

        Args:
            n: Non-negative term index

        Returns:
            Backend value of the addend
        """
        self._check_index(n)
        return self._term(n)

    def partial_sum(self, n: int):
        """
        Get the sum of addends ``0..n`` (compensated summation).

        Args:
            n: Non-negative term index

        Returns:
            Backend value of the partial sum
        """
        self._check_index(n)
        for index, (_, total) in enumerate(self.accumulate()):
            if index == n:
                return total
        raise InvalidIndex(n, "beyond the end of the series")

    def terms(self, count: int) -> list:
        """First ``count`` addends."""
        return list(itertools.islice(self._terms(), count))

    def partial_sums(self, count: int) -> list:
        """First ``count`` partial sums."""
        return [total for _, total in itertools.islice(self.accumulate(), count)]

    def accumulate(self) -> Iterator[Tuple]:
        """
        Stream ``(term, partial_sum)`` pairs in index order.

        Yields:
            Tuple of (n-th addend, n-th partial sum)
        """
        acc = CompensatedSum(self.arithmetic)
        for value in self._terms():
            acc.add(value)
            yield value, acc.get()

    @property
    def limit(self):
        """Closed-form value of the series at ``x``, rounded to the backend."""
        ctx = mpmath.mp.clone()
        ctx.dps = self.arithmetic.digits + 15
        value = self._closed_form(ctx, self.arithmetic.to_mpmath(self.x, ctx))
        return self.arithmetic.from_mpmath(value)

    def __repr__(self):
        return f"{self.__class__.__name__}(x={self.arithmetic.to_float(self.x)!r})"

    # -- hooks -------------------------------------------------------------

    def _term(self, n: int):
        if type(self)._terms is Series._terms:
            raise NotImplementedError(f"{self.__class__.__name__} defines no terms")
        return next(itertools.islice(self._terms(), n, None))

    def _terms(self) -> Iterator:
        for n in itertools.count():
            yield self._term(n)

    def _closed_form(self, ctx, x):
        raise NotImplementedError

    # -- helpers -------------------------------------------------------------

    @staticmethod
    def _check_index(n):
        if isinstance(n, bool) or not isinstance(n, numbers.Integral) or n < 0:
            raise InvalidIndex(n)

    def _sign(self, n: int):
        return self.arithmetic.one if n % 2 == 0 else self.arithmetic.neg(self.arithmetic.one)

    def _x_power(self, n: int):
        return self.arithmetic.power(self.x, n)

    def _scaled_x(self, k: int):
        """``k * x`` in backend arithmetic."""
        return self.arithmetic.mul(self.arithmetic.convert(k), self.x)


class SequenceSeries(Series):
    """
    Series defined by an explicit, finite list of partial sums.

    Terms are the consecutive differences. Indexing past the end raises
    ``InvalidIndex`` and the stream stops after the last element.
    """

    name = "sequence"

    def __init__(self, partial_sums: Sequence, arithmetic: Optional[Arithmetic] = None):
        super().__init__(0, arithmetic)
        self.sums = [self.arithmetic.convert(value) for value in partial_sums]

    def __len__(self):
        return len(self.sums)

    def term(self, n: int):
        self._check_index(n)
        if n >= len(self.sums):
            raise InvalidIndex(n, f"sequence has only {len(self.sums)} elements")
        return self._term(n)

    def partial_sum(self, n: int):
        self._check_index(n)
        if n >= len(self.sums):
            raise InvalidIndex(n, f"sequence has only {len(self.sums)} elements")
        return self.sums[n]

    def accumulate(self):
        for n, total in enumerate(self.sums):
            yield self._term(n), total

    @property
    def limit(self):
        return None

    def _term(self, n: int):
        if n == 0:
            return self.sums[0]
        return self.arithmetic.sub(self.sums[n], self.sums[n - 1])

    def _terms(self):
        for n in range(len(self.sums)):
            yield self._term(n)

    def __repr__(self):
        return f"SequenceSeries(len={len(self.sums)})"


class RecurrentSeries(Series):
    """
    Series whose terms follow from the previous one.

    Subclasses give the first term and the step ``_next_term(n, previous)``
    producing term ``n`` from term ``n - 1``.
    """

    def _first_term(self):
        raise NotImplementedError

    def _next_term(self, n: int, previous):
        raise NotImplementedError

    def _terms(self):
        value = self._first_term()
        yield value
        for n in itertools.count(1):
            value = self._next_term(n, value)
            yield value


# ---------------------------------------------------------------------------
# Elementary functions
# ---------------------------------------------------------------------------

class ExpSeries(RecurrentSeries):
    """exp(x) = sum x^n / n!"""

    name = "exp"

    def _first_term(self):
        return self.arithmetic.one

    def _next_term(self, n, previous):
        A = self.arithmetic
        return A.div(A.mul(previous, self.x), A.convert(n))

    def _closed_form(self, ctx, x):
        return ctx.exp(x)


class CosSeries(RecurrentSeries):
    """cos(x) = sum (-1)^n x^(2n) / (2n)!"""

    name = "cos"
    alternating = True

    def _first_term(self):
        return self.arithmetic.one

    def _next_term(self, n, previous):
        A = self.arithmetic
        step = A.div(A.mul(self.x, self.x), A.convert((2 * n - 1) * (2 * n)))
        return A.neg(A.mul(previous, step))

    def _closed_form(self, ctx, x):
        return ctx.cos(x)


class SinSeries(RecurrentSeries):
    """sin(x) = sum (-1)^n x^(2n+1) / (2n+1)!"""

    name = "sin"
    alternating = True

    def _first_term(self):
        return self.x

    def _next_term(self, n, previous):
        A = self.arithmetic
        step = A.div(A.mul(self.x, self.x), A.convert((2 * n) * (2 * n + 1)))
        return A.neg(A.mul(previous, step))

    def _closed_form(self, ctx, x):
        return ctx.sin(x)


class CoshSeries(RecurrentSeries):
    """cosh(x) = sum x^(2n) / (2n)!"""

    name = "cosh"

    def _first_term(self):
        return self.arithmetic.one

    def _next_term(self, n, previous):
        A = self.arithmetic
        return A.mul(previous, A.div(A.mul(self.x, self.x), A.convert((2 * n - 1) * (2 * n))))

    def _closed_form(self, ctx, x):
        return ctx.cosh(x)


class SinhSeries(RecurrentSeries):
    """sinh(x) = sum x^(2n+1) / (2n+1)!"""

    name = "sinh"

    def _first_term(self):
        return self.x

    def _next_term(self, n, previous):
        A = self.arithmetic
        return A.mul(previous, A.div(A.mul(self.x, self.x), A.convert((2 * n) * (2 * n + 1))))

    def _closed_form(self, ctx, x):
        return ctx.sinh(x)


class BinomialSeries(RecurrentSeries):
    """(1 + x)^alpha = sum C(alpha, n) x^n,  |x| < 1"""

    name = "binomial"

    def __init__(self, x=0, alpha=0.5, arithmetic: Optional[Arithmetic] = None):
        super().__init__(x, arithmetic)
        self.alpha = self.arithmetic.convert(alpha)

    def _first_term(self):
        return self.arithmetic.one

    def _next_term(self, n, previous):
        A = self.arithmetic
        coefficient = A.div(A.sub(self.alpha, A.convert(n - 1)), A.convert(n))
        return A.mul(A.mul(previous, coefficient), self.x)

    def _closed_form(self, ctx, x):
        return ctx.power(1 + x, self.arithmetic.to_mpmath(self.alpha, ctx))

    def __repr__(self):
        A = self.arithmetic
        return f"BinomialSeries(x={A.to_float(self.x)!r}, alpha={A.to_float(self.alpha)!r})"


class FourArctanSeries(Series):
    """4 atan(x) = 4 sum (-1)^n x^(2n+1) / (2n+1),  |x| <= 1"""

    name = "four_arctan"
    alternating = True

    def _term(self, n):
        A = self.arithmetic
        return A.mul(A.mul(self._sign(n), A.convert(4)),
                     A.div(self._x_power(2 * n + 1), A.convert(2 * n + 1)))

    def _closed_form(self, ctx, x):
        return 4 * ctx.atan(x)


class Ln1mxSeries(Series):
    """-ln(1 - x) = sum x^(n+1) / (n+1),  -1 <= x < 1"""

    name = "ln1mx"

    def _term(self, n):
        A = self.arithmetic
        return A.div(self._x_power(n + 1), A.convert(n + 1))

    def _closed_form(self, ctx, x):
        return -ctx.log(1 - x)


class MeanSinhSinSeries(RecurrentSeries):
    """(sinh x + sin x) / 2 = sum x^(4n+1) / (4n+1)!"""

    name = "mean_sinh_sin"

    def _first_term(self):
        return self.x

    def _next_term(self, n, previous):
        A = self.arithmetic
        x4 = A.power(self.x, 4)
        denominator = (4 * n - 2) * (4 * n - 1) * (4 * n) * (4 * n + 1)
        return A.mul(previous, A.div(x4, A.convert(denominator)))

    def _closed_form(self, ctx, x):
        return (ctx.sinh(x) + ctx.sin(x)) / 2


class ExpSquaredErfSeries(RecurrentSeries):
    """exp(x^2) erf(x) = sum x^(2n+1) / Gamma(n + 3/2)"""

    name = "exp_squared_erf"

    def _first_term(self):
        A = self.arithmetic
        return A.div(A.mul(A.convert(2), self.x), A.sqrt(A.pi()))

    def _next_term(self, n, previous):
        A = self.arithmetic
        return A.mul(previous, A.div(A.mul(A.convert(2), A.mul(self.x, self.x)),
                                     A.convert(2 * n + 1)))

    def _closed_form(self, ctx, x):
        return ctx.exp(x * x) * ctx.erf(x)


class XmbJbTwoSeries(RecurrentSeries):
    """x^(-b) J_b(2x) = sum (-1)^n x^(2n) / (n! (n+b)!),  integer b >= 0"""

    name = "xmb_jb_two"
    alternating = True

    def __init__(self, x=0, b: int = 0, arithmetic: Optional[Arithmetic] = None):
        if isinstance(b, bool) or not isinstance(b, int) or b < 0:
            raise ValueError(f"b must be a non-negative integer, got {b!r}")
        super().__init__(x, arithmetic)
        self.b = b

    def _first_term(self):
        return self.arithmetic.ratio(1, math.factorial(self.b))

    def _next_term(self, n, previous):
        A = self.arithmetic
        step = A.div(A.mul(self.x, self.x), A.convert(n * (n + self.b)))
        return A.neg(A.mul(previous, step))

    def _closed_form(self, ctx, x):
        if x == 0:
            return ctx.mpf(1) / ctx.factorial(self.b)
        return ctx.besselj(self.b, 2 * x) / x ** self.b

    def __repr__(self):
        return f"XmbJbTwoSeries(x={self.arithmetic.to_float(self.x)!r}, b={self.b})"


class HalfAsinTwoXSeries(Series):
    """asin(2x) / 2 = sum (2n)! / (n!)^2 x^(2n+1) / (2n+1),  |x| <= 1/2"""

    name = "half_asin_two_x"

    def _terms(self):
        A = self.arithmetic
        # central binomial coefficient times x^(2n+1)
        scaled = self.x
        x2 = A.mul(self.x, self.x)
        for n in itertools.count():
            if n:
                scaled = A.mul(scaled, A.mul(A.ratio(2 * (2 * n - 1), n), x2))
            yield A.div(scaled, A.convert(2 * n + 1))

    def _closed_form(self, ctx, x):
        return ctx.asin(2 * x) / 2


class Inverse1mxSeries(Series):
    """1 / (1 - x) = sum x^n,  |x| < 1"""

    name = "inverse_1mx"

    def _term(self, n):
        return self._x_power(n)

    def _closed_form(self, ctx, x):
        return 1 / (1 - x)


class X1mxSquaredSeries(Series):
    """x / (1 - x)^2 = sum n x^n,  |x| < 1"""

    name = "x_1mx_squared"

    def _term(self, n):
        A = self.arithmetic
        return A.mul(A.convert(n + 1), self._x_power(n + 1))

    def _closed_form(self, ctx, x):
        return x / (1 - x) ** 2


class ErfSeries(Series):
    """sqrt(pi)/2 erf(x) = sum (-1)^n x^(2n+1) / (n! (2n+1))"""

    name = "erf"
    alternating = True

    def _terms(self):
        A = self.arithmetic
        # (-1)^n x^(2n+1) / n!
        scaled = self.x
        minus_x2 = A.neg(A.mul(self.x, self.x))
        for n in itertools.count():
            if n:
                scaled = A.div(A.mul(scaled, minus_x2), A.convert(n))
            yield A.div(scaled, A.convert(2 * n + 1))

    def _closed_form(self, ctx, x):
        return ctx.sqrt(ctx.pi) * ctx.erf(x) / 2


class MFact1mxMp1InverseSeries(RecurrentSeries):
    """m! / (1 - x)^(m+1) = sum (n+m)!/n! x^n,  |x| < 1"""

    name = "m_fact_1mx_mp1_inverse"

    def __init__(self, x=0, m: int = 1, arithmetic: Optional[Arithmetic] = None):
        if isinstance(m, bool) or not isinstance(m, int) or m < 0:
            raise ValueError(f"m must be a non-negative integer, got {m!r}")
        super().__init__(x, arithmetic)
        self.m = m

    def _first_term(self):
        return self.arithmetic.convert(math.factorial(self.m))

    def _next_term(self, n, previous):
        A = self.arithmetic
        return A.mul(A.mul(previous, A.ratio(n + self.m, n)), self.x)

    def _closed_form(self, ctx, x):
        return ctx.factorial(self.m) / (1 - x) ** (self.m + 1)

    def __repr__(self):
        return f"MFact1mxMp1InverseSeries(x={self.arithmetic.to_float(self.x)!r}, m={self.m})"


class InverseSqrt1m4xSeries(RecurrentSeries):
    """1 / sqrt(1 - 4x) = sum (2n)! / (n!)^2 x^n,  |x| < 1/4"""

    name = "inverse_sqrt_1m4x"

    def _first_term(self):
        return self.arithmetic.one

    def _next_term(self, n, previous):
        A = self.arithmetic
        return A.mul(A.mul(previous, A.ratio(2 * (2 * n - 1), n)), self.x)

    def _closed_form(self, ctx, x):
        return 1 / ctx.sqrt(1 - 4 * x)


class OneTwelfth3x2Pi2Series(Series):
    """(3x^2 - pi^2) / 12 = sum_{n>=1} (-1)^n cos(nx) / n^2,  |x| <= pi"""

    name = "one_twelfth_3x2_pi2"

    def _term(self, n):
        A = self.arithmetic
        k = n + 1
        return A.mul(self._sign(k), A.div(A.cos(self._scaled_x(k)), A.convert(k * k)))

    def _closed_form(self, ctx, x):
        return (3 * x ** 2 - ctx.pi ** 2) / 12


class XTwelfthX2Pi2Series(Series):
    """x (x^2 - pi^2) / 12 = sum_{n>=1} (-1)^n sin(nx) / n^3,  |x| <= pi"""

    name = "x_twelfth_x2_pi2"

    def _term(self, n):
        A = self.arithmetic
        k = n + 1
        return A.mul(self._sign(k), A.div(A.sin(self._scaled_x(k)), A.convert(k ** 3)))

    def _closed_form(self, ctx, x):
        return x * (x ** 2 - ctx.pi ** 2) / 12


class ExpMCosXSinSinXSeries(Series):
    """exp(-cos x) sin(sin x) = sum_{n>=1} (-1)^(n-1) sin(nx) / n!"""

    name = "exp_m_cos_x_sin_sin_x"

    def _terms(self):
        A = self.arithmetic
        # (-1)^n / (n+1)!
        weight = A.one
        for n in itertools.count():
            if n:
                weight = A.neg(A.div(weight, A.convert(n + 1)))
            yield A.mul(weight, A.sin(self._scaled_x(n + 1)))

    def _closed_form(self, ctx, x):
        return ctx.exp(-ctx.cos(x)) * ctx.sin(ctx.sin(x))


class LambertW0Series(RecurrentSeries):
    """W0(x) = sum_{n>=1} (-n)^(n-1) / n! x^n,  |x| < 1/e"""

    name = "lambert_w0"
    alternating = True

    def _first_term(self):
        return self.x

    def _next_term(self, n, previous):
        A = self.arithmetic
        growth = A.power(A.ratio(n + 1, n), n - 1)
        return A.neg(A.mul(A.mul(previous, self.x), growth))

    def _closed_form(self, ctx, x):
        return ctx.re(ctx.lambertw(x))


# ---------------------------------------------------------------------------
# Numerical constants (the argument is ignored)
# ---------------------------------------------------------------------------

class _RationalTermSeries(Series):
    """Constant series whose n-th term is a rational function of n."""

    def _fraction(self, n: int) -> Tuple[int, int]:
        raise NotImplementedError

    def _term(self, n):
        numerator, denominator = self._fraction(n)
        return self.arithmetic.ratio(numerator, denominator)

    def __repr__(self):
        return f"{self.__class__.__name__}()"


class Ln2Series(_RationalTermSeries):
    """ln 2 = sum (-1)^n / (n+1)"""

    name = "ln2"
    alternating = True

    def _fraction(self, n):
        return (-1) ** n, n + 1

    def _closed_form(self, ctx, x):
        return +ctx.ln2


class OneSeries(_RationalTermSeries):
    """1 = sum_{n>=1} 1 / (n (n+1))"""

    name = "one"

    def _fraction(self, n):
        return 1, (n + 1) * (n + 2)

    def _closed_form(self, ctx, x):
        return ctx.mpf(1)


class MinusOneQuarterSeries(_RationalTermSeries):
    """-1/4 = sum_{n>=1} (-1)^n / (n (n+2))"""

    name = "minus_one_quarter"
    alternating = True

    def _fraction(self, n):
        return (-1) ** (n + 1), (n + 1) * (n + 3)

    def _closed_form(self, ctx, x):
        return ctx.mpf(-1) / 4


class Pi3Series(_RationalTermSeries):
    """pi/3 = sum 1 / ((n+1)(2n+1)(4n+1))"""

    name = "pi3"

    def _fraction(self, n):
        return 1, (n + 1) * (2 * n + 1) * (4 * n + 1)

    def _closed_form(self, ctx, x):
        return ctx.pi / 3


class Pi4Series(_RationalTermSeries):
    """pi/4 = sum (-1)^n / (2n+1)"""

    name = "pi4"
    alternating = True

    def _fraction(self, n):
        return (-1) ** n, 2 * n + 1

    def _closed_form(self, ctx, x):
        return ctx.pi / 4


class PiSquared6MinusOneSeries(_RationalTermSeries):
    """pi^2/6 - 1 = sum_{n>=1} 1 / (n^2 (n+1))"""

    name = "pi_squared_6_minus_one"

    def _fraction(self, n):
        return 1, (n + 1) ** 2 * (n + 2)

    def _closed_form(self, ctx, x):
        return ctx.pi ** 2 / 6 - 1


class ThreeMinusPiSeries(_RationalTermSeries):
    """3 - pi = sum_{n>=1} (-1)^n / (n (n+1) (2n+1))"""

    name = "three_minus_pi"
    alternating = True

    def _fraction(self, n):
        return (-1) ** (n + 1), (n + 1) * (n + 2) * (2 * n + 3)

    def _closed_form(self, ctx, x):
        return 3 - ctx.pi


class OneTwelfthSeries(_RationalTermSeries):
    """1/12 = sum 1 / ((2n+1)(2n+3)(2n+5))"""

    name = "one_twelfth"

    def _fraction(self, n):
        return 1, (2 * n + 1) * (2 * n + 3) * (2 * n + 5)

    def _closed_form(self, ctx, x):
        return ctx.mpf(1) / 12


class EighthPiMOneThirdSeries(_RationalTermSeries):
    """pi/8 - 1/3 = sum (-1)^n / ((2n+1)(2n+3)(2n+5))"""

    name = "eighth_pi_m_one_third"
    alternating = True

    def _fraction(self, n):
        return (-1) ** n, (2 * n + 1) * (2 * n + 3) * (2 * n + 5)

    def _closed_form(self, ctx, x):
        return ctx.pi / 8 - ctx.mpf(1) / 3


class OneThirdPiSquaredMNineSeries(_RationalTermSeries):
    """(pi^2 - 9)/3 = sum_{n>=1} 1 / (n^2 (n+1)^2)"""

    name = "one_third_pi_squared_m_nine"

    def _fraction(self, n):
        return 1, (n + 1) ** 2 * (n + 2) ** 2

    def _closed_form(self, ctx, x):
        return (ctx.pi ** 2 - 9) / 3


class FourLn2M3Series(_RationalTermSeries):
    """4 ln 2 - 3 = sum_{n>=1} (-1)^n / (n^2 (n+1)^2)"""

    name = "four_ln2_m3"
    alternating = True

    def _fraction(self, n):
        return (-1) ** (n + 1), (n + 1) ** 2 * (n + 2) ** 2

    def _closed_form(self, ctx, x):
        return 4 * ctx.ln2 - 3


SERIES = {
    cls.name: cls
    for cls in (
        ExpSeries, CosSeries, SinSeries, CoshSeries, SinhSeries, BinomialSeries,
        FourArctanSeries, Ln1mxSeries, MeanSinhSinSeries, ExpSquaredErfSeries,
        XmbJbTwoSeries, HalfAsinTwoXSeries, Inverse1mxSeries, X1mxSquaredSeries,
        ErfSeries, MFact1mxMp1InverseSeries, InverseSqrt1m4xSeries,
        OneTwelfth3x2Pi2Series, XTwelfthX2Pi2Series, Ln2Series, OneSeries,
        MinusOneQuarterSeries, Pi3Series, Pi4Series, PiSquared6MinusOneSeries,
        ThreeMinusPiSeries, OneTwelfthSeries, EighthPiMOneThirdSeries,
        OneThirdPiSquaredMNineSeries, FourLn2M3Series, ExpMCosXSinSinXSeries,
        LambertW0Series,
    )
}


def get_series(name: str, *args, **kwargs) -> Series:
    """
    Instantiate a catalog series by name.

    Args:
        name: Key of ``SERIES`` (e.g. ``'exp'``, ``'ln2'``)
        *args: Positional constructor arguments
        **kwargs: Keyword constructor arguments

    Returns:
        Series instance
    """
    try:
        cls = SERIES[name]
    except KeyError:
        raise ValueError(f"Unknown series: {name}") from None
    return cls(*args, **kwargs)
