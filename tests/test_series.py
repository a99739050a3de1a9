#!/usr/bin/env python3
"""
Unit tests for the series catalog.

Tests term generation, partial sums and reference limits in the
shanks.series module.
"""

import math
import pytest
import numpy as np
import torch
import mpmath
import sys
sys.path.append('..')

from shanks.core import InvalidIndex
from shanks.numeric import FloatArithmetic, TorchArithmetic, MPArithmetic
from shanks.series import (
    SERIES,
    Series,
    SequenceSeries,
    get_series,
    ExpSeries,
    CosSeries,
    SinSeries,
    CoshSeries,
    SinhSeries,
    BinomialSeries,
    FourArctanSeries,
    Ln1mxSeries,
    MeanSinhSinSeries,
    ExpSquaredErfSeries,
    XmbJbTwoSeries,
    HalfAsinTwoXSeries,
    Inverse1mxSeries,
    X1mxSquaredSeries,
    ErfSeries,
    MFact1mxMp1InverseSeries,
    InverseSqrt1m4xSeries,
    OneTwelfth3x2Pi2Series,
    XTwelfthX2Pi2Series,
    Ln2Series,
    OneSeries,
    MinusOneQuarterSeries,
    Pi3Series,
    Pi4Series,
    PiSquared6MinusOneSeries,
    ThreeMinusPiSeries,
    OneTwelfthSeries,
    EighthPiMOneThirdSeries,
    OneThirdPiSquaredMNineSeries,
    FourLn2M3Series,
    ExpMCosXSinSinXSeries,
    LambertW0Series,
)
from tests.conftest import LN2, assert_close


# (factory, number of terms, max error of that partial sum against the limit)
CATALOG = [
    (lambda: ExpSeries(1.0), 25, 1e-14),
    (lambda: CosSeries(1.0), 15, 1e-14),
    (lambda: SinSeries(1.0), 15, 1e-14),
    (lambda: CoshSeries(1.0), 15, 1e-14),
    (lambda: SinhSeries(1.0), 15, 1e-14),
    (lambda: BinomialSeries(0.3, alpha=0.5), 60, 1e-14),
    (lambda: FourArctanSeries(0.2), 20, 1e-14),
    (lambda: Ln1mxSeries(0.3), 60, 1e-14),
    (lambda: MeanSinhSinSeries(1.0), 8, 1e-14),
    (lambda: ExpSquaredErfSeries(0.5), 30, 1e-14),
    (lambda: XmbJbTwoSeries(1.0, b=2), 20, 1e-14),
    (lambda: HalfAsinTwoXSeries(0.2), 60, 1e-14),
    (lambda: Inverse1mxSeries(0.5), 60, 1e-14),
    (lambda: X1mxSquaredSeries(0.5), 80, 1e-14),
    (lambda: ErfSeries(0.5), 25, 1e-14),
    (lambda: MFact1mxMp1InverseSeries(0.3, m=2), 80, 1e-12),
    (lambda: InverseSqrt1m4xSeries(0.1), 80, 1e-14),
    (lambda: OneTwelfth3x2Pi2Series(1.0), 200, 1e-4),
    (lambda: XTwelfthX2Pi2Series(1.0), 200, 1e-6),
    (lambda: Ln2Series(), 1000, 1e-3),
    (lambda: OneSeries(), 1000, 2e-3),
    (lambda: MinusOneQuarterSeries(), 1000, 1e-5),
    (lambda: Pi3Series(), 1000, 1e-6),
    (lambda: Pi4Series(), 1000, 1e-3),
    (lambda: PiSquared6MinusOneSeries(), 1000, 1e-5),
    (lambda: ThreeMinusPiSeries(), 1000, 1e-8),
    (lambda: OneTwelfthSeries(), 1000, 1e-6),
    (lambda: EighthPiMOneThirdSeries(), 1000, 1e-8),
    (lambda: OneThirdPiSquaredMNineSeries(), 1000, 1e-8),
    (lambda: FourLn2M3Series(), 1000, 1e-10),
    (lambda: ExpMCosXSinSinXSeries(1.0), 25, 1e-14),
    (lambda: LambertW0Series(0.1), 60, 1e-14),
]

CATALOG_IDS = [factory().__class__.__name__ for factory, _, _ in CATALOG]


@pytest.mark.parametrize("factory,count,max_error", CATALOG, ids=CATALOG_IDS)
def test_catalog_partial_sums_approach_limit(factory, count, max_error):
    """Test that every series converges to its closed form."""
    series = factory()
    sums = series.partial_sums(count)

    assert len(sums) == count
    assert_close(sums[-1], series.limit, max_error)
    # the sequence actually moves towards the limit
    first_error = abs(float(sums[0]) - float(series.limit))
    last_error = abs(float(sums[-1]) - float(series.limit))
    assert last_error <= first_error


@pytest.mark.parametrize("factory,count,max_error", CATALOG, ids=CATALOG_IDS)
def test_catalog_partial_sum_matches_terms(factory, count, max_error):
    """Test partial_sum(n) against the plain sum of term(0..n)."""
    series = factory()
    n = 12
    terms = [float(series.term(k)) for k in range(n + 1)]
    expected = math.fsum(terms)

    assert_close(series.partial_sum(n), expected, 1e-14 * max(1.0, abs(expected)))


@pytest.mark.parametrize("factory,count,max_error", CATALOG, ids=CATALOG_IDS)
def test_catalog_negative_index_rejected(factory, count, max_error):
    """Test InvalidIndex for negative indices on every series."""
    series = factory()

    with pytest.raises(InvalidIndex):
        series.term(-1)
    with pytest.raises(InvalidIndex):
        series.partial_sum(-1)


def test_catalog_is_complete():
    """Test that the registry lists every catalog series."""
    assert len(SERIES) == 32
    assert {factory().__class__ for factory, _, _ in CATALOG} == set(SERIES.values())


class TestTerms:
    """Test cases for individual term values."""

    def test_exp_terms(self):
        """Test exp terms are x^n/n!."""
        series = ExpSeries(2.0)
        for n in range(8):
            assert series.term(n) == pytest.approx(2.0 ** n / math.factorial(n), rel=1e-14)

    def test_stream_matches_term(self):
        """Test the term stream agrees with indexed access."""
        series = LambertW0Series(0.2)
        stream = series.terms(10)
        for n, value in enumerate(stream):
            assert series.term(n) == value

    def test_lambert_terms(self):
        """Test W0 terms (-n)^(n-1)/n! x^n."""
        series = LambertW0Series(0.1)
        for k in range(1, 10):
            expected = (-k) ** (k - 1) / math.factorial(k) * 0.1 ** k
            assert series.term(k - 1) == pytest.approx(expected, rel=1e-13)

    def test_ln2_terms(self):
        """Test the alternating harmonic terms."""
        series = Ln2Series()
        assert series.term(0) == 1.0
        assert series.term(1) == -0.5
        assert series.term(2) == pytest.approx(1.0 / 3.0)

    def test_exp_m_cos_terms(self):
        """Test (-1)^(n-1) sin(nx)/n! terms."""
        x = 0.7
        series = ExpMCosXSinSinXSeries(x)
        assert series.term(0) == pytest.approx(math.sin(x))
        assert series.term(1) == pytest.approx(-math.sin(2 * x) / 2)
        assert series.term(2) == pytest.approx(math.sin(3 * x) / 6)

    def test_half_asin_terms(self):
        """Test central binomial terms of asin(2x)/2."""
        x = 0.2
        series = HalfAsinTwoXSeries(x)
        for n in range(6):
            expected = math.comb(2 * n, n) * x ** (2 * n + 1) / (2 * n + 1)
            assert series.term(n) == pytest.approx(expected, rel=1e-14)

    def test_parametrised_terms(self):
        """Test series that take integer parameters."""
        bessel = XmbJbTwoSeries(0.5, b=1)
        assert bessel.term(0) == 1.0
        assert bessel.term(1) == pytest.approx(-0.25 / 2)

        mfact = MFact1mxMp1InverseSeries(0.5, m=3)
        assert mfact.term(0) == 6.0
        assert mfact.term(2) == pytest.approx(math.factorial(5) / math.factorial(2) * 0.25)

    def test_numpy_integer_index(self):
        """Test that numpy integer indices are accepted."""
        series = Ln2Series()
        assert series.term(np.int64(1)) == -0.5

    @pytest.mark.parametrize("index", [1.5, "2", None, True])
    def test_non_integer_index_rejected(self, index):
        """Test InvalidIndex for non-integer indices."""
        with pytest.raises(InvalidIndex):
            ExpSeries(1.0).term(index)

    def test_invalid_index_is_value_error(self):
        """Test that InvalidIndex can be caught as ValueError."""
        with pytest.raises(ValueError):
            Ln2Series().partial_sum(-3)

    @pytest.mark.parametrize("kwargs", [{"b": -1}, {"b": 1.5}])
    def test_invalid_bessel_order(self, kwargs):
        """Test that b must be a non-negative integer."""
        with pytest.raises(ValueError):
            XmbJbTwoSeries(1.0, **kwargs)

    def test_invalid_m(self):
        """Test that m must be a non-negative integer."""
        with pytest.raises(ValueError):
            MFact1mxMp1InverseSeries(0.5, m=-2)


class TestLimits:
    """Test cases for closed-form reference values."""

    def test_known_constants(self):
        """Test limits of the constant series."""
        assert Ln2Series().limit == pytest.approx(LN2, rel=1e-15)
        assert Pi4Series().limit == pytest.approx(math.pi / 4, rel=1e-15)
        assert OneTwelfthSeries().limit == pytest.approx(1.0 / 12.0, rel=1e-15)
        assert ThreeMinusPiSeries().limit == pytest.approx(3 - math.pi, rel=1e-14)

    def test_bessel_limit_at_zero(self):
        """Test x^-b J_b(2x) at x = 0."""
        assert XmbJbTwoSeries(0.0, b=3).limit == pytest.approx(1.0 / 6.0)

    def test_limit_uses_backend_type(self):
        """Test that limits are rounded into the series' value type."""
        assert isinstance(ExpSeries(1.0, FloatArithmetic(np.float32)).limit, np.float32)
        assert isinstance(ExpSeries(1.0, TorchArithmetic()).limit, torch.Tensor)
        high = ExpSeries(1.0, MPArithmetic(40))
        assert isinstance(high.limit, high.arithmetic.ctx.mpf)


class TestBackends:
    """Test cases for series over different value types."""

    def test_mpmath_precision(self):
        """Test that mpmath partial sums go beyond float64 accuracy."""
        series = ExpSeries(1, MPArithmetic(40))
        value = series.partial_sums(40)[-1]
        assert abs(value - series.limit) < mpmath.mpf(10) ** -35

    def test_torch_values(self):
        """Test torch partial sums."""
        series = SinSeries(0.5, TorchArithmetic(torch.float32))
        value = series.partial_sums(10)[-1]
        assert isinstance(value, torch.Tensor)
        assert value.dtype == torch.float32
        assert abs(value.item() - math.sin(0.5)) < 1e-6

    def test_float32_values(self, dtype):
        """Test numpy partial sums keep their dtype."""
        series = CosSeries(0.5, FloatArithmetic(dtype))
        value = series.partial_sum(10)
        assert isinstance(value, dtype)
        assert abs(float(value) - math.cos(0.5)) < 1e-6

    def test_backend_by_name(self):
        """Test selecting the backend with a string."""
        series = Ln2Series(arithmetic="mpmath")
        assert isinstance(series.arithmetic, MPArithmetic)


class TestSequenceSeries:
    """Test cases for explicit partial-sum sequences."""

    def test_terms_are_differences(self):
        """Test term(n) = S_n - S_(n-1)."""
        series = SequenceSeries([1.0, 1.5, 1.75])
        assert series.term(0) == 1.0
        assert series.term(1) == 0.5
        assert series.term(2) == 0.25
        assert series.partial_sum(2) == 1.75

    def test_out_of_range(self):
        """Test InvalidIndex beyond the end of the sequence."""
        series = SequenceSeries([1.0, 2.0])
        with pytest.raises(InvalidIndex):
            series.term(2)
        with pytest.raises(InvalidIndex):
            series.partial_sum(5)

    def test_stream_ends(self):
        """Test that accumulation stops after the last element."""
        series = SequenceSeries([1.0, 2.0, 3.0])
        assert [total for _, total in series.accumulate()] == [1.0, 2.0, 3.0]
        assert len(series) == 3
        assert series.limit is None


class TestRegistry:
    """Test cases for lookup by name."""

    def test_get_series(self):
        """Test instantiation through the registry."""
        series = get_series("exp", 1.0)
        assert isinstance(series, ExpSeries)
        assert get_series("binomial", 0.2, alpha=2.0).limit == pytest.approx(1.44)

    def test_unknown_series(self):
        """Test that unknown names are rejected."""
        with pytest.raises(ValueError):
            get_series("zeta")

    def test_alternating_flags(self):
        """Test the alternating hint."""
        assert Ln2Series.alternating
        assert Pi4Series.alternating
        assert not ExpSeries.alternating
        assert not OneSeries.alternating

    def test_base_series_is_abstract(self):
        """Test that the base class defines no terms."""
        with pytest.raises(NotImplementedError):
            Series(1.0).term(0)


if __name__ == "__main__":
    pytest.main([__file__])
