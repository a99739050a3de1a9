"""
Convergence acceleration algorithms.

This module provides the accelerators (Wynn's epsilon and rho algorithms,
the iterated Shanks/Aitken transform, Levin's t- and u-transforms with the
alternating-series variant, and Richardson extrapolation) along with drivers
that run them to completion, count the terms needed for a target accuracy,
compare methods side by side and process batches of series.
"""

import itertools
import logging
from typing import Dict, Iterable, List, Optional, Sequence

from .core import (
    AccelerationConfig,
    AccelerationState,
    Degenerate,
    Estimate,
    NoConvergence,
    SeriesAcceleration,
    _SingularStep,
)

logger = logging.getLogger(__name__)


class EpsilonAlgorithm(SeriesAcceleration):
    """
    Wynn's epsilon algorithm.

    Column 0 holds the raw partial sums and column -1 is identically zero:

        eps[k+1][n] = eps[k-1][n+1] + 1 / (eps[k][n+1] - eps[k][n])

    Even columns 2m carry the estimates of order m; odd columns are
    auxiliary.
    """

    window = 2
    name = "epsilon"

    def _update(self, term, partial):
        A = self.arithmetic
        table = self.table
        table.append(0, partial)

        k = 0
        while table.count(k) - table.count(k + 1) >= 2:
            upper = table.latest(k)
            lower = table.latest(k, 1)
            if self._agree(upper, lower):
                if k >= 2 and k % 2 == 0:
                    # two consecutive estimates coincide
                    raise _SingularStep(True, upper, k // 2)
                self._singular(partial)
            previous = table.latest(k - 1, 1) if k > 0 else A.zero
            table.append(k + 1, A.add(previous, A.div(self._numerator(k), A.sub(upper, lower))))
            k += 1

        column = self._best_column()
        return table.latest(column), column // 2

    def _numerator(self, k: int):
        return self.arithmetic.one

    def _best_column(self) -> int:
        top = self.table.depth - 1
        return top if top % 2 == 0 else top - 1

    def _order_value(self, order):
        return self.table.latest(2 * order)

    @property
    def available_orders(self) -> int:
        if not self.table.depth:
            return 0
        return self._best_column() // 2 + 1


class RhoWynnAlgorithm(EpsilonAlgorithm):
    """
    Wynn's rho algorithm.

    Same rhombus as the epsilon algorithm with the interpolation points
    x_n = n + 1, so the reciprocal difference is scaled by the column width:

        rho[k+1][n] = rho[k-1][n+1] + (k + 1) / (rho[k][n+1] - rho[k][n])

    It suits monotone, logarithmically converging sequences where the epsilon
    algorithm stalls.
    """

    name = "rho_wynn"

    def _numerator(self, k: int):
        return self.arithmetic.convert(k + 1)


class ShanksTransform(SeriesAcceleration):
    """
    Iterated Shanks (Aitken delta-squared) transform.

    Column k+1 applies the three-point step to consecutive cells of column k:

        S' = S2 - (S2 - S1)^2 / (S2 - 2 S1 + S0)
    """

    window = 3
    name = "shanks"

    def _update(self, term, partial):
        A = self.arithmetic
        table = self.table
        table.append(0, partial)

        k = 0
        while table.count(k) - table.count(k + 1) >= 3:
            s0, s1, s2 = table.latest(k, 2), table.latest(k, 1), table.latest(k)
            flat = self._agree(A.add(s2, s0), A.add(s1, s1))
            if k == 0:
                flat = flat or self._agree(s0, s1) or self._agree(s1, s2)
            if flat:
                # a flat column counts as converged only when the raw sums agree
                self._singular(partial)
            delta = A.sub(s2, s1)
            second = A.add(A.sub(s2, A.add(s1, s1)), s0)
            table.append(k + 1, A.sub(s2, A.div(A.mul(delta, delta), second)))
            k += 1

        order = table.depth - 1
        return table.latest(order), order

    def _order_value(self, order):
        return self.table.latest(order)

    @property
    def available_orders(self) -> int:
        return self.table.depth


class LevinTransform(SeriesAcceleration):
    """
    Levin's sequence transformation.

    The remainder of S_n is modelled as ``omega_n`` times a series in
    ``1 / (beta + n)``. Numerator and denominator tables start from
    ``S_n / omega_n`` and ``1 / omega_n`` and obey

        X_k(n) = X_{k-1}(n+1) - c_k(n) X_{k-1}(n),
        c_k(n) = (beta+n)/(beta+n+k) * ((beta+n+k-1)/(beta+n+k))^(k-2).

    After N+1 terms the estimate of order N is P_N(0) / Q_N(0). This class is
    the t-transform, ``omega_n = a_n``.
    """

    window = 2
    name = "levin"
    variant = "t"

    def __init__(self, series, config: Optional[AccelerationConfig] = None, beta=1):
        """
        Initialize accelerator.

        Args:
            series: Series whose partial sums are accelerated
            config: Acceleration settings
            beta: Positive shift of the remainder model
        """
        if not beta > 0:
            raise ValueError(f"beta must be positive, got {beta!r}")
        super().__init__(series, config)
        self.beta = beta
        self._previous_term = None

    def _update(self, term, partial):
        A = self.arithmetic
        table = self.table
        n = self.terms - 1
        previous_term, self._previous_term = self._previous_term, term
        self._check_term(term, partial, previous_term, n)

        inverse = A.div(A.one, self._remainder(term, n))
        table.append(0, (A.mul(partial, inverse), inverse))
        for k in range(1, n + 1):
            weight = self._weight(k, table.count(k))
            p_new, q_new = table.latest(k - 1)
            p_old, q_old = table.latest(k - 1, 1)
            table.append(k, (A.sub(p_new, A.mul(weight, p_old)),
                             A.sub(q_new, A.mul(weight, q_old))))

        return self._ratio(n), n

    def _check_term(self, term, partial, previous_term, n: int):
        A = self.arithmetic
        negligible = A.compare(term, A.zero) == 0
        if not negligible and n > 0:
            negligible = self._agree(partial, self._recent[-2])
        if negligible:
            self._singular(partial)

    def _remainder(self, term, n: int):
        return term

    def _weight(self, k: int, n: int):
        A = self.arithmetic
        if k == 1:
            return A.one
        shift = self.beta + n
        return A.mul(A.ratio(shift, shift + k),
                     A.power(A.ratio(shift + k - 1, shift + k), k - 2))

    def _ratio(self, order: int):
        A = self.arithmetic
        p, q = self.table.latest(order)
        if A.compare(q, A.zero) == 0:
            raise _SingularStep(False)
        return A.div(p, q)

    def _order_value(self, order):
        return self._ratio(order)

    @property
    def available_orders(self) -> int:
        return self.table.depth


class LevinUTransform(LevinTransform):
    """Levin's u-transform, ``omega_n = (beta + n) a_n``; for logarithmic convergence."""

    name = "levin_u"
    variant = "u"

    def _remainder(self, term, n: int):
        A = self.arithmetic
        return A.mul(A.convert(self.beta + n), term)


class ShanksTransformAlternating(LevinTransform):
    """
    Shanks transform specialised to alternating series.

    The first order is the Shanks step written on consecutive terms,

        T1 = S_n + a_n a_{n+1} / (a_n - a_{n+1}),

    whose denominator adds magnitudes when the signs alternate. Higher orders
    follow the t-transform with ``beta = 1``. Two consecutive terms of the
    same sign make the step degenerate.
    """

    name = "alternating"

    def _check_term(self, term, partial, previous_term, n: int):
        super()._check_term(term, partial, previous_term, n)
        A = self.arithmetic
        if previous_term is not None and A.compare(A.mul(term, previous_term), A.zero) > 0:
            logger.debug("%s: terms %d and %d share a sign", self.name, n - 1, n)
            raise _SingularStep(False)


class RichardsonExtrapolation(SeriesAcceleration):
    """
    Richardson extrapolation in the step ``h_n = 1 / (n + 1)``.

    The partial sums are taken as samples of a polynomial in ``h`` and the
    Neville table evaluates it at ``h = 0``:

        R_k(n) = ((n+k+1) R_{k-1}(n+1) - (n+1) R_{k-1}(n)) / k

    Suited to sequences whose error expands in powers of ``1 / n``.
    """

    window = 2
    name = "richardson"

    def _update(self, term, partial):
        A = self.arithmetic
        table = self.table
        table.append(0, partial)

        for k in range(1, table.count(0)):
            n = table.count(k)
            newer = A.mul(A.convert(n + k + 1), table.latest(k - 1))
            older = A.mul(A.convert(n + 1), table.latest(k - 1, 1))
            table.append(k, A.div(A.sub(newer, older), A.convert(k)))

        order = table.depth - 1
        return table.latest(order), order

    def _order_value(self, order):
        return self.table.latest(order)

    @property
    def available_orders(self) -> int:
        return self.table.depth


ACCELERATORS = {
    EpsilonAlgorithm.name: EpsilonAlgorithm,
    ShanksTransform.name: ShanksTransform,
    ShanksTransformAlternating.name: ShanksTransformAlternating,
    LevinTransform.name: LevinTransform,
    LevinUTransform.name: LevinUTransform,
    RhoWynnAlgorithm.name: RhoWynnAlgorithm,
    RichardsonExtrapolation.name: RichardsonExtrapolation,
}


def make_accelerator(series, method: str = 'epsilon',
                     config: Optional[AccelerationConfig] = None) -> SeriesAcceleration:
    """
    Wrap a series in an accelerator.

    Args:
        series: Series to accelerate
        method: Accelerator name, a key of ``ACCELERATORS``
        config: Acceleration settings

    Returns:
        Fresh accelerator
    """
    try:
        cls = ACCELERATORS[method]
    except KeyError:
        raise ValueError(f"Unknown method: {method}") from None
    return cls(series, config)


def accelerate(series, method: str = 'epsilon', config: Optional[AccelerationConfig] = None,
               strict: bool = False) -> Estimate:
    """
    Run an accelerator until it reaches a terminal state.

    Args:
        series: Series to accelerate
        method: Accelerator name
        config: Acceleration settings
        strict: Raise ``Degenerate`` / ``NoConvergence`` instead of returning
            a non-converged estimate

    Returns:
        Final estimate
    """
    accelerator = make_accelerator(series, method, config)
    result = None
    for result in accelerator:
        pass

    if strict:
        if result.state is AccelerationState.DEGENERATE:
            raise Degenerate(result)
        if result.state is AccelerationState.NO_CONVERGENCE:
            raise NoConvergence(result)
    return result


def trace(series, method: str = 'epsilon',
          config: Optional[AccelerationConfig] = None) -> List[Estimate]:
    """Every estimate produced on the way to a terminal state."""
    return list(make_accelerator(series, method, config))


def terms_to_tolerance(series, target, tolerance: float, method: str = 'epsilon',
                       config: Optional[AccelerationConfig] = None) -> Optional[int]:
    """
    Count raw terms needed to get within ``tolerance`` of ``target``.

    Args:
        series: Series to evaluate
        target: Reference value
        tolerance: Absolute error to reach
        method: Accelerator name, or 'raw' for plain partial sums
        config: Acceleration settings; ``max_terms`` bounds the search

    Returns:
        Number of raw terms, or None if the target was not reached
    """
    config = config or AccelerationConfig()
    A = series.arithmetic
    target = A.convert(target)
    tolerance = A.convert(tolerance)

    def close(value):
        return value is not None and A.compare(A.abs(A.sub(value, target)), tolerance) < 0

    if method == 'raw':
        for n, (_, partial) in enumerate(itertools.islice(series.accumulate(), config.max_terms)):
            if close(partial):
                return n + 1
        return None

    for result in make_accelerator(series, method, config):
        if close(result.value):
            return result.terms
    return None


def compare_accelerators(series, methods: Optional[Sequence[str]] = None,
                         config: Optional[AccelerationConfig] = None) -> Dict[str, dict]:
    """
    Run several methods on the same series.

    Args:
        series: Series to evaluate
        methods: Names to compare (default: 'raw' plus every accelerator)
        config: Acceleration settings shared by all methods

    Returns:
        Mapping of method name to a summary dict with keys ``value``,
        ``state``, ``order``, ``terms`` and ``error`` (absolute error against
        ``series.limit``, or None when the series has no closed form)
    """
    config = config or AccelerationConfig()
    methods = list(methods) if methods is not None else ['raw'] + list(ACCELERATORS)
    A = series.arithmetic
    limit = series.limit

    summary = {}
    for method in methods:
        if method == 'raw':
            sums = series.partial_sums(config.max_terms)
            result = Estimate(sums[-1] if sums else None, None, 0, len(sums))
        else:
            result = accelerate(series, method, config)

        error = None
        if limit is not None and result.value is not None:
            error = A.to_float(A.abs(A.sub(result.value, limit)))
        summary[method] = {
            'value': result.value,
            'state': result.state.value if result.state is not None else None,
            'order': result.order,
            'terms': result.terms,
            'error': error,
        }
        logger.debug("compare %s on %r: %s", method, series, summary[method])
    return summary


class BatchAccelerator:
    """
    Batch processor for acceleration runs.

    Accelerates many series with one method and keeps statistics on terms
    consumed, final states and errors against closed-form limits.
    """

    def __init__(self, method: str = 'epsilon', config: Optional[AccelerationConfig] = None,
                 track_statistics: bool = True):
        """
        Initialize batch accelerator.

        Args:
            method: Default accelerator name
            config: Acceleration settings
            track_statistics: Whether to track operation statistics
        """
        if method not in ACCELERATORS:
            raise ValueError(f"Unknown method: {method}")
        self.method = method
        self.config = config or AccelerationConfig()
        self.track_statistics = track_statistics
        self.reset_statistics()

    def reset_statistics(self):
        """Reset operation statistics."""
        self.operation_count = 0
        self.total_terms = 0
        self.state_counts = {state.value: 0 for state in AccelerationState if state.is_terminal}
        self.error_count = 0
        self.total_error = 0.0
        self.max_error = 0.0
        self.min_error = float('inf')

    def accelerate_batch(self, batch_series: Iterable, method: Optional[str] = None) -> List[Estimate]:
        """
        Accelerate multiple series in batch.

        Args:
            batch_series: Series to accelerate
            method: Accelerator name (default: the batch's method)

        Returns:
            List of final estimates
        """
        method = method or self.method
        results = []

        for series in batch_series:
            result = accelerate(series, method, self.config)
            results.append(result)

            if self.track_statistics:
                self.operation_count += 1
                self.total_terms += result.terms
                self.state_counts[result.state.value] += 1
                limit = series.limit
                if limit is not None and result.value is not None:
                    A = series.arithmetic
                    error = A.to_float(A.abs(A.sub(result.value, limit)))
                    self.error_count += 1
                    self.total_error += error
                    self.max_error = max(self.max_error, error)
                    self.min_error = min(self.min_error, error)

        return results

    def get_statistics(self) -> dict:
        """Get operation statistics."""
        if not self.track_statistics or self.operation_count == 0:
            return {}

        return {
            'operation_count': self.operation_count,
            'average_terms': self.total_terms / self.operation_count,
            'states': dict(self.state_counts),
            'average_error': self.total_error / self.error_count if self.error_count else 0.0,
            'max_error': self.max_error,
            'min_error': self.min_error if self.min_error != float('inf') else 0.0,
            'total_error': self.total_error,
        }
