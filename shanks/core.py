"""
Core acceleration machinery.

This module contains the pieces shared by every accelerator: the error
hierarchy, the state flags and result record, the configuration object, the
acceleration table with its two retention modes, and the abstract
``SeriesAcceleration`` engine that pulls partial sums from a series and
drives the transform-specific recurrence.
"""

import logging
import os
from collections import deque
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Union

from .numeric import Arithmetic

logger = logging.getLogger(__name__)


class SeriesAccelerationError(Exception):
    """Base class for all errors raised by this package."""


class InvalidIndex(SeriesAccelerationError, ValueError):
    """A term or partial sum was requested at an index that does not exist."""

    def __init__(self, index, reason: str = "index must be a non-negative integer"):
        super().__init__(f"Invalid index {index!r}: {reason}")
        self.index = index


class OrderUnavailable(SeriesAccelerationError, LookupError):
    """An estimate was requested at an order the table has not reached."""

    def __init__(self, order, available: int = 0):
        super().__init__(
            f"Order {order!r} is not available (highest computed order: {available - 1})"
        )
        self.order = order


class Degenerate(SeriesAccelerationError):
    """The recurrence hit a vanishing denominator on non-stabilised input."""

    def __init__(self, estimate: "Estimate"):
        super().__init__(
            f"Acceleration became degenerate after {estimate.terms} terms; "
            f"last valid estimate {estimate.value} at order {estimate.order}"
        )
        self.estimate = estimate


class NoConvergence(SeriesAccelerationError):
    """The term budget or the input stream ran out before convergence."""

    def __init__(self, estimate: "Estimate"):
        super().__init__(
            f"No convergence after {estimate.terms} terms; "
            f"best estimate {estimate.value} at order {estimate.order}"
        )
        self.estimate = estimate


class AccelerationState(Enum):
    """Lifecycle of an accelerator."""

    COLLECTING = "collecting"
    EXTRAPOLATING = "extrapolating"
    CONVERGED = "converged"
    DEGENERATE = "degenerate"
    NO_CONVERGENCE = "no_convergence"

    @property
    def is_terminal(self) -> bool:
        return self in (
            AccelerationState.CONVERGED,
            AccelerationState.DEGENERATE,
            AccelerationState.NO_CONVERGENCE,
        )


class Estimate(NamedTuple):
    """Result of one ``advance()`` call."""

    value: Any
    state: AccelerationState
    order: int
    terms: int

    @property
    def converged(self) -> bool:
        return self.state is AccelerationState.CONVERGED


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes")


class AccelerationConfig:
    """
    Settings shared by all accelerators.

    Attributes:
        max_terms: Raw terms consumed before giving up
        tolerance: Agreement threshold for consecutive estimates; ``None``
            selects the backend default (64 machine epsilons)
        retain_full_table: Keep every table cell (True) or only the cells
            the recurrence still needs (False)
    """

    def __init__(self, max_terms: int = 64, tolerance: Optional[float] = None,
                 retain_full_table: bool = True):
        if isinstance(max_terms, bool) or not isinstance(max_terms, int) or max_terms < 1:
            raise ValueError(f"max_terms must be a positive integer, got {max_terms!r}")
        if tolerance is not None and not tolerance > 0:
            raise ValueError(f"tolerance must be positive, got {tolerance!r}")
        self.max_terms = max_terms
        self.tolerance = tolerance
        self.retain_full_table = bool(retain_full_table)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None, **overrides) -> "AccelerationConfig":
        """
        Build a configuration from ``SHANKS_*`` environment variables.

        Recognised variables are ``SHANKS_MAX_TERMS``, ``SHANKS_TOLERANCE``
        and ``SHANKS_RETAIN_FULL_TABLE``. Keyword overrides win over the
        environment.

        Args:
            environ: Mapping to read instead of ``os.environ``
            **overrides: Explicit constructor arguments

        Returns:
            Validated configuration
        """
        environ = os.environ if environ is None else environ
        kwargs = {}
        try:
            if environ.get("SHANKS_MAX_TERMS"):
                kwargs["max_terms"] = int(environ["SHANKS_MAX_TERMS"])
            if environ.get("SHANKS_TOLERANCE"):
                kwargs["tolerance"] = float(environ["SHANKS_TOLERANCE"])
        except ValueError as exc:
            raise ValueError(f"Invalid SHANKS_* environment setting: {exc}") from exc
        if environ.get("SHANKS_RETAIN_FULL_TABLE"):
            kwargs["retain_full_table"] = _env_flag(environ["SHANKS_RETAIN_FULL_TABLE"])
        kwargs.update(overrides)
        return cls(**kwargs)

    def __repr__(self):
        return (f"AccelerationConfig(max_terms={self.max_terms}, tolerance={self.tolerance}, "
                f"retain_full_table={self.retain_full_table})")


class AccelerationTable:
    """
    Append-only grid of cells indexed by (order, position).

    In full mode every cell is kept. In minimal mode each column is a ring
    buffer holding its last ``window`` cells; older cells are evicted but the
    absolute positions of the survivors are preserved.
    """

    def __init__(self, retain_full_table: bool = True, window: int = 2):
        if window < 1:
            raise ValueError(f"window must be positive, got {window}")
        self.retain_full_table = retain_full_table
        self.window = window
        self._columns: List[Union[list, deque]] = []
        self._counts: List[int] = []

    @property
    def depth(self) -> int:
        """Number of columns started so far."""
        return len(self._columns)

    @property
    def cell_count(self) -> int:
        """Number of cells currently held in memory."""
        return sum(len(column) for column in self._columns)

    def count(self, order: int) -> int:
        """Number of cells ever appended to column ``order``."""
        if 0 <= order < len(self._counts):
            return self._counts[order]
        return 0

    def append(self, order: int, value) -> int:
        """
        Append a cell to a column.

        Args:
            order: Column index; may open the next column
            value: Cell value

        Returns:
            Absolute position of the new cell
        """
        if order < 0 or order > len(self._columns):
            raise ValueError(f"Cannot append to column {order} of a table with depth {self.depth}")
        if order == len(self._columns):
            self._columns.append([] if self.retain_full_table else deque(maxlen=self.window))
            self._counts.append(0)
        self._columns[order].append(value)
        self._counts[order] += 1
        return self._counts[order] - 1

    def get(self, order: int, position: int):
        """Cell at absolute ``position`` of column ``order``."""
        if not 0 <= order < len(self._columns):
            raise OrderUnavailable(order, self.depth)
        column = self._columns[order]
        offset = position - (self._counts[order] - len(column))
        if position < 0 or position >= self._counts[order] or offset < 0:
            raise OrderUnavailable(order, self.depth)
        return column[offset]

    def latest(self, order: int, back: int = 0):
        """Cell ``back`` steps before the newest one in column ``order``."""
        return self.get(order, self.count(order) - 1 - back)

    def column(self, order: int) -> list:
        """Retained cells of a column, oldest first."""
        if not 0 <= order < len(self._columns):
            raise OrderUnavailable(order, self.depth)
        return list(self._columns[order])

    def __repr__(self):
        mode = "full" if self.retain_full_table else f"window={self.window}"
        return f"AccelerationTable({mode}, counts={self._counts})"


class _SingularStep(Exception):
    """Raised by a recurrence step whose denominator vanished."""

    def __init__(self, converged: bool, value=None, order: Optional[int] = None):
        super().__init__(converged, value, order)
        self.converged = converged
        self.value = value
        self.order = order


class SeriesAcceleration:
    """
    Abstract accelerator over the partial sums of a series.

    Subclasses set ``window`` (cells per column needed by their recurrence)
    and implement ``_update`` and ``_order_value``.
    """

    window = 2
    name = "abstract"

    def __init__(self, series, config: Optional[AccelerationConfig] = None):
        """
        Initialize accelerator.

        Args:
            series: Series whose partial sums are accelerated
            config: Acceleration settings (default: ``AccelerationConfig()``)
        """
        self.series = series
        self.arithmetic: Arithmetic = series.arithmetic
        self.config = config or AccelerationConfig()
        if self.config.tolerance is None:
            self.tolerance = self.arithmetic.default_tolerance
        else:
            self.tolerance = self.arithmetic.convert(self.config.tolerance)
        self.table = AccelerationTable(self.config.retain_full_table, self.window)

        self.terms = 0
        self._stream = series.accumulate()
        self._recent = deque(maxlen=3)
        self._state = AccelerationState.COLLECTING
        self._best = None
        self._order = 0
        self._result: Optional[Estimate] = None
        self._pending_repeat = False

    # -- public interface --------------------------------------------------

    def advance(self) -> Estimate:
        """
        Consume one more raw term and update the estimate.

        Once a terminal state is reached the frozen estimate is returned and
        no further terms are consumed.

        Returns:
            Current estimate with its state
        """
        if self._state.is_terminal:
            return self._result

        try:
            term, partial = next(self._stream)
        except StopIteration:
            logger.warning("%s: series exhausted after %d terms", self.name, self.terms)
            return self._finish(AccelerationState.NO_CONVERGENCE)

        self.terms += 1
        self._recent.append(partial)

        if self._pending_repeat:
            # the third sum tells a constant sequence from a single zero term
            if self._is_stabilised():
                logger.info("%s: input stabilised after %d terms", self.name, self.terms)
                return self._finish(AccelerationState.CONVERGED)
            logger.warning("%s: degenerate step after %d terms, keeping order %d estimate",
                           self.name, self.terms, self._order)
            return self._finish(AccelerationState.DEGENERATE)

        try:
            value, order = self._update(term, partial)
        except _SingularStep as step:
            if step.converged:
                if step.value is not None:
                    self._best = step.value
                if step.order is not None:
                    self._order = step.order
                logger.info("%s: converged to %s after %d terms (order %d)",
                            self.name, self._best, self.terms, self._order)
                return self._finish(AccelerationState.CONVERGED)
            if len(self._recent) == 2 and self._agree(self._recent[0], self._recent[1]):
                logger.debug("%s: first two sums coincide, waiting for the third", self.name)
                self._pending_repeat = True
                value, order = partial, 0
            else:
                logger.warning("%s: degenerate step after %d terms, keeping order %d estimate",
                               self.name, self.terms, self._order)
                return self._finish(AccelerationState.DEGENERATE)

        if not self.arithmetic.is_finite(value):
            logger.warning("%s: non-finite value at order %d after %d terms",
                           self.name, order, self.terms)
            return self._finish(AccelerationState.DEGENERATE)

        previous, previous_order = self._best, self._order
        self._best, self._order = value, order
        logger.debug("%s: terms=%d order=%d value=%s", self.name, self.terms, order, value)

        # two raw sums agreeing is a repeated value, not a converged extrapolation
        extrapolated = min(order, previous_order) >= 1 or self._is_stabilised()
        if previous is not None and extrapolated and self._agree(value, previous):
            logger.info("%s: converged to %s after %d terms (order %d)",
                        self.name, value, self.terms, order)
            return self._finish(AccelerationState.CONVERGED)

        if self.terms >= self.config.max_terms:
            logger.warning("%s: no convergence within %d terms", self.name, self.config.max_terms)
            return self._finish(AccelerationState.NO_CONVERGENCE)

        self._state = (AccelerationState.COLLECTING if order == 0
                       else AccelerationState.EXTRAPOLATING)
        self._result = Estimate(value, self._state, order, self.terms)
        return self._result

    def estimate(self, order: Optional[int] = None):
        """
        Latest value computed at ``order``.

        Args:
            order: Transform order; 0 is the latest raw partial sum
                (default: the current best order)

        Returns:
            Backend value
        """
        if order is None:
            order = self._order
        if isinstance(order, bool) or not isinstance(order, int) or order < 0 or not self._recent:
            raise OrderUnavailable(order, self.available_orders)
        if order == 0:
            return self._recent[-1]
        if order >= self.available_orders:
            raise OrderUnavailable(order, self.available_orders)
        return self._order_value(order)

    def current_state(self) -> AccelerationState:
        return self._state

    @property
    def state(self) -> AccelerationState:
        return self._state

    @property
    def order(self) -> int:
        return self._order

    @property
    def available_orders(self) -> int:
        """Number of orders (including 0) that currently have a value."""
        raise NotImplementedError

    def __iter__(self):
        """Iterate over estimates until a terminal state is reached."""
        while True:
            result = self.advance()
            yield result
            if result.state.is_terminal:
                return

    def __repr__(self):
        return (f"{self.__class__.__name__}(series={self.series!r}, terms={self.terms}, "
                f"state={self._state.value})")

    # -- hooks -------------------------------------------------------------

    def _update(self, term, partial):
        """
        Extend the table with one raw term.

        Returns:
            Tuple of (best value, its order)

        Raises:
            _SingularStep: when a denominator vanished
        """
        raise NotImplementedError

    def _order_value(self, order: int):
        raise NotImplementedError

    # -- helpers -------------------------------------------------------------

    def _agree(self, a, b) -> bool:
        return self.arithmetic.is_within_tolerance(a, b, self.tolerance)

    def _is_stabilised(self) -> bool:
        """True when the last three raw partial sums all agree."""
        if len(self._recent) < self._recent.maxlen:
            return False
        sums = list(self._recent)
        return all(self._agree(a, b) for a, b in zip(sums, sums[1:]))

    def _singular(self, partial):
        """
        Classify a vanishing difference in the table.

        The step counts as converged when the current extrapolated estimate
        already agrees with the latest partial sum, or when the raw sums
        themselves have stabilised; otherwise it is degenerate.

        Raises:
            _SingularStep: always
        """
        if self._order >= 1 and self._agree(self._best, partial):
            raise _SingularStep(True)
        if self._is_stabilised():
            raise _SingularStep(True, partial, 0)
        raise _SingularStep(False)

    def _finish(self, state: AccelerationState) -> Estimate:
        self._state = state
        value = self._best
        if value is None and self._recent:
            value = self._recent[-1]
        self._result = Estimate(value, state, self._order, self.terms)
        return self._result
