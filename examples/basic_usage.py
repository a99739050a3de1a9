#!/usr/bin/env python3
"""
Basic usage examples for the Shanks Acceleration Library.

This script demonstrates the fundamental usage patterns for accelerating
slowly converging series with the epsilon algorithm and the Shanks
transforms.
"""

import logging
import time

import numpy as np
import torch
import sys
sys.path.append('..')

from shanks import (
    AccelerationConfig,
    ACCELERATORS,
    AccelerationState,
    BatchAccelerator,
    MPArithmetic,
    SequenceSeries,
    accelerate,
    compare_accelerators,
    get_series,
    make_accelerator,
    terms_to_tolerance,
    trace,
)
from shanks.series import Ln2Series, FourArctanSeries, Inverse1mxSeries, ExpSeries


def demonstrate_slow_convergence():
    """Show how slowly the raw partial sums approach ln 2."""
    print("=" * 60)
    print("SLOW CONVERGENCE OF PARTIAL SUMS")
    print("=" * 60)

    series = Ln2Series()
    exact = np.log(2.0)

    print(f"Exact ln 2: {exact:.15f}")
    print()
    print(f"{'Terms':<10} {'Partial sum':<22} {'Error':<12}")
    print("-" * 44)
    for n in (10, 100, 1000, 10000):
        partial = series.partial_sum(n - 1)
        print(f"{n:<10} {partial:<22.15f} {abs(partial - exact):<12.2e}")
    print()


def demonstrate_accelerators():
    """Accelerate ln 2 with every registered method."""
    print("=" * 60)
    print("ACCELERATING THE ALTERNATING HARMONIC SERIES")
    print("=" * 60)

    exact = np.log(2.0)

    for method in ACCELERATORS:
        result = accelerate(Ln2Series(), method)
        print(f"{method:<12}: {result.value:.15f}  "
              f"state={result.state.value:<16} order={result.order:<3} "
              f"terms={result.terms:<3} error={abs(result.value - exact):.2e}")
    print()


def demonstrate_step_by_step():
    """Drive an accelerator one term at a time."""
    print("=" * 60)
    print("STEP-BY-STEP EXTRAPOLATION")
    print("=" * 60)

    # geometric series 1 + 1/2 + 1/4 + ... = 2
    accelerator = make_accelerator(Inverse1mxSeries(0.5), 'epsilon')
    print("Epsilon algorithm on 1/(1 - x), x = 0.5:")

    for result in accelerator:
        print(f"  terms={result.terms}  order={result.order}  "
              f"value={result.value!r:<22} {result.state.value}")

    print(f"Highest order available: {accelerator.available_orders}")
    print(f"Raw partial sum (order 0): {accelerator.estimate(0)}")
    print()


def demonstrate_terms_needed():
    """Compare the number of terms needed to reach a target accuracy."""
    print("=" * 60)
    print("TERMS NEEDED FOR 1e-10 ACCURACY (4 atan(1) = pi)")
    print("=" * 60)

    config = AccelerationConfig(max_terms=200, tolerance=1e-14)
    for method in ('raw', 'epsilon', 'shanks', 'alternating'):
        needed = terms_to_tolerance(FourArctanSeries(1.0), np.pi, 1e-10, method, config)
        label = needed if needed is not None else f"> {config.max_terms}"
        print(f"{method:<12}: {label}")
    print()


def demonstrate_value_types():
    """Run the same acceleration in several value types."""
    print("=" * 60)
    print("VALUE TYPES")
    print("=" * 60)

    backends = [
        ('float32', np.float32),
        ('float64', np.float64),
        ('torch.float64', torch.float64),
        ('mpmath 40 digits', MPArithmetic(40)),
    ]

    for label, arithmetic in backends:
        series = Ln2Series(arithmetic=arithmetic)
        result = accelerate(series, 'epsilon')
        A = series.arithmetic
        error = A.to_float(A.abs(A.sub(result.value, series.limit)))
        print(f"{label:<18}: terms={result.terms:<3} error={error:.2e}")
    print()


def demonstrate_memory_modes():
    """Full table versus constant-memory operation."""
    print("=" * 60)
    print("FULL TABLE VS. WINDOWED TABLE")
    print("=" * 60)

    for retain in (True, False):
        config = AccelerationConfig(retain_full_table=retain, tolerance=1e-13)
        accelerator = make_accelerator(Ln2Series(), 'epsilon', config)
        results = list(accelerator)
        print(f"retain_full_table={retain!s:<5}: value={results[-1].value:.15f} "
              f"cells kept={accelerator.table.cell_count}")
    print()


def demonstrate_terminal_states():
    """Show the degenerate and no-convergence outcomes."""
    print("=" * 60)
    print("TERMINAL STATES")
    print("=" * 60)

    # a straight line of partial sums has no second difference
    degenerate = SequenceSeries([1.0, 0.5, 0.75, 1.0, 1.25, 1.5])
    result = accelerate(degenerate, 'shanks')
    print(f"Linear tail     : {result.state.value} after {result.terms} terms, "
          f"estimate {result.value:.6f}")

    config = AccelerationConfig(max_terms=6)
    result = accelerate(get_series('ln1mx', 0.99), 'epsilon', config)
    print(f"Budget exceeded : {result.state.value} after {result.terms} terms")

    result = accelerate(SequenceSeries([1.0, 1.5, 1.75]), 'epsilon')
    print(f"Input exhausted : {result.state.value}, estimate {result.value}")
    print()


def demonstrate_comparison():
    """Compare every method on a few catalog series."""
    print("=" * 60)
    print("METHOD COMPARISON")
    print("=" * 60)

    cases = [
        ('exp', 2.0),
        ('four_arctan', 1.0),
        ('ln1mx', -0.9),
        ('lambert_w0', 0.3),
    ]
    config = AccelerationConfig(max_terms=40)

    for name, x in cases:
        summary = compare_accelerators(get_series(name, x), config=config)
        print(f"{name}(x={x}):")
        for method, info in summary.items():
            state = info['state'] or '-'
            print(f"  {method:<12} terms={info['terms']:<4} {state:<16} "
                  f"error={info['error']:.2e}")
    print()


def demonstrate_batch_processing():
    """Accelerate many series and collect statistics."""
    print("=" * 60)
    print("BATCH PROCESSING")
    print("=" * 60)

    batch = [ExpSeries(x) for x in np.linspace(-2.0, 2.0, 9)]
    batch += [FourArctanSeries(x) for x in (0.25, 0.5, 0.75, 1.0)]

    processor = BatchAccelerator(method='epsilon')

    start = time.perf_counter()
    results = processor.accelerate_batch(batch)
    elapsed = (time.perf_counter() - start) * 1000

    converged = sum(1 for r in results if r.state is AccelerationState.CONVERGED)
    print(f"Processed {len(results)} series in {elapsed:.1f} ms, {converged} converged")

    stats = processor.get_statistics()
    print(f"Average terms: {stats['average_terms']:.1f}")
    print(f"Max error: {stats['max_error']:.2e}")
    print(f"States: {stats['states']}")
    print()


def demonstrate_trace():
    """Print the estimate history of one run."""
    print("=" * 60)
    print("ESTIMATE HISTORY")
    print("=" * 60)

    history = trace(Ln2Series(), 'alternating')
    for result in history:
        print(f"  {result.terms:>3} terms, order {result.order:>2}: {result.value:.15f}")
    print()


def main():
    """Run all demonstrations."""
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    print("SHANKS ACCELERATION LIBRARY - BASIC USAGE EXAMPLES")
    print("=" * 60)
    print()

    demonstrate_slow_convergence()
    demonstrate_accelerators()
    demonstrate_step_by_step()
    demonstrate_terms_needed()
    demonstrate_value_types()
    demonstrate_memory_modes()
    demonstrate_terminal_states()
    demonstrate_comparison()
    demonstrate_batch_processing()
    demonstrate_trace()

    print("=" * 60)
    print("All demonstrations completed!")
    print("=" * 60)


if __name__ == "__main__":
    main()
