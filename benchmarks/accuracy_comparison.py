#!/usr/bin/env python3
"""
Accuracy comparison benchmark for the Shanks Acceleration Library.

Runs every accelerator, plus plain summation, over the series catalog and
compares the error against the closed-form limit, the number of terms
consumed and the wall time.
"""

import time
from typing import Dict, List, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import sys
sys.path.append('..')

from shanks import AccelerationConfig, ACCELERATORS, accelerate, get_series
from shanks.series import Series


class AccuracyBenchmark:
    """Comprehensive accuracy benchmark for series acceleration."""

    def __init__(self, max_terms: int = 60):
        """
        Initialize benchmark.

        Args:
            max_terms: Term budget for every run
        """
        self.max_terms = max_terms
        self.methods = ['raw'] + list(ACCELERATORS)
        self.results = []

    def generate_test_case(self, case_type: str, dtype=np.float64) -> List[Tuple[str, Series]]:
        """
        Generate test series of various kinds.

        Args:
            case_type: Type of test case
            dtype: Value type of the series

        Returns:
            List of (label, series) pairs
        """
        if case_type == 'entire_functions':
            specs = [('exp', 5.0), ('cos', 4.0), ('sin', 4.0), ('cosh', 3.0), ('erf', 2.0)]
        elif case_type == 'alternating_slow':
            specs = [('ln2', 0), ('four_arctan', 1.0), ('pi4', 0), ('four_ln2_m3', 0)]
        elif case_type == 'monotone_slow':
            specs = [('ln1mx', 0.9), ('pi_squared_6_minus_one', 0), ('one', 0)]
        elif case_type == 'near_singularity':
            specs = [('inverse_1mx', 0.95), ('x_1mx_squared', 0.9), ('binomial', 0.95),
                     ('inverse_sqrt_1m4x', 0.24), ('lambert_w0', -0.35)]
        elif case_type == 'negative_argument':
            specs = [('inverse_1mx', -0.95), ('ln1mx', -0.99), ('binomial', -0.9),
                     ('lambert_w0', 0.35)]
        else:
            raise ValueError(f"Unknown case type: {case_type}")

        return [
            (f"{name}({x})", get_series(name, x, arithmetic=dtype))
            for name, x in specs
        ]

    def run_single_benchmark(self, test_name: str, series: Series) -> Dict:
        """
        Run benchmark on a single series.

        Args:
            test_name: Name of the test case
            series: Series to accelerate

        Returns:
            Dictionary with benchmark results
        """
        A = series.arithmetic
        exact = series.limit
        config = AccelerationConfig(max_terms=self.max_terms)

        results = {
            'test_name': test_name,
            'exact_result': A.to_float(exact),
        }

        for method in self.methods:
            try:
                start_time = time.perf_counter()
                if method == 'raw':
                    sums = series.partial_sums(self.max_terms)
                    value, state, terms = sums[-1], None, len(sums)
                else:
                    result = accelerate(series, method, config)
                    value, state, terms = result.value, result.state.value, result.terms
                elapsed_time = time.perf_counter() - start_time

                absolute_error = A.to_float(A.abs(A.sub(value, exact)))
                scale = abs(A.to_float(exact))
                relative_error = absolute_error / scale if scale != 0 else absolute_error

                results[f'{method}_result'] = A.to_float(value)
                results[f'{method}_state'] = state
                results[f'{method}_terms'] = terms
                results[f'{method}_time'] = elapsed_time
                results[f'{method}_abs_error'] = absolute_error
                results[f'{method}_rel_error'] = relative_error

            except (ArithmeticError, ValueError, TypeError) as e:
                print(f"Error in {method} for {test_name}: {e}")
                results[f'{method}_result'] = np.nan
                results[f'{method}_state'] = None
                results[f'{method}_terms'] = np.nan
                results[f'{method}_time'] = np.nan
                results[f'{method}_abs_error'] = np.inf
                results[f'{method}_rel_error'] = np.inf

        return results

    def run_comprehensive_benchmark(self) -> pd.DataFrame:
        """
        Run comprehensive benchmark across all test cases and value types.

        Returns:
            DataFrame with all benchmark results
        """
        test_cases = [
            'entire_functions',
            'alternating_slow',
            'monotone_slow',
            'near_singularity',
            'negative_argument',
        ]
        dtypes = [np.float32, np.float64]

        print("Running comprehensive accuracy benchmark...")
        print(f"Test cases: {len(test_cases)}")
        print(f"Methods: {self.methods}")
        print(f"Data types: {[dt.__name__ for dt in dtypes]}")
        print()

        for case_type in test_cases:
            for dtype in dtypes:
                for label, series in self.generate_test_case(case_type, dtype):
                    test_name = f"{label}_{dtype.__name__}"
                    print(f"Running {test_name}...")

                    result = self.run_single_benchmark(test_name, series)
                    result['case_type'] = case_type
                    result['dtype'] = dtype.__name__
                    self.results.append(result)

        return pd.DataFrame(self.results)

    def analyze_results(self, df: pd.DataFrame) -> None:
        """
        Analyze and display benchmark results.

        Args:
            df: DataFrame with benchmark results
        """
        print("\n" + "=" * 80)
        print("ACCURACY BENCHMARK ANALYSIS")
        print("=" * 80)

        print("\nRELATIVE ERROR BY METHOD:")
        print("-" * 60)
        print(f"{'Method':<12} {'Median Rel Error':<18} {'Max Rel Error':<15} {'Mean Terms':<10}")
        print("-" * 60)

        for method in self.methods:
            col = f'{method}_rel_error'
            if col in df.columns:
                median_error = df[col].median()
                max_error = df[col].max()
                mean_terms = df[f'{method}_terms'].mean()
                print(f"{method:<12} {median_error:<18.2e} {max_error:<15.2e} {mean_terms:<10.1f}")

        print("\nERROR BY TEST CASE TYPE:")
        print("-" * 40)

        for case_type in df['case_type'].unique():
            case_df = df[df['case_type'] == case_type]
            print(f"\n{case_type}:")
            for method in self.methods:
                col = f'{method}_rel_error'
                if col in case_df.columns:
                    print(f"  {method}: {case_df[col].median():.2e}")

        print("\nFINAL STATES:")
        print("-" * 30)
        for method in ACCELERATORS:
            counts = df[f'{method}_state'].value_counts()
            print(f"{method:<12} " + ", ".join(f"{k}={v}" for k, v in counts.items()))

        print("\nPERFORMANCE COMPARISON:")
        print("-" * 30)
        print(f"{'Method':<12} {'Mean Time (ms)':<15}")
        print("-" * 30)
        for method in self.methods:
            col = f'{method}_time'
            if col in df.columns:
                print(f"{method:<12} {df[col].mean() * 1000:<15.3f}")

    def plot_results(self, df: pd.DataFrame, save_plots: bool = True) -> None:
        """
        Create visualization plots of benchmark results.

        Args:
            df: DataFrame with benchmark results
            save_plots: Whether to save plots to files
        """
        colors = ['red', 'blue', 'green', 'orange', 'purple', 'brown', 'gray', 'olive']

        # Plot 1: Error by test case
        plt.figure(figsize=(14, 8))

        case_types = df['case_type'].unique()
        x_pos = np.arange(len(case_types))
        bar_width = 0.8 / len(self.methods)

        for i, method in enumerate(self.methods):
            col = f'{method}_rel_error'
            # floor at the smallest double so exact hits still show on a log axis
            case_errors = [max(df[df['case_type'] == case][col].median(), 1e-300)
                           for case in case_types]
            plt.bar(x_pos + i * bar_width, case_errors, bar_width,
                    color=colors[i % len(colors)], label=method, alpha=0.8)

        plt.xlabel('Test Case Type')
        plt.ylabel('Median Relative Error (log scale)')
        plt.title('Accuracy by Test Case Type')
        plt.yscale('log')
        plt.xticks(x_pos + bar_width * (len(self.methods) - 1) / 2, case_types, rotation=45, ha='right')
        plt.legend()
        plt.grid(True, alpha=0.3)
        plt.tight_layout()

        if save_plots:
            plt.savefig('accuracy_by_test_case.png', dpi=300, bbox_inches='tight')
        plt.show()

        # Plot 2: Terms vs accuracy trade-off
        plt.figure(figsize=(10, 8))

        for i, method in enumerate(self.methods):
            terms_col = f'{method}_terms'
            error_col = f'{method}_rel_error'
            mean_terms = df[terms_col].mean()
            median_error = max(df[error_col].median(), 1e-300)

            plt.scatter(mean_terms, median_error, s=100, color=colors[i % len(colors)],
                        label=method, alpha=0.8)
            plt.annotate(method, (mean_terms, median_error),
                         xytext=(5, 5), textcoords='offset points')

        plt.xlabel('Mean Terms Consumed')
        plt.ylabel('Median Relative Error')
        plt.title('Terms vs Accuracy Trade-off')
        plt.yscale('log')
        plt.legend()
        plt.grid(True, alpha=0.3)

        if save_plots:
            plt.savefig('terms_vs_accuracy.png', dpi=300, bbox_inches='tight')
        plt.show()


def main():
    """Run the complete accuracy benchmark suite."""
    print("SHANKS ACCELERATION LIBRARY - ACCURACY BENCHMARK")
    print("=" * 60)

    benchmark = AccuracyBenchmark()
    results_df = benchmark.run_comprehensive_benchmark()

    results_df.to_csv('accuracy_benchmark_results.csv', index=False)
    print("\nResults saved to accuracy_benchmark_results.csv")

    benchmark.analyze_results(results_df)

    try:
        benchmark.plot_results(results_df)
    except (RuntimeError, ValueError) as e:
        print(f"\nError creating plots: {e}")

    print("\n" + "=" * 60)
    print("Accuracy benchmark completed!")
    print("=" * 60)


if __name__ == "__main__":
    main()
