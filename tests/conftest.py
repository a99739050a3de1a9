#!/usr/bin/env python3
"""
Pytest configuration and fixtures for series acceleration tests.

This file contains shared test fixtures, configuration, and utilities
used across the test suite.
"""

import pytest
import numpy as np
import torch
import mpmath
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from shanks.numeric import FloatArithmetic, TorchArithmetic, MPArithmetic
from shanks.core import AccelerationConfig
from shanks.series import SequenceSeries


LN2 = 0.6931471805599453


@pytest.fixture
def float64():
    """Default numpy float64 backend."""
    return FloatArithmetic(np.float64)


@pytest.fixture(params=[
    pytest.param(lambda: FloatArithmetic(np.float32), id="float32"),
    pytest.param(lambda: FloatArithmetic(np.float64), id="float64"),
    pytest.param(lambda: TorchArithmetic(torch.float64), id="torch64"),
    pytest.param(lambda: MPArithmetic(30), id="mpmath30"),
])
def arithmetic(request):
    """Parameterized fixture over every value-type backend."""
    return request.param()


@pytest.fixture(params=[np.float32, np.float64])
def dtype(request):
    """Parameterized fixture for different numpy data types."""
    return request.param


@pytest.fixture(params=["cpu"] + (["cuda"] if torch.cuda.is_available() else []))
def device(request):
    """Parameterized fixture for different devices."""
    return torch.device(request.param)


@pytest.fixture(params=["epsilon", "shanks", "alternating"])
def method(request):
    """Parameterized fixture over the accelerator names."""
    return request.param


@pytest.fixture(params=[True, False], ids=["full", "window"])
def retain_full_table(request):
    """Parameterized fixture over table retention modes."""
    return request.param


@pytest.fixture
def strict_config():
    """Configuration with a tight tolerance and a generous term budget."""
    return AccelerationConfig(max_terms=60, tolerance=1e-12)


@pytest.fixture
def constant_sequence():
    """Sequence whose partial sums never change."""
    return SequenceSeries([2.5] * 8)


@pytest.fixture
def degenerate_sequence():
    """Sequence with a vanishing second difference at the fourth element."""
    return SequenceSeries([1.0, 0.5, 0.75, 1.0, 1.25, 1.5])


@pytest.fixture
def zero_step_sequence():
    """Sequence whose partial sum repeats at the fifth element."""
    return SequenceSeries([1.0, 0.5, 0.8, 0.6, 0.6, 0.7])


class AccuracyChecker:
    """Utility class for checking numerical accuracy."""

    @staticmethod
    def absolute_error(computed, reference) -> float:
        """Calculate absolute error as a Python float."""
        if isinstance(computed, torch.Tensor):
            computed = computed.item()
        if isinstance(reference, torch.Tensor):
            reference = reference.item()
        return float(abs(mpmath.mpf(computed) - mpmath.mpf(reference)))

    @staticmethod
    def relative_error(computed, reference) -> float:
        """Calculate relative error."""
        error = AccuracyChecker.absolute_error(computed, reference)
        scale = abs(float(reference))
        if scale == 0:
            return error
        return error / scale


@pytest.fixture
def accuracy_checker():
    """Fixture providing accuracy checking utilities."""
    return AccuracyChecker()


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "benchmark: marks performance benchmark tests"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        if "catalog" in item.name or "benchmark" in item.name:
            item.add_marker(pytest.mark.slow)

        if "integration" in item.name or "end_to_end" in item.name:
            item.add_marker(pytest.mark.integration)


def assert_close(computed, reference, max_error):
    """Assert that the absolute error is within bounds."""
    error = AccuracyChecker.absolute_error(computed, reference)
    assert error <= max_error, (
        f"Absolute error {error} exceeds threshold {max_error}\n"
        f"Computed: {computed}, Reference: {reference}"
    )
