"""
Test suite for Shanks Acceleration Library.

This package contains tests for all components of the library: value-type
backends, series generators, the acceleration engine and the accelerators
with their drivers.

Test Structure:
- test_numeric.py: Tests for arithmetic backends and compensated summation
- test_series.py: Tests for the series catalog
- test_core.py: Tests for errors, configuration, table and engine states
- test_algorithms.py: Tests for the accelerators and drivers
- conftest.py: Shared fixtures and configuration

Usage:
    # Run all tests
    pytest

    # Run specific test file
    pytest tests/test_core.py

    # Run tests with coverage
    pytest --cov=shanks

    # Run only fast tests
    pytest -m "not slow"
"""

__version__ = "1.0.0"
