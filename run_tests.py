#!/usr/bin/env python3
"""Test runner that ensures clean exit after pytest completes.

Uses os._exit() so background threads left by OpenTelemetry exporters or
SQLAlchemy connection pools cannot keep the process alive.
"""
import os
import sys
import pytest

if __name__ == "__main__":
    # Build pytest arguments from command line args if provided
    args = sys.argv[1:] if len(sys.argv) > 1 else [
        "src/tests/",
        "-n", "auto",  # Parallel execution using all CPU cores
        "--tb=line",
        "--cov=src/crudkit",
        "--cov-report=term-missing",
        "--durations=10",
    ]

    exit_code = pytest.main(args)

    os._exit(exit_code)
