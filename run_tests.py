#!/usr/bin/env python3
"""
Test runner for the log diagnosis system.

Usage:
    python run_tests.py                # every tests/test_*.py module
    python run_tests.py test_engine    # a single module
"""

import sys
import unittest
from pathlib import Path

# Run from the project root so `logdiag` and `tests` are importable
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))


def build_suite(test_name=None):
    loader = unittest.TestLoader()
    if test_name:
        return loader.loadTestsFromName(f'tests.{test_name}')
    return loader.discover(str(project_root / 'tests'), pattern='test_*.py',
                           top_level_dir=str(project_root))


def main(argv):
    test_name = argv[1] if len(argv) > 1 else None

    try:
        suite = build_suite(test_name)
    except (ImportError, AttributeError) as e:
        print(f"Error loading test {test_name}: {e}")
        return 1

    result = unittest.TextTestRunner(verbosity=2).run(suite)
    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(main(sys.argv))
