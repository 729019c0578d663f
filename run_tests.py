#!/usr/bin/env python
"""
Test runner script for AssetDesk
Runs the test suite of every app against the test settings
"""
import os
import sys
import django

# Add the project directory to the path
sys.path.insert(0, os.path.dirname(__file__))

# Setup Django settings for tests
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'assetdesk.test_settings')
django.setup()

from django.test.runner import DiscoverRunner


def run_tests(labels=None):
    """Run all tests, or the given test labels"""
    print("\n" + "=" * 70)
    print("RUNNING ASSETDESK TESTS")
    print("=" * 70 + "\n")

    test_runner = DiscoverRunner(
        verbosity=2,
        interactive=False,
        keepdb=False,
        failfast=False
    )

    failures = test_runner.run_tests(labels or [
        'core.tests',
        'users.tests',
        'assets.tests',
        'maintenance.tests',
    ])

    print("\n" + "=" * 70)
    if failures:
        print(f"TESTS FAILED: {failures} test(s) failed")
    else:
        print("ALL TESTS PASSED")
    print("=" * 70 + "\n")

    return failures


if __name__ == '__main__':
    exit_code = run_tests(sys.argv[1:])
    sys.exit(bool(exit_code))
