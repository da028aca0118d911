# run_tests.py
"""
Test runner for the entire application
Run this file to execute all tests with detailed reporting
"""
import os
import sys
import django

# Setup Django
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.testing')
django.setup()

from django.core.management import call_command
from django.test.utils import get_runner
from django.conf import settings

TEST_APPS = [
    'apps.core',
    'apps.users',
    'apps.billing',
    'apps.clients',
    'apps.dashboard',
]

# Ledger, lifecycle and report rules
CRITICAL_APPS = [
    'apps.clients',
    'apps.dashboard',
]


def _run(labels, title):
    print("=" * 80)
    print(title)
    print("=" * 80)
    print()

    TestRunner = get_runner(settings)
    test_runner = TestRunner(verbosity=2, interactive=False)

    failures = test_runner.run_tests(labels)

    print()
    print("=" * 80)
    if failures:
        print(f"TESTS FAILED: {failures} failure(s)")
    else:
        print("ALL TESTS PASSED")
    print("=" * 80)

    return failures


def run_all_tests():
    return _run(TEST_APPS, "FULL TEST SUITE")


def run_critical_tests_only():
    return _run(CRITICAL_APPS, "CRITICAL TESTS - Payment ledger, lifecycle & reports")


def run_specific_app(app_name):
    """Run tests for a specific app"""
    print(f"Running tests for {app_name}...")
    call_command('test', f'apps.{app_name}', verbosity=2)


if __name__ == '__main__':
    import argparse

    parser = argparse.ArgumentParser(description='Run tests for the application')
    parser.add_argument(
        '--app',
        type=str,
        help='Run tests for a specific app (e.g., clients, billing, dashboard)'
    )
    parser.add_argument(
        '--critical',
        action='store_true',
        help='Run only critical tests (clients and dashboard)'
    )

    args = parser.parse_args()

    if args.critical:
        sys.exit(run_critical_tests_only())
    elif args.app:
        run_specific_app(args.app)
    else:
        sys.exit(run_all_tests())
