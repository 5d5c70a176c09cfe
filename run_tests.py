#!/usr/bin/env python3
"""Test runner for the vgl test suites."""

import sys
import subprocess
from pathlib import Path


def run_test(test_file: str, description: str) -> bool:
    """Run a single test file and return success status."""
    print(f"\n{'='*60}")
    print(f"Running: {description}")
    print(f"File: {test_file}")
    print('='*60)

    try:
        result = subprocess.run([sys.executable, test_file], capture_output=False, text=True)

        success = result.returncode == 0
        print(f"\n{'✅ PASSED' if success else '❌ FAILED'}: {description}")
        return success

    except Exception as e:
        print(f"❌ ERROR running {test_file}: {e}")
        return False


def main():
    """Run every vgl test suite."""
    print("VGL Test Suite")
    print("="*60)

    tests = [
        ("test_config.py", "Configuration, Errors and Platform Helpers"),
        ("test_vcs_parsing.py", "Git Output Parsing"),
        ("test_context_store.py", "Context Persistence"),
        ("test_file_classifier.py", "File Classification"),
        ("test_rename_unifier.py", "Rename Unification"),
        ("test_sync_state.py", "Sync State"),
        ("test_summary_formatter.py", "Status Summary Formatting"),
        ("test_context_resolver.py", "Context Resolution"),
        ("test_status_integration.py", "Status Integration"),
        ("test_commands.py", "Verb Handlers"),
        ("test_cli.py", "Command Line Interface"),
    ]

    results = []
    for test_file, description in tests:
        if Path(test_file).exists():
            success = run_test(test_file, description)
            results.append((test_file, description, success))
        else:
            print(f"⚠️  Test file not found: {test_file}")
            results.append((test_file, description, False))

    # Summary
    print(f"\n{'='*60}")
    print("TEST SUITE SUMMARY")
    print("="*60)

    passed = 0
    for test_file, description, success in results:
        status = "✅ PASS" if success else "❌ FAIL"
        print(f"{status} {description}")
        if success:
            passed += 1

    print(f"\nResults: {passed}/{len(results)} suites passed")

    if passed == len(results):
        print("\n🎉 ALL TESTS PASSED!")
        return True
    else:
        print(f"\n⚠️  {len(results) - passed} suites failed")
        return False


if __name__ == "__main__":
    try:
        success = main()
        sys.exit(0 if success else 1)
    except KeyboardInterrupt:
        print("\n\nTest suite interrupted by user")
        sys.exit(1)
    except Exception as e:
        print(f"\nTest suite failed: {e}")
        sys.exit(1)
