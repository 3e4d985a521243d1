#!/usr/bin/env python3
"""
hwconvert test runner.

Usage:
    python test.py            # Run all tests
    python test.py quick      # Skip slow and FFmpeg-dependent tests
    python test.py coverage   # Run with coverage report
    python test.py failed     # Re-run last failures
    python test.py <name>     # tests/test_<name>.py, or a -k filter
"""

import os
import subprocess
import sys

MODES = {
    "quick": ["-m", "not slow and not requires_ffmpeg"],
    "coverage": ["--cov=hwconvert", "--cov-report=term-missing"],
    "failed": ["--lf"],
}


def build_command(args):
    cmd = [sys.executable, "-m", "pytest", "-v", "--tb=short"]
    if not args:
        return cmd + ["tests/"]

    mode = args[0]
    if mode in MODES:
        return cmd + ["tests/"] + MODES[mode]

    test_file = f"tests/test_{mode}.py"
    if os.path.exists(test_file):
        return cmd + [test_file]
    return cmd + ["tests/", "-k", mode]


def main():
    os.chdir(os.path.dirname(os.path.abspath(__file__)))
    cmd = build_command(sys.argv[1:])
    print(f"[TEST] {' '.join(cmd[2:])}\n")

    try:
        result = subprocess.run(cmd)
    except KeyboardInterrupt:
        print("\n[ABORT] Tests interrupted by user")
        return 1

    print("\n" + "=" * 60)
    if result.returncode == 0:
        print("[PASS] All tests passed!")
    else:
        print(f"[FAIL] Tests failed (exit code: {result.returncode})")
    print("=" * 60)
    return result.returncode


if __name__ == "__main__":
    sys.exit(main())
