#!/usr/bin/env python3
"""
Functional test runner. Requires a reachable docker daemon.

Usage:
    ./entry.py                          # Run all tests
    ./entry.py -t test_anvil_transfer   # Run specific test
    ./entry.py -g anvil                 # Run test group
"""

import argparse
import logging
import os
import sys

import flexitest

from chaincontainers.config import LogVerbosity, ServiceType, load_config
from common.runtime import TestRuntimeWithLogging
from common.test_logging import TestNameFilter
from envconfigs import AnvilEnvConfig, SolanaEnvConfig, WiremockEnvConfig
from factories import AnvilFactory, SolanaValidatorFactory, WiremockFactory

TEST_DIR = "tests"


def setup_logging() -> None:
    """Configure root logger."""
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - [%(test_name)s] %(message)s",
    )
    for handler in logging.getLogger().handlers:
        handler.addFilter(TestNameFilter())


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="entry.py",
        description="Run functional tests",
    )
    parser.add_argument(
        "-t",
        "--test",
        nargs="*",
        help="Run specific test(s)",
    )
    parser.add_argument(
        "-g",
        "--group",
        nargs="*",
        help="Run test group(s)",
    )
    return parser.parse_args(argv[1:])


def filter_tests(args: argparse.Namespace, modules: dict[str, str]) -> dict[str, str]:
    """
    Filters test modules by name and by the directory ("group") they live in.
    """
    arg_groups = frozenset(args.group or [])
    arg_tests = frozenset(os.path.split(t)[1].removesuffix(".py") for t in args.test or [])

    filtered = {}
    for test, path in modules.items():
        parts = os.path.normpath(path).split(os.path.sep)
        idx = len(parts) - 1 - parts[::-1].index(TEST_DIR)
        groups = frozenset(parts[idx + 1 : -1])

        if arg_groups and not (arg_groups & groups):
            continue
        if arg_tests and test not in arg_tests:
            continue
        filtered[test] = path
    return filtered


def main(argv: list[str]) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging()

    root_dir = os.path.dirname(os.path.abspath(__file__))
    config = load_config()

    # Create factories
    factories: dict[ServiceType, flexitest.Factory] = {
        ServiceType.Anvil: AnvilFactory(os.path.join(root_dir, "contracts"), config),
        ServiceType.SolanaValidator: SolanaValidatorFactory(config),
        ServiceType.Wiremock: WiremockFactory(config),
    }

    # Define global environments
    global_envs: dict[str, flexitest.EnvConfig] = {
        "anvil": AnvilEnvConfig(verbosity=LogVerbosity.Five, json_logs=True),
        "solana": SolanaEnvConfig(),
        "wiremock": WiremockEnvConfig(os.path.join(root_dir, "mocks", "wiremock")),
    }

    # Set up test runtime
    datadir = flexitest.create_datadir_in_workspace(os.path.join(root_dir, "_dd"))
    runtime = TestRuntimeWithLogging(global_envs, datadir, factories)

    # Discover tests
    test_dir = os.path.join(root_dir, TEST_DIR)
    modules = filter_tests(args, flexitest.runtime.scan_dir_for_modules(test_dir))
    tests = flexitest.runtime.load_candidate_modules(modules)

    # Run tests
    runtime.prepare_registered_tests()
    results = runtime.run_tests(tests)

    # Save and display results
    runtime.save_json_file("results.json", results)
    flexitest.dump_results(results)

    # Exit with error if any test failed
    flexitest.fail_on_error(results)

    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
