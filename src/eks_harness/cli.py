#!/usr/bin/env python3
"""EKS Terraform Harness - Main Entry Point.

Provisions the EKS module for each configured scenario, validates the
outputs against the live AWS API and destroys the infrastructure again.
"""

import sys
import argparse
import logging
import os
from pathlib import Path
from typing import List, Optional

from . import __version__
from .aws.regions import RegionSelectionError
from .core.aws_client import AWSClientManager
from .core.config import DEFAULT_CONFIG_PATHS, Configuration, ConfigurationError
from .core.validator import CredentialsValidator, ValidationResult
from .eks.harness import EKSModuleTest, ModuleTestError, ModuleTestReport, load_scenarios
from .terraform.runner import TerraformError


STATUS_SYMBOLS = {
    "PASSED": "✅",
    "FAILED": "❌",
    "WARNING": "⚠️",
    "SKIPPED": "⏭️",
}


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="eks-harness",
        description="Provision an EKS Terraform module and validate it against AWS",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                          # Auto-detect config.yaml, run every scenario
  %(prog)s config.yaml              # Use specific configuration file
  %(prog)s --scenario default       # Run a single scenario
  %(prog)s --preflight-only         # Only check AWS credentials
  %(prog)s --skip-teardown          # Leave the infrastructure running
        """,
    )

    parser.add_argument(
        "config_file",
        nargs="?",
        help="Path to configuration file (default: auto-detect config.yaml)",
    )

    parser.add_argument(
        "--scenario",
        action="append",
        dest="scenarios",
        metavar="NAME",
        help="Scenario to run (repeatable, default: all)",
    )

    parser.add_argument(
        "--list-scenarios",
        action="store_true",
        help="List configured scenarios and exit",
    )

    parser.add_argument(
        "--preflight-only",
        action="store_true",
        help="Only validate AWS credentials, do not provision anything",
    )

    parser.add_argument(
        "--skip-teardown",
        action="store_true",
        help="Do not destroy the infrastructure after validation",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"EKS Terraform Harness v{__version__}",
    )

    parser.add_argument("--profile", help="AWS profile name to use for credentials")

    parser.add_argument(
        "--region", help="AWS region to use (overrides configuration file)"
    )

    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    return parser.parse_args(argv)


def auto_detect_config() -> Optional[str]:
    """Auto-detect configuration file in current directory.

    Returns:
        Path to configuration file if found, None otherwise
    """
    for candidate in DEFAULT_CONFIG_PATHS:
        if Path(candidate).exists():
            return candidate
    return None


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def print_result(result: ValidationResult) -> None:
    symbol = STATUS_SYMBOLS.get(result.status.value, "❓")
    print(f"{symbol} {result.validator_name}: {result.message}")

    if result.failed and result.remediation_steps:
        print("   Remediation steps:")
        for step in result.remediation_steps:
            print(f"   • {step}")
        print()


def print_report(report: ModuleTestReport) -> None:
    print("-" * 50)
    print(f"Scenario: {report.scenario} ({report.region})")
    for key, value in sorted(report.outputs.items()):
        print(f"   {key} = {value}")
    for result in report.results:
        print_result(result)

    teardown = "destroyed" if report.destroyed else "NOT destroyed"
    verdict = "passed" if report.passed else "failed"
    print(f"Scenario {report.scenario} {verdict} in {report.duration_seconds:.0f}s, infrastructure {teardown}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    try:
        args = parse_arguments(argv)
        configure_logging(args.verbose)

        if args.region:
            os.environ["AWS_REGION"] = args.region
        if args.skip_teardown:
            os.environ["SKIP_TEARDOWN"] = "true"

        config_path = args.config_file or auto_detect_config()
        if not config_path:
            print("❌ No configuration file found.")
            print("   Please create config.yaml or specify a configuration file.")
            print("   Use --help for more information.")
            return 1

        print(f"📄 Using configuration file: {config_path}")

        try:
            config = Configuration(config_path)
        except ConfigurationError as e:
            print(f"❌ Configuration error: {e}")
            return 1

        scenarios = load_scenarios(config)
        if args.list_scenarios:
            for scenario in scenarios:
                print(f"{scenario.name}: {scenario.vars}")
            return 0

        if args.scenarios:
            known = {scenario.name for scenario in scenarios}
            unknown = [name for name in args.scenarios if name not in known]
            if unknown:
                print(f"❌ Unknown scenario(s): {', '.join(unknown)}")
                return 1
            scenarios = [s for s in scenarios if s.name in args.scenarios]

        try:
            aws_client = AWSClientManager(
                profile_name=args.profile or config.get_profile_name(),
                region_name=config.get_region(),
            )
        except Exception as e:
            print(f"❌ AWS client initialization failed: {e}")
            return 1

        credentials = CredentialsValidator(aws_client).validate()
        print_result(credentials)
        if credentials.failed:
            return 1
        if args.preflight_only:
            return 0

        all_ok = True
        for scenario in scenarios:
            print(f"\n🚀 Running scenario {scenario.name}...")
            try:
                report = EKSModuleTest(config, aws_client, scenario).run()
            except (TerraformError, ModuleTestError, RegionSelectionError) as e:
                print(f"❌ Scenario {scenario.name} aborted: {e}")
                all_ok = False
                continue

            print_report(report)
            all_ok = all_ok and report.passed

        print("-" * 50)
        if all_ok:
            print("✅ All scenarios passed.")
            return 0
        print("❌ One or more scenarios failed.")
        return 1

    except KeyboardInterrupt:
        print("\n\n👋 Operation cancelled by user.")
        return 130

    except Exception as e:
        print(f"\n❌ Unexpected error: {e}")
        print("   Please check your configuration and try again.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
