"""
Command line entry point for TestAdvisor

Commands:
  setup    create the registry and save registry properties
  process  derive test-signal.json for unprocessed test runs
  status   list unprocessed runs and runs ready to upload
"""

import argparse
import sys
from typing import List, Optional

from testadvisor.config import load_config
from testadvisor.registry import Registry
from testadvisor.result_processor import Processor
from testadvisor.utils.errors import TestAdvisorError, format_error_for_display
from testadvisor.utils.logger import configure_logging, get_logger
from testadvisor.version import __version__

COMMANDS = ("setup", "process", "status")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="testadvisor",
        description="TestAdvisor - derive test run signals from browser test results",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create the registry and set the sandbox name
  testadvisor -c setup -s SandboxOrgName=bst

  # Process every test run without a signal file
  testadvisor -c process

  # Reprocess all test runs of a specific registry
  testadvisor -c process -p /path/to/.testadvisor -f
        """
    )
    parser.add_argument(
        "-c", "--command",
        type=str.lower,
        choices=COMMANDS,
        help="Command to run"
    )
    parser.add_argument(
        "-p", "--path",
        help="Registry root (default: $TESTADVISOR or ./.testadvisor)"
    )
    parser.add_argument(
        "-f", "--force",
        action="store_true",
        help="Reprocess test runs that already have a signal file"
    )
    parser.add_argument(
        "-s", "--set",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Registry property to save (setup, repeatable)"
    )
    parser.add_argument(
        "-v", "--version",
        action="version",
        version=f"version: {__version__}"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging"
    )
    return parser


def run_setup(registry: Registry, assignments: List[str]) -> int:
    logger = get_logger("cli")
    for assignment in assignments:
        key, separator, value = assignment.partition("=")
        if not separator or not key.strip():
            logger.error(f"Invalid property assignment: {assignment!r}, expected KEY=VALUE")
            return 2
        registry.save_property(key.strip(), value)

    print(f"registry: {registry.root}")
    for key, value in registry.properties().items():
        print(f"  {key}={value}")
    return 0


def run_process(registry: Registry, force: bool) -> int:
    processor = Processor(registry, load_config(registry.root))
    summary = processor.process_registry(force=force)

    for path in summary.processed:
        print(path)
    for run, error in summary.failed.items():
        print(f"failed: {run.name}", file=sys.stderr)
        print(format_error_for_display(error), file=sys.stderr)
    return 0 if summary.success else 1


def run_status(registry: Registry) -> int:
    unprocessed = registry.unprocessed_runs()
    ready = registry.ready_to_upload_runs()

    print(f"unprocessed test runs: {len(unprocessed)}")
    for run in unprocessed:
        print(f"  {run.name}")
    print(f"ready to upload: {len(ready)}")
    for signal_file in ready:
        print(f"  {signal_file.parent.name}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging("DEBUG" if args.verbose else "INFO")
    logger = get_logger("cli")

    if args.command is None:
        parser.print_help()
        return 0

    try:
        registry = Registry(args.path)
        if args.command == "setup":
            return run_setup(registry, args.set)
        if args.command == "process":
            return run_process(registry, args.force)
        return run_status(registry)
    except TestAdvisorError as e:
        logger.error(format_error_for_display(e))
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
