"""Command-line interface for listing validation.

Provides CLI entry points for:
- Running a full listing scenario against a forked node
- Saving reserve snapshots
- Diffing two saved snapshots offline
- Verifying a hash-chained run log

Scenario runs require FORK_MODE (impersonation only on forks).
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from web3 import Web3

from listing_validation.core.config import ConfigError, HarnessConfig
from listing_validation.core.errors import ListingValidationError, ProtocolCallError
from listing_validation.core.fork_guard import ForkGuard, ForkGuardError, is_fork_client
from listing_validation.core.logging import ScenarioLogger, verify_log_integrity
from listing_validation.data.aave_v2 import AaveV2Client
from listing_validation.data.constants import EXECUTE_SELECTOR
from listing_validation.data.reader import ReserveConfigReader
from listing_validation.data.snapshot_io import load_snapshot_from_json, save_snapshot_to_json
from listing_validation.scenario.expectations import ListingExpectations
from listing_validation.scenario.governance import ImpersonatedExecution
from listing_validation.scenario.runner import ListingScenario, ScenarioReport
from listing_validation.validation.config_diff import ConfigDiffValidator


def _load_config(args: argparse.Namespace) -> HarnessConfig:
    try:
        config = HarnessConfig.from_env()
    except ConfigError as e:
        print(f"ERROR: invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    if getattr(args, "rpc_url", None):
        config.rpc_url = args.rpc_url
    if getattr(args, "fork_block", None) is not None:
        config.fork_block_number = args.fork_block
    return config


def _connect(config: HarnessConfig) -> AaveV2Client:
    web3 = Web3(Web3.HTTPProvider(config.rpc_url))
    if not web3.is_connected():
        print(f"ERROR: cannot connect to {config.rpc_url}", file=sys.stderr)
        sys.exit(1)
    return AaveV2Client(web3, config.addresses, config.impersonation_rpc_prefix)


def _print_report(report: ScenarioReport) -> None:
    print()
    print("=" * 60)
    print("RESULTS")
    print("=" * 60)
    print(f"Scenario: {report.name}")
    print(f"Governance change: {report.governance_change}")
    print(f"Reserves before: {report.count_before}")
    print(f"Reserves after: {report.count_after}")
    print()
    print("Passed steps:")
    for step in report.passed_steps:
        print(f"  ✓ {step}")
    if report.failure:
        print()
        print(f"FAILED ({report.failure_type}): {report.failure}")


def cmd_run(args: argparse.Namespace) -> None:
    """Run a full listing scenario."""
    config = _load_config(args)

    try:
        guard = ForkGuard.initialize()
    except ForkGuardError as e:
        print(f"ERROR: FORK_MODE check failed: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        expectations = ListingExpectations.load(args.expectations)
    except (OSError, ValueError) as e:
        print(f"ERROR: cannot load expectations: {e}", file=sys.stderr)
        sys.exit(1)

    print("=" * 60)
    print("Listing Validation (FORK MODE)")
    print("=" * 60)
    print(f"RPC: {config.rpc_url}")
    print(f"Fork block: {config.fork_block_number}")
    print(f"Expectations: {args.expectations}")
    print()

    client = _connect(config)
    try:
        guard.verify_environment(
            client.web3.eth.chain_id,
            is_fork=is_fork_client(client.web3.client_version),
            block_number=config.fork_block_number,
        )
    except ForkGuardError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    if config.freeze_block_time:
        try:
            client.freeze_block_time()
        except ProtocolCallError as e:
            print(f"ERROR: cannot freeze block time: {e.reason}", file=sys.stderr)
            sys.exit(1)

    logger = ScenarioLogger.create_run(expectations.name, config.log_dir)
    logger.info("Fork verified", guard.get_verification_context())

    change = ImpersonatedExecution(args.executor, args.payload, args.calldata)
    scenario = ListingScenario(client, expectations, change, logger)

    failed = False
    try:
        scenario.run()
    except ListingValidationError:
        failed = True

    report = scenario.report
    _print_report(report)

    if args.output_json:
        with open(args.output_json, "w") as f:
            f.write(report.model_dump_json(indent=2))
        print(f"Report saved to {args.output_json}")

    print(
        f"Audit log: {logger.json_log_path} "
        f"({logger.entry_count} entries, {logger.failed_checks} failed checks)"
    )
    if failed:
        sys.exit(1)
    print()
    print("Scenario passed.")


def cmd_snapshot(args: argparse.Namespace) -> None:
    """Save the current reserve snapshot."""
    config = _load_config(args)
    client = _connect(config)

    reader = ReserveConfigReader(client)
    try:
        snapshot = reader.read_all_reserves()
    except ListingValidationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    save_snapshot_to_json(snapshot, args.output)
    print(f"Saved {len(snapshot)} reserves to {args.output}")


def cmd_diff(args: argparse.Namespace) -> None:
    """Run count and drift checks on two saved snapshots."""
    try:
        before = load_snapshot_from_json(args.before)
        after = load_snapshot_from_json(args.after)
    except (OSError, ValueError) as e:
        print(f"ERROR: cannot load snapshot: {e}", file=sys.stderr)
        sys.exit(1)

    validator = ConfigDiffValidator()
    try:
        validator.validate_listing_count(args.expected_new, before, after)
        validator.validate_no_unintended_drift(before, after)
    except ListingValidationError as e:
        print(f"FAILED ({type(e).__name__}): {e}")
        sys.exit(1)

    new_symbols = [c.symbol for c in after[len(before):]]
    print(f"OK: {len(before)} reserves unchanged, new: {', '.join(new_symbols) or 'none'}")


def cmd_verify_log(args: argparse.Namespace) -> None:
    """Verify a hash-chained audit log."""
    is_valid, errors = verify_log_integrity(args.log_file)
    if is_valid:
        print(f"OK: {args.log_file} is intact")
        return

    print(f"TAMPERED: {args.log_file}")
    for error in errors:
        print(f"  {error}")
    sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="listing-validate",
        description="Post-execution validation of a lending protocol asset listing",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # run
    run_parser = subparsers.add_parser("run", help="Run a full listing scenario")
    run_parser.add_argument(
        "--expectations", type=Path, required=True, help="Path to expectations JSON"
    )
    run_parser.add_argument(
        "--executor", required=True, help="Address allowed to execute the payload"
    )
    run_parser.add_argument("--payload", required=True, help="Listing payload address")
    run_parser.add_argument(
        "--calldata",
        default=EXECUTE_SELECTOR,
        help=f"Calldata sent to the payload (default: {EXECUTE_SELECTOR}, execute())",
    )
    run_parser.add_argument("--rpc-url", help="Fork node RPC URL (default: RPC_URL)")
    run_parser.add_argument(
        "--fork-block", type=int, help="Block the fork was created from"
    )
    run_parser.add_argument("--output-json", type=Path, help="Path to save the report")
    run_parser.set_defaults(func=cmd_run)

    # snapshot
    snapshot_parser = subparsers.add_parser("snapshot", help="Save reserve snapshot")
    snapshot_parser.add_argument(
        "--output", type=Path, default=Path("snapshot.json"), help="Output file"
    )
    snapshot_parser.add_argument("--rpc-url", help="Node RPC URL (default: RPC_URL)")
    snapshot_parser.set_defaults(func=cmd_snapshot)

    # diff
    diff_parser = subparsers.add_parser("diff", help="Diff two saved snapshots")
    diff_parser.add_argument("before", type=Path)
    diff_parser.add_argument("after", type=Path)
    diff_parser.add_argument(
        "--expected-new", type=int, default=1, help="Expected new listings (default: 1)"
    )
    diff_parser.set_defaults(func=cmd_diff)

    # verify-log
    verify_parser = subparsers.add_parser("verify-log", help="Verify audit log integrity")
    verify_parser.add_argument("log_file", type=Path)
    verify_parser.set_defaults(func=cmd_verify_log)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point with subcommands."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command:
        args.func(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
