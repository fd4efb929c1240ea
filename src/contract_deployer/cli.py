"""Command-line interface for contract-deployer."""

import argparse
import json
import signal
import sys
import threading
from typing import List, Optional

from loguru import logger

from .abi import split_cli_args
from .compiler import SolcCompiler
from .config import Settings, load_settings
from .constants import EXIT_COMPILE_ERROR, EXIT_OK, EXIT_SUBMISSION_ERROR, EXIT_VALIDATION_ERROR
from .deployer import Deployer
from .exceptions import (
    ArgumentMismatchError,
    CompileError,
    ConfigurationError,
    ContractNotFoundError,
    DeploymentError,
    DeploymentPendingError,
    SourceNotFoundError,
    SourceReadError,
    SubmissionError,
)
from .records import DeploymentStore
from .rpc import JsonRpcClient
from .sources import load_source
from .versions import resolve_solc_version


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports usage errors with the validation exit code."""

    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stderr)
        self.exit(EXIT_VALIDATION_ERROR, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="deploy",
        description="Compile a Solidity contract and deploy it to a node over JSON-RPC.",
    )
    parser.add_argument("--contract-file", required=True, help="Path to the contract source")
    parser.add_argument("--contract-name", required=True, help="Contract to deploy")
    parser.add_argument("--rpc-url", help="Node endpoint (env: DEPLOY_RPC_URL)")
    parser.add_argument(
        "--args",
        default="",
        help="Comma-separated constructor arguments, e.g. 3,14,50; arrays as [1,2]",
    )
    parser.add_argument("--gas", type=int, help="Gas ceiling (env: DEPLOY_GAS_LIMIT)")
    parser.add_argument(
        "--timeout",
        type=float,
        help="Seconds to wait for confirmation (env: DEPLOY_CONFIRMATION_TIMEOUT)",
    )
    parser.add_argument(
        "--solc-version",
        help="Compiler version; derived from the pragma when omitted (env: DEPLOY_SOLC_VERSION)",
    )
    parser.add_argument("--account", help="Sending account (defaults to the node's first account)")
    parser.add_argument("--password", help="Account passphrase (env: DEPLOY_ACCOUNT_PASSWORD)")
    parser.add_argument("--record-file", help="Deployment record file (env: DEPLOY_RECORD_FILE)")
    parser.add_argument("--no-record", action="store_true", help="Neither read nor write deployment records")
    parser.add_argument("--force", action="store_true", help="Deploy even if already deployed")
    parser.add_argument(
        "--resume",
        metavar="TX_HASH",
        help="Wait for an already submitted deployment instead of sending a new one",
    )
    parser.add_argument("--no-install", action="store_true", help="Do not download missing solc releases")
    parser.add_argument("--json", action="store_true", help="Print the full deployment record as JSON")
    parser.add_argument("--log-level", help="Log level for stderr (env: DEPLOY_LOG_LEVEL, default INFO)")
    return parser


def configure_logging(level: str) -> None:
    """Send log output to stderr at the given level."""
    logger.remove()
    try:
        logger.add(sys.stderr, level=level, format="<level>{level: <8}</level> | {message}")
    except ValueError as e:
        logger.add(sys.stderr, level="INFO", format="<level>{level: <8}</level> | {message}")
        raise ConfigurationError(f"Invalid log level {level!r}") from e


def exit_code_for(error: DeploymentError) -> int:
    """Map an error to the process exit code."""
    if isinstance(error, (SourceNotFoundError, SourceReadError, CompileError)):
        return EXIT_COMPILE_ERROR
    if isinstance(error, (ContractNotFoundError, ArgumentMismatchError, ConfigurationError)):
        return EXIT_VALIDATION_ERROR
    return EXIT_SUBMISSION_ERROR


def report_error(error: DeploymentError) -> None:
    """Print a human-readable error with its kind to stderr."""
    print(f"error[{error.kind}]: {error}", file=sys.stderr)

    if isinstance(error, CompileError):
        for diagnostic in error.diagnostics:
            print(f"  {diagnostic}", file=sys.stderr)
    elif isinstance(error, (DeploymentPendingError, SubmissionError)) and error.transaction_hash:
        print(f"transaction_hash: {error.transaction_hash}", file=sys.stderr)


def _install_interrupt_handler(cancel_event: threading.Event):
    # Signal handlers can only be installed from the main thread
    if threading.current_thread() is not threading.main_thread():
        return None

    def handle_interrupt(signum, frame):
        if cancel_event.is_set():
            raise KeyboardInterrupt
        logger.warning("Interrupted; abandoning the wait (press Ctrl-C again to abort)")
        cancel_event.set()

    return signal.signal(signal.SIGINT, handle_interrupt)


def run(args: argparse.Namespace, settings: Settings, cancel_event: threading.Event) -> int:
    """Execute one deployment; returns the exit code."""
    try:
        source = load_source(args.contract_file)
        version = resolve_solc_version(source, settings.solc_version)
        compiled = SolcCompiler(install=not args.no_install).compile(source, version)
        logger.info(f"Compiled {len(compiled)} contract(s): {', '.join(sorted(compiled)) or 'none'}")

        deployer = Deployer(
            JsonRpcClient(settings.rpc_url),
            gas_limit=settings.gas_limit,
            confirmation_timeout=settings.confirmation_timeout,
            passphrase=settings.account_password,
            store=None if args.no_record else DeploymentStore(settings.record_file),
        )
        constructor_args = split_cli_args(args.args)

        if args.resume:
            record = deployer.resume(
                compiled,
                args.contract_name,
                args.resume,
                constructor_args,
                account=args.account,
                cancel_event=cancel_event,
            )
        else:
            record = deployer.deploy(
                compiled,
                args.contract_name,
                constructor_args,
                account=args.account,
                cancel_event=cancel_event,
                force=args.force,
            )
    except DeploymentError as e:
        report_error(e)
        return exit_code_for(e)

    if args.json:
        print(json.dumps(record.to_dict()))
    else:
        print(record.contract_address)
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point of the ``deploy`` command."""
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(
            rpc_url=args.rpc_url,
            gas_limit=args.gas,
            confirmation_timeout=args.timeout,
            solc_version=args.solc_version,
            account_password=args.password,
            record_file=args.record_file,
            log_level=args.log_level,
        )
        configure_logging(settings.log_level)
    except ConfigurationError as e:
        report_error(e)
        return exit_code_for(e)

    cancel_event = threading.Event()
    previous_handler = _install_interrupt_handler(cancel_event)
    try:
        return run(args, settings, cancel_event)
    finally:
        if previous_handler is not None:
            signal.signal(signal.SIGINT, previous_handler)


if __name__ == "__main__":
    sys.exit(main())
