"""Command-line entry point for reposync."""

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

from . import __version__
from .config import Config, load_configuration, validate_configuration, VALID_LOG_LEVELS
from .errors import SyncError, error_handler
from .file_lock import target_lock
from .git_sync import Synchronizer, OperationResult
from .platform import stdin_is_interactive


EXIT_OK = 0
EXIT_SYNC_FAILED = 1
EXIT_CONFIG_INVALID = 2
EXIT_INTERRUPTED = 130


class StructuredFormatter(logging.Formatter):
    """Prefixes records that carry an ``operation`` extra with ``[operation]``."""

    def format(self, record):
        operation = getattr(record, 'operation', None)
        if operation:
            record = logging.makeLogRecord(record.__dict__)
            record.msg = f"[{operation}] {record.msg}"
        return super().format(record)


def setup_logging(config: Config) -> None:
    """Configure the reposync loggers for a console run."""
    level = getattr(logging, config.log_level)
    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    logging.basicConfig(level=level, format=log_format, datefmt='%Y-%m-%d %H:%M:%S')

    logger = logging.getLogger('reposync')
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(StructuredFormatter(log_format, datefmt='%Y-%m-%d %H:%M:%S'))
        logger.addHandler(handler)
        logger.propagate = False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reposync",
        description="Clone or update a private git repository using a dedicated deploy key."
    )
    parser.add_argument("--remote-url", help="Remote repository URL (env REPOSYNC_REMOTE_URL)")
    parser.add_argument("--branch", help="Branch to track (env REPOSYNC_BRANCH, default main)")
    parser.add_argument("--target-path", help="Local working copy directory (env REPOSYNC_TARGET_PATH)")
    parser.add_argument("--credential-path", help="Private key file (env REPOSYNC_CREDENTIAL_PATH)")
    parser.add_argument(
        "--hard-reset", action="store_true", default=None,
        help="Discard local commits and changes so the branch matches the remote exactly"
    )
    parser.add_argument("--log-level", choices=VALID_LOG_LEVELS, type=str.upper,
                        help="Logging verbosity (env REPOSYNC_LOG_LEVEL)")
    parser.add_argument("--no-pause", action="store_true", help="Never wait for Enter after an error")
    parser.add_argument("--no-lock", action="store_true", help="Do not take the advisory lock on the target")
    parser.add_argument("--lock-timeout", type=float, help="Seconds to wait for the advisory lock")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _overrides_from_args(args: argparse.Namespace) -> dict:
    return {
        'remote_url': args.remote_url,
        'branch': args.branch,
        'target_path': args.target_path,
        'credential_path': args.credential_path,
        'hard_reset': args.hard_reset,
        'log_level': args.log_level,
        'pause_on_error': False if args.no_pause else None,
        'use_lock': False if args.no_lock else None,
        'lock_timeout': args.lock_timeout,
    }


def pause_for_acknowledgment() -> None:
    """Keep a console window open until the operator has read the error."""
    try:
        input("Press Enter to exit...")
    except EOFError:
        pass


def format_error_block(response: Dict[str, Any]) -> str:
    """Render an ErrorResponse dictionary as the operator-facing error block."""
    lines = [f"ERROR: {response['message']}"]
    if response.get('output'):
        lines.append(response['output'])
    lines.append(f"({response['error_code']}, {response['error']})")
    return "\n".join(lines)


def report_failure(error: SyncError, config: Config) -> None:
    response = error_handler.handle_sync_error(
        error,
        {'target_path': str(config.target_path), 'branch': config.branch}
    )
    print(format_error_block(response.to_dict()), file=sys.stderr)

    if config.pause_on_error and stdin_is_interactive():
        pause_for_acknowledgment()


def run(config: Config, synchronizer: Optional[Synchronizer] = None) -> OperationResult:
    """Synchronize the repository described by ``config``, holding the target lock if enabled."""
    synchronizer = synchronizer or Synchronizer()
    request = config.to_request()

    # Taking the lock creates directories, so reject unusable requests first
    synchronizer.check_preconditions(request)

    if not config.use_lock:
        return synchronizer.synchronize(request)

    with target_lock(config):
        return synchronizer.synchronize(request)


def main(argv: Optional[List[str]] = None, synchronizer: Optional[Synchronizer] = None) -> int:
    """Parse arguments, run one synchronization and return the process exit status."""
    args = build_parser().parse_args(argv)

    try:
        config = load_configuration(_overrides_from_args(args))
    except ValueError as e:
        error_handler.handle_configuration_error(e)
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_CONFIG_INVALID

    setup_logging(config)
    logger = logging.getLogger('reposync.cli')

    issues = validate_configuration(config)
    for issue in issues:
        if issue.startswith("ERROR:"):
            logger.error(issue[7:])
        elif issue.startswith("WARNING:"):
            logger.warning(issue[9:])
    if any(issue.startswith("ERROR:") for issue in issues):
        print("ERROR: invalid configuration", file=sys.stderr)
        return EXIT_CONFIG_INVALID

    logger.info(
        f"Synchronizing {config.remote_url} ({config.branch}) into {config.target_path}"
        + (" with hard reset" if config.hard_reset else "")
    )

    try:
        result = run(config, synchronizer)
    except SyncError as e:
        report_failure(e, config)
        return EXIT_SYNC_FAILED
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return EXIT_INTERRUPTED

    print(f"Repository ready: {result.action.value} {result.target_path} ({result.branch_used})")
    return EXIT_OK
