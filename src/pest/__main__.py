#!/usr/bin/env python3
"""
CLI for pest conformance scripts.

Usage:
    python -m pest run ADDRESS FILE.pest [FILE.pest ...] [--timeout SECONDS]
    python -m pest check FILE.pest [FILE.pest ...]
    python -m pest suite SUITE.yaml

Examples:
    # Check scripts for lexical and syntax errors
    python -m pest check smtp/*.pest

    # Run scripts in order, each over its own connection
    python -m pest run localhost:2525 smtp/greeting.pest smtp/quit.pest

    # Run the scripts listed in a suite file
    python -m pest suite smtp/suite.yaml

The protocol trace (">" sent, "<" received) is logged to stdout; use -q
to silence it or -v for matcher detail. PEST_TIMEOUT sets the default
connection timeout in seconds.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional


def read_script(path: Path) -> Optional[bytes]:
    """Read a script file, reporting a missing file."""
    if not path.exists():
        print(f"Error: File not found: {path}", file=sys.stderr)
        return None
    return path.read_bytes()


def print_diagnostics(diagnostics) -> None:
    for diag in diagnostics:
        print(diag.format(), file=sys.stderr)


def check_file(path: Path) -> int:
    """Lex and parse one script; 0 if clean."""
    from . import compile_script

    source = read_script(path)
    if source is None:
        return 1

    result = compile_script(source, str(path))
    if result.has_errors:
        print_diagnostics(result.diagnostics)
        print(f"{path}: {len(result.diagnostics)} error(s)", file=sys.stderr)
        return 1

    print(f"OK: {path} - {len(result.script.statements)} statement(s), no errors")
    return 0


def run_file(address: str, path: Path, timeout: Optional[float]) -> int:
    """Compile one script and run it over a fresh connection."""
    from . import compile_script, connect, create_environment, Interpreter

    source = read_script(path)
    if source is None:
        return 1

    compiled = compile_script(source, str(path))
    if compiled.has_errors:
        print_diagnostics(compiled.diagnostics)
        print(f"Error: {path}: script not run", file=sys.stderr)
        return 1

    try:
        channel = connect(address, timeout=timeout)
    except (OSError, ValueError) as e:
        print(f"Error: cannot connect to {address}: {e}", file=sys.stderr)
        return 1

    with channel:
        env = create_environment(channel=channel)
        result = Interpreter(compiled.source).execute(compiled.script, env)

    if not result.success:
        print(result.diagnostic.format(), file=sys.stderr)
        print(f"FAIL: {path} after {result.statements_run} statement(s)", file=sys.stderr)
        return 1

    print(f"PASS: {path} - {result.statements_run} statement(s)")
    return 0


def run_all(address: str, paths: List[Path], timeout: Optional[float]) -> int:
    """Run scripts in order, stopping at the first failure."""
    for path in paths:
        status = run_file(address, path, timeout)
        if status != 0:
            return status
    return 0


def cmd_check(args) -> int:
    """Check scripts for lexical and syntax errors."""
    status = 0
    for name in args.files:
        status |= check_file(Path(name))
    return status


def cmd_run(args) -> int:
    """Run scripts against ADDRESS."""
    from .config import ConfigError, default_timeout

    timeout = args.timeout
    if timeout is None:
        try:
            timeout = default_timeout()
        except ConfigError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
    return run_all(args.address, [Path(name) for name in args.files], timeout)


def cmd_suite(args) -> int:
    """Run the scripts listed in a suite file."""
    from .config import ConfigError, load_config

    try:
        suite = load_config(Path(args.config))
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return run_all(suite.address, suite.scripts, suite.timeout)


def configure_logging(verbose: bool, quiet: bool) -> None:
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(message)s", stream=sys.stdout)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='pest',
        description='Conformance scripts for line-oriented network protocols',
    )
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Log matcher detail')
    parser.add_argument('-q', '--quiet', action='store_true',
                        help='Do not log the protocol trace')

    subparsers = parser.add_subparsers(dest='action', required=True)

    # check command
    check_parser = subparsers.add_parser('check', help='Check scripts for errors')
    check_parser.add_argument('files', nargs='+', metavar='FILE', help='Script file')

    # run command
    run_parser = subparsers.add_parser('run', help='Run scripts against a peer')
    run_parser.add_argument('address', help='Peer address (host:port)')
    run_parser.add_argument('files', nargs='+', metavar='FILE', help='Script file')
    run_parser.add_argument('-t', '--timeout', type=float, metavar='SECONDS',
                            help='Connection timeout (default: $PEST_TIMEOUT or none)')

    # suite command
    suite_parser = subparsers.add_parser('suite', help='Run a YAML suite file')
    suite_parser.add_argument('config', help='Suite file')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose, args.quiet)

    if args.action == 'check':
        return cmd_check(args)
    elif args.action == 'run':
        return cmd_run(args)
    elif args.action == 'suite':
        return cmd_suite(args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
