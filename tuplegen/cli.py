"""
Command-line interface.

    tuplegen expand INPUT [-o OUTPUT] [--config FILE] [--cache-dir DIR] [--log-level LEVEL]
    tuplegen check INPUT [INPUT ...]
    tuplegen info
"""

import argparse
import json
import platform
import sys
from typing import List, Optional

import tuplegen
from .expand.pipeline import expand_file
from .utils.caching import ExpansionCache
from .utils.config import TupleGenConfig, get_config, set_config
from .utils.exceptions import SourceExpansionError, TupleGenError
from .utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def format_error(error: TupleGenError) -> List[str]:
    """Render an error as ``file:line:col: error: message`` lines."""
    if isinstance(error, SourceExpansionError):
        lines = []
        for site_error in error.errors:
            lines.extend(format_error(site_error))
        return lines

    message = error.message
    if error.details:
        message += " (" + ", ".join(f"{k}={v}" for k, v in error.details.items()) + ")"
    if error.location:
        return [f"{error.location}: error: {message}"]
    return [f"error: {message}"]


def _report(error: TupleGenError) -> None:
    for line in format_error(error):
        print(line, file=sys.stderr)


def _load_config(args: argparse.Namespace) -> TupleGenConfig:
    config = TupleGenConfig(args.config) if getattr(args, "config", None) else get_config()
    set_config(config)

    level = getattr(args, "log_level", None) or config.logging.level
    log_file = config.logging.log_file if config.logging.enable_file_logging else None
    setup_logging(level, log_file)
    return config


def _make_cache(args: argparse.Namespace, config: TupleGenConfig) -> Optional[ExpansionCache]:
    cache_dir = getattr(args, "cache_dir", None)
    if cache_dir is None and not config.is_cache_enabled():
        return None
    return ExpansionCache(cache_dir or config.cache.cache_dir, config.cache.max_size_mb)


def cmd_expand(args: argparse.Namespace) -> int:
    """Expand one file, writing to OUTPUT or stdout."""
    try:
        config = _load_config(args)
        cache = _make_cache(args, config)
        result = expand_file(args.input, output=args.output, config=config, cache=cache)
    except TupleGenError as e:
        _report(e)
        return 1
    except OSError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    if args.output is None:
        sys.stdout.write(result.output)
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Expand files in memory and report every error."""
    try:
        config = _load_config(args)
    except TupleGenError as e:
        _report(e)
        return 1

    status = 0
    for path in args.inputs:
        try:
            result = expand_file(path, config=config)
        except TupleGenError as e:
            _report(e)
            status = 1
            continue
        except OSError as e:
            print(f"{path}: error: {e}", file=sys.stderr)
            status = 1
            continue
        print(f"{path}: ok ({len(result.expansions)} annotated site(s))")
    return status


def cmd_info(args: argparse.Namespace) -> int:
    """Print version and configuration summary."""
    try:
        config = _load_config(args)
    except TupleGenError as e:
        _report(e)
        return 1

    print("tuplegen tuple implementation generator")
    print("=" * 40)
    print(f"\nVersion: {tuplegen.__version__}")
    print(f"Author: {tuplegen.__author__}")
    print(f"Python Version: {platform.python_version()}")
    print(f"Platform: {platform.platform()}")
    print(f"Configuration file: {config.config_file or 'none (defaults)'}")
    print("\nConfiguration:")
    print(json.dumps(config.to_dict(), indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tuplegen",
        description="Expand #[tuple_impl(N)] items into one implementation per tuple arity.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {tuplegen.__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    expand = subparsers.add_parser("expand", help="Expand a source file.")
    expand.add_argument("input", help="Source file to expand.")
    expand.add_argument("-o", "--output", help="Output file (default: stdout).")
    expand.add_argument("--config", help="JSON or YAML configuration file.")
    expand.add_argument("--cache-dir", help="Enable the expansion cache in this directory.")
    expand.add_argument("--log-level", help="Logging level (DEBUG, INFO, WARNING, ERROR).")
    expand.set_defaults(func=cmd_expand)

    check = subparsers.add_parser("check", help="Check that source files expand cleanly.")
    check.add_argument("inputs", nargs="+", help="Source files to check.")
    check.add_argument("--config", help="JSON or YAML configuration file.")
    check.add_argument("--log-level", help="Logging level (DEBUG, INFO, WARNING, ERROR).")
    check.set_defaults(func=cmd_check)

    info = subparsers.add_parser("info", help="Show version and configuration.")
    info.add_argument("--config", help="JSON or YAML configuration file.")
    info.set_defaults(func=cmd_info)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the tuplegen command."""
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
