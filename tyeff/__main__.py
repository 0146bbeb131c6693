from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Iterable
from dataclasses import replace
from typing import Any

from tyeff.analysis import DescriptorAnalyzer
from tyeff.config import EvaluatorConfig, log_level_from_env
from tyeff.errors import ArtifactError
from tyeff.run import run_path_async

logger = logging.getLogger(__name__)

EXIT_USAGE = 2


def _configure_logging(verbosity: int) -> None:
    if verbosity >= 2:
        level = "DEBUG"
    elif verbosity == 1:
        level = "INFO"
    else:
        level = log_level_from_env()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _json_safe(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return repr(value)
    return value


def handle_run(args: argparse.Namespace) -> int:
    config = EvaluatorConfig.from_env()
    if args.strict:
        config = replace(config, strict=True)
    if args.max_depth is not None:
        config = replace(config, max_depth=args.max_depth)

    result = asyncio.run(
        run_path_async(
            args.path,
            argv=args.args,
            config=config,
            dump_results=args.dump_results,
        )
    )

    if args.format == "json":
        if result.exit_code is not None:
            status = "exit"
        else:
            status = "ok" if result.is_ok else "error"
        payload: dict[str, Any] = {
            "status": status,
            "exit_code": result.status,
            "result": _json_safe(result.value),
        }
        if result.error is not None:
            payload["error"] = result.error.__class__.__name__
            payload["message"] = str(result.error)
        print(json.dumps(payload))
    return result.status


def handle_show(args: argparse.Namespace) -> int:
    analyzer = DescriptorAnalyzer()
    root = analyzer.parse_entry_point(args.path)
    print(analyzer.stringify(root))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tyeff", description="Evaluate effect programs described as descriptor trees"
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v info, -vv debug). Defaults to TYEFF_LOG_LEVEL.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser(
        "run",
        help="Evaluate the main entry of an artifact",
        description=(
            "Evaluate the main entry of a JSON or Python artifact.\n\n"
            "Examples:\n"
            "  tyeff run program.json\n"
            "  tyeff run --strict program.py first second\n"
            "  echo hello | tyeff run echo.json"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    run_parser.add_argument("path", help="Artifact file (.json or .py) exporting main")
    run_parser.add_argument(
        "args",
        nargs=argparse.REMAINDER,
        help="Arguments exposed to the program through GetArgs",
    )
    run_parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail on effects without a handler instead of logging them (TYEFF_STRICT)",
    )
    run_parser.add_argument(
        "--max-depth",
        type=int,
        default=None,
        help="Maximum effect nesting depth (TYEFF_MAX_DEPTH)",
    )
    run_parser.add_argument(
        "--format",
        choices=("text", "json"),
        default="text",
        help="Output format for the run summary (default: text)",
    )
    run_parser.add_argument(
        "--dump-results",
        action="store_true",
        help="Print the synthesized result table to stderr after the run",
    )
    run_parser.set_defaults(func=handle_run)

    show_parser = subparsers.add_parser("show", help="Print the main entry of an artifact")
    show_parser.add_argument("path", help="Artifact file (.json or .py) exporting main")
    show_parser.set_defaults(func=handle_show)

    return parser


def main(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    _configure_logging(args.verbose)
    try:
        return args.func(args)
    except ArtifactError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_USAGE
    except ValueError as exc:
        # invalid configuration from the environment
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_USAGE


if __name__ == "__main__":
    sys.exit(main())
