# FILE PATH: codemerge/cli.py
# DESCRIPTION: Command-line entry point (merge, tree, tokens, init)

"""
Command-line interface for codemerge.

Commands:
- merge:  concatenate the surviving files into one document (text, json, xml)
- tree:   show a directory tree weighted by token count
- tokens: show the files with the most tokens and the overall total
- init:   write a default .codemerge.yaml

Every command runs the same pipeline: discovery (ignore rules + filter
globs), file loading with token counts, then the budget/content filter
chain. Nothing is written until the whole pipeline has succeeded.
"""

import io
import json
import os
import sys
import argparse
import logging
from typing import List, Optional

from . import __version__
from .config import (
    DEFAULT_CONFIG_FILE,
    ConfigError,
    load as load_config,
    merge_with_defaults,
    write_default_config,
)
from .filters import (
    DEFAULT_MAX_BUDGET,
    DEFAULT_MIN_BUDGET,
    BudgetOptions,
    static_filters,
)
from .formatters import FORMATS, FormatterNotFoundError, formatter
from .loader import DEFAULT_WORKERS, FileRecord, load_all
from .matcher import DEFAULT_FILTERS, DiscoveryError, match_input
from .tokens import (
    build_leaderboard,
    format_token_board,
    format_token_json,
    save_leaderboard,
    total_tokens,
)
from .tree import build_tree, render_tree

DEFAULT_LOG_FILE = "codemerge.log"
NO_FILES_MESSAGE = "No files found"


def setup_logging(log_file: str, enable_logging: bool = False, verbose: bool = False):
    """Configure logging with specified settings."""
    if enable_logging:
        logging.basicConfig(
            filename=log_file,
            level=logging.DEBUG,
            format="%(asctime)s - %(levelname)s - %(message)s",
            filemode="w",
        )
    else:
        debug = verbose or bool(os.environ.get("CODEMERGE_DEBUG"))
        logging.basicConfig(
            level=logging.DEBUG if debug else logging.WARNING,
            format="%(levelname)s: %(message)s",
        )


def split_top_level_commas(item: str) -> List[str]:
    """Split on commas that are not inside a {...} brace group."""
    parts = []
    current = []
    depth = 0
    for c in item:
        if c == "{":
            depth += 1
        elif c == "}" and depth:
            depth -= 1
        elif c == "," and not depth:
            parts.append("".join(current))
            current = []
            continue
        current.append(c)
    parts.append("".join(current))
    return parts


def parse_patterns(pattern_list: Optional[List[str]]) -> Optional[List[str]]:
    """
    Parse pattern list handling both space-separated and comma-separated values.
    Commas inside brace groups such as *.{py,md} are part of the pattern.
    Returns None when no patterns were given so config defaults can apply.
    """
    if pattern_list is None:
        return None
    processed = []
    for item in pattern_list:
        processed.extend(split_top_level_commas(item))
    return [p.strip() for p in processed if p.strip()]


def add_pipeline_arguments(parser: argparse.ArgumentParser):
    parser.add_argument(
        "path",
        nargs="?",
        default=os.getcwd(),
        help="Path where files are located (default: current directory)",
    )

    filters = parser.add_argument_group("Filters")
    filters.add_argument(
        "-i",
        "--ignores",
        nargs="+",
        default=None,
        help="Patterns to ignore, in .gitignore syntax. "
        "Accepts space-separated or comma-separated values.",
    )
    filters.add_argument(
        "-f",
        "--filters",
        nargs="+",
        default=None,
        help="Glob patterns selecting files (default: '**')",
    )
    filters.add_argument(
        "--absolute",
        action="store_true",
        help="Report absolute paths instead of paths relative to the root",
    )
    filters.add_argument(
        "--input",
        action="store_true",
        help="Read a newline-delimited file list from stdin when one is piped in",
    )
    filters.add_argument(
        "--no-notebooks",
        action="store_true",
        help="Read .ipynb files as raw JSON instead of converting them to markdown",
    )

    budget = parser.add_argument_group("Budget")
    budget.add_argument(
        "--max-budget",
        type=int,
        default=DEFAULT_MAX_BUDGET,
        help=f"Maximum tokens per file for the high budget filter (default: {DEFAULT_MAX_BUDGET:,})",
    )
    budget.add_argument(
        "--min-budget",
        type=int,
        default=DEFAULT_MIN_BUDGET,
        help=f"Minimum tokens per file for the low budget filter (default: {DEFAULT_MIN_BUDGET})",
    )
    budget.add_argument(
        "--limit-by-high-budget",
        action="store_true",
        help="Drop files with max-budget tokens or more",
    )
    budget.add_argument(
        "--limit-by-low-budget",
        action="store_true",
        help="Drop files with fewer than min-budget tokens",
    )

    config = parser.add_argument_group("Config")
    config.add_argument("--context", help="Config context to use (default: 'default')")
    config.add_argument(
        "--config-path",
        help=f"Alternative config file (default: ./{DEFAULT_CONFIG_FILE})",
    )
    config.add_argument(
        "--ignore-config", action="store_true", help="Do not read any config file"
    )

    runtime = parser.add_argument_group("Runtime")
    runtime.add_argument(
        "--workers",
        type=int,
        default=DEFAULT_WORKERS,
        help=f"Number of worker threads for reading files (default: {DEFAULT_WORKERS})",
    )
    add_logging_arguments(runtime)


def add_logging_arguments(group):
    group.add_argument(
        "--enable-logging",
        action="store_true",
        default=False,
        help="Enable detailed logging to file",
    )
    group.add_argument(
        "--log-file",
        default=DEFAULT_LOG_FILE,
        help=f"Log file path (default: {DEFAULT_LOG_FILE})",
    )
    group.add_argument(
        "-v", "--verbose", action="store_true", help="Print debug logging to stderr"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codemerge",
        description="Select source files within a token budget and merge, "
        "rank or summarize them for a language model",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    merge_parser = subparsers.add_parser(
        "merge", help="Concatenate the selected files into one document"
    )
    add_pipeline_arguments(merge_parser)
    merge_parser.add_argument(
        "--format", default="text", choices=FORMATS, help="Output format (default: text)"
    )
    merge_parser.add_argument(
        "-o", "--output", help="Output file path (default: stdout)"
    )

    tree_parser = subparsers.add_parser(
        "tree", help="Show a directory tree weighted by token count"
    )
    add_pipeline_arguments(tree_parser)
    tree_parser.add_argument(
        "--format", default="text", choices=["text", "json"], help="Output format (default: text)"
    )

    tokens_parser = subparsers.add_parser(
        "tokens", help="Show the files with the most tokens"
    )
    add_pipeline_arguments(tokens_parser)
    tokens_parser.add_argument(
        "-n",
        "--total",
        type=int,
        default=10,
        help="Number of files to display (default: 10)",
    )
    tokens_parser.add_argument(
        "--format", default="plain", choices=["plain", "json"], help="Output format (default: plain)"
    )
    tokens_parser.add_argument(
        "--csv", help="Also write the full leaderboard to this CSV file"
    )

    init_parser = subparsers.add_parser("init", help=f"Create a {DEFAULT_CONFIG_FILE} file")
    init_parser.add_argument(
        "--file-name",
        default=DEFAULT_CONFIG_FILE,
        help=f"Name of the file to create (default: {DEFAULT_CONFIG_FILE})",
    )
    init_parser.add_argument(
        "-f", "--force", action="store_true", help="Overwrite an existing file"
    )
    add_logging_arguments(init_parser)

    return parser


def resolve_patterns(args: argparse.Namespace) -> argparse.Namespace:
    """Apply config-file context values to options the user did not pass."""
    args.ignores = parse_patterns(args.ignores)
    args.filters = parse_patterns(args.filters)

    if not args.ignore_config:
        ctx = load_config(config_path=args.config_path, context=args.context)
        if ctx is not None:
            merged = merge_with_defaults(
                {"filters": args.filters, "ignores": args.ignores},
                {"filters": ctx.filters, "ignores": ctx.ignores},
            )
            args.filters = merged["filters"]
            args.ignores = merged["ignores"]

    args.filters = args.filters or list(DEFAULT_FILTERS)
    args.ignores = args.ignores or []
    logging.debug(f"Filters: {args.filters}")
    logging.debug(f"Ignores: {args.ignores}")
    return args


def collect_records(args: argparse.Namespace, stdin=None) -> List[FileRecord]:
    """Run discovery, loading and filtering; return the surviving records."""
    files = match_input(
        args.path,
        ignores=args.ignores,
        filters=args.filters,
        absolute=args.absolute,
        use_input=args.input,
        stream=stdin,
    )
    if not files:
        return []

    records = load_all(
        files,
        base=None if args.absolute else args.path,
        workers=args.workers,
        show_progress=sys.stderr.isatty(),
        convert_notebooks=not args.no_notebooks,
    )

    chain = static_filters(
        BudgetOptions(
            max_budget=args.max_budget,
            min_budget=args.min_budget,
            limit_by_high_budget=args.limit_by_high_budget,
            limit_by_low_budget=args.limit_by_low_budget,
        )
    )
    filtered = chain.apply(records)
    logging.info(f"{len(filtered)} of {len(records)} files passed the filters")
    return filtered


def run_merge(args: argparse.Namespace, records: List[FileRecord]) -> str:
    buffer = io.StringIO()
    formatter(args.format).format(buffer, records)
    return buffer.getvalue()


def run_tree(args: argparse.Namespace, records: List[FileRecord]) -> str:
    root = build_tree(records)
    if args.format == "json":
        return json.dumps(root.to_dict(), indent=2) + "\n"
    return render_tree(root)


def run_tokens(args: argparse.Namespace, records: List[FileRecord]) -> str:
    total = total_tokens(records)
    board = build_leaderboard(records, args.total)
    if args.csv:
        save_leaderboard(build_leaderboard(records), args.csv)
        logging.info(f"Leaderboard written to {args.csv}")
    if args.format == "json":
        return format_token_json(board, total)
    return format_token_board(board, total)


def run_init(args: argparse.Namespace) -> int:
    target = os.path.join(os.getcwd(), args.file_name)
    if not write_default_config(target, force=args.force):
        print(f"File {args.file_name} already exists.")
        return 0
    print(f"Created {args.file_name}")
    return 0


COMMANDS = {
    "merge": run_merge,
    "tree": run_tree,
    "tokens": run_tokens,
}


def main(argv: Optional[List[str]] = None, stdin=None) -> int:
    if os.name == "nt":
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")

    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_file, args.enable_logging, args.verbose)

    if args.command == "init":
        return run_init(args)

    try:
        if args.command == "merge":
            formatter(args.format)
        resolve_patterns(args)
        records = collect_records(args, stdin if stdin is not None else sys.stdin)
        if not records:
            print(NO_FILES_MESSAGE, file=sys.stderr)
            return 0
        output = COMMANDS[args.command](args, records)

        if getattr(args, "output", None):
            with open(args.output, "w", encoding="utf-8") as f:
                f.write(output)
            print(f"Output written to: {args.output}", file=sys.stderr)
        else:
            sys.stdout.write(output)
    except (DiscoveryError, ConfigError, FormatterNotFoundError) as e:
        logging.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        logging.error(f"Error during processing: {e}")
        print(f"Error during processing: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
