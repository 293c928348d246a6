"""
Command-line interface for claude-mem.

Sub-commands
------------
status  – Check whether the claude-mem service is running.
search  – Semantic search across stored observations.
stats   – Print memory statistics.

The same sub-commands are mounted under ``claudemem`` in a plugin host's CLI
(see :mod:`memory_claude_mem.plugin`).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys

from .client import DEFAULT_BASE_URL, ClaudeMemClient
from .config import DEFAULT_MAX_RESULTS
from .formatting import TIMELINE_PREVIEW_CHARS, format_stats, format_status, truncate


def _client(args: argparse.Namespace) -> ClaudeMemClient:
    return ClaudeMemClient(getattr(args, "api_url", None))


def _cmd_status(args: argparse.Namespace) -> int:
    status = asyncio.run(_client(args).get_status())
    print(format_status(status))
    return 0


def _cmd_search(args: argparse.Namespace) -> int:
    results = asyncio.run(
        _client(args).search(
            args.query,
            limit=args.limit,
            observation_type=args.observation_type,
        )
    )
    if args.as_json:
        print(json.dumps([r.to_dict() for r in results], indent=2))
        return 0

    print(f"Found {len(results)} results:")
    for i, r in enumerate(results, 1):
        obs = r.observation
        print()
        print(f"[{i}] {obs.type or 'observation'}: {truncate(obs.content, TIMELINE_PREVIEW_CHARS)}")
    return 0


def _cmd_stats(args: argparse.Namespace) -> int:
    stats = asyncio.run(_client(args).get_stats())
    print(format_stats(stats))
    return 0


def add_commands(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    """Attach the claude-mem sub-commands to *parser*."""
    parser.add_argument(
        "--api-url",
        default=os.environ.get("CLAUDE_MEM_API_URL") or DEFAULT_BASE_URL,
        metavar="URL",
        help="Claude-mem API URL (default: $CLAUDE_MEM_API_URL or http://localhost:37777).",
    )

    sub = parser.add_subparsers(dest="claudemem_command", required=True)

    # status
    p_status = sub.add_parser("status", help="Check claude-mem service status.")
    p_status.set_defaults(func=_cmd_status)

    # search
    p_search = sub.add_parser("search", help="Search memory.")
    p_search.add_argument("query", help="Natural-language query.")
    p_search.add_argument(
        "-l",
        "--limit",
        type=int,
        default=DEFAULT_MAX_RESULTS,
        metavar="N",
        help=f"Max results (default: {DEFAULT_MAX_RESULTS}).",
    )
    p_search.add_argument(
        "-t",
        "--type",
        dest="observation_type",
        default=None,
        metavar="TYPE",
        help="Filter by type: decision, bugfix, feature, refactor, discovery, change.",
    )
    p_search.add_argument(
        "--json",
        action="store_true",
        dest="as_json",
        help="Output results as JSON.",
    )
    p_search.set_defaults(func=_cmd_search)

    # stats
    p_stats = sub.add_parser("stats", help="Show memory statistics.")
    p_stats.set_defaults(func=_cmd_stats)

    return parser


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="claudemem",
        description="Claude-mem memory management.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    return add_commands(parser)


def run(args: argparse.Namespace) -> int:
    """Dispatch parsed arguments to their sub-command."""
    return args.func(args)


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(name)s - %(levelname)s - %(message)s",
    )
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
