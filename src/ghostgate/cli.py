from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

from .config import resolve_config
from .pruning import prune
from .session import create_session


def cmd_config(args) -> int:
    """Print the effective configuration and where it came from."""
    config = resolve_config(Path(args.cwd).resolve(), debug=args.debug)
    print(json.dumps(config.to_dict(), indent=2))
    for source in config.sources:
        print(f"[ghostgate] Loaded {source}", file=sys.stderr)
    for error in config.errors:
        print(f"[ghostgate] Skipped {error}", file=sys.stderr)
    return 0


async def _status(cwd: Path, debug: bool) -> Optional[str]:
    session = await create_session(cwd, debug=debug)
    if not session.enabled:
        return None
    return await session.status_text()


async def _search(cwd: Path, query: str, debug: bool) -> str:
    session = await create_session(cwd, debug=debug)
    return await session.search_tools(query)


def cmd_status(args) -> int:
    """Print the status box for a fresh session in --cwd."""
    text = asyncio.run(_status(Path(args.cwd).resolve(), args.debug))
    if text is None:
        print("[ghostgate] Disabled by configuration.")
        return 1
    print(text)
    return 0


def cmd_search(args) -> int:
    """Search the registry catalog."""
    print(asyncio.run(_search(Path(args.cwd).resolve(), args.query, args.debug)))
    return 0


def cmd_prune(args) -> int:
    """Prune a file with the effective pruning settings (overridable)."""
    path = Path(args.file)
    if not path.is_file():
        print(f"[ghostgate] File not found: {path}", file=sys.stderr)
        return 1

    pruning = resolve_config(Path(args.cwd).resolve(), debug=args.debug).pruning
    if args.max_tokens is not None:
        pruning = replace(pruning, max_tokens=args.max_tokens)
    if args.min_tokens is not None:
        pruning = replace(pruning, min_tokens=args.min_tokens)

    result = prune(path.read_text(encoding="utf-8"), replace(pruning, enabled=True))
    print(result.text)
    print(
        f"[ghostgate] {result.original_length} -> {len(result.text)} chars, "
        f"~{result.tokens_saved} tokens saved",
        file=sys.stderr,
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="ghostgate", description="GhostGate context budget tools")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--cwd", default=".", help="Project directory (default: .)")
    sub = p.add_subparsers(dest="cmd", required=True)

    sc = sub.add_parser("config", help="Show the effective configuration")
    sc.set_defaults(func=cmd_config)

    ss = sub.add_parser("status", help="Show the session status report")
    ss.set_defaults(func=cmd_status)

    sq = sub.add_parser("search", help="Search the tool registry")
    sq.add_argument("query")
    sq.set_defaults(func=cmd_search)

    sp = sub.add_parser("prune", help="Prune a file as a large tool result would be")
    sp.add_argument("file")
    sp.add_argument("--max-tokens", type=int, default=None, help="Override pruning.maxTokens")
    sp.add_argument("--min-tokens", type=int, default=None, help="Override pruning.minTokens")
    sp.set_defaults(func=cmd_prune)

    return p


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
