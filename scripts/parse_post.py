#!/usr/bin/env python3
"""Parse a serialized post body into blocks and print them as JSON.

Block types and the unknown type handler come from a registry config
(see ``postblocks.config``).

Usage:
    # Parse a post, print the block list
    python3 scripts/parse_post.py post.html --types block_types.json

    # Read stdin, write deterministic JSONL (one block per line)
    cat post.html | python3 scripts/parse_post.py - --types block_types.json \
      --no-uid --jsonl --output blocks.jsonl
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from postblocks.config import ConfigError, load_registry
from postblocks.grammar import GrammarError
from postblocks.io_utils import dumps_json, save_json, save_jsonl
from postblocks.parser import parse

log = logging.getLogger("parse_post")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Parse a serialized post body into typed blocks."
    )
    parser.add_argument("input", help="Post body file, or '-' for stdin")
    parser.add_argument(
        "--types", required=True, type=Path, help="Path to block types JSON config"
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write to this file instead of stdout.",
    )
    parser.add_argument(
        "--jsonl",
        action="store_true",
        help="Emit one block per line (JSON Lines) instead of a JSON array.",
    )
    parser.add_argument(
        "--no-uid",
        action="store_true",
        help="Omit block uids so output is deterministic.",
    )
    parser.add_argument("--verbose", action="store_true", help="Debug logging.")
    return parser


def read_document(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def parse_document(document: str, types_path: Path, *, include_uid: bool = True) -> list[dict[str, Any]]:
    """Parse *document* with the registry described by *types_path*."""
    registry = load_registry(types_path)
    log.debug("loaded %r", registry)
    blocks = parse(document, registry)
    return [block.to_dict(include_uid=include_uid) for block in blocks]


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    try:
        document = read_document(args.input)
    except (OSError, UnicodeDecodeError) as exc:
        log.error("cannot read %s: %s", args.input, exc)
        return 1

    try:
        rows = parse_document(document, args.types, include_uid=not args.no_uid)
    except ConfigError as exc:
        log.error("bad block types config: %s", exc)
        return 1
    except GrammarError as exc:
        log.error("cannot parse %s: %s", args.input, exc)
        return 1

    if args.output is not None:
        if args.jsonl:
            save_jsonl(rows, args.output)
        else:
            save_json(rows, args.output)
        log.info("wrote %d blocks to %s", len(rows), args.output)
    elif args.jsonl:
        for row in rows:
            sys.stdout.buffer.write(dumps_json(row, pretty=False) + b"\n")
    else:
        sys.stdout.buffer.write(dumps_json(rows) + b"\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
