"""Command-line access to the conversation memory.

Usage:
    python -m coach_memory ping
    python -m coach_memory threads RESOURCE_ID
    python -m coach_memory messages THREAD_ID [--last N | --first N | --all]
    python -m coach_memory clear-resource RESOURCE_ID
    python -m coach_memory flush
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from redis.exceptions import RedisError

from coach_memory.exceptions import CoachMemoryError
from coach_memory.logger import get_logger
from coach_memory.memory_adapter import MemoryAdapter
from coach_memory.memory_factory import create_memory

logger = logging.getLogger("coach_memory.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coach_memory",
        description="Inspect and maintain conversation memory",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("ping", help="Check that the backend answers")

    threads = sub.add_parser("threads", help="List a resource's threads")
    threads.add_argument("resource_id")

    messages = sub.add_parser("messages", help="Show messages of a thread")
    messages.add_argument("thread_id")
    window = messages.add_mutually_exclusive_group()
    window.add_argument("--last", type=int, help="Newest N messages")
    window.add_argument("--first", type=int, help="Oldest N messages")
    window.add_argument("--all", action="store_true", help="All messages (capped)")

    clear = sub.add_parser("clear-resource", help="Delete a resource's threads")
    clear.add_argument("resource_id")

    sub.add_parser("flush", help="Flush the whole backend (needs opt-in)")
    return parser


def _print_json(obj: dict[str, Any]) -> None:
    print(json.dumps(obj, ensure_ascii=False))


async def _run(args: argparse.Namespace, memory: MemoryAdapter) -> int:
    if args.command == "ping":
        if not await memory.ping():
            logger.error("Backend answered PING without PONG")
            return 1
        print("PONG")
    elif args.command == "threads":
        for thread in await memory.get_threads_by_resource_id(args.resource_id):
            _print_json(thread.to_dict())
    elif args.command == "messages":
        if args.last is not None:
            select_by: dict[str, Any] = {"last": args.last}
        elif args.first is not None:
            select_by = {"first": args.first}
        elif args.all:
            select_by = {"all": True}
        else:
            select_by = {}
        result = await memory.query(args.thread_id, select_by)
        for message in result.messages:
            _print_json(message.to_dict())
    elif args.command == "clear-resource":
        deleted = await memory.clear_resource(args.resource_id)
        print(f"Deleted {deleted} thread(s)")
    elif args.command == "flush":
        await memory.clear()
        print("Flushed")
    return 0


async def _main_async(args: argparse.Namespace) -> int:
    memory = create_memory()
    try:
        return await _run(args, memory)
    finally:
        await memory.aclose()


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    get_logger(logging.DEBUG if args.verbose else logging.INFO)
    try:
        return asyncio.run(_main_async(args))
    except CoachMemoryError as exc:
        logger.error("%s", exc)
        return 2
    except (RedisError, OSError) as exc:
        logger.error("Backend unavailable: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
