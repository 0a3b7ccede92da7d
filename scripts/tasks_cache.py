#!/usr/bin/env python3
"""
Inspect or replace the tasks cache generation token.

Runs against the same Redis key the Tasks service reads, so ``invalidate``
has the same effect as a successful task mutation: every cached list and
read entry stops being addressable and expires through its TTL.
"""

import argparse
import asyncio
import json
import sys
from typing import Optional, Sequence

from service_tasks.app.cache.keys import CacheKeyBuilder
from service_tasks.app.cache.kv_store import RedisKeyValueStore
from service_tasks.app.cache.version import VersionTag
from shared.config import BaseConfig


async def run(command: str, *, redis_url: str, namespace: str) -> dict:
    """Execute ``command`` and return the summary."""
    kv_store = RedisKeyValueStore(redis_url)
    version_tag = VersionTag(kv_store, CacheKeyBuilder(namespace).version_key)
    try:
        if command == "invalidate":
            version = await version_tag.invalidate()
        else:
            version = await version_tag.get_version()
    finally:
        await kv_store.close()

    return {"command": command, "version_key": version_tag.key, "version": version}


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    config = BaseConfig()
    parser = argparse.ArgumentParser(description="Manage the tasks cache generation token.")
    parser.add_argument("command", choices=["version", "invalidate"], help="Print or replace the current generation")
    parser.add_argument("--redis-url", default=config.redis_url, help="Redis connection URL")
    parser.add_argument("--namespace", default=config.cache_namespace, help="Cache key namespace")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    try:
        summary = asyncio.run(run(args.command, redis_url=args.redis_url, namespace=args.namespace))
    except KeyboardInterrupt:
        return 130
    except Exception as exc:  # pragma: no cover - CLI surface
        print(f"[tasks-cache] failed: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(summary, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
