#!/usr/bin/env python3
"""
Recompute follower / following counters from the follow edges and repair drift.

Reads DATABASE_URL / REDIS_URL from .env (see socialgraph/config.py).
Exits non-zero when drift survives repair for any user.

Usage:
    python -m scripts.reconcile_counters                 # sweep every user
    python -m scripts.reconcile_counters --user-id <id>  # one user
    python -m scripts.reconcile_counters --no-redis      # local guard only
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import uuid
from pathlib import Path

# Add repository root to path so imports resolve
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from socialgraph.config import get_settings  # noqa: E402
from socialgraph.database import dispose_db, get_session_factory, init_db  # noqa: E402
from socialgraph.exceptions import ConsistencyError  # noqa: E402
from socialgraph.reconciler import service as reconciler  # noqa: E402
from socialgraph.redis_client import close_redis_client, get_redis_client  # noqa: E402


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--user-id", type=uuid.UUID, help="Reconcile a single user")
    parser.add_argument("--batch-size", type=int, help="Users per keyset batch")
    parser.add_argument("--no-redis", action="store_true", help="Skip the cross-worker lock")
    return parser.parse_args()


async def main(args: argparse.Namespace) -> int:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    init_db(settings.database_url)
    redis = None if args.no_redis else get_redis_client(settings.redis_url)
    lock_ttl = settings.reconcile_lock_ttl_seconds

    try:
        async with get_session_factory()() as session:
            if args.user_id is not None:
                try:
                    result = await reconciler.reconcile_user(
                        session, args.user_id, redis=redis, lock_ttl=lock_ttl
                    )
                except ConsistencyError:
                    await session.rollback()
                    return 1
                await session.commit()
                print(
                    f"user={result.user_id} corrected={result.corrected} skipped={result.skipped} "
                    f"followers {result.followers_before}->{result.followers_after} "
                    f"following {result.following_before}->{result.following_after}"
                )
                return 0

            summary = await reconciler.reconcile_all(
                session,
                batch_size=args.batch_size or settings.reconcile_batch_size,
                redis=redis,
                lock_ttl=lock_ttl,
            )
            await session.commit()
            print(
                f"checked={summary.checked} corrected={summary.corrected} "
                f"skipped={summary.skipped} failed={len(summary.failed)}"
            )
            return 1 if summary.failed else 0
    finally:
        await close_redis_client()
        await dispose_db()


if __name__ == "__main__":
    sys.exit(asyncio.run(main(_parse_args())))
