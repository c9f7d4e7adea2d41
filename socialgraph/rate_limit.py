"""
Global slowapi rate limiter.

Imported by relationships/router.py for the follow endpoint limit and mounted
onto app.state in main.py so the slowapi middleware can find it.

Storage: Redis when REDIS_URL is set, in-memory otherwise (local dev, tests).
RATE_LIMIT_ENABLED=false turns limiting off entirely.
"""
import os

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=os.getenv("REDIS_URL", "memory://"),
    enabled=os.getenv("RATE_LIMIT_ENABLED", "true").lower() != "false",
)
