"""Redis connection pool and fixed-window counters."""

import time

import redis.asyncio as redis

_pool: redis.Redis | None = None


async def init_redis(url: str) -> None:
    """Initialize the Redis connection pool."""
    global _pool  # noqa: PLW0603
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
    )


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


def get_redis() -> redis.Redis:
    """Get the Redis client. Raises RuntimeError until init_redis() has run."""
    if _pool is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _pool


async def increment_window(prefix: str, subject: str, window_seconds: int) -> int:
    """Count one hit for `subject` in the current fixed window and return the window total."""
    client = get_redis()
    window = int(time.time()) // window_seconds
    key = f"{prefix}:{subject}:{window}"
    pipe = client.pipeline()
    pipe.incr(key)
    pipe.expire(key, window_seconds + 1)
    results = await pipe.execute()
    return int(results[0])
