from redis.asyncio import Redis

from blogapi.core.config import Settings


def create_redis(settings: Settings) -> Redis:
    # Connections are opened lazily on the first command
    return Redis.from_url(settings.REDIS_URL, decode_responses=True)


async def close_redis(redis: Redis) -> None:
    await redis.aclose()
