from redis import Redis

from .config import settings

# Connects lazily, on the first command.
redis_client = Redis.from_url(settings.redis_url, decode_responses=True)
