import redis
from resumate.services.config import settings

redis_client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)


def resume_cache_key(owner_id: str, resume_id: str) -> str:
    return f"resume:{owner_id}:{resume_id}"
