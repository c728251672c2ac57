import json
import logging
from typing import List, Optional
import redis
from resumate.models.resume import ResumeDocument, ResumeRecord, utcnow
from resumate.services.cache import redis_client, resume_cache_key
from resumate.services.config import settings
from resumate.utils.db import init_db

logger = logging.getLogger("uvicorn.error")


class ResumeRepository:
    """Resume records in MongoDB, with a Redis copy of each record for reads.

    Every query is scoped by owner id; a record is never reachable through
    another user's id.
    """

    def __init__(self, cache=redis_client, ttl: int = settings.CACHE_TTL_SECONDS):
        self.cache = cache
        self.ttl = ttl

    def _cache_set(self, record: ResumeRecord):
        try:
            self.cache.setex(resume_cache_key(record.owner_id, record.id), self.ttl, record.model_dump_json())
        except redis.RedisError as e:
            logger.warning("Could not cache resume %s: %r", record.id, e)

    def _cache_get(self, owner_id: str, resume_id: str) -> Optional[ResumeRecord]:
        try:
            data = self.cache.get(resume_cache_key(owner_id, resume_id))
        except redis.RedisError as e:
            logger.warning("Redis read failed for resume %s: %r", resume_id, e)
            return None
        if not data:
            return None
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        try:
            return ResumeRecord.model_validate(json.loads(data))
        except ValueError:
            logger.warning("Dropping unreadable cache entry for resume %s", resume_id)
            return None

    def _cache_delete(self, *keys: str):
        if not keys:
            return
        try:
            self.cache.delete(*keys)
        except redis.RedisError as e:
            logger.warning("Could not evict cached resumes: %r", e)

    async def _find(self, owner_id: str, resume_id: str) -> Optional[ResumeDocument]:
        await init_db()
        return await ResumeDocument.find_one(
            ResumeDocument.owner_id == owner_id,
            ResumeDocument.resume_id == resume_id,
        )

    async def upsert(self, owner_id: str, record: ResumeRecord) -> ResumeRecord:
        if record.owner_id != owner_id:
            raise ValueError("Record belongs to a different owner")

        document = await self._find(owner_id, record.id)
        if document is None:
            document = ResumeDocument.from_record(record)
            await document.insert()
            logger.info("Resume saved to MongoDB: %s", record.id)
        else:
            record.created_at = document.created_at
            record.updated_at = utcnow()
            for field, value in record.model_dump(exclude={"id", "owner_id", "created_at", "feedback"}).items():
                setattr(document, field, value)
            document.feedback = record.feedback
            await document.save()
            logger.info("Resume updated in MongoDB: %s", record.id)

        self._cache_set(record)
        return record

    async def get(self, owner_id: str, resume_id: str) -> Optional[ResumeRecord]:
        cached = self._cache_get(owner_id, resume_id)
        if cached is not None:
            return cached

        document = await self._find(owner_id, resume_id)
        if document is None:
            return None
        record = document.to_record()
        self._cache_set(record)
        return record

    async def list(self, owner_id: str) -> List[ResumeRecord]:
        await init_db()
        documents = await ResumeDocument.find(ResumeDocument.owner_id == owner_id)\
                                        .sort(-ResumeDocument.created_at)\
                                        .to_list()
        return [document.to_record() for document in documents]

    async def delete(self, owner_id: str, resume_id: str) -> bool:
        document = await self._find(owner_id, resume_id)
        self._cache_delete(resume_cache_key(owner_id, resume_id))
        if document is None:
            return False
        await document.delete()
        logger.info("Resume deleted from MongoDB: %s", resume_id)
        return True

    async def delete_all(self, owner_id: str) -> int:
        await init_db()
        documents = await ResumeDocument.find(ResumeDocument.owner_id == owner_id).to_list()
        self._cache_delete(*(resume_cache_key(owner_id, d.resume_id) for d in documents))
        result = await ResumeDocument.find(ResumeDocument.owner_id == owner_id).delete()
        deleted = result.deleted_count if result else 0
        logger.info("All resumes deleted for user %s: %d", owner_id, deleted)
        return deleted
