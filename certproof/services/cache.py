"""Course metadata cache.

Course existence is monotonic in the ledger: once a token id exists it
is never deleted.  So a cached "exists" answer can never turn into a
wrong CourseNotFound, and only existing courses are cached.  Name, image
and validity duration are admin-mutable, so entries expire after
COURSE_CACHE_TTL_SECONDS.
"""

from __future__ import annotations

import json
import logging
from typing import Protocol, runtime_checkable

from redis.exceptions import RedisError

from certproof.core.metrics import COURSE_CACHE_OPERATIONS
from certproof.models.course import Course

logger = logging.getLogger(__name__)


@runtime_checkable
class CourseCache(Protocol):
    async def get(self, token_id: int) -> Course | None:
        """Cached course, or None on a miss."""
        ...

    async def put(self, course: Course, ttl_seconds: int) -> None: ...


class InMemoryCourseCache:
    """Process-local cache; TTL is not enforced."""

    def __init__(self) -> None:
        self._store: dict[int, Course] = {}

    async def get(self, token_id: int) -> Course | None:
        course = self._store.get(token_id)
        COURSE_CACHE_OPERATIONS.labels(operation="miss" if course is None else "hit").inc()
        return course

    async def put(self, course: Course, ttl_seconds: int) -> None:
        if course.exists:
            self._store[course.token_id] = course


class RedisCourseCache:
    """Redis-backed cache shared by all API instances.

    Redis errors are logged and treated as misses; the ledger stays the
    source of truth.
    """

    _PREFIX = "course:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get(self, token_id: int) -> Course | None:
        try:
            raw = await self._redis.get(f"{self._PREFIX}{token_id}")
        except RedisError as e:
            logger.warning("Course cache read failed token_id=%s: %s", token_id, e)
            raw = None
        if raw is None:
            COURSE_CACHE_OPERATIONS.labels(operation="miss").inc()
            return None
        COURSE_CACHE_OPERATIONS.labels(operation="hit").inc()
        return Course.from_dict(json.loads(raw))

    async def put(self, course: Course, ttl_seconds: int) -> None:
        if not course.exists:
            return
        try:
            await self._redis.setex(
                f"{self._PREFIX}{course.token_id}",
                ttl_seconds,
                json.dumps(course.to_dict()),
            )
        except RedisError as e:
            logger.warning(
                "Course cache write failed token_id=%s: %s", course.token_id, e
            )


def create_course_cache(redis_client) -> CourseCache:
    if redis_client is not None:
        return RedisCourseCache(redis_client)
    return InMemoryCourseCache()
