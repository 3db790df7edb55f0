# storefront/services/classification_cache.py
"""
Cache klasyfikacji nazw produktow.

Klucz to znormalizowana nazwa (casefold, bez interpunkcji, pojedyncze spacje),
wartosc to JSON ClassificationResult. Klasyfikacja danej nazwy jest stabilna,
wiec TTL jest dlugi (domyslnie 30 dni).

Dwa backendy o tym samym interfejsie:
- MemoryTTLStore: slownik w procesie, zegar wstrzykiwany (testy)
- RedisTTLStore: wspoldzielony miedzy workerami celery
"""
import re
import time
from functools import lru_cache
from typing import Callable, Dict, Optional, Tuple

import redis
from pydantic import ValidationError
from redis.exceptions import RedisError

from storefront.domain.schemas import ClassificationResult
from storefront.utils.logging import get_logger
from storefront.utils.retry import redis_retry
from storefront.utils import settings

logger = get_logger(__name__)

_PUNCTUATION_RE = re.compile(r"[^\w\s]", re.UNICODE)
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_name_key(raw_name: str) -> str:
    text = raw_name.casefold()
    text = _PUNCTUATION_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


class MemoryTTLStore:
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._data: Dict[str, Tuple[float, str]] = {}

    def get(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            self._data.pop(key, None)
            return None
        return value

    def set(self, key: str, value: str, ttl: int) -> None:
        self._data[key] = (self._clock() + ttl, value)


class RedisTTLStore:
    def __init__(self, url: str | None = None, prefix: str = "classify:"):
        self.prefix = prefix
        self.redis = redis.Redis.from_url(
            url or settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )

    @redis_retry()
    def get(self, key: str) -> Optional[str]:
        return self.redis.get(self.prefix + key)

    @redis_retry()
    def set(self, key: str, value: str, ttl: int) -> None:
        #SET classify:<nazwa> <json> EX ttl
        self.redis.set(name=self.prefix + key, value=value, ex=ttl)


class ClassificationCache:
    """Cache doradczy: bledy backendu logujemy i traktujemy jak miss."""

    def __init__(self, store=None, ttl_seconds: int | None = None):
        self.store = store if store is not None else MemoryTTLStore()
        self.ttl_seconds = ttl_seconds or settings.CLASSIFIER_CACHE_TTL_SECONDS

    def get(self, raw_name: str) -> Optional[ClassificationResult]:
        key = normalize_name_key(raw_name)
        if not key:
            return None
        try:
            cached = self.store.get(key)
        except RedisError as e:
            logger.warning(f"Classification cache read failed for '{key}': {e}")
            return None
        if cached is None:
            return None
        try:
            return ClassificationResult.model_validate_json(cached)
        except ValidationError:
            logger.warning(f"Corrupted classification cache entry for '{key}', ignoring")
            return None

    def set(self, raw_name: str, result: ClassificationResult) -> None:
        key = normalize_name_key(raw_name)
        if not key:
            return
        try:
            self.store.set(key, result.model_dump_json(), self.ttl_seconds)
        except RedisError as e:
            logger.warning(f"Classification cache write failed for '{key}': {e}")


@lru_cache(maxsize=1)
def get_classification_cache() -> ClassificationCache:
    """Jedna instancja na proces."""
    if settings.CLASSIFIER_CACHE_BACKEND == "redis":
        logger.info("Classification cache backend: redis")
        return ClassificationCache(store=RedisTTLStore())
    return ClassificationCache(store=MemoryTTLStore())
