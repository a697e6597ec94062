"""Caching issuer resolver.

Wraps an origin resolver and remembers successful lookups for a bounded
time. Failed lookups are never cached.

Design Notes:
- Entries are keyed by (domain, principal domain) since identity providers
  may serve a different document per principal domain.
- Each entry is a JSON blob stored at f"{prefix}:issuer:{domain}|{principal}".
- Public keys are stored in JWK form so any cache backend can hold them.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

import redis.asyncio as redis

from ..codec.jwt import public_jwk
from ..config import env_flag, env_int
from ..monitoring import get_registry
from .base import IssuerDetails, IssuerResolver, LookupRequest

logger = logging.getLogger(__name__)


@dataclass
class CachingResolverConfig:
    ttl_seconds: int = 300
    prefix: str = "idassert"
    redis_url: Optional[str] = None
    max_entries: int = 1024
    metrics_enabled: bool = True

    @classmethod
    def from_env(cls) -> "CachingResolverConfig":
        return cls(
            ttl_seconds=env_int("IDASSERT_RESOLVER_CACHE_TTL", 300),
            prefix=os.getenv("IDASSERT_CACHE_PREFIX", "idassert"),
            redis_url=os.getenv("IDASSERT_REDIS_URL") or None,
            metrics_enabled=env_flag("IDASSERT_METRICS", True),
        )


class DetailsCache(ABC):
    @abstractmethod
    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def set(self, key: str, value: Dict[str, Any], ttl: int) -> None:
        ...

    async def close(self) -> None:
        pass


class MemoryDetailsCache(DetailsCache):
    def __init__(self, max_entries: int = 1024, clock=time.monotonic):
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[float, Dict[str, Any]]] = {}
        self.max_entries = max_entries
        self._clock = clock

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    async def set(self, key: str, value: Dict[str, Any], ttl: int) -> None:
        with self._lock:
            if len(self._entries) >= self.max_entries and key not in self._entries:
                # Drop the entry closest to expiry.
                oldest = min(self._entries, key=lambda k: self._entries[k][0])
                del self._entries[oldest]
            self._entries[key] = (self._clock() + ttl, value)


class RedisDetailsCache(DetailsCache):
    def __init__(self, url: str = "redis://localhost:6379/0"):
        self.url = url
        self._client = None

    async def _get_client(self):
        if self._client is None:
            self._client = redis.from_url(self.url, decode_responses=True)
        return self._client

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        client = await self._get_client()
        raw = await client.get(key)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.error(f"Discarding undecodable cache entry {key}: {e}")
            await client.delete(key)
            return None

    async def set(self, key: str, value: Dict[str, Any], ttl: int) -> None:
        client = await self._get_client()
        await client.set(key, json.dumps(value, separators=(",", ":")), ex=ttl)

    async def delete(self, key: str) -> bool:
        client = await self._get_client()
        return (await client.delete(key)) == 1

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class CachingIssuerResolver(IssuerResolver):
    """Issuer resolver decorator with TTL caching."""

    def __init__(
        self,
        origin: IssuerResolver,
        config: Optional[CachingResolverConfig] = None,
        cache: Optional[DetailsCache] = None,
    ):
        self.origin = origin
        self.config = config or CachingResolverConfig()
        if cache is None:
            if self.config.redis_url:
                cache = RedisDetailsCache(self.config.redis_url)
            else:
                cache = MemoryDetailsCache(self.config.max_entries)
        self.cache = cache
        self.metrics = get_registry() if self.config.metrics_enabled else None

    def cache_key(self, request: LookupRequest) -> str:
        return f"{self.config.prefix}:issuer:{request.domain.lower()}|{(request.principal_domain or '').lower()}"

    async def lookup(self, request: LookupRequest) -> IssuerDetails:
        key = self.cache_key(request)
        cached = await self.cache.get(key)
        if cached is not None:
            self._observe("hit")
            logger.debug(f"Issuer cache hit for {request.domain}")
            return IssuerDetails.from_dict(cached)

        self._observe("miss")
        details = await self.origin.lookup(request)
        public_key = details.public_key
        if not isinstance(public_key, Mapping):
            public_key = public_jwk(public_key)
        stored = IssuerDetails(public_key=dict(public_key), authoritative_domain=details.authoritative_domain)
        await self.cache.set(key, stored.to_dict(), self.config.ttl_seconds)
        return stored

    def _observe(self, result: str) -> None:
        if self.metrics is not None:
            self.metrics.observe_cache(result)

    async def close(self) -> None:
        await self.cache.close()


__all__ = [
    "CachingResolverConfig",
    "DetailsCache",
    "MemoryDetailsCache",
    "RedisDetailsCache",
    "CachingIssuerResolver",
]
