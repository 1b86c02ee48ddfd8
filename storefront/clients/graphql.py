"""
GraphQL Client

Posts ``{query, variables}`` documents to the ShopJoy GraphQL endpoint and
caches query results in the ``graphql`` cache namespace.

Fetch policies:
- ``cache-first``: serve from cache when present, otherwise fetch and store
- ``network-only``: always fetch, then refresh the cache entry
- ``cache-and-network``: always fetch and refresh the cache; when the network
  fails the cached copy is served instead

Mutations invalidate the cached results of every root field they touch, so
the next read after a write goes to the network.
"""

import hashlib
import json
from typing import Any, Dict, Optional

import httpx
import structlog

from storefront.cache import CacheManager
from storefront.clients.documents import Document
from storefront.config import get_settings
from storefront.errors import ApiError, ErrorCategory, classify_error, network_error

logger = structlog.get_logger(__name__)

CACHE_FIRST = "cache-first"
NETWORK_ONLY = "network-only"
CACHE_AND_NETWORK = "cache-and-network"

FETCH_POLICIES = (CACHE_FIRST, NETWORK_ONLY, CACHE_AND_NETWORK)


class GraphQLClient:
    """Async GraphQL client sharing the process-wide HTTP pool"""

    def __init__(
        self,
        http: httpx.AsyncClient,
        url: Optional[str] = None,
        token: Optional[str] = None,
        cache: Optional[CacheManager] = None,
    ):
        settings = get_settings()
        self._http = http
        self.url = url or settings.backend.graphql_url
        self.token = token
        self.cache = cache or CacheManager("graphql", default_ttl=settings.cache.query_ttl)
        self.default_policy = settings.cache.default_fetch_policy

    def bind(self, token: Optional[str]) -> "GraphQLClient":
        return GraphQLClient(self._http, self.url, token, self.cache)

    def _cache_key(self, document: Document, variables: Dict[str, Any]) -> str:
        # Results are per caller; the token fingerprint keeps users apart
        raw = json.dumps({"token": self.token, "variables": variables}, sort_keys=True, default=str)
        digest = hashlib.sha256(raw.encode()).hexdigest()[:24]
        return f"{document.fields[0]}:{document.name}:{digest}"

    async def execute(self, document: Document, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Send a document and return its ``data``.

        Raises:
            ApiError: transport failure, HTTP error, or a non-empty ``errors``
                array in the response
        """
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        payload = {"query": document.text, "variables": variables or {}}
        try:
            response = await self._http.post(self.url, json=payload, headers=headers)
        except httpx.TransportError as e:
            raise ApiError(network_error(e)) from e

        try:
            body = response.json() if response.content else None
        except ValueError:
            body = None

        if response.is_error:
            raise ApiError(classify_error(body, response.status_code))

        if not isinstance(body, dict):
            raise ApiError(classify_error(body, response.status_code))

        if body.get("errors"):
            error = classify_error(body["errors"], response.status_code)
            logger.info(
                "GraphQL operation returned errors",
                operation=document.name,
                category=error.category.value,
            )
            raise ApiError(error)

        return body.get("data") or {}

    async def query(
        self,
        document: Document,
        variables: Optional[Dict[str, Any]] = None,
        fetch_policy: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Run a query under ``fetch_policy`` (defaults to the configured policy)"""
        policy = fetch_policy or self.default_policy
        if policy not in FETCH_POLICIES:
            raise ValueError(f"Unknown fetch policy: {policy}")

        variables = {k: v for k, v in (variables or {}).items() if v is not None}
        key = self._cache_key(document, variables)

        if policy == CACHE_FIRST:
            cached = await self.cache.get(key)
            if cached is not None:
                logger.debug("GraphQL cache hit", operation=document.name)
                return cached

        try:
            data = await self.execute(document, variables)
        except ApiError as e:
            if policy == CACHE_AND_NETWORK and e.category == ErrorCategory.NETWORK:
                cached = await self.cache.get(key)
                if cached is not None:
                    logger.warning("Serving cached GraphQL result after network failure", operation=document.name)
                    return cached
            raise

        await self.cache.set(key, data)
        return data

    async def mutate(self, document: Document, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run a mutation and invalidate the cached root fields it affects"""
        data = await self.execute(document, variables)
        await self.invalidate(*document.fields)
        return data

    async def invalidate(self, *fields: str) -> int:
        removed = 0
        for name in fields:
            removed += await self.cache.invalidate(f"{name}:*")
        if removed:
            logger.debug("GraphQL cache invalidated", fields=fields, removed=removed)
        return removed
