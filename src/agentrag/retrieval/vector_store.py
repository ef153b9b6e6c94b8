"""
Qdrant vector store client over the HTTP API.

One collection per agent (``agent_{agentId}``), 384-dimension cosine vectors.
Transport failures surface as StoreUnavailableError and non-2xx answers as
StoreRejectedError; neither is retried silently. The only retries are the
pre-insertion health gate and the post-delete responsiveness check, both
declared as RetryPolicy instances.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

import httpx
from tenacity import retry_if_exception_type

from agentrag.exceptions import (
    NotFoundError,
    StoreRejectedError,
    StoreUnavailableError,
    ValidationError,
)
from agentrag.retrieval.models import CollectionInfo, HealthStatus, Point
from agentrag.retrieval.retry import RetryPolicy

if TYPE_CHECKING:
    from agentrag.config import Settings
    from agentrag.retrieval.embeddings import Embedder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreTimeouts:
    """Per-request-kind timeouts in seconds."""

    collection_get: float = 10.0
    collection_create: float = 15.0
    upsert: float = 60.0
    search: float = 30.0
    delete: float = 30.0
    scroll: float = 30.0
    health: float = 5.0


def _match(key: str, value: Any) -> dict[str, Any]:
    return {"key": key, "match": {"value": value}}


class QdrantVectorStore:
    """
    Async client for the Qdrant collections and points endpoints.

    Example:
        >>> store = QdrantVectorStore("http://localhost:6333")
        >>> name = await store.ensure_collection("42")
        >>> await store.upsert_points(name, points)
        >>> await store.close()
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        vector_size: int = 384,
        distance: str = "Cosine",
        timeouts: Optional[StoreTimeouts] = None,
        batch_size: int = 10,
        batch_delay: float = 0.1,
        scroll_limit: int = 1000,
        health_gate: Optional[RetryPolicy] = None,
        delete_settle_seconds: float = 2.0,
        delete_check: Optional[RetryPolicy] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Args:
            base_url: Qdrant HTTP API base URL
            api_key: Optional API key sent as the ``api-key`` header
            vector_size: Dimension of stored vectors
            distance: Qdrant distance metric for new collections
            timeouts: Per-request-kind timeouts
            batch_size: Points per upsert request
            batch_delay: Seconds to pause between upsert batches
            scroll_limit: Hard cap when enumerating a document's points
            health_gate: Policy for the readiness ping before insertion
            delete_settle_seconds: Pause after a delete before probing
            delete_check: Policy for the post-delete responsiveness check
            client: Pre-built HTTP client (owned by the caller)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.vector_size = vector_size
        self.distance = distance
        self.timeouts = timeouts or StoreTimeouts()
        self.batch_size = max(1, batch_size)
        self.batch_delay = batch_delay
        self.scroll_limit = scroll_limit
        self.health_gate = health_gate or RetryPolicy("health-gate", max_attempts=5, base_delay=1.0)
        self.delete_settle_seconds = delete_settle_seconds
        self.delete_check = delete_check or RetryPolicy(
            "delete-check", max_attempts=3, base_delay=1.0, backoff="constant"
        )
        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_settings(cls, settings: "Settings") -> "QdrantVectorStore":
        """Build a store with every knob taken from application settings."""
        return cls(
            base_url=settings.qdrant_url,
            api_key=settings.qdrant_api_key_value,
            vector_size=settings.embedding_dimension,
            timeouts=StoreTimeouts(
                collection_get=settings.collection_get_timeout,
                collection_create=settings.collection_create_timeout,
                upsert=settings.upsert_timeout,
                search=settings.search_timeout,
                delete=settings.delete_timeout,
                scroll=settings.scroll_timeout,
                health=settings.health_timeout,
            ),
            batch_size=settings.upsert_batch_size,
            batch_delay=settings.batch_delay_seconds,
            scroll_limit=settings.scroll_limit,
            health_gate=RetryPolicy(
                "health-gate",
                max_attempts=settings.health_gate_attempts,
                base_delay=settings.health_gate_backoff_seconds,
            ),
            delete_settle_seconds=settings.delete_settle_seconds,
            delete_check=RetryPolicy(
                "delete-check",
                max_attempts=settings.delete_check_attempts,
                base_delay=settings.delete_check_interval_seconds,
                backoff="constant",
            ),
        )

    @staticmethod
    def collection_name(agent_id: str) -> str:
        return f"agent_{agent_id}"

    # ==========================================================================
    # Transport
    # ==========================================================================

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"api-key": self.api_key} if self.api_key else {}
            self._client = httpx.AsyncClient(headers=headers)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this store created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        *,
        timeout: float,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        """
        Send one request and map transport failures to StoreUnavailableError.

        Non-2xx responses are returned as-is; callers decide which statuses
        are acceptable.
        """
        url = f"{self.base_url}{path}"
        try:
            return await self._get_client().request(
                method, url, json=json, params=params, timeout=timeout
            )
        except httpx.TimeoutException as e:
            raise StoreUnavailableError(
                f"{method} {path} timed out after {timeout}s",
                reason="timeout",
                details={"url": url},
            ) from e
        except httpx.TransportError as e:
            raise StoreUnavailableError(
                f"{method} {path} failed: {e}",
                reason="connection",
                details={"url": url},
            ) from e

    @staticmethod
    def _raise_for_status(response: httpx.Response, action: str) -> None:
        if response.is_success:
            return
        logger.error(f"{action} failed with status {response.status_code}: {response.text[:500]}")
        raise StoreRejectedError(
            f"{action} failed with status {response.status_code}",
            status_code=response.status_code,
            body=response.text,
        )

    # ==========================================================================
    # Health
    # ==========================================================================

    async def ping(self) -> bool:
        """Return True when the store answers its root endpoint with 2xx."""
        try:
            response = await self._request("GET", "/", timeout=self.timeouts.health)
        except StoreUnavailableError as e:
            logger.debug(f"Vector store ping failed: {e}")
            return False
        return response.is_success

    async def _require_healthy(self) -> None:
        if not await self.ping():
            raise StoreUnavailableError("Vector store health check failed", reason="health_gate")

    async def wait_until_ready(self) -> None:
        """
        Block until the store answers its health ping.

        Raises:
            StoreUnavailableError: If the store stays unhealthy for every attempt
        """
        try:
            async for attempt in self.health_gate.retrying(
                retry=retry_if_exception_type(StoreUnavailableError)
            ):
                with attempt:
                    await self._require_healthy()
        except StoreUnavailableError as e:
            raise StoreUnavailableError(
                f"Vector store health check failed after {self.health_gate.max_attempts} attempts. "
                f"Please verify Qdrant is running at {self.base_url}",
                reason="health_gate",
                details={"url": self.base_url},
            ) from e

    async def health_check(self, embedder: "Optional[Embedder]" = None) -> HealthStatus:
        """
        Report store reachability and, if given, embedding model readiness.

        Triggers model initialization when the model is not loaded yet.
        Never raises; failures are reported in the returned status.
        """
        store_connected = await self.ping()
        if embedder is None:
            return HealthStatus(store_connected=store_connected, model_loaded=False)

        error = None
        try:
            if not embedder.is_loaded:
                await asyncio.to_thread(embedder.initialize)
        except Exception as e:
            logger.error(f"Embedding model initialization failed: {e}")
            error = str(e)

        if not store_connected and error is None:
            error = f"Vector store at {self.base_url} is not reachable"
        return HealthStatus(
            store_connected=store_connected,
            model_loaded=embedder.is_loaded,
            model_load_seconds=embedder.load_seconds,
            error=error,
        )

    # ==========================================================================
    # Collections
    # ==========================================================================

    async def ensure_collection(self, agent_id: str) -> str:
        """
        Create the agent's collection if it does not exist yet.

        Safe to call repeatedly and concurrently: a 409 on create means
        another caller won the race and counts as success.

        Returns:
            The collection name

        Raises:
            StoreRejectedError: On unexpected statuses from Qdrant
            StoreUnavailableError: On timeouts or transport errors
        """
        name = self.collection_name(agent_id)
        response = await self._request(
            "GET", f"/collections/{name}", timeout=self.timeouts.collection_get
        )
        if response.is_success:
            logger.debug(f"Collection {name} already exists")
            return name
        if response.status_code != 404:
            self._raise_for_status(response, f"Lookup of collection {name}")

        logger.info(f"Creating collection {name}")
        response = await self._request(
            "PUT",
            f"/collections/{name}",
            timeout=self.timeouts.collection_create,
            json={
                "vectors": {"size": self.vector_size, "distance": self.distance},
                "optimizers_config": {"default_segment_number": 2},
                "replication_factor": 1,
            },
        )
        if response.status_code == 409:
            logger.info(f"Collection {name} was created concurrently")
            return name
        self._raise_for_status(response, f"Creation of collection {name}")
        logger.info(f"Created collection {name}")
        return name

    async def get_collection_info(self, agent_id: str) -> CollectionInfo:
        """
        Fetch point and vector counts for the agent's collection.

        Returns ``exists=False`` for a missing collection; other failures raise.
        """
        name = self.collection_name(agent_id)
        response = await self._request(
            "GET", f"/collections/{name}", timeout=self.timeouts.collection_get
        )
        if response.status_code == 404:
            return CollectionInfo(exists=False)
        self._raise_for_status(response, f"Lookup of collection {name}")

        result = response.json().get("result") or {}
        return CollectionInfo(
            exists=True,
            points_count=result.get("points_count"),
            vectors_count=result.get("vectors_count"),
        )

    # ==========================================================================
    # Points
    # ==========================================================================

    def validate_points(self, points: list[Point]) -> None:
        """
        Check ids and vector dimensions before anything is sent.

        Raises:
            ValidationError: Naming the batch that holds the first bad point
        """
        for position, point in enumerate(points):
            batch = position // self.batch_size + 1
            if not point.id:
                raise ValidationError(
                    f"Point {position} in batch {batch} has no id",
                    field="id",
                    details={"batch": batch},
                )
            if not point.vector or len(point.vector) != self.vector_size:
                size = len(point.vector) if point.vector else 0
                raise ValidationError(
                    f"Point {point.id} in batch {batch} has a {size}-dimension vector, "
                    f"expected {self.vector_size}",
                    field="vector",
                    details={"batch": batch},
                )

    async def upsert_points(self, collection_name: str, points: list[Point]) -> int:
        """
        Write points in sequential batches after a single health gate.

        Batches already written stay written if a later batch fails.

        Returns:
            Number of points written

        Raises:
            ValidationError: If any point is malformed (nothing is sent)
            StoreUnavailableError: If the store is down or a batch times out
            StoreRejectedError: If Qdrant rejects a batch
        """
        if not points:
            return 0

        self.validate_points(points)
        await self.wait_until_ready()

        batches = [points[i : i + self.batch_size] for i in range(0, len(points), self.batch_size)]
        total = len(batches)
        for number, batch in enumerate(batches, start=1):
            try:
                response = await self._request(
                    "PUT",
                    f"/collections/{collection_name}/points",
                    timeout=self.timeouts.upsert,
                    params={"wait": "true"},
                    json={"points": [point.to_qdrant() for point in batch]},
                )
            except StoreUnavailableError as e:
                reachable = await self.ping()
                state = "reachable but did not answer in time" if reachable else "unreachable"
                raise StoreUnavailableError(
                    f"Upsert of batch {number}/{total} into {collection_name} failed: "
                    f"vector store is {state}",
                    reason=e.reason,
                    details={"collection": collection_name, "batch": number},
                ) from e
            self._raise_for_status(response, f"Upsert of batch {number}/{total} into {collection_name}")
            logger.debug(f"Upserted batch {number}/{total} ({len(batch)} points)")

            if number < total and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)

        logger.info(f"Upserted {len(points)} points into {collection_name}")
        return len(points)

    async def delete_document_points(self, agent_id: str, document_id: str) -> None:
        """
        Delete every point of one document, then wait out the consistency window.

        A missing collection is a no-op. The store is checked after a settle
        delay; if it stays unresponsive a warning is logged and the delete
        still counts as done.
        """
        info = await self.get_collection_info(agent_id)
        if not info.exists:
            logger.info(f"Collection for agent {agent_id} does not exist, nothing to delete")
            return

        name = self.collection_name(agent_id)
        response = await self._request(
            "POST",
            f"/collections/{name}/points/delete",
            timeout=self.timeouts.delete,
            params={"wait": "true"},
            json={"filter": {"must": [_match("agentId", agent_id), _match("documentId", document_id)]}},
        )
        self._raise_for_status(response, f"Delete of document {document_id} from {name}")
        logger.info(f"Deleted points of document {document_id} from {name}")

        if self.delete_settle_seconds > 0:
            await asyncio.sleep(self.delete_settle_seconds)
        try:
            async for attempt in self.delete_check.retrying(
                retry=retry_if_exception_type(StoreUnavailableError)
            ):
                with attempt:
                    await self._check_collection(name)
        except StoreUnavailableError:
            logger.warning(f"Collection {name} still not responsive after deleting document {document_id}")

    async def _check_collection(self, name: str) -> None:
        response = await self._request(
            "GET", f"/collections/{name}", timeout=self.timeouts.collection_get
        )
        if not response.is_success:
            raise StoreUnavailableError(
                f"Collection {name} answered {response.status_code}", reason="connection"
            )

    async def count_document_points(self, agent_id: str, document_id: str) -> int:
        """
        Count a document's points with a single capped scroll.

        Raises:
            NotFoundError: If the collection does not exist
        """
        name = self.collection_name(agent_id)
        response = await self._request(
            "POST",
            f"/collections/{name}/points/scroll",
            timeout=self.timeouts.scroll,
            json={
                "filter": {"must": [_match("agentId", agent_id), _match("documentId", document_id)]},
                "limit": self.scroll_limit,
                "with_payload": False,
                "with_vector": False,
            },
        )
        if response.status_code == 404:
            raise NotFoundError(name)
        self._raise_for_status(response, f"Scroll of {name}")
        result = response.json().get("result") or {}
        return len(result.get("points") or [])

    async def search(
        self,
        collection_name: str,
        vector: list[float],
        limit: int,
        conditions: list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        """
        Nearest-neighbour search restricted by a conjunctive filter.

        Returns:
            Raw hits (``id``, ``score``, ``payload``), best first

        Raises:
            NotFoundError: If the collection does not exist
        """
        response = await self._request(
            "POST",
            f"/collections/{collection_name}/points/search",
            timeout=self.timeouts.search,
            json={
                "vector": vector,
                "limit": limit,
                "with_payload": True,
                "filter": {"must": conditions},
            },
        )
        if response.status_code == 404:
            raise NotFoundError(collection_name)
        self._raise_for_status(response, f"Search in {collection_name}")
        return response.json().get("result") or []
