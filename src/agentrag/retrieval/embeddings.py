"""
Embedding generation for document chunks and queries.

Two backends share one contract (384-dimension, mean-pooled, L2-normalized
vectors):
    - LocalEmbedder: multilingual sentence-transformers model loaded in-process
    - RemoteEmbedder: HuggingFace-compatible feature-extraction endpoint

The model is loaded once per embedder instance and only read afterwards,
so the load guard is the only synchronisation needed.
"""

import asyncio
import logging
import threading
import time
from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

import httpx
import numpy as np
from numpy.typing import NDArray
from tenacity import retry_if_exception

from agentrag.config import settings
from agentrag.exceptions import ModelError
from agentrag.retrieval.retry import RetryPolicy

if TYPE_CHECKING:
    from sentence_transformers import SentenceTransformer

logger = logging.getLogger(__name__)


@runtime_checkable
class Embedder(Protocol):
    """Structural type shared by the embedding backends."""

    model_name: str
    dimension: int

    @property
    def is_loaded(self) -> bool: ...

    @property
    def load_seconds(self) -> Optional[float]: ...

    def initialize(self) -> None: ...

    async def aembed(self, text: str) -> list[float]: ...


def _normalize_embeddings(embeddings: NDArray[np.float32]) -> NDArray[np.float32]:
    """
    Normalize embeddings to unit length for cosine similarity.

    Args:
        embeddings: Array of shape (n, dimension)

    Returns:
        Normalized embeddings of same shape
    """
    norms = np.linalg.norm(embeddings, axis=1, keepdims=True)
    # Avoid division by zero
    norms = np.where(norms == 0, 1, norms)
    return (embeddings / norms).astype(np.float32)


class LocalEmbedder:
    """
    Generate embeddings with a local sentence-transformers model.

    The model is loaded lazily on first use. ``initialize()`` is idempotent
    and safe to call from several threads at once; only the first caller
    pays the load latency, which is recorded in ``load_seconds``.

    Example:
        >>> embedder = LocalEmbedder()
        >>> vector = embedder.embed_query("Wie setze ich mein Passwort zurück?")
        >>> vector.shape
        (384,)
    """

    def __init__(
        self,
        model: Optional[str] = None,
        dimension: Optional[int] = None,
        timeout: Optional[float] = None,
        device: Optional[str] = None,
    ) -> None:
        """
        Initialize the embedder without loading the model.

        Args:
            model: sentence-transformers model ID (default from settings)
            dimension: Expected vector dimension (default from settings)
            timeout: Seconds allowed for one async inference call
            device: Torch device, e.g. "cpu" (auto-detected when None)
        """
        self.model_name = model or settings.embedding_model
        self.dimension = dimension or settings.embedding_dimension
        self.timeout = timeout or settings.embedding_timeout
        self.device = device
        self.model: "SentenceTransformer | None" = None
        self._load_seconds: Optional[float] = None
        self._init_lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self.model is not None

    @property
    def load_seconds(self) -> Optional[float]:
        """Wall-clock time the one-time model load took, None until loaded."""
        return self._load_seconds

    def initialize(self) -> None:
        """
        Load the model exactly once.

        Raises:
            ModelError: If the model cannot be loaded or has the wrong dimension
        """
        if self.model is not None:
            return
        with self._init_lock:
            if self.model is not None:
                return

            logger.info(f"Loading embedding model: {self.model_name} (this may take a while)...")
            started = time.perf_counter()
            try:
                from sentence_transformers import SentenceTransformer

                model = SentenceTransformer(self.model_name, device=self.device)
            except Exception as e:
                raise ModelError(
                    f"Failed to load embedding model {self.model_name}: {e}",
                    details={"model": self.model_name},
                ) from e

            model_dimension = model.get_sentence_embedding_dimension()
            if model_dimension != self.dimension:
                raise ModelError(
                    f"Embedding model {self.model_name} produces {model_dimension}-dimension "
                    f"vectors, expected {self.dimension}",
                    details={"model": self.model_name},
                )

            self._load_seconds = time.perf_counter() - started
            self.model = model
            logger.info(f"Embedding model loaded in {self._load_seconds:.1f}s")

    def embed_texts(self, texts: list[str]) -> NDArray[np.float32]:
        """
        Generate embeddings for a list of texts.

        Args:
            texts: List of texts to embed

        Returns:
            Array of shape (len(texts), dimension)

        Raises:
            ModelError: If loading or inference fails
        """
        if not texts:
            return np.empty((0, self.dimension), dtype=np.float32)

        self.initialize()
        assert self.model is not None

        try:
            embeddings = self.model.encode(
                texts,
                convert_to_numpy=True,
                normalize_embeddings=True,
                show_progress_bar=False,
            )
        except Exception as e:
            raise ModelError(f"Failed to generate embedding: {e}") from e

        return np.asarray(embeddings, dtype=np.float32).reshape(len(texts), -1)

    def embed_query(self, query: str) -> NDArray[np.float32]:
        """
        Generate embedding for a single text.

        Returns:
            Array of shape (dimension,)
        """
        return self.embed_texts([query])[0]

    async def aembed(self, text: str) -> list[float]:
        """
        Embed one text off the event loop.

        A cold model is loaded first without a deadline; only inference,
        which runs in a worker thread, is bounded by ``timeout``.

        Raises:
            ModelError: If loading or inference fails, or inference times out
        """
        if not self.is_loaded:
            await asyncio.to_thread(self.initialize)
        try:
            vector = await asyncio.wait_for(
                asyncio.to_thread(self.embed_query, text),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise ModelError(f"Embedding inference timed out after {self.timeout}s") from e
        return vector.tolist()


def _is_rate_limited(exc: BaseException) -> bool:
    return isinstance(exc, httpx.HTTPStatusError) and exc.response.status_code == 429


class RemoteEmbedder:
    """
    Generate embeddings using a HuggingFace-compatible feature-extraction API.

    Used when the model is served outside the process. Rate limits (429)
    are retried with exponential backoff; everything else fails fast.

    Example:
        >>> embedder = RemoteEmbedder(api_key="hf_...")
        >>> vectors = await embedder.aembed_texts(["What does it cost?"])
        >>> vectors.shape
        (1, 384)
    """

    def __init__(
        self,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        rate_limit_policy: Optional[RetryPolicy] = None,
    ) -> None:
        """
        Args:
            model: Model ID appended to the endpoint URL (default from settings)
            api_key: Bearer token (default from settings)
            base_url: Feature-extraction endpoint (default from settings)
            timeout: Request timeout in seconds
            rate_limit_policy: Retry policy for 429 responses
        """
        self.model_name = model or settings.embedding_model
        self.api_key = api_key or settings.hf_api_key_value
        self.base_url = (base_url or settings.embedding_api_url).rstrip("/")
        self.dimension = settings.embedding_dimension
        self.timeout = timeout or settings.embedding_timeout
        self.rate_limit_policy = rate_limit_policy or RetryPolicy(
            "embedding-rate-limit", max_attempts=3, base_delay=1.0, backoff="exponential"
        )
        self._ready = False
        self._load_seconds: Optional[float] = None

    @property
    def url(self) -> str:
        return f"{self.base_url}/{self.model_name}"

    @property
    def is_loaded(self) -> bool:
        """True once the endpoint has answered with well-formed vectors."""
        return self._ready

    @property
    def load_seconds(self) -> Optional[float]:
        """Latency of the first successful call (it includes a cold model start)."""
        return self._load_seconds

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    @staticmethod
    def _payload(texts: list[str]) -> dict:
        return {
            "inputs": texts,
            "options": {"wait_for_model": True},
            "normalize": True,
        }

    def _parse(self, response: httpx.Response) -> NDArray[np.float32]:
        embeddings = np.array(response.json(), dtype=np.float32)
        if embeddings.ndim != 2 or embeddings.shape[1] != self.dimension:
            raise ModelError(
                f"Embedding endpoint returned shape {embeddings.shape}, "
                f"expected (n, {self.dimension})"
            )
        return embeddings

    def _mark_ready(self, started: float) -> None:
        if not self._ready:
            self._load_seconds = time.perf_counter() - started
            self._ready = True

    def initialize(self) -> None:
        """
        Check the endpoint with a one-word embedding.

        Raises:
            ModelError: If the endpoint is unreachable, errors or returns malformed vectors
        """
        if self._ready:
            return

        started = time.perf_counter()
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self.url, json=self._payload(["ping"]), headers=self._headers())
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ModelError(
                f"Embedding endpoint returned {e.response.status_code}",
                details={"model": self.model_name},
            ) from e
        except httpx.HTTPError as e:
            raise ModelError(f"Embedding endpoint unreachable: {e}") from e

        self._parse(response)
        self._mark_ready(started)
        logger.info(f"Embedding endpoint ready for {self.model_name} ({self._load_seconds:.1f}s)")

    async def _post(self, client: httpx.AsyncClient, texts: list[str]) -> httpx.Response:
        response = await client.post(self.url, json=self._payload(texts), headers=self._headers())
        response.raise_for_status()
        return response

    async def aembed_texts(self, texts: list[str]) -> NDArray[np.float32]:
        """
        Embed a batch of texts.

        Returns:
            Array of shape (len(texts), dimension)

        Raises:
            ModelError: On HTTP errors, network errors or malformed vectors
        """
        if not texts:
            return np.empty((0, self.dimension), dtype=np.float32)

        started = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                async for attempt in self.rate_limit_policy.retrying(
                    retry=retry_if_exception(_is_rate_limited)
                ):
                    with attempt:
                        response = await self._post(client, texts)
        except httpx.HTTPStatusError as e:
            raise ModelError(
                f"Embedding endpoint returned {e.response.status_code}",
                details={"model": self.model_name},
            ) from e
        except httpx.HTTPError as e:
            raise ModelError(f"Embedding endpoint unreachable: {e}") from e

        embeddings = self._parse(response)
        self._mark_ready(started)
        return _normalize_embeddings(embeddings)

    async def aembed(self, text: str) -> list[float]:
        vectors = await self.aembed_texts([text])
        return vectors[0].tolist()
