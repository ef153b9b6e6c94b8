"""
Singleton resource management for the embedder, the store client and the service.

Provides cached instances of expensive resources that should only be
created once per application lifecycle. Uses the @lru_cache pattern (same
as the config.py settings singleton).

Key resources:
    - LocalEmbedder (sentence-transformer model, ~470MB, loaded lazily)
    - RemoteEmbedder (API client, instant)
    - QdrantVectorStore (pooled HTTP client)
    - RAGService (facade wiring the two together)

Usage:
    # In API handlers and CLI commands
    service = get_rag_service()

    # In tests (reset cache)
    clear_resource_cache()
"""

import logging
from functools import lru_cache

from agentrag.config import get_settings
from agentrag.retrieval.embeddings import Embedder, LocalEmbedder, RemoteEmbedder
from agentrag.retrieval.service import RAGService
from agentrag.retrieval.vector_store import QdrantVectorStore

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_embedder() -> Embedder:
    """
    Get or create the global embedder selected by USE_LOCAL_EMBEDDINGS.

    Construction is instant; the local model loads on first use.

    Example:
        >>> embedder = get_embedder()
        >>> vector = await embedder.aembed("reset my password")
    """
    settings = get_settings()
    if settings.use_local_embeddings:
        logger.info(f"Using local embedding model: {settings.embedding_model}")
        return LocalEmbedder(
            model=settings.embedding_model,
            dimension=settings.embedding_dimension,
            timeout=settings.embedding_timeout,
        )

    logger.info(f"Using remote embedding endpoint for model: {settings.embedding_model}")
    return RemoteEmbedder(
        model=settings.embedding_model,
        api_key=settings.hf_api_key_value,
        base_url=settings.embedding_api_url,
        timeout=settings.embedding_timeout,
    )


@lru_cache(maxsize=1)
def get_vector_store() -> QdrantVectorStore:
    """Get or create the global Qdrant client."""
    settings = get_settings()
    logger.info(f"Connecting vector store client to {settings.qdrant_url}")
    return QdrantVectorStore.from_settings(settings)


@lru_cache(maxsize=1)
def get_rag_service() -> RAGService:
    """
    Get or create the global RAG service.

    Also usable as a FastAPI dependency; override it in tests with
    ``app.dependency_overrides[get_rag_service]``.
    """
    return RAGService(get_embedder(), get_vector_store(), get_settings())


def clear_resource_cache() -> None:
    """
    Clear all cached resources.

    Used in tests to reset state between test cases. Does not close the
    store client; call ``await get_rag_service().close()`` first when it
    was used.
    """
    get_rag_service.cache_clear()
    get_vector_store.cache_clear()
    get_embedder.cache_clear()
    logger.debug("Resource cache cleared")
