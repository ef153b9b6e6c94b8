"""
Pytest configuration and shared fixtures.

Provides common fixtures for:
    - Configuration with test values
    - A deterministic embedder that needs no model download
    - A vector store client with all delays disabled
    - Sample documents
"""

import hashlib
import re
from typing import Optional
from unittest.mock import AsyncMock, MagicMock, patch

import numpy as np
import pytest

from agentrag.retrieval.models import CollectionInfo, HealthStatus
from agentrag.retrieval.retry import RetryPolicy
from agentrag.retrieval.vector_store import QdrantVectorStore

QDRANT_URL = "http://qdrant.test:6333"


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture
def mock_settings():
    """Provide test settings without requiring .env file."""
    with patch.dict(
        "os.environ",
        {
            "QDRANT_URL": "http://qdrant.internal:6333/",
            "QDRANT_API_KEY": "test-qdrant-key",
            "CHUNK_SIZE": "400",
            "CHUNK_OVERLAP": "40",
            "LOG_LEVEL": "DEBUG",
        },
    ):
        from agentrag.config import Settings
        yield Settings(_env_file=None)


@pytest.fixture
def test_settings():
    """Default settings, isolated from any local .env file."""
    from agentrag.config import Settings

    return Settings(_env_file=None)


# =============================================================================
# Embedder Fixtures
# =============================================================================

class FakeEmbedder:
    """
    Deterministic bag-of-words embedder.

    Each distinct lower-cased word sets one of 384 buckets (md5 of the word),
    and the vector is L2-normalized, so texts sharing words have a positive
    cosine similarity and unrelated texts score near zero.
    """

    model_name = "fake-bag-of-words"
    dimension = 384

    def __init__(self) -> None:
        self.calls: list[str] = []
        self._loaded = False

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def load_seconds(self) -> Optional[float]:
        return 0.01 if self._loaded else None

    def initialize(self) -> None:
        self._loaded = True

    def embed_query(self, text: str) -> np.ndarray:
        vector = np.zeros(self.dimension, dtype=np.float32)
        for word in set(re.findall(r"\w+", text.lower())):
            bucket = int(hashlib.md5(word.encode()).hexdigest()[:8], 16) % self.dimension
            vector[bucket] = 1.0
        norm = np.linalg.norm(vector)
        if norm == 0:
            vector[0] = 1.0
            return vector
        return vector / norm

    async def aembed(self, text: str) -> list[float]:
        self.initialize()
        self.calls.append(text)
        return self.embed_query(text).tolist()


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


# =============================================================================
# Vector Store Fixtures
# =============================================================================

@pytest.fixture
def store() -> QdrantVectorStore:
    """Store client for pytest-httpx tests, with every sleep disabled."""
    return QdrantVectorStore(
        QDRANT_URL,
        batch_size=10,
        batch_delay=0.0,
        health_gate=RetryPolicy("health-gate", max_attempts=2, base_delay=0.0),
        delete_settle_seconds=0.0,
        delete_check=RetryPolicy("delete-check", max_attempts=2, base_delay=0.0, backoff="constant"),
    )


@pytest.fixture
def mock_store():
    """A QdrantVectorStore stand-in whose async methods are AsyncMocks."""
    mock = MagicMock(spec=QdrantVectorStore)
    mock.collection_name.side_effect = lambda agent_id: f"agent_{agent_id}"
    mock.ensure_collection = AsyncMock(side_effect=lambda agent_id: f"agent_{agent_id}")
    mock.upsert_points = AsyncMock(side_effect=lambda name, points: len(points))
    mock.delete_document_points = AsyncMock(return_value=None)
    mock.get_collection_info = AsyncMock(
        return_value=CollectionInfo(exists=True, points_count=3, vectors_count=3)
    )
    mock.count_document_points = AsyncMock(return_value=0)
    mock.search = AsyncMock(return_value=[])
    mock.health_check = AsyncMock(
        return_value=HealthStatus(store_connected=True, model_loaded=True, model_load_seconds=1.5)
    )
    mock.close = AsyncMock(return_value=None)
    return mock


def _make_hit(text: str, score: float, **payload) -> dict:
    base = {
        "text": text,
        "agentId": "a1",
        "documentId": "doc-1",
        "documentType": "website",
        "documentTitle": "Example",
        "chunkIndex": 0,
        "language": "english",
        "source": "https://example.com",
    }
    base.update(payload)
    return {"id": f"id-{text[:8]}", "score": score, "payload": base}


@pytest.fixture
def make_hit():
    """Build raw Qdrant search hits: make_hit(text, score, **payload)."""
    return _make_hit


# =============================================================================
# Sample Data Fixtures
# =============================================================================

@pytest.fixture
def faq_text() -> str:
    """1200-word FAQ: a password question in the first half, shipping in the second."""
    q1 = "Q1 How do I reset my password? Open settings and choose reset password."
    q2 = "Q2 Where is my order? Track shipping status online."
    first = q1.split() + ["lorem"] * (600 - len(q1.split()))
    second = q2.split() + ["ipsum"] * (600 - len(q2.split()))
    return " ".join(first + second)


@pytest.fixture
def website_text() -> str:
    """Combined crawl output with a summary and three pages."""
    return (
        "=== WEBSITE CONTENT ===\n"
        "Crawled 3 pages from example.com\n\n"
        "--- Page 1: Pricing ---\n"
        "URL: https://example.com/pricing\n"
        "Our plans start at ten dollars. Monthly cost is billed upfront.\n\n"
        "--- Page 2: About Us ---\n"
        "URL: https://example.com/about\n"
        "The company was founded by a small team.\n\n"
        "--- Page 3: Empty ---\n"
        "URL: https://example.com/empty\n"
        "   \n"
    )
