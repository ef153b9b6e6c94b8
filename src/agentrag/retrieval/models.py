"""
Core records shared by the chunker, the vector store client and the retriever.

Payload keys stored in Qdrant are camelCase so that points written by earlier
deployments stay searchable and filterable.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class DocumentType(str, Enum):
    """Kind of source a document was acquired from."""

    FILE = "file"
    URL = "url"
    WEBSITE = "website"


class Language(str, Enum):
    """Coarse language bucket attached to chunks for search filtering."""

    ENGLISH = "english"
    ROMANCE = "romance"
    GERMAN = "german"
    RUSSIAN = "russian"
    GREEK = "greek"
    CHINESE = "chinese"
    JAPANESE = "japanese"
    KOREAN = "korean"
    ARABIC = "arabic"


class PageType(str, Enum):
    """Category of a crawled website page, used for ranking boosts."""

    DOWNLOAD = "download"
    DOCUMENTATION = "documentation"
    PRICING = "pricing"
    CONTACT = "contact"
    FEATURES = "features"
    ABOUT = "about"

    @property
    def label(self) -> str:
        """Display label, e.g. "Pricing" in a legacy "Pricing Page:" prefix."""
        return self.value.capitalize()


@dataclass
class Document:
    """Already-extracted plain text handed over by the acquisition layer."""

    agent_id: str
    document_id: str
    type: DocumentType
    title: str
    raw_text: str
    source_url: Optional[str] = None


@dataclass
class Chunk:
    """A window of a document's text, the unit of embedding and retrieval."""

    text: str
    """The text content of the chunk."""

    index: int
    """Zero-based position of the chunk within its document."""

    source_url: str = ""
    """Page URL for website chunks, document source otherwise."""

    language: Language = Language.ENGLISH
    """Language bucket detected on the cleaned document text."""

    page_type: Optional[PageType] = None
    """Page category for website chunks, if one could be inferred."""


@dataclass
class Point:
    """Stored unit in the vector index."""

    id: str
    vector: list[float]
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_chunk(
        cls,
        point_id: str,
        vector: list[float],
        chunk: Chunk,
        document: Document,
    ) -> "Point":
        """Build a point whose payload carries chunk and document metadata."""
        payload: dict[str, Any] = {
            "text": chunk.text,
            "agentId": document.agent_id,
            "documentId": document.document_id,
            "documentType": document.type.value,
            "documentTitle": document.title,
            "chunkIndex": chunk.index,
            "language": chunk.language.value,
            "source": chunk.source_url or document.source_url or "",
            "originalId": f"{document.document_id}_chunk_{chunk.index}",
        }
        if chunk.page_type is not None:
            payload["pageType"] = chunk.page_type.value
        return cls(id=point_id, vector=vector, payload=payload)

    def to_qdrant(self) -> dict[str, Any]:
        """Wire representation for the points upsert endpoint."""
        return {"id": self.id, "vector": self.vector, "payload": self.payload}


_RESULT_METADATA_KEYS = (
    "agentId",
    "documentId",
    "documentType",
    "documentTitle",
    "chunkIndex",
    "language",
    "source",
    "pageType",
)


@dataclass
class SearchResult:
    """A retrieved chunk with its (possibly boosted) similarity score."""

    text: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_hit(cls, hit: dict[str, Any]) -> "SearchResult":
        """Build a result from a raw Qdrant search hit."""
        payload = hit.get("payload") or {}
        return cls(
            text=payload.get("text", ""),
            score=float(hit.get("score", 0.0)),
            metadata={key: payload.get(key) for key in _RESULT_METADATA_KEYS},
        )


@dataclass
class SearchFilters:
    """Optional conjunctive filters applied on top of the agent filter."""

    document_type: Optional[DocumentType] = None
    language: Optional[str] = None

    def to_conditions(self) -> list[dict[str, Any]]:
        conditions: list[dict[str, Any]] = []
        if self.document_type is not None:
            conditions.append({"key": "documentType", "match": {"value": self.document_type.value}})
        if self.language:
            conditions.append({"key": "language", "match": {"value": self.language}})
        return conditions


@dataclass
class CollectionInfo:
    exists: bool
    points_count: Optional[int] = None
    vectors_count: Optional[int] = None


@dataclass
class DocumentStatus:
    in_rag: bool
    chunks_count: int


@dataclass
class HealthStatus:
    """Reachability of the store and readiness of the embedding model."""

    store_connected: bool
    model_loaded: bool
    model_load_seconds: Optional[float] = None
    """One-time model load latency, reported apart from inference latency."""

    error: Optional[str] = None


@dataclass
class IngestionResult:
    chunks_created: int
    collection_name: str
