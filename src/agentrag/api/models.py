"""
Pydantic models for API request and response schemas.

These models provide automatic validation and OpenAPI documentation.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from agentrag.retrieval.models import DocumentType


class IngestRequest(BaseModel):
    """Request schema for document ingestion."""

    document_id: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Document identifier, unique per agent",
    )
    type: DocumentType = Field(
        default=DocumentType.FILE,
        description="Where the text came from",
    )
    title: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Document title",
        examples=["FAQ"],
    )
    text: str = Field(
        ...,
        min_length=1,
        description="Already-extracted plain text; website documents keep their page headers",
    )
    source: Optional[str] = Field(
        default=None,
        description="Source URL of the document",
    )


class IngestResponse(BaseModel):
    """Response schema for document ingestion."""

    chunks_created: int = Field(description="Number of chunks stored")
    collection_name: str = Field(description="Collection the chunks were written to")


class SearchRequest(BaseModel):
    """Request schema for the RAG search endpoint."""

    query: str = Field(
        ...,
        min_length=1,
        max_length=1000,
        description="Natural language query",
        examples=["how do I reset my password"],
    )
    limit: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Maximum number of chunks to return",
    )
    document_type: Optional[DocumentType] = Field(
        default=None,
        description="Only search chunks from documents of this type",
    )
    language: Optional[str] = Field(
        default=None,
        description="Only search chunks in this language bucket",
    )


class SearchHit(BaseModel):
    """One ranked chunk in a search response."""

    id: str
    text: str
    score: float
    relevance_percentage: int = Field(description="Score as a rounded percentage")
    document_title: Optional[str] = None
    document_type: Optional[str] = None
    chunk_index: int = Field(description="1-based position of the chunk in its document")
    source: Optional[str] = None
    language: Optional[str] = None
    page_type: Optional[str] = None
    rank: int


class DocumentSummary(BaseModel):
    """Per-document aggregate of the hits in a search response."""

    title: Optional[str]
    type: Optional[str]
    source: Optional[str]
    chunks: int
    best_score: float


class SearchResponse(BaseModel):
    """Response schema for the RAG search endpoint."""

    message: str
    query: str
    results: list[SearchHit] = Field(default_factory=list)
    total_results: int = 0
    total_chunks: int = Field(default=0, description="Points stored in the agent's collection")
    collection_exists: bool
    document_summary: list[DocumentSummary] = Field(default_factory=list)


class CollectionStatsResponse(BaseModel):
    """Response schema for collection statistics."""

    exists: bool
    collection_name: Optional[str] = None
    points_count: int = 0
    vectors_count: int = 0
    rag_available: bool


class DocumentStatusResponse(BaseModel):
    """Response schema for a document's RAG status."""

    document_id: str
    in_rag: bool
    chunks_count: int


class RAGHealthResponse(BaseModel):
    """Response schema for the /rag/health endpoint."""

    store_connected: bool
    store_url: str = Field(description="Store URL with the host hidden")
    model_loaded: bool
    model_name: str
    model_load_seconds: Optional[float] = None
    error: Optional[str] = None
    timestamp: datetime


class HealthResponse(BaseModel):
    """Response schema for the /health endpoint."""

    status: str = Field(
        description="Health status",
        examples=["healthy", "degraded"],
    )
    version: str = Field(
        description="API version",
    )
    store_connected: bool = Field(
        description="Whether the vector store answers",
    )
    model_loaded: bool = Field(
        description="Whether the embedding model is loaded",
    )


class ErrorResponse(BaseModel):
    """Schema for error responses."""

    error: str = Field(
        description="Error code",
        examples=["validation_error", "store_unavailable", "store_rejected", "model_error"],
    )
    message: str = Field(
        description="Human-readable error message",
    )
