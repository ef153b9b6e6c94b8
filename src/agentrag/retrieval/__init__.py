"""
Retrieval components of the RAG engine.

Components:
    - chunker: Split documents into overlapping word windows with provenance
    - language: Coarse language bucketing for chunk metadata
    - embeddings: Local and remote sentence embedders
    - vector_store: Qdrant collections and points over HTTP
    - query_processor: Stop-word removal and intent expansion
    - retriever: Search plus page-type reranking
    - service: RAGService facade
"""

from agentrag.retrieval.chunker import chunk_text, chunk_website_content
from agentrag.retrieval.embeddings import Embedder, LocalEmbedder, RemoteEmbedder
from agentrag.retrieval.models import (
    Chunk,
    Document,
    DocumentType,
    Language,
    PageType,
    SearchFilters,
    SearchResult,
)
from agentrag.retrieval.retriever import Retriever
from agentrag.retrieval.service import RAGService
from agentrag.retrieval.vector_store import QdrantVectorStore

__all__ = [
    "Chunk",
    "Document",
    "DocumentType",
    "Embedder",
    "Language",
    "LocalEmbedder",
    "PageType",
    "QdrantVectorStore",
    "RAGService",
    "RemoteEmbedder",
    "Retriever",
    "SearchFilters",
    "SearchResult",
    "chunk_text",
    "chunk_website_content",
]
