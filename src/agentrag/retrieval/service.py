"""
RAG engine facade used by the ingestion layer, the agent runtime and the
operational endpoints.

Ingestion propagates every error so the caller can retry the whole
document. Retrieval never fails: any error is logged and turned into an
empty result list, since the agent must still answer from its base prompt.
Cancelling the asyncio task that runs an operation cancels its in-flight
requests; CancelledError is never swallowed here.
"""

import logging
import uuid
from typing import TYPE_CHECKING, Optional

from agentrag.exceptions import NotFoundError, ValidationError
from agentrag.retrieval.chunker import WEBSITE_CONTENT_MARKER, chunk_text, chunk_website_content
from agentrag.retrieval.embeddings import Embedder
from agentrag.retrieval.language import detect_language
from agentrag.retrieval.models import (
    Chunk,
    CollectionInfo,
    Document,
    DocumentStatus,
    DocumentType,
    HealthStatus,
    IngestionResult,
    Point,
    SearchFilters,
    SearchResult,
)
from agentrag.retrieval.retriever import Retriever
from agentrag.retrieval.sanitize import (
    normalize_whitespace,
    sanitize_content,
    sanitize_search_query,
    sanitize_text,
    sanitize_url,
)
from agentrag.retrieval.vector_store import QdrantVectorStore

if TYPE_CHECKING:
    from agentrag.config import Settings

logger = logging.getLogger(__name__)


def _require_id(value: str, field: str) -> str:
    cleaned = sanitize_text(str(value)) if value is not None else ""
    if not cleaned:
        raise ValidationError(f"{field} must not be empty", field=field)
    return cleaned


class RAGService:
    """
    Ingest, search, delete and inspect one agent's knowledge chunks.

    Example:
        >>> service = RAGService(LocalEmbedder(), QdrantVectorStore(url), settings)
        >>> await service.process_document("a1", "d1", text, type="file", title="FAQ")
        IngestionResult(chunks_created=3, collection_name='agent_a1')
        >>> await service.search_relevant_chunks("a1", "how do I reset my password")
    """

    def __init__(
        self,
        embedder: Embedder,
        store: QdrantVectorStore,
        settings: "Settings",
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.settings = settings
        self.retriever = Retriever(embedder, store, boost_factor=settings.page_boost_factor)

    # ==========================================================================
    # Ingestion
    # ==========================================================================

    def _chunk_document(self, document: Document, cleaned: str) -> list[Chunk]:
        size, overlap = self.settings.chunk_size, self.settings.chunk_overlap
        if document.type is DocumentType.WEBSITE and WEBSITE_CONTENT_MARKER in document.raw_text:
            chunks = chunk_website_content(sanitize_content(document.raw_text), size, overlap)
            if chunks:
                return chunks
            logger.warning(
                f"Website document {document.document_id} has no page sections, "
                "chunking it as plain text"
            )
        return [
            Chunk(text=window, index=i, source_url=document.source_url or "")
            for i, window in enumerate(chunk_text(cleaned, size, overlap))
        ]

    async def process_document(
        self,
        agent_id: str,
        document_id: str,
        text: str,
        *,
        type: DocumentType | str,
        title: str,
        source: Optional[str] = None,
    ) -> IngestionResult:
        """
        Chunk, embed and store one already-extracted document.

        Args:
            agent_id: Owning agent
            document_id: Document identifier, unique per agent
            text: Extracted plain text (website documents keep page headers)
            type: "file", "url" or "website"
            title: Document title
            source: Source URL, if any

        Returns:
            Number of chunks stored and the collection they went to

        Raises:
            ValidationError: On empty ids, unknown type or empty cleaned text
            ModelError: If embedding fails
            StoreUnavailableError: If the store is down or times out
            StoreRejectedError: If the store rejects a request
        """
        agent_id = _require_id(agent_id, "agent_id")
        document_id = _require_id(document_id, "document_id")
        try:
            document_type = DocumentType(type)
        except ValueError as e:
            raise ValidationError(f"Unknown document type: {type!r}", field="type") from e

        cleaned = normalize_whitespace(sanitize_content(text))
        if not cleaned:
            raise ValidationError(
                f"Document {document_id} has no text after cleaning", field="text"
            )

        logger.info(f"Processing document {document_id} for agent {agent_id}")
        collection_name = await self.store.ensure_collection(agent_id)

        document = Document(
            agent_id=agent_id,
            document_id=document_id,
            type=document_type,
            title=sanitize_text(title) or "Untitled",
            raw_text=text,
            source_url=sanitize_url(source) or None,
        )

        chunks = self._chunk_document(document, cleaned)
        language = detect_language(cleaned)
        logger.info(
            f"Document {document_id}: {len(chunks)} chunks, language={language.value}"
        )

        points = []
        for chunk in chunks:
            chunk.language = language
            vector = await self.embedder.aembed(chunk.text)
            points.append(Point.from_chunk(str(uuid.uuid4()), vector, chunk, document))

        await self.store.upsert_points(collection_name, points)
        logger.info(f"Stored {len(points)} chunks of document {document_id} in {collection_name}")
        return IngestionResult(chunks_created=len(points), collection_name=collection_name)

    # ==========================================================================
    # Retrieval
    # ==========================================================================

    async def search_relevant_chunks(
        self,
        agent_id: str,
        query: str,
        limit: int | None = None,
        filters: Optional[SearchFilters | dict] = None,
    ) -> list[SearchResult]:
        """
        Find the chunks most relevant to a user query.

        Never raises: errors are logged and an empty list is returned.
        """
        sanitized = sanitize_search_query(query)
        if not agent_id or not sanitized:
            logger.warning("Search skipped: empty agent id or query after sanitization")
            return []

        try:
            if limit is None:
                limit = self.settings.search_default_limit
            limit = max(1, min(self.settings.search_max_limit, int(limit)))
            search_filters = self._coerce_filters(filters)
            return await self.retriever.search(agent_id, sanitized, limit, search_filters)
        except NotFoundError:
            logger.info(f"Collection for agent {agent_id} disappeared during search")
            return []
        except Exception as e:
            logger.error(f"Search for agent {agent_id} failed: {e}")
            return []

    @staticmethod
    def _coerce_filters(filters: Optional[SearchFilters | dict]) -> Optional[SearchFilters]:
        """Keep only well-formed filters; an unknown document type is dropped."""
        if filters is None or isinstance(filters, SearchFilters):
            return filters

        document_type = None
        raw_type = filters.get("document_type") or filters.get("documentType")
        if raw_type:
            try:
                document_type = DocumentType(raw_type)
            except ValueError:
                logger.warning(f"Ignoring unknown document type filter: {raw_type!r}")
        language = filters.get("language")
        return SearchFilters(document_type=document_type, language=language or None)

    # ==========================================================================
    # Deletion and inspection
    # ==========================================================================

    async def delete_document_chunks(self, agent_id: str, document_id: str) -> None:
        """Delete every chunk of a document; errors propagate."""
        agent_id = _require_id(agent_id, "agent_id")
        document_id = _require_id(document_id, "document_id")
        await self.store.delete_document_points(agent_id, document_id)

    async def get_collection_info(self, agent_id: str) -> CollectionInfo:
        """Collection statistics; ``exists=False`` when unknown or unreachable."""
        try:
            return await self.store.get_collection_info(agent_id)
        except Exception as e:
            logger.error(f"Collection info for agent {agent_id} unavailable: {e}")
            return CollectionInfo(exists=False)

    async def get_document_rag_status(self, agent_id: str, document_id: str) -> DocumentStatus:
        """Whether a document has chunks in the index, and how many."""
        try:
            info = await self.store.get_collection_info(agent_id)
            if not info.exists:
                return DocumentStatus(in_rag=False, chunks_count=0)
            count = await self.store.count_document_points(agent_id, document_id)
        except NotFoundError:
            return DocumentStatus(in_rag=False, chunks_count=0)
        except Exception as e:
            logger.error(f"RAG status of document {document_id} unavailable: {e}")
            return DocumentStatus(in_rag=False, chunks_count=0)
        return DocumentStatus(in_rag=count > 0, chunks_count=count)

    async def health_check(self) -> HealthStatus:
        return await self.store.health_check(self.embedder)

    async def close(self) -> None:
        await self.store.close()
