"""
Unit tests for the RAG service facade.

Tests cover:
    - Document ingestion (chunking, language, payload, point ids)
    - Input validation before anything is stored
    - Graceful degradation of search
    - Document status and collection info
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from agentrag.exceptions import (
    ModelError,
    NotFoundError,
    StoreRejectedError,
    StoreUnavailableError,
    ValidationError,
)
from agentrag.retrieval.models import CollectionInfo, DocumentType, SearchFilters
from agentrag.retrieval.service import RAGService


@pytest.fixture
def service(fake_embedder, mock_store, test_settings) -> RAGService:
    return RAGService(fake_embedder, mock_store, test_settings)


def _stored_points(mock_store):
    name, points = mock_store.upsert_points.call_args.args
    return name, points


# =============================================================================
# Ingestion
# =============================================================================

@pytest.mark.unit
class TestProcessDocument:
    """Tests for RAGService.process_document."""

    @pytest.mark.asyncio
    async def test_faq_document_becomes_three_points(self, service, mock_store, faq_text):
        result = await service.process_document(
            "a1", "faq", faq_text, type="file", title="FAQ"
        )

        assert result.chunks_created == 3
        assert result.collection_name == "agent_a1"
        mock_store.ensure_collection.assert_awaited_once_with("a1")

        name, points = _stored_points(mock_store)
        assert name == "agent_a1"
        assert [p.payload["chunkIndex"] for p in points] == [0, 1, 2]
        assert [p.payload["originalId"] for p in points] == [
            "faq_chunk_0",
            "faq_chunk_1",
            "faq_chunk_2",
        ]
        assert len({p.id for p in points}) == 3
        assert all(len(p.vector) == 384 for p in points)

    @pytest.mark.asyncio
    async def test_payload_metadata(self, service, mock_store, faq_text):
        await service.process_document(
            "a1", "faq", faq_text, type="url", title="<b>Help</b> Center",
            source="https://example.com/help",
        )

        _, points = _stored_points(mock_store)
        payload = points[0].payload
        assert payload["agentId"] == "a1"
        assert payload["documentId"] == "faq"
        assert payload["documentType"] == "url"
        assert payload["documentTitle"] == "Help Center"
        assert payload["language"] == "english"
        assert payload["source"] == "https://example.com/help"
        assert payload["text"].startswith("Q1 How do I reset my password?")
        assert "pageType" not in payload

    @pytest.mark.asyncio
    async def test_private_source_is_dropped(self, service, mock_store):
        await service.process_document(
            "a1", "d1", "Some notes", type="url", title="Notes",
            source="http://192.168.1.10/admin",
        )

        _, points = _stored_points(mock_store)
        assert points[0].payload["source"] == ""

    @pytest.mark.asyncio
    async def test_missing_title_defaults(self, service, mock_store):
        await service.process_document("a1", "d1", "Some notes", type="file", title="  ")

        _, points = _stored_points(mock_store)
        assert points[0].payload["documentTitle"] == "Untitled"

    @pytest.mark.asyncio
    async def test_website_pages_keep_their_urls(self, service, mock_store, website_text):
        result = await service.process_document(
            "a1", "site", website_text, type=DocumentType.WEBSITE, title="Example"
        )

        assert result.chunks_created == 2
        _, points = _stored_points(mock_store)
        assert [p.payload["source"] for p in points] == [
            "https://example.com/pricing",
            "https://example.com/about",
        ]
        assert [p.payload["pageType"] for p in points] == ["pricing", "about"]
        assert [p.payload["chunkIndex"] for p in points] == [0, 1]

    @pytest.mark.asyncio
    async def test_website_without_pages_falls_back_to_plain_chunks(self, service, mock_store):
        text = "=== WEBSITE CONTENT ===\nCrawled 0 pages, only a summary here."

        result = await service.process_document("a1", "site", text, type="website", title="Site")

        assert result.chunks_created == 1
        _, points = _stored_points(mock_store)
        assert "pageType" not in points[0].payload

    @pytest.mark.asyncio
    async def test_language_detected_on_cleaned_text(self, service, mock_store):
        text = "<script>alert('x')</script>Die Größe der Datei ist begrenzt."

        await service.process_document("a1", "d1", text, type="file", title="Hinweis")

        _, points = _stored_points(mock_store)
        assert points[0].payload["language"] == "german"
        assert "script" not in points[0].payload["text"]

    @pytest.mark.asyncio
    async def test_each_chunk_embedded_once(self, service, fake_embedder, faq_text):
        await service.process_document("a1", "faq", faq_text, type="file", title="FAQ")

        assert len(fake_embedder.calls) == 3
        assert fake_embedder.calls[0].startswith("Q1")

    @pytest.mark.asyncio
    async def test_empty_text_after_cleaning(self, service, mock_store):
        with pytest.raises(ValidationError) as exc_info:
            await service.process_document(
                "a1", "d1", "<script>x</script>   ", type="file", title="Empty"
            )

        assert exc_info.value.details["field"] == "text"
        mock_store.upsert_points.assert_not_called()
        mock_store.ensure_collection.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_document_type(self, service, mock_store):
        with pytest.raises(ValidationError, match="Unknown document type"):
            await service.process_document("a1", "d1", "text", type="pdf", title="X")

        mock_store.ensure_collection.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("agent_id,document_id", [("", "d1"), ("a1", ""), ("<b></b>", "d1")])
    async def test_empty_ids_rejected(self, service, mock_store, agent_id, document_id):
        with pytest.raises(ValidationError):
            await service.process_document(agent_id, document_id, "text", type="file", title="X")

        mock_store.ensure_collection.assert_not_called()

    @pytest.mark.asyncio
    async def test_store_errors_propagate(self, service, mock_store, faq_text):
        mock_store.upsert_points.side_effect = StoreUnavailableError(
            "Upsert of batch 1/1 into agent_a1 failed", reason="timeout"
        )

        with pytest.raises(StoreUnavailableError) as exc_info:
            await service.process_document("a1", "faq", faq_text, type="file", title="FAQ")

        assert exc_info.value.reason == "timeout"

    @pytest.mark.asyncio
    async def test_collection_errors_propagate(self, service, mock_store):
        mock_store.ensure_collection.side_effect = StoreRejectedError(
            "Create collection failed", status_code=500
        )

        with pytest.raises(StoreRejectedError):
            await service.process_document("a1", "d1", "text", type="file", title="X")

        mock_store.upsert_points.assert_not_called()


# =============================================================================
# Retrieval
# =============================================================================

@pytest.mark.unit
class TestSearchRelevantChunks:
    """Tests for RAGService.search_relevant_chunks."""

    @pytest.mark.asyncio
    async def test_returns_mapped_results(self, service, mock_store, make_hit):
        mock_store.search.return_value = [make_hit("Reset it from settings", 0.81)]

        results = await service.search_relevant_chunks("a1", "reset password")

        assert len(results) == 1
        assert results[0].text == "Reset it from settings"
        assert results[0].score == pytest.approx(0.81)
        assert results[0].metadata["documentId"] == "doc-1"

    @pytest.mark.asyncio
    async def test_default_limit(self, service, mock_store):
        await service.search_relevant_chunks("a1", "reset password")

        assert mock_store.search.call_args.args[2] == 5

    @pytest.mark.asyncio
    @pytest.mark.parametrize("requested,expected", [(500, 100), (0, 1), (-3, 1), (12, 12)])
    async def test_limit_is_clamped(self, service, mock_store, requested, expected):
        await service.search_relevant_chunks("a1", "reset password", limit=requested)

        assert mock_store.search.call_args.args[2] == expected

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [float("nan"), float("inf"), "many"])
    async def test_malformed_limit_degrades_to_empty(self, service, mock_store, limit):
        assert await service.search_relevant_chunks("a1", "pricing", limit=limit) == []

        mock_store.search.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   ", "<>\"'", None])
    async def test_empty_query_skips_store(self, service, mock_store, fake_embedder, query):
        assert await service.search_relevant_chunks("a1", query) == []

        mock_store.get_collection_info.assert_not_called()
        assert fake_embedder.calls == []

    @pytest.mark.asyncio
    async def test_query_is_sanitized(self, service, fake_embedder):
        await service.search_relevant_chunks("a1", "reset <password>")

        assert fake_embedder.calls == ["reset password"]

    @pytest.mark.asyncio
    async def test_dict_filters(self, service, mock_store):
        await service.search_relevant_chunks(
            "a1", "refund policy", filters={"documentType": "website", "language": "german"}
        )

        conditions = mock_store.search.call_args.args[3]
        assert {"key": "documentType", "match": {"value": "website"}} in conditions
        assert {"key": "language", "match": {"value": "german"}} in conditions

    @pytest.mark.asyncio
    async def test_unknown_type_filter_is_dropped(self, service, mock_store):
        await service.search_relevant_chunks(
            "a1", "refund policy", filters={"document_type": "pdf", "language": "german"}
        )

        conditions = mock_store.search.call_args.args[3]
        assert conditions == [
            {"key": "agentId", "match": {"value": "a1"}},
            {"key": "language", "match": {"value": "german"}},
        ]

    @pytest.mark.asyncio
    async def test_filter_object_passed_through(self, service, mock_store):
        filters = SearchFilters(document_type=DocumentType.FILE)

        await service.search_relevant_chunks("a1", "refund policy", filters=filters)

        assert {"key": "documentType", "match": {"value": "file"}} in mock_store.search.call_args.args[3]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            StoreUnavailableError("down", reason="connection"),
            StoreRejectedError("bad request", status_code=400),
            NotFoundError("agent_a1"),
            RuntimeError("unexpected"),
        ],
    )
    async def test_errors_degrade_to_empty(self, service, mock_store, error):
        mock_store.search.side_effect = error

        assert await service.search_relevant_chunks("a1", "reset password") == []

    @pytest.mark.asyncio
    async def test_embedding_error_degrades_to_empty(self, mock_store, test_settings):
        embedder = MagicMock()
        embedder.aembed = AsyncMock(side_effect=ModelError("Failed to generate embedding: oom"))
        service = RAGService(embedder, mock_store, test_settings)

        assert await service.search_relevant_chunks("a1", "reset password") == []
        mock_store.search.assert_not_called()

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, service, mock_store):
        mock_store.search.side_effect = asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await service.search_relevant_chunks("a1", "reset password")


# =============================================================================
# Deletion and inspection
# =============================================================================

@pytest.mark.unit
class TestDeletion:
    """Tests for RAGService.delete_document_chunks."""

    @pytest.mark.asyncio
    async def test_delegates_to_store(self, service, mock_store):
        await service.delete_document_chunks("a1", "faq")

        mock_store.delete_document_points.assert_awaited_once_with("a1", "faq")

    @pytest.mark.asyncio
    async def test_errors_propagate(self, service, mock_store):
        mock_store.delete_document_points.side_effect = StoreUnavailableError("down")

        with pytest.raises(StoreUnavailableError):
            await service.delete_document_chunks("a1", "faq")

    @pytest.mark.asyncio
    async def test_empty_document_id_rejected(self, service, mock_store):
        with pytest.raises(ValidationError):
            await service.delete_document_chunks("a1", "")

        mock_store.delete_document_points.assert_not_called()


@pytest.mark.unit
class TestInspection:
    """Tests for collection info, document status and health."""

    @pytest.mark.asyncio
    async def test_collection_info(self, service):
        info = await service.get_collection_info("a1")

        assert info == CollectionInfo(exists=True, points_count=3, vectors_count=3)

    @pytest.mark.asyncio
    async def test_collection_info_on_error(self, service, mock_store):
        mock_store.get_collection_info.side_effect = StoreUnavailableError("down")

        info = await service.get_collection_info("a1")

        assert info.exists is False
        assert info.points_count is None

    @pytest.mark.asyncio
    async def test_document_status_counts_points(self, service, mock_store):
        mock_store.count_document_points.return_value = 3

        status = await service.get_document_rag_status("a1", "faq")

        assert status.in_rag is True
        assert status.chunks_count == 3
        mock_store.count_document_points.assert_awaited_once_with("a1", "faq")

    @pytest.mark.asyncio
    async def test_document_status_without_points(self, service):
        status = await service.get_document_rag_status("a1", "faq")

        assert status.in_rag is False
        assert status.chunks_count == 0

    @pytest.mark.asyncio
    async def test_document_status_missing_collection(self, service, mock_store):
        mock_store.get_collection_info.return_value = CollectionInfo(exists=False)

        status = await service.get_document_rag_status("a1", "faq")

        assert (status.in_rag, status.chunks_count) == (False, 0)
        mock_store.count_document_points.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [NotFoundError("agent_a1"), StoreUnavailableError("down")])
    async def test_document_status_on_error(self, service, mock_store, error):
        mock_store.count_document_points.side_effect = error

        status = await service.get_document_rag_status("a1", "faq")

        assert (status.in_rag, status.chunks_count) == (False, 0)

    @pytest.mark.asyncio
    async def test_health_check_passes_embedder(self, service, mock_store, fake_embedder):
        health = await service.health_check()

        assert health.store_connected is True
        assert health.model_load_seconds == 1.5
        mock_store.health_check.assert_awaited_once_with(fake_embedder)

    @pytest.mark.asyncio
    async def test_close(self, service, mock_store):
        await service.close()

        mock_store.close.assert_awaited_once()
