"""
FastAPI application for the AgentRAG REST API.

Run with:
    uvicorn agentrag.api.main:app --reload

Or use the CLI:
    agentrag serve
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import NoReturn

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Response, status
from fastapi.middleware.cors import CORSMiddleware

from agentrag import __version__
from agentrag.api.models import (
    CollectionStatsResponse,
    DocumentStatusResponse,
    DocumentSummary,
    ErrorResponse,
    HealthResponse,
    IngestRequest,
    IngestResponse,
    RAGHealthResponse,
    SearchHit,
    SearchRequest,
    SearchResponse,
)
from agentrag.config import settings
from agentrag.exceptions import (
    ModelError,
    RAGError,
    StoreRejectedError,
    StoreUnavailableError,
    ValidationError,
)
from agentrag.logging_config import configure_logging
from agentrag.retrieval.models import SearchFilters
from agentrag.retrieval.resources import get_rag_service
from agentrag.retrieval.sanitize import obscure_url, sanitize_search_query
from agentrag.retrieval.service import RAGService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
        - Configure logging
        - Warm up the engine (store ping and model load); failures are logged only

    Shutdown:
        - Close the vector store HTTP client
    """
    configure_logging(settings.log_level)
    logger.info("Initializing AgentRAG resources...")

    service = get_rag_service()
    health = await service.health_check()
    if health.error:
        logger.warning(f"Engine not fully ready at startup: {health.error}")
    else:
        logger.info(f"Engine ready (model loaded in {health.model_load_seconds or 0:.1f}s)")

    yield

    logger.info("Shutting down AgentRAG...")
    await service.close()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="AgentRAG",
        description="Retrieval-augmented generation engine for AI agents",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    return app


router = APIRouter()

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid request"},
    502: {"model": ErrorResponse, "description": "Vector store rejected the request"},
    503: {"model": ErrorResponse, "description": "Vector store or model unavailable"},
}


def _raise_http_error(error: RAGError) -> NoReturn:
    """Translate an engine error into an HTTPException."""
    if isinstance(error, ValidationError):
        code, kind = status.HTTP_400_BAD_REQUEST, "validation_error"
    elif isinstance(error, StoreRejectedError):
        code, kind = status.HTTP_502_BAD_GATEWAY, "store_rejected"
    elif isinstance(error, StoreUnavailableError):
        code, kind = status.HTTP_503_SERVICE_UNAVAILABLE, "store_unavailable"
    elif isinstance(error, ModelError):
        code, kind = status.HTTP_503_SERVICE_UNAVAILABLE, "model_error"
    else:
        code, kind = status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error"
    raise HTTPException(status_code=code, detail={"error": kind, "message": error.message})


@router.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check(service: RAGService = Depends(get_rag_service)) -> HealthResponse:
    """
    Health check endpoint for liveness and readiness checks.

    Returns:
        Health status with store and model flags
    """
    health = await service.health_check()
    healthy = health.store_connected and health.model_loaded
    return HealthResponse(
        status="healthy" if healthy else "degraded",
        version=__version__,
        store_connected=health.store_connected,
        model_loaded=health.model_loaded,
    )


@router.get("/rag/health", response_model=RAGHealthResponse, tags=["System"])
async def rag_health(service: RAGService = Depends(get_rag_service)) -> RAGHealthResponse:
    """Detailed engine health: store reachability, model name and load time."""
    health = await service.health_check()
    return RAGHealthResponse(
        store_connected=health.store_connected,
        store_url=obscure_url(settings.qdrant_url),
        model_loaded=health.model_loaded,
        model_name=service.embedder.model_name,
        model_load_seconds=health.model_load_seconds,
        error=health.error,
        timestamp=datetime.now(timezone.utc),
    )


@router.post(
    "/agents/{agent_id}/documents",
    response_model=IngestResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERROR_RESPONSES,
    tags=["Documents"],
)
async def ingest_document(
    agent_id: str,
    request: IngestRequest,
    service: RAGService = Depends(get_rag_service),
) -> IngestResponse:
    """
    Chunk, embed and store an already-extracted document.

    Raises:
        HTTPException: 400 on invalid input, 502/503 on store or model failures
    """
    try:
        result = await service.process_document(
            agent_id,
            request.document_id,
            request.text,
            type=request.type,
            title=request.title,
            source=request.source,
        )
    except RAGError as e:
        logger.error(f"Ingestion of {request.document_id} for agent {agent_id} failed: {e}")
        _raise_http_error(e)
    return IngestResponse(
        chunks_created=result.chunks_created,
        collection_name=result.collection_name,
    )


@router.delete(
    "/agents/{agent_id}/documents/{document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=_ERROR_RESPONSES,
    tags=["Documents"],
)
async def delete_document(
    agent_id: str,
    document_id: str,
    service: RAGService = Depends(get_rag_service),
) -> Response:
    """Delete every chunk of a document."""
    try:
        await service.delete_document_chunks(agent_id, document_id)
    except RAGError as e:
        logger.error(f"Deletion of {document_id} for agent {agent_id} failed: {e}")
        _raise_http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/agents/{agent_id}/documents/{document_id}/status",
    response_model=DocumentStatusResponse,
    tags=["Documents"],
)
async def document_status(
    agent_id: str,
    document_id: str,
    service: RAGService = Depends(get_rag_service),
) -> DocumentStatusResponse:
    """Whether a document has been indexed, and into how many chunks."""
    rag_status = await service.get_document_rag_status(agent_id, document_id)
    return DocumentStatusResponse(
        document_id=document_id,
        in_rag=rag_status.in_rag,
        chunks_count=rag_status.chunks_count,
    )


@router.get(
    "/agents/{agent_id}/rag/stats",
    response_model=CollectionStatsResponse,
    tags=["RAG"],
)
async def collection_stats(
    agent_id: str,
    service: RAGService = Depends(get_rag_service),
) -> CollectionStatsResponse:
    """Point and vector counts of the agent's collection."""
    info = await service.get_collection_info(agent_id)
    return CollectionStatsResponse(
        exists=info.exists,
        collection_name=service.store.collection_name(agent_id) if info.exists else None,
        points_count=info.points_count or 0,
        vectors_count=info.vectors_count or 0,
        rag_available=info.exists and (info.points_count or 0) > 0,
    )


@router.post(
    "/agents/{agent_id}/rag/search",
    response_model=SearchResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid request"}},
    tags=["RAG"],
)
async def search(
    agent_id: str,
    request: SearchRequest,
    service: RAGService = Depends(get_rag_service),
) -> SearchResponse:
    """
    Semantic search over the agent's chunks.

    Returns ranked hits with relevance percentages and a per-document
    summary. An agent without indexed chunks gets an empty, successful answer.
    """
    query = sanitize_search_query(request.query)
    if not query:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "validation_error", "message": "Query cannot be empty after sanitization"},
        )

    info = await service.get_collection_info(agent_id)
    if not info.exists or not info.points_count:
        return SearchResponse(
            message="No RAG data available for this agent",
            query=query,
            collection_exists=info.exists,
            total_chunks=info.points_count or 0,
        )

    results = await service.search_relevant_chunks(
        agent_id,
        query,
        request.limit,
        SearchFilters(document_type=request.document_type, language=request.language),
    )

    hits = []
    summaries: dict[str, DocumentSummary] = {}
    for rank, result in enumerate(results, start=1):
        meta = result.metadata
        chunk_index = meta.get("chunkIndex") or 0
        hits.append(
            SearchHit(
                id=f"{meta.get('documentId')}_{chunk_index}",
                text=result.text,
                score=result.score,
                relevance_percentage=round(result.score * 100),
                document_title=meta.get("documentTitle"),
                document_type=meta.get("documentType"),
                chunk_index=chunk_index + 1,
                source=meta.get("source"),
                language=meta.get("language"),
                page_type=meta.get("pageType"),
                rank=rank,
            )
        )

        key = f"{meta.get('documentTitle')}_{meta.get('documentType')}"
        summary = summaries.get(key)
        if summary is None:
            summary = summaries[key] = DocumentSummary(
                title=meta.get("documentTitle"),
                type=meta.get("documentType"),
                source=meta.get("source"),
                chunks=0,
                best_score=0.0,
            )
        summary.chunks += 1
        summary.best_score = max(summary.best_score, result.score)

    return SearchResponse(
        message=f"Found {len(hits)} relevant chunks",
        query=query,
        results=hits,
        total_results=len(hits),
        total_chunks=info.points_count,
        collection_exists=True,
        document_summary=list(summaries.values()),
    )


# Create app instance
app = create_app()
