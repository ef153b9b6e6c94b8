"""
Retriever: query preprocessing, embedding, filtered search and reranking.

Results for queries that express a page-oriented intent (pricing, download,
contact, ...) are boosted when they come from a page of the matching type.
"""

import logging
from typing import Optional

from agentrag.retrieval.embeddings import Embedder
from agentrag.retrieval.intents import boost_intents
from agentrag.retrieval.models import SearchFilters, SearchResult
from agentrag.retrieval.query_processor import preprocess_query
from agentrag.retrieval.vector_store import QdrantVectorStore

logger = logging.getLogger(__name__)


def _has_page_type(result: SearchResult, page_type_value: str, label: str) -> bool:
    if result.metadata.get("pageType") == page_type_value:
        return True
    # Chunks stored before pageType existed carry the category as a text prefix
    return result.text.lower().startswith(f"{label.lower()} page:")


def apply_page_type_boost(
    query: str,
    results: list[SearchResult],
    factor: float = 1.3,
) -> list[SearchResult]:
    """
    Multiply the score of results whose page type matches the query intent.

    Each result is boosted at most once, even if several intents match it,
    and boosted scores are capped at 1.0. Results are modified in place and
    returned sorted by descending score.

    Args:
        query: The raw user query (boost keywords are matched on it)
        results: Search results to rerank
        factor: Score multiplier (>= 1.0)

    Returns:
        The same results, sorted best first
    """
    intents = boost_intents(query)
    if intents:
        for result in results:
            if any(_has_page_type(result, i.page_type.value, i.page_type.label) for i in intents):
                result.score = min(1.0, result.score * factor)

    results.sort(key=lambda r: r.score, reverse=True)
    return results


class Retriever:
    """
    Search one agent's collection for chunks relevant to a query.

    Example:
        >>> retriever = Retriever(embedder, store)
        >>> results = await retriever.search("42", "pricing", limit=5)
    """

    def __init__(
        self,
        embedder: Embedder,
        store: QdrantVectorStore,
        boost_factor: float = 1.3,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.boost_factor = boost_factor

    async def search(
        self,
        agent_id: str,
        query: str,
        limit: int = 5,
        filters: Optional[SearchFilters] = None,
    ) -> list[SearchResult]:
        """
        Retrieve and rerank chunks for a sanitized query.

        Returns an empty list without embedding anything when the agent's
        collection is missing or empty. Store and model errors propagate.
        """
        info = await self.store.get_collection_info(agent_id)
        if not info.exists or not info.points_count:
            logger.info(f"No indexed chunks for agent {agent_id}, skipping search")
            return []

        processed = preprocess_query(query)
        logger.debug(f"Preprocessed query: '{query}' -> '{processed}'")
        vector = await self.embedder.aembed(processed)

        conditions = [{"key": "agentId", "match": {"value": agent_id}}]
        if filters is not None:
            conditions.extend(filters.to_conditions())

        hits = await self.store.search(
            self.store.collection_name(agent_id), vector, limit, conditions
        )
        results = [SearchResult.from_hit(hit) for hit in hits]
        logger.info(f"Retrieved {len(results)} chunks for agent {agent_id}")
        return apply_page_type_boost(query, results, self.boost_factor)
