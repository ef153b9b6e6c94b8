"""
AgentRAG: Retrieval-Augmented Generation engine for AI agents

Turns documents an agent owns (uploaded files, scraped URLs, crawled
websites) into multilingual semantic chunks stored in Qdrant, and retrieves
the most relevant chunks for a user query to ground the agent's answer.

Key Components:
    - retrieval: Chunking, language detection, embeddings, vector store, reranking
    - api: FastAPI diagnostic and ingestion endpoints
    - cli: Typer command line interface

Example:
    >>> from agentrag.retrieval.resources import get_rag_service
    >>> service = get_rag_service()
    >>> results = await service.search_relevant_chunks("a1", "how do I reset my password")
    >>> print(results[0].text)
"""

__version__ = "0.1.0"

from agentrag.config import settings

__all__ = [
    "__version__",
    "settings",
]
