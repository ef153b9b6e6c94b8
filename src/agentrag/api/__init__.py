"""
FastAPI REST API for AgentRAG.

Endpoints:
    POST /agents/{agent_id}/documents - Ingest extracted text
    POST /agents/{agent_id}/rag/search - Search an agent's chunks
    GET /health - Health check for liveness and readiness checks
"""

from agentrag.api.main import app, create_app

__all__ = ["app", "create_app"]
