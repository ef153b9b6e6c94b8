"""
Command-line interface for AgentRAG.

Commands:
    serve   - Start the FastAPI server
    ingest  - Chunk, embed and store a text file for an agent
    search  - Query an agent's chunks
    delete  - Remove a document's chunks
    status  - Show collection or document status
    health  - Check the vector store and the embedding model
"""

import asyncio
from pathlib import Path
from typing import Any, Coroutine, Optional, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from agentrag.config import settings
from agentrag.logging_config import configure_logging

T = TypeVar("T")

app = typer.Typer(
    name="agentrag",
    help="Retrieval-augmented generation engine for AI agents",
    add_completion=False,
)
console = Console()


@app.callback()
def main(
    log_level: str = typer.Option(settings.log_level, "--log-level", help="Logging level"),
) -> None:
    configure_logging(log_level)


def _run(operation: "Coroutine[Any, Any, T]") -> T:
    """Run one service operation and close the store client afterwards."""
    from agentrag.retrieval.resources import get_rag_service

    async def runner() -> T:
        try:
            return await operation
        finally:
            await get_rag_service().close()

    return asyncio.run(runner())


@app.command()
def serve(
    host: str = typer.Option(settings.api_host, help="Host to bind"),
    port: int = typer.Option(settings.api_port, help="Port to bind"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
) -> None:
    """Start the FastAPI server."""
    import uvicorn

    console.print(f"[green]Starting AgentRAG server on {host}:{port}[/green]")

    uvicorn.run(
        "agentrag.api.main:app",
        host=host,
        port=port,
        reload=reload,
        workers=1,  # One model copy in memory
    )


@app.command()
def ingest(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Extracted text file"),
    agent: str = typer.Option(..., "--agent", "-a", help="Agent ID"),
    document_id: Optional[str] = typer.Option(None, "--document-id", "-d", help="Defaults to the file stem"),
    doc_type: str = typer.Option("file", "--type", "-t", help="file, url or website"),
    title: Optional[str] = typer.Option(None, help="Defaults to the file name"),
    source: Optional[str] = typer.Option(None, help="Source URL"),
) -> None:
    """Chunk, embed and store a text file."""
    from agentrag.exceptions import RAGError
    from agentrag.retrieval.resources import get_rag_service

    text = file.read_text(encoding="utf-8")
    service = get_rag_service()

    try:
        with console.status("[bold green]Ingesting..."):
            result = _run(
                service.process_document(
                    agent,
                    document_id or file.stem,
                    text,
                    type=doc_type,
                    title=title or file.name,
                    source=source,
                )
            )
    except RAGError as e:
        console.print(f"[red]Ingestion failed: {e}[/red]")
        raise typer.Exit(1)

    console.print(
        f"[green]✓ Stored {result.chunks_created} chunks in {result.collection_name}[/green]"
    )


@app.command()
def search(
    agent: str = typer.Argument(..., help="Agent ID"),
    query: str = typer.Argument(..., help="Search query"),
    limit: int = typer.Option(5, "--limit", "-n", help="Number of chunks"),
    doc_type: Optional[str] = typer.Option(None, "--type", "-t", help="Only file, url or website documents"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show full chunk text"),
) -> None:
    """Search an agent's chunks."""
    from agentrag.retrieval.resources import get_rag_service

    service = get_rag_service()
    filters = {"document_type": doc_type} if doc_type else None

    with console.status("[bold green]Searching..."):
        results = _run(service.search_relevant_chunks(agent, query, limit, filters))

    if not results:
        console.print("[yellow]No relevant chunks found.[/yellow]")
        return

    table = Table(title=f"Results for: {query}")
    table.add_column("#", style="dim")
    table.add_column("Score", style="green")
    table.add_column("Document", style="cyan")
    table.add_column("Chunk")
    table.add_column("Text")

    for rank, result in enumerate(results, start=1):
        text = result.text if verbose else result.text[:120] + ("..." if len(result.text) > 120 else "")
        table.add_row(
            str(rank),
            f"{result.score:.3f}",
            str(result.metadata.get("documentTitle")),
            str((result.metadata.get("chunkIndex") or 0) + 1),
            text,
        )

    console.print(table)


@app.command()
def delete(
    agent: str = typer.Argument(..., help="Agent ID"),
    document_id: str = typer.Argument(..., help="Document ID"),
) -> None:
    """Delete every chunk of a document."""
    from agentrag.exceptions import RAGError
    from agentrag.retrieval.resources import get_rag_service

    service = get_rag_service()
    try:
        with console.status("[bold green]Deleting..."):
            _run(service.delete_document_chunks(agent, document_id))
    except RAGError as e:
        console.print(f"[red]Deletion failed: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓ Deleted chunks of {document_id}[/green]")


@app.command()
def status(
    agent: str = typer.Argument(..., help="Agent ID"),
    document_id: Optional[str] = typer.Argument(None, help="Document ID"),
) -> None:
    """Show an agent's collection stats, or one document's RAG status."""
    from agentrag.retrieval.resources import get_rag_service

    service = get_rag_service()

    if document_id:
        doc_status = _run(service.get_document_rag_status(agent, document_id))
        state = "[green]indexed[/green]" if doc_status.in_rag else "[yellow]not indexed[/yellow]"
        console.print(f"{document_id}: {state} ({doc_status.chunks_count} chunks)")
        return

    info = _run(service.get_collection_info(agent))
    table = Table(title=f"Collection for agent {agent}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Exists", str(info.exists))
    table.add_row("Points", str(info.points_count or 0))
    table.add_row("Vectors", str(info.vectors_count or 0))
    console.print(table)


@app.command()
def health() -> None:
    """Check the vector store and load the embedding model."""
    from agentrag.retrieval.resources import get_rag_service

    service = get_rag_service()
    with console.status("[bold green]Checking..."):
        result = _run(service.health_check())

    table = Table(title="RAG health")
    table.add_column("Component", style="cyan")
    table.add_column("Status")
    table.add_row("Vector store", "[green]connected[/green]" if result.store_connected else "[red]unreachable[/red]")
    table.add_row("Embedding model", "[green]loaded[/green]" if result.model_loaded else "[red]not loaded[/red]")
    if result.model_load_seconds is not None:
        table.add_row("Model load time", f"{result.model_load_seconds:.1f}s")
    console.print(table)

    if result.error:
        console.print(f"[red]{result.error}[/red]")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    from agentrag import __version__

    console.print(f"AgentRAG v{__version__}")


if __name__ == "__main__":
    app()
