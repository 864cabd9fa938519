"""API Module for the API docs RAG app

This module provides FastAPI endpoints over the retrieval core.

Endpoints:
- POST /chat: Route a developer question; returns the documentation sections to answer from.
- POST /init-vector-store: Force a full rebuild of the vector store.
- GET /init-vector-store: Vector store status.
- GET /health: Health check.

Business Context: The chat front end and the answer generator call these
endpoints; they never touch the index directly.

Run with: uvicorn apidoc_rag.api.api:app --reload --host 0.0.0.0 --port 8000

Requires: fastapi, uvicorn.
"""

import logging
import os
import threading
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from apidoc_rag.retrieval.retrieval import Retriever
from apidoc_rag.router.router import QueryRouter, RouteResult

logger = logging.getLogger(__name__)

BOOTSTRAP_ON_START = os.getenv('APIDOC_BOOTSTRAP', '0') == '1'


# Pydantic models
class ChatRequest(BaseModel):
    message: str


class InitResponse(BaseModel):
    success: bool
    message: str
    document_count: int


class StatusResponse(BaseModel):
    initialized: bool
    document_count: int
    state: str
    message: str


def create_app(retriever: Optional[Retriever] = None, bootstrap: bool = BOOTSTRAP_ON_START) -> FastAPI:
    """Build the application around one retrieval context."""
    retriever = retriever or Retriever()
    router = QueryRouter(retriever)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if bootstrap:
            threading.Thread(target=retriever.ensure_initialized, daemon=True).start()
        yield

    app = FastAPI(title="API Docs RAG", description="Retrieval of third-party API documentation for developer questions.",
                  version="1.0.0", lifespan=lifespan)
    app.state.retriever = retriever
    app.state.router = router

    # CORS for UI integration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def get_retriever(request: Request) -> Retriever:
        return request.app.state.retriever

    def get_router(request: Request) -> QueryRouter:
        return request.app.state.router

    @app.post("/chat", response_model=RouteResult)
    def chat(request: ChatRequest, query_router: QueryRouter = Depends(get_router)):
        """Route a question to the documentation sections it should be answered from."""
        if not request.message.strip():
            raise HTTPException(status_code=400, detail="Message is required")
        return query_router.route(request.message)

    @app.post("/init-vector-store", response_model=InitResponse)
    def init_vector_store(retriever: Retriever = Depends(get_retriever)):
        """Clear and rebuild the vector store from the full corpus."""
        try:
            count = retriever.initialize(force=True)
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to initialize vector store: {e}")
        return InitResponse(success=True, message="Vector store initialized successfully", document_count=count)

    @app.get("/init-vector-store", response_model=StatusResponse)
    def vector_store_status(retriever: Retriever = Depends(get_retriever)):
        status = retriever.status()
        message = ("Vector store is initialized" if status['initialized']
                   else "Vector store is not initialized. Call POST to initialize.")
        return StatusResponse(message=message, **status)

    @app.get("/health")
    def health_check(retriever: Retriever = Depends(get_retriever)):
        """Health check endpoint."""
        return {
            "status": "healthy",
            "vectors_count": retriever.vector_store.count(),
            "embedder": retriever.vector_store.embedding_generator.get_model_info(),
            "modules": ["ingestion", "embeddings", "storage", "retrieval", "analyzer", "router"],
        }

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
