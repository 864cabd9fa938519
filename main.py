"""Main Entry Point for the API docs RAG app

This script serves as the central entry point:
- Builds the vector store from the bundled documentation corpus.
- Runs the FastAPI server.
- Routes a single question from the command line.
- Reports vector store status.

Usage:
  python main.py --mode build                 # (Re)build the vector store
  python main.py --mode api                   # Start FastAPI server (default)
  python main.py --mode query --query "How do I create a Stripe customer?"
  python main.py --mode status

Run 'build' once; the store is saved to APIDOC_STORE_PATH (default .vector-store.json).
"""

import argparse
import logging
import os
import sys

from apidoc_rag.retrieval.retrieval import Retriever
from apidoc_rag.router.router import QueryRouter


def build_index(retriever: Retriever) -> bool:
    """Clear and re-ingest every platform."""
    print("Building vector store from the documentation corpus...")
    count = retriever.initialize(force=True)
    print(f"Vector store built: {count} documents saved to {retriever.vector_store.store_path}.")
    return count > 0


def run_query(retriever: Retriever, query: str) -> bool:
    """Route one question and print what would be handed to the answer generator."""
    result = QueryRouter(retriever).route(query)
    if not result.accepted:
        print(result.guidance_message)
        return True
    print(f"Strategy: {result.strategy}" + (f" (platform: {result.platform})" if result.platform else ""))
    for section in result.sections:
        print(f"- [{section.platform}] {section.title}: {section.method or ''} {section.endpoint or ''}")
    if result.preferred_section:
        print(f"Preferred: {result.preferred_section.title}")
    return True


def show_status(retriever: Retriever) -> bool:
    status = retriever.status()
    print(f"Initialized: {status['initialized']}, documents: {status['document_count']}, state: {status['state']}")
    return True


def run_api() -> bool:
    """Run FastAPI server."""
    import uvicorn
    uvicorn.run("apidoc_rag.api.api:app", host="0.0.0.0", port=8000, reload=True)
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="API docs RAG entry point")
    parser.add_argument("--mode", choices=["build", "api", "query", "status"], default="api",
                        help="Mode: build index, run API, route a query, or show status")
    parser.add_argument("--query", help="Question to route (query mode)")

    args = parser.parse_args()
    logging.basicConfig(level=os.getenv("APIDOC_LOG_LEVEL", "INFO"),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    success = False
    if args.mode == "api":
        success = run_api()
    elif args.mode == "query" and not args.query:
        parser.error("--query is required in query mode")
    else:
        retriever = Retriever()
        if args.mode == "build":
            success = build_index(retriever)
        elif args.mode == "query":
            success = run_query(retriever, args.query)
        elif args.mode == "status":
            success = show_status(retriever)

    sys.exit(0 if success else 1)
