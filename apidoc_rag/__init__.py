# apidoc_rag package initializer
"""
This package contains the retrieval core of the API documentation assistant:
- embeddings: Deterministic hash embeddings and cosine similarity
- ingestion: Documentation corpus per platform
- storage: Vector index with JSON persistence
- retrieval: Index initialization and search
- analyzer: Question gate and platform detection
- router: Per-question retrieval strategy
- api: FastAPI endpoints

Each module can be used and tested on its own.
"""
