"""Embeddings Module for the API docs RAG app

This module turns text into fixed-size vectors with a deterministic hashing
scheme and scores vectors against each other with cosine similarity.

Key Features:
- No model download, no network calls: the same text always yields the same vector.
- Unigrams plus adjacent-word bigrams are hashed into 768 buckets.
- Earlier tokens get a slightly higher weight, repeated tokens a lower one.
- Vectors are unit-normalized so cosine similarity reduces to a dot product.
- Business Context: Ranks a small, fixed set of API documentation sections by
  lexical and bigram overlap with a developer's question.

Usage:
  from apidoc_rag.embeddings.embeddings import EmbeddingGenerator
  generator = EmbeddingGenerator()
  vector = generator.embed_single("Search for tracks on Spotify")
  score = generator.similarity(vector, generator.embed_single("track search"))

Requires: numpy.
"""

import re
from collections import Counter
from typing import Any, Dict, List, Sequence

import numpy as np

EMBEDDING_DIM = 768

_NON_WORD = re.compile(r'[^A-Za-z0-9_\s]')
_WHITESPACE = re.compile(r'\s+')


def tokenize(text: str) -> List[str]:
    """Return unigrams (longer than 2 chars) followed by their adjacent bigrams."""
    cleaned = _WHITESPACE.sub(' ', _NON_WORD.sub(' ', text.lower())).strip()
    words = [w for w in cleaned.split() if len(w) > 2]
    bigrams = [f"{words[i]}_{words[i + 1]}" for i in range(len(words) - 1)]
    return words + bigrams


def simple_hash(token: str) -> int:
    """31-multiplier rolling hash over UTF-16 code units, wrapped to signed 32 bits."""
    h = 0
    units = token.encode('utf-16-le')
    for i in range(0, len(units), 2):
        h = (h * 31 + (units[i] | (units[i + 1] << 8))) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two equal-length vectors; 0.0 when either is all zeros."""
    if len(a) != len(b):
        raise ValueError(f"Embeddings must have the same dimension ({len(a)} != {len(b)})")
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    denominator = np.sqrt(np.dot(va, va)) * np.sqrt(np.dot(vb, vb))
    if denominator <= 0:
        return 0.0
    return float(np.dot(va, vb) / denominator)


class EmbeddingGenerator:
    """Handles deterministic hash embeddings for documentation and queries."""

    def __init__(self, dimension: int = EMBEDDING_DIM):
        """
        Initialize the generator.

        Args:
            dimension: Number of hash buckets (vector length).
        """
        self.embedding_dim = dimension

    def embed_single(self, text: str) -> List[float]:
        """Embed a single text string. Returns a plain list so it serializes to JSON."""
        tokens = tokenize(text)
        vector = np.zeros(self.embedding_dim, dtype=np.float64)
        total = len(tokens)
        if total == 0:
            return vector.tolist()

        counts = Counter(tokens)
        for index, token in enumerate(tokens):
            frequency = 1 / (counts[token] + 1)
            position_weight = 1 - (index / total) * 0.1
            vector[simple_hash(token) % self.embedding_dim] += frequency * position_weight

        magnitude = np.sqrt(np.dot(vector, vector))
        if magnitude > 0:
            vector = vector / magnitude
        return vector.tolist()

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """Embed several texts; each one independently."""
        return [self.embed_single(text) for text in texts]

    def similarity(self, a: Sequence[float], b: Sequence[float]) -> float:
        return cosine_similarity(a, b)

    def get_model_info(self) -> Dict[str, Any]:
        """Get embedder details for status reporting."""
        return {
            'model_name': 'hash-bigram',
            'embedding_dim': self.embedding_dim,
        }


# Example usage (for testing)
if __name__ == "__main__":
    generator = EmbeddingGenerator()
    doc = generator.embed_single("Search for tracks GET /v1/search")
    query = generator.embed_single("How do I search tracks?")
    print(f"Embedding length: {len(doc)}, similarity: {generator.similarity(doc, query):.4f}")
