"""Shared fixtures: temporary store files and a small documentation corpus."""

import textwrap
import time

import pytest

from apidoc_rag.ingestion.ingestion import DocumentationCorpus
from apidoc_rag.retrieval.retrieval import Retriever
from apidoc_rag.storage.storage import VectorStore

SMALL_CORPUS = textwrap.dedent("""
    github:
      - title: "List repository issues"
        content: "GET /repos/{owner}/{repo}/issues - Lists all issues for a repository."
        endpoint: "/repos/{owner}/{repo}/issues"
        method: GET
      - title: "Create a repository"
        content: "POST /user/repos - Creates a new repository for the authenticated user."
        endpoint: "/user/repos"
        method: POST
      - title: "Search repositories"
        content: "GET /search/repositories - Searches for repositories matching the query."
        endpoint: "/search/repositories"
        method: GET
    spotify:
      - title: "Get track details"
        content: "GET /v1/tracks/{id} - Get Spotify catalog information for a single track."
        endpoint: "/v1/tracks/{id}"
        method: GET
      - title: "Search for tracks"
        content: "GET /v1/search - Search for tracks, albums and artists by keyword."
        endpoint: "/v1/search"
        method: GET
      - title: "Get artist albums"
        content: "GET /v1/artists/{id}/albums - Get the albums released by an artist."
        endpoint: "/v1/artists/{id}/albums"
        method: GET
    stripe:
      - title: "Create payment intent"
        content: "POST /v1/payment_intents - Creates a PaymentIntent to collect a payment."
        endpoint: "/v1/payment_intents"
        method: POST
      - title: "Create customer"
        content: "POST /v1/customers - Creates a new customer object."
        endpoint: "/v1/customers"
        method: POST
""")

SMALL_CORPUS_SIZE = 8


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / 'store.json'


@pytest.fixture
def corpus_path(tmp_path):
    path = tmp_path / 'corpus.yaml'
    path.write_text(SMALL_CORPUS, encoding='utf-8')
    return path


@pytest.fixture
def corpus(corpus_path):
    return DocumentationCorpus(corpus_path=str(corpus_path))


@pytest.fixture
def store(store_path):
    return VectorStore(store_path=str(store_path))


@pytest.fixture
def retriever(store, corpus):
    return Retriever(vector_store=store, corpus=corpus)


@pytest.fixture
def loaded_retriever(retriever):
    retriever.initialize()
    return retriever


class CountingCorpus(DocumentationCorpus):
    """Corpus that records fetch_all calls and can be made slow or failing."""

    def __init__(self, corpus_path, delay=0.0, error=None):
        super().__init__(corpus_path=corpus_path)
        self.delay = delay
        self.error = error
        self.calls = 0

    def fetch_all(self):
        self.calls += 1
        time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return super().fetch_all()
