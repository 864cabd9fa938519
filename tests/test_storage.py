"""Tests for the vector store: add, search, clear and persistence."""

import json
import threading
from unittest.mock import patch

import pytest

from apidoc_rag.embeddings.embeddings import EMBEDDING_DIM
from apidoc_rag.storage.storage import IndexPersistenceError, VectorStore


def _meta(title, platform='github'):
    return {'title': title, 'content': f'{title} content', 'platform': platform}


def test_add_document_persists_after_every_insert(store, store_path):
    first = store.add_document('List repository issues', _meta('List repository issues'))
    assert first.startswith('github_')
    assert len(json.loads(store_path.read_text())['documents']) == 1

    store.add_document('Create a repository', _meta('Create a repository'))
    stored = json.loads(store_path.read_text())
    assert len(stored['documents']) == 2
    assert 'lastUpdated' in stored
    assert store.count() == 2
    assert store.is_initialized()


def test_add_documents_builds_searchable_text(store, corpus):
    sections = corpus.fetch_sections('github')
    ids = store.add_documents(sections, 'GitHub')
    assert len(set(ids)) == len(sections)
    entry = store.documents[0]
    assert entry.text == sections[0].searchable_text()
    assert entry.platform == 'github'
    assert entry.section == sections[0]
    assert len(entry.embedding) == EMBEDDING_DIM


def test_reload_round_trips_entries(store, store_path, corpus):
    store.add_documents(corpus.fetch_sections('spotify'), 'spotify')

    reloaded = VectorStore(store_path=str(store_path))
    assert reloaded.documents == store.documents

    reloaded.save()
    again = VectorStore(store_path=str(store_path))
    assert again.documents == store.documents
    assert again.documents[0].embedding == store.documents[0].embedding


def test_optional_metadata_is_omitted_on_disk(store, store_path):
    store.add_document('Overview', _meta('Overview', 'notion'))
    metadata = json.loads(store_path.read_text())['documents'][0]['metadata']
    assert 'endpoint' not in metadata
    assert metadata['platform'] == 'notion'


def test_malformed_file_starts_empty(store_path):
    store_path.write_text('{not json', encoding='utf-8')
    assert VectorStore(store_path=str(store_path)).count() == 0


def test_wrong_dimension_file_starts_empty(store_path):
    store_path.write_text(json.dumps({'documents': [{
        'id': 'github_1', 'text': 't', 'embedding': [0.5, 0.5],
        'metadata': _meta('t'),
    }]}), encoding='utf-8')
    assert VectorStore(store_path=str(store_path)).count() == 0


def test_legacy_api_key_is_accepted(store_path):
    store_path.write_text(json.dumps({'documents': [{
        'id': 'reddit_1', 'text': 'Submit post', 'embedding': [0.0] * EMBEDDING_DIM,
        'metadata': {'title': 'Submit post', 'api': 'reddit', 'content': 'POST /api/submit'},
    }], 'lastUpdated': '2024-01-01T00:00:00Z'}), encoding='utf-8')
    store = VectorStore(store_path=str(store_path))
    assert store.documents[0].platform == 'reddit'


def test_search_respects_limit_and_ordering(retriever):
    store = retriever.vector_store
    for platform, sections in retriever.corpus.fetch_all().items():
        store.add_documents(sections, platform.value)

    query = 'list repository issues'
    results = store.search(query, limit=3)
    assert len(results) == 3
    query_vector = store.embedding_generator.embed_single(query)
    scores = [store.embedding_generator.similarity(query_vector, r.embedding) for r in results]
    assert scores == sorted(scores, reverse=True)
    assert results[0].metadata.title == 'List repository issues'


def test_search_platform_filter_is_case_insensitive(store, corpus):
    store.add_documents(corpus.fetch_sections('github'), 'github')
    store.add_documents(corpus.fetch_sections('spotify'), 'spotify')

    results = store.search('search', limit=10, platform_filter='GitHub')
    assert len(results) == 3
    assert all(r.platform == 'github' for r in results)
    assert store.search('search', limit=10, platform_filter='stripe') == []


def test_search_ties_keep_insertion_order(store):
    store.add_document('same text', _meta('first'))
    store.add_document('same text', _meta('second'))
    assert [r.metadata.title for r in store.search('same text', limit=2)] == ['first', 'second']


def test_search_on_empty_store_returns_nothing(store):
    assert store.search('anything', limit=2) == []


def test_search_with_non_positive_limit(store):
    store.add_document('List repository issues', _meta('List repository issues'))
    assert store.search('issues', limit=0) == []


def test_clear_empties_and_persists(store, store_path):
    store.add_document('List repository issues', _meta('List repository issues'))
    store.clear()
    assert store.count() == 0
    assert store.search('issues', limit=2) == []
    assert json.loads(store_path.read_text())['documents'] == []


def test_ids_are_not_reused_after_clear(store):
    first = store.add_document('a text', _meta('a'))
    store.clear()
    second = store.add_document('a text', _meta('a'))
    assert first != second


def test_failed_save_aborts_batch(store, corpus):
    sections = corpus.fetch_sections('github')
    with patch.object(store, 'save', side_effect=IndexPersistenceError('disk full')):
        with pytest.raises(IndexPersistenceError):
            store.add_documents(sections, 'github')
    assert store.count() == 0


def test_unwritable_location_raises_persistence_error(tmp_path):
    blocker = tmp_path / 'blocker'
    blocker.write_text('file, not a directory', encoding='utf-8')
    store = VectorStore(store_path=str(blocker / 'store.json'))
    with pytest.raises(IndexPersistenceError):
        store.add_document('text', _meta('text'))
    assert store.count() == 0


def test_failed_clear_keeps_entries(store, store_path):
    store.add_document('List repository issues', _meta('List repository issues'))
    store.add_document('Create a repository', _meta('Create a repository'))
    with patch('apidoc_rag.storage.storage.os.replace', side_effect=OSError('disk full')):
        with pytest.raises(IndexPersistenceError):
            store.clear()
    assert store.count() == 2
    assert store.search('issues', limit=1)[0].metadata.title == 'List repository issues'
    assert len(json.loads(store_path.read_text())['documents']) == 2


def test_concurrent_adds_are_all_persisted(store, store_path):
    barrier = threading.Barrier(6)
    errors = []

    def writer(n):
        barrier.wait()
        try:
            for i in range(10):
                store.add_document(f'writer {n} entry {i}', _meta(f'entry {n}-{i}'))
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert store.count() == 60
    assert len({d.id for d in store.documents}) == 60
    assert len(json.loads(store_path.read_text())['documents']) == 60
    reloaded = VectorStore(store_path=str(store_path))
    assert reloaded.documents == store.documents
