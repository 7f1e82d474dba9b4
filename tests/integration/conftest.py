"""Fixtures for tests against the in-process Elasticsearch fake."""

from collections.abc import AsyncIterator

import pytest_asyncio

from log_shipper.store.elasticsearch import ElasticsearchStore
from tests.integration.fake_elasticsearch import FakeElasticsearch


@pytest_asyncio.fixture
async def fake_es() -> AsyncIterator[FakeElasticsearch]:
    async with FakeElasticsearch() as server:
        yield server


@pytest_asyncio.fixture
async def es_store(fake_es: FakeElasticsearch) -> AsyncIterator[ElasticsearchStore]:
    async with ElasticsearchStore(fake_es.base_url, request_timeout=5.0) as store:
        yield store
