"""
Shared pytest fixtures for all tests.
This file is automatically loaded by pytest.
"""
import os
from contextlib import asynccontextmanager

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

# Force the test database BEFORE importing any settings
os.environ["DB_NAME"] = "sqyping_test"
os.environ["DB_URL"] = "mongodb://localhost:27017"
os.environ["ENVIRONMENT"] = "test"
os.environ["CLUB_NAME"] = "SQY PING"
os.environ["DAY_TWO_RULE_JOURNEE"] = "2"

from main import app
from tests.test_config import TestSettings

# Override app settings for testing
app.state.settings = TestSettings()


# Override the lifespan to prevent a database connection during tests
@asynccontextmanager
async def test_lifespan(app):
    """Test lifespan that doesn't connect to MongoDB"""
    yield


app.router.lifespan_context = test_lifespan


@pytest_asyncio.fixture(scope="function")
async def mongodb():
    """In-memory MongoDB for testing - function scoped, every test starts from an empty database"""
    settings = TestSettings()
    client = AsyncMongoMockClient()
    db = client[settings.DB_NAME]

    # CRITICAL: Verify we're using the correct test database
    assert db.name == "sqyping_test", f"SAFETY CHECK FAILED: Expected 'sqyping_test' but got '{db.name}'"

    yield db


@pytest.fixture
def mock_db(mocker):
    """
    Mocked database for the sync services, whose bulk writes are asserted
    on rather than executed. seed() gives a collection the document batches
    its successive find() calls answer; the last batch keeps being answered.
    """
    collections = {}

    def make_collection(batches):
        collection = mocker.MagicMock()
        remaining = list(batches) or [[]]

        async def to_list(length=None):
            return remaining.pop(0) if len(remaining) > 1 else remaining[0]

        collection.find.return_value.to_list = mocker.AsyncMock(side_effect=to_list)
        collection.find_one = mocker.AsyncMock(return_value=None)
        collection.update_one = mocker.AsyncMock(return_value=mocker.MagicMock(upserted_id=None, modified_count=1))
        collection.bulk_write = mocker.AsyncMock(
            side_effect=lambda operations, ordered=True: mocker.MagicMock(
                upserted_count=0, modified_count=len(operations)
            )
        )
        return collection

    def get_collection(name):
        if name not in collections:
            collections[name] = make_collection([])
        return collections[name]

    def seed(name, *batches):
        collections[name] = make_collection(batches)
        return collections[name]

    db = mocker.MagicMock()
    db.__getitem__.side_effect = get_collection
    db.seed = seed
    return db


@pytest_asyncio.fixture
async def client(mongodb):
    """HTTP client for API testing, backed by the test database"""
    app.state.mongodb = mongodb
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.state.mongodb = None
    app.dependency_overrides.clear()
