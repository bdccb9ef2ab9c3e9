"""Integration tests for federation sync endpoints"""
import pytest
from httpx import AsyncClient

from main import app
from routers.sync import get_federation_source
from tests.fixtures.data_fixtures import FakeFederationSource, create_raw_encounter, create_raw_team


def override_source(source: FakeFederationSource):
    async def fake_source():
        yield source

    app.dependency_overrides[get_federation_source] = fake_source


@pytest.fixture
def sync_db(client, mock_db):
    """The sync endpoints run against the mocked database"""
    app.state.mongodb = mock_db
    return mock_db


class TestSyncAPI:

    @pytest.mark.asyncio
    async def test_sync_players(self, client: AsyncClient, sync_db):
        override_source(FakeFederationSource(players=[
            {"licence": "781", "nom": "DURAND", "prenom": "Marc", "points": "1500"},
            {"licence": "782", "nom": "DUPONT", "prenom": "Claire", "points": "900", "sexe": "F"},
        ]))

        response = await client.post("/sync/players")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "2 players written"
        assert body["data"]["processed"] == 2
        sync_db["players"].bulk_write.assert_called_once()

    @pytest.mark.asyncio
    async def test_sync_matches(self, client: AsyncClient, sync_db):
        override_source(FakeFederationSource(
            teams=[create_raw_team(101, "SQY PING 1 - Phase 1")],
            encounters={101: [create_raw_encounter(1001, "SQY PING 1", "AS VELIZY 1", ("781",))]},
        ))

        response = await client.post("/sync/matches")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "1 matches synchronised"
        sync_db["teams"].bulk_write.assert_called_once()

    @pytest.mark.asyncio
    async def test_partial_failure_is_reported(self, client: AsyncClient, sync_db):
        override_source(FakeFederationSource(
            teams=[create_raw_team(101, "SQY PING 1 - Phase 1"), create_raw_team(102, "SQY PING 2 - Phase 1")],
            encounters={101: [create_raw_encounter(1001, "SQY PING 1", "AS VELIZY 1", ("781",))]},
            failing_teams=(102,),
        ))

        response = await client.post("/sync/matches")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["data"]["failedTeams"] == ["102"]
        assert body["message"] == "1 team(s) could not be synchronised"
