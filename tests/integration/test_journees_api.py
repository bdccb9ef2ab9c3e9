"""Integration tests for the match days endpoint"""
from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient

from models.matches import ID_EPREUVE_PARIS
from tests.fixtures.data_fixtures import create_test_match, create_test_team


class TestJourneesAPI:

    @pytest.mark.asyncio
    async def test_empty_database(self, client: AsyncClient):
        response = await client.get("/journees")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["index"] == {}
        assert data["default"] == {"epreuve": "championnat_equipes", "phase": None, "journee": None}
        assert data["currentPhase"] == "aller"

    @pytest.mark.asyncio
    async def test_index_and_default_selection(self, client: AsyncClient, mongodb):
        today = datetime.now().replace(hour=0, minute=0, second=0, microsecond=0)
        await mongodb["teams"].insert_many([
            create_test_team("t1", "SQY PING 1"),
            create_test_team("p1", "SQY PING 1", division="Paris IDF Excellence", id_epreuve=ID_EPREUVE_PARIS),
        ])
        await mongodb["matches"].insert_many([
            create_test_match("m1", "t1", 1, journee=1, date=today - timedelta(days=14)),
            create_test_match("m2", "t1", 1, journee=2, date=today + timedelta(days=7, hours=16)),
            create_test_match("m3", "p1", 1, journee=4, date=today + timedelta(days=3, hours=20),
                              id_epreuve=ID_EPREUVE_PARIS),
        ])

        response = await client.get("/journees")

        assert response.status_code == 200
        data = response.json()["data"]
        equipes = data["index"]["championnat_equipes"]["aller"]
        assert [j["journee"] for j in equipes] == [1, 2]
        assert len(equipes[1]["dates"]) == 1
        assert [j["journee"] for j in data["index"]["championnat_paris"]["aller"]] == [4]
        # the Paris match day is the closest upcoming one
        assert data["default"] == {"epreuve": "championnat_paris", "phase": "aller", "journee": 4}
