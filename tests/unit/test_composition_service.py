"""Unit tests for CompositionService"""
import pytest
import pytest_asyncio

from exceptions import ConcurrentModificationException, ResourceNotFoundException, ValidationException
from models.compositions import AssignmentCheckRequest, AssignPlayerRequest, AvailabilityEntry
from models.matches import ID_EPREUVE_FEMININ, ChampionshipTypeEnum, EpreuveEnum, PhaseEnum
from services.composition_service import CompositionService, championship_types_for, teams_for
from tests.fixtures.data_fixtures import (
    create_test_match,
    create_test_player,
    create_test_team,
    feminine_team,
    paris_team,
    team,
)

EQUIPES = EpreuveEnum.CHAMPIONNAT_EQUIPES
PARIS = EpreuveEnum.CHAMPIONNAT_PARIS
ALLER = PhaseEnum.ALLER
MASCULIN = ChampionshipTypeEnum.MASCULIN
FEMININ = ChampionshipTypeEnum.FEMININ
KEY = "championnat_equipes_aller_1_masculin"


def composition_doc(teams: dict, revision: int) -> dict:
    return {
        "_id": KEY, "epreuve": "championnat_equipes", "phase": "aller", "journee": 1,
        "championshipType": "masculin", "teams": teams, "revision": revision,
    }


def availability_doc(players: dict) -> dict:
    return {
        "_id": KEY, "epreuve": "championnat_equipes", "phase": "aller", "journee": 1,
        "championshipType": "masculin", "players": players,
    }


@pytest_asyncio.fixture
async def seeded_db(mongodb):
    await mongodb["teams"].insert_many([
        create_test_team("t2", "SQY PING 2"),
        create_test_team("t1", "SQY PING 1"),
        create_test_team("f1", "SQY PING 1 Dames", id_epreuve=ID_EPREUVE_FEMININ),
    ])
    await mongodb["matches"].insert_many([
        create_test_match("fm1", "f1", 1, id_epreuve=ID_EPREUVE_FEMININ),
    ])
    await mongodb["players"].insert_many([
        create_test_player("p1", firstName="Marc", lastName="DURAND"),
        create_test_player("p2"),
        create_test_player("p3", highestMasculineTeamNumberByPhase={"aller": 1}),
        create_test_player("f1p", gender="F"),
        create_test_player("paris", firstName="Paul", lastName="LEROY", participation={"championnatParis": True}),
        create_test_player("gone", isActive=False),
    ])
    return mongodb


@pytest.fixture
def service(seeded_db):
    return CompositionService(seeded_db)


class TestScopes:

    def test_teams_for(self):
        teams = [team("t1", "SQY PING 1"), feminine_team("f1", "SQY PING 1"), paris_team("p1", "SQY PING 1")]
        assert [t.id for t in teams_for(teams, EQUIPES, MASCULIN)] == ["t1"]
        assert [t.id for t in teams_for(teams, EQUIPES, FEMININ)] == ["f1"]
        assert [t.id for t in teams_for(teams, PARIS, MASCULIN)] == ["p1"]

    def test_championship_types(self):
        assert championship_types_for(PARIS) == [MASCULIN]
        assert championship_types_for(EQUIPES) == [MASCULIN, FEMININ]


class TestReads:

    @pytest.mark.asyncio
    async def test_missing_composition_is_empty(self, service):
        composition = await service.get_composition(EQUIPES, ALLER, 1, MASCULIN)
        assert composition.id == KEY
        assert composition.teams == {}
        assert composition.revision == 0

    @pytest.mark.asyncio
    async def test_paris_phase_is_normalised(self, service):
        composition = await service.get_composition(PARIS, PhaseEnum.RETOUR, 3, MASCULIN)
        assert composition.id == "championnat_paris_aller_3_masculin"

    @pytest.mark.asyncio
    async def test_view_sorts_teams_and_merges_availability(self, service, seeded_db):
        await seeded_db["compositions"].insert_one(composition_doc({"t1": ["p1"]}, 2))
        await seeded_db["availabilities"].insert_one(availability_doc({"p1": {"available": False}}))

        view = await service.get_composition_view(EQUIPES, ALLER, 1, MASCULIN)

        assert view.revision == 2
        assert [t.teamId for t in view.teams] == ["t1", "t2"]
        first = view.teams[0]
        assert first.playerIds == ["p1"]
        assert first.maxPlayers == 4
        assert not first.validation.valid
        assert first.validation.reason == "Marc DURAND n'est pas disponible"
        assert view.teams[1].validation.valid

    @pytest.mark.asyncio
    async def test_view_lists_the_competition_pool(self, service):
        masculine = await service.get_composition_view(EQUIPES, ALLER, 1, MASCULIN)
        feminine = await service.get_composition_view(EQUIPES, ALLER, 1, FEMININ)

        assert masculine.poolPlayerIds == ["p1", "p2", "p3", "f1p"]
        assert feminine.poolPlayerIds == ["f1p"]


class TestCheckAssignment:

    @pytest.mark.asyncio
    async def test_uses_client_roster(self, service, seeded_db):
        await seeded_db["compositions"].insert_one(composition_doc({"t2": ["p2"]}, 1))
        request = AssignmentCheckRequest(
            playerId="p3", teamId="t2", journee=1, compositions={"t2": ["p1"]}
        )
        result = await service.check_assignment(request)

        assert not result.canAssign
        assert result.simulatedPlayerIds == ["p1", "p3"]

    @pytest.mark.asyncio
    async def test_falls_back_to_stored_roster(self, service, seeded_db):
        await seeded_db["compositions"].insert_one(composition_doc({"t1": ["p1"]}, 1))
        request = AssignmentCheckRequest(playerId="p2", teamId="t1", journee=1)
        result = await service.check_assignment(request)
        assert result.canAssign
        assert result.simulatedPlayerIds == ["p1", "p2"]

    @pytest.mark.asyncio
    async def test_player_outside_the_competition(self, service):
        result = await service.check_assignment(AssignmentCheckRequest(playerId="paris", teamId="t1", journee=1))
        assert not result.canAssign
        assert result.reason == "Paul LEROY n'est pas engagé dans ce championnat"


class TestAssignPlayer:

    @pytest.mark.asyncio
    async def test_first_assignment_is_committed(self, service, seeded_db):
        result, composition = await service.assign_player(
            EQUIPES, ALLER, 1, MASCULIN, AssignPlayerRequest(playerId="p1", teamId="t1")
        )

        assert result.canAssign
        assert composition.teams == {"t1": ["p1"]}
        assert composition.revision == 1
        stored = await seeded_db["compositions"].find_one({"_id": KEY})
        assert stored["teams"] == {"t1": ["p1"]}
        assert stored["revision"] == 1
        assert stored["championshipType"] == "masculin"
        assert stored["updatedAt"] is not None

    @pytest.mark.asyncio
    async def test_player_moves_between_teams(self, service, seeded_db):
        await seeded_db["compositions"].insert_one(composition_doc({"t1": ["p1", "p2"]}, 3))
        _, composition = await service.assign_player(
            EQUIPES, ALLER, 1, MASCULIN, AssignPlayerRequest(playerId="p1", teamId="t2", expectedRevision=3)
        )
        assert composition.teams == {"t1": ["p2"], "t2": ["p1"]}
        assert composition.revision == 4
        stored = await seeded_db["compositions"].find_one({"_id": KEY})
        assert (stored["teams"], stored["revision"]) == ({"t1": ["p2"], "t2": ["p1"]}, 4)

    @pytest.mark.asyncio
    async def test_removal(self, service, seeded_db):
        await seeded_db["compositions"].insert_one(composition_doc({"t1": ["p1"]}, 1))
        result, composition = await service.assign_player(
            EQUIPES, ALLER, 1, MASCULIN, AssignPlayerRequest(playerId="p1", teamId=None)
        )
        assert result.canAssign
        assert composition.teams == {"t1": []}

    @pytest.mark.asyncio
    async def test_rejection_is_not_committed(self, service, seeded_db):
        result, composition = await service.assign_player(
            EQUIPES, ALLER, 1, MASCULIN, AssignPlayerRequest(playerId="p3", teamId="t2")
        )
        assert not result.canAssign
        assert "Brûlé dans l'équipe 1" in result.reason
        assert composition.revision == 0
        assert await seeded_db["compositions"].find_one({"_id": KEY}) is None

    @pytest.mark.asyncio
    async def test_inactive_player_is_rejected(self, service, seeded_db):
        result, _ = await service.assign_player(
            EQUIPES, ALLER, 1, MASCULIN, AssignPlayerRequest(playerId="gone", teamId="t1")
        )
        assert not result.canAssign
        assert result.reason.endswith("n'est pas engagé dans ce championnat")
        assert await seeded_db["compositions"].find_one({"_id": KEY}) is None

    @pytest.mark.asyncio
    async def test_stale_revision(self, service):
        with pytest.raises(ConcurrentModificationException) as exc_info:
            await service.assign_player(
                EQUIPES, ALLER, 1, MASCULIN, AssignPlayerRequest(playerId="p1", teamId="t1", expectedRevision=5)
            )
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_lost_race(self, service, seeded_db, mocker):
        # both requests validated against revision 0, the first one commits
        stale = await service.get_composition(EQUIPES, ALLER, 1, MASCULIN)
        await service.assign_player(EQUIPES, ALLER, 1, MASCULIN, AssignPlayerRequest(playerId="p1", teamId="t1"))
        mocker.patch.object(service, "get_composition", return_value=stale)

        with pytest.raises(ConcurrentModificationException) as exc_info:
            await service.assign_player(
                EQUIPES, ALLER, 1, MASCULIN, AssignPlayerRequest(playerId="p2", teamId="t2")
            )

        assert exc_info.value.status_code == 409
        stored = await seeded_db["compositions"].find_one({"_id": KEY})
        assert (stored["teams"], stored["revision"]) == ({"t1": ["p1"]}, 1)

    @pytest.mark.asyncio
    async def test_second_commit_on_the_same_revision(self, service, seeded_db):
        fields = {"teams": {"t1": ["p1"]}}
        assert await service._commit("compositions", KEY, 0, fields) == 1
        with pytest.raises(ConcurrentModificationException):
            await service._commit("compositions", KEY, 0, {"teams": {"t1": ["p2"]}})
        stored = await seeded_db["compositions"].find_one({"_id": KEY})
        assert (stored["teams"], stored["revision"]) == ({"t1": ["p1"]}, 1)

    @pytest.mark.asyncio
    async def test_team_outside_scope(self, service):
        with pytest.raises(ResourceNotFoundException):
            await service.assign_player(
                EQUIPES, ALLER, 1, MASCULIN, AssignPlayerRequest(playerId="f1p", teamId="f1")
            )


class TestAvailability:

    @pytest.mark.asyncio
    async def test_answers_are_merged(self, service, seeded_db):
        await seeded_db["availabilities"].insert_one(availability_doc({"p1": {"available": True}}))

        availability = await service.save_availability(
            EQUIPES, ALLER, 1, MASCULIN, {"p2": AvailabilityEntry(available=False, comment="blessé")}
        )

        assert availability.id == KEY
        assert availability.players == {
            "p1": AvailabilityEntry(available=True),
            "p2": AvailabilityEntry(available=False, comment="blessé"),
        }
        assert availability.updatedAt is not None

    @pytest.mark.asyncio
    async def test_first_answer_creates_the_match_day(self, service, seeded_db):
        availability = await service.save_availability(
            PARIS, PhaseEnum.RETOUR, 2, MASCULIN, {"paris": AvailabilityEntry(available=True)}
        )
        assert availability.id == "championnat_paris_aller_2_masculin"
        assert availability.phase == ALLER
        assert (await service.get_availability(PARIS, ALLER, 2, MASCULIN))["paris"].available

    @pytest.mark.asyncio
    async def test_unknown_player(self, service):
        with pytest.raises(ResourceNotFoundException) as exc_info:
            await service.save_availability(EQUIPES, ALLER, 1, MASCULIN, {"nobody": AvailabilityEntry()})
        assert exc_info.value.details["player_ids"] == ["nobody"]

    @pytest.mark.asyncio
    async def test_malformed_player_id(self, service):
        with pytest.raises(ValidationException):
            await service.save_availability(EQUIPES, ALLER, 1, MASCULIN, {"p1.available": AvailabilityEntry()})
        with pytest.raises(ValidationException):
            await service.save_availability(EQUIPES, ALLER, 1, MASCULIN, {})


class TestDefaults:

    @pytest.mark.asyncio
    async def test_save_default_composition(self, service, seeded_db):
        defaults = await service.save_default_composition(EQUIPES, ALLER, MASCULIN, {"t1": ["p1", "p2"]})
        assert defaults.id == "championnat_equipes_aller_masculin"
        assert defaults.revision == 1
        stored = await seeded_db["compositionDefaults"].find_one({"_id": defaults.id})
        assert stored["teams"] == {"t1": ["p1", "p2"]}

    @pytest.mark.asyncio
    async def test_default_team_size_is_capped(self, service):
        with pytest.raises(ValidationException):
            await service.save_default_composition(EQUIPES, ALLER, MASCULIN, {"t1": ["a", "b", "c", "d", "e", "f"]})

    @pytest.mark.asyncio
    async def test_player_in_two_default_teams(self, service):
        with pytest.raises(ValidationException) as exc_info:
            await service.save_default_composition(EQUIPES, ALLER, MASCULIN, {"t1": ["p1"], "t2": ["p1"]})
        assert exc_info.value.details["player_ids"] == ["p1"]

    @pytest.mark.asyncio
    async def test_unknown_default_team(self, service):
        with pytest.raises(ResourceNotFoundException):
            await service.save_default_composition(EQUIPES, ALLER, MASCULIN, {"f1": ["f1p"]})

    @pytest.mark.asyncio
    async def test_apply_defaults(self, service, seeded_db):
        await seeded_db["compositionDefaults"].insert_one({
            "_id": "championnat_equipes_aller_masculin", "epreuve": "championnat_equipes", "phase": "aller",
            "championshipType": "masculin", "teams": {"t1": ["p1", "p2"], "t2": ["p3", "gone"]}, "revision": 1,
        })
        await seeded_db["availabilities"].insert_one(availability_doc({
            "p1": {"available": True}, "p3": {"available": True}, "gone": {"available": True},
        }))

        applied = await service.apply_defaults(EQUIPES, ALLER, 1)

        assert applied.compositions == {MASCULIN: {"t1": ["p1"], "t2": []}}
        assert applied.assignedCount == 1
        # unavailable, burned and inactive players are dropped
        assert applied.droppedPlayerIds == ["p2", "p3", "gone"]
        stored = await seeded_db["compositions"].find_one({"_id": KEY})
        assert (stored["teams"], stored["revision"]) == ({"t1": ["p1"], "t2": []}, 1)

    @pytest.mark.asyncio
    async def test_filled_composition_is_kept_unless_forced(self, service, seeded_db):
        await seeded_db["compositions"].insert_one(composition_doc({"t1": ["p2"]}, 1))
        await seeded_db["compositionDefaults"].insert_one({
            "_id": "championnat_equipes_aller_masculin", "epreuve": "championnat_equipes", "phase": "aller",
            "championshipType": "masculin", "teams": {"t1": ["p1"]}, "revision": 1,
        })
        await seeded_db["availabilities"].insert_one(availability_doc({"p1": {"available": True}}))

        kept = await service.apply_defaults(EQUIPES, ALLER, 1)
        assert kept.compositions == {}
        assert (await seeded_db["compositions"].find_one({"_id": KEY}))["teams"] == {"t1": ["p2"]}

        forced = await service.apply_defaults(EQUIPES, ALLER, 1, force=True)
        assert forced.compositions == {MASCULIN: {"t1": ["p1"]}}
        stored = await seeded_db["compositions"].find_one({"_id": KEY})
        assert (stored["teams"], stored["revision"]) == ({"t1": ["p1"]}, 2)
