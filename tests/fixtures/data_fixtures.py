"""Test data fixtures and helper functions for creating test documents"""
from datetime import datetime
from typing import Any

from faker import Faker

from exceptions import ExternalServiceException
from models.matches import ID_EPREUVE_FEMININ, ID_EPREUVE_MASCULIN, ID_EPREUVE_PARIS, MatchDB
from models.players import PlayerDB
from models.teams import TeamDB, TeamWithMatches

fake = Faker("fr_FR")


def create_test_player(licence: str, **overrides) -> dict[str, Any]:
    """Create a test player document (_id is the licence)"""
    player = {
        "_id": licence,
        "licence": licence,
        "firstName": fake.first_name(),
        "lastName": fake.last_name().upper(),
        "nationality": "FR",
        "gender": "M",
        "points": 1000,
        "isActive": True,
        "participation": {"championnat": True, "championnatParis": True},
    }
    player.update(overrides)
    return player


def create_test_team(
    team_id: str,
    name: str,
    division: str = "FED_Régionale 1 Phase 1",
    id_epreuve: int | None = ID_EPREUVE_MASCULIN,
    **overrides,
) -> dict[str, Any]:
    """Create a test team document"""
    team = {
        "_id": team_id,
        "name": name,
        "division": division,
        "idEpreuve": id_epreuve,
        "epreuve": None,
        "isFemale": id_epreuve == ID_EPREUVE_FEMININ,
    }
    team.update(overrides)
    return team


def create_test_match(
    match_id: str,
    team_id: str,
    team_number: int,
    journee: int = 1,
    phase: str = "aller",
    licences: tuple[str, ...] = (),
    date: datetime | None = None,
    id_epreuve: int | None = ID_EPREUVE_MASCULIN,
    score: str | None = None,
    **overrides,
) -> dict[str, Any]:
    """Create a test match document; a match with licences counts as played"""
    match = {
        "_id": match_id,
        "teamId": team_id,
        "teamNumber": team_number,
        "phase": phase,
        "journee": journee,
        "date": date or datetime(2025, 9, 20, 16, 0),
        "idEpreuve": id_epreuve,
        "isFemale": id_epreuve == ID_EPREUVE_FEMININ,
        "opponent": f"{fake.city().upper()} TT 1",
        "score": score or ("8-6" if licences else None),
        "joueursSQY": [{"licence": licence, "nom": fake.last_name()} for licence in licences],
    }
    match.update(overrides)
    return match


def player(licence: str, **overrides) -> PlayerDB:
    return PlayerDB(**create_test_player(licence, **overrides))


def team(
    team_id: str,
    name: str,
    matches: list[dict] | None = None,
    **overrides,
) -> TeamWithMatches:
    return TeamWithMatches(
        team=TeamDB(**create_test_team(team_id, name, **overrides)),
        matches=[MatchDB(**doc) for doc in matches or []],
    )


def feminine_team(team_id: str, name: str, **overrides) -> TeamWithMatches:
    """A feminine team is recognised through its matches"""
    overrides.setdefault("division", "FED_Régionale Dames Phase 1")
    match = create_test_match(f"{team_id}-m0", team_id, 0, id_epreuve=ID_EPREUVE_FEMININ)
    return team(team_id, name, matches=[match], id_epreuve=ID_EPREUVE_FEMININ, **overrides)


def paris_team(team_id: str, name: str, division: str = "Paris IDF Excellence", **overrides) -> TeamWithMatches:
    return team(team_id, name, division=division, id_epreuve=ID_EPREUVE_PARIS, **overrides)


# --- federation payloads


def create_raw_team(team_id: int, label: str, **overrides) -> dict[str, Any]:
    raw = {
        "idEquipe": team_id,
        "libelle": label,
        "division": "FED_Régionale 1 Phase 1",
        "idEpreuve": ID_EPREUVE_MASCULIN,
        "lienDivision": f"cx_poule={team_id}&D1=1",
    }
    raw.update(overrides)
    return raw


def create_raw_encounter(
    rencontre_id: int,
    home: str,
    away: str,
    club_licences: tuple[str, ...] = (),
    tour: int = 1,
    score: tuple[str, str] = ("8", "6"),
    **overrides,
) -> dict[str, Any]:
    club_side = "joueursA" if "SQY PING" in home else "joueursB"
    raw = {
        "libelle": f"Poule 2 - tour n°{tour}",
        "lien": f"renc_id={rencontre_id}&is_retour=0",
        "nomEquipeA": home,
        "nomEquipeB": away,
        "scoreEquipeA": score[0],
        "scoreEquipeB": score[1],
        "dateReelle": "20/09/2025",
        "details": {
            club_side: {
                str(i): {"licence": licence, "nom": fake.last_name(), "prenom": fake.first_name()}
                for i, licence in enumerate(club_licences)
            },
        },
    }
    raw.update(overrides)
    return raw


class FakeFederationSource:
    """In-memory FederationSource"""

    def __init__(
        self,
        players: list[dict] | None = None,
        details: dict[str, dict] | None = None,
        teams: list[dict] | None = None,
        encounters: dict[int, list[dict]] | None = None,
        failing_licences: tuple[str, ...] = (),
        failing_teams: tuple[int, ...] = (),
    ):
        self.players = players or []
        self.details = details or {}
        self.teams = teams or []
        self.encounters = encounters or {}
        self.failing_licences = failing_licences
        self.failing_teams = failing_teams
        self.detail_calls: list[str] = []

    async def get_teams_for_club(self) -> list[dict]:
        return self.teams

    async def get_players_for_club(self) -> list[dict]:
        return self.players

    async def get_matches_for_team(self, team: dict) -> list[dict]:
        if team["idEquipe"] in self.failing_teams:
            raise ExternalServiceException("FFTT_API", f"pool of team {team['idEquipe']} unavailable")
        return self.encounters.get(team["idEquipe"], [])

    async def get_player_detail(self, licence: str) -> dict | None:
        self.detail_calls.append(licence)
        if licence in self.failing_licences:
            raise ExternalServiceException("FFTT_API", f"detail of {licence} unavailable")
        return self.details.get(licence)
