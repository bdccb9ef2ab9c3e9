"""
Team classification helpers

Derive team number, championship type, Paris group structure and roster
capacity from a team's name, division and matches. Unrecognised text never
raises: it falls back to "no constraint" values.
"""

import re
import unicodedata
from collections.abc import Iterable

from pydantic import BaseModel

from models.matches import ChampionshipTypeEnum, EpreuveEnum, MatchDB
from models.players import PlayerDB
from models.teams import TeamWithMatches
from services.epreuve_service import get_team_epreuve

DEFAULT_MAX_PLAYERS = 4
FEMININE_PRE_REGIONALE_MAX_PLAYERS = 3

PHASE_SUFFIX_PATTERN = re.compile(r"\s*-?\s*phase\s*\d+\s*$", re.IGNORECASE)
NUMBER_PATTERN = re.compile(r"\b(\d+)\b")
PRE_REGIONALE_PATTERN = re.compile(r"pre\W*regionale")
FIRST_DIVISION_PATTERN = re.compile(r"\b1\s*(?:ere|er|re)?\s*division\b|\bdivision\s*1\b")
LOWER_DIVISION_PATTERN = re.compile(r"\b[2-9]\s*(?:eme|e|nde|nd)?\s*division\b|\bdivision\s*[2-9]\b")


class ParisTeamStructure(BaseModel):
    groupCount: int
    groupSize: int

    @property
    def totalPlayers(self) -> int:
        return self.groupCount * self.groupSize


def _fold(text: str | None) -> str:
    """Lower case without accents"""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).lower()


def extract_team_number(name: str | None) -> int:
    """Trailing team number of a club team name ("SQY PING 3 - Phase 1" -> 3), 0 if absent"""
    if not name:
        return 0
    stripped = PHASE_SUFFIX_PATTERN.sub("", name)
    numbers = NUMBER_PATTERN.findall(stripped)
    return int(numbers[-1]) if numbers else 0


def classify_gender(matches: Iterable[MatchDB]) -> ChampionshipTypeEnum:
    if any(match.isFemale for match in matches):
        return ChampionshipTypeEnum.FEMININ
    return ChampionshipTypeEnum.MASCULIN


def is_paris_championship(team: TeamWithMatches) -> bool:
    return get_team_epreuve(team) == EpreuveEnum.CHAMPIONNAT_PARIS


def get_paris_team_structure(division: str | None) -> ParisTeamStructure | None:
    text = _fold(division)
    if not text:
        return None
    if "promotion" in text and "excellence" in text:
        return ParisTeamStructure(groupCount=2, groupSize=3)
    if "excellence" in text or "elite" in text:
        return ParisTeamStructure(groupCount=3, groupSize=3)
    if FIRST_DIVISION_PATTERN.search(text):
        return ParisTeamStructure(groupCount=2, groupSize=3)
    if LOWER_DIVISION_PATTERN.search(text):
        return ParisTeamStructure(groupCount=1, groupSize=3)
    return None


def get_max_players_for_team(team: TeamWithMatches) -> int:
    if is_paris_championship(team):
        structure = get_paris_team_structure(team.team.division)
        return structure.totalPlayers if structure else DEFAULT_MAX_PLAYERS

    if (
        classify_gender(team.matches) == ChampionshipTypeEnum.FEMININ
        and PRE_REGIONALE_PATTERN.search(_fold(team.team.division))
    ):
        return FEMININE_PRE_REGIONALE_MAX_PLAYERS
    return DEFAULT_MAX_PLAYERS


def get_teams_by_type(
    teams: Iterable[TeamWithMatches],
) -> dict[ChampionshipTypeEnum, list[TeamWithMatches]]:
    by_type: dict[ChampionshipTypeEnum, list[TeamWithMatches]] = {
        ChampionshipTypeEnum.MASCULIN: [],
        ChampionshipTypeEnum.FEMININ: [],
    }
    for team in teams:
        by_type[classify_gender(team.matches)].append(team)
    return by_type


def get_players_by_type(
    players: Iterable[PlayerDB], championship_type: ChampionshipTypeEnum
) -> list[PlayerDB]:
    # women may play in the masculine championship, not the other way round
    if championship_type == ChampionshipTypeEnum.MASCULIN:
        return list(players)
    return [player for player in players if player.isFemale]


PARTICIPATION_KEYS: dict[EpreuveEnum, str] = {
    EpreuveEnum.CHAMPIONNAT_EQUIPES: "championnat",
    EpreuveEnum.CHAMPIONNAT_PARIS: "championnatParis",
}


def get_championship_players(players: Iterable[PlayerDB], epreuve: EpreuveEnum) -> list[PlayerDB]:
    """Players entered in the competition: participation flag set, active or temporary licence"""
    key = PARTICIPATION_KEYS[epreuve]
    return [
        player
        for player in players
        if player.participation.get(key) is True and (player.isActive or player.isTemporary)
    ]
