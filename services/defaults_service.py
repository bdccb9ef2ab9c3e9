"""
Defaults Service - apply template rosters to a match day
"""

from pydantic import BaseModel, Field

from logging_config import logger
from models.compositions import AvailabilityEntry, CompositionMap
from models.matches import ChampionshipTypeEnum, PhaseEnum
from models.players import PlayerDB
from models.teams import TeamWithMatches
from services.assignment_validation_service import TeamContext
from services.burnout_service import get_burned_team_number, is_burned_for_team
from services.team_classifier import get_max_players_for_team

# bound of the template editor, distinct from the per-team match capacity
MAX_PLAYERS_PER_DEFAULT_TEAM = 5


class DefaultsApplication(BaseModel):
    compositions: dict[ChampionshipTypeEnum, CompositionMap] = Field(default_factory=dict)
    droppedPlayerIds: list[str] = Field(default_factory=list)

    @property
    def combined(self) -> CompositionMap:
        merged: CompositionMap = {}
        for composition in self.compositions.values():
            merged.update(composition)
        return merged


def _apply_template(
    template: CompositionMap,
    availability: dict[str, AvailabilityEntry],
    players_by_id: dict[str, PlayerDB],
    teams_by_id: dict[str, TeamWithMatches],
    phase: PhaseEnum,
    dropped: list[str],
) -> CompositionMap:
    composition: CompositionMap = {}
    used: set[str] = set()

    for team_id, player_ids in template.items():
        team = teams_by_id.get(team_id)
        if team is None:
            logger.debug(f"Skipping defaults of unknown team {team_id}")
            continue
        target = TeamContext(team, phase)
        max_players = get_max_players_for_team(team)
        roster: list[str] = []

        for player_id in player_ids:
            player = players_by_id.get(player_id)
            entry = availability.get(player_id)
            if player is None or entry is None or not entry.available or player_id in used:
                dropped.append(player_id)
                continue
            burned_team = get_burned_team_number(player, target.phase, target.burn_context)
            if is_burned_for_team(burned_team, target.number) or len(roster) >= max_players:
                dropped.append(player_id)
                continue
            roster.append(player_id)
            used.add(player_id)

        composition[team_id] = roster
    return composition


def apply_default_compositions(
    defaults: dict[ChampionshipTypeEnum, CompositionMap],
    availabilities: dict[ChampionshipTypeEnum, dict[str, AvailabilityEntry]],
    players: list[PlayerDB],
    teams: list[TeamWithMatches],
    phase: PhaseEnum,
) -> DefaultsApplication:
    """
    Build the match day compositions of both championship types from their
    templates.

    Template order is kept. A templated player is dropped when unknown, not
    explicitly available, burned for the team, already placed in another team
    of the same type, or once the team reached get_max_players_for_team().
    """
    players_by_id = {player.id: player for player in players}
    teams_by_id = {team.id: team for team in teams}
    result = DefaultsApplication()

    for championship_type in ChampionshipTypeEnum:
        template = defaults.get(championship_type)
        if not template:
            continue
        result.compositions[championship_type] = _apply_template(
            template,
            availabilities.get(championship_type, {}),
            players_by_id,
            teams_by_id,
            phase,
            result.droppedPlayerIds,
        )
    return result
