"""
Assignment Validation Service - prospective check of a single assignment

Decides whether one player may be dropped into one team for a match day,
given the current compositions snapshot. Pure: no I/O, no mutation of the
inputs. Rating thresholds depend on the whole roster and are left to the
composition validator.
"""

from collections.abc import Iterable

from config import settings
from models.compositions import AssignmentValidationResult, CompositionMap
from models.matches import ChampionshipTypeEnum, EpreuveEnum, PhaseEnum
from models.players import PlayerDB
from models.teams import TeamWithMatches
from services.burnout_service import (
    BurnContext,
    calculate_future_burnout,
    get_burn_context,
    get_burned_team_number,
    get_match_counts,
    is_burned_for_team,
)
from services.epreuve_service import get_team_epreuve, is_match_played, normalise_phase
from services.team_classifier import (
    classify_gender,
    extract_team_number,
    get_max_players_for_team,
)

MAX_FOREIGN_PLAYERS = 1
MAX_FEMALE_PLAYERS_IN_MASCULINE_TEAM = 2
MAX_DAY_TWO_CARRY_OVER = 1


class TeamContext:
    """Everything the rules need to know about the target team"""

    def __init__(self, team: TeamWithMatches, phase: PhaseEnum):
        self.team = team
        self.number = extract_team_number(team.team.name)
        self.epreuve = get_team_epreuve(team)
        self.championship_type = classify_gender(team.matches)
        self.phase = normalise_phase(phase, self.epreuve)
        self.burn_context: BurnContext = get_burn_context(self.epreuve, self.championship_type)

    @property
    def is_paris(self) -> bool:
        return self.epreuve == EpreuveEnum.CHAMPIONNAT_PARIS

    @property
    def is_masculine(self) -> bool:
        return self.championship_type == ChampionshipTypeEnum.MASCULIN


def journee_one_team_numbers(
    teams: Iterable[TeamWithMatches], target: TeamContext
) -> dict[str, int]:
    """
    Team number each player played for on the first match day of the phase,
    among the played team championship matches of the target's category.
    """
    numbers: dict[str, int] = {}
    for team in teams:
        if get_team_epreuve(team) != EpreuveEnum.CHAMPIONNAT_EQUIPES:
            continue
        if classify_gender(team.matches) != target.championship_type:
            continue
        team_number = extract_team_number(team.team.name)
        if team_number <= 0:
            continue
        for match in team.matches:
            if match.journee != 1 or match.phase != target.phase or not is_match_played(match):
                continue
            for joueur in match.joueursSQY:
                if joueur.licence:
                    numbers.setdefault(joueur.licence, team_number)
    return numbers


def is_day_two_rule_applicable(target: TeamContext, journee: int | None) -> bool:
    return (
        not target.is_paris
        and target.number > 0
        and journee is not None
        and journee == settings.DAY_TWO_RULE_JOURNEE
    )


def day_two_carry_over_players(
    roster: list[PlayerDB], teams: Iterable[TeamWithMatches], target: TeamContext
) -> list[PlayerDB]:
    """Players of the roster who played match day 1 in a team numbered below the target"""
    played_for = journee_one_team_numbers(teams, target)
    return [
        player
        for player in roster
        if player.licence in played_for and played_for[player.licence] < target.number
    ]


def day_two_reason() -> str:
    return (
        f"Lors de la {settings.DAY_TWO_RULE_JOURNEE}ème journée, une équipe ne peut comporter "
        "qu'un seul joueur ayant joué la 1ère journée dans une équipe de numéro inférieur"
    )


def can_assign_player_to_team(
    player_id: str,
    team_id: str,
    players: list[PlayerDB],
    teams: list[TeamWithMatches],
    compositions: CompositionMap,
    phase: PhaseEnum,
    journee: int | None,
    max_players: int | None = None,
) -> AssignmentValidationResult:
    """
    Check, in order: capacity, nationality quota, gender quota, burn state and
    the day-two carry-over rule. The first failing check is reported.

    An accepted assignment may still carry a warning reason when the match
    would newly burn the player.
    """
    players_by_id = {player.id: player for player in players}
    player = players_by_id.get(player_id)
    team = next((t for t in teams if t.id == team_id), None)
    if player is None or team is None:
        return AssignmentValidationResult(canAssign=False, reason="Données introuvables")

    target = TeamContext(team, phase)
    if max_players is None:
        max_players = get_max_players_for_team(team)

    current_ids = [pid for pid in compositions.get(team_id, []) if pid != player_id]
    current = [players_by_id[pid] for pid in current_ids if pid in players_by_id]
    simulated = current + [player]
    simulated_ids = [p.id for p in simulated]

    def reject(reason: str) -> AssignmentValidationResult:
        return AssignmentValidationResult(
            canAssign=False, reason=reason, simulatedPlayerIds=simulated_ids
        )

    if len(current_ids) >= max_players:
        return reject(f"L'équipe est complète ({len(current_ids)}/{max_players} joueurs)")

    if player.isForeign:
        foreign = [p for p in current if p.isForeign]
        if len(foreign) >= MAX_FOREIGN_PLAYERS:
            return reject("L'équipe contient déjà un joueur étranger (ETR)")

    if not target.is_paris and target.is_masculine:
        females = [p for p in simulated if p.isFemale]
        if len(females) > MAX_FEMALE_PLAYERS_IN_MASCULINE_TEAM:
            return reject("Une équipe masculine ne peut comporter plus de deux joueuses")

    burned_team = get_burned_team_number(player, target.phase, target.burn_context)
    if is_burned_for_team(burned_team, target.number):
        return reject(
            f"Brûlé dans l'équipe {burned_team}, ne peut pas jouer dans l'équipe {target.number}"
        )

    if is_day_two_rule_applicable(target, journee):
        carry_over = day_two_carry_over_players(simulated, teams, target)
        candidate_carried = any(p.id == player.id for p in carry_over)
        if candidate_carried and len(carry_over) > MAX_DAY_TWO_CARRY_OVER:
            return reject(day_two_reason())

    warning = None
    if target.number > 0:
        counts = get_match_counts(player, target.phase, target.burn_context)
        future = calculate_future_burnout(counts, target.number, target.burn_context.rule)
        if future is not None and future != burned_team:
            warning = f"Sera brûlé(e) dans l'équipe {future} après ce match"

    return AssignmentValidationResult(canAssign=True, reason=warning, simulatedPlayerIds=simulated_ids)
