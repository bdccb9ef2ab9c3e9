"""
Burnout Service - "brûlage" computation

A player who accumulated enough matches in a higher-ranked team (smaller
team number) during a phase is burned and may no longer play for teams with
a larger number than the burned one. Two rules exist:

- standard (team championship): list every match as its team number, sorted
  ascending; from the second match on, the player is burned into the team of
  that second match.
- Paris: a team T is burned once the player has 3 or more matches in some
  team L < T; the lowest such T is reported.

Burn state is a materialised cache of match history, rebuilt wholesale by the
match sync for three independent contexts (standard masculine, standard
feminine, Paris).
"""

from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any

from models.matches import ChampionshipTypeEnum, EpreuveEnum, PhaseEnum
from models.players import PlayerDB
from models.teams import TeamWithMatches
from services.epreuve_service import get_match_epreuve, is_match_played, normalise_phase
from services.team_classifier import extract_team_number

PARIS_BURN_MATCH_COUNT = 3

# {teamNumber: matches played}
MatchCounts = dict[int, int]
# {licence: {phase: {teamNumber: count}}}
PlayerMatchCounts = dict[str, dict[PhaseEnum, MatchCounts]]


class BurnRule(str, Enum):
    STANDARD = 'standard'
    PARIS = 'paris'


class BurnContext(str, Enum):
    MASCULIN = 'masculin'
    FEMININ = 'feminin'
    PARIS = 'paris'

    @property
    def rule(self) -> BurnRule:
        return BurnRule.PARIS if self == BurnContext.PARIS else BurnRule.STANDARD

    @property
    def burn_field(self) -> str:
        return BURN_FIELDS[self][0]

    @property
    def counts_field(self) -> str:
        return BURN_FIELDS[self][1]


BURN_FIELDS: dict[BurnContext, tuple[str, str]] = {
    BurnContext.MASCULIN: ("highestMasculineTeamNumberByPhase", "masculineMatchesByTeamByPhase"),
    BurnContext.FEMININ: ("highestFeminineTeamNumberByPhase", "feminineMatchesByTeamByPhase"),
    BurnContext.PARIS: ("highestTeamNumberByPhaseParis", "matchesByTeamByPhaseParis"),
}


def standard_burned_team(counts: MatchCounts) -> int | None:
    expanded = sorted(
        team_number for team_number, count in counts.items() for _ in range(max(count, 0))
    )
    return expanded[1] if len(expanded) >= 2 else None


def paris_burned_team(counts: MatchCounts) -> int | None:
    team_numbers = sorted(counts)
    for team_number in team_numbers:
        for lower in team_numbers:
            if lower >= team_number:
                break
            if counts[lower] >= PARIS_BURN_MATCH_COUNT:
                return team_number
    return None


RULES: dict[BurnRule, Callable[[MatchCounts], int | None]] = {
    BurnRule.STANDARD: standard_burned_team,
    BurnRule.PARIS: paris_burned_team,
}


def compute_burned_team(counts: MatchCounts, rule: BurnRule = BurnRule.STANDARD) -> int | None:
    return RULES[rule](counts)


def calculate_future_burnout(
    counts: MatchCounts | None, candidate_team_number: int, rule: BurnRule = BurnRule.STANDARD
) -> int | None:
    """Burned team once one more match is played in candidate_team_number"""
    simulated = dict(counts or {})
    simulated[candidate_team_number] = simulated.get(candidate_team_number, 0) + 1
    return compute_burned_team(simulated, rule)


def get_burn_context(
    epreuve: EpreuveEnum, championship_type: ChampionshipTypeEnum
) -> BurnContext:
    if epreuve == EpreuveEnum.CHAMPIONNAT_PARIS:
        return BurnContext.PARIS
    if championship_type == ChampionshipTypeEnum.FEMININ:
        return BurnContext.FEMININ
    return BurnContext.MASCULIN


def get_burned_team_number(player: PlayerDB, phase: PhaseEnum, context: BurnContext) -> int | None:
    return getattr(player, context.burn_field).get(phase)


def get_match_counts(player: PlayerDB, phase: PhaseEnum, context: BurnContext) -> MatchCounts:
    return dict(getattr(player, context.counts_field).get(phase, {}))


def is_burned_for_team(burned_team: int | None, team_number: int) -> bool:
    """Team number 0 (unranked) is never restricted"""
    return team_number > 0 and burned_team is not None and team_number > burned_team


def count_matches_by_context(
    teams: Iterable[TeamWithMatches],
) -> dict[BurnContext, PlayerMatchCounts]:
    """Count the played matches of every club player per context, phase and team number"""
    counts: dict[BurnContext, PlayerMatchCounts] = {context: {} for context in BurnContext}
    for team in teams:
        team_number = extract_team_number(team.team.name)
        for match in team.matches:
            if not is_match_played(match):
                continue
            number = match.teamNumber or team_number
            if number <= 0:
                continue
            epreuve = get_match_epreuve(match, team.team)
            if epreuve == EpreuveEnum.CHAMPIONNAT_PARIS:
                context = BurnContext.PARIS
            else:
                context = BurnContext.FEMININ if match.isFemale else BurnContext.MASCULIN
            phase = normalise_phase(match.phase, epreuve)
            for joueur in match.joueursSQY:
                licence = (joueur.licence or "").strip()
                if not licence:
                    continue
                by_team = counts[context].setdefault(licence, {}).setdefault(phase, {})
                by_team[number] = by_team.get(number, 0) + 1
    return counts


def compute_burn_by_phase(
    counts_by_phase: dict[PhaseEnum, MatchCounts], rule: BurnRule
) -> dict[PhaseEnum, int]:
    burned = {}
    for phase, counts in counts_by_phase.items():
        team_number = compute_burned_team(counts, rule)
        if team_number is not None:
            burned[phase] = team_number
    return burned


def _stored_keys(value: Any) -> bool:
    return isinstance(value, dict) and len(value) > 0


def build_burn_update(
    player_doc: dict, context: BurnContext, counts_by_phase: dict[PhaseEnum, MatchCounts] | None
) -> tuple[dict, dict]:
    """
    Mongo $set / $unset fields for one player and one burn context.

    - matches in this context: burn and count maps are replaced
    - no match now but data stored from a previous sync: both fields are removed
    - no match and nothing stored: nothing to write
    """
    to_set: dict[str, Any] = {}
    to_unset: dict[str, str] = {}
    burn_field, counts_field = context.burn_field, context.counts_field
    stored_burn = _stored_keys(player_doc.get(burn_field))
    stored_counts = _stored_keys(player_doc.get(counts_field))

    if counts_by_phase:
        to_set[counts_field] = {
            phase.value: {str(number): count for number, count in sorted(counts.items())}
            for phase, counts in counts_by_phase.items()
        }
        burned = compute_burn_by_phase(counts_by_phase, context.rule)
        if burned:
            to_set[burn_field] = {phase.value: number for phase, number in burned.items()}
        elif stored_burn:
            to_unset[burn_field] = ""
    elif stored_burn or stored_counts:
        to_unset[burn_field] = ""
        to_unset[counts_field] = ""

    return to_set, to_unset
