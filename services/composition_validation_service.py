"""
Composition Validation Service - aggregate check of a team roster

Re-derives every per-player rule over the current full roster of a team and
adds the minimum rating thresholds of the national divisions. All offending
players are reported, not just the first one. Recomputed on every
composition or availability change: the result depends on other teams and on
availabilities, so nothing is cached.
"""

import re

from models.compositions import AvailabilityEntry, CompositionMap, TeamCompositionValidationResult
from models.matches import PhaseEnum
from models.players import PlayerDB
from models.teams import TeamWithMatches
from services.assignment_validation_service import (
    MAX_DAY_TWO_CARRY_OVER,
    MAX_FEMALE_PLAYERS_IN_MASCULINE_TEAM,
    MAX_FOREIGN_PLAYERS,
    TeamContext,
    day_two_carry_over_players,
    day_two_reason,
    is_day_two_rule_applicable,
)
from services.burnout_service import get_burned_team_number, is_burned_for_team
from services.team_classifier import get_max_players_for_team

REASON_SEPARATOR = " · "

NATIONAL_LEVEL_PATTERN = re.compile(r"nationale\s*([123])")

# minimum rating every player must have, per (category, level)
MIN_POINTS = {
    ("M", 1): 1800,
    ("M", 2): 1600,
    ("M", 3): 1400,
    ("F", 1): 1100,
}
WOMEN_N2_MIN_POINTS = 900
WOMEN_N2_MAX_BELOW_MIN = 2


def parse_division_info(division: str | None) -> tuple[int | None, str]:
    """("FED_Nationale 2 Dames Phase 1 Poule 2") -> (2, "F")"""
    text = (division or "").lower()
    found = NATIONAL_LEVEL_PATTERN.search(text)
    level = int(found.group(1)) if found else None
    category = "F" if "dames" in text or "féminin" in text else "M"
    return level, category


def _points(player: PlayerDB) -> int:
    return player.points or 0


def _names(players: list[PlayerDB]) -> str:
    return ", ".join(f"{p.displayName} ({_points(p)} pts)" for p in players)


def check_rating_thresholds(
    roster: list[PlayerDB], division: str | None
) -> tuple[str | None, list[PlayerDB]]:
    """Divisions outside Nationale 1/2/3 have no threshold"""
    level, category = parse_division_info(division)
    if level is None:
        return None, []

    if (category, level) in MIN_POINTS:
        minimum = MIN_POINTS[(category, level)]
        below = [p for p in roster if _points(p) < minimum]
        if not below:
            return None, []
        if category == "M":
            reason = (
                f"Nationale {level} Messieurs : tous les joueurs doivent avoir ≥ {minimum} pts. "
                f"Joueurs non conformes : {_names(below)}"
            )
        else:
            reason = (
                f"Nationale {level} Dames : toutes les joueuses doivent avoir ≥ {minimum} pts. "
                f"Joueuses non conformes : {_names(below)}"
            )
        return reason, below

    if (category, level) == ("F", 2):
        below = [p for p in roster if _points(p) < WOMEN_N2_MIN_POINTS]
        if len(below) > WOMEN_N2_MAX_BELOW_MIN:
            reason = (
                f"Nationale 2 Dames : au moins 2 joueuses sur 4 doivent avoir ≥ {WOMEN_N2_MIN_POINTS} pts. "
                f"Joueuses < {WOMEN_N2_MIN_POINTS} pts : {_names(below)}"
            )
            return reason, below

    return None, []


class _Violations:
    def __init__(self):
        self.reasons: list[str] = []
        self.offenders: list[str] = []

    def add(self, reason: str | None, players=()) -> None:
        if reason and reason not in self.reasons:
            self.reasons.append(reason)
        for player in players:
            player_id = player if isinstance(player, str) else player.id
            if player_id not in self.offenders:
                self.offenders.append(player_id)

    def result(self) -> TeamCompositionValidationResult:
        if not self.reasons:
            return TeamCompositionValidationResult(valid=True)
        return TeamCompositionValidationResult(
            valid=False,
            reason=REASON_SEPARATOR.join(self.reasons),
            offendingPlayerIds=self.offenders,
        )


def validate_team_composition_state(
    team_id: str,
    players: list[PlayerDB],
    teams: list[TeamWithMatches],
    compositions: CompositionMap,
    phase: PhaseEnum,
    journee: int | None,
    max_players: int | None = None,
) -> TeamCompositionValidationResult:
    team = next((t for t in teams if t.id == team_id), None)
    if team is None:
        return TeamCompositionValidationResult(valid=True)

    players_by_id = {player.id: player for player in players}
    roster = [players_by_id[pid] for pid in compositions.get(team_id, []) if pid in players_by_id]
    if not roster:
        return TeamCompositionValidationResult(valid=True)

    target = TeamContext(team, phase)
    if max_players is None:
        max_players = get_max_players_for_team(team)
    violations = _Violations()

    if len(roster) > max_players:
        violations.add(
            f"Une composition ne peut contenir que {max_players} joueur{'s' if max_players > 1 else ''}",
            roster[max_players:],
        )

    foreign = [p for p in roster if p.isForeign]
    if len(foreign) > MAX_FOREIGN_PLAYERS:
        violations.add("Une composition ne peut contenir plus d'un joueur étranger (ETR)", foreign)

    if not target.is_paris and target.is_masculine:
        females = [p for p in roster if p.isFemale]
        if len(females) > MAX_FEMALE_PLAYERS_IN_MASCULINE_TEAM:
            violations.add("Une équipe masculine ne peut comporter plus de deux joueuses", females)

    for player in roster:
        burned_team = get_burned_team_number(player, target.phase, target.burn_context)
        if is_burned_for_team(burned_team, target.number):
            violations.add(
                f"{player.displayName} est brûlé(e) : équipe autorisée {burned_team}, "
                f"équipe actuelle {target.number}",
                [player],
            )

    reason, below = check_rating_thresholds(roster, team.team.division)
    if reason:
        violations.add(reason, below)

    if is_day_two_rule_applicable(target, journee):
        carry_over = day_two_carry_over_players(roster, teams, target)
        if len(carry_over) > MAX_DAY_TWO_CARRY_OVER:
            violations.add(day_two_reason(), carry_over)

    return violations.result()


def merge_availability_violations(
    result: TeamCompositionValidationResult,
    roster_ids: list[str],
    availability: dict[str, AvailabilityEntry],
    players: list[PlayerDB],
) -> TeamCompositionValidationResult:
    """Report assigned players without an explicit available=True answer"""
    unavailable = [
        pid for pid in roster_ids if not (pid in availability and availability[pid].available)
    ]
    if not unavailable:
        return result

    names = {player.id: player.displayName for player in players}
    violations = _Violations()
    if result.reason:
        for reason in result.reason.split(REASON_SEPARATOR):
            violations.add(reason)
    violations.add(None, result.offendingPlayerIds)
    for pid in unavailable:
        violations.add(f"{names.get(pid, pid)} n'est pas disponible", [pid])
    return violations.result()
