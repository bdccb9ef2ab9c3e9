"""
Epreuve Service - competition and phase resolution

Maps matches to a competition (team championship or Paris championship),
normalises phases, extracts match day numbers from federation labels and
indexes the known match days with their calendar dates.
"""

import re
from collections.abc import Iterable
from datetime import datetime, timezone

from models.journees import JourneeDates, JourneeSelection
from models.matches import (
    ID_EPREUVE_FEMININ,
    ID_EPREUVE_MASCULIN,
    ID_EPREUVE_PARIS,
    EpreuveEnum,
    MatchDB,
    PhaseEnum,
)
from models.teams import TeamDB, TeamWithMatches

# {epreuve: {phase: {journee: [dates]}}}
JourneeIndex = dict[EpreuveEnum, dict[PhaseEnum, dict[int, list[datetime]]]]

SCORE_PATTERN = re.compile(r"^(\d+)-(\d+)$")
UNPLAYED_SCORES = ("", "0-0", "À VENIR")

JOURNEE_LABEL_PATTERNS = (
    re.compile(r"tour\s*n[°º]\s*(\d+)", re.IGNORECASE),
    re.compile(r"journ[ée]e\s*(\d+)", re.IGNORECASE),
    re.compile(r"j\s*(\d+)", re.IGNORECASE),
)
JOURNEE_LINK_PATTERN = re.compile(r"(?:tour|journee)=(\d+)", re.IGNORECASE)


def get_match_epreuve(match: MatchDB | None, team: TeamDB | None = None) -> EpreuveEnum:
    """
    Classify a match into the team championship or the Paris championship.

    The federation competition id wins, then the competition label, then the
    team division. Anything unrecognised is treated as the team championship.
    """
    id_epreuve = match.idEpreuve if match is not None else None
    if id_epreuve is None and team is not None:
        id_epreuve = team.idEpreuve

    if id_epreuve in (ID_EPREUVE_MASCULIN, ID_EPREUVE_FEMININ):
        return EpreuveEnum.CHAMPIONNAT_EQUIPES
    if id_epreuve == ID_EPREUVE_PARIS:
        return EpreuveEnum.CHAMPIONNAT_PARIS

    label = (match.epreuve if match is not None else None) or (team.epreuve if team else None)
    if label:
        label_lower = label.lower()
        if "paris idf" in label_lower or "excellence" in label_lower:
            return EpreuveEnum.CHAMPIONNAT_PARIS
        if "championnat de france" in label_lower or "par équipes" in label_lower:
            return EpreuveEnum.CHAMPIONNAT_EQUIPES

    if team is not None:
        team_text = f"{team.name} {team.division}".lower()
        if "paris" in team_text:
            return EpreuveEnum.CHAMPIONNAT_PARIS

    return EpreuveEnum.CHAMPIONNAT_EQUIPES


def get_team_epreuve(team: TeamWithMatches) -> EpreuveEnum:
    """A team is in the Paris championship as soon as one of its matches is"""
    for match in team.matches:
        if get_match_epreuve(match, team.team) == EpreuveEnum.CHAMPIONNAT_PARIS:
            return EpreuveEnum.CHAMPIONNAT_PARIS
    return get_match_epreuve(None, team.team)


def normalise_phase(phase: str | PhaseEnum | None, epreuve: EpreuveEnum) -> PhaseEnum:
    # the Paris championship runs over a single season
    if epreuve == EpreuveEnum.CHAMPIONNAT_PARIS:
        return PhaseEnum.ALLER
    if isinstance(phase, PhaseEnum):
        return phase
    if phase and phase.strip().lower() == PhaseEnum.RETOUR.value:
        return PhaseEnum.RETOUR
    return PhaseEnum.ALLER


def determine_phase_from_division(division: str | None) -> PhaseEnum:
    if division and "Phase 2" in division:
        return PhaseEnum.RETOUR
    return PhaseEnum.ALLER


def is_match_played(match: MatchDB | None) -> bool:
    """A match counts as played when the club roster is known or the score is non-zero"""
    if match is None:
        return False
    if match.joueursSQY:
        return True

    score = match.score
    if not score or score in UNPLAYED_SCORES:
        return False
    parsed = SCORE_PATTERN.match(score.strip())
    if parsed is None:
        return False
    return int(parsed.group(1)) > 0 or int(parsed.group(2)) > 0


def extract_journee(label: str | None = None, link: str | None = None) -> int:
    """
    Extract the match day number from a federation match label ("tour n°5",
    "journée 3", "J2") or link ("tour=5", "journee=5").

    Returns 1 when nothing matches; recalculate_journees_by_date() fixes those up.
    """
    if label:
        for pattern in JOURNEE_LABEL_PATTERNS:
            found = pattern.search(label)
            if found:
                return int(found.group(1))
    if link:
        found = JOURNEE_LINK_PATTERN.search(link)
        if found:
            return int(found.group(1))
    return 1


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _midnight(value: datetime) -> datetime:
    return _naive_utc(value).replace(hour=0, minute=0, second=0, microsecond=0)


def recalculate_journees_by_date(matches: list[MatchDB]) -> list[MatchDB]:
    """
    Assign match days from the chronological order of distinct match dates,
    per team and phase. Only matches still on the fallback value 1 are changed.
    """
    groups: dict[tuple[str, PhaseEnum], list[MatchDB]] = {}
    for match in matches:
        groups.setdefault((match.teamId, match.phase), []).append(match)

    replaced: dict[str, int] = {}
    for group in groups.values():
        dates = sorted({_midnight(m.date) for m in group if m.date is not None})
        rank = {day: position + 1 for position, day in enumerate(dates)}
        for match in group:
            if match.journee == 1 and match.date is not None:
                replaced[match.id] = rank[_midnight(match.date)]

    return [
        match.model_copy(update={"journee": replaced[match.id]}) if match.id in replaced else match
        for match in matches
    ]


def index_journees_by_epreuve_and_phase(teams: Iterable[TeamWithMatches]) -> JourneeIndex:
    """
    Index every known match day per competition and phase, with all the
    distinct calendar dates it spans across teams.
    """
    index: JourneeIndex = {}
    for team in teams:
        for match in team.matches:
            epreuve = get_match_epreuve(match, team.team)
            phase = normalise_phase(match.phase, epreuve)
            dates = index.setdefault(epreuve, {}).setdefault(phase, {}).setdefault(match.journee, [])
            if match.date is not None:
                day = _midnight(match.date)
                if day not in dates:
                    dates.append(day)

    for phases in index.values():
        for journees in phases.values():
            for dates in journees.values():
                dates.sort()
    return index


def journee_index_to_view(index: JourneeIndex) -> dict[EpreuveEnum, dict[PhaseEnum, list[JourneeDates]]]:
    return {
        epreuve: {
            phase: [
                JourneeDates(journee=journee, dates=journees[journee])
                for journee in sorted(journees)
            ]
            for phase, journees in phases.items()
        }
        for epreuve, phases in index.items()
    }


def pick_default_epreuve_and_journee(index: JourneeIndex, now: datetime) -> JourneeSelection:
    """
    Select the match day whose earliest date is the closest one on or after
    today. Falls back to the team championship without a match day.
    """
    today = _midnight(now)
    best: tuple[datetime, EpreuveEnum, PhaseEnum, int] | None = None

    for epreuve in EpreuveEnum:
        for phase in PhaseEnum:
            journees = index.get(epreuve, {}).get(phase, {})
            for journee, dates in sorted(journees.items()):
                if not dates:
                    continue
                earliest = min(dates)
                if earliest < today:
                    continue
                if best is None or earliest < best[0]:
                    best = (earliest, epreuve, phase, journee)

    if best is None:
        return JourneeSelection(epreuve=EpreuveEnum.CHAMPIONNAT_EQUIPES)
    _, epreuve, phase, journee = best
    return JourneeSelection(epreuve=epreuve, phase=phase, journee=journee)


def get_current_phase(teams: list[TeamWithMatches], now: datetime) -> PhaseEnum:
    """The first phase ends on the day of the last match played by a "Phase 1" team"""
    if not teams:
        return PhaseEnum.ALLER

    def in_phase(team: TeamWithMatches, label: str) -> bool:
        return label in team.team.name or label in (team.team.division or "")

    phase_one = [team for team in teams if in_phase(team, "Phase 1")]
    phase_two = [team for team in teams if in_phase(team, "Phase 2")]

    if not phase_one:
        return PhaseEnum.RETOUR if phase_two else PhaseEnum.ALLER
    if not phase_two:
        return PhaseEnum.ALLER

    match_dates = [
        _naive_utc(match.date) for team in phase_one for match in team.matches if match.date
    ]
    if not match_dates:
        return PhaseEnum.ALLER
    return PhaseEnum.ALLER if _naive_utc(now) <= max(match_dates) else PhaseEnum.RETOUR
