"""
Federation Adapter - normalisation of raw federation payloads

The federation API is loosely shaped: lists sometimes come as objects keyed
by index, the same value appears under several names depending on the
endpoint. All of that sniffing happens here, and only here; the rest of the
code base works with the strict models.
"""

import re
from datetime import datetime
from typing import Any

from config import settings
from models.matches import ID_EPREUVE_FEMININ, ID_EPREUVE_MASCULIN, MatchDB, MatchPlayer
from models.players import GenderEnum, NationalityEnum, PlayerDB
from models.teams import TeamDB
from services.epreuve_service import determine_phase_from_division, extract_journee
from services.team_classifier import extract_team_number

RENCONTRE_ID_PATTERN = re.compile(r"renc_id=(\d+)")

# fields owned by the federation; everything else on a player is user managed
FEDERATION_PLAYER_FIELDS = {
    "licence", "firstName", "lastName", "nationality", "gender", "points", "club", "isActive",
}

RESULT_UPCOMING = "À VENIR"
RESULT_WIN = "VICTOIRE"
RESULT_LOSS = "DEFAITE"
RESULT_DRAW = "NUL"


def as_list(value: Any) -> list:
    """Federation lists arrive either as arrays or as {"0": ..., "1": ...} objects"""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        return list(value.values())
    return [value]


def first_of(raw: dict | None, *keys: str, default: Any = None) -> Any:
    if not raw:
        return default
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return default


def to_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(float(str(value).replace(",", ".").strip()))
    except ValueError:
        return None


def to_datetime(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    text = str(value).strip()
    for fmt in ("%d/%m/%Y", "%Y-%m-%d"):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None


def normalise_nationality(value: Any) -> NationalityEnum:
    code = str(value or "").strip().upper()
    if code == "C":
        return NationalityEnum.EU
    if code in ("E", "ETR"):
        return NationalityEnum.FOREIGN
    return NationalityEnum.FR


def is_female_team(
    label: str | None,
    division: str | None = None,
    epreuve_label: str | None = None,
    id_epreuve: int | None = None,
) -> bool:
    if id_epreuve == ID_EPREUVE_FEMININ:
        return True
    if id_epreuve == ID_EPREUVE_MASCULIN:
        return False
    for text in (epreuve_label, division):
        lowered = (text or "").lower()
        if "féminin" in lowered or "dames" in lowered:
            return True
        if "masculin" in lowered or "hommes" in lowered:
            return False
    return "dames" in (label or "").lower()


def normalise_team(raw: dict) -> TeamDB:
    label = str(first_of(raw, "libelle", "name", default=""))
    division = str(first_of(raw, "division", default=""))
    epreuve_label = first_of(raw, "libelleEpreuve", "epreuve")
    id_epreuve = to_int(first_of(raw, "idEpreuve", "epreuveId"))
    return TeamDB(
        _id=str(first_of(raw, "idEquipe", "id", default=label)),
        name=label,
        division=division,
        idEpreuve=id_epreuve,
        epreuve=epreuve_label,
        isFemale=is_female_team(label, division, epreuve_label, id_epreuve),
    )


def normalise_player(raw: dict, detail: dict | None = None) -> PlayerDB:
    """Merge a club list entry with its (optional) detail record"""
    licence = str(first_of(raw, "licence", "license", default="")).strip()

    if detail and detail.get("isHomme") is not None:
        gender = GenderEnum.MALE if detail["isHomme"] else GenderEnum.FEMALE
    else:
        sexe = str(first_of(raw, "sexe", "sex", default="M")).upper()
        gender = GenderEnum.FEMALE if sexe.startswith("F") else GenderEnum.MALE

    points = to_int(first_of(raw, "points", "point"))
    if points is None:
        points = to_int(first_of(detail, "pointsMensuels", "point", "points", "classementGlobal", "classement"))

    return PlayerDB(
        _id=licence,
        licence=licence,
        firstName=str(first_of(raw, "prenom", "firstName", default="")),
        lastName=str(first_of(raw, "nom", "lastName", default="")),
        nationality=normalise_nationality(
            first_of(detail, "natio", "nationalite", default=first_of(raw, "natio", "nationalite"))
        ),
        gender=gender,
        points=points,
        club=first_of(raw, "club", "nomclub"),
        isActive=True,
    )


def extract_rencontre_id(link: str | None) -> str:
    found = RENCONTRE_ID_PATTERN.search(link or "")
    return found.group(1) if found else ""


def determine_match_result(score_a: int | None, score_b: int | None, is_home: bool) -> str:
    if score_a is None or score_b is None:
        return RESULT_UPCOMING
    ours, theirs = (score_a, score_b) if is_home else (score_b, score_a)
    if ours > theirs:
        return RESULT_WIN
    if ours < theirs:
        return RESULT_LOSS
    return RESULT_DRAW


def _match_players(raw_players: Any) -> list[MatchPlayer]:
    players = []
    for raw in as_list(raw_players):
        if not isinstance(raw, dict):
            continue
        licence = first_of(raw, "licence", "license")
        players.append(
            MatchPlayer(
                licence=str(licence) if licence else None,
                nom=first_of(raw, "nom"),
                prenom=first_of(raw, "prenom"),
                points=to_int(first_of(raw, "points", "point")),
                sexe=first_of(raw, "sexe"),
            )
        )
    return players


def _scores(raw: dict, details: dict | None) -> tuple[int | None, int | None]:
    score_a = to_int(raw.get("scoreEquipeA"))
    score_b = to_int(raw.get("scoreEquipeB"))
    if details and (score_a is None or score_b is None):
        if score_a is None:
            score_a = to_int(first_of(details, "scoreEquipeA", "expectedScoreEquipeA"))
        if score_b is None:
            score_b = to_int(first_of(details, "scoreEquipeB", "expectedScoreEquipeB"))
        parties = as_list(details.get("parties"))
        if (score_a is None or score_b is None) and parties:
            won_a = sum(1 for p in parties if (to_int(p.get("scoreA")) or 0) > (to_int(p.get("scoreB")) or 0))
            won_b = sum(1 for p in parties if (to_int(p.get("scoreB")) or 0) > (to_int(p.get("scoreA")) or 0))
            score_a = won_a if score_a is None else score_a
            score_b = won_b if score_b is None else score_b
    return score_a, score_b


def normalise_match(raw: dict, team: TeamDB) -> MatchDB | None:
    """A federation encounter seen from the club team; None when it has no stable id"""
    link = raw.get("lien") or ""
    rencontre_id = extract_rencontre_id(link) or str(first_of(raw, "id", "idRencontre", default=""))
    if not rencontre_id:
        return None

    club_name = settings.CLUB_NAME.lower()
    name_a = str(raw.get("nomEquipeA") or "")
    name_b = str(raw.get("nomEquipeB") or "")
    is_home = club_name in name_a.lower()
    opponent = name_b if is_home else name_a

    details = raw.get("details") or None
    joueurs_sqy: list[MatchPlayer] = []
    if details:
        details_a = str(details.get("nomEquipeA") or name_a).lower()
        details_b = str(details.get("nomEquipeB") or name_b).lower()
        if club_name in details_a:
            club_side = "joueursA"
        elif club_name in details_b:
            club_side = "joueursB"
        else:
            club_side = "joueursA" if is_home else "joueursB"
        joueurs_sqy = _match_players(details.get(club_side))

    score_a, score_b = _scores(raw, details)
    return MatchDB(
        _id=rencontre_id,
        teamId=team.id,
        teamNumber=extract_team_number(team.name),
        phase=determine_phase_from_division(team.division),
        journee=extract_journee(raw.get("libelle"), link),
        date=to_datetime(first_of(raw, "dateReelle", "datePrevue", "date")),
        idEpreuve=team.idEpreuve,
        epreuve=team.epreuve,
        division=team.division,
        isFemale=team.isFemale,
        isHome=is_home,
        opponent=opponent,
        score=f"{score_a}-{score_b}" if score_a is not None and score_b is not None else None,
        result=determine_match_result(score_a, score_b, is_home),
        joueursSQY=joueurs_sqy,
    )
