from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class MongoBaseModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=False)

    # Federation identifiers (licence numbers, renc_id, team ids) are used as _id
    id: str = Field(..., alias="_id")


# Federation competition ids
ID_EPREUVE_MASCULIN = 15954
ID_EPREUVE_FEMININ = 15955
ID_EPREUVE_PARIS = 15980


class PhaseEnum(str, Enum):
    ALLER = 'aller'
    RETOUR = 'retour'


class EpreuveEnum(str, Enum):
    CHAMPIONNAT_EQUIPES = 'championnat_equipes'
    CHAMPIONNAT_PARIS = 'championnat_paris'


class ChampionshipTypeEnum(str, Enum):
    MASCULIN = 'masculin'
    FEMININ = 'feminin'


# --- sub documents without _id


class MatchPlayer(BaseModel):
    """A club player listed on a match sheet"""
    licence: str | None = None
    nom: str | None = None
    prenom: str | None = None
    points: int | None = None
    sexe: str | None = None


class MatchBase(MongoBaseModel):
    teamId: str = Field(...)
    teamNumber: int = 0
    phase: PhaseEnum = PhaseEnum.ALLER
    journee: int = 1
    date: datetime | None = None
    idEpreuve: int | None = None
    epreuve: str | None = None
    division: str | None = None
    isFemale: bool = False
    isHome: bool = False
    opponent: str | None = None
    score: str | None = None
    result: str | None = None
    joueursSQY: list[MatchPlayer] = Field(default_factory=list)


class MatchDB(MatchBase):
    createdAt: datetime | None = None
    updatedAt: datetime | None = None
