from datetime import datetime
from enum import Enum

from pydantic import Field

from models.matches import MongoBaseModel, PhaseEnum


class NationalityEnum(str, Enum):
    FR = 'FR'
    EU = 'C'
    FOREIGN = 'ETR'


class GenderEnum(str, Enum):
    MALE = 'M'
    FEMALE = 'F'


class PlayerBase(MongoBaseModel):
    licence: str = Field(...)
    firstName: str = ""
    lastName: str = ""
    nationality: NationalityEnum = Field(default=NationalityEnum.FR)
    gender: GenderEnum = Field(default=GenderEnum.MALE)
    points: int | None = None
    club: str | None = None
    isActive: bool = True
    isTemporary: bool = False
    isWheelchair: bool = False

    # user managed, preserved across player syncs
    discordMentions: list[str] = Field(default_factory=list)
    participation: dict[str, bool] = Field(default_factory=dict)

    # materialised by the match sync, one pair of fields per burn context
    hasPlayedAtLeastOneMatch: bool = False
    highestMasculineTeamNumberByPhase: dict[PhaseEnum, int] = Field(default_factory=dict)
    highestFeminineTeamNumberByPhase: dict[PhaseEnum, int] = Field(default_factory=dict)
    highestTeamNumberByPhaseParis: dict[PhaseEnum, int] = Field(default_factory=dict)
    masculineMatchesByTeamByPhase: dict[PhaseEnum, dict[int, int]] = Field(default_factory=dict)
    feminineMatchesByTeamByPhase: dict[PhaseEnum, dict[int, int]] = Field(default_factory=dict)
    matchesByTeamByPhaseParis: dict[PhaseEnum, dict[int, int]] = Field(default_factory=dict)

    @property
    def displayName(self) -> str:
        return f"{self.firstName} {self.lastName}".strip() or self.licence

    @property
    def isForeign(self) -> bool:
        return self.nationality == NationalityEnum.FOREIGN

    @property
    def isFemale(self) -> bool:
        return self.gender == GenderEnum.FEMALE


class PlayerDB(PlayerBase):
    createdAt: datetime | None = None
    updatedAt: datetime | None = None
