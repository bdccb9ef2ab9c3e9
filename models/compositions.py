from datetime import datetime

from pydantic import BaseModel, Field

from models.matches import ChampionshipTypeEnum, EpreuveEnum, MongoBaseModel, PhaseEnum

# {teamId: [playerId, ...]}, ordered
CompositionMap = dict[str, list[str]]


def composition_key(
    epreuve: EpreuveEnum, phase: PhaseEnum, journee: int, championship_type: ChampionshipTypeEnum
) -> str:
    """Document id of a match day composition or availability"""
    return f"{epreuve.value}_{phase.value}_{journee}_{championship_type.value}"


def default_composition_key(
    epreuve: EpreuveEnum, phase: PhaseEnum, championship_type: ChampionshipTypeEnum
) -> str:
    return f"{epreuve.value}_{phase.value}_{championship_type.value}"


class AvailabilityEntry(BaseModel):
    available: bool = False
    comment: str | None = None


class AvailabilityDB(MongoBaseModel):
    epreuve: EpreuveEnum
    phase: PhaseEnum
    journee: int
    championshipType: ChampionshipTypeEnum
    players: dict[str, AvailabilityEntry] = Field(default_factory=dict)
    updatedAt: datetime | None = None


class CompositionDB(MongoBaseModel):
    epreuve: EpreuveEnum
    phase: PhaseEnum
    journee: int
    championshipType: ChampionshipTypeEnum
    teams: CompositionMap = Field(default_factory=dict)
    # bumped on every commit, used for optimistic concurrency
    revision: int = 0
    updatedAt: datetime | None = None


class DefaultCompositionDB(MongoBaseModel):
    epreuve: EpreuveEnum
    phase: PhaseEnum
    championshipType: ChampionshipTypeEnum
    teams: CompositionMap = Field(default_factory=dict)
    revision: int = 0
    updatedAt: datetime | None = None


# --- validation results


class AssignmentValidationResult(BaseModel):
    canAssign: bool
    # set on rejection, or as a non blocking warning when canAssign is True
    reason: str | None = None
    simulatedPlayerIds: list[str] = Field(default_factory=list)


class TeamCompositionValidationResult(BaseModel):
    valid: bool = True
    reason: str | None = None
    offendingPlayerIds: list[str] = Field(default_factory=list)


# --- API payloads


class AssignmentCheckRequest(BaseModel):
    playerId: str
    teamId: str
    epreuve: EpreuveEnum = EpreuveEnum.CHAMPIONNAT_EQUIPES
    phase: PhaseEnum = PhaseEnum.ALLER
    journee: int = Field(..., ge=1)
    championshipType: ChampionshipTypeEnum = ChampionshipTypeEnum.MASCULIN
    # roster being edited on the client; the stored composition is used when omitted
    compositions: CompositionMap | None = None


class AssignPlayerRequest(BaseModel):
    playerId: str
    # None removes the player from every team of the day
    teamId: str | None = None
    expectedRevision: int | None = None


class DefaultCompositionUpdate(BaseModel):
    teams: CompositionMap = Field(default_factory=dict)


class AvailabilityUpdate(BaseModel):
    # answers merged into the stored ones, other players are left as they are
    players: dict[str, AvailabilityEntry]


class TeamCompositionView(BaseModel):
    teamId: str
    teamName: str
    teamNumber: int
    division: str = ""
    maxPlayers: int
    playerIds: list[str] = Field(default_factory=list)
    validation: TeamCompositionValidationResult = Field(
        default_factory=TeamCompositionValidationResult
    )


class CompositionView(BaseModel):
    epreuve: EpreuveEnum
    phase: PhaseEnum
    journee: int
    championshipType: ChampionshipTypeEnum
    revision: int = 0
    teams: list[TeamCompositionView] = Field(default_factory=list)
    # players entered in the competition for this championship type
    poolPlayerIds: list[str] = Field(default_factory=list)


class AppliedDefaults(BaseModel):
    epreuve: EpreuveEnum
    phase: PhaseEnum
    journee: int
    compositions: dict[ChampionshipTypeEnum, CompositionMap] = Field(default_factory=dict)
    assignedCount: int = 0
    droppedPlayerIds: list[str] = Field(default_factory=list)
