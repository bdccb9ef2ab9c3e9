from datetime import datetime

from pydantic import BaseModel, Field

from models.matches import EpreuveEnum, PhaseEnum


class JourneeDates(BaseModel):
    journee: int
    dates: list[datetime] = Field(default_factory=list)


class JourneeSelection(BaseModel):
    epreuve: EpreuveEnum = EpreuveEnum.CHAMPIONNAT_EQUIPES
    phase: PhaseEnum | None = None
    journee: int | None = None


class JourneesResponse(BaseModel):
    # {epreuve: {phase: [JourneeDates, ...]}}, journees sorted ascending
    index: dict[EpreuveEnum, dict[PhaseEnum, list[JourneeDates]]] = Field(default_factory=dict)
    default: JourneeSelection = Field(default_factory=JourneeSelection)
    currentPhase: PhaseEnum = PhaseEnum.ALLER
