from datetime import datetime

from pydantic import BaseModel, Field

from models.matches import MatchDB, MongoBaseModel


# Teams
# --------


class TeamBase(MongoBaseModel):
    name: str = Field(...)
    division: str = ""
    idEpreuve: int | None = None
    epreuve: str | None = None
    isFemale: bool = False
    # user managed, preserved across team syncs
    locationId: str | None = None
    discordChannelId: str | None = None


class TeamDB(TeamBase):
    createdAt: datetime | None = None
    updatedAt: datetime | None = None


class TeamWithMatches(BaseModel):
    """A team together with its full match list, the unit every rule works on"""
    team: TeamDB
    matches: list[MatchDB] = Field(default_factory=list)

    @property
    def id(self) -> str:
        return self.team.id
