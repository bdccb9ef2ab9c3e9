from datetime import datetime

from pydantic import BaseModel, Field


class SyncResult(BaseModel):
    """Outcome of a federation sync; writes done before a failure are kept"""
    success: bool = True
    processed: int = 0
    written: int = 0
    skipped: int = 0
    failedTeams: list[str] = Field(default_factory=list)
    error: str | None = None
    startedAt: datetime | None = None
    finishedAt: datetime | None = None
