from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, Request

from models.responses import StandardResponse
from models.sync import SyncResult
from services.federation_client import FederationClient, FederationSource
from services.match_sync_service import MatchSyncService
from services.player_sync_service import PlayerSyncService

router = APIRouter()


async def get_federation_source() -> AsyncIterator[FederationSource]:
    async with FederationClient() as client:
        yield client


@router.post(
    "/players",
    response_description="Synchronise the club players from the federation",
    response_model=StandardResponse[SyncResult],
)
async def sync_players(
    request: Request,
    source: FederationSource = Depends(get_federation_source),
) -> StandardResponse[SyncResult]:
    service = PlayerSyncService(request.app.state.mongodb, source)
    result = await service.sync_players()
    return StandardResponse(
        success=result.success,
        data=result,
        message=result.error or f"{result.written} players written",
    )


@router.post(
    "/matches",
    response_description="Synchronise teams and matches, then rebuild the burn state",
    response_model=StandardResponse[SyncResult],
)
async def sync_matches(
    request: Request,
    source: FederationSource = Depends(get_federation_source),
) -> StandardResponse[SyncResult]:
    service = MatchSyncService(request.app.state.mongodb, source)
    result = await service.sync_matches()
    return StandardResponse(
        success=result.success,
        data=result,
        message=result.error or f"{result.processed} matches synchronised",
    )
