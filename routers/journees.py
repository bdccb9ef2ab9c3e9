from datetime import datetime

from fastapi import APIRouter, Request

from models.journees import JourneesResponse
from models.responses import StandardResponse
from services.epreuve_service import (
    get_current_phase,
    index_journees_by_epreuve_and_phase,
    journee_index_to_view,
    pick_default_epreuve_and_journee,
)
from services.snapshot_service import SnapshotService

router = APIRouter()


@router.get(
    "",
    response_description="Known match days per competition and phase, with the default selection",
    response_model=StandardResponse[JourneesResponse],
)
async def get_journees(request: Request) -> StandardResponse[JourneesResponse]:
    teams = await SnapshotService(request.app.state.mongodb).load_teams_with_matches()
    now = datetime.now()
    index = index_journees_by_epreuve_and_phase(teams)
    response = JourneesResponse(
        index=journee_index_to_view(index),
        default=pick_default_epreuve_and_journee(index, now),
        currentPhase=get_current_phase(teams, now),
    )
    return StandardResponse(success=True, data=response)
