from fastapi import APIRouter, Body, Path, Query, Request

from models.compositions import (
    AppliedDefaults,
    AssignmentCheckRequest,
    AssignmentValidationResult,
    AssignPlayerRequest,
    AvailabilityDB,
    AvailabilityUpdate,
    CompositionView,
    DefaultCompositionDB,
    DefaultCompositionUpdate,
)
from models.matches import ChampionshipTypeEnum, EpreuveEnum, PhaseEnum
from models.responses import StandardResponse
from services.composition_service import CompositionService

router = APIRouter()


# check a drag and drop candidate without committing it
@router.post(
    "/check-assignment",
    response_description="Check whether a player can be assigned to a team",
    response_model=StandardResponse[AssignmentValidationResult],
)
async def check_assignment(
    request: Request,
    payload: AssignmentCheckRequest = Body(...),
) -> StandardResponse[AssignmentValidationResult]:
    service = CompositionService(request.app.state.mongodb)
    result = await service.check_assignment(payload)
    return StandardResponse(success=True, data=result, message=result.reason)


# default templates; declared before the match day routes which share their shape
@router.get(
    "/defaults/{epreuve}/{phase}/{championship_type}",
    response_description="Get the default composition of a phase",
    response_model=StandardResponse[DefaultCompositionDB],
)
async def get_default_composition(
    request: Request,
    epreuve: EpreuveEnum = Path(...),
    phase: PhaseEnum = Path(...),
    championship_type: ChampionshipTypeEnum = Path(...),
) -> StandardResponse[DefaultCompositionDB]:
    service = CompositionService(request.app.state.mongodb)
    defaults = await service.get_default_composition(epreuve, phase, championship_type)
    return StandardResponse(success=True, data=defaults)


@router.put(
    "/defaults/{epreuve}/{phase}/{championship_type}",
    response_description="Replace the default composition of a phase",
    response_model=StandardResponse[DefaultCompositionDB],
)
async def save_default_composition(
    request: Request,
    epreuve: EpreuveEnum = Path(...),
    phase: PhaseEnum = Path(...),
    championship_type: ChampionshipTypeEnum = Path(...),
    payload: DefaultCompositionUpdate = Body(...),
) -> StandardResponse[DefaultCompositionDB]:
    service = CompositionService(request.app.state.mongodb)
    defaults = await service.save_default_composition(epreuve, phase, championship_type, payload.teams)
    return StandardResponse(success=True, data=defaults, message="Default composition saved")


@router.put(
    "/availability/{epreuve}/{phase}/{journee}/{championship_type}",
    response_description="Record player availability answers for a match day",
    response_model=StandardResponse[AvailabilityDB],
)
async def save_availability(
    request: Request,
    epreuve: EpreuveEnum = Path(...),
    phase: PhaseEnum = Path(...),
    journee: int = Path(..., ge=1),
    championship_type: ChampionshipTypeEnum = Path(...),
    payload: AvailabilityUpdate = Body(...),
) -> StandardResponse[AvailabilityDB]:
    service = CompositionService(request.app.state.mongodb)
    availability = await service.save_availability(epreuve, phase, journee, championship_type, payload.players)
    return StandardResponse(
        success=True,
        data=availability,
        message=f"{len(payload.players)} availability answer(s) saved",
    )


@router.get(
    "/{epreuve}/{phase}/{journee}/{championship_type}",
    response_description="Get a match day composition with per-team validation",
    response_model=StandardResponse[CompositionView],
)
async def get_composition(
    request: Request,
    epreuve: EpreuveEnum = Path(...),
    phase: PhaseEnum = Path(...),
    journee: int = Path(..., ge=1),
    championship_type: ChampionshipTypeEnum = Path(...),
) -> StandardResponse[CompositionView]:
    service = CompositionService(request.app.state.mongodb)
    view = await service.get_composition_view(epreuve, phase, journee, championship_type)
    invalid = sum(1 for team in view.teams if not team.validation.valid)
    return StandardResponse(
        success=True,
        data=view,
        message=f"{invalid} invalid team composition(s)" if invalid else None,
    )


@router.put(
    "/{epreuve}/{phase}/{journee}/{championship_type}/assign",
    response_description="Assign a player to a team (or remove them) and commit",
    response_model=StandardResponse[AssignmentValidationResult],
)
async def assign_player(
    request: Request,
    epreuve: EpreuveEnum = Path(...),
    phase: PhaseEnum = Path(...),
    journee: int = Path(..., ge=1),
    championship_type: ChampionshipTypeEnum = Path(...),
    payload: AssignPlayerRequest = Body(...),
) -> StandardResponse[AssignmentValidationResult]:
    service = CompositionService(request.app.state.mongodb)
    result, composition = await service.assign_player(
        epreuve, phase, journee, championship_type, payload
    )
    if not result.canAssign:
        # rejections are expected outcomes, not errors
        return StandardResponse(success=False, data=result, message=result.reason)
    return StandardResponse(
        success=True,
        data=result,
        message=f"Composition saved (revision {composition.revision})",
    )


@router.post(
    "/{epreuve}/{phase}/{journee}/apply-defaults",
    response_description="Fill a match day from the default compositions",
    response_model=StandardResponse[AppliedDefaults],
)
async def apply_defaults(
    request: Request,
    epreuve: EpreuveEnum = Path(...),
    phase: PhaseEnum = Path(...),
    journee: int = Path(..., ge=1),
    force: bool = Query(False, description="Overwrite compositions that already hold players"),
) -> StandardResponse[AppliedDefaults]:
    service = CompositionService(request.app.state.mongodb)
    applied = await service.apply_defaults(epreuve, phase, journee, force=force)
    return StandardResponse(
        success=True,
        data=applied,
        message=f"{applied.assignedCount} players assigned from defaults",
    )
