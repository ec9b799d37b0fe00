from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from parishsite.web.deps import AppDep, SessionDep
from parishsite.web.openapi import ErrorResponse
from parishsite.web.security import require_trusted_origin

router = APIRouter(prefix="/content", tags=["content"])


class SaveResult(BaseModel):
    success: bool


@router.get(
    "/events.json",
    summary="Get events",
    description="Public events document shown on the home and school pages.",
    operation_id="getEvents",
)
async def get_events(app: AppDep) -> JSONResponse:
    return JSONResponse(app.get_events(), headers={"Cache-Control": "no-store"})


@router.post(
    "/events.json",
    summary="Replace events",
    description="Replace the whole events document. Admin only, at most 200 KiB.",
    operation_id="saveEvents",
    dependencies=[Depends(require_trusted_origin)],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid payload"},
        403: {"model": ErrorResponse, "description": "Not an admin or bad origin"},
        413: {"model": ErrorResponse, "description": "Payload too large"},
    },
)
async def save_events(document: Annotated[Any, Body()], app: AppDep, session: SessionDep) -> SaveResult:
    await app.save_events(session, document)
    return SaveResult(success=True)
