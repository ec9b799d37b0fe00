from typing import Annotated

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, Field

from parishsite.core.modules.content.models import TeamDocument
from parishsite.web.deps import AppDep, SessionDep
from parishsite.web.openapi import ErrorResponse
from parishsite.web.security import require_trusted_origin

router = APIRouter(prefix="/api/team", tags=["team"])

ADMIN_RESPONSES: dict[int | str, dict[str, object]] = {
    400: {"model": ErrorResponse, "description": "Invalid member data or index"},
    403: {"model": ErrorResponse, "description": "Not an admin or bad origin"},
}


class TeamMemberRequest(BaseModel):
    """Team member fields. Values are trimmed and clamped server-side."""

    name: str | None = Field(None, description="Display name (max 80 chars)")
    subject: str | None = Field(None, description="Role or subject (max 120 chars)")
    image: str | None = Field(None, description="Local image path starting with /images/")
    bio: str | list[str] | None = Field(None, description="Biography as text or a list of paragraphs")


IndexParam = Annotated[int, Path(description="Position of the member in the team list")]


@router.get("", summary="List team", operation_id="getTeam")
async def get_team(app: AppDep) -> TeamDocument:
    return app.get_team()


@router.post(
    "",
    summary="Add team member",
    operation_id="addTeamMember",
    dependencies=[Depends(require_trusted_origin)],
    responses=ADMIN_RESPONSES,
)
async def add_team_member(member: TeamMemberRequest, app: AppDep, session: SessionDep) -> TeamDocument:
    return await app.add_team_member(session, member.name, member.subject, member.image, member.bio)


@router.put(
    "/{index}",
    summary="Update team member",
    description="Update only the fields that are present in the request.",
    operation_id="updateTeamMember",
    dependencies=[Depends(require_trusted_origin)],
    responses=ADMIN_RESPONSES,
)
async def update_team_member(index: IndexParam, member: TeamMemberRequest, app: AppDep, session: SessionDep) -> TeamDocument:
    return await app.update_team_member(session, index, member.name, member.subject, member.image, member.bio)


@router.delete(
    "/{index}",
    summary="Delete team member",
    operation_id="deleteTeamMember",
    dependencies=[Depends(require_trusted_origin)],
    responses=ADMIN_RESPONSES,
)
async def delete_team_member(index: IndexParam, app: AppDep, session: SessionDep) -> TeamDocument:
    return await app.delete_team_member(session, index)
