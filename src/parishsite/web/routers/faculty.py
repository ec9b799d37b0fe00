from typing import cast

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from parishsite.core.modules.faculty.models import FacultyMember, FacultyRole
from parishsite.errors import ValidationError
from parishsite.web.deps import AppDep, SessionDep
from parishsite.web.openapi import ErrorResponse
from parishsite.web.security import require_trusted_origin

router = APIRouter(prefix="/admin", tags=["faculty"])

ADMIN_RESPONSES: dict[int | str, dict[str, object]] = {
    400: {"model": ErrorResponse, "description": "Invalid member data"},
    403: {"model": ErrorResponse, "description": "Not an admin or bad origin"},
    404: {"model": ErrorResponse, "description": "No member at that index"},
}


class FacultyFields(BaseModel):
    """Editable fields. Empty values leave the current value in place."""

    name: str | None = Field(None, description="Display name (max 80 chars)")
    subject: str | None = Field(None, description="Subject or office (max 120 chars)")
    image: str | None = Field(None, description="Local image path starting with /images/")


class FacultyUpdateRequest(FacultyFields):
    role: FacultyRole = Field(..., description="principal, teacher or admin")
    index: int | None = Field(None, description="Position in the list; ignored for the principal")


class StaffUpdateRequest(FacultyFields):
    index: int = Field(..., description="Position in the administrators list")


class IndexRequest(BaseModel):
    index: int = Field(..., description="Position of the member in its list")


class SuccessResult(BaseModel):
    success: bool = True


class TeacherAdded(SuccessResult):
    index: int
    teacher: FacultyMember


class AdminAdded(SuccessResult):
    index: int
    admin: FacultyMember


class PrincipalUpdated(SuccessResult):
    principal: FacultyMember


class TeacherUpdated(SuccessResult):
    index: int
    teacher: FacultyMember


@router.get(
    "/faculty.json",
    summary="Get faculty",
    description="Public faculty document: principal, administrators and teachers.",
    operation_id="getFaculty",
)
async def get_faculty(app: AppDep) -> JSONResponse:
    return JSONResponse(app.get_faculty().model_dump(), headers={"Cache-Control": "no-store"})


@router.post(
    "/faculty/add",
    summary="Add teacher",
    operation_id="addTeacher",
    dependencies=[Depends(require_trusted_origin)],
    responses=ADMIN_RESPONSES,
)
async def add_teacher(app: AppDep, session: SessionDep, fields: FacultyFields | None = None) -> TeacherAdded:
    fields = fields or FacultyFields()
    index, member = await app.add_faculty_member(session, "teacher", fields.name, fields.subject, fields.image)
    return TeacherAdded(index=index, teacher=member)


@router.post(
    "/faculty/add-admin",
    summary="Add administrator",
    operation_id="addFacultyAdmin",
    dependencies=[Depends(require_trusted_origin)],
    responses=ADMIN_RESPONSES,
)
async def add_admin(app: AppDep, session: SessionDep, fields: FacultyFields | None = None) -> AdminAdded:
    fields = fields or FacultyFields()
    index, member = await app.add_faculty_member(session, "admin", fields.name, fields.subject, fields.image)
    return AdminAdded(index=index, admin=member)


@router.post(
    "/faculty/update",
    summary="Update principal or teacher",
    description="Administrators are updated through /faculty/update-admin.",
    operation_id="updateFaculty",
    dependencies=[Depends(require_trusted_origin)],
    responses=ADMIN_RESPONSES,
)
async def update_faculty(request: FacultyUpdateRequest, app: AppDep, session: SessionDep) -> PrincipalUpdated | TeacherUpdated:
    if request.role == "admin":
        raise ValidationError("Invalid role")
    member = await app.update_faculty_member(
        session, request.role, request.index, request.name, request.subject, request.image
    )
    if request.role == "principal":
        return PrincipalUpdated(principal=member)
    return TeacherUpdated(index=cast(int, request.index), teacher=member)


@router.post(
    "/faculty/update-admin",
    summary="Update administrator",
    operation_id="updateFacultyAdmin",
    dependencies=[Depends(require_trusted_origin)],
    responses=ADMIN_RESPONSES,
)
async def update_admin(request: StaffUpdateRequest, app: AppDep, session: SessionDep) -> SuccessResult:
    await app.update_faculty_member(session, "admin", request.index, request.name, request.subject, request.image)
    return SuccessResult()


@router.post(
    "/faculty/delete",
    summary="Delete teacher",
    operation_id="deleteTeacher",
    dependencies=[Depends(require_trusted_origin)],
    responses=ADMIN_RESPONSES,
)
async def delete_teacher(request: IndexRequest, app: AppDep, session: SessionDep) -> SuccessResult:
    await app.delete_faculty_member(session, "teacher", request.index)
    return SuccessResult()


@router.post(
    "/faculty/delete-admin",
    summary="Delete administrator",
    operation_id="deleteFacultyAdmin",
    dependencies=[Depends(require_trusted_origin)],
    responses=ADMIN_RESPONSES,
)
async def delete_admin(request: IndexRequest, app: AppDep, session: SessionDep) -> SuccessResult:
    await app.delete_faculty_member(session, "admin", request.index)
    return SuccessResult()
