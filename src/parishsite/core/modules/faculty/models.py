from typing import Literal

from pydantic import BaseModel, Field

PRINCIPAL_IMAGE = "/images/PlaceHolder.jpg"
FACULTY_PLACEHOLDER_IMAGE = "/images/faculty/PlaceHolder.jpg"

FacultyRole = Literal["principal", "teacher", "admin"]
StaffRole = Literal["teacher", "admin"]


class FacultyMember(BaseModel):
    """A person on the faculty page."""

    name: str = Field("Name", description="Display name")
    subject: str = Field("Subject", description="Subject taught or office held")
    image: str = Field(FACULTY_PLACEHOLDER_IMAGE, description="Local image path under /images/")


def default_principal() -> FacultyMember:
    return FacultyMember(name="Name", subject="Principal", image=PRINCIPAL_IMAGE)


class FacultyDocument(BaseModel):
    """The faculty page: one principal, then administrators and teachers in display order."""

    principal: FacultyMember = Field(default_factory=default_principal)
    admin: list[FacultyMember] = Field(default_factory=list)
    teachers: list[FacultyMember] = Field(default_factory=list)

    def members(self, role: StaffRole) -> list[FacultyMember]:
        return self.admin if role == "admin" else self.teachers
