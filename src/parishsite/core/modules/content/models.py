from pydantic import BaseModel, Field

PLACEHOLDER_IMAGE = "/images/Placeholder.jpg"


class TeamMember(BaseModel):
    """A staff member shown on the team page."""

    name: str = Field(..., description="Display name")
    subject: str = Field(..., description="Role or subject taught")
    image: str = Field(PLACEHOLDER_IMAGE, description="Local image path under /images/")
    bio: str = Field("", description="Biography; paragraphs separated by blank lines")


class TeamDocument(BaseModel):
    team: list[TeamMember] = Field(default_factory=list)
