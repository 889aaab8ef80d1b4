"""Testimonial group data models."""

from pydantic import BaseModel, Field

DEFAULT_GROUP_COLOR = "#3B82F6"
COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class Group(BaseModel):
    """A named collection of testimonials inside one project."""

    group_id: str = Field(..., description="Unique group identifier")
    project_id: str = Field(..., description="Owning project (immutable)")
    slug: str = Field(..., description="6-character slug, unique within the project")
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    color: str = Field(default=DEFAULT_GROUP_COLOR, pattern=COLOR_PATTERN)
    created_at: str
    updated_at: str


class GroupCreate(BaseModel):
    """Request model for creating a group."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    color: str = Field(default=DEFAULT_GROUP_COLOR, pattern=COLOR_PATTERN)


class GroupUpdate(BaseModel):
    """Request model for updating a group. The owning project cannot change."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    color: str | None = Field(None, pattern=COLOR_PATTERN)
