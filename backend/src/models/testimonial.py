"""Testimonial data models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.project import ProjectSummary, PublicPageSettings


class TestimonialStatus(str, Enum):
    """Moderation status of a testimonial."""

    PENDING = "pending"  # Initial state for every new testimonial
    APPROVED = "approved"
    REJECTED = "rejected"
    FLAGGED = "flagged"


class TestimonialSource(str, Enum):
    """Where a testimonial came from."""

    FORM = "form"
    MANUAL = "manual"
    IMPORT = "import"
    SCRAPE = "scrape"


def normalize_tags(tags: list[str] | None) -> list[str]:
    """Trim, de-duplicate and sort tags so they behave as a set."""
    if not tags:
        return []
    return sorted({t.strip() for t in tags if t and t.strip()})


class Testimonial(BaseModel):
    """A customer testimonial."""

    testimonial_id: str = Field(..., description="Unique testimonial identifier")
    project_id: str = Field(..., description="Owning project")
    group_id: str | None = Field(None, description="Optional group")
    slug: str = Field(..., description="6-character slug, unique within the project")

    # Customer identity
    customer_name: str = Field(..., min_length=1)
    customer_email: str | None = Field(None, description="Required at creation time")
    customer_company: str | None = None
    customer_title: str | None = None
    customer_image_url: str | None = None

    # Content
    content: str = Field(..., min_length=1)
    rating: int | None = Field(None, ge=1, le=5)

    # Moderation
    status: TestimonialStatus = Field(default=TestimonialStatus.PENDING)
    is_public: bool = Field(default=False, description="Independent of status")
    approved_at: str | None = Field(
        None, description="Set iff status is approved"
    )

    # Provenance
    source: TestimonialSource = Field(default=TestimonialSource.MANUAL)
    source_metadata: dict[str, Any] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)

    created_at: str = Field(..., description="ISO timestamp when testimonial was created")
    updated_at: str | None = None

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        """Tags are a set of non-blank strings."""
        return normalize_tags(v)


class TestimonialCreate(BaseModel):
    """Request model for manual testimonial entry."""

    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_email: str = Field(..., min_length=3, max_length=255)
    customer_company: str | None = Field(None, max_length=255)
    customer_title: str | None = Field(None, max_length=255)
    customer_image_url: str | None = Field(None, max_length=2000)
    content: str = Field(..., min_length=1)
    rating: int | None = Field(None, ge=1, le=5)
    group_id: str | None = None
    tags: list[str] = Field(default_factory=list)
    is_public: bool = False
    source: TestimonialSource = TestimonialSource.MANUAL
    source_metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        """Reject whitespace-only content."""
        if not v.strip():
            raise ValueError("Content must not be empty")
        return v

    @field_validator("source")
    @classmethod
    def source_not_form(cls, v: TestimonialSource) -> TestimonialSource:
        """Form-sourced testimonials are only created by form submissions."""
        if v == TestimonialSource.FORM:
            raise ValueError("Form testimonials are created through form submissions")
        return v


class TestimonialUpdate(BaseModel):
    """Request model for explicit field edits. Status is not editable here."""

    customer_name: str | None = Field(None, min_length=1, max_length=255)
    customer_email: str | None = Field(None, max_length=255)
    customer_company: str | None = Field(None, max_length=255)
    customer_title: str | None = Field(None, max_length=255)
    customer_image_url: str | None = Field(None, max_length=2000)
    content: str | None = Field(None, min_length=1)
    rating: int | None = Field(None, ge=1, le=5)
    tags: list[str] | None = None
    is_public: bool | None = None

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str | None) -> str | None:
        """Edits may omit content but never blank it out."""
        if v is not None and not v.strip():
            raise ValueError("Content must not be empty")
        return v


class StatusUpdate(BaseModel):
    """Request body for a status transition.

    Kept as a plain string so unknown values reach the lifecycle engine,
    which owns the list of valid statuses.
    """

    status: str


class GroupAssignment(BaseModel):
    """Request body for moving a testimonial in or out of a group."""

    group_id: str | None = None


class PublicTestimonial(BaseModel):
    """Testimonial fields safe to show on unauthenticated surfaces."""

    id: str
    slug: str
    customer_name: str
    customer_company: str | None = None
    customer_title: str | None = None
    customer_image_url: str | None = None
    content: str
    rating: int | None = None
    tags: list[str] = Field(default_factory=list)
    created_at: str
    group_name: str | None = None
    group_color: str | None = None


class WidgetTestimonial(BaseModel):
    """Testimonial fields exposed through the widget config API."""

    id: str
    customer_name: str
    customer_company: str | None = None
    customer_title: str | None = None
    content: str
    rating: int | None = None
    tags: list[str] = Field(default_factory=list)
    created_at: str


class WidgetConfig(BaseModel):
    """Response of the widget config API."""

    project: ProjectSummary
    testimonials: list[WidgetTestimonial] = Field(default_factory=list)


class PublicProjectPage(BaseModel):
    """Public project page: display fields plus visible testimonials."""

    name: str
    description: str | None = None
    website_url: str | None = None
    public_slug: str
    settings: PublicPageSettings
    testimonials: list[PublicTestimonial] = Field(default_factory=list)
    total_count: int = 0


class PublicGroupPage(BaseModel):
    """Public group page: group display fields plus visible testimonials."""

    name: str
    slug: str
    description: str | None = None
    color: str
    project_name: str
    settings: PublicPageSettings
    testimonials: list[PublicTestimonial] = Field(default_factory=list)
    total_count: int = 0
