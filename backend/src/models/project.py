"""Project data models."""

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PRIMARY_COLOR = "#3B82F6"


class PublicPageSettings(BaseModel):
    """Display settings for the public testimonial page."""

    theme: str = Field(default="light", description="light or dark")
    primary_color: str = Field(default=DEFAULT_PRIMARY_COLOR, description="Accent color")
    layout: str = Field(default="grid", description="grid, list or masonry")
    show_ratings: bool = Field(default=True)
    show_company: bool = Field(default=True)
    show_title: bool = Field(default=True)
    show_images: bool = Field(default=True)
    header_title: str | None = Field(None, description="Optional page heading")
    header_description: str | None = Field(None, description="Optional page subheading")

    model_config = ConfigDict(extra="allow")


class Project(BaseModel):
    """A customer's testimonial project (one per owner)."""

    project_id: str = Field(..., description="Unique project identifier")
    owner_id: str = Field(..., description="User id of the owning account")
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, description="Project description")
    website_url: str | None = Field(
        None, description="Declared website, also used to authorize widgets"
    )
    public_slug: str | None = Field(None, description="Slug of the public page")
    is_public: bool = Field(default=False, description="Whether the public page is live")
    public_page_settings: PublicPageSettings = Field(default_factory=PublicPageSettings)
    created_at: str = Field(..., description="ISO timestamp when project was created")
    updated_at: str = Field(..., description="ISO timestamp of last update")


class ProjectCreate(BaseModel):
    """Request model for creating a project at onboarding completion."""

    name: str = Field(..., min_length=1, max_length=255)
    website_url: str = Field(..., min_length=1, max_length=500)
    description: str | None = Field(None, max_length=2000)


class ProjectBasicInfoUpdate(BaseModel):
    """Request model for updating a project's basic information."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=2000)
    website_url: str | None = Field(None, max_length=500)


class PublicSettingsUpdate(BaseModel):
    """Request model for publishing (or unpublishing) the public page."""

    is_public: bool = False
    public_slug: str | None = Field(None, max_length=100)
    settings: PublicPageSettings | None = None


class ProjectSummary(BaseModel):
    """Minimal project view handed to widgets."""

    id: str
    name: str
    website_url: str | None = None


class ProjectStats(BaseModel):
    """Simple testimonial counts for the dashboard."""

    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    flagged: int = 0
    public: int = 0
    groups: int = 0
    forms: int = 0
