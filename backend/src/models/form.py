"""Collection form data models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FormField(BaseModel):
    """A single field definition in a collection form."""

    id: str = Field(..., description="Field key used in submission payloads")
    type: str = Field(
        ..., description="text, email, textarea, rating, file, select, checkbox"
    )
    label: str
    required: bool = False
    placeholder: str | None = None
    options: list[str] | None = None


class FormStyling(BaseModel):
    """Visual styling of a public form."""

    primary_color: str = "#3B82F6"
    background_color: str = "#ffffff"
    text_color: str = "#1f2937"
    font_family: str = "Inter"
    border_radius: int = 8
    layout: str = "single-column"
    theme: str = "light"

    model_config = ConfigDict(extra="allow")


class FormSettings(BaseModel):
    """Submission policy of a form."""

    allow_multiple_submissions: bool = False
    require_email_verification: bool = False
    enable_spam_protection: bool = True
    enable_analytics: bool = True
    auto_approve: bool = False
    collect_ip_address: bool = True
    enable_file_uploads: bool = True
    max_file_size: int = Field(default=10, description="Megabytes")
    allowed_file_types: list[str] = Field(
        default_factory=lambda: ["image/jpeg", "image/png", "image/webp"]
    )

    model_config = ConfigDict(extra="allow")


class Form(BaseModel):
    """A testimonial collection form."""

    form_id: str
    project_id: str
    slug: str = Field(..., description="6-character slug, globally unique")
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    fields: list[FormField] = Field(default_factory=list)
    styling: FormStyling = Field(default_factory=FormStyling)
    settings: FormSettings = Field(default_factory=FormSettings)
    is_active: bool = True
    created_at: str
    updated_at: str


class FormCreate(BaseModel):
    """Request model for creating a form. Styling and settings are overrides."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    fields: list[FormField]
    styling: dict[str, Any] | None = None
    settings: dict[str, Any] | None = None


class FormUpdate(BaseModel):
    """Request model for a partial form update."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    fields: list[FormField] | None = None
    styling: FormStyling | None = None
    settings: FormSettings | None = None
    is_active: bool | None = None


class RequestMeta(BaseModel):
    """Request metadata recorded alongside a submission."""

    ip_address: str = "unknown"
    user_agent: str = "unknown"


class FormSubmission(BaseModel):
    """Immutable record of one raw form payload."""

    submission_id: str
    form_id: str
    project_id: str
    data: dict[str, Any]
    ip_address: str | None = None
    user_agent: str | None = None
    testimonial_id: str | None = Field(
        None, description="Testimonial produced by this submission, if any"
    )
    created_at: str


class SubmissionRequest(BaseModel):
    """Body of the public form submission endpoint."""

    data: dict[str, Any] = Field(..., description="Raw answers keyed by field id; may be empty")
