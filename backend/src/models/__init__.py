"""Data models for Testimonial Wall."""

from .form import Form, FormField, FormSettings, FormStyling, FormSubmission
from .group import Group
from .project import Project, ProjectStats, ProjectSummary, PublicPageSettings
from .testimonial import (
    PublicTestimonial,
    Testimonial,
    TestimonialSource,
    TestimonialStatus,
    WidgetConfig,
    WidgetTestimonial,
)

__all__ = [
    "Project",
    "ProjectStats",
    "ProjectSummary",
    "PublicPageSettings",
    "Testimonial",
    "TestimonialStatus",
    "TestimonialSource",
    "PublicTestimonial",
    "WidgetConfig",
    "WidgetTestimonial",
    "Group",
    "Form",
    "FormField",
    "FormSettings",
    "FormStyling",
    "FormSubmission",
]
