"""Services for the Testimonial Wall backend."""

from .form_service import FormService
from .group_service import GroupService
from .project_service import ProjectService
from .public_page_service import PublicPageService
from .submission_service import SubmissionService
from .testimonial_service import TestimonialService
from .widget_service import WidgetService

__all__ = [
    "ProjectService",
    "TestimonialService",
    "GroupService",
    "FormService",
    "SubmissionService",
    "PublicPageService",
    "WidgetService",
]
