"""Visibility rules for unauthenticated surfaces.

Two explicit policies exist:

- ``is_publicly_visible``: public project page, group page and single
  testimonial pages. Requires the project to be public, the testimonial to
  be approved, and the testimonial to be marked public.
- ``is_widget_visible``: the widget config API. Widgets run on the owner's
  own (domain-checked) site, so only approval is required.
"""

from typing import Iterable

from models.project import Project
from models.testimonial import Testimonial, TestimonialStatus


def is_publicly_visible(testimonial: Testimonial, project: Project) -> bool:
    """Whether a testimonial may appear on a public page."""
    return (
        project.is_public
        and testimonial.project_id == project.project_id
        and testimonial.status == TestimonialStatus.APPROVED.value
        and testimonial.is_public
    )


def is_widget_visible(testimonial: Testimonial) -> bool:
    """Whether a testimonial may be served to an authorized widget."""
    return testimonial.status == TestimonialStatus.APPROVED.value


def filter_publicly_visible(
    testimonials: Iterable[Testimonial], project: Project
) -> list[Testimonial]:
    """Apply the public predicate and order by creation time (oldest first)."""
    visible = [t for t in testimonials if is_publicly_visible(t, project)]
    visible.sort(key=lambda t: t.created_at)
    return visible
