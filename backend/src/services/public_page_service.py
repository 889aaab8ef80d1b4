"""Unauthenticated read surfaces: project page, group page, single testimonial.

Every path applies the same visibility predicate and raises the same
``NotFoundError`` for anything that is missing, private or unpublished.
"""

import logging

from models.group import Group
from models.project import Project
from models.testimonial import (
    PublicGroupPage,
    PublicProjectPage,
    PublicTestimonial,
    Testimonial,
)
from services.errors import NotFoundError
from services.visibility import filter_publicly_visible, is_publicly_visible
from utils.slug_utils import is_valid_slug

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Not found"


def to_public_testimonial(
    testimonial: Testimonial, group: Group | None = None
) -> PublicTestimonial:
    """Strip a testimonial down to its publicly safe fields."""
    return PublicTestimonial(
        id=testimonial.testimonial_id,
        slug=testimonial.slug,
        customer_name=testimonial.customer_name,
        customer_company=testimonial.customer_company,
        customer_title=testimonial.customer_title,
        customer_image_url=testimonial.customer_image_url,
        content=testimonial.content,
        rating=testimonial.rating,
        tags=testimonial.tags,
        created_at=testimonial.created_at,
        group_name=group.name if group else None,
        group_color=group.color if group else None,
    )


class PublicPageService:
    """Builds the public views of projects, groups and testimonials."""

    def __init__(self, project_service, testimonial_service, group_service):
        self.project_service = project_service
        self.testimonial_service = testimonial_service
        self.group_service = group_service

    def get_public_project_page(self, public_slug: str) -> PublicProjectPage:
        """Public project page with its visible testimonials, oldest first."""
        project = self._require_public_project(public_slug)

        groups = {
            g.group_id: g for g in self.group_service.list_project_groups(project.project_id)
        }
        visible = filter_publicly_visible(
            self.testimonial_service.list_project_testimonials(project.project_id),
            project,
        )
        testimonials = [
            to_public_testimonial(t, groups.get(t.group_id)) for t in visible
        ]

        return PublicProjectPage(
            name=project.name,
            description=project.description,
            website_url=project.website_url,
            public_slug=project.public_slug,
            settings=project.public_page_settings,
            testimonials=testimonials,
            total_count=len(testimonials),
        )

    def get_public_testimonial(
        self, public_slug: str, testimonial_ref: str
    ) -> PublicTestimonial:
        """One testimonial of a public project, by id or by its 6-char slug."""
        project = self._require_public_project(public_slug)

        testimonial = self.testimonial_service.get_project_testimonial(
            project.project_id, testimonial_ref
        )
        if testimonial is None and is_valid_slug(testimonial_ref):
            matches = self.testimonial_service.find_by_slug(
                testimonial_ref, project_id=project.project_id
            )
            testimonial = matches[0] if matches else None

        if testimonial is None or not is_publicly_visible(testimonial, project):
            raise NotFoundError(NOT_FOUND_MESSAGE)
        return to_public_testimonial(testimonial, self._group_for(testimonial))

    def get_public_testimonial_by_slug(self, slug: str) -> PublicTestimonial:
        """Testimonial by its slug alone.

        Slugs are only unique per project, so the first visible match in
        creation order wins.
        """
        if not is_valid_slug(slug):
            raise NotFoundError(NOT_FOUND_MESSAGE)

        projects: dict[str, Project | None] = {}
        for testimonial in self.testimonial_service.find_by_slug(slug):
            if testimonial.project_id not in projects:
                projects[testimonial.project_id] = self.project_service.get_project(
                    testimonial.project_id
                )
            project = projects[testimonial.project_id]
            if project and is_publicly_visible(testimonial, project):
                return to_public_testimonial(testimonial, self._group_for(testimonial))

        raise NotFoundError(NOT_FOUND_MESSAGE)

    def get_public_group_page(self, group_slug: str) -> PublicGroupPage:
        """Group page with the group's visible testimonials, oldest first.

        The owning project must itself be public.
        """
        if not is_valid_slug(group_slug):
            raise NotFoundError(NOT_FOUND_MESSAGE)

        for group in self.group_service.find_groups_by_slug(group_slug):
            project = self.project_service.get_project(group.project_id)
            if not project or not project.is_public:
                continue

            members = [
                t
                for t in self.testimonial_service.list_project_testimonials(project.project_id)
                if t.group_id == group.group_id
            ]
            testimonials = [
                to_public_testimonial(t, group)
                for t in filter_publicly_visible(members, project)
            ]
            return PublicGroupPage(
                name=group.name,
                slug=group.slug,
                description=group.description,
                color=group.color,
                project_name=project.name,
                settings=project.public_page_settings,
                testimonials=testimonials,
                total_count=len(testimonials),
            )

        raise NotFoundError(NOT_FOUND_MESSAGE)

    def _require_public_project(self, public_slug: str) -> Project:
        project = self.project_service.get_public_project(public_slug)
        if not project or not project.is_public:
            raise NotFoundError(NOT_FOUND_MESSAGE)
        return project

    def _group_for(self, testimonial: Testimonial) -> Group | None:
        if not testimonial.group_id:
            return None
        return self.group_service.get_project_group(
            testimonial.project_id, testimonial.group_id
        )
