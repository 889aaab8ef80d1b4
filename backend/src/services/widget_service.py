"""Widget access control and config resolution."""

import logging

from models.project import ProjectSummary
from models.testimonial import WidgetConfig, WidgetTestimonial
from services.errors import ForbiddenError, NotFoundError
from services.visibility import is_widget_visible
from utils.cache import get_widget_cache, widget_cache_key
from utils.url_utils import hostname_of, normalize_domain

logger = logging.getLogger(__name__)


def parse_tag_filter(raw: str | None) -> list[str]:
    """Split a comma separated tag parameter, ignoring blanks."""
    if not raw:
        return []
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


class WidgetService:
    """Authorizes widget requests and builds the widget payload."""

    def __init__(self, project_service, testimonial_service, use_cache: bool = True):
        """Initialize the widget service.

        Args:
            project_service: ProjectService for project lookup
            testimonial_service: TestimonialService for the project's testimonials
            use_cache: Whether to serve repeated requests from the TTL cache
        """
        self.project_service = project_service
        self.testimonial_service = testimonial_service
        self.use_cache = use_cache

    def resolve(
        self,
        project_id: str,
        domain: str | None = None,
        tags: list[str] | None = None,
    ) -> WidgetConfig:
        """Resolve the widget config for a project.

        Args:
            project_id: Project the widget belongs to
            domain: Requesting domain; when absent the domain check is skipped
            tags: Keep only testimonials carrying at least one of these tags

        Returns:
            Project summary and approved testimonials, oldest first

        Raises:
            NotFoundError: If the project does not exist
            ForbiddenError: If the domain does not match the project's website
        """
        domain = normalize_domain(domain) if domain and domain.strip() else None
        tags = [t for t in (tags or []) if t]

        cache = get_widget_cache()
        cache_key = widget_cache_key(project_id, domain, tags)
        if self.use_cache and cache_key in cache:
            return cache[cache_key]

        project = self.project_service.get_project(project_id)
        if not project:
            raise NotFoundError("Project not found")

        if domain is not None:
            allowed_host = hostname_of(project.website_url)
            if not allowed_host or domain != allowed_host:
                logger.warning(
                    "Widget request for project %s from unauthorized domain %s",
                    project_id,
                    domain,
                )
                raise ForbiddenError("Domain not authorized")

        wanted = set(tags)
        testimonials = [
            t
            for t in self.testimonial_service.list_project_testimonials(project.project_id)
            if is_widget_visible(t) and (not wanted or wanted.intersection(t.tags))
        ]
        testimonials.sort(key=lambda t: t.created_at)

        config = WidgetConfig(
            project=ProjectSummary(
                id=project.project_id,
                name=project.name,
                website_url=project.website_url,
            ),
            testimonials=[
                WidgetTestimonial(
                    id=t.testimonial_id,
                    customer_name=t.customer_name,
                    customer_company=t.customer_company,
                    customer_title=t.customer_title,
                    content=t.content,
                    rating=t.rating,
                    tags=t.tags,
                    created_at=t.created_at,
                )
                for t in testimonials
            ],
        )

        if self.use_cache:
            cache[cache_key] = config
        return config
