"""Dashboard counts for a project."""

from models.project import ProjectStats


def get_project_stats(
    owner_id: str, project_service, testimonial_service, group_service, form_service
) -> ProjectStats:
    """Simple counts for the owner's project: totals, per status, groups, forms."""
    project = project_service.require_owned_project(owner_id)
    counts = testimonial_service.count_by_status(project.project_id)
    return ProjectStats(
        **counts,
        groups=len(group_service.list_project_groups(project.project_id)),
        forms=len(form_service.list_project_forms(project.project_id)),
    )
