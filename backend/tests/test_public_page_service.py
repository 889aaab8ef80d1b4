"""Tests for the unauthenticated read surfaces."""

from unittest.mock import Mock

import pytest
from conftest import make_group, make_project, make_testimonial

from services.errors import NotFoundError
from services.public_page_service import PublicPageService


class TestPublicPageService:
    """Test cases for PublicPageService."""

    @pytest.fixture
    def testimonials(self):
        return [
            make_testimonial(
                testimonial_id="t-2",
                slug="bbb222",
                group_id="g-1",
                created_at="2026-01-03T00:00:00+00:00",
            ),
            make_testimonial(
                testimonial_id="t-1", slug="aaa111", created_at="2026-01-01T00:00:00+00:00"
            ),
            make_testimonial(testimonial_id="t-private", slug="ccc333", is_public=False),
            make_testimonial(
                testimonial_id="t-pending",
                slug="ddd444",
                status="pending",
                approved_at=None,
                group_id="g-1",
            ),
        ]

    @pytest.fixture
    def mock_testimonial_service(self, testimonials):
        by_id = {t.testimonial_id: t for t in testimonials}
        service = Mock()
        service.list_project_testimonials.return_value = testimonials
        service.get_project_testimonial.side_effect = lambda pid, tid: by_id.get(tid)
        service.find_by_slug.side_effect = lambda slug, project_id=None: [
            t for t in testimonials if t.slug == slug
        ]
        return service

    @pytest.fixture
    def mock_group_service(self, sample_group):
        service = Mock()
        service.list_project_groups.return_value = [sample_group]
        service.get_project_group.return_value = sample_group
        service.find_groups_by_slug.return_value = [sample_group]
        return service

    @pytest.fixture
    def page_service(self, mock_project_service, mock_testimonial_service, mock_group_service):
        return PublicPageService(
            mock_project_service, mock_testimonial_service, mock_group_service
        )

    # ============================================
    # Project page
    # ============================================

    def test_project_page(self, page_service):
        page = page_service.get_public_project_page("acme-coffee")

        assert page.name == "Acme Coffee"
        assert page.public_slug == "acme-coffee"
        assert [t.id for t in page.testimonials] == ["t-1", "t-2"]
        assert page.total_count == 2
        assert page.testimonials[1].group_name == "Baristas"
        assert page.testimonials[1].group_color == "#10B981"
        assert page.testimonials[0].group_name is None

    def test_project_page_hides_private_fields(self, page_service):
        dumped = page_service.get_public_project_page("acme-coffee").model_dump()
        keys = set(dumped["testimonials"][0])
        assert "customer_email" not in keys
        assert "status" not in keys
        assert "source_metadata" not in keys
        assert "owner_id" not in dumped

    def test_unknown_slug(self, page_service, mock_project_service):
        mock_project_service.get_public_project.return_value = None
        with pytest.raises(NotFoundError):
            page_service.get_public_project_page("nope")

    def test_unpublished_project(self, page_service, mock_project_service):
        mock_project_service.get_public_project.return_value = make_project(is_public=False)
        with pytest.raises(NotFoundError):
            page_service.get_public_project_page("acme-coffee")

    # ============================================
    # Single testimonial
    # ============================================

    def test_testimonial_by_id(self, page_service):
        testimonial = page_service.get_public_testimonial("acme-coffee", "t-1")
        assert testimonial.id == "t-1"

    def test_testimonial_by_slug_within_project(self, page_service, mock_testimonial_service):
        testimonial = page_service.get_public_testimonial("acme-coffee", "bbb222")

        assert testimonial.id == "t-2"
        assert testimonial.group_name == "Baristas"
        mock_testimonial_service.find_by_slug.assert_called_once_with(
            "bbb222", project_id="proj-1"
        )

    @pytest.mark.parametrize("ref", ["t-private", "t-pending", "ccc333", "missing"])
    def test_hidden_and_missing_look_the_same(self, page_service, ref):
        with pytest.raises(NotFoundError) as exc_info:
            page_service.get_public_testimonial("acme-coffee", ref)
        assert exc_info.value.message == "Not found"

    def test_testimonial_of_other_project(self, page_service, mock_testimonial_service):
        foreign = make_testimonial(testimonial_id="t-x", project_id="proj-2")
        mock_testimonial_service.get_project_testimonial.side_effect = None
        mock_testimonial_service.get_project_testimonial.return_value = foreign

        with pytest.raises(NotFoundError):
            page_service.get_public_testimonial("acme-coffee", "t-x")

    # ============================================
    # Global slug
    # ============================================

    def test_global_slug_first_visible_match(
        self, page_service, mock_testimonial_service, mock_project_service
    ):
        hidden_project = make_project(project_id="proj-hidden", is_public=False)
        projects = {"proj-hidden": hidden_project, "proj-1": make_project()}
        mock_project_service.get_project.side_effect = projects.get
        mock_testimonial_service.find_by_slug.side_effect = None
        mock_testimonial_service.find_by_slug.return_value = [
            make_testimonial(testimonial_id="old", project_id="proj-hidden"),
            make_testimonial(testimonial_id="new", project_id="proj-1"),
        ]

        assert page_service.get_public_testimonial_by_slug("abc123").id == "new"

    def test_global_slug_malformed(self, page_service, mock_testimonial_service):
        with pytest.raises(NotFoundError):
            page_service.get_public_testimonial_by_slug("ABC")
        mock_testimonial_service.find_by_slug.assert_not_called()

    def test_global_slug_nothing_visible(self, page_service):
        with pytest.raises(NotFoundError):
            page_service.get_public_testimonial_by_slug("ddd444")

    # ============================================
    # Group page
    # ============================================

    def test_group_page(self, page_service):
        page = page_service.get_public_group_page("grp001")

        assert page.name == "Baristas"
        assert page.project_name == "Acme Coffee"
        assert [t.id for t in page.testimonials] == ["t-2"]
        assert page.total_count == 1

    def test_group_page_requires_public_project(self, page_service, mock_project_service):
        mock_project_service.get_project.return_value = make_project(is_public=False)
        with pytest.raises(NotFoundError):
            page_service.get_public_group_page("grp001")

    def test_group_page_unknown(self, page_service, mock_group_service):
        mock_group_service.find_groups_by_slug.return_value = []
        with pytest.raises(NotFoundError):
            page_service.get_public_group_page("zzz999")

    def test_group_page_skips_groups_of_private_projects(
        self, page_service, mock_group_service, mock_project_service
    ):
        private_group = make_group(group_id="g-private", project_id="proj-hidden")
        mock_group_service.find_groups_by_slug.return_value = [private_group, make_group()]
        projects = {
            "proj-hidden": make_project(project_id="proj-hidden", is_public=False),
            "proj-1": make_project(),
        }
        mock_project_service.get_project.side_effect = projects.get

        page = page_service.get_public_group_page("grp001")

        assert [t.id for t in page.testimonials] == ["t-2"]
