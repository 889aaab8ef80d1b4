"""Tests for FormService."""

import pytest
from conftest import make_client_error, make_form

from models.form import FormCreate, FormField, FormUpdate
from services.errors import InvalidInputError, NotFoundError, StoreError
from services.form_service import FormService
from utils.dynamodb_utils import model_to_item


class TestFormService:
    """Test cases for FormService."""

    @pytest.fixture
    def form_service(self, mock_dynamodb_table, mock_unique_keys, mock_project_service):
        """Create a FormService with mocked dependencies."""
        return FormService(mock_dynamodb_table, mock_unique_keys, mock_project_service)

    @pytest.fixture
    def form_create(self):
        return FormCreate(
            name="Feedback",
            fields=[FormField(id="name", type="text", label="Name", required=True)],
            styling={"primary_color": "#000000"},
            settings={"collect_ip_address": False},
        )

    def test_create_form_merges_defaults(
        self, form_service, mock_dynamodb_table, mock_unique_keys, form_create
    ):
        form = form_service.create_form("user-1", form_create)

        assert form.slug == "xyz789"
        assert form.is_active is True
        assert form.styling.primary_color == "#000000"
        assert form.styling.font_family == "Inter"
        assert form.styling.border_radius == 8
        assert form.settings.collect_ip_address is False
        assert form.settings.enable_spam_protection is True
        assert form.settings.allowed_file_types == ["image/jpeg", "image/png", "image/webp"]

        key_for = mock_unique_keys.allocate_slug.call_args.args[0]
        assert key_for("abc123") == "form-slug#abc123"
        item = mock_dynamodb_table.put_item.call_args.kwargs["Item"]
        assert item["project_id"] == "proj-1"

    def test_create_form_bad_settings(self, form_service):
        data = FormCreate(name="F", fields=[], settings={"max_file_size": "huge"})
        with pytest.raises(InvalidInputError):
            form_service.create_form("user-1", data)

    def test_blank_name_claims_no_slug(
        self, form_service, mock_dynamodb_table, mock_unique_keys
    ):
        with pytest.raises(InvalidInputError):
            form_service.create_form("user-1", FormCreate(name="  ", fields=[]))
        mock_unique_keys.allocate_slug.assert_not_called()
        mock_dynamodb_table.put_item.assert_not_called()

    def test_create_store_failure_releases_slug(
        self, form_service, mock_dynamodb_table, mock_unique_keys, form_create
    ):
        mock_dynamodb_table.put_item.side_effect = make_client_error("InternalServerError")
        with pytest.raises(StoreError):
            form_service.create_form("user-1", form_create)
        mock_unique_keys.release.assert_called_once_with("form-slug#xyz789")

    def test_get_form_other_project(self, form_service, mock_dynamodb_table):
        foreign = make_form(project_id="proj-other")
        mock_dynamodb_table.get_item.return_value = {"Item": model_to_item(foreign)}

        with pytest.raises(NotFoundError):
            form_service.get_form("user-1", "form-1")

    def test_list_forms_creation_order(self, form_service, mock_dynamodb_table):
        late = make_form(form_id="late", created_at="2026-03-01T00:00:00+00:00")
        early = make_form(form_id="early", created_at="2026-01-01T00:00:00+00:00")
        mock_dynamodb_table.query.return_value = {
            "Items": [model_to_item(late), model_to_item(early)]
        }

        forms = form_service.list_forms("user-1")

        assert [f.form_id for f in forms] == ["early", "late"]
        assert mock_dynamodb_table.query.call_args.kwargs["IndexName"] == "ProjectIdIndex"

    def test_public_form_active_only(self, form_service, mock_dynamodb_table):
        inactive = make_form(is_active=False)
        mock_dynamodb_table.query.return_value = {"Items": [model_to_item(inactive)]}
        with pytest.raises(NotFoundError):
            form_service.get_public_form("frm001")

        mock_dynamodb_table.query.return_value = {"Items": [model_to_item(make_form())]}
        assert form_service.get_public_form("frm001").form_id == "form-1"

    def test_public_form_malformed_slug(self, form_service, mock_dynamodb_table):
        with pytest.raises(NotFoundError):
            form_service.get_public_form("not-a-slug")
        mock_dynamodb_table.query.assert_not_called()

    def test_resolve_form_by_slug_then_id(self, form_service, mock_dynamodb_table):
        mock_dynamodb_table.query.return_value = {"Items": [model_to_item(make_form())]}
        assert form_service.resolve_form("frm001").form_id == "form-1"

        mock_dynamodb_table.query.reset_mock()
        mock_dynamodb_table.get_item.return_value = {"Item": model_to_item(make_form())}
        assert form_service.resolve_form("form-1").form_id == "form-1"
        mock_dynamodb_table.query.assert_not_called()

    def test_resolve_form_unknown(self, form_service, mock_dynamodb_table):
        mock_dynamodb_table.get_item.return_value = {}
        assert form_service.resolve_form("nothing-here") is None

    def test_update_form_toggles_active(self, form_service, mock_dynamodb_table):
        mock_dynamodb_table.get_item.return_value = {"Item": model_to_item(make_form())}
        mock_dynamodb_table.update_item.return_value = {
            "Attributes": model_to_item(make_form(is_active=False))
        }

        form = form_service.update_form("user-1", "form-1", FormUpdate(is_active=False))

        assert form.is_active is False
        names = mock_dynamodb_table.update_item.call_args.kwargs["ExpressionAttributeNames"]
        assert set(names.values()) == {"is_active", "updated_at"}

    def test_delete_form_releases_slug(
        self, form_service, mock_dynamodb_table, mock_unique_keys
    ):
        mock_dynamodb_table.get_item.return_value = {"Item": model_to_item(make_form())}

        form_service.delete_form("user-1", "form-1")

        mock_dynamodb_table.delete_item.assert_called_once_with(Key={"form_id": "form-1"})
        mock_unique_keys.release.assert_called_once_with("form-slug#frm001")
