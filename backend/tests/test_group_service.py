"""Tests for GroupService."""

from unittest.mock import Mock

import pytest
from conftest import make_client_error, make_group, make_testimonial
from pydantic import ValidationError

from models.group import GroupCreate, GroupUpdate
from services.errors import InvalidInputError, NotFoundError, StoreError
from services.group_service import GroupService
from utils.dynamodb_utils import model_to_item


class TestGroupService:
    """Test cases for GroupService."""

    @pytest.fixture
    def testimonials_table(self):
        table = Mock()
        table.query.return_value = {"Items": []}
        table.update_item.return_value = {}
        return table

    @pytest.fixture
    def group_service(
        self, mock_dynamodb_table, mock_unique_keys, mock_project_service, testimonials_table
    ):
        """Create a GroupService with mocked dependencies."""
        return GroupService(
            mock_dynamodb_table, mock_unique_keys, mock_project_service, testimonials_table
        )

    def test_create_group_defaults(self, group_service, mock_dynamodb_table, mock_unique_keys):
        group = group_service.create_group("user-1", GroupCreate(name=" Baristas "))

        assert group.name == "Baristas"
        assert group.color == "#3B82F6"
        assert group.slug == "xyz789"
        assert group.project_id == "proj-1"
        key_for = mock_unique_keys.allocate_slug.call_args.args[0]
        assert key_for("abc123") == "group-slug#proj-1#abc123"
        mock_dynamodb_table.put_item.assert_called_once()

    @pytest.mark.parametrize("color", ["blue", "#12345", "#GGGGGG", "3B82F6"])
    def test_bad_color_rejected(self, color):
        with pytest.raises(ValidationError):
            GroupCreate(name="Team", color=color)

    def test_name_length_limits(self):
        with pytest.raises(ValidationError):
            GroupCreate(name="")
        with pytest.raises(ValidationError):
            GroupCreate(name="x" * 256)

    def test_blank_name_claims_no_slug(
        self, group_service, mock_dynamodb_table, mock_unique_keys
    ):
        with pytest.raises(InvalidInputError):
            group_service.create_group("user-1", GroupCreate(name="   "))
        mock_unique_keys.allocate_slug.assert_not_called()
        mock_dynamodb_table.put_item.assert_not_called()

    def test_update_blank_name_rejected(self, group_service, mock_dynamodb_table):
        mock_dynamodb_table.get_item.return_value = {"Item": model_to_item(make_group())}
        with pytest.raises(InvalidInputError):
            group_service.update_group("user-1", "g-1", GroupUpdate(name="  "))
        mock_dynamodb_table.update_item.assert_not_called()

    def test_create_store_failure_releases_slug(
        self, group_service, mock_dynamodb_table, mock_unique_keys
    ):
        mock_dynamodb_table.put_item.side_effect = make_client_error("InternalServerError")
        with pytest.raises(StoreError):
            group_service.create_group("user-1", GroupCreate(name="Team"))
        mock_unique_keys.release.assert_called_once_with("group-slug#proj-1#xyz789")

    def test_list_groups_creation_order(self, group_service, mock_dynamodb_table):
        late = make_group(group_id="late", created_at="2026-02-01T00:00:00+00:00")
        early = make_group(group_id="early", created_at="2026-01-01T00:00:00+00:00")
        mock_dynamodb_table.query.return_value = {
            "Items": [model_to_item(late), model_to_item(early)]
        }

        groups = group_service.list_groups("user-1")

        assert [g.group_id for g in groups] == ["early", "late"]

    def test_get_group_other_project(self, group_service, mock_dynamodb_table):
        mock_dynamodb_table.get_item.return_value = {}
        with pytest.raises(NotFoundError):
            group_service.get_group("user-1", "g-foreign")
        key = mock_dynamodb_table.get_item.call_args.kwargs["Key"]
        assert key == {"project_id": "proj-1", "group_id": "g-foreign"}

    def test_update_group_cannot_touch_project(self, group_service, mock_dynamodb_table):
        group = make_group()
        mock_dynamodb_table.get_item.return_value = {"Item": model_to_item(group)}
        updated = make_group(name="Roasters", description=None)
        mock_dynamodb_table.update_item.return_value = {"Attributes": model_to_item(updated)}

        result = group_service.update_group(
            "user-1", "g-1", GroupUpdate(name=" Roasters ", description=None)
        )

        assert result.name == "Roasters"
        kwargs = mock_dynamodb_table.update_item.call_args.kwargs
        names = set(kwargs["ExpressionAttributeNames"].values())
        assert names == {"name", "description", "updated_at"}
        assert " Roasters " not in kwargs["ExpressionAttributeValues"].values()

    def test_delete_group_unlinks_testimonials(
        self, group_service, mock_dynamodb_table, mock_unique_keys, testimonials_table
    ):
        mock_dynamodb_table.get_item.return_value = {"Item": model_to_item(make_group())}
        members = [
            model_to_item(make_testimonial(testimonial_id="t-1", group_id="g-1")),
            model_to_item(make_testimonial(testimonial_id="t-2", group_id="g-1")),
        ]
        testimonials_table.query.return_value = {"Items": members}
        # t-2 moved to another group between the query and the update
        testimonials_table.update_item.side_effect = [
            {},
            make_client_error(operation="UpdateItem"),
        ]

        unlinked = group_service.delete_group("user-1", "g-1")

        assert unlinked == 1
        first_update = testimonials_table.update_item.call_args_list[0].kwargs
        assert first_update["ConditionExpression"] == "group_id = :gid"
        assert first_update["ExpressionAttributeValues"][":none"] is None
        mock_dynamodb_table.delete_item.assert_called_once_with(
            Key={"project_id": "proj-1", "group_id": "g-1"}
        )
        mock_unique_keys.release.assert_called_once_with("group-slug#proj-1#grp001")
        testimonials_table.delete_item.assert_not_called()

    def test_delete_group_store_failure_while_unlinking(
        self, group_service, mock_dynamodb_table, testimonials_table
    ):
        mock_dynamodb_table.get_item.return_value = {"Item": model_to_item(make_group())}
        testimonials_table.query.return_value = {
            "Items": [model_to_item(make_testimonial(group_id="g-1"))]
        }
        testimonials_table.update_item.side_effect = make_client_error("InternalServerError")

        with pytest.raises(StoreError):
            group_service.delete_group("user-1", "g-1")
        mock_dynamodb_table.delete_item.assert_not_called()

    def test_find_groups_by_slug(self, group_service, mock_dynamodb_table):
        mock_dynamodb_table.query.return_value = {"Items": [model_to_item(make_group())]}

        groups = group_service.find_groups_by_slug("grp001")

        assert groups[0].group_id == "g-1"
        assert mock_dynamodb_table.query.call_args.kwargs["IndexName"] == "SlugIndex"
