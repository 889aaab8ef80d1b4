"""Testimonial group service."""

import logging
import uuid
from datetime import UTC, datetime

from botocore.exceptions import ClientError

from models.group import Group, GroupCreate, GroupUpdate
from services.errors import InvalidInputError, NotFoundError, StoreError
from utils.dynamodb_utils import (
    build_update_expression,
    model_to_item,
    parse_from_dynamodb,
    query_all,
)
from utils.unique_keys import group_slug_key

logger = logging.getLogger(__name__)


class GroupService:
    """Service for managing testimonial groups."""

    def __init__(self, table, unique_keys, project_service, testimonials_table):
        """Initialize the group service.

        Args:
            table: DynamoDB table for groups (project_id + group_id)
            unique_keys: UniqueKeyRegistry for slug claims
            project_service: ProjectService providing the ownership guard
            testimonials_table: Testimonials table, for unlinking on delete
        """
        self.table = table
        self.unique_keys = unique_keys
        self.project_service = project_service
        self.testimonials_table = testimonials_table

    def create_group(self, owner_id: str, data: GroupCreate) -> Group:
        """Create a group in the owner's project with a freshly claimed slug."""
        project = self.project_service.require_owned_project(owner_id)
        name = data.name.strip()
        if not name:
            raise InvalidInputError("Group name is required")

        group_id = str(uuid.uuid4())
        slug = self.unique_keys.allocate_slug(
            lambda s: group_slug_key(project.project_id, s), group_id
        )

        now = datetime.now(UTC).isoformat()
        group = Group(
            group_id=group_id,
            project_id=project.project_id,
            slug=slug,
            name=name,
            description=data.description,
            color=data.color,
            created_at=now,
            updated_at=now,
        )

        try:
            self.table.put_item(Item=model_to_item(group))
        except ClientError as e:
            self.unique_keys.release(group_slug_key(project.project_id, slug))
            raise StoreError(f"Failed to create group: {str(e)}")

        return group

    def list_groups(self, owner_id: str) -> list[Group]:
        """List the owner's groups in creation order."""
        project = self.project_service.require_owned_project(owner_id)
        groups = self.list_project_groups(project.project_id)
        groups.sort(key=lambda g: g.created_at)
        return groups

    def list_project_groups(self, project_id: str) -> list[Group]:
        """All groups of a project (no ownership check; read paths only)."""
        try:
            items = query_all(
                self.table,
                KeyConditionExpression="project_id = :pid",
                ExpressionAttributeValues={":pid": project_id},
            )
        except ClientError as e:
            raise StoreError(f"Failed to list groups: {str(e)}")
        return [Group(**item) for item in items]

    def get_group(self, owner_id: str, group_id: str) -> Group:
        """Get one of the owner's groups.

        Raises:
            NotFoundError: If the group is not in the owner's project
        """
        project = self.project_service.require_owned_project(owner_id)
        group = self.get_project_group(project.project_id, group_id)
        if not group:
            raise NotFoundError("Group not found")
        return group

    def get_project_group(self, project_id: str, group_id: str) -> Group | None:
        """Look a group up inside one project."""
        try:
            response = self.table.get_item(
                Key={"project_id": project_id, "group_id": group_id}
            )
        except ClientError as e:
            raise StoreError(f"Failed to get group: {str(e)}")

        item = response.get("Item")
        if not item:
            return None
        return Group(**parse_from_dynamodb(item))

    def find_groups_by_slug(self, slug: str) -> list[Group]:
        """Groups holding a slug, across projects (slugs are per-project)."""
        try:
            items = query_all(
                self.table,
                IndexName="SlugIndex",
                KeyConditionExpression="slug = :slug",
                ExpressionAttributeValues={":slug": slug},
            )
        except ClientError as e:
            raise StoreError(f"Failed to get group: {str(e)}")
        groups = [Group(**item) for item in items]
        groups.sort(key=lambda g: g.created_at)
        return groups

    def update_group(self, owner_id: str, group_id: str, data: GroupUpdate) -> Group:
        """Update name, description or color. The owning project never changes."""
        group = self.get_group(owner_id, group_id)

        # description may be cleared; name and color may not
        changes = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field == "description"
        }
        if "name" in changes:
            changes["name"] = changes["name"].strip()
            if not changes["name"]:
                raise InvalidInputError("Group name is required")
        changes["updated_at"] = datetime.now(UTC).isoformat()

        expression, names, values = build_update_expression(changes)
        try:
            response = self.table.update_item(
                Key={"project_id": group.project_id, "group_id": group.group_id},
                UpdateExpression=expression,
                ConditionExpression="attribute_exists(group_id)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise NotFoundError("Group not found")
            raise StoreError(f"Failed to update group: {str(e)}")

        return Group(**parse_from_dynamodb(response["Attributes"]))

    def delete_group(self, owner_id: str, group_id: str) -> int:
        """Delete a group after moving its testimonials out of it.

        Testimonials are never deleted with their group.

        Returns:
            Number of testimonials unlinked
        """
        group = self.get_group(owner_id, group_id)

        unlinked = self._unlink_testimonials(group)

        try:
            self.table.delete_item(
                Key={"project_id": group.project_id, "group_id": group.group_id}
            )
        except ClientError as e:
            raise StoreError(f"Failed to delete group: {str(e)}")

        self.unique_keys.release(group_slug_key(group.project_id, group.slug))
        logger.info(
            "Deleted group %s, unlinked %d testimonials", group.group_id, unlinked
        )
        return unlinked

    def _unlink_testimonials(self, group: Group) -> int:
        """Null out ``group_id`` on every testimonial still in the group."""
        try:
            items = query_all(
                self.testimonials_table,
                KeyConditionExpression="project_id = :pid",
                FilterExpression="group_id = :gid",
                ExpressionAttributeValues={
                    ":pid": group.project_id,
                    ":gid": group.group_id,
                },
            )
        except ClientError as e:
            raise StoreError(f"Failed to unlink testimonials: {str(e)}")

        unlinked = 0
        for item in items:
            try:
                self.testimonials_table.update_item(
                    Key={
                        "project_id": group.project_id,
                        "testimonial_id": item["testimonial_id"],
                    },
                    UpdateExpression="SET group_id = :none",
                    ConditionExpression="group_id = :gid",
                    ExpressionAttributeValues={":none": None, ":gid": group.group_id},
                )
                unlinked += 1
            except ClientError as e:
                # Moved to another group or deleted since the query
                if e.response["Error"]["Code"] != "ConditionalCheckFailedException":
                    raise StoreError(f"Failed to unlink testimonials: {str(e)}")
        return unlinked
