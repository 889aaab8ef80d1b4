"""Testimonial management service."""

import logging
import uuid
from datetime import UTC, datetime
from typing import Any

from botocore.exceptions import ClientError

from models.testimonial import (
    Testimonial,
    TestimonialCreate,
    TestimonialStatus,
    TestimonialUpdate,
    normalize_tags,
)
from services.errors import ConflictError, NotFoundError, StoreError
from services.lifecycle import parse_status, plan_transition
from utils.dynamodb_utils import (
    build_update_expression,
    model_to_item,
    parse_from_dynamodb,
    query_all,
)
from utils.unique_keys import testimonial_slug_key

logger = logging.getLogger(__name__)


class TestimonialService:
    """Service for creating, moderating and editing testimonials."""

    # Compare-and-set retries when a concurrent transition wins the race
    STATUS_UPDATE_ATTEMPTS = 3

    def __init__(self, table, unique_keys, project_service, group_service=None):
        """Initialize the testimonial service.

        Args:
            table: DynamoDB table for testimonials (project_id + testimonial_id)
            unique_keys: UniqueKeyRegistry for slug claims
            project_service: ProjectService providing the ownership guard
            group_service: Optional GroupService for validating group links
        """
        self.table = table
        self.unique_keys = unique_keys
        self.project_service = project_service
        self.group_service = group_service

    # ============================================
    # Creation
    # ============================================

    def create_testimonial(self, owner_id: str, data: TestimonialCreate) -> Testimonial:
        """Manually add a testimonial to the owner's project.

        Raises:
            NotFoundError: If the owner has no project or the group is not theirs
        """
        project = self.project_service.require_owned_project(owner_id)
        if data.group_id:
            self._require_group(project.project_id, data.group_id)

        return self.insert_testimonial(
            project.project_id,
            customer_name=data.customer_name.strip(),
            customer_email=data.customer_email.strip(),
            customer_company=data.customer_company,
            customer_title=data.customer_title,
            customer_image_url=data.customer_image_url,
            content=data.content,
            rating=data.rating,
            group_id=data.group_id,
            tags=data.tags,
            is_public=data.is_public,
            source=data.source,
            source_metadata=data.source_metadata,
        )

    def insert_testimonial(self, project_id: str, **fields: Any) -> Testimonial:
        """Persist a new pending testimonial with a slug unique in its project.

        Callers are responsible for authorization (owner guard or an active form).
        """
        testimonial_id = str(uuid.uuid4())
        slug = self.unique_keys.allocate_slug(
            lambda s: testimonial_slug_key(project_id, s), testimonial_id
        )

        now = datetime.now(UTC).isoformat()
        testimonial = Testimonial(
            testimonial_id=testimonial_id,
            project_id=project_id,
            slug=slug,
            status=TestimonialStatus.PENDING,
            approved_at=None,
            created_at=now,
            updated_at=now,
            **fields,
        )

        try:
            self.table.put_item(Item=model_to_item(testimonial))
        except ClientError as e:
            self.unique_keys.release(testimonial_slug_key(project_id, slug))
            raise StoreError(f"Failed to create testimonial: {str(e)}")

        logger.info(
            "Created testimonial %s (%s) in project %s",
            testimonial_id,
            testimonial.source,
            project_id,
        )
        return testimonial

    # ============================================
    # Reads
    # ============================================

    def get_testimonial(self, owner_id: str, testimonial_id: str) -> Testimonial:
        """Get one of the owner's testimonials.

        Raises:
            NotFoundError: If it does not exist in the owner's project
        """
        project = self.project_service.require_owned_project(owner_id)
        testimonial = self.get_project_testimonial(project.project_id, testimonial_id)
        if not testimonial:
            raise NotFoundError("Testimonial not found")
        return testimonial

    def get_project_testimonial(self, project_id: str, testimonial_id: str) -> Testimonial | None:
        """Look a testimonial up inside one project."""
        try:
            response = self.table.get_item(
                Key={"project_id": project_id, "testimonial_id": testimonial_id},
                ConsistentRead=True,
            )
        except ClientError as e:
            raise StoreError(f"Failed to get testimonial: {str(e)}")

        item = response.get("Item")
        if not item:
            return None
        return Testimonial(**parse_from_dynamodb(item))

    def list_testimonials(
        self,
        owner_id: str,
        group_id: str | None = None,
        status: str | None = None,
    ) -> list[Testimonial]:
        """List the owner's testimonials, newest first.

        Args:
            owner_id: Authenticated user id
            group_id: Optional group filter
            status: Optional status filter

        Raises:
            InvalidStatusError: If ``status`` is not a valid status
        """
        project = self.project_service.require_owned_project(owner_id)
        status_filter = parse_status(status).value if status else None

        testimonials = []
        for testimonial in self.list_project_testimonials(project.project_id):
            if group_id and testimonial.group_id != group_id:
                continue
            if status_filter and testimonial.status != status_filter:
                continue
            testimonials.append(testimonial)

        testimonials.sort(key=lambda t: t.created_at, reverse=True)
        return testimonials

    def list_project_testimonials(self, project_id: str) -> list[Testimonial]:
        """All testimonials of a project, unordered (no ownership check)."""
        try:
            items = query_all(
                self.table,
                KeyConditionExpression="project_id = :pid",
                ExpressionAttributeValues={":pid": project_id},
            )
        except ClientError as e:
            raise StoreError(f"Failed to list testimonials: {str(e)}")
        return [Testimonial(**item) for item in items]

    def find_by_slug(self, slug: str, project_id: str | None = None) -> list[Testimonial]:
        """Testimonials holding a slug, oldest first, optionally in one project."""
        kwargs = {
            "IndexName": "SlugIndex",
            "KeyConditionExpression": "slug = :slug",
            "ExpressionAttributeValues": {":slug": slug},
        }
        if project_id:
            kwargs["FilterExpression"] = "project_id = :pid"
            kwargs["ExpressionAttributeValues"][":pid"] = project_id

        try:
            items = query_all(self.table, **kwargs)
        except ClientError as e:
            raise StoreError(f"Failed to get testimonial: {str(e)}")

        testimonials = [Testimonial(**item) for item in items]
        testimonials.sort(key=lambda t: t.created_at)
        return testimonials

    def count_by_status(self, project_id: str) -> dict[str, int]:
        """Simple per-status counts plus total and public."""
        counts = {status.value: 0 for status in TestimonialStatus}
        counts["total"] = 0
        counts["public"] = 0
        for testimonial in self.list_project_testimonials(project_id):
            counts[testimonial.status] += 1
            counts["total"] += 1
            if testimonial.is_public:
                counts["public"] += 1
        return counts

    # ============================================
    # Mutations
    # ============================================

    def update_status(self, owner_id: str, testimonial_id: str, status) -> Testimonial:
        """Move a testimonial to a new moderation status.

        The write is a compare-and-set on the previously read status, so
        concurrent transitions on the same testimonial serialize. A lost race
        re-reads and recomputes the ``approved_at`` effect.

        Raises:
            InvalidStatusError: If ``status`` is not a valid status
            NotFoundError: If the testimonial is not in the owner's project
            ConflictError: If the record kept changing underneath every attempt
        """
        project = self.project_service.require_owned_project(owner_id)
        target = parse_status(status)

        for _ in range(self.STATUS_UPDATE_ATTEMPTS):
            current = self.get_project_testimonial(project.project_id, testimonial_id)
            if not current:
                raise NotFoundError("Testimonial not found")

            transition = plan_transition(current.status, target)
            changes = transition.changes()
            changes["updated_at"] = datetime.now(UTC).isoformat()
            expression, names, values = build_update_expression(changes)
            names["#prev_status"] = "status"
            values[":prev_status"] = transition.previous_status

            try:
                response = self.table.update_item(
                    Key={"project_id": project.project_id, "testimonial_id": testimonial_id},
                    UpdateExpression=expression,
                    ConditionExpression="#prev_status = :prev_status",
                    ExpressionAttributeNames=names,
                    ExpressionAttributeValues=values,
                    ReturnValues="ALL_NEW",
                )
            except ClientError as e:
                if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                    logger.info(
                        "Testimonial %s changed during status update, retrying",
                        testimonial_id,
                    )
                    continue
                raise StoreError(f"Failed to update testimonial status: {str(e)}")

            logger.info(
                "Testimonial %s status %s -> %s",
                testimonial_id,
                transition.previous_status,
                transition.new_status,
            )
            return Testimonial(**parse_from_dynamodb(response["Attributes"]))

        raise ConflictError("Testimonial was modified concurrently, try again")

    def update_testimonial(
        self, owner_id: str, testimonial_id: str, data: TestimonialUpdate
    ) -> Testimonial:
        """Apply explicit field edits. Status only changes through ``update_status``."""
        project = self.project_service.require_owned_project(owner_id)

        changes = data.model_dump(exclude_unset=True)
        # Required fields cannot be cleared
        for field in ("customer_name", "content", "is_public"):
            if field in changes and changes[field] is None:
                del changes[field]
        if changes.get("tags") is not None:
            changes["tags"] = normalize_tags(changes["tags"])
        elif "tags" in changes:
            changes["tags"] = []

        if not changes:
            return self.get_testimonial(owner_id, testimonial_id)

        return self._apply_changes(project.project_id, testimonial_id, changes)

    def assign_group(
        self, owner_id: str, testimonial_id: str, group_id: str | None
    ) -> Testimonial:
        """Move a testimonial into a group of the same project, or out of any group.

        Raises:
            NotFoundError: If the testimonial or group is not in the owner's project
        """
        project = self.project_service.require_owned_project(owner_id)
        if group_id is not None:
            self._require_group(project.project_id, group_id)

        return self._apply_changes(
            project.project_id, testimonial_id, {"group_id": group_id}
        )

    def delete_testimonial(self, owner_id: str, testimonial_id: str) -> None:
        """Delete a testimonial and release its slug.

        Raises:
            NotFoundError: If it does not exist in the owner's project
        """
        project = self.project_service.require_owned_project(owner_id)
        try:
            response = self.table.delete_item(
                Key={"project_id": project.project_id, "testimonial_id": testimonial_id},
                ConditionExpression="attribute_exists(testimonial_id)",
                ReturnValues="ALL_OLD",
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise NotFoundError("Testimonial not found")
            raise StoreError(f"Failed to delete testimonial: {str(e)}")

        slug = response.get("Attributes", {}).get("slug")
        if slug:
            self.unique_keys.release(testimonial_slug_key(project.project_id, slug))
        logger.info("Deleted testimonial %s", testimonial_id)

    def _apply_changes(
        self, project_id: str, testimonial_id: str, changes: dict
    ) -> Testimonial:
        changes["updated_at"] = datetime.now(UTC).isoformat()
        expression, names, values = build_update_expression(changes)
        try:
            response = self.table.update_item(
                Key={"project_id": project_id, "testimonial_id": testimonial_id},
                UpdateExpression=expression,
                ConditionExpression="attribute_exists(testimonial_id)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise NotFoundError("Testimonial not found")
            raise StoreError(f"Failed to update testimonial: {str(e)}")

        return Testimonial(**parse_from_dynamodb(response["Attributes"]))

    def _require_group(self, project_id: str, group_id: str) -> None:
        if self.group_service is None:
            return
        if not self.group_service.get_project_group(project_id, group_id):
            raise NotFoundError("Group not found")
