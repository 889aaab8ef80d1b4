"""Project management service."""

import logging
import uuid
from datetime import UTC, datetime

from botocore.exceptions import ClientError

from models.project import (
    Project,
    ProjectBasicInfoUpdate,
    ProjectCreate,
    PublicSettingsUpdate,
)
from services.errors import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    StoreError,
)
from utils.dynamodb_utils import (
    build_update_expression,
    model_to_item,
    parse_from_dynamodb,
    query_all,
)
from utils.slug_utils import PUBLIC_SLUG_PATTERN, slugify_name
from utils.unique_keys import project_owner_key, public_slug_key
from utils.url_utils import normalize_website_url

logger = logging.getLogger(__name__)


class ProjectService:
    """Service for projects and their public page settings."""

    NAME_MAX_LENGTH = 255
    WEBSITE_URL_MAX_LENGTH = 500

    def __init__(self, table, unique_keys):
        """Initialize the project service.

        Args:
            table: DynamoDB table for projects
            unique_keys: UniqueKeyRegistry enforcing owner and slug uniqueness
        """
        self.table = table
        self.unique_keys = unique_keys

    def create_project(self, owner_id: str, data: ProjectCreate) -> Project:
        """Create the owner's project at onboarding completion.

        Raises:
            InvalidInputError: If the name is blank or the URL is malformed
            ConflictError: If the owner already has a project
        """
        name = data.name.strip()[: self.NAME_MAX_LENGTH]
        if not name:
            raise InvalidInputError("Project name is required")
        try:
            website_url = normalize_website_url(
                data.website_url.strip()[: self.WEBSITE_URL_MAX_LENGTH]
            )
        except ValueError as e:
            raise InvalidInputError(str(e))

        now = datetime.now(UTC).isoformat()
        project = Project(
            project_id=str(uuid.uuid4()),
            owner_id=owner_id,
            name=name,
            description=(data.description or "").strip() or None,
            website_url=website_url,
            created_at=now,
            updated_at=now,
        )

        if not self.unique_keys.claim(project_owner_key(owner_id), project.project_id):
            raise ConflictError("A project already exists for this account")

        try:
            self.table.put_item(Item=self._to_item(project))
        except ClientError as e:
            self.unique_keys.release(project_owner_key(owner_id))
            raise StoreError(f"Failed to create project: {str(e)}")

        logger.info("Created project %s for owner %s", project.project_id, owner_id)
        return project

    def get_project(self, project_id: str) -> Project | None:
        """Get a project by ID."""
        try:
            response = self.table.get_item(Key={"project_id": project_id})
        except ClientError as e:
            raise StoreError(f"Failed to get project: {str(e)}")

        item = response.get("Item")
        if not item:
            return None
        return Project(**parse_from_dynamodb(item))

    def get_project_for_owner(self, owner_id: str) -> Project | None:
        """Get the owner's project (one per owner)."""
        try:
            items = query_all(
                self.table,
                IndexName="OwnerIndex",
                KeyConditionExpression="owner_id = :oid",
                ExpressionAttributeValues={":oid": owner_id},
            )
        except ClientError as e:
            raise StoreError(f"Failed to get project: {str(e)}")

        if not items:
            return None
        # Oldest wins if legacy data ever holds more than one
        items.sort(key=lambda item: item.get("created_at", ""))
        return Project(**items[0])

    def require_owned_project(self, owner_id: str, project_id: str | None = None) -> Project:
        """Guard clause for every owner-facing command.

        Re-derives the project from the authenticated principal on each call.

        Args:
            owner_id: Authenticated user id
            project_id: Project id supplied by the caller, if any

        Returns:
            The owner's project

        Raises:
            NotFoundError: If the owner has no project
            ForbiddenError: If ``project_id`` names someone else's project
        """
        project = self.get_project_for_owner(owner_id)
        if not project:
            raise NotFoundError("Project not found")
        if project_id is not None and project_id != project.project_id:
            raise ForbiddenError("Access denied to this project")
        return project

    def update_basic_info(self, owner_id: str, data: ProjectBasicInfoUpdate) -> Project:
        """Update the project's name, description and website."""
        project = self.require_owned_project(owner_id)

        name = data.name.strip()
        if not name:
            raise InvalidInputError("Project name is required")

        website_url = None
        if data.website_url and data.website_url.strip():
            try:
                website_url = normalize_website_url(data.website_url)
            except ValueError:
                raise InvalidInputError("Please enter a valid URL")

        return self._update(
            project,
            {
                "name": name,
                "description": (data.description or "").strip() or None,
                "website_url": website_url,
            },
        )

    def update_public_settings(self, owner_id: str, data: PublicSettingsUpdate) -> Project:
        """Publish or unpublish the project page.

        Publishing without a slug derives one from the project name
        (``acme``, ``acme-1``, ...). Unpublishing clears the slug.

        Raises:
            InvalidInputError: If the slug has invalid characters
            ConflictError: If the slug belongs to another project
        """
        project = self.require_owned_project(owner_id)
        current_slug = project.public_slug

        new_slug = None
        if data.is_public:
            if data.public_slug:
                new_slug = data.public_slug.strip()
                if not PUBLIC_SLUG_PATTERN.fullmatch(new_slug):
                    raise InvalidInputError(
                        "Slug can only contain lowercase letters, numbers, and hyphens"
                    )
                if new_slug != current_slug and not self.unique_keys.claim(
                    public_slug_key(new_slug), project.project_id
                ):
                    raise ConflictError("This slug is already taken")
            elif current_slug:
                new_slug = current_slug
            else:
                new_slug = self._claim_derived_slug(project)

        settings = data.settings or project.public_page_settings
        changes = {
            "is_public": data.is_public,
            "public_page_settings": settings.model_dump(mode="json"),
        }
        removals = ()
        if new_slug:
            changes["public_slug"] = new_slug
        else:
            removals = ("public_slug",)

        try:
            updated = self._update(project, changes, removals)
        except StoreError:
            if new_slug and new_slug != current_slug:
                self.unique_keys.release(public_slug_key(new_slug))
            raise

        if current_slug and current_slug != new_slug:
            self.unique_keys.release(public_slug_key(current_slug))

        logger.info(
            "Project %s public=%s slug=%s", project.project_id, data.is_public, new_slug
        )
        return updated

    def get_public_project(self, public_slug: str) -> Project | None:
        """Resolve a published project by its public slug."""
        try:
            items = query_all(
                self.table,
                IndexName="PublicSlugIndex",
                KeyConditionExpression="public_slug = :slug",
                ExpressionAttributeValues={":slug": public_slug},
            )
        except ClientError as e:
            raise StoreError(f"Failed to get project: {str(e)}")

        for item in items:
            project = Project(**item)
            if project.is_public:
                return project
        return None

    def _claim_derived_slug(self, project: Project) -> str:
        """Claim ``<name>``, then ``<name>-1``, ``<name>-2``... until one is free."""
        base_slug = slugify_name(project.name) or "project"
        slug = base_slug
        counter = 1
        while not self.unique_keys.claim(public_slug_key(slug), project.project_id):
            slug = f"{base_slug}-{counter}"
            counter += 1
        return slug

    def _update(self, project: Project, changes: dict, removals: tuple = ()) -> Project:
        """Apply attribute changes to a stored project and return the result."""
        changes["updated_at"] = datetime.now(UTC).isoformat()
        expression, names, values = build_update_expression(changes, removals)
        try:
            response = self.table.update_item(
                Key={"project_id": project.project_id},
                UpdateExpression=expression,
                ConditionExpression="attribute_exists(project_id)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise NotFoundError("Project not found")
            raise StoreError(f"Failed to update project: {str(e)}")

        return Project(**parse_from_dynamodb(response["Attributes"]))

    @staticmethod
    def _to_item(project: Project) -> dict:
        item = model_to_item(project)
        # Sparse GSI: a null key attribute is rejected by DynamoDB
        if item.get("public_slug") is None:
            item.pop("public_slug", None)
        return item
