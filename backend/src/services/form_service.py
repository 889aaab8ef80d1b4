"""Collection form service."""

import logging
import uuid
from datetime import UTC, datetime

from botocore.exceptions import ClientError
from pydantic import ValidationError

from models.form import Form, FormCreate, FormSettings, FormStyling, FormUpdate
from services.errors import InvalidInputError, NotFoundError, StoreError
from utils.dynamodb_utils import (
    build_update_expression,
    model_to_item,
    parse_from_dynamodb,
    query_all,
)
from utils.slug_utils import is_valid_slug
from utils.unique_keys import form_slug_key

logger = logging.getLogger(__name__)


class FormService:
    """Service for managing testimonial collection forms."""

    def __init__(self, table, unique_keys, project_service):
        """Initialize the form service.

        Args:
            table: DynamoDB table for forms (keyed by form_id)
            unique_keys: UniqueKeyRegistry for the global form slug namespace
            project_service: ProjectService providing the ownership guard
        """
        self.table = table
        self.unique_keys = unique_keys
        self.project_service = project_service

    def create_form(self, owner_id: str, data: FormCreate) -> Form:
        """Create a form; styling and settings overrides merge over the defaults."""
        project = self.project_service.require_owned_project(owner_id)
        name = data.name.strip()
        if not name:
            raise InvalidInputError("Form name is required")

        try:
            styling = FormStyling(**(data.styling or {}))
            settings = FormSettings(**(data.settings or {}))
        except ValidationError as e:
            raise InvalidInputError(f"Invalid form configuration: {e.errors()[0]['msg']}")

        form_id = str(uuid.uuid4())
        slug = self.unique_keys.allocate_slug(form_slug_key, form_id)

        now = datetime.now(UTC).isoformat()
        form = Form(
            form_id=form_id,
            project_id=project.project_id,
            slug=slug,
            name=name,
            description=data.description,
            fields=data.fields,
            styling=styling,
            settings=settings,
            is_active=True,
            created_at=now,
            updated_at=now,
        )

        try:
            self.table.put_item(Item=model_to_item(form))
        except ClientError as e:
            self.unique_keys.release(form_slug_key(slug))
            raise StoreError(f"Failed to create form: {str(e)}")

        logger.info("Created form %s (%s) in project %s", form_id, slug, project.project_id)
        return form

    def list_forms(self, owner_id: str) -> list[Form]:
        """List the owner's forms in creation order."""
        project = self.project_service.require_owned_project(owner_id)
        forms = self.list_project_forms(project.project_id)
        forms.sort(key=lambda f: f.created_at)
        return forms

    def list_project_forms(self, project_id: str) -> list[Form]:
        try:
            items = query_all(
                self.table,
                IndexName="ProjectIdIndex",
                KeyConditionExpression="project_id = :pid",
                ExpressionAttributeValues={":pid": project_id},
            )
        except ClientError as e:
            raise StoreError(f"Failed to list forms: {str(e)}")
        return [Form(**item) for item in items]

    def get_form(self, owner_id: str, form_id: str) -> Form:
        """Get one of the owner's forms.

        Raises:
            NotFoundError: If the form does not exist or belongs to another project
        """
        project = self.project_service.require_owned_project(owner_id)
        form = self.get_form_by_id(form_id)
        if not form or form.project_id != project.project_id:
            raise NotFoundError("Form not found")
        return form

    def get_form_by_id(self, form_id: str) -> Form | None:
        try:
            response = self.table.get_item(Key={"form_id": form_id})
        except ClientError as e:
            raise StoreError(f"Failed to get form: {str(e)}")

        item = response.get("Item")
        if not item:
            return None
        return Form(**parse_from_dynamodb(item))

    def get_form_by_slug(self, slug: str) -> Form | None:
        try:
            items = query_all(
                self.table,
                IndexName="SlugIndex",
                KeyConditionExpression="slug = :slug",
                ExpressionAttributeValues={":slug": slug},
            )
        except ClientError as e:
            raise StoreError(f"Failed to get form: {str(e)}")
        return Form(**items[0]) if items else None

    def resolve_form(self, form_ref: str) -> Form | None:
        """Find a form by its 6-character slug or by its id."""
        if is_valid_slug(form_ref):
            form = self.get_form_by_slug(form_ref)
            if form:
                return form
        return self.get_form_by_id(form_ref)

    def get_public_form(self, slug: str) -> Form:
        """Public form view: only active forms are served.

        Raises:
            NotFoundError: If the slug is malformed, unknown or the form is inactive
        """
        if not is_valid_slug(slug):
            raise NotFoundError("Form not found")
        form = self.get_form_by_slug(slug)
        if not form or not form.is_active:
            raise NotFoundError("Form not found")
        return form

    def update_form(self, owner_id: str, form_id: str, data: FormUpdate) -> Form:
        """Partially update a form, including switching it on or off."""
        form = self.get_form(owner_id, form_id)

        changes = {
            field: value
            for field, value in data.model_dump(mode="json", exclude_unset=True).items()
            if value is not None or field == "description"
        }
        changes["updated_at"] = datetime.now(UTC).isoformat()

        expression, names, values = build_update_expression(changes)
        try:
            response = self.table.update_item(
                Key={"form_id": form.form_id},
                UpdateExpression=expression,
                ConditionExpression="attribute_exists(form_id)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise NotFoundError("Form not found")
            raise StoreError(f"Failed to update form: {str(e)}")

        return Form(**parse_from_dynamodb(response["Attributes"]))

    def delete_form(self, owner_id: str, form_id: str) -> None:
        """Delete a form and release its slug. Its submissions stay as audit trail."""
        form = self.get_form(owner_id, form_id)
        try:
            self.table.delete_item(Key={"form_id": form.form_id})
        except ClientError as e:
            raise StoreError(f"Failed to delete form: {str(e)}")

        self.unique_keys.release(form_slug_key(form.slug))
        logger.info("Deleted form %s", form.form_id)
