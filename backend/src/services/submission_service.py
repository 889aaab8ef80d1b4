"""Form submission ingestion.

Maps an arbitrary key-value payload onto testimonial fields. Each logical
field has an ordered list of candidate payload keys; the first key holding
a non-empty value wins.
"""

import logging
import re
import uuid
from datetime import UTC, datetime
from typing import Any

from botocore.exceptions import ClientError

from models.form import Form, FormSubmission, RequestMeta
from models.testimonial import Testimonial, TestimonialSource
from services.errors import FormInactiveError, InvalidInputError, StoreError
from utils.dynamodb_utils import model_to_item

logger = logging.getLogger(__name__)

# Logical field -> payload keys, in precedence order
FIELD_CANDIDATES: dict[str, tuple[str, ...]] = {
    "customer_name": ("name", "customerName"),
    "customer_email": ("email", "customerEmail"),
    "content": ("testimonial", "content", "message"),
    "customer_company": ("company", "customerCompany"),
    "customer_title": ("position", "title", "customerTitle"),
    "rating": ("rating",),
}

IMAGE_FIELD_PREFIX = "file_"
IMAGE_FALLBACK_KEYS = ("profile_image", "customerImageUrl")

DEFAULT_CUSTOMER_NAME = "Anonymous"
MIN_RATING = 1
MAX_RATING = 5

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _clean(value: Any) -> str | None:
    """Text value of a payload entry, or None when empty."""
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    text = str(value).strip()
    return text or None


def resolve_field(payload: dict[str, Any], field: str) -> str | None:
    """Value of the first candidate key with a non-empty value."""
    for key in FIELD_CANDIDATES[field]:
        value = _clean(payload.get(key))
        if value is not None:
            return value
    return None


def parse_rating(value: Any) -> int | None:
    """Parse a leading integer rating; anything outside 1-5 is dropped."""
    if value is None or isinstance(value, bool):
        return None
    match = _LEADING_INT.match(str(value))
    if not match:
        return None
    rating = int(match.group(1))
    if rating < MIN_RATING or rating > MAX_RATING:
        return None
    return rating


def resolve_image_url(payload: dict[str, Any]) -> str | None:
    """Uploaded image URL: any ``file_*`` key or ``profile_image``, then fallbacks."""
    for key, value in payload.items():
        if key.startswith(IMAGE_FIELD_PREFIX) or key == "profile_image":
            url = _clean(value)
            if url:
                return url
    for key in IMAGE_FALLBACK_KEYS:
        url = _clean(payload.get(key))
        if url:
            return url
    return None


def extract_testimonial_fields(payload: dict[str, Any]) -> dict[str, Any]:
    """Map a raw payload to testimonial fields."""
    return {
        "customer_name": resolve_field(payload, "customer_name") or DEFAULT_CUSTOMER_NAME,
        "customer_email": resolve_field(payload, "customer_email"),
        "content": resolve_field(payload, "content"),
        "rating": parse_rating(resolve_field(payload, "rating")),
        "customer_company": resolve_field(payload, "customer_company"),
        "customer_title": resolve_field(payload, "customer_title"),
        "customer_image_url": resolve_image_url(payload),
    }


class SubmissionService:
    """Records form submissions and turns complete ones into testimonials."""

    def __init__(self, table, testimonial_service):
        """Initialize the submission service.

        Args:
            table: DynamoDB table for form submissions
            testimonial_service: TestimonialService used to create testimonials
        """
        self.table = table
        self.testimonial_service = testimonial_service

    def ingest(
        self,
        form: Form,
        payload: dict[str, Any],
        request_meta: RequestMeta | None = None,
    ) -> Testimonial | None:
        """Record a submission and create a pending testimonial when possible.

        The submission is always stored first. A testimonial is only created
        when both content and an email resolve; otherwise the submission is
        kept on its own and None is returned.

        Args:
            form: The form being submitted
            payload: Raw key-value submission data
            request_meta: Client IP and user agent

        Returns:
            The created Testimonial, or None

        Raises:
            FormInactiveError: If the form is switched off
            InvalidInputError: If no payload was sent
        """
        if not form.is_active:
            raise FormInactiveError("Form is not active")
        if payload is None:
            raise InvalidInputError("Form data is required")

        request_meta = request_meta or RequestMeta()
        submission = FormSubmission(
            submission_id=str(uuid.uuid4()),
            form_id=form.form_id,
            project_id=form.project_id,
            data=payload,
            ip_address=request_meta.ip_address if form.settings.collect_ip_address else None,
            user_agent=request_meta.user_agent,
            created_at=datetime.now(UTC).isoformat(),
        )

        try:
            self.table.put_item(Item=model_to_item(submission))
        except ClientError as e:
            raise StoreError(f"Failed to record submission: {str(e)}")

        fields = extract_testimonial_fields(payload)
        if not fields["content"] or not fields["customer_email"]:
            logger.info(
                "Submission %s for form %s recorded without testimonial "
                "(content=%s, email=%s)",
                submission.submission_id,
                form.form_id,
                bool(fields["content"]),
                bool(fields["customer_email"]),
            )
            return None

        testimonial = self.testimonial_service.insert_testimonial(
            form.project_id,
            source=TestimonialSource.FORM,
            source_metadata={
                "form_id": form.form_id,
                "form_name": form.name,
                "submission_id": submission.submission_id,
            },
            **fields,
        )

        self._link_testimonial(submission.submission_id, testimonial.testimonial_id)
        logger.info(
            "Submission %s produced testimonial %s",
            submission.submission_id,
            testimonial.testimonial_id,
        )
        return testimonial

    def _link_testimonial(self, submission_id: str, testimonial_id: str) -> None:
        try:
            self.table.update_item(
                Key={"submission_id": submission_id},
                UpdateExpression="SET testimonial_id = :tid",
                ConditionExpression="attribute_exists(submission_id)",
                ExpressionAttributeValues={":tid": testimonial_id},
            )
        except ClientError as e:
            raise StoreError(f"Failed to link submission: {str(e)}")
