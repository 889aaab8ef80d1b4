"""Store-level uniqueness constraints on top of DynamoDB.

DynamoDB has no secondary unique constraints, so every value that must be
unique (slugs per namespace, one project per owner) is claimed as its own
item with a conditional put. A failed claim is the constraint violation.
"""

import logging
from datetime import UTC, datetime
from typing import Callable

from botocore.exceptions import ClientError

from services.errors import ConflictError, StoreError
from utils.slug_utils import generate_unique_slug

logger = logging.getLogger(__name__)

# Re-allocations after a claim loses a race with a concurrent writer
SLUG_CLAIM_ATTEMPTS = 5


def testimonial_slug_key(project_id: str, slug: str) -> str:
    return f"testimonial-slug#{project_id}#{slug}"


def group_slug_key(project_id: str, slug: str) -> str:
    return f"group-slug#{project_id}#{slug}"


def form_slug_key(slug: str) -> str:
    return f"form-slug#{slug}"


def public_slug_key(slug: str) -> str:
    return f"public-slug#{slug}"


def project_owner_key(owner_id: str) -> str:
    return f"project-owner#{owner_id}"


class UniqueKeyRegistry:
    """Claims and releases unique keys in a dedicated table."""

    def __init__(self, table):
        """Initialize the registry.

        Args:
            table: DynamoDB table keyed by ``unique_key``
        """
        self.table = table

    def exists(self, key: str) -> bool:
        """Check whether a key is currently claimed."""
        try:
            response = self.table.get_item(Key={"unique_key": key})
            return bool(response.get("Item"))
        except ClientError as e:
            raise StoreError(f"Failed to check unique key: {str(e)}")

    def claim(self, key: str, owner_ref: str) -> bool:
        """Atomically claim a key.

        Args:
            key: The unique key
            owner_ref: Id of the record holding the key

        Returns:
            True if claimed, False if another record already holds it
        """
        try:
            self.table.put_item(
                Item={
                    "unique_key": key,
                    "owner_ref": owner_ref,
                    "claimed_at": datetime.now(UTC).isoformat(),
                },
                ConditionExpression="attribute_not_exists(unique_key)",
            )
            return True
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return False
            raise StoreError(f"Failed to claim unique key: {str(e)}")

    def release(self, key: str) -> None:
        """Release a key. Releasing an unclaimed key is a no-op."""
        try:
            self.table.delete_item(Key={"unique_key": key})
        except ClientError as e:
            raise StoreError(f"Failed to release unique key: {str(e)}")

    def allocate_slug(self, key_for: Callable[[str], str], owner_ref: str) -> str:
        """Allocate a random slug and claim it in one namespace.

        Candidates are pre-checked with ``generate_unique_slug``; the claim is
        the real constraint. If a concurrent writer wins the claim, a fresh
        slug is allocated, up to ``SLUG_CLAIM_ATTEMPTS`` times.

        Args:
            key_for: Maps a slug to its namespaced unique key
            owner_ref: Id of the record the slug is for

        Returns:
            The claimed slug

        Raises:
            ConflictError: If every claim attempt collided
        """
        for attempt in range(SLUG_CLAIM_ATTEMPTS):
            slug = generate_unique_slug(lambda candidate: self.exists(key_for(candidate)))
            if self.claim(key_for(slug), owner_ref):
                return slug
            logger.warning(
                "Slug %s claimed concurrently (attempt %d/%d), re-allocating",
                slug,
                attempt + 1,
                SLUG_CLAIM_ATTEMPTS,
            )

        raise ConflictError("Could not allocate a unique slug")
