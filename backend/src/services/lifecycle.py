"""Moderation status state machine for testimonials.

Every status is reachable from every other status in one step. The only
side effect is on ``approved_at``, which is non-null exactly when the
status is ``approved``:

- entering ``approved`` (including approved -> approved) stamps it
- leaving ``approved`` clears it
- any other transition leaves it unchanged
"""

from dataclasses import dataclass
from datetime import UTC, datetime

from models.testimonial import TestimonialStatus
from services.errors import InvalidStatusError

VALID_STATUSES = tuple(s.value for s in TestimonialStatus)

# Sentinel for "approved_at is not touched by this transition"
UNCHANGED = object()


@dataclass(frozen=True)
class StatusTransition:
    """Result of applying a status change to a testimonial."""

    previous_status: str
    new_status: str
    approved_at: object  # str, None, or UNCHANGED

    def changes(self) -> dict:
        """Attribute changes to persist for this transition."""
        changes = {"status": self.new_status}
        if self.approved_at is not UNCHANGED:
            changes["approved_at"] = self.approved_at
        return changes


def parse_status(value) -> TestimonialStatus:
    """Parse a raw status value.

    Raises:
        InvalidStatusError: If the value is not one of the four statuses
    """
    try:
        return TestimonialStatus(value)
    except ValueError:
        raise InvalidStatusError(
            f"Invalid status. Must be one of: {list(VALID_STATUSES)}"
        )


def plan_transition(
    previous_status: str,
    target_status,
    now: datetime | None = None,
) -> StatusTransition:
    """Compute the effect of moving from ``previous_status`` to ``target_status``.

    Args:
        previous_status: Current stored status
        target_status: Requested status (raw value or enum)
        now: Clock override for tests

    Returns:
        StatusTransition describing the new status and approved_at effect

    Raises:
        InvalidStatusError: If the target is not a valid status
    """
    target = parse_status(target_status)
    previous = TestimonialStatus(previous_status)

    if target == TestimonialStatus.APPROVED:
        approved_at = (now or datetime.now(UTC)).isoformat()
    elif previous == TestimonialStatus.APPROVED:
        approved_at = None
    else:
        approved_at = UNCHANGED

    return StatusTransition(
        previous_status=previous.value,
        new_status=target.value,
        approved_at=approved_at,
    )
