"""Error taxonomy shared by the testimonial services.

Each error carries the HTTP status the API layer answers with. Owner-facing
routes surface the specific error; public routes collapse ``ForbiddenError``
and ``NotFoundError`` into a single 404.
"""


class TestimonialServiceError(Exception):
    """Base class for all service errors."""

    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class UnauthorizedError(TestimonialServiceError):
    """No valid caller identity."""

    status_code = 401


class ForbiddenError(TestimonialServiceError):
    """Caller is known but lacks rights over the resource (or domain mismatch)."""

    status_code = 403


class NotFoundError(TestimonialServiceError):
    """Resource is absent or not visible to the caller."""

    status_code = 404


class InvalidInputError(TestimonialServiceError):
    """Malformed input such as a bad color, slug or status value."""

    status_code = 400


class InvalidStatusError(InvalidInputError):
    """Status value outside pending/approved/rejected/flagged."""

    pass


class FormInactiveError(InvalidInputError):
    """Submission sent to a form that is switched off."""

    pass


class ConflictError(TestimonialServiceError):
    """Uniqueness could not be satisfied (slug taken, owner already has a project)."""

    status_code = 409


class StoreError(TestimonialServiceError):
    """The backing store failed."""

    status_code = 500
