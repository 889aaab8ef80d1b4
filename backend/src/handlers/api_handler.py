"""Main FastAPI application handler for Lambda deployment."""

import logging
import os
import time
from datetime import UTC, datetime

import boto3
from botocore.exceptions import ClientError
from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from mangum import Mangum
from pydantic import BaseModel, Field

from models.form import FormCreate, FormUpdate, RequestMeta, SubmissionRequest
from models.group import GroupCreate, GroupUpdate
from models.project import ProjectBasicInfoUpdate, ProjectCreate, PublicSettingsUpdate
from models.testimonial import (
    GroupAssignment,
    StatusUpdate,
    TestimonialCreate,
    TestimonialUpdate,
)
from services.auth_service import AuthenticationError, AuthService
from services.errors import ForbiddenError, NotFoundError, TestimonialServiceError
from services.form_service import FormService
from services.group_service import GroupService
from services.project_service import ProjectService
from services.public_page_service import PublicPageService
from services.stats_service import get_project_stats
from services.submission_service import SubmissionService
from services.testimonial_service import TestimonialService
from services.widget_service import WidgetService, parse_tag_filter
from utils.cache import CACHE_CONTROL_PRIVATE, CACHE_CONTROL_PUBLIC, CACHE_CONTROL_WIDGET
from utils.unique_keys import UniqueKeyRegistry

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Testimonial Wall API",
    description="API for collecting, moderating and publishing testimonials",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Widgets are embedded on arbitrary customer sites
WIDGET_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


@app.middleware("http")
async def log_requests(request, call_next):
    """Log all API requests with timing for CloudWatch monitoring."""
    start = time.time()
    response = await call_next(request)
    duration_ms = (time.time() - start) * 1000

    # Log slow requests (>1s) at WARNING level for monitoring
    path = request.url.path
    if duration_ms > 1000:
        logger.warning(
            "[SLOW] %s %s %.0fms status=%d",
            request.method,
            path,
            duration_ms,
            response.status_code,
        )
    elif response.status_code >= 500:
        logger.error(
            "[ERROR] %s %s %.0fms status=%d",
            request.method,
            path,
            duration_ms,
            response.status_code,
        )
    elif response.status_code >= 400:
        logger.info(
            "[CLIENT_ERROR] %s %s %.0fms status=%d",
            request.method,
            path,
            duration_ms,
            response.status_code,
        )

    return response


# Lazy-initialized AWS clients and services
# Required for Lambda SnapStart - connections must be re-established after restore
_dynamodb = None
_unique_keys = None
_project_service = None
_testimonial_service = None
_group_service = None
_form_service = None
_submission_service = None
_widget_service = None
_public_page_service = None
_auth_service = None

# Security scheme for bearer token authentication
security = HTTPBearer(auto_error=False)


def reset_services():
    """Reset all lazy-initialized services. Useful for testing.

    Also resets boto3's default session so that subsequent calls to
    boto3.resource() create fresh sessions within the current mock context
    (e.g., moto's mock_aws).
    """
    global _dynamodb, _unique_keys, _project_service, _testimonial_service
    global _group_service, _form_service, _submission_service, _widget_service
    global _public_page_service, _auth_service
    _dynamodb = None
    _unique_keys = None
    _project_service = None
    _testimonial_service = None
    _group_service = None
    _form_service = None
    _submission_service = None
    _widget_service = None
    _public_page_service = None
    _auth_service = None
    # Reset boto3's default session so new clients use the moto mock context
    boto3.DEFAULT_SESSION = None


def get_dynamodb():
    """Get or create DynamoDB resource (lazy init for SnapStart)."""
    global _dynamodb
    if _dynamodb is None:
        region = os.environ.get("AWS_DEFAULT_REGION", "us-west-2")
        _dynamodb = boto3.resource("dynamodb", region_name=region)
    return _dynamodb


def get_table(env_var: str, default: str):
    """Get a DynamoDB table named by an environment variable."""
    return get_dynamodb().Table(os.environ.get(env_var, default))


def get_unique_keys():
    """Get or create the unique key registry (lazy init for SnapStart)."""
    global _unique_keys
    if _unique_keys is None:
        _unique_keys = UniqueKeyRegistry(
            get_table("UNIQUE_KEYS_TABLE", "testimonials-unique-keys-dev")
        )
    return _unique_keys


def get_project_service():
    """Get or create ProjectService (lazy init for SnapStart)."""
    global _project_service
    if _project_service is None:
        _project_service = ProjectService(
            get_table("PROJECTS_TABLE", "testimonials-projects-dev"),
            get_unique_keys(),
        )
    return _project_service


def get_group_service():
    """Get or create GroupService (lazy init for SnapStart)."""
    global _group_service
    if _group_service is None:
        _group_service = GroupService(
            get_table("GROUPS_TABLE", "testimonials-groups-dev"),
            get_unique_keys(),
            get_project_service(),
            get_table("TESTIMONIALS_TABLE", "testimonials-testimonials-dev"),
        )
    return _group_service


def get_testimonial_service():
    """Get or create TestimonialService (lazy init for SnapStart)."""
    global _testimonial_service
    if _testimonial_service is None:
        _testimonial_service = TestimonialService(
            get_table("TESTIMONIALS_TABLE", "testimonials-testimonials-dev"),
            get_unique_keys(),
            get_project_service(),
            group_service=get_group_service(),
        )
    return _testimonial_service


def get_form_service():
    """Get or create FormService (lazy init for SnapStart)."""
    global _form_service
    if _form_service is None:
        _form_service = FormService(
            get_table("FORMS_TABLE", "testimonials-forms-dev"),
            get_unique_keys(),
            get_project_service(),
        )
    return _form_service


def get_submission_service():
    """Get or create SubmissionService (lazy init for SnapStart)."""
    global _submission_service
    if _submission_service is None:
        _submission_service = SubmissionService(
            get_table("FORM_SUBMISSIONS_TABLE", "testimonials-form-submissions-dev"),
            get_testimonial_service(),
        )
    return _submission_service


def get_widget_service():
    """Get or create WidgetService (lazy init for SnapStart)."""
    global _widget_service
    if _widget_service is None:
        _widget_service = WidgetService(get_project_service(), get_testimonial_service())
    return _widget_service


def get_public_page_service():
    """Get or create PublicPageService (lazy init for SnapStart)."""
    global _public_page_service
    if _public_page_service is None:
        _public_page_service = PublicPageService(
            get_project_service(), get_testimonial_service(), get_group_service()
        )
    return _public_page_service


def get_auth_service():
    """Get or create AuthService (lazy init for SnapStart)."""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService(jwt_secret=os.environ.get("JWT_SECRET_KEY"))
    return _auth_service


def public_page_url(public_slug: str | None) -> str | None:
    """Shareable URL of a public project page."""
    if not public_slug:
        return None
    base_url = os.environ.get("PUBLIC_BASE_URL", "http://localhost:3000").rstrip("/")
    return f"{base_url}/p/{public_slug}"


def get_request_meta(request: Request) -> RequestMeta:
    """Client IP (first forwarded hop, then x-real-ip) and user agent."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for and forwarded_for.split(",")[0].strip():
        ip_address = forwarded_for.split(",")[0].strip()
    else:
        ip_address = request.headers.get("x-real-ip") or "unknown"
    return RequestMeta(
        ip_address=ip_address,
        user_agent=request.headers.get("user-agent") or "unknown",
    )


# MARK: - Authentication Dependency


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),  # noqa: B008
) -> str:
    """Extract user ID from JWT token.

    Args:
        credentials: Bearer token from Authorization header

    Returns:
        User ID from the token

    Raises:
        HTTPException: If token is missing or invalid
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return get_auth_service().verify_access_token(credentials.credentials)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


# MARK: - Health Check


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": "1.0.0",
    }


# MARK: - Authentication Endpoints


class RefreshTokenRequest(BaseModel):
    """Request body for token refresh."""

    refresh_token: str = Field(..., description="Refresh token")


@app.post("/api/v1/auth/refresh")
async def refresh_tokens(request: RefreshTokenRequest):
    """Refresh access token using refresh token."""
    try:
        return {"tokens": get_auth_service().refresh_tokens(request.refresh_token)}
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
        )


@app.get("/api/v1/auth/me")
async def get_current_user(user_id: str = Depends(get_current_user_id)):
    """Get the authenticated user's id and project, if any."""
    project = get_project_service().get_project_for_owner(user_id)
    return {
        "user_id": user_id,
        "project_id": project.project_id if project else None,
    }


# MARK: - Project Endpoints


@app.post("/api/v1/projects", status_code=status.HTTP_201_CREATED)
async def create_project(
    project_data: ProjectCreate,
    user_id: str = Depends(get_current_user_id),
):
    """Create the user's project at the end of onboarding."""
    project = get_project_service().create_project(user_id, project_data)
    return project.model_dump()


@app.get("/api/v1/projects/me")
async def get_my_project(
    response: Response,
    user_id: str = Depends(get_current_user_id),
):
    """Get the authenticated user's project."""
    project = get_project_service().require_owned_project(user_id)
    response.headers["Cache-Control"] = CACHE_CONTROL_PRIVATE
    return project.model_dump()


@app.put("/api/v1/projects/me")
async def update_basic_info(
    update_data: ProjectBasicInfoUpdate,
    user_id: str = Depends(get_current_user_id),
):
    """Update the project's name, description and website."""
    project = get_project_service().update_basic_info(user_id, update_data)
    return project.model_dump()


@app.get("/api/v1/projects/me/stats")
async def get_stats(
    response: Response,
    user_id: str = Depends(get_current_user_id),
):
    """Dashboard counts for the user's project."""
    stats = get_project_stats(
        user_id,
        get_project_service(),
        get_testimonial_service(),
        get_group_service(),
        get_form_service(),
    )
    response.headers["Cache-Control"] = CACHE_CONTROL_PRIVATE
    return stats.model_dump()


def _public_settings_response(project) -> dict:
    return {
        "is_public": project.is_public,
        "public_slug": project.public_slug,
        "public_url": public_page_url(project.public_slug) if project.is_public else None,
        "settings": project.public_page_settings.model_dump(),
    }


@app.get("/api/v1/projects/me/public-settings")
async def get_public_settings(
    response: Response,
    user_id: str = Depends(get_current_user_id),
):
    """Get the public page settings of the user's project."""
    project = get_project_service().require_owned_project(user_id)
    response.headers["Cache-Control"] = CACHE_CONTROL_PRIVATE
    return _public_settings_response(project)


@app.put("/api/v1/projects/me/public-settings")
async def update_public_settings(
    settings_data: PublicSettingsUpdate,
    user_id: str = Depends(get_current_user_id),
):
    """Publish, unpublish or restyle the public page."""
    project = get_project_service().update_public_settings(user_id, settings_data)
    return _public_settings_response(project)


# MARK: - Testimonial Endpoints


@app.post("/api/v1/testimonials", status_code=status.HTTP_201_CREATED)
async def create_testimonial(
    testimonial_data: TestimonialCreate,
    user_id: str = Depends(get_current_user_id),
):
    """Manually add a testimonial. New testimonials start as pending."""
    testimonial = get_testimonial_service().create_testimonial(user_id, testimonial_data)
    return testimonial.model_dump()


@app.get("/api/v1/testimonials")
async def list_testimonials(
    response: Response,
    user_id: str = Depends(get_current_user_id),
    group_id: str | None = Query(None, description="Filter by group"),
    status_filter: str | None = Query(
        None, alias="status", description="Filter by status"
    ),
):
    """List the user's testimonials, newest first."""
    testimonials = get_testimonial_service().list_testimonials(
        user_id, group_id=group_id, status=status_filter
    )
    response.headers["Cache-Control"] = CACHE_CONTROL_PRIVATE
    return {
        "testimonials": [t.model_dump() for t in testimonials],
        "count": len(testimonials),
    }


@app.get("/api/v1/testimonials/{testimonial_id}")
async def get_testimonial(
    testimonial_id: str,
    response: Response,
    user_id: str = Depends(get_current_user_id),
):
    """Get a specific testimonial by ID."""
    testimonial = get_testimonial_service().get_testimonial(user_id, testimonial_id)
    response.headers["Cache-Control"] = CACHE_CONTROL_PRIVATE
    return testimonial.model_dump()


@app.put("/api/v1/testimonials/{testimonial_id}")
async def update_testimonial(
    testimonial_id: str,
    update_data: TestimonialUpdate,
    user_id: str = Depends(get_current_user_id),
):
    """Edit a testimonial's fields."""
    testimonial = get_testimonial_service().update_testimonial(
        user_id, testimonial_id, update_data
    )
    return testimonial.model_dump()


@app.put("/api/v1/testimonials/{testimonial_id}/status")
async def update_testimonial_status(
    testimonial_id: str,
    status_data: StatusUpdate,
    user_id: str = Depends(get_current_user_id),
):
    """Approve, reject, flag or reset a testimonial."""
    testimonial = get_testimonial_service().update_status(
        user_id, testimonial_id, status_data.status
    )
    return testimonial.model_dump()


@app.put("/api/v1/testimonials/{testimonial_id}/group")
async def assign_testimonial_group(
    testimonial_id: str,
    assignment: GroupAssignment,
    user_id: str = Depends(get_current_user_id),
):
    """Move a testimonial into a group, or out of it with a null group_id."""
    testimonial = get_testimonial_service().assign_group(
        user_id, testimonial_id, assignment.group_id
    )
    return testimonial.model_dump()


@app.delete(
    "/api/v1/testimonials/{testimonial_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def delete_testimonial(
    testimonial_id: str,
    user_id: str = Depends(get_current_user_id),
):
    """Delete a testimonial."""
    get_testimonial_service().delete_testimonial(user_id, testimonial_id)
    return None


# MARK: - Group Endpoints


@app.post("/api/v1/groups", status_code=status.HTTP_201_CREATED)
async def create_group(
    group_data: GroupCreate,
    user_id: str = Depends(get_current_user_id),
):
    """Create a testimonial group."""
    group = get_group_service().create_group(user_id, group_data)
    return group.model_dump()


@app.get("/api/v1/groups")
async def list_groups(
    response: Response,
    user_id: str = Depends(get_current_user_id),
):
    """List the user's groups."""
    groups = get_group_service().list_groups(user_id)
    response.headers["Cache-Control"] = CACHE_CONTROL_PRIVATE
    return {"groups": [g.model_dump() for g in groups], "count": len(groups)}


@app.get("/api/v1/groups/{group_id}")
async def get_group(
    group_id: str,
    response: Response,
    user_id: str = Depends(get_current_user_id),
):
    """Get a specific group by ID."""
    group = get_group_service().get_group(user_id, group_id)
    response.headers["Cache-Control"] = CACHE_CONTROL_PRIVATE
    return group.model_dump()


@app.put("/api/v1/groups/{group_id}")
async def update_group(
    group_id: str,
    update_data: GroupUpdate,
    user_id: str = Depends(get_current_user_id),
):
    """Update a group's name, description or color."""
    group = get_group_service().update_group(user_id, group_id, update_data)
    return group.model_dump()


@app.delete("/api/v1/groups/{group_id}")
async def delete_group(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
):
    """Delete a group. Its testimonials are kept and unlinked."""
    unlinked = get_group_service().delete_group(user_id, group_id)
    return {"deleted": True, "unlinked_testimonials": unlinked}


# MARK: - Form Endpoints


@app.post("/api/v1/forms", status_code=status.HTTP_201_CREATED)
async def create_form(
    form_data: FormCreate,
    user_id: str = Depends(get_current_user_id),
):
    """Create a testimonial collection form."""
    form = get_form_service().create_form(user_id, form_data)
    return form.model_dump()


@app.get("/api/v1/forms")
async def list_forms(
    response: Response,
    user_id: str = Depends(get_current_user_id),
):
    """List the user's forms."""
    forms = get_form_service().list_forms(user_id)
    response.headers["Cache-Control"] = CACHE_CONTROL_PRIVATE
    return {"forms": [f.model_dump() for f in forms], "count": len(forms)}


@app.get("/api/v1/forms/{form_id}")
async def get_form(
    form_id: str,
    response: Response,
    user_id: str = Depends(get_current_user_id),
):
    """Get a specific form by ID."""
    form = get_form_service().get_form(user_id, form_id)
    response.headers["Cache-Control"] = CACHE_CONTROL_PRIVATE
    return form.model_dump()


@app.put("/api/v1/forms/{form_id}")
async def update_form(
    form_id: str,
    update_data: FormUpdate,
    user_id: str = Depends(get_current_user_id),
):
    """Update a form, including switching it on or off."""
    form = get_form_service().update_form(user_id, form_id, update_data)
    return form.model_dump()


@app.delete("/api/v1/forms/{form_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_form(
    form_id: str,
    user_id: str = Depends(get_current_user_id),
):
    """Delete a form."""
    get_form_service().delete_form(user_id, form_id)
    return None


# MARK: - Public Form Endpoints


@app.get("/api/v1/public/forms/{slug}")
async def get_public_form(slug: str):
    """Get an active form for rendering."""
    form = get_form_service().get_public_form(slug)
    return form.model_dump(exclude={"project_id"})


@app.post("/api/v1/public/forms/{form_ref}/submissions")
async def submit_form(
    form_ref: str,
    submission: SubmissionRequest,
    request: Request,
):
    """Submit a form by id or slug.

    Answers success once the submission is recorded, whether or not it
    produced a testimonial.
    """
    form = get_form_service().resolve_form(form_ref)
    if not form:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Form not found",
        )

    testimonial = get_submission_service().ingest(
        form, submission.data, get_request_meta(request)
    )
    return {
        "success": True,
        "message": "Thank you for your submission!",
        "testimonial_id": testimonial.testimonial_id if testimonial else None,
    }


# MARK: - Widget Endpoints


@app.get("/api/v1/widget/config")
async def get_widget_config(
    project_id: str | None = Query(None, alias="projectId"),
    domain: str | None = Query(None),
    tags: str | None = Query(None, description="Comma separated tag filter"),
):
    """Widget configuration for an embedding site."""
    if not project_id:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Project ID is required"},
            headers=WIDGET_CORS_HEADERS,
        )

    try:
        config = get_widget_service().resolve(project_id, domain, parse_tag_filter(tags))
    except TestimonialServiceError as e:
        return JSONResponse(
            status_code=e.status_code,
            content={"detail": e.message},
            headers=WIDGET_CORS_HEADERS,
        )

    return JSONResponse(
        content=config.model_dump(),
        headers={**WIDGET_CORS_HEADERS, "Cache-Control": CACHE_CONTROL_WIDGET},
    )


@app.options("/api/v1/widget/config")
async def widget_config_preflight():
    """CORS preflight for widget embeds."""
    return Response(status_code=status.HTTP_200_OK, headers=WIDGET_CORS_HEADERS)


# MARK: - Public Page Endpoints


def _public_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")


@app.get("/api/v1/public/projects/{public_slug}")
async def get_public_project_page(public_slug: str, response: Response):
    """Public page of a published project."""
    try:
        page = get_public_page_service().get_public_project_page(public_slug)
    except (ForbiddenError, NotFoundError):
        raise _public_not_found()
    response.headers["Cache-Control"] = CACHE_CONTROL_PUBLIC
    return page.model_dump()


@app.get("/api/v1/public/projects/{public_slug}/testimonials/{testimonial_ref}")
async def get_public_project_testimonial(
    public_slug: str, testimonial_ref: str, response: Response
):
    """A single testimonial of a published project, by id or slug."""
    try:
        testimonial = get_public_page_service().get_public_testimonial(
            public_slug, testimonial_ref
        )
    except (ForbiddenError, NotFoundError):
        raise _public_not_found()
    response.headers["Cache-Control"] = CACHE_CONTROL_PUBLIC
    return testimonial.model_dump()


@app.get("/api/v1/public/testimonials/{slug}")
async def get_public_testimonial_by_slug(slug: str, response: Response):
    """A single public testimonial by its slug."""
    try:
        testimonial = get_public_page_service().get_public_testimonial_by_slug(slug)
    except (ForbiddenError, NotFoundError):
        raise _public_not_found()
    response.headers["Cache-Control"] = CACHE_CONTROL_PUBLIC
    return testimonial.model_dump()


@app.get("/api/v1/public/groups/{group_slug}")
async def get_public_group_page(group_slug: str, response: Response):
    """Public page of a group."""
    try:
        page = get_public_page_service().get_public_group_page(group_slug)
    except (ForbiddenError, NotFoundError):
        raise _public_not_found()
    response.headers["Cache-Control"] = CACHE_CONTROL_PUBLIC
    return page.model_dump()


# MARK: - Error Handlers


@app.exception_handler(TestimonialServiceError)
async def service_error_handler(request, exc: TestimonialServiceError):
    """Map service errors onto their HTTP status."""
    if exc.status_code >= 500:
        logger.error("Service error on %s: %s", request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(ClientError)
async def aws_client_error_handler(request, exc: ClientError):
    """Handle AWS client errors."""
    error_code = exc.response["Error"]["Code"]
    error_message = exc.response["Error"]["Message"]

    if error_code == "ResourceNotFoundException":
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": f"Resource not found: {error_message}"},
        )
    else:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": f"AWS error: {error_message}"},
        )


@app.exception_handler(ValueError)
async def value_error_handler(request, exc: ValueError):
    """Handle value errors."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)}
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request, exc: Exception):
    """Log unexpected failures and answer with a fixed message."""
    logger.error("Unhandled error on %s: %s", request.url.path, exc, exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# MARK: - Lambda Handler

# Create the Lambda handler
api_handler = Mangum(app, lifespan="off")


# For local development
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
