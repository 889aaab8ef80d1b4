"""Pytest configuration and shared fixtures."""

from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError

from models.form import Form, FormField
from models.group import Group
from models.project import Project
from models.testimonial import Testimonial


def make_client_error(code: str = "ConditionalCheckFailedException", operation="PutItem"):
    """Build a botocore ClientError with the given error code."""
    return ClientError(
        {"Error": {"Code": code, "Message": f"{code} raised in test"}},
        operation,
    )


def make_project(**overrides) -> Project:
    """Build a Project with sensible defaults."""
    data = {
        "project_id": "proj-1",
        "owner_id": "user-1",
        "name": "Acme Coffee",
        "description": "Fresh roasted",
        "website_url": "https://acme.example.com",
        "public_slug": "acme-coffee",
        "is_public": True,
        "created_at": "2026-01-20T08:00:00+00:00",
        "updated_at": "2026-01-20T08:00:00+00:00",
    }
    data.update(overrides)
    return Project(**data)


def make_testimonial(**overrides) -> Testimonial:
    """Build a Testimonial with sensible defaults."""
    data = {
        "testimonial_id": "t-1",
        "project_id": "proj-1",
        "slug": "abc123",
        "customer_name": "Jane Doe",
        "customer_email": "jane@example.com",
        "content": "Best coffee in town.",
        "rating": 5,
        "status": "approved",
        "is_public": True,
        "approved_at": "2026-01-21T08:00:00+00:00",
        "tags": ["coffee"],
        "created_at": "2026-01-20T09:00:00+00:00",
        "updated_at": "2026-01-20T09:00:00+00:00",
    }
    data.update(overrides)
    return Testimonial(**data)


def make_group(**overrides) -> Group:
    """Build a Group with sensible defaults."""
    data = {
        "group_id": "g-1",
        "project_id": "proj-1",
        "slug": "grp001",
        "name": "Baristas",
        "description": "Said by baristas",
        "color": "#10B981",
        "created_at": "2026-01-20T08:30:00+00:00",
        "updated_at": "2026-01-20T08:30:00+00:00",
    }
    data.update(overrides)
    return Group(**data)


def make_form(**overrides) -> Form:
    """Build a Form with sensible defaults."""
    data = {
        "form_id": "form-1",
        "project_id": "proj-1",
        "slug": "frm001",
        "name": "Feedback",
        "fields": [
            FormField(id="name", type="text", label="Name", required=True),
            FormField(id="email", type="email", label="Email", required=True),
            FormField(id="testimonial", type="textarea", label="Testimonial"),
        ],
        "is_active": True,
        "created_at": "2026-01-20T08:00:00+00:00",
        "updated_at": "2026-01-20T08:00:00+00:00",
    }
    data.update(overrides)
    return Form(**data)


@pytest.fixture
def sample_project():
    """Create a sample public project for testing."""
    return make_project()


@pytest.fixture
def sample_testimonial():
    """Create a sample approved, public testimonial for testing."""
    return make_testimonial()


@pytest.fixture
def sample_group():
    """Create a sample group for testing."""
    return make_group()


@pytest.fixture
def sample_form():
    """Create a sample active form for testing."""
    return make_form()


@pytest.fixture
def mock_dynamodb_table():
    """Create a mock DynamoDB table for testing."""
    mock_table = Mock()
    mock_table.put_item.return_value = {}
    mock_table.get_item.return_value = {}
    mock_table.query.return_value = {"Items": []}
    mock_table.update_item.return_value = {"Attributes": {}}
    mock_table.delete_item.return_value = {}
    return mock_table


@pytest.fixture
def mock_unique_keys():
    """Create a mock UniqueKeyRegistry that always succeeds."""
    registry = Mock()
    registry.claim.return_value = True
    registry.exists.return_value = False
    registry.allocate_slug.return_value = "xyz789"
    return registry


@pytest.fixture
def mock_project_service(sample_project):
    """Create a mock ProjectService whose guard returns the sample project."""
    service = Mock()
    service.require_owned_project.return_value = sample_project
    service.get_project.return_value = sample_project
    service.get_public_project.return_value = sample_project
    return service
