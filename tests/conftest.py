"""
Shared pytest fixtures for all tests.

This module provides common fixtures including:
- Sample location records and import candidates
- Active project context
- Mock location store client
- FastAPI test client
"""
import os

# Keep store retries instant and the rate limit out of the way before the app is imported
os.environ.setdefault("RETRY_MIN_WAIT", "0")
os.environ.setdefault("RETRY_MAX_WAIT", "0")
os.environ.setdefault("RATE_LIMIT_REQUESTS", "10000")

import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient

from app.main import app
from app.domain.models import ImportCandidate, LocationRecord, ProjectContext
from app.infrastructure.location_store_client import LocationStoreClient


# ============================================================
# Sample Data Fixtures
# ============================================================

@pytest.fixture
def project_context() -> ProjectContext:
    """The active project."""
    return ProjectContext(id=7, project_code="P-001")


@pytest.fixture
def sample_records() -> list[LocationRecord]:
    """Three persisted locations in UTM zone 16Q."""
    return [
        LocationRecord(id=1, project_id=7, location_name="BH-01",
                       x=500000.0, y=2000000.0, remarks=None),
        LocationRecord(id=2, project_id=7, location_name="BH-02",
                       x=500250.0, y=2000400.0, remarks="near fence"),
        LocationRecord(id=3, project_id=7, location_name="BH-03",
                       x=499800.0, y=2000150.0, remarks=None),
    ]


@pytest.fixture
def sample_candidates() -> list[ImportCandidate]:
    """Well-formed import rows for project P-001."""
    return [
        ImportCandidate(project_code="P-001", location_name="  BH-10 ",
                        x="500010.5", y="2000020.25", remarks="new"),
        ImportCandidate(project_code="P-001", location_name="BH-11",
                        x=500100.0, y=2000200.0, remarks=None),
        ImportCandidate(project_code="P-001", location_name="BH-12",
                        x=500300, y=2000050, remarks=None),
    ]


# ============================================================
# Mock Store Client Fixtures
# ============================================================

@pytest.fixture
def mock_store_client(sample_records):
    """Create a mock location store client."""
    mock_client = AsyncMock(spec=LocationStoreClient)
    mock_client.get_project_locations.return_value = sample_records
    mock_client.insert_locations_many.return_value = [101, 102, 103]
    return mock_client


# ============================================================
# FastAPI Test Client Fixtures
# ============================================================

@pytest.fixture
def test_client() -> TestClient:
    """Create a synchronous test client for FastAPI."""
    return TestClient(app)
