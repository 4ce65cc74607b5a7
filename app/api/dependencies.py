"""
Dependency injection for FastAPI.
"""
from typing import Annotated
from fastapi import Depends, Header, Path

from app.config import settings
from app.domain.models import ProjectContext
from app.infrastructure.location_store_client import (
    LocationStoreClient,
    get_store_client,
)
from app.services.application.location_service import LocationService
from app.services.domain.location_import import ImportPipelineRegistry


# One registry per process so the busy flag is shared between requests
_pipeline_registry = ImportPipelineRegistry()


def get_pipeline_registry() -> ImportPipelineRegistry:
    """
    Dependency factory for the import pipeline registry.

    Returns:
        The process-wide ImportPipelineRegistry
    """
    return _pipeline_registry


def get_location_service(
    store: Annotated[LocationStoreClient, Depends(get_store_client)],
    pipelines: Annotated[ImportPipelineRegistry, Depends(get_pipeline_registry)],
) -> LocationService:
    """
    Dependency factory for LocationService.

    Args:
        store: Location store client (injected)
        pipelines: Import pipeline registry (injected)

    Returns:
        LocationService instance
    """
    return LocationService(
        store=store,
        pipelines=pipelines,
        utm_zone=settings.default_utm_zone,
        utm_band=settings.default_utm_band,
    )


def get_project_context(
    project_id: Annotated[int, Path(description="Unique identifier for the project")],
    project_code: Annotated[str, Header(
        alias="X-Project-Code",
        description="Code of the active project; imported records must match it",
    )],
) -> ProjectContext:
    """
    Build the active project context from the request.

    Returns:
        ProjectContext for the request
    """
    return ProjectContext(id=project_id, project_code=project_code)


# Type aliases for cleaner route signatures
LocationServiceDep = Annotated[LocationService, Depends(get_location_service)]
ProjectContextDep = Annotated[ProjectContext, Depends(get_project_context)]
