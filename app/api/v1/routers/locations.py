"""
API router for project location endpoints.
"""
import logging
from typing import Annotated, Optional

from fastapi import APIRouter, File, HTTPException, Path, Query, Response, UploadFile, status

from app.api.dependencies import LocationServiceDep, ProjectContextDep
from app.api.v1.models.requests import ImportRequest
from app.api.v1.models.responses import (
    ImportResponse,
    LocationMapResponse,
    LocationMarker,
    LocationResponse,
    LocationsResponse,
)
from app.config import settings
from app.domain.exceptions import ImportInProgress
from app.domain.models import ImportResult
from app.infrastructure.api_constants import APIConstants
from app.utils.tabular import build_template_csv, parse_import_csv

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["locations"],
)

ProjectIdPath = Annotated[int, Path(description="Unique identifier for the project")]

_ERROR_RESPONSES = {
    400: {"description": "Invalid coordinates or rejected import batch"},
    409: {"description": "An import is already running for the project"},
    429: {"description": "Rate limit exceeded"},
    502: {"description": "Location store failure"},
}


def _csv_response(content: str, file_name: str) -> Response:
    return Response(
        content=content,
        media_type=APIConstants.CONTENT_TYPE_CSV,
        headers={"Content-Disposition": f'attachment; filename="{file_name}.csv"'},
    )


def _import_response(result: ImportResult) -> ImportResponse:
    return ImportResponse(
        project_id=result.project_id,
        inserted_count=result.inserted_count,
        location_ids=result.location_ids,
    )


@router.get(
    "/projects/{project_id}/locations",
    response_model=LocationsResponse,
    summary="List project locations",
    responses=_ERROR_RESPONSES,
)
async def list_locations(
    project_id: ProjectIdPath,
    location_service: LocationServiceDep,
) -> LocationsResponse:
    """
    List the survey locations of a project.

    Args:
        project_id: Unique identifier for the project
        location_service: Location service (injected dependency)

    Returns:
        LocationsResponse with the persisted locations
    """
    records = await location_service.list_locations(project_id)
    return LocationsResponse(
        project_id=project_id,
        count=len(records),
        locations=[
            LocationResponse(
                id=r.id,
                location_name=r.location_name,
                x=r.x,
                y=r.y,
                remarks=r.remarks,
            )
            for r in records
        ],
    )


@router.get(
    "/projects/{project_id}/locations/map",
    response_model=LocationMapResponse,
    summary="Get map markers and bounding polygon",
    description="""
    Convert the stored UTM x/y of every location to latitude/longitude and
    return them with the closed rectangle that frames them.

    Coordinates are read in the configured UTM zone and band unless `zone`
    and `band` are given.
    """,
    responses=_ERROR_RESPONSES,
)
async def get_location_map(
    project_id: ProjectIdPath,
    location_service: LocationServiceDep,
    zone: Annotated[Optional[int], Query(description="UTM zone of the stored coordinates")] = None,
    band: Annotated[Optional[str], Query(description="UTM latitude band of the stored coordinates")] = None,
) -> LocationMapResponse:
    """
    Get the map payload for a project.

    Returns:
        LocationMapResponse; polygon is null when there are no locations
    """
    location_map = await location_service.get_location_map(project_id, zone=zone, band=band)
    return LocationMapResponse(
        project_id=project_id,
        zone=zone if zone is not None else location_service.utm_zone,
        band=(band if band is not None else location_service.utm_band).upper(),
        markers=[
            LocationMarker(
                id=record.id,
                location_name=record.location_name,
                latitude=point.latitude,
                longitude=point.longitude,
            )
            for record, point in location_map.markers
        ],
        polygon=location_map.polygon.coordinates() if location_map.polygon else None,
    )


@router.get(
    "/projects/{project_id}/locations/export",
    summary="Export project locations as CSV",
    response_class=Response,
    responses={200: {"content": {APIConstants.CONTENT_TYPE_CSV: {}}}, **_ERROR_RESPONSES},
)
async def export_locations(
    project_id: ProjectIdPath,
    location_service: LocationServiceDep,
) -> Response:
    """Download the project's locations as `locations.csv`."""
    content = await location_service.export_locations_csv(project_id)
    return _csv_response(content, "locations")


@router.get(
    "/locations/template",
    summary="Download the CSV import template",
    response_class=Response,
    responses={200: {"content": {APIConstants.CONTENT_TYPE_CSV: {}}}},
)
async def download_template() -> Response:
    """Download `locations_template.csv` with the import headers."""
    return _csv_response(build_template_csv(), "locations_template")


@router.post(
    "/projects/{project_id}/locations/import",
    response_model=ImportResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Import a batch of locations",
    description="""
    Validate every record against the active project (`X-Project-Code`) and
    insert them all in one write. The first invalid record rejects the whole
    batch and nothing is written.
    """,
    responses=_ERROR_RESPONSES,
)
async def import_locations(
    body: ImportRequest,
    context: ProjectContextDep,
    location_service: LocationServiceDep,
) -> ImportResponse:
    """
    Import JSON records into a project.

    Raises:
        ImportInProgress: If a batch is already processing for the project
        BatchRejected: If any record is invalid
        ImportFailed: If the store rejects the write
    """
    result = await location_service.import_locations(context, body.records)
    return _import_response(result)


@router.post(
    "/projects/{project_id}/locations/import/csv",
    response_model=ImportResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Import locations from a CSV file",
    responses={413: {"description": "File too large"}, **_ERROR_RESPONSES},
)
async def import_locations_csv(
    file: Annotated[UploadFile, File(description="CSV with project_code, location_name, x, y, remarks")],
    context: ProjectContextDep,
    location_service: LocationServiceDep,
) -> ImportResponse:
    """
    Import an uploaded CSV file into a project.

    Raises:
        HTTPException: 413 if the file exceeds the configured size
    """
    # Refuse before reading the upload
    if location_service.is_import_running(context.id):
        raise ImportInProgress("An import is already being processed for this project")

    content = await file.read(settings.max_import_file_bytes + 1)
    if len(content) > settings.max_import_file_bytes:
        logger.warning(f"Rejected CSV upload over {settings.max_import_file_bytes} bytes "
                       f"for project {context.id}")
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds {settings.max_import_file_bytes} bytes",
        )

    logger.info(f"Received CSV import {file.filename!r} for project {context.id}")
    candidates = parse_import_csv(content, max_rows=settings.max_import_rows)
    result = await location_service.import_locations(context, candidates)
    return _import_response(result)
