"""
Application service: Orchestration layer for project location operations.
"""
from typing import List, Optional, Tuple
from dataclasses import dataclass
import logging

from app.domain.models import (
    BoundingPolygon,
    GeographicPoint,
    ImportCandidate,
    ImportResult,
    LocationRecord,
    ProjectContext,
)
from app.infrastructure.location_store_client import LocationStoreClient
from app.services.domain.location_import import ImportPipelineRegistry
from app.utils.geo_projection import utm_to_latlon_many
from app.utils.spatial_helpers import build_bounding_polygon
from app.utils.tabular import build_export_csv

logger = logging.getLogger(__name__)


@dataclass
class LocationMap:
    """Map payload for a project's locations."""
    markers: List[Tuple[LocationRecord, GeographicPoint]]
    polygon: Optional[BoundingPolygon]


class LocationService:
    """
    Application service for project locations.

    Coordinates reads and writes against the store with the coordinate
    converter, geometry builder and import pipeline. No business logic here.
    """

    def __init__(
        self,
        store: LocationStoreClient,
        pipelines: ImportPipelineRegistry,
        utm_zone: int,
        utm_band: str,
    ):
        """
        Initialize the service with dependencies.

        Args:
            store: Location store client for reads and the bulk write
            pipelines: Per-project import pipelines
            utm_zone: Default UTM zone of stored x/y values
            utm_band: Default UTM latitude band of stored x/y values
        """
        self.store = store
        self.pipelines = pipelines
        self.utm_zone = utm_zone
        self.utm_band = utm_band

    async def list_locations(self, project_id: Optional[int]) -> List[LocationRecord]:
        """Fetch the locations of a project."""
        return await self.store.get_project_locations(project_id)

    async def get_location_map(
        self,
        project_id: Optional[int],
        zone: Optional[int] = None,
        band: Optional[str] = None,
    ) -> LocationMap:
        """
        Convert a project's locations to lat/lng and frame them.

        Args:
            project_id: Project identifier
            zone: UTM zone override for the stored x/y values
            band: UTM latitude band override for the stored x/y values

        Returns:
            LocationMap; the polygon is None when the project has no locations

        Raises:
            LocationStoreError: If the read fails
            InvalidCoordinateInput: If a stored coordinate cannot be converted
        """
        records = await self.store.get_project_locations(project_id)
        if not records:
            return LocationMap(markers=[], polygon=None)

        zone = zone if zone is not None else self.utm_zone
        band = band if band is not None else self.utm_band

        latitudes, longitudes = utm_to_latlon_many(
            [r.x for r in records],
            [r.y for r in records],
            zone,
            band,
        )
        points = [
            GeographicPoint(latitude=float(lat), longitude=float(lng))
            for lat, lng in zip(latitudes, longitudes)
        ]

        logger.debug(f"Converted {len(points)} locations of project {project_id} "
                     f"from zone {zone}{band}")
        return LocationMap(
            markers=list(zip(records, points)),
            polygon=build_bounding_polygon(points),
        )

    async def export_locations_csv(self, project_id: Optional[int]) -> str:
        """Render a project's locations as CSV."""
        records = await self.store.get_project_locations(project_id)
        return build_export_csv(records)

    def is_import_running(self, project_id: int) -> bool:
        """Whether a batch is currently processing for the project."""
        return self.pipelines.is_processing(project_id)

    async def import_locations(
        self,
        context: ProjectContext,
        candidates: List[ImportCandidate],
    ) -> ImportResult:
        """
        Validate and commit an import batch for the active project.

        Raises:
            ImportInProgress: If a batch is already processing for the project
            InvalidProjectCode: If any record belongs to another project
            MissingOrMalformedField: If any record is incomplete
            ImportFailed: If the store rejects the write
        """
        pipeline = self.pipelines.get(context.id, self.store)
        try:
            return await pipeline.run(candidates, context)
        finally:
            self.pipelines.release(context.id)
