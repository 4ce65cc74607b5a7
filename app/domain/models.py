"""
Domain models for survey locations, coordinates and import batches.

These models represent the core domain entities and should be independent
of any infrastructure concerns (API clients, databases, etc.).
"""
from enum import Enum
from typing import Any, List, Optional
from pydantic import BaseModel, Field, field_validator


class GeodeticPoint(BaseModel):
    """A projected UTM coordinate."""
    easting: float = Field(description="Easting in meters")
    northing: float = Field(description="Northing in meters")
    zone: int = Field(description="UTM zone number (1-60)")
    latitude_band: str = Field(description="UTM latitude band letter (C-X, no I or O)")


class GeographicPoint(BaseModel):
    """Latitude/longitude pair in degrees (WGS84)."""
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)

    class Config:
        frozen = True


class BoundingPolygon(BaseModel):
    """Closed axis-aligned rectangle enclosing a set of points."""
    vertices: List[GeographicPoint] = Field(min_length=5, max_length=5)

    class Config:
        frozen = True

    @field_validator("vertices")
    @classmethod
    def _must_be_closed(cls, vertices: List[GeographicPoint]) -> List[GeographicPoint]:
        if vertices[0] != vertices[-1]:
            raise ValueError("Bounding polygon must be closed (first vertex == last vertex)")
        return vertices

    def coordinates(self) -> List[List[float]]:
        """Return vertices as [latitude, longitude] pairs."""
        return [[v.latitude, v.longitude] for v in self.vertices]


class LocationRecord(BaseModel):
    """A persisted survey location."""
    id: int
    project_id: int
    location_name: str
    x: float = Field(description="Easting of the survey point in meters")
    y: float = Field(description="Northing of the survey point in meters")
    remarks: Optional[str] = None


class ImportCandidate(BaseModel):
    """
    One untrusted row of tabular import data.

    Every field accepts any JSON value; the import pipeline decides validity.
    """
    project_code: Any = None
    location_name: Any = None
    x: Any = None
    y: Any = None
    remarks: Any = None


class LocationWrite(BaseModel):
    """A validated record ready for the bulk insert."""
    location_name: str = Field(min_length=1)
    x: float
    y: float
    remarks: Optional[str] = None
    project_id: int


class ProjectContext(BaseModel):
    """The project an operation is scoped to."""
    id: int
    project_code: str

    class Config:
        frozen = True


class ImportState(str, Enum):
    """States of the batch import pipeline."""
    IDLE = "idle"
    VALIDATING = "validating"
    COMMITTING = "committing"
    REJECTED = "rejected"


class ImportResult(BaseModel):
    """Outcome of a committed import batch."""
    project_id: int
    inserted_count: int
    location_ids: List[int] = Field(default_factory=list)
