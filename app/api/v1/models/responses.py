"""
API response models using Pydantic.
"""
from typing import List, Optional
from pydantic import BaseModel, Field


class LocationResponse(BaseModel):
    """Single persisted location."""
    id: int = Field(description="Unique identifier for the location")
    location_name: str
    x: float = Field(description="Easting in meters", examples=[500000.0])
    y: float = Field(description="Northing in meters", examples=[2000000.0])
    remarks: Optional[str] = None


class LocationsResponse(BaseModel):
    """Response model for the project locations endpoint."""
    project_id: int
    count: int
    locations: List[LocationResponse]


class LocationMarker(BaseModel):
    """A location positioned on the map."""
    id: int
    location_name: str
    latitude: float = Field(
        description="Latitude coordinate in degrees",
        examples=[18.0863]
    )
    longitude: float = Field(
        description="Longitude coordinate in degrees",
        examples=[-87.0]
    )


class LocationMapResponse(BaseModel):
    """Markers plus the polygon framing them."""
    project_id: int
    zone: int
    band: str
    markers: List[LocationMarker]
    polygon: Optional[List[List[float]]] = Field(
        default=None,
        description="Closed bounding rectangle as [latitude, longitude] pairs, "
                    "null when the project has no locations"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "project_id": 7,
                "zone": 16,
                "band": "Q",
                "markers": [
                    {"id": 1, "location_name": "BH-01", "latitude": 18.0863, "longitude": -87.0},
                    {"id": 2, "location_name": "BH-02", "latitude": 18.0872, "longitude": -86.9990},
                ],
                "polygon": [
                    [18.0863, -87.0],
                    [18.0863, -86.9990],
                    [18.0872, -86.9990],
                    [18.0872, -87.0],
                    [18.0863, -87.0],
                ],
            }
        }


class ImportResponse(BaseModel):
    """Response model for a committed import."""
    project_id: int
    inserted_count: int
    location_ids: List[int]
    message: str = Field(default="Successfully inserted locations")


class GeographicPointResponse(BaseModel):
    """Result of a UTM to lat/lon conversion."""
    latitude: float
    longitude: float


class UTMPointResponse(BaseModel):
    """Result of a lat/lon to UTM projection."""
    easting: float
    northing: float
    zone: int
    band: str
