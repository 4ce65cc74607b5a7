"""
API router for coordinate conversion endpoints.
"""
from typing import Annotated, Optional

from fastapi import APIRouter, Query

from app.api.v1.models.responses import GeographicPointResponse, UTMPointResponse
from app.domain.models import GeodeticPoint
from app.utils.geo_projection import (
    convert_geodetic_point,
    get_latitude_band,
    get_utm_zone,
    latlon_to_utm,
    normalize_band,
)


router = APIRouter(
    prefix="/coordinates",
    tags=["coordinates"],
)


@router.get(
    "/utm-to-latlon",
    response_model=GeographicPointResponse,
    summary="Convert a UTM coordinate to latitude/longitude",
    responses={400: {"description": "Invalid zone, band or coordinates"}},
)
async def convert_utm_to_latlon(
    easting: Annotated[float, Query(description="Easting in meters")],
    northing: Annotated[float, Query(description="Northing in meters")],
    zone: Annotated[int, Query(description="UTM zone number (1-60)")],
    band: Annotated[str, Query(description="UTM latitude band letter (C-X, no I or O)")],
) -> GeographicPointResponse:
    """Convert one UTM coordinate."""
    point = convert_geodetic_point(
        GeodeticPoint(easting=easting, northing=northing, zone=zone, latitude_band=band)
    )
    return GeographicPointResponse(latitude=point.latitude, longitude=point.longitude)


@router.get(
    "/latlon-to-utm",
    response_model=UTMPointResponse,
    summary="Project latitude/longitude to UTM",
    responses={400: {"description": "Invalid position, zone or band"}},
)
async def convert_latlon_to_utm(
    latitude: Annotated[float, Query(description="Latitude in degrees")],
    longitude: Annotated[float, Query(description="Longitude in degrees")],
    zone: Annotated[Optional[int], Query(description="Target UTM zone, derived from longitude if omitted")] = None,
    band: Annotated[Optional[str], Query(description="Target latitude band, derived from latitude if omitted")] = None,
) -> UTMPointResponse:
    """Project one position, choosing its natural zone and band by default."""
    zone = zone if zone is not None else get_utm_zone(longitude)
    band = normalize_band(band) if band is not None else get_latitude_band(latitude)
    easting, northing = latlon_to_utm(latitude, longitude, zone, band)
    return UTMPointResponse(easting=easting, northing=northing, zone=zone, band=band)
