"""
Spatial helper functions for map extent framing.
"""
from typing import Iterable
import logging

from shapely.geometry import MultiPoint

from app.domain.exceptions import EmptyPointSetError
from app.domain.models import BoundingPolygon, GeographicPoint

logger = logging.getLogger(__name__)


def build_bounding_polygon(points: Iterable[GeographicPoint]) -> BoundingPolygon:
    """
    Build the closed axis-aligned rectangle enclosing a set of points.

    Vertices are always ordered (minLat, minLng), (minLat, maxLng),
    (maxLat, maxLng), (maxLat, minLng) and closed back on the first one,
    whatever the input order. A single point yields a zero-area polygon
    whose five vertices are that point.

    Args:
        points: Geographic points to enclose

    Returns:
        BoundingPolygon with exactly 5 vertices

    Raises:
        EmptyPointSetError: If no points are given
    """
    # Shapely works in (x, y) = (lng, lat)
    coords = [(p.longitude, p.latitude) for p in points]
    if not coords:
        raise EmptyPointSetError("Cannot build a bounding polygon from zero points")

    min_lng, min_lat, max_lng, max_lat = MultiPoint(coords).bounds
    logger.debug(f"Bounds of {len(coords)} points: lat [{min_lat}, {max_lat}], "
                 f"lng [{min_lng}, {max_lng}]")

    first = GeographicPoint(latitude=min_lat, longitude=min_lng)
    return BoundingPolygon(vertices=[
        first,
        GeographicPoint(latitude=min_lat, longitude=max_lng),
        GeographicPoint(latitude=max_lat, longitude=max_lng),
        GeographicPoint(latitude=max_lat, longitude=min_lng),
        first,
    ])
