"""
Geospatial projection utilities for UTM coordinate transformations.

The inverse projection (UTM -> latitude/longitude) is computed with the
Krueger n-series on the WGS84 ellipsoid so that stored survey coordinates
can be converted without a CRS database. The forward direction delegates
to pyproj.
"""
from functools import lru_cache
from typing import Tuple
import logging
import math

import numpy as np
from pyproj import Transformer

from app.domain.exceptions import InvalidCoordinateInput
from app.domain.models import GeodeticPoint, GeographicPoint

logger = logging.getLogger(__name__)


# WGS84 ellipsoid
WGS84_SEMI_MAJOR_AXIS = 6378137.0
WGS84_FLATTENING = 1 / 298.257223563

# UTM projection parameters
UTM_SCALE_FACTOR = 0.9996
UTM_FALSE_EASTING = 500000.0
UTM_FALSE_NORTHING_SOUTH = 10000000.0
UTM_ZONE_WIDTH_DEGREES = 6

# Valid input domain
MIN_ZONE = 1
MAX_ZONE = 60
MIN_EASTING = 100000.0
MAX_EASTING = 1000000.0
MIN_NORTHING = 0.0
MAX_NORTHING = 10000000.0
# Northern northings end at 84N (about 9 329 005 m on the central meridian)
MAX_NORTHING_NORTH = 9330000.0

# Latitude bands, 8 degrees each from 80S (X spans 12 degrees up to 84N)
SOUTHERN_BANDS = "CDEFGHJKLM"
NORTHERN_BANDS = "NPQRSTUVWX"
LATITUDE_BANDS = SOUTHERN_BANDS + NORTHERN_BANDS
MIN_BAND_LATITUDE = -80.0
MAX_BAND_LATITUDE = 84.0
BAND_HEIGHT_DEGREES = 8

# Krueger series coefficients (third order in the third flattening n)
_N = WGS84_FLATTENING / (2 - WGS84_FLATTENING)
_RECTIFYING_RADIUS = (
    WGS84_SEMI_MAJOR_AXIS / (1 + _N) * (1 + _N ** 2 / 4 + _N ** 4 / 64)
)
_BETA = (
    _N / 2 - 2 * _N ** 2 / 3 + 37 * _N ** 3 / 96,
    _N ** 2 / 48 + _N ** 3 / 15,
    17 * _N ** 3 / 480,
)
_DELTA = (
    2 * _N - 2 * _N ** 2 / 3 - 2 * _N ** 3,
    7 * _N ** 2 / 3 - 8 * _N ** 3 / 5,
    56 * _N ** 3 / 15,
)


def normalize_band(latitude_band: str) -> str:
    """
    Validate a latitude band letter and return it in upper case.

    Raises:
        InvalidCoordinateInput: If the band is not one of C-X (excluding I and O)
    """
    if not isinstance(latitude_band, str) or len(latitude_band) != 1:
        raise InvalidCoordinateInput(
            f"Latitude band must be a single letter, got {latitude_band!r}",
            details={"latitude_band": latitude_band},
        )
    band = latitude_band.upper()
    if band not in LATITUDE_BANDS:
        raise InvalidCoordinateInput(
            f"Latitude band must be one of {LATITUDE_BANDS}, got {latitude_band!r}",
            details={"latitude_band": latitude_band},
        )
    return band


def validate_zone(zone: int) -> int:
    """
    Validate a UTM zone number.

    Raises:
        InvalidCoordinateInput: If the zone is not an integer in [1, 60]
    """
    if isinstance(zone, bool) or not isinstance(zone, (int, np.integer)):
        raise InvalidCoordinateInput(
            f"UTM zone must be an integer, got {zone!r}",
            details={"zone": zone},
        )
    if not MIN_ZONE <= zone <= MAX_ZONE:
        raise InvalidCoordinateInput(
            f"UTM zone must be between {MIN_ZONE} and {MAX_ZONE}, got {zone}",
            details={"zone": int(zone)},
        )
    return int(zone)


def is_southern_band(latitude_band: str) -> bool:
    """Return True if the band letter denotes the southern hemisphere."""
    return normalize_band(latitude_band) in SOUTHERN_BANDS


def get_central_meridian(zone: int) -> float:
    """Longitude in degrees of the central meridian of a UTM zone."""
    return validate_zone(zone) * UTM_ZONE_WIDTH_DEGREES - 183.0


def get_utm_zone(longitude: float) -> int:
    """
    Calculate the UTM zone number from longitude.

    Args:
        longitude: Longitude in degrees

    Returns:
        UTM zone number (1-60)
    """
    zone = int((longitude + 180) / UTM_ZONE_WIDTH_DEGREES) + 1
    # 180 degrees east belongs to zone 60, not a 61st zone
    return min(zone, MAX_ZONE)


def get_latitude_band(latitude: float) -> str:
    """
    Get the UTM latitude band letter for a latitude.

    Raises:
        InvalidCoordinateInput: If the latitude lies outside the UTM bands (80S-84N)
    """
    if not MIN_BAND_LATITUDE <= latitude <= MAX_BAND_LATITUDE:
        raise InvalidCoordinateInput(
            f"Latitude {latitude} is outside the UTM latitude bands "
            f"({MIN_BAND_LATITUDE} to {MAX_BAND_LATITUDE})",
            details={"latitude": latitude},
        )
    index = int((latitude - MIN_BAND_LATITUDE) // BAND_HEIGHT_DEGREES)
    return LATITUDE_BANDS[min(index, len(LATITUDE_BANDS) - 1)]


def get_utm_crs(zone: int, latitude_band: str) -> str:
    """
    Get the EPSG code of the WGS84 UTM zone.

    Returns:
        EPSG code for the UTM zone, e.g. "EPSG:32616"
    """
    zone = validate_zone(zone)
    # Northern hemisphere: EPSG:326XX, Southern hemisphere: EPSG:327XX
    hemisphere = "7" if is_southern_band(latitude_band) else "6"
    return f"EPSG:32{hemisphere}{zone:02d}"


def _validate_projected(
    eastings: np.ndarray,
    northings: np.ndarray,
    max_northing: float = MAX_NORTHING,
) -> None:
    if not (np.all(np.isfinite(eastings)) and np.all(np.isfinite(northings))):
        raise InvalidCoordinateInput("Easting and northing must be finite numbers")

    bad_easting = (eastings < MIN_EASTING) | (eastings >= MAX_EASTING)
    if np.any(bad_easting):
        raise InvalidCoordinateInput(
            f"Easting must be in [{MIN_EASTING:.0f}, {MAX_EASTING:.0f}), "
            f"got {float(eastings[bad_easting][0])}",
        )

    bad_northing = (northings < MIN_NORTHING) | (northings > max_northing)
    if np.any(bad_northing):
        raise InvalidCoordinateInput(
            f"Northing must be in [{MIN_NORTHING:.0f}, {max_northing:.0f}], "
            f"got {float(northings[bad_northing][0])}",
        )


def _inverse_transverse_mercator(
    eastings: np.ndarray,
    northings: np.ndarray,
    central_meridian: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Inverse transverse Mercator on WGS84.

    Northings must already be relative to the equator (false northing removed).
    Returns (latitudes, longitudes) in degrees.
    """
    xi = northings / (UTM_SCALE_FACTOR * _RECTIFYING_RADIUS)
    eta = (eastings - UTM_FALSE_EASTING) / (UTM_SCALE_FACTOR * _RECTIFYING_RADIUS)

    xi_prime = xi.copy()
    eta_prime = eta.copy()
    for j, beta in enumerate(_BETA, start=1):
        xi_prime -= beta * np.sin(2 * j * xi) * np.cosh(2 * j * eta)
        eta_prime -= beta * np.cos(2 * j * xi) * np.sinh(2 * j * eta)

    # Conformal latitude, then the series back to geodetic latitude
    chi = np.arcsin(np.sin(xi_prime) / np.cosh(eta_prime))
    latitudes = chi.copy()
    for j, delta in enumerate(_DELTA, start=1):
        latitudes += delta * np.sin(2 * j * chi)

    longitudes = np.radians(central_meridian) + np.arctan2(
        np.sinh(eta_prime), np.cos(xi_prime)
    )

    latitudes = np.degrees(latitudes)
    longitudes = (np.degrees(longitudes) + 180.0) % 360.0 - 180.0
    return latitudes, longitudes


def utm_to_latlon_many(
    eastings,
    northings,
    zone: int,
    latitude_band: str,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Convert many UTM coordinates sharing one zone and band to lat/lon.

    Args:
        eastings: Sequence of eastings in meters
        northings: Sequence of northings in meters
        zone: UTM zone number (1-60)
        latitude_band: UTM latitude band letter

    Returns:
        Tuple of (latitudes, longitudes) arrays in degrees

    Raises:
        InvalidCoordinateInput: If zone, band or any coordinate is invalid
    """
    central_meridian = get_central_meridian(zone)
    southern = is_southern_band(latitude_band)

    try:
        eastings = np.asarray(eastings, dtype=float)
        northings = np.asarray(northings, dtype=float)
    except (TypeError, ValueError) as e:
        raise InvalidCoordinateInput(f"Easting and northing must be numeric: {e}")

    if eastings.shape != northings.shape:
        raise InvalidCoordinateInput(
            f"Got {eastings.size} eastings but {northings.size} northings"
        )

    _validate_projected(
        eastings,
        northings,
        max_northing=MAX_NORTHING if southern else MAX_NORTHING_NORTH,
    )

    if southern:
        northings = northings - UTM_FALSE_NORTHING_SOUTH

    return _inverse_transverse_mercator(eastings, northings, central_meridian)


def utm_to_latlon(
    easting: float,
    northing: float,
    zone: int,
    latitude_band: str,
) -> GeographicPoint:
    """
    Convert a single UTM coordinate to latitude/longitude.

    Args:
        easting: Easting in meters
        northing: Northing in meters
        zone: UTM zone number (1-60)
        latitude_band: UTM latitude band letter; C-M are southern, N-X northern

    Returns:
        GeographicPoint in degrees

    Raises:
        InvalidCoordinateInput: If zone, band or coordinates are invalid
    """
    latitudes, longitudes = utm_to_latlon_many([easting], [northing], zone, latitude_band)
    return GeographicPoint(latitude=float(latitudes[0]), longitude=float(longitudes[0]))


def convert_geodetic_point(point: GeodeticPoint) -> GeographicPoint:
    """Convert a GeodeticPoint to latitude/longitude."""
    return utm_to_latlon(point.easting, point.northing, point.zone, point.latitude_band)


@lru_cache(maxsize=128)
def _forward_transformer(utm_crs: str) -> Transformer:
    return Transformer.from_crs(
        "EPSG:4326",  # WGS84 (lat/lon)
        utm_crs,      # UTM zone
        always_xy=True  # Ensure (lon, lat) -> (x, y) order
    )


def latlon_to_utm(
    latitude: float,
    longitude: float,
    zone: int,
    latitude_band: str,
) -> Tuple[float, float]:
    """
    Project a lat/lon position into the given UTM zone.

    Args:
        latitude: Latitude in degrees
        longitude: Longitude in degrees
        zone: UTM zone number (1-60)
        latitude_band: UTM latitude band letter (selects the hemisphere)

    Returns:
        Tuple of (easting, northing) in meters
    """
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        raise InvalidCoordinateInput("Latitude and longitude must be finite numbers")
    if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
        raise InvalidCoordinateInput(
            f"Position out of range: latitude={latitude}, longitude={longitude}"
        )

    transformer = _forward_transformer(get_utm_crs(zone, latitude_band))
    easting, northing = transformer.transform(longitude, latitude)
    logger.debug(f"Projected ({latitude}, {longitude}) to ({easting:.3f}, {northing:.3f}) "
                 f"in zone {zone}{latitude_band.upper()}")
    return float(easting), float(northing)
