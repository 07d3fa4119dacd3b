"""
Geocoding module for offline point lookup of GPS coordinates.

This module loads a GeoJSON boundary dataset once and answers which
named region contains a given coordinate, using a ray casting
point-in-polygon test against each region's outer ring.
"""

import json
import logging
from dataclasses import dataclass
from typing import Optional, List, Sequence, Any

from .errors import GeocodingError


@dataclass(frozen=True)
class Region:
    """Result of a point lookup."""

    country: str
    city: str

    def format_city(self) -> str:
        return self.city.replace(" ", "_")

    @property
    def tag(self) -> str:
        """Token used in folder names and file labels, e.g. ``TWN-New_Taipei``."""
        return f"{self.country}-{self.format_city()}"


@dataclass(frozen=True)
class _Feature:
    region: Region
    # Outer rings only, one per constituent polygon
    rings: List[Sequence[Sequence[float]]]


def point_in_polygon(lat: float, lon: float, polygon: Sequence[Sequence[float]]) -> bool:
    """
    Check whether a point lies inside a ring using the ray casting rule.

    GeoJSON stores positions as ``[longitude, latitude]``.

    Args:
        lat: Latitude of the point
        lon: Longitude of the point
        polygon: Ring of ``[lon, lat]`` positions

    Returns:
        True if a horizontal ray from the point crosses the ring an odd
        number of times
    """
    inside = False
    j = len(polygon) - 1

    for i in range(len(polygon)):
        xi, yi = polygon[i][0], polygon[i][1]
        xj, yj = polygon[j][0], polygon[j][1]
        if (yi > lat) != (yj > lat) and lon < (xj - xi) * (lat - yi) / (yj - yi) + xi:
            inside = not inside
        j = i

    return inside


class GeoStateGeocoder:
    """
    Point lookup against a state/province level GeoJSON dataset.

    Features are tested in file order and the first containing region is
    returned. Regions in the dataset may overlap along shared borders;
    lookup order decides those ties.
    """

    def __init__(self, json_path: str):
        """
        Initialize the geocoder and load the dataset.

        Args:
            json_path: Path to a GeoJSON FeatureCollection

        Raises:
            GeocodingError: If the dataset cannot be read or parsed
        """
        self.logger = logging.getLogger(__name__)
        self.json_path = json_path
        self._features: List[_Feature] = []
        self._load_geojson()

    def _load_geojson(self):
        try:
            with open(self.json_path, "r", encoding="utf-8") as f:
                collection = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise GeocodingError(f"Failed to load GeoJSON {self.json_path}: {e}") from e

        if not isinstance(collection, dict) or not isinstance(collection.get("features"), list):
            raise GeocodingError(f"{self.json_path} is not a GeoJSON FeatureCollection")

        skipped = 0
        for feature in collection["features"]:
            parsed = self._parse_feature(feature)
            if parsed is None:
                skipped += 1
                continue
            self._features.append(parsed)

        self.logger.info(f"Loaded {len(self._features)} regions from {self.json_path}")
        if skipped:
            self.logger.debug(f"Skipped {skipped} features without usable polygons")

    @staticmethod
    def _parse_feature(feature: Any) -> Optional[_Feature]:
        if not isinstance(feature, dict):
            return None

        geometry = feature.get("geometry") or {}
        properties = feature.get("properties") or {}
        geometry_type = geometry.get("type")
        coordinates = geometry.get("coordinates")

        if geometry_type == "Polygon":
            polygons = [coordinates]
        elif geometry_type == "MultiPolygon":
            polygons = coordinates
        else:
            return None

        rings = []
        for polygon in polygons or []:
            if not isinstance(polygon, list) or not polygon:
                continue
            outer = polygon[0]
            if (isinstance(outer, list) and outer
                    and all(isinstance(p, list) and len(p) >= 2 for p in outer)):
                rings.append(outer)

        if not rings:
            return None

        region = Region(
            country=str(properties.get("adm0_a3") or ""),
            city=str(properties.get("name") or ""),
        )
        return _Feature(region=region, rings=rings)

    def __len__(self) -> int:
        return len(self._features)

    def locate(self, lat: float, lon: float) -> Optional[Region]:
        """
        Find the region containing a coordinate.

        Args:
            lat: Latitude in decimal degrees
            lon: Longitude in decimal degrees

        Returns:
            The first matching Region, or None when no region contains the point
        """
        for feature in self._features:
            for ring in feature.rings:
                if point_in_polygon(lat, lon, ring):
                    return feature.region

        self.logger.debug(f"No region found for ({lat:.6f}, {lon:.6f})")
        return None


GEOCODER_TYPES = {
    "geo_state": GeoStateGeocoder,
}


def create_geocoder(geocoder_type: str, **options: Any) -> GeoStateGeocoder:
    """
    Build a geocoder by type name.

    Args:
        geocoder_type: Registered geocoder type, e.g. ``geo_state``
        **options: Constructor options; ``json_path`` for ``geo_state``

    Returns:
        Geocoder instance

    Raises:
        GeocodingError: For an unknown type or missing options
    """
    try:
        geocoder_class = GEOCODER_TYPES[geocoder_type]
    except KeyError:
        raise GeocodingError(f"Unsupported geocoder type: {geocoder_type}") from None

    json_path = options.get("json_path")
    if not json_path:
        raise GeocodingError(f"json_path is required for the {geocoder_type} geocoder")
    return geocoder_class(json_path)
