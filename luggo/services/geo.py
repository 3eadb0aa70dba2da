"""Nearby place lookup returned as a GeoJSON FeatureCollection."""

import math
from collections.abc import Iterable

from luggo.models import Place

EARTH_RADIUS_M = 6_371_000.0


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in meters."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def clamp_limit(limit: int | None, default: int, maximum: int) -> int:
    if limit is None or limit <= 0:
        return default
    return min(max(int(limit), 1), maximum)


def nearby_features(
    places: Iterable[Place],
    lat: float,
    lng: float,
    radius_m: float | None,
    limit: int,
) -> dict:
    """Places with coordinates within ``radius_m`` (all when falsy), closest first."""
    ranked: list[tuple[float, Place]] = []
    for place in places:
        if place.latitude is None or place.longitude is None:
            continue
        distance = haversine_m(lat, lng, place.latitude, place.longitude)
        if radius_m and distance > radius_m:
            continue
        ranked.append((distance, place))
    ranked.sort(key=lambda item: item[0])

    features = [
        {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [place.longitude, place.latitude]},
            "properties": {
                "id": place.id,
                "name": place.name,
                "address": place.address,
                "photo": place.photo,
                "latitude": place.latitude,
                "longitude": place.longitude,
                "distance": distance,
            },
        }
        for distance, place in ranked[:limit]
    ]
    return {"type": "FeatureCollection", "features": features}
