"""Great-circle distance helpers shared by sanitization and statistics."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

EARTH_RADIUS_KM = 6371.0

DistanceArray = NDArray[np.float64]


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return the haversine distance in kilometres between two lat/lon points.

    Args:
        lat1: Latitude 1 in degrees.
        lon1: Longitude 1 in degrees.
        lat2: Latitude 2 in degrees.
        lon2: Longitude 2 in degrees.

    Returns:
        Non-negative distance in kilometres. NaN inputs yield NaN, so callers
        filter non-finite coordinates first.
    """

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = (
        math.sin(d_phi / 2.0) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    )
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_KM * c


def pairwise_distances_km(
    lats: Sequence[float], lons: Sequence[float]
) -> DistanceArray:
    """Return haversine distances between consecutive coordinates.

    The result has ``len(lats) - 1`` entries (empty for fewer than two points)
    and matches :func:`distance_km` applied to each neighbouring pair.
    """

    lat_arr = np.radians(np.asarray(lats, dtype=float))
    lon_arr = np.radians(np.asarray(lons, dtype=float))
    if lat_arr.shape != lon_arr.shape:
        raise ValueError("Latitude and longitude sequences must be the same length")
    if lat_arr.size < 2:
        return np.empty(0, dtype=float)
    d_phi = np.diff(lat_arr)
    d_lambda = np.diff(lon_arr)
    a = (
        np.sin(d_phi / 2.0) ** 2
        + np.cos(lat_arr[:-1]) * np.cos(lat_arr[1:]) * np.sin(d_lambda / 2.0) ** 2
    )
    c = 2.0 * np.arctan2(np.sqrt(a), np.sqrt(1.0 - a))
    return EARTH_RADIUS_KM * c
