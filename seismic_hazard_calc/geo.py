"""Geographic locations and site-source distance computation"""

import dataclasses
from collections.abc import Sequence

import numba as nb
import numpy as np

from .errors import ConfigurationError

EARTH_RADIUS_KM = 6371.0088

LAT_BOUNDS = (-90.0, 90.0)
LON_BOUNDS = (-180.0, 360.0)


@dataclasses.dataclass(frozen=True)
class Location:
    """
    A geographic location (WGS84)

    Attributes
    ----------
    lat: float
        Latitude in degrees, [-90, 90]
    lon: float
        Longitude in degrees, [-180, 360)
    depth: float
        Depth in km, positive down
    """

    lat: float
    lon: float
    depth: float = 0.0

    def __post_init__(self):
        if not np.isfinite(self.lat) or not (
            LAT_BOUNDS[0] <= self.lat <= LAT_BOUNDS[1]
        ):
            raise ConfigurationError(
                f"Latitude {self.lat} is outside the range {LAT_BOUNDS}"
            )
        if not np.isfinite(self.lon) or not (
            LON_BOUNDS[0] <= self.lon < LON_BOUNDS[1]
        ):
            raise ConfigurationError(
                f"Longitude {self.lon} is outside the range {LON_BOUNDS}"
            )
        if not np.isfinite(self.depth):
            raise ConfigurationError(f"Depth {self.depth} is not finite")

    def distance_to(self, other: "Location") -> float:
        """Great-circle surface distance (km) to the other location"""
        return float(
            haversine_distances(
                float(self.lat),
                float(self.lon),
                np.asarray([other.lat], dtype=float),
                np.asarray([other.lon], dtype=float),
            )[0]
        )


@nb.njit(cache=True)
def haversine_distances(
    lat: float, lon: float, lats: np.ndarray, lons: np.ndarray
) -> np.ndarray:
    """
    Computes the great-circle distances between a single point
    and an array of points using the haversine formula

    Parameters
    ----------
    lat, lon: float
        The reference point (degrees)
    lats, lons: array of floats
        The points to compute the distance to (degrees)

    Returns
    -------
    array of floats
        The distances in km
    """
    lat_r = np.deg2rad(lat)
    lon_r = np.deg2rad(lon)

    dists = np.zeros(lats.size)
    for i in range(lats.size):
        cur_lat = np.deg2rad(lats[i])
        d_lat = cur_lat - lat_r
        d_lon = np.deg2rad(lons[i]) - lon_r
        a = (
            np.sin(d_lat / 2) ** 2
            + np.cos(lat_r) * np.cos(cur_lat) * np.sin(d_lon / 2) ** 2
        )
        dists[i] = 2 * EARTH_RADIUS_KM * np.arcsin(np.sqrt(min(1.0, a)))

    return dists


def to_lat_lon_array(locations: Sequence[Location]) -> np.ndarray:
    """Converts the locations into an array of shape [n_locations, 2] (lat, lon)"""
    return np.asarray([[loc.lat, loc.lon] for loc in locations], dtype=float).reshape(
        -1, 2
    )


def min_distance(location: Location, locations: np.ndarray) -> float:
    """
    Closest surface distance (km) from the location
    to any of the given points

    Parameters
    ----------
    location: Location
    locations: array of floats
        shape: [n_points, 2] (lat, lon)

    Returns
    -------
    float
        The minimum distance, inf if there are no points
    """
    if locations.shape[0] == 0:
        return np.inf
    return float(
        np.min(
            haversine_distances(
                float(location.lat),
                float(location.lon),
                np.ascontiguousarray(locations[:, 0]),
                np.ascontiguousarray(locations[:, 1]),
            )
        )
    )
