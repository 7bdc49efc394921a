"""Seismic sources and the ruptures they generate.

Classes
-------
Rupture:
    A single earthquake rupture with magnitude and annual rate.
PointSource:
    Ruptures at a single location (gridded and slab seismicity).
AreaSource:
    Ruptures spread evenly over a set of discretisation points.
FaultSource:
    Ruptures on a fault defined by its surface trace.
ClusterSource:
    A group of correlated faults that rupture together.
SystemSection:
    A fault section of a network/system source model.
SystemRupture:
    A rupture of a system source model spanning multiple sections.

Distances are approximate: the Joyner-Boore distance is the closest
surface distance to the source points, and the rupture distance adds the
relevant depth (hypocentre for point sources, top of rupture for faults).
"""

import dataclasses
from enum import Enum, StrEnum, auto

import numpy as np

from . import geo
from .errors import ConfigurationError
from .geo import Location


class SourceType(Enum):
    """The variants of source sets"""

    AREA = auto()
    CLUSTER = auto()
    FAULT = auto()
    GRID = auto()
    INTERFACE = auto()
    SLAB = auto()
    SYSTEM = auto()


class ScalingRelation(StrEnum):
    """Magnitude scaling relations associated with a source set"""

    WC1994_LENGTH = auto()
    WC1994_AREA = auto()
    LEONARD2014 = auto()
    CONTRERAS_INTERFACE2017 = auto()
    CONTRERAS_SLAB2020 = auto()


@dataclasses.dataclass(frozen=True)
class Rupture:
    """
    A single rupture

    Attributes
    ----------
    mag: float
        Moment magnitude
    rate: float
        Annual rate of occurrence. For faults of a
        cluster source this is the relative weight of
        the magnitude alternative instead.
    rake: float
    dip: float
    ztor: float
        Depth to the top of the rupture (km)
    zbot: float, optional
        Depth to the bottom of the rupture (km),
        defaults to ztor
    """

    mag: float
    rate: float
    rake: float = 0.0
    dip: float = 90.0
    ztor: float = 0.0
    zbot: float | None = None

    def __post_init__(self):
        if not np.isfinite(self.mag):
            raise ConfigurationError(f"Invalid rupture magnitude {self.mag}")
        if not np.isfinite(self.rate) or self.rate < 0:
            raise ConfigurationError(f"Invalid rupture rate {self.rate}")
        if not 0 < self.dip <= 90:
            raise ConfigurationError(f"Invalid rupture dip {self.dip}")
        if self.zbot is not None and self.zbot < self.ztor:
            raise ConfigurationError(
                f"Rupture bottom depth {self.zbot} is above its top {self.ztor}"
            )

    @property
    def bottom(self) -> float:
        return self.ztor if self.zbot is None else self.zbot

    @property
    def hypo_depth(self) -> float:
        """Hypocentre depth, half way between top and bottom"""
        return (self.ztor + self.bottom) / 2


def _rupture_record(
    name: str, rupture: Rupture, rjb: float, depth: float, rate: float
) -> dict:
    """Creates the input record for the given rupture"""
    return {
        "rupture_name": name,
        "mag": rupture.mag,
        "rake": rupture.rake,
        "dip": rupture.dip,
        "ztor": rupture.ztor,
        "zbot": rupture.bottom,
        "hypo_depth": rupture.hypo_depth,
        "rjb": rjb,
        "rrup": np.sqrt(rjb**2 + depth**2),
        # Rjb is used for rx and ry, as for distributed seismicity
        "rx": rjb,
        "ry": rjb,
        "rate": rate,
    }


def create_rupture_name(source_name: str, index: int) -> str:
    """Unique name of the index-th rupture of the source"""
    return f"{source_name}--{index}"


@dataclasses.dataclass(frozen=True)
class PointSource:
    """Ruptures located at a single point"""

    name: str
    location: Location
    ruptures: tuple[Rupture, ...]

    def distance(self, location: Location) -> float:
        return self.location.distance_to(location)

    def rupture_records(self, location: Location) -> list[dict]:
        rjb = self.distance(location)
        return [
            _rupture_record(
                create_rupture_name(self.name, i),
                cur_rupture,
                rjb,
                cur_rupture.hypo_depth,
                cur_rupture.rate,
            )
            for i, cur_rupture in enumerate(self.ruptures)
        ]


@dataclasses.dataclass(frozen=True)
class _MultiPointSource:
    """Base for sources whose geometry is a sequence of locations"""

    name: str
    locations: tuple[Location, ...]
    ruptures: tuple[Rupture, ...]
    _coords: np.ndarray = dataclasses.field(
        init=False, repr=False, compare=False, hash=False
    )

    def __post_init__(self):
        if len(self.locations) == 0:
            raise ConfigurationError(f"Source {self.name} has no locations")
        object.__setattr__(self, "_coords", geo.to_lat_lon_array(self.locations))

    def distance(self, location: Location) -> float:
        return geo.min_distance(location, self._coords)


@dataclasses.dataclass(frozen=True)
class AreaSource(_MultiPointSource):
    """
    Ruptures distributed over an area, discretised
    into points. Each rupture's rate is spread evenly
    over the points.
    """

    def rupture_records(self, location: Location) -> list[dict]:
        n_points = len(self.locations)
        records = []
        for i, cur_loc in enumerate(self.locations):
            rjb = cur_loc.distance_to(location)
            for j, cur_rupture in enumerate(self.ruptures):
                records.append(
                    _rupture_record(
                        create_rupture_name(self.name, i * len(self.ruptures) + j),
                        cur_rupture,
                        rjb,
                        cur_rupture.hypo_depth,
                        cur_rupture.rate / n_points,
                    )
                )
        return records


@dataclasses.dataclass(frozen=True)
class FaultSource(_MultiPointSource):
    """
    A fault source, the locations define the surface trace.
    """

    @property
    def trace(self) -> tuple[Location, ...]:
        return self.locations

    def rupture_records(self, location: Location) -> list[dict]:
        rjb = self.distance(location)
        return [
            _rupture_record(
                create_rupture_name(self.name, i),
                cur_rupture,
                rjb,
                cur_rupture.ztor,
                cur_rupture.rate,
            )
            for i, cur_rupture in enumerate(self.ruptures)
        ]


@dataclasses.dataclass(frozen=True)
class ClusterSource:
    """
    A group of correlated faults.

    The faults of a cluster rupture together at the cluster rate,
    the rupture rates of each fault are the weights of its
    magnitude alternatives.
    """

    name: str
    rate: float
    faults: tuple[FaultSource, ...]

    def __post_init__(self):
        if not np.isfinite(self.rate) or self.rate < 0:
            raise ConfigurationError(
                f"Invalid rate {self.rate} for cluster {self.name}"
            )
        fault_names = [cur_fault.name for cur_fault in self.faults]
        if len(set(fault_names)) != len(fault_names):
            raise ConfigurationError(
                f"Fault names have to be unique in cluster {self.name}, got {fault_names}"
            )

    @property
    def ruptures(self) -> tuple[Rupture, ...]:
        return tuple(
            cur_rupture for cur_fault in self.faults for cur_rupture in cur_fault.ruptures
        )

    def distance(self, location: Location) -> float:
        return min(
            (cur_fault.distance(location) for cur_fault in self.faults),
            default=np.inf,
        )

    def rupture_records(self, location: Location) -> list[dict]:
        records = []
        for cur_fault in self.faults:
            for cur_record in cur_fault.rupture_records(location):
                # Fault names are only unique within a cluster
                cur_record["rupture_name"] = f"{self.name}--{cur_record['rupture_name']}"
                cur_record["cluster"] = self.name
                cur_record["fault"] = cur_fault.name
                cur_record["cluster_rate"] = self.rate
                records.append(cur_record)
        return records


@dataclasses.dataclass(frozen=True)
class SystemSection(_MultiPointSource):
    """
    A fault section of a system source model.
    The ruptures of a section are owned by the
    system source set, not the section itself.
    """

    ruptures: tuple[Rupture, ...] = ()


@dataclasses.dataclass(frozen=True)
class SystemRupture:
    """
    A rupture of a system source model,
    spanning one or more fault sections
    """

    name: str
    sections: tuple[SystemSection, ...]
    rupture: Rupture

    def __post_init__(self):
        if len(self.sections) == 0:
            raise ConfigurationError(f"System rupture {self.name} has no sections")

    @property
    def ruptures(self) -> tuple[Rupture, ...]:
        return (self.rupture,)

    def distance(self, location: Location) -> float:
        return min(cur_section.distance(location) for cur_section in self.sections)

    def rupture_records(self, location: Location) -> list[dict]:
        rjb = self.distance(location)
        record = _rupture_record(
            self.name, self.rupture, rjb, self.rupture.ztor, self.rupture.rate
        )
        record["sections"] = ",".join(
            cur_section.name for cur_section in self.sections
        )
        return [record]
