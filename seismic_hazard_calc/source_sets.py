"""Source sets, the weighted collections of sources making up a hazard model.

Classes
-------
SourceSet:
    Interface shared by all source set variants.
FaultSourceSet, InterfaceSourceSet, AreaSourceSet, GridSourceSet:
    Standard source sets, sources contribute independently.
ClusterSourceSet:
    Sets of correlated fault clusters, the faults of a cluster
    are evaluated jointly.
SlabSourceSet:
    Wraps a GridSourceSet, only differs in its source type.
SystemSourceSet:
    Network/system sources, ruptures spanning multiple fault sections.
HazardModel:
    The ordered source sets of a hazard calculation.

Source sets are created via their builder, e.g.

    fault_set = (
        FaultSourceSet.builder()
        .name("faults")
        .weight(1.0)
        .scaling_relation(ScalingRelation.LEONARD2014)
        .gmms(gmm_set)
        .sources(faults)
        .build()
    )

Source sets are immutable and can be shared between
any number of concurrent calculations.
"""

import abc
import dataclasses
from collections.abc import Callable, Iterable, Iterator, Sequence
from concurrent.futures import Executor, Future

import numpy as np

from . import stages
from .config import CalcConfig
from .errors import ConfigurationError
from .geo import Location
from .gmm import GmmSet
from .site import Site
from .sources import (
    AreaSource,
    ClusterSource,
    FaultSource,
    PointSource,
    Rupture,
    ScalingRelation,
    SourceType,
    SystemRupture,
    SystemSection,
)


def validate_name(name: str) -> str:
    if not isinstance(name, str) or len(name.strip()) == 0:
        raise ConfigurationError(f"Invalid name {name!r}, has to be a non-empty string")
    return name.strip()


def validate_weight(weight: float) -> float:
    try:
        weight = float(weight)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid weight {weight!r}") from e
    if not (0.0 <= weight <= 1.0):
        raise ConfigurationError(f"Weight {weight} is outside the range [0, 1]")
    return weight


class SourceSet(abc.ABC):
    """Interface of all source set variants"""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        ...

    @property
    @abc.abstractmethod
    def weight(self) -> float:
        ...

    @property
    @abc.abstractmethod
    def source_type(self) -> SourceType:
        ...

    @property
    @abc.abstractmethod
    def scaling_relation(self) -> ScalingRelation:
        ...

    @property
    @abc.abstractmethod
    def gmm_set(self) -> GmmSet:
        ...

    @abc.abstractmethod
    def __iter__(self) -> Iterator:
        ...

    @abc.abstractmethod
    def __len__(self) -> int:
        ...

    @abc.abstractmethod
    def distance_filter(self, location: Location, distance: float) -> Callable:
        """
        Creates a predicate that is True for sources
        within the given distance (km) of the location
        """

    @abc.abstractmethod
    def location_iterable(self, location: Location) -> list:
        """
        The sources within the maximum
        distance of the GMM set of the location
        """

    @abc.abstractmethod
    def contribution(
        self, site: Site, config: CalcConfig, executor: Executor
    ) -> Future:
        """
        Schedules the hazard calculation of this source set for the site

        Returns
        -------
        Future
            Resolves to the HazardCurveSet of this source set,
            or None if no source is within range of the site
        """

    def __lt__(self, other: "SourceSet") -> bool:
        return self.name < other.name

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self.name!r}, weight={self.weight}, "
            f"size={len(self)})"
        )


class AbstractSourceSet(SourceSet):
    """Skeletal source set implementation"""

    # The source class of the set
    SOURCE_CLASS: type = None
    SOURCE_TYPE: SourceType = None

    def __init__(
        self,
        name: str,
        weight: float,
        scaling_relation: ScalingRelation,
        gmm_set: GmmSet,
        sources: Sequence,
    ):
        self._name = validate_name(name)
        self._weight = validate_weight(weight)
        self._scaling_relation = scaling_relation
        self._gmm_set = gmm_set
        self._sources = tuple(sources)

        source_names = [cur_source.name for cur_source in self._sources]
        if len(set(source_names)) != len(source_names):
            raise ConfigurationError(
                f"Source names in source set {self._name} have to be unique"
            )

    @classmethod
    def builder(cls) -> "SourceSetBuilder":
        return SourceSetBuilder(cls)

    @property
    def name(self) -> str:
        return self._name

    @property
    def weight(self) -> float:
        return self._weight

    @property
    def source_type(self) -> SourceType:
        return self.SOURCE_TYPE

    @property
    def scaling_relation(self) -> ScalingRelation:
        return self._scaling_relation

    @property
    def gmm_set(self) -> GmmSet:
        return self._gmm_set

    def __iter__(self) -> Iterator:
        return iter(self._sources)

    def __len__(self) -> int:
        return len(self._sources)

    def distance_filter(self, location: Location, distance: float) -> Callable:
        return lambda source: source.distance(location) <= distance

    def location_iterable(self, location: Location) -> list:
        source_filter = self.distance_filter(location, self._gmm_set.max_distance)
        return [cur_source for cur_source in self._sources if source_filter(cur_source)]

    def contribution(
        self, site: Site, config: CalcConfig, executor: Executor
    ) -> Future:
        return stages.standard_chain(self, site, config, executor)


class FaultSourceSet(AbstractSourceSet):
    SOURCE_CLASS = FaultSource
    SOURCE_TYPE = SourceType.FAULT


class InterfaceSourceSet(AbstractSourceSet):
    """Subduction interface sources"""

    SOURCE_CLASS = FaultSource
    SOURCE_TYPE = SourceType.INTERFACE


class AreaSourceSet(AbstractSourceSet):
    SOURCE_CLASS = AreaSource
    SOURCE_TYPE = SourceType.AREA


class GridSourceSet(AbstractSourceSet):
    """Gridded (point) seismicity"""

    SOURCE_CLASS = PointSource
    SOURCE_TYPE = SourceType.GRID


class ClusterSourceSet(AbstractSourceSet):
    """
    Set of cluster sources, i.e. groups of correlated faults.

    A cluster is in range if any of its faults is in range,
    in which case all of its faults are part of the calculation.
    """

    SOURCE_CLASS = ClusterSource
    SOURCE_TYPE = SourceType.CLUSTER

    def distance_filter(self, location: Location, distance: float) -> Callable:
        def _filter(cluster: ClusterSource) -> bool:
            return any(
                cur_fault.distance(location) <= distance for cur_fault in cluster.faults
            )

        return _filter

    def contribution(
        self, site: Site, config: CalcConfig, executor: Executor
    ) -> Future:
        return stages.cluster_chain(self, site, config, executor)


class SystemSourceSet(AbstractSourceSet):
    """
    Network/system source set, consisting of fault sections
    and ruptures that span one or more of these sections.

    Only the selection of ruptures is currently supported,
    computing their ground motions and hazard curves raises an
    UnsupportedCalculationError.
    """

    SOURCE_CLASS = SystemRupture
    SOURCE_TYPE = SourceType.SYSTEM

    def __init__(
        self,
        name: str,
        weight: float,
        scaling_relation: ScalingRelation,
        gmm_set: GmmSet,
        sources: Sequence[SystemRupture],
        sections: Sequence[SystemSection] = (),
    ):
        super().__init__(name, weight, scaling_relation, gmm_set, sources)
        self._sections = tuple(sections)

    @classmethod
    def builder(cls) -> "SystemSourceSetBuilder":
        return SystemSourceSetBuilder(cls)

    @property
    def sections(self) -> tuple[SystemSection, ...]:
        return self._sections

    def contribution(
        self, site: Site, config: CalcConfig, executor: Executor
    ) -> Future:
        return stages.system_chain(self, site, config, executor)


class SlabSourceSet(SourceSet):
    """
    Subduction slab sources. Wraps a GridSourceSet and forwards
    everything to it, only the source type differs.
    """

    def __init__(self, delegate: GridSourceSet):
        if not isinstance(delegate, GridSourceSet):
            raise ConfigurationError(
                f"A slab source set has to wrap a grid source set, got {delegate!r}"
            )
        self._delegate = delegate

    @property
    def delegate(self) -> GridSourceSet:
        return self._delegate

    @property
    def name(self) -> str:
        return self._delegate.name

    @property
    def weight(self) -> float:
        return self._delegate.weight

    @property
    def source_type(self) -> SourceType:
        return SourceType.SLAB

    @property
    def scaling_relation(self) -> ScalingRelation:
        return self._delegate.scaling_relation

    @property
    def gmm_set(self) -> GmmSet:
        return self._delegate.gmm_set

    def __iter__(self) -> Iterator:
        return iter(self._delegate)

    def __len__(self) -> int:
        return len(self._delegate)

    def distance_filter(self, location: Location, distance: float) -> Callable:
        return self._delegate.distance_filter(location, distance)

    def location_iterable(self, location: Location) -> list:
        return self._delegate.location_iterable(location)

    def contribution(
        self, site: Site, config: CalcConfig, executor: Executor
    ) -> Future:
        # Uses this wrapper, so the curve set reports the slab type
        return stages.standard_chain(self, site, config, executor)


class SourceSetBuilder:
    """
    Builder for source sets.

    build() may only be called once, after a successful
    build every further use of the builder fails.
    """

    # Required fields and their descriptions, in validation order
    REQUIRED_FIELDS = {
        "_name": "name",
        "_weight": "weight",
        "_scaling_relation": "mag-scaling relation",
        "_gmm_set": "ground motion models",
    }

    def __init__(self, source_set_cls: type[AbstractSourceSet]):
        self._source_set_cls = source_set_cls
        self._id = f"{source_set_cls.__name__}.Builder"
        self._built = False

        self._name = None
        self._weight = None
        self._scaling_relation = None
        self._gmm_set = None
        self._sources = []

    def _check_not_built(self):
        if self._built:
            raise ConfigurationError(f"This {self._id} instance has already been used")

    def name(self, name: str):
        self._check_not_built()
        self._name = validate_name(name)
        return self

    def weight(self, weight: float):
        self._check_not_built()
        self._weight = validate_weight(weight)
        return self

    def scaling_relation(self, scaling_relation: ScalingRelation | str):
        self._check_not_built()
        try:
            self._scaling_relation = ScalingRelation(scaling_relation)
        except ValueError as e:
            raise ConfigurationError(
                f"{self._id}: unknown mag-scaling relation {scaling_relation!r}"
            ) from e
        return self

    def gmms(self, gmm_set: GmmSet):
        self._check_not_built()
        if not isinstance(gmm_set, GmmSet):
            raise ConfigurationError(f"{self._id}: invalid GMM set {gmm_set!r}")
        self._gmm_set = gmm_set
        return self

    def source(self, source):
        self._check_not_built()
        if not isinstance(source, self._source_set_cls.SOURCE_CLASS):
            raise ConfigurationError(
                f"{self._id} requires sources of type "
                f"{self._source_set_cls.SOURCE_CLASS.__name__}, got {type(source).__name__}"
            )
        self._sources.append(source)
        return self

    def sources(self, sources: Iterable):
        self._check_not_built()
        for cur_source in sources:
            self.source(cur_source)
        return self

    def validate_state(self):
        """
        Raises a ConfigurationError if the builder has already
        been used, or if any of the required fields is not set
        """
        self._check_not_built()
        for cur_attr, cur_desc in self.REQUIRED_FIELDS.items():
            if getattr(self, cur_attr) is None:
                raise ConfigurationError(f"{self._id} {cur_desc} not set")

    def _create(self) -> AbstractSourceSet:
        return self._source_set_cls(
            self._name,
            self._weight,
            self._scaling_relation,
            self._gmm_set,
            self._sources,
        )

    def build(self) -> AbstractSourceSet:
        self.validate_state()
        source_set = self._create()
        self._built = True
        return source_set


class SystemSourceSetBuilder(SourceSetBuilder):
    """
    Builder for system source sets, ruptures are
    specified by the indices of their sections
    """

    def __init__(self, source_set_cls: type[SystemSourceSet]):
        super().__init__(source_set_cls)
        self._sections = []
        self._rupture_defs = []

    def section(self, section: SystemSection):
        self._check_not_built()
        if not isinstance(section, SystemSection):
            raise ConfigurationError(f"{self._id}: invalid section {section!r}")
        self._sections.append(section)
        return self

    def rupture(self, section_indices: Sequence[int], rupture: Rupture):
        self._check_not_built()
        if not isinstance(rupture, Rupture):
            raise ConfigurationError(f"{self._id}: invalid rupture {rupture!r}")
        self._rupture_defs.append((tuple(section_indices), rupture))
        return self

    def _create(self) -> SystemSourceSet:
        n_sections = len(self._sections)
        ruptures = list(self._sources)
        for i, (cur_indices, cur_rupture) in enumerate(self._rupture_defs):
            cur_indices = np.asarray(cur_indices, dtype=int)
            if cur_indices.size == 0 or np.any(
                (cur_indices < 0) | (cur_indices >= n_sections)
            ):
                raise ConfigurationError(
                    f"{self._id}: rupture {i} references invalid sections "
                    f"{cur_indices.tolist()}, there are {n_sections} sections"
                )
            ruptures.append(
                SystemRupture(
                    name=f"{self._name}--{i}",
                    sections=tuple(self._sections[ix] for ix in cur_indices),
                    rupture=cur_rupture,
                )
            )

        return self._source_set_cls(
            self._name,
            self._weight,
            self._scaling_relation,
            self._gmm_set,
            ruptures,
            sections=self._sections,
        )


@dataclasses.dataclass(frozen=True)
class HazardModel:
    """
    The ordered source sets of a hazard calculation

    Attributes
    ----------
    name: str
    source_sets: tuple[SourceSet, ...]
        Source set names have to be unique
    """

    name: str
    source_sets: tuple[SourceSet, ...]

    def __post_init__(self):
        object.__setattr__(self, "name", validate_name(self.name))
        object.__setattr__(self, "source_sets", tuple(self.source_sets))

        if invalid := [
            cur_set for cur_set in self.source_sets if not isinstance(cur_set, SourceSet)
        ]:
            raise ConfigurationError(f"Invalid source sets {invalid}")

        names = [cur_set.name for cur_set in self.source_sets]
        if duplicates := sorted({cur_name for cur_name in names if names.count(cur_name) > 1}):
            raise ConfigurationError(
                f"Source set names have to be unique in model {self.name}, "
                f"duplicates: {duplicates}"
            )

    def __iter__(self) -> Iterator[SourceSet]:
        return iter(self.source_sets)

    def __len__(self) -> int:
        return len(self.source_sets)

    def __getitem__(self, name: str) -> SourceSet:
        for cur_set in self.source_sets:
            if cur_set.name == name:
                return cur_set
        raise KeyError(f"No source set {name} in model {self.name}")
