"""Results of a hazard calculation"""

import dataclasses
import types
from collections.abc import Mapping

import pandas as pd

from .site import Site
from .sources import SourceType


@dataclasses.dataclass(frozen=True)
class HazardCurveSet:
    """
    The hazard curves of a single source set

    Attributes
    ----------
    name: str
        Name of the source set
    weight: float
        Weight of the source set
    source_type: SourceType
    gmm_curves: Mapping[str, Mapping[str, pd.Series]]
        The (unweighted) hazard curve of each GMM,
        format: {gmm_name: {im: curve}}
    total_curves: Mapping[str, pd.Series]
        The GMM weighted hazard curve for each IM,
        not yet scaled by the source set weight
    """

    name: str
    weight: float
    source_type: SourceType
    gmm_curves: Mapping[str, Mapping[str, pd.Series]]
    total_curves: Mapping[str, pd.Series]

    def __post_init__(self):
        object.__setattr__(
            self,
            "gmm_curves",
            types.MappingProxyType(
                {
                    cur_gmm: types.MappingProxyType(dict(cur_curves))
                    for cur_gmm, cur_curves in self.gmm_curves.items()
                }
            ),
        )
        object.__setattr__(
            self, "total_curves", types.MappingProxyType(dict(self.total_curves))
        )


@dataclasses.dataclass(frozen=True)
class HazardResult:
    """
    The result of a hazard calculation for a single site

    Attributes
    ----------
    site: Site
    total_curves: Mapping[str, pd.Series]
        The aggregate hazard curve for each IM
    curve_sets: tuple[HazardCurveSet, ...]
        The curves of each contributing source set,
        in model order
    """

    site: Site
    total_curves: Mapping[str, pd.Series]
    curve_sets: tuple[HazardCurveSet, ...]

    def __post_init__(self):
        object.__setattr__(
            self, "total_curves", types.MappingProxyType(dict(self.total_curves))
        )
        object.__setattr__(self, "curve_sets", tuple(self.curve_sets))

    @property
    def ims(self) -> tuple[str, ...]:
        return tuple(self.total_curves.keys())

    def curve_set_df(self, im: str) -> pd.DataFrame:
        """
        The weighted contribution of each source set for the given IM

        Parameters
        ----------
        im: str

        Returns
        -------
        pd.DataFrame
            format: index = IM levels, columns = source set names
        """
        if im not in self.total_curves:
            raise KeyError(f"No hazard curve for IM {im}")

        return pd.DataFrame(
            data={
                cur_set.name: cur_set.total_curves[im].values * cur_set.weight
                for cur_set in self.curve_sets
            },
            index=self.total_curves[im].index.values,
        )
