"""Interface to the (external) ground motion models"""

import dataclasses
import types
from collections.abc import Mapping, Sequence
from typing import Protocol

import numpy as np
import pandas as pd

from .errors import ConfigurationError


class GroundMotionModel(Protocol):
    """
    A ground motion model, computes the lnIM distribution
    parameters for each rupture in the rupture dataframe.

    The rupture dataframe contains the columns
    mag, rake, dip, ztor, zbot, hypo_depth, rjb, rrup, rx, ry
    and the site properties (vs30, vs30measured, z1pt0, ...).

    Has to return a dataframe with the same index as
    the rupture dataframe and the columns
    {im}_mean and {im}_std_Total for each IM.
    """

    def __call__(self, rupture_df: pd.DataFrame, ims: Sequence[str]) -> pd.DataFrame:
        ...


def mean_col(im: str) -> str:
    return f"{im}_mean"


def std_col(im: str) -> str:
    return f"{im}_std_Total"


@dataclasses.dataclass(frozen=True)
class GmmSet:
    """
    The weighted ground motion models associated with a source set

    Attributes
    ----------
    gmms: Mapping[str, GroundMotionModel]
        The GMMs, keyed by name
    weights: Mapping[str, float]
        The weight of each GMM, have to sum to 1
    max_distance: float
        Sources further away (km) than this are
        excluded from the calculation
    """

    gmms: Mapping[str, GroundMotionModel]
    weights: Mapping[str, float]
    max_distance: float = 300.0

    def __post_init__(self):
        if len(self.gmms) == 0:
            raise ConfigurationError("A GMM set requires at least one GMM")
        if set(self.gmms.keys()) != set(self.weights.keys()):
            raise ConfigurationError(
                f"GMM names {sorted(self.gmms)} do not match "
                f"the weight names {sorted(self.weights)}"
            )
        weights = np.asarray(list(self.weights.values()), dtype=float)
        if np.any(weights < 0) or not np.isclose(weights.sum(), 1.0):
            raise ConfigurationError(
                f"GMM weights have to be positive and sum to 1, got {dict(self.weights)}"
            )
        if not self.max_distance > 0:
            raise ConfigurationError(
                f"Invalid maximum distance {self.max_distance} for GMM set"
            )

        # Read-only copies, the set is shared between calculations
        object.__setattr__(self, "gmms", types.MappingProxyType(dict(self.gmms)))
        object.__setattr__(self, "weights", types.MappingProxyType(dict(self.weights)))

    @classmethod
    def single(cls, name: str, gmm: GroundMotionModel, max_distance: float = 300.0):
        """GMM set consisting of a single model"""
        return cls({name: gmm}, {name: 1.0}, max_distance=max_distance)
