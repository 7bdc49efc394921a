"""Sites of interest and their GMM site parameters"""

import dataclasses

import numpy as np

from .errors import ConfigurationError
from .geo import Location


@dataclasses.dataclass(frozen=True)
class Site:
    """
    A site of interest for a hazard calculation

    Attributes
    ----------
    name: str
    location: Location
    vs30: float
        The average shear-wave velocity in the upper 30 meters of the site.
    vs30measured: bool
        Whether the Vs30 value is measured or not.
    z1p0: float
        Depth to the 1.0 km/s shear-wave velocity horizon in km.
    z2p5: float, optional
        Depth to the 2.5 km/s shear-wave velocity horizon in km.
        Only required for some GMMs
    backarc: bool, optional
        Whether the site is in the backarc region.
        Only required for some GMMs
    """

    name: str
    location: Location
    vs30: float = 760.0
    vs30measured: bool = False
    z1p0: float | None = None
    z2p5: float | None = None
    backarc: bool | None = None

    def __post_init__(self):
        if not isinstance(self.location, Location):
            raise ConfigurationError(f"Site {self.name} has no valid location")
        if not np.isfinite(self.vs30) or self.vs30 <= 0:
            raise ConfigurationError(
                f"Site {self.name} has an invalid vs30 of {self.vs30}"
            )

    @property
    def properties(self) -> dict[str, float | bool]:
        """The site parameters, named as expected by the GMMs"""
        properties = {"vs30": self.vs30, "vs30measured": self.vs30measured}
        if self.z1p0 is not None:
            properties["z1pt0"] = self.z1p0
        if self.z2p5 is not None:
            properties["z2pt5"] = self.z2p5
        if self.backarc is not None:
            properties["backarc"] = self.backarc
        return properties
