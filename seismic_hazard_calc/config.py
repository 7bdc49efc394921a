"""Calculation configuration"""

import dataclasses
import types
from collections.abc import Mapping, Sequence
from enum import Enum
from pathlib import Path

import numpy as np
import pandas as pd
import yaml

from . import curves, utils
from .errors import ConfigurationError


class ExceedanceModel(Enum):
    """
    Models for the probability of exceeding an IM level
    given a log-normal ground motion distribution
    """

    # Untruncated normal distribution
    TRUNCATION_OFF = "truncation_off"
    # Upper tail truncated at truncation_level sigma
    TRUNCATION_UPPER_ONLY = "truncation_upper_only"
    # Both tails truncated at +/- truncation_level sigma
    TRUNCATION_LOWER_UPPER = "truncation_lower_upper"


@dataclasses.dataclass(frozen=True)
class CalcConfig:
    """
    Configuration of a hazard calculation

    Attributes
    ----------
    ims: Sequence[str]
        The IMs to compute hazard curves for
    exceedance_model: ExceedanceModel
    truncation_level: float
        Number of standard deviations at which
        the GM distribution is truncated
    im_levels: Mapping[str, np.ndarray], optional
        The IM levels for each IM, IMs without
        levels use the default levels for that IM
    """

    ims: Sequence[str]
    exceedance_model: ExceedanceModel = ExceedanceModel.TRUNCATION_UPPER_ONLY
    truncation_level: float = 3.0
    im_levels: Mapping[str, np.ndarray] = dataclasses.field(default_factory=dict)

    def __post_init__(self):
        if isinstance(self.ims, str) or len(self.ims) == 0:
            raise ConfigurationError("At least one IM has to be specified")
        if len(set(self.ims)) != len(self.ims):
            raise ConfigurationError(f"Duplicate IMs in {list(self.ims)}")
        if not isinstance(self.exceedance_model, ExceedanceModel):
            raise ConfigurationError(
                f"Invalid exceedance model {self.exceedance_model}"
            )
        if not np.isfinite(self.truncation_level) or (
            self.exceedance_model is not ExceedanceModel.TRUNCATION_OFF
            and self.truncation_level <= 0
        ):
            raise ConfigurationError(
                f"Invalid truncation level {self.truncation_level}"
            )
        if unknown_ims := set(self.im_levels.keys()) - set(self.ims):
            raise ConfigurationError(
                f"IM levels specified for IMs {sorted(unknown_ims)} "
                f"that are not requested"
            )

        im_levels = {}
        for cur_im in self.ims:
            if cur_im in self.im_levels:
                cur_levels = np.array(self.im_levels[cur_im], dtype=float)
            else:
                try:
                    cur_levels = utils.get_im_levels(cur_im)
                except ValueError as e:
                    raise ConfigurationError(
                        f"No IM levels specified for {cur_im} "
                        f"and no default levels available"
                    ) from e

            if (
                cur_levels.ndim != 1
                or cur_levels.size == 0
                or np.any(cur_levels <= 0)
                or np.any(np.diff(cur_levels) <= 0)
            ):
                raise ConfigurationError(
                    f"IM levels for {cur_im} have to be positive and strictly increasing"
                )
            cur_levels.setflags(write=False)
            im_levels[cur_im] = cur_levels

        object.__setattr__(self, "ims", tuple(self.ims))
        object.__setattr__(self, "im_levels", types.MappingProxyType(im_levels))

    @classmethod
    def from_dict(cls, config: dict):
        """
        Creates the configuration from a dictionary

        Parameters
        ----------
        config: dict
            Keys: ims, exceedance_model (name, case-insensitive),
            truncation_level and im_levels (all optional except ims)
        """
        config = dict(config)
        if "ims" not in config:
            raise ConfigurationError("Configuration is missing the ims")

        if (exceedance_model := config.get("exceedance_model")) is not None:
            try:
                config["exceedance_model"] = (
                    exceedance_model
                    if isinstance(exceedance_model, ExceedanceModel)
                    else ExceedanceModel[str(exceedance_model).upper()]
                )
            except KeyError as e:
                raise ConfigurationError(
                    f"Unknown exceedance model {exceedance_model}, "
                    f"options are {[cur_model.name for cur_model in ExceedanceModel]}"
                ) from e

        if unknown_keys := set(config.keys()) - {
            cur_field.name for cur_field in dataclasses.fields(cls)
        }:
            raise ConfigurationError(f"Unknown configuration keys {sorted(unknown_keys)}")

        return cls(**config)

    @classmethod
    def from_yaml(cls, config_ffp: Path):
        """Loads the configuration from a yaml file"""
        config = yaml.safe_load(Path(config_ffp).read_text())
        if not isinstance(config, dict):
            raise ConfigurationError(f"Invalid configuration file {config_ffp}")
        return cls.from_dict(config)

    def model_curves(self) -> dict[str, pd.Series]:
        """Zero-valued curves over the configured levels of each IM"""
        return {cur_im: curves.zero_curve(self.im_levels[cur_im]) for cur_im in self.ims}
