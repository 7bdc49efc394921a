"""
The stages of a source set's hazard calculation.

Every stage is a pure function of its inputs and runs as a separate
task on the executor:

    to_inputs -> to_ground_motions -> to_curves (or to_cluster_curves)
    -> to_curve_set

A source set without any sources in range of the site
contributes nothing, i.e. its chain resolves to None.
"""

import logging
from concurrent.futures import Executor, Future
from typing import NamedTuple

import pandas as pd

from . import curves, hazard, tasks
from .config import CalcConfig
from .errors import GroundMotionError, HazardError, UnsupportedCalculationError
from .gmm import mean_col, std_col
from .results import HazardCurveSet
from .site import Site

logger = logging.getLogger(__name__)

CLUSTER_COLUMNS = ["cluster", "fault", "cluster_rate", "rate"]


class GroundMotions(NamedTuple):
    """The rupture inputs and the resulting GM parameters of each GMM"""

    inputs: pd.DataFrame
    gm_params: dict[str, pd.DataFrame]


def to_inputs(source_set, site: Site) -> pd.DataFrame | None:
    """
    Creates the rupture dataframe for all sources
    of the source set within range of the site

    Parameters
    ----------
    source_set: SourceSet
    site: Site

    Returns
    -------
    pd.DataFrame or None
        The rupture dataframe, ready for GM parameter
        computation, None if no source is within range
    """
    records = [
        cur_record
        for cur_source in source_set.location_iterable(site.location)
        for cur_record in cur_source.rupture_records(site.location)
    ]
    if len(records) == 0:
        logger.debug(
            f"Source set {source_set.name}: no ruptures within "
            f"{source_set.gmm_set.max_distance} km of site {site.name}"
        )
        return None

    rupture_df = pd.DataFrame.from_records(records).set_index("rupture_name")
    for cur_key, cur_value in site.properties.items():
        rupture_df[cur_key] = cur_value

    logger.debug(
        f"Source set {source_set.name}: {rupture_df.shape[0]} ruptures "
        f"for site {site.name}"
    )
    return rupture_df


def to_ground_motions(
    inputs: pd.DataFrame, source_set, ims: tuple[str, ...]
) -> GroundMotions:
    """
    Computes the GM parameters of every rupture with
    each GMM of the source set's GMM set

    Raises
    ------
    GroundMotionError
        If a GMM fails or does not return the
        mean and standard deviation of each IM
    """
    gm_params = {}
    for cur_gmm_name, cur_gmm in source_set.gmm_set.gmms.items():
        try:
            cur_result = cur_gmm(inputs, ims)
        except HazardError:
            raise
        except Exception as e:
            raise GroundMotionError(
                f"GMM {cur_gmm_name} failed for source set {source_set.name}: {e}"
            ) from e

        if not isinstance(cur_result, pd.DataFrame) or cur_result.shape[0] != inputs.shape[0]:
            raise GroundMotionError(
                f"GMM {cur_gmm_name} did not return GM parameters "
                f"for each rupture of source set {source_set.name}"
            )
        if missing_cols := [
            cur_col
            for cur_im in ims
            for cur_col in (mean_col(cur_im), std_col(cur_im))
            if cur_col not in cur_result.columns
        ]:
            raise GroundMotionError(
                f"GMM {cur_gmm_name} result for source set {source_set.name} "
                f"is missing the columns {missing_cols}"
            )

        # Align by rupture name, positional only for a default index
        if isinstance(cur_result.index, pd.RangeIndex):
            cur_result = cur_result.copy()
            cur_result.index = inputs.index
        elif cur_result.index.is_unique and set(cur_result.index) == set(inputs.index):
            cur_result = cur_result.reindex(inputs.index)
        else:
            raise GroundMotionError(
                f"GMM {cur_gmm_name} result for source set {source_set.name} "
                f"is not indexed by the rupture names"
            )
        gm_params[cur_gmm_name] = cur_result

    return GroundMotions(inputs, gm_params)


def _gm_prob_df(gm_params_df: pd.DataFrame, im: str, config: CalcConfig):
    return hazard.parametric_gm_excd_prob(
        config.im_levels[im],
        gm_params_df,
        mean_col=mean_col(im),
        std_col=std_col(im),
        exceedance_model=config.exceedance_model,
        truncation_level=config.truncation_level,
    )


def to_curves(
    ground_motions: GroundMotions, config: CalcConfig
) -> dict[str, dict[str, pd.Series]]:
    """
    Computes the hazard curve of each GMM and IM,
    summed over all ruptures

    Returns
    -------
    dict
        format: {gmm_name: {im: curve}}
    """
    rec_prob = ground_motions.inputs["rate"]
    return {
        cur_gmm_name: {
            cur_im: hazard.hazard_curve(
                _gm_prob_df(cur_gm_params_df, cur_im, config), rec_prob
            )
            for cur_im in config.ims
        }
        for cur_gmm_name, cur_gm_params_df in ground_motions.gm_params.items()
    }


def to_cluster_curves(
    ground_motions: GroundMotions, config: CalcConfig
) -> dict[str, dict[str, pd.Series]]:
    """
    Computes the hazard curve of each GMM and IM for cluster sources,
    the ruptures of each cluster are combined jointly
    before contributing to the curve

    Returns
    -------
    dict
        format: {gmm_name: {im: curve}}
    """
    cluster_df = ground_motions.inputs[CLUSTER_COLUMNS]
    return {
        cur_gmm_name: {
            cur_im: hazard.cluster_hazard_curve(
                _gm_prob_df(cur_gm_params_df, cur_im, config), cluster_df
            )
            for cur_im in config.ims
        }
        for cur_gmm_name, cur_gm_params_df in ground_motions.gm_params.items()
    }


def to_curve_set(
    gmm_curves: dict[str, dict[str, pd.Series]], source_set
) -> HazardCurveSet:
    """Combines the curves of the GMMs using the GMM weights"""
    weights = source_set.gmm_set.weights
    gmm_names = list(gmm_curves.keys())
    ims = list(gmm_curves[gmm_names[0]].keys())

    total_curves = {
        cur_im: curves.weighted_sum(
            [gmm_curves[cur_gmm][cur_im] for cur_gmm in gmm_names],
            [weights[cur_gmm] for cur_gmm in gmm_names],
        )
        for cur_im in ims
    }
    return HazardCurveSet(
        name=source_set.name,
        weight=source_set.weight,
        source_type=source_set.source_type,
        gmm_curves=gmm_curves,
        total_curves=total_curves,
    )


def unsupported_ground_motions(inputs: pd.DataFrame, source_set, ims: tuple[str, ...]):
    """Ground motion stage of source set types without a defined calculation"""
    raise UnsupportedCalculationError(
        f"Ground motion and hazard curve computation is not supported for "
        f"{source_set.source_type.name} source sets (source set {source_set.name})"
    )


def standard_chain(
    source_set, site: Site, config: CalcConfig, executor: Executor
) -> Future:
    """
    Schedules the calculation stages for fault,
    area, grid and slab source sets

    Returns
    -------
    Future
        Resolves to the HazardCurveSet, or None if
        the source set has no sources in range
    """
    inputs = tasks.submit(executor, to_inputs, source_set, site)
    ground_motions = tasks.then(
        executor, inputs, to_ground_motions, source_set, config.ims, skip_none=True
    )
    gmm_curves = tasks.then(
        executor, ground_motions, to_curves, config, skip_none=True
    )
    return tasks.then(executor, gmm_curves, to_curve_set, source_set, skip_none=True)


def cluster_chain(
    source_set, site: Site, config: CalcConfig, executor: Executor
) -> Future:
    """Schedules the calculation stages for cluster source sets"""
    inputs = tasks.submit(executor, to_inputs, source_set, site)
    ground_motions = tasks.then(
        executor, inputs, to_ground_motions, source_set, config.ims, skip_none=True
    )
    gmm_curves = tasks.then(
        executor, ground_motions, to_cluster_curves, config, skip_none=True
    )
    return tasks.then(executor, gmm_curves, to_curve_set, source_set, skip_none=True)


def system_chain(
    source_set, site: Site, config: CalcConfig, executor: Executor
) -> Future:
    """
    Schedules the calculation stages for system source sets.

    Only the input stage is available, if any rupture is in
    range the chain fails with an UnsupportedCalculationError.
    """
    inputs = tasks.submit(executor, to_inputs, source_set, site)
    return tasks.then(
        executor,
        inputs,
        unsupported_ground_motions,
        source_set,
        config.ims,
        skip_none=True,
    )
