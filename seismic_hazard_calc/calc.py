"""Probabilistic seismic hazard calculation for a hazard model"""

import logging
from collections.abc import Sequence
from concurrent.futures import Executor, Future, ThreadPoolExecutor

from tqdm import tqdm

from . import curves, tasks
from .config import CalcConfig
from .errors import CalculationError, ConfigurationError, HazardError
from .results import HazardCurveSet, HazardResult
from .site import Site
from .source_sets import HazardModel, SourceSet

logger = logging.getLogger(__name__)


def to_hazard_result(
    chains: list[Future],
    source_sets: list[SourceSet],
    site: Site,
    config: CalcConfig,
) -> HazardResult:
    """
    Combines the curve sets of all source sets into
    the hazard result, weighting each by its source set weight

    Parameters
    ----------
    chains: list[Future]
        The finished calculation of each source set,
        resolving to its HazardCurveSet or None
    source_sets: list[SourceSet]
        The source sets, same order as chains
    site: Site
    config: CalcConfig

    Returns
    -------
    HazardResult

    Raises
    ------
    CalculationError
        If the calculation of any source set failed
    """
    curve_sets: list[HazardCurveSet] = []
    for cur_set, cur_chain in zip(source_sets, chains):
        if (exc := cur_chain.exception()) is not None:
            if isinstance(exc, HazardError):
                raise exc
            raise CalculationError(
                f"Hazard calculation of source set {cur_set.name} "
                f"for site {site.name} failed: {exc}"
            ) from exc

        if (cur_curve_set := cur_chain.result()) is not None:
            curve_sets.append(cur_curve_set)

    total_curves = {
        cur_im: curves.weighted_sum(
            [cur_curve_set.total_curves[cur_im] for cur_curve_set in curve_sets],
            [cur_curve_set.weight for cur_curve_set in curve_sets],
            im_levels=config.im_levels[cur_im],
        )
        for cur_im in config.ims
    }

    logger.info(
        f"Hazard for site {site.name}: {len(curve_sets)} of "
        f"{len(source_sets)} source sets contributed"
    )
    return HazardResult(site=site, total_curves=total_curves, curve_sets=curve_sets)


def hazard_curve_async(
    model: HazardModel, config: CalcConfig, site: Site, executor: Executor
) -> Future:
    """
    Schedules the hazard calculation for the site on the executor.

    The calculation of each source set runs independently, the
    stages of a source set run in order. The result is only
    available once every source set has finished.

    Parameters
    ----------
    model: HazardModel
    config: CalcConfig
    site: Site
    executor: Executor
        Runs the calculation stages, can be shared
        between concurrent calculations

    Returns
    -------
    Future
        Resolves to the HazardResult, or fails with the
        error of the first (in model order) failed source set
    """
    source_sets = list(model)
    logger.info(
        f"Computing hazard for site {site.name} using "
        f"{len(source_sets)} source sets of model {model.name}"
    )

    chains = [
        cur_set.contribution(site, config, executor) for cur_set in source_sets
    ]
    return tasks.then(
        executor,
        tasks.all_settled(chains),
        to_hazard_result,
        source_sets,
        site,
        config,
    )


def hazard_curve(
    model: HazardModel,
    config: CalcConfig,
    site: Site,
    executor: Executor | None = None,
) -> HazardResult:
    """
    Computes the hazard curves for the site,
    blocks until the calculation has completed

    Parameters
    ----------
    model: HazardModel
    config: CalcConfig
    site: Site
    executor: Executor, optional
        The executor to use, if not specified
        a thread pool is created for this calculation

    Returns
    -------
    HazardResult

    Raises
    ------
    CalculationError
        If the calculation of any source set failed,
        no partial result is returned
    """
    if executor is None:
        with ThreadPoolExecutor() as executor:
            return hazard_curve_async(model, config, site, executor).result()

    return hazard_curve_async(model, config, site, executor).result()


def hazard_curves(
    model: HazardModel,
    config: CalcConfig,
    sites: Sequence[Site],
    executor: Executor | None = None,
    show_progress: bool = True,
) -> dict[str, HazardResult]:
    """
    Computes the hazard curves for multiple sites,
    the calculations share the model and the executor

    Parameters
    ----------
    model: HazardModel
    config: CalcConfig
    sites: Sequence[Site]
        The sites, names have to be unique
    executor: Executor, optional
        The executor to use, if not specified
        a thread pool is created for these calculations
    show_progress: bool, optional

    Returns
    -------
    dict[str, HazardResult]
        The result of each site, keyed by site name

    Raises
    ------
    CalculationError
        If the calculation of any site failed
    """
    site_names = [cur_site.name for cur_site in sites]
    if len(set(site_names)) != len(site_names):
        raise ConfigurationError("Site names have to be unique")

    def _run(executor: Executor):
        futures = {
            cur_site.name: hazard_curve_async(model, config, cur_site, executor)
            for cur_site in sites
        }
        return {
            cur_name: cur_future.result()
            for cur_name, cur_future in tqdm(
                futures.items(), desc="Sites", disable=not show_progress
            )
        }

    if executor is None:
        with ThreadPoolExecutor() as executor:
            return _run(executor)
    return _run(executor)
