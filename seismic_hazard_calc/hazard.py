"""Module for computing the seismic hazard"""

from typing import Union

import numpy as np
import pandas as pd
import scipy as sp

from .config import ExceedanceModel


def parametric_gm_excd_prob(
    im_levels: Union[float, np.ndarray],
    im_params: pd.DataFrame,
    mean_col: str = "mu",
    std_col: str = "sigma",
    exceedance_model: ExceedanceModel = ExceedanceModel.TRUNCATION_OFF,
    truncation_level: float = 3.0,
):
    """
    Computes the GM exceedance probability for each IM level over all
    ruptures based on the parametric GM predictions (e.g. empirical GMM)

    Parameters
    ----------
    im_levels: float or array
        The IM level(s) for which to calculate the ground motion
        exceedance probability
    im_params: pd.DataFrame
        The IM distribution parameters for each rupture
        format: index = rupture_name
    mean_col: str, optional
        Name of the column containing the mean lnIM values
    std_col: str, optional
        Name of the column containing the standard deviation of lnIM values
    exceedance_model: ExceedanceModel, optional
        How the lnIM distribution is truncated,
        defaults to no truncation
    truncation_level: float, optional
        The number of standard deviations at which
        the distribution is truncated

    Returns
    -------
    pd.DataFrame
        The exceedance probability for each rupture at each IM level
        shape: [n_ruptures, n_im_levels]
    """
    im_levels = np.asarray(im_levels).reshape(1, -1)

    results = sp.stats.norm.sf(
        np.log(im_levels),
        im_params[mean_col].values.reshape(-1, 1),
        im_params[std_col].values.reshape(-1, 1),
    )

    if exceedance_model is not ExceedanceModel.TRUNCATION_OFF:
        # Probability mass above the truncation level
        upper_mass = sp.stats.norm.sf(truncation_level)
        if exceedance_model is ExceedanceModel.TRUNCATION_UPPER_ONLY:
            results = (results - upper_mass) / (1 - upper_mass)
        else:
            results = (results - upper_mass) / (1 - 2 * upper_mass)
        results = np.clip(results, 0.0, 1.0)

    return pd.DataFrame(
        index=im_params.index.values, data=results, columns=im_levels.reshape(-1)
    )


def hazard_curve(gm_prob_df: pd.DataFrame, rec_prob: pd.Series):
    """
    Calculates the exceedance probabilities for the
    specified IM values (via the gm_prob_df)

    Note: All ruptures specified in gm_prob_df have to exist
    in rec_prob

    Parameters
    ----------
    gm_prob_df: pd.DataFrame
        The ground motion probabilities for every rupture
        for every IM level.
        format: index = rupture_name, columns = IM_levels
    rec_prob: pd.Series
        The recurrence probabilities of the ruptures
        format: index = rupture_name, values = probability

    Returns
    -------
    pd.Series
        The exceedance probabilities for the different IM levels
        format: index = IM_levels, values = exceedance probability
    """
    data = np.sum(
        gm_prob_df.values * rec_prob[gm_prob_df.index.values].values.reshape(-1, 1),
        axis=0,
    )
    return pd.Series(index=gm_prob_df.columns.values, data=data)


def cluster_hazard_curve(gm_prob_df: pd.DataFrame, cluster_df: pd.DataFrame):
    """
    Calculates the exceedance rates for cluster sources,
    where the faults of a cluster rupture jointly.

    For each fault the exceedance probability is the weighted
    sum over its magnitude alternatives, the faults of a cluster
    are combined as P = 1 - prod(1 - P_fault), which is then
    scaled by the cluster rate.

    Parameters
    ----------
    gm_prob_df: pd.DataFrame
        The ground motion probabilities for every rupture
        for every IM level.
        format: index = rupture_name, columns = IM_levels
    cluster_df: pd.DataFrame
        The cluster details of each rupture
        format: index = rupture_name,
        columns = [cluster, fault, cluster_rate, rate]
        where rate is the weight of the magnitude alternative

    Returns
    -------
    pd.Series
        The exceedance rates for the different IM levels
        format: index = IM_levels, values = exceedance rate
    """
    cluster_df = cluster_df.loc[gm_prob_df.index.values]

    # Exceedance probability per fault
    fault_prob_df = (
        gm_prob_df.mul(cluster_df["rate"].values, axis=0)
        .groupby([cluster_df["cluster"].values, cluster_df["fault"].values])
        .sum()
    )

    # Joint exceedance probability per cluster
    cluster_prob_df = 1 - (1 - fault_prob_df.clip(upper=1.0)).groupby(level=0).prod()

    cluster_rates = cluster_df.groupby("cluster")["cluster_rate"].first()
    data = np.sum(
        cluster_prob_df.values
        * cluster_rates[cluster_prob_df.index.values].values.reshape(-1, 1),
        axis=0,
    )
    return pd.Series(index=gm_prob_df.columns.values, data=data)
