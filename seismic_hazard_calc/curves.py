"""
Hazard curve helpers.

A hazard curve is a pd.Series with the IM levels as index
and the exceedance rates as values. Curves that are combined
have to share the exact same IM levels, so aggregation is a
point-wise operation, no interpolation is done.
"""

from collections.abc import Sequence

import numpy as np
import pandas as pd


def zero_curve(im_levels: np.ndarray) -> pd.Series:
    """Hazard curve with zero exceedance rate at every level"""
    return pd.Series(index=np.asarray(im_levels, dtype=float), data=0.0)


def check_levels(curves: Sequence[pd.Series], im_levels: np.ndarray | None = None):
    """
    Checks that all curves use the same IM levels

    Parameters
    ----------
    curves: Sequence[pd.Series]
    im_levels: array of floats, optional
        The expected IM levels, defaults to
        the levels of the first curve

    Raises
    ------
    ValueError
        If the IM levels of any curve differ
    """
    if im_levels is None:
        if len(curves) == 0:
            return
        im_levels = curves[0].index.values

    im_levels = np.asarray(im_levels, dtype=float)
    for cur_curve in curves:
        if cur_curve.size != im_levels.size or not np.array_equal(
            cur_curve.index.values.astype(float), im_levels
        ):
            raise ValueError(
                "Hazard curves have to share the same IM levels, "
                f"got {cur_curve.index.values} instead of {im_levels}"
            )


def weighted_sum(
    curves: Sequence[pd.Series],
    weights: Sequence[float],
    im_levels: np.ndarray | None = None,
) -> pd.Series:
    """
    Computes the weighted sum of the hazard curves,
    i.e. aggregate(x) = sum(weight_i * curve_i(x))

    Parameters
    ----------
    curves: Sequence[pd.Series]
        The hazard curves, all with the same IM levels
    weights: Sequence[float]
        The weight of each curve
    im_levels: array of floats, optional
        The IM levels of the curves, required
        when no curves are given, in which
        case a zero curve is returned

    Returns
    -------
    pd.Series
        The combined hazard curve
    """
    if len(curves) != len(weights):
        raise ValueError(
            f"Number of curves ({len(curves)}) and weights ({len(weights)}) differ"
        )
    if len(curves) == 0:
        if im_levels is None:
            raise ValueError("IM levels are required when there are no curves")
        return zero_curve(im_levels)

    check_levels(curves, im_levels)
    data = np.sum(
        np.stack([cur_curve.values for cur_curve in curves], axis=0)
        * np.asarray(weights, dtype=float).reshape(-1, 1),
        axis=0,
    )
    return pd.Series(index=curves[0].index.values, data=data)
