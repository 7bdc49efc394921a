from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pandas as pd
import pytest

import seismic_hazard_calc as shc

SITE_LOCATION = shc.geo.Location(-43.53, 172.63)
NEAR_LOCATION = shc.geo.Location(-43.53, 172.73)
FAR_LOCATION = shc.geo.Location(-39.0, 176.0)


class ConstantGMM:
    """GMM that predicts the same median and standard deviation for every rupture"""

    def __init__(self, median: float, std: float):
        self.median = median
        self.std = std

    def __call__(self, rupture_df: pd.DataFrame, ims):
        data = {}
        for cur_im in ims:
            data[f"{cur_im}_mean"] = np.full(rupture_df.shape[0], np.log(self.median))
            data[f"{cur_im}_std_Total"] = np.full(rupture_df.shape[0], self.std)
        return pd.DataFrame(data=data, index=rupture_df.index)


class FailingGMM:
    def __call__(self, rupture_df: pd.DataFrame, ims):
        raise ValueError("GMM coefficients not available")


@pytest.fixture(scope="module")
def executor():
    with ThreadPoolExecutor(max_workers=4) as executor:
        yield executor


@pytest.fixture
def site() -> shc.site.Site:
    return shc.site.Site("CCCC", SITE_LOCATION, vs30=400.0, z1p0=0.3)


@pytest.fixture
def gmm_set() -> shc.gmm.GmmSet:
    return shc.gmm.GmmSet.single("constant", ConstantGMM(0.2, 0.5), max_distance=200.0)


@pytest.fixture
def config() -> shc.config.CalcConfig:
    return shc.config.CalcConfig(
        ims=["PGA", "pSA_1.0"],
        exceedance_model=shc.config.ExceedanceModel.TRUNCATION_OFF,
        im_levels={"PGA": [0.1, 0.2, 0.4], "pSA_1.0": [0.05, 0.2]},
    )


def point_source(
    name: str, location: shc.geo.Location, rate: float = 0.01, mag: float = 6.0
) -> shc.sources.PointSource:
    return shc.sources.PointSource(
        name, location, (shc.sources.Rupture(mag=mag, rate=rate, ztor=5.0, zbot=15.0),)
    )


def fault_source(
    name: str, location: shc.geo.Location, rates=(1.0,), mag: float = 7.0
) -> shc.sources.FaultSource:
    trace = (
        location,
        shc.geo.Location(location.lat + 0.1, location.lon + 0.05),
    )
    return shc.sources.FaultSource(
        name,
        trace,
        tuple(
            shc.sources.Rupture(mag=mag + 0.1 * i, rate=cur_rate, dip=60.0, zbot=12.0)
            for i, cur_rate in enumerate(rates)
        ),
    )


def grid_set(
    name: str,
    weight: float,
    sources,
    gmm_set: shc.gmm.GmmSet,
) -> shc.source_sets.GridSourceSet:
    return (
        shc.source_sets.GridSourceSet.builder()
        .name(name)
        .weight(weight)
        .scaling_relation(shc.sources.ScalingRelation.LEONARD2014)
        .gmms(gmm_set)
        .sources(sources)
        .build()
    )
