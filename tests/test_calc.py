import numpy as np
import pandas as pd
import pytest
import scipy as sp

import seismic_hazard_calc as shc
from conftest import (
    FAR_LOCATION,
    NEAR_LOCATION,
    ConstantGMM,
    FailingGMM,
    fault_source,
    grid_set,
    point_source,
)

ScalingRelation = shc.sources.ScalingRelation
SourceType = shc.sources.SourceType


def expected_excd_prob(im_levels, median: float = 0.2, std: float = 0.5):
    return sp.stats.norm.sf((np.log(im_levels) - np.log(median)) / std)


def test_single_source(site, config, gmm_set, executor):
    model = shc.source_sets.HazardModel(
        "model", [grid_set("grid", 1.0, [point_source("point", NEAR_LOCATION)], gmm_set)]
    )

    result = shc.calc.hazard_curve(model, config, site, executor)

    assert result.site == site
    assert result.ims == ("PGA", "pSA_1.0")
    for cur_im in config.ims:
        cur_levels = config.im_levels[cur_im]
        assert np.array_equal(result.total_curves[cur_im].index.values, cur_levels)
        assert np.allclose(
            result.total_curves[cur_im].values, 0.01 * expected_excd_prob(cur_levels)
        )

    # The median level is exceeded with a probability of 0.5
    assert result.total_curves["PGA"].loc[0.2] == pytest.approx(0.005)

    assert len(result.curve_sets) == 1
    curve_set = result.curve_sets[0]
    assert curve_set.name == "grid"
    assert curve_set.weight == 1.0
    assert curve_set.source_type is SourceType.GRID
    assert list(curve_set.gmm_curves.keys()) == ["constant"]


def test_weighted_source_sets(site, config, gmm_set, executor):
    set_a = grid_set(
        "set_a",
        0.4,
        [point_source("point_a", NEAR_LOCATION, rate=0.01, mag=6.0)],
        gmm_set,
    )
    set_b = grid_set(
        "set_b",
        0.6,
        [
            point_source("point_b", NEAR_LOCATION, rate=0.002, mag=7.0),
            point_source("point_c", site.location, rate=0.004, mag=5.5),
        ],
        gmm_set,
    )

    # Each set on its own, with a weight of 1
    curves_a = shc.calc.hazard_curve(
        shc.source_sets.HazardModel("model_a", [set_a]), config, site, executor
    ).curve_sets[0].total_curves
    curves_b = shc.calc.hazard_curve(
        shc.source_sets.HazardModel("model_b", [set_b]), config, site, executor
    ).curve_sets[0].total_curves

    result = shc.calc.hazard_curve(
        shc.source_sets.HazardModel("model", [set_a, set_b]), config, site, executor
    )

    for cur_im in config.ims:
        assert np.allclose(
            result.total_curves[cur_im].values,
            0.4 * curves_a[cur_im].values + 0.6 * curves_b[cur_im].values,
        )

    assert [cur_set.name for cur_set in result.curve_sets] == ["set_a", "set_b"]
    breakdown = result.curve_set_df("PGA")
    assert list(breakdown.columns) == ["set_a", "set_b"]
    assert np.allclose(breakdown.sum(axis=1).values, result.total_curves["PGA"].values)


def test_no_sources_in_range(site, config, gmm_set, executor):
    model = shc.source_sets.HazardModel(
        "model",
        [
            grid_set("set_a", 0.4, [point_source("point_a", FAR_LOCATION)], gmm_set),
            grid_set("set_b", 0.6, [point_source("point_b", FAR_LOCATION)], gmm_set),
        ],
    )

    result = shc.calc.hazard_curve(model, config, site, executor)

    assert result.curve_sets == ()
    for cur_im in config.ims:
        assert np.array_equal(
            result.total_curves[cur_im].index.values, config.im_levels[cur_im]
        )
        assert np.all(result.total_curves[cur_im].values == 0.0)


def test_empty_source_set_skipped(site, config, gmm_set, executor):
    model = shc.source_sets.HazardModel(
        "model",
        [
            grid_set("empty", 0.5, [], gmm_set),
            grid_set("grid", 0.5, [point_source("point", NEAR_LOCATION)], gmm_set),
        ],
    )

    result = shc.calc.hazard_curve(model, config, site, executor)

    assert [cur_set.name for cur_set in result.curve_sets] == ["grid"]
    assert result.total_curves["PGA"].loc[0.2] == pytest.approx(0.5 * 0.005)


def test_failing_source_set(site, config, gmm_set, executor):
    failing_gmm_set = shc.gmm.GmmSet.single("failing", FailingGMM())
    model = shc.source_sets.HazardModel(
        "model",
        [
            grid_set("set_a", 0.3, [point_source("point_a", NEAR_LOCATION)], gmm_set),
            grid_set(
                "failing", 0.3, [point_source("point_b", NEAR_LOCATION)], failing_gmm_set
            ),
            grid_set("set_c", 0.4, [point_source("point_c", NEAR_LOCATION)], gmm_set),
        ],
    )

    future = shc.calc.hazard_curve_async(model, config, site, executor)
    with pytest.raises(shc.errors.GroundMotionError, match="failing") as exc_info:
        future.result(timeout=30)
    assert isinstance(exc_info.value.__cause__, ValueError)

    with pytest.raises(shc.errors.CalculationError):
        shc.calc.hazard_curve(model, config, site, executor)


def test_failing_source_set_out_of_range(site, config, gmm_set, executor):
    """The GMM is never called if no source is in range"""
    failing_gmm_set = shc.gmm.GmmSet.single("failing", FailingGMM())
    model = shc.source_sets.HazardModel(
        "model",
        [
            grid_set("set_a", 1.0, [point_source("point_a", NEAR_LOCATION)], gmm_set),
            grid_set(
                "failing", 1.0, [point_source("point_b", FAR_LOCATION)], failing_gmm_set
            ),
        ],
    )

    result = shc.calc.hazard_curve(model, config, site, executor)

    assert [cur_set.name for cur_set in result.curve_sets] == ["set_a"]


def test_invalid_gmm_result(site, config, executor):
    class MissingStdGMM(ConstantGMM):
        def __call__(self, rupture_df, ims):
            return super().__call__(rupture_df, ims).drop(columns=[f"{ims[0]}_std_Total"])

    model = shc.source_sets.HazardModel(
        "model",
        [
            grid_set(
                "grid",
                1.0,
                [point_source("point", NEAR_LOCATION)],
                shc.gmm.GmmSet.single("missing_std", MissingStdGMM(0.2, 0.5)),
            )
        ],
    )

    with pytest.raises(shc.errors.GroundMotionError, match="PGA_std_Total"):
        shc.calc.hazard_curve(model, config, site, executor)


def test_gmm_weights(site, config, executor):
    gmm_set = shc.gmm.GmmSet(
        {"low": ConstantGMM(0.1, 0.5), "high": ConstantGMM(0.4, 0.5)},
        {"low": 0.25, "high": 0.75},
    )
    model = shc.source_sets.HazardModel(
        "model", [grid_set("grid", 1.0, [point_source("point", NEAR_LOCATION)], gmm_set)]
    )

    result = shc.calc.hazard_curve(model, config, site, executor)

    levels = config.im_levels["PGA"]
    expected = 0.01 * (
        0.25 * expected_excd_prob(levels, median=0.1)
        + 0.75 * expected_excd_prob(levels, median=0.4)
    )
    assert np.allclose(result.total_curves["PGA"].values, expected)
    assert np.allclose(
        result.curve_sets[0].gmm_curves["low"]["PGA"].values,
        0.01 * expected_excd_prob(levels, median=0.1),
    )


def test_truncation(site, gmm_set, executor):
    config = shc.config.CalcConfig(
        ims=["PGA"],
        exceedance_model=shc.config.ExceedanceModel.TRUNCATION_UPPER_ONLY,
        truncation_level=2.0,
        # Median and 3 sigma above the median
        im_levels={"PGA": [0.2, 0.2 * np.exp(1.5)]},
    )
    model = shc.source_sets.HazardModel(
        "model", [grid_set("grid", 1.0, [point_source("point", NEAR_LOCATION)], gmm_set)]
    )

    result = shc.calc.hazard_curve(model, config, site, executor)

    upper_mass = sp.stats.norm.sf(2.0)
    assert result.total_curves["PGA"].iloc[0] == pytest.approx(
        0.01 * (0.5 - upper_mass) / (1 - upper_mass)
    )
    assert result.total_curves["PGA"].iloc[1] == 0.0


def _cluster_set(name: str, clusters, gmm_set) -> shc.source_sets.ClusterSourceSet:
    return (
        shc.source_sets.ClusterSourceSet.builder()
        .name(name)
        .weight(1.0)
        .scaling_relation(ScalingRelation.WC1994_LENGTH)
        .gmms(gmm_set)
        .sources(clusters)
        .build()
    )


def test_cluster_source_set(site, config, gmm_set, executor):
    cluster = shc.sources.ClusterSource(
        "cluster",
        0.002,
        (
            fault_source("near", NEAR_LOCATION, rates=(0.4, 0.6)),
            fault_source("far", FAR_LOCATION),
        ),
    )
    model = shc.source_sets.HazardModel("model", [_cluster_set("clusters", [cluster], gmm_set)])

    result = shc.calc.hazard_curve(model, config, site, executor)

    # Every rupture has the same exceedance probability P, so
    # each fault has a probability of P, and the cluster 1 - (1 - P)^2
    for cur_im in config.ims:
        cur_prob = expected_excd_prob(config.im_levels[cur_im])
        assert np.allclose(
            result.total_curves[cur_im].values, 0.002 * (1 - (1 - cur_prob) ** 2)
        )
    assert result.curve_sets[0].source_type is SourceType.CLUSTER


def test_cluster_source_set_out_of_range(site, config, gmm_set, executor):
    cluster = shc.sources.ClusterSource(
        "cluster", 0.002, (fault_source("far", FAR_LOCATION),)
    )
    model = shc.source_sets.HazardModel("model", [_cluster_set("clusters", [cluster], gmm_set)])

    result = shc.calc.hazard_curve(model, config, site, executor)

    assert result.curve_sets == ()
    assert np.all(result.total_curves["PGA"].values == 0.0)


def test_slab_source_set(site, config, gmm_set, executor):
    grid = grid_set("slab", 0.5, [point_source("point", NEAR_LOCATION)], gmm_set)
    slab = shc.source_sets.SlabSourceSet(grid)

    slab_result = shc.calc.hazard_curve(
        shc.source_sets.HazardModel("slab_model", [slab]), config, site, executor
    )
    grid_result = shc.calc.hazard_curve(
        shc.source_sets.HazardModel("grid_model", [grid]), config, site, executor
    )

    assert slab_result.curve_sets[0].source_type is SourceType.SLAB
    assert grid_result.curve_sets[0].source_type is SourceType.GRID
    assert np.allclose(
        slab_result.total_curves["PGA"].values, grid_result.total_curves["PGA"].values
    )


def _system_set(section_location, gmm_set) -> shc.source_sets.SystemSourceSet:
    return (
        shc.source_sets.SystemSourceSet.builder()
        .name("system")
        .weight(1.0)
        .scaling_relation(ScalingRelation.LEONARD2014)
        .gmms(gmm_set)
        .section(shc.sources.SystemSection("section", (section_location,)))
        .rupture([0], shc.sources.Rupture(mag=7.0, rate=0.001))
        .build()
    )


def test_system_source_set_unsupported(site, config, gmm_set, executor):
    model = shc.source_sets.HazardModel(
        "model",
        [
            grid_set("grid", 1.0, [point_source("point", NEAR_LOCATION)], gmm_set),
            _system_set(NEAR_LOCATION, gmm_set),
        ],
    )

    with pytest.raises(shc.errors.UnsupportedCalculationError, match="SYSTEM"):
        shc.calc.hazard_curve(model, config, site, executor)


def test_system_source_set_out_of_range(site, config, gmm_set, executor):
    model = shc.source_sets.HazardModel(
        "model",
        [
            grid_set("grid", 1.0, [point_source("point", NEAR_LOCATION)], gmm_set),
            _system_set(FAR_LOCATION, gmm_set),
        ],
    )

    result = shc.calc.hazard_curve(model, config, site, executor)

    assert [cur_set.name for cur_set in result.curve_sets] == ["grid"]


def test_system_inputs(site, gmm_set):
    inputs = shc.stages.to_inputs(_system_set(NEAR_LOCATION, gmm_set), site)

    assert inputs.shape[0] == 1
    assert inputs["sections"].iloc[0] == "section"
    assert inputs["rate"].iloc[0] == 0.001


def test_to_inputs(site, gmm_set):
    source_set = grid_set(
        "grid",
        1.0,
        [point_source("near", NEAR_LOCATION), point_source("far", FAR_LOCATION)],
        gmm_set,
    )

    inputs = shc.stages.to_inputs(source_set, site)

    assert list(inputs.index) == ["near--0"]
    row = inputs.loc["near--0"]
    assert row["rjb"] == pytest.approx(NEAR_LOCATION.distance_to(site.location))
    assert row["rrup"] == pytest.approx(np.sqrt(row["rjb"] ** 2 + 10.0**2))
    assert row["hypo_depth"] == 10.0
    assert row["vs30"] == site.vs30
    assert row["z1pt0"] == site.z1p0


def test_area_source_rates(site, config, gmm_set, executor):
    area = shc.sources.AreaSource(
        "area",
        (NEAR_LOCATION, shc.geo.Location(-43.6, 172.7), FAR_LOCATION, site.location),
        (shc.sources.Rupture(mag=6.0, rate=0.02, ztor=5.0, zbot=15.0),),
    )
    area_set = (
        shc.source_sets.AreaSourceSet.builder()
        .name("area")
        .weight(1.0)
        .scaling_relation(ScalingRelation.WC1994_AREA)
        .gmms(gmm_set)
        .source(area)
        .build()
    )

    inputs = shc.stages.to_inputs(area_set, site)
    assert inputs.shape[0] == 4
    assert np.allclose(inputs["rate"].values, 0.005)

    result = shc.calc.hazard_curve(
        shc.source_sets.HazardModel("model", [area_set]), config, site, executor
    )
    assert result.total_curves["PGA"].loc[0.2] == pytest.approx(0.02 * 0.5)


def test_hazard_curves_multiple_sites(site, config, gmm_set, executor):
    other_site = shc.site.Site("FAR", FAR_LOCATION, vs30=250.0)
    model = shc.source_sets.HazardModel(
        "model", [grid_set("grid", 1.0, [point_source("point", NEAR_LOCATION)], gmm_set)]
    )

    results = shc.calc.hazard_curves(
        model, config, [site, other_site], executor, show_progress=False
    )

    assert list(results.keys()) == [site.name, "FAR"]
    assert results[site.name].total_curves["PGA"].loc[0.2] == pytest.approx(0.005)
    assert results["FAR"].curve_sets == ()


def test_hazard_curves_duplicate_sites(site, config, gmm_set):
    model = shc.source_sets.HazardModel("model", [])

    with pytest.raises(shc.errors.ConfigurationError):
        shc.calc.hazard_curves(model, config, [site, site])


def test_default_executor(site, config, gmm_set):
    model = shc.source_sets.HazardModel(
        "model", [grid_set("grid", 1.0, [point_source("point", NEAR_LOCATION)], gmm_set)]
    )

    result = shc.calc.hazard_curve(model, config, site)

    assert result.total_curves["PGA"].loc[0.2] == pytest.approx(0.005)


class MagnitudeGMM:
    """Median proportional to the magnitude, rows returned in reverse order"""

    def __init__(self, index: str = "reversed"):
        self.index = index

    def __call__(self, rupture_df, ims):
        data = {}
        for cur_im in ims:
            data[f"{cur_im}_mean"] = np.log(rupture_df["mag"].values / 30.0)
            data[f"{cur_im}_std_Total"] = np.full(rupture_df.shape[0], 0.5)
        result = pd.DataFrame(data=data, index=rupture_df.index)

        if self.index == "reversed":
            return result.iloc[::-1]
        if self.index == "range":
            return result.reset_index(drop=True)
        return result.set_axis([f"other--{i}" for i in range(result.shape[0])])


def _magnitude_model(gmm) -> shc.source_sets.HazardModel:
    return shc.source_sets.HazardModel(
        "model",
        [
            grid_set(
                "grid",
                1.0,
                [
                    point_source("a", NEAR_LOCATION, rate=0.01, mag=5.0),
                    point_source("b", NEAR_LOCATION, rate=0.0, mag=8.0),
                ],
                shc.gmm.GmmSet.single("magnitude", gmm),
            )
        ],
    )


@pytest.mark.parametrize("index", ["reversed", "range"])
def test_gmm_result_aligned_by_rupture(site, config, executor, index: str):
    result = shc.calc.hazard_curve(
        _magnitude_model(MagnitudeGMM(index)), config, site, executor
    )

    # Only rupture a has a non-zero rate
    for cur_im in config.ims:
        assert np.allclose(
            result.total_curves[cur_im].values,
            0.01 * expected_excd_prob(config.im_levels[cur_im], median=5.0 / 30.0),
        )


def test_gmm_result_unknown_ruptures(site, config, executor):
    with pytest.raises(shc.errors.GroundMotionError, match="rupture names"):
        shc.calc.hazard_curve(
            _magnitude_model(MagnitudeGMM("other")), config, site, executor
        )
