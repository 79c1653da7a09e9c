import math

import pandas as pd
import pytest

import chart_math as cm


def _trapezoid(points):
    total = 0.0
    for (x0, y0), (x1, y1) in zip(points, points[1:]):
        total += (x1 - x0) * (y0 + y1) / 2
    return total


class TestBoxStats:
    def test_even_length_quartiles(self):
        stats = cm.box_stats([8, 3, 1, 6, 2, 7, 5, 4])
        assert stats["min"] == 1
        assert stats["q1"] == 3
        assert stats["median"] == 4.5
        assert stats["q3"] == 7
        assert stats["max"] == 8
        assert stats["mean"] == 4.5
        assert stats["count"] == 8
        assert stats["outliers"] == []

    def test_odd_length_median(self):
        assert cm.box_stats([3, 1, 2])["median"] == 2

    def test_empty_returns_none(self):
        assert cm.box_stats([]) is None
        assert cm.box_stats([None, float("nan")]) is None

    def test_fence_reports_outliers(self):
        stats = cm.box_stats([1, 2, 3, 4, 5, 6, 7, 100], fence=1.5)
        assert stats["outliers"] == [100]

    def test_no_outliers_without_fence(self):
        assert cm.box_stats([1, 2, 3, 4, 5, 6, 7, 100])["outliers"] == []


class TestKde:
    def test_density_is_non_negative_and_integrates_near_one(self):
        values = list(range(50))
        density = cm.gaussian_kde(values)
        assert len(density) == cm.KDE_GRID_POINTS
        assert all(d >= 0 for _, d in density)
        assert 0.85 < _trapezoid(density) < 1.01

    def test_grid_spans_sample_range(self):
        density = cm.gaussian_kde([2.0, 4.0, 9.0])
        assert density[0][0] == 2.0
        assert density[-1][0] == 9.0

    def test_constant_values_collapse_to_single_point(self):
        density = cm.gaussian_kde([5, 5, 5])
        assert len(density) == 1
        x, d = density[0]
        assert x == 5
        assert d == pytest.approx(1 / math.sqrt(2 * math.pi))

    def test_empty_input(self):
        assert cm.gaussian_kde([]) == []

    def test_bandwidth_methods(self):
        values = [1, 2, 3, 4, 10]
        assert cm.kde_bandwidth(values, "auto") == pytest.approx(5 ** -0.2 * 9 * 0.2)
        assert cm.kde_bandwidth(values, 0.5) == 0.5
        assert cm.kde_bandwidth(values, "silverman") > 0
        with pytest.raises(ValueError):
            cm.kde_bandwidth(values, "scott")


class TestIndicators:
    def test_sma_leading_gaps(self):
        assert cm.sma([1, 2, 3, 4, 5], 3) == [None, None, 2.0, 3.0, 4.0]

    def test_sma_rejects_bad_period(self):
        with pytest.raises(ValueError):
            cm.sma([1, 2], 0)

    def test_ema_seeded_with_first_value(self):
        assert cm.ema([2, 4], 3) == [2.0, 3.0]
        assert cm.ema([1, 2, 3], 1) == [1.0, 2.0, 3.0]

    def test_bollinger_on_flat_series(self):
        bands = cm.bollinger_bands([10] * 5, period=3)
        assert bands["middle"][:2] == [None, None]
        assert bands["upper"][2:] == [10.0, 10.0, 10.0]
        assert bands["lower"][2:] == [10.0, 10.0, 10.0]


class TestCorrelation:
    def test_identical_and_inverted(self):
        xs = [1, 2, 3, 4, 5]
        assert cm.pearson(xs, xs) == pytest.approx(1.0)
        assert cm.pearson(xs, [5, 4, 3, 2, 1]) == pytest.approx(-1.0)

    def test_zero_variance_is_nan(self):
        assert math.isnan(cm.pearson([1, 1, 1], [1, 2, 3]))
        assert math.isnan(cm.pearson([1], [2]))

    def test_pairs_require_enough_values(self):
        df = pd.DataFrame({"a": ["1", "2", "3", "4", "5", "6"], "b": ["2", "4", "6", "8", "10", "12"], "c": ["1", "2", "", "", "", "3"]})
        pairs = cm.correlation_pairs(df, ["a", "b", "c"])
        assert pairs == [{"columns": ["a", "b"], "correlation": pytest.approx(1.0)}]

    def test_pairs_use_only_sampled_rows(self):
        xs = list(range(300))
        ys = xs[:100] + [-x for x in xs[100:]]
        df = pd.DataFrame({"x": xs, "y": ys})
        assert cm.correlation_pairs(df, ["x", "y"])[0]["correlation"] == pytest.approx(1.0)
        assert cm.correlation_pairs(df, ["x", "y"], sample_rows=300)[0]["correlation"] < 0


def test_waterfall_running_totals():
    steps = cm.waterfall([{"category": "a", "value": 10}, {"category": "b", "value": -3}, {"category": "c", "value": 5}])
    assert [s["end"] for s in steps] == [10, 7, 12]
    assert steps[1]["type"] == "negative"
    assert steps[1]["bar_start"] == 7
    assert steps[1]["bar_value"] == 3
    assert all(s["is_floating"] for s in steps)


def test_waterfall_total_resets():
    steps = cm.waterfall([{"value": 4}, {"value": 6}, {"value": 10, "type": "total"}])
    assert steps[-1]["bar_start"] == 0.0
    assert steps[-1]["cumulative"] == 10
    assert not steps[-1]["is_floating"]


class TestProjection:
    def test_origin_projects_to_center(self):
        p = cm.project_point(0, 0, 0, cm.Camera(), center=(400, 300))
        assert p["x"] == pytest.approx(400)
        assert p["y"] == pytest.approx(300)
        assert p["scale"] == pytest.approx(1.0)

    def test_no_rotation_keeps_axes(self):
        cam = cm.Camera(distance=10, rot_x=0, rot_y=0, rot_z=0)
        p = cm.project_point(1, 1, 0, cam, zoom=1)
        assert p["x"] == pytest.approx(1)
        assert p["y"] == pytest.approx(-1)

    def test_points_sorted_far_to_near(self):
        cam = cm.Camera(distance=10, rot_x=0, rot_y=0, rot_z=0)
        pts = cm.project_points([{"x": 0, "y": 0, "z": -1}, {"x": 0, "y": 0, "z": 2}], cam)
        assert [p["z"] for p in pts] == [2, -1]

    def test_perspective_scale_shrinks_with_depth(self):
        cam = cm.Camera(distance=10, rot_x=0, rot_y=0, rot_z=0)
        p = cm.project_point(1, 0, 10, cam, zoom=1)
        assert p["scale"] == pytest.approx(0.5)
        assert p["x"] == pytest.approx(0.5)
        assert p["z"] == pytest.approx(10)

    def test_rotated_camera(self):
        cam = cm.Camera().rotated(10, 20)
        assert cam.rot_y == 35
        assert cam.rot_x == 25

    def test_grid_and_axes(self):
        cam = cm.Camera()
        assert len(cm.grid_lines(cam, divisions=4)) == 10
        axes = cm.axis_lines(cam, labels=("a", "b", "c"))
        assert [a["label"] for a in axes] == ["a", "b", "c"]


class TestForceLayout:
    nodes = [{"id": str(i)} for i in range(6)]
    links = [{"source": "0", "target": str(i)} for i in range(1, 6)] + [{"source": "0", "target": "missing"}]

    def test_positions_stay_inside_canvas(self):
        out = cm.force_layout(self.nodes, self.links, width=400, height=300, seed=1)
        for n in out["nodes"]:
            assert 20 <= n["x"] <= 380
            assert 20 <= n["y"] <= 280

    def test_unknown_link_endpoints_are_dropped(self):
        out = cm.force_layout(self.nodes, self.links, seed=1)
        assert len(out["links"]) == 5
        assert "source_node" not in out["links"][0]

    def test_seed_is_deterministic(self):
        a = cm.force_layout(self.nodes, self.links, seed=7)
        b = cm.force_layout(self.nodes, self.links, seed=7)
        assert [(n["x"], n["y"]) for n in a["nodes"]] == [(n["x"], n["y"]) for n in b["nodes"]]

    def test_preset_positions_are_starting_points(self):
        nodes = [{"id": "a", "x": 100, "y": 200}, {"id": "b", "x": 300, "y": 150}]
        out = cm.force_layout(nodes, [], cm.ForceConfig(iterations=0), seed=3)
        assert [(n["x"], n["y"]) for n in out["nodes"]] == [(100.0, 200.0), (300.0, 150.0)]

    def test_preset_positions_ignore_seed(self):
        nodes = [{"id": "a", "x": 100, "y": 200}, {"id": "b", "x": 300, "y": 150}]
        a = cm.force_layout(nodes, [{"source": "a", "target": "b"}], seed=1)
        b = cm.force_layout(nodes, [{"source": "a", "target": "b"}], seed=2)
        assert [(n["x"], n["y"]) for n in a["nodes"]] == [(n["x"], n["y"]) for n in b["nodes"]]
