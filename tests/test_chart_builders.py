import pandas as pd
import pytest

import chart_builders as cb
import chart_math as cm


@pytest.fixture
def sales():
    return pd.DataFrame({
        "region": ["North", "South", "North", "South", "North", "East"],
        "amount": ["10", "20", "30", "", "50", "5"],
        "partner": ["A", "B", "A", "C", "B", "A"],
    })


@pytest.fixture
def prices():
    return pd.DataFrame({
        "open": ["10", "11", "12", "11", "13"],
        "high": ["12", "13", "14", "12", "15"],
        "low": ["9", "10", "11", "10", "12"],
        "close": ["11", "10", "13", "12", "14"],
        "volume": ["100", "200", "150", "120", "180"],
        "day": ["2023-05-01", "2023-05-02", "2023-05-03", "2023-05-04", "2023-05-05"],
    })


def test_box_plot_groups_by_category_in_order(sales):
    boxes = cb.build_box_plot(sales, "region", "amount")
    assert [b["category"] for b in boxes] == ["North", "South", "East"]
    assert boxes[0]["median"] == 30
    assert boxes[1]["count"] == 1


def test_violin_plot(sales):
    violins = cb.build_violin_plot(sales, "region", "amount")
    north = violins[0]
    assert north["values"] == [10.0, 30.0, 50.0]
    assert len(north["density"]) == cm.KDE_GRID_POINTS
    assert north["max_density"] == max(d for _, d in north["density"])
    assert north["statistics"]["median"] == 30


def test_waterfall_appends_total(sales):
    steps = cb.build_waterfall(sales, "region", "amount")
    assert len(steps) == len(sales) + 1
    total = steps[-1]
    assert total["category"] == "Total"
    assert total["type"] == "total"
    assert total["value"] == 115
    assert steps[-2]["end"] == total["end"]


def test_waterfall_limit(sales):
    steps = cb.build_waterfall(sales, "region", "amount", limit=2, append_total=False)
    assert [s["end"] for s in steps] == [10, 30]


def test_candlestick_synthetic_dates_and_indicators(prices):
    candles = cb.build_candlestick(prices, "open", "high", "low", "close", "volume", sma_periods=[3], ema_periods=[2], bollinger={"period": 3})
    assert candles["date"].iloc[0] == pd.Timestamp("2024-01-01")
    assert candles["bullish"].tolist() == [True, False, True, True, True]
    assert candles["sma3"].iloc[2] == pytest.approx((11 + 10 + 13) / 3)
    assert pd.isna(candles["sma3"].iloc[0])
    assert candles["ema2"].iloc[0] == 11
    assert {"bb_middle", "bb_upper", "bb_lower", "volume"} <= set(candles.columns)


def test_candlestick_uses_date_column(prices):
    candles = cb.build_candlestick(prices, "open", "high", "low", "close", date_col="day", limit=3)
    assert len(candles) == 3
    assert candles["date"].iloc[0] == pd.Timestamp("2023-05-01")


def test_network_nodes_and_sizes(sales):
    layout = cb.build_network(sales, "region", "partner")
    ids = [n["id"] for n in layout["nodes"]]
    assert ids == ["North", "A", "South", "B", "C", "East"]
    assert len(layout["links"]) == len(sales)
    for n in layout["nodes"]:
        assert 5 <= n["size"] <= 20
        assert 20 <= n["x"] <= 780


def test_network_weights_default_to_one(sales):
    layout = cb.build_network(sales, "region", "partner", weight="amount")
    assert [l["weight"] for l in layout["links"]][:4] == [10.0, 20.0, 30.0, 1.0]


def test_scatter_3d_scene():
    df = pd.DataFrame({"a": ["1", "2", "3"], "b": ["5", "5", "5"], "c": ["0", "10", "20"]})
    scene = cb.build_scatter_3d(df, "a", "b", "c")
    assert len(scene["points"]) == 3
    assert len(scene["grid"]) == 2 * (cm.GRID_DIVISIONS + 1)
    assert [a["label"] for a in scene["axes"]] == ["a", "b", "c"]
    xs = sorted(p["x"] for p in scene["points"])
    assert xs == [-1.0, 0.0, 1.0]
    assert all(p["y"] == 0.0 for p in scene["points"])


def test_dashboard_frame_tolerates_index_column():
    df = pd.DataFrame({"index": ["0", "1", "2"], "revenue": ["10", "x", "30"], "cost": ["1", "2", "3"]})
    head = cb.build_dashboard_frame(df, ["revenue", "cost"], limit=2)
    assert list(head.columns) == ["index", "revenue", "cost"]
    assert head.index.tolist() == [1, 2]
    assert head.index.name is None
    assert head["index"].tolist() == ["0", "1"]
    assert head["revenue"].tolist()[0] == 10.0
    assert pd.isna(head["revenue"].tolist()[1])
