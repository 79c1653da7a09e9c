import logging
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
import networkx as nx

import chart_math as cm

logger = logging.getLogger(__name__)

CHART_TYPES = {
    "box-plot": {"label": "Box Plot", "category": "Statistical"},
    "violin-plot": {"label": "Violin Plot", "category": "Statistical"},
    "waterfall": {"label": "Waterfall Chart", "category": "Business"},
    "candlestick": {"label": "Candlestick Chart", "category": "Financial"},
    "network": {"label": "Network Chart", "category": "Network"},
    "scatter-3d": {"label": "3D Scatter Plot", "category": "3D"},
}

WATERFALL_ROWS = 10
CANDLESTICK_ROWS = 50
NETWORK_ROWS = 50
SCATTER_3D_ROWS = 200
SYNTHETIC_START_DATE = "2024-01-01"
DASHBOARD_ROWS = 20

def _numbers(series: pd.Series) -> pd.Series:
    return pd.to_numeric(series, errors="coerce")

def _categories(df: pd.DataFrame, column: str) -> List:
    return list(pd.unique(df[column]))

# --- Dashboard ---

def build_dashboard_frame(df: pd.DataFrame, numeric: Sequence[str], limit: int = DASHBOARD_ROWS) -> pd.DataFrame:
    """First rows with numeric columns coerced, indexed 1..n so charts can plot against the index."""
    head = df.head(limit).reset_index(drop=True)
    for c in numeric: head[c] = _numbers(head[c])
    head.index = head.index + 1
    return head

# --- Statistical ---

def build_box_plot(df: pd.DataFrame, category: str, value: str, fence: Optional[float] = None) -> List[Dict]:
    values = _numbers(df[value])
    out = []
    for cat in _categories(df, category):
        stats = cm.box_stats(values[df[category] == cat].dropna().tolist(), fence=fence)
        if stats is None: continue
        out.append({"category": str(cat), **stats})
    return out

def build_violin_plot(df: pd.DataFrame, category: str, value: str, bandwidth: Union[str, float] = "auto") -> List[Dict]:
    values = _numbers(df[value])
    out = []
    for cat in _categories(df, category):
        vals = values[df[category] == cat].dropna().tolist()
        if not vals: continue
        density = cm.gaussian_kde(vals, bandwidth)
        out.append({
            "category": str(cat),
            "values": vals,
            "density": density,
            "statistics": cm.box_stats(vals),
            "max_density": max(d for _, d in density),
        })
    return out

# --- Business ---

def build_waterfall(df: pd.DataFrame, category: str, value: str, limit: int = WATERFALL_ROWS, append_total: bool = True) -> List[Dict]:
    head = df.head(limit)
    values = _numbers(head[value]).fillna(0.0)
    items = [
        {"category": str(cat), "value": float(v), "type": "positive" if v >= 0 else "negative"}
        for cat, v in zip(head[category].tolist(), values.tolist())
    ]
    if append_total and items:
        items.append({"category": "Total", "value": float(values.sum()), "type": "total"})
    return cm.waterfall(items)

# --- Financial ---

def build_candlestick(
    df: pd.DataFrame, open_col: str, high_col: str, low_col: str, close_col: str,
    volume_col: Optional[str] = None, date_col: Optional[str] = None, limit: int = CANDLESTICK_ROWS,
    sma_periods: Sequence[int] = (), ema_periods: Sequence[int] = (), bollinger: Optional[Dict] = None,
) -> pd.DataFrame:
    head = df.head(limit)
    out = pd.DataFrame({
        "open": _numbers(head[open_col]).fillna(0.0).to_numpy(),
        "high": _numbers(head[high_col]).fillna(0.0).to_numpy(),
        "low": _numbers(head[low_col]).fillna(0.0).to_numpy(),
        "close": _numbers(head[close_col]).fillna(0.0).to_numpy(),
    })
    if date_col:
        out["date"] = pd.to_datetime(head[date_col], errors="coerce").to_numpy()
    else:
        out["date"] = pd.date_range(SYNTHETIC_START_DATE, periods=len(out), freq="D")
    if volume_col:
        out["volume"] = _numbers(head[volume_col]).to_numpy()
    out["bullish"] = out["close"] >= out["open"]

    closes = out["close"].tolist()
    for p in sma_periods: out[f"sma{p}"] = cm.sma(closes, p)
    for p in ema_periods: out[f"ema{p}"] = cm.ema(closes, p)
    if bollinger:
        bands = cm.bollinger_bands(closes, bollinger.get("period", 20), bollinger.get("num_std", 2.0))
        for name, series in bands.items(): out[f"bb_{name}"] = series
    return out

# --- Network ---

def build_network(df: pd.DataFrame, source: str, target: str, weight: Optional[str] = None, limit: int = NETWORK_ROWS, config: Optional[cm.ForceConfig] = None, width: float = 800, height: float = 600, seed: Optional[int] = 42) -> Dict[str, List[Dict]]:
    cfg = config or cm.ForceConfig()
    head = df.head(limit)
    node_ids: List[str] = []
    links: List[Dict] = []
    for _, row in head.iterrows():
        s, t = str(row[source]), str(row[target])
        for n in (s, t):
            if n not in node_ids: node_ids.append(n)
        w = 1.0
        if weight:
            w = pd.to_numeric(row[weight], errors="coerce")
            w = float(w) if pd.notna(w) and w != 0 else 1.0
        links.append({"source": s, "target": t, "weight": w})

    G = nx.Graph()
    G.add_nodes_from(node_ids)
    G.add_edges_from((l["source"], l["target"]) for l in links)
    centrality = nx.degree_centrality(G)

    lo, hi = cfg.node_size_range
    nodes = [{"id": n, "label": n, "size": lo + centrality.get(n, 0.0) * (hi - lo)} for n in node_ids]
    logger.debug("Laying out network: %d nodes, %d links", len(nodes), len(links))
    return cm.force_layout(nodes, links, cfg, width, height, seed=seed)

# --- 3D ---

def _normalize(values: np.ndarray, extent: float) -> np.ndarray:
    lo, hi = np.nanmin(values), np.nanmax(values)
    if hi == lo: return np.zeros_like(values)
    return (values - lo) / (hi - lo) * 2 * extent - extent

def build_scatter_3d(df: pd.DataFrame, x: str, y: str, z: str, camera: Optional[cm.Camera] = None, limit: int = SCATTER_3D_ROWS, extent: float = cm.SCENE_EXTENT, labels: Optional[Sequence[str]] = None) -> Dict:
    cam = camera or cm.Camera()
    head = df.head(limit)
    cols = {}
    for key, col in (("x", x), ("y", y), ("z", z)):
        cols[key] = _normalize(_numbers(head[col]).fillna(0.0).to_numpy(dtype=float), extent) if len(head) else np.array([])

    points = [
        {"x": float(px), "y": float(py), "z": float(pz), "label": f"Point {i + 1}"}
        for i, (px, py, pz) in enumerate(zip(cols["x"], cols["y"], cols["z"]))
    ]
    axis_labels = tuple(labels) if labels else (x, y, z)
    return {
        "points": cm.project_points(points, cam),
        "grid": cm.grid_lines(cam, extent),
        "axes": cm.axis_lines(cam, extent, axis_labels),
    }
