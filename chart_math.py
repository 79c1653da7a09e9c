import math
import random
from dataclasses import dataclass, field
from typing import Dict, List, Tuple, Iterable, Optional, Sequence, Union

import numpy as np
import pandas as pd

KDE_GRID_POINTS = 100
CORRELATION_SAMPLE_ROWS = 100
CORRELATION_MIN_VALUES = 5
STRONG_CORRELATION = 0.7

GRID_DIVISIONS = 20
SCENE_EXTENT = 1.0

LAYOUT_ITERATIONS = 100
LAYOUT_LINK_DISTANCE = 50.0
LAYOUT_STEP = 0.1
LAYOUT_DAMPING = 0.9
LAYOUT_PADDING = 20.0

Number = Union[int, float]

# --- Distribution statistics ---

def _clean(values: Iterable) -> List[float]:
    out = []
    for v in values:
        if v is None: continue
        try: f = float(v)
        except (TypeError, ValueError): continue
        if math.isnan(f): continue
        out.append(f)
    return out

def box_stats(values: Iterable[Number], fence: Optional[float] = None) -> Optional[Dict]:
    """
    Five-number summary using floor-indexed quartiles (no interpolation).
    Outliers are only reported when a Tukey fence multiplier is given.
    """
    s = sorted(_clean(values))
    n = len(s)
    if n == 0: return None

    mid = n // 2
    median = (s[mid - 1] + s[mid]) / 2 if n % 2 == 0 else s[mid]
    q1 = s[math.floor(n * 0.25)]
    q3 = s[math.floor(n * 0.75)]

    outliers: List[float] = []
    if fence is not None:
        iqr = q3 - q1
        low, high = q1 - fence * iqr, q3 + fence * iqr
        outliers = [v for v in s if v < low or v > high]

    return {
        "min": s[0], "q1": q1, "median": median, "q3": q3, "max": s[-1],
        "mean": sum(s) / n, "count": n, "outliers": outliers,
    }

def kde_bandwidth(values: Sequence[Number], method: Union[str, float] = "auto") -> float:
    if not isinstance(method, str): return float(method)
    s = _clean(values)
    n = len(s)
    if n == 0: return 0.0
    if method == "auto":
        return n ** (-1 / 5) * (max(s) - min(s)) * 0.2
    if method == "silverman":
        arr = np.asarray(s)
        std = float(arr.std(ddof=1)) if n > 1 else 0.0
        iqr = float(np.percentile(arr, 75) - np.percentile(arr, 25))
        spread = min(std, iqr / 1.34) if iqr > 0 else std
        return 0.9 * spread * n ** (-1 / 5)
    raise ValueError(f"Unknown bandwidth method: {method}")

def gaussian_kde(values: Sequence[Number], bandwidth: Union[str, float] = "auto", points: int = KDE_GRID_POINTS) -> List[Tuple[float, float]]:
    s = _clean(values)
    if not s: return []
    h = kde_bandwidth(s, bandwidth)
    lo, hi = min(s), max(s)
    if h <= 0: h = 1.0
    grid = np.array([lo]) if hi == lo else np.linspace(lo, hi, points)

    samples = np.asarray(s)
    u = (grid[:, None] - samples[None, :]) / h
    density = np.exp(-0.5 * u * u).sum(axis=1) / (math.sqrt(2 * math.pi) * len(s) * h)
    return [(float(x), float(d)) for x, d in zip(grid, density)]

# --- Time-series indicators ---

def sma(values: Sequence[Number], period: int) -> List[Optional[float]]:
    if period < 1: raise ValueError("period must be >= 1")
    out: List[Optional[float]] = []
    window_sum = 0.0
    for i, v in enumerate(values):
        window_sum += v
        if i >= period: window_sum -= values[i - period]
        out.append(window_sum / period if i >= period - 1 else None)
    return out

def ema(values: Sequence[Number], period: int) -> List[float]:
    if period < 1: raise ValueError("period must be >= 1")
    k = 2 / (period + 1)
    out: List[float] = []
    for i, v in enumerate(values):
        if i == 0: out.append(float(v))
        else: out.append((v - out[-1]) * k + out[-1])
    return out

def bollinger_bands(values: Sequence[Number], period: int = 20, num_std: float = 2.0) -> Dict[str, List[Optional[float]]]:
    middle = sma(values, period)
    upper: List[Optional[float]] = []
    lower: List[Optional[float]] = []
    for i, m in enumerate(middle):
        if m is None:
            upper.append(None); lower.append(None)
            continue
        window = values[i - period + 1:i + 1]
        sd = math.sqrt(sum((v - m) ** 2 for v in window) / period)
        upper.append(m + num_std * sd)
        lower.append(m - num_std * sd)
    return {"middle": middle, "upper": upper, "lower": lower}

# --- Correlation ---

def pearson(xs: Sequence[Number], ys: Sequence[Number]) -> float:
    pairs = [(x, y) for x, y in zip(_as_floats(xs), _as_floats(ys)) if not (math.isnan(x) or math.isnan(y))]
    n = len(pairs)
    if n < 2: return float("nan")
    mx = sum(p[0] for p in pairs) / n
    my = sum(p[1] for p in pairs) / n
    num = den_x = den_y = 0.0
    for x, y in pairs:
        dx, dy = x - mx, y - my
        num += dx * dy
        den_x += dx * dx
        den_y += dy * dy
    if den_x == 0 or den_y == 0: return float("nan")
    return num / math.sqrt(den_x * den_y)

def _as_floats(values: Iterable) -> List[float]:
    out = []
    for v in values:
        try: out.append(float(v))
        except (TypeError, ValueError): out.append(float("nan"))
    return out

def correlation_pairs(df: pd.DataFrame, columns: List[str], sample_rows: int = CORRELATION_SAMPLE_ROWS, min_values: int = CORRELATION_MIN_VALUES) -> List[Dict]:
    sample = df.head(sample_rows)
    numeric = {c: pd.to_numeric(sample[c], errors="coerce") for c in columns if c in sample.columns}
    results = []
    names = list(numeric.keys())
    for i, c1 in enumerate(names):
        for c2 in names[i + 1:]:
            if numeric[c1].notna().sum() <= min_values or numeric[c2].notna().sum() <= min_values: continue
            r = pearson(numeric[c1].tolist(), numeric[c2].tolist())
            if math.isnan(r): continue
            results.append({"columns": [c1, c2], "correlation": r})
    return results

# --- Waterfall ---

def waterfall(items: Iterable[Dict]) -> List[Dict]:
    """
    Items carry `value` and `type` ('positive' | 'negative' | 'total').
    A 'total' item resets the running value to its own value.
    """
    cumulative = 0.0
    out = []
    for item in items:
        value = float(item.get("value", 0) or 0)
        kind = item.get("type") or ("positive" if value >= 0 else "negative")
        start = cumulative
        if kind == "total": cumulative = value
        else: cumulative += value
        end = cumulative
        out.append({
            **item,
            "type": kind,
            "start": start,
            "end": end,
            "cumulative": cumulative,
            "bar_value": value if kind == "total" else abs(value),
            "bar_start": 0.0 if kind == "total" else (start if value >= 0 else end),
            "is_floating": kind != "total",
        })
    return out

# --- 3D projection ---

@dataclass
class Camera:
    distance: float = 500.0
    rot_x: float = 15.0
    rot_y: float = 30.0
    rot_z: float = 0.0

    def rotated(self, dx: float, dy: float) -> "Camera":
        """Drag rotation: horizontal motion turns around Y, vertical around X."""
        return Camera(self.distance, self.rot_x + dy * 0.5, self.rot_y + dx * 0.5, self.rot_z)

def project_point(x: float, y: float, z: float, camera: Camera, center: Tuple[float, float] = (0.0, 0.0), zoom: float = 100.0) -> Dict[str, float]:
    rx, ry, rz = (math.radians(a) for a in (camera.rot_x, camera.rot_y, camera.rot_z))

    y1 = y * math.cos(rx) - z * math.sin(rx)
    z1 = y * math.sin(rx) + z * math.cos(rx)
    x1 = x

    x2 = x1 * math.cos(ry) + z1 * math.sin(ry)
    z2 = -x1 * math.sin(ry) + z1 * math.cos(ry)
    y2 = y1

    x3 = x2 * math.cos(rz) - y2 * math.sin(rz)
    y3 = x2 * math.sin(rz) + y2 * math.cos(rz)
    z3 = z2

    scale = camera.distance / (camera.distance + z3)
    return {"x": center[0] + x3 * scale * zoom, "y": center[1] - y3 * scale * zoom, "z": z3, "scale": scale}

def project_points(points: Iterable[Dict], camera: Camera, center: Tuple[float, float] = (0.0, 0.0), zoom: float = 100.0) -> List[Dict]:
    projected = [{**p, "projected": project_point(p["x"], p["y"], p["z"], camera, center, zoom)} for p in points]
    # painter's order: farthest (largest depth) first
    projected.sort(key=lambda p: p["projected"]["z"], reverse=True)
    return projected

def grid_lines(camera: Camera, extent: float = SCENE_EXTENT, divisions: int = GRID_DIVISIONS, center: Tuple[float, float] = (0.0, 0.0), zoom: float = 100.0) -> List[Tuple[Dict, Dict]]:
    lines = []
    step = 2 * extent / divisions
    for i in range(divisions + 1):
        c = (i - divisions / 2) * step
        lines.append((project_point(c, -extent, 0, camera, center, zoom), project_point(c, extent, 0, camera, center, zoom)))
        lines.append((project_point(-extent, c, 0, camera, center, zoom), project_point(extent, c, 0, camera, center, zoom)))
    return lines

def axis_lines(camera: Camera, extent: float = SCENE_EXTENT, labels: Tuple[str, str, str] = ("X", "Y", "Z"), center: Tuple[float, float] = (0.0, 0.0), zoom: float = 100.0) -> List[Dict]:
    axes = [
        ((-extent, 0, 0), (extent, 0, 0), "red"),
        ((0, -extent, 0), (0, extent, 0), "green"),
        ((0, 0, -extent), (0, 0, extent), "blue"),
    ]
    return [
        {"label": label, "color": color, "start": project_point(*start, camera, center, zoom), "end": project_point(*end, camera, center, zoom)}
        for (start, end, color), label in zip(axes, labels)
    ]

# --- Force-directed layout ---

@dataclass
class ForceConfig:
    charge: float = 0.1
    link: float = 0.01
    center: float = 0.001
    iterations: int = LAYOUT_ITERATIONS
    link_distance: float = LAYOUT_LINK_DISTANCE
    damping: float = LAYOUT_DAMPING
    padding: float = LAYOUT_PADDING
    node_size_range: Tuple[float, float] = field(default=(5.0, 20.0))

def force_layout(nodes: List[Dict], links: List[Dict], config: Optional[ForceConfig] = None, width: float = 800, height: float = 600, seed: Optional[int] = None) -> Dict[str, List[Dict]]:
    """
    Naive O(n^2) spring layout: charge repulsion, spring attraction, a weak
    pull to the canvas center and velocity damping, run for a fixed number
    of iterations. Positions stay `padding` px inside the canvas.
    """
    cfg = config or ForceConfig()
    rng = random.Random(seed)
    sim = []
    for node in nodes:
        x = node.get("x")
        y = node.get("y")
        sim.append({
            **node,
            "x": float(x) if x is not None else rng.random() * width,
            "y": float(y) if y is not None else rng.random() * height,
            "vx": 0.0, "vy": 0.0,
        })
    by_id = {n["id"]: n for n in sim}
    sim_links = [
        {**link, "source_node": by_id[link["source"]], "target_node": by_id[link["target"]]}
        for link in links if link.get("source") in by_id and link.get("target") in by_id
    ]

    cx, cy = width / 2, height / 2
    for _ in range(cfg.iterations):
        for i in range(len(sim)):
            a = sim[i]
            for j in range(i + 1, len(sim)):
                b = sim[j]
                dx = b["x"] - a["x"]
                dy = b["y"] - a["y"]
                dist = math.sqrt(dx * dx + dy * dy) or 1.0
                force = cfg.charge / (dist * dist)
                fx, fy = dx / dist * force, dy / dist * force
                a["vx"] -= fx; a["vy"] -= fy
                b["vx"] += fx; b["vy"] += fy

        for link in sim_links:
            s, t = link["source_node"], link["target_node"]
            dx = t["x"] - s["x"]
            dy = t["y"] - s["y"]
            dist = math.sqrt(dx * dx + dy * dy) or 1.0
            force = (dist - cfg.link_distance) * cfg.link
            fx, fy = dx / dist * force * 0.5, dy / dist * force * 0.5
            s["vx"] += fx; s["vy"] += fy
            t["vx"] -= fx; t["vy"] -= fy

        for n in sim:
            n["vx"] += (cx - n["x"]) * cfg.center
            n["vy"] += (cy - n["y"]) * cfg.center

        for n in sim:
            n["x"] += n["vx"] * LAYOUT_STEP
            n["y"] += n["vy"] * LAYOUT_STEP
            n["vx"] *= cfg.damping
            n["vy"] *= cfg.damping
            n["x"] = max(cfg.padding, min(width - cfg.padding, n["x"]))
            n["y"] = max(cfg.padding, min(height - cfg.padding, n["y"]))

    out_links = [{k: v for k, v in link.items() if k not in ("source_node", "target_node")} for link in sim_links]
    return {"nodes": sim, "links": out_links}
