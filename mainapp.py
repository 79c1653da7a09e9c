#  DATASET INSIGHT DASHBOARD
#  Architecture: in-memory store + pure chart math + Streamlit views
#
import gc
import logging
from typing import Dict, List, Optional

import numpy as np
import pandas as pd
import streamlit as st
import matplotlib.pyplot as plt
from streamlit_agraph import agraph, Node, Edge, Config

import data_processor as dp
import chart_math as cm
import chart_builders as cb
import recommender as rec
from app_state import AppStore, Dataset, ChatMessage, VIEWS
from ai_service import InsightService, AIServiceError, QUICK_ACTIONS, INSIGHT_TYPES, ERROR_REPLY

# ==========================================
# ⚙️ CONSTANTS & CONFIGURATION
# ==========================================

PALETTE = ["#00d4ff", "#7c3aed", "#10b981", "#f59e0b", "#ef4444"]
WATERFALL_COLORS = {"positive": "#10b981", "negative": "#ef4444", "total": "#7c3aed"}
VIEW_LABELS = {
    "upload": "📤 Upload",
    "datasets": "🗂️ Datasets",
    "dashboard": "📊 Dashboard",
    "charts": "📈 Advanced Charts",
    "insights": "💡 AI Insights",
    "chat": "💬 Chat",
}

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("InsightDashboard")

# Session State Init
if 'store' not in st.session_state: st.session_state['store'] = AppStore()
if 'upload_status' not in st.session_state: st.session_state['upload_status'] = "idle"
if 'upload_error' not in st.session_state: st.session_state['upload_error'] = ""
if 'last_upload_hash' not in st.session_state: st.session_state['last_upload_hash'] = None

store: AppStore = st.session_state['store']

def reset_store():
    st.session_state['store'] = AppStore()
    st.session_state['upload_status'] = "idle"
    st.session_state['last_upload_hash'] = None
    gc.collect()

# ==========================================
# 🛠️ HELPERS
# ==========================================

def get_ai_service(latency: float) -> InsightService:
    return InsightService(delay_range=(latency * 0.5, latency * 1.5))

def handle_upload(file_obj) -> Optional[Dataset]:
    try:
        processed = dp.process_file(file_obj.getvalue(), file_obj.name)
    except dp.UnsupportedFormatError as e:
        logger.warning("Rejected upload %s: %s", file_obj.name, e)
        st.session_state['upload_status'] = "error"
        st.session_state['upload_error'] = str(e)
        return None
    except (dp.ReaderError, dp.ValidationError) as e:
        logger.error("Upload failed for %s: %s", file_obj.name, e)
        st.session_state['upload_status'] = "error"
        st.session_state['upload_error'] = str(e)
        return None

    dataset = Dataset.from_processed(file_obj.name, processed)
    store.add_dataset(dataset)
    st.session_state['upload_status'] = "success"
    st.session_state['upload_error'] = ""
    return dataset

def quality_color(q: int) -> str:
    if q >= 80: return "green"
    if q >= 60: return "orange"
    return "red"

def quality_label(q: int) -> str:
    if q >= 80: return "High quality"
    if q >= 60: return "Fair quality"
    return "Low quality"

def column_select(label: str, options: List[str], key: str, default: Optional[str] = None, optional: bool = False) -> Optional[str]:
    choices = (["(none)"] if optional else []) + list(options)
    if not choices:
        st.selectbox(label, ["(no suitable columns)"], key=key, disabled=True)
        return None
    idx = choices.index(default) if default in choices else 0
    choice = st.selectbox(label, choices, index=idx, key=key)
    return None if choice == "(none)" else choice

# ==========================================
# 🎨 CHART RENDERERS (matplotlib)
# ==========================================

def render_box_plot(boxes: List[Dict], value_label: str, show_mean: bool):
    fig, ax = plt.subplots(figsize=(9, 4.5))
    for i, b in enumerate(boxes):
        color = PALETTE[i % len(PALETTE)]
        ax.vlines(i, b["min"], b["max"], color="#808080", lw=1.5)
        ax.add_patch(plt.Rectangle((i - 0.25, b["q1"]), 0.5, b["q3"] - b["q1"], facecolor=color, alpha=0.7, edgecolor=color))
        ax.hlines(b["median"], i - 0.25, i + 0.25, color="#111111", lw=2.5)
        if show_mean: ax.plot(i, b["mean"], "o", color="white", mec="#111111", ms=5)
        if b["outliers"]:
            jitter = (np.random.default_rng(i).random(len(b["outliers"])) - 0.5) * 0.15
            ax.plot(i + jitter, b["outliers"], ".", color="#d62728", alpha=0.7)
    ax.set_xticks(range(len(boxes)))
    ax.set_xticklabels([b["category"] for b in boxes], rotation=30, ha="right")
    ax.set_ylabel(value_label)
    ax.grid(True, alpha=0.2)
    plt.tight_layout()
    return fig

def render_violin_plot(violins: List[Dict], value_label: str):
    fig, ax = plt.subplots(figsize=(9, 4.5))
    for i, v in enumerate(violins):
        xs = np.array([p[0] for p in v["density"]])
        ds = np.array([p[1] for p in v["density"]])
        half = ds / v["max_density"] * 0.4 if v["max_density"] > 0 else ds
        color = PALETTE[i % len(PALETTE)]
        ax.fill_betweenx(xs, i - half, i + half, color=color, alpha=0.6)
        s = v["statistics"]
        ax.vlines(i, s["q1"], s["q3"], color="#111111", lw=4)
        ax.plot(i, s["median"], "o", color="white", ms=5)
    ax.set_xticks(range(len(violins)))
    ax.set_xticklabels([v["category"] for v in violins], rotation=30, ha="right")
    ax.set_ylabel(value_label)
    ax.grid(True, alpha=0.2)
    plt.tight_layout()
    return fig

def render_waterfall(steps: List[Dict]):
    fig, ax = plt.subplots(figsize=(9, 4.5))
    for i, s in enumerate(steps):
        ax.bar(i, s["bar_value"], bottom=s["bar_start"], color=WATERFALL_COLORS[s["type"]], edgecolor="#222222", lw=0.5)
        ax.text(i, s["bar_start"] + s["bar_value"], f"{s['value']:,.0f}", ha="center", va="bottom", fontsize=8)
        if i < len(steps) - 1:
            ax.hlines(s["end"], i + 0.4, i + 0.6, color="#808080", lw=1, linestyles="dashed")
    ax.set_xticks(range(len(steps)))
    ax.set_xticklabels([s["category"] for s in steps], rotation=30, ha="right")
    ax.axhline(0, color="#808080", lw=0.8)
    ax.grid(True, axis="y", alpha=0.2)
    plt.tight_layout()
    return fig

def render_candlestick(candles: pd.DataFrame, indicator_cols: List[str]):
    has_volume = "volume" in candles.columns and candles["volume"].notna().any()
    if has_volume:
        fig, (ax, ax_v) = plt.subplots(2, 1, figsize=(10, 6), sharex=True, gridspec_kw={"height_ratios": [3, 1]})
    else:
        fig, ax = plt.subplots(figsize=(10, 4.5))
    xs = np.arange(len(candles))
    colors = np.where(candles["bullish"], "#10b981", "#ef4444")
    ax.vlines(xs, candles["low"], candles["high"], color="#808080", lw=1)
    body_lo = np.minimum(candles["open"], candles["close"])
    body_h = np.maximum(np.abs(candles["close"] - candles["open"]), 1e-9)
    ax.bar(xs, body_h, bottom=body_lo, width=0.6, color=colors, edgecolor=colors)
    for i, col in enumerate(indicator_cols):
        ax.plot(xs, candles[col].astype(float), lw=1.2, label=col, color=PALETTE[(i + 1) % len(PALETTE)])
    if indicator_cols: ax.legend(fontsize=8)
    ax.grid(True, alpha=0.2)
    step = max(1, len(candles) // 10)
    labels = [d.strftime("%Y-%m-%d") if pd.notna(d) else "" for d in pd.to_datetime(candles["date"])]
    target = ax_v if has_volume else ax
    if has_volume:
        ax_v.bar(xs, candles["volume"].fillna(0), color=colors, alpha=0.6)
        ax_v.set_ylabel("Volume")
    target.set_xticks(xs[::step])
    target.set_xticklabels(labels[::step], rotation=30, ha="right", fontsize=8)
    plt.tight_layout()
    return fig

def render_scatter_3d(scene: Dict, point_size: float, show_grid: bool):
    fig, ax = plt.subplots(figsize=(8, 6))
    if show_grid:
        for start, end in scene["grid"]:
            ax.plot([start["x"], end["x"]], [start["y"], end["y"]], color="#cccccc", lw=0.5, alpha=0.5)
    for axis in scene["axes"]:
        ax.plot([axis["start"]["x"], axis["end"]["x"]], [axis["start"]["y"], axis["end"]["y"]], color=axis["color"], lw=1.5)
        ax.annotate(axis["label"], (axis["end"]["x"], axis["end"]["y"]), color=axis["color"], fontsize=9)
    pts = scene["points"]
    if pts:
        ax.scatter(
            [p["projected"]["x"] for p in pts], [p["projected"]["y"] for p in pts],
            s=[point_size * p["projected"]["scale"] ** 2 * 10 for p in pts],
            c=[p["projected"]["z"] for p in pts], cmap="viridis_r", alpha=0.8, edgecolors="white", linewidths=0.3,
        )
    ax.invert_yaxis()
    ax.set_aspect("equal")
    ax.axis("off")
    plt.tight_layout()
    return fig

def render_network(layout: Dict, directed: bool):
    nodes = [
        Node(id=n["id"], label=n["label"], size=n["size"], x=n["x"], y=n["y"],
             color=PALETTE[i % len(PALETTE)], title=f"{n['label']}")
        for i, n in enumerate(layout["nodes"])
    ]
    edges = [Edge(source=l["source"], target=l["target"], width=1 + min(l["weight"], 10) * 0.3, color="#c0c0c0") for l in layout["links"]]
    config = Config(width=800, height=600, directed=directed, physics=False, hierarchy=False, interaction={"navigationButtons": True, "zoomView": True})
    agraph(nodes=nodes, edges=edges, config=config)

def show_figure(fig):
    st.pyplot(fig, use_container_width=True)
    plt.close(fig)

# ==========================================
# 🖥️ VIEWS
# ==========================================

def render_upload_view():
    st.header("📤 Upload Dataset")
    st.caption(f"Supports CSV, Excel (XLSX/XLSM), JSON, and TSV files up to {dp.MAX_FILE_SIZE_MB}MB")
    uploaded = st.file_uploader("Drop a file", type=list(dp.SUPPORTED_EXTENSIONS))

    if uploaded:
        file_hash = hash(uploaded.getvalue())
        if st.session_state.get('last_upload_hash') != file_hash:
            with st.spinner(f"Processing {uploaded.name}..."):
                store.set_loading(True)
                try:
                    dataset = handle_upload(uploaded)
                finally:
                    store.set_loading(False)
            st.session_state['last_upload_hash'] = file_hash
            if dataset:
                store.set_current_view("datasets")
                st.rerun()

    status = st.session_state['upload_status']
    if status == "error":
        st.error(f"❌ Upload failed: {st.session_state['upload_error']}")
    elif status == "success" and store.current_dataset:
        st.success(f"✅ {store.current_dataset.filename} uploaded.")

def render_datasets_view():
    st.header("🗂️ Datasets")
    if not store.datasets:
        st.info("No datasets yet.")
        if st.button("Upload Dataset"):
            store.set_current_view("upload"); st.rerun()
        return

    cols = st.columns(3)
    for idx, ds in enumerate(store.datasets):
        with cols[idx % 3]:
            with st.container(border=True):
                marker = "⭐ " if store.current_dataset is ds else ""
                st.markdown(f"**{marker}{ds.name}**  \n`{ds.domain}` · {ds.confidence}% confidence")
                st.caption(f"{ds.rows:,} rows · {len(ds.columns)} columns · {ds.upload_date:%Y-%m-%d %H:%M}")
                st.progress(ds.data_quality / 100, text=f"Quality {ds.data_quality}%")
                st.caption(f":{quality_color(ds.data_quality)}[{quality_label(ds.data_quality)}]")
                feats = ds.detected_features[:3]
                if feats:
                    more = f" +{len(ds.detected_features) - 3} more" if len(ds.detected_features) > 3 else ""
                    st.markdown(" ".join(f"`{f}`" for f in feats) + more)
                c1, c2 = st.columns(2)
                if c1.button("Open", key=f"open_{ds.id}"):
                    store.select_dataset(ds.id)
                    store.set_current_view("dashboard"); st.rerun()
                if c2.button("Remove", key=f"rm_{ds.id}"):
                    store.remove_dataset(ds.id); st.rerun()

def render_dashboard_view(ds: Dataset):
    st.header(f"📊 {ds.name}")
    cards = dp.summarize_dataset(ds)
    for col, card in zip(st.columns(len(cards)), cards):
        col.metric(card["title"], card["value"])

    numeric = dp.numeric_columns(ds.column_types)
    categorical = dp.categorical_columns(ds.column_types)
    head = cb.build_dashboard_frame(ds.data, numeric)

    c1, c2 = st.columns(2)
    if numeric:
        with c1:
            st.subheader("Trend")
            st.line_chart(head, y=numeric[:3])
        with c2:
            st.subheader("Comparison")
            st.bar_chart(head, y=numeric[0])
    if len(numeric) >= 2:
        with c1:
            st.subheader("Relationship")
            st.scatter_chart(head, x=numeric[0], y=numeric[1])
    if categorical:
        with c2:
            st.subheader("Composition")
            counts = ds.data[categorical[0]].value_counts().head(8)
            fig, ax = plt.subplots(figsize=(5, 5))
            ax.pie(counts.values, labels=counts.index.astype(str), colors=PALETTE * 2, autopct="%1.0f%%")
            show_figure(fig)

    with st.expander("🔍 Data Preview", expanded=False):
        st.dataframe(ds.data.head(100), use_container_width=True)
        st.json(ds.column_types, expanded=False)

def render_recommendations(ds: Dataset) -> Optional[rec.ChartRecommendation]:
    characteristics = rec.analyze_data_characteristics(ds.data, ds.columns, ds.column_types)
    recs = rec.generate_recommendations(characteristics)
    picked = None
    with st.expander("🧠 Chart Recommendations", expanded=False):
        if not recs: st.info("Not enough structure in this dataset for recommendations.")
        for r in recs:
            c1, c2 = st.columns([4, 1])
            c1.markdown(f"**{r.title}** · {r.confidence:.0%}  \n{r.reasoning}  \n" + " ".join(f"`{t}`" for t in r.data_characteristics))
            if r.type in cb.CHART_TYPES and c2.button("Use", key=f"rec_{r.type}"):
                picked = r
    return picked

def render_charts_view(ds: Dataset):
    st.header("📈 Advanced Charts")
    picked = render_recommendations(ds)
    if picked:
        st.session_state['chart_type'] = picked.type
        st.session_state['chart_defaults'] = picked.config

    types = list(cb.CHART_TYPES.keys())
    current = st.session_state.get('chart_type', "box-plot")
    chart_type = st.selectbox("Chart Type", types, index=types.index(current), format_func=lambda t: f"{cb.CHART_TYPES[t]['label']} ({cb.CHART_TYPES[t]['category']})")
    st.session_state['chart_type'] = chart_type
    defaults = st.session_state.get('chart_defaults', {})

    numeric = dp.numeric_columns(ds.column_types)
    categorical = dp.categorical_columns(ds.column_types) or ds.columns
    df = ds.data

    try:
        if chart_type in ("box-plot", "violin-plot"):
            c1, c2 = st.columns(2)
            with c1: category = column_select("Category Column", categorical, f"{chart_type}_cat", defaults.get("category"))
            with c2: value = column_select("Value Column", numeric, f"{chart_type}_val", defaults.get("value"))
            if not (category and value): return
            if chart_type == "box-plot":
                fence = st.slider("Outlier fence (× IQR, 0 = off)", 0.0, 3.0, 0.0, 0.5)
                boxes = cb.build_box_plot(df, category, value, fence=fence or None)
                if boxes: show_figure(render_box_plot(boxes, value, st.checkbox("Show mean", True)))
                else: st.warning("No numeric values for the selected columns.")
            else:
                bw_mode = st.radio("Bandwidth", ["auto", "silverman", "fixed"], horizontal=True)
                bandwidth = st.number_input("Bandwidth value", 0.01, value=1.0) if bw_mode == "fixed" else bw_mode
                violins = cb.build_violin_plot(df, category, value, bandwidth)
                if violins: show_figure(render_violin_plot(violins, value))
                else: st.warning("No numeric values for the selected columns.")

        elif chart_type == "waterfall":
            c1, c2 = st.columns(2)
            with c1: category = column_select("Category Column", ds.columns, "wf_cat", defaults.get("category"))
            with c2: value = column_select("Value Column", numeric, "wf_val", defaults.get("value"))
            if not (category and value): return
            steps = cb.build_waterfall(df, category, value, append_total=st.checkbox("Show total", True))
            show_figure(render_waterfall(steps))

        elif chart_type == "candlestick":
            c1, c2, c3, c4 = st.columns(4)
            with c1: o = column_select("Open Price", numeric, "cs_open")
            with c2: h = column_select("High Price", numeric, "cs_high")
            with c3: lo = column_select("Low Price", numeric, "cs_low")
            with c4: cl = column_select("Close Price", numeric, "cs_close")
            c5, c6 = st.columns(2)
            with c5: vol = column_select("Volume", numeric, "cs_vol", optional=True)
            with c6: date = column_select("Date", dp.temporal_columns(ds.column_types), "cs_date", optional=True)
            if not all((o, h, lo, cl)): return
            with st.expander("Indicators", expanded=False):
                sma_p = st.multiselect("SMA periods", [5, 10, 20, 50], [5])
                ema_p = st.multiselect("EMA periods", [5, 10, 20, 50], [])
                use_bb = st.checkbox("Bollinger Bands", False)
                bb = {"period": st.slider("BB period", 5, 50, 20), "num_std": st.slider("BB std dev", 1.0, 3.0, 2.0, 0.5)} if use_bb else None
            candles = cb.build_candlestick(df, o, h, lo, cl, vol, date, sma_periods=sma_p, ema_periods=ema_p, bollinger=bb)
            indicators = [f"sma{p}" for p in sma_p] + [f"ema{p}" for p in ema_p] + (["bb_upper", "bb_middle", "bb_lower"] if bb else [])
            show_figure(render_candlestick(candles, indicators))

        elif chart_type == "network":
            c1, c2, c3 = st.columns(3)
            with c1: source = column_select("Source", ds.columns, "nw_src", defaults.get("source"))
            with c2: target = column_select("Target", ds.columns, "nw_tgt", defaults.get("target"))
            with c3: weight = column_select("Weight", numeric, "nw_w", optional=True)
            if not (source and target): return
            with st.expander("🛠️ Physics", expanded=False):
                p1, p2, p3 = st.columns(3)
                force_conf = cm.ForceConfig(
                    charge=p1.number_input("Charge", value=0.1, format="%.3f"),
                    link=p2.number_input("Link", value=0.01, format="%.3f"),
                    center=p3.number_input("Center", value=0.001, format="%.4f"),
                )
                directed = st.checkbox("Directed Arrows", False)
            layout = cb.build_network(df, source, target, weight, config=force_conf)
            render_network(layout, directed)
            st.caption(f"{len(layout['nodes'])} nodes · {len(layout['links'])} links")

        elif chart_type == "scatter-3d":
            c1, c2, c3 = st.columns(3)
            with c1: x = column_select("X Axis", numeric, "s3_x")
            with c2: y = column_select("Y Axis", numeric, "s3_y")
            with c3: z = column_select("Z Axis", numeric, "s3_z")
            if not (x and y and z): return
            with st.expander("🎥 Camera", expanded=False):
                r1, r2, r3 = st.columns(3)
                camera = cm.Camera(
                    distance=st.slider("Distance", 3.0, 20.0, 5.0, 0.5),
                    rot_x=r1.slider("Rotate X", -180, 180, 15),
                    rot_y=r2.slider("Rotate Y", -180, 180, 30),
                    rot_z=r3.slider("Rotate Z", -180, 180, 0),
                )
                show_grid = st.checkbox("Show grid", True)
                point_size = st.slider("Point size", 1, 20, 4)
            scene = cb.build_scatter_3d(df, x, y, z, camera)
            show_figure(render_scatter_3d(scene, point_size, show_grid))
    except (KeyError, ValueError) as e:
        logger.exception("Chart build failed")
        st.error(f"❌ Could not build chart: {e}")

def render_insights_view(ds: Dataset, service: InsightService):
    st.header("💡 AI Insights")
    regenerate = st.button("✨ Regenerate Insights", type="primary")
    if regenerate or ds.id not in store.insights:
        with st.spinner("Generating insights..."):
            try:
                store.insights[ds.id] = service.generate_insights(ds.context())
            except AIServiceError as e:
                logger.error("Insight generation failed: %s", e)
                st.error("Failed to generate insights.")
                return

    insights = store.insights.get(ds.id, [])
    if not insights:
        st.info("No insights yet.")
        return
    for idx, insight in enumerate(insights):
        with st.container(border=True):
            st.markdown(f"**{INSIGHT_TYPES[idx % len(INSIGHT_TYPES)]}** · {service.insight_confidence()}% confidence  \n{insight}")
    st.caption("Insights generated • simulated assistant")

def send_chat(prompt: str, ds: Dataset, service: InsightService):
    store.add_chat_message(ChatMessage("user", prompt))
    store.set_chat_loading(True)
    try:
        with st.spinner("Thinking..."):
            reply = service.generate_response(prompt, ds.context())
    except AIServiceError:
        logger.exception("Chat error")
        reply = ERROR_REPLY
    finally:
        store.set_chat_loading(False)
    store.add_chat_message(ChatMessage("ai", reply))

def render_chat_view(ds: Dataset, service: InsightService):
    st.header("💬 Chat with your data")
    if not store.chat_messages:
        st.caption("Quick actions")
        for col, action in zip(st.columns(len(QUICK_ACTIONS)), QUICK_ACTIONS):
            if col.button(action, key=f"qa_{action}"):
                send_chat(action, ds, service); st.rerun()

    for msg in store.chat_messages:
        with st.chat_message("user" if msg.role == "user" else "assistant"):
            st.markdown(msg.content)
            st.caption(f"{msg.timestamp:%H:%M:%S}")

    if st.button("🗑️ Clear chat", disabled=not store.chat_messages):
        store.clear_chat(); st.rerun()

    prompt = st.chat_input("Ask about your data...", disabled=store.is_chat_loading)
    if prompt and prompt.strip():
        send_chat(prompt, ds, service); st.rerun()

# ==========================================
# 🚀 MAIN APP UI
# ==========================================

st.set_page_config(page_title="Dataset Insight Dashboard", layout="wide")
st.title("🧠 Dataset Insight Dashboard")

# --- SIDEBAR ---
with st.sidebar:
    st.header("🧭 Navigate")
    view = st.radio("View", VIEWS, index=VIEWS.index(store.current_view), format_func=lambda v: VIEW_LABELS[v], label_visibility="collapsed")
    if view != store.current_view: store.set_current_view(view)

    st.divider()
    st.header("🗂️ Current Dataset")
    if store.datasets:
        ids = [d.id for d in store.datasets]
        cur = ids.index(store.current_dataset.id) if store.current_dataset and store.current_dataset.id in ids else 0
        chosen = st.selectbox("Dataset", ids, index=cur, format_func=lambda i: store.get_dataset(i).name)
        if store.current_dataset is None or chosen != store.current_dataset.id: store.select_dataset(chosen)
    else:
        st.caption("Nothing uploaded yet.")

    st.divider()
    st.header("⚙️ Settings")
    latency = st.slider("Simulated AI latency (s)", 0.0, 3.0, 2.0, 0.5)
    if st.button("🗑️ Reset All"): reset_store(); st.rerun()

service = get_ai_service(latency)
current = store.current_dataset

if store.current_view == "upload":
    render_upload_view()
elif store.current_view == "datasets":
    render_datasets_view()
elif current is None:
    st.info("Upload or select a dataset first.")
elif store.current_view == "dashboard":
    render_dashboard_view(current)
elif store.current_view == "charts":
    render_charts_view(current)
elif store.current_view == "insights":
    render_insights_view(current, service)
elif store.current_view == "chat":
    render_chat_view(current, service)

st.markdown("---")
st.markdown(
    "<div style='text-align: center; color: #808080; font-size: 12px;'>"
    "Open Source software licensed under the MIT License."
    "</div>",
    unsafe_allow_html=True
)
