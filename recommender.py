from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pandas as pd

import chart_math as cm
import data_processor as dp

PIE_MAX_CATEGORIES = 8
NETWORK_MAX_ROWS = 1000

@dataclass
class DataCharacteristics:
    row_count: int
    column_count: int
    numeric_columns: List[str]
    categorical_columns: List[str]
    temporal_columns: List[str]
    has_nulls: bool
    correlations: List[Dict] = field(default_factory=list)
    trends: List[str] = field(default_factory=list)
    category_counts: Dict[str, int] = field(default_factory=dict)

    def strongest_correlation(self) -> Optional[Dict]:
        strong = [c for c in self.correlations if abs(c["correlation"]) > cm.STRONG_CORRELATION]
        return max(strong, key=lambda c: abs(c["correlation"])) if strong else None

@dataclass
class ChartRecommendation:
    type: str
    title: str
    confidence: float
    reasoning: str
    config: Dict[str, str]
    data_characteristics: List[str]

def analyze_data_characteristics(df: pd.DataFrame, columns: Optional[List[str]] = None, column_types: Optional[Dict[str, str]] = None, sample_rows: int = dp.SAMPLE_ROWS) -> DataCharacteristics:
    cols = list(columns) if columns is not None else list(df.columns)
    types = column_types if column_types is not None else dp.infer_column_types(df[cols], sample_rows)
    numeric = [c for c in cols if types.get(c) == "numeric"]
    categorical = [c for c in cols if types.get(c) == "categorical"]
    temporal = [c for c in cols if types.get(c) == "temporal"]

    sample = df.head(sample_rows)
    has_nulls = any(dp.is_missing(v) for c in cols for v in sample[c].tolist())
    correlations = cm.correlation_pairs(df, numeric, sample_rows)

    trends = []
    if temporal and numeric: trends.append("temporal")
    if any(abs(c["correlation"]) > cm.STRONG_CORRELATION for c in correlations): trends.append("strong_correlation")
    if categorical and numeric: trends.append("categorical_numeric")

    return DataCharacteristics(
        row_count=len(df), column_count=len(cols),
        numeric_columns=numeric, categorical_columns=categorical, temporal_columns=temporal,
        has_nulls=has_nulls, correlations=correlations, trends=trends,
        category_counts={c: int(df[c].nunique(dropna=True)) for c in categorical},
    )

def generate_recommendations(ch: DataCharacteristics) -> List[ChartRecommendation]:
    recs: List[ChartRecommendation] = []
    num, cat, tmp = ch.numeric_columns, ch.categorical_columns, ch.temporal_columns

    if tmp and num:
        recs.append(ChartRecommendation(
            "line", "Line Chart", 0.9, "Ideal for showing trends over time with your temporal data",
            {"x": tmp[0], "y": num[0]}, ["temporal", "trending"]))

    if cat and num:
        recs.append(ChartRecommendation(
            "bar", "Bar Chart", 0.85, "Perfect for comparing numeric values across categories",
            {"x": cat[0], "y": num[0]}, ["categorical", "comparative"]))

    if len(num) >= 2:
        strong = ch.strongest_correlation()
        if strong:
            x, y = strong["columns"]
            reasoning = f"Strong correlation detected ({strong['correlation']:.2f}) between variables"
        else:
            x, y = num[0], num[1]
            reasoning = "Explore relationships between numeric variables"
        recs.append(ChartRecommendation(
            "scatter", "Scatter Plot", 0.95 if strong else 0.7, reasoning,
            {"x": x, "y": y}, ["correlation", "numeric"]))

    if num and cat:
        recs.append(ChartRecommendation(
            "box-plot", "Box Plot", 0.8, "Analyze distribution and identify outliers across categories",
            {"category": cat[0], "value": num[0]}, ["statistical", "distribution"]))
        if ch.category_counts.get(cat[0], 0) <= PIE_MAX_CATEGORIES:
            recs.append(ChartRecommendation(
                "pie", "Pie Chart", 0.75, "Show composition and proportions of categories",
                {"category": cat[0], "value": num[0]}, ["composition", "proportional"]))

    if ch.column_count >= 3 and ch.row_count < NETWORK_MAX_ROWS:
        pool = cat + num
        if len(pool) >= 2:
            recs.append(ChartRecommendation(
                "network", "Network Chart", 0.6, "Explore relationships and connections in your data",
                {"source": pool[0], "target": pool[1]}, ["relational", "network"]))

    recs.sort(key=lambda r: r.confidence, reverse=True)
    return recs
