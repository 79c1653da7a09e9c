import io
import re
import csv
import json
import math
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Tuple, Optional, Any

import numpy as np
import pandas as pd
from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

SAMPLE_ROWS = 100
UNIQUE_RATIO_THRESHOLD = 0.5
MAX_FILE_SIZE_MB = 50
SUPPORTED_EXTENSIONS = ("csv", "txt", "tsv", "xlsx", "xlsm", "json")

ISO_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")

DOMAIN_PATTERNS: Dict[str, List[str]] = {
    "finance": ["revenue", "profit", "stock", "price", "investment", "portfolio", "risk", "sales", "cost", "expense", "income", "gdp", "economic"],
    "healthcare": ["patient", "diagnosis", "treatment", "symptoms", "medical", "clinical", "disease", "therapy", "health"],
    "business": ["customer", "marketing", "conversion", "retention", "kpi", "lead", "campaign", "churn"],
    "scientific": ["experiment", "hypothesis", "research", "correlation", "statistical", "analysis", "study"],
    "geographic": ["latitude", "longitude", "country", "city", "region", "location", "address", "coordinates"],
    "sports": ["player", "team", "score", "performance", "statistics", "season", "game", "match"],
    "economic": ["gdp", "inflation", "market", "economic", "indicators", "trends", "growth", "unemployment"],
}
FALLBACK_DOMAIN = "general"

class ReaderError(Exception):
    pass

class UnsupportedFormatError(ReaderError):
    pass

class ValidationError(Exception):
    pass

@dataclass
class DomainMatch:
    domain: str
    confidence: int
    features: List[str] = field(default_factory=list)

@dataclass
class ProcessedData:
    data: pd.DataFrame
    columns: List[str]
    domain: str
    confidence: int
    detected_features: List[str]
    data_quality: int
    column_types: Dict[str, str]

def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))

def is_missing(v: Any) -> bool:
    if v is None: return True
    if isinstance(v, str): return v == ""
    try: return bool(pd.isna(v))
    except (TypeError, ValueError): return False

# --- Domain & quality ---

def detect_domain(columns: List[str]) -> DomainMatch:
    lower_cols = [str(c).lower() for c in columns]
    best: Optional[Tuple[str, float, List[str]]] = None
    for domain, patterns in DOMAIN_PATTERNS.items():
        matches = [p for p in patterns if any(p in col for col in lower_cols)]
        score = len(matches) / len(patterns)
        if best is None or score >= best[1]:
            best = (domain, score, matches)

    if best is None or best[1] == 0: return DomainMatch(FALLBACK_DOMAIN, 0, [])
    return DomainMatch(best[0], round_half_up(best[1] * 100), best[2])

def calculate_data_quality(df: pd.DataFrame) -> int:
    if df is None or df.empty or len(df.columns) == 0: return 0
    total = df.shape[0] * df.shape[1]
    valid = sum(1 for v in df.to_numpy().ravel() if not is_missing(v))
    return round_half_up(valid / total * 100)

# --- Column typing ---

def _is_number(v: Any) -> bool:
    if isinstance(v, bool): return False
    if isinstance(v, (int, float, np.integer, np.floating)): return not math.isnan(float(v))
    try:
        f = float(str(v).strip())
        return not math.isnan(f)
    except ValueError:
        return False

def _is_date(v: Any) -> bool:
    if isinstance(v, (pd.Timestamp, np.datetime64)): return True
    if hasattr(v, "isoformat") and not isinstance(v, str): return True
    s = str(v).strip()
    if ISO_DATE_RE.search(s): return True
    if _is_number(s): return False
    try:
        date_parser.parse(s)
        return True
    except (ValueError, OverflowError):
        return False

def infer_column_types(df: pd.DataFrame, sample_rows: int = SAMPLE_ROWS) -> Dict[str, str]:
    sample = df.head(sample_rows)
    types: Dict[str, str] = {}
    for col in sample.columns:
        values = [v for v in sample[col].tolist() if not is_missing(v)]
        if not values:
            types[col] = "text"
            continue
        half = len(values) / 2
        if sum(1 for v in values if _is_number(v)) > half:
            types[col] = "numeric"
        elif sum(1 for v in values if _is_date(v)) > half:
            types[col] = "temporal"
        elif len(set(map(str, sample[col].tolist()))) / len(sample) < UNIQUE_RATIO_THRESHOLD:
            types[col] = "categorical"
        else:
            types[col] = "text"
    return types

def columns_of_type(column_types: Dict[str, str], kind: str) -> List[str]:
    return [c for c, t in column_types.items() if t == kind]

def numeric_columns(column_types: Dict[str, str]) -> List[str]: return columns_of_type(column_types, "numeric")
def categorical_columns(column_types: Dict[str, str]) -> List[str]: return columns_of_type(column_types, "categorical")
def temporal_columns(column_types: Dict[str, str]) -> List[str]: return columns_of_type(column_types, "temporal")

def to_numeric(series: pd.Series) -> pd.Series:
    return pd.to_numeric(series, errors="coerce")

# --- Readers ---

def file_extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""

def sniff_delimiter(file_bytes: bytes, default: str = ",") -> str:
    head = file_bytes[:4096].decode("utf-8", errors="replace")
    try: return csv.Sniffer().sniff(head, delimiters=",;\t|").delimiter
    except csv.Error: return default

def read_delimited(file_bytes: bytes, delimiter: str) -> pd.DataFrame:
    bio = io.BytesIO(file_bytes)
    return pd.read_csv(bio, sep=delimiter, dtype=str, keep_default_na=False, skip_blank_lines=True, encoding="utf-8", encoding_errors="replace")

def read_excel(file_bytes: bytes, sheet_name: Optional[str] = None) -> pd.DataFrame:
    bio = io.BytesIO(file_bytes)
    return pd.read_excel(bio, sheet_name=sheet_name if sheet_name is not None else 0, engine="openpyxl")

def get_excel_sheetnames(file_bytes: bytes) -> List[str]:
    import openpyxl
    wb = openpyxl.load_workbook(io.BytesIO(file_bytes), read_only=True, data_only=True)
    sheets = list(wb.sheetnames)
    wb.close()
    return sheets

def read_json_records(file_bytes: bytes) -> pd.DataFrame:
    text = file_bytes.decode("utf-8", errors="replace")
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        # JSON Lines
        data = [json.loads(line) for line in text.splitlines() if line.strip()]
    if isinstance(data, dict):
        records = next((v for v in data.values() if isinstance(v, list)), None)
        data = records if records is not None else [data]
    if not isinstance(data, list): raise ReaderError("JSON must hold an array of records")
    return pd.json_normalize(data) if data and all(isinstance(r, dict) for r in data) else pd.DataFrame({"value": data})

def read_table(file_bytes: bytes, filename: str, sheet_name: Optional[str] = None) -> pd.DataFrame:
    ext = file_extension(filename)
    if ext not in SUPPORTED_EXTENSIONS: raise UnsupportedFormatError(f"Unsupported file format: .{ext or '?'}")
    if len(file_bytes) > MAX_FILE_SIZE_MB * 1024 * 1024: raise ValidationError(f"{filename} exceeds {MAX_FILE_SIZE_MB}MB limit")
    if not file_bytes.strip(): raise ValidationError(f"{filename} is empty")

    try:
        if ext == "tsv": df = read_delimited(file_bytes, "\t")
        elif ext in ("csv", "txt"): df = read_delimited(file_bytes, sniff_delimiter(file_bytes))
        elif ext == "json": df = read_json_records(file_bytes)
        else: df = read_excel(file_bytes, sheet_name)
    except ReaderError:
        raise
    except Exception as e:
        raise ReaderError(f"Failed to parse {filename}: {e}") from e

    if df.empty: raise ValidationError(f"{filename} has no data rows")
    df.columns = [str(c) for c in df.columns]
    return df

def process_file(file_bytes: bytes, filename: str, sheet_name: Optional[str] = None) -> ProcessedData:
    df = read_table(file_bytes, filename, sheet_name)
    columns = list(df.columns)
    match = detect_domain(columns)
    quality = calculate_data_quality(df)
    types = infer_column_types(df)
    logger.info("Processed %s: %d rows, %d columns, domain=%s (%d%%), quality=%d%%", filename, len(df), len(columns), match.domain, match.confidence, quality)
    return ProcessedData(
        data=df, columns=columns, domain=match.domain, confidence=match.confidence,
        detected_features=match.features, data_quality=quality, column_types=types,
    )

def summarize_dataset(dataset) -> List[Dict[str, str]]:
    """Stat cards for anything with `rows`, `columns` and `data_quality`."""
    rows, columns, data_quality = dataset.rows, len(dataset.columns), dataset.data_quality
    missing = round_half_up((100 - data_quality) * rows / 100)
    return [
        {"title": "Data Completeness", "value": f"{data_quality}%"},
        {"title": "Total Rows", "value": f"{rows:,}"},
        {"title": "Columns", "value": str(columns)},
        {"title": "Missing Values", "value": f"{missing:,}"},
    ]
