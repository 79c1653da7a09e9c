import uuid
import logging
from datetime import datetime
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pandas as pd

from data_processor import ProcessedData

logger = logging.getLogger(__name__)

VIEWS = ("upload", "datasets", "dashboard", "charts", "insights", "chat")
ROLES = ("user", "ai", "system")

def new_id() -> str:
    return uuid.uuid4().hex

@dataclass(eq=False)
class Dataset:
    name: str
    filename: str
    data: pd.DataFrame
    columns: List[str]
    domain: str
    confidence: int
    data_quality: int
    detected_features: List[str] = field(default_factory=list)
    column_types: Dict[str, str] = field(default_factory=dict)
    id: str = field(default_factory=new_id)
    upload_date: datetime = field(default_factory=datetime.now)

    @property
    def rows(self) -> int:
        return len(self.data)

    @classmethod
    def from_processed(cls, filename: str, processed: ProcessedData) -> "Dataset":
        return cls(
            name=filename.rsplit(".", 1)[0] if "." in filename else filename,
            filename=filename,
            data=processed.data,
            columns=processed.columns,
            domain=processed.domain,
            confidence=processed.confidence,
            data_quality=processed.data_quality,
            detected_features=list(processed.detected_features),
            column_types=dict(processed.column_types),
        )

    def context(self) -> Dict:
        return {
            "rows": self.rows, "columns": len(self.columns), "domain": self.domain,
            "data_quality": self.data_quality, "detected_features": self.detected_features,
        }

@dataclass
class ChatMessage:
    role: str
    content: str
    id: str = field(default_factory=new_id)
    timestamp: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        if self.role not in ROLES: raise ValueError(f"Unknown chat role: {self.role}")

class AppStore:
    """Session-scoped UI state; one instance lives in st.session_state."""

    def __init__(self):
        self.datasets: List[Dataset] = []
        self.current_dataset: Optional[Dataset] = None
        self.current_view: str = "upload"
        self.chat_messages: List[ChatMessage] = []
        self.insights: Dict[str, List[str]] = {}
        self.is_chat_loading = False
        self.sidebar_expanded = True
        self.is_loading = False

    def add_dataset(self, dataset: Dataset):
        if any(d.id == dataset.id for d in self.datasets): raise ValueError(f"Duplicate dataset id: {dataset.id}")
        self.datasets.append(dataset)
        self.current_dataset = dataset
        logger.info("Dataset added: %s (%s)", dataset.name, dataset.id)

    def get_dataset(self, dataset_id: str) -> Dataset:
        for d in self.datasets:
            if d.id == dataset_id: return d
        raise KeyError(dataset_id)

    def select_dataset(self, dataset_id: str) -> Dataset:
        self.current_dataset = self.get_dataset(dataset_id)
        return self.current_dataset

    def set_current_dataset(self, dataset: Optional[Dataset]):
        self.current_dataset = dataset

    def remove_dataset(self, dataset_id: str):
        dataset = self.get_dataset(dataset_id)
        self.datasets.remove(dataset)
        self.insights.pop(dataset_id, None)
        if self.current_dataset is dataset: self.current_dataset = None

    def set_current_view(self, view: str):
        if view not in VIEWS: raise ValueError(f"Unknown view: {view}")
        self.current_view = view

    def add_chat_message(self, message: ChatMessage):
        self.chat_messages.append(message)

    def clear_chat(self):
        self.chat_messages = []

    def set_chat_loading(self, loading: bool):
        self.is_chat_loading = loading

    def set_loading(self, loading: bool):
        self.is_loading = loading

    def toggle_sidebar(self):
        self.sidebar_expanded = not self.sidebar_expanded
