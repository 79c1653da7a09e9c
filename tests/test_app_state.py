import pytest

import data_processor as dp
from app_state import AppStore, ChatMessage, Dataset


def _dataset(name="sales.csv"):
    processed = dp.process_file(b"revenue,cost\n1,5\n2,6\n", name)
    return Dataset.from_processed(name, processed)


def test_dataset_from_processed():
    ds = _dataset("q1 sales.csv")
    assert ds.name == "q1 sales"
    assert ds.filename == "q1 sales.csv"
    assert ds.rows == 2
    assert ds.domain == "finance"
    assert len(ds.id) == 32
    assert ds.context() == {"rows": 2, "columns": 2, "domain": "finance", "data_quality": 100, "detected_features": ["revenue", "cost"]}


def test_add_dataset_selects_it():
    store = AppStore()
    first, second = _dataset(), _dataset()
    store.add_dataset(first)
    store.add_dataset(second)
    assert store.datasets == [first, second]
    assert store.current_dataset is second
    with pytest.raises(ValueError):
        store.add_dataset(first)


def test_select_and_remove():
    store = AppStore()
    a, b = _dataset(), _dataset()
    store.add_dataset(a)
    store.add_dataset(b)
    assert store.select_dataset(a.id) is a
    store.insights[a.id] = ["x"]
    store.remove_dataset(a.id)
    assert store.current_dataset is None
    assert a.id not in store.insights
    assert store.datasets == [b]
    with pytest.raises(KeyError):
        store.select_dataset(a.id)


def test_views():
    store = AppStore()
    assert store.current_view == "upload"
    store.set_current_view("chat")
    assert store.current_view == "chat"
    with pytest.raises(ValueError):
        store.set_current_view("settings")


def test_chat_messages():
    store = AppStore()
    store.add_chat_message(ChatMessage("user", "hi"))
    store.add_chat_message(ChatMessage("ai", "hello"))
    assert [m.role for m in store.chat_messages] == ["user", "ai"]
    store.clear_chat()
    assert store.chat_messages == []
    with pytest.raises(ValueError):
        ChatMessage("bot", "nope")


def test_flags():
    store = AppStore()
    store.set_chat_loading(True)
    store.set_loading(True)
    store.toggle_sidebar()
    assert store.is_chat_loading and store.is_loading
    assert not store.sidebar_expanded
