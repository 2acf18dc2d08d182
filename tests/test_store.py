"""Tests for the SQLite record store."""

import sqlite3
from datetime import timedelta
from pathlib import Path

import pytest

from src.core.errors import StoreConflict
from src.core.ids import utc_now
from src.services.store import Store


def _message(msg_id: str, conversation_id: str = "conv_1", **overrides) -> dict:
    record = {
        "id": msg_id,
        "conversation_id": conversation_id,
        "role": "user",
        "content": f"content {msg_id}",
        "created_at": utc_now(),
    }
    record.update(overrides)
    return record


# -- append / find_by_id / update ----------------------------------------------


def test_append_and_find(store: Store) -> None:
    store.append("messages", _message("msg_1"))

    found = store.find_by_id("messages", "msg_1")
    assert found["content"] == "content msg_1"
    assert found["help_request_id"] is None
    assert "seq" not in found


def test_find_missing_returns_none(store: Store) -> None:
    assert store.find_by_id("messages", "msg_missing") is None


def test_update_applies_patch(store: Store) -> None:
    store.append("conversations", {"id": "conv_1", "started_at": utc_now()})
    updated = store.update("conversations", "conv_1", {"title": "Hours", "id": "conv_other"})

    assert updated["id"] == "conv_1"
    assert updated["title"] == "Hours"


def test_update_missing_returns_none(store: Store) -> None:
    assert store.update("conversations", "conv_missing", {"title": "x"}) is None


def test_unknown_table_rejected(store: Store) -> None:
    with pytest.raises(ValueError):
        store.append("users", {"id": "u_1"})


# -- list_by_conversation ------------------------------------------------------


def test_messages_ordered_by_created_at_then_insertion(store: Store) -> None:
    now = utc_now()
    store.append("messages", _message("msg_late", created_at=now + timedelta(seconds=5)))
    store.append("messages", _message("msg_tie_a", created_at=now))
    store.append("messages", _message("msg_tie_b", created_at=now))
    store.append("messages", _message("msg_other", conversation_id="conv_2", created_at=now))

    ids = [m["id"] for m in store.list_by_conversation("conv_1")]
    assert ids == ["msg_tie_a", "msg_tie_b", "msg_late"]


def test_messages_since_is_exclusive(store: Store) -> None:
    now = utc_now()
    store.append("messages", _message("msg_1", created_at=now))
    store.append("messages", _message("msg_2", created_at=now + timedelta(seconds=1)))

    ids = [m["id"] for m in store.list_by_conversation("conv_1", since=now)]
    assert ids == ["msg_2"]


# -- transactions --------------------------------------------------------------


def test_transaction_rolls_back_on_error(store: Store) -> None:
    with pytest.raises(RuntimeError):
        with store.transaction() as tx:
            tx.append("messages", _message("msg_1"))
            raise RuntimeError("boom")

    assert store.find_by_id("messages", "msg_1") is None


def test_reset_clears_everything(store: Store) -> None:
    store.append("messages", _message("msg_1"))
    store.append("conversations", {"id": "conv_1", "started_at": utc_now()})
    store.reset()

    assert store.list_table("messages") == []
    assert store.list_table("conversations") == []


def test_locked_database_raises_store_conflict(tmp_path: Path) -> None:
    db_path = str(tmp_path / "locked.db")
    store = Store(db_path=db_path, max_retries=2, retry_backoff=0, busy_timeout=0.01)

    holder = sqlite3.connect(db_path, isolation_level=None)
    holder.execute("BEGIN IMMEDIATE")
    try:
        with pytest.raises(StoreConflict):
            store.append("messages", _message("msg_1"))
    finally:
        holder.execute("ROLLBACK")
        holder.close()

    store.append("messages", _message("msg_1"))
    assert store.find_by_id("messages", "msg_1") is not None
