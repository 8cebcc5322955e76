from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest

from winbin.ledger.storage import FileSystemLedger, LedgerRecord


def test_record_item_writes_dated_document(tmp_path) -> None:
    ledger = FileSystemLedger(root=tmp_path)
    recorded_at = datetime(2025, 3, 4, 12, 30, tzinfo=timezone.utc)

    record = ledger.record_item("  Coca-Cola ", 0, recorded_at=recorded_at, owner="Alice Smith")

    path = tmp_path / "2025" / "03" / "04" / f"{record.record_id}.json"
    assert path.exists()
    stored = json.loads(path.read_text(encoding="utf-8"))
    assert stored["label"] == "Coca-Cola"
    assert stored["size"] == 0.0
    assert stored["owner"] == "Alice Smith"
    assert record.record_id.startswith("alice-smith_20250304T123000")


def test_guest_records_and_owner_filter(tmp_path) -> None:
    ledger = FileSystemLedger(root=tmp_path)
    base = datetime(2025, 1, 1, tzinfo=timezone.utc)
    ledger.record_item("Water Bottle", recorded_at=base)
    ledger.record_item("Pepsi", recorded_at=base + timedelta(minutes=5), owner="bob")
    ledger.record_item("Sprite", recorded_at=base + timedelta(days=1), owner="bob")

    items = ledger.list_items()
    assert [item.label for item in items] == ["Sprite", "Pepsi", "Water Bottle"]
    assert items[-1].record_id.startswith("guest_")
    assert ledger.count(owner="bob") == 2
    assert [item.label for item in ledger.list_items(limit=1, owner="bob")] == ["Sprite"]


def test_empty_label_is_rejected(tmp_path) -> None:
    ledger = FileSystemLedger(root=tmp_path)

    with pytest.raises(ValueError):
        ledger.record_item("   ")
    assert ledger.count() == 0


def test_unreadable_entries_are_skipped(tmp_path) -> None:
    ledger = FileSystemLedger(root=tmp_path)
    ledger.record_item("Water Bottle")
    broken = tmp_path / "2024" / "12" / "31"
    broken.mkdir(parents=True)
    (broken / "broken.json").write_text("{not json", encoding="utf-8")

    assert [item.label for item in ledger.list_items()] == ["Water Bottle"]


def test_record_round_trips_naive_timestamps() -> None:
    record = LedgerRecord.from_dict(
        {"record_id": "x", "label": "Fanta", "recorded_at": "2025-05-01T08:00:00"}
    )

    assert record.recorded_at.tzinfo is timezone.utc
    assert record.size == 0.0
    assert record.owner is None
