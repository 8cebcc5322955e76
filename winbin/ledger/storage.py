from __future__ import annotations

import json
import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerRecord:
    record_id: str
    label: str
    size: float
    recorded_at: datetime
    owner: str | None = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_id": self.record_id,
            "label": self.label,
            "size": self.size,
            "recorded_at": self.recorded_at.isoformat(),
            "owner": self.owner,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LedgerRecord":
        recorded_at = datetime.fromisoformat(str(data["recorded_at"]))
        if recorded_at.tzinfo is None:
            recorded_at = recorded_at.replace(tzinfo=timezone.utc)
        owner = data.get("owner")
        return cls(
            record_id=str(data["record_id"]),
            label=str(data["label"]),
            size=float(data.get("size") or 0.0),
            recorded_at=recorded_at,
            owner=str(owner) if owner else None,
        )


class FileSystemLedger:
    """Persist recycled items as one JSON document per item."""

    def __init__(self, root: Path) -> None:
        self._root = root
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def record_item(
        self,
        label: str,
        size: float = 0.0,
        *,
        recorded_at: datetime | None = None,
        owner: str | None = None,
    ) -> LedgerRecord:
        clean_label = str(label or "").strip()
        if not clean_label:
            raise ValueError("Recycled item label cannot be empty")
        record_time = (recorded_at or datetime.now(tz=timezone.utc)).astimezone(
            timezone.utc
        )
        date_dir = self._root / record_time.strftime("%Y/%m/%d")
        date_dir.mkdir(parents=True, exist_ok=True)

        record = LedgerRecord(
            record_id=_build_record_id(owner, record_time),
            label=clean_label,
            size=float(size or 0.0),
            recorded_at=record_time,
            owner=owner,
        )
        path = date_dir / f"{record.record_id}.json"
        path.write_text(json.dumps(record.to_dict(), indent=2), encoding="utf-8")
        logger.info(
            "Recorded recycled item record_id=%s label=%s owner=%s",
            record.record_id,
            record.label,
            owner,
        )
        return record

    def list_items(
        self, limit: Optional[int] = None, owner: Optional[str] = None
    ) -> List[LedgerRecord]:
        """Return recorded items, newest first."""
        records: List[LedgerRecord] = []
        for path in self._root.glob("*/*/*/*.json"):
            try:
                record = LedgerRecord.from_dict(
                    json.loads(path.read_text(encoding="utf-8"))
                )
            except (OSError, ValueError, KeyError, TypeError) as exc:
                logger.warning("Skipping unreadable ledger entry %s: %s", path, exc)
                continue
            if owner is not None and record.owner != owner:
                continue
            records.append(record)
        records.sort(key=lambda r: (r.recorded_at, r.record_id), reverse=True)
        if limit is not None:
            records = records[: max(0, limit)]
        return records

    def count(self, owner: Optional[str] = None) -> int:
        return len(self.list_items(owner=owner))


def _build_record_id(owner: Optional[str], record_time: datetime) -> str:
    label = str(owner or "guest").strip().lower()
    sanitized = re.sub(r"[^a-z0-9]+", "-", label)
    sanitized = sanitized.strip("-") or "guest"
    if len(sanitized) > 48:
        sanitized = sanitized[:48].rstrip("-") or "guest"
    timestamp_fragment = record_time.strftime("%Y%m%dT%H%M%S%fZ")
    suffix = uuid.uuid4().hex[:8]
    return f"{sanitized}_{timestamp_fragment}_{suffix}"


__all__ = ["FileSystemLedger", "LedgerRecord"]
