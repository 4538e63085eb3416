"""Helpers to export per-session activity traces in JSON/CSV formats."""
from __future__ import annotations

from collections import Counter
from typing import Iterable, List, Dict, Any
import csv
import io

FIELDS: tuple[str, ...] = (
    "t",
    "action",
    "question_id",
    "index_before",
    "index_after",
    "ok",
    "detail",
)
_INDEX_FIELDS = frozenset({"index_before", "index_after"})


def normalize_event(event: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key in FIELDS:
        val = event.get(key)
        if key in _INDEX_FIELDS:
            out[key] = val if isinstance(val, int) and not isinstance(val, bool) else 0
        elif key == "ok":
            out[key] = bool(val)
        else:
            out[key] = "" if val is None else str(val)
    return out


def summarize(events: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Counts per action plus how many attempts were refused."""

    rows = [normalize_event(evt or {}) for evt in events]
    by_action = Counter(r["action"] for r in rows if r["action"])
    return {
        "total": len(rows),
        "rejected": sum(1 for r in rows if not r["ok"]),
        "byAction": dict(sorted(by_action.items())),
    }


def to_json(events: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    rows: List[Dict[str, Any]] = [normalize_event(evt or {}) for evt in events]
    return {"events": rows, "summary": summarize(rows)}


def to_csv(events: Iterable[Dict[str, Any]]) -> str:
    """Render activity events as CSV with a fixed header."""

    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=FIELDS, lineterminator="\n")
    writer.writeheader()
    writer.writerows(normalize_event(evt or {}) for evt in events)
    return buf.getvalue()


__all__ = ["FIELDS", "normalize_event", "summarize", "to_json", "to_csv"]
