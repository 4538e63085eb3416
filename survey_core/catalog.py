from __future__ import annotations
import json, importlib.resources as ir
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional
from .types import QuestionDescriptor, QUESTION_TYPES
from .config import DEFAULT_SECTION
from .errors import CatalogLoadError

# legacy upper-case type names
_TYPE_ALIASES = {
    "LIKERT": "scale", "LIKERT_SCALE": "scale",
    "BINARY_CHOICE": "binary",
    "MULTIPLE_CHOICE": "multiChoice",
    "RANKING": "ranking",
    "SLIDER": "slider",
    "TEXT": "freeText", "TEXT_RESPONSE": "freeText",
}


def _descriptor(raw: Dict[str, Any]) -> QuestionDescriptor:
    qid = raw.get("id")
    if not isinstance(qid, str) or not qid:
        raise CatalogLoadError(f"question without id: {raw!r}")
    qtype = str(raw.get("type", ""))
    qtype = _TYPE_ALIASES.get(qtype, qtype)
    if qtype not in QUESTION_TYPES:
        raise CatalogLoadError(f"question {qid} has unsupported type {raw.get('type')!r}")
    scale = raw.get("scale") or {}
    opts = raw.get("options")
    return QuestionDescriptor(
        id=qid,
        type=qtype,  # type: ignore[arg-type]
        section=str(raw.get("section") or DEFAULT_SECTION),
        required=bool(raw.get("required", False)),
        text=str(raw.get("text") or raw.get("question") or ""),
        options=tuple(str(o) for o in opts) if isinstance(opts, list) else None,
        scale_min=raw.get("scale_min", scale.get("min")),
        scale_max=raw.get("scale_max", scale.get("max")),
    )


def parse_catalog(raw: Iterable[Dict[str, Any]]) -> List[QuestionDescriptor]:
    """Build descriptors from JSON rows; rejects empty catalogs and duplicate ids."""

    if isinstance(raw, dict):
        raw = raw.get("questions", [])
    out: List[QuestionDescriptor] = []
    seen: set[str] = set()
    for row in raw:
        if not isinstance(row, dict):
            raise CatalogLoadError(f"catalog row is not an object: {row!r}")
        q = _descriptor(row)
        if q.id in seen:
            raise CatalogLoadError(f"duplicate question id {q.id}")
        seen.add(q.id)
        out.append(q)
    if not out:
        raise CatalogLoadError("catalog contains no questions")
    return out


def load_catalog(path: Optional[str | Path] = None) -> List[QuestionDescriptor]:
    try:
        if path is None:
            data = ir.files(__package__).joinpath("data/catalog.json").read_text(encoding="utf-8")
        else:
            data = Path(path).read_text(encoding="utf-8")
        raw = json.loads(data)
    except (OSError, ValueError) as exc:
        raise CatalogLoadError(f"could not read catalog: {exc}") from exc
    return parse_catalog(raw)


def catalog_to_rows(catalog: Iterable[QuestionDescriptor]) -> List[Dict[str, Any]]:
    rows = []
    for q in catalog:
        row: Dict[str, Any] = {"id": q.id, "type": q.type, "section": q.section,
                               "required": q.required, "text": q.text}
        if q.options is not None: row["options"] = list(q.options)
        if q.scale_min is not None: row["scale_min"] = q.scale_min
        if q.scale_max is not None: row["scale_max"] = q.scale_max
        rows.append(row)
    return rows
