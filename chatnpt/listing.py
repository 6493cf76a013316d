"""Deterministic answers for list and count questions.

No generation model is involved: the records are filtered in code, counted and
listed, so the count is exact and nothing can be invented.
"""
from __future__ import annotations

from typing import Any, Dict, List

from flask import current_app

from .intent import Intent
from .results import ChatResult
from .sources import RecordSource, accessible_records, field_value, get_source


def _norm(value) -> str:
    return " ".join(str(value).split()).lower()


def matches_filters(record, filters: Dict[str, str]) -> bool:
    for name, wanted in filters.items():
        target = _norm(wanted)
        value = field_value(record, name)
        if isinstance(value, (list, tuple)):
            if target not in {_norm(v) for v in value if v is not None}:
                return False
        elif value is None or _norm(value) != target:
            return False
    return True


def describe_filters(filters: Dict[str, str]) -> str:
    if not filters:
        return ""
    return " matching " + ", ".join(f"{k}={v}" for k, v in filters.items())


def _record_source(source: RecordSource, record, number: int) -> Dict[str, Any]:
    return {
        "number": number,
        "source": source.name,
        "source_type": source.key,
        "id": str(record.id),
        "topic": source.list_line(record),
        "text": "",
        "url": source.view_url,
        "date": "",
    }


def answer_list_query(intent: Intent, user) -> ChatResult:
    source = get_source(intent.record_type or "")
    if source is None:
        return ChatResult(answer="I couldn't tell which records you want listed.", meta={"intent": intent.to_dict()})

    records = [r for r in accessible_records(source, user) if matches_filters(r, intent.filters)]
    total = len(records)
    where = describe_filters(intent.filters)

    if total == 0:
        return ChatResult(
            answer=f"No {source.plural} found{where}.",
            meta={"intent": intent.to_dict(), "count": 0},
        )

    limit = max(1, int(current_app.config.get("CHATNPT_LIST_LIMIT", 50)))
    shown = records[:limit]
    noun = source.label if total == 1 else source.plural
    lines: List[str] = [f"Found {total} {noun}{where}:", ""]
    for idx, record in enumerate(shown, start=1):
        lines.append(f"{idx}. {source.list_line(record)}")
    if total > limit:
        lines.append(f"...and {total - limit} more.")

    return ChatResult(
        answer="\n".join(lines),
        sources=[_record_source(source, r, i) for i, r in enumerate(shown, start=1)],
        meta={"intent": intent.to_dict(), "count": total},
    )
