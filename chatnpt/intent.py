"""Decide whether a question wants an exhaustive filtered list or a written answer."""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from flask import current_app

from . import llm
from .sources import SOURCES, get_source

logger = logging.getLogger(__name__)

LIST = "list"
ANSWER = "answer"

_LIST_PHRASES = re.compile(
    r"\b(list|count|show all|show me all|how many|which|what are all|give me all)\b",
    re.IGNORECASE,
)


@dataclass
class Intent:
    kind: str = ANSWER
    record_type: Optional[str] = None
    filters: Dict[str, str] = field(default_factory=dict)
    reason: str = ""

    @property
    def is_list(self) -> bool:
        return self.kind == LIST and self.record_type is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "record_type": self.record_type,
            "filters": dict(self.filters),
            "reason": self.reason,
        }


def classifier_prompt(question: str) -> str:
    catalog = [
        {
            "record_type": s.key,
            "description": s.description,
            "filterable_fields": list(s.list_fields),
        }
        for s in SOURCES
    ]
    return f"""
Classify a question asked to a practice management assistant.

Decide whether the user wants an exhaustive list (or count) of records of ONE record type,
optionally filtered by exact field values, or whether they want a written answer.

Use "list" only when the question asks to enumerate or count records, for example
"list all open issues in Security" or "how many SA assignments are pending".
Use "answer" for explanations, summaries, how-to questions and anything else.

Record types (JSON)

{json.dumps(catalog, ensure_ascii=False)}

Question

{question}

Output

Return JSON: {{"intent": "list" or "answer", "record_type": record type or null, "filters": {{field: value}}}}
Only use filterable_fields of the chosen record type.
""".strip()


def validate_classification(obj: Any) -> Intent:
    """Turn raw classifier output into an Intent, falling back to ANSWER when anything is off."""
    if not isinstance(obj, dict):
        return Intent(reason="invalid classifier output")

    kind = str(obj.get("intent") or "").strip().lower()
    if kind != LIST:
        return Intent(reason="classifier")

    source = get_source(str(obj.get("record_type") or ""))
    if source is None:
        return Intent(reason="unknown record type")

    raw_filters = obj.get("filters") or {}
    if not isinstance(raw_filters, dict):
        return Intent(reason="invalid filters")

    filters: Dict[str, str] = {}
    for name, value in raw_filters.items():
        if name not in source.list_fields:
            continue
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            return Intent(reason="invalid filter value")
        text = str(value).strip()
        if not text:
            return Intent(reason="invalid filter value")
        filters[name] = text

    return Intent(kind=LIST, record_type=source.key, filters=filters, reason="classifier")


def _alias_match(question: str) -> Optional[str]:
    best_key = None
    best_len = 0
    for source in SOURCES:
        for alias in source.aliases:
            if len(alias) <= best_len:
                continue
            if re.search(rf"\b{re.escape(alias)}\b", question, re.IGNORECASE):
                best_key = source.key
                best_len = len(alias)
    return best_key


def heuristic_intent(question: str) -> Intent:
    if not _LIST_PHRASES.search(question or ""):
        return Intent(reason="heuristic")
    record_type = _alias_match(question)
    if record_type is None:
        return Intent(reason="heuristic")
    return Intent(kind=LIST, record_type=record_type, reason="heuristic")


def classify_intent(question: str) -> Intent:
    if not current_app.config.get("CHATNPT_CLASSIFIER_ENABLED", True):
        return heuristic_intent(question)

    obj, err = llm.llm_json(classifier_prompt(question), model=llm.classifier_model_name(), temperature=0.0)
    if err or obj is None:
        logger.warning("Intent classifier unavailable, using heuristic: %s", err)
        return heuristic_intent(question)
    return validate_classification(obj)
