"""Numbered context, the answer prompt, and recovery of cited sources.

The model is asked to cite sources as "Source N". Which sources an answer
actually used is recovered afterwards by scanning its text for those tokens.
"""
from __future__ import annotations

import re
from typing import Any, Dict, List, Sequence, Tuple

from .sources import ContextChunk

MAX_RANGE = 50

_CITATION = re.compile(
    r"\bsources?\s*#?\s*(\d+(?:(?:\s*,\s*(?:and\s+)?|\s+and\s+|\s*&\s*|\s*[-–]\s*)#?\d+)*)",
    re.IGNORECASE,
)
_NUMBER_OR_RANGE = re.compile(r"(\d+)\s*[-–]\s*(\d+)|(\d+)")

SYSTEM_PROMPT = (
    "You are ChatNPT, a helpful assistant for Practice Tools. Answer questions using ONLY the "
    "numbered sources provided from Webex recordings, Webex messages, documentation and practice "
    "records. If the sources do not contain the answer, say so plainly."
)


def _header(number: int, chunk: ContextChunk) -> str:
    parts = [f"Source {number}", chunk.source, chunk.topic]
    when = chunk.extra.get("display_time") or (chunk.date or "")[:10]
    if when:
        parts.append(when)
    return "[" + " | ".join(p for p in parts if p) + "]"


def build_context(chunks: Sequence[ContextChunk]) -> str:
    return "\n\n".join(f"{_header(i, c)}\n{c.text}" for i, c in enumerate(chunks, start=1))


def build_prompt(question: str, context: str) -> Tuple[str, str]:
    prompt = f"""
Each source below starts with a header [Source N | Origin | Topic | Time or date].

When you use information from a source, cite it inline by number, for example
"According to Source 3, ..." or "(Sources 2 and 5)". Only cite sources you used.

Sources

{context}

Question

{question}

Answer (cite sources as "Source N"):
""".strip()
    return SYSTEM_PROMPT, prompt


def _expand(group: str) -> List[int]:
    numbers: List[int] = []
    for m in _NUMBER_OR_RANGE.finditer(group):
        if m.group(3) is not None:
            numbers.append(int(m.group(3)))
            continue
        start, end = int(m.group(1)), int(m.group(2))
        lo, hi = min(start, end), max(start, end)
        if hi - lo + 1 > MAX_RANGE:
            numbers.extend([start, end])
        else:
            step = 1 if end >= start else -1
            numbers.extend(range(start, end + step, step))
    return numbers


def recover_citations(answer: str, count: int) -> List[int]:
    """Source numbers cited in `answer`, in first-appearance order, within 1..count."""
    seen = set()
    out: List[int] = []
    for m in _CITATION.finditer(answer or ""):
        for n in _expand(m.group(1)):
            if 1 <= n <= count and n not in seen:
                seen.add(n)
                out.append(n)
    return out


def clip(text: str, limit: int) -> str:
    text = (text or "").strip()
    if limit > 0 and len(text) > limit:
        return text[:limit].rstrip() + "..."
    return text


def build_sources(numbers: Sequence[int], chunks: Sequence[ContextChunk], text_limit: int = 1200) -> List[Dict[str, Any]]:
    sources: List[Dict[str, Any]] = []
    for n in numbers:
        if not 1 <= n <= len(chunks):
            continue
        chunk = chunks[n - 1]
        item: Dict[str, Any] = {
            "number": n,
            "source": chunk.source,
            "source_type": chunk.source_type,
            "id": chunk.record_id,
            "topic": chunk.topic,
            "text": clip(chunk.text, text_limit),
            "url": chunk.url,
            "date": chunk.date,
        }
        for key, value in chunk.extra.items():
            item.setdefault(key, value)
        sources.append(item)
    return sources
