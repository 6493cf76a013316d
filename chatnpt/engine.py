"""ChatNPT orchestration: gather, rank, classify, then list or generate."""
from __future__ import annotations

import json
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Deque, Dict, Iterator, List, Optional, Tuple

from flask import current_app

from . import llm, store
from .citations import build_context, build_prompt, build_sources, recover_citations
from .intent import classify_intent
from .listing import answer_list_query
from .ranking import merge_hybrid, rank_lexical
from .results import ChatResult
from .sources import ContextChunk, gather_chunks

logger = logging.getLogger(__name__)

NO_DATA_ANSWER = "No data sources are currently available. Please check back later."
NO_MATCH_ANSWER = "I couldn't find any relevant information to answer your question."
EMPTY_ANSWER = "I'm sorry, I couldn't generate an answer from the available sources."


class RateLimitError(Exception):
    """Raised when the caller exceeds the configured rate limit."""

    def __init__(self, detail: str = "rate_limited") -> None:
        super().__init__(detail)
        self.detail = detail


_RATE_BUCKETS: Dict[str, Deque[float]] = {}
_RATE_LOCK = Lock()


def enforce_rate_limit(key: str) -> None:
    window = current_app.config.get("CHATNPT_RATE_WINDOW", 60)
    limit = current_app.config.get("CHATNPT_RATE_MAX", 20)
    now = time.time()
    with _RATE_LOCK:
        for name in list(_RATE_BUCKETS):
            stale = _RATE_BUCKETS[name]
            while stale and now - stale[0] > window:
                stale.popleft()
            if not stale:
                del _RATE_BUCKETS[name]
        bucket = _RATE_BUCKETS.setdefault(key, deque())
        if len(bucket) >= limit:
            raise RateLimitError()
        bucket.append(now)


def reset_rate_limits() -> None:
    with _RATE_LOCK:
        _RATE_BUCKETS.clear()


def _ms(start: float) -> int:
    return int((time.time() - start) * 1000)


@dataclass
class Prepared:
    """Everything known about a question before (optional) generation."""
    question: str
    started: float
    meta: Dict[str, Any] = field(default_factory=dict)
    result: Optional[ChatResult] = None
    context: List[ContextChunk] = field(default_factory=list)
    system: str = ""
    prompt: str = ""


def _record(meta: Dict[str, Any], question: str) -> None:
    payload = {
        "event": "chatnpt",
        "question": question[:160],
        "intent": meta.get("intent"),
        "candidates": meta.get("candidates", 0),
        "lexical_hits": meta.get("lexical_hits", 0),
        "vector_hits": meta.get("vector_hits", 0),
        "context_chunks": meta.get("context_chunks", 0),
        "cited": meta.get("cited", 0),
        "latency_ms": meta.get("latency_ms", {}),
    }
    logger.info(json.dumps(payload, ensure_ascii=False))


def _settle(prep: Prepared, result: ChatResult, intent: str) -> Prepared:
    prep.meta["intent"] = intent
    prep.meta["cited"] = len(result.sources)
    prep.meta.update({k: v for k, v in result.meta.items() if k not in prep.meta})
    prep.meta["latency_ms"]["total_ms"] = _ms(prep.started)
    result.meta = prep.meta
    prep.result = result
    _record(prep.meta, prep.question)
    return prep


def prepare(question: str, user) -> Prepared:
    """
    Run retrieval and classification. Sets `result` when no generation is
    needed (no data, list query, nothing relevant); otherwise fills in the
    numbered context and prompt.
    """
    cfg = current_app.config
    question = (question or "").strip()
    enforce_rate_limit(f"user:{user.id}")

    prep = Prepared(question=question, started=time.time(), meta={"latency_ms": {}})
    latencies = prep.meta["latency_ms"]

    t = time.time()
    chunks = gather_chunks(user)
    latencies["gather_ms"] = _ms(t)
    prep.meta["candidates"] = len(chunks)

    if not chunks:
        return _settle(prep, ChatResult(answer=NO_DATA_ANSWER), "empty")

    t = time.time()
    lexical = rank_lexical(question, chunks)
    latencies["lexical_ms"] = _ms(t)
    prep.meta["lexical_hits"] = len(lexical)

    vector: List[Tuple[str, float]] = []
    if cfg.get("CHATNPT_VECTOR_ENABLED", True):
        t = time.time()
        vector, verr = store.search_chunks(
            user.organization_id,
            question,
            k=cfg.get("CHATNPT_VECTOR_TOP_K", 20),
            min_score=cfg.get("CHATNPT_MIN_VECTOR_SCORE", 0.25),
        )
        latencies["vector_ms"] = _ms(t)
        if verr:
            prep.meta["vector_error"] = verr
    prep.meta["vector_hits"] = len(vector)

    ranked = merge_hybrid(
        lexical,
        vector,
        chunks,
        limit=cfg.get("CHATNPT_MAX_CONTEXT_CHUNKS", 40),
        lexical_weight=cfg.get("CHATNPT_LEXICAL_WEIGHT", 0.5),
        vector_weight=cfg.get("CHATNPT_VECTOR_WEIGHT", 0.5),
    )

    t = time.time()
    intent = classify_intent(question)
    latencies["classify_ms"] = _ms(t)
    prep.meta["classification"] = intent.to_dict()

    if intent.is_list:
        t = time.time()
        result = answer_list_query(intent, user)
        latencies["list_ms"] = _ms(t)
        return _settle(prep, result, "list")

    if not ranked:
        return _settle(prep, ChatResult(answer=NO_MATCH_ANSWER), "no_match")

    prep.meta["intent"] = "answer"
    prep.context = [c for c, _ in ranked]
    prep.meta["context_chunks"] = len(prep.context)
    prep.system, prep.prompt = build_prompt(question, build_context(prep.context))
    return prep


def finish(prep: Prepared, answer: str) -> ChatResult:
    answer = (answer or "").strip() or EMPTY_ANSWER
    numbers = recover_citations(answer, len(prep.context))
    sources = build_sources(numbers, prep.context, current_app.config.get("CHATNPT_SOURCE_TEXT_LIMIT", 1200))
    _settle(prep, ChatResult(answer=answer, sources=sources), "answer")
    return prep.result


def ask(question: str, user) -> Tuple[Optional[ChatResult], str]:
    """Answer a question in one blocking call. Returns (result, error)."""
    prep = prepare(question, user)
    if prep.result is not None:
        return prep.result, ""

    t = time.time()
    text, err = llm.complete(prep.system, prep.prompt, max_tokens=current_app.config.get("CHATNPT_MAX_TOKENS", 2000))
    prep.meta["latency_ms"]["generate_ms"] = _ms(t)
    if err:
        return None, err
    return finish(prep, text), ""


def stream(question: str, user) -> Iterator[Dict[str, Any]]:
    """
    Prepare eagerly (so rate limiting surfaces before any output) and return
    an iterator of stream events.
    """
    prep = prepare(question, user)
    return _events(prep)


def _events(prep: Prepared) -> Iterator[Dict[str, Any]]:
    yield {"type": "meta", **{k: v for k, v in prep.meta.items() if k != "latency_ms"}}

    if prep.result is not None:
        yield {"type": "delta", "text": prep.result.answer}
        yield {"type": "sources", "sources": prep.result.sources}
        yield {"type": "done"}
        return

    parts: List[str] = []
    t = time.time()
    for delta, err in llm.stream_complete(prep.system, prep.prompt, max_tokens=current_app.config.get("CHATNPT_MAX_TOKENS", 2000)):
        if err:
            yield {"type": "error", "error": err}
            return
        parts.append(delta)
        yield {"type": "delta", "text": delta}
    prep.meta["latency_ms"]["generate_ms"] = _ms(t)

    result = finish(prep, "".join(parts))
    if not parts:
        yield {"type": "delta", "text": result.answer}
    yield {"type": "sources", "sources": result.sources}
    yield {"type": "done"}
