"""Keyword scoring and the lexical/vector merge."""
from __future__ import annotations

import re
from typing import Dict, List, Sequence, Set, Tuple

from .sources import ContextChunk

_WORD = re.compile(r"[a-z0-9]+")

STOPWORDS: Set[str] = {
    "a", "about", "an", "and", "any", "are", "as", "at", "be", "been", "by", "can", "could",
    "did", "do", "does", "for", "from", "get", "give", "has", "have", "how", "i", "if", "in",
    "is", "it", "its", "me", "my", "of", "on", "or", "our", "please", "says", "said", "should",
    "show", "tell", "that", "the", "their", "there", "these", "this", "those", "to", "us", "was",
    "we", "were", "what", "when", "where", "which", "who", "whom", "why", "will", "with",
    "would", "you", "your",
}


def tokenize(text: str) -> List[str]:
    return [w for w in _WORD.findall((text or "").lower()) if len(w) > 1 and w not in STOPWORDS]


def query_terms(question: str) -> List[str]:
    """Distinct terms in first-appearance order."""
    seen: Set[str] = set()
    out: List[str] = []
    for term in tokenize(question):
        if term not in seen:
            seen.add(term)
            out.append(term)
    return out


def keyword_score(terms: Sequence[str], chunk: ContextChunk) -> float:
    if not terms:
        return 0.0
    text_tokens = set(tokenize(chunk.text))
    topic_tokens = set(tokenize(chunk.topic))
    score = 0.0
    for term in terms:
        if term in text_tokens:
            score += 1.0
        if term in topic_tokens:
            score += 2.0
    if len(terms) >= 2:
        phrase = " ".join(terms)
        if f" {phrase} " in f" {' '.join(tokenize(chunk.text))} ":
            score += 3.0
    return score


def rank_lexical(question: str, chunks: Sequence[ContextChunk]) -> List[Tuple[ContextChunk, float]]:
    terms = query_terms(question)
    scored = []
    for chunk in chunks:
        s = keyword_score(terms, chunk)
        if s > 0:
            scored.append((chunk, s))
    # sort is stable, so equal scores keep gathering order
    scored.sort(key=lambda x: x[1], reverse=True)
    return scored


def merge_hybrid(
    lexical: Sequence[Tuple[ContextChunk, float]],
    vector: Sequence[Tuple[str, float]],
    chunks: Sequence[ContextChunk],
    limit: int,
    lexical_weight: float = 0.5,
    vector_weight: float = 0.5,
) -> List[Tuple[ContextChunk, float]]:
    """
    Combine keyword and vector evidence into one ranked, deduplicated list.

    Vector hits are keyed by chunk key and only count when the key belongs to
    `chunks`, the permission-filtered set for this request.
    """
    order: Dict[str, int] = {c.key: i for i, c in enumerate(chunks)}
    by_key: Dict[str, ContextChunk] = {c.key: c for c in chunks}
    combined: Dict[str, float] = {}

    max_lex = max((s for _, s in lexical), default=0.0)
    if max_lex > 0:
        for chunk, s in lexical:
            if chunk.key not in by_key:
                continue
            combined[chunk.key] = combined.get(chunk.key, 0.0) + lexical_weight * (s / max_lex)

    best_vector: Dict[str, float] = {}
    for key, s in vector:
        if key in by_key:
            best_vector[key] = max(best_vector.get(key, 0.0), float(s))
    for key, s in best_vector.items():
        combined[key] = combined.get(key, 0.0) + vector_weight * s

    ranked = sorted(combined.items(), key=lambda kv: (-kv[1], order[kv[0]]))
    return [(by_key[k], s) for k, s in ranked[: max(0, int(limit))]]
