import math
from typing import List, Tuple

from app.models import SearchChunk

from . import llm


def _cosine(a: List[float], b: List[float]) -> float:
    if not a or not b:
        return 0.0
    n = min(len(a), len(b))
    dot = 0.0
    na = 0.0
    nb = 0.0
    for i in range(n):
        x = float(a[i])
        y = float(b[i])
        dot += x * y
        na += x * x
        nb += y * y
    if na <= 0.0 or nb <= 0.0:
        return 0.0
    return dot / (math.sqrt(na) * math.sqrt(nb))


def search_chunks(organization_id: int, query: str, k: int = 20, min_score: float = 0.25) -> Tuple[List[Tuple[str, float]], str]:
    """Nearest indexed chunks for a query as [(chunk_key, score)], best first."""
    query = (query or "").strip()
    if not query:
        return [], "Empty query"

    vectors, err = llm.embed_texts([query])
    if not vectors:
        return [], err or "Embedding failed"
    qvec = vectors[0]

    rows = (
        SearchChunk.query
        .with_entities(SearchChunk.chunk_key, SearchChunk.embedding)
        .filter_by(organization_id=organization_id)
        .all()
    )

    scored: List[Tuple[str, float]] = []
    for chunk_key, embedding in rows:
        s = _cosine(qvec, embedding if isinstance(embedding, list) else [])
        if s >= min_score:
            scored.append((chunk_key, s))

    scored.sort(key=lambda x: x[1], reverse=True)
    return scored[: max(0, int(k))], ""
