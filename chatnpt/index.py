"""Keep the tenant vector index in step with the source records."""
import hashlib
import logging
from typing import Any, Dict, List

from flask import current_app

from app import db
from app.models import SearchChunk

from . import llm
from .sources import ContextChunk, organization_chunks

logger = logging.getLogger(__name__)


def content_hash(chunk: ContextChunk) -> str:
    return hashlib.sha256(f"{chunk.topic}\n{chunk.text}".encode("utf-8")).hexdigest()


def embedding_input(chunk: ContextChunk) -> str:
    return f"{chunk.source} | {chunk.topic}\n{chunk.text}"


def rebuild_index(organization_id: int) -> Dict[str, Any]:
    """
    Embed new or changed chunks for one organization and drop rows whose
    chunk no longer exists. Unchanged chunks keep their stored embedding.
    """
    chunks = organization_chunks(organization_id)
    existing = {
        row.chunk_key: row
        for row in SearchChunk.query.filter_by(organization_id=organization_id).all()
    }

    pending: List[ContextChunk] = []
    hashes: Dict[str, str] = {}
    skipped = 0
    for chunk in chunks:
        h = content_hash(chunk)
        hashes[chunk.key] = h
        row = existing.get(chunk.key)
        if row is not None and row.content_hash == h:
            skipped += 1
            continue
        pending.append(chunk)

    batch_size = max(1, int(current_app.config.get("CHATNPT_EMBED_BATCH_SIZE", 32)))
    indexed = 0
    errors: List[str] = []
    i = 0
    while i < len(pending):
        batch = pending[i:i + batch_size]
        i += batch_size
        vectors, err = llm.embed_texts([embedding_input(c) for c in batch])
        if not vectors or len(vectors) != len(batch):
            errors.append(err or "Embedding count mismatch")
            continue
        for chunk, vec in zip(batch, vectors):
            row = existing.get(chunk.key)
            if row is None:
                row = SearchChunk(organization_id=organization_id, chunk_key=chunk.key)
                db.session.add(row)
                existing[chunk.key] = row
            row.source_type = chunk.source_type
            row.record_id = chunk.record_id
            row.content_hash = hashes[chunk.key]
            row.embedding = vec
            indexed += 1
        db.session.commit()

    deleted = 0
    for key, row in existing.items():
        if key not in hashes:
            db.session.delete(row)
            deleted += 1
    db.session.commit()

    result = {"indexed": indexed, "skipped": skipped, "deleted": deleted, "errors": errors}
    logger.info("Rebuilt search index for organization %s: %s", organization_id, result)
    return result
