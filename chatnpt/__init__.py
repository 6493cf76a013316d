"""ChatNPT: grounded question answering over Practice Tools records."""

__all__ = [
    "citations",
    "engine",
    "history",
    "index",
    "intent",
    "listing",
    "llm",
    "ranking",
    "sources",
    "store",
    "transcripts",
]
