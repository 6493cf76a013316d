"""OpenAI client helpers shared by classification, generation and embeddings.

Helpers that call the API return (value, error) and never raise, so the
engine can degrade instead of failing the whole request.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Iterator, List, Optional, Tuple

from flask import current_app
from openai import OpenAI

logger = logging.getLogger(__name__)


def client_ready() -> Tuple[bool, str]:
    key = (current_app.config.get("OPENAI_API_KEY") or "").strip()
    if not key:
        return False, "OPENAI_API_KEY is missing"
    return True, ""


def model_name() -> str:
    return (current_app.config.get("OPENAI_MODEL") or "").strip() or "gpt-4.1"


def classifier_model_name() -> str:
    return (current_app.config.get("CHATNPT_CLASSIFIER_MODEL") or "").strip() or model_name()


def get_client():
    ok, _ = client_ready()
    if not ok:
        return None
    key = current_app.config["OPENAI_API_KEY"].strip()
    return OpenAI(api_key=key, timeout=current_app.config.get("OPENAI_TIMEOUT", 60.0))


def safe_json_loads(s: str) -> Tuple[Optional[Dict[str, Any]], str]:
    if not s:
        return None, "Empty model output"

    # Strip markdown code blocks if present
    text = s.strip()
    if text.startswith("```"):
        lines = text.split("\n", 1)
        if len(lines) > 1:
            text = lines[1]
        if text.endswith("```"):
            text = text[:-3].strip()
        elif "```" in text:
            text = text.rsplit("```", 1)[0].strip()

    try:
        obj = json.loads(text)
        if isinstance(obj, dict):
            return obj, ""
    except ValueError:
        pass

    # Fallback: extract first JSON object from text
    m = re.search(r"\{.*\}", text, flags=re.DOTALL)
    if m:
        try:
            obj = json.loads(m.group(0))
            if isinstance(obj, dict):
                return obj, ""
        except ValueError:
            pass
    return None, "Model did not return valid json"


def llm_json(prompt: str, model: Optional[str] = None, temperature: float = 0.0) -> Tuple[Optional[Dict[str, Any]], str]:
    client = get_client()
    if client is None:
        ok, msg = client_ready()
        return None, msg or "Client not available"
    try:
        res = client.chat.completions.create(
            model=model or model_name(),
            messages=[
                {"role": "system", "content": "You are a JSON API. Return ONLY valid JSON with no markdown formatting, no code fences, no explanations. Start your response with { and end with }."},
                {"role": "user", "content": prompt},
            ],
            temperature=temperature,
        )
        text = (res.choices[0].message.content or "").strip()
        return safe_json_loads(text)
    except Exception as e:
        logger.warning("JSON completion failed: %s: %s", type(e).__name__, e)
        return None, f"LLM request failed: {type(e).__name__}: {e}"


def _messages(system: str, prompt: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": prompt},
    ]


def complete(system: str, prompt: str, max_tokens: int, temperature: float = 0.2) -> Tuple[str, str]:
    """Blocking chat completion. Returns (text, error)."""
    client = get_client()
    if client is None:
        ok, msg = client_ready()
        return "", msg or "Client not available"
    try:
        res = client.chat.completions.create(
            model=model_name(),
            messages=_messages(system, prompt),
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return (res.choices[0].message.content or "").strip(), ""
    except Exception as e:
        logger.warning("Completion failed: %s: %s", type(e).__name__, e)
        return "", f"LLM request failed: {type(e).__name__}: {e}"


def stream_complete(system: str, prompt: str, max_tokens: int, temperature: float = 0.2) -> Iterator[Tuple[str, str]]:
    """Streaming chat completion. Yields (delta, error); an error ends the stream."""
    client = get_client()
    if client is None:
        ok, msg = client_ready()
        yield "", msg or "Client not available"
        return
    try:
        stream = client.chat.completions.create(
            model=model_name(),
            messages=_messages(system, prompt),
            temperature=temperature,
            max_tokens=max_tokens,
            stream=True,
        )
        for chunk in stream:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta.content
            if delta:
                yield delta, ""
    except Exception as e:
        logger.warning("Streaming completion failed: %s: %s", type(e).__name__, e)
        yield "", f"LLM request failed: {type(e).__name__}: {e}"


def embed_texts(texts: List[str]) -> Tuple[Optional[List[List[float]]], str]:
    if not texts:
        return [], ""
    client = get_client()
    if client is None:
        ok, msg = client_ready()
        return None, msg or "Client not available"
    model = (current_app.config.get("OPENAI_EMBEDDING_MODEL") or "text-embedding-3-small").strip()
    try:
        resp = client.embeddings.create(model=model, input=texts)
        return [list(d.embedding) for d in resp.data], ""
    except Exception as e:
        logger.warning("Embedding failed: %s: %s", type(e).__name__, e)
        return None, f"Embedding failed: {type(e).__name__}: {e}"
