"""
Extract plain text from SDK and REST model responses.

Shapes are probed in a fixed order per backend kind; the first match wins.
Anything unrecognised degrades to a bounded serialisation of the payload.
"""
import json
import logging
from typing import Any, Callable, List, Optional

from services.gemini_service import BackendKind, ModelCallResult

logger = logging.getLogger(__name__)

MAX_FALLBACK_CHARS = 10000


def _get(obj: Any, key: str) -> Any:
    """Attribute or mapping access, None when absent."""
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def _first(items: Any) -> Any:
    if items is None or isinstance(items, (str, bytes, dict)):
        return None
    try:
        return next(iter(items), None)
    except TypeError:
        return None


def _join_texts(items: Any, separator: str) -> Optional[str]:
    if items is None or isinstance(items, (str, bytes, dict)):
        return None
    try:
        texts = [_get(item, "text") or "" for item in items]
    except TypeError:
        return None
    if not texts:
        return None
    return separator.join(str(text) for text in texts)


# ---- structured (SDK) shapes -------------------------------------------------

def _sdk_text_attribute(raw: Any) -> Optional[str]:
    if isinstance(raw, (str, dict)):
        return None
    text = getattr(raw, "text", None)
    if callable(text):
        text = text()
    return text if isinstance(text, str) else None


def _sdk_nested_response(raw: Any) -> Optional[str]:
    response = _get(raw, "response")
    if response is None:
        return None
    return _sdk_text_attribute(response)


def _candidate_parts(raw: Any) -> Optional[str]:
    candidate = _first(_get(raw, "candidates"))
    content = _get(candidate, "content") if candidate is not None else None
    parts = _get(content, "parts") if content is not None else None
    return _join_texts(parts, " ")


def _plain_string(raw: Any) -> Optional[str]:
    return raw if isinstance(raw, str) else None


# ---- REST shapes -------------------------------------------------------------

def _rest_candidate_text(raw: Any) -> Optional[str]:
    candidate = _first(_get(raw, "candidates"))
    content = _get(candidate, "content") if candidate is not None else None
    text = _get(content, "text") if content is not None else None
    return text if isinstance(text, str) else None


def _rest_output_content(raw: Any) -> Optional[str]:
    output = _first(_get(raw, "output"))
    content = _get(output, "content") if output is not None else None
    return _join_texts(content, "\n")


STRUCTURED_PROBES: List[Callable[[Any], Optional[str]]] = [
    _sdk_text_attribute,
    _sdk_nested_response,
    _candidate_parts,
    _plain_string,
]

REST_PROBES: List[Callable[[Any], Optional[str]]] = [
    _candidate_parts,
    _rest_candidate_text,
    _rest_output_content,
    _plain_string,
]


def _serialize(raw: Any) -> str:
    try:
        text = json.dumps(raw, default=str)
    except (TypeError, ValueError):
        text = str(raw)
    return text[:MAX_FALLBACK_CHARS]


def extract_text(result: ModelCallResult) -> str:
    """Return the model's text payload. Never raises."""
    raw = result.raw_payload
    probes = STRUCTURED_PROBES if result.backend_kind == BackendKind.STRUCTURED else REST_PROBES

    for probe in probes:
        try:
            text = probe(raw)
        except Exception as err:
            # e.g. the SDK's .text raises when a response was blocked
            logger.debug(f"{probe.__name__} could not read {result.model_id} response: {err}")
            continue
        if text is not None:
            return text.strip()

    logger.warning(f"Unrecognised response shape from {result.model_id}; using serialised payload")
    try:
        return _serialize(raw).strip()
    except Exception:
        return repr(raw)[:MAX_FALLBACK_CHARS]
