#!/usr/bin/env python3
"""
Text sanitization utilities for board posts and LLM responses.

Post bodies arrive as HTML fragments with entity-escaped quotes and
``<wbr>`` break hints inside long URLs. LLM responses often wrap JSON in
markdown fences and use typographic quotes.
"""

import re
import html
import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

# Typographic quotation marks that break JSON parsing
SMART_QUOTES_MAP = {
    "“": '"',  # Left double quotation mark
    "”": '"',  # Right double quotation mark
    "‘": "'",  # Left single quotation mark
    "’": "'",  # Right single quotation mark
}

SMART_QUOTES_TRANSLATION = str.maketrans(SMART_QUOTES_MAP)

_WBR_RE = re.compile(r'<wbr\s*/?>', re.IGNORECASE)
_BR_RE = re.compile(r'<br\s*/?>', re.IGNORECASE)
_TAG_RE = re.compile(r'<[^>]+>')
_FENCE_RE = re.compile(r'```(?:json)?\s*(.*?)```', re.DOTALL | re.IGNORECASE)


def unescape_markup(com: str) -> str:
    """
    Undo entity escaping and drop ``<wbr>`` hints, keeping other tags.
    
    Quote links stay intact (``#p123`` hrefs and ``>>123`` text).
    """
    if not com:
        return ""
    return html.unescape(_WBR_RE.sub('', com))


def post_text(com: str) -> str:
    """
    Convert a post body to plain text.
    
    Args:
        com: Raw post HTML
        
    Returns:
        Plain text with line breaks preserved
    """
    if not com:
        return ""
    text = _WBR_RE.sub('', com)
    text = _BR_RE.sub('\n', text)
    text = _TAG_RE.sub('', text)
    return html.unescape(text).strip()


def normalize_quotes(text: str) -> str:
    """Replace typographic quotes with ASCII equivalents."""
    if not text:
        return text
    return text.translate(SMART_QUOTES_TRANSLATION)


def extract_json_block(raw_response: str) -> str:
    """
    Pull the JSON payload out of an LLM response.
    
    Handles fenced code blocks and leading/trailing prose around a
    bare JSON object.
    """
    if not raw_response:
        return raw_response
    
    processed = normalize_quotes(raw_response).strip()
    fenced = _FENCE_RE.search(processed)
    if fenced:
        return fenced.group(1).strip()
    
    start = processed.find('{')
    end = processed.rfind('}')
    if start != -1 and end > start:
        return processed[start:end + 1]
    return processed


def parse_llm_json(raw_response: str) -> Any:
    """
    Parse JSON from an LLM response.
    
    Raises:
        ValueError: If no valid JSON can be recovered
    """
    payload = extract_json_block(raw_response)
    try:
        return json.loads(payload)
    except json.JSONDecodeError as e:
        logger.debug(f"Unparseable LLM JSON ({len(raw_response or '')} chars): {e}")
        raise ValueError(f"LLM response is not valid JSON: {e}") from e
