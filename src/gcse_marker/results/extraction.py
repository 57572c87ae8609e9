"""
Module: results.extraction

Purpose:
    Locates the JSON payload inside raw marking model output.

Key Functions:
    - extract_json_block(): Fenced block content, or the whole text

Used By:
    - results.parser
"""

from __future__ import annotations

JSON_FENCE = "```json"
BARE_FENCE = "```"


def _fenced_content(text: str, fence: str) -> str | None:
    start = text.find(fence)
    if start == -1:
        return None
    content_start = start + len(fence)
    end = text.rfind(BARE_FENCE)
    if end > content_start:
        return text[content_start:end].strip()
    # Unterminated fence: everything after the opening marker
    return text[content_start:].strip()


def extract_json_block(text: str) -> str:
    """
    Extract the JSON text from model output.

    A ```json fence is preferred, then a bare ``` fence; the block runs to
    the last closing fence. Without any fence the whole output is used.

    Examples:
        >>> extract_json_block('Here you go:\\n```json\\n{"a": 1}\\n```')
        '{"a": 1}'
        >>> extract_json_block('  {"a": 1}  ')
        '{"a": 1}'
    """
    if not text:
        return ""
    for fence in (JSON_FENCE, BARE_FENCE):
        content = _fenced_content(text, fence)
        if content is not None:
            return content
    return text.strip()
