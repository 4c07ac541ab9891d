"""
Translation utility functions for input normalisation, chunking, and JSON extraction.
"""

import json
from typing import Dict, Iterable, List, Optional, TypeVar

T = TypeVar("T")


def unique_non_empty(strings: Iterable[str]) -> List[str]:
    """
    De-duplicate strings and drop empty/whitespace-only ones, keeping first-seen order.

    Example:
        >>> unique_non_empty(["Save", " ", "Save", "Cancel"])
        ['Save', 'Cancel']
    """
    seen = set()
    result = []
    for text in strings:
        if not isinstance(text, str) or not text.strip() or text in seen:
            continue
        seen.add(text)
        result.append(text)
    return result


def chunk_strings(items: List[T], max_chunk_size: int) -> List[List[T]]:
    """
    Split items into consecutive chunks of at most max_chunk_size.

    Args:
        items: Items to split
        max_chunk_size: Maximum items per chunk (>= 1)

    Returns:
        List of chunks; empty if items is empty
    """
    if max_chunk_size < 1:
        raise ValueError("max_chunk_size must be >= 1")

    return [items[i:i + max_chunk_size] for i in range(0, len(items), max_chunk_size)]


def match_json_object(text: str) -> Optional[str]:
    """
    Extract JSON object from mixed text using bracket matching.

    Args:
        text: Text potentially containing JSON object

    Returns:
        Extracted JSON object string, or None if not found
    """
    if not text:
        return None

    stack = []
    start = -1
    in_string = False
    escape_next = False

    for i, char in enumerate(text):
        if escape_next:
            escape_next = False
            continue

        if char == '\\':
            escape_next = True
            continue

        if char == '"':
            in_string = not in_string
            continue

        if in_string:
            continue

        if char == '{':
            if not stack:
                start = i
            stack.append('{')
        elif char == '}':
            if stack:
                stack.pop()
                if not stack and start >= 0:
                    return text[start:i+1]

    return None


def _strip_code_fence(text: str) -> str:
    lines = text.split('\n')
    if lines[0].startswith('```'):
        lines = lines[1:]
    if lines and lines[-1].strip() == '```':
        lines = lines[:-1]
    return '\n'.join(lines).strip()


def safe_parse_json_object(text: str) -> Optional[Dict]:
    """
    Safely parse JSON object from potentially malformed text.

    Tries multiple strategies:
    1. Direct parse
    2. Remove markdown code blocks and parse
    3. Extract with bracket matching and parse

    Args:
        text: Text to parse

    Returns:
        Parsed dict or None on failure
    """
    if not text:
        return None

    text = text.strip()

    # Strategy 1: Direct parse
    try:
        result = json.loads(text)
        if isinstance(result, dict):
            return result
    except json.JSONDecodeError:
        pass

    # Strategy 2: Remove markdown code blocks
    if text.startswith('```'):
        try:
            result = json.loads(_strip_code_fence(text))
            if isinstance(result, dict):
                return result
        except json.JSONDecodeError:
            pass

    # Strategy 3: Extract with bracket matching
    extracted = match_json_object(text)
    if extracted:
        try:
            result = json.loads(extracted)
            if isinstance(result, dict):
                return result
        except json.JSONDecodeError:
            pass

    return None


def empty_token_usage() -> Dict[str, int]:
    return {"input": 0, "output": 0, "total": 0}
