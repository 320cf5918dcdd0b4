"""Utilities to clean free text returned by the language model."""

import json
import re


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code block (```json ... ```), if any."""
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        # Remove first line (```json) and the closing fence if present
        lines = lines[1:]
        if lines and lines[-1].strip().startswith("```"):
            lines = lines[:-1]
        text = "\n".join(lines)
    return text.strip()


def normalize_whitespace(text: str) -> str:
    """Collapse runs of spaces and tabs, keep paragraph breaks, trim the ends."""
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def clean_description(text: str) -> str:
    """Tidy a model-written description for embedding in a later prompt.

    Double quotes are turned into single quotes because prompts wrap the
    description in double quotes.
    """
    text = strip_code_fences(text)
    text = normalize_whitespace(text)
    return text.replace('"', "'")


def parse_json_list(text: str) -> list:
    """Parse a JSON array from model output, tolerating code fences.

    Returns an empty list when the text is not a JSON array. A JSON object
    wrapping a single array value (e.g. ``{"styles": [...]}``) is unwrapped.
    """
    try:
        data = json.loads(strip_code_fences(text))
    except json.JSONDecodeError:
        return []

    if isinstance(data, dict):
        lists = [value for value in data.values() if isinstance(value, list)]
        data = lists[0] if len(lists) == 1 else []
    return data if isinstance(data, list) else []
