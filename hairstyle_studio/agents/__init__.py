"""Prompt construction for the generation stages."""

from .prompt_builder import (
    ANALYSIS_PROMPT,
    DESCRIPTION_PROMPT,
    SUGGESTION_SCHEMA,
    VIEW_INSTRUCTIONS,
    build_front_view_prompt,
    build_suggestion_prompt,
    build_view_prompt,
)

__all__ = [
    "ANALYSIS_PROMPT",
    "DESCRIPTION_PROMPT",
    "SUGGESTION_SCHEMA",
    "VIEW_INSTRUCTIONS",
    "build_front_view_prompt",
    "build_suggestion_prompt",
    "build_view_prompt",
]
