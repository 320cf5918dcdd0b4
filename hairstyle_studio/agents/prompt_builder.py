"""Prompt templates for each generation stage."""

from ..models import ViewLabel


ANALYSIS_PROMPT = (
    "Analyze the person in this photo. Describe their facial structure, skin tone, "
    "current hair color, and estimated age. Be concise and focus on features "
    "relevant for choosing a new hairstyle."
)

DESCRIPTION_PROMPT = (
    "Describe only the hairstyle of the person in this image. Be extremely detailed "
    "about the style, cut, length on top, fade on the sides, texture, and how it's "
    "styled. This description will be used to re-create the exact same hairstyle "
    "from different angles."
)

# Shared tail of every render prompt: identity preservation + framing
RENDER_CONSTRAINTS = (
    "The background must be pure white. Frame from shoulders up. "
    "Preserve exact facial features, skin tone, and head shape. Only change the hair."
)

# Fixed framing instruction per remaining view
VIEW_INSTRUCTIONS: dict[ViewLabel, str] = {
    ViewLabel.BACK: (
        "This is the back view of the person's head. Show the hairstyle from behind."
    ),
    ViewLabel.LEFT_SIDE: (
        "This is the person's left profile view. The person should be turned to show "
        "the left side of their face, looking towards the right edge of the image."
    ),
    ViewLabel.RIGHT_SIDE: (
        "This is the person's right profile view. The person should be turned to show "
        "the right side of their face, looking towards the left edge of the image."
    ),
}

# JSON schema for the suggestion call (Gemini OpenAPI subset)
SUGGESTION_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "styleName": {"type": "STRING"},
            "description": {"type": "STRING"},
        },
        "required": ["styleName", "description"],
    },
}


def build_suggestion_prompt(feature_summary: str, count: int) -> str:
    """Ask for ``count`` distinct hairstyles suited to the analyzed features."""
    noun = "hairstyle" if count == 1 else "hairstyles"
    return (
        f"You are an expert barber and hairstylist. Based on the following facial "
        f"features: \"{feature_summary}\", suggest {count} distinct, cohesive and "
        f"stylish new {noun}. For each, give a short memorable name (styleName) and a "
        f"single detailed description that can be used to generate it from multiple "
        f"angles (front, back, sides). Every styleName must be unique. "
        f"Return a JSON array with exactly {count} objects."
    )


def build_front_view_prompt(style_description: str) -> str:
    """Front-view render prompt for one suggested style."""
    return (
        f"Generate a front view of this hairstyle: \"{style_description}\". "
        f"Apply it to the person in the image. {RENDER_CONSTRAINTS}"
    )


def build_view_prompt(view: ViewLabel, canonical_description: str) -> str:
    """Render prompt for one of the remaining views of the selected style.

    Raises:
        ValueError: If ``view`` is Front, which is never re-rendered.
    """
    instruction = VIEW_INSTRUCTIONS.get(view)
    if instruction is None:
        raise ValueError(f"No render instruction for view {view.value!r}")

    view_name = view.value.lower()
    return (
        f"Based on the front view, generate the {view_name} view of this hairstyle: "
        f"\"{canonical_description}\". {instruction} "
        f"Apply it to the person from the original photo. {RENDER_CONSTRAINTS}"
    )
