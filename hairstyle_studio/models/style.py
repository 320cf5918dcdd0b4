"""Hairstyle suggestion models."""

from pydantic import BaseModel, ConfigDict, Field

from .image import EncodedImage


class StyleIdea(BaseModel):
    """A suggested hairstyle before its preview has been rendered."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Short label, e.g. 'Textured Crop'")
    description: str = Field(description="Free-text description used in render prompts")


class StyleCandidate(StyleIdea):
    """A suggested hairstyle together with its rendered front-view preview.

    ``name`` is the identity key within a run.
    """

    preview_image: EncodedImage

    @classmethod
    def from_idea(cls, idea: StyleIdea, preview_image: EncodedImage) -> "StyleCandidate":
        return cls(name=idea.name, description=idea.description, preview_image=preview_image)
