"""Image payload models."""

from pydantic import BaseModel, ConfigDict, Field


class EncodedImage(BaseModel):
    """Transport-ready image: base64 text plus its MIME type."""

    model_config = ConfigDict(frozen=True)

    mime_type: str = Field(description="e.g., 'image/jpeg', 'image/png'")
    data: str = Field(description="Base64-encoded image bytes", repr=False)

    def to_data_uri(self) -> str:
        """Displayable ``data:`` URI for this image."""
        return f"data:{self.mime_type};base64,{self.data}"

    def to_inline_part(self) -> dict:
        """Gemini ``inline_data`` content part."""
        return {"inline_data": {"mime_type": self.mime_type, "data": self.data}}


class SourcePhoto(BaseModel):
    """The uploaded photo a workflow run starts from."""

    model_config = ConfigDict(frozen=True)

    raw: bytes = Field(repr=False)
    payload: EncodedImage
