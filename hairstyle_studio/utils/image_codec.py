"""Conversion between raw image bytes, transport payloads and data URIs."""

import base64
import binascii
import io

from PIL import Image

from ..exceptions import CodecError
from ..models import EncodedImage, SourcePhoto

# Pillow format name -> MIME type the generation API accepts as-is
SUPPORTED_FORMATS = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
}

# Everything else Pillow can read is converted to this
FALLBACK_FORMAT = "PNG"

# Modes the PNG writer accepts without conversion
PNG_MODES = {"1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA"}


def sniff_format(raw: bytes) -> str:
    """Identify the image format of ``raw`` (Pillow format name).

    Raises:
        CodecError: If the bytes are empty or cannot be read as an image.
    """
    if not raw:
        raise CodecError("Image data is empty")

    try:
        with Image.open(io.BytesIO(raw)) as img:
            image_format = img.format
            img.verify()
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
        raise CodecError(f"Could not read image data: {e}") from e

    if not image_format:
        raise CodecError("Could not determine image format")
    return image_format


def to_png(raw: bytes) -> bytes:
    """Re-encode a readable image as PNG (first frame only)."""
    try:
        with Image.open(io.BytesIO(raw)) as img:
            img.load()
            if img.mode not in PNG_MODES:
                img = img.convert("RGBA")
            output = io.BytesIO()
            img.save(output, format=FALLBACK_FORMAT)
    except (OSError, SyntaxError, ValueError) as e:
        raise CodecError(f"Could not convert image to PNG: {e}") from e
    return output.getvalue()


def encode(raw: bytes) -> EncodedImage:
    """Encode raw image bytes into a transport payload.

    JPEG, PNG and WEBP bytes are validated and passed through unchanged.
    Any other format Pillow can read (GIF, BMP, TIFF, ...) is re-encoded as
    PNG. Either way the result is deterministic for a given input.
    """
    image_format = sniff_format(raw)
    mime_type = SUPPORTED_FORMATS.get(image_format)
    if mime_type is None:
        raw = to_png(raw)
        mime_type = SUPPORTED_FORMATS[FALLBACK_FORMAT]
    return EncodedImage(
        mime_type=mime_type,
        data=base64.b64encode(raw).decode("ascii"),
    )


def decode(payload: EncodedImage) -> str:
    """Turn a payload into a displayable ``data:`` URI."""
    return payload.to_data_uri()


def decode_bytes(payload: EncodedImage) -> bytes:
    """Recover the raw image bytes from a payload."""
    try:
        return base64.b64decode(payload.data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CodecError(f"Invalid base64 image data: {e}") from e


def data_uri_bytes(text: str) -> bytes:
    """Decode a ``data:`` URI or bare base64 string to raw bytes.

    Only the base64 layer is checked; the bytes may still not be an image.
    """
    if text.startswith("data:"):
        # Remove data URL prefix (e.g., "data:image/png;base64,")
        _, _, text = text.partition(",")
    try:
        return base64.b64decode(text.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise CodecError(f"Invalid base64 image data: {e}") from e


def from_data_uri(text: str) -> EncodedImage:
    """Parse a ``data:`` URI or bare base64 string into a validated payload."""
    return encode(data_uri_bytes(text))


def capture_photo(raw: bytes) -> SourcePhoto:
    """Validate an uploaded photo and bundle it with its transport payload."""
    return SourcePhoto(raw=raw, payload=encode(raw))
