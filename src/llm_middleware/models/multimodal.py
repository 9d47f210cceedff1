"""
Multimodal prompt content.

A prompt is either a plain string or an ordered list of text and image
parts. A plain string is equivalent to a single text part.
"""

from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

ImageMimeType = Literal["image/jpeg", "image/png", "image/webp", "image/gif"]
ImageDetail = Literal["low", "high", "auto"]


class TextContentPart(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class ImageContentPart(BaseModel):
    """Inline base64 image (no data-URI prefix)."""
    model_config = ConfigDict(frozen=True)

    type: Literal["image"] = "image"
    data: str = Field(..., description="Base64-encoded image bytes")
    mime_type: ImageMimeType = Field(..., description="Image MIME type")
    detail: Optional[ImageDetail] = Field(
        default=None,
        description="Vision detail hint (honored by OpenAI-compatible routers)",
    )


ContentPart = Union[TextContentPart, ImageContentPart]
MultimodalContent = Union[str, list[ContentPart]]
