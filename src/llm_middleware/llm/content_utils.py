"""
Multimodal content utilities for the LLM layer.

Normalization, inspection and log-safe rendering of prompts that may mix
text and base64 images. Debug rendering replaces image payloads with a
short placeholder so that base64 blobs never reach the logs.

Parts may be given as TextContentPart/ImageContentPart models or as plain
mappings tagged with "type" ({"type": "text", "text": ...}); every helper
validates them through normalize_content().
"""

import math
from typing import Annotated

from pydantic import Field, TypeAdapter, ValidationError

from llm_middleware.llm.exceptions import LLMConfigurationError
from llm_middleware.models.multimodal import (
    ContentPart,
    ImageContentPart,
    MultimodalContent,
    TextContentPart,
)

_CONTENT_PARTS = TypeAdapter(list[Annotated[ContentPart, Field(discriminator="type")]])


def normalize_content(content: MultimodalContent) -> list[ContentPart]:
    """
    Normalize a prompt to a list of validated content parts.

    A plain string becomes a single TextContentPart. Mapping parts are
    coerced into their models by their "type" tag.

    Examples:
        >>> normalize_content("Hi")
        [TextContentPart(type='text', text='Hi')]
        >>> normalize_content([{"type": "text", "text": "Hi"}])
        [TextContentPart(type='text', text='Hi')]

    Raises:
        LLMConfigurationError: A part has an unknown type or is missing fields
    """
    if isinstance(content, str):
        return [TextContentPart(text=content)]
    try:
        return _CONTENT_PARTS.validate_python(content)
    except ValidationError as e:
        raise LLMConfigurationError(
            "Invalid prompt content parts",
            details={"errors": [{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()]},
        ) from e


def extract_text_content(content: MultimodalContent) -> str:
    """Join the text parts with newlines, ignoring images."""
    if isinstance(content, str):
        return content
    return "\n".join(
        part.text for part in normalize_content(content) if isinstance(part, TextContentPart)
    )


def format_byte_size(size: int) -> str:
    """
    Human-readable byte size.

    Examples:
        >>> format_byte_size(512)
        '512B'
        >>> format_byte_size(2048)
        '2.0KB'
    """
    if size < 1024:
        return f"{size}B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f}KB"
    return f"{size / (1024 * 1024):.1f}MB"


def image_placeholder(part: ImageContentPart) -> str:
    # Decoded size of base64 data is ~3/4 of its length
    size = math.ceil(len(part.data) * 3 / 4)
    return f"[IMAGE: {part.mime_type}, {format_byte_size(size)}]"


def content_to_debug_string(content: MultimodalContent) -> str:
    """
    Log-safe rendering of a prompt.

    Text parts are kept verbatim; images become "[IMAGE: <mime>, <size>]".
    Parts are joined with newlines.
    """
    if isinstance(content, str):
        return content
    return "\n".join(
        part.text if isinstance(part, TextContentPart) else image_placeholder(part)
        for part in normalize_content(content)
    )


def content_length(content: MultimodalContent) -> int:
    """Character length for metrics/logging (images count as their placeholder)."""
    if isinstance(content, str):
        return len(content)
    return len(content_to_debug_string(content))


def has_images(content: MultimodalContent) -> bool:
    if isinstance(content, str):
        return False
    return any(isinstance(part, ImageContentPart) for part in normalize_content(content))


def count_images(content: MultimodalContent) -> int:
    if isinstance(content, str):
        return 0
    return sum(1 for part in normalize_content(content) if isinstance(part, ImageContentPart))
