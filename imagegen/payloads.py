# imagegen/payloads.py
"""
Provider request bodies, one builder per API family.

Every builder is a pure function of its inputs: same PayloadInputs in,
structurally identical body out. Builders also describe what will actually
be served (size label, echoed prompt) so that the outbound records never
claim more than the provider was asked for.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from .model import RecordMetadata, ReferenceImage

if TYPE_CHECKING:
    from .families import ModelFamily


# Keeps multimodal models from embellishing beyond what the user typed.
LITERAL_PROMPT_PREFIX = (
    "Generate an image that depicts exactly the following description. "
    "Follow it literally: do not add subjects, text, styles or details that "
    "are not described, and do not reinterpret it.\n\nDescription: "
)

UPSCALE_PLACEHOLDER_PROMPT = " "
UPSCALE_RECORD_PROMPT = "Upscaled Image"
UPSCALE_ASPECT_RATIO = "Original"
UPSCALE_X4_THRESHOLD = 2048  # upscaleLevel above this -> x4


@dataclass(frozen=True)
class PayloadInputs:
    prompt: str
    aspect_ratio: str
    image_count: int
    size_tier: Optional[str]
    add_watermark: bool = True
    upscale_level: int = 2048
    reference_images: List[ReferenceImage] = field(default_factory=list)


def _size_label(family: "ModelFamily", tier: Optional[str]) -> str:
    if tier is None:
        return "Default"
    return family.size_labels.get(tier, tier)


def build_imagen_body(family: "ModelFamily", inputs: PayloadInputs) -> Tuple[Dict[str, Any], RecordMetadata]:
    """
    Imagen :predict body.
    - one instance, optional single reference image (first one only)
    - sampleCount = number of images returned by the single call
    - sampleImageSize only for models that serve more than one tier
    """
    instance: Dict[str, Any] = {"prompt": inputs.prompt}
    if inputs.reference_images:
        instance["image"] = {"bytesBase64Encoded": inputs.reference_images[0].base64_data}

    parameters: Dict[str, Any] = {
        "sampleCount": inputs.image_count,
        "aspectRatio": inputs.aspect_ratio,
        "addWatermark": inputs.add_watermark,
        "includeRaiReason": True,
    }
    if inputs.size_tier is not None and len(family.size_tiers) > 1:
        parameters["sampleImageSize"] = inputs.size_tier

    body = {"instances": [instance], "parameters": parameters}
    metadata = RecordMetadata(
        prompt=inputs.prompt,
        aspect_ratio=inputs.aspect_ratio,
        size_label=_size_label(family, inputs.size_tier),
        mode=family.name,
    )
    return body, metadata


def upscale_factor(level: int) -> str:
    return "x4" if level > UPSCALE_X4_THRESHOLD else "x2"


def build_upscale_body(family: "ModelFamily", inputs: PayloadInputs) -> Tuple[Dict[str, Any], RecordMetadata]:
    source = inputs.reference_images[0]
    body = {
        "instances": [
            {
                "prompt": inputs.prompt or UPSCALE_PLACEHOLDER_PROMPT,
                "image": {"bytesBase64Encoded": source.base64_data},
            }
        ],
        "parameters": {
            "sampleCount": 1,
            "mode": "upscale",
            "upscaleConfig": {"upscaleFactor": upscale_factor(inputs.upscale_level)},
        },
    }
    metadata = RecordMetadata(
        prompt=UPSCALE_RECORD_PROMPT,
        aspect_ratio=UPSCALE_ASPECT_RATIO,
        size_label=f"{inputs.upscale_level}px (Upscaled)",
        mode=family.name,
    )
    return body, metadata


def build_gemini_body(family: "ModelFamily", inputs: PayloadInputs) -> Tuple[Dict[str, Any], RecordMetadata]:
    """
    :generateContent body. Produces one image per call, so image_count is
    honoured by the dispatcher fanning out, not by the body.
    """
    parts: List[Dict[str, Any]] = [{"text": LITERAL_PROMPT_PREFIX + inputs.prompt}]
    for ref in inputs.reference_images:
        parts.append({"inlineData": {"mimeType": ref.mime_type, "data": ref.base64_data}})

    image_config: Dict[str, Any] = {"aspectRatio": inputs.aspect_ratio}
    # 1K is the model default and is left implicit
    if inputs.size_tier is not None and inputs.size_tier != "1K":
        image_config["imageSize"] = inputs.size_tier

    body: Dict[str, Any] = {
        "contents": [{"role": "user", "parts": parts}],
        "generationConfig": {
            "responseModalities": ["TEXT", "IMAGE"],
            "imageConfig": image_config,
        },
    }
    if family.search_grounding:
        body["tools"] = [{"googleSearch": {}}]

    metadata = RecordMetadata(
        prompt=inputs.prompt,
        aspect_ratio=inputs.aspect_ratio,
        size_label=_size_label(family, inputs.size_tier),
        mode=family.name,
    )
    return body, metadata
