# imagegen/families.py
"""
Mode -> model family table.

Adding a model is a new ModelFamily entry here; nothing else branches on mode.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Tuple

from .errors import ValidationError
from .model import ProviderResult, RecordMetadata
from .payloads import PayloadInputs, build_gemini_body, build_imagen_body, build_upscale_body
from .reconciler import parse_generate_content_response, parse_predict_response

BodyBuilder = Callable[["ModelFamily", PayloadInputs], Tuple[Dict[str, Any], RecordMetadata]]
ResultParser = Callable[[Dict[str, Any]], ProviderResult]

IMAGEN_SIZE_LABELS = {"1K": "1024x1024", "2K": "2048x2048"}
GEMINI_SIZE_LABELS = {"1K": "1K", "2K": "2K", "4K": "4K"}


@dataclass(frozen=True)
class ModelFamily:
    name: str
    model_id: str
    api_version: str
    method: str  # "predict" | "generateContent"
    build_body: BodyBuilder
    parse_result: ResultParser
    # True: one image per call, the dispatcher issues image_count calls
    fan_out: bool
    max_images: int
    max_reference_images: int
    size_tiers: Tuple[str, ...] = ()
    size_labels: Dict[str, str] = field(default_factory=dict)
    requires_prompt: bool = True
    requires_reference_image: bool = False
    search_grounding: bool = False


FAMILIES: Dict[str, ModelFamily] = {
    "standard": ModelFamily(
        name="standard",
        model_id="imagen-4.0-generate-001",
        api_version="v1",
        method="predict",
        build_body=build_imagen_body,
        parse_result=parse_predict_response,
        fan_out=False,
        max_images=4,
        max_reference_images=1,
        size_tiers=("1K", "2K"),
        size_labels=IMAGEN_SIZE_LABELS,
    ),
    "fast": ModelFamily(
        name="fast",
        model_id="imagen-4.0-fast-generate-001",
        api_version="v1",
        method="predict",
        build_body=build_imagen_body,
        parse_result=parse_predict_response,
        fan_out=False,
        max_images=4,
        max_reference_images=1,
        size_tiers=("1K",),
        size_labels=IMAGEN_SIZE_LABELS,
    ),
    "ultra": ModelFamily(
        name="ultra",
        model_id="imagen-4.0-ultra-generate-001",
        api_version="v1",
        method="predict",
        build_body=build_imagen_body,
        parse_result=parse_predict_response,
        fan_out=False,
        max_images=4,
        max_reference_images=1,
        size_tiers=("1K", "2K"),
        size_labels=IMAGEN_SIZE_LABELS,
    ),
    "multimodal-v1": ModelFamily(
        name="multimodal-v1",
        model_id="gemini-2.5-flash-image",
        api_version="v1",
        method="generateContent",
        build_body=build_gemini_body,
        parse_result=parse_generate_content_response,
        fan_out=True,
        max_images=4,
        max_reference_images=3,
        size_tiers=("1K",),
        size_labels=GEMINI_SIZE_LABELS,
    ),
    "multimodal-v2": ModelFamily(
        name="multimodal-v2",
        model_id="gemini-3-pro-image-preview",
        api_version="v1beta1",
        method="generateContent",
        build_body=build_gemini_body,
        parse_result=parse_generate_content_response,
        fan_out=True,
        max_images=4,
        max_reference_images=14,
        size_tiers=("1K", "2K", "4K"),
        size_labels=GEMINI_SIZE_LABELS,
        search_grounding=True,
    ),
    "upscale": ModelFamily(
        name="upscale",
        model_id="imagen-4.0-ultra-generate-001",
        api_version="v1",
        method="predict",
        build_body=build_upscale_body,
        parse_result=parse_predict_response,
        fan_out=False,
        max_images=1,
        max_reference_images=1,
        requires_prompt=False,
        requires_reference_image=True,
    ),
}

# Mode names older clients still send
MODE_ALIASES = {
    "generate": "standard",
    "generate-fast": "fast",
    "generate-ultra": "ultra",
    "generate-nanobanana": "multimodal-v2",
}


def resolve_family(mode: str) -> ModelFamily:
    key = (mode or "").strip().lower()
    key = MODE_ALIASES.get(key, key)
    family = FAMILIES.get(key)
    if family is None:
        known = ", ".join(FAMILIES)
        raise ValidationError(f"Unknown mode '{mode}'. Expected one of: {known}")
    return family
