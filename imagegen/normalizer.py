# imagegen/normalizer.py

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .errors import MissingInput, ValidationError
from .families import ModelFamily, resolve_family
from .model import GenerationRequest, RecordMetadata
from .payloads import PayloadInputs

DEFAULT_ASPECT_RATIO = "1:1"
DEFAULT_UPSCALE_LEVEL = 2048

# (tier, minimum resolution hint), largest first
TIER_THRESHOLDS = (("4K", 4096), ("2K", 2048), ("1K", 0))
TIER_ORDER = ("1K", "2K", "4K")


@dataclass
class ProviderPayload:
    family: ModelFamily
    body: Dict[str, Any]
    requested_count: int
    metadata: RecordMetadata


def clamp_image_count(count: Optional[int], family: ModelFamily) -> int:
    """Silently pull image_count into 1..family.max_images."""
    return max(1, min(count or 1, family.max_images))


def snap_size_tier(hint: Optional[int], family: ModelFamily) -> Optional[str]:
    """
    Snap a resolution hint down to a tier, then down again to the largest
    tier the family actually serves. Families without tiers return None.
    """
    if not family.size_tiers:
        return None

    wanted = "1K"
    for tier, minimum in TIER_THRESHOLDS:
        if (hint or 0) >= minimum:
            wanted = tier
            break

    served = [t for t in family.size_tiers if TIER_ORDER.index(t) <= TIER_ORDER.index(wanted)]
    return served[-1] if served else family.size_tiers[0]


def normalize(request: GenerationRequest) -> ProviderPayload:
    """
    Build the provider payload for a request:
    - resolve mode -> model family (ValidationError on unknown mode)
    - check required inputs before anything touches the network
    - clamp count, snap resolution, cap reference images
    - delegate body shape to the family's builder
    """
    family = resolve_family(request.mode)

    prompt = (request.prompt or "").strip()
    if family.requires_prompt and not prompt:
        raise ValidationError(f"A prompt is required for mode '{family.name}'")

    references = list(request.reference_images[: family.max_reference_images])
    if family.requires_reference_image and not references:
        raise MissingInput(f"Mode '{family.name}' needs a reference image, none was supplied")

    inputs = PayloadInputs(
        prompt=prompt,
        aspect_ratio=(request.aspect_ratio or "").strip() or DEFAULT_ASPECT_RATIO,
        image_count=clamp_image_count(request.image_count, family),
        size_tier=snap_size_tier(request.resolution_hint, family),
        add_watermark=request.add_watermark,
        upscale_level=request.upscale_level or DEFAULT_UPSCALE_LEVEL,
        reference_images=references,
    )

    body, metadata = family.build_body(family, inputs)
    return ProviderPayload(
        family=family,
        body=body,
        requested_count=inputs.image_count,
        metadata=metadata,
    )
