# imagegen/reconciler.py

import base64
import binascii
import logging
from typing import Any, Dict, List, Optional, Sequence

from .errors import GenerationRefused, NoImagesProduced, PlatformTimeout, TransportFailure
from .model import ProviderFailure, ProviderResult, ProviderSuccess, ReconciledImages

logger = logging.getLogger(__name__)

# Gemini finish reasons that mean "declined", not "broken"
REFUSAL_FINISH_REASONS = {
    "SAFETY",
    "PROHIBITED_CONTENT",
    "BLOCKLIST",
    "SPII",
    "RECITATION",
    "IMAGE_SAFETY",
    "IMAGE_PROHIBITED_CONTENT",
}


def _decode_image(data: Any) -> bytes:
    if not isinstance(data, str) or not data:
        raise TransportFailure("Provider returned an empty image payload")
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise TransportFailure(f"Provider returned malformed image data: {e}") from e


def parse_predict_response(data: Dict[str, Any]) -> ProviderResult:
    """
    Imagen :predict response.
    predictions[].bytesBase64Encoded -> images
    predictions[].raiFilteredReason  -> refusal text when nothing else came back
    """
    predictions = data.get("predictions") or []
    if not isinstance(predictions, list):
        raise TransportFailure("Provider returned predictions in an unexpected shape")

    images: List[bytes] = []
    filtered_reason: Optional[str] = None
    for prediction in predictions:
        if not isinstance(prediction, dict):
            continue
        if prediction.get("bytesBase64Encoded"):
            images.append(_decode_image(prediction["bytesBase64Encoded"]))
        elif prediction.get("raiFilteredReason"):
            filtered_reason = str(prediction["raiFilteredReason"])

    if not images and filtered_reason:
        return ProviderFailure(message=filtered_reason, is_refusal=True)
    return ProviderSuccess(images=images)


def parse_generate_content_response(data: Dict[str, Any]) -> ProviderResult:
    """
    Gemini :generateContent response.
    candidates[0].content.parts[] carries inlineData (image) and text parts.
    Text without an image is the model declining the prompt.
    Anything that does not have this shape is a TransportFailure.
    """
    candidates = data.get("candidates") or []
    if not isinstance(candidates, list):
        raise TransportFailure("Gemini returned candidates in an unexpected shape")
    if not candidates:
        feedback = data.get("promptFeedback") or {}
        if not isinstance(feedback, dict):
            raise TransportFailure("Gemini returned promptFeedback in an unexpected shape")
        block_reason = feedback.get("blockReason")
        if block_reason:
            detail = feedback.get("blockReasonMessage") or block_reason
            return ProviderFailure(message=f"Prompt blocked ({block_reason}): {detail}", is_refusal=True)
        raise TransportFailure("Gemini returned no candidates")

    candidate = candidates[0] or {}
    if not isinstance(candidate, dict):
        raise TransportFailure("Gemini returned a candidate in an unexpected shape")
    content = candidate.get("content") or {}
    parts = content.get("parts") if isinstance(content, dict) else None
    parts = parts or []
    if not isinstance(parts, list):
        raise TransportFailure("Gemini returned content parts in an unexpected shape")

    images: List[bytes] = []
    texts: List[str] = []
    for part in parts:
        if not isinstance(part, dict) or part.get("thought"):
            continue
        inline = part.get("inlineData") or part.get("inline_data")
        if inline:
            if not isinstance(inline, dict):
                raise TransportFailure("Gemini returned inlineData in an unexpected shape")
            images.append(_decode_image(inline.get("data")))
        elif part.get("text"):
            if not isinstance(part["text"], str):
                raise TransportFailure("Gemini returned a text part that is not a string")
            texts.append(part["text"])

    text = "\n".join(texts).strip() or None
    if images:
        return ProviderSuccess(images=images, auxiliary_text=text)
    if text:
        return ProviderFailure(message=text, is_refusal=True)

    finish_reason = candidate.get("finishReason")
    if finish_reason in REFUSAL_FINISH_REASONS:
        return ProviderFailure(message=f"Generation stopped by the provider ({finish_reason})", is_refusal=True)
    return ProviderSuccess()


def reconcile(results: Sequence[ProviderResult], mode: str = "", excerpt_chars: int = 200) -> ReconciledImages:
    """
    Flatten per-slot results into one image list (slot order preserved).

    Zero images is always a failure:
    - GenerationRefused when some slot explained itself in text (last one wins)
    - PlatformTimeout when every slot died on the execution ceiling
    - NoImagesProduced otherwise
    """
    images: List[bytes] = []
    auxiliaries: List[Optional[str]] = []
    refusal_reason: Optional[str] = None
    timed_out = 0

    for index, result in enumerate(results):
        if isinstance(result, ProviderFailure):
            if result.is_refusal:
                refusal_reason = result.message
            elif result.timed_out:
                timed_out += 1
            logger.info("[Reconciler] slot %d failed (refusal=%s): %s", index, result.is_refusal, result.message[:200])
            continue

        if result.images:
            for image in result.images:
                images.append(image)
                auxiliaries.append(result.auxiliary_text)
        elif result.auxiliary_text:
            refusal_reason = result.auxiliary_text

    if not images:
        if refusal_reason:
            raise GenerationRefused(refusal_reason, excerpt_chars=excerpt_chars)
        if results and timed_out == len(results):
            raise PlatformTimeout.for_mode(mode)
        raise NoImagesProduced()

    logger.info("[Reconciler] %d image(s) from %d slot(s)", len(images), len(results))
    return ReconciledImages(images=images, auxiliaries=auxiliaries)
