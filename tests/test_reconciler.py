"""Unit tests for provider response parsing and reconciliation."""

import pytest

from conftest import PNG_B64, PNG_BYTES, gemini_image_response, gemini_text_response, imagen_response
from imagegen.errors import GenerationRefused, NoImagesProduced, PlatformTimeout, TransportFailure
from imagegen.model import ProviderFailure, ProviderSuccess
from imagegen.reconciler import parse_generate_content_response, parse_predict_response, reconcile


def test_predict_response_images_are_decoded():
    result = parse_predict_response(imagen_response(2))

    assert isinstance(result, ProviderSuccess)
    assert result.images == [PNG_BYTES, PNG_BYTES]


def test_predict_response_filtered_only_is_refusal():
    result = parse_predict_response({"predictions": [{"raiFilteredReason": "Blocked by safety filter"}]})

    assert isinstance(result, ProviderFailure)
    assert result.is_refusal
    assert result.message == "Blocked by safety filter"


def test_predict_response_partly_filtered_keeps_images():
    data = {"predictions": [{"raiFilteredReason": "filtered"}, {"bytesBase64Encoded": PNG_B64}]}

    result = parse_predict_response(data)

    assert isinstance(result, ProviderSuccess)
    assert result.images == [PNG_BYTES]


def test_predict_response_without_predictions_is_empty_success():
    result = parse_predict_response({})

    assert isinstance(result, ProviderSuccess)
    assert result.images == []


def test_predict_response_with_broken_base64_is_transport_failure():
    with pytest.raises(TransportFailure):
        parse_predict_response({"predictions": [{"bytesBase64Encoded": "not base64!!"}]})


def test_generate_content_pairs_text_with_image():
    result = parse_generate_content_response(gemini_image_response(text="Here is your cube."))

    assert isinstance(result, ProviderSuccess)
    assert result.images == [PNG_BYTES]
    assert result.auxiliary_text == "Here is your cube."


def test_generate_content_skips_thought_parts():
    data = gemini_image_response()
    data["candidates"][0]["content"]["parts"].insert(0, {"text": "thinking...", "thought": True})

    result = parse_generate_content_response(data)

    assert isinstance(result, ProviderSuccess)
    assert result.auxiliary_text is None


def test_generate_content_text_only_is_refusal():
    result = parse_generate_content_response(gemini_text_response("I can't create that image."))

    assert isinstance(result, ProviderFailure)
    assert result.is_refusal
    assert result.message == "I can't create that image."


def test_generate_content_blocked_prompt_is_refusal():
    result = parse_generate_content_response({"promptFeedback": {"blockReason": "PROHIBITED_CONTENT"}})

    assert isinstance(result, ProviderFailure)
    assert result.is_refusal
    assert "PROHIBITED_CONTENT" in result.message


def test_generate_content_safety_stop_is_refusal():
    result = parse_generate_content_response({"candidates": [{"finishReason": "IMAGE_SAFETY"}]})

    assert isinstance(result, ProviderFailure)
    assert result.is_refusal


def test_generate_content_without_candidates_is_transport_failure():
    with pytest.raises(TransportFailure):
        parse_generate_content_response({"candidates": []})


@pytest.mark.parametrize(
    "body",
    [
        {"candidates": ["oops"]},
        {"candidates": {"0": {}}},
        {"candidates": [{"content": {"parts": [{"inlineData": "abc"}]}}]},
        {"candidates": [{"content": {"parts": [{"text": 5}]}}]},
        {"candidates": [{"content": {"parts": "abc"}}]},
        {"promptFeedback": "blocked"},
    ],
)
def test_generate_content_unexpected_shape_is_transport_failure(body):
    with pytest.raises(TransportFailure):
        parse_generate_content_response(body)


def test_reconcile_keeps_slot_order_and_pairs_auxiliary_text():
    results = [
        ProviderSuccess(images=[b"one"], auxiliary_text="first"),
        ProviderFailure(message="HTTP 503"),
        ProviderSuccess(images=[b"three"]),
    ]

    reconciled = reconcile(results)

    assert reconciled.images == [b"one", b"three"]
    assert reconciled.auxiliaries == ["first", None]


def test_reconcile_partial_success_is_not_an_error():
    results = [ProviderFailure(message="boom")] * 3 + [ProviderSuccess(images=[b"img"])]

    assert reconcile(results).images == [b"img"]


def test_reconcile_refusal_last_reason_wins():
    results = [
        ProviderFailure(message="first reason", is_refusal=True),
        ProviderFailure(message="HTTP 500"),
        ProviderFailure(message="second reason", is_refusal=True),
    ]

    with pytest.raises(GenerationRefused) as exc:
        reconcile(results)

    assert exc.value.reason == "second reason"
    assert "second reason" in exc.value.message


def test_reconcile_text_without_image_counts_as_refusal():
    with pytest.raises(GenerationRefused):
        reconcile([ProviderSuccess(images=[], auxiliary_text="No.")])


def test_reconcile_refusal_message_is_truncated():
    with pytest.raises(GenerationRefused) as exc:
        reconcile([ProviderFailure(message="x" * 1000, is_refusal=True)], excerpt_chars=50)

    assert exc.value.message.endswith("x" * 50 + "...")
    assert "x" * 51 not in exc.value.message


def test_reconcile_all_transport_failures_is_no_images():
    with pytest.raises(NoImagesProduced):
        reconcile([ProviderFailure(message="HTTP 429"), ProviderFailure(message="HTTP 500")])


def test_reconcile_empty_success_is_no_images():
    with pytest.raises(NoImagesProduced):
        reconcile([ProviderSuccess()])


def test_reconcile_all_timeouts_is_platform_timeout_with_guidance():
    with pytest.raises(PlatformTimeout) as exc:
        reconcile([ProviderFailure(message="timed out", timed_out=True)], mode="upscale")

    assert "smaller source image" in exc.value.message
