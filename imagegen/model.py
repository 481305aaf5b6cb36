# imagegen/model.py
from dataclasses import dataclass, field
from typing import Optional, List, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ReferenceImage(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    base64_data: str = Field(alias="base64Data")
    mime_type: str = "image/png"


class GenerationRequest(BaseModel):
    """
    Inbound body of POST /api/generate.
    Legacy client field names (images, numImages, sampleImageSize) are accepted too.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    mode: str
    prompt: Optional[str] = None
    reference_images: List[ReferenceImage] = Field(
        default_factory=list,
        validation_alias=AliasChoices("referenceImages", "images", "reference_images"),
    )
    aspect_ratio: Optional[str] = None
    resolution_hint: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("resolutionHint", "sampleImageSize", "resolution_hint"),
    )
    image_count: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("imageCount", "numImages", "image_count"),
    )
    upscale_level: Optional[int] = None
    add_watermark: bool = True


class GeneratedImageRecord(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    url: str
    prompt: str
    aspect_ratio: str
    size_label: str
    mode: str
    auxiliary_text: Optional[str] = None


class GenerateResponse(BaseModel):
    images: List[GeneratedImageRecord]


class ErrorDetail(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: ErrorDetail


# ---------------------------------------------------------------------------
# Internal pipeline types (never serialized to the client)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RecordMetadata:
    """What gets echoed back on every GeneratedImageRecord of a request."""

    prompt: str
    aspect_ratio: str
    size_label: str
    mode: str


@dataclass
class ProviderSuccess:
    images: List[bytes] = field(default_factory=list)
    auxiliary_text: Optional[str] = None


@dataclass
class ProviderFailure:
    message: str
    is_refusal: bool = False
    timed_out: bool = False


ProviderResult = Union[ProviderSuccess, ProviderFailure]


@dataclass
class ReconciledImages:
    images: List[bytes]
    auxiliaries: List[Optional[str]]
