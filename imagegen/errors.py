# imagegen/errors.py

from typing import Optional


class GenerationError(Exception):
    """Base class for every failure the gateway reports to the client."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GenerationError):
    """Malformed or unrecognized input. Raised before any network call."""


class MissingInput(ValidationError):
    """A mode needs an input the request did not carry (e.g. upscale image)."""


class TransportFailure(GenerationError):
    """Network error, non-2xx upstream status or unparseable upstream body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PlatformTimeout(TransportFailure):
    """An upstream call or the whole request hit the execution-time ceiling."""

    @classmethod
    def for_mode(cls, mode: str) -> "PlatformTimeout":
        if (mode or "").strip().lower() == "upscale":
            return cls(
                "Upscaling took longer than the server allows. "
                "Try a smaller source image or a lower upscale level."
            )
        return cls(
            "Image generation took longer than the server allows. "
            "Try fewer images, a lower resolution or fewer reference images."
        )


class GenerationRefused(GenerationError):
    def __init__(self, reason: str, excerpt_chars: int = 200):
        excerpt = reason.strip()
        if len(excerpt) > excerpt_chars:
            excerpt = excerpt[:excerpt_chars].rstrip() + "..."
        super().__init__(f"The model returned text instead of an image: {excerpt}")
        self.reason = reason


class NoImagesProduced(GenerationError):
    def __init__(self, message: str = "No image was produced. The service may be busy, please try again."):
        super().__init__(message)


class PersistenceFailure(GenerationError):
    """Uploading or publishing a generated image failed."""
