# imagegen/app.py

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError as PydanticValidationError

from config.settings import settings
from .errors import GenerationError, PlatformTimeout, ValidationError
from .model import ErrorDetail, ErrorResponse, GenerateResponse, GenerationRequest
from .service import ImageService, get_service

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Credentials": "true",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST,OPTIONS",
    "Access-Control-Allow-Headers": (
        "X-CSRF-Token, X-Requested-With, Accept, Accept-Version, Content-Length, "
        "Content-MD5, Content-Type, Date, X-Api-Version"
    ),
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if get_service.cache_info().currsize:
        await get_service().aclose()


app = FastAPI(title="Image Generation Gateway", lifespan=lifespan)


@app.middleware("http")
async def add_cors_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


def error_response(status_code: int, message: str) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(message=message))
    return JSONResponse(status_code=status_code, content=body.model_dump())


def _too_large_message(size: int) -> str:
    limit_mb = settings.MAX_BODY_BYTES / 1_000_000
    return (
        f"Request body is {size / 1_000_000:.1f} MB, the limit is {limit_mb:.1f} MB. "
        "Use fewer or smaller reference images."
    )


def _declared_length(request: Request) -> int:
    value = request.headers.get("content-length", "")
    return int(value) if value.isdigit() else 0


def parse_generation_request(raw: bytes) -> GenerationRequest:
    try:
        data: Any = json.loads(raw or b"{}")
    except ValueError as e:
        raise ValidationError(f"Request body is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        return GenerationRequest.model_validate(data)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}" for err in e.errors()
        )
        raise ValidationError(f"Invalid request: {problems}") from e


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.options("/api/generate")
async def generate_preflight():
    return Response(status_code=200)


@app.post("/api/generate", response_model=GenerateResponse, response_model_exclude_none=True)
async def generate(request: Request, service: ImageService = Depends(get_service)):
    # reject before reading the body
    declared = _declared_length(request)
    if declared > settings.MAX_BODY_BYTES:
        logger.warning("[Gateway] Rejected body of %d bytes", declared)
        return error_response(413, _too_large_message(declared))

    raw = await request.body()
    if len(raw) > settings.MAX_BODY_BYTES:
        return error_response(413, _too_large_message(len(raw)))

    mode = ""
    try:
        gen_request = parse_generation_request(raw)
        mode = gen_request.mode
        records = await asyncio.wait_for(service.generate(gen_request), timeout=settings.EXECUTION_TIMEOUT)
    except asyncio.TimeoutError:
        err = PlatformTimeout.for_mode(mode)
        logger.error("[Gateway] mode=%s exceeded %.0fs", mode, settings.EXECUTION_TIMEOUT)
        return error_response(500, err.message)
    except GenerationError as e:
        logger.warning("[Gateway] %s: %s", type(e).__name__, e.message)
        return error_response(500, e.message)
    except Exception:
        logger.exception("[Gateway] Unexpected error")
        return error_response(500, "Internal server error")

    logger.info("[Gateway] Returning %d image(s) for mode=%s", len(records), mode)
    return GenerateResponse(images=records)


def main() -> None:
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
