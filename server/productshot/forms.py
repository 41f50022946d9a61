# ─────────────────────────────────────────────────────────────────────────────
# Request Body Parsing — multipart form or JSON, one schema either way
# ─────────────────────────────────────────────────────────────────────────────
# Multipart: image fields are file parts; everything else is a text field.
# JSON:      image fields are base64 strings or data: URIs, with an optional
#            "<field>MimeType" companion (default image/png).
#
# Uploaded parts are Starlette spooled temp files. The form is opened as a
# context manager so they are closed on every exit path.
# ─────────────────────────────────────────────────────────────────────────────

from typing import Any, TypeVar

import structlog
from pydantic import ValidationError
from starlette.datastructures import UploadFile
from starlette.requests import Request

from productshot.exceptions import InvalidInputError
from productshot.pipeline.encoding import DEFAULT_MIME_TYPE, decode_image_field
from productshot.pipeline.tasks import ImageInput
from productshot.schemas import GenerationRequest

logger = structlog.get_logger(__name__)

RequestT = TypeVar("RequestT", bound=GenerationRequest)

_FORM_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


async def parse_body(request: Request, model: type[RequestT], max_upload_bytes: int) -> RequestT:
    """Read the request body into `model`, decoding image fields first."""
    content_type = request.headers.get("content-type", "").lower()
    if content_type.startswith(_FORM_TYPES):
        raw = await _read_form(request, model.image_fields, max_upload_bytes)
    else:
        raw = await _read_json(request, model.image_fields, max_upload_bytes)

    try:
        return model.model_validate(raw)
    except ValidationError as e:
        raise InvalidInputError("INVALID_REQUEST", _describe(e)) from None


async def _read_form(
    request: Request, image_fields: tuple[str, ...], max_upload_bytes: int
) -> dict[str, Any]:
    raw: dict[str, Any] = {}
    async with request.form() as form:
        for key, value in form.multi_items():
            if key in raw:
                continue  # first value wins, like FormData.get()
            if isinstance(value, UploadFile):
                if key not in image_fields:
                    continue
                raw[key] = await _read_upload(key, value, max_upload_bytes)
            elif key in image_fields:
                # A text value in an image slot: treat it like the JSON form.
                raw[key] = _decode_inline(key, value, form.get(f"{key}MimeType"), max_upload_bytes)
            else:
                raw[key] = value
    return raw


async def _read_upload(field: str, upload: UploadFile, max_upload_bytes: int) -> ImageInput | None:
    data = await upload.read(max_upload_bytes + 1)
    if not data:
        return None
    _check_size(field, len(data), max_upload_bytes)
    return ImageInput(data=data, mime_type=upload.content_type or DEFAULT_MIME_TYPE)


async def _read_json(
    request: Request, image_fields: tuple[str, ...], max_upload_bytes: int
) -> dict[str, Any]:
    body_bytes = await request.body()
    if not body_bytes.strip():
        return {}
    try:
        body = await request.json()
    except ValueError:
        raise InvalidInputError(
            "INVALID_REQUEST", "Request body must be JSON or multipart form data"
        ) from None
    if not isinstance(body, dict):
        raise InvalidInputError("INVALID_REQUEST", "Request body must be a JSON object")

    raw = dict(body)
    for field in image_fields:
        value = raw.get(field)
        if value is None:
            continue
        if not isinstance(value, str):
            raise InvalidInputError("INVALID_IMAGE", f"{field}: expected a base64 string")
        raw[field] = _decode_inline(field, value, raw.get(f"{field}MimeType"), max_upload_bytes)
    return raw


def _decode_inline(
    field: str, value: str, mime_type: Any, max_upload_bytes: int
) -> ImageInput | None:
    if not value.strip():
        return None
    try:
        data, mime = decode_image_field(value, mime_type if isinstance(mime_type, str) else None)
    except ValueError as e:
        raise InvalidInputError("INVALID_IMAGE", f"{field}: {e}") from None
    _check_size(field, len(data), max_upload_bytes)
    return ImageInput(data=data, mime_type=mime)


def _check_size(field: str, size: int, max_upload_bytes: int) -> None:
    if size > max_upload_bytes:
        logger.info("upload_rejected", field=field, limit_bytes=max_upload_bytes)
        raise InvalidInputError(
            "IMAGE_TOO_LARGE",
            f"{field}: image exceeds the {max_upload_bytes // (1024 * 1024)} MiB upload limit",
        )


def _describe(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(p) for p in first.get("loc", ()))
    return f"{location}: {first['msg']}" if location else first["msg"]
