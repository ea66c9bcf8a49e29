"""
Pipeline stages shared by the gateway and the backend

Stages are listed here in the order the services install them:
header hardening, body-size enforcement, string sanitization, logging.
"""

import json
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl

import structlog
from starlette.datastructures import MutableHeaders
from starlette.responses import JSONResponse, Response

from shared.middleware.pipeline import BodyKind, BodyTooLargeError, RequestContext, Stage
from shared.utils.logger import RequestLogger, get_request_logger
from shared.utils.security import apply_security_headers, sanitize_fields, sanitize_items

logger = structlog.get_logger(__name__)

JSON_MEDIA_TYPE = "application/json"
FORM_MEDIA_TYPE = "application/x-www-form-urlencoded"

DEFAULT_MAX_BODY_BYTES = 10 * 1024


class SecurityHeadersStage(Stage):
    """Adds hardening headers to every response"""

    def __init__(self, hsts: bool = False):
        self.hsts = hsts

    def process_response(self, context: RequestContext, status_code: int, headers: MutableHeaders) -> None:
        apply_security_headers(headers, hsts=self.hsts)


class BodySizeLimitStage(Stage):
    """
    Rejects oversized JSON and form bodies and parses the ones that fit

    Only JSON and URL-encoded bodies are limited and parsed. Any other
    content type is read and carried through as raw bytes.
    """

    def __init__(self, max_bytes: int = DEFAULT_MAX_BODY_BYTES):
        self.max_bytes = max_bytes

    async def process_request(self, context: RequestContext) -> Optional[Response]:
        media_type = context.media_type
        limited = media_type in (JSON_MEDIA_TYPE, FORM_MEDIA_TYPE)

        if limited:
            declared = context.headers.get("content-length", "")
            if declared.isdigit() and int(declared) > self.max_bytes:
                return self._too_large(context, int(declared))

        try:
            raw_body = await context.read_body(self.max_bytes if limited else None)
        except BodyTooLargeError as e:
            return self._too_large(context, e.size)

        if not raw_body:
            context.body_kind = BodyKind.EMPTY
            return None

        if not limited:
            context.body_kind = BodyKind.RAW
            return None

        try:
            if media_type == JSON_MEDIA_TYPE:
                body = json.loads(raw_body)
                # objects and arrays only
                if not isinstance(body, (dict, list)):
                    raise ValueError(f"top-level JSON {type(body).__name__} is not accepted")
                context.body = body
                context.body_kind = BodyKind.JSON
            else:
                context.body = parse_form(raw_body.decode("utf-8"))
                context.body_kind = BodyKind.FORM
        except ValueError as e:
            logger.warning(
                "Malformed request body",
                method=context.method,
                path=context.path,
                media_type=media_type,
                error=str(e)
            )
            return JSONResponse(status_code=400, content={"error": "Malformed request body"})

        return None

    def _too_large(self, context: RequestContext, size: int) -> Response:
        logger.warning(
            "Request body too large",
            method=context.method,
            path=context.path,
            size=size,
            limit=self.max_bytes
        )
        return JSONResponse(status_code=413, content={"error": "Payload too large"})


def parse_form(data: str) -> Dict[str, Any]:
    """Parse a URL-encoded body. Repeated keys become lists."""
    parsed: Dict[str, Any] = {}
    for key, value in parse_qsl(data, keep_blank_values=True, strict_parsing=False):
        if key not in parsed:
            parsed[key] = value
        elif isinstance(parsed[key], list):
            parsed[key].append(value)
        else:
            parsed[key] = [parsed[key], value]
    return parsed


class SanitizerStage(Stage):
    """
    Escapes HTML-significant characters in top-level string values

    Only the first level of an object or array body is sanitized. Values
    inside nested objects and arrays are left untouched.
    """

    async def process_request(self, context: RequestContext) -> Optional[Response]:
        if context.body_kind not in (BodyKind.JSON, BodyKind.FORM):
            return None

        if isinstance(context.body, dict):
            sanitized = sanitize_fields(context.body)
        elif isinstance(context.body, list):
            sanitized = sanitize_items(context.body)
        else:
            return None

        if sanitized != context.body:
            context.replace_body(sanitized)
        return None


class RequestLoggingStage(Stage):
    """Logs every request on the way in and its status on the way out"""

    def __init__(self, request_logger: Optional[RequestLogger] = None):
        self.request_logger = request_logger or get_request_logger()

    async def process_request(self, context: RequestContext) -> Optional[Response]:
        self.request_logger.log_request(context.method, context.path, context.client_host)
        return None

    def process_response(self, context: RequestContext, status_code: int, headers: MutableHeaders) -> None:
        self.request_logger.log_response(context.method, context.path, status_code, context.elapsed_ms())
