"""
HTTP client forwarding gateway traffic to the backend service
"""

import asyncio
import time
from typing import Dict, Optional

import httpx
import structlog

from gateway.models.proxy import OutcomeKind, ProxyOutcome
from shared.middleware.pipeline import RequestContext
from shared.utils.logger import RequestLogger, get_request_logger
from shared.utils.security import mask_error_message

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_CONTENT_TYPE = "application/json"


class RequestTooLargeError(Exception):
    """Outbound body exceeds the forwarding cap"""


class ResponseTooLargeError(Exception):
    """Backend response exceeds the relay cap"""


class BackendClient:
    """HTTP client for the backend service"""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        max_request_bytes: int = DEFAULT_MAX_BYTES,
        max_response_bytes: int = DEFAULT_MAX_BYTES,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        request_logger: Optional[RequestLogger] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_request_bytes = max_request_bytes
        self.max_response_bytes = max_response_bytes
        self.transport = transport
        self.request_logger = request_logger or get_request_logger()

    def build_url(self, context: RequestContext) -> str:
        """Backend base URL + inbound path + inbound query, verbatim"""
        url = f"{self.base_url}{context.path}"
        if context.query_string:
            url = f"{url}?{context.query_string}"
        return url

    def build_headers(self, context: RequestContext) -> Dict[str, str]:
        headers = {
            "Content-Type": context.headers.get("content-type") or DEFAULT_CONTENT_TYPE,
            "X-Forwarded-Proto": context.scheme,
            # relayed Content-Length must match the relayed bytes
            "Accept-Encoding": "identity",
        }
        if context.client_host:
            headers["X-Forwarded-For"] = context.client_host
        if context.hostname:
            headers["X-Forwarded-Host"] = context.hostname
        return headers

    async def forward(self, context: RequestContext) -> ProxyOutcome:
        """
        Forward one request to the backend and classify the result

        Never raises: every failure becomes a ProxyOutcome. There is a single
        attempt per request.
        """
        target_url = self.build_url(context)
        logger.debug("Forwarding request", method=context.method, path=context.path, target_url=target_url)
        start = time.perf_counter()

        try:
            outcome = await asyncio.wait_for(self._send(context, target_url), timeout=self.timeout)
        except httpx.ConnectError as e:
            outcome = self._failed(context, OutcomeKind.UPSTREAM_UNAVAILABLE, e)
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            outcome = self._failed(context, OutcomeKind.UPSTREAM_TIMEOUT, e)
        except ResponseTooLargeError as e:
            outcome = self._failed(context, OutcomeKind.MALFORMED_UPSTREAM_RESPONSE, e)
        except Exception as e:
            outcome = self._failed(context, OutcomeKind.UPSTREAM_FAILURE, e)
        else:
            if outcome.kind == OutcomeKind.MALFORMED_UPSTREAM_RESPONSE:
                self.request_logger.log_proxy_error(
                    context.method,
                    context.path,
                    outcome.kind.value,
                    "MalformedResponse",
                    "Backend response body is not valid JSON"
                )

        self.request_logger.log_proxy(
            context.method,
            context.path,
            target_url,
            outcome.status_code,
            (time.perf_counter() - start) * 1000,
            outcome.kind.value
        )
        return outcome

    async def _send(self, context: RequestContext, target_url: str) -> ProxyOutcome:
        content = context.raw_body or None
        if content is not None and len(content) > self.max_request_bytes:
            raise RequestTooLargeError(f"Request body of {len(content)} bytes exceeds {self.max_request_bytes}")

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            request = client.build_request(
                context.method,
                target_url,
                headers=self.build_headers(context),
                content=content
            )
            response = await client.send(request, stream=True)
            try:
                body = await self._read_capped(response)
            finally:
                await response.aclose()

        return ProxyOutcome.from_upstream(response.status_code, response.headers, body)

    async def _read_capped(self, response: httpx.Response) -> bytes:
        declared = response.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > self.max_response_bytes:
            raise ResponseTooLargeError(f"Declared response size {declared} exceeds {self.max_response_bytes}")

        body = bytearray()
        async for chunk in response.aiter_bytes():
            body.extend(chunk)
            if len(body) > self.max_response_bytes:
                raise ResponseTooLargeError(f"Response exceeds {self.max_response_bytes} bytes")
        return bytes(body)

    def _failed(self, context: RequestContext, kind: OutcomeKind, error: Exception) -> ProxyOutcome:
        self.request_logger.log_proxy_error(
            context.method,
            context.path,
            kind.value,
            type(error).__name__,
            mask_error_message(str(error))
        )
        return ProxyOutcome.failure(kind)
