"""
Request pipeline for the product gateway services

Every HTTP request runs through an ordered list of stages before it reaches
the routes. A stage either returns a response, which short-circuits the rest
of the chain, or returns None and lets the (possibly mutated) request context
continue. Response hooks run in reverse order for every stage that saw the
request, including on short-circuit responses.
"""

import json
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlencode

from starlette.datastructures import Headers, MutableHeaders
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send


class BodyTooLargeError(Exception):
    """Request body grew past the allowed size while being read"""

    def __init__(self, size: int, limit: int):
        super().__init__(f"Request body exceeds {limit} bytes")
        self.size = size
        self.limit = limit


class BodyKind(str, Enum):
    """How the request body was interpreted"""
    EMPTY = "empty"
    JSON = "json"
    FORM = "form"
    RAW = "raw"


@dataclass
class RequestContext:
    """In-flight request envelope shared by all stages"""
    request: Request = field(repr=False)
    method: str
    path: str
    query_string: str
    query: Dict[str, Any]
    headers: Headers = field(repr=False)
    client_host: Optional[str]
    scheme: str
    hostname: Optional[str]
    raw_body: bytes = b""
    body: Any = None
    body_kind: BodyKind = BodyKind.EMPTY
    body_read: bool = False
    body_replaced: bool = False
    started_at: float = field(default_factory=time.perf_counter)

    @classmethod
    def from_request(cls, request: Request) -> "RequestContext":
        """Build a context from a Starlette request without reading the body"""
        raw_path = request.scope.get("raw_path")
        path = raw_path.decode("latin-1") if raw_path else request.url.path

        query: Dict[str, Any] = {}
        for key, value in request.query_params.multi_items():
            if key not in query:
                query[key] = value
            elif isinstance(query[key], list):
                query[key].append(value)
            else:
                query[key] = [query[key], value]

        return cls(
            request=request,
            method=request.method,
            path=path,
            query_string=request.url.query,
            query=query,
            headers=request.headers,
            client_host=request.client.host if request.client else None,
            scheme=request.url.scheme,
            hostname=request.url.hostname,
        )

    @property
    def media_type(self) -> str:
        """Content type without parameters, lowercased"""
        content_type = self.headers.get("content-type", "")
        return content_type.split(";", 1)[0].strip().lower()

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self.started_at) * 1000

    async def read_body(self, max_bytes: Optional[int] = None) -> bytes:
        """
        Read and cache the raw request body

        With max_bytes set, reading stops at the first chunk that takes the
        body past the limit and BodyTooLargeError is raised.
        """
        if not self.body_read:
            body = bytearray()
            async for chunk in self.request.stream():
                body.extend(chunk)
                if max_bytes is not None and len(body) > max_bytes:
                    raise BodyTooLargeError(len(body), max_bytes)
            self.raw_body = bytes(body)
            self.body_read = True
        return self.raw_body

    def replace_body(self, body: Any) -> None:
        """Swap in a new parsed body and re-encode it for downstream consumers"""
        self.body = body
        if self.body_kind == BodyKind.JSON:
            self.raw_body = json.dumps(body, ensure_ascii=False).encode("utf-8")
        elif self.body_kind == BodyKind.FORM:
            self.raw_body = urlencode(body, doseq=True).encode("utf-8")
        else:
            raise ValueError(f"Cannot re-encode a {self.body_kind.value} body")
        self.body_replaced = True

    def replay_receive(self, receive: Receive) -> Receive:
        """ASGI receive callable that yields the cached body once, then defers"""
        sent = False

        async def replay() -> Message:
            nonlocal sent
            if not sent:
                sent = True
                return {"type": "http.request", "body": self.raw_body, "more_body": False}
            return await receive()

        return replay


class Stage:
    """Base pipeline stage. Subclasses override one or both hooks."""

    async def process_request(self, context: RequestContext) -> Optional[Response]:
        return None

    def process_response(self, context: RequestContext, status_code: int, headers: MutableHeaders) -> None:
        return None


class PipelineMiddleware:
    """ASGI middleware running a chain of stages around the application"""

    def __init__(self, app: ASGIApp, stages: Sequence[Stage]):
        self.app = app
        self.stages: List[Stage] = list(stages)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        context = RequestContext.from_request(request)
        request.state.context = context

        seen: List[Stage] = []
        for stage in self.stages:
            seen.append(stage)
            response = await stage.process_request(context)
            if response is not None:
                for done in reversed(seen):
                    done.process_response(context, response.status_code, response.headers)
                await response(scope, receive, send)
                return

        if context.body_read:
            if context.body_replaced:
                MutableHeaders(scope=scope)["content-length"] = str(len(context.raw_body))
            receive = context.replay_receive(receive)

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for done in reversed(seen):
                    done.process_response(context, message["status"], headers)
            await send(message)

        await self.app(scope, receive, send_wrapper)


def get_request_context(request: Request) -> RequestContext:
    """Dependency returning the context the pipeline attached to the request"""
    return request.state.context
