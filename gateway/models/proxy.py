"""
Proxy outcome model

Every forwarded request ends in exactly one outcome, and every outcome
renders to exactly one client response.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from starlette.responses import JSONResponse, Response

# Upstream headers allowed to reach the client
FORWARDED_RESPONSE_HEADERS = ("content-type", "content-length", "cache-control")

DEFAULT_CONTENT_TYPE = "application/json"


class OutcomeKind(str, Enum):
    """Outcome of a proxied request"""
    FORWARDED_SUCCESS = "forwarded_success"
    FORWARDED_ERROR = "forwarded_error"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    UPSTREAM_TIMEOUT = "upstream_timeout"
    MALFORMED_UPSTREAM_RESPONSE = "malformed_upstream_response"
    UPSTREAM_FAILURE = "upstream_failure"


FAILURE_RESPONSES: Dict[OutcomeKind, Dict[str, Any]] = {
    OutcomeKind.UPSTREAM_UNAVAILABLE: {
        "status_code": 503,
        "content": {
            "error": "Backend service unavailable",
            "message": "The backend service is currently unavailable. Please try again later.",
        },
    },
    OutcomeKind.UPSTREAM_TIMEOUT: {
        "status_code": 504,
        "content": {
            "error": "Backend service timeout",
            "message": "The backend service did not respond in time. Please try again later.",
        },
    },
    OutcomeKind.MALFORMED_UPSTREAM_RESPONSE: {
        "status_code": 502,
        "content": {"error": "Bad gateway"},
    },
    OutcomeKind.UPSTREAM_FAILURE: {
        "status_code": 502,
        "content": {"error": "Bad gateway"},
    },
}


def _no_body_status(status_code: int) -> bool:
    return status_code < 200 or status_code in (204, 304)


@dataclass(frozen=True)
class ProxyOutcome:
    """Tagged result of a single forwarding attempt"""
    kind: OutcomeKind
    status_code: int
    content: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def failure(cls, kind: OutcomeKind) -> "ProxyOutcome":
        if kind not in FAILURE_RESPONSES:
            raise ValueError(f"{kind.value} is not a failure outcome")
        return cls(kind=kind, status_code=FAILURE_RESPONSES[kind]["status_code"])

    @classmethod
    def from_upstream(
        cls,
        status_code: int,
        headers: Mapping[str, str],
        content: bytes
    ) -> "ProxyOutcome":
        """
        Classify a backend response

        Any status is relayed. A non-empty body that is not JSON makes the
        response malformed.
        """
        if content:
            try:
                json.loads(content)
            except ValueError:
                return cls.failure(OutcomeKind.MALFORMED_UPSTREAM_RESPONSE)

        forwarded: Dict[str, str] = {}
        for name in FORWARDED_RESPONSE_HEADERS:
            value = headers.get(name)
            if value is not None:
                forwarded[name] = value

        # content-length must describe the bytes actually relayed
        if "content-length" in forwarded:
            if _no_body_status(status_code) or forwarded["content-length"] != str(len(content)):
                del forwarded["content-length"]

        if content and "content-type" not in forwarded:
            forwarded["content-type"] = DEFAULT_CONTENT_TYPE

        kind = OutcomeKind.FORWARDED_ERROR if status_code >= 400 else OutcomeKind.FORWARDED_SUCCESS
        return cls(kind=kind, status_code=status_code, content=content, headers=forwarded)

    @property
    def forwarded(self) -> bool:
        return self.kind in (OutcomeKind.FORWARDED_SUCCESS, OutcomeKind.FORWARDED_ERROR)

    def json(self) -> Optional[Any]:
        """Decoded body as the client will see it"""
        if self.forwarded:
            return json.loads(self.content) if self.content else None
        return FAILURE_RESPONSES[self.kind]["content"]

    def to_response(self) -> Response:
        if not self.forwarded:
            failure = FAILURE_RESPONSES[self.kind]
            return JSONResponse(status_code=failure["status_code"], content=failure["content"])
        return Response(content=self.content, status_code=self.status_code, headers=self.headers)
