"""
Proxy route forwarding /api/* to the backend service
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from gateway.utils.backend_client import BackendClient
from shared.middleware.pipeline import RequestContext, get_request_context

router = APIRouter()

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD", "TRACE"]


def get_backend_client(request: Request) -> BackendClient:
    """Dependency to get the backend client"""
    return request.app.state.backend_client


@router.api_route("/api/{path:path}", methods=PROXY_METHODS, include_in_schema=False)
async def proxy_request(
    context: RequestContext = Depends(get_request_context),
    client: BackendClient = Depends(get_backend_client)
) -> Response:
    """Forward the sanitized request to the backend and relay its answer"""
    outcome = await client.forward(context)
    return outcome.to_response()
