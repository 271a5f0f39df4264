from fastapi import Request

from src.app.tenancy.resolver import ResolutionRequest


def resolution_request(request: Request) -> ResolutionRequest:
    """The parts of a FastAPI request tenant resolution needs."""
    return ResolutionRequest(
        method=request.method,
        path=request.url.path,
        headers=dict(request.headers),
        query=dict(request.query_params),
        host=request.headers.get("host"),
    )
